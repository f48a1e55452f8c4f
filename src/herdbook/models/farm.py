"""Farm management records: calendar, tasks, pasture areas and batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from herdbook.core.dates import parse_date, parse_datetime
from herdbook.models.common import drop_none, parse_enum


class CalendarEventType(Enum):
    EVENT = "Evento"
    NOTE = "Observação"
    APPOINTMENT = "Compromisso"


class BatchPurpose(Enum):
    VACCINATION = "Vacinação"
    DEWORMING = "Vermifugação"
    WEIGHING = "Pesagem"
    SALE = "Venda"
    WEANING = "Desmame"
    FEEDLOT = "Confinamento"
    SHOW = "Exposição"
    SORTING = "Apartação"
    OTHER = "Outros"


class BatchStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


@dataclass
class CalendarEvent:
    id: str
    date: date
    title: str
    type: CalendarEventType = CalendarEventType.EVENT
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> CalendarEvent:
        return cls(
            id=data["id"],
            date=parse_date(data.get("date")) or date.today(),
            title=data.get("title", ""),
            type=parse_enum(CalendarEventType, data.get("type"), CalendarEventType.EVENT),
            description=data.get("description") or None,
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "id": self.id,
                "date": self.date,
                "title": self.title,
                "type": self.type.value,
                "description": self.description,
            }
        )


@dataclass
class Task:
    id: str
    description: str
    due_date: date | None = None
    is_completed: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        return cls(
            id=data["id"],
            description=data.get("description", ""),
            due_date=parse_date(data.get("dueDate")),
            is_completed=bool(data.get("isCompleted", False)),
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "id": self.id,
                "description": self.description,
                "dueDate": self.due_date,
                "isCompleted": self.is_completed,
            }
        )


@dataclass
class ManagementArea:
    """A paddock or pasture the herd is split across."""

    id: str
    name: str
    area_ha: float = 0.0
    animal_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> ManagementArea:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            area_ha=float(data.get("areaHa") or 0),
            animal_ids=list(data.get("animalIds") or []),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "areaHa": self.area_ha, "animalIds": self.animal_ids}


@dataclass
class ManagementBatch:
    """A group of animals handled together (vaccination, sale, weaning...)."""

    id: str
    name: str
    purpose: BatchPurpose
    animal_ids: list[str] = field(default_factory=list)
    status: BatchStatus = BatchStatus.ACTIVE
    description: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ManagementBatch:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            purpose=parse_enum(BatchPurpose, data.get("purpose"), BatchPurpose.OTHER),
            animal_ids=list(data.get("animalIds") or []),
            status=parse_enum(BatchStatus, data.get("status"), BatchStatus.ACTIVE),
            description=data.get("description") or None,
            created_at=parse_datetime(data.get("createdAt")),
            completed_at=parse_datetime(data.get("completedAt")),
            notes=data.get("notes") or None,
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "id": self.id,
                "name": self.name,
                "purpose": self.purpose.value,
                "animalIds": self.animal_ids,
                "status": self.status.value,
                "description": self.description,
                "createdAt": self.created_at,
                "completedAt": self.completed_at,
                "notes": self.notes,
            }
        )
