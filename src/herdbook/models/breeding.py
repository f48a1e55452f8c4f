"""Breeding season records: seasons, coverages and repasse windows.

Stored in the `breedingSeasons` collection, one document per season with its
coverage records embedded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from herdbook.core.dates import parse_date, parse_datetime
from herdbook.models.common import drop_none, new_id, parse_enum


class CoverageType(Enum):
    NATURAL = "natural"
    AI = "ia"
    FTAI = "iatf"  # fixed-time AI
    IVF = "fiv"  # embryo transfer into a recipient cow


class PregnancyResult(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    PENDING = "pending"


class SeasonStatus(Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class BullType(Enum):
    NATURAL = "natural"
    SEMEN = "semen"


@dataclass
class BullRef:
    """A candidate sire on a natural coverage or a repasse."""

    bull_id: str
    bull_tag: str

    @classmethod
    def from_dict(cls, data: dict) -> BullRef:
        return cls(bull_id=data.get("bullId", ""), bull_tag=data.get("bullBrinco", ""))

    def to_dict(self) -> dict:
        return {"bullId": self.bull_id, "bullBrinco": self.bull_tag}


@dataclass
class SeasonBull:
    id: str
    tag: str
    name: str | None = None
    type: BullType = BullType.NATURAL

    @classmethod
    def from_dict(cls, data: dict) -> SeasonBull:
        return cls(
            id=data["id"],
            tag=data.get("brinco", ""),
            name=data.get("nome") or None,
            type=parse_enum(BullType, data.get("type"), BullType.NATURAL),
        )

    def to_dict(self) -> dict:
        return drop_none({"id": self.id, "brinco": self.tag, "nome": self.name, "type": self.type.value})


@dataclass
class RepasseData:
    """Natural-mating re-exposure after a failed AI/IATF/FIV.

    `bull_id` / `bull_tag` mirror the first bull for records written before
    two-bull repasses existed.
    """

    enabled: bool = True
    bulls: list[BullRef] = field(default_factory=list)
    bull_id: str | None = None
    bull_tag: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None
    diagnosis_date: date | None = None
    diagnosis_result: PregnancyResult | None = None
    confirmed_sire_id: str | None = None
    confirmed_sire_tag: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> RepasseData:
        result = data.get("diagnosisResult")
        return cls(
            enabled=bool(data.get("enabled")),
            bulls=[BullRef.from_dict(b) for b in data.get("bulls") or []],
            bull_id=data.get("bullId") or None,
            bull_tag=data.get("bullBrinco") or None,
            start_date=parse_date(data.get("startDate")),
            end_date=parse_date(data.get("endDate")),
            notes=data.get("notes") or None,
            diagnosis_date=parse_date(data.get("diagnosisDate")),
            diagnosis_result=parse_enum(PregnancyResult, result, PregnancyResult.PENDING) if result else None,
            confirmed_sire_id=data.get("confirmedSireId") or None,
            confirmed_sire_tag=data.get("confirmedSireBrinco") or None,
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "enabled": self.enabled,
                "bulls": [b.to_dict() for b in self.bulls] or None,
                "bullId": self.bull_id,
                "bullBrinco": self.bull_tag,
                "startDate": self.start_date,
                "endDate": self.end_date,
                "notes": self.notes,
                "diagnosisDate": self.diagnosis_date,
                "diagnosisResult": self.diagnosis_result.value if self.diagnosis_result else None,
                "confirmedSireId": self.confirmed_sire_id,
                "confirmedSireBrinco": self.confirmed_sire_tag,
            }
        )


@dataclass
class CoverageRecord:
    """One cow's coverage (mating or insemination) within a season."""

    id: str
    cow_id: str
    cow_tag: str
    type: CoverageType
    date: date
    bull_id: str | None = None
    bull_tag: str | None = None
    bulls: list[BullRef] = field(default_factory=list)
    confirmed_sire_id: str | None = None
    confirmed_sire_tag: str | None = None
    semen_code: str | None = None
    donor_cow_id: str | None = None
    donor_cow_tag: str | None = None
    technician: str | None = None
    notes: str | None = None
    pregnancy_result: PregnancyResult | None = None
    pregnancy_check_date: date | None = None
    expected_calving_date: date | None = None
    repasse: RepasseData | None = None

    @property
    def is_natural(self) -> bool:
        return self.type == CoverageType.NATURAL

    @property
    def is_ivf(self) -> bool:
        return self.type == CoverageType.IVF

    @classmethod
    def from_dict(cls, data: dict) -> CoverageRecord:
        result = data.get("pregnancyResult")
        repasse = data.get("repasse")
        return cls(
            id=data.get("id") or new_id("cov"),
            cow_id=data.get("cowId", ""),
            cow_tag=data.get("cowBrinco", ""),
            type=parse_enum(CoverageType, data.get("type"), CoverageType.NATURAL),
            date=parse_date(data.get("date")) or date.today(),
            bull_id=data.get("bullId") or None,
            bull_tag=data.get("bullBrinco") or None,
            bulls=[BullRef.from_dict(b) for b in data.get("bulls") or []],
            confirmed_sire_id=data.get("confirmedSireId") or None,
            confirmed_sire_tag=data.get("confirmedSireBrinco") or None,
            semen_code=data.get("semenCode") or None,
            donor_cow_id=data.get("donorCowId") or None,
            donor_cow_tag=data.get("donorCowBrinco") or None,
            technician=data.get("technician") or None,
            notes=data.get("notes") or None,
            pregnancy_result=parse_enum(PregnancyResult, result, PregnancyResult.PENDING) if result else None,
            pregnancy_check_date=parse_date(data.get("pregnancyCheckDate")),
            expected_calving_date=parse_date(data.get("expectedCalvingDate")),
            repasse=RepasseData.from_dict(repasse) if repasse else None,
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "id": self.id,
                "cowId": self.cow_id,
                "cowBrinco": self.cow_tag,
                "type": self.type.value,
                "date": self.date,
                "bullId": self.bull_id,
                "bullBrinco": self.bull_tag,
                "bulls": [b.to_dict() for b in self.bulls] or None,
                "confirmedSireId": self.confirmed_sire_id,
                "confirmedSireBrinco": self.confirmed_sire_tag,
                "semenCode": self.semen_code,
                "donorCowId": self.donor_cow_id,
                "donorCowBrinco": self.donor_cow_tag,
                "technician": self.technician,
                "notes": self.notes,
                "pregnancyResult": self.pregnancy_result.value if self.pregnancy_result else None,
                "pregnancyCheckDate": self.pregnancy_check_date,
                "expectedCalvingDate": self.expected_calving_date,
                "repasse": self.repasse.to_dict() if self.repasse else None,
            }
        )


@dataclass
class SeasonConfig:
    pregnancy_check_days: int = 60
    use_iatf: bool = False
    target_pregnancy_rate: float = 85

    @classmethod
    def from_dict(cls, data: dict | None) -> SeasonConfig:
        data = data or {}
        return cls(
            pregnancy_check_days=int(data.get("pregnancyCheckDays") or 60),
            use_iatf=bool(data.get("useIATF", False)),
            target_pregnancy_rate=float(data.get("targetPregnancyRate") or 85),
        )

    def to_dict(self) -> dict:
        return {
            "pregnancyCheckDays": self.pregnancy_check_days,
            "useIATF": self.use_iatf,
            "targetPregnancyRate": self.target_pregnancy_rate,
        }


@dataclass
class BreedingSeason:
    id: str
    name: str
    start_date: date
    end_date: date
    status: SeasonStatus = SeasonStatus.PLANNING
    exposed_cow_ids: list[str] = field(default_factory=list)
    coverage_records: list[CoverageRecord] = field(default_factory=list)
    bulls: list[SeasonBull] = field(default_factory=list)
    config: SeasonConfig = field(default_factory=SeasonConfig)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user_id: str | None = None

    def find_coverage(self, coverage_id: str) -> CoverageRecord | None:
        for coverage in self.coverage_records:
            if coverage.id == coverage_id:
                return coverage
        return None

    @classmethod
    def from_dict(cls, data: dict) -> BreedingSeason:
        start = parse_date(data.get("startDate")) or date.today()
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            start_date=start,
            end_date=parse_date(data.get("endDate")) or start,
            status=parse_enum(SeasonStatus, data.get("status"), SeasonStatus.PLANNING),
            exposed_cow_ids=list(data.get("exposedCowIds") or []),
            coverage_records=[CoverageRecord.from_dict(c) for c in data.get("coverageRecords") or []],
            bulls=[SeasonBull.from_dict(b) for b in data.get("bulls") or []],
            config=SeasonConfig.from_dict(data.get("config")),
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
            user_id=data.get("userId"),
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "id": self.id,
                "name": self.name,
                "startDate": self.start_date,
                "endDate": self.end_date,
                "status": self.status.value,
                "exposedCowIds": self.exposed_cow_ids,
                "coverageRecords": [c.to_dict() for c in self.coverage_records],
                "bulls": [b.to_dict() for b in self.bulls],
                "config": self.config.to_dict(),
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
                "userId": self.user_id,
            }
        )
