"""Animal records and their history entries.

Documents in the `animals` collection keep the farm's original Portuguese
field names (brinco, pesoKg, historicoPesagens, ...). The dataclasses expose
English attribute names and convert at `from_dict` / `to_dict`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from herdbook.core.dates import parse_date
from herdbook.models.common import drop_none, new_id, parse_enum


class Breed(Enum):
    HEREFORD = "Hereford"
    BRAFORD = "Braford"
    HEREFORD_PO = "Hereford PO"
    OTHER = "Outros"


class Sex(Enum):
    MALE = "Macho"
    FEMALE = "Fêmea"


class AnimalStatus(Enum):
    ACTIVE = "Ativo"
    SOLD = "Vendido"
    DEAD = "Óbito"


class WeighingType(Enum):
    """Milestone a weighing represents (drives GMD phases)."""

    NONE = "Nenhum"
    BIRTH = "Nascimento"
    WEANING = "Desmame"
    YEARLING = "Sobreano"
    TURN = "Peso de Virada"


class PregnancyType(Enum):
    EMBRYO_TRANSFER = "Transferência de Embrião"
    ARTIFICIAL_INSEMINATION = "Inseminação Artificial"
    NATURAL = "Monta Natural"


# =============================================================================
# History Entries
# =============================================================================


@dataclass
class MedicationAdministration:
    """One treatment in the sanitary history."""

    id: str
    medication: str
    date: date
    dose: float
    unit: str  # "ml", "mg" or "dose"
    reason: str
    responsible: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> MedicationAdministration:
        return cls(
            id=data.get("id") or new_id("med"),
            medication=data.get("medicamento", ""),
            date=parse_date(data.get("dataAplicacao")) or date.today(),
            dose=float(data.get("dose") or 0),
            unit=data.get("unidade", "ml"),
            reason=data.get("motivo", ""),
            responsible=data.get("responsavel", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "medicamento": self.medication,
            "dataAplicacao": self.date,
            "dose": self.dose,
            "unidade": self.unit,
            "motivo": self.reason,
            "responsavel": self.responsible,
        }


@dataclass
class WeightEntry:
    id: str
    date: date
    weight_kg: float
    type: WeighingType = WeighingType.NONE

    @classmethod
    def from_dict(cls, data: dict) -> WeightEntry:
        return cls(
            id=data.get("id") or new_id("weight"),
            date=parse_date(data.get("date")) or date.today(),
            weight_kg=float(data.get("weightKg") or 0),
            type=parse_enum(WeighingType, data.get("type"), WeighingType.NONE),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "date": self.date, "weightKg": self.weight_kg, "type": self.type.value}


@dataclass
class PregnancyRecord:
    id: str
    date: date
    type: PregnancyType
    sire_name: str

    @classmethod
    def from_dict(cls, data: dict) -> PregnancyRecord:
        return cls(
            id=data.get("id") or new_id("preg"),
            date=parse_date(data.get("date")) or date.today(),
            type=parse_enum(PregnancyType, data.get("type"), PregnancyType.NATURAL),
            sire_name=data.get("sireName", ""),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "date": self.date, "type": self.type.value, "sireName": self.sire_name}


@dataclass
class AbortionRecord:
    id: str
    date: date

    @classmethod
    def from_dict(cls, data: dict) -> AbortionRecord:
        return cls(id=data.get("id") or new_id("abort"), date=parse_date(data.get("date")) or date.today())

    def to_dict(self) -> dict:
        return {"id": self.id, "date": self.date}


@dataclass
class OffspringWeightRecord:
    """A calf as seen from its dam's record (milestone weights copied over)."""

    id: str
    offspring_tag: str
    birth_weight_kg: float | None = None
    weaning_weight_kg: float | None = None
    yearling_weight_kg: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> OffspringWeightRecord:
        return cls(
            id=data.get("id") or new_id("prog"),
            offspring_tag=data.get("offspringBrinco", ""),
            birth_weight_kg=data.get("birthWeightKg"),
            weaning_weight_kg=data.get("weaningWeightKg"),
            yearling_weight_kg=data.get("yearlingWeightKg"),
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "id": self.id,
                "offspringBrinco": self.offspring_tag,
                "birthWeightKg": self.birth_weight_kg,
                "weaningWeightKg": self.weaning_weight_kg,
                "yearlingWeightKg": self.yearling_weight_kg,
            }
        )


# =============================================================================
# Animal
# =============================================================================


@dataclass
class Animal:
    """A head of cattle, identified on farm by its ear tag (brinco)."""

    id: str
    tag: str
    breed: Breed
    sex: Sex
    weight_kg: float
    status: AnimalStatus = AnimalStatus.ACTIVE
    name: str | None = None
    birth_date: date | None = None
    photos: list[str] = field(default_factory=list)
    medications: list[MedicationAdministration] = field(default_factory=list)
    weighings: list[WeightEntry] = field(default_factory=list)
    pregnancies: list[PregnancyRecord] = field(default_factory=list)
    abortions: list[AbortionRecord] = field(default_factory=list)
    progeny: list[OffspringWeightRecord] = field(default_factory=list)
    sire_name: str | None = None
    dam_name: str | None = None
    dam_breed: Breed | None = None
    dam_id: str | None = None
    # IVF calves: the recipient is maeNome, the genetic dam (donor) is here
    is_ivf: bool = False
    biological_dam_name: str | None = None
    management_area_id: str | None = None
    user_id: str | None = None

    @property
    def is_female(self) -> bool:
        return self.sex == Sex.FEMALE

    @property
    def is_active(self) -> bool:
        return self.status == AnimalStatus.ACTIVE

    @property
    def label(self) -> str:
        """Tag plus name when there is one, e.g. "A12 (Mimosa)"."""
        return f"{self.tag} ({self.name})" if self.name else self.tag

    @classmethod
    def from_dict(cls, data: dict) -> Animal:
        dam_breed = data.get("maeRaca")
        return cls(
            id=data["id"],
            tag=str(data.get("brinco", "")),
            breed=parse_enum(Breed, data.get("raca"), Breed.OTHER),
            sex=parse_enum(Sex, data.get("sexo"), Sex.FEMALE),
            weight_kg=float(data.get("pesoKg") or 0),
            status=parse_enum(AnimalStatus, data.get("status"), AnimalStatus.ACTIVE),
            name=data.get("nome") or None,
            birth_date=parse_date(data.get("dataNascimento")),
            photos=list(data.get("fotos") or []),
            medications=[MedicationAdministration.from_dict(m) for m in data.get("historicoSanitario") or []],
            weighings=[WeightEntry.from_dict(w) for w in data.get("historicoPesagens") or []],
            pregnancies=[PregnancyRecord.from_dict(p) for p in data.get("historicoPrenhez") or []],
            abortions=[AbortionRecord.from_dict(a) for a in data.get("historicoAborto") or []],
            progeny=[OffspringWeightRecord.from_dict(p) for p in data.get("historicoProgenie") or []],
            sire_name=data.get("paiNome") or None,
            dam_name=data.get("maeNome") or None,
            dam_breed=parse_enum(Breed, dam_breed, Breed.OTHER) if dam_breed else None,
            dam_id=data.get("maeId") or None,
            is_ivf=bool(data.get("isFIV", False)),
            biological_dam_name=data.get("maeBiologicaNome") or None,
            management_area_id=data.get("managementAreaId") or None,
            user_id=data.get("userId"),
        )

    def to_dict(self) -> dict:
        return drop_none(
            {
                "id": self.id,
                "brinco": self.tag,
                "nome": self.name,
                "raca": self.breed.value,
                "sexo": self.sex.value,
                "pesoKg": self.weight_kg,
                "dataNascimento": self.birth_date,
                "status": self.status.value,
                "fotos": self.photos,
                "historicoSanitario": [m.to_dict() for m in self.medications],
                "historicoPesagens": [w.to_dict() for w in self.weighings],
                "historicoPrenhez": [p.to_dict() for p in self.pregnancies],
                "historicoAborto": [a.to_dict() for a in self.abortions],
                "historicoProgenie": [p.to_dict() for p in self.progeny],
                "paiNome": self.sire_name,
                "maeNome": self.dam_name,
                "maeRaca": self.dam_breed.value if self.dam_breed else None,
                "maeId": self.dam_id,
                "isFIV": self.is_ivf or None,
                "maeBiologicaNome": self.biological_dam_name,
                "managementAreaId": self.management_area_id,
                "userId": self.user_id,
            }
        )
