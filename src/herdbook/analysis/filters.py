"""
Herd filtering, sorting and summary statistics.

The free-text search understands two operators (Portuguese, as typed by farm
staff): "a ou b" matches either term, "a e b" requires both. Terms are
matched case-insensitively as substrings of the chosen search fields.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from herdbook.analysis.gmd import average_gmd
from herdbook.core.dates import calendar_months_between
from herdbook.models import Animal, AnimalStatus, ManagementArea, Sex

SearchField = Literal["brinco", "nome", "paiNome", "maeNome", "medicamento", "motivo"]
SortField = Literal["brinco", "nome", "pesoKg", "dataNascimento", "raca", "status"]

# selected_area_id value meaning "animals without an area"
NO_AREA = "sem-area"

MONTH_ABBR = ["jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez"]


@dataclass
class AdvancedFilters:
    """Every filter is off when empty/None."""

    search_term: str = ""
    search_fields: list[SearchField] = field(default_factory=lambda: ["brinco", "nome"])
    medication: str = ""
    reason: str = ""
    status: str = ""
    sex: str = ""
    breed: str = ""
    area_id: str = ""
    weight_min: float | None = None
    weight_max: float | None = None
    age_min_months: int | None = None
    age_max_months: int | None = None
    sort_field: SortField = "brinco"
    sort_descending: bool = False


def _age_months(animal: Animal, today: date) -> int | None:
    if animal.birth_date is None:
        return None
    return max(0, calendar_months_between(animal.birth_date, today))


# =============================================================================
# Search
# =============================================================================


def _field_matches(animal: Animal, search_field: str, term: str) -> bool:
    if search_field == "brinco":
        return term in animal.tag.lower()
    if search_field == "nome":
        return term in (animal.name or "").lower()
    if search_field == "paiNome":
        return term in (animal.sire_name or "").lower()
    if search_field == "maeNome":
        return term in (animal.dam_name or "").lower()
    if search_field == "medicamento":
        return any(term in m.medication.lower() for m in animal.medications)
    if search_field == "motivo":
        return any(term in m.reason.lower() for m in animal.medications)
    return False


def matches_search(animal: Animal, search_term: str, search_fields: list[SearchField]) -> bool:
    """Apply the free-text search (" ou " = any term, " e " = all terms)."""
    text = search_term.lower().strip()
    if not text:
        return True

    def hit(term: str) -> bool:
        return any(_field_matches(animal, f, term) for f in search_fields)

    if " ou " in text:
        return any(hit(t) for t in (t.strip() for t in text.split(" ou ")) if t)
    if " e " in text:
        return all(hit(t) for t in (t.strip() for t in text.split(" e ")) if t)
    return hit(text)


# =============================================================================
# Filtering and Sorting
# =============================================================================


def _passes(animal: Animal, filters: AdvancedFilters, today: date) -> bool:
    if not matches_search(animal, filters.search_term, filters.search_fields):
        return False
    if filters.medication and not any(m.medication == filters.medication for m in animal.medications):
        return False
    if filters.reason and not any(m.reason == filters.reason for m in animal.medications):
        return False
    if filters.status and animal.status.value != filters.status:
        return False
    if filters.sex and animal.sex.value != filters.sex:
        return False
    if filters.breed and animal.breed.value != filters.breed:
        return False
    if filters.area_id:
        if filters.area_id == NO_AREA:
            if animal.management_area_id:
                return False
        elif animal.management_area_id != filters.area_id:
            return False
    if filters.weight_min is not None and animal.weight_kg < filters.weight_min:
        return False
    if filters.weight_max is not None and animal.weight_kg > filters.weight_max:
        return False

    # Animals without a birth date are never excluded by age
    age = _age_months(animal, today)
    if age is not None:
        if filters.age_min_months is not None and age < filters.age_min_months:
            return False
        if filters.age_max_months is not None and age > filters.age_max_months:
            return False
    return True


def _sort_key(sort_field: SortField):
    if sort_field == "nome":
        return lambda a: (a.name or "").casefold()
    if sort_field == "pesoKg":
        return lambda a: a.weight_kg
    if sort_field == "dataNascimento":
        return lambda a: a.birth_date or date.min
    if sort_field == "raca":
        return lambda a: a.breed.value.casefold()
    if sort_field == "status":
        return lambda a: a.status.value.casefold()
    return lambda a: a.tag.casefold()


def sort_animals(animals: list[Animal], sort_field: SortField = "brinco", descending: bool = False) -> list[Animal]:
    return sorted(animals, key=_sort_key(sort_field), reverse=descending)


def filter_animals(animals: list[Animal], filters: AdvancedFilters, today: date | None = None) -> list[Animal]:
    """Apply every active filter, then sort."""
    today = today or date.today()
    result = [a for a in animals if _passes(a, filters, today)]
    return sort_animals(result, filters.sort_field, filters.sort_descending)


def active_filter_count(filters: AdvancedFilters) -> int:
    """How many filters are on (a range counts once)."""
    flags = [
        filters.search_term,
        filters.medication,
        filters.reason,
        filters.status,
        filters.sex,
        filters.breed,
        filters.area_id,
        filters.weight_min is not None or filters.weight_max is not None,
        filters.age_min_months is not None or filters.age_max_months is not None,
    ]
    return sum(1 for flag in flags if flag)


def all_medications(animals: list[Animal]) -> list[str]:
    return sorted({m.medication for a in animals for m in a.medications})


def all_reasons(animals: list[Animal]) -> list[str]:
    return sorted({m.reason for a in animals for m in a.medications})


# =============================================================================
# Statistics
# =============================================================================


@dataclass
class HerdStats:
    total_animals: int
    active_count: int
    total_weight: float
    average_weight: float
    male_count: int
    female_count: int
    breed_distribution: dict[str, int]
    status_distribution: dict[str, int]
    age_distribution: dict[str, int]  # bezerros / jovens / novilhos / adultos
    weight_range_distribution: dict[str, int]  # leve / medio / pesado
    area_distribution: dict[str, int]
    total_treatments: int
    animals_with_treatments: int
    most_used_medication: str
    monthly_average_weight: list[tuple[str, float]]
    average_gmd: float
    total_weighings: int
    recent_change: float
    predicted_next_month: float


def _age_bucket(age: int | None) -> str:
    # Unknown ages fall through to adults
    if age is not None:
        if age <= 6:
            return "bezerros"
        if age <= 12:
            return "jovens"
        if age <= 24:
            return "novilhos"
    return "adultos"


def _weight_bucket(weight_kg: float) -> str:
    if weight_kg < 200:
        return "leve"
    if weight_kg <= 400:
        return "medio"
    return "pesado"


def calculate_stats(
    animals: list[Animal],
    areas: list[ManagementArea] | None = None,
    today: date | None = None,
) -> HerdStats:
    """Summary statistics over an (already filtered) list of animals.

    Herd composition figures count active animals only; treatment figures and
    the total count cover every animal passed in.
    """
    today = today or date.today()
    area_names = {a.id: a.name for a in areas or []}
    active = [a for a in animals if a.status == AnimalStatus.ACTIVE]
    total_weight = sum(a.weight_kg for a in active)

    age_distribution = {"bezerros": 0, "jovens": 0, "novilhos": 0, "adultos": 0}
    weight_distribution = {"leve": 0, "medio": 0, "pesado": 0}
    area_distribution: Counter[str] = Counter()
    for a in active:
        age_distribution[_age_bucket(_age_months(a, today))] += 1
        weight_distribution[_weight_bucket(a.weight_kg)] += 1
        if a.management_area_id:
            area_distribution[area_names.get(a.management_area_id, "Área Desconhecida")] += 1
        else:
            area_distribution["Sem Área"] += 1

    medication_counts: Counter[str] = Counter()
    treated = 0
    for a in animals:
        if a.medications:
            treated += 1
            medication_counts.update(m.medication for m in a.medications)

    # Monthly average of every weighing of the active herd
    monthly: dict[tuple[int, int], list[float]] = {}
    weighings = [w for a in active for w in a.weighings]
    for w in weighings:
        monthly.setdefault((w.date.year, w.date.month), []).append(w.weight_kg)
    monthly_average = [
        (f"{MONTH_ABBR[month - 1]}/{year % 100:02d}", round(sum(values) / len(values), 1))
        for (year, month), values in sorted(monthly.items())
    ]

    gmd = average_gmd(active, today)
    fallback = round(total_weight / len(active), 1) if active else 0.0
    latest = monthly_average[-1][1] if monthly_average else fallback
    previous = monthly_average[-2][1] if len(monthly_average) > 1 else latest

    return HerdStats(
        total_animals=len(animals),
        active_count=len(active),
        total_weight=total_weight,
        average_weight=total_weight / len(active) if active else 0.0,
        male_count=sum(1 for a in active if a.sex == Sex.MALE),
        female_count=sum(1 for a in active if a.sex == Sex.FEMALE),
        breed_distribution=dict(Counter(a.breed.value for a in active)),
        status_distribution=dict(Counter(a.status.value for a in animals)),
        age_distribution=age_distribution,
        weight_range_distribution=weight_distribution,
        area_distribution=dict(area_distribution),
        total_treatments=sum(medication_counts.values()),
        animals_with_treatments=treated,
        most_used_medication=medication_counts.most_common(1)[0][0] if medication_counts else "Nenhum",
        monthly_average_weight=monthly_average,
        average_gmd=gmd,
        total_weighings=len(weighings),
        recent_change=round(latest - previous, 1),
        predicted_next_month=round(latest + gmd * 30, 1),
    )
