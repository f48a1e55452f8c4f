"""
Average daily gain (GMD, "ganho médio diário") from an animal's weighings.

GMD is the weight change divided by the days between two weighings, in
kg/day rounded to 3 decimals. Phase GMDs use the weighing types:
    Nascimento (birth) -> Desmame (weaning, ~7 months) -> Sobreano (yearling, ~18 months)
"""

from dataclasses import dataclass, replace
from datetime import date, timedelta

from herdbook.core.dates import DAYS_PER_MONTH
from herdbook.core.dates import age_in_months as _age_in_months
from herdbook.models import Animal, WeighingType, WeightEntry

# Window for the "recent" GMD
RECENT_DAYS = 30

# Target age (months) and accepted range for auto-classified weighings
WEANING_TARGET_MONTHS = 7
WEANING_RANGE_MONTHS = (5, 9)
YEARLING_TARGET_MONTHS = 18
YEARLING_RANGE_MONTHS = (12, 23)

# (minimum GMD, label), best first
GMD_CLASSES = [
    (1.5, "Excelente"),
    (1.0, "Bom"),
    (0.7, "Regular"),
    (0.4, "Abaixo"),
]


@dataclass
class GainMetrics:
    """GMD figures for one animal. Optional fields are None when not computable."""

    total: float
    days_tracked: int
    birth_to_weaning: float | None = None
    weaning_to_yearling: float | None = None
    last_30_days: float | None = None
    last_period: float | None = None
    last_period_days: int | None = None
    initial_weight: float | None = None
    final_weight: float | None = None
    days_since_last_weighing: int | None = None
    last_weighing_date: date | None = None
    estimated_weight_today: float | None = None


def gmd_between(initial_kg: float, final_kg: float, initial_date: date, final_date: date) -> float:
    """GMD between two weighings (0 when the dates don't move forward)."""
    days = (final_date - initial_date).days
    if days <= 0:
        return 0.0
    return round((final_kg - initial_kg) / days, 3)


def gmd_from_weighings(weighings: list[WeightEntry], today: date | None = None) -> GainMetrics:
    """Compute every GMD metric from a list of weighings (any order).

    The estimated weight today projects the last weighing forward with the
    last-period GMD (the current growth phase), falling back to the total GMD.
    """
    if len(weighings) < 2:
        return GainMetrics(total=0.0, days_tracked=0)

    today = today or date.today()
    ordered = sorted(weighings, key=lambda w: w.date)
    first, last = ordered[0], ordered[-1]

    days_total = (last.date - first.date).days
    total = round((last.weight_kg - first.weight_kg) / days_total, 3) if days_total > 0 else 0.0

    def first_of(kind: WeighingType) -> WeightEntry | None:
        return next((w for w in ordered if w.type == kind), None)

    birth = first_of(WeighingType.BIRTH)
    weaning = first_of(WeighingType.WEANING)
    yearling = first_of(WeighingType.YEARLING)

    metrics = GainMetrics(
        total=total,
        days_tracked=days_total,
        initial_weight=first.weight_kg,
        final_weight=last.weight_kg,
        last_weighing_date=last.date,
    )
    if birth and weaning:
        metrics.birth_to_weaning = gmd_between(birth.weight_kg, weaning.weight_kg, birth.date, weaning.date)
    if weaning and yearling:
        metrics.weaning_to_yearling = gmd_between(weaning.weight_kg, yearling.weight_kg, weaning.date, yearling.date)

    recent = [w for w in ordered if w.date >= today - timedelta(days=RECENT_DAYS)]
    if len(recent) >= 2:
        metrics.last_30_days = gmd_between(recent[0].weight_kg, recent[-1].weight_kg, recent[0].date, recent[-1].date)

    previous = ordered[-2]
    metrics.last_period_days = (last.date - previous.date).days
    if metrics.last_period_days > 0:
        metrics.last_period = gmd_between(previous.weight_kg, last.weight_kg, previous.date, last.date)

    metrics.days_since_last_weighing = max(0, (today - last.date).days)
    rate = metrics.last_period if metrics.last_period is not None else total
    metrics.estimated_weight_today = max(0.0, round(last.weight_kg + rate * metrics.days_since_last_weighing, 1))
    return metrics


def animal_gmd(animal: Animal, today: date | None = None) -> GainMetrics:
    return gmd_from_weighings(animal.weighings, today)


def average_gmd(animals: list[Animal], today: date | None = None) -> float:
    """Mean total GMD over animals that are gaining weight."""
    gains = [g for g in (animal_gmd(a, today).total for a in animals) if g > 0]
    if not gains:
        return 0.0
    return round(sum(gains) / len(gains), 3)


def rank_by_gmd(animals: list[Animal], today: date | None = None) -> list[tuple[int, Animal, GainMetrics]]:
    """Rank gaining animals by total GMD, best first (rank starts at 1)."""
    scored = [(a, animal_gmd(a, today)) for a in animals]
    gaining = sorted((s for s in scored if s[1].total > 0), key=lambda s: s[1].total, reverse=True)
    return [(i, animal, metrics) for i, (animal, metrics) in enumerate(gaining, start=1)]


def _closest(candidates: list[tuple[int, float]], target: float) -> int | None:
    best: tuple[int, float] | None = None
    for index, age in candidates:
        if best is None or abs(age - target) < abs(best[1] - target):
            best = (index, age)
    return best[0] if best else None


def auto_classify_weight_types(weighings: list[WeightEntry], birth_date: date | None) -> list[WeightEntry]:
    """Mark the weaning and yearling weighings from the animal's age.

    Existing Desmame/Sobreano marks are always recomputed; Nascimento and Peso
    de Virada are kept. Returns new entries and leaves the input untouched.
    """
    if birth_date is None or not weighings:
        return list(weighings)

    cleaned = [
        replace(w, type=WeighingType.NONE) if w.type in (WeighingType.WEANING, WeighingType.YEARLING) else replace(w)
        for w in weighings
    ]
    ages = [(w.date - birth_date).days / DAYS_PER_MONTH for w in cleaned]
    fixed = (WeighingType.BIRTH, WeighingType.TURN)

    low, high = WEANING_RANGE_MONTHS
    weaning = _closest(
        [(i, age) for i, age in enumerate(ages) if low <= age <= high and cleaned[i].type not in fixed],
        WEANING_TARGET_MONTHS,
    )
    if weaning is not None:
        cleaned[weaning].type = WeighingType.WEANING

    low, high = YEARLING_RANGE_MONTHS
    yearling = _closest(
        [
            (i, age)
            for i, age in enumerate(ages)
            if low <= age <= high and cleaned[i].type not in (*fixed, WeighingType.WEANING)
        ],
        YEARLING_TARGET_MONTHS,
    )
    if yearling is not None:
        cleaned[yearling].type = WeighingType.YEARLING

    return cleaned


def age_in_months(birth_date: date | None, today: date | None = None) -> int:
    """Age in whole 30.44-day months (0 without a birth date)."""
    return _age_in_months(birth_date, today)


def format_gmd(gmd: float | None) -> str:
    if gmd is None:
        return "N/A"
    return f"{gmd:.3f} kg/dia"


def classify_gmd(gmd: float) -> str:
    """Performance label for a GMD value."""
    for threshold, label in GMD_CLASSES:
        if gmd >= threshold:
            return label
    return "Crítico"
