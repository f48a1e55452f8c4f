"""
Breeding season service ("estação de monta").

Pure functions over BreedingSeason records:
- Exposed cows and season bulls
- Coverage records (natural mating, AI, IATF, IVF/embryo transfer)
- Pregnancy diagnosis and the natural-mating repasse after a failed AI
- Two-bull paternity, which stays pending until a sire is confirmed
- Reproductive efficiency metrics and expected calvings (283-day gestation)

Nothing here talks to Firestore; herdbook.data.seasons persists the results.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta

from herdbook.core.config import settings
from herdbook.core.dates import add_gestation, calendar_months_between
from herdbook.models import (
    Animal,
    AnimalStatus,
    BreedingSeason,
    BullRef,
    CoverageRecord,
    CoverageType,
    PregnancyResult,
    PregnancyType,
    RepasseData,
    SeasonBull,
    Sex,
)

UNKNOWN_BULL = "Desconhecido"

PREGNANCY_TYPE_MAP: dict[CoverageType, PregnancyType] = {
    CoverageType.NATURAL: PregnancyType.NATURAL,
    CoverageType.AI: PregnancyType.ARTIFICIAL_INSEMINATION,
    CoverageType.FTAI: PregnancyType.ARTIFICIAL_INSEMINATION,
    CoverageType.IVF: PregnancyType.EMBRYO_TRANSFER,
}


# =============================================================================
# Helpers
# =============================================================================


def calculate_expected_calving_date(coverage_date: date) -> date:
    """Expected calving date: coverage date + 283 days of gestation."""
    return add_gestation(coverage_date)


def calculate_gestation_days(coverage_date: date, today: date | None = None) -> int:
    """Days elapsed since the coverage."""
    today = today or date.today()
    return (today - coverage_date).days


def get_repasse_bulls(repasse: RepasseData) -> list[BullRef]:
    """Bulls of a repasse, falling back to the legacy single-bull fields."""
    if repasse.bulls:
        return repasse.bulls
    if repasse.bull_id:
        return [BullRef(bull_id=repasse.bull_id, bull_tag=repasse.bull_tag or UNKNOWN_BULL)]
    return []


def get_coverage_bulls(coverage: CoverageRecord) -> list[BullRef]:
    """Bulls of a natural coverage, falling back to the legacy single-bull fields."""
    if coverage.bulls:
        return coverage.bulls
    if coverage.bull_id:
        return [BullRef(bull_id=coverage.bull_id, bull_tag=coverage.bull_tag or UNKNOWN_BULL)]
    return []


def _bull_label(bulls: list[BullRef], confirmed_id: str | None, confirmed_tag: str | None) -> str:
    if confirmed_id:
        return confirmed_tag or "Confirmado"
    if not bulls:
        return "Sem touro"
    return " / ".join(b.bull_tag for b in bulls)


def get_coverage_bull_label(coverage: CoverageRecord) -> str:
    """Display label: the confirmed sire, or every candidate bull."""
    return _bull_label(get_coverage_bulls(coverage), coverage.confirmed_sire_id, coverage.confirmed_sire_tag)


def get_repasse_bull_label(repasse: RepasseData) -> str:
    return _bull_label(get_repasse_bulls(repasse), repasse.confirmed_sire_id, repasse.confirmed_sire_tag)


def has_pending_coverage_paternity(coverage: CoverageRecord) -> bool:
    """A pregnant natural coverage with two bulls and no confirmed sire."""
    if coverage.type != CoverageType.NATURAL:
        return False
    if coverage.pregnancy_result != PregnancyResult.POSITIVE:
        return False
    return len(get_coverage_bulls(coverage)) > 1 and not coverage.confirmed_sire_id


def has_pending_paternity(repasse: RepasseData) -> bool:
    """A pregnant repasse with two bulls and no confirmed sire."""
    if not repasse.enabled or repasse.diagnosis_result != PregnancyResult.POSITIVE:
        return False
    return len(get_repasse_bulls(repasse)) > 1 and not repasse.confirmed_sire_id


def get_coverage_sire_name(coverage: CoverageRecord) -> str:
    """Sire name written into the cow's pregnancy history.

    IVF crosses read "DonorXSemen" (e.g. "5311XLinaje"); two-bull natural
    coverages read "A / B (pendente)" until paternity is confirmed.
    """
    if coverage.type == CoverageType.IVF and coverage.donor_cow_tag and coverage.semen_code:
        return f"{coverage.donor_cow_tag}X{coverage.semen_code}"
    if coverage.type == CoverageType.NATURAL and coverage.confirmed_sire_id:
        return coverage.confirmed_sire_tag or "Confirmado"
    if coverage.type == CoverageType.NATURAL and coverage.bulls:
        if len(coverage.bulls) == 1:
            return coverage.bulls[0].bull_tag
        return " / ".join(b.bull_tag for b in coverage.bulls) + " (pendente)"
    return coverage.bull_tag or coverage.semen_code or UNKNOWN_BULL


def _round1(value: float) -> float:
    # Half-up rounding to one decimal
    return math.floor(value * 10 + 0.5) / 10


# =============================================================================
# Season Metrics
# =============================================================================


@dataclass
class BullStats:
    bull_id: str
    bull_tag: str
    count: int = 0
    pregnancies: int = 0


@dataclass
class PregnancyCheckDue:
    cow_id: str
    cow_tag: str
    coverage_id: str
    due_date: date
    is_repasse: bool


@dataclass
class BreedingMetrics:
    total_exposed: int
    total_covered: int
    total_pregnant: int
    total_empty: int
    total_pending: int
    pregnancy_rate: float  # first service only, % of exposed
    service_rate: float
    conception_rate: float
    overall_pregnancy_rate: float  # including repasse
    coverages_by_type: dict[CoverageType, int]
    coverages_by_bull: list[BullStats]
    daily_coverages: list[tuple[str, int]]
    pregnancy_checks_due: list[PregnancyCheckDue] = field(default_factory=list)
    repasse_count: int = 0
    repasse_pregnant: int = 0


def _credit_bulls(
    stats: dict[str, BullStats],
    bulls: list[BullRef],
    pregnant: bool,
    confirmed_id: str | None,
) -> None:
    """Count a natural mating for each bull; credit the pregnancy only when the sire is known."""
    for bull in bulls:
        entry = stats.get(bull.bull_id)
        if entry is None:
            entry = stats[bull.bull_id] = BullStats(bull.bull_id, bull.bull_tag)
        entry.count += 1
        if not pregnant:
            continue
        if confirmed_id:
            if confirmed_id == bull.bull_id:
                entry.pregnancies += 1
        elif len(bulls) == 1:
            entry.pregnancies += 1


def calculate_breeding_metrics(season: BreedingSeason, today: date | None = None) -> BreedingMetrics:
    """Reproductive efficiency metrics for one season.

    A cow pregnant at first service never counts toward the repasse. A
    repasse outcome replaces the (negative) main result for that cow.

    Args:
        season: The breeding season
        today: Reference date for pregnancy checks due (defaults to today)

    Returns:
        BreedingMetrics with rates rounded to one decimal
    """
    coverages = season.coverage_records
    total_exposed = len(season.exposed_cow_ids)
    total_covered = len({c.cow_id for c in coverages})

    pregnant: set[str] = set()
    empty: set[str] = set()
    pending: set[str] = set()
    first_service_pregnant: set[str] = set()
    repasse_count = 0
    repasse_pregnant = 0

    for c in coverages:
        if c.pregnancy_result == PregnancyResult.POSITIVE:
            pregnant.add(c.cow_id)
            first_service_pregnant.add(c.cow_id)
            continue

        if c.repasse and c.repasse.enabled:
            repasse_count += 1
            if c.repasse.diagnosis_result == PregnancyResult.POSITIVE:
                repasse_pregnant += 1
                pregnant.add(c.cow_id)
            elif c.repasse.diagnosis_result == PregnancyResult.NEGATIVE:
                empty.add(c.cow_id)
            else:
                pending.add(c.cow_id)
            continue

        if c.pregnancy_result == PregnancyResult.NEGATIVE:
            empty.add(c.cow_id)
        else:
            pending.add(c.cow_id)

    def pct(part: int, whole: int) -> float:
        return part / whole * 100 if whole > 0 else 0.0

    by_type = {t: 0 for t in CoverageType}
    for c in coverages:
        by_type[c.type] += 1

    # Per-bull counts, repasse bulls included
    bull_stats: dict[str, BullStats] = {}
    for c in coverages:
        main_bulls = get_coverage_bulls(c)
        if main_bulls and c.type == CoverageType.NATURAL:
            _credit_bulls(
                bull_stats,
                main_bulls,
                c.pregnancy_result == PregnancyResult.POSITIVE,
                c.confirmed_sire_id,
            )
        else:
            # AI/IATF/IVF, or a legacy natural record without bulls
            key = c.bull_id or c.semen_code or "desconhecido"
            entry = bull_stats.get(key)
            if entry is None:
                entry = bull_stats[key] = BullStats(c.bull_id or "", c.bull_tag or c.semen_code or UNKNOWN_BULL)
            entry.count += 1
            if c.pregnancy_result == PregnancyResult.POSITIVE:
                entry.pregnancies += 1

        if c.repasse and c.repasse.enabled:
            _credit_bulls(
                bull_stats,
                get_repasse_bulls(c.repasse),
                c.repasse.diagnosis_result == PregnancyResult.POSITIVE,
                c.repasse.confirmed_sire_id,
            )

    by_bull = sorted(bull_stats.values(), key=lambda b: b.count, reverse=True)

    daily: dict[str, int] = defaultdict(int)
    for c in coverages:
        daily[c.date.isoformat()] += 1

    # Diagnoses due, main coverage and repasse
    today = today or date.today()
    check_days = season.config.pregnancy_check_days or settings.pregnancy_check_days
    checks_due: list[PregnancyCheckDue] = []
    for c in coverages:
        if c.pregnancy_result in (None, PregnancyResult.PENDING):
            if calculate_gestation_days(c.date, today) >= check_days:
                checks_due.append(
                    PregnancyCheckDue(c.cow_id, c.cow_tag, c.id, c.date + timedelta(days=check_days), False)
                )
        if c.repasse and c.repasse.enabled and c.repasse.diagnosis_result in (None, PregnancyResult.PENDING):
            start = c.repasse.start_date or season.start_date
            if calculate_gestation_days(start, today) >= check_days:
                checks_due.append(
                    PregnancyCheckDue(c.cow_id, c.cow_tag, c.id, start + timedelta(days=check_days), True)
                )

    return BreedingMetrics(
        total_exposed=total_exposed,
        total_covered=total_covered,
        total_pregnant=len(pregnant),
        total_empty=len(empty),
        total_pending=len(pending),
        pregnancy_rate=_round1(pct(len(first_service_pregnant), total_exposed)),
        service_rate=_round1(pct(total_covered, total_exposed)),
        conception_rate=_round1(pct(len(pregnant), total_covered)),
        overall_pregnancy_rate=_round1(pct(len(pregnant), total_exposed)),
        coverages_by_type=by_type,
        coverages_by_bull=by_bull,
        daily_coverages=sorted(daily.items()),
        pregnancy_checks_due=checks_due,
        repasse_count=repasse_count,
        repasse_pregnant=repasse_pregnant,
    )


# =============================================================================
# Local Transformations
# =============================================================================
# These return a new season; herdbook.data.seasons saves it.


def _touched(season: BreedingSeason, **changes) -> BreedingSeason:
    return replace(season, updated_at=datetime.now(), **changes)


def add_exposed_cows(season: BreedingSeason, cow_ids: list[str]) -> BreedingSeason:
    """Expose cows to the season, ignoring ones already exposed."""
    existing = set(season.exposed_cow_ids)
    new_ids: list[str] = []
    for cow_id in cow_ids:
        if cow_id not in existing:
            existing.add(cow_id)
            new_ids.append(cow_id)
    return _touched(season, exposed_cow_ids=[*season.exposed_cow_ids, *new_ids])


def remove_exposed_cows(season: BreedingSeason, cow_ids: list[str]) -> BreedingSeason:
    to_remove = set(cow_ids)
    return _touched(season, exposed_cow_ids=[c for c in season.exposed_cow_ids if c not in to_remove])


def add_bull(season: BreedingSeason, bull: SeasonBull) -> BreedingSeason:
    """Add a bull (or semen sire) to the season; no-op if already listed."""
    if any(b.id == bull.id for b in season.bulls):
        return season
    return _touched(season, bulls=[*season.bulls, bull])


# =============================================================================
# Herd Selection
# =============================================================================


def _is_of_age(animal: Animal, min_age_months: int, today: date) -> bool:
    # Older records often lack a birth date; those animals are treated as adults
    if animal.birth_date is None:
        return True
    return calendar_months_between(animal.birth_date, today) >= min_age_months


def get_eligible_cows(
    animals: list[Animal],
    min_age_months: int | None = None,
    today: date | None = None,
) -> list[Animal]:
    """Active females old enough to be exposed (default 18 months)."""
    min_age = settings.breeding_min_age_months if min_age_months is None else min_age_months
    today = today or date.today()
    return [
        a
        for a in animals
        if a.sex == Sex.FEMALE and a.status == AnimalStatus.ACTIVE and _is_of_age(a, min_age, today)
    ]


def get_available_bulls(
    animals: list[Animal],
    min_age_months: int | None = None,
    today: date | None = None,
) -> list[Animal]:
    """Active males old enough to work a season."""
    min_age = settings.breeding_min_age_months if min_age_months is None else min_age_months
    today = today or date.today()
    return [
        a
        for a in animals
        if a.sex == Sex.MALE and a.status == AnimalStatus.ACTIVE and _is_of_age(a, min_age, today)
    ]


def get_pending_paternity_records(season: BreedingSeason) -> list[CoverageRecord]:
    """Coverages whose pregnancy has two candidate sires and none confirmed."""
    return [
        c
        for c in season.coverage_records
        if has_pending_coverage_paternity(c) or (c.repasse is not None and has_pending_paternity(c.repasse))
    ]


def get_repasse_eligible_cows(season: BreedingSeason) -> list[CoverageRecord]:
    """AI/IATF/IVF coverages diagnosed empty that have no repasse yet."""
    return [
        c
        for c in season.coverage_records
        if c.type in (CoverageType.AI, CoverageType.FTAI, CoverageType.IVF)
        and c.pregnancy_result == PregnancyResult.NEGATIVE
        and not (c.repasse and c.repasse.enabled)
    ]


@dataclass
class ExpectedCalving:
    cow_id: str
    cow_tag: str
    expected_date: date
    bull_info: str
    is_ivf: bool = False
    donor_info: str | None = None
    is_repasse: bool = False


def get_expected_calvings(season: BreedingSeason) -> list[ExpectedCalving]:
    """Expected calvings from positive main coverages and positive repasses, by date."""
    results: list[ExpectedCalving] = []

    for c in season.coverage_records:
        if c.pregnancy_result == PregnancyResult.POSITIVE and c.expected_calving_date:
            results.append(
                ExpectedCalving(
                    cow_id=c.cow_id,
                    cow_tag=c.cow_tag,
                    expected_date=c.expected_calving_date,
                    bull_info=c.bull_tag or c.semen_code or UNKNOWN_BULL,
                    is_ivf=c.type == CoverageType.IVF,
                    donor_info=c.donor_cow_tag,
                )
            )
        if c.repasse and c.repasse.enabled and c.repasse.diagnosis_result == PregnancyResult.POSITIVE:
            start = c.repasse.start_date or season.start_date
            label = get_repasse_bull_label(c.repasse)
            if has_pending_paternity(c.repasse):
                label = f"{label} (paternidade pendente)"
            results.append(
                ExpectedCalving(
                    cow_id=c.cow_id,
                    cow_tag=c.cow_tag,
                    expected_date=calculate_expected_calving_date(start),
                    bull_info=label,
                    is_repasse=True,
                )
            )

    return sorted(results, key=lambda r: r.expected_date)
