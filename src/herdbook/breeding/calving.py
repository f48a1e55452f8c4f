"""
Calving and abortion verification.

Pregnancy status of a cow comes from two sources, in priority order:
1. A positive coverage in an active or finished breeding season
2. The last manual entry in the cow's pregnancy history, unless an abortion
   was recorded on or after it

verify_calvings() then checks each season pregnancy against the herd: a calf
registered to the cow (or to the donor, for IVF) and born near the expected
date confirms the calving; a recorded abortion ends the pregnancy.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from herdbook.breeding.season import calculate_expected_calving_date
from herdbook.core.config import settings
from herdbook.core.dates import calendar_months_between
from herdbook.models import Animal, BreedingSeason, CoverageRecord, CoverageType, PregnancyResult, SeasonStatus

logger = logging.getLogger(__name__)

# Plausible range between consecutive calvings (days)
MIN_CALVING_INTERVAL = 200
MAX_CALVING_INTERVAL = 730

# Plausible age at first calving (months)
MIN_FIRST_CALVING_MONTHS = 18
MAX_FIRST_CALVING_MONTHS = 48


class PregnancySource(Enum):
    BREEDING_SEASON = "breeding_season"
    MANUAL = "manual"
    NONE = "none"


class CalvingStatus(Enum):
    CALVED = "calved"
    ABORTED = "aborted"
    OVERDUE = "overdue"
    AWAITING = "awaiting"


@dataclass
class PregnancyCheck:
    is_pregnant: bool
    source: PregnancySource
    expected_calving_date: date | None = None


@dataclass
class CalvingVerification:
    cow_id: str
    cow_tag: str
    coverage_id: str
    expected_date: date
    status: CalvingStatus
    is_repasse: bool = False
    calf_id: str | None = None
    calf_tag: str | None = None
    event_date: date | None = None  # calf birth or abortion date


def _key(value: str | None) -> str:
    return (value or "").lower().strip()


# =============================================================================
# Pregnancy Status
# =============================================================================


def check_pregnancy(animal: Animal, seasons: list[BreedingSeason]) -> PregnancyCheck:
    """Whether a cow is pregnant, and where that information comes from."""
    for season in seasons:
        if season.status not in (SeasonStatus.ACTIVE, SeasonStatus.FINISHED):
            continue
        for coverage in season.coverage_records:
            if coverage.cow_id == animal.id and coverage.pregnancy_result == PregnancyResult.POSITIVE:
                return PregnancyCheck(True, PregnancySource.BREEDING_SEASON, coverage.expected_calving_date)

    if animal.pregnancies:
        last = animal.pregnancies[-1]
        aborted_after = any(ab.date >= last.date for ab in animal.abortions)
        if not aborted_after:
            return PregnancyCheck(True, PregnancySource.MANUAL, calculate_expected_calving_date(last.date))

    return PregnancyCheck(False, PregnancySource.NONE)


def unified_progeny(cow: Animal, animals: list[Animal]) -> list[Animal]:
    """Calves of a cow from her progeny history plus every animal naming her as dam.

    Dam references match by id, or by tag/name case-insensitively. IVF calves
    also count for their genetic dam (the donor).
    """
    by_tag = {_key(a.tag): a for a in animals}
    names = {k for k in (_key(cow.tag), _key(cow.name)) if k}
    seen: set[str] = set()
    result: list[Animal] = []

    def add(calf: Animal) -> None:
        key = _key(calf.tag)
        if key not in seen:
            seen.add(key)
            result.append(calf)

    for record in cow.progeny:
        calf = by_tag.get(_key(record.offspring_tag))
        if calf is not None:
            add(calf)

    for animal in animals:
        if animal.id == cow.id:
            continue
        if animal.dam_id and animal.dam_id == cow.id:
            add(animal)
        elif animal.dam_name and _key(animal.dam_name) in names:
            add(animal)
        elif animal.is_ivf and _key(animal.biological_dam_name) in names:
            add(animal)

    return result


def calving_intervals(cow: Animal, animals: list[Animal]) -> list[int]:
    """Days between consecutive calvings, skipping implausible gaps."""
    births = sorted(c.birth_date for c in unified_progeny(cow, animals) if c.birth_date)
    intervals = []
    for previous, current in zip(births, births[1:]):
        days = (current - previous).days
        if MIN_CALVING_INTERVAL < days < MAX_CALVING_INTERVAL:
            intervals.append(days)
    return intervals


def first_calving_age_months(cow: Animal, animals: list[Animal]) -> int | None:
    """Cow's age at her first calving, or None when unknown or implausible."""
    if cow.birth_date is None:
        return None
    births = sorted(c.birth_date for c in unified_progeny(cow, animals) if c.birth_date)
    if not births:
        return None
    months = calendar_months_between(cow.birth_date, births[0])
    if months < MIN_FIRST_CALVING_MONTHS or months > MAX_FIRST_CALVING_MONTHS:
        return None
    return months


# =============================================================================
# Calving Verification
# =============================================================================


def _season_pregnancies(season: BreedingSeason) -> list[tuple[CoverageRecord, date, date, bool]]:
    """(coverage, conception window start, expected calving, is_repasse) for each pregnancy."""
    result = []
    for c in season.coverage_records:
        if c.pregnancy_result == PregnancyResult.POSITIVE:
            expected = c.expected_calving_date or calculate_expected_calving_date(c.date)
            result.append((c, c.date, expected, False))
        elif c.repasse and c.repasse.enabled and c.repasse.diagnosis_result == PregnancyResult.POSITIVE:
            start = c.repasse.start_date or season.start_date
            result.append((c, start, calculate_expected_calving_date(start), True))
    return result


def _find_calf(
    coverage: CoverageRecord,
    cow: Animal | None,
    animals: list[Animal],
    expected: date,
    tolerance: timedelta,
) -> Animal | None:
    candidates: list[Animal] = []
    if cow is not None:
        candidates.extend(unified_progeny(cow, animals))
    if coverage.type == CoverageType.IVF and coverage.donor_cow_tag:
        donor = _key(coverage.donor_cow_tag)
        candidates.extend(a for a in animals if a.is_ivf and _key(a.biological_dam_name) == donor)

    for calf in candidates:
        if calf.birth_date and abs(calf.birth_date - expected) <= tolerance:
            return calf
    return None


def verify_calvings(
    season: BreedingSeason,
    animals: list[Animal],
    today: date | None = None,
    tolerance_days: int | None = None,
) -> list[CalvingVerification]:
    """Classify each pregnancy of a season as calved, aborted, overdue or awaiting.

    Args:
        season: Breeding season to verify
        animals: The whole herd (calves are looked up here)
        today: Reference date (defaults to today)
        tolerance_days: Days either side of the expected date that still match
            (defaults to settings.calving_tolerance_days)

    Returns:
        One entry per pregnancy, sorted by expected date
    """
    today = today or date.today()
    tolerance = timedelta(days=settings.calving_tolerance_days if tolerance_days is None else tolerance_days)
    by_id = {a.id: a for a in animals}
    results: list[CalvingVerification] = []

    for coverage, conceived, expected, is_repasse in _season_pregnancies(season):
        cow = by_id.get(coverage.cow_id)
        entry = CalvingVerification(
            cow_id=coverage.cow_id,
            cow_tag=coverage.cow_tag,
            coverage_id=coverage.id,
            expected_date=expected,
            status=CalvingStatus.AWAITING,
            is_repasse=is_repasse,
        )

        calf = _find_calf(coverage, cow, animals, expected, tolerance)
        abortion = None
        if cow is not None:
            window = [ab for ab in cow.abortions if conceived <= ab.date <= expected + tolerance]
            abortion = min(window, key=lambda ab: ab.date) if window else None

        # A calf born in the window outranks a recorded abortion
        if calf is not None:
            entry.status = CalvingStatus.CALVED
            entry.calf_id, entry.calf_tag, entry.event_date = calf.id, calf.tag, calf.birth_date
        elif abortion is not None:
            entry.status = CalvingStatus.ABORTED
            entry.event_date = abortion.date
        elif today > expected + tolerance:
            entry.status = CalvingStatus.OVERDUE

        results.append(entry)

    overdue = sum(1 for r in results if r.status == CalvingStatus.OVERDUE)
    if overdue:
        logger.warning("%s: %d pregnancies past the expected calving date", season.name, overdue)
    return sorted(results, key=lambda r: r.expected_date)
