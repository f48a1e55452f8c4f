"""
Coverage state transitions within a breeding season.

A coverage moves through:
    pending -> positive                   (expected calving = date + 283 days)
    pending -> negative                   (done, or...)
    pending/negative -> repasse           (AI/IATF/IVF only: natural mating over the season)
    repasse pending -> positive/negative
Two-bull pregnancies (natural or repasse) stay "paternity pending" until
confirm_paternity() picks the sire, usually after the calf is born.

Every function returns a new BreedingSeason and leaves the input untouched.
"""

import logging
from dataclasses import replace
from datetime import date, datetime

from herdbook.breeding.season import (
    PREGNANCY_TYPE_MAP,
    calculate_expected_calving_date,
    get_coverage_bulls,
    get_coverage_sire_name,
    get_repasse_bulls,
    has_pending_coverage_paternity,
    has_pending_paternity,
)
from herdbook.core.config import settings
from herdbook.core.dates import calendar_months_between
from herdbook.models import (
    Animal,
    AnimalStatus,
    BreedingSeason,
    BullRef,
    CoverageRecord,
    CoverageType,
    PregnancyRecord,
    PregnancyResult,
    RepasseData,
    Sex,
)
from herdbook.models.common import new_id

logger = logging.getLogger(__name__)

MAX_BULLS_PER_COVERAGE = 2
SEMEN_TYPES = (CoverageType.AI, CoverageType.FTAI, CoverageType.IVF)


class BreedingRuleError(ValueError):
    """A coverage operation that breaks a breeding season rule."""

    pass


# =============================================================================
# Helpers
# =============================================================================


def _bull_refs(bulls: list[Animal | BullRef]) -> list[BullRef]:
    refs = []
    for bull in bulls:
        if isinstance(bull, BullRef):
            refs.append(bull)
        else:
            refs.append(BullRef(bull_id=bull.id, bull_tag=bull.tag))
    return refs


def _check_bull_count(refs: list[BullRef], what: str) -> None:
    if not 1 <= len(refs) <= MAX_BULLS_PER_COVERAGE:
        raise BreedingRuleError(f"{what} needs 1 or 2 bulls, got {len(refs)}")
    if len({r.bull_id for r in refs}) != len(refs):
        raise BreedingRuleError(f"{what} lists the same bull twice")


def _get_coverage(season: BreedingSeason, coverage_id: str) -> CoverageRecord:
    coverage = season.find_coverage(coverage_id)
    if coverage is None:
        raise BreedingRuleError(f"Coverage {coverage_id} not found in season '{season.name}'")
    return coverage


def _with_coverage(season: BreedingSeason, coverage: CoverageRecord) -> BreedingSeason:
    records = [coverage if c.id == coverage.id else c for c in season.coverage_records]
    return replace(season, coverage_records=records, updated_at=datetime.now())


def _expected_calving(result: PregnancyResult | None, coverage_date: date) -> date | None:
    if result == PregnancyResult.POSITIVE:
        return calculate_expected_calving_date(coverage_date)
    return None


# =============================================================================
# Coverage Records
# =============================================================================


def new_coverage(
    season: BreedingSeason,
    cow: Animal,
    coverage_type: CoverageType,
    *,
    bulls: list[Animal | BullRef] | None = None,
    semen_code: str | None = None,
    donor: Animal | None = None,
    coverage_date: date | None = None,
    technician: str | None = None,
    notes: str | None = None,
    pregnancy_result: PregnancyResult | None = None,
    pregnancy_check_date: date | None = None,
    min_age_months: int | None = None,
    today: date | None = None,
) -> CoverageRecord:
    """Build a validated coverage record for a cow.

    Natural mating runs for the whole season, so its date is the season start
    regardless of `coverage_date`. Legacy `bull_id` / `bull_tag` point to the
    first bull.

    Raises:
        BreedingRuleError: If the cow can't be covered or bulls/semen are missing
    """
    today = today or date.today()
    min_age = settings.breeding_min_age_months if min_age_months is None else min_age_months

    if cow.sex != Sex.FEMALE or cow.status != AnimalStatus.ACTIVE:
        raise BreedingRuleError(f"Cow {cow.tag} is not an active female")
    if cow.birth_date and calendar_months_between(cow.birth_date, today) < min_age:
        raise BreedingRuleError(f"Cow {cow.tag} is younger than {min_age} months")
    if any(c.cow_id == cow.id for c in season.coverage_records):
        raise BreedingRuleError(f"Cow {cow.tag} already has a coverage in season '{season.name}'")

    refs: list[BullRef] = []
    if coverage_type == CoverageType.NATURAL:
        refs = _bull_refs(bulls or [])
        _check_bull_count(refs, f"Natural coverage of {cow.tag}")
        when = season.start_date
    else:
        if not semen_code:
            raise BreedingRuleError(f"{coverage_type.value.upper()} coverage of {cow.tag} needs a semen code")
        if coverage_type == CoverageType.IVF and donor is None:
            raise BreedingRuleError(f"IVF coverage of {cow.tag} needs a donor cow")
        when = coverage_date or today

    return CoverageRecord(
        id=new_id("cov"),
        cow_id=cow.id,
        cow_tag=cow.tag,
        type=coverage_type,
        date=when,
        bull_id=refs[0].bull_id if refs else None,
        bull_tag=refs[0].bull_tag if refs else None,
        bulls=refs,
        semen_code=semen_code if coverage_type in SEMEN_TYPES else None,
        donor_cow_id=donor.id if donor and coverage_type == CoverageType.IVF else None,
        donor_cow_tag=donor.tag if donor and coverage_type == CoverageType.IVF else None,
        technician=technician,
        notes=notes,
        pregnancy_result=pregnancy_result,
        pregnancy_check_date=pregnancy_check_date,
        expected_calving_date=_expected_calving(pregnancy_result, when),
    )


def add_coverage(season: BreedingSeason, coverage: CoverageRecord) -> BreedingSeason:
    """Append a coverage; a cow covered without being exposed is exposed too."""
    exposed = season.exposed_cow_ids
    if coverage.cow_id not in exposed:
        exposed = [*exposed, coverage.cow_id]
    logger.debug("Adding %s coverage for %s to %s", coverage.type.value, coverage.cow_tag, season.name)
    return replace(
        season,
        coverage_records=[*season.coverage_records, coverage],
        exposed_cow_ids=exposed,
        updated_at=datetime.now(),
    )


def update_coverage(season: BreedingSeason, coverage: CoverageRecord) -> BreedingSeason:
    """Replace a coverage (edited in full), keeping the expected calving date in sync."""
    _get_coverage(season, coverage.id)
    coverage = replace(
        coverage,
        expected_calving_date=_expected_calving(coverage.pregnancy_result, coverage.date),
    )
    return _with_coverage(season, coverage)


def delete_coverage(season: BreedingSeason, coverage_id: str) -> BreedingSeason:
    _get_coverage(season, coverage_id)
    return replace(
        season,
        coverage_records=[c for c in season.coverage_records if c.id != coverage_id],
        updated_at=datetime.now(),
    )


# =============================================================================
# Diagnosis and Repasse
# =============================================================================


def record_diagnosis(
    season: BreedingSeason,
    coverage_id: str,
    result: PregnancyResult,
    check_date: date | None = None,
) -> BreedingSeason:
    """Record the pregnancy diagnosis (DG) of the main coverage."""
    coverage = _get_coverage(season, coverage_id)
    updated = replace(
        coverage,
        pregnancy_result=result,
        pregnancy_check_date=check_date or date.today(),
        expected_calving_date=_expected_calving(result, coverage.date),
    )
    return _with_coverage(season, updated)


def start_repasse(
    season: BreedingSeason,
    coverage_id: str,
    bulls: list[Animal | BullRef],
    check_date: date | None = None,
    notes: str | None = None,
) -> BreedingSeason:
    """Send an empty cow to natural mating ("repasse") after a failed AI/IATF/IVF.

    A pending diagnosis is recorded as negative. The repasse window is the
    whole season and its own diagnosis starts pending.

    Raises:
        BreedingRuleError: For natural coverages, pregnant cows or an existing repasse
    """
    coverage = _get_coverage(season, coverage_id)
    if coverage.type not in SEMEN_TYPES:
        raise BreedingRuleError(f"Repasse only follows AI/IATF/IVF (cow {coverage.cow_tag})")
    if coverage.pregnancy_result == PregnancyResult.POSITIVE:
        raise BreedingRuleError(f"Cow {coverage.cow_tag} is pregnant; no repasse needed")
    if coverage.repasse and coverage.repasse.enabled:
        raise BreedingRuleError(f"Cow {coverage.cow_tag} already has a repasse")

    refs = _bull_refs(bulls)
    _check_bull_count(refs, f"Repasse of {coverage.cow_tag}")

    repasse = RepasseData(
        enabled=True,
        bulls=refs,
        bull_id=refs[0].bull_id,
        bull_tag=refs[0].bull_tag,
        start_date=season.start_date,
        end_date=season.end_date,
        notes=notes,
        diagnosis_result=PregnancyResult.PENDING,
    )
    updated = replace(
        coverage,
        pregnancy_result=PregnancyResult.NEGATIVE,
        pregnancy_check_date=coverage.pregnancy_check_date or check_date or date.today(),
        expected_calving_date=None,
        repasse=repasse,
    )
    logger.info("Repasse started for cow %s with %s", coverage.cow_tag, ", ".join(r.bull_tag for r in refs))
    return _with_coverage(season, updated)


def record_repasse_diagnosis(
    season: BreedingSeason,
    coverage_id: str,
    result: PregnancyResult,
    check_date: date | None = None,
) -> BreedingSeason:
    coverage = _get_coverage(season, coverage_id)
    if not (coverage.repasse and coverage.repasse.enabled):
        raise BreedingRuleError(f"Cow {coverage.cow_tag} has no repasse")
    repasse = replace(coverage.repasse, diagnosis_result=result, diagnosis_date=check_date or date.today())
    return _with_coverage(season, replace(coverage, repasse=repasse))


def confirm_paternity(season: BreedingSeason, coverage_id: str, bull_id: str) -> BreedingSeason:
    """Pick the sire of a two-bull pregnancy (main natural coverage or repasse).

    Raises:
        BreedingRuleError: If no paternity is pending or the bull isn't a candidate
    """
    coverage = _get_coverage(season, coverage_id)

    if has_pending_coverage_paternity(coverage):
        bull = next((b for b in get_coverage_bulls(coverage) if b.bull_id == bull_id), None)
        if bull is None:
            raise BreedingRuleError(f"Bull {bull_id} did not cover cow {coverage.cow_tag}")
        updated = replace(coverage, confirmed_sire_id=bull.bull_id, confirmed_sire_tag=bull.bull_tag)
    elif coverage.repasse and has_pending_paternity(coverage.repasse):
        bull = next((b for b in get_repasse_bulls(coverage.repasse) if b.bull_id == bull_id), None)
        if bull is None:
            raise BreedingRuleError(f"Bull {bull_id} was not in the repasse of cow {coverage.cow_tag}")
        repasse = replace(coverage.repasse, confirmed_sire_id=bull.bull_id, confirmed_sire_tag=bull.bull_tag)
        updated = replace(coverage, repasse=repasse)
    else:
        raise BreedingRuleError(f"No pending paternity for cow {coverage.cow_tag}")

    logger.info("Confirmed sire %s for cow %s", bull.bull_tag, coverage.cow_tag)
    return _with_coverage(season, updated)


def pregnancy_record_for(coverage: CoverageRecord, season: BreedingSeason) -> PregnancyRecord | None:
    """Build the pregnancy-history entry for a pregnant coverage.

    A positive repasse is a natural mating dated at the repasse start.
    Returns None when neither the coverage nor its repasse is positive.
    """
    if coverage.pregnancy_result == PregnancyResult.POSITIVE:
        return PregnancyRecord(
            id=f"bs-{coverage.id}",
            date=coverage.date,
            type=PREGNANCY_TYPE_MAP[coverage.type],
            sire_name=get_coverage_sire_name(coverage),
        )
    repasse = coverage.repasse
    if repasse and repasse.enabled and repasse.diagnosis_result == PregnancyResult.POSITIVE:
        bulls = get_repasse_bulls(repasse)
        sire = get_coverage_sire_name(
            CoverageRecord(
                id=coverage.id,
                cow_id=coverage.cow_id,
                cow_tag=coverage.cow_tag,
                type=CoverageType.NATURAL,
                date=repasse.start_date or season.start_date,
                bulls=bulls,
                confirmed_sire_id=repasse.confirmed_sire_id,
                confirmed_sire_tag=repasse.confirmed_sire_tag,
            )
        )
        return PregnancyRecord(
            id=f"bs-{coverage.id}-repasse",
            date=repasse.start_date or season.start_date,
            type=PREGNANCY_TYPE_MAP[CoverageType.NATURAL],
            sire_name=sire,
        )
    return None
