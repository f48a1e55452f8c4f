"""Breeding seasons: persistence, and coverage changes that reach the cows.

The coverage rules live in herdbook.breeding (pure functions on a
BreedingSeason). These wrappers apply one, save the season, and keep the
cow's pregnancy history (historicoPrenhez) in step with the diagnosis.
"""

import logging
from datetime import UTC, date, datetime

from herdbook.breeding.workflow import (
    add_coverage,
    confirm_paternity,
    delete_coverage,
    pregnancy_record_for,
    record_diagnosis,
    record_repasse_diagnosis,
    start_repasse,
)
from herdbook.data.store import ANIMALS, BREEDING_SEASONS, LocalFirstStore
from herdbook.models import (
    Animal,
    BreedingSeason,
    BullRef,
    CoverageRecord,
    PregnancyRecord,
    PregnancyResult,
    SeasonConfig,
    SeasonStatus,
)

logger = logging.getLogger(__name__)


async def fetch_seasons(store: LocalFirstStore, refresh: bool = False) -> list[BreedingSeason]:
    """All breeding seasons, most recent start first."""
    records = await store.load(BREEDING_SEASONS, refresh=refresh)
    seasons = [BreedingSeason.from_dict(r) for r in records]
    return sorted(seasons, key=lambda s: s.start_date, reverse=True)


async def get_season(store: LocalFirstStore, season_id: str) -> BreedingSeason | None:
    for season in await fetch_seasons(store):
        if season.id == season_id:
            return season
    return None


async def create_season(
    store: LocalFirstStore,
    name: str,
    start_date: date,
    end_date: date,
    config: SeasonConfig | None = None,
) -> BreedingSeason:
    """Create a season in planning, with no cows, bulls or coverages yet."""
    if end_date < start_date:
        raise ValueError(f"Season ends ({end_date}) before it starts ({start_date})")
    now = datetime.now(UTC)
    season = BreedingSeason(
        id="",
        name=name,
        start_date=start_date,
        end_date=end_date,
        status=SeasonStatus.PLANNING,
        config=config or SeasonConfig(),
        created_at=now,
        updated_at=now,
    )
    record = season.to_dict()
    record.pop("id")
    stored = BreedingSeason.from_dict(await store.create(BREEDING_SEASONS, record))
    logger.info("Created breeding season %s (%s to %s)", name, start_date, end_date)
    return stored


async def save_season(store: LocalFirstStore, season: BreedingSeason) -> BreedingSeason:
    season.updated_at = datetime.now(UTC)
    await store.update(BREEDING_SEASONS, season.id, season.to_dict())
    return season


async def delete_season(store: LocalFirstStore, season_id: str) -> None:
    await store.delete(BREEDING_SEASONS, season_id)
    logger.info("Deleted breeding season %s", season_id)


# =============================================================================
# Pregnancy History
# =============================================================================


async def sync_pregnancy_record(
    store: LocalFirstStore,
    season: BreedingSeason,
    coverage_id: str,
    herd: list[Animal],
) -> PregnancyRecord | None:
    """Make the cow's pregnancy history match a coverage's current diagnosis.

    A pregnant coverage (or repasse) adds or refreshes its entry; otherwise
    any entry it added earlier is removed.
    """
    coverage = season.find_coverage(coverage_id)
    if coverage is None:
        return None
    cow = next((a for a in herd if a.id == coverage.cow_id), None)
    if cow is None:
        logger.warning("Cow %s of coverage %s is not in the herd", coverage.cow_tag, coverage_id)
        return None

    own_ids = {f"bs-{coverage.id}", f"bs-{coverage.id}-repasse"}
    entry = pregnancy_record_for(coverage, season)
    pregnancies = [p for p in cow.pregnancies if p.id not in own_ids]
    if entry:
        pregnancies.append(entry)
        pregnancies.sort(key=lambda p: p.date)

    if pregnancies != cow.pregnancies:
        cow.pregnancies = pregnancies
        await store.update(ANIMALS, cow.id, {"historicoPrenhez": [p.to_dict() for p in pregnancies]})
    return entry


async def record_coverage(
    store: LocalFirstStore,
    season: BreedingSeason,
    coverage: CoverageRecord,
    herd: list[Animal],
) -> BreedingSeason:
    season = await save_season(store, add_coverage(season, coverage))
    await sync_pregnancy_record(store, season, coverage.id, herd)
    return season


async def remove_coverage(
    store: LocalFirstStore,
    season: BreedingSeason,
    coverage_id: str,
    herd: list[Animal],
) -> BreedingSeason:
    coverage = season.find_coverage(coverage_id)
    season = await save_season(store, delete_coverage(season, coverage_id))
    cow = next((a for a in herd if coverage and a.id == coverage.cow_id), None)
    if cow:
        own_ids = {f"bs-{coverage_id}", f"bs-{coverage_id}-repasse"}
        kept = [p for p in cow.pregnancies if p.id not in own_ids]
        if len(kept) != len(cow.pregnancies):
            cow.pregnancies = kept
            await store.update(ANIMALS, cow.id, {"historicoPrenhez": [p.to_dict() for p in kept]})
    return season


async def record_season_diagnosis(
    store: LocalFirstStore,
    season: BreedingSeason,
    coverage_id: str,
    result: PregnancyResult,
    herd: list[Animal],
    check_date: date | None = None,
) -> BreedingSeason:
    season = await save_season(store, record_diagnosis(season, coverage_id, result, check_date))
    await sync_pregnancy_record(store, season, coverage_id, herd)
    return season


async def record_season_repasse(
    store: LocalFirstStore,
    season: BreedingSeason,
    coverage_id: str,
    bulls: list[Animal | BullRef],
    herd: list[Animal],
    check_date: date | None = None,
    notes: str | None = None,
) -> BreedingSeason:
    season = await save_season(store, start_repasse(season, coverage_id, bulls, check_date, notes))
    await sync_pregnancy_record(store, season, coverage_id, herd)
    return season


async def record_season_repasse_diagnosis(
    store: LocalFirstStore,
    season: BreedingSeason,
    coverage_id: str,
    result: PregnancyResult,
    herd: list[Animal],
    check_date: date | None = None,
) -> BreedingSeason:
    season = await save_season(store, record_repasse_diagnosis(season, coverage_id, result, check_date))
    await sync_pregnancy_record(store, season, coverage_id, herd)
    return season


async def confirm_season_paternity(
    store: LocalFirstStore,
    season: BreedingSeason,
    coverage_id: str,
    bull_id: str,
    herd: list[Animal],
) -> BreedingSeason:
    season = await save_season(store, confirm_paternity(season, coverage_id, bull_id))
    await sync_pregnancy_record(store, season, coverage_id, herd)
    return season
