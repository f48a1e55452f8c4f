"""Calendar events, tasks, management areas and batches."""

import logging
from datetime import UTC, datetime

from herdbook.data.store import (
    ANIMALS,
    BATCHES,
    CALENDAR_EVENTS,
    MANAGEMENT_AREAS,
    TASKS,
    LocalFirstStore,
)
from herdbook.models import (
    BatchStatus,
    CalendarEvent,
    ManagementArea,
    ManagementBatch,
    Task,
)

logger = logging.getLogger(__name__)


def _without_empty_id(record: dict) -> dict:
    if not record.get("id"):
        record.pop("id", None)
    return record


# =============================================================================
# Calendar
# =============================================================================


async def fetch_calendar_events(store: LocalFirstStore, refresh: bool = False) -> list[CalendarEvent]:
    records = await store.load(CALENDAR_EVENTS, refresh=refresh)
    return sorted((CalendarEvent.from_dict(r) for r in records), key=lambda e: e.date)


async def add_or_update_calendar_event(store: LocalFirstStore, event: CalendarEvent) -> CalendarEvent:
    """Create the event, or overwrite its fields when it has an id."""
    if event.id:
        await store.update(CALENDAR_EVENTS, event.id, event.to_dict())
        return event
    return CalendarEvent.from_dict(await store.create(CALENDAR_EVENTS, _without_empty_id(event.to_dict())))


async def delete_calendar_event(store: LocalFirstStore, event_id: str) -> None:
    await store.delete(CALENDAR_EVENTS, event_id)


# =============================================================================
# Tasks
# =============================================================================


async def fetch_tasks(store: LocalFirstStore, refresh: bool = False) -> list[Task]:
    records = await store.load(TASKS, refresh=refresh)
    return [Task.from_dict(r) for r in records]


async def add_task(store: LocalFirstStore, task: Task) -> Task:
    """Create a task. New tasks always start open."""
    record = _without_empty_id(task.to_dict())
    record["isCompleted"] = False
    return Task.from_dict(await store.create(TASKS, record))


async def toggle_task_completion(store: LocalFirstStore, task: Task) -> Task:
    task.is_completed = not task.is_completed
    await store.update(TASKS, task.id, {"isCompleted": task.is_completed})
    return task


async def delete_task(store: LocalFirstStore, task_id: str) -> None:
    await store.delete(TASKS, task_id)


# =============================================================================
# Management Areas
# =============================================================================


async def fetch_management_areas(store: LocalFirstStore, refresh: bool = False) -> list[ManagementArea]:
    records = await store.load(MANAGEMENT_AREAS, refresh=refresh)
    return [ManagementArea.from_dict(r) for r in records]


async def add_or_update_management_area(store: LocalFirstStore, area: ManagementArea) -> ManagementArea:
    if area.id:
        await store.update(MANAGEMENT_AREAS, area.id, area.to_dict())
        return area
    return ManagementArea.from_dict(await store.create(MANAGEMENT_AREAS, _without_empty_id(area.to_dict())))


async def delete_management_area(store: LocalFirstStore, area_id: str) -> int:
    """Delete an area. Its animals are left without an area.

    Returns:
        Number of animals that were unassigned
    """
    animals = await store.load(ANIMALS)
    moved = 0
    for animal in animals:
        if animal.get("managementAreaId") == area_id:
            await store.update(ANIMALS, animal["id"], {"managementAreaId": None})
            moved += 1
    await store.delete(MANAGEMENT_AREAS, area_id)
    logger.info("Deleted area %s (%d animals unassigned)", area_id, moved)
    return moved


async def assign_animals_to_area(store: LocalFirstStore, animal_ids: list[str], area_id: str) -> None:
    for animal_id in animal_ids:
        await store.update(ANIMALS, animal_id, {"managementAreaId": area_id})
    logger.info("Moved %d animals to area %s", len(animal_ids), area_id)


# =============================================================================
# Batches
# =============================================================================


async def fetch_batches(store: LocalFirstStore, refresh: bool = False) -> list[ManagementBatch]:
    records = await store.load(BATCHES, refresh=refresh)
    return [ManagementBatch.from_dict(r) for r in records]


async def create_batch(store: LocalFirstStore, batch: ManagementBatch) -> ManagementBatch:
    record = _without_empty_id(batch.to_dict())
    record.setdefault("createdAt", datetime.now(UTC))
    return ManagementBatch.from_dict(await store.create(BATCHES, record))


async def update_batch(store: LocalFirstStore, batch_id: str, changes: dict) -> None:
    await store.update(BATCHES, batch_id, changes)


async def complete_batch(store: LocalFirstStore, batch_id: str, now: datetime | None = None) -> None:
    await store.update(
        BATCHES,
        batch_id,
        {"status": BatchStatus.COMPLETED.value, "completedAt": now or datetime.now(UTC)},
    )
    logger.info("Completed batch %s", batch_id)


async def delete_batch(store: LocalFirstStore, batch_id: str) -> None:
    await store.delete(BATCHES, batch_id)
