"""Data access: the local-first store and record operations on top of it."""

from herdbook.data.animals import (
    add_animal,
    add_medication,
    add_weighing,
    delete_animal,
    fetch_animals,
    find_by_tag,
    update_animal,
)
from herdbook.data.farm import (
    add_or_update_calendar_event,
    add_or_update_management_area,
    add_task,
    assign_animals_to_area,
    complete_batch,
    create_batch,
    delete_batch,
    delete_calendar_event,
    delete_management_area,
    delete_task,
    fetch_batches,
    fetch_calendar_events,
    fetch_management_areas,
    fetch_tasks,
    toggle_task_completion,
    update_batch,
)
from herdbook.data.seasons import (
    create_season,
    delete_season,
    fetch_seasons,
    get_season,
    record_coverage,
    save_season,
)
from herdbook.data.store import ALL_COLLECTIONS, LocalFirstStore
from herdbook.data.users import get_user_profile, get_user_role, has_permission, set_user_role

__all__ = [
    "LocalFirstStore",
    "ALL_COLLECTIONS",
    "fetch_animals",
    "find_by_tag",
    "add_animal",
    "update_animal",
    "delete_animal",
    "add_weighing",
    "add_medication",
    "fetch_calendar_events",
    "add_or_update_calendar_event",
    "delete_calendar_event",
    "fetch_tasks",
    "add_task",
    "toggle_task_completion",
    "delete_task",
    "fetch_management_areas",
    "add_or_update_management_area",
    "delete_management_area",
    "assign_animals_to_area",
    "fetch_batches",
    "create_batch",
    "update_batch",
    "complete_batch",
    "delete_batch",
    "fetch_seasons",
    "get_season",
    "create_season",
    "save_season",
    "delete_season",
    "record_coverage",
    "get_user_role",
    "set_user_role",
    "get_user_profile",
    "has_permission",
]
