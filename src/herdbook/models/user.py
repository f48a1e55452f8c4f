"""User roles and the permission table attached to each role."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum


class UserRole(Enum):
    OWNER = "proprietario"
    FOREMAN = "capataz"
    VETERINARIAN = "veterinario"
    EMPLOYEE = "funcionario"


@dataclass(frozen=True)
class UserPermissions:
    can_view_animals: bool = False
    can_edit_animals: bool = False
    can_delete_animals: bool = False
    can_view_financial: bool = False
    can_edit_financial: bool = False
    can_view_reports: bool = False
    can_manage_users: bool = False
    can_view_calendar: bool = False
    can_edit_calendar: bool = False
    can_view_tasks: bool = False
    can_edit_tasks: bool = False

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)


DEFAULT_PERMISSIONS: dict[UserRole, UserPermissions] = {
    UserRole.OWNER: UserPermissions(
        can_view_animals=True,
        can_edit_animals=True,
        can_delete_animals=True,
        can_view_financial=True,
        can_edit_financial=True,
        can_view_reports=True,
        can_manage_users=True,
        can_view_calendar=True,
        can_edit_calendar=True,
        can_view_tasks=True,
        can_edit_tasks=True,
    ),
    # Foreman works off the task list and calendar only
    UserRole.FOREMAN: UserPermissions(
        can_view_calendar=True,
        can_edit_calendar=True,
        can_view_tasks=True,
        can_edit_tasks=True,
    ),
    UserRole.VETERINARIAN: UserPermissions(
        can_view_animals=True,
        can_edit_animals=True,
        can_view_reports=True,
        can_view_calendar=True,
        can_edit_calendar=True,
        can_view_tasks=True,
        can_edit_tasks=True,
    ),
    UserRole.EMPLOYEE: UserPermissions(
        can_view_animals=True,
        can_view_calendar=True,
        can_view_tasks=True,
    ),
}


@dataclass
class UserProfile:
    uid: str
    role: UserRole
    email: str | None = None
    display_name: str | None = None

    @property
    def permissions(self) -> UserPermissions:
        return DEFAULT_PERMISSIONS[self.role]
