"""User roles.

Roles are a local setting, one file per Firebase uid in the cache dir
(user_role_<uid>.json). A user with no stored role is the farm owner.
"""

import json
import logging
from pathlib import Path

from herdbook.core.config import get_cache_dir
from herdbook.models import UserPermissions, UserProfile, UserRole
from herdbook.models.common import parse_enum

logger = logging.getLogger(__name__)

DEFAULT_ROLE = UserRole.OWNER


def _role_path(uid: str, directory: Path | None = None) -> Path:
    return (directory or get_cache_dir()) / f"user_role_{uid}.json"


def get_user_role(uid: str, directory: Path | None = None) -> UserRole:
    path = _role_path(uid, directory)
    if not path.exists():
        return DEFAULT_ROLE
    try:
        with open(path) as f:
            stored = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring unreadable role file %s: %s", path, e)
        return DEFAULT_ROLE
    return parse_enum(UserRole, stored.get("role"), DEFAULT_ROLE)


def set_user_role(uid: str, role: UserRole | str, directory: Path | None = None) -> UserRole:
    role = UserRole(role)
    path = _role_path(uid, directory)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump({"role": role.value}, f)
    logger.info("Role of %s set to %s", uid, role.value)
    return role


def get_user_profile(
    uid: str,
    email: str | None = None,
    display_name: str | None = None,
    directory: Path | None = None,
) -> UserProfile:
    return UserProfile(uid=uid, role=get_user_role(uid, directory), email=email, display_name=display_name)


def has_permission(profile: UserProfile, permission: str) -> bool:
    """Check one permission by name, e.g. "can_edit_animals".

    Raises:
        ValueError: If the permission name is unknown
    """
    if permission not in UserPermissions.__dataclass_fields__:
        raise ValueError(f"Unknown permission: {permission}")
    return getattr(profile.permissions, permission)
