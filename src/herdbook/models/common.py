"""Helpers shared by the record dataclasses."""

import uuid
from enum import Enum
from typing import TypeVar

E = TypeVar("E", bound=Enum)


def new_id(prefix: str = "") -> str:
    """Generate an id for a nested history entry or a new document."""
    token = uuid.uuid4().hex[:16]
    return f"{prefix}-{token}" if prefix else token


def parse_enum(enum_cls: type[E], value, default: E) -> E:
    """Parse a stored enum value, falling back to `default` for legacy/unknown values."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default


def drop_none(data: dict) -> dict:
    """Remove keys whose value is None (optional fields stay absent in storage)."""
    return {k: v for k, v in data.items() if v is not None}
