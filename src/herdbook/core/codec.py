"""Firestore REST value encoding.

The REST API wraps every field in a typed envelope:

    {"stringValue": "A12"}, {"integerValue": "340"}, {"doubleValue": 340.5},
    {"timestampValue": "2025-01-15T00:00:00Z"}, {"arrayValue": {"values": [...]}},
    {"mapValue": {"fields": {...}}}

Records are kept as plain dicts everywhere else in herdbook; these helpers
convert at the HTTP boundary only.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any


def encode_value(value: Any) -> dict:
    """Encode a Python value as a Firestore typed value."""
    if isinstance(value, Enum):
        value = value.value

    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        # 64-bit integers travel as strings
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return {"timestampValue": value.astimezone(UTC).isoformat().replace("+00:00", "Z")}
    if isinstance(value, date):
        return {"timestampValue": f"{value.isoformat()}T00:00:00Z"}
    if isinstance(value, (list, tuple)):
        if not value:
            return {"arrayValue": {}}
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}

    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: dict) -> dict:
    """Encode a record as a Firestore `fields` map.

    Keys whose value is None are dropped; Firestore merges treat a missing
    field as "leave alone", which is what partial updates want.
    """
    return {key: encode_value(value) for key, value in data.items() if value is not None}


def decode_value(value: dict) -> Any:
    """Decode a Firestore typed value into a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return datetime.fromisoformat(value["timestampValue"])
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "referenceValue" in value:
        return value["referenceValue"]
    if "geoPointValue" in value:
        return value["geoPointValue"]
    if "bytesValue" in value:
        return value["bytesValue"]

    raise ValueError(f"Unknown Firestore value type: {list(value)}")


def decode_fields(fields: dict) -> dict:
    """Decode a Firestore `fields` map into a plain dict."""
    return {key: decode_value(value) for key, value in fields.items()}


def document_id(name: str) -> str:
    """Extract the document id from a full resource name.

    "projects/p/databases/(default)/documents/animals/abc" -> "abc"
    """
    return name.rsplit("/", 1)[-1]


def decode_document(document: dict) -> dict:
    """Decode a Firestore document resource into a record with an `id` key."""
    record = decode_fields(document.get("fields", {}))
    record["id"] = document_id(document["name"])
    return record
