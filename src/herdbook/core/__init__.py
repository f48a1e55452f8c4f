"""Core module - configuration, Firestore client, auth, units and dates."""

from herdbook.core import client, units
from herdbook.core.auth import AuthError, get_id_token, get_uid, sign_in, sign_out
from herdbook.core.client import (
    DocumentNotFound,
    FirestoreError,
    HerdbookAPIError,
    RetryableError,
    create_document,
    delete_document,
    firestore_request,
    firestore_request_with_retry,
    get_document,
    list_documents,
    ping,
    query_documents,
    set_document,
)
from herdbook.core.config import get_cache_dir, settings
from herdbook.core.dates import GESTATION_DAYS, parse_date
from herdbook.core.units import arroba_to_kg, format_weight, kg_to_arroba

__all__ = [
    "client",
    "units",
    "settings",
    "get_cache_dir",
    "firestore_request",
    "firestore_request_with_retry",
    "get_document",
    "list_documents",
    "query_documents",
    "create_document",
    "set_document",
    "delete_document",
    "ping",
    "FirestoreError",
    "RetryableError",
    "HerdbookAPIError",
    "DocumentNotFound",
    "AuthError",
    "sign_in",
    "sign_out",
    "get_id_token",
    "get_uid",
    "GESTATION_DAYS",
    "parse_date",
    # Unit conversion helpers
    "arroba_to_kg",
    "kg_to_arroba",
    "format_weight",
]
