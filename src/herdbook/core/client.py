"""Firestore REST client - core document operations."""

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from herdbook.core.auth import get_id_token
from herdbook.core.codec import decode_document, encode_fields, encode_value
from herdbook.core.config import settings

logger = logging.getLogger(__name__)

FIRESTORE_URL = "https://firestore.googleapis.com/v1"

# Max documents per list page (Firestore caps at 300)
DEFAULT_PAGE_SIZE = 300

# =============================================================================
# Retry Configuration
# =============================================================================

MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 10

# Throttling is transient too
RETRYABLE_STATUS_CODES = {429}


# =============================================================================
# Exceptions
# =============================================================================


class FirestoreError(Exception):
    """Raised when Firestore answers with an error payload."""

    def __init__(self, error: dict, path: str | None = None):
        self.error = error
        self.path = path
        self.status = error.get("status")
        super().__init__(f"Firestore error: {error.get('message', error)}")


class RetryableError(Exception):
    """Transient error that should be retried (timeouts, connection errors, 5xx)."""

    pass


class HerdbookAPIError(Exception):
    """Non-retryable error from the Firestore API."""

    pass


class DocumentNotFound(HerdbookAPIError):
    """The requested document does not exist."""

    pass


# =============================================================================
# Client Functions
# =============================================================================


def documents_path() -> str:
    """Resource path of the database's document root."""
    return f"projects/{settings.firebase_project_id}/databases/{settings.firestore_database}/documents"


async def firestore_request(
    method: str,
    path: str = "",
    params: list[tuple[str, str]] | None = None,
    json: dict | None = None,
) -> dict | list:
    """Make a single request against the Firestore REST API.

    This is the low-level function that makes a single request without retry.
    For most use cases, prefer `firestore_request_with_retry()`.

    Args:
        method: HTTP method
        path: Path below the document root, e.g. "/animals/abc" or ":runQuery"
        params: Query parameters as (name, value) pairs (repeats allowed)
        json: Optional request body

    Returns:
        Parsed JSON response ({} for empty bodies)

    Raises:
        FirestoreError: If the response carries an error payload
        httpx.HTTPStatusError: If the HTTP request fails
    """
    headers = {"Content-Type": "application/json"}
    token = await get_id_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"

    query = [("key", settings.firebase_api_key), *(params or [])]

    async with httpx.AsyncClient() as client:
        response = await client.request(
            method,
            f"{FIRESTORE_URL}/{documents_path()}{path}",
            headers=headers,
            params=query,
            json=json,
            timeout=30,
        )
        response.raise_for_status()

        if not response.content:
            return {}

        result = response.json()

        if isinstance(result, dict) and "error" in result:
            raise FirestoreError(result["error"], path)
        if isinstance(result, list):
            for item in result:
                if "error" in item:
                    raise FirestoreError(item["error"], path)

        return result


@retry(
    retry=retry_if_exception_type(RetryableError),
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential_jitter(initial=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS, jitter=2),
    reraise=True,
)
async def firestore_request_with_retry(
    method: str,
    path: str = "",
    params: list[tuple[str, str]] | None = None,
    json: dict | None = None,
) -> dict | list:
    """Make a Firestore request with automatic retry on transient errors.

    Retries on:
    - Timeouts
    - Connection errors
    - HTTP 5xx and 429 errors
    - Error payloads with status UNAVAILABLE

    After MAX_RETRIES failures the RetryableError propagates; callers that
    keep working offline (see herdbook.data.store) catch it and queue the write.

    Raises:
        RetryableError: If all retries fail
        DocumentNotFound: On HTTP 404
        HerdbookAPIError: On any other non-retryable error
    """
    try:
        return await firestore_request(method, path, params, json)
    except httpx.TimeoutException as e:
        raise RetryableError(f"Request timed out: {e}") from e
    except httpx.ConnectError as e:
        raise RetryableError(f"Connection failed: {e}") from e
    except httpx.HTTPStatusError as e:
        try:
            body = e.response.text
        except Exception:
            body = "(unable to read response body)"

        status = e.response.status_code
        if status >= 500 or status in RETRYABLE_STATUS_CODES:
            logger.warning("Firestore %s %s returned %d, retrying", method, path, status)
            raise RetryableError(f"HTTP {status}: {body}") from e
        if status == 404:
            raise DocumentNotFound(f"Not found: {path}") from e
        raise HerdbookAPIError(f"HTTP {status}: {body}") from e
    except FirestoreError as e:
        if e.status == "UNAVAILABLE":
            raise RetryableError(str(e)) from e
        raise HerdbookAPIError(str(e)) from e


# =============================================================================
# Document Operations
# =============================================================================


async def get_document(collection: str, doc_id: str) -> dict:
    """Fetch one document as a plain record (with `id`)."""
    result = await firestore_request_with_retry("GET", f"/{collection}/{doc_id}")
    return decode_document(result)


async def list_documents(collection: str, page_size: int = DEFAULT_PAGE_SIZE) -> list[dict]:
    """Fetch every document in a collection, following page tokens.

    Args:
        collection: Collection id, e.g. "animals"
        page_size: Documents per request

    Returns:
        List of plain records
    """
    records: list[dict] = []
    page_token: str | None = None

    while True:
        params = [("pageSize", str(page_size))]
        if page_token:
            params.append(("pageToken", page_token))

        result = await firestore_request_with_retry("GET", f"/{collection}", params=params)
        records.extend(decode_document(doc) for doc in result.get("documents", []))

        page_token = result.get("nextPageToken")
        if not page_token:
            break

    return records


async def query_documents(collection: str, field: str, value) -> list[dict]:
    """Fetch documents where `field == value` (structured query)."""
    body = {
        "structuredQuery": {
            "from": [{"collectionId": collection}],
            "where": {
                "fieldFilter": {
                    "field": {"fieldPath": field},
                    "op": "EQUAL",
                    "value": encode_value(value),
                }
            },
        }
    }
    result = await firestore_request_with_retry("POST", ":runQuery", json=body)
    # Rows without a document carry only readTime (empty result sets)
    return [decode_document(row["document"]) for row in result if "document" in row]


async def create_document(collection: str, data: dict, doc_id: str | None = None) -> dict:
    """Create a document, letting Firestore assign an id unless one is given.

    Returns:
        The stored record including its `id`
    """
    fields = {k: v for k, v in data.items() if k != "id"}
    params = [("documentId", doc_id)] if doc_id else None

    result = await firestore_request_with_retry(
        "POST",
        f"/{collection}",
        params=params,
        json={"fields": encode_fields(fields)},
    )
    return decode_document(result)


async def set_document(collection: str, doc_id: str, data: dict, merge: bool = True) -> dict:
    """Write a document, creating it if missing.

    With merge=True only the given fields are replaced (update mask), the
    rest of the stored document is left alone. A key mapped to None is in
    the mask but not in the body, so Firestore removes that field.
    """
    fields = {k: v for k, v in data.items() if k != "id"}
    params = None
    if merge:
        params = [("updateMask.fieldPaths", key) for key in fields]

    result = await firestore_request_with_retry(
        "PATCH",
        f"/{collection}/{doc_id}",
        params=params,
        json={"fields": encode_fields(fields)},
    )
    return decode_document(result)


async def delete_document(collection: str, doc_id: str) -> None:
    """Delete a document (no error if it is already gone)."""
    await firestore_request_with_retry("DELETE", f"/{collection}/{doc_id}")


async def ping(collection: str = "animals") -> bool:
    """Check whether Firestore is reachable."""
    try:
        await firestore_request("GET", f"/{collection}", params=[("pageSize", "1")])
        return True
    except (httpx.TransportError, httpx.HTTPStatusError, FirestoreError) as e:
        logger.debug("Firestore ping failed: %s", e)
        return False
