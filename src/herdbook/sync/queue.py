"""
Offline write queue.

Writes that can't reach Firestore are stored in .cache/offline_queue.json and
replayed, oldest first, on the next successful contact with the backend.

Rules:
- Queuing a write for a document (collection + data["id"]) evicts any older
  queued write for the same document: last write wins.
- A write that reaches Firestore directly drops the queued writes for its
  document, so a later replay cannot overwrite it.
- Creates carry a client-assigned id and are sent as full writes to that id,
  so replaying one that was already committed is harmless.
- A failed replay stays queued with exponential backoff (1s, 2s, 4s ... capped
  at 60s). After MAX_ATTEMPTS failures it is marked failed and skipped until
  retry_failed() puts it back.

Record values are persisted as Firestore typed values so dates and nulls
survive the JSON round trip unchanged.
"""

import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import TypedDict

import httpx

from herdbook.core.auth import AuthError
from herdbook.core.client import (
    DocumentNotFound,
    FirestoreError,
    HerdbookAPIError,
    RetryableError,
    create_document,
    delete_document,
    set_document,
)
from herdbook.core.codec import decode_fields, encode_value
from herdbook.core.config import get_cache_dir
from herdbook.models.common import new_id

logger = logging.getLogger(__name__)

QUEUE_FILE = "offline_queue.json"

MAX_ATTEMPTS = 5
BACKOFF_BASE_SECONDS = 1
BACKOFF_MAX_SECONDS = 60

# Errors that leave an operation queued for the next replay
REPLAY_ERRORS = (RetryableError, HerdbookAPIError, FirestoreError, AuthError, httpx.HTTPError)


class OperationType(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class OperationStatus(Enum):
    PENDING = "pending"
    FAILED = "failed"


@dataclass
class QueuedOperation:
    id: str
    type: OperationType
    collection: str
    data: dict
    timestamp: float  # epoch seconds when queued
    attempts: int = 0
    status: OperationStatus = OperationStatus.PENDING
    last_error: str | None = None
    next_attempt_at: float | None = None

    @property
    def document_id(self) -> str | None:
        return self.data.get("id")

    @classmethod
    def from_dict(cls, data: dict) -> "QueuedOperation":
        return cls(
            id=data["id"],
            type=OperationType(data["type"]),
            collection=data["collection"],
            data=decode_fields(data.get("data", {})),
            timestamp=float(data["timestamp"]),
            attempts=int(data.get("attempts", 0)),
            status=OperationStatus(data.get("status", "pending")),
            last_error=data.get("last_error"),
            next_attempt_at=data.get("next_attempt_at"),
        )

    def to_dict(self) -> dict:
        record = asdict(self)
        record["type"] = self.type.value
        record["status"] = self.status.value
        record["data"] = {key: encode_value(value) for key, value in self.data.items()}
        return record


class ReplaySummary(TypedDict):
    processed: int
    failed: int
    skipped: int
    remaining: int


class QueueStats(TypedDict):
    total: int
    pending: int
    failed: int
    oldest: float | None


Executor = Callable[[QueuedOperation], Awaitable[None]]


async def execute_operation(op: QueuedOperation) -> None:
    """Send one queued write to Firestore."""
    doc_id = op.document_id
    if op.type == OperationType.CREATE:
        # A full write under the client id, so a replay of a committed create succeeds
        if doc_id:
            await set_document(op.collection, doc_id, op.data, merge=False)
        else:
            await create_document(op.collection, op.data)
    elif op.type == OperationType.UPDATE:
        if not doc_id:
            raise HerdbookAPIError(f"Queued update on {op.collection} has no document id")
        await set_document(op.collection, doc_id, op.data, merge=True)
    elif op.type == OperationType.DELETE:
        if not doc_id:
            raise HerdbookAPIError(f"Queued delete on {op.collection} has no document id")
        try:
            await delete_document(op.collection, doc_id)
        except DocumentNotFound:
            logger.debug("%s/%s already deleted", op.collection, doc_id)


class OfflineQueue:
    """File-backed queue of pending Firestore writes."""

    def __init__(self, path: Path | None = None):
        self.path = path or get_cache_dir() / QUEUE_FILE
        self._ops: list[QueuedOperation] = self._load()

    def _load(self) -> list[QueuedOperation]:
        if not self.path.exists():
            return []
        try:
            with open(self.path) as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            logger.error("Offline queue %s is corrupt, starting empty: %s", self.path, e)
            return []
        return [QueuedOperation.from_dict(item) for item in raw]

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump([op.to_dict() for op in self._ops], f, indent=2)

    def __len__(self) -> int:
        return len(self._ops)

    def get_queue(self) -> list[QueuedOperation]:
        return sorted(self._ops, key=lambda op: op.timestamp)

    def add(self, op_type: OperationType | str, collection: str, data: dict) -> QueuedOperation:
        """Queue a write. Older writes for the same document are dropped."""
        op = QueuedOperation(
            id=new_id("op"),
            type=OperationType(op_type),
            collection=collection,
            data=dict(data),
            timestamp=time.time(),
        )
        if op.document_id and self._drop_document(collection, op.document_id):
            logger.debug("Replaced queued write for %s/%s", collection, op.document_id)
        self._ops.append(op)
        self._save()
        logger.warning("Queued offline %s on %s (%d pending)", op.type.value, collection, len(self._ops))
        return op

    def _drop_document(self, collection: str, doc_id: str) -> int:
        before = len(self._ops)
        self._ops = [o for o in self._ops if not (o.collection == collection and o.document_id == doc_id)]
        return before - len(self._ops)

    def discard_document(self, collection: str, doc_id: str) -> int:
        """Drop queued writes for a document that a newer write has already reached."""
        removed = self._drop_document(collection, doc_id)
        if removed:
            self._save()
            logger.info("Dropped %d stale queued write(s) for %s/%s", removed, collection, doc_id)
        return removed

    def remove(self, op_id: str) -> bool:
        before = len(self._ops)
        self._ops = [op for op in self._ops if op.id != op_id]
        if len(self._ops) == before:
            return False
        self._save()
        return True

    def clear(self) -> None:
        self._ops = []
        self._save()

    def stats(self) -> QueueStats:
        return {
            "total": len(self._ops),
            "pending": sum(1 for op in self._ops if op.status == OperationStatus.PENDING),
            "failed": sum(1 for op in self._ops if op.status == OperationStatus.FAILED),
            "oldest": min((op.timestamp for op in self._ops), default=None),
        }

    def retry_failed(self) -> int:
        """Put failed operations back in line. Returns how many were reset."""
        count = 0
        for op in self._ops:
            if op.status == OperationStatus.FAILED:
                op.status = OperationStatus.PENDING
                op.attempts = 0
                op.next_attempt_at = None
                count += 1
        if count:
            self._save()
        return count

    def clear_failed(self) -> int:
        before = len(self._ops)
        self._ops = [op for op in self._ops if op.status != OperationStatus.FAILED]
        removed = before - len(self._ops)
        if removed:
            self._save()
        return removed

    async def process(self, executor: Executor | None = None, now: float | None = None) -> ReplaySummary:
        """Replay queued writes in the order they were made.

        Args:
            executor: Coroutine sending one operation (default: Firestore)
            now: Current epoch seconds (for backoff; defaults to time.time())

        Returns:
            Counts of processed, failed, skipped (backing off or failed) and remaining operations
        """
        executor = executor or execute_operation
        summary: ReplaySummary = {"processed": 0, "failed": 0, "skipped": 0, "remaining": 0}

        for op in self.get_queue():
            current = time.time() if now is None else now
            if op.status == OperationStatus.FAILED or (op.next_attempt_at and op.next_attempt_at > current):
                summary["skipped"] += 1
                continue

            try:
                await executor(op)
            except REPLAY_ERRORS as e:
                op.attempts += 1
                op.last_error = str(e)
                delay = min(BACKOFF_BASE_SECONDS * 2 ** (op.attempts - 1), BACKOFF_MAX_SECONDS)
                op.next_attempt_at = current + delay
                if op.attempts >= MAX_ATTEMPTS:
                    op.status = OperationStatus.FAILED
                    logger.error(
                        "Giving up on %s %s/%s after %d attempts: %s",
                        op.type.value,
                        op.collection,
                        op.document_id,
                        op.attempts,
                        e,
                    )
                else:
                    logger.warning(
                        "Replay of %s on %s failed (attempt %d): %s", op.type.value, op.collection, op.attempts, e
                    )
                summary["failed"] += 1
                continue

            self._ops = [o for o in self._ops if o.id != op.id]
            summary["processed"] += 1

        self._save()
        summary["remaining"] = len(self._ops)
        if summary["processed"] or summary["failed"]:
            logger.info(
                "Offline queue replay: %d sent, %d failed, %d remaining",
                summary["processed"],
                summary["failed"],
                summary["remaining"],
            )
        return summary
