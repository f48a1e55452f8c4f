"""
Local snapshots of Firestore collections.

Each collection lives in .cache/<collection>.json:

    {"fetched_at": "2025-01-15T10:00:00+00:00", "documents": [{...typed fields...}]}

Snapshots serve reads while offline and while fresh, and queued writes are
applied to them so the local view matches what Firestore will hold once the
offline queue is replayed.
"""

import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

from herdbook.core.codec import decode_fields, encode_value
from herdbook.core.config import get_cache_dir
from herdbook.sync.queue import OperationType, QueuedOperation

logger = logging.getLogger(__name__)


class CollectionCache:
    """JSON snapshots of collections, one file per collection."""

    def __init__(self, directory: Path | None = None):
        self.directory = directory or get_cache_dir()

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def _read(self, name: str) -> dict | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt snapshot %s: %s", path, e)
            return None

    def load_collection(self, name: str) -> list[dict] | None:
        """Cached records of a collection, or None if never fetched."""
        snapshot = self._read(name)
        if snapshot is None:
            return None
        return [decode_fields(doc) for doc in snapshot.get("documents", [])]

    def save_collection(self, name: str, docs: list[dict], fetched_at: datetime | None = None) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        snapshot = {
            "fetched_at": (fetched_at or datetime.now(UTC)).isoformat(),
            "documents": [{key: encode_value(value) for key, value in doc.items()} for doc in docs],
        }
        with open(self._path(name), "w") as f:
            json.dump(snapshot, f, indent=2)
        logger.debug("Saved %d %s to cache", len(docs), name)

    def fetched_at(self, name: str) -> datetime | None:
        snapshot = self._read(name)
        if snapshot is None or "fetched_at" not in snapshot:
            return None
        return datetime.fromisoformat(snapshot["fetched_at"])

    def is_fresh(self, name: str, max_age_hours: float, now: datetime | None = None) -> bool:
        """True if the snapshot exists and is younger than max_age_hours."""
        fetched = self.fetched_at(name)
        if fetched is None:
            return False
        now = now or datetime.now(UTC)
        return now - fetched < timedelta(hours=max_age_hours)

    def apply_local(self, name: str, op: QueuedOperation) -> None:
        """Reflect a write in the cached snapshot.

        Updates merge like Firestore's update mask: a None value removes the field.
        """
        snapshot = self._read(name)
        docs = self.load_collection(name) or []
        doc_id = op.document_id

        if op.type == OperationType.CREATE:
            docs = [d for d in docs if d.get("id") != doc_id] if doc_id else docs
            docs.append({k: v for k, v in op.data.items() if v is not None})
        elif op.type == OperationType.UPDATE:
            for doc in docs:
                if doc.get("id") == doc_id:
                    for key, value in op.data.items():
                        if value is None:
                            doc.pop(key, None)
                        else:
                            doc[key] = value
                    break
            else:
                docs.append({k: v for k, v in op.data.items() if v is not None})
        elif op.type == OperationType.DELETE:
            docs = [d for d in docs if d.get("id") != doc_id]

        # Keep the original fetch time: local edits don't make the snapshot fresher
        fetched = datetime.fromisoformat(snapshot["fetched_at"]) if snapshot and "fetched_at" in snapshot else None
        self.save_collection(name, docs, fetched_at=fetched or datetime.fromtimestamp(0, UTC))

    def clear(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)
