"""
Local-first access to the farm's Firestore collections.

Reads come from the local snapshot while it is fresh; otherwise from
Firestore (the snapshot is refreshed). Writes go to Firestore first; when
Firestore can't be reached after retries, the write is queued offline and
applied to the snapshot so the local view stays current. The first
successful request after that replays the queue.

Documents are owned by the signed-in user (`userId` field) and listed with
a `userId == uid` query. Without a signed-in user the whole collection is
listed.
"""

import logging

import httpx

from herdbook.core.auth import AuthError, get_uid
from herdbook.core.client import (
    RetryableError,
    delete_document,
    list_documents,
    query_documents,
    set_document,
)
from herdbook.core.config import settings
from herdbook.models.common import new_id
from herdbook.sync.cache import CollectionCache
from herdbook.sync.queue import OfflineQueue, OperationType, QueuedOperation, ReplaySummary

logger = logging.getLogger(__name__)

# Collection ids
ANIMALS = "animals"
CALENDAR_EVENTS = "calendarEvents"
TASKS = "tasks"
MANAGEMENT_AREAS = "managementAreas"
BREEDING_SEASONS = "breedingSeasons"
BATCHES = "batches"

ALL_COLLECTIONS = [ANIMALS, CALENDAR_EVENTS, TASKS, MANAGEMENT_AREAS, BREEDING_SEASONS, BATCHES]

# Failures that mean "offline", not "request rejected"
OFFLINE_ERRORS = (RetryableError, httpx.TransportError)


class LocalFirstStore:
    """Firestore collections with a local snapshot and an offline write queue."""

    def __init__(
        self,
        queue: OfflineQueue | None = None,
        cache: CollectionCache | None = None,
        max_age_hours: float | None = None,
    ):
        self.queue = queue or OfflineQueue()
        self.cache = cache or CollectionCache()
        self.max_age_hours = settings.cache_max_age_hours if max_age_hours is None else max_age_hours
        self.online = True

    async def _went_online(self) -> ReplaySummary | None:
        """Replay queued writes after a successful request."""
        was_offline = not self.online
        self.online = True
        if len(self.queue) == 0:
            return None
        if was_offline:
            logger.info("Back online, replaying %d queued writes", len(self.queue))
        return await self.queue.process()

    def _went_offline(self, error: Exception) -> None:
        if self.online:
            logger.warning("Firestore unreachable, working offline: %s", error)
        self.online = False

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def _fetch(self, collection: str) -> list[dict]:
        uid = await get_uid()
        if uid:
            return await query_documents(collection, "userId", uid)
        return await list_documents(collection)

    async def load(self, collection: str, refresh: bool = False) -> list[dict]:
        """Records of a collection, from the snapshot when fresh.

        Args:
            collection: Collection id
            refresh: Skip the snapshot and fetch from Firestore

        Returns:
            Plain records (with `id`); the last snapshot, or [], when offline
        """
        if not refresh and self.cache.is_fresh(collection, self.max_age_hours):
            return self.cache.load_collection(collection) or []

        try:
            docs = await self._fetch(collection)
        except OFFLINE_ERRORS as e:
            self._went_offline(e)
            return self.cache.load_collection(collection) or []

        # Queued writes aren't in Firestore yet; replay them before snapshotting
        summary = await self._went_online()
        if summary and summary["processed"]:
            docs = await self._fetch(collection)

        self.cache.save_collection(collection, docs)
        for op in self.queue.get_queue():
            if op.collection == collection:
                self.cache.apply_local(collection, op)
        logger.info("Loaded %d %s from Firestore", len(docs), collection)
        return self.cache.load_collection(collection) or []

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _write(self, op_type: OperationType, collection: str, data: dict) -> None:
        doc_id = data.get("id")
        try:
            if op_type == OperationType.CREATE:
                await set_document(collection, doc_id, data, merge=False)
            elif op_type == OperationType.UPDATE:
                await set_document(collection, doc_id, data, merge=True)
            else:
                await delete_document(collection, doc_id)
        except OFFLINE_ERRORS as e:
            self._went_offline(e)
            op = self.queue.add(op_type, collection, data)
            self.cache.apply_local(collection, op)
            return

        # Older queued writes for this document must not replay over this one
        self.queue.discard_document(collection, doc_id)
        self.cache.apply_local(
            collection,
            QueuedOperation(id=new_id("local"), type=op_type, collection=collection, data=data, timestamp=0),
        )
        await self._went_online()

    async def create(self, collection: str, data: dict) -> dict:
        """Create a document. Ids are assigned locally so offline creates keep them.

        Returns:
            The record as stored (with `id` and `userId`)
        """
        record = dict(data)
        record.setdefault("id", new_id())
        try:
            uid = await get_uid()
        except (AuthError, *OFFLINE_ERRORS) as e:
            logger.debug("No uid for new %s document: %s", collection, e)
            uid = None
        if uid:
            record.setdefault("userId", uid)
        await self._write(OperationType.CREATE, collection, record)
        return record

    async def update(self, collection: str, doc_id: str, data: dict) -> dict:
        """Merge fields into a document (a None value removes the field)."""
        record = {**data, "id": doc_id}
        await self._write(OperationType.UPDATE, collection, record)
        return record

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._write(OperationType.DELETE, collection, {"id": doc_id})

    async def sync_pending(self) -> ReplaySummary:
        """Replay the offline queue now."""
        summary = await self.queue.process()
        self.online = summary["failed"] == 0
        return summary
