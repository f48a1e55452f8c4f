"""Offline support: write queue, collection snapshots and the sync CLI."""

from herdbook.sync.cache import CollectionCache
from herdbook.sync.queue import (
    OfflineQueue,
    OperationStatus,
    OperationType,
    QueuedOperation,
    execute_operation,
)

__all__ = [
    "CollectionCache",
    "OfflineQueue",
    "OperationStatus",
    "OperationType",
    "QueuedOperation",
    "execute_operation",
]
