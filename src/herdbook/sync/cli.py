"""
Sync the local snapshots with Firestore.

Replays the offline write queue, then downloads every collection into
.cache/ so herdbook keeps working offline.

Usage:
    herdbook-sync                       # Replay queue, refresh all collections
    herdbook-sync -c animals            # Only the animals collection
    herdbook-sync --replay-only         # Only send queued writes
    herdbook-sync --retry-failed        # Give failed writes another chance first
"""

import argparse
import asyncio
from datetime import datetime

from herdbook.core.config import settings
from herdbook.data.store import ALL_COLLECTIONS, OFFLINE_ERRORS, LocalFirstStore
from herdbook.logging_config import setup_logging


async def sync_all(
    collections: list[str] | None = None,
    replay_only: bool = False,
    retry_failed: bool = False,
    store: LocalFirstStore | None = None,
) -> dict[str, int]:
    """Replay queued writes and refresh collection snapshots.

    Returns:
        Document count per refreshed collection
    """
    store = store or LocalFirstStore()
    collections = collections or ALL_COLLECTIONS

    print("=" * 60)
    print(f"herdbook sync - {datetime.now():%Y-%m-%d %H:%M}")
    print("=" * 60)

    if retry_failed:
        reset = store.queue.retry_failed()
        print(f"Reset {reset} failed writes")

    stats = store.queue.stats()
    print(f"Offline queue: {stats['pending']} pending, {stats['failed']} failed")
    if stats["total"]:
        summary = await store.sync_pending()
        print(f"  Sent {summary['processed']}, failed {summary['failed']}, remaining {summary['remaining']}")

    counts: dict[str, int] = {}
    if replay_only:
        return counts

    print()
    print("Refreshing collections...")
    for name in collections:
        try:
            docs = await store.load(name, refresh=True)
        except OFFLINE_ERRORS as e:
            print(f"  {name}: offline ({e})")
            continue
        counts[name] = len(docs)
        status = "cached copy" if not store.online else "ok"
        print(f"  {name}: {len(docs)} documents ({status})")

    print()
    print(f"Snapshots in {store.cache.directory}")
    return counts


def cli():
    parser = argparse.ArgumentParser(description="Sync local herdbook snapshots with Firestore")
    parser.add_argument(
        "--collection", "-c",
        action="append",
        choices=ALL_COLLECTIONS,
        help="Collection to refresh (repeatable; default: all)",
    )
    parser.add_argument("--replay-only", action="store_true", help="Only replay the offline write queue")
    parser.add_argument("--retry-failed", action="store_true", help="Re-queue writes that exhausted their attempts")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file)
    asyncio.run(sync_all(args.collection, replay_only=args.replay_only, retry_failed=args.retry_failed))


if __name__ == "__main__":
    cli()
