"""Tests for the herdbook-sync command."""

from herdbook.data.store import ALL_COLLECTIONS, ANIMALS, TASKS
from herdbook.sync.cli import sync_all
from herdbook.sync.queue import OperationStatus


class TestSyncAll:
    """Tests for sync_all."""

    async def test_replays_queue_then_refreshes(self, store, firestore, capsys):
        firestore.offline = True
        await store.create(TASKS, {"id": "t1", "description": "Vacinar"})
        firestore.offline = False
        firestore.seed(ANIMALS, {"id": "a", "userId": "user-1"})

        counts = await sync_all(store=store)

        assert len(store.queue) == 0
        assert counts[TASKS] == 1
        assert counts[ANIMALS] == 1
        assert set(counts) == set(ALL_COLLECTIONS)
        assert store.cache.load_collection(TASKS)[0]["description"] == "Vacinar"
        assert "Sent 1, failed 0, remaining 0" in capsys.readouterr().out

    async def test_replay_only(self, store, firestore):
        firestore.offline = True
        await store.create(TASKS, {"id": "t1"})
        firestore.offline = False

        counts = await sync_all(replay_only=True, store=store)

        assert counts == {}
        assert "t1" in firestore.docs(TASKS)
        assert not (store.cache.directory / f"{ANIMALS}.json").exists()

    async def test_offline_keeps_cached_copies(self, store, firestore, capsys):
        store.cache.save_collection(ANIMALS, [{"id": "a"}, {"id": "b"}])
        firestore.offline = True

        counts = await sync_all([ANIMALS], store=store)

        assert counts == {ANIMALS: 2}
        assert "animals: 2 documents (cached copy)" in capsys.readouterr().out

    async def test_retry_failed_requeues(self, store, firestore):
        op = store.queue.add("create", TASKS, {"id": "t1"})
        op.status = OperationStatus.FAILED

        await sync_all([TASKS], retry_failed=True, store=store)

        assert len(store.queue) == 0
        assert "t1" in firestore.docs(TASKS)
