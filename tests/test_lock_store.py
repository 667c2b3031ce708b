"""
Tests for the migration lock.
"""

from datetime import datetime, timedelta

from mongrate.core.types import LockRecord
from mongrate.store.indexes import find_index, is_unique
from mongrate.store.lock import LOCK_KEY, LockStore

T0 = datetime(2024, 1, 15, 10, 0, 0)


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def _store(database, clock=None, staleness=timedelta(minutes=10)):
    return LockStore(database, "mongratelock", staleness=staleness, clock=clock or FakeClock())


class TestAcquire:
    """Tests for acquire/release."""

    def test_acquire_free_lock(self, database):
        assert _store(database).acquire("runner-1") is True

    def test_second_acquire_fails(self, database):
        assert _store(database).acquire("runner-1") is True
        assert _store(database).acquire("runner-2") is False

    def test_same_owner_cannot_reacquire(self, database):
        store = _store(database)
        assert store.acquire("runner-1") is True
        assert store.acquire("runner-1") is False

    def test_exactly_one_of_many_wins(self, database):
        results = [_store(database).acquire(f"runner-{i}") for i in range(10)]
        assert results.count(True) == 1
        assert database["mongratelock"].count_documents({}) == 1

    def test_unique_index_on_key(self, database):
        _store(database).acquire("runner-1")
        index = find_index(database["mongratelock"], ["key"])
        assert index is not None and is_unique(index)

    def test_record_contents(self, database):
        _store(database).acquire("runner-1")
        record = _store(database).current()
        assert record == LockRecord(
            key=LOCK_KEY,
            owner="runner-1",
            acquired_at=T0,
            expires_at=T0 + timedelta(minutes=10),
        )

    def test_release_by_owner(self, database):
        store = _store(database)
        store.acquire("runner-1")
        assert store.release("runner-1") is True
        assert store.current() is None
        assert store.acquire("runner-2") is True

    def test_release_by_non_owner_is_refused(self, database):
        store = _store(database)
        store.acquire("runner-1")
        assert store.release("runner-2") is False
        assert store.current().owner == "runner-1"

    def test_release_when_free(self, database):
        assert _store(database).release("runner-1") is False


class TestDiagnostics:
    def test_is_locked(self, database):
        clock = FakeClock()
        store = _store(database, clock)
        assert store.is_locked() is False
        store.acquire("runner-1")
        assert store.is_locked() is True

    def test_expired_lock_not_reported_as_locked(self, database):
        clock = FakeClock()
        store = _store(database, clock)
        store.acquire("runner-1")
        clock.advance(minutes=11)
        assert store.is_locked() is False
        # Still physically present until reclaimed
        assert store.current() is not None

    def test_is_locked_does_not_acquire(self, database):
        store = _store(database)
        store.is_locked()
        assert store.current() is None


class TestReclaim:
    def test_reclaim_stale(self, database):
        clock = FakeClock()
        store = _store(database, clock)
        store.acquire("hung-runner")
        clock.advance(minutes=10, seconds=1)
        assert store.reclaim_stale() is True
        assert store.acquire("runner-2") is True

    def test_reclaim_keeps_fresh_lock(self, database):
        clock = FakeClock()
        store = _store(database, clock)
        store.acquire("runner-1")
        clock.advance(minutes=5)
        assert store.reclaim_stale() is False
        assert store.current().owner == "runner-1"

    def test_reclaim_when_free(self, database):
        assert _store(database).reclaim_stale() is False

    def test_force_release(self, database):
        store = _store(database)
        store.acquire("runner-1")
        assert store.force_release() is True
        assert store.current() is None
        assert store.force_release() is False

    def test_stale_owner_cannot_release_reclaimed_lock(self, database):
        clock = FakeClock()
        store = _store(database, clock)
        store.acquire("hung-runner")
        clock.advance(minutes=20)
        store.reclaim_stale()
        store.acquire("runner-2")
        assert store.release("hung-runner") is False
        assert store.current().owner == "runner-2"


class TestLockRecord:
    def test_is_expired(self):
        record = LockRecord(key=LOCK_KEY, owner="o", acquired_at=T0, expires_at=T0 + timedelta(minutes=1))
        assert record.is_expired(T0) is False
        assert record.is_expired(T0 + timedelta(minutes=1)) is True
