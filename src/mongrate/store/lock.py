"""
Migration lock.

A single document keyed by a fixed value in the lock collection. A unique
index on that key turns insert_one into an atomic try-lock: exactly one
concurrent caller gets the insert through, every other one hits a duplicate
key error.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from mongrate.config.settings import DEFAULT_LOCK_COLLECTION, DEFAULT_LOCK_STALENESS_SECONDS
from mongrate.core.types import LockRecord, utcnow
from mongrate.exceptions import LockError
from mongrate.store.indexes import ensure_unique_index
from mongrate.utils.logging import get_logger

logger = get_logger("mongrate.lock")

LOCK_KEY = "mongrate"


class LockStore:
    """Acquires, inspects and releases the migration lock."""

    def __init__(
        self,
        database: Database,
        collection_name: str = DEFAULT_LOCK_COLLECTION,
        staleness: timedelta = timedelta(seconds=DEFAULT_LOCK_STALENESS_SECONDS),
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the lock store.

        Args:
            database: Target database handle
            collection_name: Collection holding the lock document
            staleness: Age after which a held lock counts as abandoned
            clock: Source of naive-UTC "now"
        """
        self.database = database
        self.collection_name = collection_name
        self.staleness = staleness
        self._clock = clock
        self._indexes_ready = False

    @property
    def collection(self) -> Collection:
        return self.database[self.collection_name]

    def ensure_indexes(self) -> None:
        if self._indexes_ready:
            return
        try:
            ensure_unique_index(self.collection, ["key"])
        except PyMongoError as e:
            raise LockError(f"Could not prepare index on '{self.collection_name}': {e}") from e
        self._indexes_ready = True

    def acquire(self, owner: str) -> bool:
        """
        Try to take the lock.

        Returns:
            True if ``owner`` now holds the lock, False if someone else does
        """
        self.ensure_indexes()
        now = self._clock()
        record = LockRecord(key=LOCK_KEY, owner=owner, acquired_at=now, expires_at=now + self.staleness)
        try:
            self.collection.insert_one(record.to_document())
        except DuplicateKeyError:
            logger.debug(f"Lock already held; {owner} did not acquire it")
            return False
        logger.debug(f"Lock acquired by {owner}")
        return True

    def release(self, owner: str) -> bool:
        """Delete the lock if ``owner`` holds it. Returns whether a lock was removed."""
        result = self.collection.delete_one({"key": LOCK_KEY, "owner": owner})
        if result.deleted_count:
            logger.debug(f"Lock released by {owner}")
            return True
        logger.warning(f"Lock not released: {owner} does not hold it")
        return False

    def current(self) -> LockRecord | None:
        document = self.collection.find_one({"key": LOCK_KEY})
        return LockRecord.from_document(document) if document else None

    def is_locked(self) -> bool:
        """Diagnostic check only; acquire() is the sole way to take the lock."""
        record = self.current()
        return record is not None and not record.is_expired(self._clock())

    def reclaim_stale(self) -> bool:
        """
        Remove the lock if it is older than the staleness bound.

        Intended for operators or a scheduled job, never for the runner itself.
        """
        cutoff = self._clock() - self.staleness
        result = self.collection.delete_one({"key": LOCK_KEY, "acquired_at": {"$lte": cutoff}})
        if result.deleted_count:
            logger.warning(f"Reclaimed stale migration lock (acquired before {cutoff.isoformat()})")
            return True
        return False

    def force_release(self) -> bool:
        """Remove the lock regardless of owner or age."""
        result = self.collection.delete_one({"key": LOCK_KEY})
        if result.deleted_count:
            logger.warning("Migration lock forcibly released")
            return True
        return False
