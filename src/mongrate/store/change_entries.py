"""
Change ledger.

One document per applied changeset in the changelog collection. Uniqueness of
(change_id, author) is enforced by a unique index, so two runners racing on
the same changeset cannot both record it.
"""

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from mongrate.config.settings import DEFAULT_CHANGELOG_COLLECTION
from mongrate.core.types import ChangeEntry
from mongrate.exceptions import DuplicateApplicationError, StoreError
from mongrate.store.indexes import ensure_unique_index


class ChangeEntryStore:
    """Reads and writes ChangeEntry documents."""

    def __init__(self, database: Database, collection_name: str = DEFAULT_CHANGELOG_COLLECTION):
        """
        Initialize the ledger.

        Args:
            database: Target database handle
            collection_name: Collection holding change entries
        """
        self.database = database
        self.collection_name = collection_name
        self._indexes_ready = False

    @property
    def collection(self) -> Collection:
        return self.database[self.collection_name]

    def ensure_indexes(self) -> None:
        """
        Make sure the unique (change_id, author) index exists.

        A non-unique index over the same keys is dropped and recreated as unique.
        """
        if self._indexes_ready:
            return

        try:
            ensure_unique_index(self.collection, [ChangeEntry.KEY_CHANGE_ID, ChangeEntry.KEY_AUTHOR])
        except PyMongoError as e:
            raise StoreError(
                f"Could not prepare index on '{self.collection_name}': {e}",
                details={"collection": self.collection_name},
            ) from e

        self._indexes_ready = True

    def is_new(self, change_id: str, author: str) -> bool:
        """True when no entry exists for (change_id, author)."""
        self.ensure_indexes()
        existing = self.collection.find_one(
            {ChangeEntry.KEY_CHANGE_ID: change_id, ChangeEntry.KEY_AUTHOR: author},
            projection={"_id": 1},
        )
        return existing is None

    def save(self, entry: ChangeEntry) -> None:
        """
        Persist a new entry.

        Raises:
            DuplicateApplicationError: If (change_id, author) is already recorded
        """
        self.ensure_indexes()
        try:
            self.collection.insert_one(entry.to_document())
        except DuplicateKeyError as e:
            raise DuplicateApplicationError(entry.change_id, entry.author) from e

    def get(self, change_id: str, author: str) -> ChangeEntry | None:
        self.ensure_indexes()
        document = self.collection.find_one({ChangeEntry.KEY_CHANGE_ID: change_id, ChangeEntry.KEY_AUTHOR: author})
        return ChangeEntry.from_document(document) if document else None

    def find_all(self) -> list[ChangeEntry]:
        """All recorded entries, oldest first."""
        self.ensure_indexes()
        cursor = self.collection.find().sort(ChangeEntry.KEY_TIMESTAMP, ASCENDING)
        return [ChangeEntry.from_document(doc) for doc in cursor]

    def count(self) -> int:
        return self.collection.count_documents({})
