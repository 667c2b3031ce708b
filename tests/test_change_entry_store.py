"""
Tests for the change ledger.
"""

from datetime import datetime

import pytest
from pymongo import ASCENDING

from mongrate.core.types import ChangeEntry
from mongrate.exceptions import DuplicateApplicationError
from mongrate.store.change_entries import ChangeEntryStore
from mongrate.store.indexes import find_index, is_unique


def _entry(change_id="c1", author="dev", timestamp=None):
    return ChangeEntry(
        change_id=change_id,
        author=author,
        timestamp=timestamp or datetime(2024, 1, 15, 10, 30, 0),
        changelog_class="tests.Changelog",
        changeset_method="method",
    )


class TestIndexes:
    """Tests for unique index maintenance."""

    def test_creates_unique_index_on_first_use(self, database):
        store = ChangeEntryStore(database)
        store.is_new("c1", "dev")
        index = find_index(database["dbchangelog"], ["change_id", "author"])
        assert index is not None
        assert is_unique(index)

    def test_recreates_non_unique_index(self, database):
        collection = database["dbchangelog"]
        collection.create_index([("change_id", ASCENDING), ("author", ASCENDING)])
        assert not is_unique(find_index(collection, ["change_id", "author"]))

        ChangeEntryStore(database).ensure_indexes()

        assert is_unique(find_index(collection, ["change_id", "author"]))

    def test_existing_unique_index_kept(self, database):
        collection = database["dbchangelog"]
        collection.create_index([("change_id", ASCENDING), ("author", ASCENDING)], unique=True, name="keep_me")
        ChangeEntryStore(database).ensure_indexes()
        assert find_index(collection, ["change_id", "author"])["name"] == "keep_me"

    def test_unique_index_on_wider_key_set_not_accepted(self, database):
        collection = database["dbchangelog"]
        collection.create_index(
            [("change_id", ASCENDING), ("author", ASCENDING), ("timestamp", ASCENDING)], unique=True
        )
        store = ChangeEntryStore(database)

        store.save(_entry(timestamp=datetime(2024, 1, 1)))
        with pytest.raises(DuplicateApplicationError):
            store.save(_entry(timestamp=datetime(2024, 2, 1)))

        assert store.count() == 1
        assert is_unique(find_index(collection, ["change_id", "author"]))

    def test_non_unique_index_on_wider_key_set_kept(self, database):
        collection = database["dbchangelog"]
        collection.create_index(
            [("change_id", ASCENDING), ("author", ASCENDING), ("timestamp", ASCENDING)], name="by_time"
        )

        ChangeEntryStore(database).ensure_indexes()

        indexes = collection.index_information()
        assert "by_time" in indexes
        assert not indexes["by_time"].get("unique")
        assert is_unique(find_index(collection, ["change_id", "author"]))

    def test_find_index_ignores_key_order(self, database):
        collection = database["dbchangelog"]
        collection.create_index([("author", ASCENDING), ("change_id", ASCENDING)], unique=True, name="reversed")
        assert find_index(collection, ["change_id", "author"])["name"] == "reversed"

    def test_custom_collection_name(self, database):
        store = ChangeEntryStore(database, "custom_log")
        store.save(_entry())
        assert database["custom_log"].count_documents({}) == 1
        assert database["dbchangelog"].count_documents({}) == 0


class TestLedger:
    """Tests for is_new/save/get."""

    def test_is_new_true_for_unknown(self, database):
        assert ChangeEntryStore(database).is_new("c1", "dev") is True

    def test_is_new_false_after_save(self, database):
        store = ChangeEntryStore(database)
        store.save(_entry())
        assert store.is_new("c1", "dev") is False

    def test_key_includes_author(self, database):
        store = ChangeEntryStore(database)
        store.save(_entry(author="alice"))
        assert store.is_new("c1", "bob") is True

    def test_save_duplicate_raises(self, database):
        store = ChangeEntryStore(database)
        store.save(_entry())
        with pytest.raises(DuplicateApplicationError) as exc_info:
            store.save(_entry(timestamp=datetime(2024, 2, 1)))
        assert exc_info.value.change_id == "c1"
        assert store.count() == 1

    def test_duplicate_across_store_instances(self, database):
        ChangeEntryStore(database).save(_entry())
        with pytest.raises(DuplicateApplicationError):
            ChangeEntryStore(database).save(_entry())

    def test_document_layout(self, database):
        ChangeEntryStore(database).save(_entry())
        document = database["dbchangelog"].find_one({}, projection={"_id": 0})
        assert document == {
            "change_id": "c1",
            "author": "dev",
            "timestamp": datetime(2024, 1, 15, 10, 30, 0),
            "changelog_class": "tests.Changelog",
            "changeset_method": "method",
        }

    def test_get(self, database):
        store = ChangeEntryStore(database)
        store.save(_entry())
        assert store.get("c1", "dev") == _entry()
        assert store.get("c2", "dev") is None

    def test_find_all_oldest_first(self, database):
        store = ChangeEntryStore(database)
        store.save(_entry("late", timestamp=datetime(2024, 3, 1)))
        store.save(_entry("early", timestamp=datetime(2024, 1, 1)))
        assert [e.change_id for e in store.find_all()] == ["early", "late"]


class TestChangeEntry:
    def test_round_trip_document(self):
        entry = _entry()
        assert ChangeEntry.from_document(entry.to_document()) == entry

    def test_str(self):
        assert str(_entry()) == "ChangeEntry[id=c1, author=dev, changelog=tests.Changelog, method=method]"

    def test_document_without_timestamp_rejected(self):
        with pytest.raises(KeyError):
            ChangeEntry.from_document({"change_id": "c1", "author": "dev"})

    def test_optional_fields_may_be_missing(self):
        entry = ChangeEntry.from_document({"change_id": "c1", "author": "dev", "timestamp": datetime(2024, 1, 1)})
        assert entry.changelog_class is None
        assert entry.changeset_method is None
