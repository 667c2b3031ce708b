"""
Query helper handed to changesets that ask for it.

Wraps the same Database the runner uses. Driver errors raised through the
helper surface as ChangesetExecutionError, so the runner records the
changeset as failed and carries on with the next one.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from mongrate.exceptions import ChangesetExecutionError


@contextmanager
def _driver_errors(action: str, collection: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        raise ChangesetExecutionError(f"{action} on '{collection}' failed: {e}", cause=e) from e


class QueryHelper:
    """Convenience operations over a Database."""

    def __init__(self, database: Database):
        self.database = database

    def collection(self, name: str) -> Collection:
        return self.database[name]

    def find(self, name: str, query: Mapping[str, Any] | None = None, **kwargs: Any) -> list[dict[str, Any]]:
        with _driver_errors("find", name):
            return list(self.database[name].find(dict(query or {}), **kwargs))

    def find_one(self, name: str, query: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        with _driver_errors("find_one", name):
            return self.database[name].find_one(dict(query or {}))

    def insert(self, name: str, documents: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> int:
        """Insert one document or a list of documents; returns how many were written."""
        with _driver_errors("insert", name):
            if isinstance(documents, Mapping):
                self.database[name].insert_one(dict(documents))
                return 1
            docs = [dict(d) for d in documents]
            if not docs:
                return 0
            return len(self.database[name].insert_many(docs).inserted_ids)

    def update(
        self,
        name: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
        *,
        many: bool = False,
        upsert: bool = False,
    ) -> int:
        """Apply an update document; returns the modified count."""
        with _driver_errors("update", name):
            coll = self.database[name]
            if many:
                result = coll.update_many(dict(query), dict(update), upsert=upsert)
            else:
                result = coll.update_one(dict(query), dict(update), upsert=upsert)
            return result.modified_count

    def delete(self, name: str, query: Mapping[str, Any], *, many: bool = False) -> int:
        with _driver_errors("delete", name):
            coll = self.database[name]
            result = coll.delete_many(dict(query)) if many else coll.delete_one(dict(query))
            return result.deleted_count

    def create_index(self, name: str, keys: str | Sequence[tuple[str, int]], **kwargs: Any) -> str:
        with _driver_errors("create_index", name):
            if isinstance(keys, str):
                keys = [(keys, ASCENDING)]
            return self.database[name].create_index(list(keys), **kwargs)

    def rename_field(self, name: str, old: str, new: str) -> int:
        """Rename a field on every document that has it."""
        return self.update(name, {old: {"$exists": True}}, {"$rename": {old: new}}, many=True)

    def drop(self, name: str) -> None:
        with _driver_errors("drop", name):
            self.database.drop_collection(name)
