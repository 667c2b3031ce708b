"""
Unique index maintenance shared by the ledger and the lock collection.
"""

from collections.abc import Sequence
from typing import Any

from pymongo import ASCENDING
from pymongo.collection import Collection

from mongrate.utils.logging import get_logger

logger = get_logger("mongrate.store")


def find_index(collection: Collection, fields: Sequence[str]) -> dict[str, Any] | None:
    """
    Return the index whose key set is exactly ``fields``, with its name under 'name'.

    Indexes over additional fields do not match: a unique index on
    (change_id, author, timestamp) does not make (change_id, author) unique.
    """
    wanted = set(fields)
    for name, info in collection.index_information().items():
        keys = [key for key, _ in info.get("key", [])]
        if len(keys) == len(wanted) and set(keys) == wanted:
            return {**info, "name": name}
    return None


def is_unique(index: dict[str, Any]) -> bool:
    return index.get("unique") is True


def ensure_unique_index(collection: Collection, fields: Sequence[str]) -> None:
    """
    Make sure a unique index over exactly ``fields`` exists.

    An existing non-unique index over the same keys is dropped and recreated
    as unique. Indexes over other key sets are left alone.
    """
    index = find_index(collection, fields)
    if index is not None and is_unique(index):
        return

    if index is not None:
        logger.info(f"Index '{index['name']}' on {collection.name} is not unique; recreating it")
        collection.drop_index(index["name"])

    collection.create_index([(f, ASCENDING) for f in fields], unique=True)
    logger.debug(f"Created unique index on {collection.name} ({', '.join(fields)})")
