"""
Persistence: the change ledger and the migration lock.
"""

from mongrate.store.change_entries import ChangeEntryStore
from mongrate.store.lock import LOCK_KEY, LockStore

__all__ = [
    "ChangeEntryStore",
    "LockStore",
    "LOCK_KEY",
]
