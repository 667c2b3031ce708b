"""
Mongrate exception hierarchy.

All domain-specific exceptions inherit from MongrateError, so callers can
catch any runner failure with one base class and still handle the expected
conditions (lock contention, duplicate application) individually.

Hierarchy::

    MongrateError
    ├── ConfigurationError          - missing database name / scan target, bad YAML
    ├── DiscoveryError              - unsupported changeset signature, import failure
    ├── ChangesetExecutionError     - a changeset's own logic failed (recoverable)
    ├── DuplicateApplicationError   - ledger entry already written by another runner
    ├── LockError                   - lock collection problems
    │   └── LockUnavailableError    - another runner holds the lock
    └── StoreError                  - ledger / index maintenance failures
"""

from __future__ import annotations


class MongrateError(Exception):
    """Base exception for all Mongrate errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(MongrateError):
    """Raised when runner configuration is missing or invalid."""


# --- Discovery ---------------------------------------------------------------


class DiscoveryError(MongrateError):
    """Raised when changelog definitions cannot be enumerated or are invalid.

    Always fatal: the run stops before any changeset is invoked.
    """


# --- Changesets --------------------------------------------------------------


class ChangesetExecutionError(MongrateError):
    """Raised by changeset logic to signal a recoverable, per-changeset failure.

    The runner logs it, records a ``failed`` outcome and moves on. No ledger
    entry is written, so the changeset is retried on the next run.
    """

    def __init__(
        self,
        message: str,
        *,
        changeset_id: str | None = None,
        author: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, details={"changeset_id": changeset_id, "author": author})
        self.changeset_id = changeset_id
        self.author = author
        if cause is not None:
            self.__cause__ = cause


class DuplicateApplicationError(MongrateError):
    """Raised by the ledger when (change_id, author) is already recorded."""

    def __init__(self, change_id: str, author: str) -> None:
        super().__init__(
            f"Changeset '{change_id}' by '{author}' is already recorded",
            details={"change_id": change_id, "author": author},
        )
        self.change_id = change_id
        self.author = author


# --- Lock --------------------------------------------------------------------


class LockError(MongrateError):
    """Raised when the migration lock cannot be read or written."""


class LockUnavailableError(LockError):
    """Raised when another runner holds the migration lock."""

    def __init__(self, message: str, *, owner: str | None = None) -> None:
        super().__init__(message, details={"owner": owner})
        self.owner = owner


# --- Store -------------------------------------------------------------------


class StoreError(MongrateError):
    """Raised when the change ledger cannot be prepared or read."""
