"""
Type definitions for Mongrate.

Descriptors attached at registration, discovered definitions, persisted
records and the outcome types reported by a run.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

#: Declared sequencing value for changelogs and changesets
OrderValue = str | int | float


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form pymongo hands back by default."""
    return datetime.now(UTC).replace(tzinfo=None)


def order_key(order: OrderValue) -> tuple[int, float, str]:
    """
    Sort key for declared order values.

    Numbers sort numerically and before strings; strings sort lexicographically
    ("001" < "002" < "010").
    """
    if isinstance(order, bool):
        raise TypeError("order must be a string or a number, not bool")
    if isinstance(order, (int, float)):
        return (0, float(order), "")
    return (1, 0.0, str(order))


class InvocationShape(StrEnum):
    """Supported changeset signatures."""

    NO_ARGS = "no_args"  # def change(): ...
    DATABASE = "database"  # def change(db: Database): ...
    HELPER = "helper"  # def change(helper: QueryHelper): ...


# ---------------------------------------------------------------------------
# Registration descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChangelogDescriptor:
    """Metadata attached to a class by @changelog."""

    order: OrderValue = ""
    name: str | None = None


@dataclass(frozen=True)
class ChangesetDescriptor:
    """Metadata attached to a function or method by @changeset."""

    id: str
    author: str
    order: OrderValue
    run_always: bool = False

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("changeset id must be a non-empty string")
        if not isinstance(self.author, str) or not self.author.strip():
            raise ValueError("changeset author must be a non-empty string")
        order_key(self.order)


# ---------------------------------------------------------------------------
# Discovered definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChangesetDefinition:
    """A discovered unit of migration logic, ready to invoke."""

    id: str
    author: str
    order: OrderValue
    run_always: bool
    func: Callable[..., Any] = field(repr=False, compare=False)
    shape: InvocationShape
    changelog: str
    name: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.author)

    def __str__(self) -> str:
        return f"ChangeSet[id={self.id}, author={self.author}, changelog={self.changelog}, method={self.name}]"


@dataclass(frozen=True)
class ChangelogDefinition:
    """An ordered container of changesets."""

    name: str
    order: OrderValue
    changesets: tuple[ChangesetDefinition, ...] = ()


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChangeEntry:
    """One applied changeset, as stored in the changelog collection."""

    KEY_CHANGE_ID = "change_id"
    KEY_AUTHOR = "author"
    KEY_TIMESTAMP = "timestamp"
    KEY_CHANGELOG_CLASS = "changelog_class"
    KEY_CHANGESET_METHOD = "changeset_method"

    change_id: str
    author: str
    timestamp: datetime
    changelog_class: str | None = None
    changeset_method: str | None = None

    @classmethod
    def for_changeset(cls, changeset: ChangesetDefinition, timestamp: datetime | None = None) -> ChangeEntry:
        return cls(
            change_id=changeset.id,
            author=changeset.author,
            timestamp=timestamp or utcnow(),
            changelog_class=changeset.changelog,
            changeset_method=changeset.name,
        )

    def to_document(self) -> dict[str, Any]:
        return {
            self.KEY_CHANGE_ID: self.change_id,
            self.KEY_AUTHOR: self.author,
            self.KEY_TIMESTAMP: self.timestamp,
            self.KEY_CHANGELOG_CLASS: self.changelog_class,
            self.KEY_CHANGESET_METHOD: self.changeset_method,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> ChangeEntry:
        return cls(
            change_id=document[cls.KEY_CHANGE_ID],
            author=document[cls.KEY_AUTHOR],
            timestamp=document[cls.KEY_TIMESTAMP],
            changelog_class=document.get(cls.KEY_CHANGELOG_CLASS),
            changeset_method=document.get(cls.KEY_CHANGESET_METHOD),
        )

    def __str__(self) -> str:
        return (
            f"ChangeEntry[id={self.change_id}, author={self.author}, "
            f"changelog={self.changelog_class}, method={self.changeset_method}]"
        )


@dataclass(frozen=True)
class LockRecord:
    """The singleton lock document."""

    key: str
    owner: str
    acquired_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def to_document(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "owner": self.owner,
            "acquired_at": self.acquired_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> LockRecord:
        return cls(
            key=document["key"],
            owner=document["owner"],
            acquired_at=document["acquired_at"],
            expires_at=document["expires_at"],
        )


# ---------------------------------------------------------------------------
# Run outcomes
# ---------------------------------------------------------------------------


class ChangesetOutcome(StrEnum):
    """What happened to one changeset during a run."""

    APPLIED = "applied"
    REAPPLIED = "reapplied"  # run_always changeset invoked again, no new entry
    SKIPPED_ALREADY_APPLIED = "skipped_already_applied"
    SKIPPED_DUPLICATE_RACE = "skipped_duplicate_race"  # another runner wrote the entry first
    FAILED = "failed"


class RunState(StrEnum):
    """Runner state machine."""

    IDLE = "idle"
    DISABLED = "disabled"
    LOCK_ACQUIRED = "lock_acquired"
    EXECUTING = "executing"
    LOCK_RELEASED = "lock_released"
    DONE = "done"
    FAILED = "failed"  # lock unavailable


@dataclass
class ChangesetResult:
    """Outcome of one changeset."""

    changeset_id: str
    author: str
    outcome: ChangesetOutcome
    error_message: str | None = None


@dataclass
class RunReport:
    """Summary of one execute() call."""

    state: RunState = RunState.IDLE
    owner: str | None = None
    results: list[ChangesetResult] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def count(self, outcome: ChangesetOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def applied(self) -> int:
        return self.count(ChangesetOutcome.APPLIED)

    @property
    def reapplied(self) -> int:
        return self.count(ChangesetOutcome.REAPPLIED)

    @property
    def skipped(self) -> int:
        return self.count(ChangesetOutcome.SKIPPED_ALREADY_APPLIED) + self.count(
            ChangesetOutcome.SKIPPED_DUPLICATE_RACE
        )

    @property
    def failed(self) -> int:
        return self.count(ChangesetOutcome.FAILED)

    @property
    def succeeded(self) -> bool:
        """True when the run completed and no changeset failed."""
        return self.state == RunState.DONE and self.failed == 0
