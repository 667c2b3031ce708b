"""
Migration runner.

Takes the lock, discovers changesets, applies each new one exactly once,
re-invokes run-always changesets, and releases the lock on every exit path.
"""

from __future__ import annotations

import os
import socket
import uuid
from typing import Any

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from mongrate.config.settings import MigrationConfig
from mongrate.core.discovery import discover
from mongrate.core.helper import QueryHelper
from mongrate.core.types import (
    ChangeEntry,
    ChangesetDefinition,
    ChangesetOutcome,
    ChangesetResult,
    InvocationShape,
    RunReport,
    RunState,
    utcnow,
)
from mongrate.exceptions import ChangesetExecutionError, DuplicateApplicationError, LockUnavailableError
from mongrate.store.change_entries import ChangeEntryStore
from mongrate.store.lock import LockStore
from mongrate.utils.logging import get_logger

logger = get_logger("mongrate.runner")


def new_owner_id() -> str:
    """Identifier for one run: host, process and a random suffix."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex}"


class MigrationRunner:
    """
    Executes discovered changesets against one database.

    Examples:
        >>> config = MigrationConfig(uri="mongodb://localhost:27017/shop", scan="shop.migrations")
        >>> with MigrationRunner(config) as runner:
        ...     report = runner.execute()
    """

    def __init__(self, config: MigrationConfig, database: Database | None = None):
        """
        Initialize the runner.

        Args:
            config: Immutable runner settings
            database: Optional pre-built database handle; when omitted a
                MongoClient is created from ``config`` on first use and closed
                by close()
        """
        self.config = config
        self._database = database
        self._client: MongoClient | None = None

    # --- connection ----------------------------------------------------------

    @property
    def database_name(self) -> str | None:
        if self._database is not None:
            return self._database.name
        return self.config.database_name

    def _get_database(self) -> Database:
        if self._database is None:
            self._client = MongoClient(**self.config.client_kwargs())
            self._database = self._client[self.config.database_name]
        return self._database

    def close(self) -> None:
        """Close the client if this runner created it."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None

    def __enter__(self) -> MigrationRunner:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def change_entry_store(self) -> ChangeEntryStore:
        return ChangeEntryStore(self._get_database(), self.config.changelog_collection)

    def lock_store(self) -> LockStore:
        return LockStore(
            self._get_database(),
            self.config.lock_collection,
            staleness=self.config.lock_staleness,
        )

    # --- lifecycle -----------------------------------------------------------

    def on_startup(self) -> RunReport:
        """Hook for hosting frameworks: runs the migrations once wiring is complete."""
        return self.execute()

    def execute(self) -> RunReport:
        """
        Run all pending changesets.

        Returns:
            RunReport describing the final state and per-changeset outcomes

        Raises:
            ConfigurationError: Missing database name or scan target
            DiscoveryError: Invalid changelog definitions
            LockUnavailableError: Lock held elsewhere and ``fail_if_locked`` is set
        """
        report = RunReport(started_at=utcnow())

        if not self.config.enabled:
            logger.info("Mongrate is disabled. Exiting.")
            report.state = RunState.DISABLED
            report.completed_at = utcnow()
            return report

        self.config.validate(self._database.name if self._database is not None else None)

        owner = new_owner_id()
        report.owner = owner
        locks = self.lock_store()

        if not locks.acquire(owner):
            holder = locks.current()
            held_by = holder.owner if holder else "unknown"
            report.state = RunState.FAILED
            report.completed_at = utcnow()
            if self.config.fail_if_locked:
                raise LockUnavailableError(f"Migration lock is held by {held_by}", owner=held_by)
            logger.info(f"Mongrate did not acquire the lock (held by {held_by}); another instance is migrating")
            return report

        report.state = RunState.LOCK_ACQUIRED
        try:
            logger.info("Mongrate has started the data migration sequence..")
            changesets = discover(self.config.scan)
            report.state = RunState.EXECUTING
            entries = self.change_entry_store()
            for changeset in changesets:
                report.results.append(self._apply(changeset, entries))
        finally:
            self._release(locks, owner)
            report.state = RunState.LOCK_RELEASED

        report.state = RunState.DONE
        report.completed_at = utcnow()
        logger.info(
            f"Mongrate has finished: {report.applied} applied, {report.reapplied} reapplied, "
            f"{report.skipped} skipped, {report.failed} failed"
        )
        return report

    @staticmethod
    def _release(locks: LockStore, owner: str) -> None:
        # A failure here must not replace an exception already propagating from the run
        try:
            locks.release(owner)
        except PyMongoError as e:
            logger.error(
                f"Could not release the migration lock held by {owner}: {e}. "
                f"Remove it with 'mongrate lock reclaim' once it is stale"
            )

    def status(self) -> list[tuple[ChangesetDefinition, ChangeEntry | None]]:
        """
        Pair every discovered changeset with its ledger entry, if any.

        Read-only with respect to migrations: no lock is taken and nothing is invoked.
        """
        self.config.validate(self._database.name if self._database is not None else None)
        entries = self.change_entry_store()
        return [(cs, entries.get(cs.id, cs.author)) for cs in discover(self.config.scan)]

    # --- per changeset -------------------------------------------------------

    def _apply(self, changeset: ChangesetDefinition, entries: ChangeEntryStore) -> ChangesetResult:
        try:
            if entries.is_new(changeset.id, changeset.author):
                self._invoke(changeset)
                # Timestamp is taken after the changeset has run
                entries.save(ChangeEntry.for_changeset(changeset))
                logger.info(f"{changeset} applied")
                return self._result(changeset, ChangesetOutcome.APPLIED)
            if changeset.run_always:
                self._invoke(changeset)
                logger.info(f"{changeset} reapplied")
                return self._result(changeset, ChangesetOutcome.REAPPLIED)
            logger.info(f"{changeset} passed over")
            return self._result(changeset, ChangesetOutcome.SKIPPED_ALREADY_APPLIED)
        except DuplicateApplicationError:
            logger.warning(f"{changeset} was recorded concurrently by another runner; not recording it again")
            return self._result(changeset, ChangesetOutcome.SKIPPED_DUPLICATE_RACE)
        except ChangesetExecutionError as e:
            logger.error(f"{changeset} failed: {e.message}")
            return self._result(changeset, ChangesetOutcome.FAILED, str(e))

    def _invoke(self, changeset: ChangesetDefinition) -> Any:
        database = self._get_database()
        try:
            if changeset.shape == InvocationShape.DATABASE:
                logger.debug(f"{changeset.name}: method with Database argument")
                return changeset.func(database)
            if changeset.shape == InvocationShape.HELPER:
                logger.debug(f"{changeset.name}: method with QueryHelper argument")
                return changeset.func(QueryHelper(database))
            logger.debug(f"{changeset.name}: method with no params")
            return changeset.func()
        except ChangesetExecutionError as e:
            if e.changeset_id is None:
                e.changeset_id = changeset.id
                e.author = changeset.author
                e.details.update(changeset_id=changeset.id, author=changeset.author)
            raise
        except PyMongoError as e:
            raise ChangesetExecutionError(
                f"Changeset '{changeset.id}' database operation failed: {e}",
                changeset_id=changeset.id,
                author=changeset.author,
                cause=e,
            ) from e

    @staticmethod
    def _result(
        changeset: ChangesetDefinition, outcome: ChangesetOutcome, error_message: str | None = None
    ) -> ChangesetResult:
        return ChangesetResult(
            changeset_id=changeset.id,
            author=changeset.author,
            outcome=outcome,
            error_message=error_message,
        )
