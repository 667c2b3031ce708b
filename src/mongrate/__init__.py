"""
Mongrate - ordered, run-once changeset migrations for MongoDB.
"""

__version__ = "0.1.0"

from mongrate.config import MigrationConfig, load_config
from mongrate.core import (
    ChangeEntry,
    Changelog,
    ChangesetOutcome,
    MigrationRunner,
    QueryHelper,
    RunReport,
    RunState,
    changelog,
    changeset,
    discover,
)
from mongrate.exceptions import (
    ChangesetExecutionError,
    ConfigurationError,
    DiscoveryError,
    DuplicateApplicationError,
    LockError,
    LockUnavailableError,
    MongrateError,
    StoreError,
)
from mongrate.hooks import install_startup_hook, startup_hook
from mongrate.store import ChangeEntryStore, LockStore
from mongrate.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    # Registration
    "changelog",
    "changeset",
    "Changelog",
    "QueryHelper",
    # Execution
    "MigrationRunner",
    "MigrationConfig",
    "RunReport",
    "RunState",
    "ChangesetOutcome",
    "ChangeEntry",
    "discover",
    "load_config",
    # Stores
    "ChangeEntryStore",
    "LockStore",
    # Hooks
    "startup_hook",
    "install_startup_hook",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    # Exceptions
    "MongrateError",
    "ConfigurationError",
    "DiscoveryError",
    "ChangesetExecutionError",
    "DuplicateApplicationError",
    "LockError",
    "LockUnavailableError",
    "StoreError",
]
