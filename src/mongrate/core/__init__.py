"""
Core migration engine: registration, discovery and the runner.
"""

from mongrate.core.changelog import Changelog, changelog, changeset, resolve_invocation_shape
from mongrate.core.discovery import discover, load_changelogs
from mongrate.core.helper import QueryHelper
from mongrate.core.runner import MigrationRunner
from mongrate.core.types import (
    ChangeEntry,
    ChangelogDefinition,
    ChangesetDefinition,
    ChangesetOutcome,
    ChangesetResult,
    InvocationShape,
    LockRecord,
    RunReport,
    RunState,
)

__all__ = [
    "Changelog",
    "changelog",
    "changeset",
    "resolve_invocation_shape",
    "discover",
    "load_changelogs",
    "QueryHelper",
    "MigrationRunner",
    "ChangeEntry",
    "ChangelogDefinition",
    "ChangesetDefinition",
    "ChangesetOutcome",
    "ChangesetResult",
    "InvocationShape",
    "LockRecord",
    "RunReport",
    "RunState",
]
