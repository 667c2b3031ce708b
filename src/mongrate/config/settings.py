"""
Runner settings.

MigrationConfig is the immutable value handed to MigrationRunner. It can be
built directly, from a plain mapping, or from the 'mongrate' section of a
loaded config.yaml.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Any

from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import InvalidURI
from pymongo.uri_parser import parse_uri

from mongrate.config.loader import Config
from mongrate.exceptions import ConfigurationError

DEFAULT_URI = "mongodb://localhost:27017/"
DEFAULT_CHANGELOG_COLLECTION = "dbchangelog"
DEFAULT_LOCK_COLLECTION = "mongratelock"
# A run holding the lock longer than this is treated as hung
DEFAULT_LOCK_STALENESS_SECONDS = 600


@dataclass(frozen=True)
class MigrationConfig:
    """
    Configuration for a migration run.

    Examples:
        >>> MigrationConfig(uri="mongodb://db1:27017/shop", scan="shop.migrations")

        >>> MigrationConfig(
        ...     hosts=["db1:27017", "db2:27017"],
        ...     username="migrator",
        ...     password="secret",
        ...     database="shop",
        ...     scan="shop.migrations",
        ... )
    """

    # Connection string; takes precedence over hosts
    uri: str | None = None

    # host[:port] entries used when no uri is given
    hosts: tuple[str, ...] = ()

    username: str | None = None
    password: str | None = field(default=None, repr=False)
    auth_source: str | None = None

    # Target database; falls back to the database named in the uri
    database: str | None = None

    # Dotted module/package path holding changelog definitions
    scan: str | None = None

    # When False, execute() only logs and returns
    enabled: bool = True

    changelog_collection: str = DEFAULT_CHANGELOG_COLLECTION
    lock_collection: str = DEFAULT_LOCK_COLLECTION
    lock_staleness_seconds: float = DEFAULT_LOCK_STALENESS_SECONDS

    # Raise LockUnavailableError instead of ending the run quietly
    fail_if_locked: bool = False

    def __post_init__(self):
        """Normalise and sanity-check field types."""
        if isinstance(self.hosts, str):
            object.__setattr__(self, "hosts", (self.hosts,))
        else:
            object.__setattr__(self, "hosts", tuple(self.hosts or ()))
        if self.lock_staleness_seconds <= 0:
            raise ConfigurationError("lock_staleness_seconds must be > 0")
        if not self.changelog_collection or not self.lock_collection:
            raise ConfigurationError("changelog_collection and lock_collection must be non-empty")
        if self.changelog_collection == self.lock_collection:
            raise ConfigurationError("changelog_collection and lock_collection must differ")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> MigrationConfig:
        """Build settings from a plain mapping, ignoring unknown keys."""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Mongrate settings must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known and v is not None}
        if "enabled" in kwargs:
            kwargs["enabled"] = _as_bool(kwargs["enabled"], "enabled")
        if "fail_if_locked" in kwargs:
            kwargs["fail_if_locked"] = _as_bool(kwargs["fail_if_locked"], "fail_if_locked")
        if "lock_staleness_seconds" in kwargs:
            try:
                kwargs["lock_staleness_seconds"] = float(kwargs["lock_staleness_seconds"])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"lock_staleness_seconds must be a number, got {kwargs['lock_staleness_seconds']!r}"
                ) from e
        return cls(**kwargs)

    @classmethod
    def from_config(cls, config: Config) -> MigrationConfig:
        """Build settings from the 'mongrate' section of a loaded config."""
        return cls.from_mapping(config.mongrate)

    @property
    def lock_staleness(self) -> timedelta:
        return timedelta(seconds=self.lock_staleness_seconds)

    @property
    def database_name(self) -> str | None:
        """Explicit database name, else the one embedded in the uri."""
        if self.database and self.database.strip():
            return self.database.strip()
        if not self.uri:
            return None
        try:
            parsed = parse_uri(self.uri)
        except (InvalidURI, PyMongoConfigurationError) as e:
            raise ConfigurationError(f"Invalid MongoDB URI: {e}") from e
        return parsed.get("database") or None

    def validate(self, database_name: str | None = None) -> None:
        """
        Fail fast when the run could not possibly start.

        Args:
            database_name: Name of a pre-built database handle, if one is used
        """
        if not (database_name or self.database_name):
            raise ConfigurationError(
                "Database name is not set. It should be defined in the MongoDB URI or as 'database'"
            )
        if not self.scan or not self.scan.strip():
            raise ConfigurationError("Scan target for changelogs is not set: define 'scan' as a module path")

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for pymongo.MongoClient."""
        kwargs: dict[str, Any] = {"host": self.uri or list(self.hosts) or DEFAULT_URI}
        if self.username is not None:
            kwargs["username"] = self.username
        if self.password is not None:
            kwargs["password"] = self.password
        if self.auth_source is not None:
            kwargs["authSource"] = self.auth_source
        return kwargs


def _as_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1", "on"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "0", "off"):
        return False
    raise ConfigurationError(f"'{name}' must be a boolean, got {value!r}")
