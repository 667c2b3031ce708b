"""
Configuration management.

Configuration file parsing, environment resolution and runner settings.
"""

from mongrate.config.loader import Config, load_config
from mongrate.config.resolver import resolve_config
from mongrate.config.settings import MigrationConfig

__all__ = [
    "load_config",
    "Config",
    "resolve_config",
    "MigrationConfig",
]
