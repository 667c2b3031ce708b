"""
Configuration file loading.

Loads config.yaml and config.{env}.yaml from a project directory.
"""

from pathlib import Path
from typing import Any

import yaml

from mongrate.config.resolver import resolve_config
from mongrate.exceptions import ConfigurationError


class Config:
    """Loaded configuration; ``mongrate`` is the runner section."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.mongrate = data.get("mongrate") or {}

    def validate(self) -> None:
        """Validate configuration structure."""
        if not isinstance(self.data, dict):
            raise ConfigurationError(
                f"Configuration must be a dictionary/mapping, got {type(self.data).__name__}"
            )

        errors = []
        for section in ("mongrate", "logging"):
            value = self.data.get(section)
            if value is not None and not isinstance(value, dict):
                errors.append(f"Configuration '{section}' must be a dictionary, got {type(value).__name__}")

        if errors:
            raise ConfigurationError("\n".join(errors))


def load_config(project_path: Path | None = None, env: str | None = None) -> Config:
    """
    Load Mongrate configuration.

    Loads config.yaml and config.{env}.yaml, then substitutes environment
    variables and the {env} placeholder.

    Args:
        project_path: Path to project root (default: current directory)
        env: Environment name (dev, staging, prod)

    Returns:
        Config instance with merged configuration
    """
    if project_path is None:
        project_path = Path.cwd()

    base_config_path = project_path / "config.yaml"
    if not base_config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {base_config_path}\n"
            f"  Suggestion: Create a config.yaml file with a 'mongrate' section",
            details={"path": str(base_config_path)},
        )

    config_data = _read_yaml(base_config_path)

    if env:
        env_config_path = project_path / f"config.{env}.yaml"
        if env_config_path.exists():
            # Env overrides base
            _merge_dict(config_data, _read_yaml(env_config_path))

    config_data = resolve_config(config_data, env or "dev")

    config = Config(config_data)
    config.validate()
    return config


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping, reporting parse errors with their position."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        if hasattr(e, "problem_mark") and e.problem_mark is not None:
            mark = e.problem_mark
            raise ConfigurationError(
                f"Error parsing {path.name} at line {mark.line + 1}, column {mark.column + 1}:\n"
                f"  {e}\n"
                f"  File: {path}\n"
                f"  Suggestion: Check YAML syntax, ensure proper indentation and quotes",
                details={"path": str(path)},
            ) from e
        raise ConfigurationError(f"Error parsing {path.name}: {e}\n  File: {path}") from e
    except PermissionError as e:
        raise ConfigurationError(
            f"Permission denied reading {path.name}: {path}\n"
            f"  Suggestion: Check file permissions",
            details={"path": str(path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping, got {type(data).__name__}")
    return data


def _merge_dict(base: dict, override: dict):
    """Recursively merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_dict(base[key], value)
        else:
            base[key] = value
