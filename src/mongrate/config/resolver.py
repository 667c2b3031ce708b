"""
Placeholder substitution for loaded configuration.

    ${MONGO_URI}                  value of MONGO_URI, left as written when unset
    ${MONGO_URI:-mongodb://db/}   value of MONGO_URI, else the text after ":-"
    shop_{env}                    the active environment name
"""

import os
import re
from typing import Any

_VARIABLE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def resolve_config(config_data: dict[str, Any], env: str = "dev") -> dict[str, Any]:
    """
    Substitute placeholders in every string of a nested config mapping.

    Args:
        config_data: Mapping as read from YAML
        env: Active environment name

    Returns:
        A new mapping; the input is not modified
    """
    return _walk(config_data, env)


def resolve_string(text: str, env: str = "dev") -> str:
    return _VARIABLE.sub(_lookup, text).replace("{env}", env)


def _lookup(match: re.Match[str]) -> str:
    value = os.environ.get(match["name"])
    if value is not None:
        return value
    default = match["default"]
    return default if default is not None else match.group(0)


def _walk(node: Any, env: str) -> Any:
    if isinstance(node, dict):
        return {key: _walk(value, env) for key, value in node.items()}
    if isinstance(node, list):
        return [_walk(item, env) for item in node]
    if isinstance(node, str):
        return resolve_string(node, env)
    return node
