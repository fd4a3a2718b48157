"""
canvasgraph.config - Configuration loading and defaults

Configuration comes from a ``.canvasgraph.toml`` file (found by walking up
from the working directory), deep-merged over DEFAULT_CONFIG, then
overridden by ``CANVASGRAPH_<SECTION>_<KEY>`` environment variables.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import ParseError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".canvasgraph.toml"
ENV_PREFIX = "CANVASGRAPH_"

DEFAULT_CONFIG: dict[str, Any] = {
    "history": {
        "max_entries": 100,
    },
    "trash": {
        "max_items": 50,
    },
    "context": {
        "default_depth": 2,
        "traversal_mode": "all",
        "recent_messages": 5,
        "chars_per_token": 4,
        "default_max_injection_tokens": 2000,
        "separator": "\n\n---\n\n",
    },
}


def parse_toml_document(content: str) -> tomlkit.TOMLDocument:
    """Parse TOML text, preserving formatting for round-trip edits."""
    return tomlkit.parse(content)


def parse_toml(content: str) -> dict[str, Any]:
    """Parse TOML text into plain Python dicts and lists."""
    return parse_toml_document(content).unwrap()


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Walk up from `start_dir` looking for a config file.

    Args:
        start_dir: Directory to start from (defaults to the cwd).

    Returns:
        Path to the first ``.canvasgraph.toml`` found, or None.
    """
    current = (start_dir or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge `override` onto a copy of `base`.

    Nested dicts merge key by key; any other value in `override` replaces
    the base value.
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_config(config_path: Path) -> dict[str, Any]:
    """Load a TOML config file merged over the defaults.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid TOML.
    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    try:
        user_config = parse_toml(config_path.read_text(encoding="utf-8"))
    except ParseError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e
    logger.debug("Loaded config from %s", config_path)
    return merge_configs(DEFAULT_CONFIG, user_config)


def _try_parse_env_value(value: str) -> Any:
    """Interpret an environment variable value.

    JSON arrays and objects are decoded (malformed JSON stays a string),
    ``true``/``false`` in any case become booleans, integers become ints,
    anything else is returned unchanged.
    """
    stripped = value.strip()
    if stripped.startswith(("[", "{")):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            return value
    lowered = stripped.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        return int(stripped)
    except ValueError:
        return value


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply ``CANVASGRAPH_<SECTION>_<KEY>`` overrides in place.

    The first segment after the prefix names the section; the remainder
    (lowercased) is the key. Missing sections are created.
    """
    for name, value in os.environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        remainder = name[len(ENV_PREFIX) :].lower()
        section, sep, key = remainder.partition("_")
        if not sep or not section or not key:
            continue
        target = config.setdefault(section, {})
        if not isinstance(target, dict):
            continue
        target[key] = _try_parse_env_value(value)
    return config


def get_config(
    config_path: Path | None = None,
    start_dir: Path | None = None,
) -> dict[str, Any]:
    """Resolve the effective configuration.

    Args:
        config_path: Explicit config file; searched for when omitted.
        start_dir: Where the search starts (defaults to the cwd).

    Returns:
        Defaults, merged with the config file if any, with environment
        overrides applied.
    """
    path = config_path or find_config_file(start_dir)
    if path is not None:
        config = load_config(path)
    else:
        config = copy.deepcopy(DEFAULT_CONFIG)
    return _apply_env_overrides(config)


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_CONFIG",
    "find_config_file",
    "get_config",
    "load_config",
    "merge_configs",
    "parse_toml",
    "parse_toml_document",
]
