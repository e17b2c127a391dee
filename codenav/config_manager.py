"""Configuration manager for codenav using TOML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import toml

logger = logging.getLogger(__name__)


DEFAULT_LIMITS: Dict[str, int] = {
    "max_reexport_depth": 5,
    "impact_max_depth": 10,
    "max_candidates": 25,
    "high_fan_in_threshold": 5,
    "max_pattern_length": 200,
    "max_suggestions": 3,
}

DEFAULT_RESOLUTION: Dict[str, List[str]] = {
    "extensions": [".ts", ".tsx", ".js", ".jsx"],
}


def load_full_config(config_file: Path) -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_file, exc)
        return {}


def load_limits(config_file: Path) -> Dict[str, int]:
    """Load the ``[limits]`` section, filling gaps from :data:`DEFAULT_LIMITS`.

    Values that are not positive integers are ignored so a typo in the file
    can never disable a safety limit.
    """
    limits = dict(DEFAULT_LIMITS)
    section = load_full_config(config_file).get("limits", {})
    if not isinstance(section, dict):
        return limits
    for key, value in section.items():
        if key not in DEFAULT_LIMITS:
            continue
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            limits[key] = value
        else:
            logger.warning("Ignoring invalid value for limits.%s: %r", key, value)
    return limits


def load_resolution_config(config_file: Path) -> Dict[str, List[str]]:
    """Load the ``[resolution]`` section (probe extensions)."""
    resolution = {key: list(value) for key, value in DEFAULT_RESOLUTION.items()}
    section = load_full_config(config_file).get("resolution", {})
    if not isinstance(section, dict):
        return resolution
    extensions = section.get("extensions")
    if isinstance(extensions, list) and extensions and all(
        isinstance(ext, str) and ext.startswith(".") for ext in extensions
    ):
        resolution["extensions"] = extensions
    elif extensions is not None:
        logger.warning("Ignoring invalid resolution.extensions: %r", extensions)
    return resolution


def save_limits(config_file: Path, **overrides: int) -> bool:
    """Write limit overrides to the TOML file.

    Preserves other sections in the file.

    Returns:
        True if saved successfully, False otherwise
    """
    unknown = set(overrides) - set(DEFAULT_LIMITS)
    if unknown:
        raise ValueError(f"Unknown limit(s): {', '.join(sorted(unknown))}")

    config = load_full_config(config_file)
    limits = config.get("limits", {})
    limits.update(overrides)
    config["limits"] = limits

    config_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(config_file, "w", encoding="utf-8") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", config_file, exc)
        return False
