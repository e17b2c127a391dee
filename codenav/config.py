"""Configuration paths and tunable limits for codenav."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("CODENAV_HOME", str(Path.home() / ".codenav"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Load overrides from TOML file (if present)
from .config_manager import load_limits, load_resolution_config  # noqa: E402

_limits = load_limits(CONFIG_FILE)
_resolution = load_resolution_config(CONFIG_FILE)

# Re-export chains deeper than this are reported as unresolved.  This is the
# only guard against cyclic re-exports.
MAX_REEXPORT_DEPTH: int = _limits["max_reexport_depth"]

IMPACT_MAX_DEPTH: int = _limits["impact_max_depth"]
MAX_CANDIDATES: int = _limits["max_candidates"]
HIGH_FAN_IN_THRESHOLD: int = _limits["high_fan_in_threshold"]
MAX_PATTERN_LENGTH: int = _limits["max_pattern_length"]
MAX_SUGGESTIONS: int = _limits["max_suggestions"]

# Probed in order when turning a relative specifier into a file path.
RESOLVE_EXTENSIONS = tuple(_resolution["extensions"])
