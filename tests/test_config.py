"""Tests for TOML-backed configuration."""

from pathlib import Path

import pytest
import toml

from codenav.config_manager import (
    DEFAULT_LIMITS,
    load_full_config,
    load_limits,
    load_resolution_config,
    save_limits,
)


class TestLoadLimits:
    """Tests for reading the [limits] table."""

    def test_missing_file_gives_defaults(self, temp_dir: Path):
        assert load_limits(temp_dir / "absent.toml") == DEFAULT_LIMITS

    def test_overrides(self, temp_dir: Path):
        path = temp_dir / "config.toml"
        path.write_text("[limits]\nmax_candidates = 10\nmax_reexport_depth = 3\n", encoding="utf-8")
        limits = load_limits(path)
        assert limits["max_candidates"] == 10
        assert limits["max_reexport_depth"] == 3
        assert limits["max_pattern_length"] == DEFAULT_LIMITS["max_pattern_length"]

    def test_invalid_values_ignored(self, temp_dir: Path):
        path = temp_dir / "config.toml"
        path.write_text(
            '[limits]\nmax_candidates = 0\nmax_pattern_length = "big"\nimpact_max_depth = true\nunknown = 4\n',
            encoding="utf-8",
        )
        assert load_limits(path) == DEFAULT_LIMITS

    def test_unparsable_file(self, temp_dir: Path):
        path = temp_dir / "config.toml"
        path.write_text("[limits]\nmax_candidates = \n", encoding="utf-8")
        assert load_full_config(path) == {}
        assert load_limits(path) == DEFAULT_LIMITS


class TestResolutionConfig:
    """Tests for reading the [resolution] table."""

    def test_defaults(self, temp_dir: Path):
        assert load_resolution_config(temp_dir / "absent.toml")["extensions"] == [".ts", ".tsx", ".js", ".jsx"]

    def test_override(self, temp_dir: Path):
        path = temp_dir / "config.toml"
        path.write_text('[resolution]\nextensions = [".mjs", ".js"]\n', encoding="utf-8")
        assert load_resolution_config(path)["extensions"] == [".mjs", ".js"]

    def test_invalid_extensions_ignored(self, temp_dir: Path):
        path = temp_dir / "config.toml"
        path.write_text('[resolution]\nextensions = ["ts"]\n', encoding="utf-8")
        assert load_resolution_config(path)["extensions"] == [".ts", ".tsx", ".js", ".jsx"]


class TestSaveLimits:
    """Tests for writing overrides."""

    def test_round_trip_preserves_other_sections(self, temp_dir: Path):
        path = temp_dir / "nested" / "config.toml"
        path.parent.mkdir()
        path.write_text('[resolution]\nextensions = [".ts"]\n', encoding="utf-8")

        assert save_limits(path, max_candidates=12)
        data = toml.loads(path.read_text(encoding="utf-8"))
        assert data["limits"] == {"max_candidates": 12}
        assert data["resolution"]["extensions"] == [".ts"]
        assert load_limits(path)["max_candidates"] == 12

    def test_creates_parent_directory(self, temp_dir: Path):
        path = temp_dir / "deep" / "dir" / "config.toml"
        assert save_limits(path, impact_max_depth=4)
        assert load_limits(path)["impact_max_depth"] == 4

    def test_unknown_key(self, temp_dir: Path):
        with pytest.raises(ValueError, match="Unknown limit"):
            save_limits(temp_dir / "config.toml", bogus=1)
