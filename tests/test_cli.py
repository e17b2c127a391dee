"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from codenav import __version__
from codenav.cli import app


runner = CliRunner()


def _invoke(snapshot_path: Path, *args: str):
    return runner.invoke(app, ["--snapshot", str(snapshot_path), *args])


class TestGlobalOptions:
    """Tests for version and snapshot handling."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"codenav v{__version__}" in result.stdout

    def test_missing_snapshot(self, temp_dir: Path):
        result = _invoke(temp_dir / "missing.json", "calls")
        assert result.exit_code != 0


class TestCallsCommand:
    """Tests for 'codenav calls'."""

    def test_calls(self, snapshot_path: Path):
        result = _invoke(snapshot_path, "calls")
        assert result.exit_code == 0
        assert "Cross-file calls" in result.stdout

    def test_unknown_function(self, snapshot_path: Path):
        result = _invoke(snapshot_path, "calls", "--function", "src/nowhere.ts:x")
        assert result.exit_code == 0
        assert "No cross-file calls found." in result.stdout


class TestImpactCommand:
    """Tests for 'codenav impact'."""

    def test_json(self, snapshot_path: Path):
        result = _invoke(snapshot_path, "impact", "src/utils/logger.ts", "--json")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["source"] == "src/utils/logger.ts"
        assert payload["totalAffectedFiles"] == 4
        assert payload["testFiles"][0]["path"] == "src/api/routes.test.ts"

    def test_table(self, snapshot_path: Path):
        result = _invoke(snapshot_path, "impact", "src/utils/logger.ts")
        assert result.exit_code == 0
        assert "Direct: 2 | Transitive: 2 | Total: 4" in result.stdout
        assert "test: npm test -- src/api/routes.test.ts" in result.stdout

    def test_leaf(self, snapshot_path: Path):
        result = _invoke(snapshot_path, "impact", "src/api/routes.test.ts")
        assert result.exit_code == 0
        assert "No files depend on src/api/routes.test.ts." in result.stdout


class TestQueryCommand:
    """Tests for 'codenav query'."""

    def test_query(self, snapshot_path: Path):
        result = _invoke(snapshot_path, "query", "404 error handling")
        assert result.exit_code == 0
        assert "Tokens: 404, error, handling" in result.stdout
        assert "Candidates" in result.stdout

    def test_no_candidates(self, snapshot_path: Path):
        result = _invoke(snapshot_path, "query", "the and or")
        assert result.exit_code == 0
        assert "Tokens: (none)" in result.stdout
        assert "No candidates." in result.stdout


class TestNavigateCommand:
    """Tests for 'codenav navigate'."""

    def test_navigate(self, snapshot_path: Path, temp_dir: Path):
        response = temp_dir / "response.md"
        response.write_text(
            "```json\n"
            + json.dumps({
                "reasoning": "Sessions are created in auth.",
                "targets": [
                    {"type": "function", "name": "createSession", "in": "src/auth/session.ts"},
                    {"type": "file", "path": "src/auth/sesion.ts"},
                ],
            })
            + "\n```\n",
            encoding="utf-8",
        )
        result = _invoke(snapshot_path, "navigate", str(response))
        assert result.exit_code == 0
        assert "Reasoning: Sessions are created in auth." in result.stdout
        assert "function: src/auth/session.ts:createSession (4-14)" in result.stdout
        assert "file: src/auth/session.ts" in result.stdout
        assert "error: File not found: src/auth/sesion.ts" in result.stdout

    def test_unparsable_response(self, snapshot_path: Path, temp_dir: Path):
        response = temp_dir / "response.md"
        response.write_text('{"targets": [{"type": "teleport"}]}', encoding="utf-8")
        result = _invoke(snapshot_path, "navigate", str(response))
        assert result.exit_code == 1


class TestLimitsCommands:
    """Tests for 'codenav limits' and 'codenav set-limit'."""

    def test_set_and_show(self, temp_dir: Path, monkeypatch):
        config_file = temp_dir / "config.toml"
        monkeypatch.setattr("codenav.config.CONFIG_FILE", config_file)

        result = runner.invoke(app, ["set-limit", "max_candidates", "7"])
        assert result.exit_code == 0
        assert "Set max_candidates = 7" in result.stdout
        assert "max_candidates = 7" in config_file.read_text(encoding="utf-8")

        result = runner.invoke(app, ["limits"])
        assert result.exit_code == 0
        assert "max_candidates" in result.stdout

    def test_unknown_key(self, temp_dir: Path, monkeypatch):
        monkeypatch.setattr("codenav.config.CONFIG_FILE", temp_dir / "config.toml")
        result = runner.invoke(app, ["set-limit", "bogus", "1"])
        assert result.exit_code != 0
