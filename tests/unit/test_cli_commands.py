"""Unit tests for the CLI — Typer command registration and basic behavior.

Exercises help output, the read-only queries and a small ``nil`` build
via typer.testing.CliRunner.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from unibuild.cli.app import app
from unibuild.core.fingerprint import fingerprint
from unibuild.models.project import BuildConfig

runner = CliRunner()


def _write_request(path: Path, projects: list[dict]) -> Path:
    path.write_text(json.dumps({"projects": projects}), encoding="utf-8")
    return path


@pytest.fixture
def nil_request(tmp_path: Path) -> Path:
    return _write_request(
        tmp_path / "request.json",
        [
            {"name": "first", "system": "nil", "uri": "nil"},
            {"name": "second", "system": "nil", "uri": "nil", "set_version": "2.0"},
        ],
    )


@pytest.fixture
def isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> list[str]:
    """Options and cwd that keep a CLI build inside the temp directory."""
    monkeypatch.chdir(tmp_path)
    return ["--work-dir", str(tmp_path / "work"), "--repository", str(tmp_path / "repo")]


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_flag(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("build", "extract", "fingerprint", "systems"):
            assert command in result.output

    def test_build_help(self):
        result = runner.invoke(app, ["build", "--help"])
        assert result.exit_code == 0
        assert "--work-dir" in result.output


# ---------------------------------------------------------------------------
# Test: read-only queries
# ---------------------------------------------------------------------------


class TestQueries:
    def test_systems(self):
        result = runner.invoke(app, ["systems"])
        assert result.exit_code == 0
        assert "assemble" in result.output
        assert "nil" in result.output

    def test_fingerprint(self, nil_request: Path):
        result = runner.invoke(app, ["fingerprint", str(nil_request)])
        assert result.exit_code == 0
        expected = fingerprint(BuildConfig(name="first", system="nil", uri="nil"))
        assert f"{expected}  first" in result.output
        assert "second" in result.output

    def test_missing_request_file(self, tmp_path: Path):
        result = runner.invoke(app, ["fingerprint", str(tmp_path / "absent.json")])
        assert result.exit_code == 2
        assert "not found" in result.output

    def test_invalid_request_file(self, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"projects": [{"name": "x"}]}', encoding="utf-8")
        result = runner.invoke(app, ["fingerprint", str(bad)])
        assert result.exit_code == 2
        assert "Invalid build request" in result.output


# ---------------------------------------------------------------------------
# Test: build and extract
# ---------------------------------------------------------------------------


class TestBuild:
    def test_nil_build_succeeds(self, nil_request: Path, isolated: list[str]):
        result = runner.invoke(app, ["build", str(nil_request), *isolated])
        assert result.exit_code == 0, result.output
        assert "All projects built." in result.output
        assert "first" in result.output

    def test_extract(self, nil_request: Path, isolated: list[str]):
        result = runner.invoke(app, ["extract", str(nil_request), *isolated])
        assert result.exit_code == 0, result.output
        assert "second 2.0" in result.output

    def test_unknown_system_aborts(self, tmp_path: Path, isolated: list[str]):
        request = _write_request(
            tmp_path / "unknown.json", [{"name": "x", "system": "maven", "uri": "nil"}]
        )
        result = runner.invoke(app, ["build", str(request), *isolated])
        assert result.exit_code == 1
        assert "Build aborted" in result.output

    def test_repeated_names_abort(self, tmp_path: Path, isolated: list[str]):
        request = _write_request(
            tmp_path / "twice.json",
            [
                {"name": "x", "system": "nil", "uri": "nil"},
                {"name": "x", "system": "nil", "uri": "nil"},
            ],
        )
        result = runner.invoke(app, ["build", str(request), *isolated])
        assert result.exit_code == 1
        assert "unique" in result.output
