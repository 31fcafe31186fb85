"""Tests for source resolvers — nil, git and the resolver chain."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from unibuild.errors import ConfigurationError
from unibuild.models.project import BuildConfig
from unibuild.systems.resolvers import (
    GitResolver,
    NilResolver,
    SourceResolvers,
    default_resolvers,
    is_nil_uri,
)


class TestNilUri:
    @pytest.mark.parametrize("uri", ["nil", "nil:anything"])
    def test_nil(self, uri: str):
        assert is_nil_uri(uri)

    @pytest.mark.parametrize("uri", ["nil2", "git://host/repo.git", ""])
    def test_not_nil(self, uri: str):
        assert not is_nil_uri(uri)


class TestNilResolver:
    def test_returns_config_unchanged(self, tmp_path: Path):
        config = BuildConfig(name="p", system="nil", uri="nil:x")
        resolved = NilResolver().resolve(config, tmp_path / "p")
        assert resolved == config
        assert (tmp_path / "p").is_dir()

    def test_idempotent(self, tmp_path: Path):
        config = BuildConfig(name="p", system="nil")
        resolver = NilResolver()
        once = resolver.resolve(config, tmp_path)
        assert resolver.resolve(once, tmp_path) == once


class TestGitResolver:
    @pytest.mark.parametrize(
        "uri", ["git://example.com/repo", "https://example.com/repo.git", "file:///tmp/x.git#v1"]
    )
    def test_accepts_git_uris(self, uri: str):
        assert GitResolver().can_resolve(BuildConfig(name="p", system="nil", uri=uri))

    def test_rejects_other_uris(self):
        assert not GitResolver().can_resolve(BuildConfig(name="p", system="nil", uri="nil"))

    def test_clone_checkout_and_pin(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        calls = []

        def fake_run(cmd, cwd=None, check=False, capture_output=False, text=False):
            calls.append((cmd[1:], cwd))
            if cmd[1] == "clone":
                Path(cmd[3], ".git").mkdir(parents=True)
            out = "deadbeef\n" if cmd[1] == "rev-parse" else ""
            return subprocess.CompletedProcess(cmd, 0, stdout=out, stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)
        config = BuildConfig(name="p", system="nil", uri="https://example.com/repo.git#v1.0")
        resolved = GitResolver().resolve(config, tmp_path / "p")

        assert resolved.uri == "https://example.com/repo.git#deadbeef"
        commands = [c[0][0] for c in calls]
        assert commands == ["clone", "checkout", "rev-parse"]

        # second resolution fetches instead of cloning
        calls.clear()
        GitResolver().resolve(resolved, tmp_path / "p")
        assert [c[0][0] for c in calls] == ["fetch", "checkout", "rev-parse"]


class TestSourceResolvers:
    def test_first_match_wins(self, tmp_path: Path):
        chain = default_resolvers()
        config = BuildConfig(name="p", system="nil")
        assert chain.resolve(config, tmp_path) == config

    def test_unknown_scheme(self, tmp_path: Path):
        chain = SourceResolvers([NilResolver()])
        with pytest.raises(ConfigurationError, match="Don't know how to resolve"):
            chain.resolve(BuildConfig(name="p", system="nil", uri="svn://x"), tmp_path)
