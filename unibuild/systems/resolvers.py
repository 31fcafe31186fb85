"""Source resolvers — check out a project's source and pin its URI.

A resolver must be idempotent (resolving an already resolved directory
again leaves it intact) and must return a config whose ``uri`` refers to
an immutable revision.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import urldefrag, urlsplit

from unibuild.errors import ConfigurationError
from unibuild.models.project import NIL_URI, BuildConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class SourceResolver(Protocol):
    def can_resolve(self, config: BuildConfig) -> bool:
        ...

    def resolve(self, config: BuildConfig, dir: Path) -> BuildConfig:
        ...


def is_nil_uri(uri: str) -> bool:
    return uri == NIL_URI or uri.startswith(NIL_URI + ":")


class NilResolver:
    """Projects without sources: nothing to check out, already pinned."""

    def can_resolve(self, config: BuildConfig) -> bool:
        return is_nil_uri(config.uri)

    def resolve(self, config: BuildConfig, dir: Path) -> BuildConfig:
        dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Nothing to resolve for %s (%s)", config.name, config.uri)
        return config


class GitResolver:
    """Clones or fetches a git repository and pins the URI to a commit.

    The URI fragment, if any, selects the branch, tag or commit to check
    out; the returned config's URI carries ``#<commit sha>`` instead.
    """

    def __init__(self, git_command: str = "git") -> None:
        self._git = git_command

    def can_resolve(self, config: BuildConfig) -> bool:
        parts = urlsplit(config.uri)
        return parts.scheme == "git" or parts.path.endswith(".git")

    def _run(self, *args: str, cwd: Path | None = None) -> str:
        cmd = [self._git, *args]
        logger.debug("Running %s", " ".join(cmd))
        result = subprocess.run(
            cmd, cwd=cwd, check=True, capture_output=True, text=True
        )
        return result.stdout.strip()

    def resolve(self, config: BuildConfig, dir: Path) -> BuildConfig:
        base_uri, ref = urldefrag(config.uri)
        dir.mkdir(parents=True, exist_ok=True)
        if not (dir / ".git").exists():
            logger.info("Cloning %s", base_uri)
            self._run("clone", base_uri, str(dir))
        else:
            logger.info("Fetching %s", base_uri)
            self._run("fetch", "--tags", "origin", cwd=dir)
        if ref:
            self._run("checkout", "-q", ref, cwd=dir)
        sha = self._run("rev-parse", "HEAD", cwd=dir)
        return config.model_copy(update={"uri": f"{base_uri}#{sha}"})


class SourceResolvers:
    """Ordered resolver chain; the first resolver that accepts a config wins."""

    def __init__(self, resolvers: Iterable[SourceResolver]) -> None:
        self._resolvers = list(resolvers)

    def resolve(self, config: BuildConfig, dir: Path) -> BuildConfig:
        for resolver in self._resolvers:
            if resolver.can_resolve(config):
                return resolver.resolve(config, dir)
        raise ConfigurationError(
            f"Don't know how to resolve source {config.uri!r} of project {config.name!r}"
        )


def default_resolvers(git_command: str = "git") -> SourceResolvers:
    return SourceResolvers([NilResolver(), GitResolver(git_command)])
