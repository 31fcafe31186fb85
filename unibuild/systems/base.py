"""Build-system interface and the capabilities handed to implementations.

Build systems never import the orchestration core.  Instead, the core
passes itself in through the capability protocols below: the extractor
on ``resolve`` / ``extract_dependencies``, the local build runner on
``run_build``.  Composite systems (assemble) use these capabilities to
resolve, extract and build their nested parts through the same machinery
as top-level projects.
"""

from __future__ import annotations

import abc
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from unibuild.errors import ConfigurationError
from unibuild.models.artifacts import BuildArtifactsOut, BuildData, BuildInput
from unibuild.models.outcomes import BuildOutcome, ExtractionOutcome
from unibuild.models.project import (
    BuildConfig,
    ExtractedBuildMeta,
    ExtractionConfig,
    RepeatableProjectBuild,
)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


@runtime_checkable
class ExtractorCapability(Protocol):
    """What a build system may ask of the extractor."""

    def resolve_source(self, config: BuildConfig, dir: Path) -> BuildConfig:
        """Check out the config's own source; returns the pinned config."""
        ...

    def resolve(self, config: BuildConfig, dir: Path) -> BuildConfig:
        """Resolve through the config's build system (may recurse)."""
        ...

    def extracted_resolved_with_cache(
        self, config: ExtractionConfig, dir: Path | None = None
    ) -> ExtractionOutcome:
        ...

    def cached_extract_or(
        self, config: ExtractionConfig, or_else: Callable[[], ExtractionOutcome]
    ) -> ExtractionOutcome:
        ...


@runtime_checkable
class RepositoryCapability(Protocol):
    """Read access to the durable artifact repository."""

    def fetch_by_uuids(
        self,
        local_repos: Sequence[Path],
        uuid_groups: Sequence[Sequence[str]],
        spaces: Sequence[str],
    ) -> list[BuildArtifactsOut]:
        ...


@runtime_checkable
class RunnerCapability(Protocol):
    """What a build system may ask of the local build runner."""

    @property
    def extractor(self) -> ExtractorCapability:
        ...

    @property
    def repository(self) -> RepositoryCapability:
        ...

    def check_cache_then_build(
        self,
        dir: Path,
        build: RepeatableProjectBuild,
        build_data: BuildData | None = None,
    ) -> BuildOutcome:
        ...


# ---------------------------------------------------------------------------
# Build system
# ---------------------------------------------------------------------------


@runtime_checkable
class BuildSystem(Protocol):
    """A named build-system implementation."""

    name: str

    def resolve(
        self, config: BuildConfig, dir: Path, extractor: ExtractorCapability
    ) -> BuildConfig:
        ...

    def extract_dependencies(
        self, config: ExtractionConfig, dir: Path, extractor: ExtractorCapability
    ) -> ExtractedBuildMeta:
        ...

    def run_build(
        self,
        build: RepeatableProjectBuild,
        dir: Path,
        input: BuildInput,
        runner: RunnerCapability,
        build_data: BuildData,
    ) -> BuildArtifactsOut:
        ...


class BuildSystemCore(abc.ABC):
    """Convenience base for build systems.

    Subclasses set ``name`` and, if they take options, ``extra_model``.
    The default ``resolve`` checks out the project's own source.
    """

    name: ClassVar[str]
    extra_model: ClassVar[type[BaseModel] | None] = None

    def expand_extra(self, config: BuildConfig) -> Any:
        """Parse ``config.extra`` into this system's options model."""
        if self.extra_model is None:
            return None
        try:
            return self.extra_model.model_validate(config.extra)
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid '{self.name}' options in project {config.name!r}: {exc}"
            ) from exc

    def resolve(
        self, config: BuildConfig, dir: Path, extractor: ExtractorCapability
    ) -> BuildConfig:
        return extractor.resolve_source(config, dir)

    @abc.abstractmethod
    def extract_dependencies(
        self, config: ExtractionConfig, dir: Path, extractor: ExtractorCapability
    ) -> ExtractedBuildMeta:
        ...

    @abc.abstractmethod
    def run_build(
        self,
        build: RepeatableProjectBuild,
        dir: Path,
        input: BuildInput,
        runner: RunnerCapability,
        build_data: BuildData,
    ) -> BuildArtifactsOut:
        ...
