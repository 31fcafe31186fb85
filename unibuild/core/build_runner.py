"""Build runners.

``AggregateBuildRunner`` dispatches a build to the implementation named by
its config.  ``LocalBuildRunner`` wraps it with the outcome cache: it is
the single place that guarantees at most one build per
``RepeatableProjectBuild.uuid``, which lets composite build systems share
parts without building them twice.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from unibuild.core.cache import OutcomeCache
from unibuild.core.extractor import FATAL_ERRORS, Extractor
from unibuild.core.repository import ArtifactRepository, clear_directory
from unibuild.models.artifacts import BuildArtifactsOut, BuildData, BuildInput
from unibuild.models.outcomes import BuildBad, BuildGood, BuildOutcome
from unibuild.models.project import RepeatableProjectBuild
from unibuild.systems.base import RunnerCapability
from unibuild.systems.registry import BuildSystemRegistry

logger = logging.getLogger(__name__)

# Sub-directories of a project's working directory used while building
STAGING_DIR = ".unibuild"
LOCAL_REPO = "local-repo"
DEPENDENCY_REPO = "dep-repo"


@runtime_checkable
class BuildRunner(Protocol):
    def run_build(
        self,
        build: RepeatableProjectBuild,
        dir: Path,
        input: BuildInput,
        runner: RunnerCapability,
        build_data: BuildData,
    ) -> BuildArtifactsOut:
        ...


class AggregateBuildRunner:
    """Selects the build system by tag and runs it."""

    def __init__(self, systems: BuildSystemRegistry) -> None:
        self._systems = systems

    def run_build(
        self,
        build: RepeatableProjectBuild,
        dir: Path,
        input: BuildInput,
        runner: RunnerCapability,
        build_data: BuildData,
    ) -> BuildArtifactsOut:
        system = self._systems.for_name(build.config.system)
        logger.info("Running %s build of %s (%s)", system.name, build.name, build.uuid[:12])
        return system.run_build(build, dir, input, runner, build_data)


class LocalBuildRunner:
    """Cached build execution.

    Parameters
    ----------
    builder:
        Runner that does the actual work on a cache miss.
    extractor:
        Handed to composite build systems for nested extraction lookups.
    repository:
        Durable repository builds are published to and fetched from.
    cache:
        Build outcome cache, keyed by build uuid.
    """

    def __init__(
        self,
        builder: BuildRunner,
        extractor: Extractor,
        repository: ArtifactRepository,
        cache: OutcomeCache[BuildOutcome],
    ) -> None:
        self._builder = builder
        self._extractor = extractor
        self._repository = repository
        self._cache = cache

    @property
    def extractor(self) -> Extractor:
        return self._extractor

    @property
    def repository(self) -> ArtifactRepository:
        return self._repository

    def check_cache_then_build(
        self,
        dir: Path,
        build: RepeatableProjectBuild,
        build_data: BuildData | None = None,
    ) -> BuildOutcome:
        """Return the recorded outcome for ``build.uuid``, building on a miss.

        A failed build is recorded too and reported as ``BuildBad``; it is
        never retried within the life of the cache.
        """
        build_data = build_data or BuildData()
        uuid = build.uuid

        def compute() -> BuildOutcome:
            if self._repository.has_build(uuid):
                logger.info("Build %s (%s) found in the repository", build.name, uuid[:12])
                published = self._repository.read_build(uuid)
                return BuildGood(project=build.name, uuid=uuid, artifacts=published.artifacts)
            try:
                artifacts = self._build(dir, build, build_data)
            except FATAL_ERRORS:
                raise
            except Exception as exc:
                logger.error("Build of %s failed: %s", build.name, exc)
                return BuildBad(project=build.name, status=str(exc) or type(exc).__name__, uuid=uuid)
            return BuildGood(project=build.name, uuid=uuid, artifacts=artifacts)

        return self._cache.get_or_compute(
            uuid, compute, durable=lambda outcome: isinstance(outcome, BuildGood)
        )

    def _build(
        self, dir: Path, build: RepeatableProjectBuild, build_data: BuildData
    ) -> BuildArtifactsOut:
        self._extractor.resolve(build.config, dir)

        staging = dir / STAGING_DIR
        dependency_repo = staging / DEPENDENCY_REPO
        out_repo = staging / LOCAL_REPO
        clear_directory(dependency_repo)
        clear_directory(out_repo)
        if build.dependency_uuids:
            self._repository.fetch_by_uuids(
                [dependency_repo], [build.dependency_uuids], [""]
            )

        build_input = BuildInput(
            out_repo=out_repo,
            dependency_repo=dependency_repo,
            version=build.extracted.version,
            uuid=build.uuid,
        )
        artifacts = self._builder.run_build(build, dir, build_input, self, build_data)
        self._repository.publish(build.uuid, out_repo, artifacts)
        return artifacts
