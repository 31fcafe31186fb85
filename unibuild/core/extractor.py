"""Extractor — resolves project sources and extracts their dependency metadata.

Every project gets a working directory named by the fingerprint of its
config.  Directories are never deleted: they act as a cache across runs,
and resolvers are idempotent on an already resolved directory.

Extraction outcomes are memoized by the fingerprint of the
``ExtractionConfig``; at most one extraction runs per fingerprint for the
lifetime of the cache, even when several threads (parallel assembly
parts) ask for the same one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from unibuild.core.cache import OutcomeCache
from unibuild.core.fingerprint import fingerprint
from unibuild.errors import ConfigurationError, ConsistencyError
from unibuild.models.outcomes import ExtractionFailed, ExtractionOK, ExtractionOutcome
from unibuild.models.project import (
    BuildConfig,
    ExtractedBuildMeta,
    ExtractionConfig,
    ProjectConfigAndExtracted,
)
from unibuild.systems.registry import BuildSystemRegistry
from unibuild.systems.resolvers import SourceResolvers

logger = logging.getLogger(__name__)

# Errors that describe the configuration or a bug, never a project failure
FATAL_ERRORS = (ConfigurationError, ConsistencyError)


class Extractor:
    """Resolves and extracts projects, memoizing outcomes by fingerprint.

    Parameters
    ----------
    resolvers:
        Source resolver chain used to check out project sources.
    systems:
        Registry that maps a config's ``system`` tag to its implementation.
    cache:
        Extraction outcome cache, keyed by ``fingerprint(ExtractionConfig)``.
    work_root:
        Parent of the per-project working directories.
    """

    def __init__(
        self,
        resolvers: SourceResolvers,
        systems: BuildSystemRegistry,
        cache: OutcomeCache[ExtractionOutcome],
        work_root: Path,
    ) -> None:
        self._resolvers = resolvers
        self._systems = systems
        self._cache = cache
        self._work_root = Path(work_root)

    @property
    def systems(self) -> BuildSystemRegistry:
        return self._systems

    def dir_for(self, config: BuildConfig) -> Path:
        """Working directory of a top-level project."""
        return self._work_root / fingerprint(config)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_source(self, config: BuildConfig, dir: Path) -> BuildConfig:
        """Check out the config's own source into *dir*; returns the pinned config."""
        dir.mkdir(parents=True, exist_ok=True)
        return self._resolvers.resolve(config, dir)

    def resolve(self, config: BuildConfig, dir: Path) -> BuildConfig:
        """Resolve through the project's build system (may recurse into parts)."""
        system = self._systems.for_name(config.system)
        logger.debug("Resolving %s with %s", config.name, system.name)
        return system.resolve(config, dir, self)

    def extract_dependencies(self, config: ExtractionConfig, dir: Path) -> ExtractedBuildMeta:
        system = self._systems.for_name(config.config.system)
        return system.extract_dependencies(config, dir, self)

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract(self, config: ExtractionConfig, dir: Path | None = None) -> ProjectConfigAndExtracted:
        """Resolve then extract, without consulting the cache.

        Parameters
        ----------
        config:
            What to extract.
        dir:
            Working directory; defaults to the fingerprint-named directory
            under the work root.
        """
        dir = dir if dir is not None else self.dir_for(config.config)
        dir.mkdir(parents=True, exist_ok=True)
        logger.info("Extracting %s in %s", config.name, dir)
        resolved = self.resolve(config.config, dir)
        extracted = self.extract_dependencies(ExtractionConfig(config=resolved), dir)
        logger.debug("Extracted %s: %s", config.name, extracted.subprojects)
        return ProjectConfigAndExtracted(config=resolved, extracted=extracted)

    def extracted_resolved_with_cache(
        self, config: ExtractionConfig, dir: Path | None = None
    ) -> ExtractionOutcome:
        """Return the memoized outcome for *config*, extracting on a miss.

        Failures are recorded as ``ExtractionFailed`` and memoized for this
        process only; configuration and consistency errors propagate.
        """

        def compute() -> ExtractionOutcome:
            try:
                pce = self.extract(config, dir)
            except FATAL_ERRORS:
                raise
            except Exception as exc:
                logger.error("Extraction of %s failed: %s", config.name, exc)
                return ExtractionFailed(project=config.name, cause=str(exc) or type(exc).__name__)
            return ExtractionOK(project=config.name, pces=[pce])

        return self._cache.get_or_compute(
            fingerprint(config),
            compute,
            durable=lambda outcome: isinstance(outcome, ExtractionOK),
        )

    def cached_extract_or(
        self, config: ExtractionConfig, or_else: Callable[[], ExtractionOutcome]
    ) -> ExtractionOutcome:
        """Return the cached outcome for *config*, or whatever *or_else* gives."""
        cached = self._cache.get(fingerprint(config))
        return cached if cached is not None else or_else()
