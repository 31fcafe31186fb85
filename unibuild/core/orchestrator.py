"""Orchestrator — the entry point for a multi-project build.

The Orchestrator wires together the Extractor, the AggregateBuildRunner,
the LocalBuildRunner, the outcome caches and the ArtifactRepository, then
runs a ``BuildRequest``: every project is extracted, ordered by the
ProjectGraph, and built with the uuids of the builds it depends on.
"""

from __future__ import annotations

import logging

from unibuild.config import UnibuildSettings
from unibuild.core.build_runner import AggregateBuildRunner, LocalBuildRunner
from unibuild.core.cache import OutcomeCache, OutcomeStore, SqliteOutcomeStore
from unibuild.core.extractor import Extractor
from unibuild.core.project_graph import ProjectGraph
from unibuild.core.repository import ArtifactRepository
from unibuild.errors import ConfigurationError, ExtractionError
from unibuild.models.artifacts import BuildData
from unibuild.models.outcomes import (
    BuildBad,
    BuildGood,
    BuildOutcome,
    BuildReport,
    ExtractionFailed,
    ExtractionOK,
    build_outcome_adapter,
    extraction_outcome_adapter,
)
from unibuild.models.project import (
    BuildRequest,
    ExtractionConfig,
    ProjectConfigAndExtracted,
    RepeatableProjectBuild,
)
from unibuild.systems.registry import BuildSystemRegistry, default_registry
from unibuild.systems.resolvers import SourceResolvers, default_resolvers

logger = logging.getLogger(__name__)


class Orchestrator:
    """Extracts and builds the projects of a request.

    Parameters
    ----------
    settings:
        Runtime settings. Uses defaults (and ``UNIBUILD_*`` env vars) if
        not provided.
    systems:
        Build-system registry; ``nil`` and ``assemble`` by default.
    resolvers:
        Source resolver chain; ``nil`` and ``git`` by default.
    extraction_store, build_store:
        Durable outcome stores.  SQLite tables in ``cache_db_path`` when
        that setting is present, memory only otherwise.
    repository:
        Durable artifact repository; ``repository_path`` by default.
    """

    def __init__(
        self,
        settings: UnibuildSettings | None = None,
        *,
        systems: BuildSystemRegistry | None = None,
        resolvers: SourceResolvers | None = None,
        extraction_store: OutcomeStore | None = None,
        build_store: OutcomeStore | None = None,
        repository: ArtifactRepository | None = None,
    ) -> None:
        self.settings = settings or UnibuildSettings()
        self.systems = systems or default_registry(max_workers=self.settings.max_workers)
        resolvers = resolvers or default_resolvers(self.settings.git_command)

        db_path = self.settings.cache_db_path
        if db_path is not None:
            extraction_store = extraction_store or SqliteOutcomeStore(db_path, "extraction")
            build_store = build_store or SqliteOutcomeStore(db_path, "build")

        self.repository = repository or ArtifactRepository(self.settings.repository_path)
        self.extractor = Extractor(
            resolvers,
            self.systems,
            OutcomeCache(extraction_outcome_adapter, extraction_store),
            self.settings.work_dir,
        )
        self.runner = LocalBuildRunner(
            AggregateBuildRunner(self.systems),
            self.extractor,
            self.repository,
            OutcomeCache(build_outcome_adapter, build_store),
        )

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_all(self, request: BuildRequest) -> list[ProjectConfigAndExtracted]:
        """Extract every project of *request*, in declaration order.

        Raises ``ExtractionError`` listing every project that failed.
        """
        names = [p.name for p in request.projects]
        repeated = sorted({n for n in names if names.count(n) > 1})
        if repeated:
            raise ConfigurationError(
                "Project names must be unique; repeated: " + ", ".join(repeated)
            )

        outcomes = [
            self.extractor.extracted_resolved_with_cache(ExtractionConfig(config=config))
            for config in request.projects
        ]
        failed = [o for o in outcomes if isinstance(o, ExtractionFailed)]
        if failed:
            raise ExtractionError(
                [o.project for o in failed], {o.project: o.cause for o in failed}
            )
        return [pce for o in outcomes if isinstance(o, ExtractionOK) for pce in o.pces]

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self, request: BuildRequest) -> BuildReport:
        """Extract and build every project of *request*.

        A project whose dependency did not build is not attempted; it is
        reported as ``BuildBad`` naming the blocking projects.
        """
        pces = self.extract_all(request)
        graph = ProjectGraph(pces)
        by_name = {pce.config.name: pce for pce in pces}
        dirs = {config.name: self.extractor.dir_for(config) for config in request.projects}
        build_data = BuildData(debug=self.settings.debug)

        outcomes: dict[str, BuildOutcome] = {}
        for name in graph.build_order:
            deps = graph.get_dependencies(name)
            blockers = [d for d in deps if not isinstance(outcomes[d], BuildGood)]
            if blockers:
                logger.warning("Not building %s: blocked by %s", name, ", ".join(blockers))
                outcomes[name] = BuildBad(project=name, status="blocked by " + ", ".join(blockers))
                continue

            pce = by_name[name]
            build = RepeatableProjectBuild(
                config=pce.config,
                extracted=pce.extracted,
                dependency_uuids=[outcomes[d].uuid for d in deps],
            )
            outcome = self.runner.check_cache_then_build(dirs[name], build, build_data)
            if isinstance(outcome, BuildBad):
                logger.error("%s failed: %s", name, outcome.status)
            else:
                logger.info("%s built as %s", name, outcome.uuid[:12])
            outcomes[name] = outcome

        return BuildReport(outcomes=[outcomes[config.name] for config in request.projects])
