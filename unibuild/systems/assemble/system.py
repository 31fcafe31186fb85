"""The ``assemble`` build system.

An assembly takes a list of nested project configurations ("parts") and
treats them as the sub-modules of one logical project.  Every part is
resolved, extracted and built independently, through the same extractor
and local build runner used for top-level projects, and none of them sees
the others' artifacts while it builds.  Once all parts are built, their
artifacts are merged into one staging repository, renamed to a common
cross-version suffix, and their POM / Ivy descriptors are patched so that
the parts refer to one another.  The result looks as if it had come from
a single project.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field

from unibuild.core.fingerprint import fingerprint, file_digest
from unibuild.core.repository import clear_directory
from unibuild.errors import (
    BuildFailedError,
    ConfigurationError,
    ConsistencyError,
    ExtractionError,
    IntegrityError,
)
from unibuild.models.artifacts import (
    ArtifactSha,
    BuildArtifactsOut,
    BuildData,
    BuildInput,
    BuildSubArtifactsOut,
)
from unibuild.models.outcomes import (
    BuildBad,
    BuildGood,
    ExtractionFailed,
    ExtractionOK,
    ExtractionOutcome,
)
from unibuild.models.project import (
    BuildConfig,
    CrossVersion,
    ExtractedBuildMeta,
    ExtractionConfig,
    ProjectConfigAndExtracted,
    ProjectMeta,
    ProjectRef,
    RepeatableProjectBuild,
)
from unibuild.systems.assemble.cross_version import NamePatcher
from unibuild.systems.assemble.descriptors import rewrite_descriptors
from unibuild.systems.assemble.layout import Unrecognized, parse_repo_path
from unibuild.systems.assemble.naming import is_core, is_core_artifact
from unibuild.systems.assemble.subprojects import adapt_subprojects
from unibuild.systems.base import BuildSystemCore, ExtractorCapability, RunnerCapability
from unibuild.systems.resolvers import is_nil_uri

logger = logging.getLogger(__name__)

T = TypeVar("T")

ASSEMBLED_VERSION = "0.0.0"


class AssembleExtraConfig(BaseModel):
    """Options of an assemble project."""

    model_config = ConfigDict(frozen=True)

    parts: list[BuildConfig] = Field(default_factory=list)
    cross_version: CrossVersion = CrossVersion.DISABLED


class DroppedDependency(BaseModel):
    model_config = ConfigDict(frozen=True)

    project: str
    dependency: ProjectRef


def projects_dir(base: Path, part: BuildConfig) -> Path:
    """Working directory of a part.

    Keyed on the part's name only: its full config changes once resolved.
    """
    return base / "projects" / fingerprint(part.name)


def find_duplicate_artifacts(
    pces: Sequence[ProjectConfigAndExtracted],
) -> dict[str, list[str]]:
    """Map every module id produced by more than one part to those parts."""
    owners: dict[str, list[str]] = defaultdict(list)
    for pce in pces:
        for project in pce.extracted.projects:
            owners[project.module_id].append(pce.config.name)
    return {module: parts for module, parts in owners.items() if len(parts) > 1}


def partition_dependencies(
    projects: Sequence[ProjectMeta],
) -> tuple[list[ProjectMeta], list[DroppedDependency]]:
    """Keep only dependencies that are produced by one of *projects*.

    Returns the trimmed project list and every dependency that was dropped.
    """
    provided = {ref for project in projects for ref in project.artifacts}
    kept: list[ProjectMeta] = []
    dropped: list[DroppedDependency] = []
    for project in projects:
        ignored = [d for d in project.dependencies if d not in provided]
        dropped.extend(DroppedDependency(project=project.name, dependency=d) for d in ignored)
        kept.append(
            project.model_copy(
                update={"dependencies": [d for d in project.dependencies if d in provided]}
            )
        )
    return kept, dropped


class AssembleBuildSystem(BuildSystemCore):
    """Merges independently built parts into one artifact set.

    Parameters
    ----------
    max_workers:
        Number of parts extracted or built concurrently.  Duplicate
        detection, name disambiguation and merging always wait for every
        part.
    """

    name = "assemble"
    extra_model = AssembleExtraConfig

    def __init__(self, max_workers: int = 1) -> None:
        self._max_workers = max(1, max_workers)

    def expand_extra(self, config: BuildConfig) -> AssembleExtraConfig:
        return super().expand_extra(config)

    def _for_each_part(self, parts: Sequence[BuildConfig], fn: Callable[[BuildConfig], T]) -> list[T]:
        if self._max_workers == 1 or len(parts) < 2:
            return [fn(part) for part in parts]
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            return list(pool.map(fn, parts))

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    def resolve(
        self, config: BuildConfig, dir: Path, extractor: ExtractorCapability
    ) -> BuildConfig:
        if not is_nil_uri(config.uri):
            raise ConfigurationError(
                f"The uri of assemble project {config.name!r} must be \"nil\" "
                f"or start with \"nil:\", not {config.uri!r}"
            )
        root = super().resolve(config, dir, extractor)
        extra = self.expand_extra(root)

        def resolve_part(part: BuildConfig) -> BuildConfig:
            part_dir = projects_dir(dir, part)
            part_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Resolving part: %s", part.name)
            return extractor.resolve(part, part_dir)

        parts = self._for_each_part(extra.parts, resolve_part)
        new_extra = extra.model_copy(update={"parts": parts})
        return root.model_copy(update={"extra": new_extra.model_dump(mode="json")})

    # ------------------------------------------------------------------
    # Extract
    # ------------------------------------------------------------------

    def extract_dependencies(
        self, config: ExtractionConfig, dir: Path, extractor: ExtractorCapability
    ) -> ExtractedBuildMeta:
        extra = self.expand_extra(config.config)

        # part names double as sub-project names for selective operations
        names = [part.name for part in extra.parts]
        repeated = sorted({n for n in names if names.count(n) > 1})
        if repeated:
            raise IntegrityError(
                "These subproject names appear twice: " + ", ".join(repeated),
                offenders=repeated,
            )

        def extract_part(part: BuildConfig) -> ExtractionOutcome:
            logger.info("Extracting part: %s", part.name)
            return extractor.extracted_resolved_with_cache(
                ExtractionConfig(config=part), projects_dir(dir, part)
            )

        outcomes = self._for_each_part(extra.parts, extract_part)
        failed = [o for o in outcomes if isinstance(o, ExtractionFailed)]
        if failed:
            raise ExtractionError(
                [o.project for o in failed], {o.project: o.cause for o in failed}
            )
        pces = [pce for o in outcomes if isinstance(o, ExtractionOK) for pce in o.pces]

        duplicates = find_duplicate_artifacts(pces)
        if duplicates:
            for module, parts in duplicates.items():
                logger.error("%s is provided by: %s", module, ", ".join(parts))
            raise IntegrityError(
                "Duplicate artifacts found in project: "
                + "; ".join(f"{m} is provided by {', '.join(p)}" for m, p in duplicates.items()),
                offenders=sorted({p for parts in duplicates.values() for p in parts}),
            )

        logger.info("Assembling dependencies...")
        projects, dropped = partition_dependencies(
            [project for pce in pces for project in pce.extracted.projects]
        )
        for d in dropped:
            logger.warning(
                "The dependency of %s on %s will be ignored.", d.project, d.dependency.module_id
            )

        adapted = adapt_subprojects([(p.config.name, p.extracted.subprojects) for p in pces])
        subprojects = [sub for _, subs in adapted for sub in subs]
        logger.info("These subprojects will be built: %s", ", ".join(subprojects))
        return ExtractedBuildMeta(
            version=ASSEMBLED_VERSION, projects=projects, subprojects=subprojects
        )

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def _build_part(
        self, part: BuildConfig, dir: Path, runner: RunnerCapability, build_data: BuildData
    ) -> tuple[RepeatableProjectBuild, BuildGood | BuildBad]:
        logger.info("Building part: %s", part.name)

        def not_cached() -> ExtractionOutcome:
            raise ConsistencyError(f"extraction metadata not found for part {part.name}")

        outcome = runner.extractor.cached_extract_or(ExtractionConfig(config=part), not_cached)
        if not isinstance(outcome, ExtractionOK):
            raise ConsistencyError(
                f"cached extraction of part {part.name} is not a successful outcome"
            )
        pce = outcome.pces[0]
        # parts stand alone: they never build against one another
        build = RepeatableProjectBuild(
            config=pce.config, extracted=pce.extracted, dependency_uuids=[]
        )
        result = runner.check_cache_then_build(projects_dir(dir, part), build, build_data)
        logger.debug("Part %s -> %s", part.name, result)
        return build, result

    def run_build(
        self,
        build: RepeatableProjectBuild,
        dir: Path,
        input: BuildInput,
        runner: RunnerCapability,
        build_data: BuildData,
    ) -> BuildArtifactsOut:
        extra = self.expand_extra(build.config)
        logger.info(
            "These subprojects will be built: %s", ", ".join(p.name for p in extra.parts)
        )
        local_repo = input.out_repo
        # stale files from a previous run must not leak into this one
        clear_directory(local_repo)

        results = self._for_each_part(
            extra.parts, lambda part: self._build_part(part, dir, runner, build_data)
        )
        bad = {r.project: r.status for _, r in results if isinstance(r, BuildBad)}
        if bad:
            raise BuildFailedError(bad)
        part_outs = [
            (part.name, r.artifacts)
            for part, (_, r) in zip(extra.parts, results)
            if isinstance(r, BuildGood)
        ]

        part_outs = self._rename_subprojects(part_outs)
        built = [sub.sub_name for _, out in part_outs for sub in out.results]
        if built != build.extracted.subprojects:
            raise ConsistencyError(
                f"built subprojects {built} do not match the extracted "
                f"subprojects {build.extracted.subprojects}"
            )

        logger.info("Retrieving artifacts into %s", local_repo)
        runner.repository.fetch_by_uuids([local_repo], [[b.uuid for b, _ in results]], [""])

        all_artifacts = [a for _, out in part_outs for a in out.artifacts]
        patcher = NamePatcher(all_artifacts, extra.cross_version)
        logger.info("Assembling with cross-version suffix %r", patcher.cross_suffix)
        subs = [
            self._cross_version_sub(sub, patcher, local_repo)
            for _, out in part_outs
            for sub in out.results
        ]

        available = [a for sub in subs for a in sub.artifacts]
        rewritten = rewrite_descriptors(local_repo, available)
        logger.info("Rewrote %d descriptor and checksum files", len(rewritten))

        out = BuildArtifactsOut(
            results=[self._rehash(sub, rewritten, local_repo) for sub in subs]
        )
        logger.debug("Assembled: %s", out.model_dump_json())
        return out

    @staticmethod
    def _rename_subprojects(
        part_outs: list[tuple[str, BuildArtifactsOut]],
    ) -> list[tuple[str, BuildArtifactsOut]]:
        adapted = dict(
            adapt_subprojects([(name, [s.sub_name for s in out.results]) for name, out in part_outs])
        )
        renamed = []
        for name, out in part_outs:
            results = [
                sub.model_copy(update={"sub_name": new_name})
                for sub, new_name in zip(out.results, adapted[name])
            ]
            renamed.append((name, BuildArtifactsOut(results=results)))
        return renamed

    @staticmethod
    def _cross_version_sub(
        sub: BuildSubArtifactsOut, patcher: NamePatcher, local_repo: Path
    ) -> BuildSubArtifactsOut:
        artifacts = [
            a if is_core_artifact(a) else a.model_copy(update={"cross_suffix": patcher.cross_suffix})
            for a in sub.artifacts
        ]
        # the locations move now, the hashes are refreshed after rewriting
        shas = [_relocate(sha, patcher, local_repo) for sha in sub.shas]
        info = sub.module_info
        binary = None if is_core(info.name, info.organization) else patcher.binary_attribute
        module_info = info.model_copy(
            update={"attributes": info.attributes.model_copy(update={"binary_version": binary})}
        )
        return sub.model_copy(
            update={"artifacts": artifacts, "shas": shas, "module_info": module_info}
        )

    @staticmethod
    def _rehash(
        sub: BuildSubArtifactsOut, rewritten: set[str], local_repo: Path
    ) -> BuildSubArtifactsOut:
        shas = [
            ArtifactSha(sha=file_digest(local_repo / sha.location), location=sha.location)
            if sha.location in rewritten
            else sha
            for sha in sub.shas
        ]
        return sub.model_copy(update={"shas": shas})


def _relocate(sha: ArtifactSha, patcher: NamePatcher, local_repo: Path) -> ArtifactSha:
    """Move one file to the directory implied by its cross-versioned name."""
    parsed = parse_repo_path(sha.location)
    if isinstance(parsed, Unrecognized):
        logger.error("Path cannot be parsed: %s. Continuing...", sha.location)
        return sha
    if is_core(parsed.name, parsed.organization):
        return sha
    new_name = patcher.patch_name(parsed.name)
    if new_name == parsed.name:
        return sha
    new_location = parsed.relocated(new_name)
    target = local_repo / new_location
    target.parent.mkdir(parents=True, exist_ok=True)
    (local_repo / sha.location).rename(target)
    return sha.model_copy(update={"location": new_location})
