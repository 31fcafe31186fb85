"""unibuild data models — all Pydantic v2, all frozen (immutable)."""

from unibuild.models.artifacts import (
    ArtifactLocation,
    ArtifactSha,
    BuildArtifactsOut,
    BuildData,
    BuildInput,
    BuildSubArtifactsOut,
    ModuleAttributes,
    ModuleInfo,
)
from unibuild.models.outcomes import (
    BuildBad,
    BuildGood,
    BuildOutcome,
    BuildReport,
    ExtractionFailed,
    ExtractionOK,
    ExtractionOutcome,
)
from unibuild.models.project import (
    NIL_URI,
    BuildConfig,
    BuildRequest,
    CrossVersion,
    ExtractedBuildMeta,
    ExtractionConfig,
    ProjectConfigAndExtracted,
    ProjectMeta,
    ProjectRef,
    RepeatableProjectBuild,
)

__all__ = [
    # project
    "NIL_URI",
    "BuildConfig",
    "BuildRequest",
    "CrossVersion",
    "ExtractionConfig",
    "ProjectRef",
    "ProjectMeta",
    "ExtractedBuildMeta",
    "ProjectConfigAndExtracted",
    "RepeatableProjectBuild",
    # artifacts
    "ArtifactLocation",
    "ArtifactSha",
    "ModuleAttributes",
    "ModuleInfo",
    "BuildSubArtifactsOut",
    "BuildArtifactsOut",
    "BuildInput",
    "BuildData",
    # outcomes
    "ExtractionOK",
    "ExtractionFailed",
    "ExtractionOutcome",
    "BuildGood",
    "BuildBad",
    "BuildOutcome",
    "BuildReport",
]
