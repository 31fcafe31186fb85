"""The ``nil`` build system: no sources, no modules, no artifacts."""

from __future__ import annotations

from pathlib import Path

from unibuild.models.artifacts import BuildArtifactsOut, BuildData, BuildInput
from unibuild.models.project import (
    ExtractedBuildMeta,
    ExtractionConfig,
    RepeatableProjectBuild,
)
from unibuild.systems.base import BuildSystemCore, ExtractorCapability, RunnerCapability


class NilBuildSystem(BuildSystemCore):
    name = "nil"

    def extract_dependencies(
        self, config: ExtractionConfig, dir: Path, extractor: ExtractorCapability
    ) -> ExtractedBuildMeta:
        return ExtractedBuildMeta(version=config.config.set_version or "0.0.0")

    def run_build(
        self,
        build: RepeatableProjectBuild,
        dir: Path,
        input: BuildInput,
        runner: RunnerCapability,
        build_data: BuildData,
    ) -> BuildArtifactsOut:
        return BuildArtifactsOut()
