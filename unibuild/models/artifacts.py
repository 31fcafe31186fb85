"""Build output models: artifact locations, content hashes, module info."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from unibuild.models.project import ProjectRef


class ArtifactLocation(BaseModel):
    """A published artifact coordinate."""

    model_config = ConfigDict(frozen=True)

    info: ProjectRef
    version: str
    cross_suffix: str = ""

    @property
    def published_name(self) -> str:
        return self.info.name + self.cross_suffix


class ArtifactSha(BaseModel):
    """Content hash of one file, located relative to the repository root."""

    model_config = ConfigDict(frozen=True)

    sha: str
    location: str  # posix path relative to the local repository


class ModuleAttributes(BaseModel):
    model_config = ConfigDict(frozen=True)

    binary_version: str | None = None


class ModuleInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    organization: str
    name: str
    version: str
    attributes: ModuleAttributes = ModuleAttributes()


class BuildSubArtifactsOut(BaseModel):
    """Artifacts of one sub-project of a build."""

    model_config = ConfigDict(frozen=True)

    sub_name: str
    artifacts: list[ArtifactLocation] = Field(default_factory=list)
    shas: list[ArtifactSha] = Field(default_factory=list)
    module_info: ModuleInfo


class BuildArtifactsOut(BaseModel):
    """Everything a successful build produced, one entry per sub-project."""

    model_config = ConfigDict(frozen=True)

    results: list[BuildSubArtifactsOut] = Field(default_factory=list)

    @property
    def artifacts(self) -> list[ArtifactLocation]:
        return [art for sub in self.results for art in sub.artifacts]

    @property
    def shas(self) -> list[ArtifactSha]:
        return [sha for sub in self.results for sha in sub.shas]


class BuildInput(BaseModel):
    """Where a build system writes its output and reads its dependencies."""

    model_config = ConfigDict(frozen=True)

    out_repo: Path
    dependency_repo: Path
    version: str
    uuid: str


class BuildData(BaseModel):
    model_config = ConfigDict(frozen=True)

    debug: bool = False
