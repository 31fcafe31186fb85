"""Project configuration and extracted-metadata models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from unibuild.core.fingerprint import fingerprint

# Source locator of projects that have no source of their own (e.g. assemble)
NIL_URI = "nil"


class CrossVersion(str, Enum):
    """Cross-version naming policy for published artifact names."""

    DISABLED = "disabled"
    BINARY = "binary"
    FULL = "full"
    STANDARD = "standard"


class BuildConfig(BaseModel):
    """Declarative description of one project.

    ``extra`` carries build-system-specific options; each build system
    parses it into its own typed model.  Resolution never mutates a
    config: it returns a copy with a pinned ``uri``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    system: str
    uri: str = NIL_URI
    set_version: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class ExtractionConfig(BaseModel):
    """What to extract dependency information from."""

    model_config = ConfigDict(frozen=True)

    config: BuildConfig

    @property
    def name(self) -> str:
        return self.config.name


class ProjectRef(BaseModel):
    """An (organization, name) module reference, optionally qualified."""

    model_config = ConfigDict(frozen=True)

    organization: str
    name: str
    extension: str = "jar"
    classifier: str | None = None

    @property
    def module_id(self) -> str:
        return f"{self.organization}#{self.name}"


class ProjectMeta(BaseModel):
    """One module produced by a project, with its declared dependencies."""

    model_config = ConfigDict(frozen=True)

    name: str
    organization: str
    artifacts: list[ProjectRef] = Field(default_factory=list)
    dependencies: list[ProjectRef] = Field(default_factory=list)

    @property
    def module_id(self) -> str:
        return f"{self.organization}#{self.name}"


class ExtractedBuildMeta(BaseModel):
    """Result of dependency extraction for a single project.

    ``subprojects`` is ordered: build systems report one
    ``BuildSubArtifactsOut`` per entry, in the same order.
    """

    model_config = ConfigDict(frozen=True)

    version: str
    projects: list[ProjectMeta] = Field(default_factory=list)
    subprojects: list[str] = Field(default_factory=list)


class ProjectConfigAndExtracted(BaseModel):
    """A resolved config paired with the metadata extracted from it."""

    model_config = ConfigDict(frozen=True)

    config: BuildConfig
    extracted: ExtractedBuildMeta


class RepeatableProjectBuild(BaseModel):
    """The unit that is actually built.

    Two builds with the same ``uuid`` are interchangeable: the uuid is the
    fingerprint of the resolved config, its extracted metadata and the
    uuids of the builds it depends on.
    """

    model_config = ConfigDict(frozen=True)

    config: BuildConfig
    extracted: ExtractedBuildMeta
    dependency_uuids: list[str] = Field(default_factory=list)

    @property
    def uuid(self) -> str:
        return fingerprint(
            {
                "config": self.config,
                "extracted": self.extracted,
                "dependency_uuids": self.dependency_uuids,
            }
        )

    @property
    def name(self) -> str:
        return self.config.name


class BuildRequest(BaseModel):
    """Top-level request document: the projects to build together."""

    model_config = ConfigDict(frozen=True)

    projects: list[BuildConfig]
