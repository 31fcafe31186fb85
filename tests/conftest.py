"""Shared test fixtures for unibuild."""

from __future__ import annotations

import hashlib
import threading
import time
from collections import Counter
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal

import pytest
from pydantic import BaseModel, Field

from unibuild.config import UnibuildSettings
from unibuild.core.cache import InMemoryOutcomeStore
from unibuild.core.orchestrator import Orchestrator
from unibuild.core.repository import ArtifactRepository, scan_artifact_shas
from unibuild.models.artifacts import (
    ArtifactLocation,
    BuildArtifactsOut,
    BuildData,
    BuildInput,
    BuildSubArtifactsOut,
    ModuleInfo,
)
from unibuild.models.project import (
    BuildConfig,
    ExtractedBuildMeta,
    ExtractionConfig,
    ProjectMeta,
    ProjectRef,
    RepeatableProjectBuild,
)
from unibuild.systems.assemble import AssembleBuildSystem
from unibuild.systems.base import BuildSystemCore, ExtractorCapability, RunnerCapability
from unibuild.systems.nil import NilBuildSystem
from unibuild.systems.registry import BuildSystemRegistry
from unibuild.systems.resolvers import NilResolver, SourceResolvers

POM_NS = "http://maven.apache.org/POM/4.0.0"


# ---------------------------------------------------------------------------
# Fake build system — writes a Maven or Ivy layout and counts invocations
# ---------------------------------------------------------------------------


class FakeModule(BaseModel):
    name: str
    organization: str = "com.example"
    subproject: str | None = None
    layout: Literal["maven", "ivy"] = "maven"
    # Suffix the module is published with before assembly, e.g. "_2.10"
    cross_suffix: str = ""
    # "org:name" references
    dependencies: list[str] = Field(default_factory=list)


class FakeExtra(BaseModel):
    modules: list[FakeModule] = Field(default_factory=list)
    fail_extract: bool = False
    fail_build: bool = False


def _ref(dependency: str) -> ProjectRef:
    organization, name = dependency.split(":")
    return ProjectRef(organization=organization, name=name)


def render_pom(
    organization: str, artifact_id: str, version: str, dependencies: list[tuple[str, str, str]]
) -> str:
    deps = "".join(
        "    <dependency>\n"
        f"      <groupId>{g}</groupId>\n"
        f"      <artifactId>{a}</artifactId>\n"
        f"      <version>{v}</version>\n"
        "    </dependency>\n"
        for g, a, v in dependencies
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<project xmlns="{POM_NS}">\n'
        "  <modelVersion>4.0.0</modelVersion>\n"
        f"  <groupId>{organization}</groupId>\n"
        f"  <artifactId>{artifact_id}</artifactId>\n"
        f"  <version>{version}</version>\n"
        "  <!-- generated by the fake build -->\n"
        f"  <dependencies>\n{deps}  </dependencies>\n"
        "</project>\n"
    )


def render_ivy(
    organization: str, module: str, version: str, dependencies: list[tuple[str, str, str]]
) -> str:
    deps = "".join(
        f'    <dependency org="{g}" name="{a}" rev="{v}" conf="compile->default"/>\n'
        for g, a, v in dependencies
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<ivy-module version="2.0">\n'
        f'  <info organisation="{organization}" module="{module}" revision="{version}"/>\n'
        "  <publications>\n"
        f'    <artifact name="{module}" type="jar" ext="jar" conf="compile"/>\n'
        "  </publications>\n"
        f"  <dependencies>\n{deps}  </dependencies>\n"
        "</ivy-module>\n"
    )


def write_with_sha1(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    path.with_name(path.name + ".sha1").write_text(
        hashlib.sha1(text.encode("utf-8")).hexdigest(), encoding="ascii"
    )


class FakeBuildSystem(BuildSystemCore):
    """Build system tagged ``fake``; modules come from ``extra["modules"]``."""

    name = "fake"
    extra_model = FakeExtra

    def __init__(self) -> None:
        self.extract_calls: Counter[str] = Counter()
        self.build_calls: Counter[str] = Counter()
        self._lock = threading.Lock()
        self.build_delay = 0.0

    def extract_dependencies(
        self, config: ExtractionConfig, dir: Path, extractor: ExtractorCapability
    ) -> ExtractedBuildMeta:
        with self._lock:
            self.extract_calls[config.name] += 1
        extra = self.expand_extra(config.config)
        if extra.fail_extract:
            raise RuntimeError(f"cannot read build definition of {config.name}")
        projects = [
            ProjectMeta(
                name=m.name,
                organization=m.organization,
                artifacts=[ProjectRef(organization=m.organization, name=m.name)],
                dependencies=[_ref(d) for d in m.dependencies],
            )
            for m in extra.modules
        ]
        return ExtractedBuildMeta(
            version=config.config.set_version or "1.0",
            projects=projects,
            subprojects=[m.subproject or m.name for m in extra.modules],
        )

    def run_build(
        self,
        build: RepeatableProjectBuild,
        dir: Path,
        input: BuildInput,
        runner: RunnerCapability,
        build_data: BuildData,
    ) -> BuildArtifactsOut:
        with self._lock:
            self.build_calls[build.name] += 1
        if self.build_delay:
            time.sleep(self.build_delay)
        extra = self.expand_extra(build.config)
        if extra.fail_build:
            raise RuntimeError(f"compilation failed in {build.name}")

        version = input.version
        results = []
        for m in extra.modules:
            published = m.name + m.cross_suffix
            deps = [(_ref(d).organization, _ref(d).name, "0.9") for d in m.dependencies]
            if m.layout == "maven":
                module_dir = input.out_repo.joinpath(*m.organization.split("."), published)
                base = module_dir / version
                write_with_sha1(
                    base / f"{published}-{version}.pom",
                    render_pom(m.organization, published, version, deps),
                )
                (base / f"{published}-{version}.jar").write_bytes(f"jar:{m.name}".encode())
            else:
                module_dir = input.out_repo / m.organization / published
                base = module_dir / version
                write_with_sha1(
                    base / "ivys" / "ivy.xml", render_ivy(m.organization, published, version, deps)
                )
                (base / "jars").mkdir(parents=True, exist_ok=True)
                (base / "jars" / f"{published}.jar").write_bytes(f"jar:{m.name}".encode())
            results.append(
                BuildSubArtifactsOut(
                    sub_name=m.subproject or m.name,
                    artifacts=[
                        ArtifactLocation(
                            info=ProjectRef(organization=m.organization, name=m.name),
                            version=version,
                            cross_suffix=m.cross_suffix,
                        )
                    ],
                    shas=scan_artifact_shas(input.out_repo, [module_dir]),
                    module_info=ModuleInfo(
                        organization=m.organization, name=published, version=version
                    ),
                )
            )
        return BuildArtifactsOut(results=results)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def settings(tmp_dir: Path) -> UnibuildSettings:
    """Settings rooted in the temp directory, independent of the environment."""
    return UnibuildSettings(
        work_dir=tmp_dir / "work",
        repository_path=tmp_dir / "repository",
        cache_db_path=None,
        max_workers=1,
    )


@pytest.fixture
def fake_system() -> FakeBuildSystem:
    return FakeBuildSystem()


@pytest.fixture
def registry(fake_system: FakeBuildSystem) -> BuildSystemRegistry:
    """nil + assemble + fake."""
    return BuildSystemRegistry([NilBuildSystem(), AssembleBuildSystem(), fake_system])


@pytest.fixture
def resolvers() -> SourceResolvers:
    return SourceResolvers([NilResolver()])


@pytest.fixture
def repository(tmp_dir: Path) -> ArtifactRepository:
    """Provide a fresh ArtifactRepository in a temp directory."""
    return ArtifactRepository(tmp_dir / "repository")


@pytest.fixture
def make_orchestrator(
    settings: UnibuildSettings,
    registry: BuildSystemRegistry,
    resolvers: SourceResolvers,
    repository: ArtifactRepository,
) -> Callable[..., Orchestrator]:
    """Factory fixture: an Orchestrator wired to the fake build system.

    Orchestrators made by one factory share their durable stores, like
    successive runs of the same installation.
    """
    extraction_store = InMemoryOutcomeStore()
    build_store = InMemoryOutcomeStore()

    def _factory(**overrides: Any) -> Orchestrator:
        defaults: dict[str, Any] = {
            "systems": registry,
            "resolvers": resolvers,
            "extraction_store": extraction_store,
            "build_store": build_store,
            "repository": repository,
        }
        defaults.update(overrides)
        return Orchestrator(settings, **defaults)

    return _factory


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., Orchestrator]) -> Orchestrator:
    return make_orchestrator()


@pytest.fixture
def make_fake_config() -> Callable[..., BuildConfig]:
    """Factory fixture: a ``fake`` project config.

    ``modules`` entries may be plain names or dicts of ``FakeModule`` fields.
    """

    def _factory(
        name: str,
        modules: list[str | dict[str, Any]] | None = None,
        *,
        set_version: str | None = None,
        **extra: Any,
    ) -> BuildConfig:
        specs = [{"name": m} if isinstance(m, str) else m for m in (modules or [name])]
        return BuildConfig(
            name=name,
            system="fake",
            uri="nil",
            set_version=set_version,
            extra={"modules": specs, **extra},
        )

    return _factory


@pytest.fixture
def make_assemble_config() -> Callable[..., BuildConfig]:
    """Factory fixture: an ``assemble`` config over the given parts."""

    def _factory(
        parts: list[BuildConfig], cross_version: str = "disabled", name: str = "assembled"
    ) -> BuildConfig:
        return BuildConfig(
            name=name,
            system="assemble",
            uri="nil",
            extra={
                "parts": [p.model_dump(mode="json") for p in parts],
                "cross_version": cross_version,
            },
        )

    return _factory


@pytest.fixture
def scala_library_part(make_fake_config: Callable[..., BuildConfig]) -> BuildConfig:
    """A part producing the core library at 2.11.4."""
    return make_fake_config(
        "scala",
        [{"name": "scala-library", "organization": "org.scala-lang"}],
        set_version="2.11.4",
    )
