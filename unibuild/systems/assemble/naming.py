"""Artifact-name conventions shared by the assemble engine."""

from __future__ import annotations

import re

from unibuild.models.artifacts import ArtifactLocation
from unibuild.models.project import ProjectRef

# Placeholder sub-project name used by build tools for an unnamed root module
DEFAULT_SUBPROJECT = "default-sbt-project"

CORE_ORGANIZATION = "org.scala-lang"
EXTENSIONS_ORGANIZATION = "org.scala-lang.plugins"
CORE_LIBRARY = ProjectRef(organization=CORE_ORGANIZATION, name="scala-library")

_CROSS_SUFFIXED = re.compile(r"(.+?)(?:_\d+\.\d+[^_]*)+")


def fix_name(name: str) -> str:
    """Strip cross-version suffixes: ``lib_2.11`` and ``plugin_2.10_0.13``."""
    match = _CROSS_SUFFIXED.fullmatch(name)
    return match.group(1) if match else name


def is_core(name: str, organization: str) -> bool:
    """Core-language artifacts are never cross-versioned."""
    fixed = fix_name(name)
    return (organization == CORE_ORGANIZATION and fixed.startswith("scala")) or (
        organization == EXTENSIONS_ORGANIZATION and fixed == "continuations"
    )


def is_core_ref(ref: ProjectRef) -> bool:
    return is_core(ref.name, ref.organization)


def is_core_artifact(location: ArtifactLocation) -> bool:
    return is_core_ref(location.info)


def is_core_library(location: ArtifactLocation) -> bool:
    return (
        location.info.organization == CORE_LIBRARY.organization
        and fix_name(location.info.name) == CORE_LIBRARY.name
    )
