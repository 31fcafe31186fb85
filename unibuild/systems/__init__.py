"""Build-system implementations and the registry that dispatches to them."""

from unibuild.systems.base import (
    BuildSystem,
    BuildSystemCore,
    ExtractorCapability,
    RepositoryCapability,
    RunnerCapability,
)
from unibuild.systems.registry import BuildSystemRegistry, default_registry, for_name

__all__ = [
    "BuildSystem",
    "BuildSystemCore",
    "BuildSystemRegistry",
    "ExtractorCapability",
    "RepositoryCapability",
    "RunnerCapability",
    "default_registry",
    "for_name",
]
