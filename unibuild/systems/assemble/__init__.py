"""Assemble: merge independently built projects into one artifact set."""

from unibuild.systems.assemble.system import (
    AssembleBuildSystem,
    AssembleExtraConfig,
    partition_dependencies,
    projects_dir,
)

__all__ = [
    "AssembleBuildSystem",
    "AssembleExtraConfig",
    "partition_dependencies",
    "projects_dir",
]
