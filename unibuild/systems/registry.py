"""Build-system registry — exact-match dispatch on the ``system`` tag.

An unknown tag is a static wiring error, never a runtime condition, so
lookups fail with ``ConfigurationError``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from unibuild.errors import ConfigurationError
from unibuild.systems.base import BuildSystem

logger = logging.getLogger(__name__)


def for_name(tag: str, systems: Iterable[BuildSystem]) -> BuildSystem:
    """Return the system whose name is exactly *tag*."""
    systems = list(systems)
    for system in systems:
        if system.name == tag:
            return system
    known = ", ".join(sorted(s.name for s in systems)) or "none"
    raise ConfigurationError(
        f"No build system is registered for {tag!r} (registered: {known})"
    )


class BuildSystemRegistry:
    """Named set of build-system implementations.

    Examples
    --------
    >>> from unibuild.systems.nil import NilBuildSystem
    >>> registry = BuildSystemRegistry([NilBuildSystem()])
    >>> registry.for_name("nil").name
    'nil'
    """

    def __init__(self, systems: Iterable[BuildSystem] = ()) -> None:
        self._systems: dict[str, BuildSystem] = {}
        for system in systems:
            self.register(system)

    def register(self, system: BuildSystem) -> None:
        """Add *system*; a second system with the same tag is rejected."""
        if system.name in self._systems:
            raise ConfigurationError(
                f"Build system {system.name!r} is already registered"
            )
        self._systems[system.name] = system
        logger.debug("Registered build system %s", system.name)

    def for_name(self, tag: str) -> BuildSystem:
        return for_name(tag, self._systems.values())

    @property
    def names(self) -> list[str]:
        return sorted(self._systems)

    def __iter__(self):
        return iter(self._systems.values())

    def __len__(self) -> int:
        return len(self._systems)


def default_registry(*, max_workers: int = 1) -> BuildSystemRegistry:
    """Registry with the built-in ``nil`` and ``assemble`` systems."""
    from unibuild.systems.assemble import AssembleBuildSystem
    from unibuild.systems.nil import NilBuildSystem

    return BuildSystemRegistry(
        [NilBuildSystem(), AssembleBuildSystem(max_workers=max_workers)]
    )
