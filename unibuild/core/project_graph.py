"""Dependency DAG between the top-level projects of a build request.

A project depends on another when one of its modules declares a
dependency that the other project produces.  The graph yields a build
order (dependencies first) and the transitive dependents of a project,
which are blocked when it fails.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from unibuild.errors import ConfigurationError, IntegrityError
from unibuild.models.project import ProjectConfigAndExtracted


class CyclicDependencyError(ConfigurationError):
    """Raised when the projects of a request depend on each other in a cycle."""


class ProjectGraph:
    """Directed acyclic graph of project dependencies.

    Parameters
    ----------
    projects:
        Extracted top-level projects, in declaration order.  Declaration
        order breaks ties in ``build_order``.
    """

    def __init__(self, projects: Sequence[ProjectConfigAndExtracted]) -> None:
        self._order = {p.config.name: i for i, p in enumerate(projects)}

        providers: dict[str, str] = {}
        for pce in projects:
            for meta in pce.extracted.projects:
                owner = providers.setdefault(meta.module_id, pce.config.name)
                if owner != pce.config.name:
                    raise IntegrityError(
                        f"{meta.module_id} is provided by both {owner} and {pce.config.name}",
                        offenders=[owner, pce.config.name],
                    )

        # Forward edges: project -> projects it depends on
        self._dependencies: dict[str, list[str]] = {name: [] for name in self._order}
        # Reverse edges: project -> projects that depend on it
        self._dependents: dict[str, list[str]] = {name: [] for name in self._order}
        for pce in projects:
            name = pce.config.name
            for meta in pce.extracted.projects:
                for dep in meta.dependencies:
                    provider = providers.get(dep.module_id)
                    if provider is None or provider == name:
                        continue
                    if provider not in self._dependencies[name]:
                        self._dependencies[name].append(provider)
                        self._dependents[provider].append(name)

        self._build_order = self._topological_order()

    def _topological_order(self) -> list[str]:
        # Kahn's algorithm, ready projects taken in declaration order
        in_degree = {name: len(deps) for name, deps in self._dependencies.items()}
        ready = sorted((n for n, d in in_degree.items() if d == 0), key=self._order.__getitem__)
        queue = deque(ready)
        result: list[str] = []
        while queue:
            node = queue.popleft()
            result.append(node)
            for dep in sorted(self._dependents[node], key=self._order.__getitem__):
                in_degree[dep] -= 1
                if in_degree[dep] == 0:
                    queue.append(dep)

        if len(result) != len(self._order):
            stuck = sorted(set(self._order) - set(result), key=self._order.__getitem__)
            raise CyclicDependencyError(
                "Project dependencies have a cycle involving: " + ", ".join(stuck)
            )
        return result

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    @property
    def build_order(self) -> list[str]:
        """All project names, every project after the projects it depends on."""
        return list(self._build_order)

    def get_dependencies(self, name: str) -> list[str]:
        """Direct dependencies of *name*."""
        return list(self._dependencies.get(name, []))

    def get_dependents(self, name: str) -> list[str]:
        """All transitive dependents of *name* (BFS)."""
        result = []
        queue = deque(self._dependents.get(name, []))
        visited: set[str] = set()
        while queue:
            node = queue.popleft()
            if node in visited:
                continue
            visited.add(node)
            result.append(node)
            queue.extend(self._dependents.get(node, []))
        return result
