"""Error taxonomy for unibuild.

Every fatal condition raised by the orchestration core and the build
systems derives from ``UnibuildError``.  Configuration and consistency
errors always propagate unchanged; anything else raised while extracting
or building a project is recorded as a failed outcome for that project.
"""

from __future__ import annotations


class UnibuildError(RuntimeError):
    """Base class for all unibuild errors."""


class ConfigurationError(UnibuildError):
    """A static authoring mistake: unknown build system, bad policy, bad URI.

    Never retried; the configuration has to be fixed.
    """


class ExtractionError(UnibuildError):
    """One or more projects (or assemble parts) failed to extract."""

    def __init__(self, failed_parts: list[str], causes: dict[str, str] | None = None) -> None:
        self.failed_parts = list(failed_parts)
        self.causes = dict(causes or {})
        super().__init__("failed: " + ", ".join(self.failed_parts))


class ConsistencyError(UnibuildError):
    """An internal sequencing or bookkeeping bug."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Internal error: {message}. Please report.")


class IntegrityError(UnibuildError):
    """The inputs of an assembly are contradictory (duplicates, missing core)."""

    def __init__(self, message: str, offenders: list[str] | None = None) -> None:
        self.offenders = list(offenders or [])
        super().__init__(message)


class BuildFailedError(UnibuildError):
    """One or more nested builds reported a failed outcome."""

    def __init__(self, statuses: dict[str, str]) -> None:
        self.statuses = dict(statuses)
        super().__init__(
            "; ".join(f"Part {name}: {status}" for name, status in self.statuses.items())
        )
