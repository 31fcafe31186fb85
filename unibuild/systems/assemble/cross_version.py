"""Cross-version suffix computation for assembled artifact names."""

from __future__ import annotations

import re
from collections.abc import Sequence

from unibuild.errors import ConfigurationError, IntegrityError
from unibuild.models.artifacts import ArtifactLocation
from unibuild.models.project import CrossVersion
from unibuild.systems.assemble.naming import CORE_LIBRARY, fix_name, is_core_library

_BINARY = re.compile(r"(\d+\.\d+)(?:\..+)?")


def binary_version(version: str) -> str:
    """``2.11.0-M5`` -> ``2.11``."""
    m = _BINARY.fullmatch(version)
    if m is None:
        raise ConfigurationError(
            f"Cannot extract a binary version from {version!r}"
        )
    return m.group(1)


class NamePatcher:
    """Computes the merged cross-version suffix and applies it to names.

    The suffix value comes from the version of the core library found
    among the assembled artifacts.  Under ``disabled`` the core library is
    not needed and every suffix is removed.

    Parameters
    ----------
    artifacts:
        Every artifact produced by the assembled parts.
    policy:
        The assembly's cross-version policy.
    """

    def __init__(self, artifacts: Sequence[ArtifactLocation], policy: CrossVersion) -> None:
        versions = sorted({a.version for a in artifacts if is_core_library(a)})
        if len(versions) > 1:
            raise IntegrityError(
                f"{CORE_LIBRARY.module_id} is provided at several versions: "
                + ", ".join(versions),
                offenders=versions,
            )
        self.core_version: str | None = versions[0] if versions else None
        self.policy = CrossVersion(policy)
        self.cross_suffix = self._suffix()

    def _require_core_version(self) -> str:
        if self.core_version is None:
            raise IntegrityError(
                f"The requested cross-version level is {self.policy.value!r}, but no "
                f"{CORE_LIBRARY.name} was found among the parts "
                f"(maybe you meant cross_version 'disabled'?)"
            )
        return self.core_version

    def _suffix(self) -> str:
        if self.policy is CrossVersion.DISABLED:
            return ""
        if self.policy is CrossVersion.FULL:
            return "_" + self._require_core_version()
        if self.policy is CrossVersion.BINARY:
            return "_" + binary_version(self._require_core_version())
        raise ConfigurationError(
            f"{self.policy.value!r} is not a supported cross-version selection for "
            "assemble. Please select one of 'disabled', 'binary', or 'full' instead."
        )

    def patch_name(self, name: str) -> str:
        return fix_name(name) + self.cross_suffix

    @property
    def binary_attribute(self) -> str | None:
        """Module attribute value: the suffix without its leading ``_``."""
        return self.cross_suffix[1:] if self.cross_suffix else None
