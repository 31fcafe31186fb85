"""Dependency-descriptor rewriting for Maven POMs and Ivy files.

After the parts of an assembly have been merged, every descriptor in the
staging repository is patched so that dependencies on merged artifacts
point at their new (possibly cross-suffixed) names and versions, and a
descriptor whose own directory was renamed identifies itself by the new
name.  Descriptors are written back only when something changed, so an
untouched descriptor keeps its bytes (and hash).  Checksum sidecars of a
rewritten descriptor are regenerated if they exist.

Only the fields read and written here are modelled; everything else in
the XML document is carried through unchanged.
"""

from __future__ import annotations

import abc
import hashlib
import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from pathlib import Path

from unibuild.errors import IntegrityError
from unibuild.models.artifacts import ArtifactLocation
from unibuild.systems.assemble.layout import IVY_DESCRIPTOR
from unibuild.systems.assemble.naming import fix_name

logger = logging.getLogger(__name__)

CHECKSUM_ALGORITHMS = ("md5", "sha1")

_POM_IDENTITY = re.compile(r"(?:.*/)?([^/]+)/([^/]+)/\1-[^/]*\.pom")
_IVY_IDENTITY = re.compile(r"[^/]*/([^/]*)/([^/]*)/ivys/ivy\.xml")
_RESERVED_PREFIX = re.compile(r"ns\d+")


# ---------------------------------------------------------------------------
# XML plumbing
# ---------------------------------------------------------------------------


def _parse(path: Path) -> ET.ElementTree:
    # Register the document's prefixes so they survive the round trip.
    # ElementTree reserves ns0, ns1, ... for the prefixes it invents.
    for _, (prefix, uri) in ET.iterparse(path, events=("start-ns",)):
        if not _RESERVED_PREFIX.fullmatch(prefix):
            ET.register_namespace(prefix, uri)
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    return ET.parse(path, parser=parser)


def _namespace(element: ET.Element) -> str:
    if element.tag.startswith("{"):
        return element.tag[: element.tag.index("}") + 1]
    return ""


def _set_attr(element: ET.Element, key: str, value: str) -> bool:
    if element.get(key) == value:
        return False
    element.set(key, value)
    return True


class DependencyRef:
    """A view on one dependency entry of a descriptor."""

    def __init__(self, organization: str, name: str, version: str | None) -> None:
        self.organization = organization
        self.name = name
        self.version = version

    def __repr__(self) -> str:
        return f"DependencyRef({self.organization}#{self.name};{self.version})"


class Descriptor(abc.ABC):
    """A parsed dependency descriptor.

    Subclasses expose the self identity and the dependency list; every
    other part of the document is left as parsed.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.tree = _parse(path)
        self.root = self.tree.getroot()
        self.changed = False

    @property
    @abc.abstractmethod
    def identity(self) -> tuple[str, str, str | None]:
        """(organization, name, version) the descriptor declares for itself."""

    @abc.abstractmethod
    def set_identity(self, name: str, version: str) -> None:
        ...

    @abc.abstractmethod
    def dependencies(self) -> list[tuple[DependencyRef, ET.Element]]:
        ...

    @abc.abstractmethod
    def retarget(self, element: ET.Element, artifact: ArtifactLocation) -> None:
        """Point one dependency entry at a merged artifact."""

    def rewrite_dependencies(self, available: Sequence[ArtifactLocation]) -> int:
        """Retarget every dependency provided by *available*; returns the count."""
        count = 0
        for ref, element in self.dependencies():
            artifact = find_available(available, ref.organization, ref.name)
            if artifact is not None:
                self.retarget(element, artifact)
                count += 1
        return count

    def save(self) -> None:
        self.tree.write(self.path, encoding="utf-8", xml_declaration=True)


def find_available(
    available: Sequence[ArtifactLocation], organization: str, name: str
) -> ArtifactLocation | None:
    """First merged artifact with this organization and normalized name."""
    fixed = fix_name(name)
    for artifact in available:
        if artifact.info.organization == organization and artifact.info.name == fixed:
            return artifact
    return None


# ---------------------------------------------------------------------------
# Maven
# ---------------------------------------------------------------------------


class PomDescriptor(Descriptor):
    def _q(self, tag: str) -> str:
        return _namespace(self.root) + tag

    def _text(self, parent: ET.Element | None, tag: str) -> str | None:
        if parent is None:
            return None
        child = parent.find(self._q(tag))
        return child.text.strip() if child is not None and child.text else None

    def _set_text(self, parent: ET.Element, tag: str, value: str) -> None:
        child = parent.find(self._q(tag))
        if child is None:
            child = ET.SubElement(parent, self._q(tag))
        elif (child.text or "").strip() == value:
            return
        child.text = value
        self.changed = True

    @property
    def identity(self) -> tuple[str, str, str | None]:
        parent = self.root.find(self._q("parent"))
        organization = self._text(self.root, "groupId") or self._text(parent, "groupId") or ""
        version = self._text(self.root, "version") or self._text(parent, "version")
        return organization, self._text(self.root, "artifactId") or "", version

    def set_identity(self, name: str, version: str) -> None:
        _, current_name, current_version = self.identity
        if current_name != name:
            self._set_text(self.root, "artifactId", name)
        if current_version != version:
            self._set_text(self.root, "version", version)

    def dependencies(self) -> list[tuple[DependencyRef, ET.Element]]:
        deps = self.root.find(self._q("dependencies"))
        if deps is None:
            return []
        return [
            (
                DependencyRef(
                    self._text(dep, "groupId") or "",
                    self._text(dep, "artifactId") or "",
                    self._text(dep, "version"),
                ),
                dep,
            )
            for dep in deps.findall(self._q("dependency"))
        ]

    def retarget(self, element: ET.Element, artifact: ArtifactLocation) -> None:
        name = fix_name(self._text(element, "artifactId") or "") + artifact.cross_suffix
        self._set_text(element, "artifactId", name)
        self._set_text(element, "version", artifact.version)


# ---------------------------------------------------------------------------
# Ivy
# ---------------------------------------------------------------------------


class IvyDescriptor(Descriptor):
    @property
    def _info(self) -> ET.Element:
        info = self.root.find("info")
        if info is None:
            raise IntegrityError(f"{self.path}: Ivy file has no <info> element")
        return info

    @property
    def identity(self) -> tuple[str, str, str | None]:
        info = self._info
        return info.get("organisation", ""), info.get("module", ""), info.get("revision")

    def set_identity(self, name: str, version: str) -> None:
        info = self._info
        old_name = info.get("module", "")
        self.changed |= _set_attr(info, "module", name)
        self.changed |= _set_attr(info, "revision", version)
        if old_name == name:
            return
        # published artifacts carry the module name as well
        publications = self.root.find("publications")
        for artifact in publications.findall("artifact") if publications is not None else []:
            if artifact.get("name", old_name) == old_name:
                self.changed |= _set_attr(artifact, "name", name)

    def dependencies(self) -> list[tuple[DependencyRef, ET.Element]]:
        deps = self.root.find("dependencies")
        if deps is None:
            return []
        own_org = self.identity[0]
        return [
            (DependencyRef(dep.get("org", own_org), dep.get("name", ""), dep.get("rev")), dep)
            for dep in deps.findall("dependency")
        ]

    def retarget(self, element: ET.Element, artifact: ArtifactLocation) -> None:
        new_name = artifact.info.name + artifact.cross_suffix
        self.changed |= _set_attr(element, "name", new_name)
        self.changed |= _set_attr(element, "rev", artifact.version)
        if element.get("revConstraint") is not None:
            self.changed |= _set_attr(element, "revConstraint", artifact.version)
        for sub in element.findall("artifact"):
            if fix_name(sub.get("name", "")) == artifact.info.name:
                self.changed |= _set_attr(sub, "name", new_name)


# ---------------------------------------------------------------------------
# Patching
# ---------------------------------------------------------------------------


def update_checksum_files(path: Path) -> list[Path]:
    """Regenerate the existing ``.md5`` / ``.sha1`` sidecars of *path*."""
    data = path.read_bytes()
    updated = []
    for algorithm in CHECKSUM_ALGORITHMS:
        sidecar = path.with_name(f"{path.name}.{algorithm}")
        if sidecar.exists():
            sidecar.write_text(hashlib.new(algorithm, data).hexdigest(), encoding="ascii")
            updated.append(sidecar)
    return updated


def _identity_from_path(pattern: re.Pattern[str], location: str) -> tuple[str, str]:
    m = pattern.fullmatch(location)
    if m is None:
        raise IntegrityError(
            f"Cannot determine the module name and version from the path {location!r}",
            offenders=[location],
        )
    return m.group(1), m.group(2)


def _patch(
    descriptor: Descriptor,
    location: str,
    identity_pattern: re.Pattern[str],
    available: Sequence[ArtifactLocation],
) -> list[Path]:
    name, version = _identity_from_path(identity_pattern, location)
    retargeted = descriptor.rewrite_dependencies(available)
    descriptor.set_identity(name, version)
    if not descriptor.changed:
        return []
    logger.debug("Rewriting %s (%d dependencies retargeted)", location, retargeted)
    descriptor.save()
    return [descriptor.path, *update_checksum_files(descriptor.path)]


def patch_pom_dependencies(
    pom: Path, available: Sequence[ArtifactLocation], repo_root: Path
) -> list[Path]:
    """Patch one POM in place; returns every file whose bytes changed."""
    location = pom.relative_to(repo_root).as_posix()
    return _patch(PomDescriptor(pom), location, _POM_IDENTITY, available)


def patch_ivy_dependencies(
    ivy: Path, available: Sequence[ArtifactLocation], repo_root: Path
) -> list[Path]:
    """Patch one ivy.xml in place; returns every file whose bytes changed."""
    location = ivy.relative_to(repo_root).as_posix()
    return _patch(IvyDescriptor(ivy), location, _IVY_IDENTITY, available)


def rewrite_descriptors(repo_root: Path, available: Sequence[ArtifactLocation]) -> set[str]:
    """Patch every descriptor under *repo_root*.

    Returns the repository-relative locations of all rewritten files,
    checksum sidecars included.
    """
    rewritten: list[Path] = []
    for pom in sorted(repo_root.rglob("*.pom")):
        rewritten.extend(patch_pom_dependencies(pom, available, repo_root))
    for ivy in sorted(repo_root.rglob(IVY_DESCRIPTOR)):
        rewritten.extend(patch_ivy_dependencies(ivy, available, repo_root))
    return {path.relative_to(repo_root).as_posix() for path in rewritten}
