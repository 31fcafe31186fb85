"""Local-repository path parsing for the two supported layouts.

Maven (hierarchical by organization)::

    org/scala-lang/modules/scala-xml_2.11/1.0/scala-xml_2.11-1.0-sources.jar

Ivy (flat organization, one sub-directory per kind)::

    org.scala-lang/scala-compiler/2.10.2/ivys/ivy.xml.sha1
    org.scala-lang/scala-compiler/2.10.2/docs/scala-compiler-javadoc.jar

``parse_repo_path`` tries each layout in turn and returns the first match,
or ``Unrecognized``.
"""

from __future__ import annotations

import re
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

IVY_DESCRIPTOR = "ivy.xml"
IVY_DESCRIPTOR_DIR = "ivys"

_MAVEN = re.compile(r"(.*)/([^/]*)/([^/]*)/\2(-[^/]*)")
_IVY_XML = re.compile(r"([^/]*)/([^/]*)/([^/]*)/(ivys)/([^/]*)")
_IVY_OTHER = re.compile(r"([^/]*)/([^/]*)/([^/]*)/([^/]*)/\2([^/]*)")


class MavenLayout(BaseModel):
    """``suffix`` is everything after the name, e.g. ``-1.0-sources.jar``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["maven"] = "maven"
    organization: str
    name: str
    version: str
    suffix: str

    def relocated(self, name: str) -> str:
        org_path = self.organization.replace(".", "/")
        return f"{org_path}/{name}/{self.version}/{name}{self.suffix}"


class IvyXmlLayout(BaseModel):
    """A file in the ``ivys`` directory: the descriptor or its checksums."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ivy-xml"] = "ivy-xml"
    organization: str
    name: str
    version: str
    filename: str

    def relocated(self, name: str) -> str:
        return f"{self.organization}/{name}/{self.version}/{IVY_DESCRIPTOR_DIR}/{self.filename}"


class IvyOtherLayout(BaseModel):
    """Any other Ivy file; ``kind_dir`` is ``jars``, ``docs``, ``srcs``..."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ivy"] = "ivy"
    organization: str
    name: str
    version: str
    kind_dir: str
    suffix: str

    def relocated(self, name: str) -> str:
        return f"{self.organization}/{name}/{self.version}/{self.kind_dir}/{name}{self.suffix}"


class Unrecognized(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unrecognized"] = "unrecognized"
    path: str


RepoPath = Union[MavenLayout, IvyXmlLayout, IvyOtherLayout, Unrecognized]


def _match_maven(path: str) -> MavenLayout | None:
    m = _MAVEN.fullmatch(path)
    if m is None:
        return None
    org, name, version, suffix = m.groups()
    return MavenLayout(
        organization=org.replace("/", "."), name=name, version=version, suffix=suffix
    )


def _match_ivy_xml(path: str) -> IvyXmlLayout | None:
    m = _IVY_XML.fullmatch(path)
    if m is None:
        return None
    org, name, version, _, filename = m.groups()
    return IvyXmlLayout(organization=org, name=name, version=version, filename=filename)


def _match_ivy_other(path: str) -> IvyOtherLayout | None:
    m = _IVY_OTHER.fullmatch(path)
    if m is None:
        return None
    org, name, version, kind_dir, suffix = m.groups()
    return IvyOtherLayout(
        organization=org, name=name, version=version, kind_dir=kind_dir, suffix=suffix
    )


_MATCHERS = (_match_maven, _match_ivy_xml, _match_ivy_other)


def parse_repo_path(path: str) -> RepoPath:
    """Decompose a repository-relative posix path."""
    for matcher in _MATCHERS:
        parsed = matcher(path)
        if parsed is not None:
            return parsed
    return Unrecognized(path=path)
