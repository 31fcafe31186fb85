"""Durable, content-addressed artifact repository.

Storage layout::

    {base_path}/blobs/{sha[0:2]}/{sha[2:4]}/{sha}.dat   file contents
    {base_path}/builds/{uuid[0:2]}/{uuid}.json          one manifest per build

A published build is addressed by its ``RepeatableProjectBuild.uuid``.
Blobs are immutable; publishing the same content twice is a no-op.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Sequence
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from unibuild.core.fingerprint import file_digest
from unibuild.models.artifacts import ArtifactSha, BuildArtifactsOut

logger = logging.getLogger(__name__)

# Written by local Maven installs; never part of a published artifact set
MAVEN_LOCAL_METADATA = "maven-metadata-local.xml"


class ArtifactIntegrityError(RuntimeError):
    """Raised when file bytes do not match their recorded hash."""


class MissingBuildError(LookupError):
    """Raised when a requested build uuid was never published."""


class PublishedBuild(BaseModel):
    """Manifest of one published build."""

    model_config = ConfigDict(frozen=True)

    uuid: str
    space: str = ""
    artifacts: BuildArtifactsOut


# ---------------------------------------------------------------------------
# Local repository helpers
# ---------------------------------------------------------------------------


def make_artifact_sha(file: Path, repo_root: Path) -> ArtifactSha:
    """Hash *file* and record its location relative to *repo_root*."""
    location = Path(file).relative_to(repo_root).as_posix()
    return ArtifactSha(sha=file_digest(file), location=location)


def scan_artifact_shas(repo_root: Path, dirs: Iterable[Path]) -> list[ArtifactSha]:
    """Hash every regular file below *dirs*, skipping local Maven metadata."""
    shas: list[ArtifactSha] = []
    seen: set[Path] = set()
    for directory in dirs:
        if directory in seen or not directory.is_dir():
            continue
        seen.add(directory)
        for file in sorted(directory.rglob("*")):
            if file.is_dir() or file.name == MAVEN_LOCAL_METADATA:
                continue
            shas.append(make_artifact_sha(file, repo_root))
    return shas


def clear_directory(path: Path) -> None:
    """Delete everything inside *path*, keeping the directory itself."""
    path.mkdir(parents=True, exist_ok=True)
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ArtifactRepository:
    """Publishes and fetches uuid-addressed artifact sets.

    Parameters
    ----------
    base_path:
        Root directory for blobs and build manifests.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        (self._base / "blobs").mkdir(parents=True, exist_ok=True)
        (self._base / "builds").mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    def _blob_path(self, digest: str) -> Path:
        return self._base / "blobs" / digest[:2] / digest[2:4] / f"{digest}.dat"

    def _manifest_path(self, uuid: str) -> Path:
        return self._base / "builds" / uuid[:2] / f"{uuid}.json"

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(
        self,
        uuid: str,
        local_repo: Path,
        artifacts: BuildArtifactsOut,
        *,
        space: str = "",
    ) -> PublishedBuild:
        """Store every file listed in *artifacts* and record the manifest.

        Raises ``ArtifactIntegrityError`` if a file's bytes do not match
        the hash the build recorded for it.
        """
        for sha in artifacts.shas:
            source = local_repo / sha.location
            if not source.is_file():
                raise FileNotFoundError(f"Artifact file missing from {local_repo}: {sha.location}")
            actual = file_digest(source)
            if actual != sha.sha:
                raise ArtifactIntegrityError(
                    f"{sha.location}: recorded hash {sha.sha} but file hashes to {actual}"
                )
            blob = self._blob_path(actual)
            if not blob.exists():
                blob.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, blob)

        published = PublishedBuild(uuid=uuid, space=space, artifacts=artifacts)
        manifest = self._manifest_path(uuid)
        manifest.parent.mkdir(parents=True, exist_ok=True)
        manifest.write_text(published.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Published %d files for build %s", len(artifacts.shas), uuid)
        return published

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def has_build(self, uuid: str) -> bool:
        return self._manifest_path(uuid).is_file()

    def read_build(self, uuid: str) -> PublishedBuild:
        manifest = self._manifest_path(uuid)
        if not manifest.is_file():
            raise MissingBuildError(f"No published build with uuid {uuid}")
        return PublishedBuild.model_validate_json(manifest.read_text(encoding="utf-8"))

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def fetch_by_uuids(
        self,
        local_repos: Sequence[Path],
        uuid_groups: Sequence[Sequence[str]],
        spaces: Sequence[str],
    ) -> list[BuildArtifactsOut]:
        """Materialize published builds into local directories.

        ``local_repos``, ``uuid_groups`` and ``spaces`` are parallel: the
        builds of each group that were published in the matching space
        are copied into the matching directory.
        """
        if not len(local_repos) == len(uuid_groups) == len(spaces):
            raise ValueError("local_repos, uuid_groups and spaces must have equal length")

        fetched: list[BuildArtifactsOut] = []
        for local_repo, uuids, space in zip(local_repos, uuid_groups, spaces):
            local_repo.mkdir(parents=True, exist_ok=True)
            for uuid in uuids:
                published = self.read_build(uuid)
                if published.space != space:
                    logger.warning(
                        "Build %s was published in space %r, not %r; skipping",
                        uuid, published.space, space,
                    )
                    continue
                for sha in published.artifacts.shas:
                    self._materialize(sha, local_repo)
                fetched.append(published.artifacts)
                logger.debug("Fetched build %s into %s", uuid, local_repo)
        return fetched

    def _materialize(self, sha: ArtifactSha, local_repo: Path) -> None:
        blob = self._blob_path(sha.sha)
        if not blob.is_file():
            raise ArtifactIntegrityError(f"Blob {sha.sha} for {sha.location} is missing")
        if file_digest(blob) != sha.sha:
            raise ArtifactIntegrityError(f"Blob {sha.sha} for {sha.location} is corrupted")
        target = local_repo / sha.location
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(blob, target)
