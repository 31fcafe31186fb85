"""Tests for ArtifactRepository — publish, fetch, integrity, spaces."""

from __future__ import annotations

from pathlib import Path

import pytest

from unibuild.core.fingerprint import sha256_hex
from unibuild.core.repository import (
    MAVEN_LOCAL_METADATA,
    ArtifactIntegrityError,
    ArtifactRepository,
    MissingBuildError,
    clear_directory,
    make_artifact_sha,
    scan_artifact_shas,
)
from unibuild.models.artifacts import (
    ArtifactSha,
    BuildArtifactsOut,
    BuildSubArtifactsOut,
    ModuleInfo,
)


def _local_repo(root: Path) -> Path:
    base = root / "com" / "example" / "lib" / "1.0"
    base.mkdir(parents=True)
    (base / "lib-1.0.jar").write_bytes(b"jar bytes")
    (base / "lib-1.0.pom").write_text("<project/>")
    (base / MAVEN_LOCAL_METADATA).write_text("<metadata/>")
    return root


def _artifacts(local: Path) -> BuildArtifactsOut:
    return BuildArtifactsOut(
        results=[
            BuildSubArtifactsOut(
                sub_name="lib",
                shas=scan_artifact_shas(local, [local / "com"]),
                module_info=ModuleInfo(organization="com.example", name="lib", version="1.0"),
            )
        ]
    )


class TestLocalHelpers:
    def test_make_artifact_sha(self, tmp_path: Path):
        f = tmp_path / "a" / "b.txt"
        f.parent.mkdir()
        f.write_bytes(b"hello")
        sha = make_artifact_sha(f, tmp_path)
        assert sha.location == "a/b.txt"
        assert sha.sha == sha256_hex(b"hello")

    def test_scan_skips_local_metadata(self, tmp_path: Path):
        local = _local_repo(tmp_path / "local")
        locations = [s.location for s in scan_artifact_shas(local, [local / "com"])]
        assert locations == [
            "com/example/lib/1.0/lib-1.0.jar",
            "com/example/lib/1.0/lib-1.0.pom",
        ]

    def test_scan_missing_dir(self, tmp_path: Path):
        assert scan_artifact_shas(tmp_path, [tmp_path / "nope"]) == []

    def test_clear_directory(self, tmp_path: Path):
        local = _local_repo(tmp_path / "local")
        (local / "stray.txt").write_text("x")
        clear_directory(local)
        assert local.is_dir()
        assert list(local.iterdir()) == []


class TestArtifactRepository:
    def test_publish_and_fetch(self, repository: ArtifactRepository, tmp_path: Path):
        local = _local_repo(tmp_path / "local")
        artifacts = _artifacts(local)
        repository.publish("u1", local, artifacts)
        assert repository.has_build("u1")

        target = tmp_path / "fetched"
        fetched = repository.fetch_by_uuids([target], [["u1"]], [""])
        assert fetched == [artifacts]
        assert (target / "com/example/lib/1.0/lib-1.0.jar").read_bytes() == b"jar bytes"
        assert not (target / "com/example/lib/1.0" / MAVEN_LOCAL_METADATA).exists()

    def test_publish_is_idempotent(self, repository: ArtifactRepository, tmp_path: Path):
        local = _local_repo(tmp_path / "local")
        artifacts = _artifacts(local)
        first = repository.publish("u1", local, artifacts)
        second = repository.publish("u1", local, artifacts)
        assert first == second
        assert repository.read_build("u1").artifacts == artifacts

    def test_publish_rejects_hash_mismatch(self, repository: ArtifactRepository, tmp_path: Path):
        local = _local_repo(tmp_path / "local")
        artifacts = _artifacts(local)
        (local / "com/example/lib/1.0/lib-1.0.jar").write_bytes(b"changed after hashing")
        with pytest.raises(ArtifactIntegrityError):
            repository.publish("u1", local, artifacts)
        assert not repository.has_build("u1")

    def test_publish_missing_file(self, repository: ArtifactRepository, tmp_path: Path):
        artifacts = BuildArtifactsOut(
            results=[
                BuildSubArtifactsOut(
                    sub_name="x",
                    shas=[ArtifactSha(sha="0" * 64, location="missing.jar")],
                    module_info=ModuleInfo(organization="o", name="x", version="1"),
                )
            ]
        )
        with pytest.raises(FileNotFoundError):
            repository.publish("u1", tmp_path, artifacts)

    def test_unknown_uuid(self, repository: ArtifactRepository, tmp_path: Path):
        assert repository.has_build("nope") is False
        with pytest.raises(MissingBuildError):
            repository.fetch_by_uuids([tmp_path], [["nope"]], [""])

    def test_other_space_skipped(self, repository: ArtifactRepository, tmp_path: Path):
        local = _local_repo(tmp_path / "local")
        repository.publish("u1", local, _artifacts(local), space="private")
        target = tmp_path / "fetched"
        assert repository.fetch_by_uuids([target], [["u1"]], [""]) == []
        assert not (target / "com").exists()

    def test_parallel_lengths_required(self, repository: ArtifactRepository, tmp_path: Path):
        with pytest.raises(ValueError):
            repository.fetch_by_uuids([tmp_path], [["a"], ["b"]], [""])
