"""Canonical hashing helpers for fingerprints and content addressing.

A fingerprint is the SHA-256 of a canonical JSON rendering of a value:
sorted keys, compact separators, ASCII only.  Pydantic models are dumped
in JSON mode first, and unordered containers are sorted by their own
canonical bytes, so the result never depends on iteration order.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from enum import Enum
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel

_CHUNK_SIZE = 1 << 16


def _normalize(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return _normalize(obj.model_dump(mode="json"))
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _normalize(dataclasses.asdict(obj))
    if isinstance(obj, Enum):
        return _normalize(obj.value)
    if isinstance(obj, PurePath):
        return obj.as_posix()
    if isinstance(obj, dict):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_normalize(v) for v in obj]
    if isinstance(obj, (set, frozenset)):
        items = [_normalize(v) for v in obj]
        return sorted(items, key=canonical_json_bytes)
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    raise TypeError(f"Cannot fingerprint value of type {type(obj).__name__}")


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def fingerprint(value: Any) -> str:
    """Deterministic fingerprint of a configuration value.

    Equal values always produce equal fingerprints, across processes and
    machines.  The mapping is one-way.
    """
    return sha256_hex(canonical_json_bytes(_normalize(value)))


def file_digest(path: PurePath, algorithm: str = "sha256") -> str:
    """Hex digest of a file's current bytes, read in chunks."""
    h = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()
