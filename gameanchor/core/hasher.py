"""Canonical hashing helpers for the per-run transition log.

Stage inputs and outputs are hashed over canonical JSON so that two runs
over the same unchanged folder can be compared transition by transition.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from gameanchor.models.files import FileEntry


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes (sorted keys, compact separators)."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def tree_digest(entries: list[FileEntry]) -> str:
    """Digest of an ingested tree: every relative path with its content hash.

    Identical for two ingestions of the same unchanged folder.
    """
    listing = [
        {"path": e.relative_path, "sha256": sha256_hex(e.content), "size": e.size}
        for e in entries
    ]
    return sha256_hex(canonical_json_bytes(listing))


def compute_stage_hash(stage: str, payload: dict[str, Any]) -> str:
    """SHA-256 of canonical(stage + payload)."""
    return sha256_hex(canonical_json_bytes({"stage": stage, "payload": payload}))
