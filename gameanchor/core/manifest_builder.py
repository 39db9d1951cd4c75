"""Manifest construction — a pure function of the ingested tree and the receipt."""

from __future__ import annotations

from datetime import datetime, timezone

from gameanchor.core.errors import InternalError
from gameanchor.models.files import FileEntry
from gameanchor.models.manifest import IpfsPointer, Manifest
from gameanchor.models.receipts import PinningReceipt

DEFAULT_ENGINE = "Godot"


def build_manifest(
    folder_name: str,
    entries: list[FileEntry],
    receipt: PinningReceipt,
    *,
    playable_url: str,
    engine: str = DEFAULT_ENGINE,
    now: datetime | None = None,
) -> Manifest:
    """Aggregate statistics, the CID, and the playable URL into a Manifest.

    ``upload_date`` is taken here, after the store call, so it marks
    completion rather than the start of the upload. Pass *now* to pin it.
    """
    if not entries:
        raise InternalError("Manifest requires at least one file entry")
    for entry in entries:
        if entry.size < 0 or entry.size != len(entry.content):
            raise InternalError(
                f"File entry {entry.relative_path!r} has inconsistent size {entry.size}"
            )

    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return Manifest(
        name=folder_name,
        upload_date=stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        file_count=len(entries),
        total_size_bytes=sum(entry.size for entry in entries),
        engine=engine,
        ipfs=IpfsPointer(cid=receipt.cid, playable_url=playable_url),
    )
