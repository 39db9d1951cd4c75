"""Multipart payload packaging for the pinning service.

The payload is an httpx ``files=`` list: one part per entry, all under the
same field name, each carrying the entry's relative path as its filename so
the pinning service rebuilds the original directory structure.
"""

from __future__ import annotations

from gameanchor.core.errors import InternalError
from gameanchor.models.files import FileEntry

FILE_FIELD = "file"
PART_CONTENT_TYPE = "application/octet-stream"

MultipartPayload = list[tuple[str, tuple[str, bytes, str]]]


def build_multipart_payload(entries: list[FileEntry]) -> MultipartPayload:
    """Package *entries* in order; content is passed through untouched."""
    if not entries:
        raise InternalError("Cannot package an empty file list")
    return [
        (FILE_FIELD, (entry.relative_path, entry.content, PART_CONTENT_TYPE))
        for entry in entries
    ]
