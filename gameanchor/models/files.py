"""Ingestion models — file entries and the upload request boundary object."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from gameanchor.models.identity import UploaderIdentity


class FileEntry(BaseModel):
    """One regular file of the ingested tree.

    ``relative_path`` is POSIX-style (forward slashes) relative to the
    upload root. Entries are request-scoped and never shared.
    """

    model_config = ConfigDict(frozen=True)

    relative_path: str
    content: bytes = Field(repr=False)
    size: int = Field(ge=0)


class UploadRequest(BaseModel):
    """Input boundary for a folder upload."""

    model_config = ConfigDict(frozen=True)

    root_path: str
    uploader_identity: UploaderIdentity | None = None
