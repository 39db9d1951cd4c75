"""Manifest models — the record anchored on-chain for an uploaded build."""

from __future__ import annotations

from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class IpfsPointer(BaseModel):
    """Where the uploaded tree lives in content-addressed storage."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    cid: str
    playable_url: str


class Manifest(BaseModel):
    """Describes one uploaded build.

    Immutable once built. ``file_count`` equals the number of ingested
    entries and ``total_size_bytes`` their summed sizes. Serialised with
    camelCase names (``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str
    upload_date: str  # ISO-8601, UTC
    file_count: int = Field(ge=1)
    total_size_bytes: int = Field(ge=0)
    engine: str
    ipfs: IpfsPointer


class ManifestArgs(NamedTuple):
    """Flat argument tuple for the ``store_game_metadata`` instruction.

    Field order is the instruction's argument order.
    """

    name: str
    upload_date: str
    file_count: int
    total_size_bytes: int
    engine: str
    cid: str
    playable_url: str
