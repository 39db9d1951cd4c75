"""Receipts returned by the two external systems."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PinningReceipt(BaseModel):
    """Result of a successful pinning call. ``cid`` is never empty."""

    model_config = ConfigDict(frozen=True)

    cid: str = Field(min_length=1)
    pin_size_bytes: int = 0
    timestamp: str = ""  # ISO-8601 from the pinning service, or local UTC when it omits one


class TransactionReceipt(BaseModel):
    """Result of a confirmed anchoring transaction."""

    model_config = ConfigDict(frozen=True)

    signature: str
    metadata_account: str
    slot: int | None = None
    confirmation_status: str = ""
