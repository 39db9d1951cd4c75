"""Uploader identity — a wallet public key, optionally able to sign."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from gameanchor.bridge.signer import Signer, parse_public_key


class UploaderIdentity(BaseModel):
    """The uploader's wallet.

    ``public_key`` is the base58 wallet address, validated and normalized on
    construction (a malformed address raises ``InvalidPublicKey``).
    ``signer`` is attached only when this process holds the matching
    private key; without it the anchoring stage is skipped rather than
    attempted.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    public_key: str
    signer: Signer | None = None

    @field_validator("public_key")
    @classmethod
    def _normalize_public_key(cls, value: str) -> str:
        return str(parse_public_key(value))

    @property
    def can_sign(self) -> bool:
        """True when a signer for exactly this public key is attached."""
        return self.signer is not None and self.signer.public_key == self.public_key
