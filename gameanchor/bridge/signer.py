"""Ed25519 signing for uploader wallets via PyNaCl (libsodium).

Bridge boundary
---------------
Wallet public keys travel as base58 strings (the Solana convention); the
signing itself is done by ``nacl.signing``. A ``Signer`` is only ever built
from key material this process holds: a Solana CLI keypair file, a raw
32-byte seed, or a freshly generated key for tests and local development.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path

import nacl.signing
from nacl.exceptions import BadSignatureError
from solders.pubkey import Pubkey

from gameanchor.core.errors import InvalidPublicKey

logger = logging.getLogger(__name__)


class KeypairFileError(RuntimeError):
    """Raised when a keypair file cannot be parsed into a signing key."""


def parse_public_key(value: str) -> Pubkey:
    """Parse a base58 wallet address, raising ``InvalidPublicKey`` if malformed."""
    text = (value or "").strip()
    if not text:
        raise InvalidPublicKey("Empty wallet public key")
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise InvalidPublicKey(
            f"Invalid wallet public key: {text!r}", details=str(exc)
        ) from exc


class Signer:
    """An Ed25519 signing key bound to a wallet address.

    Parameters
    ----------
    signing_key:
        The PyNaCl signing key (holds the 32-byte seed).
    """

    def __init__(self, signing_key: nacl.signing.SigningKey) -> None:
        self._signing_key = signing_key
        self._public_key_bytes = bytes(signing_key.verify_key)
        self._public_key = str(Pubkey.from_bytes(self._public_key_bytes))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls) -> Signer:
        return cls(nacl.signing.SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> Signer:
        """Build from a raw 32-byte Ed25519 seed."""
        if len(seed) != 32:
            raise KeypairFileError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
        return cls(nacl.signing.SigningKey(seed))

    @classmethod
    def from_keypair_bytes(cls, raw: bytes) -> Signer:
        """Build from a 64-byte Solana keypair (seed followed by public key).

        The embedded public key must match the one derived from the seed.
        """
        if len(raw) != 64:
            raise KeypairFileError(f"Keypair must be 64 bytes, got {len(raw)}")
        signer = cls.from_seed(raw[:32])
        if signer.public_key_bytes != raw[32:]:
            raise KeypairFileError("Keypair public key does not match its seed")
        return signer

    @classmethod
    def from_keypair_file(cls, path: Path) -> Signer:
        """Load a Solana CLI keypair file (a JSON array of 64 integers)."""
        path = Path(path).expanduser()
        try:
            values = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise KeypairFileError(f"Cannot read keypair file {path}: {exc}") from exc
        if not isinstance(values, list) or not all(isinstance(v, int) for v in values):
            raise KeypairFileError(f"Keypair file {path} is not a JSON array of integers")
        try:
            raw = bytes(values)
        except ValueError as exc:
            raise KeypairFileError(f"Keypair file {path} has out-of-range bytes") from exc
        signer = cls.from_keypair_bytes(raw)
        logger.info("Loaded signer %s from %s", key_fingerprint(signer.public_key), path)
        return signer

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def public_key(self) -> str:
        """Base58 wallet address."""
        return self._public_key

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key_bytes

    @property
    def pubkey(self) -> Pubkey:
        return Pubkey.from_bytes(self._public_key_bytes)

    def sign(self, message: bytes) -> bytes:
        """Return the detached 64-byte Ed25519 signature of *message*."""
        return self._signing_key.sign(message).signature

    def __repr__(self) -> str:
        return f"Signer(public_key={self._public_key!r})"


def verify_signature(message: bytes, signature: bytes, public_key: str) -> bool:
    """Verify a detached Ed25519 signature against a base58 public key.

    Fail-closed: malformed keys or signatures return ``False``.
    """
    if not signature:
        return False
    try:
        verify_key = nacl.signing.VerifyKey(bytes(parse_public_key(public_key)))
        verify_key.verify(message, signature)
        return True
    except (BadSignatureError, InvalidPublicKey, ValueError):
        return False


def key_fingerprint(public_key: str) -> str:
    """Short fingerprint of a public key for logs.

    Returns the first 16 hex characters of SHA-256(public_key).
    """
    if not public_key:
        return ""
    return hashlib.sha256(public_key.encode("utf-8")).hexdigest()[:16]
