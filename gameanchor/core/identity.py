"""Resolves a wallet public key into an UploaderIdentity.

A wallet can only sign here if this process holds its private key. The
registry maps public keys to signers loaded from configuration; a wallet
that is not registered resolves to an identity without a signer, which the
Orchestrator treats as "anchoring skipped".
"""

from __future__ import annotations

import logging

from gameanchor.bridge.signer import Signer, parse_public_key
from gameanchor.config import AppConfig
from gameanchor.models.identity import UploaderIdentity

logger = logging.getLogger(__name__)


class SignerRegistry:
    """Public-key-indexed collection of available signers."""

    def __init__(self, signers: list[Signer] | None = None) -> None:
        self._signers: dict[str, Signer] = {}
        for signer in signers or []:
            self.register(signer)

    @classmethod
    def from_config(cls, cfg: AppConfig) -> SignerRegistry:
        """Load the configured keypair file, if any.

        A broken keypair file is a startup error: it was configured on
        purpose and silently running without it would hide the problem.
        """
        registry = cls()
        if cfg.signer_keypair_path is not None:
            registry.register(Signer.from_keypair_file(cfg.signer_keypair_path))
        return registry

    def register(self, signer: Signer) -> None:
        self._signers[signer.public_key] = signer

    def get(self, public_key: str) -> Signer | None:
        return self._signers.get(public_key)

    @property
    def public_keys(self) -> list[str]:
        return sorted(self._signers)

    def __len__(self) -> int:
        return len(self._signers)

    def resolve(self, wallet_public_key: str | None) -> UploaderIdentity | None:
        """Build the identity for a request's wallet.

        Returns ``None`` when no wallet was supplied. Raises
        ``InvalidPublicKey`` for a malformed address.
        """
        if wallet_public_key is None or not wallet_public_key.strip():
            return None
        public_key = str(parse_public_key(wallet_public_key))
        signer = self.get(public_key)
        if signer is None:
            logger.debug("No signer registered for wallet %s", public_key)
        return UploaderIdentity(public_key=public_key, signer=signer)
