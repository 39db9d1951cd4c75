"""Ledger anchoring — writes a Manifest to the uploader's metadata account.

Bridge boundary
---------------
The on-chain program exposes one instruction::

    store_game_metadata(name, upload_date, file_count, total_size,
                        engine, cid, playable_url)

with accounts ``[metadata_account (w), authority (s, w), system_program]``.
Its internals are out of scope; only two things matter here:

1. **Address derivation.** The metadata account is the program-derived
   address of ``[b"game_metadata", uploader_pubkey]`` under the program id.
   This is a pure, local computation: the same uploader always targets the
   same account, so every upload overwrites the previous record.
2. **Call contract.** Instruction data is the Anchor discriminator
   (``sha256("global:store_game_metadata")[:8]``) followed by the Borsh
   encoding of the arguments, in order. Strings are u32-length-prefixed
   UTF-8, ``file_count`` is a u32 and ``total_size`` a u64.

Transactions are built with solders, signed with the uploader's Ed25519 key
and submitted over JSON-RPC (``getLatestBlockhash``, ``sendTransaction``,
``getSignatureStatuses``) with httpx.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import struct
import time
from collections.abc import Callable
from typing import Any

import httpx
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction

from gameanchor.bridge.signer import parse_public_key, verify_signature
from gameanchor.config import DEFAULT_METADATA_SEED, DEFAULT_PROGRAM_ID, AppConfig
from gameanchor.core.deadline import Deadline
from gameanchor.core.errors import (
    ChainRejected,
    ChainTimeout,
    ChainUnavailable,
    SignatureRequired,
)
from gameanchor.models.identity import UploaderIdentity
from gameanchor.models.manifest import Manifest, ManifestArgs
from gameanchor.models.receipts import TransactionReceipt

logger = logging.getLogger(__name__)

INSTRUCTION_NAME = "store_game_metadata"

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}

# JSON-RPC error codes that mean "this node cannot serve you right now"
# rather than "your transaction is wrong".
_UNAVAILABLE_RPC_CODES = {-32004, -32005, -32014, -32016, -32603}


# ---------------------------------------------------------------------------
# Address derivation
# ---------------------------------------------------------------------------


def derive_metadata_address(
    uploader_public_key: str,
    *,
    program_id: str = DEFAULT_PROGRAM_ID,
    seed: str = DEFAULT_METADATA_SEED,
) -> tuple[Pubkey, int]:
    """Return ``(metadata_account, bump)`` for an uploader.

    Pure: no network, no randomness, no counter.
    """
    owner = parse_public_key(uploader_public_key)
    program = Pubkey.from_string(program_id)
    return Pubkey.find_program_address([seed.encode("utf-8"), bytes(owner)], program)


# ---------------------------------------------------------------------------
# Manifest -> instruction
# ---------------------------------------------------------------------------


def manifest_to_args(manifest: Manifest) -> ManifestArgs:
    """Flatten a Manifest into the instruction's argument tuple."""
    return ManifestArgs(
        name=manifest.name,
        upload_date=manifest.upload_date,
        file_count=manifest.file_count,
        total_size_bytes=manifest.total_size_bytes,
        engine=manifest.engine,
        cid=manifest.ipfs.cid,
        playable_url=manifest.ipfs.playable_url,
    )


def instruction_discriminator(name: str = INSTRUCTION_NAME) -> bytes:
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:8]


def _borsh_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def encode_instruction_data(args: ManifestArgs) -> bytes:
    """Discriminator followed by the Borsh-encoded arguments, in order."""
    if not 0 <= args.file_count <= _U32_MAX:
        raise ChainRejected(f"file_count {args.file_count} does not fit in u32")
    if not 0 <= args.total_size_bytes <= _U64_MAX:
        raise ChainRejected(f"total_size {args.total_size_bytes} does not fit in u64")
    return b"".join([
        instruction_discriminator(),
        _borsh_string(args.name),
        _borsh_string(args.upload_date),
        struct.pack("<I", args.file_count),
        struct.pack("<Q", args.total_size_bytes),
        _borsh_string(args.engine),
        _borsh_string(args.cid),
        _borsh_string(args.playable_url),
    ])


def build_store_instruction(
    program_id: Pubkey,
    metadata_account: Pubkey,
    authority: Pubkey,
    data: bytes,
) -> Instruction:
    return Instruction(
        program_id,
        data,
        [
            AccountMeta(metadata_account, False, True),
            AccountMeta(authority, True, True),
            AccountMeta(SYSTEM_PROGRAM_ID, False, False),
        ],
    )


# ---------------------------------------------------------------------------
# JSON-RPC
# ---------------------------------------------------------------------------


class LedgerRpc:
    """Minimal Solana JSON-RPC caller.

    Transport failures and 5xx/429 responses raise ``ChainUnavailable``;
    JSON-RPC error objects raise ``ChainRejected`` unless their code marks
    the node as unhealthy.
    """

    def __init__(self, url: str, *, transport: httpx.BaseTransport | None = None) -> None:
        self._url = url
        self._transport = transport
        self._next_id = 0

    def call(self, method: str, params: list[Any], *, timeout: float) -> Any:
        self._next_id += 1
        request = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}
        try:
            with httpx.Client(transport=self._transport, timeout=timeout) as client:
                response = client.post(self._url, json=request)
        except httpx.TimeoutException as exc:
            raise ChainTimeout(f"{method} timed out", details=str(exc)) from exc
        except httpx.HTTPError as exc:
            raise ChainUnavailable(
                f"{method} failed: cannot reach {self._url}",
                details=f"{type(exc).__name__}: {exc}",
            ) from exc

        if response.status_code == 429 or response.status_code >= 500:
            raise ChainUnavailable(
                f"{method} failed: HTTP {response.status_code}", details=response.text[:300]
            )
        if not response.is_success:
            raise ChainRejected(f"{method} HTTP {response.status_code}: {response.text[:300]}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ChainUnavailable(f"{method} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise ChainUnavailable(
                f"{method} returned an unexpected body", details=response.text[:300]
            )

        error = body.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            if code in _UNAVAILABLE_RPC_CODES:
                raise ChainUnavailable(f"{method} failed: {message}", details=json.dumps(error))
            raise ChainRejected(message)
        return body.get("result")


# ---------------------------------------------------------------------------
# Anchoring client
# ---------------------------------------------------------------------------


class AnchoringClient:
    """Submits and confirms ``store_game_metadata`` transactions.

    Parameters
    ----------
    rpc_url:
        Solana JSON-RPC endpoint.
    program_id:
        Base58 id of the game metadata program.
    seed:
        PDA seed string for metadata accounts.
    commitment:
        Confirmation level to wait for (``processed``, ``confirmed``,
        ``finalized``).
    timeout:
        Budget in seconds for the whole anchoring call (blockhash, send,
        confirmation), further capped by the request deadline.
    poll_interval:
        Delay between confirmation polls.
    """

    def __init__(
        self,
        *,
        rpc_url: str,
        program_id: str = DEFAULT_PROGRAM_ID,
        seed: str = DEFAULT_METADATA_SEED,
        commitment: str = "confirmed",
        timeout: float = 30.0,
        poll_interval: float = 0.5,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if commitment not in _COMMITMENT_RANK:
            raise ValueError(f"Unknown commitment level: {commitment!r}")
        self._rpc = LedgerRpc(rpc_url, transport=transport)
        self._program_id = program_id
        self._program = Pubkey.from_string(program_id)
        self._seed = seed
        self._commitment = commitment
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(
        cls, cfg: AppConfig, *, transport: httpx.BaseTransport | None = None
    ) -> AnchoringClient:
        return cls(
            rpc_url=cfg.solana_rpc_url,
            program_id=cfg.program_id,
            seed=cfg.metadata_seed,
            commitment=cfg.commitment,
            timeout=cfg.chain_timeout_seconds,
            poll_interval=cfg.confirm_poll_interval_seconds,
            transport=transport,
        )

    def derive_address(self, uploader_public_key: str) -> Pubkey:
        account, _bump = derive_metadata_address(
            uploader_public_key, program_id=self._program_id, seed=self._seed
        )
        return account

    def anchor(
        self,
        identity: UploaderIdentity,
        manifest: Manifest,
        *,
        deadline: Deadline | None = None,
    ) -> TransactionReceipt:
        """Write *manifest* to the uploader's metadata account and confirm it."""
        if not identity.can_sign or identity.signer is None:
            raise SignatureRequired(
                f"No signing key available for wallet {identity.public_key}"
            )

        budget = self._timeout if deadline is None else deadline.timeout_for(self._timeout)
        local = Deadline(budget, clock=self._clock)

        authority = parse_public_key(identity.public_key)
        metadata_account = self.derive_address(identity.public_key)
        data = encode_instruction_data(manifest_to_args(manifest))
        instruction = build_store_instruction(self._program, metadata_account, authority, data)

        blockhash = self._latest_blockhash(local)
        message = Message.new_with_blockhash([instruction], authority, blockhash)
        message_bytes = bytes(message)
        signature_bytes = identity.signer.sign(message_bytes)
        if not verify_signature(message_bytes, signature_bytes, identity.public_key):
            raise SignatureRequired(
                f"Signer could not produce a valid signature for {identity.public_key}"
            )
        transaction = Transaction.populate(message, [Signature.from_bytes(signature_bytes)])

        encoded = base64.b64encode(bytes(transaction)).decode("ascii")
        signature = self._rpc.call(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self._commitment}],
            timeout=self._remaining(local, "sendTransaction"),
        )
        if not isinstance(signature, str) or not signature:
            raise ChainUnavailable(f"sendTransaction returned no signature: {signature!r}")
        logger.info(
            "Submitted %s for %s to %s: %s",
            INSTRUCTION_NAME, identity.public_key, metadata_account, signature,
        )

        status = self._await_confirmation(signature, local)
        slot = status.get("slot")
        return TransactionReceipt(
            signature=signature,
            metadata_account=str(metadata_account),
            slot=slot if isinstance(slot, int) and not isinstance(slot, bool) else None,
            confirmation_status=str(status.get("confirmationStatus") or self._commitment),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _remaining(local: Deadline, step: str) -> float:
        remaining = local.remaining()
        if remaining <= 0:
            raise ChainTimeout(f"Anchoring budget exhausted before {step}")
        return remaining

    def _latest_blockhash(self, local: Deadline) -> Hash:
        result = self._rpc.call(
            "getLatestBlockhash",
            [{"commitment": self._commitment}],
            timeout=self._remaining(local, "getLatestBlockhash"),
        )
        try:
            return Hash.from_string(result["value"]["blockhash"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ChainUnavailable(f"Malformed getLatestBlockhash result: {result!r}") from exc

    def _await_confirmation(self, signature: str, local: Deadline) -> dict[str, Any]:
        target = _COMMITMENT_RANK[self._commitment]
        while True:
            result = self._rpc.call(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
                timeout=self._remaining(local, "confirmation"),
            )
            statuses = result.get("value") if isinstance(result, dict) else None
            if not isinstance(statuses, list):
                raise ChainUnavailable(f"Malformed getSignatureStatuses result: {result!r:.200}")
            status = statuses[0] if statuses else None
            if isinstance(status, dict):
                if status.get("err") is not None:
                    raise ChainRejected(json.dumps(status["err"]))
                reached = _COMMITMENT_RANK.get(str(status.get("confirmationStatus")), -1)
                if reached >= target:
                    return status
            if local.remaining() <= self._poll_interval:
                raise ChainTimeout(
                    f"Transaction {signature} not {self._commitment} within {self._timeout:.0f}s"
                )
            self._sleep(self._poll_interval)
