"""Tests for address derivation, instruction encoding and the anchoring client."""

from __future__ import annotations

import base64
import hashlib
import json
import struct
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from gameanchor.bridge.ledger import (
    AnchoringClient,
    derive_metadata_address,
    encode_instruction_data,
    instruction_discriminator,
    manifest_to_args,
)
from gameanchor.bridge.signer import Signer
from gameanchor.config import DEFAULT_PROGRAM_ID
from gameanchor.core.errors import (
    ChainError,
    ChainRejected,
    ChainTimeout,
    ChainUnavailable,
    InvalidPublicKey,
    SignatureRequired,
)
from gameanchor.models.identity import UploaderIdentity
from gameanchor.models.manifest import IpfsPointer, Manifest, ManifestArgs

RPC_URL = "https://rpc.example"

MANIFEST = Manifest(
    name="MyGame",
    upload_date="2026-01-01T00:00:00.000Z",
    file_count=3,
    total_size_bytes=600,
    engine="Godot",
    ipfs=IpfsPointer(cid="bafy123", playable_url="https://ipfs.io/ipfs/bafy123/index.html"),
)


# ---------------------------------------------------------------------------
# Address derivation
# ---------------------------------------------------------------------------


class TestDeriveMetadataAddress:
    def test_same_identity_same_address(self, signer: Signer):
        first = derive_metadata_address(signer.public_key)
        second = derive_metadata_address(signer.public_key)
        assert first == second

    def test_different_identities_different_addresses(self, signer: Signer, other_signer: Signer):
        a, _ = derive_metadata_address(signer.public_key)
        b, _ = derive_metadata_address(other_signer.public_key)
        assert a != b

    def test_matches_program_derived_address(self, signer: Signer):
        expected = Pubkey.find_program_address(
            [b"game_metadata", signer.public_key_bytes],
            Pubkey.from_string(DEFAULT_PROGRAM_ID),
        )
        assert derive_metadata_address(signer.public_key) == expected

    def test_seed_changes_address(self, signer: Signer):
        a, _ = derive_metadata_address(signer.public_key)
        b, _ = derive_metadata_address(signer.public_key, seed="other_seed")
        assert a != b

    def test_address_is_off_curve(self, signer: Signer):
        address, _ = derive_metadata_address(signer.public_key)
        assert not address.is_on_curve()

    @pytest.mark.parametrize("bad", ["", "not-base58-0OIl", "abc"])
    def test_invalid_public_key(self, bad: str):
        with pytest.raises(InvalidPublicKey):
            derive_metadata_address(bad)


# ---------------------------------------------------------------------------
# Manifest -> instruction data
# ---------------------------------------------------------------------------


class TestManifestToArgs:
    def test_field_for_field(self):
        args = manifest_to_args(MANIFEST)
        assert args == ManifestArgs(
            name="MyGame",
            upload_date="2026-01-01T00:00:00.000Z",
            file_count=3,
            total_size_bytes=600,
            engine="Godot",
            cid="bafy123",
            playable_url="https://ipfs.io/ipfs/bafy123/index.html",
        )
        assert args._fields == (
            "name",
            "upload_date",
            "file_count",
            "total_size_bytes",
            "engine",
            "cid",
            "playable_url",
        )


class TestEncodeInstructionData:
    def test_discriminator(self):
        expected = hashlib.sha256(b"global:store_game_metadata").digest()[:8]
        assert instruction_discriminator() == expected

    def test_borsh_layout(self):
        data = encode_instruction_data(manifest_to_args(MANIFEST))

        def s(value: str) -> bytes:
            raw = value.encode()
            return struct.pack("<I", len(raw)) + raw

        expected = (
            instruction_discriminator()
            + s("MyGame")
            + s("2026-01-01T00:00:00.000Z")
            + struct.pack("<I", 3)
            + struct.pack("<Q", 600)
            + s("Godot")
            + s("bafy123")
            + s("https://ipfs.io/ipfs/bafy123/index.html")
        )
        assert data == expected

    def test_utf8_length_prefix_counts_bytes(self):
        args = manifest_to_args(MANIFEST)._replace(name="Jeu é")
        data = encode_instruction_data(args)
        assert data[8:12] == struct.pack("<I", len("Jeu é".encode()))

    def test_file_count_overflow(self):
        args = manifest_to_args(MANIFEST)._replace(file_count=2**32)
        with pytest.raises(ChainRejected):
            encode_instruction_data(args)


# ---------------------------------------------------------------------------
# Anchoring over a mocked JSON-RPC node
# ---------------------------------------------------------------------------


class FakeRpc:
    """Scripted Solana JSON-RPC node for httpx.MockTransport."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.sent: list[bytes] = []
        self.statuses: list[Any] = [
            {"slot": 7, "confirmations": 0, "err": None, "confirmationStatus": "confirmed"}
        ]
        self.overrides: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append(method)
        if method in self.overrides:
            return self.overrides[method](request)
        if method == "getLatestBlockhash":
            result: Any = {
                "context": {"slot": 1},
                "value": {"blockhash": str(Hash.default()), "lastValidBlockHeight": 100},
            }
        elif method == "sendTransaction":
            self.sent.append(base64.b64decode(body["params"][0]))
            result = "5sigFromNode"
        elif method == "getSignatureStatuses":
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            result = {"context": {"slot": 7}, "value": [status]}
        else:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "Method not found"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.fixture
def rpc() -> FakeRpc:
    return FakeRpc()


def _client(rpc: FakeRpc, **kwargs) -> AnchoringClient:
    return AnchoringClient(
        rpc_url=RPC_URL,
        transport=httpx.MockTransport(rpc),
        poll_interval=0.0,
        sleep=lambda _seconds: None,
        **kwargs,
    )


class TestAnchor:
    def test_success(self, rpc: FakeRpc, identity: UploaderIdentity):
        receipt = _client(rpc).anchor(identity, MANIFEST)
        assert receipt.signature == "5sigFromNode"
        assert receipt.slot == 7
        assert receipt.confirmation_status == "confirmed"
        expected, _ = derive_metadata_address(identity.public_key)
        assert receipt.metadata_account == str(expected)
        assert rpc.calls == ["getLatestBlockhash", "sendTransaction", "getSignatureStatuses"]

    def test_submitted_transaction_is_signed_by_uploader(self, rpc: FakeRpc, identity: UploaderIdentity):
        _client(rpc).anchor(identity, MANIFEST)
        tx = Transaction.from_bytes(rpc.sent[0])
        assert tx.message.account_keys[0] == Pubkey.from_string(identity.public_key)
        tx.verify()
        instruction = tx.message.instructions[0]
        assert bytes(instruction.data) == encode_instruction_data(manifest_to_args(MANIFEST))

    def test_polls_until_commitment(self, rpc: FakeRpc, identity: UploaderIdentity):
        rpc.statuses = [
            None,
            {"slot": 7, "confirmations": 1, "err": None, "confirmationStatus": "processed"},
            {"slot": 7, "confirmations": None, "err": None, "confirmationStatus": "confirmed"},
        ]
        receipt = _client(rpc).anchor(identity, MANIFEST)
        assert receipt.confirmation_status == "confirmed"
        assert rpc.calls.count("getSignatureStatuses") == 3

    def test_transaction_error_is_rejection(self, rpc: FakeRpc, identity: UploaderIdentity):
        rpc.statuses = [{"slot": 7, "err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "processed"}]
        with pytest.raises(ChainRejected) as excinfo:
            _client(rpc).anchor(identity, MANIFEST)
        assert "InstructionError" in excinfo.value.reason

    def test_rpc_error_object_is_rejection(self, rpc: FakeRpc, identity: UploaderIdentity):
        rpc.overrides["sendTransaction"] = lambda r: httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": 2, "error": {"code": -32002, "message": "Transaction simulation failed"}},
        )
        with pytest.raises(ChainRejected) as excinfo:
            _client(rpc).anchor(identity, MANIFEST)
        assert excinfo.value.reason == "Transaction simulation failed"

    def test_node_unhealthy_is_unavailable(self, rpc: FakeRpc, identity: UploaderIdentity):
        rpc.overrides["getLatestBlockhash"] = lambda r: httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "Node is behind"}}
        )
        with pytest.raises(ChainUnavailable):
            _client(rpc).anchor(identity, MANIFEST)

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_http_errors_are_unavailable(self, rpc: FakeRpc, identity: UploaderIdentity, status: int):
        rpc.overrides["getLatestBlockhash"] = lambda r: httpx.Response(status, text="busy")
        with pytest.raises(ChainUnavailable):
            _client(rpc).anchor(identity, MANIFEST)

    def test_connect_error_is_unavailable(self, identity: UploaderIdentity):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = AnchoringClient(rpc_url=RPC_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(ChainUnavailable):
            client.anchor(identity, MANIFEST)

    @pytest.mark.parametrize("result", ["unexpected-shape", [1, 2], {"value": "x"}, None])
    def test_malformed_status_result_is_unavailable(self, rpc: FakeRpc, identity: UploaderIdentity, result):
        rpc.overrides["getSignatureStatuses"] = lambda r: httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 3, "result": result}
        )
        with pytest.raises(ChainUnavailable):
            _client(rpc).anchor(identity, MANIFEST)

    def test_non_object_body_is_unavailable(self, rpc: FakeRpc, identity: UploaderIdentity):
        rpc.overrides["getLatestBlockhash"] = lambda r: httpx.Response(200, json=["not", "an", "object"])
        with pytest.raises(ChainUnavailable):
            _client(rpc).anchor(identity, MANIFEST)

    def test_redirect_loop_is_unavailable(self, identity: UploaderIdentity):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.TooManyRedirects("loop", request=request)

        client = AnchoringClient(rpc_url=RPC_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(ChainUnavailable):
            client.anchor(identity, MANIFEST)

    def test_non_integer_slot_is_dropped(self, rpc: FakeRpc, identity: UploaderIdentity):
        rpc.statuses = [{"slot": "seven", "err": None, "confirmationStatus": "confirmed"}]
        receipt = _client(rpc).anchor(identity, MANIFEST)
        assert receipt.slot is None

    def test_never_confirmed_times_out(self, rpc: FakeRpc, identity: UploaderIdentity):
        rpc.statuses = [None]
        ticks = iter(range(0, 1000))
        client = _client(rpc, timeout=5.0, clock=lambda: float(next(ticks)))
        with pytest.raises(ChainTimeout):
            client.anchor(identity, MANIFEST)

    def test_identity_without_signer(self, rpc: FakeRpc, signer: Signer):
        watch_only = UploaderIdentity(public_key=signer.public_key)
        with pytest.raises(SignatureRequired):
            _client(rpc).anchor(watch_only, MANIFEST)
        assert rpc.calls == []

    def test_mismatched_signer(self, rpc: FakeRpc, signer: Signer, other_signer: Signer):
        mismatched = UploaderIdentity(public_key=signer.public_key, signer=other_signer)
        assert mismatched.can_sign is False
        with pytest.raises(SignatureRequired):
            _client(rpc).anchor(mismatched, MANIFEST)

    def test_all_failures_are_chain_errors(self):
        for cls in (ChainRejected, ChainUnavailable, ChainTimeout, SignatureRequired):
            assert issubclass(cls, ChainError)

    def test_unknown_commitment_rejected(self):
        with pytest.raises(ValueError):
            AnchoringClient(rpc_url=RPC_URL, commitment="eventually")

    def test_derive_address_uses_client_seed(self, signer: Signer):
        client = AnchoringClient(rpc_url=RPC_URL, seed="other_seed")
        expected, _ = derive_metadata_address(signer.public_key, seed="other_seed")
        assert client.derive_address(signer.public_key) == expected
