"""Shared test fixtures for gameanchor."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from gameanchor.bridge.ledger import derive_metadata_address
from gameanchor.bridge.pinning import playable_url
from gameanchor.bridge.signer import Signer
from gameanchor.config import AppConfig
from gameanchor.core.deadline import Deadline
from gameanchor.core.errors import PipelineError
from gameanchor.core.orchestrator import Orchestrator
from gameanchor.core.packager import MultipartPayload
from gameanchor.models.identity import UploaderIdentity
from gameanchor.models.manifest import Manifest
from gameanchor.models.receipts import PinningReceipt, TransactionReceipt

GATEWAY = "https://ipfs.io/ipfs"


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


@pytest.fixture
def game_folder(tmp_path: Path) -> Path:
    """A small Godot-style export: index.html plus two assets (600 bytes total)."""
    root = tmp_path / "MyGame"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_bytes(b"h" * 100)
    (root / "assets" / "a.png").write_bytes(b"a" * 200)
    (root / "assets" / "b.png").write_bytes(b"b" * 300)
    return root


@pytest.fixture
def empty_folder(tmp_path: Path) -> Path:
    root = tmp_path / "Empty"
    (root / "nested" / "deeper").mkdir(parents=True)
    return root


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


@pytest.fixture
def signer() -> Signer:
    """Deterministic signer built from a fixed seed."""
    return Signer.from_seed(bytes(range(32)))


@pytest.fixture
def other_signer() -> Signer:
    return Signer.from_seed(bytes(range(32, 64)))


@pytest.fixture
def identity(signer: Signer) -> UploaderIdentity:
    """An identity that can sign."""
    return UploaderIdentity(public_key=signer.public_key, signer=signer)


@pytest.fixture
def keypair_file(tmp_path: Path, signer: Signer) -> Path:
    """A Solana CLI keypair file for ``signer``."""
    path = tmp_path / "id.json"
    raw = bytes(range(32)) + signer.public_key_bytes
    path.write_text(json.dumps(list(raw)), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Stub collaborators
# ---------------------------------------------------------------------------


class StubStore:
    """ContentStore that records calls and returns a fixed CID (or raises)."""

    def __init__(self, cid: str = "cid1", error: PipelineError | None = None) -> None:
        self.cid = cid
        self.error = error
        self.calls = 0
        self.payloads: list[MultipartPayload] = []
        self.names: list[str | None] = []
        self.deadlines: list[Deadline | None] = []

    def upload(
        self,
        payload: MultipartPayload,
        *,
        name: str | None = None,
        deadline: Deadline | None = None,
    ) -> PinningReceipt:
        self.calls += 1
        self.payloads.append(payload)
        self.names.append(name)
        self.deadlines.append(deadline)
        if self.error is not None:
            raise self.error
        return PinningReceipt(cid=self.cid, pin_size_bytes=600, timestamp="2026-01-01T00:00:00Z")

    def playable_url(self, cid: str) -> str:
        return playable_url(GATEWAY, cid)


class StubAnchor:
    """MetadataAnchor that records calls and succeeds (or raises)."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0
        self.manifests: list[Manifest] = []

    def derive_address(self, uploader_public_key: str):
        account, _bump = derive_metadata_address(uploader_public_key)
        return account

    def anchor(
        self,
        identity: UploaderIdentity,
        manifest: Manifest,
        *,
        deadline: Deadline | None = None,
    ) -> TransactionReceipt:
        self.calls += 1
        self.manifests.append(manifest)
        if self.error is not None:
            raise self.error
        return TransactionReceipt(
            signature="5stubSignature",
            metadata_account=str(self.derive_address(identity.public_key)),
            slot=42,
            confirmation_status="confirmed",
        )


@pytest.fixture
def stub_store() -> StubStore:
    return StubStore()


@pytest.fixture
def stub_anchor() -> StubAnchor:
    return StubAnchor()


@pytest.fixture
def orchestrator(stub_store: StubStore, stub_anchor: StubAnchor) -> Orchestrator:
    """Orchestrator wired to the stub store and anchor."""
    return Orchestrator(stub_store, stub_anchor, ingest_workers=2)


@pytest.fixture
def make_store() -> Callable[..., StubStore]:
    """Factory fixture: build a StubStore (optionally failing)."""
    return StubStore


@pytest.fixture
def make_anchor() -> Callable[..., StubAnchor]:
    """Factory fixture: build a StubAnchor (optionally failing)."""
    return StubAnchor


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration with a credential set, zero backoff, and no signer file."""
    return AppConfig(
        pinata_jwt="test-jwt",
        store_backoff_base_seconds=0.0,
        confirm_poll_interval_seconds=0.0,
        signer_keypair_path=None,
        environment="development",
        debug=False,
    )
