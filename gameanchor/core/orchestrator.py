"""Pipeline orchestrator — the only component holding cross-stage state.

Sequences ingest -> package -> store -> build manifest -> anchor through the
PipelineStateMachine and decides which failures are fatal:

- Ingesting, Packaging, StoringContent (and the manifest build, for
  invariant violations only) are **fatal**: the run moves to ``failed``
  and the error is re-raised with the run's transition log attached.
- Anchoring is **non-fatal**: the content is already pinned, so a
  ``ChainError`` (or any unexpected exception from the anchor) moves the run
  to ``degraded_done`` and is reported as ``ChainWriteStatus.failed(reason)``.
  It is never retried here.
- Without an identity able to sign, anchoring is not attempted at all and
  the run goes straight to ``degraded_done`` with ``skipped``.

A run is one request. Nothing is shared between runs except the two clients,
which hold no per-request state.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx

from gameanchor.bridge.ledger import AnchoringClient
from gameanchor.bridge.pinning import PinningClient
from gameanchor.config import AppConfig
from gameanchor.core.deadline import Deadline
from gameanchor.core.errors import (
    ChainError,
    InternalError,
    PipelineError,
    PipelineTimeout,
)
from gameanchor.core.hasher import compute_stage_hash, tree_digest
from gameanchor.core.ingestor import ingest_directory, ingest_uploaded_files
from gameanchor.core.manifest_builder import DEFAULT_ENGINE, build_manifest
from gameanchor.core.packager import MultipartPayload, build_multipart_payload
from gameanchor.core.state_machine import PipelineStateMachine
from gameanchor.models.files import FileEntry, UploadRequest
from gameanchor.models.identity import UploaderIdentity
from gameanchor.models.manifest import Manifest
from gameanchor.models.pipeline import ChainWriteStatus, PipelineResult, PipelineState
from gameanchor.models.receipts import PinningReceipt, TransactionReceipt

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class ContentStore(Protocol):
    """Anything that can pin a multipart payload. ``PinningClient`` satisfies it."""

    def upload(
        self,
        payload: MultipartPayload,
        *,
        name: str | None = None,
        deadline: Deadline | None = None,
    ) -> PinningReceipt:
        ...

    def playable_url(self, cid: str) -> str:
        ...


@runtime_checkable
class MetadataAnchor(Protocol):
    """Anything that can anchor a manifest. ``AnchoringClient`` satisfies it."""

    def derive_address(self, uploader_public_key: str) -> Any:
        ...

    def anchor(
        self,
        identity: UploaderIdentity,
        manifest: Manifest,
        *,
        deadline: Deadline | None = None,
    ) -> TransactionReceipt:
        ...


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """Runs the upload pipeline once per request.

    Parameters
    ----------
    store:
        The content-addressed store client.
    anchor:
        The ledger anchoring client.
    engine:
        Engine label written into every manifest.
    request_deadline:
        Overall budget in seconds for one run.
    ingest_workers:
        Thread pool size for file reads.
    """

    def __init__(
        self,
        store: ContentStore,
        anchor: MetadataAnchor,
        *,
        engine: str = DEFAULT_ENGINE,
        request_deadline: float = 300.0,
        ingest_workers: int = 8,
    ) -> None:
        self._store = store
        self._anchor = anchor
        self._engine = engine
        self._request_deadline = request_deadline
        self._ingest_workers = ingest_workers

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        *,
        store_transport: httpx.BaseTransport | None = None,
        chain_transport: httpx.BaseTransport | None = None,
    ) -> Orchestrator:
        return cls(
            PinningClient.from_config(cfg, transport=store_transport),
            AnchoringClient.from_config(cfg, transport=chain_transport),
            engine=cfg.engine_label,
            request_deadline=cfg.request_deadline_seconds,
            ingest_workers=cfg.ingest_workers,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, request: UploadRequest) -> PipelineResult:
        """Upload the folder at ``request.root_path``."""

        def _load() -> tuple[str, list[FileEntry]]:
            entries = ingest_directory(request.root_path, max_workers=self._ingest_workers)
            return Path(request.root_path).expanduser().resolve().name, entries

        return self._execute(_load, request.uploader_identity)

    def run_files(
        self,
        files: Iterable[tuple[str, bytes]],
        identity: UploaderIdentity | None = None,
    ) -> PipelineResult:
        """Upload files a client already sent (browser folder upload)."""
        return self._execute(lambda: ingest_uploaded_files(files), identity)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(
        self,
        load: Callable[[], tuple[str, list[FileEntry]]],
        identity: UploaderIdentity | None,
    ) -> PipelineResult:
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        run_id = f"ga-{ts}-{uuid.uuid4().hex[:6]}"
        machine = PipelineStateMachine(run_id)
        deadline = Deadline(self._request_deadline)

        # 1. Ingest
        machine.transition(PipelineState.INGESTING)
        folder_name, entries = self._fatal(machine, deadline, load)

        # 2. Package
        machine.transition(
            PipelineState.PACKAGING,
            input_hash=tree_digest(entries),
            detail=f"{len(entries)} files",
        )
        payload = self._fatal(machine, deadline, build_multipart_payload, entries)

        # 3. Store
        machine.transition(PipelineState.STORING_CONTENT)
        receipt = self._fatal(
            machine,
            deadline,
            lambda: self._store.upload(payload, name=folder_name, deadline=deadline),
        )

        # 4. Build manifest
        machine.transition(
            PipelineState.BUILDING_MANIFEST,
            output_hash=compute_stage_hash("store", receipt.model_dump()),
            detail=f"cid={receipt.cid}",
        )
        manifest = self._fatal(
            machine,
            deadline,
            build_manifest,
            folder_name,
            entries,
            receipt,
            playable_url=self._store.playable_url(receipt.cid),
            engine=self._engine,
        )
        manifest_hash = compute_stage_hash("manifest", manifest.model_dump(by_alias=True))

        # 5. Anchor (non-fatal)
        metadata_account: str | None = None
        if identity is not None:
            metadata_account = str(self._anchor.derive_address(identity.public_key))

        if identity is None or not identity.can_sign:
            reason = (
                "No wallet public key supplied"
                if identity is None
                else f"No signing key available for wallet {identity.public_key}"
            )
            status = ChainWriteStatus.skipped(reason)
            machine.transition(
                PipelineState.DEGRADED_DONE, input_hash=manifest_hash, detail=f"skipped: {reason}"
            )
        else:
            machine.transition(PipelineState.ANCHORING, input_hash=manifest_hash)
            status = self._anchor_manifest(machine, deadline, identity, manifest, metadata_account)

        return PipelineResult(
            run_id=run_id,
            manifest=manifest,
            chain_write_status=status,
            final_state=machine.state,
            metadata_account=metadata_account,
            transitions=machine.transitions,
        )

    def _anchor_manifest(
        self,
        machine: PipelineStateMachine,
        deadline: Deadline,
        identity: UploaderIdentity,
        manifest: Manifest,
        metadata_account: str | None,
    ) -> ChainWriteStatus:
        try:
            tx = self._anchor.anchor(identity, manifest, deadline=deadline)
        except ChainError as exc:
            logger.warning(
                "[%s] Anchoring failed for wallet %s (account %s, cid %s): %s%s",
                machine.run_id,
                identity.public_key,
                metadata_account,
                manifest.ipfs.cid,
                exc,
                f" [{exc.details}]" if exc.details else "",
            )
            machine.transition(PipelineState.DEGRADED_DONE, detail=f"anchoring failed: {exc}")
            return ChainWriteStatus.failed(str(exc))
        except Exception as exc:
            # Content is already pinned; an unexpected anchoring fault still degrades.
            logger.exception(
                "[%s] Unexpected error while anchoring for wallet %s (account %s, cid %s)",
                machine.run_id,
                identity.public_key,
                metadata_account,
                manifest.ipfs.cid,
            )
            reason = f"Unexpected anchoring error: {type(exc).__name__}: {exc}"
            machine.transition(PipelineState.DEGRADED_DONE, detail=reason)
            return ChainWriteStatus.failed(reason)

        machine.transition(
            PipelineState.DONE,
            output_hash=compute_stage_hash("anchor", tx.model_dump()),
            detail=f"signature={tx.signature}",
        )
        return ChainWriteStatus.succeeded(tx)

    @staticmethod
    def _fatal(
        machine: PipelineStateMachine,
        deadline: Deadline,
        fn: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Run a fatal stage: any failure moves the run to ``failed`` and re-raises."""
        stage = machine.state.value
        try:
            if deadline.expired:
                raise PipelineTimeout(f"Request deadline exceeded before {stage}")
            return fn(*args, **kwargs)
        except PipelineError as exc:
            machine.transition(PipelineState.FAILED, detail=f"{stage}: {exc}")
            logger.error("[%s] %s failed: %s", machine.run_id, stage, exc)
            exc.run_id = machine.run_id
            exc.transitions = machine.transitions
            raise
        except Exception as exc:
            machine.transition(PipelineState.FAILED, detail=f"{stage}: unexpected {type(exc).__name__}")
            logger.exception("[%s] Unexpected error during %s", machine.run_id, stage)
            wrapped = InternalError(f"Unexpected error during {stage}", details=str(exc))
            wrapped.run_id = machine.run_id
            wrapped.transitions = machine.transitions
            raise wrapped from exc
