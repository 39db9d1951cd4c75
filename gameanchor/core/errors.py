"""Error taxonomy for the upload pipeline.

Four families, each with a fixed pipeline policy:

- ``InputError``    — the caller's fault (bad or missing folder). Fatal, 400.
- ``StoreError``    — the pinning service rejected or was unreachable. Fatal, 502.
- ``ChainError``    — anchoring rejected or unreachable. Non-fatal: the
  Orchestrator downgrades it to ``ChainWriteStatus.failed(reason)``.
- ``InternalError`` — invariant violation or unexpected exception. Fatal, 500.
"""

from __future__ import annotations

from typing import Any


class PipelineError(RuntimeError):
    """Base class for every error the pipeline raises on purpose.

    When a run fails, the Orchestrator attaches ``run_id`` and the run's
    transition log before re-raising.
    """

    status_code: int = 500
    error: str = "Folder upload failed"

    def __init__(self, message: str = "", *, details: str | None = None) -> None:
        super().__init__(message or self.error)
        self.details = details
        self.run_id: str | None = None
        self.transitions: list[Any] = []


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class InputError(PipelineError):
    status_code = 400
    error = "Invalid input"


class MissingFolderPath(InputError):
    error = "Missing folderPath"


class FolderNotFound(InputError):
    error = "Folder not found"


class NotADirectory(InputError):
    error = "Not a directory"


class EmptyDirectory(InputError):
    error = "Directory is empty"


class UnsafePath(InputError):
    """An uploaded filename tried to escape the upload root."""

    error = "Unsafe path"


class UnreadableFile(InputError):
    error = "File could not be read"


class InvalidPublicKey(InputError):
    error = "Invalid wallet public key"


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class StoreError(PipelineError):
    status_code = 502
    error = "Pinning upload failed"


class StoreUploadFailed(StoreError):
    """The pinning service was reachable but rejected the payload."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            f"Pinning service returned HTTP {status_code}",
            details=body[:500],
        )
        self.upstream_status = status_code
        self.body = body


class StoreUnavailable(StoreError):
    """The pinning service could not be reached after all retries."""

    error = "Pinning service unavailable"


class StoreNotConfigured(StoreError):
    error = "Pinning service credential not configured"


class StoreTimeout(StoreError):
    status_code = 504
    error = "Pinning upload timed out"


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


class ChainError(PipelineError):
    status_code = 502
    error = "On-chain anchoring failed"


class ChainUnavailable(ChainError):
    error = "Ledger RPC unavailable"


class ChainRejected(ChainError):
    """The RPC node or the program rejected the transaction."""

    error = "Transaction rejected"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Transaction rejected: {reason}", details=reason)
        self.reason = reason


class SignatureRequired(ChainError):
    error = "Uploader identity cannot sign"


class ChainTimeout(ChainError):
    error = "Anchoring timed out"


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


class InternalError(PipelineError):
    status_code = 500
    error = "Folder upload failed"


class PipelineTimeout(InternalError):
    status_code = 504
    error = "Request deadline exceeded"
