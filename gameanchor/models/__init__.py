"""gameanchor data models — all Pydantic v2, all frozen (immutable)."""

from gameanchor.models.files import FileEntry, UploadRequest
from gameanchor.models.identity import UploaderIdentity
from gameanchor.models.manifest import IpfsPointer, Manifest, ManifestArgs
from gameanchor.models.pipeline import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ChainWriteOutcome,
    ChainWriteStatus,
    PipelineResult,
    PipelineState,
    StateTransition,
)
from gameanchor.models.receipts import PinningReceipt, TransactionReceipt

__all__ = [
    # files
    "FileEntry",
    "UploadRequest",
    # identity
    "UploaderIdentity",
    # manifest
    "IpfsPointer",
    "Manifest",
    "ManifestArgs",
    # receipts
    "PinningReceipt",
    "TransactionReceipt",
    # pipeline
    "PipelineState",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "StateTransition",
    "ChainWriteOutcome",
    "ChainWriteStatus",
    "PipelineResult",
]
