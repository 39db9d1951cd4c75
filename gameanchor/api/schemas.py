"""Wire schemas for the HTTP entry point (camelCase on the wire)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from gameanchor.core.errors import PipelineError
from gameanchor.models.pipeline import ChainWriteOutcome, ChainWriteStatus, PipelineResult

UPLOAD_NOTE = "Ensure your Godot HTML5 export folder contains index.html at the root."


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadFolderRequest(_CamelModel):
    """``POST /api/uploadFolder`` body. Both fields are optional on the wire
    so that a missing ``folderPath`` maps to the pipeline's own 400."""

    folder_path: str | None = None
    wallet_public_key: str | None = None


class ChainWriteStatusBody(_CamelModel):
    outcome: ChainWriteOutcome
    reason: str | None = None
    signature: str | None = None
    slot: int | None = None
    confirmation_status: str | None = None

    @classmethod
    def from_status(cls, status: ChainWriteStatus) -> ChainWriteStatusBody:
        receipt = status.receipt
        return cls(
            outcome=status.outcome,
            reason=status.reason,
            signature=receipt.signature if receipt else None,
            slot=receipt.slot if receipt else None,
            confirmation_status=receipt.confirmation_status if receipt else None,
        )


class UploadResponse(_CamelModel):
    success: bool = True
    run_id: str
    manifest: dict[str, Any]
    note: str
    chain_write_status: ChainWriteStatusBody
    metadata_account: str | None = None

    @classmethod
    def from_result(cls, result: PipelineResult) -> UploadResponse:
        note = UPLOAD_NOTE
        status = result.chain_write_status
        if status.outcome != ChainWriteOutcome.SUCCEEDED and status.reason:
            note = f"{note} On-chain write {status.outcome.value}: {status.reason}"
        return cls(
            run_id=result.run_id,
            manifest=result.manifest.model_dump(by_alias=True),
            note=note,
            chain_write_status=ChainWriteStatusBody.from_status(status),
            metadata_account=result.metadata_account,
        )


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None

    @classmethod
    def from_error(cls, exc: PipelineError) -> ErrorResponse:
        return cls(error=str(exc), details=exc.details)


class HealthResponse(_CamelModel):
    ok: bool = True
    store_configured: bool
    signer_configured: bool
