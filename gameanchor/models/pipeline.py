"""Pipeline state machine models and the externally visible result."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from gameanchor.models.manifest import Manifest
from gameanchor.models.receipts import TransactionReceipt


class PipelineState(str, Enum):
    """States of a single upload run."""

    IDLE = "idle"
    INGESTING = "ingesting"
    PACKAGING = "packaging"
    STORING_CONTENT = "storing_content"
    BUILDING_MANIFEST = "building_manifest"
    ANCHORING = "anchoring"
    DONE = "done"
    DEGRADED_DONE = "degraded_done"
    FAILED = "failed"


# Valid state transitions, enforced by PipelineStateMachine.
# The graph is acyclic, so no state can be re-entered.
VALID_TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.IDLE: {PipelineState.INGESTING},
    PipelineState.INGESTING: {PipelineState.PACKAGING, PipelineState.FAILED},
    PipelineState.PACKAGING: {PipelineState.STORING_CONTENT, PipelineState.FAILED},
    PipelineState.STORING_CONTENT: {PipelineState.BUILDING_MANIFEST, PipelineState.FAILED},
    PipelineState.BUILDING_MANIFEST: {
        PipelineState.ANCHORING,
        PipelineState.DEGRADED_DONE,  # no signing identity
        PipelineState.FAILED,  # invariant violation only
    },
    PipelineState.ANCHORING: {PipelineState.DONE, PipelineState.DEGRADED_DONE},
    PipelineState.DONE: set(),  # terminal
    PipelineState.DEGRADED_DONE: set(),  # terminal
    PipelineState.FAILED: set(),  # terminal
}

TERMINAL_STATES: frozenset[PipelineState] = frozenset(
    state for state, targets in VALID_TRANSITIONS.items() if not targets
)


class StateTransition(BaseModel):
    """Records a single state transition for the per-run audit trail."""

    model_config = ConfigDict(frozen=True)

    from_state: PipelineState
    to_state: PipelineState
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    input_hash: str = ""
    output_hash: str = ""
    detail: str | None = None


class ChainWriteOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class ChainWriteStatus(BaseModel):
    """Whether the on-chain record exists after this run."""

    model_config = ConfigDict(frozen=True)

    outcome: ChainWriteOutcome
    reason: str | None = None
    receipt: TransactionReceipt | None = None

    @classmethod
    def succeeded(cls, receipt: TransactionReceipt) -> ChainWriteStatus:
        return cls(outcome=ChainWriteOutcome.SUCCEEDED, receipt=receipt)

    @classmethod
    def skipped(cls, reason: str) -> ChainWriteStatus:
        return cls(outcome=ChainWriteOutcome.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> ChainWriteStatus:
        return cls(outcome=ChainWriteOutcome.FAILED, reason=reason)


class PipelineResult(BaseModel):
    """The outcome of a run that reached ``done`` or ``degraded_done``.

    The manifest (and its CID and playable URL) is always usable; callers
    must inspect ``chain_write_status`` to know whether the on-chain record
    exists.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str
    manifest: Manifest
    chain_write_status: ChainWriteStatus
    final_state: PipelineState
    metadata_account: str | None = None
    transitions: list[StateTransition] = []

    @property
    def degraded(self) -> bool:
        return self.final_state == PipelineState.DEGRADED_DONE
