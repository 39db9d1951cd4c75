"""Deterministic pipeline state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- No state is entered twice within a run
- Every transition recorded in the run's in-memory transition log

One machine is created per upload request; nothing is persisted across
requests.
"""

from __future__ import annotations

import logging

from gameanchor.models.pipeline import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    PipelineState,
    StateTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class PipelineStateMachine:
    """Tracks the state of a single pipeline run.

    Parameters
    ----------
    run_id:
        Identifier used in log lines for this run.
    """

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self._state = PipelineState.IDLE
        self._visited: set[PipelineState] = {PipelineState.IDLE}
        self._log: list[StateTransition] = []

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def transitions(self) -> list[StateTransition]:
        """A copy of the transition log, oldest first."""
        return list(self._log)

    def can_transition(self, target: PipelineState) -> bool:
        return target in VALID_TRANSITIONS.get(self._state, set()) and target not in self._visited

    def transition(
        self,
        target: PipelineState,
        *,
        input_hash: str = "",
        output_hash: str = "",
        detail: str | None = None,
    ) -> StateTransition:
        """Move to *target*, recording the transition.

        Raises ``InvalidTransitionError`` if the table forbids the move or
        *target* was already visited in this run.
        """
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {self._state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        if target in self._visited:
            raise InvalidTransitionError(f"State {target.value} cannot be re-entered")

        record = StateTransition(
            from_state=self._state,
            to_state=target,
            input_hash=input_hash,
            output_hash=output_hash,
            detail=detail,
        )
        self._log.append(record)
        self._visited.add(target)
        logger.info(
            "[%s] %s -> %s%s",
            self.run_id, self._state.value, target.value,
            f" ({detail})" if detail else "",
        )
        self._state = target
        return record
