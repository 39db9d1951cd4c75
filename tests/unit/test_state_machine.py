"""Tests for the pipeline state machine — transitions, terminal states, no re-entry."""

from __future__ import annotations

import pytest

from gameanchor.core.state_machine import InvalidTransitionError, PipelineStateMachine
from gameanchor.models.pipeline import TERMINAL_STATES, VALID_TRANSITIONS, PipelineState

HAPPY_PATH = [
    PipelineState.INGESTING,
    PipelineState.PACKAGING,
    PipelineState.STORING_CONTENT,
    PipelineState.BUILDING_MANIFEST,
    PipelineState.ANCHORING,
    PipelineState.DONE,
]


@pytest.fixture
def machine() -> PipelineStateMachine:
    return PipelineStateMachine("ga-test-run-001")


class TestPipelineStateMachine:
    def test_starts_idle(self, machine: PipelineStateMachine):
        assert machine.state == PipelineState.IDLE
        assert machine.transitions == []
        assert not machine.is_terminal

    def test_happy_path(self, machine: PipelineStateMachine):
        for state in HAPPY_PATH:
            machine.transition(state)
        assert machine.state == PipelineState.DONE
        assert machine.is_terminal
        assert [t.to_state for t in machine.transitions] == HAPPY_PATH

    def test_records_hashes_and_detail(self, machine: PipelineStateMachine):
        record = machine.transition(
            PipelineState.INGESTING, input_hash="in", output_hash="out", detail="3 files"
        )
        assert record.from_state == PipelineState.IDLE
        assert record.to_state == PipelineState.INGESTING
        assert (record.input_hash, record.output_hash, record.detail) == ("in", "out", "3 files")
        assert record.timestamp_utc.tzinfo is not None

    def test_cannot_skip_stages(self, machine: PipelineStateMachine):
        with pytest.raises(InvalidTransitionError):
            machine.transition(PipelineState.STORING_CONTENT)

    @pytest.mark.parametrize(
        "failing_from",
        [PipelineState.INGESTING, PipelineState.PACKAGING, PipelineState.STORING_CONTENT],
    )
    def test_fatal_stages_can_fail(self, machine: PipelineStateMachine, failing_from: PipelineState):
        for state in HAPPY_PATH[: HAPPY_PATH.index(failing_from) + 1]:
            machine.transition(state)
        machine.transition(PipelineState.FAILED)
        assert machine.is_terminal

    def test_anchoring_cannot_fail(self, machine: PipelineStateMachine):
        for state in HAPPY_PATH[:5]:
            machine.transition(state)
        assert not machine.can_transition(PipelineState.FAILED)
        with pytest.raises(InvalidTransitionError):
            machine.transition(PipelineState.FAILED)
        machine.transition(PipelineState.DEGRADED_DONE)
        assert machine.state == PipelineState.DEGRADED_DONE

    def test_skip_anchoring_from_manifest(self, machine: PipelineStateMachine):
        for state in HAPPY_PATH[:4]:
            machine.transition(state)
        machine.transition(PipelineState.DEGRADED_DONE)
        assert machine.is_terminal

    def test_terminal_states_have_no_exits(self, machine: PipelineStateMachine):
        for state in HAPPY_PATH:
            machine.transition(state)
        for target in PipelineState:
            assert not machine.can_transition(target)

    def test_transitions_returns_copy(self, machine: PipelineStateMachine):
        machine.transition(PipelineState.INGESTING)
        machine.transitions.clear()
        assert len(machine.transitions) == 1


class TestTransitionTable:
    def test_graph_is_acyclic(self):
        """No path through VALID_TRANSITIONS returns to a state already on it."""

        def visit(state: PipelineState, path: set[PipelineState]) -> None:
            for nxt in VALID_TRANSITIONS[state]:
                assert nxt not in path, f"cycle through {nxt.value}"
                visit(nxt, path | {nxt})

        visit(PipelineState.IDLE, {PipelineState.IDLE})

    def test_terminal_states(self):
        assert TERMINAL_STATES == {
            PipelineState.DONE,
            PipelineState.DEGRADED_DONE,
            PipelineState.FAILED,
        }
