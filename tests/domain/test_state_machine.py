"""Tests for the transition table and the state machine."""

import pytest

from wound_intake.domain.enums import SessionEvent, SessionState
from wound_intake.domain.ports import InvalidTransitionError
from wound_intake.domain.state_machine import StateMachine
from wound_intake.domain.transitions import (
    FORWARD_EVENTS,
    STATE_TRANSITIONS,
    TERMINAL_STATES,
    forward_event,
    next_state,
)


class TestTransitionTable:
    """Test suite for the static transition table."""

    def test_every_state_has_an_entry(self):
        """Every workflow state appears in the table."""
        assert set(STATE_TRANSITIONS) == set(SessionState)

    def test_forward_chain_reaches_done(self):
        """Following the forward events from START ends in DONE."""
        state = SessionState.START
        visited = [state]
        while state not in TERMINAL_STATES:
            state = next_state(state, forward_event(state))
            visited.append(state)
        assert visited[-1] == SessionState.DONE
        assert len(visited) == len(SessionState)

    def test_rollback_edges(self):
        """ROLLBACK moves one step back from every intermediate state."""
        assert next_state(SessionState.BIO_INTAKE, SessionEvent.ROLLBACK) == SessionState.START
        assert next_state(SessionState.STORE_SYNC, SessionEvent.ROLLBACK) == SessionState.LINK_TO_CLINICIAN
        assert next_state(SessionState.START, SessionEvent.ROLLBACK) is None
        assert next_state(SessionState.DONE, SessionEvent.ROLLBACK) is None

    def test_reset_edges(self):
        """RESET is legal only from WOUND_IMAGING and DONE."""
        assert next_state(SessionState.WOUND_IMAGING, SessionEvent.RESET) == SessionState.BIO_INTAKE
        assert next_state(SessionState.DONE, SessionEvent.RESET) == SessionState.START
        assert next_state(SessionState.VITALS, SessionEvent.RESET) is None

    def test_terminal_state_has_no_forward_event(self):
        """DONE has no forward event."""
        assert forward_event(SessionState.DONE) is None
        assert SessionState.DONE not in FORWARD_EVENTS

    def test_table_is_read_only(self):
        """The table cannot be mutated at runtime."""
        with pytest.raises(TypeError):
            STATE_TRANSITIONS[SessionState.START] = {}


class TestStateMachine:
    """Test suite for StateMachine."""

    def test_initial_state_defaults_to_record_state(self, blank_record):
        """A new machine resumes from storage_meta.state."""
        machine = StateMachine(blank_record)
        assert machine.current().state == SessionState.BIO_INTAKE

    @pytest.mark.parametrize(
        "state,event",
        [(state, event) for state, edges in STATE_TRANSITIONS.items() for event in edges],
    )
    def test_every_legal_transition(self, blank_record, state, event):
        """Every table entry moves the machine to its target state."""
        machine = StateMachine(blank_record, state)
        snapshot = machine.transition(event)

        assert snapshot.state == STATE_TRANSITIONS[state][event]
        assert snapshot.record.storage_meta.state == snapshot.state
        assert snapshot.record.updated_at > blank_record.updated_at

    @pytest.mark.parametrize(
        "state,event",
        [
            (state, event)
            for state in SessionState
            for event in SessionEvent
            if event not in STATE_TRANSITIONS[state]
        ],
    )
    def test_illegal_transition_changes_nothing(self, blank_record, state, event):
        """Every event absent from the table raises and leaves state and record alone."""
        machine = StateMachine(blank_record, state)
        before = machine.current()

        with pytest.raises(InvalidTransitionError):
            machine.transition(event, lambda record: record.model_copy(update={"consent_granted": True}))

        assert machine.current().state == before.state
        assert machine.current().record is before.record

    def test_illegal_transition_message(self, blank_record):
        """The error names the state and the rejected event."""
        machine = StateMachine(blank_record, SessionState.START)

        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.transition(SessionEvent.BIO_CONFIRMED)

        assert str(exc_info.value) == "Invalid transition from START via BIO_CONFIRMED"
        assert exc_info.value.state == SessionState.START

    def test_can_transition(self, blank_record):
        """can_transition mirrors the table."""
        machine = StateMachine(blank_record)
        assert machine.can_transition(SessionEvent.BIO_CONFIRMED)
        assert not machine.can_transition(SessionEvent.STORED)

    def test_record_updater_applied(self, blank_record):
        """The updater's record is the one stamped and stored."""
        machine = StateMachine(blank_record)
        snapshot = machine.transition(
            SessionEvent.BIO_CONFIRMED,
            lambda record: record.model_copy(update={"consent_granted": True}),
        )
        assert snapshot.record.consent_granted is True
        assert snapshot.state == SessionState.WOUND_IMAGING

    def test_updated_at_strictly_increases(self, blank_record):
        """Back-to-back transitions never reuse a timestamp."""
        machine = StateMachine(blank_record, SessionState.START)
        stamps = [blank_record.updated_at]
        for _ in range(5):
            state = machine.current().state
            stamps.append(machine.transition(FORWARD_EVENTS[state]).record.updated_at)
        assert all(later > earlier for earlier, later in zip(stamps, stamps[1:]))

    def test_terminal_and_reset(self, blank_record):
        """DONE is terminal; reset re-anchors without validation."""
        machine = StateMachine(blank_record, SessionState.STORE_SYNC)
        machine.transition(SessionEvent.STORED)
        assert machine.is_terminal()

        snapshot = machine.reset(blank_record)
        assert snapshot.state == SessionState.START
        assert snapshot.record is blank_record
        assert not machine.is_terminal()
