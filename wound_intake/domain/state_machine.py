"""Workflow state machine.

The state machine exclusively owns the current state and record of one case.
``transition`` is the only validated mutation; ``reset`` re-anchors the
machine after an agent has produced a replacement record.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.enums import SessionEvent, SessionState
from wound_intake.domain.ports import InvalidTransitionError
from wound_intake.domain.transitions import TERMINAL_STATES, next_state
from wound_intake.domain.utils import advance_timestamp

logger = logging.getLogger(__name__)

RecordUpdater = Callable[[CaseRecord], CaseRecord]


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only view of the machine at one point in time."""
    state: SessionState
    record: CaseRecord


class StateMachine:
    """Finite state machine over the transition table.

    Parameters:
        record: Initial case record
        state: Initial state (defaults to the state stored on the record)
    """

    def __init__(self, record: CaseRecord, state: Optional[SessionState] = None):
        self._record = record
        self._state = state if state is not None else record.storage_meta.state

    def current(self) -> StateSnapshot:
        return StateSnapshot(state=self._state, record=self._record)

    def can_transition(self, event: SessionEvent) -> bool:
        return next_state(self._state, event) is not None

    def transition(self, event: SessionEvent, record_updater: Optional[RecordUpdater] = None) -> StateSnapshot:
        """Apply ``event``.

        The updater (identity when omitted) runs first, then ``updated_at`` is
        stamped strictly later than before and ``storage_meta.state`` is set
        to the target state.

        Parameters:
            event: Event to apply
            record_updater: Optional function producing the next record

        Returns:
            StateSnapshot: Snapshot after the transition

        Raises:
            InvalidTransitionError: If ``event`` is not legal from the current
                state; state and record are left untouched
        """
        target = next_state(self._state, event)
        if target is None:
            raise InvalidTransitionError(self._state, event)

        updated = record_updater(self._record) if record_updater else self._record
        stamped = updated.model_copy(update={
            "updated_at": advance_timestamp(max(updated.updated_at, self._record.updated_at)),
            "storage_meta": updated.storage_meta.model_copy(update={"state": target}),
        })
        logger.debug(f"Case {stamped.case_id}: {self._state.value} --{event.value}--> {target.value}")
        self._record = stamped
        self._state = target
        return self.current()

    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def reset(self, record: CaseRecord, state: SessionState = SessionState.START) -> StateSnapshot:
        """Re-anchor on ``record`` and ``state`` without validating a transition."""
        self._record = record
        self._state = state
        return self.current()
