"""Transition table for the intake workflow.

The workflow is a linear chain with rollback: each non-terminal state has
exactly one forward event, each state after ``START`` (other than ``DONE``)
has one ``ROLLBACK`` edge to its predecessor, ``WOUND_IMAGING`` may ``RESET``
back to ``BIO_INTAKE`` and ``DONE`` loops back to ``START`` on ``RESET``.
Events absent for a state are simply not legal there.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from wound_intake.domain.enums import SessionEvent as E
from wound_intake.domain.enums import SessionState as S

STATE_TRANSITIONS: Mapping[S, Mapping[E, S]] = MappingProxyType({
    S.START: MappingProxyType({
        E.BEGIN: S.BIO_INTAKE,
    }),
    S.BIO_INTAKE: MappingProxyType({
        E.BIO_CONFIRMED: S.WOUND_IMAGING,
        E.ROLLBACK: S.START,
    }),
    S.WOUND_IMAGING: MappingProxyType({
        E.IMAGING_CONFIRMED: S.VITALS,
        E.RESET: S.BIO_INTAKE,
        E.ROLLBACK: S.BIO_INTAKE,
    }),
    S.VITALS: MappingProxyType({
        E.VITALS_CAPTURED: S.TIME,
        E.ROLLBACK: S.WOUND_IMAGING,
    }),
    S.TIME: MappingProxyType({
        E.TIME_CAPTURED: S.FOLLOW_UP,
        E.ROLLBACK: S.VITALS,
    }),
    S.FOLLOW_UP: MappingProxyType({
        E.FOLLOW_UP_RESOLVED: S.REVIEW,
        E.ROLLBACK: S.TIME,
    }),
    S.REVIEW: MappingProxyType({
        E.REVIEW_COMPLETED: S.ASSEMBLE_JSON,
        E.ROLLBACK: S.FOLLOW_UP,
    }),
    S.ASSEMBLE_JSON: MappingProxyType({
        E.JSON_ASSEMBLED: S.LINK_TO_CLINICIAN,
        E.ROLLBACK: S.REVIEW,
    }),
    S.LINK_TO_CLINICIAN: MappingProxyType({
        E.CLINICIAN_LINKED: S.STORE_SYNC,
        E.ROLLBACK: S.ASSEMBLE_JSON,
    }),
    S.STORE_SYNC: MappingProxyType({
        E.STORED: S.DONE,
        E.ROLLBACK: S.LINK_TO_CLINICIAN,
    }),
    S.DONE: MappingProxyType({
        E.RESET: S.START,
    }),
})

TERMINAL_STATES: frozenset[S] = frozenset({S.DONE})

# Happy-path event leaving each non-terminal state
FORWARD_EVENTS: Mapping[S, E] = MappingProxyType({
    S.START: E.BEGIN,
    S.BIO_INTAKE: E.BIO_CONFIRMED,
    S.WOUND_IMAGING: E.IMAGING_CONFIRMED,
    S.VITALS: E.VITALS_CAPTURED,
    S.TIME: E.TIME_CAPTURED,
    S.FOLLOW_UP: E.FOLLOW_UP_RESOLVED,
    S.REVIEW: E.REVIEW_COMPLETED,
    S.ASSEMBLE_JSON: E.JSON_ASSEMBLED,
    S.LINK_TO_CLINICIAN: E.CLINICIAN_LINKED,
    S.STORE_SYNC: E.STORED,
})


def next_state(state: S, event: E) -> Optional[S]:
    """Return the target state for ``event`` from ``state``, or None if illegal."""
    return STATE_TRANSITIONS.get(state, {}).get(event)


def forward_event(state: S) -> Optional[E]:
    """Return the happy-path event leaving ``state`` (None for terminal states)."""
    return FORWARD_EVENTS.get(state)
