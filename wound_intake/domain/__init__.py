"""Domain layer for Wound Intake.

This package contains the case-record models, the workflow state machine,
the agents and the orchestrator. It depends only on Pydantic and the ports
it defines.
"""

from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.enums import CaseStatus, SessionEvent, SessionState
from wound_intake.domain.orchestrator import Orchestrator
from wound_intake.domain.record_factory import create_blank_case_record
from wound_intake.domain.state_machine import StateMachine, StateSnapshot

__all__ = [
    "CaseRecord",
    "CaseStatus",
    "SessionEvent",
    "SessionState",
    "Orchestrator",
    "create_blank_case_record",
    "StateMachine",
    "StateSnapshot",
]
