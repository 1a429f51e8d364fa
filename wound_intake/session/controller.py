"""Session Controller - request-facing facade for one case.

The controller wraps one case's state machine and orchestrator together with
the biography agent and the multi-modal input router. Every operation runs
an agent or a transition against the current record and persists the
result through the case repository.

Security Impact:
    - Raw request payloads are sanitized before reaching any agent
    - The clinician PIN is only ever received already hashed
    - Biography confirmation is gated on required fields and valid consent

Architecture:
    - One controller per (case id, request); nothing mutable is shared
      between controllers except the repository
    - Agents persist candidate records through ``context.autosave``; state
      changes without an agent are saved explicitly
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Union

from wound_intake.domain.agents.base import AgentDependencies, AgentResult, AgentRunContext
from wound_intake.domain.agents.bio_agent import BioAgent, BioAgentInput, BioAgentOutput, compute_missing_fields
from wound_intake.domain.agents.input_router import DirectInput, InputRouter, InputRouterInput, InputRouterOutput
from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.enums import SessionEvent, SessionState, Sex
from wound_intake.domain.merge import CONSENT_MERGE_FIELDS, PATIENT_MERGE_FIELDS, normalize_keys
from wound_intake.domain.null_capabilities import noop_autosave
from wound_intake.domain.orchestrator import Orchestrator, OrchestratorStepResult
from wound_intake.domain.patient import ConsentPreferences, PatientBio
from wound_intake.domain.ports import CaseRecordRepository, IncompleteBiographyError, InvalidTransitionError
from wound_intake.domain.state_machine import StateMachine
from wound_intake.domain.utils import advance_timestamp, utc_now

logger = logging.getLogger(__name__)

STRING_PATIENT_FIELDS = ("patient_id", "first_name", "last_name", "preferred_name", "date_of_birth", "mrn")
BOOLEAN_CONSENT_FIELDS = ("data_storage", "photography", "sharing_to_team_board")


# ============================================================================
# Sanitization
# ============================================================================

def normalize_string(value: Any) -> Optional[str]:
    """Trim a string; anything else, or an empty result, becomes None."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_age(value: Any) -> Optional[int]:
    """Coerce an age to a whole number, or None when it is not one."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or not number.is_integer():
        return None
    return int(number)


def normalize_notes(value: Any) -> list[str]:
    """Accept a newline-delimited string or a list; return trimmed non-blank lines."""
    if isinstance(value, str):
        entries: Iterable[Any] = value.split("\n")
    elif isinstance(value, (list, tuple)):
        entries = value
    else:
        return []
    return [entry.strip() for entry in entries if isinstance(entry, str) and entry.strip()]


def normalize_sex(value: Any) -> Optional[Sex]:
    if isinstance(value, Sex):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Sex(value.strip().lower())
    except ValueError:
        return None


def sanitize_patient(patient: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Clean a raw patient patch, keeping only the keys that are present."""
    fields = normalize_keys(PatientBio, patient, PATIENT_MERGE_FIELDS)
    cleaned: dict[str, Any] = {}
    for name in STRING_PATIENT_FIELDS:
        if name in fields:
            cleaned[name] = normalize_string(fields[name])
    if "age" in fields:
        cleaned["age"] = normalize_age(fields["age"])
    if "sex" in fields:
        cleaned["sex"] = normalize_sex(fields["sex"])
    if "notes" in fields:
        cleaned["notes"] = normalize_notes(fields["notes"])
    if "contact" in fields:
        cleaned["contact"] = fields["contact"]
    return cleaned


def sanitize_consent(consent: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Clean a raw consent patch, keeping only the keys that are present."""
    fields = normalize_keys(ConsentPreferences, consent, CONSENT_MERGE_FIELDS)
    cleaned: dict[str, Any] = {}
    for name in BOOLEAN_CONSENT_FIELDS:
        if name in fields:
            cleaned[name] = bool(fields[name])
    if "notes" in fields:
        cleaned["notes"] = normalize_string(fields["notes"])
    if "captured_by" in fields:
        cleaned["captured_by"] = normalize_string(fields["captured_by"])
    if "captured_at" in fields:
        cleaned["captured_at"] = fields["captured_at"]
    return cleaned


def sanitize_bio_input(raw: Optional[Mapping[str, Any]]) -> BioAgentInput:
    """Turn a raw ``{"patient": ..., "consent": ...}`` payload into agent input."""
    raw = raw or {}
    patient = raw.get("patient")
    consent = raw.get("consent")
    return BioAgentInput(
        patient=sanitize_patient(patient if isinstance(patient, Mapping) else None),
        consent=sanitize_consent(consent if isinstance(consent, Mapping) else None),
    )


def sanitize_router_input(router_input: InputRouterInput) -> InputRouterInput:
    """Sanitize the direct patient and consent fields of a router submission."""
    direct = router_input.direct_input
    return replace(
        router_input,
        direct_input=DirectInput(
            patient=sanitize_patient(direct.patient),
            consent=sanitize_consent(direct.consent),
        ),
    )


def sanitize_payload(payload: Any) -> Any:
    """Sanitize biography fields of an event payload; other payloads pass through."""
    if isinstance(payload, BioAgentInput):
        return replace(
            payload,
            patient=sanitize_patient(payload.patient),
            consent=sanitize_consent(payload.consent),
        )
    if isinstance(payload, InputRouterInput):
        return sanitize_router_input(payload)
    return payload


# ============================================================================
# Controller
# ============================================================================

@dataclass(frozen=True)
class SessionSnapshot:
    record: CaseRecord
    bio_result: BioAgentOutput
    state: SessionState


@dataclass(frozen=True)
class BioConfirmation:
    ok: bool
    missing_fields: list[str] = field(default_factory=list)
    state: Optional[SessionState] = None


class SessionController:
    """Request-facing operations for one case.

    Parameters:
        record: Current case record
        repository: Repository the case persists to (None disables saving)
        dependencies: Capabilities handed to every agent
        state: Workflow state to resume from (defaults to the stored state)
        abort_signal: Cancellation signal shared by every run of this controller
        orchestrator: Prebuilt orchestrator (its state machine is used as is)

    Example Usage:
        ```python
        controller = SessionController(record, repository=repository)
        await controller.update_bio({"patient": {"firstName": "Ada"}})
        confirmation = await controller.confirm_bio()
        ```
    """

    def __init__(
        self,
        record: CaseRecord,
        repository: Optional[CaseRecordRepository] = None,
        dependencies: Optional[AgentDependencies] = None,
        state: Optional[SessionState] = None,
        abort_signal: Optional[asyncio.Event] = None,
        orchestrator: Optional[Orchestrator] = None,
    ):
        self.repository = repository
        self.dependencies = dependencies or AgentDependencies()
        self.abort_signal = abort_signal or asyncio.Event()
        if orchestrator is None:
            orchestrator = Orchestrator(StateMachine(record, state), self.dependencies)
        self.orchestrator = orchestrator
        self.machine = orchestrator.machine

        bound = orchestrator.agent_for(SessionState.BIO_INTAKE)
        self.bio_agent = bound if isinstance(bound, BioAgent) else BioAgent(self.dependencies)
        self.input_router = InputRouter(self.dependencies)
        self._bio_result: Optional[BioAgentOutput] = None

    @property
    def record(self) -> CaseRecord:
        return self.machine.current().record

    @property
    def state(self) -> SessionState:
        return self.machine.current().state

    def _context(self) -> AgentRunContext:
        return AgentRunContext(
            record=self.record,
            artifacts=tuple(self.record.artifacts),
            autosave=self.repository.save if self.repository is not None else noop_autosave,
            logger=self.dependencies.logger,
            abort_signal=self.abort_signal,
            crypto=self.dependencies.crypto,
            text_generator=self.dependencies.text_generator,
        )

    def _adopt(self, result: AgentResult) -> None:
        if result.updated_record is not None:
            self.machine.reset(result.updated_record, self.state)

    async def _persist(self) -> None:
        if self.repository is not None:
            await self.repository.save(self.record)

    def _log_context(self) -> dict[str, Any]:
        return {"case_id": self.record.case_id, "state": self.state.value}

    async def get_snapshot(self) -> SessionSnapshot:
        """Current record, biography evaluation and state."""
        if self._bio_result is None:
            return await self.update_bio({"patient": {}, "consent": {}})
        return SessionSnapshot(record=self.record, bio_result=self._bio_result, state=self.state)

    async def update_bio(self, raw: Optional[Mapping[str, Any]]) -> SessionSnapshot:
        """Sanitize a raw biography patch and run the biography agent."""
        bio_input = sanitize_bio_input(raw)
        result = await self.bio_agent.run(bio_input, self._context())
        self._adopt(result)
        self._bio_result = result.data
        logger.info(
            f"Biography updated for case {self.record.case_id} "
            f"({len(result.data.missing_fields)} required items missing)",
            extra=self._log_context(),
        )
        return SessionSnapshot(record=self.record, bio_result=result.data, state=self.state)

    async def submit_input(self, router_input: InputRouterInput) -> InputRouterOutput:
        """Sanitize and route a text, audio or OCR biography submission."""
        result = await self.input_router.run(sanitize_router_input(router_input), self._context())
        self._adopt(result)
        self._bio_result = result.data.bio_result
        return result.data

    async def confirm_bio(self) -> BioConfirmation:
        """Confirm the biography and leave ``BIO_INTAKE`` when it is complete.

        The gate is evaluated against the current record, so edits made by any
        earlier operation (including agent runs triggered by events) count.

        Returns:
            BioConfirmation: ``ok`` is True only when the case advanced to
            ``WOUND_IMAGING``; otherwise the state is unchanged and
            ``missing_fields`` lists what is absent (empty when the biography is
            complete but the case is not in ``BIO_INTAKE``)
        """
        missing = compute_missing_fields(self.record.patient)
        if missing:
            return BioConfirmation(ok=False, missing_fields=missing, state=self.state)

        if not self.machine.can_transition(SessionEvent.BIO_CONFIRMED):
            logger.warning(
                f"Biography confirmation ignored for case {self.record.case_id} in {self.state.value}",
                extra=self._log_context(),
            )
            return BioConfirmation(ok=False, missing_fields=[], state=self.state)

        self.machine.transition(SessionEvent.BIO_CONFIRMED)
        await self._persist()
        logger.info(f"Biography confirmed for case {self.record.case_id}", extra=self._log_context())
        return BioConfirmation(ok=True, missing_fields=[], state=self.state)

    async def trigger_event(
        self,
        event: Union[SessionEvent, str],
        payload: Any = None,
    ) -> OrchestratorStepResult:
        """Apply a workflow event.

        Parameters:
            event: Event (or its name)
            payload: Input for the agent bound to the resulting state; when
                None only the state machine transitions. Biography fields in
                the payload are sanitized first.

        Raises:
            InvalidTransitionError: If the event is unknown or illegal now
            IncompleteBiographyError: If ``BIO_CONFIRMED`` is requested while
                required biography items or consent are missing
        """
        try:
            resolved = SessionEvent(event)
        except ValueError:
            raise InvalidTransitionError(self.state, event) from None

        if resolved == SessionEvent.BIO_CONFIRMED and self.machine.can_transition(resolved):
            missing = compute_missing_fields(self.record.patient)
            if missing:
                raise IncompleteBiographyError(missing)

        if payload is None:
            snapshot = self.machine.transition(resolved)
            step = OrchestratorStepResult(snapshot=snapshot)
        else:
            step = await self.orchestrator.advance(resolved, sanitize_payload(payload), self._context())
            if step.agent_result is not None and isinstance(step.agent_result.data, BioAgentOutput):
                self._bio_result = step.agent_result.data
        await self._persist()
        logger.info(
            f"Case {self.record.case_id} moved to {self.state.value} via {resolved.value}",
            extra=self._log_context(),
        )
        return step

    async def assign_pin(self, pin_hash: str, issued_at: Optional[datetime] = None) -> CaseRecord:
        """Store an already-hashed clinician PIN and persist immediately.

        Raises:
            ValueError: If the hash is empty
        """
        if not pin_hash:
            raise ValueError("PIN hash is required")
        record = self.record
        updated = record.model_copy(update={
            "clinician_pin_hash": pin_hash,
            "storage_meta": record.storage_meta.model_copy(update={"pin_issued_at": issued_at or utc_now()}),
            "updated_at": advance_timestamp(record.updated_at),
        })
        self.machine.reset(updated, self.state)
        await self._persist()
        logger.info(f"PIN assigned for case {record.case_id}")
        return updated
