"""Tests for the orchestrator's advance loop."""

import logging

import pytest

from wound_intake.domain.agents.base import Agent, AgentResult
from wound_intake.domain.agents.wound_imaging_agent import WoundImagingAgent, WoundImagingInput
from wound_intake.domain.enums import SessionEvent, SessionState
from wound_intake.domain.orchestrator import DEFAULT_AGENT_FACTORIES, Orchestrator
from wound_intake.domain.ports import InvalidTransitionError
from wound_intake.domain.state_machine import StateMachine


class ExplodingAgent(Agent):
    """Agent that always fails."""

    name = "ExplodingAgent"
    runs = 0

    async def run(self, input, context) -> AgentResult:
        ExplodingAgent.runs += 1
        raise RuntimeError("agent failure")


class TestOrchestrator:
    """Test suite for Orchestrator.advance."""

    def test_default_bindings(self, blank_record):
        """Every bound state gets an agent; REVIEW has none."""
        orchestrator = Orchestrator(StateMachine(blank_record))
        assert isinstance(orchestrator.agent_for(SessionState.WOUND_IMAGING), WoundImagingAgent)
        assert orchestrator.agent_for(SessionState.REVIEW) is None
        assert set(DEFAULT_AGENT_FACTORIES) == {
            state for state in SessionState if orchestrator.agent_for(state) is not None
        }

    @pytest.mark.asyncio
    async def test_advance_runs_bound_agent(self, blank_record, make_context):
        """The agent bound to the resulting state runs on the transitioned record."""
        machine = StateMachine(blank_record)
        orchestrator = Orchestrator(machine)

        step = await orchestrator.advance(
            SessionEvent.BIO_CONFIRMED,
            WoundImagingInput(photos=[{"id": "p1", "uri": "file:///p1.jpg", "scalePresent": True}]),
            make_context(blank_record),
        )

        assert step.snapshot.state == SessionState.WOUND_IMAGING
        assert step.agent_result.data.retake_needed is False
        assert step.snapshot.record.storage_meta.state == SessionState.WOUND_IMAGING
        assert machine.current().record == step.agent_result.updated_record

    @pytest.mark.asyncio
    async def test_illegal_event_raises_before_agent(self, blank_record, make_context):
        """An illegal event raises and no agent runs."""
        orchestrator = Orchestrator(StateMachine(blank_record))
        orchestrator.register_agent(SessionState.DONE, ExplodingAgent)
        ExplodingAgent.runs = 0

        with pytest.raises(InvalidTransitionError):
            await orchestrator.advance(SessionEvent.STORED, None, make_context(blank_record))

        assert ExplodingAgent.runs == 0
        assert orchestrator.machine.current().state == SessionState.BIO_INTAKE

    @pytest.mark.asyncio
    async def test_agent_failure_restores_machine(self, blank_record, make_context):
        """A failing agent leaves the machine at its pre-step state and record."""
        machine = StateMachine(blank_record)
        orchestrator = Orchestrator(machine)
        agent = orchestrator.register_agent(SessionState.WOUND_IMAGING, ExplodingAgent)
        before = machine.current()

        with pytest.raises(RuntimeError, match="agent failure"):
            await orchestrator.advance(SessionEvent.BIO_CONFIRMED, None, make_context(blank_record))

        assert isinstance(agent, ExplodingAgent)
        assert machine.current() == before

    @pytest.mark.asyncio
    async def test_unbound_state_only_transitions(self, blank_record, make_context):
        """A state without an agent yields a snapshot and no agent result."""
        orchestrator = Orchestrator(StateMachine(blank_record, SessionState.FOLLOW_UP))
        step = await orchestrator.advance(SessionEvent.FOLLOW_UP_RESOLVED, None, make_context(blank_record))

        assert step.snapshot.state == SessionState.REVIEW
        assert step.agent_result is None

    @pytest.mark.asyncio
    async def test_agent_run_logged_with_context(self, blank_record, make_context, caplog):
        """The agent-run log record carries case id, state and agent name."""
        orchestrator = Orchestrator(StateMachine(blank_record))

        with caplog.at_level(logging.INFO, logger="wound_intake.domain.orchestrator"):
            await orchestrator.advance(SessionEvent.BIO_CONFIRMED, WoundImagingInput(), make_context(blank_record))

        record = next(r for r in caplog.records if r.name == "wound_intake.domain.orchestrator")
        assert record.case_id == blank_record.case_id
        assert record.state == SessionState.WOUND_IMAGING.value
        assert record.agent == "WoundImagingAgent"
