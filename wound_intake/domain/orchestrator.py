"""Orchestrator: binds workflow states to agents and drives ``advance``.

Architecture:
    - The state-to-agent map is built once at construction from factories
    - ``advance`` rejects illegal events before any agent runs, transitions,
      runs the agent bound to the resulting state and re-anchors the state
      machine on the agent's replacement record
    - ``register_agent`` exists for tests and extensions only
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from wound_intake.domain.agents.base import (
    Agent,
    AgentDependencies,
    AgentFactory,
    AgentResult,
    AgentRunContext,
)
from wound_intake.domain.agents.bio_agent import BioAgent
from wound_intake.domain.agents.data_steward_agent import DataStewardAgent
from wound_intake.domain.agents.export_agent import ExportAgent
from wound_intake.domain.agents.followup_agent import FollowupAgent
from wound_intake.domain.agents.security_agent import SecurityAgent
from wound_intake.domain.agents.time_agent import TimeAgent
from wound_intake.domain.agents.vitals_agent import VitalsAgent
from wound_intake.domain.agents.wound_imaging_agent import WoundImagingAgent
from wound_intake.domain.enums import SessionEvent, SessionState
from wound_intake.domain.ports import InvalidTransitionError
from wound_intake.domain.state_machine import StateMachine, StateSnapshot

logger = logging.getLogger(__name__)

DEFAULT_AGENT_FACTORIES: Mapping[SessionState, AgentFactory] = MappingProxyType({
    SessionState.BIO_INTAKE: BioAgent,
    SessionState.WOUND_IMAGING: WoundImagingAgent,
    SessionState.VITALS: VitalsAgent,
    SessionState.TIME: TimeAgent,
    SessionState.FOLLOW_UP: FollowupAgent,
    SessionState.ASSEMBLE_JSON: DataStewardAgent,
    SessionState.LINK_TO_CLINICIAN: SecurityAgent,
    SessionState.STORE_SYNC: ExportAgent,
})


@dataclass(frozen=True)
class OrchestratorStepResult:
    """Outcome of one ``advance`` call.

    Attributes:
        snapshot: Machine snapshot after the step
        agent_result: Output of the bound agent, None when the resulting
            state has no agent
    """
    snapshot: StateSnapshot
    agent_result: Optional[AgentResult] = None


class Orchestrator:
    """Drives one case's state machine and dispatches the bound agents.

    Parameters:
        machine: State machine for the case
        dependencies: Capabilities handed to every agent factory
        agent_factories: State to factory bindings (defaults to
            ``DEFAULT_AGENT_FACTORIES``)
    """

    def __init__(
        self,
        machine: StateMachine,
        dependencies: Optional[AgentDependencies] = None,
        agent_factories: Optional[Mapping[SessionState, AgentFactory]] = None,
    ):
        self.machine = machine
        self.dependencies = dependencies or AgentDependencies()
        factories = DEFAULT_AGENT_FACTORIES if agent_factories is None else agent_factories
        self._agents: dict[SessionState, Agent] = {
            state: factory(self.dependencies) for state, factory in factories.items()
        }

    def agent_for(self, state: SessionState) -> Optional[Agent]:
        return self._agents.get(state)

    def register_agent(self, state: SessionState, factory: AgentFactory) -> Agent:
        """Bind (or rebind) ``state`` to a new agent built from ``factory``."""
        agent = factory(self.dependencies)
        self._agents[state] = agent
        logger.debug(f"Registered {agent.name} for {state.value}")
        return agent

    async def advance(self, event: SessionEvent, input: Any, context: AgentRunContext) -> OrchestratorStepResult:
        """Apply ``event`` and run the agent bound to the resulting state.

        Parameters:
            event: Workflow event
            input: Typed input for the agent bound to the resulting state
            context: Run context; its record is replaced by the
                post-transition record before the agent runs

        Returns:
            OrchestratorStepResult

        Raises:
            InvalidTransitionError: If ``event`` is illegal; no agent runs
            Exception: Anything the agent raises, after the machine has been
                restored to its pre-step state and record
        """
        if not self.machine.can_transition(event):
            raise InvalidTransitionError(self.machine.current().state, event)

        previous = self.machine.current()
        snapshot = self.machine.transition(event)
        agent = self.agent_for(snapshot.state)
        if agent is None:
            return OrchestratorStepResult(snapshot=snapshot)

        logger.info(
            f"Running {agent.name} for case {snapshot.record.case_id} in {snapshot.state.value}",
            extra={"case_id": snapshot.record.case_id, "state": snapshot.state.value, "agent": agent.name},
        )
        try:
            result = await agent.run(input, context.with_record(snapshot.record))
        except BaseException:
            # A failed or cancelled step leaves the case where it was
            self.machine.reset(previous.record, previous.state)
            raise
        if result.updated_record is not None:
            snapshot = self.machine.reset(result.updated_record, snapshot.state)
        return OrchestratorStepResult(snapshot=snapshot, agent_result=result)
