"""Security agent: links the clinician and PIN hash to the case."""

import uuid
from dataclasses import dataclass

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.case_record import PENDING_PIN_HASH


@dataclass(frozen=True)
class SecurityAgentInput:
    clinician_id: str
    pin_hash: str


@dataclass(frozen=True)
class SecurityAgentOutput:
    clinician_id: str
    linked: bool


class SecurityAgent(Agent[SecurityAgentInput, SecurityAgentOutput]):
    """Agent bound to ``LINK_TO_CLINICIAN``.

    The PIN arrives already hashed; this agent never sees a plaintext PIN.
    """

    name = "SecurityAgent"
    prompt_path = "prompts/security.md"

    async def run(self, input: SecurityAgentInput, context: AgentRunContext) -> AgentResult[SecurityAgentOutput]:
        """Link clinician and PIN hash.

        Raises:
            ValueError: If the clinician id is not a UUID or the hash is empty
        """
        clinician_id = str(uuid.UUID(input.clinician_id))
        if not input.pin_hash or input.pin_hash == PENDING_PIN_HASH:
            raise ValueError("A hashed clinician PIN is required")

        candidate = context.record.model_copy(update={
            "clinician_id": clinician_id,
            "clinician_pin_hash": input.pin_hash,
        })
        entry = self.provenance("clinician_pin_hash", notes="Clinician PIN linked; no clinical advice provided.")
        committed = await self.commit(context, candidate, [entry])

        return AgentResult(
            data=SecurityAgentOutput(clinician_id=clinician_id, linked=True),
            updated_record=committed,
            provenance=[entry],
        )
