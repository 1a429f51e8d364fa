"""Export agent: locks the record and produces the export payload.

Security Impact:
    - Export is blocked unless patient first and last name are encrypted
    - The exported payload never contains plaintext for encrypted paths
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.enums import CaseStatus

REQUIRED_ENCRYPTED_FIELDS: tuple[str, ...] = ("patient.first_name", "patient.last_name")
DEFAULT_DESTINATION = "secure_store"


@dataclass(frozen=True)
class ExportAgentInput:
    destination: Optional[str] = None


@dataclass(frozen=True)
class ExportAgentOutput:
    success: bool
    destination: Optional[str] = None
    missing_encryption: list[str] = field(default_factory=list)
    payload: Optional[dict[str, Any]] = None


class ExportAgent(Agent[ExportAgentInput, ExportAgentOutput]):
    """Agent bound to ``STORE_SYNC``."""

    name = "ExportAgent"
    prompt_path = "prompts/global.md"

    async def run(self, input: ExportAgentInput, context: AgentRunContext) -> AgentResult[ExportAgentOutput]:
        record = context.record
        self.deps.logger.info(f"Export requested for case {record.case_id} (destination: {input.destination or DEFAULT_DESTINATION})")

        missing = [path for path in REQUIRED_ENCRYPTED_FIELDS if path not in record.encrypted_fields]
        if missing:
            return AgentResult(
                data=ExportAgentOutput(success=False, destination=input.destination, missing_encryption=missing),
                follow_ups=[f"Encrypt field before export: {path}" for path in missing],
                provenance=[self.provenance("export", notes="Export blocked pending encryption")],
            )

        destination = input.destination or DEFAULT_DESTINATION
        entry = self.provenance("export", notes=f"Record exported to {destination}")
        committed = await self.commit(context, record.model_copy(update={"status": CaseStatus.LOCKED}), [entry])

        return AgentResult(
            data=ExportAgentOutput(success=True, destination=destination, payload=committed.to_payload()),
            updated_record=committed,
            provenance=[entry],
        )
