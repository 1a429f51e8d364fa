"""TIME agent: Tissue, Infection/Inflammation, Moisture, Edge assessment."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.agents.vitals_agent import format_validation_errors
from wound_intake.domain.assessment import TISSUE_TOTAL_LIMIT, TimeBlock
from wound_intake.domain.merge import merge_time
from wound_intake.domain.schema_base import DRAFT_CONTEXT

TISSUE_FLAG = "Tissue percentages exceed 100%"
EXUDATE_FLAG = "Exudate level missing"


@dataclass(frozen=True)
class TimeAgentInput:
    time: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TimeAgentOutput:
    time: Optional[TimeBlock]
    flags: list[str]


def validate_time_block(time: Optional[TimeBlock]) -> list[str]:
    """Return clarification flags for a (draft) TIME block."""
    flags: list[str] = []
    if time is not None and time.tissue is not None and time.tissue.total > TISSUE_TOTAL_LIMIT:
        flags.append(TISSUE_FLAG)
    if time is None or time.moisture is None or time.moisture.exudate is None:
        flags.append(EXUDATE_FLAG)
    return flags


class TimeAgent(Agent[TimeAgentInput, TimeAgentOutput]):
    """Agent bound to ``TIME``.

    The merged block is kept in draft form so that an over-100% tissue
    breakdown is stored and flagged here, and rejected later by the data
    steward's strict validation.
    """

    name = "TimeAgent"
    prompt_path = "prompts/time.md"

    async def run(self, input: TimeAgentInput, context: AgentRunContext) -> AgentResult[TimeAgentOutput]:
        current = context.record.time
        try:
            time = TimeBlock.model_validate(merge_time(current, input.time), context=DRAFT_CONTEXT)
            flags = validate_time_block(time)
        except PydanticValidationError as e:
            time = current
            flags = format_validation_errors(e) + validate_time_block(current)

        entry = self.provenance("time", notes="Awaiting clarification on TIME inputs" if flags else None)
        candidate = context.record.model_copy(update={"time": time})
        committed = await self.commit(context, candidate, [entry])

        return AgentResult(
            data=TimeAgentOutput(time=time, flags=flags),
            updated_record=committed,
            follow_ups=list(flags),
            provenance=[entry],
        )
