"""Follow-up agent: normalizes open clinician questions."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.case_record import FollowUpItem, normalize_question
from wound_intake.domain.enums import FollowUpStatus
from wound_intake.domain.utils import utc_now


@dataclass(frozen=True)
class FollowupAgentInput:
    """Open items to review; None means the record's current follow-ups."""
    open_items: Optional[Sequence[Union[FollowUpItem, Mapping[str, Any]]]] = None


@dataclass(frozen=True)
class FollowupAgentOutput:
    questions: list[FollowUpItem]


class FollowupAgent(Agent[FollowupAgentInput, FollowupAgentOutput]):
    """Agent bound to ``FOLLOW_UP``.

    Every question is normalized to end in ``?``. Pending items get a fresh
    timestamp and are returned as the questions to ask; resolved and
    dismissed items stay on the record in their original order.
    """

    name = "FollowupAgent"
    prompt_path = "prompts/followup.md"

    async def run(self, input: FollowupAgentInput, context: AgentRunContext) -> AgentResult[FollowupAgentOutput]:
        source = context.record.follow_ups if input.open_items is None else input.open_items
        now = utc_now()

        items: list[FollowUpItem] = []
        for raw in source:
            item = raw if isinstance(raw, FollowUpItem) else FollowUpItem.model_validate({"timestamp": now, **raw})
            update: dict[str, Any] = {"question": normalize_question(item.question)}
            if item.status == FollowUpStatus.PENDING:
                update["timestamp"] = now
            items.append(item.model_copy(update=update))

        questions = [item for item in items if item.status == FollowUpStatus.PENDING]
        entry = self.provenance("follow_ups", notes=f"{len(questions)} neutral follow-up question(s) pending")
        candidate = context.record.model_copy(update={"follow_ups": items})
        committed = await self.commit(context, candidate, [entry])

        return AgentResult(
            data=FollowupAgentOutput(questions=questions),
            updated_record=committed,
            follow_ups=[item.question for item in questions],
            provenance=[entry],
        )
