"""Vitals agent: merges vital-sign blocks and asks for missing units."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.assessment import Vitals
from wound_intake.domain.merge import merge_vitals


@dataclass(frozen=True)
class VitalsAgentInput:
    vitals: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VitalsAgentOutput:
    vitals: Optional[Vitals]
    missing_units: list[str]
    issues: list[str] = field(default_factory=list)


def detect_missing_units(vitals: Optional[Vitals]) -> list[str]:
    if vitals is None:
        return []
    missing: list[str] = []
    if vitals.temperature is not None and vitals.temperature.unit is None:
        missing.append("temperature")
    if vitals.blood_pressure is not None and vitals.blood_pressure.unit is None:
        missing.append("blood pressure")
    return missing


def format_validation_errors(error: PydanticValidationError) -> list[str]:
    """Render pydantic errors as ``"dotted.loc: message"`` strings."""
    messages = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    return messages


class VitalsAgent(Agent[VitalsAgentInput, VitalsAgentOutput]):
    """Agent bound to ``VITALS``.

    Each top-level block in the patch replaces the stored block. A patch
    that does not validate leaves the stored vitals unchanged and is
    reported through ``issues``.
    """

    name = "VitalsAgent"
    prompt_path = "prompts/vitals.md"

    async def run(self, input: VitalsAgentInput, context: AgentRunContext) -> AgentResult[VitalsAgentOutput]:
        current = context.record.vitals
        issues: list[str] = []
        try:
            vitals = Vitals.model_validate(merge_vitals(current, input.vitals))
        except PydanticValidationError as e:
            issues = format_validation_errors(e)
            vitals = current

        missing_units = detect_missing_units(vitals)
        follow_ups = [f"Provide unit for {unit}" for unit in missing_units] + issues

        notes = None
        if issues:
            notes = "Vitals rejected pending correction"
        elif missing_units:
            notes = "Unit clarification pending"
        entry = self.provenance("vitals", notes=notes)

        candidate = context.record.model_copy(update={"vitals": vitals})
        committed = await self.commit(context, candidate, [entry])

        return AgentResult(
            data=VitalsAgentOutput(vitals=vitals, missing_units=missing_units, issues=issues),
            updated_record=committed,
            follow_ups=follow_ups,
            provenance=[entry],
        )
