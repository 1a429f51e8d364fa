"""Wound imaging agent: photo QA triage."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.artifact import WoundPhoto
from wound_intake.domain.case_record import WoundOverrides
from wound_intake.domain.enums import QaCheck
from wound_intake.domain.schema_base import DRAFT_CONTEXT

RETAKE_FOLLOW_UP = "Confirm if retake is possible"
QA_ITEMS = ("framing", "focus", "lighting")


@dataclass(frozen=True)
class WoundImagingInput:
    photos: Sequence[Union[WoundPhoto, Mapping[str, Any]]] = field(default_factory=list)


@dataclass(frozen=True)
class WoundImagingOutput:
    approved_photos: list[WoundPhoto]
    retake_needed: bool
    issues: list[str]


class WoundImagingAgent(Agent[WoundImagingInput, WoundImagingOutput]):
    """Agent bound to ``WOUND_IMAGING``.

    A photo is approved unless framing, focus or lighting failed QA. A
    missing scale reference is reported but does not reject the photo. A
    retake is needed when any QA item failed or no photo was approved.
    """

    name = "WoundImagingAgent"
    prompt_path = "prompts/imaging.md"

    async def run(self, input: WoundImagingInput, context: AgentRunContext) -> AgentResult[WoundImagingOutput]:
        photos = [
            photo if isinstance(photo, WoundPhoto) else WoundPhoto.model_validate(photo, context=DRAFT_CONTEXT)
            for photo in input.photos
        ]

        issues: list[str] = []
        approved: list[WoundPhoto] = []
        flagged = False
        for photo in photos:
            failed = [item for item in QA_ITEMS if getattr(photo.qa_checklist, item) == QaCheck.FAIL]
            issues.extend(f"Photo {photo.id} {item} flagged" for item in failed)
            if not photo.scale_present:
                issues.append(f"Photo {photo.id} missing scale reference")
            if failed:
                flagged = True
            else:
                approved.append(photo)

        retake_needed = flagged or not approved

        wounds = context.record.wounds
        overrides = (wounds.overrides or WoundOverrides()).model_copy(update={"requires_retake": retake_needed})
        candidate = context.record.model_copy(update={
            "wounds": wounds.model_copy(update={"photos": photos, "overrides": overrides}),
        })
        entry = self.provenance(
            "wounds.photos",
            notes="Awaiting clearer imaging" if retake_needed else f"Imaging QA passed for {len(approved)} photo(s)",
        )
        committed = await self.commit(context, candidate, [entry])

        return AgentResult(
            data=WoundImagingOutput(approved_photos=approved, retake_needed=retake_needed, issues=issues),
            updated_record=committed,
            follow_ups=[RETAKE_FOLLOW_UP] if retake_needed else list(issues),
            provenance=[entry],
        )
