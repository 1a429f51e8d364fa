"""Input router: multi-modal biography intake.

Routes a biography submission by modality:

    - ``text``: direct patient and consent patches go straight to the
      biography agent
    - ``audio`` / ``ocr`` with an artifact: the artifact is transcribed first
      and the transcription is handed to the biography agent for extraction

Any failure in that pipeline is logged, recorded in the processing flow as
``"Error: ..."`` and answered with a degraded result: the biography agent is
re-run in text mode with only the directly supplied fields and a follow-up
asks a human to verify. Only cancellation escapes ``run``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from wound_intake.domain.agents.base import (
    Agent,
    AgentDependencies,
    AgentResult,
    AgentRunContext,
)
from wound_intake.domain.agents.bio_agent import (
    BioAgent,
    BioAgentInput,
    BioAgentOutput,
    SourceInfo,
)
from wound_intake.domain.agents.ocr_asr_agent import OcrAsrAgent, OcrAsrInput, OcrAsrOutput
from wound_intake.domain.artifact import ArtifactRef
from wound_intake.domain.case_record import CaseRecord, ProvenanceEntry
from wound_intake.domain.enums import ArtifactKind, InputType
from wound_intake.domain.ports import OperationCancelledError

logger = logging.getLogger(__name__)

VERIFY_FOLLOW_UP = "Processing error occurred - please verify extracted data"


@dataclass(frozen=True)
class DirectInput:
    patient: Mapping[str, Any] = field(default_factory=dict)
    consent: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InputRouterInput:
    input_type: InputType
    direct_input: DirectInput = field(default_factory=DirectInput)
    artifact: Optional[ArtifactRef] = None


@dataclass(frozen=True)
class InputRouterOutput:
    bio_result: BioAgentOutput
    processing_flow: list[str]
    ocr_asr_result: Optional[OcrAsrOutput] = None


class InputRouter(Agent[InputRouterInput, InputRouterOutput]):
    """Composite agent combining ``OcrAsrAgent`` and ``BioAgent``."""

    name = "InputRouter"
    prompt_path = "prompts/global.md"

    def __init__(self, deps: Optional[AgentDependencies] = None):
        super().__init__(deps)
        self.bio_agent = BioAgent(self.deps)
        self.ocr_asr_agent = OcrAsrAgent(self.deps)

    async def run(self, input: InputRouterInput, context: AgentRunContext) -> AgentResult[InputRouterOutput]:
        flow: list[str] = [f"Started {input.input_type.value} input processing"]
        ocr_result: Optional[OcrAsrOutput] = None

        try:
            extracted_text: Optional[str] = None
            if input.artifact is not None and input.input_type in (InputType.OCR, InputType.AUDIO):
                flow.append(f"Processing {ArtifactKind(input.artifact.kind).value} artifact")
                ocr_agent_result = await self.ocr_asr_agent.run(OcrAsrInput(artifact=input.artifact), context)
                ocr_result = ocr_agent_result.data
                extracted_text = ocr_result.text
                flow.append(
                    f"Extracted text using {ocr_result.processing_method.value} "
                    f"(confidence: {ocr_result.confidence:.2f})"
                )

            flow.append("Processing with BioAgent")
            ocr_entries = []
            if ocr_result is not None:
                ocr_entries.append(self._transcription_provenance(ocr_result))
                context = context.with_record(
                    self._with_artifact(context.record, input.artifact).append_provenance(ocr_entries)
                )

            bio_result = await self.bio_agent.run(
                BioAgentInput(
                    patient=input.direct_input.patient,
                    consent=input.direct_input.consent,
                    text_to_parse=extracted_text,
                    source_info=SourceInfo(
                        input_method=input.input_type,
                        artifact_id=input.artifact.id if input.artifact else None,
                    ),
                ),
                context,
            )
            flow.append(f"BioAgent completed - extracted {len(bio_result.data.extracted_data)} fields")

            return AgentResult(
                data=InputRouterOutput(bio_result=bio_result.data, processing_flow=flow, ocr_asr_result=ocr_result),
                updated_record=bio_result.updated_record,
                follow_ups=bio_result.follow_ups,
                provenance=[*ocr_entries, *bio_result.provenance],
            )
        except OperationCancelledError:
            raise
        except Exception as e:
            return await self._fallback(input, context, flow, ocr_result, e)

    def is_complete(self, context: AgentRunContext) -> bool:
        return self.bio_agent.is_complete(context)

    async def _fallback(
        self,
        input: InputRouterInput,
        context: AgentRunContext,
        flow: list[str],
        ocr_result: Optional[OcrAsrOutput],
        error: Exception,
    ) -> AgentResult[InputRouterOutput]:
        message = str(error) or type(error).__name__
        flow.append(f"Error: {message}")
        context.logger.error(
            f"InputRouter processing failed for {input.input_type.value} input "
            f"(artifact: {input.artifact.id if input.artifact else 'none'}): {message}"
        )

        fallback_input = BioAgentInput(
            patient=input.direct_input.patient,
            consent=input.direct_input.consent,
            source_info=SourceInfo(input_method=InputType.TEXT),
        )
        error_entry = self.provenance("processing_error", notes=f"InputRouter fallback due to error: {message}")

        try:
            fallback = await self.bio_agent.run(
                fallback_input,
                context.with_record(context.record.append_provenance([error_entry])),
            )
        except OperationCancelledError:
            raise
        except Exception as fallback_error:
            context.logger.error(f"InputRouter text fallback failed: {fallback_error}")
            flow.append(f"Error: {fallback_error}")
            preview = self.bio_agent.preview(fallback_input, context.record)
            return AgentResult(
                data=InputRouterOutput(bio_result=preview, processing_flow=flow, ocr_asr_result=ocr_result),
                follow_ups=[*preview.missing_fields, VERIFY_FOLLOW_UP],
                provenance=[error_entry],
            )

        return AgentResult(
            data=InputRouterOutput(bio_result=fallback.data, processing_flow=flow, ocr_asr_result=ocr_result),
            updated_record=fallback.updated_record,
            follow_ups=[*fallback.follow_ups, VERIFY_FOLLOW_UP],
            provenance=[*fallback.provenance, error_entry],
        )

    @staticmethod
    def _with_artifact(record: CaseRecord, artifact: ArtifactRef) -> CaseRecord:
        if any(existing.id == artifact.id for existing in record.artifacts):
            return record
        return record.model_copy(update={"artifacts": [*record.artifacts, artifact]})

    def _transcription_provenance(self, result: OcrAsrOutput) -> ProvenanceEntry:
        return self.ocr_asr_agent.provenance(
            f"artifact:{result.artifact_id}:transcription",
            notes=(
                f"{result.processing_method.value.upper()} processing completed "
                f"with confidence {result.confidence:.2f}"
            ),
            artifact_id=result.artifact_id,
        )

    @staticmethod
    def create_text_input(
        patient: Optional[Mapping[str, Any]] = None,
        consent: Optional[Mapping[str, Any]] = None,
    ) -> InputRouterInput:
        return InputRouterInput(
            input_type=InputType.TEXT,
            direct_input=DirectInput(patient=patient or {}, consent=consent or {}),
        )

    @staticmethod
    def create_audio_input(artifact: ArtifactRef) -> InputRouterInput:
        if artifact.kind != ArtifactKind.AUDIO:
            raise ValueError("Audio input requires an audio artifact")
        return InputRouterInput(input_type=InputType.AUDIO, artifact=artifact)

    @staticmethod
    def create_ocr_input(artifact: ArtifactRef) -> InputRouterInput:
        if artifact.kind not in (ArtifactKind.IMAGE, ArtifactKind.DOCUMENT):
            raise ValueError("OCR input requires an image or document artifact")
        return InputRouterInput(input_type=InputType.OCR, artifact=artifact)
