"""OCR/ASR agent: turns an image, document or audio artifact into text.

The transcription engine itself is an injected capability
(``TranscriptionPort``); this agent only enforces which artifact kinds are
accepted and shapes the result.
"""

from dataclasses import dataclass

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.artifact import ArtifactRef
from wound_intake.domain.enums import ArtifactKind, ProcessingMethod
from wound_intake.domain.ports import UnsupportedArtifactError, raise_if_aborted

SUPPORTED_KINDS = frozenset({ArtifactKind.IMAGE, ArtifactKind.DOCUMENT, ArtifactKind.AUDIO})


@dataclass(frozen=True)
class OcrAsrInput:
    artifact: ArtifactRef


@dataclass(frozen=True)
class OcrAsrOutput:
    artifact_id: str
    text: str
    confidence: float
    processing_method: ProcessingMethod


class OcrAsrAgent(Agent[OcrAsrInput, OcrAsrOutput]):
    """Transcribes artifacts; produces no record changes."""

    name = "OcrAsrAgent"
    prompt_path = "prompts/ocr_asr.md"

    async def run(self, input: OcrAsrInput, context: AgentRunContext) -> AgentResult[OcrAsrOutput]:
        """Transcribe ``input.artifact``.

        Raises:
            UnsupportedArtifactError: If the artifact kind is not image,
                document or audio
            OperationCancelledError: If the run was aborted
        """
        artifact = input.artifact
        if artifact.kind not in SUPPORTED_KINDS:
            raise UnsupportedArtifactError(f"Unsupported artifact kind: {artifact.kind.value}", kind=artifact.kind.value)

        raise_if_aborted(context.abort_signal)
        transcription = await self.deps.transcriber.transcribe(artifact, context.abort_signal)
        raise_if_aborted(context.abort_signal)

        confidence = min(max(transcription.confidence, 0.0), 1.0)
        return AgentResult(
            data=OcrAsrOutput(
                artifact_id=artifact.id,
                text=transcription.text,
                confidence=confidence,
                processing_method=transcription.processing_method,
            )
        )
