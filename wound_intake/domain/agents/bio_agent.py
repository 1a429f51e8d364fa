"""Biography agent: patient demographics and consent.

Merges partial patient and consent patches onto the record's biography,
optionally enriched with fields extracted from transcribed text, and reports
which required items are still missing.

Security Impact:
    - Missing demographics and invalid consent are reported as data, never
      raised, so intake is never blocked
    - Extracted fields pass ``sanitize_extracted_bio`` before merging and
      directly supplied fields always win over extracted ones
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.agents.extraction import (
    EXTRACTION_INSTRUCTIONS,
    build_extraction_prompt,
    extract_json_object,
    sanitize_extracted_bio,
)
from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.enums import InputType
from wound_intake.domain.merge import PATIENT_MERGE_FIELDS, merge_patient, normalize_keys
from wound_intake.domain.patient import PatientBio, PatientProvenance
from wound_intake.domain.ports import GenerationRequest, OperationCancelledError
from wound_intake.domain.utils import utc_now

logger = logging.getLogger(__name__)

MISSING_NAME = "firstName or preferredName"
MISSING_BIRTH = "dateOfBirth or age"
MISSING_CONSENT = "consent"

AWAITING_NOTE = "Awaiting confirmation on missing demographic fields"


@dataclass(frozen=True)
class SourceInfo:
    input_method: InputType = InputType.TEXT
    artifact_id: Optional[str] = None


@dataclass(frozen=True)
class BioAgentInput:
    """Biography submission.

    Attributes:
        patient: Partial patient patch (snake_case or camelCase keys)
        consent: Partial consent patch
        text_to_parse: Transcribed text to extract demographics from
        source_info: Modality and source artifact of the submission
    """
    patient: Mapping[str, Any] = field(default_factory=dict)
    consent: Mapping[str, Any] = field(default_factory=dict)
    text_to_parse: Optional[str] = None
    source_info: SourceInfo = field(default_factory=SourceInfo)


@dataclass(frozen=True)
class BioAgentOutput:
    patient: PatientBio
    consent_validated: bool
    missing_fields: list[str]
    extracted_data: dict[str, Any] = field(default_factory=dict)


def compute_missing_fields(patient: PatientBio) -> list[str]:
    """List the required biography items that are still absent."""
    missing: list[str] = []
    if not patient.first_name and not patient.preferred_name:
        missing.append(MISSING_NAME)
    if not patient.date_of_birth and patient.age is None:
        missing.append(MISSING_BIRTH)
    if not patient.consent_valid:
        missing.append(MISSING_CONSENT)
    return missing


class BioAgent(Agent[BioAgentInput, BioAgentOutput]):
    """Agent bound to ``BIO_INTAKE``."""

    name = "BioAgent"
    prompt_path = "prompts/bio.md"

    async def run(self, input: BioAgentInput, context: AgentRunContext) -> AgentResult[BioAgentOutput]:
        source = input.source_info
        extracted: dict[str, Any] = {}
        if source.input_method != InputType.TEXT and input.text_to_parse:
            extracted = await self.extract(input.text_to_parse, source, context)

        merged = self._merge(context.record.patient, input, extracted)
        if source.input_method != InputType.TEXT:
            merged = merged.model_copy(update={
                "provenance": PatientProvenance(
                    agent=self.name,
                    timestamp=utc_now(),
                    source_artifact_id=source.artifact_id,
                )
            })

        missing = compute_missing_fields(merged)
        consent_valid = merged.consent_valid
        entry = self.provenance(
            "patient",
            notes=self._provenance_note(source, extracted, missing),
            artifact_id=source.artifact_id,
        )

        candidate = context.record.model_copy(update={
            "patient": merged,
            "consent_granted": consent_valid,
        })
        committed = await self.commit(context, candidate, [entry])

        return AgentResult(
            data=BioAgentOutput(
                patient=merged,
                consent_validated=consent_valid,
                missing_fields=missing,
                extracted_data=extracted,
            ),
            updated_record=committed,
            follow_ups=list(missing),
            provenance=[entry],
        )

    def preview(self, input: BioAgentInput, record: CaseRecord) -> BioAgentOutput:
        """Evaluate direct fields against ``record`` without saving anything."""
        merged = self._merge(record.patient, input, {})
        return BioAgentOutput(
            patient=merged,
            consent_validated=merged.consent_valid,
            missing_fields=compute_missing_fields(merged),
        )

    def is_complete(self, context: AgentRunContext) -> bool:
        patient = context.record.patient
        return not compute_missing_fields(patient) and patient.consent_valid

    async def extract(self, text: str, source: SourceInfo, context: AgentRunContext) -> dict[str, Any]:
        """Extract sanitized demographics from ``text``.

        Any generation or parsing failure degrades to an empty result.

        Raises:
            OperationCancelledError: If the run was aborted
        """
        request = GenerationRequest(
            system_prompt=self.load_prompt() or EXTRACTION_INSTRUCTIONS,
            input=build_extraction_prompt(text, source.input_method.value),
            temperature=0.0,
            max_output_tokens=512,
            signal=context.abort_signal,
        )
        try:
            result = await context.text_generator.generate(request)
        except OperationCancelledError:
            raise
        except Exception as e:
            context.logger.warning(f"Biography extraction failed ({type(e).__name__}); continuing without extracted fields")
            return {}

        parsed = extract_json_object(result.text)
        if parsed is None:
            context.logger.warning("Biography extraction returned no JSON object; continuing without extracted fields")
            return {}

        accepted = sanitize_extracted_bio(parsed)
        context.logger.info(f"Biography extraction accepted {len(accepted)} of {len(parsed)} fields")
        return accepted

    @staticmethod
    def _merge(base: PatientBio, input: BioAgentInput, extracted: dict[str, Any]) -> PatientBio:
        direct = normalize_keys(PatientBio, input.patient, PATIENT_MERGE_FIELDS)
        return merge_patient(base, {**extracted, **direct}, input.consent)

    @staticmethod
    def _provenance_note(source: SourceInfo, extracted: dict[str, Any], missing: list[str]) -> Optional[str]:
        parts: list[str] = []
        if source.input_method != InputType.TEXT:
            origin = f"Processed {source.input_method.value} input"
            if source.artifact_id:
                origin += f" from artifact {source.artifact_id}"
            parts.append(f"{origin}; extracted {len(extracted)} fields")
        if missing:
            parts.append(AWAITING_NOTE)
        return "; ".join(parts) or None
