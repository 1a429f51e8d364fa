"""Tests for the biography agent and structured extraction."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from wound_intake.domain.agents.bio_agent import (
    AWAITING_NOTE,
    MISSING_BIRTH,
    MISSING_CONSENT,
    MISSING_NAME,
    BioAgent,
    BioAgentInput,
    SourceInfo,
)
from wound_intake.domain.agents.extraction import extract_json_object, sanitize_extracted_bio
from wound_intake.domain.enums import InputType, Sex
from wound_intake.domain.ports import GenerationResult, OperationCancelledError, TextGenerationError

from tests.conftest import ADA_PATIENT, FULL_CONSENT


class TestBioAgent:
    """Test suite for BioAgent."""

    @pytest.mark.asyncio
    async def test_blank_record_reports_everything_missing(self, blank_record, make_context):
        """An empty patch on a blank record lists every required item."""
        result = await BioAgent().run(BioAgentInput(), make_context(blank_record))

        assert result.data.missing_fields == [MISSING_NAME, MISSING_BIRTH, MISSING_CONSENT]
        assert result.data.consent_validated is False
        assert result.follow_ups == result.data.missing_fields
        assert result.provenance[0].notes == AWAITING_NOTE

    @pytest.mark.asyncio
    async def test_ada_round_trip(self, blank_record, make_context):
        """Complete demographics and consent leave nothing missing and autosave once."""
        autosave = AsyncMock()
        result = await BioAgent().run(
            BioAgentInput(patient=ADA_PATIENT, consent=FULL_CONSENT),
            make_context(blank_record, autosave=autosave),
        )

        record = result.updated_record
        assert result.data.missing_fields == []
        assert result.data.consent_validated is True
        assert record.patient.first_name == "Ada"
        assert record.patient.last_name == "Lovelace"
        assert record.patient.sex == Sex.FEMALE
        assert record.consent_granted is True
        assert record.updated_at > blank_record.updated_at
        assert record.provenance_log[-1].agent == "BioAgent"
        assert record.provenance_log[-1].field == "patient"
        autosave.assert_awaited_once_with(record)

    @pytest.mark.asyncio
    async def test_empty_patch_is_idempotent(self, blank_record, make_context):
        """Re-running with an empty patch keeps the biography unchanged."""
        agent = BioAgent()
        first = await agent.run(BioAgentInput(patient=ADA_PATIENT, consent=FULL_CONSENT), make_context(blank_record))
        second = await agent.run(BioAgentInput(), make_context(first.updated_record))

        assert second.updated_record.patient == first.updated_record.patient
        assert second.data.missing_fields == first.data.missing_fields

    @pytest.mark.asyncio
    async def test_clearing_a_required_field(self, blank_record, make_context):
        """Clearing the first name brings the name requirement back."""
        agent = BioAgent()
        first = await agent.run(BioAgentInput(patient=ADA_PATIENT, consent=FULL_CONSENT), make_context(blank_record))
        cleared = await agent.run(BioAgentInput(patient={"firstName": ""}), make_context(first.updated_record))

        assert cleared.updated_record.patient.first_name is None
        assert cleared.updated_record.patient.last_name == "Lovelace"
        assert cleared.data.missing_fields == [MISSING_NAME]

    @pytest.mark.asyncio
    async def test_preferred_name_and_age_satisfy_requirements(self, blank_record, make_context):
        """Preferred name and age are accepted alternatives."""
        result = await BioAgent().run(
            BioAgentInput(patient={"preferredName": "Addie", "age": 36}, consent=FULL_CONSENT),
            make_context(blank_record),
        )
        assert result.data.missing_fields == []

    @pytest.mark.asyncio
    async def test_extraction_merged_and_direct_fields_win(self, blank_record, make_context):
        """Extracted fields are sanitized, merged and overridden by direct input."""
        generator = AsyncMock()
        generator.generate.return_value = GenerationResult(
            text=(
                "Here you go:\n```json\n"
                '{"firstName": " Grace ", "age": "85", "sex": "FEMALE", '
                '"dateOfBirth": "1906-13-09", "consent": true}\n```'
            )
        )
        result = await BioAgent().run(
            BioAgentInput(
                patient={"firstName": "Gracie"},
                text_to_parse="Patient Grace, 85 years old, female.",
                source_info=SourceInfo(input_method=InputType.AUDIO, artifact_id="audio-1"),
            ),
            make_context(blank_record, text_generator=generator),
        )

        patient = result.updated_record.patient
        assert result.data.extracted_data == {"first_name": "Grace", "age": 85, "sex": Sex.FEMALE}
        assert patient.first_name == "Gracie"
        assert patient.age == 85
        assert patient.date_of_birth is None
        assert patient.consent.data_storage is False
        assert patient.provenance.source_artifact_id == "audio-1"
        assert result.provenance[0].notes.startswith("Processed audio input from artifact audio-1; extracted 3 fields")
        generator.generate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_extraction_failure_degrades(self, blank_record, make_context):
        """A failing generator yields no extracted fields and no exception."""
        generator = AsyncMock()
        generator.generate.side_effect = TextGenerationError("boom", status_code=500)
        result = await BioAgent().run(
            BioAgentInput(text_to_parse="anything", source_info=SourceInfo(input_method=InputType.OCR)),
            make_context(blank_record, text_generator=generator),
        )
        assert result.data.extracted_data == {}
        assert result.updated_record is not None

    @pytest.mark.asyncio
    async def test_text_input_skips_extraction(self, blank_record, make_context):
        """Text submissions never call the generator."""
        generator = AsyncMock()
        await BioAgent().run(
            BioAgentInput(text_to_parse="Ada Lovelace"),
            make_context(blank_record, text_generator=generator),
        )
        generator.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, blank_record, make_context):
        """Cancellation during extraction is never swallowed."""
        generator = AsyncMock()
        generator.generate.side_effect = OperationCancelledError()
        with pytest.raises(OperationCancelledError):
            await BioAgent().run(
                BioAgentInput(text_to_parse="x", source_info=SourceInfo(input_method=InputType.AUDIO)),
                make_context(blank_record, text_generator=generator),
            )

    @pytest.mark.asyncio
    async def test_aborted_run_saves_nothing(self, blank_record, make_context):
        """With the abort signal set, no candidate record is autosaved."""
        signal = asyncio.Event()
        signal.set()
        autosave = AsyncMock()
        with pytest.raises(OperationCancelledError):
            await BioAgent().run(
                BioAgentInput(patient=ADA_PATIENT),
                make_context(blank_record, autosave=autosave, abort_signal=signal),
            )
        autosave.assert_not_awaited()


class TestExtraction:
    """Test suite for JSON extraction and sanitization."""

    def test_extract_plain_object(self):
        """A bare object embedded in prose is found."""
        assert extract_json_object('Result: {"firstName": "Ada", "note": "a } b"} done') == {
            "firstName": "Ada",
            "note": "a } b",
        }

    def test_extract_nothing(self):
        """Text without a JSON object yields None."""
        assert extract_json_object("no json here") is None
        assert extract_json_object("") is None
        assert extract_json_object('{"broken": ') is None

    def test_sanitize_rejects_invalid_values(self):
        """Out-of-range ages, fractional ages and unknown sexes are dropped."""
        assert sanitize_extracted_bio({"age": 121, "sex": "robot", "lastName": "  "}) == {}
        assert sanitize_extracted_bio({"age": 36.5}) == {}
        assert sanitize_extracted_bio({"age": 36.0, "mrn": " M-1 "}) == {"age": 36, "mrn": "M-1"}

    def test_sanitize_accepts_snake_case(self):
        """snake_case keys are accepted as well."""
        assert sanitize_extracted_bio({"date_of_birth": "2000-02-29"}) == {"date_of_birth": "2000-02-29"}
        assert sanitize_extracted_bio({"date_of_birth": "2001-02-29"}) == {}
        assert sanitize_extracted_bio(None) == {}
