"""Tests for the placeholder transcriber and the prompt loader."""

import asyncio
import base64

import pytest

from wound_intake.adapters.prompt_loader import FilePromptLoader
from wound_intake.adapters.transcription import (
    NO_TRANSCRIPTION,
    PlaceholderTranscriber,
    decode_text_data_uri,
)
from wound_intake.domain.artifact import ArtifactQa, ArtifactRef
from wound_intake.domain.enums import ArtifactKind, ProcessingMethod
from wound_intake.domain.ports import OperationCancelledError
from wound_intake.infrastructure.settings import DEFAULT_PROMPT_DIR


class TestDecodeTextDataUri:
    """Test suite for data URI decoding."""

    def test_percent_encoded(self):
        assert decode_text_data_uri("data:text/plain,Ada%20Lovelace") == "Ada Lovelace"

    def test_base64(self):
        encoded = base64.b64encode("DOB 1815-12-10".encode("utf-8")).decode("ascii")
        assert decode_text_data_uri(f"data:text/plain;charset=utf-8;base64,{encoded}") == "DOB 1815-12-10"

    @pytest.mark.parametrize("uri", [
        "file:///tmp/scan.png",
        "data:image/png;base64,AAAA",
        "data:text/plain",
        "data:text/plain;base64,@@@",
    ])
    def test_not_decodable(self, uri):
        assert decode_text_data_uri(uri) is None


class TestPlaceholderTranscriber:
    """Test suite for PlaceholderTranscriber."""

    @pytest.mark.asyncio
    async def test_audio_uses_asr(self):
        artifact = ArtifactRef(
            id="a1",
            kind=ArtifactKind.AUDIO,
            uri="data:text/plain,%20Ada%20",
            qa=ArtifactQa(confidence=0.9),
        )
        transcription = await PlaceholderTranscriber().transcribe(artifact)

        assert transcription.text == "Ada"
        assert transcription.confidence == 0.9
        assert transcription.processing_method == ProcessingMethod.ASR

    @pytest.mark.asyncio
    async def test_image_placeholder_from_description(self):
        artifact = ArtifactRef(id="i1", kind=ArtifactKind.IMAGE, uri="file:///id.png", description="ID card")
        transcription = await PlaceholderTranscriber().transcribe(artifact)

        assert transcription.text == "Placeholder transcription for ID card"
        assert transcription.confidence == 0.5
        assert transcription.processing_method == ProcessingMethod.OCR

    @pytest.mark.asyncio
    async def test_nothing_available(self):
        artifact = ArtifactRef(id="d1", kind=ArtifactKind.DOCUMENT, uri="file:///scan.pdf")
        assert (await PlaceholderTranscriber().transcribe(artifact)).text == NO_TRANSCRIPTION

    @pytest.mark.asyncio
    async def test_aborted(self):
        signal = asyncio.Event()
        signal.set()
        artifact = ArtifactRef(id="d1", kind=ArtifactKind.DOCUMENT, uri="file:///scan.pdf")
        with pytest.raises(OperationCancelledError):
            await PlaceholderTranscriber().transcribe(artifact, signal)


class TestFilePromptLoader:
    """Test suite for FilePromptLoader."""

    def test_agent_paths_resolve_by_name(self, tmp_path):
        (tmp_path / "bio.md").write_text("Extract demographics.", encoding="utf-8")
        loader = FilePromptLoader(tmp_path)

        assert loader.resolve("prompts/bio.md") == tmp_path / "bio.md"
        assert loader.load("prompts/bio.md") == "Extract demographics."

    def test_cached_after_first_load(self, tmp_path):
        prompt = tmp_path / "time.md"
        prompt.write_text("v1", encoding="utf-8")
        loader = FilePromptLoader(tmp_path)
        loader.load("prompts/time.md")
        prompt.write_text("v2", encoding="utf-8")

        assert loader.load("prompts/time.md") == "v1"

    def test_missing_prompt_is_empty(self, tmp_path):
        assert FilePromptLoader(tmp_path).load("prompts/absent.md") == ""

    def test_bundled_prompts_present(self):
        loader = FilePromptLoader(DEFAULT_PROMPT_DIR)
        for name in ("global", "bio", "ocr_asr", "imaging", "vitals", "time", "followup", "steward", "security"):
            assert loader.load(f"prompts/{name}.md"), name
