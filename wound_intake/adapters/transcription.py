"""Placeholder OCR/ASR transcriber.

No recognition engine is bundled. Artifacts that carry their own text (a
``data:text/plain`` URI) are decoded directly; anything else yields a
placeholder built from the artifact description.
"""

import asyncio
import base64
import binascii
import logging
from typing import Optional
from urllib.parse import unquote

from wound_intake.domain.artifact import ArtifactRef
from wound_intake.domain.enums import ArtifactKind, ProcessingMethod
from wound_intake.domain.ports import Transcription, TranscriptionPort, raise_if_aborted

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
NO_TRANSCRIPTION = "No transcription available yet."


def decode_text_data_uri(uri: str) -> Optional[str]:
    """Return the text carried by a ``data:text/plain`` URI, else None."""
    if not uri.startswith("data:text/plain"):
        return None
    header, separator, data = uri.partition(",")
    if not separator:
        return None
    if header.endswith(";base64"):
        try:
            return base64.b64decode(data, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.warning("Ignoring malformed base64 text artifact")
            return None
    return unquote(data)


class PlaceholderTranscriber(TranscriptionPort):
    """Transcriber used until a real OCR/ASR engine is wired in."""

    async def transcribe(self, artifact: ArtifactRef, signal: Optional[asyncio.Event] = None) -> Transcription:
        raise_if_aborted(signal)
        method = ProcessingMethod.ASR if artifact.kind == ArtifactKind.AUDIO else ProcessingMethod.OCR

        text = decode_text_data_uri(artifact.uri)
        if text is None:
            if artifact.description:
                text = f"Placeholder transcription for {artifact.description}"
            else:
                text = NO_TRANSCRIPTION

        confidence = artifact.qa.confidence if artifact.qa and artifact.qa.confidence is not None else DEFAULT_CONFIDENCE
        logger.debug(f"Transcribed artifact {artifact.id} via {method.value} placeholder")
        return Transcription(text=text.strip(), confidence=confidence, processing_method=method)
