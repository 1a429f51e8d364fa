"""Null capability implementations injected when nothing real is configured.

Each null object satisfies its port with a well-defined, inert behavior so
that agents never branch on whether a capability exists.
"""

import asyncio
from typing import Optional

from wound_intake.domain.artifact import ArtifactRef
from wound_intake.domain.case_record import EncryptedField
from wound_intake.domain.enums import ArtifactKind
from wound_intake.domain.ports import (
    CryptoPort,
    EncryptionError,
    GenerationRequest,
    GenerationResult,
    PromptLoaderPort,
    TextGenerationError,
    TextGenerationPort,
    Transcription,
    TranscriptionPort,
    UnsupportedArtifactError,
)


class NullTextGenerator(TextGenerationPort):
    """Text generator that is never configured; every call fails."""

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        raise TextGenerationError("No text-generation capability configured")


class NullTranscriber(TranscriptionPort):
    """Transcriber that rejects every artifact."""

    async def transcribe(self, artifact: ArtifactRef, signal: Optional[asyncio.Event] = None) -> Transcription:
        raise UnsupportedArtifactError("No transcription capability configured", kind=ArtifactKind(artifact.kind).value)


class NullCryptoProvider(CryptoPort):
    """Crypto provider used when no field-encryption key is configured.

    ``is_available`` is False so the data steward leaves fields in place
    (and export stays blocked) instead of pretending they were encrypted.
    """

    @property
    def is_available(self) -> bool:
        return False

    def encrypt(self, plaintext: str) -> EncryptedField:
        raise EncryptionError("No encryption key configured")

    def decrypt(self, payload: EncryptedField) -> str:
        raise EncryptionError("No encryption key configured")


class NullPromptLoader(PromptLoaderPort):
    def load(self, path: str) -> str:
        return ""


async def noop_autosave(record) -> None:
    return None
