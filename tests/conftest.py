"""Shared fixtures for the wound-intake test suite."""

import logging
from typing import Callable

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from wound_intake.domain.agents.base import AgentRunContext
from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.record_factory import create_blank_case_record
from wound_intake.infrastructure.encryption.field_encryption import EnvKeyCryptoProvider

CASE_ID = "3f2b8c1e-5d4a-4f6b-9c7e-1a2b3c4d5e6f"
CLINICIAN_ID = "9a8b7c6d-5e4f-4a3b-8c2d-1e0f9a8b7c6d"
OTHER_CLINICIAN_ID = "11111111-2222-4333-8444-555555555555"

ADA_PATIENT = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "dateOfBirth": "1815-12-10",
    "sex": "female",
}
FULL_CONSENT = {"dataStorage": True, "photography": True}


@pytest.fixture
def blank_record() -> CaseRecord:
    """Blank draft record with fixed identifiers."""
    return create_blank_case_record(CASE_ID, CLINICIAN_ID)


@pytest.fixture
def crypto() -> EnvKeyCryptoProvider:
    """AES-256-GCM provider with a throwaway key."""
    return EnvKeyCryptoProvider(AESGCM.generate_key(bit_length=256), key_version=1)


@pytest.fixture
def make_context() -> Callable[..., AgentRunContext]:
    """Factory for agent run contexts around a record."""
    def _make(record: CaseRecord, **kwargs) -> AgentRunContext:
        kwargs.setdefault("logger", logging.getLogger("tests.agents"))
        return AgentRunContext(record=record, **kwargs)
    return _make
