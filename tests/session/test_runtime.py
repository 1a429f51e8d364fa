"""Tests for identity resolution and session opening."""

import pytest

from wound_intake.adapters.storage.registry import RepositoryRegistry
from wound_intake.domain.enums import SessionState
from wound_intake.domain.ports import MissingIdentityError, UnauthorizedAccessError
from wound_intake.session.identity import resolve_identity
from wound_intake.session.runtime import open_session

from tests.conftest import CASE_ID, CLINICIAN_ID, OTHER_CLINICIAN_ID


class TestResolveIdentity:
    """Test suite for identifier validation."""

    def test_prefixes_stripped(self):
        """Known prefixes are removed case-insensitively."""
        identity = resolve_identity(f"Session-{CASE_ID}", f"cid-{CLINICIAN_ID.upper()}")
        assert identity.case_id == CASE_ID
        assert identity.clinician_id == CLINICIAN_ID

    @pytest.mark.parametrize("case_id,clinician_id,message", [
        (None, CLINICIAN_ID, "Missing case identifier"),
        ("   ", CLINICIAN_ID, "Missing case identifier"),
        ("case-123", CLINICIAN_ID, "Invalid case identifier"),
        (CASE_ID, None, "Missing clinician identifier"),
        (CASE_ID, "doctor-who", "Invalid clinician identifier"),
    ])
    def test_rejected_identifiers(self, case_id, clinician_id, message):
        """Absent or malformed identifiers raise MissingIdentityError."""
        with pytest.raises(MissingIdentityError, match=message) as exc_info:
            resolve_identity(case_id, clinician_id)
        assert exc_info.value.status_code == 400


class TestOpenSession:
    """Test suite for open_session."""

    @pytest.mark.asyncio
    async def test_creates_and_saves_blank_record(self):
        """An unknown case is created at BIO_INTAKE and saved."""
        registry = RepositoryRegistry()
        controller = await open_session(f"case-{CASE_ID}", CLINICIAN_ID, registry)

        assert controller.state == SessionState.BIO_INTAKE
        stored = await registry.resolve(CASE_ID).fetch_by_id(CASE_ID)
        assert stored.clinician_id == CLINICIAN_ID

    @pytest.mark.asyncio
    async def test_reopen_resumes_stored_state(self):
        """A second session resumes from the persisted state."""
        registry = RepositoryRegistry()
        first = await open_session(CASE_ID, CLINICIAN_ID, registry)
        await first.update_bio({
            "patient": {"firstName": "Ada", "age": 36},
            "consent": {"dataStorage": True, "photography": True},
        })
        await first.confirm_bio()

        second = await open_session(CASE_ID, CLINICIAN_ID, registry)
        assert second.state == SessionState.WOUND_IMAGING
        assert second.record.patient.first_name == "Ada"

    @pytest.mark.asyncio
    async def test_start_resumes_in_bio_intake(self, blank_record):
        """A record parked at START resumes in BIO_INTAKE."""
        registry = RepositoryRegistry()
        parked = blank_record.model_copy(update={
            "storage_meta": blank_record.storage_meta.model_copy(update={"state": SessionState.START}),
        })
        await registry.resolve(CASE_ID).save(parked)

        controller = await open_session(CASE_ID, CLINICIAN_ID, registry)
        assert controller.state == SessionState.BIO_INTAKE
        assert controller.record.storage_meta.state == SessionState.BIO_INTAKE

    @pytest.mark.asyncio
    async def test_other_clinician_rejected(self):
        """A clinician cannot open another clinician's case."""
        registry = RepositoryRegistry()
        await open_session(CASE_ID, CLINICIAN_ID, registry)

        with pytest.raises(UnauthorizedAccessError) as exc_info:
            await open_session(CASE_ID, OTHER_CLINICIAN_ID, registry)
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_identity_checked_before_storage(self):
        """A malformed identifier never creates a repository."""
        registry = RepositoryRegistry()
        with pytest.raises(MissingIdentityError):
            await open_session("not-a-uuid", CLINICIAN_ID, registry)
        assert registry._per_case == {}
