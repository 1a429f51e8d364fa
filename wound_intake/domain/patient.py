"""Patient biography models.

Security Impact:
    - Name and contact fields are sensitive; the data steward moves them into
      ``CaseRecord.encrypted_fields`` before a record is ready for review
    - Consent is valid only when both data storage and photography are granted
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import Field, ValidationInfo, field_validator

from wound_intake.domain.enums import Sex
from wound_intake.domain.schema_base import IntakeModel, is_draft

DATE_OF_BIRTH_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MIN_AGE = 0
MAX_AGE = 120


class ConsentPreferences(IntakeModel):
    """Consent captured at intake.

    Parameters:
        data_storage: Patient agrees to storage of the case record
        photography: Patient agrees to wound photography
        sharing_to_team_board: Optional sharing with the care team board
        notes: Free-text consent notes
        captured_at: When consent was captured
        captured_by: Who captured consent
    """

    data_storage: bool = False
    photography: bool = False
    sharing_to_team_board: bool = False
    notes: Optional[str] = None
    captured_at: Optional[datetime] = None
    captured_by: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.data_storage and self.photography


class PatientContact(IntakeModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None


class PatientProvenance(IntakeModel):
    """Where the biography data came from."""

    agent: str
    timestamp: datetime
    source_artifact_id: Optional[str] = None


class PatientBio(IntakeModel):
    """Patient biography block of a case record.

    Parameters:
        patient_id: Optional external patient identifier
        first_name: Given name (sensitive)
        last_name: Family name (sensitive)
        preferred_name: Name the patient prefers to be called
        date_of_birth: Date of birth as ``YYYY-MM-DD``
        age: Age in years (0-120)
        sex: Patient sex
        mrn: Medical record number
        consent: Consent preferences
        contact: Contact details (sensitive)
        notes: Ordered free-text notes
        provenance: Source of the biography data
    """

    patient_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    preferred_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    age: Optional[int] = None
    sex: Optional[Sex] = None
    mrn: Optional[str] = None
    consent: ConsentPreferences = Field(default_factory=ConsentPreferences)
    contact: Optional[PatientContact] = None
    notes: list[str] = Field(default_factory=list)
    provenance: Optional[PatientProvenance] = None

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Require ``YYYY-MM-DD`` outside draft mode."""
        if v is None or is_draft(info):
            return v
        if not DATE_OF_BIRTH_PATTERN.match(v):
            raise ValueError("dateOfBirth must be YYYY-MM-DD")
        return v

    @field_validator("age")
    @classmethod
    def validate_age(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
        """Enforce the 0-120 age range outside draft mode."""
        if v is None or is_draft(info):
            return v
        if v < MIN_AGE or v > MAX_AGE:
            raise ValueError(f"age must be between {MIN_AGE} and {MAX_AGE}")
        return v

    @property
    def consent_valid(self) -> bool:
        return self.consent.is_valid
