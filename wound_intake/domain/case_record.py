"""Case Record: the single aggregate for one clinical wound-intake case.

Security Impact:
    - Sensitive patient fields are listed in ``SENSITIVE_FIELD_PATHS``; only
      those paths may appear as keys of ``encrypted_fields``
    - Records are frozen; agents return full replacements, never patches

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Repositories persist ``to_payload()`` and reload with ``from_payload()``
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, ValidationInfo, field_validator

from wound_intake.domain.artifact import ArtifactRef, WoundPhoto
from wound_intake.domain.assessment import TimeBlock, Vitals
from wound_intake.domain.enums import CaseStatus, FollowUpStatus, SessionState
from wound_intake.domain.patient import PatientBio
from wound_intake.domain.schema_base import DRAFT_CONTEXT, IntakeModel

SCHEMA_NAME = "codex.wound.v1"
SCHEMA_VERSION = 1
PENDING_PIN_HASH = "pending"

SENSITIVE_FIELD_PATHS: tuple[str, ...] = (
    "patient.first_name",
    "patient.last_name",
    "patient.contact.phone",
    "patient.contact.email",
    "patient.contact.address_line1",
)


class EncryptedField(IntakeModel):
    """AES-GCM payload for one sensitive field (base64 members)."""

    ciphertext: str
    iv: str
    auth_tag: str
    key_version: int = Field(..., ge=1)


class ProvenanceEntry(IntakeModel):
    """Audit line recording which agent touched which field and when."""

    agent: str
    field: str
    timestamp: datetime
    artifact_id: Optional[str] = None
    notes: Optional[str] = None


def normalize_question(question: str) -> str:
    """Trim a follow-up question and make sure it ends with ``?``."""
    text = question.strip()
    return text if text.endswith("?") else f"{text}?"


class FollowUpItem(IntakeModel):
    question: str
    answer: Optional[str] = None
    status: FollowUpStatus = FollowUpStatus.PENDING
    timestamp: datetime

    @field_validator("question")
    @classmethod
    def ensure_question_mark(cls, v: str) -> str:
        return normalize_question(v)


class WoundOverrides(IntakeModel):
    requires_retake: Optional[bool] = None
    clinician_override: Optional[str] = None


class WoundSection(IntakeModel):
    site: Optional[str] = None
    description: Optional[str] = None
    photos: list[WoundPhoto] = Field(default_factory=list)
    overrides: Optional[WoundOverrides] = None


class StorageMeta(IntakeModel):
    """Storage metadata; ``state`` is the durable workflow position."""

    version: int = SCHEMA_VERSION
    schema_name: str = Field(SCHEMA_NAME, alias="schema")
    state: SessionState = SessionState.BIO_INTAKE
    pin_issued_at: Optional[datetime] = None


class CaseRecord(IntakeModel):
    """Golden aggregate for one wound-intake case.

    Parameters:
        case_id: Case UUID
        clinician_id: UUID of the owning clinician
        clinician_pin_hash: Hashed clinician PIN, ``"pending"`` until issued
        created_at: Creation timestamp
        updated_at: Last mutation timestamp (never moves backwards)
        patient: Patient biography
        wounds: Wound section with ordered photos
        vitals: Optional vitals block
        time: Optional TIME assessment
        follow_ups: Ordered follow-up items
        artifacts: Ordered artifact references
        provenance_log: Append-only provenance entries
        consent_granted: Whether valid consent was captured
        status: Lifecycle status
        storage_meta: Schema version and workflow state
        encrypted_fields: Dotted field path to encrypted payload
    """

    case_id: str
    clinician_id: str
    clinician_pin_hash: str = Field(..., min_length=1)
    created_at: datetime
    updated_at: datetime
    patient: PatientBio = Field(default_factory=PatientBio)
    wounds: WoundSection = Field(default_factory=WoundSection)
    vitals: Optional[Vitals] = None
    time: Optional[TimeBlock] = None
    follow_ups: list[FollowUpItem] = Field(default_factory=list)
    artifacts: list[ArtifactRef] = Field(default_factory=list)
    provenance_log: list[ProvenanceEntry] = Field(default_factory=list)
    consent_granted: bool = False
    status: CaseStatus = CaseStatus.DRAFT
    storage_meta: StorageMeta = Field(default_factory=StorageMeta)
    encrypted_fields: dict[str, EncryptedField] = Field(default_factory=dict)

    @field_validator("case_id", "clinician_id")
    @classmethod
    def validate_uuid(cls, v: str, info: ValidationInfo) -> str:
        try:
            return str(uuid.UUID(v))
        except (ValueError, AttributeError, TypeError) as e:
            raise ValueError(f"{info.field_name} must be a UUID") from e

    @field_validator("encrypted_fields")
    @classmethod
    def validate_encrypted_paths(cls, v: dict[str, EncryptedField]) -> dict[str, EncryptedField]:
        unknown = sorted(set(v) - set(SENSITIVE_FIELD_PATHS))
        if unknown:
            raise ValueError(f"encryptedFields contains non-sensitive paths: {', '.join(unknown)}")
        return v

    @classmethod
    def from_payload(cls, payload: dict, draft: bool = True) -> "CaseRecord":
        """Rebuild a record from its serialized form.

        Parameters:
            payload: camelCase (or snake_case) record payload
            draft: Skip clinical range checks (default, used by repositories)

        Returns:
            CaseRecord instance

        Raises:
            pydantic.ValidationError: If the payload is structurally invalid
        """
        return cls.model_validate(payload, context=DRAFT_CONTEXT if draft else None)

    def append_provenance(self, entries: list[ProvenanceEntry]) -> "CaseRecord":
        """Return a copy with ``entries`` appended to the provenance log."""
        if not entries:
            return self
        return self.model_copy(update={"provenance_log": [*self.provenance_log, *entries]})
