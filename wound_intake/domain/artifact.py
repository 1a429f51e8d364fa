"""Artifact references: photos, audio notes, scanned documents.

Artifacts are immutable once created and are referenced by id from
provenance entries.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field

from wound_intake.domain.enums import ArtifactKind, PhotoOrientation, QaCheck
from wound_intake.domain.schema_base import IntakeModel


class ArtifactQa(IntakeModel):
    confidence: Optional[float] = Field(None, ge=0, le=1)
    notes: Optional[str] = None


class ArtifactRef(IntakeModel):
    """Reference to an externally captured asset.

    Parameters:
        id: Artifact identifier
        kind: Artifact kind (image, audio, document, text, other)
        uri: Location of the asset; may be a content-bearing data URI
        captured_at: Capture timestamp
        captured_by: Who captured the asset
        description: Human description of the asset
        metadata: Free-form capture metadata
        qa: Optional quality assessment
    """

    id: str = Field(..., min_length=1)
    kind: ArtifactKind = ArtifactKind.OTHER
    uri: str = Field(..., min_length=1)
    captured_at: Optional[datetime] = None
    captured_by: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    qa: Optional[ArtifactQa] = None


class PhotoQaChecklist(IntakeModel):
    framing: QaCheck = QaCheck.UNKNOWN
    focus: QaCheck = QaCheck.UNKNOWN
    lighting: QaCheck = QaCheck.UNKNOWN
    scale: QaCheck = QaCheck.UNKNOWN
    identifier: QaCheck = QaCheck.UNKNOWN


class WoundPhoto(ArtifactRef):
    """Wound photograph with its QA checklist."""

    kind: Literal["image"] = "image"
    site: Optional[str] = None
    orientation: Optional[PhotoOrientation] = None
    scale_present: bool = False
    estimated_scale_cm_per_pixel: Optional[float] = Field(None, gt=0)
    qa_checklist: PhotoQaChecklist = Field(default_factory=PhotoQaChecklist)
