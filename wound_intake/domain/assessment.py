"""Clinical assessment blocks: vitals and the TIME wound assessment.

TIME stands for Tissue, Infection/Inflammation, Moisture and Edge.

Security Impact:
    - Range checks run on strict validation only, so flagged drafts remain
      loadable while the data steward still rejects them
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, ValidationInfo, model_validator

from wound_intake.domain.enums import (
    EdgeCondition,
    ExudateConsistency,
    ExudateLevel,
    TemperatureUnit,
)
from wound_intake.domain.schema_base import IntakeModel, is_draft

TISSUE_TOTAL_LIMIT = 100
TISSUE_TOTAL_MESSAGE = "Tissue percentages must not exceed 100"


# ============================================================================
# Vitals
# ============================================================================

class BloodPressure(IntakeModel):
    systolic: float = Field(..., ge=0)
    diastolic: float = Field(..., ge=0)
    unit: Optional[Literal["mmHg"]] = None
    captured_at: Optional[datetime] = None


class HeartRate(IntakeModel):
    bpm: float = Field(..., ge=0)
    captured_at: Optional[datetime] = None
    method: Literal["manual", "device", "unknown"] = "unknown"


class RespiratoryRate(IntakeModel):
    breaths_per_minute: float = Field(..., ge=0)
    captured_at: Optional[datetime] = None


class Temperature(IntakeModel):
    value: float
    unit: Optional[TemperatureUnit] = None
    captured_at: Optional[datetime] = None
    site: Literal["oral", "tympanic", "axillary", "temporal", "rectal", "unknown"] = "unknown"


class OxygenSaturation(IntakeModel):
    percent: float = Field(..., ge=0, le=100)
    captured_at: Optional[datetime] = None
    method: Literal["pulse_ox", "arterial", "unknown"] = "unknown"


class PainScore(IntakeModel):
    value: float = Field(..., ge=0, le=10)
    scale: Literal["nrs", "vrs", "flacc", "unknown"] = "nrs"
    captured_at: Optional[datetime] = None


class Vitals(IntakeModel):
    """Vital signs block.

    Units are optional so that a reading captured without its unit can be
    flagged for clarification instead of silently defaulted.
    """

    blood_pressure: Optional[BloodPressure] = None
    heart_rate: Optional[HeartRate] = None
    respiratory_rate: Optional[RespiratoryRate] = None
    temperature: Optional[Temperature] = None
    oxygen_saturation: Optional[OxygenSaturation] = None
    pain_score: Optional[PainScore] = None


# ============================================================================
# TIME assessment
# ============================================================================

class TissueBreakdown(IntakeModel):
    """Percentages of the wound bed by tissue type."""

    granulation_pct: float = 0
    slough_pct: float = 0
    necrotic_pct: float = 0
    epithelial_pct: float = 0

    @property
    def total(self) -> float:
        return self.granulation_pct + self.slough_pct + self.necrotic_pct + self.epithelial_pct

    @model_validator(mode="after")
    def check_percentages(self, info: ValidationInfo) -> "TissueBreakdown":
        """Each percentage must be 0-100 and the total must not exceed 100."""
        if is_draft(info):
            return self
        for name in ("granulation_pct", "slough_pct", "necrotic_pct", "epithelial_pct"):
            value = getattr(self, name)
            if value < 0 or value > 100:
                raise ValueError(f"{name} must be between 0 and 100")
        if self.total > TISSUE_TOTAL_LIMIT:
            raise ValueError(TISSUE_TOTAL_MESSAGE)
        return self


class InfectionInflammation(IntakeModel):
    odor: Optional[Literal["none", "mild", "moderate", "strong"]] = None
    erythema: Optional[Literal["none", "localized", "spreading"]] = None
    pain: Optional[Literal["none", "new", "increasing", "unchanged"]] = None
    notes: Optional[str] = None


class Moisture(IntakeModel):
    exudate: Optional[ExudateLevel] = None
    consistency: Optional[ExudateConsistency] = None
    dressing_saturation: Optional[Literal["dry", "moist", "saturated", "leaking"]] = None


class WoundEdge(IntakeModel):
    condition: Optional[EdgeCondition] = None
    undermining_depth_cm: Optional[float] = Field(None, ge=0)
    epibole: Optional[bool] = None


class TimeBlock(IntakeModel):
    """TIME wound assessment."""

    tissue: Optional[TissueBreakdown] = None
    infection_inflammation: Optional[InfectionInflammation] = None
    moisture: Optional[Moisture] = None
    edge: Optional[WoundEdge] = None
    notes: list[str] = Field(default_factory=list)
    captured_at: Optional[datetime] = None
    assessed_by: Optional[str] = None
