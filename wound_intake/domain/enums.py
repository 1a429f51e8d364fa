"""Enumerations shared by the case record, the state machine and the agents.

All enums subclass ``str`` so that they serialize to their plain value in
repository payloads and exports.
"""

from enum import Enum


class SessionState(str, Enum):
    """Workflow position of a case, in happy-path order."""
    START = "START"
    BIO_INTAKE = "BIO_INTAKE"
    WOUND_IMAGING = "WOUND_IMAGING"
    VITALS = "VITALS"
    TIME = "TIME"
    FOLLOW_UP = "FOLLOW_UP"
    REVIEW = "REVIEW"
    ASSEMBLE_JSON = "ASSEMBLE_JSON"
    LINK_TO_CLINICIAN = "LINK_TO_CLINICIAN"
    STORE_SYNC = "STORE_SYNC"
    DONE = "DONE"


class SessionEvent(str, Enum):
    """Events accepted by the state machine."""
    BEGIN = "BEGIN"
    BIO_CONFIRMED = "BIO_CONFIRMED"
    IMAGING_CONFIRMED = "IMAGING_CONFIRMED"
    VITALS_CAPTURED = "VITALS_CAPTURED"
    TIME_CAPTURED = "TIME_CAPTURED"
    FOLLOW_UP_RESOLVED = "FOLLOW_UP_RESOLVED"
    REVIEW_COMPLETED = "REVIEW_COMPLETED"
    JSON_ASSEMBLED = "JSON_ASSEMBLED"
    CLINICIAN_LINKED = "CLINICIAN_LINKED"
    STORED = "STORED"
    ROLLBACK = "ROLLBACK"
    RESET = "RESET"


class CaseStatus(str, Enum):
    """Lifecycle status of a case record."""
    DRAFT = "draft"
    READY_FOR_REVIEW = "ready_for_review"
    LOCKED = "locked"


class ArtifactKind(str, Enum):
    """Kind of externally captured asset."""
    IMAGE = "image"
    AUDIO = "audio"
    DOCUMENT = "document"
    TEXT = "text"
    OTHER = "other"


class Sex(str, Enum):
    """Patient sex as captured at intake."""
    FEMALE = "female"
    MALE = "male"
    INTERSEX = "intersex"
    UNSPECIFIED = "unspecified"


class FollowUpStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class QaCheck(str, Enum):
    """Outcome of a single photo QA checklist item."""
    PASS = "pass"
    FAIL = "fail"
    UNKNOWN = "unknown"


class PhotoOrientation(str, Enum):
    ANTERIOR = "anterior"
    POSTERIOR = "posterior"
    LATERAL = "lateral"
    SUPERIOR = "superior"
    INFERIOR = "inferior"
    UNSPECIFIED = "unspecified"


class InputType(str, Enum):
    """Modality of a biography submission routed through the input router."""
    TEXT = "text"
    AUDIO = "audio"
    OCR = "ocr"


class TemperatureUnit(str, Enum):
    CELSIUS = "C"
    FAHRENHEIT = "F"


class ExudateLevel(str, Enum):
    NONE = "none"
    SCANT = "scant"
    MODERATE = "moderate"
    HEAVY = "heavy"


class ExudateConsistency(str, Enum):
    SEROUS = "serous"
    SANGUINEOUS = "sanguineous"
    SEROSANGUINEOUS = "serosanguineous"
    PURULENT = "purulent"
    FIBRINOUS = "fibrinous"
    UNKNOWN = "unknown"


class EdgeCondition(str, Enum):
    ATTACHED = "attached"
    DETACHED = "detached"
    ROLLED = "rolled"
    CALLOUSED = "calloused"
    MACERATED = "macerated"
    UNKNOWN = "unknown"


class ProcessingMethod(str, Enum):
    """Engine that produced an artifact transcription."""
    OCR = "ocr"
    ASR = "asr"
