"""Domain Ports - Abstract Contracts for Session Capabilities.

This module defines the Port interfaces (abstract contracts) that Adapters must
implement. The Domain Core defines what it needs (storage, text generation,
transcription, encryption, prompt loading), not how it's provided.

Security Impact:
    - Encryption is an explicit capability; its absence is visible through
      ``CryptoPort.is_available`` instead of a silent skip
    - Repository writes are full-record upserts, never partial patches
    - All capabilities accept a cancellation signal where they may block

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Null implementations live in ``wound_intake.domain.null_capabilities``
    - Exception hierarchy rooted at ``WoundIntakeError``
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar, Union

from wound_intake.domain.artifact import ArtifactRef
from wound_intake.domain.case_record import CaseRecord, EncryptedField
from wound_intake.domain.enums import ProcessingMethod

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Storage adapters return Result internally and convert failures into
    ``StorageError`` at the port boundary.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (StorageError, ValidationError, etc.)
        error_details: Additional error context (case_id, operation, etc.)

    Example:
        ```python
        result = repository.initialize_schema()
        if not result.is_success():
            logger.error(result.error)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (defaults to the exception class name)
            error_details: Additional context

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")
        return cls(
            success=False,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class WoundIntakeError(Exception):
    """Base exception for all session engine errors."""
    pass


class InvalidTransitionError(WoundIntakeError):
    """Raised when an event is not legal from the current workflow state.

    Attributes:
        state: State the machine was in
        event: Rejected event
    """

    def __init__(self, state: Any, event: Any):
        state_name = getattr(state, "value", state)
        event_name = getattr(event, "value", event)
        super().__init__(f"Invalid transition from {state_name} via {event_name}")
        self.state = state
        self.event = event


class SessionAccessError(WoundIntakeError):
    """Base class for identity and authorization failures.

    Attributes:
        status_code: Suggested status code for the request layer
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)


class MissingIdentityError(SessionAccessError):
    """Raised when a case or clinician identifier is absent or malformed."""

    status_code = 400


class UnauthorizedAccessError(SessionAccessError):
    """Raised when a clinician requests a case owned by someone else."""

    status_code = 403


class CapabilityError(WoundIntakeError):
    """Base class for failures inside an external capability."""
    pass


class UnsupportedArtifactError(CapabilityError):
    """Raised when an artifact kind cannot be processed by a capability.

    Attributes:
        kind: The unsupported artifact kind
    """

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class TextGenerationError(CapabilityError):
    """Raised when the text-generation service fails or returns no text.

    Attributes:
        status_code: HTTP status returned by the service, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EncryptionError(CapabilityError):
    """Raised when field encryption or decryption fails."""
    pass


class IncompleteBiographyError(WoundIntakeError):
    """Raised when a biography confirmation is requested before the biography is complete.

    Attributes:
        missing_fields: Required items still absent
        status_code: Suggested status code for the request layer
    """

    status_code = 409

    def __init__(self, missing_fields: list[str]):
        super().__init__(f"Biography incomplete: {', '.join(missing_fields)}")
        self.missing_fields = list(missing_fields)


class OperationCancelledError(WoundIntakeError):
    """Raised when a run is aborted through its cancellation signal."""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message)


class StorageError(WoundIntakeError):
    """Raised when a repository operation fails.

    Attributes:
        operation: Repository operation that failed
        details: Additional error context (never contains PHI)
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


def raise_if_aborted(signal: Optional[asyncio.Event]) -> None:
    """Raise ``OperationCancelledError`` if the cancellation signal is set."""
    if signal is not None and signal.is_set():
        raise OperationCancelledError()


# ============================================================================
# Capability value objects
# ============================================================================

@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


@dataclass(frozen=True)
class GenerationRequest:
    """Request for the text-generation capability.

    Attributes:
        system_prompt: Optional system instruction
        input: Single-turn user input (used when ``messages`` is empty)
        messages: Multi-turn conversation
        temperature: Sampling temperature override
        max_output_tokens: Output length override
        stop_sequences: Optional stop sequences
        signal: Cancellation signal
    """

    system_prompt: Optional[str] = None
    input: Optional[str] = None
    messages: tuple[ChatMessage, ...] = ()
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    stop_sequences: tuple[str, ...] = ()
    signal: Optional[asyncio.Event] = None


@dataclass(frozen=True)
class GenerationResult:
    text: str
    raw: Any = None


@dataclass(frozen=True)
class Transcription:
    """Text extracted from an artifact.

    Attributes:
        text: Transcribed text
        confidence: Confidence score between 0 and 1
        processing_method: Engine that produced the text
    """

    text: str
    confidence: float
    processing_method: ProcessingMethod


@dataclass(frozen=True)
class PinHashResult:
    hash: str
    salt: str


# ============================================================================
# Ports
# ============================================================================

class CaseRecordRepository(ABC):
    """Abstract contract for case-record persistence.

    Key Principles:
        - ``save`` is a full-record upsert, safe to call on every mutation
        - ``fetch_by_id`` returns None for an unknown case
        - Last write wins; there is no concurrency token

    Security Impact:
        - Implementations must never log record contents
    """

    @abstractmethod
    async def save(self, record: CaseRecord) -> None:
        """Persist the full record.

        Raises:
            StorageError: If the record cannot be persisted
        """
        pass

    @abstractmethod
    async def fetch_by_id(self, case_id: str) -> Optional[CaseRecord]:
        """Fetch a record by case id, or None when it does not exist.

        Raises:
            StorageError: If storage cannot be read
        """
        pass


class TextGenerationPort(ABC):
    """Abstract contract for a large-language-model text generator."""

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Generate text for ``request``.

        Raises:
            TextGenerationError: If the service fails
            OperationCancelledError: If ``request.signal`` is set
        """
        pass


class TranscriptionPort(ABC):
    """Abstract contract for OCR (images, documents) and ASR (audio)."""

    @abstractmethod
    async def transcribe(self, artifact: ArtifactRef, signal: Optional[asyncio.Event] = None) -> Transcription:
        """Extract text from ``artifact``.

        Raises:
            UnsupportedArtifactError: If the artifact kind cannot be transcribed
        """
        pass


class CryptoPort(ABC):
    """Abstract contract for field-level encryption."""

    @property
    def is_available(self) -> bool:
        """Whether this provider can actually encrypt."""
        return True

    @abstractmethod
    def encrypt(self, plaintext: str) -> EncryptedField:
        """Encrypt ``plaintext`` into a versioned payload.

        Raises:
            EncryptionError: If encryption fails
        """
        pass

    @abstractmethod
    def decrypt(self, payload: EncryptedField) -> str:
        """Decrypt a payload produced by ``encrypt``.

        Raises:
            EncryptionError: If no key matches or authentication fails
        """
        pass


class PromptLoaderPort(ABC):
    """Abstract contract for loading agent prompt templates."""

    @abstractmethod
    def load(self, path: str) -> str:
        """Return the prompt text at ``path`` (empty string if unavailable)."""
        pass
