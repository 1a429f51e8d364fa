"""Data steward agent: strict validation and field-level encryption.

Security Impact:
    - Sensitive fields are moved out of the plaintext record into
      ``encrypted_fields`` whenever an encryption capability is available
    - A record that fails strict validation stays ``draft``; it is still
      autosaved so no entered data is lost
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from wound_intake.domain.agents.base import Agent, AgentResult, AgentRunContext
from wound_intake.domain.agents.vitals_agent import format_validation_errors
from wound_intake.domain.case_record import SENSITIVE_FIELD_PATHS, CaseRecord, EncryptedField
from wound_intake.domain.enums import CaseStatus
from wound_intake.domain.ports import CryptoPort, EncryptionError
from wound_intake.domain.utils import read_path, replace_path


@dataclass(frozen=True)
class DataStewardInput:
    """Optional explicit draft; the context record is used when omitted."""
    draft: Optional[CaseRecord] = None


@dataclass(frozen=True)
class DataStewardOutput:
    record: CaseRecord
    validation_errors: list[str]
    encrypted_paths: list[str]


def validate_case_record(record: CaseRecord) -> list[str]:
    """Strictly re-validate ``record`` and return readable error messages."""
    try:
        CaseRecord.model_validate(record.model_dump())
    except PydanticValidationError as e:
        return format_validation_errors(e)
    return []


def encrypt_sensitive_fields(record: CaseRecord, crypto: CryptoPort) -> tuple[CaseRecord, dict[str, EncryptedField]]:
    """Encrypt every populated sensitive path and clear its plaintext.

    Returns:
        tuple: (record with plaintext cleared, newly encrypted payloads by path)

    Raises:
        EncryptionError: If the provider fails on any field
    """
    encrypted: dict[str, EncryptedField] = {}
    for path in SENSITIVE_FIELD_PATHS:
        value = read_path(record, path)
        if not isinstance(value, str) or not value:
            continue
        encrypted[path] = crypto.encrypt(value)
        record = replace_path(record, path, None)
    return record, encrypted


class DataStewardAgent(Agent[DataStewardInput, DataStewardOutput]):
    """Agent bound to ``ASSEMBLE_JSON``."""

    name = "DataStewardAgent"
    prompt_path = "prompts/steward.md"

    async def run(self, input: DataStewardInput, context: AgentRunContext) -> AgentResult[DataStewardOutput]:
        record = input.draft or context.record
        errors = validate_case_record(record)

        encrypted: dict[str, EncryptedField] = {}
        if context.crypto.is_available:
            try:
                record, encrypted = encrypt_sensitive_fields(record, context.crypto)
            except EncryptionError as e:
                context.logger.error(f"Field encryption failed for case {record.case_id}: {e}")
                errors.append(f"encryption: {e}")
        else:
            context.logger.warning(f"Field encryption unavailable; case {record.case_id} keeps plaintext sensitive fields")

        status = CaseStatus.READY_FOR_REVIEW if not errors else CaseStatus.DRAFT
        candidate = record.model_copy(update={
            "encrypted_fields": {**record.encrypted_fields, **encrypted},
            "status": status,
        })
        entry = self.provenance(
            "record",
            notes="Validation pending" if errors else "Record ready for clinician review",
        )
        committed = await self.commit(context, candidate, [entry])

        return AgentResult(
            data=DataStewardOutput(record=committed, validation_errors=errors, encrypted_paths=sorted(encrypted)),
            updated_record=committed,
            follow_ups=list(errors),
            provenance=[entry],
        )
