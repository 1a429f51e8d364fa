"""Factory for blank case records."""

import uuid
from typing import Optional

from wound_intake.domain.case_record import PENDING_PIN_HASH, CaseRecord, StorageMeta
from wound_intake.domain.enums import SessionState
from wound_intake.domain.utils import utc_now


def create_blank_case_record(
    case_id: Optional[str] = None,
    clinician_id: Optional[str] = None,
) -> CaseRecord:
    """Create an empty draft record positioned at ``BIO_INTAKE``.

    Parameters:
        case_id: Case UUID (generated when omitted)
        clinician_id: Clinician UUID (generated when omitted)

    Returns:
        CaseRecord: Draft with pending PIN hash, all consent flags false and
        no photos, notes or follow-ups
    """
    now = utc_now()
    return CaseRecord(
        case_id=case_id or str(uuid.uuid4()),
        clinician_id=clinician_id or str(uuid.uuid4()),
        clinician_pin_hash=PENDING_PIN_HASH,
        created_at=now,
        updated_at=now,
        storage_meta=StorageMeta(state=SessionState.BIO_INTAKE),
    )
