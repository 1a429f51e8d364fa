"""Session identity resolution.

Case and clinician identifiers arrive from the request layer (cookies,
headers, CLI options). They are validated here, before any storage access.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from wound_intake.domain.ports import MissingIdentityError

CASE_ID_PREFIXES = ("case-", "session-", "sid-")
CLINICIAN_ID_PREFIXES = ("clinician-", "cid-")


@dataclass(frozen=True)
class SessionIdentity:
    case_id: str
    clinician_id: str


def normalize_identifier(value: Optional[str], prefixes: tuple[str, ...], label: str) -> str:
    """Strip an optional prefix and return the canonical UUID string.

    Raises:
        MissingIdentityError: If the value is absent or not a UUID
    """
    if value is None or not str(value).strip():
        raise MissingIdentityError(f"Missing {label} identifier")
    candidate = str(value).strip()
    lowered = candidate.lower()
    for prefix in prefixes:
        if lowered.startswith(prefix):
            candidate = candidate[len(prefix):]
            break
    try:
        return str(uuid.UUID(candidate))
    except ValueError:
        raise MissingIdentityError(f"Invalid {label} identifier") from None


def resolve_identity(case_id: Optional[str], clinician_id: Optional[str]) -> SessionIdentity:
    """Validate both identifiers of a session request.

    Parameters:
        case_id: Case UUID, optionally prefixed with ``case-``, ``session-`` or ``sid-``
        clinician_id: Clinician UUID, optionally prefixed with ``clinician-`` or ``cid-``

    Returns:
        SessionIdentity: Canonical identifiers

    Raises:
        MissingIdentityError: If either identifier is absent or malformed
    """
    return SessionIdentity(
        case_id=normalize_identifier(case_id, CASE_ID_PREFIXES, "case"),
        clinician_id=normalize_identifier(clinician_id, CLINICIAN_ID_PREFIXES, "clinician"),
    )
