"""Session runtime: open a controller for a (case id, clinician id) pair.

Identity is validated before storage is touched, ownership is checked before
any agent runs, and a record that does not exist yet is created and saved.
"""

import asyncio
import logging
from typing import Optional

from wound_intake.adapters.storage.registry import RepositoryRegistry
from wound_intake.domain.agents.base import AgentDependencies
from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.enums import SessionState
from wound_intake.domain.ports import UnauthorizedAccessError
from wound_intake.domain.record_factory import create_blank_case_record
from wound_intake.session.controller import SessionController
from wound_intake.session.identity import resolve_identity

logger = logging.getLogger(__name__)


def resume_state(record: CaseRecord) -> SessionState:
    """Workflow state to resume from; a record parked at ``START`` resumes in ``BIO_INTAKE``."""
    state = record.storage_meta.state
    return SessionState.BIO_INTAKE if state == SessionState.START else state


async def open_session(
    case_id: Optional[str],
    clinician_id: Optional[str],
    registry: RepositoryRegistry,
    dependencies: Optional[AgentDependencies] = None,
    abort_signal: Optional[asyncio.Event] = None,
) -> SessionController:
    """Load or create the case and return its controller.

    Parameters:
        case_id: Raw case identifier from the request
        clinician_id: Raw clinician identifier from the request
        registry: Repository registry
        dependencies: Agent capabilities
        abort_signal: Cancellation signal for the controller's runs

    Returns:
        SessionController: Controller positioned at the stored state

    Raises:
        MissingIdentityError: If either identifier is absent or malformed
        UnauthorizedAccessError: If the case belongs to another clinician
        StorageError: If the repository cannot be read or written
    """
    identity = resolve_identity(case_id, clinician_id)
    repository = registry.resolve(identity.case_id)

    record = await repository.fetch_by_id(identity.case_id)
    if record is None:
        record = create_blank_case_record(identity.case_id, identity.clinician_id)
        await repository.save(record)
        logger.info(f"Created case {identity.case_id}")
    elif record.clinician_id != identity.clinician_id:
        logger.warning(f"Clinician mismatch for case {identity.case_id}")
        raise UnauthorizedAccessError("Case belongs to a different clinician")

    state = resume_state(record)
    if state != record.storage_meta.state:
        record = record.model_copy(update={
            "storage_meta": record.storage_meta.model_copy(update={"state": state}),
        })

    return SessionController(
        record,
        repository=repository,
        dependencies=dependencies,
        state=state,
        abort_signal=abort_signal,
    )
