"""Session layer: identity, controller, runtime and environment wiring."""

from wound_intake.session.controller import (
    BioConfirmation,
    SessionController,
    SessionSnapshot,
    sanitize_bio_input,
)
from wound_intake.session.identity import SessionIdentity, resolve_identity
from wound_intake.session.runtime import open_session

__all__ = [
    "BioConfirmation",
    "SessionController",
    "SessionIdentity",
    "SessionSnapshot",
    "open_session",
    "resolve_identity",
    "sanitize_bio_input",
]
