"""Domain utility helpers: timestamps and dotted field paths."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel

_TICK = timedelta(microseconds=1)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def advance_timestamp(previous: Optional[datetime]) -> datetime:
    """Return a timestamp strictly later than ``previous``.

    Two mutations within the same clock tick still produce distinct,
    ordered ``updated_at`` values.

    Parameters:
        previous: Last recorded timestamp (naive values are treated as UTC)

    Returns:
        datetime: ``utc_now()`` or ``previous`` plus one microsecond
    """
    now = utc_now()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    return now if now > previous else previous + _TICK


def read_path(model: BaseModel, path: str) -> Any:
    """Read a dotted attribute path such as ``patient.contact.phone``.

    Returns None when an intermediate value is missing.
    """
    current: Any = model
    for part in path.split("."):
        if current is None:
            return None
        current = getattr(current, part, None)
    return current


def replace_path(model: BaseModel, path: str, value: Any) -> BaseModel:
    """Return a copy of ``model`` with the dotted ``path`` set to ``value``.

    Intermediate models are copied, never mutated. A missing intermediate
    leaves the model unchanged.
    """
    head, _, rest = path.partition(".")
    if not rest:
        return model.model_copy(update={head: value})
    child = getattr(model, head, None)
    if child is None:
        return model
    return model.model_copy(update={head: replace_path(child, rest, value)})
