"""Shared Pydantic configuration for case-record models.

Security Impact:
    - Models are frozen; every change produces a new instance (copy-on-write)
    - Clinical range checks run on every strict validation

Architecture:
    - Python attributes are snake_case, serialized payloads are camelCase
    - Validation with ``context={"draft": True}`` skips clinical range checks
      so that an in-progress draft saved by autosave can always be reloaded
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo
from pydantic.alias_generators import to_camel

DRAFT_CONTEXT = {"draft": True}


class IntakeModel(BaseModel):
    """Base class for every model persisted inside a case record."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
        extra="ignore",
    )

    def to_payload(self) -> dict:
        """Serialize to the camelCase JSON-compatible form used at the boundary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def is_draft(info: Optional[ValidationInfo]) -> bool:
    """Return True when validation runs in lenient draft mode."""
    if info is None or not info.context:
        return False
    return bool(info.context.get("draft"))
