"""Field-by-field merge functions for partial patches.

Every merge follows one rule per field:

    - key absent from the patch: the existing value is preserved
    - key present with a value: the value overwrites
    - key present with ``None`` or ``""``: the field is cleared (reset to its
      default)

Keys may be given in snake_case or camelCase. Keys that do not name a
mergeable field are ignored and logged. Nested ``consent`` is never merged
through the patient patch; it has its own merge with the same per-field rule.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from wound_intake.domain.assessment import TimeBlock, Vitals
from wound_intake.domain.patient import ConsentPreferences, PatientBio
from wound_intake.domain.schema_base import DRAFT_CONTEXT

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

PATIENT_MERGE_FIELDS: tuple[str, ...] = (
    "patient_id",
    "first_name",
    "last_name",
    "preferred_name",
    "date_of_birth",
    "age",
    "sex",
    "mrn",
    "contact",
    "notes",
    "provenance",
)

CONSENT_MERGE_FIELDS: tuple[str, ...] = (
    "data_storage",
    "photography",
    "sharing_to_team_board",
    "notes",
    "captured_at",
    "captured_by",
)


def field_key_map(model_cls: type[BaseModel]) -> dict[str, str]:
    """Map snake_case names and camelCase aliases to field names."""
    mapping: dict[str, str] = {}
    for name, info in model_cls.model_fields.items():
        mapping[name] = name
        mapping[to_camel(name)] = name
        if info.alias:
            mapping[info.alias] = name
    return mapping


def normalize_keys(
    model_cls: type[BaseModel],
    patch: Optional[Mapping[str, Any]],
    allowed: Optional[Iterable[str]] = None,
) -> dict[str, Any]:
    """Translate patch keys to field names, dropping unknown keys.

    Parameters:
        model_cls: Model whose fields the patch targets
        patch: Raw patch (may be None)
        allowed: Optional subset of field names accepted from the patch

    Returns:
        dict: Patch keyed by field name
    """
    if not patch:
        return {}
    keys = field_key_map(model_cls)
    permitted = set(allowed) if allowed is not None else set(model_cls.model_fields)
    normalized: dict[str, Any] = {}
    for key, value in patch.items():
        name = keys.get(key)
        if name is None or name not in permitted:
            logger.debug(f"Ignoring unknown {model_cls.__name__} patch key: {key}")
            continue
        normalized[name] = value
    return normalized


def _cleared_value(model_cls: type[BaseModel], name: str) -> Any:
    info = model_cls.model_fields[name]
    if info.default_factory is not None:
        return info.default_factory()
    return info.default


def merge_fields(
    base: M,
    patch: Optional[Mapping[str, Any]],
    allowed: Optional[Iterable[str]] = None,
) -> M:
    """Merge ``patch`` onto ``base`` with the overwrite-if-present rule.

    The merged values are validated in draft mode. A field whose patched
    value cannot be coerced to the field type is skipped (the previous value
    is kept) and logged, so a bad value never aborts the whole merge.

    Parameters:
        base: Existing model instance
        patch: Partial patch keyed by snake_case or camelCase names
        allowed: Optional subset of field names the patch may touch

    Returns:
        New model instance (``base`` itself when the patch is empty)
    """
    model_cls = type(base)
    updates = normalize_keys(model_cls, patch, allowed)
    if not updates:
        return base

    for name, value in list(updates.items()):
        if value is None or value == "":
            updates[name] = _cleared_value(model_cls, name)

    current = base.model_dump()
    for _ in range(len(updates) + 1):
        try:
            return model_cls.model_validate({**current, **updates}, context=DRAFT_CONTEXT)
        except PydanticValidationError as e:
            rejected = {err["loc"][0] for err in e.errors() if err["loc"] and err["loc"][0] in updates}
            if not rejected:
                raise
            for name in rejected:
                logger.warning(f"Rejected invalid value for {model_cls.__name__}.{name}")
                updates.pop(name)
    return base


def merge_patient(
    base: PatientBio,
    patient_patch: Optional[Mapping[str, Any]],
    consent_patch: Optional[Mapping[str, Any]] = None,
) -> PatientBio:
    """Merge patient and consent patches onto an existing biography.

    Consent is merged per key: a present key overwrites (``None`` resets it
    to the default), an absent key preserves the existing consent value.
    """
    merged = merge_fields(base, patient_patch, PATIENT_MERGE_FIELDS)
    consent = merge_consent(merged.consent, consent_patch)
    if consent is merged.consent:
        return merged
    return merged.model_copy(update={"consent": consent})


def merge_consent(
    base: ConsentPreferences,
    patch: Optional[Mapping[str, Any]],
) -> ConsentPreferences:
    return merge_fields(base, patch, CONSENT_MERGE_FIELDS)


def merge_blocks(existing: Optional[BaseModel], patch: Optional[Mapping[str, Any]], model_cls: type[BaseModel]) -> dict[str, Any]:
    """Shallow merge for vitals and TIME: each top-level block is replaced whole.

    Returns the merged raw dict; callers validate it themselves so that they
    can report validation problems as data.
    """
    merged = existing.model_dump(exclude_none=True) if existing is not None else {}
    for name, value in normalize_keys(model_cls, patch).items():
        if value is None:
            merged.pop(name, None)
        else:
            merged[name] = value.model_dump(exclude_none=True) if isinstance(value, BaseModel) else value
    return merged


def merge_vitals(existing: Optional[Vitals], patch: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    return merge_blocks(existing, patch, Vitals)


def merge_time(existing: Optional[TimeBlock], patch: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    return merge_blocks(existing, patch, TimeBlock)
