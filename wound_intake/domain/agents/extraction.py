"""Structured biography extraction from free text.

Text transcribed from an ID card scan or a dictated note is sent to the
text-generation capability with a constrained prompt. The response is parsed
as a JSON object and every field is validated individually before it may be
merged into the patient biography.

Security Impact:
    - Only the fixed field set in ``EXTRACTION_FIELDS`` is ever accepted
    - Consent is never taken from extracted text
    - Raw model output and transcribed text are never logged
"""

import json
import math
import re
from datetime import datetime
from typing import Any, Optional

from wound_intake.domain.enums import Sex
from wound_intake.domain.patient import DATE_OF_BIRTH_PATTERN, MAX_AGE, MIN_AGE

EXTRACTION_FIELDS: dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "preferredName": "preferred_name",
    "dateOfBirth": "date_of_birth",
    "age": "age",
    "sex": "sex",
    "mrn": "mrn",
}

_TEXT_FIELDS = ("first_name", "last_name", "preferred_name", "mrn")

EXTRACTION_INSTRUCTIONS = """You extract patient demographics from intake text.
Respond with a single JSON object and nothing else.
Only use these keys: firstName, lastName, preferredName, dateOfBirth, age, sex, mrn.
Omit any key whose value is not stated in the text.
dateOfBirth must be formatted YYYY-MM-DD. age must be a whole number.
sex must be one of: female, male, intersex, unspecified.
Never infer consent and never add keys that are not listed."""


def build_extraction_prompt(text: str, input_method: str) -> str:
    """Wrap transcribed ``text`` in the user turn of the extraction request."""
    return (
        f"Source: {input_method} transcription.\n"
        "Extract the patient demographics from the text between the markers.\n"
        "<<<\n"
        f"{text}\n"
        ">>>"
    )


def extract_json_object(text: Optional[str]) -> Optional[dict]:
    """Extract the first JSON object from model output.

    Tries a fenced ```json block first, then the first balanced ``{...}``
    object in the text.

    Parameters:
        text: Raw model output

    Returns:
        Parsed dictionary, or None if no JSON object could be parsed
    """
    if not text:
        return None

    fenced = re.search(r'```(?:json)?\s*\n?(\{.*?\})\s*\n?```', text, re.DOTALL)
    if fenced:
        try:
            parsed = json.loads(fenced.group(1))
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

    start_idx = text.find('{')
    if start_idx == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start_idx, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == '\\':
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                try:
                    parsed = json.loads(text[start_idx:i + 1])
                except json.JSONDecodeError:
                    return None
                return parsed if isinstance(parsed, dict) else None
    return None


def _clean_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _clean_age(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    if value != int(value):
        return None
    age = int(value)
    return age if MIN_AGE <= age <= MAX_AGE else None


def _clean_date_of_birth(value: Any) -> Optional[str]:
    cleaned = _clean_text(value)
    if cleaned is None or not DATE_OF_BIRTH_PATTERN.match(cleaned):
        return None
    try:
        datetime.strptime(cleaned, "%Y-%m-%d")
    except ValueError:
        return None
    return cleaned


def _clean_sex(value: Any) -> Optional[Sex]:
    cleaned = _clean_text(value)
    if cleaned is None:
        return None
    try:
        return Sex(cleaned.lower())
    except ValueError:
        return None


def sanitize_extracted_bio(data: Optional[dict]) -> dict[str, Any]:
    """Validate extracted fields one by one and drop anything invalid.

    Strings are trimmed (blank strings dropped), age must be a whole number
    between 0 and 120, date of birth must be a real ``YYYY-MM-DD`` date and
    sex must be one of the ``Sex`` values. Unknown keys, including any
    consent the model volunteered, are discarded.

    Parameters:
        data: Parsed model output (camelCase or snake_case keys)

    Returns:
        dict: Accepted fields keyed by ``PatientBio`` field name
    """
    if not isinstance(data, dict):
        return {}

    accepted: dict[str, Any] = {}
    for key, value in data.items():
        name = EXTRACTION_FIELDS.get(key) or (key if key in EXTRACTION_FIELDS.values() else None)
        if name is None:
            continue
        if name in _TEXT_FIELDS:
            cleaned = _clean_text(value)
        elif name == "age":
            cleaned = _clean_age(value)
        elif name == "date_of_birth":
            cleaned = _clean_date_of_birth(value)
        else:
            cleaned = _clean_sex(value)
        if cleaned is not None:
            accepted[name] = cleaned
    return accepted
