"""Field checks for course and profile payloads.

Checks collect every problem instead of stopping at the first, so a caller
can show all of them at once. The same rules run on the server before a
store mutation and in the client before a form is submitted.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import ValidationError

LEVELS = ("beginner", "intermediate", "advanced")

COURSE_FIELDS = ("title", "description", "category", "level", "duration", "published")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# upper bound of a signed 32-bit INTEGER column
MAX_DURATION = 2**31 - 1


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _is_positive_whole_number(value: Any) -> bool:
    # bool is a subclass of int but never a duration
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return 0 < value <= MAX_DURATION
    if isinstance(value, float):
        return value.is_integer() and 0 < value <= MAX_DURATION
    return False


_RULES: Dict[str, Tuple[Callable[[Any], bool], str]] = {
    "title": (
        _is_non_empty_string,
        "Title is required and must be a non-empty string",
    ),
    "description": (
        _is_non_empty_string,
        "Description is required and must be a non-empty string",
    ),
    "category": (
        _is_non_empty_string,
        "Category is required and must be a non-empty string",
    ),
    "level": (
        lambda value: isinstance(value, str) and value in LEVELS,
        "Level must be one of: beginner, intermediate, advanced",
    ),
    "duration": (
        _is_positive_whole_number,
        "Duration must be a positive whole number",
    ),
    "published": (
        lambda value: isinstance(value, bool),
        "Published must be a boolean",
    ),
}


def course_errors(payload: Mapping[str, Any], partial: bool = False) -> List[str]:
    """Return the messages for every invalid course field in ``payload``.

    With ``partial`` set only the fields present are checked, which is how
    updates are validated; otherwise a missing field counts as invalid.
    """
    errors: List[str] = []
    for field in COURSE_FIELDS:
        if partial and field not in payload:
            continue
        check, message = _RULES[field]
        if not check(payload.get(field)):
            errors.append(message)
    return errors


def clean_course_payload(payload: Any, partial: bool = False) -> Dict[str, Any]:
    """Validate ``payload`` and return only the known course fields.

    Raises :class:`ValidationError` listing every violation. Whole-number
    durations sent as floats are normalised to ``int``.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError(["Request body must be a JSON object"])
    errors = course_errors(payload, partial=partial)
    if errors:
        raise ValidationError(errors)

    cleaned = {field: payload[field] for field in COURSE_FIELDS if field in payload}
    if "duration" in cleaned:
        cleaned["duration"] = int(cleaned["duration"])
    return cleaned


def owner_from_payload(payload: Mapping[str, Any]) -> Optional[str]:
    """Return the ``userId`` carried by a payload when it is usable."""
    owner = payload.get("userId")
    if _is_non_empty_string(owner):
        return owner
    return None


def profile_errors(payload: Any) -> List[str]:
    """Validate a profile update, returning at most one message.

    Mirrors the order the checks are reported in: required fields first,
    then the email shape.
    """
    if not isinstance(payload, Mapping):
        return ["Request body must be a JSON object"]
    username = payload.get("username")
    email = payload.get("email")
    if not _is_non_empty_string(username) or not _is_non_empty_string(email):
        return ["Username and email are required"]
    if not EMAIL_RE.match(email):
        return ["Invalid email format"]
    return []
