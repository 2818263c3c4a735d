"""
Submission validation shared by the API and the client.

`check_field` applies the rule for one field type to one raw value and
returns an error message or None. `validate_submission` runs it over every
field of a form and collects the messages keyed by field id.

Only one message is produced per field: checks run in a fixed order
(presence, length, numeric range, email format) and the first failure wins.
"""

import math
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from schemas import FieldType, FormField

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


class ValidationResult(BaseModel):
    errors: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_response(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": dict(self.errors)}


def is_empty(value: Any) -> bool:
    """Absent, empty string, or an empty list/tuple."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _fmt(bound: float) -> str:
    # 0.0 -> "0", 2.5 -> "2.5"
    if float(bound).is_integer():
        return str(int(bound))
    return str(bound)


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(num):
        return None
    return num


def _check_length(field: FormField, value: Any) -> Optional[str]:
    # Only strings have a character length
    if not isinstance(value, str):
        return None
    rules = field.validation
    length = len(value)
    if rules.minLength is not None and length < rules.minLength:
        return f"{field.label} must be at least {rules.minLength} characters"
    if rules.maxLength is not None and length > rules.maxLength:
        return f"{field.label} must be no more than {rules.maxLength} characters"
    return None


def _check_range(field: FormField, value: Any) -> Optional[str]:
    rules = field.validation
    num = _to_number(value)
    if num is None:
        return f"{field.label} must be a number"
    if rules.min is not None and num < rules.min:
        return f"{field.label} must be at least {_fmt(rules.min)}"
    if rules.max is not None and num > rules.max:
        return f"{field.label} must be no more than {_fmt(rules.max)}"
    return None


def _check_email(field: FormField, value: Any) -> Optional[str]:
    if not EMAIL_RE.fullmatch(str(value)):
        return f"{field.label} must be a valid email address"
    return None


Check = Callable[[FormField, Any], Optional[str]]

# Checks run after presence. Choice types and date only check presence;
# option membership is not enforced.
TYPE_CHECKS: Dict[FieldType, List[Check]] = {
    FieldType.text: [_check_length],
    FieldType.textarea: [_check_length],
    FieldType.number: [_check_range],
    FieldType.email: [_check_email],
    FieldType.select: [],
    FieldType.radio: [],
    FieldType.checkbox: [],
    FieldType.date: [],
}


def check_field(field: FormField, value: Any) -> Optional[str]:
    """Validate one raw value against its field definition.

    Returns the error message for the first failing check, or None when the
    value is acceptable. Optional fields left empty always pass.
    """
    if is_empty(value):
        if field.required:
            return f"{field.label} is required"
        return None

    for check in TYPE_CHECKS[FieldType(field.type)]:
        message = check(field, value)
        if message is not None:
            return message
    return None


def validate_fields(fields: Sequence[FormField], payload: Optional[Mapping[str, Any]]) -> ValidationResult:
    payload = payload or {}
    errors: Dict[str, str] = {}
    for field in fields:
        message = check_field(field, payload.get(field.id))
        if message is not None:
            errors[field.id] = message
    return ValidationResult(errors=errors)


def validate_submission(form: Any, payload: Optional[Mapping[str, Any]]) -> ValidationResult:
    """Validate a submission payload against every field of `form`.

    `form` is a `schemas.Form` (or anything with a `fields` list of
    `FormField`). Payload keys that match no field are ignored. Lifecycle
    status is not checked here; the submission route does that before
    calling in.
    """
    return validate_fields(form.fields, payload)
