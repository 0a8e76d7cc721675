"""
Row Validator/Coercion Engine.

validate_form_data() checks one candidate row against a list's fields and
returns either the coerced row or every problem found. Each field is judged on
its own; no field's error stops another field from being checked.

Visibility gates everything: a field whose condition is false is inactive. It
is neither required nor type-checked, and whatever the row holds for it is
passed through untouched.
"""

import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from listdata import errors
from listdata.dsl import values
from listdata.dsl.parser import parse_fields, parse_schema
from listdata.dsl.types import (
    STRING_TYPES,
    BaseField,
    BooleanField,
    DateField,
    DatetimeField,
    MultiselectField,
    NumberField,
    ParsedSchema,
    SelectField,
    VisibilityCondition,
)

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

# Relative tolerance when checking that a number sits on a step boundary.
STEP_TOLERANCE = 1e-9


@dataclass
class FieldError:
    """One problem with one field of a row."""

    field: str
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "code": self.code, "message": self.message}


@dataclass
class ValidationResult:
    """Outcome of validate_form_data(). ``data`` is set only when valid."""

    is_valid: bool
    data: dict | None = None
    errors: list[FieldError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "data": self.data,
            "errors": [e.to_dict() for e in self.errors],
        }


class _Reject(Exception):
    """Internal: a field value failed its type or constraint check."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _mismatch(message: str) -> _Reject:
    return _Reject(errors.FIELD_TYPE_MISMATCH, message)


def _violation(message: str) -> _Reject:
    return _Reject(errors.CONSTRAINT_VIOLATION, message)


# ============================================================
# Visibility
# ============================================================


def evaluate_condition(condition: VisibilityCondition, row: Mapping) -> bool:
    """Evaluate one visibility condition against the row's current values."""
    current = row.get(condition.field)
    if condition.operator == "equals":
        return values.stringify(current).strip() == values.stringify(condition.value).strip()
    if condition.operator == "notEquals":
        return values.stringify(current).strip() != values.stringify(condition.value).strip()
    if condition.operator == "isEmpty":
        return values.is_empty(current)
    if condition.operator == "isNotEmpty":
        return not values.is_empty(current)
    raise ValueError(f"Unsupported visibility operator: {condition.operator!r}")


def is_field_active(f: BaseField, row: Mapping) -> bool:
    """A field is active when it has no condition or its condition holds."""
    return f.visibility is None or evaluate_condition(f.visibility, row)


def visible_fields(fields: Iterable[BaseField], row: Mapping) -> list[BaseField]:
    """Fields a form should display for the row's current values."""
    return [f for f in _as_fields(fields) if f.visible and is_field_active(f, row)]


# ============================================================
# Type coercion
# ============================================================


def _coerce_string(f: BaseField, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, str | int | float):
        raise _mismatch(f"{f.label} must be text")
    text = value if isinstance(value, str) else values.stringify(value)

    rules = f.validation
    if rules.min_length is not None and len(text) < rules.min_length:
        raise _violation(f"{f.label} must be at least {rules.min_length} characters")
    if rules.max_length is not None and len(text) > rules.max_length:
        raise _violation(f"{f.label} must be at most {rules.max_length} characters")
    if rules.pattern and re.fullmatch(rules.pattern, text) is None:
        raise _violation(f"{f.label} format is invalid")

    if f.type == "email" and not EMAIL_RE.fullmatch(text):
        raise _mismatch(f"{f.label} must be a valid email address")
    if f.type == "url":
        parsed = urlparse(text)
        if (
            parsed.scheme not in ("http", "https")
            or not parsed.hostname
            or any(ch.isspace() for ch in text)
        ):
            raise _mismatch(f"{f.label} must be a valid http(s) URL")
    return text


def _on_step(number: float, base: float, step: float) -> bool:
    quotient = (number - base) / step
    return abs(quotient - round(quotient)) <= STEP_TOLERANCE * max(1.0, abs(quotient))


def _coerce_number(f: NumberField, value: Any) -> int | float:
    number = values.parse_number(value)
    if number is None:
        raise _mismatch(f"{f.label} must be a valid number")

    rules = f.validation
    if rules.min is not None and number < rules.min:
        raise _violation(f"{f.label} must be at least {values.stringify(rules.min)}")
    if rules.max is not None and number > rules.max:
        raise _violation(f"{f.label} must be at most {values.stringify(rules.max)}")
    if rules.step is not None:
        base = rules.min if rules.min is not None else 0
        if not _on_step(number, base, rules.step):
            raise _violation(
                f"{f.label} must be in steps of {values.stringify(rules.step)} "
                f"from {values.stringify(base)}"
            )
    return number


def _check_date_bounds(f: DateField | DatetimeField, day) -> None:
    rules = f.validation
    if rules.min is not None and day < values.parse_date(rules.min):
        raise _violation(f"{f.label} must be on or after {rules.min}")
    if rules.max is not None and day > values.parse_date(rules.max):
        raise _violation(f"{f.label} must be on or before {rules.max}")


def _coerce_date(f: DateField, value: Any) -> str:
    day = values.parse_date(value)
    if day is None:
        raise _mismatch(f"{f.label} must be a valid date")
    _check_date_bounds(f, day)
    return values.format_date(day)


def _coerce_datetime(f: DatetimeField, value: Any) -> str:
    moment = values.parse_datetime(value)
    if moment is None:
        raise _mismatch(f"{f.label} must be a valid date and time")
    _check_date_bounds(f, moment.date())
    return values.format_datetime(moment)


def _coerce_boolean(f: BooleanField, value: Any) -> bool:
    flag = values.parse_boolean(value)
    if flag is None:
        raise _mismatch(f"{f.label} must be true or false")
    return flag


def _coerce_select(f: SelectField, value: Any) -> str:
    if not isinstance(value, str):
        raise _mismatch(f"{f.label} must be one of: {', '.join(f.options)}")
    if value not in f.options:
        raise _violation(f"{f.label} must be one of: {', '.join(f.options)}")
    return value


def _coerce_multiselect(f: MultiselectField, value: Any) -> list[str]:
    if not isinstance(value, list | tuple):
        raise _mismatch(f"{f.label} must be a list")
    invalid = [v for v in value if not isinstance(v, str) or v not in f.options]
    if invalid:
        raise _violation(
            f"{f.label} contains invalid options: {', '.join(values.stringify(v) for v in invalid)}"
        )
    return list(dict.fromkeys(value))


def coerce_value(f: BaseField, value: Any) -> Any:
    """
    Type-check and coerce one non-empty value for field ``f``.

    Raises:
        _Reject: value has the wrong type or breaks a constraint.
    """
    if f.type in STRING_TYPES:
        return _coerce_string(f, value)
    if f.type == "number":
        return _coerce_number(f, value)
    if f.type == "date":
        return _coerce_date(f, value)
    if f.type == "datetime":
        return _coerce_datetime(f, value)
    if f.type == "boolean":
        return _coerce_boolean(f, value)
    if f.type == "select":
        return _coerce_select(f, value)
    if f.type == "multiselect":
        return _coerce_multiselect(f, value)
    raise TypeError(f"Unhandled field type: {f.type!r}")


# ============================================================
# Entry points
# ============================================================


def _as_fields(schema: Any) -> list[BaseField]:
    if isinstance(schema, ParsedSchema):
        return list(schema.fields)
    if isinstance(schema, Mapping):
        return list(parse_schema(schema).fields)
    fields = list(schema)
    if all(isinstance(f, BaseField) for f in fields):
        return fields
    if all(isinstance(f, Mapping) for f in fields):
        # raw definitions; raises SchemaError if malformed
        return parse_fields(fields)
    raise TypeError("schema must be a ParsedSchema or a list of field definitions")


def validate_form_data(schema: Any, row: Mapping | None) -> ValidationResult:
    """
    Validate and coerce one row.

    Args:
        schema: ParsedSchema, parsed fields, or raw field definitions
        row: candidate row data (untyped)

    Returns:
        ValidationResult. ``data`` holds the active, present fields coerced,
        plus inactive fields passed through unchanged. Keys not declared in
        the schema are dropped.
    """
    fields = _as_fields(schema)
    row = row or {}
    if not isinstance(row, Mapping):
        return ValidationResult(
            is_valid=False,
            errors=[FieldError("", errors.FIELD_TYPE_MISMATCH, "Row data must be an object")],
        )

    problems: list[FieldError] = []
    data: dict[str, Any] = {}

    for f in fields:
        present = f.key in row
        value = row.get(f.key)

        if not is_field_active(f, row):
            if present:
                data[f.key] = value
            continue

        # [] is a value here; only visibility's isEmpty treats it as empty
        if value is None or value == "":
            if f.required:
                problems.append(
                    FieldError(f.key, errors.REQUIRED_FIELD_MISSING, f"{f.label} is required")
                )
            continue

        try:
            data[f.key] = coerce_value(f, value)
        except _Reject as rejection:
            problems.append(FieldError(f.key, rejection.code, rejection.message))

    if problems:
        logger.debug("Row rejected with %d error(s)", len(problems))
        return ValidationResult(is_valid=False, errors=problems)
    return ValidationResult(is_valid=True, data=data)


def _default_for(f: BaseField) -> Any:
    raw = f.default_value
    if f.type == "multiselect":
        if isinstance(raw, list):
            return list(raw)
        if isinstance(raw, str):
            try:
                decoded = json.loads(raw)
            except json.JSONDecodeError:
                decoded = raw
            if isinstance(decoded, list):
                return decoded
            if isinstance(decoded, str):
                return values.split_csv(decoded)
        return []
    return raw


def default_values(fields: Iterable[BaseField]) -> dict[str, Any]:
    """
    Initial form values: the declared default, else a type-appropriate blank
    (False for booleans, 0 for numbers, [] for multiselect, "" otherwise).
    """
    defaults: dict[str, Any] = {}
    for f in _as_fields(fields):
        if not values.is_empty(f.default_value):
            defaults[f.key] = _default_for(f)
        elif f.type == "boolean":
            defaults[f.key] = False
        elif f.type == "number":
            defaults[f.key] = 0
        elif f.type == "multiselect":
            defaults[f.key] = []
        else:
            defaults[f.key] = ""
    return defaults
