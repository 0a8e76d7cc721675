"""
Schema Parser/Normalizer.

Turns a loosely-typed schema document ({name, description, fields}) into a
ParsedSchema of tagged field models, or rejects it with a SchemaError.

parse_schema() stops at the first problem. validate_schema_document() walks
the whole document and reports every problem plus authoring warnings, for
schema editors that want all the feedback at once.

Parsing is pure: nothing here touches storage.
"""

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from listdata import errors
from listdata.dsl.types import (
    CHOICE_TYPES,
    FIELD_ADAPTER,
    FIELD_TYPES,
    BaseField,
    ParsedSchema,
)
from listdata.errors import SchemaError

logger = logging.getLogger(__name__)


@dataclass
class SchemaReport:
    """Outcome of validate_schema_document()."""

    is_valid: bool
    errors: list[dict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    field_count: int = 0
    required_field_count: int = 0
    conditional_field_count: int = 0

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": self.errors,
            "warnings": self.warnings,
            "field_count": self.field_count,
            "required_field_count": self.required_field_count,
            "conditional_field_count": self.conditional_field_count,
        }


# ============================================================
# Field-level checks
# ============================================================


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in FIELD_TYPES)
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def _options_of(raw: Mapping) -> Any:
    options = raw.get("options")
    if options is None and isinstance(raw.get("validation"), Mapping):
        # Older documents keep choices under validation.options
        options = raw["validation"].get("options")
    return options


def _prepare(raw: Mapping, index: int) -> dict:
    """Fill defaults and move options to their normalized place."""
    candidate = dict(raw)
    if candidate.get("displayOrder") is None and candidate.get("display_order") is None:
        candidate["displayOrder"] = index
    if candidate.get("label") in (None, ""):
        candidate["label"] = candidate["key"]

    if isinstance(candidate.get("validation"), Mapping):
        rules = dict(candidate["validation"])
        rules.pop("options", None)
        candidate["validation"] = rules

    if candidate["type"] in CHOICE_TYPES:
        candidate["options"] = _options_of(raw)
    else:
        candidate.pop("options", None)
    return candidate


def _check_fields(raw_fields: Sequence[Any], stop_first: bool) -> tuple[list[BaseField], list[SchemaError]]:
    problems: list[SchemaError] = []
    parsed: list[BaseField] = []
    seen: set[str] = set()

    def report(code: str, message: str, key: str | None = None) -> bool:
        problems.append(SchemaError(code, message, field=key))
        return stop_first

    for index, raw in enumerate(raw_fields):
        if not isinstance(raw, Mapping):
            if report(errors.INVALID_FIELD_DEFINITION, f"Field at index {index} must be an object"):
                return parsed, problems
            continue

        key = raw.get("key")
        if not isinstance(key, str) or not key:
            if report(
                errors.INVALID_FIELD_DEFINITION,
                f"Field at index {index} must have a 'key' property (string)",
            ):
                return parsed, problems
            continue

        if key in seen:
            if report(errors.DUPLICATE_FIELD_KEY, f"Duplicate field key: {key}", key):
                return parsed, problems
            continue
        seen.add(key)

        field_type = raw.get("type")
        if field_type not in FIELD_TYPES:
            if report(
                errors.INVALID_FIELD_TYPE,
                f"Field '{key}' has invalid type {field_type!r}. Valid types: {', '.join(FIELD_TYPES)}",
                key,
            ):
                return parsed, problems
            continue

        if field_type in CHOICE_TYPES:
            options = _options_of(raw)
            if not isinstance(options, list) or not options:
                if report(
                    errors.MISSING_OPTIONS,
                    f"Field '{key}' (type: {field_type}) must have a non-empty 'options' array",
                    key,
                ):
                    return parsed, problems
                continue

        try:
            parsed.append(FIELD_ADAPTER.validate_python(_prepare(raw, index)))
        except ValidationError as e:
            if report(
                errors.INVALID_FIELD_DEFINITION,
                f"Field '{key}' is invalid: {_describe_validation_error(e)}",
                key,
            ):
                return parsed, problems

    for problem in _check_visibility(parsed, seen):
        if report(problem.code, problem.message, problem.field):
            return parsed, problems

    return parsed, problems


def _check_visibility(fields: list[BaseField], declared: set[str]) -> list[SchemaError]:
    """Unknown / self references, then reference cycles."""
    problems = []
    parsed_keys = {f.key for f in fields}
    refs: dict[str, str] = {}

    for f in fields:
        if f.visibility is None:
            continue
        target = f.visibility.field
        if target == f.key:
            problems.append(
                SchemaError(
                    errors.UNKNOWN_VISIBILITY_REFERENCE,
                    f"Field '{f.key}' visibility condition cannot reference itself",
                    f.key,
                )
            )
        elif target not in declared:
            problems.append(
                SchemaError(
                    errors.UNKNOWN_VISIBILITY_REFERENCE,
                    f"Field '{f.key}' visibility condition references unknown field '{target}'",
                    f.key,
                )
            )
        elif target in parsed_keys:
            refs[f.key] = target

    # Each field has at most one reference, so a walk either ends or loops.
    reported: set[frozenset[str]] = set()
    for start in refs:
        path: list[str] = []
        node = start
        while node in refs and node not in path:
            path.append(node)
            node = refs[node]
        if node in path:
            cycle = path[path.index(node) :]
            members = frozenset(cycle)
            if members not in reported:
                reported.add(members)
                problems.append(
                    SchemaError(
                        errors.CIRCULAR_VISIBILITY_REFERENCE,
                        f"Visibility conditions form a cycle: {' -> '.join(cycle + [node])}",
                        cycle[0],
                    )
                )
    return problems


def _check_document(document: Any, stop_first: bool) -> tuple[ParsedSchema | None, list[SchemaError]]:
    if not isinstance(document, Mapping):
        return None, [SchemaError(errors.INVALID_FIELD_DEFINITION, "Schema must be an object")]

    problems: list[SchemaError] = []
    name = document.get("name")
    if not isinstance(name, str) or not name.strip():
        problems.append(
            SchemaError(errors.INVALID_FIELD_DEFINITION, "Schema must have a 'name' property (string)")
        )
        if stop_first:
            return None, problems

    description = document.get("description")
    if description is not None and not isinstance(description, str):
        problems.append(
            SchemaError(errors.INVALID_FIELD_DEFINITION, "Schema 'description' must be a string")
        )
        if stop_first:
            return None, problems

    raw_fields = document.get("fields")
    if not isinstance(raw_fields, list) or not raw_fields:
        problems.append(
            SchemaError(
                errors.INVALID_FIELD_DEFINITION,
                "Schema must have a non-empty 'fields' property (array)",
            )
        )
        return None, problems

    fields, field_problems = _check_fields(raw_fields, stop_first)
    problems.extend(field_problems)
    if problems:
        return None, problems

    return (
        ParsedSchema(
            name=name.strip(),
            description=description or None,
            fields=sorted(fields, key=lambda f: f.display_order),
        ),
        [],
    )


# ============================================================
# Public API
# ============================================================


def parse_fields(raw_fields: Sequence[Any]) -> list[BaseField]:
    """
    Parse a bare list of field definitions.

    Same checks as parse_schema() without the document envelope. Returns the
    fields in presentation order (displayOrder, then declaration order).
    """
    if not isinstance(raw_fields, list | tuple):
        raise SchemaError(errors.INVALID_FIELD_DEFINITION, "Fields must be an array")
    fields, problems = _check_fields(raw_fields, stop_first=True)
    if problems:
        raise problems[0]
    return sorted(fields, key=lambda f: f.display_order)


def parse_schema(document: Any) -> ParsedSchema:
    """
    Validate and normalize a schema document.

    Raises:
        SchemaError: first problem found; the schema is rejected as a whole.
    """
    parsed, problems = _check_document(document, stop_first=True)
    if problems:
        logger.debug("Schema rejected: %s", problems[0].message)
        raise problems[0]
    return parsed


def validate_schema_document(document: Any) -> SchemaReport:
    """Report every problem and authoring warning in a schema document."""
    _, problems = _check_document(document, stop_first=False)

    warnings: list[str] = []
    raw_fields = document.get("fields") if isinstance(document, Mapping) else None
    raw_fields = [f for f in raw_fields if isinstance(f, Mapping)] if isinstance(raw_fields, list) else []

    for raw in raw_fields:
        key = raw.get("key")
        if raw.get("required") and raw.get("visibility"):
            warnings.append(
                f"Field '{key}' is required but has conditional visibility; "
                "it is only enforced while the condition holds"
            )
        order = raw.get("displayOrder")
        if isinstance(order, int) and order < 0:
            warnings.append(f"Field '{key}' has negative display order")

    return SchemaReport(
        is_valid=not problems,
        errors=[p.to_dict() for p in problems],
        warnings=warnings,
        field_count=len(raw_fields),
        required_field_count=sum(1 for f in raw_fields if f.get("required")),
        conditional_field_count=sum(1 for f in raw_fields if f.get("visibility")),
    )


def schema_to_document(parsed: ParsedSchema) -> dict:
    """Convert a parsed schema back to the authoring format, for editing."""
    fields = []
    for f in parsed.fields:
        doc = f.model_dump(by_alias=True, exclude_none=True)
        if not doc.get("validation"):
            doc.pop("validation", None)
        fields.append(doc)

    document: dict[str, Any] = {"name": parsed.name, "fields": fields}
    if parsed.description:
        document["description"] = parsed.description
    return document


def load_schema_document(path: str | Path) -> dict:
    """
    Read a schema document from a .json, .yaml or .yml file.

    Raises:
        SchemaError: the file is not valid JSON/YAML or not an object.
        OSError: the file cannot be read.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            document = yaml.safe_load(text)
        else:
            document = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise SchemaError(errors.INVALID_FIELD_DEFINITION, f"Cannot read {path.name}: {e}") from e

    if not isinstance(document, dict):
        raise SchemaError(errors.INVALID_FIELD_DEFINITION, f"{path.name} must contain an object")
    return document
