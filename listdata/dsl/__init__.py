"""
List schema DSL: field models, schema parsing and row validation.
"""

from .parser import (
    SchemaReport,
    load_schema_document,
    parse_fields,
    parse_schema,
    schema_to_document,
    validate_schema_document,
)
from .types import FIELD_TYPES, BaseField, ParsedSchema, VisibilityCondition
from .validator import (
    FieldError,
    ValidationResult,
    default_values,
    is_field_active,
    validate_form_data,
    visible_fields,
)

__all__ = [
    # Model
    "FIELD_TYPES",
    "BaseField",
    "ParsedSchema",
    "VisibilityCondition",
    # Parsing
    "SchemaReport",
    "parse_fields",
    "parse_schema",
    "validate_schema_document",
    "schema_to_document",
    "load_schema_document",
    # Validation
    "FieldError",
    "ValidationResult",
    "validate_form_data",
    "is_field_active",
    "visible_fields",
    "default_values",
]
