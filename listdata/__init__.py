# List Data Engine - Core Library
"""
Schema DSL, row validation, GitHub issue sync and the row query layer.
"""

from .dsl import (
    ParsedSchema,
    ValidationResult,
    parse_schema,
    validate_form_data,
    validate_schema_document,
)
from .github import issue_to_row, row_data_to_issue_payload, sync_list_cache_from_github
from .query import QueryResult, query_rows

__all__ = [
    "ParsedSchema",
    "parse_schema",
    "validate_schema_document",
    "ValidationResult",
    "validate_form_data",
    "issue_to_row",
    "row_data_to_issue_payload",
    "sync_list_cache_from_github",
    "QueryResult",
    "query_rows",
]
