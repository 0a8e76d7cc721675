"""
Exception types for the list engine.

Schema problems are fatal to the schema document. Row validation problems are
never raised from the validator; they are returned as FieldError data and only
wrapped in RowValidationError by the service layer. Sync errors propagate to
the caller so cron / refresh can log and retry on the next run.
"""

# Schema error codes
INVALID_FIELD_TYPE = "InvalidFieldType"
DUPLICATE_FIELD_KEY = "DuplicateFieldKey"
MISSING_OPTIONS = "MissingOptions"
UNKNOWN_VISIBILITY_REFERENCE = "UnknownVisibilityReference"
CIRCULAR_VISIBILITY_REFERENCE = "CircularVisibilityReference"
INVALID_FIELD_DEFINITION = "InvalidFieldDefinition"

# Row validation error codes
REQUIRED_FIELD_MISSING = "RequiredFieldMissing"
FIELD_TYPE_MISMATCH = "FieldTypeMismatch"
CONSTRAINT_VIOLATION = "ConstraintViolation"


class ListDataError(Exception):
    """Base class for all list engine errors."""


class SchemaError(ListDataError, ValueError):
    """A schema document was rejected."""

    def __init__(self, code: str, message: str, field: str | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"code": self.code, "field": self.field, "message": self.message}


class SyncError(ListDataError):
    """External dependency failure while syncing."""


class GitHubAPIError(SyncError):
    """Non-success response (or transport failure) from the GitHub API."""

    def __init__(self, message: str, status_code: int | None = None, transient: bool = False):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.transient = transient


class GitHubRateLimitError(GitHubAPIError):
    """403/429 from GitHub. Transient; the caller decides when to retry."""

    def __init__(self, message: str, status_code: int, retry_after: int | None = None):
        super().__init__(message, status_code=status_code, transient=True)
        self.retry_after = retry_after


class ListNotFoundError(ListDataError, LookupError):
    """List does not exist or is soft-deleted."""


class RowNotFoundError(ListDataError, LookupError):
    """Row does not exist in the list or is soft-deleted."""


class BulkLimitExceededError(ListDataError, ValueError):
    """Bulk insert larger than config.BULK_ROW_LIMIT."""


class UnsupportedOperationError(ListDataError):
    """Operation not available for this kind of list."""


class RowValidationError(ListDataError):
    """Row data failed validation. Carries the full ValidationResult."""

    def __init__(self, result, index: int | None = None):
        super().__init__("Validation failed")
        self.result = result
        self.index = index


class InvalidRepositoryError(ListDataError, ValueError):
    """github_repo is not in owner/name form."""
