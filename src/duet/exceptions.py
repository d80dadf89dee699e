"""Duet exception hierarchy.

All Duet-specific exceptions inherit from DuetError.

The patch engine raises UnknownFieldError, FieldValidationError,
MalformedPatchError and CommitFailureError internally and converts them
into failed EditResults at its boundary. SchemaError is raised to the
caller, since a bad schema is a programming error.
"""


class DuetError(Exception):
    """Base exception for all Duet errors."""


class SchemaError(DuetError):
    """Raised when a schema or field definition is invalid."""


class UnknownFieldError(DuetError):
    """Raised when a path's root segment is not a registered field."""

    def __init__(self, field_name: str) -> None:
        self.field_name = field_name
        super().__init__(f"Unknown field: {field_name}")


class FieldValidationError(DuetError):
    """Raised when a value is rejected by its field's validator.

    Named FieldValidationError (not ValidationError) to avoid
    collision with pydantic.ValidationError.
    """

    def __init__(self, target: str, reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"Invalid value for {target}: {reason}")


class MalformedPatchError(DuetError):
    """Raised when patch input is not valid JSON or has the wrong shape."""


class CommitFailureError(DuetError):
    """Raised when a fully validated batch is rejected by the store."""

    def __init__(self) -> None:
        super().__init__("Failed to commit changes to store")


class PersistenceError(DuetError):
    """Raised by storage backends when a snapshot cannot be read or written."""
