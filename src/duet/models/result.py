"""Edit result model: tagged success/failure outcome of a patch attempt."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, model_validator


class EditResult(BaseModel):
    """Outcome of applying a batch.

    Exactly one of ``applied`` (on success) or ``error`` (on failure) is set.
    Use :meth:`ok` / :meth:`fail` rather than the constructor.
    """

    model_config = {"frozen": True}

    success: bool
    applied: Optional[int] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_variant(self) -> EditResult:
        if self.success and (self.applied is None or self.error is not None):
            raise ValueError("successful EditResult needs 'applied' and no 'error'")
        if not self.success and (self.error is None or self.applied is not None):
            raise ValueError("failed EditResult needs 'error' and no 'applied'")
        return self

    @classmethod
    def ok(cls, applied: int) -> EditResult:
        return cls(success=True, applied=applied)

    @classmethod
    def fail(cls, error: str) -> EditResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        """Wire form: ``{"success", "applied"}`` or ``{"success", "error"}``."""
        return self.model_dump(exclude_none=True)

    def __bool__(self) -> bool:
        return self.success

    def __str__(self) -> str:
        return get_result_message(self)


def is_success(result: EditResult) -> bool:
    """Whether *result* is the success variant."""
    return result.success


def get_result_message(result: EditResult) -> str:
    """Human-readable message for *result*."""
    if result.success:
        return f"Successfully applied {result.applied} operation(s)"
    return result.error or ""
