"""JSON Patch operation model (RFC 6902 subset).

Only ``replace``, ``add`` and ``remove`` are supported. Paths are JSON
Pointers whose first segment names a top-level schema field.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, model_validator


class PatchOp(str, enum.Enum):
    """Supported patch operations."""

    REPLACE = "replace"
    ADD = "add"
    REMOVE = "remove"

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class JsonPatchOp(BaseModel):
    """One addressed edit.

    ``value`` is required for replace/add. An explicit ``null`` counts as
    present, so ``model_fields_set`` (not ``value is None``) decides.
    """

    model_config = {"frozen": True}

    op: PatchOp
    path: str
    value: Any = None

    @model_validator(mode="after")
    def _require_value(self) -> JsonPatchOp:
        if self.op in (PatchOp.REPLACE, PatchOp.ADD) and "value" not in self.model_fields_set:
            raise ValueError(f"'value' is required for {self.op.value}")
        return self

    @property
    def has_value(self) -> bool:
        return "value" in self.model_fields_set

    def to_dict(self) -> dict:
        """Wire form: ``{"op", "path"}`` plus ``"value"`` when present."""
        data: dict[str, Any] = {"op": self.op.value, "path": self.path}
        if self.has_value:
            data["value"] = self.value
        return data

    def __str__(self) -> str:
        if self.has_value:
            return f"{self.op.value} {self.path} = {self.value!r}"
        return f"{self.op.value} {self.path}"
