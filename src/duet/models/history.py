"""Audit history models.

HistoryEntry is immutable and carries no reference to the snapshot it
affected; callers reconstruct state history by replaying patches.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel

from duet.models.result import EditResult


class Source(str, enum.Enum):
    """Who submitted a patch."""

    USER = "user"
    LLM = "llm"
    SYSTEM = "system"

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class HistoryEntry(BaseModel):
    """One patch-application attempt, successful or not."""

    model_config = {"frozen": True}

    id: str
    timestamp: int  # epoch milliseconds
    patch: list[Any]
    source: Source
    result: EditResult

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "patch": self.patch,
            "source": self.source.value,
            "result": self.result.to_dict(),
        }

    def __str__(self) -> str:
        status = "ok" if self.result.success else "failed"
        return f"#{self.id} [{self.source.value}] {len(self.patch)} op(s) {status}"
