"""Abstract repository interfaces for Duet storage.

No SQLAlchemy imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class SnapshotRepository(ABC):
    """Abstract interface for persisted state snapshots, keyed by persist key."""

    @abstractmethod
    def load(self, key: str) -> dict[str, Any] | None:
        """Return the stored snapshot for *key*, or None if absent."""
        ...

    @abstractmethod
    def save(self, key: str, schema_name: str, data: dict[str, Any]) -> None:
        """Insert or overwrite the snapshot for *key*."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the snapshot for *key*. Returns True if one existed."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored persist keys, sorted."""
        ...
