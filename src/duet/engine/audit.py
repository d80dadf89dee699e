"""Append-only audit log of patch-application attempts.

Identifiers come from a counter owned by each AuditLog instance: "1", "2",
... until ``clear()`` resets it. Two stores never share a counter.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any

from duet.models.history import HistoryEntry, Source
from duet.models.result import EditResult

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class AuditLog:
    """Ordered history of every applied or rejected batch."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._counter = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def record(
        self,
        patch: list[Any],
        source: Source,
        result: EditResult,
    ) -> HistoryEntry:
        """Append an entry for one attempt and return it.

        *patch* is deep-copied so later caller mutation cannot rewrite history.
        """
        with self._lock:
            self._counter += 1
            entry = HistoryEntry(
                id=str(self._counter),
                timestamp=_now_ms(),
                patch=copy.deepcopy(list(patch)),
                source=source,
                result=result,
            )
            self._entries.append(entry)
        logger.debug("Audit #%s %s", entry.id, entry.result)
        return entry.model_copy(deep=True)

    def all(self) -> list[HistoryEntry]:
        """Entries oldest first, deep-copied so callers cannot rewrite history."""
        with self._lock:
            return [entry.model_copy(deep=True) for entry in self._entries]

    def clear(self) -> None:
        """Drop every entry and restart identifiers at 1."""
        with self._lock:
            self._entries.clear()
            self._counter = 0
