"""Shared state container for Duet.

SharedState holds exactly one State Snapshot (field name -> value) and is
the only writer of it. Every mutation goes through ``_commit()``, which
swaps the whole snapshot and saves it under the lock, then notifies
listeners.

Commits are serialized by a re-entrant lock, so a validate-then-write cycle
in ``set_many()`` cannot interleave with another thread's.
"""

from __future__ import annotations

import copy
import logging
import threading
import types
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from duet.exceptions import UnknownFieldError

if TYPE_CHECKING:
    from duet.schema import DuetSchema
    from duet.storage.repositories import SnapshotRepository

logger = logging.getLogger(__name__)

Listener = Callable[[Mapping[str, Any], Mapping[str, Any]], None]
"""Called as ``listener(new_snapshot, previous_snapshot)`` after each commit."""


class SharedState:
    """Validated, all-or-nothing state store bound to a DuetSchema.

    Example::

        state = SharedState(schema)
        state.set("budget", 10000)          # True
        state.set("budget", -5)             # False, state untouched
        state.set_many({"budget": 1, "days": 0})  # False if days is invalid
        state.reset()
    """

    def __init__(
        self,
        schema: DuetSchema,
        *,
        repository: SnapshotRepository | None = None,
        persist_key: str | None = None,
    ) -> None:
        self._schema = schema
        self._repository = repository
        self._persist_key = persist_key or schema.name
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        self._data: dict[str, Any] = (
            self._hydrate() if repository is not None else schema.defaults()
        )

    def __repr__(self) -> str:
        return f"SharedState({self._schema.name!r}, fields={len(self._data)})"

    @property
    def schema(self) -> DuetSchema:
        return self._schema

    @property
    def persist_key(self) -> str | None:
        return self._persist_key if self._repository is not None else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current(self) -> Mapping[str, Any]:
        """Read-only view of a deep copy of the current snapshot."""
        with self._lock:
            return types.MappingProxyType(copy.deepcopy(self._data))

    @property
    def data(self) -> Mapping[str, Any]:
        return self.current()

    def get(self, field_name: str) -> Any:
        """Deep copy of one field's current value."""
        with self._lock:
            if field_name not in self._data:
                raise UnknownFieldError(field_name)
            return copy.deepcopy(self._data[field_name])

    def snapshot(self) -> dict[str, Any]:
        """Mutable deep copy of the current snapshot."""
        with self._lock:
            return copy.deepcopy(self._data)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def commit(self, snapshot: Mapping[str, Any]) -> None:
        """Replace the entire snapshot.

        *snapshot* must name exactly the registered fields. Values are
        trusted: callers that accept outside input go through ``set()`` or
        ``set_many()`` instead.

        Raises:
            UnknownFieldError: If *snapshot* has a key the schema lacks.
            ValueError: If *snapshot* is missing a registered field.
        """
        for key in snapshot:
            if key not in self._schema:
                raise UnknownFieldError(key)
        missing = [k for k in self._schema.field_ids() if k not in snapshot]
        if missing:
            raise ValueError(f"Snapshot is missing field(s): {', '.join(missing)}")
        self._commit(copy.deepcopy(dict(snapshot)))

    def set(self, field_name: str, value: Any) -> bool:
        """Validate and set a single field.

        Returns False (and leaves state untouched) on an unknown field or a
        rejected value. Never raises for bad input.
        """
        try:
            result = self._schema.validate(field_name, value)
        except UnknownFieldError as exc:
            logger.warning("Rejected set: %s", exc)
            return False
        if not result.ok:
            logger.warning("Validation failed for %s: %s", field_name, result.error)
            return False
        with self._lock:
            new_data = dict(self._data)
            new_data[field_name] = copy.deepcopy(result.value)
            self._commit(new_data)
        return True

    def set_many(self, updates: Mapping[str, Any]) -> bool:
        """Validate every registered key in *updates*, then commit them together.

        Keys that are not registered fields are ignored. If any value is
        rejected, nothing is written and False is returned.
        """
        validated: dict[str, Any] = {}
        with self._lock:
            for key, value in updates.items():
                if key not in self._schema:
                    logger.debug("set_many ignoring unknown key %r", key)
                    continue
                result = self._schema.validate(key, value)
                if not result.ok:
                    logger.warning("Validation failed for %s: %s", key, result.error)
                    return False
                validated[key] = copy.deepcopy(result.value)
            new_data = dict(self._data)
            new_data.update(validated)
            self._commit(new_data)
        return True

    def reset(self) -> None:
        """Restore every field to its registered default."""
        with self._lock:
            self._commit(self._schema.defaults())

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the commit lock across a read-validate-write cycle."""
        with self._lock:
            yield

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, new_data: dict[str, Any]) -> None:
        # the saved snapshot must be the one that won the swap
        with self._lock:
            previous = self._data
            self._data = new_data
            listeners = list(self._listeners)
            self._persist(new_data)
        if not listeners:
            return
        new_view = types.MappingProxyType(copy.deepcopy(new_data))
        old_view = types.MappingProxyType(copy.deepcopy(previous))
        for listener in listeners:
            try:
                listener(new_view, old_view)
            except Exception:
                logger.exception("State listener %r failed", listener)

    def _persist(self, data: dict[str, Any]) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save(self._persist_key, self._schema.name, data)
        except Exception as exc:
            logger.warning("Failed to persist snapshot %r: %s", self._persist_key, exc)

    def _hydrate(self) -> dict[str, Any]:
        """Load the persisted snapshot, keeping only fields that still validate."""
        data = self._schema.defaults()
        try:
            stored = self._repository.load(self._persist_key)
        except Exception as exc:
            logger.warning("Failed to load snapshot %r: %s", self._persist_key, exc)
            return data
        if not stored:
            return data
        for key, value in stored.items():
            if key not in self._schema:
                logger.info("Dropping persisted value for unknown field %r", key)
                continue
            result = self._schema.validate(key, value)
            if result.ok:
                data[key] = result.value
            else:
                logger.info(
                    "Persisted value for %r no longer valid (%s); using default",
                    key,
                    result.error,
                )
        return data


def create_store(
    schema: DuetSchema,
    *,
    repository: SnapshotRepository | None = None,
    persist_key: str | None = None,
) -> SharedState:
    """Factory alias for :class:`SharedState`."""
    return SharedState(schema, repository=repository, persist_key=persist_key)
