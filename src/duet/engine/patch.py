"""Patch engine for Duet.

Turns a batch of JSON Patch operations into one all-or-nothing update of a
SharedState. The engine works on a deep copy of the snapshot, validates
every touched root field, and only then commits via ``set_many()``. The
first failing operation aborts the batch; the live snapshot is never
touched on failure.

Nested writes (``/contact/name``) re-validate the whole root-field value,
so whole-object refinements still hold after a single leaf changes.
``remove`` on a nested path is tolerant: a missing intermediate segment is
a no-op, while ``replace``/``add`` create missing intermediate objects.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from duet.exceptions import (
    CommitFailureError,
    DuetError,
    FieldValidationError,
    MalformedPatchError,
    UnknownFieldError,
)
from duet.models.history import Source
from duet.models.patch import JsonPatchOp, PatchOp
from duet.models.result import EditResult

if TYPE_CHECKING:
    from duet.engine.audit import AuditLog
    from duet.schema import DuetSchema
    from duet.store import SharedState

logger = logging.getLogger(__name__)

SHAPE_ERROR = "Expected JSON Patch array or { patch: [...] } format"

# RFC 6901 array index: ASCII digits without a leading zero
_ARRAY_INDEX = re.compile(r"0|[1-9][0-9]*")


def parse_pointer(path: str) -> list[str]:
    """Split a JSON Pointer into unescaped segments.

    A leading ``/`` is optional. ``~1`` decodes to ``/`` and ``~0`` to ``~``.

    >>> parse_pointer("/contact/name")
    ['contact', 'name']
    """
    raw = path[1:] if path.startswith("/") else path
    return [seg.replace("~1", "/").replace("~0", "~") for seg in raw.split("/")]


def parse_patch_text(text: str) -> list[Any]:
    """Parse raw text into a list of operations.

    Accepts a bare JSON array or an object with a ``patch`` array.

    Raises:
        MalformedPatchError: On invalid JSON or any other top-level shape.
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError, RecursionError) as exc:
        raise MalformedPatchError(f"JSON parse error: {exc}") from exc
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict) and isinstance(parsed.get("patch"), list):
        return parsed["patch"]
    raise MalformedPatchError(SHAPE_ERROR)


def coerce_operation(index: int, raw: Any) -> JsonPatchOp:
    """Turn a dict (or JsonPatchOp) into a validated JsonPatchOp."""
    if isinstance(raw, JsonPatchOp):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedPatchError(
            f"Invalid operation at index {index}: expected object, "
            f"got {type(raw).__name__}"
        )
    try:
        return JsonPatchOp.model_validate(dict(raw))
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ()))
        msg = first.get("msg", "invalid")
        detail = f"{loc}: {msg}" if loc else msg
        raise MalformedPatchError(
            f"Invalid operation at index {index}: {detail}"
        ) from None


def _wire(raw: Any) -> Any:
    return raw.to_dict() if isinstance(raw, JsonPatchOp) else raw


class PatchEngine:
    """Applies operation batches to a SharedState and audits every attempt.

    ``apply()`` is total: it always returns an EditResult and never raises
    for bad input.
    """

    def __init__(self, schema: DuetSchema, state: SharedState, audit: AuditLog) -> None:
        self._schema = schema
        self._state = state
        self._audit = audit

    def apply(
        self,
        patch: Sequence[JsonPatchOp | Mapping[str, Any]],
        source: Source = Source.LLM,
    ) -> EditResult:
        """Apply *patch* atomically and record the attempt.

        Args:
            patch: Ordered operations, as JsonPatchOp instances or plain dicts.
            source: Who submitted the batch.

        Returns:
            ``EditResult.ok(len(patch))`` if every operation validated and
            the commit succeeded, otherwise ``EditResult.fail(reason)`` with
            the state unchanged.
        """
        if isinstance(patch, (str, bytes, Mapping)) or not isinstance(patch, Sequence):
            result = EditResult.fail(SHAPE_ERROR)
            self._audit.record([], source, result)
            return result

        try:
            with self._state.locked():
                applied = self._apply(patch)
        except DuetError as exc:
            result = EditResult.fail(str(exc))
            logger.debug("Rejected %d-op patch from %s: %s", len(patch), source, exc)
        else:
            result = EditResult.ok(applied)
            logger.debug("Applied %d-op patch from %s", applied, source)
        self._audit.record([_wire(op) for op in patch], source, result)
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply(self, patch: Sequence[Any]) -> int:
        base = self._state.snapshot()
        candidates: dict[str, Any] = {}

        def candidate(root: str) -> Any:
            if root in candidates:
                return copy.deepcopy(candidates[root])
            return copy.deepcopy(base[root])

        for index, raw in enumerate(patch):
            op = coerce_operation(index, raw)
            segments = parse_pointer(op.path)
            root, nested = segments[0], segments[1:]
            if root not in self._schema:
                raise UnknownFieldError(root)

            if op.op is PatchOp.REMOVE:
                if not nested:
                    candidates[root] = self._schema.default(root)
                else:
                    value = candidate(root)
                    _remove_at(value, nested)
                    candidates[root] = value
                continue

            if not nested:
                check = self._schema.validate(root, op.value)
                if not check.ok:
                    raise FieldValidationError(root, check.error or "Invalid value")
                candidates[root] = check.value
                continue

            value = candidate(root)
            if value is None:
                value = {}
            _set_at(value, nested, copy.deepcopy(op.value), op)
            check = self._schema.validate(root, value)
            if not check.ok:
                raise FieldValidationError(op.path, check.error or "Invalid value")
            candidates[root] = check.value

        if candidates and not self._state.set_many(candidates):
            raise CommitFailureError()
        return len(patch)


def _list_index(segment: str, length: int, *, allow_end: bool) -> int | None:
    if segment == "-":
        return length if allow_end else None
    if not _ARRAY_INDEX.fullmatch(segment):
        return None
    index = int(segment)
    limit = length if allow_end else length - 1
    return index if index <= limit else None


def _set_at(container: Any, segments: list[str], value: Any, op: JsonPatchOp) -> None:
    """Write *value* at *segments* inside *container*, creating missing objects."""
    target = container
    for seg in segments[:-1]:
        if isinstance(target, dict):
            if target.get(seg) is None:
                target[seg] = {}
            target = target[seg]
        elif isinstance(target, list):
            index = _list_index(seg, len(target), allow_end=False)
            if index is None:
                raise FieldValidationError(op.path, f"Invalid array index: {seg}")
            target = target[index]
        else:
            raise FieldValidationError(
                op.path, f"Cannot traverse into {type(target).__name__} at {seg!r}"
            )

    last = segments[-1]
    if isinstance(target, dict):
        target[last] = value
    elif isinstance(target, list):
        index = _list_index(last, len(target), allow_end=op.op is PatchOp.ADD)
        if index is None:
            raise FieldValidationError(op.path, f"Invalid array index: {last}")
        if op.op is PatchOp.ADD:
            target.insert(index, value)
        else:
            target[index] = value
    else:
        raise FieldValidationError(
            op.path, f"Cannot traverse into {type(target).__name__} at {last!r}"
        )


def _remove_at(container: Any, segments: list[str]) -> None:
    """Delete the key at *segments*; silently does nothing if the path is absent."""
    target = container
    for seg in segments[:-1]:
        if isinstance(target, dict) and seg in target:
            target = target[seg]
        elif isinstance(target, list):
            index = _list_index(seg, len(target), allow_end=False)
            if index is None:
                return
            target = target[index]
        else:
            return

    last = segments[-1]
    if isinstance(target, dict):
        target.pop(last, None)
    elif isinstance(target, list):
        index = _list_index(last, len(target), allow_end=False)
        if index is not None:
            del target[index]
