"""LLM bridge for Duet.

LLMBridge is the surface an agent (or a UI acting through patches) talks
to: apply JSON Patch batches, read prompt context and tool schemas, and
inspect the audit history. It owns the PatchEngine and the AuditLog for
one SharedState.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from duet.context import render_compact_context, render_context
from duet.engine.audit import AuditLog
from duet.engine.patch import SHAPE_ERROR, PatchEngine, parse_patch_text
from duet.exceptions import MalformedPatchError
from duet.models.history import HistoryEntry, Source
from duet.models.result import EditResult
from duet.toolkit import ToolDefinition, build_function_schema

if TYPE_CHECKING:
    from duet.models.patch import JsonPatchOp
    from duet.schema import DuetSchema
    from duet.store import SharedState

logger = logging.getLogger(__name__)


class LLMBridge:
    """Patch application, prompt context, and audit trail for one state.

    Example::

        bridge = LLMBridge(schema, state)
        bridge.apply_json('[{"op":"replace","path":"/budget","value":10000}]')
        prompt = bridge.get_context()
        tools = [bridge.get_tool_definition().to_openai()]
    """

    def __init__(
        self,
        schema: DuetSchema,
        state: SharedState,
        *,
        transform_context: Callable[[str], str] | None = None,
        transform_function_schema: Callable[[dict], dict] | None = None,
        default_source: Source = Source.LLM,
    ) -> None:
        self._schema = schema
        self._state = state
        self._audit = AuditLog()
        self._engine = PatchEngine(schema, state, self._audit)
        self._transform_context = transform_context
        self._transform_function_schema = transform_function_schema
        self._default_source = Source(default_source)

    def _source(self, source: Source | str | None) -> Source:
        if source is None:
            return self._default_source
        try:
            return Source(source)
        except ValueError:
            raise ValueError(
                f"Unknown source {source!r}; expected one of "
                + ", ".join(s.value for s in Source)
            ) from None

    # ------------------------------------------------------------------
    # Applying edits
    # ------------------------------------------------------------------

    def apply_patch(
        self,
        patch: Sequence[JsonPatchOp | Mapping[str, Any]],
        source: Source | str | None = None,
    ) -> EditResult:
        """Apply a batch of operations atomically. Always audited."""
        return self._engine.apply(patch, self._source(source))

    def apply_json(self, text: str, source: Source | str | None = None) -> EditResult:
        """Parse raw model output and apply it.

        Accepts ``[...]`` or ``{"patch": [...]}``. Unparseable or wrongly
        shaped text returns a failure without reaching the engine, so it is
        not audited.
        """
        try:
            patch = parse_patch_text(text)
        except MalformedPatchError as exc:
            logger.debug("Rejected patch text: %s", exc)
            return EditResult.fail(str(exc))
        return self.apply_patch(patch, source)

    def apply_tool_call(
        self,
        arguments: str | Mapping[str, Any],
        source: Source | str | None = None,
    ) -> EditResult:
        """Apply the arguments of a ``patch_<schema>`` tool call.

        *arguments* may be the raw JSON string providers return or an
        already decoded ``{"patch": [...]}`` mapping.
        """
        if isinstance(arguments, str):
            return self.apply_json(arguments, source)
        patch = arguments.get("patch") if isinstance(arguments, Mapping) else None
        if not isinstance(patch, list):
            return EditResult.fail(SHAPE_ERROR)
        return self.apply_patch(patch, source)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def history(self) -> list[HistoryEntry]:
        """Every attempt so far, oldest first (a copy)."""
        return self._audit.all()

    def clear_history(self) -> None:
        """Empty the history; the next entry's id is "1" again."""
        self._audit.clear()

    # ------------------------------------------------------------------
    # Context and schemas
    # ------------------------------------------------------------------

    def get_context(self) -> str:
        context = render_context(self._schema, self._state.current())
        if self._transform_context is not None:
            return self._transform_context(context)
        return context

    def get_compact_context(self) -> str:
        return render_compact_context(self._schema, self._state.current())

    def get_function_schema(self) -> dict:
        fn_schema = build_function_schema(self._schema)
        if self._transform_function_schema is not None:
            return self._transform_function_schema(copy.deepcopy(fn_schema))
        return fn_schema

    def get_tool_definition(self, source: Source | str | None = None) -> ToolDefinition:
        """The function schema as a ToolDefinition whose handler applies patches."""
        bound = self._source(source)
        return ToolDefinition.from_function_schema(
            self.get_function_schema(),
            handler=lambda patch: self.apply_patch(patch, bound),
        )

    def get_current_values(self) -> dict[str, Any]:
        return self._state.snapshot()
