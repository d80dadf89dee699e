"""Attach an LLM bridge to state the caller already owns.

For applications that keep their state in a plain mutable mapping and
already describe its shape with an :class:`~duet.fields.ObjectType`,
``attach_llm`` adds patching, prompt context, tool schemas and an audit
history without moving the data into a new store. The mapping stays the
source of truth: reads go straight to it, and committed batches are
written back into it with ``update()``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import Any

from duet.bridge import LLMBridge
from duet.exceptions import SchemaError
from duet.fields import FieldDef, ObjectType
from duet.schema import DuetSchema
from duet.store import SharedState

logger = logging.getLogger(__name__)


class MappingState(SharedState):
    """SharedState whose snapshot lives in a caller-owned mapping.

    Changes the caller makes to the mapping directly are visible on the
    next read. They bypass validation and listeners, as they would with any
    external writer.
    """

    def __init__(self, schema: DuetSchema, target: MutableMapping[str, Any]) -> None:
        self._target = target
        super().__init__(schema)

    @property
    def _data(self) -> dict[str, Any]:
        return {key: self._target.get(key) for key in self._schema.field_ids()}

    @_data.setter
    def _data(self, value: dict[str, Any]) -> None:
        self._target.update(value)


def attach_llm(
    data: MutableMapping[str, Any],
    object_type: ObjectType,
    *,
    name: str = "State",
    labels: Mapping[str, str] | None = None,
    **bridge_options: Any,
) -> LLMBridge:
    """Return an LLMBridge that edits *data* in place.

    Each property of *object_type* becomes a field whose label comes from
    *labels* (falling back to the property name) and whose default is the
    value *data* holds right now, so a root ``remove`` restores the value
    seen at attach time. Refinements on *object_type* itself are not
    enforced; put whole-value rules on the property types instead.

    Args:
        data: The caller's state; must hold a valid value for every property.
        object_type: Shape of *data*.
        name: Schema name used in context text and the tool name.
        labels: Optional human-readable label per property.
        **bridge_options: Passed to :class:`LLMBridge` (``transform_context``,
            ``transform_function_schema``, ``default_source``).

    Raises:
        SchemaError: If *data* lacks a property or holds an invalid value.

    Example::

        task = {"title": "Write docs", "priority": 2, "done": False}
        llm = attach_llm(task, ObjectType({
            "title": StringType(min_length=1),
            "priority": NumberType(minimum=1, maximum=5),
            "done": BooleanType(),
        }), name="Task")
        llm.apply_json('[{"op":"replace","path":"/done","value":true}]')
        task["done"]  # True
    """
    if not isinstance(object_type, ObjectType):
        raise SchemaError(
            f"attach_llm needs an ObjectType, got {type(object_type).__name__}"
        )
    labels = labels or {}
    fields: dict[str, FieldDef] = {}
    for key, prop in object_type.properties.items():
        if key not in data:
            raise SchemaError(f"Attached state has no value for field {key!r}")
        fields[key] = FieldDef(type=prop, label=labels.get(key, key), default=data[key])
    if object_type.refinements:
        logger.warning(
            "attach_llm(%s): %d object-level refinement(s) are not enforced",
            name,
            len(object_type.refinements),
        )

    schema = DuetSchema(name, fields)
    state = MappingState(schema, data)
    logger.debug("Attached LLM bridge %s to %d field(s)", name, len(fields))
    return LLMBridge(schema, state, **bridge_options)
