"""Prompt context rendering for Duet.

Pure functions: they read a schema and a snapshot and return text. The
optional caller transform is applied by the bridge, after rendering.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from duet.fields import FieldKind

if TYPE_CHECKING:
    from duet.schema import DuetSchema


def to_json(value: Any) -> str:
    """Compact JSON used for values inside context text."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _op(path: str, value: Any) -> str:
    return f'{{ "op": "replace", "path": "{path}", "value": {to_json(value)} }}'


def _examples(schema: DuetSchema, data: Mapping[str, Any]) -> list[str]:
    ids = schema.field_ids()
    examples = [f"- Single edit: [{_op('/' + ids[0], data[ids[0]])}]"]
    if len(ids) > 1:
        pair = ", ".join(_op("/" + i, data[i]) for i in ids[:2])
        examples.append(f"- Multiple: [{pair}]")
    for field_id in ids:
        classification = schema.describe(field_id)
        if classification.kind is FieldKind.OBJECT and classification.properties:
            key = next(iter(classification.properties))
            value = data[field_id].get(key) if isinstance(data[field_id], Mapping) else None
            examples.append(f"- Nested field: [{_op(f'/{field_id}/{key}', value)}]")
            break
    return examples


def render_context(schema: DuetSchema, data: Mapping[str, Any]) -> str:
    """Full LLM context: schema, current values, and edit instructions.

    Deterministic for a given schema and snapshot. Every example uses a
    real field name and its current (valid) value.
    """
    lines = [schema.description(), "Current Values:"]
    for field_id, definition in schema.fields.items():
        lines.append(f"  {field_id}: {to_json(data.get(field_id))} ({definition.label})")
    lines.extend([
        "",
        "To edit fields, respond with a JSON Patch array (RFC 6902):",
        '[{ "op": "replace", "path": "/fieldName", "value": newValue }]',
        "",
        "Examples:",
    ])
    if schema.field_ids():
        lines.extend(_examples(schema, data))
    return "\n".join(lines)


def render_compact_context(schema: DuetSchema, data: Mapping[str, Any]) -> str:
    """One-line snapshot plus patch syntax, for tight prompt budgets."""
    values = ", ".join(f"{k}={to_json(v)}" for k, v in data.items())
    return (
        f"{schema.name}: {{{values}}}\n"
        'JSON Patch: [{"op":"replace","path":"/field","value":x}]'
    )
