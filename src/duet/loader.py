"""Build Duet schemas from plain JSON descriptions.

Lets the CLI (and any non-Python caller) declare a schema as data::

    {"name": "TripBudget",
     "fields": {
       "days": {"type": "number", "label": "Days", "default": 7,
                "minimum": 1, "maximum": 365, "integer": true}}}

Property descriptors inside ``object`` and ``items`` use the same keys,
minus ``label`` and ``default``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from duet.exceptions import SchemaError
from duet.fields import (
    ArrayType,
    BooleanType,
    EnumType,
    FieldDef,
    FieldType,
    NumberType,
    ObjectType,
    StringType,
    field,
)
from duet.schema import DuetSchema


def type_from_dict(spec: Mapping[str, Any], *, where: str) -> FieldType:
    """Build a FieldType from a descriptor like ``{"type": "number", "minimum": 0}``."""
    if not isinstance(spec, Mapping):
        raise SchemaError(f"{where}: descriptor must be an object")
    kind = spec.get("type")
    try:
        if kind == "string":
            built: FieldType = StringType(
                min_length=spec.get("min_length"),
                max_length=spec.get("max_length"),
                pattern=spec.get("pattern"),
            )
        elif kind == "number":
            built = NumberType(
                minimum=spec.get("minimum"),
                maximum=spec.get("maximum"),
                integer=bool(spec.get("integer", False)),
            )
        elif kind == "boolean":
            built = BooleanType()
        elif kind == "enum":
            built = EnumType(tuple(spec.get("values") or ()))
        elif kind == "object":
            properties = spec.get("properties") or {}
            if not isinstance(properties, Mapping):
                raise SchemaError(f"{where}: 'properties' must be an object")
            built = ObjectType({
                key: type_from_dict(sub, where=f"{where}.{key}")
                for key, sub in properties.items()
            })
        elif kind == "array":
            if "items" not in spec:
                raise SchemaError(f"{where}: array needs 'items'")
            built = ArrayType(
                items=type_from_dict(spec["items"], where=f"{where}[]"),
                min_items=spec.get("min_items"),
                max_items=spec.get("max_items"),
            )
        else:
            raise SchemaError(f"{where}: unknown type {kind!r}")
    except ValueError as exc:
        raise SchemaError(f"{where}: {exc}") from exc
    return built.optional() if spec.get("optional") else built


def schema_from_dict(spec: Mapping[str, Any]) -> DuetSchema:
    """Build a DuetSchema from ``{"name": ..., "fields": {...}}``."""
    if not isinstance(spec, Mapping):
        raise SchemaError("Schema description must be an object")
    name = spec.get("name")
    raw_fields = spec.get("fields")
    if not isinstance(raw_fields, Mapping) or not raw_fields:
        raise SchemaError("Schema description needs a non-empty 'fields' object")

    fields: dict[str, FieldDef] = {}
    for field_name, descriptor in raw_fields.items():
        field_type = type_from_dict(descriptor, where=field_name)
        if "default" not in descriptor:
            raise SchemaError(f"{field_name}: missing 'default'")
        fields[field_name] = field(
            field_type,
            descriptor.get("label", field_name),
            descriptor["default"],
        )
    return DuetSchema(name, fields)


def load_schema(path: str | Path) -> DuetSchema:
    """Read a JSON schema description from *path*."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise SchemaError(f"Cannot read schema file {path}: {exc}") from exc
    try:
        spec = json.loads(text)
    except ValueError as exc:
        raise SchemaError(f"Schema file {path} is not valid JSON: {exc}") from exc
    return schema_from_dict(spec)
