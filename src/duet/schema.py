"""Field registry for Duet.

DuetSchema owns the ordered mapping from field name to FieldDef. It is
fixed at construction: no late registration, no removal. Insertion order
matters for rendered context text but not for validation.
"""

from __future__ import annotations

import copy
import logging
import types
from collections.abc import Mapping
from typing import Any

from duet.exceptions import SchemaError, UnknownFieldError
from duet.fields import Check, Classification, FieldDef, FieldKind, FieldType

logger = logging.getLogger(__name__)


class DuetSchema:
    """Named, ordered set of field definitions.

    Example::

        schema = DuetSchema("TripBudget", {
            "destination": field(StringType(min_length=1), "Destination", "Tokyo"),
            "budget": field(NumberType(minimum=0), "Budget", 5000),
        })
        schema.validate("budget", -1).error
        # 'Number must be greater than or equal to 0'
    """

    def __init__(self, name: str, fields: Mapping[str, FieldDef]) -> None:
        if not isinstance(name, str) or not name.strip():
            raise SchemaError("Schema name must be a non-empty string")
        registered: dict[str, FieldDef] = {}
        for field_name, definition in fields.items():
            if not isinstance(field_name, str) or not field_name:
                raise SchemaError(f"Field names must be non-empty strings, got {field_name!r}")
            if "/" in field_name:
                raise SchemaError(f"Field name {field_name!r} must not contain '/'")
            if not isinstance(definition, FieldDef):
                raise SchemaError(
                    f"Field {field_name!r} must be a FieldDef (use duet.field()), "
                    f"got {type(definition).__name__}"
                )
            if not isinstance(definition.type, FieldType):
                raise SchemaError(f"Field {field_name!r} has no valid field type")
            checked = definition.type.check(definition.default)
            if not checked.ok:
                raise SchemaError(
                    f"Default value for {field_name!r} is invalid: {checked.error}"
                )
            registered[field_name] = FieldDef(
                type=definition.type,
                label=definition.label,
                default=copy.deepcopy(checked.value),
                name=field_name,
            )
        self._name = name
        self._fields = types.MappingProxyType(registered)
        logger.debug("Registered schema %s with %d field(s)", name, len(registered))

    def __repr__(self) -> str:
        return f"DuetSchema({self._name!r}, fields={list(self._fields)})"

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def name(self) -> str:
        return self._name

    @property
    def fields(self) -> Mapping[str, FieldDef]:
        """Read-only view of the registered definitions."""
        return self._fields

    def field_ids(self) -> list[str]:
        return list(self._fields)

    def get_field(self, field_name: str) -> FieldDef | None:
        return self._fields.get(field_name)

    def _require(self, field_name: str) -> FieldDef:
        definition = self._fields.get(field_name)
        if definition is None:
            raise UnknownFieldError(field_name)
        return definition

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, field_name: str, value: Any) -> Check:
        """Validate *value* for one field.

        Raises:
            UnknownFieldError: If *field_name* is not registered.
        """
        return self._require(field_name).validate(value)

    def validate_all(self, data: Mapping[str, Any]) -> tuple[bool, dict[str, str]]:
        """Validate every registered key in *data*; unknown keys are ignored.

        Returns:
            ``(ok, errors)`` where *errors* maps field name to its first
            rejection reason.
        """
        errors: dict[str, str] = {}
        for key, value in data.items():
            definition = self._fields.get(key)
            if definition is None:
                continue
            result = definition.validate(value)
            if not result.ok:
                errors[key] = result.error or "Invalid value"
        return not errors, errors

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    def defaults(self) -> dict[str, Any]:
        """Fresh snapshot built from every field's default value."""
        return {k: copy.deepcopy(d.default) for k, d in self._fields.items()}

    def default(self, field_name: str) -> Any:
        return copy.deepcopy(self._require(field_name).default)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def describe(self, field_name: str) -> Classification:
        """Type kind and declared constraints for one field."""
        return self._require(field_name).type.classify()

    def description(self) -> str:
        """Schema header used at the top of LLM context text."""
        lines = [f"Schema: {self._name}", "Fields:"]
        for field_id, definition in self._fields.items():
            classification = definition.type.classify()
            detail = type_label(classification)
            extra = constraint_labels(classification)
            if extra:
                detail = f"{detail}, {', '.join(extra)}"
            lines.append(f"  - {field_id} ({detail}): {definition.label}")
        return "\n".join(lines) + "\n"

    def to_json_schema(self) -> dict:
        """JSON Schema object describing the whole state snapshot."""
        properties = {
            field_id: json_schema_for(d.type.classify(), description=d.label)
            for field_id, d in self._fields.items()
        }
        return {
            "type": "object",
            "properties": properties,
            "required": self.field_ids(),
        }


def create_schema(name: str, fields: Mapping[str, FieldDef]) -> DuetSchema:
    """Factory alias for :class:`DuetSchema`."""
    return DuetSchema(name, fields)


# ----------------------------------------------------------------------
# Classification renderers (closed dispatch over FieldKind)
# ----------------------------------------------------------------------


def type_label(c: Classification) -> str:
    """Short type label, e.g. ``number``, ``enum(a|b)``, ``optional<string>``."""
    if c.kind is FieldKind.ENUM:
        return f"enum({'|'.join(str(v) for v in c.constraints['values'])})"
    if c.kind is FieldKind.OBJECT:
        return f"object{{{', '.join(c.properties)}}}"
    if c.kind is FieldKind.ARRAY:
        return f"array<{type_label(c.inner)}>"
    if c.kind is FieldKind.OPTIONAL:
        return f"optional<{type_label(c.inner)}>"
    if c.kind is FieldKind.NUMBER and c.constraints.get("integer"):
        return "integer"
    return c.kind.value


def constraint_labels(c: Classification) -> list[str]:
    """Human-readable constraint fragments, e.g. ``["min: 0", "max: 100"]``."""
    if c.kind is FieldKind.OPTIONAL:
        return constraint_labels(c.inner)
    labels = []
    names = {
        "minimum": "min",
        "maximum": "max",
        "min_length": "min length",
        "max_length": "max length",
        "pattern": "pattern",
        "min_items": "min items",
        "max_items": "max items",
    }
    for key, label in names.items():
        if key in c.constraints:
            value = c.constraints[key]
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            labels.append(f"{label}: {value}")
    return labels


def json_schema_for(c: Classification, *, description: str | None = None) -> dict:
    """Render a classification as a JSON Schema fragment."""
    if c.kind is FieldKind.OPTIONAL:
        schema: dict[str, Any] = {"anyOf": [json_schema_for(c.inner), {"type": "null"}]}
    elif c.kind is FieldKind.STRING:
        schema = {"type": "string"}
        for key, target in (("min_length", "minLength"), ("max_length", "maxLength"), ("pattern", "pattern")):
            if key in c.constraints:
                schema[target] = c.constraints[key]
    elif c.kind is FieldKind.NUMBER:
        schema = {"type": "integer" if c.constraints.get("integer") else "number"}
        for key in ("minimum", "maximum"):
            if key in c.constraints:
                schema[key] = c.constraints[key]
    elif c.kind is FieldKind.BOOLEAN:
        schema = {"type": "boolean"}
    elif c.kind is FieldKind.ENUM:
        values = list(c.constraints["values"])
        schema = {"enum": values}
        if all(isinstance(v, str) for v in values):
            schema["type"] = "string"
    elif c.kind is FieldKind.OBJECT:
        schema = {
            "type": "object",
            "properties": {k: json_schema_for(p) for k, p in c.properties.items()},
            "required": [
                k for k, p in c.properties.items() if p.kind is not FieldKind.OPTIONAL
            ],
        }
    elif c.kind is FieldKind.ARRAY:
        schema = {"type": "array", "items": json_schema_for(c.inner)}
        for key, target in (("min_items", "minItems"), ("max_items", "maxItems")):
            if key in c.constraints:
                schema[target] = c.constraints[key]
    else:
        raise ValueError(f"Unhandled field kind: {c.kind}")
    if description is not None:
        schema = {"description": description, **schema}
    return schema
