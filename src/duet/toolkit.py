"""Function-calling schema export for Duet.

Builds the ``patch_<schema>`` tool definition an LLM uses to submit JSON
Patch edits, and renders it in OpenAI and Anthropic tool formats.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from duet.schema import DuetSchema


def tool_name_for(schema_name: str) -> str:
    """``"Trip Budget"`` -> ``"patch_trip_budget"``."""
    slug = re.sub(r"\s+", "_", schema_name.lower())
    return f"patch_{slug}"


def build_function_schema(schema: DuetSchema) -> dict[str, Any]:
    """Function-calling schema accepting a ``patch`` array of operations."""
    valid_paths = ", ".join(f"/{f}" for f in schema.field_ids())
    return {
        "name": tool_name_for(schema.name),
        "description": (
            f"Apply JSON Patch operations to {schema.name}. Uses RFC 6902 format."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "patch": {
                    "type": "array",
                    "description": "JSON Patch operations (RFC 6902)",
                    "items": {
                        "type": "object",
                        "properties": {
                            "op": {
                                "type": "string",
                                "enum": ["replace", "add", "remove"],
                                "description": "Operation type",
                            },
                            "path": {
                                "type": "string",
                                "description": f"JSON Pointer to field. Valid paths: {valid_paths}",
                            },
                            "value": {
                                "description": "New value (required for replace/add)",
                            },
                        },
                        "required": ["op", "path"],
                    },
                },
            },
            "required": ["patch"],
        },
    }


@dataclass(frozen=True)
class ToolDefinition:
    """A single tool definition for LLM consumption.

    Attributes:
        name: Tool name (e.g. "patch_trip_budget").
        description: When/why the model should call this tool.
        parameters: JSON Schema dict describing tool parameters.
        handler: Callable that executes the tool, or None for schema-only use.
    """

    name: str
    description: str
    parameters: dict
    handler: Callable[..., object] | None = None

    @classmethod
    def from_function_schema(
        cls,
        fn_schema: dict,
        handler: Callable[..., object] | None = None,
    ) -> ToolDefinition:
        return cls(
            name=fn_schema["name"],
            description=fn_schema.get("description", ""),
            parameters=fn_schema.get("parameters", {"type": "object", "properties": {}}),
            handler=handler,
        )

    def to_openai(self) -> dict:
        """Convert to OpenAI function-calling format.

        Returns:
            Dict with "type": "function" and nested "function" object.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_anthropic(self) -> dict:
        """Convert to Anthropic tool-use format.

        Returns:
            Dict with "name", "description", and "input_schema".
        """
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }
