"""Duet: shared, validated state for humans and LLMs.

One schema, one state. People edit it with ``d.set()``; models edit it with
RFC 6902 JSON Patch through ``d.llm``. Every edit is validated, applied
all-or-nothing, and (for patches) recorded in an audit history.
"""

from duet._version import __version__

# Core entry point
from duet.duet import Duet, create_duet

# Field types and definitions
from duet.fields import (
    ArrayType,
    BooleanType,
    Check,
    Classification,
    EnumType,
    FieldDef,
    FieldKind,
    FieldType,
    NumberType,
    ObjectType,
    OptionalType,
    Refinement,
    StringType,
    field,
)

# Registry, store, bridge
from duet.schema import DuetSchema, create_schema
from duet.store import Listener, SharedState, create_store
from duet.bridge import LLMBridge
from duet.attach import MappingState, attach_llm
from duet.loader import load_schema, schema_from_dict

# Models
from duet.models.config import DuetOptions
from duet.models.history import HistoryEntry, Source
from duet.models.patch import JsonPatchOp, PatchOp
from duet.models.result import EditResult, get_result_message, is_success

# Toolkit
from duet.toolkit import ToolDefinition

# Exceptions
from duet.exceptions import (
    CommitFailureError,
    DuetError,
    FieldValidationError,
    MalformedPatchError,
    PersistenceError,
    SchemaError,
    UnknownFieldError,
)

__all__ = [
    "__version__",
    # Core
    "Duet",
    "create_duet",
    # Fields
    "ArrayType",
    "BooleanType",
    "Check",
    "Classification",
    "EnumType",
    "FieldDef",
    "FieldKind",
    "FieldType",
    "NumberType",
    "ObjectType",
    "OptionalType",
    "Refinement",
    "StringType",
    "field",
    # Registry, store, bridge
    "DuetSchema",
    "create_schema",
    "Listener",
    "SharedState",
    "create_store",
    "LLMBridge",
    "MappingState",
    "attach_llm",
    "load_schema",
    "schema_from_dict",
    # Models
    "DuetOptions",
    "HistoryEntry",
    "Source",
    "JsonPatchOp",
    "PatchOp",
    "EditResult",
    "get_result_message",
    "is_success",
    # Toolkit
    "ToolDefinition",
    # Exceptions
    "CommitFailureError",
    "DuetError",
    "FieldValidationError",
    "MalformedPatchError",
    "PersistenceError",
    "SchemaError",
    "UnknownFieldError",
]
