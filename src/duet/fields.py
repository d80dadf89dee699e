"""Field types and field definitions for Duet schemas.

Each field type is a small frozen dataclass exposing two capabilities:

- ``check(value)`` validates a value and returns a :class:`Check` carrying
  either the normalized value or a human-readable reason.
- ``classify()`` returns a :class:`Classification` (kind + constraints) that
  schema formatters dispatch on, so nothing ever inspects validator internals.

Validation itself is pydantic's: every variant contributes a type
annotation, container variants compose the annotations of their members,
and ``check()`` runs the result through a cached ``TypeAdapter``. The first
pydantic error is rendered as a short message such as
"Number must be less than or equal to 100" or "contact: name: Required".

The set of kinds is closed: string, number, boolean, enum, object, array,
optional.
"""

from __future__ import annotations

import enum
import math
import types
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field as dc_field
from functools import cached_property
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    WrapValidator,
)
from pydantic_core import PydanticCustomError
from typing_extensions import NotRequired, TypedDict


class FieldKind(str, enum.Enum):
    """Closed set of field type variants."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    OBJECT = "object"
    ARRAY = "array"
    OPTIONAL = "optional"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Check:
    """Outcome of validating one value: accepted value or rejection reason."""

    ok: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def accept(cls, value: Any) -> Check:
        return cls(ok=True, value=value)

    @classmethod
    def reject(cls, error: str) -> Check:
        return cls(ok=False, error=error)

    def __str__(self) -> str:
        return "ok" if self.ok else (self.error or "invalid")


@dataclass(frozen=True)
class Classification:
    """Declared shape of a field type, used by describe() and the formatters.

    Attributes:
        kind: Which variant this is.
        constraints: Declared limits (``minimum``, ``maximum``, ``integer``,
            ``min_length``, ``max_length``, ``pattern``, ``values``,
            ``min_items``, ``max_items``). Only set keys are present.
        inner: Wrapped classification for ``optional`` and ``array``.
        properties: Per-key classifications for ``object``.
    """

    kind: FieldKind
    constraints: Mapping[str, Any] = dc_field(default_factory=dict)
    inner: Classification | None = None
    properties: Mapping[str, Classification] = dc_field(default_factory=dict)


# ---------------------------------------------------------------------------
# Pydantic error rendering
# ---------------------------------------------------------------------------

# Pydantic error type -> JSON kind named in "Expected <kind>, received ..."
_EXPECTED_KIND = {
    "string_type": "string",
    "float_type": "number",
    "int_type": "number",
    "finite_number": "number",
    "bool_type": "boolean",
    "dict_type": "object",
    "list_type": "array",
}

_TEMPLATES = {
    "missing": "Required",
    "int_from_float": "Expected integer, received float",
    "string_too_short": "String must contain at least {min_length} character(s)",
    "string_too_long": "String must contain at most {max_length} character(s)",
    "string_pattern_mismatch": "String must match pattern {pattern!r}",
    "too_short": "Array must contain at least {min_length} element(s)",
    "too_long": "Array must contain at most {max_length} element(s)",
    "greater_than_equal": "Number must be greater than or equal to {ge}",
    "less_than_equal": "Number must be less than or equal to {le}",
    "literal_error": "Invalid enum value. Expected {expected}, received {input!r}",
}


def _type_name(value: object) -> str:
    """JSON-flavoured type name used in rejection messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float) and math.isnan(value):
        return "nan"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _fmt_number(n: Any) -> Any:
    if isinstance(n, float) and n.is_integer():
        return int(n)
    return n


def _render_error(error: Mapping[str, Any]) -> str:
    """One pydantic error dict -> ``"<loc>: <reason>"`` (loc omitted at the root)."""
    kind = error["type"]
    ctx = {k: _fmt_number(v) for k, v in (error.get("ctx") or {}).items()}
    if kind in _EXPECTED_KIND:
        reason = f"Expected {_EXPECTED_KIND[kind]}, received {_type_name(error.get('input'))}"
    elif kind in _TEMPLATES:
        reason = _TEMPLATES[kind].format(input=error.get("input"), **ctx)
    elif kind == "value_error" and "error" in ctx:
        reason = str(ctx["error"])
    else:
        reason = error.get("msg", "Invalid value")
    loc = [str(part) for part in error.get("loc", ())]
    return ": ".join([*loc, reason])


# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------


class FieldType(ABC):
    """Base class for all field type variants."""

    kind: FieldKind

    @abstractmethod
    def annotation(self) -> Any:
        """Pydantic-compatible type annotation that validates this type."""
        ...

    @abstractmethod
    def classify(self) -> Classification:
        """Describe this type's kind and declared constraints."""
        ...

    @cached_property
    def _adapter(self) -> TypeAdapter:
        return TypeAdapter(self.annotation())

    def check(self, value: Any) -> Check:
        """Validate *value*, returning the normalized value or a reason."""
        try:
            return Check.accept(self._adapter.validate_python(value))
        except ValidationError as exc:
            return Check.reject(_render_error(exc.errors()[0]))

    def optional(self) -> OptionalType:
        """Wrap this type so that ``None`` (or an absent object key) is accepted."""
        return OptionalType(self)

    def is_valid(self, value: Any) -> bool:
        return self.check(value).ok


@dataclass(frozen=True)
class StringType(FieldType):
    """Text value with optional length bounds and regex pattern."""

    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    kind = FieldKind.STRING

    def annotation(self) -> Any:
        return Annotated[
            str,
            StringConstraints(
                strict=True,
                min_length=self.min_length,
                max_length=self.max_length,
                pattern=self.pattern,
            ),
        ]

    def classify(self) -> Classification:
        constraints = {
            k: v
            for k, v in (
                ("min_length", self.min_length),
                ("max_length", self.max_length),
                ("pattern", self.pattern),
            )
            if v is not None
        }
        return Classification(kind=self.kind, constraints=constraints)


def _keep_int(value: Any, handler: Callable[[Any], Any]) -> Any:
    # strict float widens ints; keep the caller's int
    result = handler(value)
    return value if isinstance(value, int) else result


def _integral(value: float | int) -> int:
    if isinstance(value, float):
        if not value.is_integer():
            raise PydanticCustomError(
                "int_from_float", "Input should be a valid integer"
            )
        return int(value)
    return value


@dataclass(frozen=True)
class NumberType(FieldType):
    """Numeric value with optional inclusive bounds.

    ``bool`` is never accepted even though it subclasses ``int``, and NaN or
    infinity is rejected. Ints stay ints. With ``integer=True``, integral
    floats (``3.0``) normalize to ``int``.
    """

    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False

    kind = FieldKind.NUMBER

    def annotation(self) -> Any:
        number = Annotated[
            float,
            Field(strict=True, ge=self.minimum, le=self.maximum, allow_inf_nan=False),
            WrapValidator(_keep_int),
        ]
        if self.integer:
            return Annotated[number, AfterValidator(_integral)]
        return number

    def classify(self) -> Classification:
        constraints: dict[str, Any] = {}
        if self.minimum is not None:
            constraints["minimum"] = self.minimum
        if self.maximum is not None:
            constraints["maximum"] = self.maximum
        if self.integer:
            constraints["integer"] = True
        return Classification(kind=self.kind, constraints=constraints)


@dataclass(frozen=True)
class BooleanType(FieldType):
    kind = FieldKind.BOOLEAN

    def annotation(self) -> Any:
        return Annotated[bool, Field(strict=True)]

    def classify(self) -> Classification:
        return Classification(kind=self.kind)


@dataclass(frozen=True)
class EnumType(FieldType):
    """One of a fixed, ordered set of values.

    Matching is by value and type, so ``True`` is not a member of ``(1, 2)``.
    """

    values: tuple[Any, ...]

    kind = FieldKind.ENUM

    def __post_init__(self) -> None:
        if not isinstance(self.values, tuple):
            object.__setattr__(self, "values", tuple(self.values))
        if not self.values:
            raise ValueError("EnumType requires at least one value")

    def _exact(self, value: Any, handler: Callable[[Any], Any]) -> Any:
        handler(value)
        if not any(type(v) is type(value) and v == value for v in self.values):
            raise PydanticCustomError(
                "literal_error",
                "Input should be {expected}",
                {"expected": " or ".join(repr(v) for v in self.values)},
            )
        return value

    def annotation(self) -> Any:
        return Annotated[Literal[self.values], WrapValidator(self._exact)]

    def classify(self) -> Classification:
        return Classification(kind=self.kind, constraints={"values": list(self.values)})


@dataclass(frozen=True)
class Refinement:
    """Whole-object rule run after every property has validated.

    The predicate receives the normalized object and returns True to accept.
    """

    predicate: Callable[[dict], bool]
    message: str


@dataclass(frozen=True)
class ObjectType(FieldType):
    """Structured value with declared properties and optional refinements.

    Undeclared keys are stripped from the normalized value. A missing key is
    accepted only when its property type is optional.
    """

    properties: Mapping[str, FieldType]
    refinements: tuple[Refinement, ...] = ()

    kind = FieldKind.OBJECT

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "properties", types.MappingProxyType(dict(self.properties))
        )
        if not isinstance(self.refinements, tuple):
            object.__setattr__(self, "refinements", tuple(self.refinements))

    def __hash__(self) -> int:
        return hash((tuple(self.properties.items()), self.refinements))

    def _refine(self, value: dict) -> dict:
        for rule in self.refinements:
            try:
                passed = rule.predicate(value)
            except Exception as exc:
                raise ValueError(f"{rule.message} ({type(exc).__name__}: {exc})") from exc
            if not passed:
                raise ValueError(rule.message)
        return value

    def annotation(self) -> Any:
        members = {
            key: NotRequired[prop.annotation()] if isinstance(prop, OptionalType) else prop.annotation()
            for key, prop in self.properties.items()
        }
        shape = TypedDict("Object", members)  # type: ignore[misc]
        if self.refinements:
            return Annotated[shape, AfterValidator(self._refine)]
        return shape

    def classify(self) -> Classification:
        return Classification(
            kind=self.kind,
            properties={k: p.classify() for k, p in self.properties.items()},
        )


@dataclass(frozen=True)
class ArrayType(FieldType):
    """Homogeneous list with optional length bounds. Tuples normalize to lists."""

    items: FieldType
    min_items: int | None = None
    max_items: int | None = None

    kind = FieldKind.ARRAY

    def annotation(self) -> Any:
        return Annotated[
            list[self.items.annotation()],
            Field(min_length=self.min_items, max_length=self.max_items),
        ]

    def classify(self) -> Classification:
        constraints = {
            k: v
            for k, v in (("min_items", self.min_items), ("max_items", self.max_items))
            if v is not None
        }
        return Classification(
            kind=self.kind, constraints=constraints, inner=self.items.classify()
        )


@dataclass(frozen=True)
class OptionalType(FieldType):
    """Accepts ``None`` in addition to whatever *inner* accepts."""

    inner: FieldType

    kind = FieldKind.OPTIONAL

    def annotation(self) -> Any:
        return Optional[self.inner.annotation()]

    def classify(self) -> Classification:
        return Classification(kind=self.kind, inner=self.inner.classify())

    def optional(self) -> OptionalType:
        return self


@dataclass(frozen=True)
class FieldDef:
    """One top-level slot of a Duet schema.

    Attributes:
        type: Field type that validates and classifies values.
        label: Human-readable label shown in UIs and LLM context.
        default: Initial value; must pass ``type``.
        name: Field name, filled in when the schema registers the definition.
    """

    type: FieldType
    label: str
    default: Any
    name: str = ""

    def validate(self, value: Any) -> Check:
        return self.type.check(value)


def field(type_: FieldType, label: str, default: Any) -> FieldDef:
    """Define a field with a type, label, and default value.

    Example::

        from duet import NumberType, field
        budget = field(NumberType(minimum=0), "Budget", 5000)
    """
    return FieldDef(type=type_, label=label, default=default)
