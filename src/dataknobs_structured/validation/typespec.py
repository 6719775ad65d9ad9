"""Declared-type descriptors and raw value classification.

A ``TypeSpec`` is the resolved, immutable description of a declared type:
a scalar, a list/dict with element specs, a nested struct ``Shape``, an
optional wrapper, a union of candidates, or a composite validator. They are
resolved once from Python annotations by ``resolve_type`` and reused for
every validation call.

Raw input is classified with ``raw_kind`` into an explicit ``RawKind`` so the
coercer can dispatch on it instead of scattering ``isinstance`` checks.
"""

from __future__ import annotations

import dataclasses
import math
import types
import typing
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .composites import CompositeValidator
    from .shape import Shape


class RawKind(Enum):
    """Kind of a node in an untyped raw input tree."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "str"
    LIST = "list"
    MAP = "dict"
    OTHER = "other"


class TypeKind(Enum):
    """Kind of a declared type."""

    ANY = "any"
    STR = "str"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    LIST = "list"
    DICT = "dict"
    STRUCT = "struct"
    OPTIONAL = "optional"
    UNION = "union"
    COMPOSITE = "composite"


SCALAR_KINDS = frozenset({TypeKind.STR, TypeKind.INT, TypeKind.FLOAT, TypeKind.BOOL})

_SCALAR_BASES: dict[TypeKind, type] = {
    TypeKind.STR: str,
    TypeKind.INT: int,
    TypeKind.FLOAT: float,
    TypeKind.BOOL: bool,
}


def raw_kind(value: Any) -> RawKind:
    """Classify a raw value."""
    if value is None:
        return RawKind.NULL
    if isinstance(value, bool):
        return RawKind.BOOL
    if isinstance(value, int):
        return RawKind.INT
    if isinstance(value, float):
        return RawKind.FLOAT
    if isinstance(value, str):
        return RawKind.STRING
    if isinstance(value, (list, tuple)):
        return RawKind.LIST
    if isinstance(value, Mapping):
        return RawKind.MAP
    return RawKind.OTHER


def raw_type_name(value: Any) -> str:
    """Short type name of a raw value for error messages."""
    kind = raw_kind(value)
    if kind is RawKind.OTHER:
        return type(value).__name__
    return kind.value


def format_scalar(value: Any) -> str:
    """Render a scalar the way it would appear in JSON text.

    Booleans render as ``true``/``false`` and integral floats drop their
    fractional part, so ``oneof`` lists and string coercion read naturally.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True, eq=False)
class TypeSpec:
    """Resolved description of a declared type.

    Attributes:
        kind: What sort of type this is
        python_type: The concrete Python type (``str``, a constrained
            subclass such as ``PositiveInt``, or a dataclass)
        element: List element, dict value, or optional inner spec
        key: Dict key spec
        candidates: Union candidates, in declaration order
        validator: Composite validator for ``COMPOSITE`` specs
    """

    kind: TypeKind
    python_type: type | None = None
    element: TypeSpec | None = None
    key: TypeSpec | None = None
    candidates: tuple[TypeSpec, ...] = ()
    validator: CompositeValidator | None = None
    shape_ref: Shape | None = None

    @property
    def shape(self) -> Shape:
        """The struct shape, resolved lazily so recursive types work."""
        if self.shape_ref is not None:
            return self.shape_ref
        if self.kind is not TypeKind.STRUCT or self.python_type is None:
            raise TypeError(f"{self.name} is not a struct type")
        from .shape import shape_of

        return shape_of(self.python_type)

    @property
    def is_scalar(self) -> bool:
        return self.kind in SCALAR_KINDS

    @property
    def is_nullable(self) -> bool:
        if self.kind is TypeKind.COMPOSITE:
            return getattr(self.validator, "nullable", False)
        return self.kind in (TypeKind.OPTIONAL, TypeKind.ANY)

    @property
    def base_type(self) -> type | None:
        """The builtin scalar base, e.g. ``int`` for ``PositiveInt``."""
        return _SCALAR_BASES.get(self.kind)

    @property
    def name(self) -> str:
        """Readable name for error messages."""
        if self.kind is TypeKind.ANY:
            return "any"
        if self.is_scalar:
            return self.python_type.__name__ if self.python_type else self.kind.value
        if self.kind is TypeKind.LIST:
            return f"list[{self.element.name}]" if self.element else "list"
        if self.kind is TypeKind.DICT:
            key_name = self.key.name if self.key else "str"
            value_name = self.element.name if self.element else "any"
            return f"dict[{key_name}, {value_name}]"
        if self.kind is TypeKind.STRUCT:
            if self.shape_ref is not None:
                return self.shape_ref.name
            return self.python_type.__name__ if self.python_type else "object"
        if self.kind is TypeKind.OPTIONAL:
            return f"Optional[{self.element.name}]" if self.element else "Optional"
        if self.kind is TypeKind.UNION:
            return f"Union[{', '.join(c.name for c in self.candidates)}]"
        if self.validator is not None:
            return self.validator.type_name()
        return self.kind.value

    def __repr__(self) -> str:
        return f"TypeSpec({self.name})"


ANY = TypeSpec(TypeKind.ANY)

_resolved: dict[Any, TypeSpec] = {}


def resolve_type(target: Any) -> TypeSpec:
    """Resolve an annotation, shape or composite validator into a ``TypeSpec``.

    Supported annotations: ``str``, ``int``, ``float``, ``bool`` and their
    subclasses, ``list[X]``, ``tuple[X, ...]``, ``dict[K, V]``,
    ``Optional[X]``, ``X | Y``, ``Annotated[X, ...]``, ``Any`` and dataclasses.

    Args:
        target: The type to resolve

    Returns:
        The resolved TypeSpec

    Raises:
        TypeError: If the annotation is not supported
    """
    if isinstance(target, TypeSpec):
        return target

    from .composites import CompositeValidator
    from .shape import Shape

    if isinstance(target, Shape):
        return TypeSpec(TypeKind.STRUCT, python_type=target.python_type, shape_ref=target)
    if isinstance(target, CompositeValidator):
        return TypeSpec(TypeKind.COMPOSITE, validator=target)

    try:
        cached = _resolved.get(target)
    except TypeError:
        cached = None
    if cached is not None:
        return cached

    spec = _resolve_annotation(target)
    try:
        _resolved[target] = spec
    except TypeError:
        pass
    return spec


def _resolve_annotation(target: Any) -> TypeSpec:
    if target is Any or target is object:
        return ANY

    origin = typing.get_origin(target)
    args = typing.get_args(target)

    if origin is typing.Annotated:
        return resolve_type(args[0])

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        nullable = len(members) != len(args)
        if len(members) == 1:
            inner = resolve_type(members[0])
        else:
            inner = TypeSpec(
                TypeKind.UNION,
                candidates=tuple(resolve_type(member) for member in members),
            )
        return TypeSpec(TypeKind.OPTIONAL, element=inner) if nullable else inner

    if origin in (list, tuple, Sequence) or target in (list, tuple):
        if origin is tuple and args and (len(args) != 2 or args[1] is not Ellipsis):
            raise TypeError(f"Only homogeneous tuple[X, ...] is supported, got {target}")
        element = resolve_type(args[0]) if args else ANY
        return TypeSpec(TypeKind.LIST, python_type=list, element=element)

    if origin in (dict, Mapping) or target is dict:
        key = resolve_type(args[0]) if args else TypeSpec(TypeKind.STR, python_type=str)
        value = resolve_type(args[1]) if len(args) > 1 else ANY
        return TypeSpec(TypeKind.DICT, python_type=dict, key=key, element=value)

    if isinstance(target, type):
        # bool first: it is a subclass of int
        if issubclass(target, bool):
            return TypeSpec(TypeKind.BOOL, python_type=target)
        if issubclass(target, int):
            return TypeSpec(TypeKind.INT, python_type=target)
        if issubclass(target, float):
            return TypeSpec(TypeKind.FLOAT, python_type=target)
        if issubclass(target, str):
            return TypeSpec(TypeKind.STR, python_type=target)
        if dataclasses.is_dataclass(target):
            return TypeSpec(TypeKind.STRUCT, python_type=target)

    raise TypeError(f"Unsupported field type: {target!r}")


def zero_value(spec: TypeSpec) -> Any:
    """The value an absent or null field takes for its declared type."""
    if spec.is_scalar:
        assert spec.python_type is not None
        return spec.python_type()
    if spec.kind is TypeKind.LIST:
        return []
    if spec.kind is TypeKind.DICT:
        return {}
    if spec.kind is TypeKind.STRUCT:
        return spec.shape.zero()
    return None


__all__ = [
    "ANY",
    "RawKind",
    "SCALAR_KINDS",
    "TypeKind",
    "TypeSpec",
    "format_scalar",
    "raw_kind",
    "raw_type_name",
    "resolve_type",
    "zero_value",
]
