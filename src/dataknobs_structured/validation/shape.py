"""Shape descriptors: the ordered field layout of a structured type.

Shapes are built once per type and are read-only afterwards. There are two
ways to get one:

1. Declare a dataclass and let ``shape_of`` derive the shape from its
   annotations. Rules, aliases and flags go into ``schema_field``:

   ```python
   @dataclass
   class Person:
       name: str = schema_field("required,min=2")
       email: str = schema_field("required,email")
       age: int = schema_field("gte=0,lte=150", default=0)
       nickname: str | None = schema_field(alias="nick", omitempty=True, default=None)
   ```

2. Register a shape explicitly with the fluent ``ShapeBuilder``; the
   validated value is then a plain ``dict`` unless a factory is given:

   ```python
   person = (
       ShapeBuilder("Person")
       .field("name", str, validate="required,min=2")
       .field("age", int, validate="gte=0")
       .build()
   )
   ```
"""

from __future__ import annotations

import dataclasses
import threading
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from .context import ValidationContext
from .rules import Constraint, Rule, build_constraints, parse_rules
from .typespec import TypeSpec, resolve_type, zero_value

FieldValidator = Callable[[Any, ValidationContext], Any]
ModelValidator = Callable[[Any], None]

_METADATA_KEY = "dataknobs_structured"

# Absent-default marker for FieldSpec
_NO_DEFAULT: Any = object()


@dataclass(frozen=True)
class FieldSpec:
    """Descriptor for one field of a shape.

    Attributes:
        name: Attribute name on the constructed value
        alias: External name in raw input
        type: Declared type
        rules: Parsed rule tokens, in declaration order
        constraints: Checkable constraints built from ``rules``
        required: Whether absence is an error
        omit_empty: Whether absence is silently skipped
        default: Declared default, if any
        default_factory: Declared default factory, if any
        validators: Callables ``(value, context) -> value`` run after rules
        description: Optional human description (used in schema hints)
    """

    name: str
    alias: str
    type: TypeSpec
    rules: tuple[Rule, ...] = ()
    constraints: tuple[Constraint, ...] = ()
    required: bool = False
    omit_empty: bool = False
    default: Any = _NO_DEFAULT
    default_factory: Any = _NO_DEFAULT
    validators: tuple[FieldValidator, ...] = ()
    description: str | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not _NO_DEFAULT or self.default_factory is not _NO_DEFAULT

    def zero_value(self) -> Any:
        """Value for an absent field: the declared default, else the type's zero."""
        if self.default_factory is not _NO_DEFAULT:
            return self.default_factory()
        if self.default is not _NO_DEFAULT:
            return self.default
        return zero_value(self.type)


def make_field_spec(
    name: str,
    type_: Any,
    validate: str = "",
    *,
    alias: str | None = None,
    omitempty: bool = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
    validators: tuple[FieldValidator, ...] | list[FieldValidator] = (),
    description: str | None = None,
) -> FieldSpec:
    """Build a ``FieldSpec``, parsing the rule string and its constraints.

    Raises:
        ValueError: If a rule parameter is malformed
        TypeError: If the type is not supported
    """
    rules = parse_rules(validate) if validate else ()
    names = {rule.name for rule in rules}
    return FieldSpec(
        name=name,
        alias=alias or name,
        type=resolve_type(type_),
        rules=rules,
        constraints=build_constraints(rules),
        required="required" in names,
        omit_empty=omitempty or "omitempty" in names,
        default=_NO_DEFAULT if default is dataclasses.MISSING else default,
        default_factory=_NO_DEFAULT if default_factory is dataclasses.MISSING else default_factory,
        validators=tuple(validators),
        description=description,
    )


@dataclass(frozen=True)
class Shape:
    """Ordered, immutable field layout of a structured type.

    Attributes:
        name: Shape name, used in messages and schema titles
        fields: Field descriptors in declaration order
        factory: Called with attribute keyword arguments to construct the
            value; ``None`` produces a ``dict``
        model_validators: Callables run on the constructed value when every
            field is valid; they raise ``ValueError`` to reject it
        python_type: The dataclass the shape was derived from, if any
        description: Optional description for schema hints
    """

    name: str
    fields: tuple[FieldSpec, ...]
    factory: Callable[..., Any] | None = None
    model_validators: tuple[ModelValidator, ...] = ()
    python_type: type | None = None
    description: str | None = None

    @property
    def aliases(self) -> frozenset[str]:
        return frozenset(field.alias for field in self.fields)

    def get_field(self, alias: str) -> FieldSpec | None:
        for field in self.fields:
            if field.alias == alias:
                return field
        return None

    def build(self, values: Mapping[str, Any]) -> Any:
        """Construct the result value from attribute-name keyed values."""
        if self.factory is None:
            return dict(values)
        return self.factory(**values)

    def zero(self) -> Any:
        return self.build({field.name: field.zero_value() for field in self.fields})

    def read(self, value: Any, field: FieldSpec) -> Any:
        """Read a field back from a constructed value."""
        if isinstance(value, Mapping):
            return value.get(field.name)
        return getattr(value, field.name)


def schema_field(
    validate: str = "",
    *,
    alias: str | None = None,
    omitempty: bool = False,
    type: Any = None,
    validators: tuple[FieldValidator, ...] | list[FieldValidator] = (),
    description: str | None = None,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """Declare a dataclass field with validation metadata.

    Args:
        validate: Rule string, e.g. ``"required,min=2"``
        alias: External name in raw input (defaults to the attribute name)
        omitempty: Skip the field silently when absent
        type: Override the annotated type, typically with a composite
            validator such as ``ListOf(Item, min_items=1)``
        validators: Callables ``(value, context) -> value`` run after the rules
        description: Description used in schema hints
        default: Default value
        default_factory: Default factory

    Returns:
        A ``dataclasses.field`` carrying the metadata
    """
    metadata = {
        _METADATA_KEY: {
            "validate": validate,
            "alias": alias,
            "omitempty": omitempty,
            "type": type,
            "validators": tuple(validators),
            "description": description,
        }
    }
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata)


_cache: dict[type, Shape] = {}
_cache_lock = threading.Lock()


def shape_of(cls: type) -> Shape:
    """Get the shape of a dataclass, deriving and caching it on first use.

    Class-level hooks:
        ``__model_validators__``: optional tuple of model validator callables

    Raises:
        TypeError: If ``cls`` is not a dataclass or a field type is unsupported
    """
    shape = _cache.get(cls)
    if shape is not None:
        return shape
    with _cache_lock:
        shape = _cache.get(cls)
        if shape is None:
            shape = _derive_shape(cls)
            _cache[cls] = shape
    return shape


def _class_description(cls: type) -> str | None:
    doc = (cls.__doc__ or "").strip()
    # dataclasses synthesize "Name(field: type, ...)" when there is no docstring
    if not doc or doc.startswith(f"{cls.__name__}("):
        return None
    return doc.splitlines()[0]


def _derive_shape(cls: type) -> Shape:
    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise TypeError(f"{cls!r} is not a dataclass")

    hints = typing.get_type_hints(cls, include_extras=True)
    fields = []
    for dc_field in dataclasses.fields(cls):
        if not dc_field.init:
            continue
        meta = dc_field.metadata.get(_METADATA_KEY, {})
        declared = meta.get("type") or hints[dc_field.name]
        fields.append(
            make_field_spec(
                dc_field.name,
                declared,
                meta.get("validate", ""),
                alias=meta.get("alias"),
                omitempty=meta.get("omitempty", False),
                default=dc_field.default,
                default_factory=dc_field.default_factory,
                validators=meta.get("validators", ()),
                description=meta.get("description"),
            )
        )

    return Shape(
        name=cls.__name__,
        fields=tuple(fields),
        factory=cls,
        model_validators=tuple(getattr(cls, "__model_validators__", ())),
        python_type=cls,
        description=_class_description(cls),
    )


class ShapeBuilder:
    """Fluent API for registering a shape without a backing dataclass."""

    def __init__(self, name: str, factory: Callable[..., Any] | None = None, description: str | None = None):
        self.name = name
        self.factory = factory
        self.description = description
        self._fields: list[FieldSpec] = []
        self._model_validators: list[ModelValidator] = []

    def field(
        self,
        name: str,
        type_: Any,
        validate: str = "",
        *,
        alias: str | None = None,
        omitempty: bool = False,
        default: Any = dataclasses.MISSING,
        validators: tuple[FieldValidator, ...] | list[FieldValidator] = (),
        description: str | None = None,
    ) -> ShapeBuilder:
        """Add a field (fluent API).

        Raises:
            ValueError: If the field name is already declared
        """
        if any(existing.name == name for existing in self._fields):
            raise ValueError(f"Field '{name}' is already declared on shape '{self.name}'")
        self._fields.append(
            make_field_spec(
                name,
                type_,
                validate,
                alias=alias,
                omitempty=omitempty,
                default=default,
                validators=validators,
                description=description,
            )
        )
        return self

    def model_validator(self, validator: ModelValidator) -> ShapeBuilder:
        self._model_validators.append(validator)
        return self

    def build(self) -> Shape:
        return Shape(
            name=self.name,
            fields=tuple(self._fields),
            factory=self.factory,
            model_validators=tuple(self._model_validators),
            description=self.description,
        )


__all__ = [
    "FieldSpec",
    "FieldValidator",
    "ModelValidator",
    "Shape",
    "ShapeBuilder",
    "make_field_spec",
    "schema_field",
    "shape_of",
]
