"""Composite validators: lists, dictionaries, optionals and unions.

Each composite validates a raw value on its own (``validate``) and can also
be used as a field type through ``schema_field(type=...)``:

```python
@dataclass
class Order:
    items: list[Item] = schema_field(type=ListOf(Item, min_items=1, max_items=20))
    payment: Card | BankTransfer = schema_field(
        type=DiscriminatedUnion("method", {"card": Card, "bank": BankTransfer})
    )
```
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from .context import ValidationContext
from .errors import ErrorKind, FieldError, ValidationErrors
from .result import DiscriminatedResult, OptionalResult, UnionResult, ValidationResult
from .shape import Shape
from .typespec import RawKind, TypeKind, TypeSpec, raw_kind, raw_type_name, resolve_type


class CompositeValidator(ABC):
    """Base class for validators that wrap other declared types.

    Attributes:
        nullable: Whether null is an accepted value
    """

    nullable = False

    @abstractmethod
    def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
        *,
        strict: bool = False,
    ) -> ValidationResult:
        """Validate a raw value.

        Args:
            value: Raw value
            context: Context positioned at the value
            strict: Require exact types instead of coercing

        Returns:
            ValidationResult whose error paths are relative to ``value``
        """

    @abstractmethod
    def dump(self, value: Any) -> Any:
        """Convert a validated value back to its raw form."""

    @abstractmethod
    def type_name(self) -> str:
        pass

    def validate_or_raise(self, value: Any, *, strict: bool = False) -> Any:
        return self.validate(value, strict=strict).raise_for_errors()

    @staticmethod
    def _engine(strict: bool):
        from .validator import Validator

        return Validator(strict=strict)

    def __repr__(self) -> str:
        return self.type_name()


def _cardinality_errors(count: int, min_items: int, max_items: int | None, noun: str) -> list[FieldError]:
    errors = []
    if count < min_items:
        errors.append(
            FieldError(
                (),
                f"{noun} must have at least {min_items} items, got {count}",
                ErrorKind.MIN_LENGTH,
                value=count,
                constraint=f"min_items={min_items}",
            )
        )
    if max_items is not None and count > max_items:
        errors.append(
            FieldError(
                (),
                f"{noun} must have at most {max_items} items, got {count}",
                ErrorKind.MAX_LENGTH,
                value=count,
                constraint=f"max_items={max_items}",
            )
        )
    return errors


def _check_bounds(min_items: int, max_items: int | None) -> None:
    if min_items < 0:
        raise ValueError(f"min_items cannot be negative, got {min_items}")
    if max_items is not None and max_items < min_items:
        raise ValueError(f"max_items ({max_items}) cannot be less than min_items ({min_items})")


class ListOf(CompositeValidator):
    """A list whose elements all validate against one declared type.

    Args:
        item: Element type
        min_items: Minimum number of elements
        max_items: Maximum number of elements, ``None`` for unlimited
    """

    def __init__(self, item: Any, min_items: int = 0, max_items: int | None = None):
        _check_bounds(min_items, max_items)
        self.item = resolve_type(item)
        self.min_items = min_items
        self.max_items = max_items
        self._list_spec = TypeSpec(TypeKind.LIST, python_type=list, element=self.item)

    def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
        *,
        strict: bool = False,
    ) -> ValidationResult:
        context = context or ValidationContext.root(value)
        if raw_kind(value) is not RawKind.LIST:
            return ValidationResult.failure(
                [FieldError((), f"expected a list, got {raw_type_name(value)}", ErrorKind.TYPE, value=value)]
            )

        errors = ValidationErrors(_cardinality_errors(len(value), self.min_items, self.max_items, "list"))
        result = self._engine(strict).validate_value(value, self._list_spec, context)
        if not result.valid:
            errors.merge(result.errors)
        if errors:
            return ValidationResult.failure(errors)
        return result

    def dump(self, value: Any) -> Any:
        from .validator import dump_value

        return dump_value(value, self._list_spec)

    def type_name(self) -> str:
        return f"ListOf[{self.item.name}]"


class DictOf(CompositeValidator):
    """A dictionary whose values all validate against one declared type.

    String keys pass through; other keys are coerced to ``key``.
    """

    def __init__(
        self,
        value: Any,
        key: Any = str,
        min_items: int = 0,
        max_items: int | None = None,
    ):
        _check_bounds(min_items, max_items)
        self.value = resolve_type(value)
        self.key = resolve_type(key)
        self.min_items = min_items
        self.max_items = max_items
        self._dict_spec = TypeSpec(TypeKind.DICT, python_type=dict, key=self.key, element=self.value)

    def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
        *,
        strict: bool = False,
    ) -> ValidationResult:
        context = context or ValidationContext.root(value)
        if raw_kind(value) is not RawKind.MAP:
            return ValidationResult.failure(
                [FieldError((), f"expected a dictionary, got {raw_type_name(value)}", ErrorKind.TYPE, value=value)]
            )

        errors = ValidationErrors(
            _cardinality_errors(len(value), self.min_items, self.max_items, "dictionary")
        )
        result = self._engine(strict).validate_value(value, self._dict_spec, context)
        if not result.valid:
            errors.merge(result.errors)
        if errors:
            return ValidationResult.failure(errors)
        return result

    def dump(self, value: Any) -> Any:
        from .validator import dump_value

        return dump_value(value, self._dict_spec)

    def type_name(self) -> str:
        return f"DictOf[{self.key.name}, {self.value.name}]"


class OptionalOf(CompositeValidator):
    """A value that may be null; anything else must validate against ``inner``."""

    nullable = True

    def __init__(self, inner: Any):
        self.inner = resolve_type(inner)

    def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
        *,
        strict: bool = False,
    ) -> OptionalResult:
        if value is None:
            return OptionalResult(valid=True, value=None)
        context = context or ValidationContext.root(value)
        result = self._engine(strict).validate_value(value, self.inner, context)
        return OptionalResult(valid=result.valid, value=result.value, errors=result.errors)

    def dump(self, value: Any) -> Any:
        from .validator import dump_value

        return None if value is None else dump_value(value, self.inner)

    def type_name(self) -> str:
        return f"OptionalOf[{self.inner.name}]"


def closed_world_match(shape: Shape, data: Mapping[str, Any]) -> bool:
    """True when every key of ``data`` is a declared field of ``shape``."""
    aliases = shape.aliases
    return all(key in aliases for key in data)


_LATTICE = {
    RawKind.STRING: frozenset({TypeKind.INT, TypeKind.FLOAT, TypeKind.BOOL}),
    RawKind.INT: frozenset({TypeKind.INT, TypeKind.FLOAT}),
    RawKind.FLOAT: frozenset({TypeKind.INT, TypeKind.FLOAT}),
}


def lattice_allows(value: Any, target: TypeKind) -> bool:
    """Whether a scalar union candidate may coerce ``value`` to ``target``.

    Strings may become numbers or booleans, numbers may become other
    numbers; nothing else converts between scalar kinds inside a union.
    """
    return target in _LATTICE.get(raw_kind(value), frozenset())


class UnionOf(CompositeValidator):
    """First candidate, in declaration order, that fully validates wins.

    Struct candidates are only tried for maps whose keys are all declared
    fields of the candidate. Scalar candidates first try an exact type
    match and then, in lax mode, coercion allowed by ``lattice_allows``.
    """

    def __init__(self, *candidates: Any):
        if not candidates:
            raise ValueError("A union needs at least one candidate type")
        self.candidates = tuple(resolve_type(candidate) for candidate in candidates)

    def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
        *,
        strict: bool = False,
    ) -> UnionResult:
        context = context or ValidationContext.root(value)
        reasons = []
        for index, candidate in enumerate(self.candidates):
            result, reason = self._try_candidate(value, candidate, context, strict)
            if result is not None and result.valid:
                return UnionResult(
                    valid=True,
                    value=result.value,
                    selected_index=index,
                    selected_name=candidate.name,
                )
            reasons.append(f"type {index} ({candidate.name}): {reason}")

        error = FieldError(
            (),
            "value does not match any union type: " + "; ".join(reasons),
            ErrorKind.UNION,
            value=value,
            constraint=self.type_name(),
        )
        return UnionResult(valid=False, errors=ValidationErrors([error]))

    def _try_candidate(
        self,
        value: Any,
        candidate: TypeSpec,
        context: ValidationContext,
        strict: bool,
    ) -> tuple[ValidationResult | None, str]:
        if candidate.kind is TypeKind.STRUCT:
            if not isinstance(value, Mapping):
                return None, f"expected an object, got {raw_type_name(value)}"
            if not closed_world_match(candidate.shape, value):
                return None, "has unknown fields"
            result = self._engine(strict).validate_value(value, candidate, context)
            return result, _summarize(result)

        if candidate.is_scalar:
            exact = self._engine(True).validate_value(value, candidate, context)
            if exact.valid or strict:
                return exact, _summarize(exact)
            if not lattice_allows(value, candidate.kind):
                return None, "incompatible types"
            result = self._engine(False).validate_value(value, candidate, context)
            return result, _summarize(result)

        result = self._engine(strict).validate_value(value, candidate, context)
        return result, _summarize(result)

    def dump(self, value: Any) -> Any:
        from .validator import dump_value

        return dump_value(value, TypeSpec(TypeKind.UNION, candidates=self.candidates))

    def type_name(self) -> str:
        return f"Union[{', '.join(candidate.name for candidate in self.candidates)}]"


def _summarize(result: ValidationResult) -> str:
    if result.valid:
        return "ok"
    return "; ".join(str(error) for error in result.errors)


class DiscriminatedUnion(CompositeValidator):
    """Selects exactly one candidate from a string discriminator field.

    Args:
        field: Name of the discriminator key in the raw map
        mapping: Discriminator value to candidate type, in declaration order

    Example:
        ```python
        pets = DiscriminatedUnion("kind", {"cat": Cat, "dog": Dog})
        result = pets.validate({"kind": "dog", "name": "Rex", "breed": "lab"})
        result.selected_key
        # 'dog'
        ```
    """

    def __init__(self, field: str, mapping: Mapping[str, Any]):
        if not mapping:
            raise ValueError("A discriminated union needs at least one candidate")
        self.field = field
        self.mapping = {key: resolve_type(candidate) for key, candidate in mapping.items()}

    def validate(
        self,
        value: Any,
        context: ValidationContext | None = None,
        *,
        strict: bool = False,
    ) -> DiscriminatedResult:
        context = context or ValidationContext.root(value)
        if not isinstance(value, Mapping):
            return self._fail(
                f"discriminated union value must be an object, got {raw_type_name(value)}",
                ErrorKind.TYPE,
                value,
                path=(),
            )
        if self.field not in value:
            return self._fail(
                f"missing discriminator field '{self.field}'",
                ErrorKind.MISSING_DISCRIMINATOR,
                None,
            )
        key = value[self.field]
        if not isinstance(key, str):
            return self._fail(
                f"discriminator field '{self.field}' must be a string, got {raw_type_name(key)}",
                ErrorKind.DISCRIMINATOR_TYPE,
                key,
            )
        candidate = self.mapping.get(key)
        if candidate is None:
            return self._fail(
                f"unknown discriminator value '{key}', valid values: {', '.join(self.mapping)}",
                ErrorKind.UNKNOWN_DISCRIMINATOR,
                key,
            )

        result = self._engine(strict).validate_value(value, candidate, context)
        return DiscriminatedResult(
            valid=result.valid,
            value=result.value,
            errors=result.errors,
            selected_key=key,
        )

    def _fail(
        self,
        message: str,
        kind: ErrorKind,
        value: Any,
        path: tuple[str, ...] | None = None,
    ) -> DiscriminatedResult:
        error = FieldError(
            (self.field,) if path is None else path,
            message,
            kind,
            value=value,
            constraint=f"discriminator={self.field}",
        )
        return DiscriminatedResult(valid=False, errors=ValidationErrors([error]))

    def dump(self, value: Any) -> Any:
        from .validator import dump_value

        for key, candidate in self.mapping.items():
            if candidate.python_type is not None and isinstance(value, candidate.python_type):
                raw = dump_value(value, candidate)
                raw.setdefault(self.field, key)
                return raw
        return value

    def type_name(self) -> str:
        return f"DiscriminatedUnion[{self.field}: {', '.join(self.mapping)}]"


__all__ = [
    "CompositeValidator",
    "DictOf",
    "DiscriminatedUnion",
    "ListOf",
    "OptionalOf",
    "UnionOf",
    "closed_world_match",
    "lattice_allows",
]
