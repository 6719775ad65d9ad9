"""Struct validation over shape descriptors.

``Validator`` walks a ``Shape`` field by field, applying the absence policy,
coercion, the field's constraints, per-field validators and the value's own
``validate()`` capability. Every field is attempted even after an earlier
one failed, and all failures come back together in one ``ValidationErrors``
with each error's path prefixed by the field's external name. Model-level
checks run only once every field is valid.

Example:
    ```python
    from dataclasses import dataclass
    from dataknobs_structured.validation import Validator, schema_field

    @dataclass
    class Person:
        name: str = schema_field("required,min=2")
        email: str = schema_field("required,email")
        age: int = schema_field("gte=0,lte=150", default=0)

    result = Validator().validate(Person, {"name": "Alice", "email": "a@b.co", "age": "30"})
    result.value
    # Person(name='Alice', email='a@b.co', age=30)

    result = Validator().validate(Person, {"name": "A"})
    print(result.errors)
    # ValidationError: 2 errors
    #   1. name: string length must be at least 2 (type: min_length), value: 'A', constraint: min=2
    #   2. email: field is required (type: required)
    ```
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .coercer import Coercer, run_self_validation, type_error
from .context import ValidationContext, ValidationMode
from .errors import ErrorKind, FieldError, ValidationErrors
from .result import ValidationResult
from .rules import apply_constraints
from .shape import FieldSpec, Shape
from .typespec import TypeKind, TypeSpec, resolve_type

logger = logging.getLogger(__name__)

_MISSING = object()


class Validator:
    """Validates raw input trees against declared types.

    Instances hold no per-call state and may be shared between threads.

    Args:
        strict: Require exact raw types instead of coercing
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._coercer = Coercer(strict=strict, validator=self)

    def validate(
        self,
        target: Any,
        data: Any,
        *,
        context: ValidationContext | None = None,
        user_context: dict[str, Any] | None = None,
    ) -> ValidationResult:
        """Validate raw data against a type, shape or composite validator.

        Args:
            target: Dataclass, annotation, ``Shape``, ``TypeSpec`` or
                composite validator
            data: Raw input tree
            context: Existing context to validate within (a root context is
                created when omitted)
            user_context: Caller values exposed to field validators through
                ``context.user_context``

        Returns:
            ValidationResult with the typed value or the collected errors
        """
        spec = resolve_type(target)
        context = context or ValidationContext.root(data, user_context)
        return self.validate_value(data, spec, context)

    def validate_or_raise(self, target: Any, data: Any, **kwargs: Any) -> Any:
        """Like ``validate`` but returns the value or raises ``ValidationErrors``."""
        return self.validate(target, data, **kwargs).raise_for_errors()

    def validate_value(self, value: Any, spec: TypeSpec, context: ValidationContext) -> ValidationResult:
        """Coerce a value and run its self-validation capability."""
        result = self._coercer.coerce(value, spec, context)
        if not result.valid or spec.kind in (TypeKind.COMPOSITE, TypeKind.UNION):
            return result
        error = run_self_validation(result.value)
        if error is not None:
            return ValidationResult.failure([error])
        return result

    def validate_shape(
        self,
        shape: Shape,
        data: Any,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Populate and check one struct from a map-shaped raw value.

        Args:
            shape: The struct's shape descriptor
            data: Raw value; must be a mapping
            context: Context positioned at the struct

        Returns:
            ValidationResult with the constructed value, or errors with paths
            relative to the struct
        """
        context = context or ValidationContext.root(data)
        if not isinstance(data, Mapping):
            spec = TypeSpec(TypeKind.STRUCT, python_type=shape.python_type, shape_ref=shape)
            return ValidationResult.failure([type_error(data, spec, "expected an object")])

        values: dict[str, Any] = {}
        errors = ValidationErrors()
        for field in shape.fields:
            value = self._validate_field(field, data, context, errors)
            if value is not _MISSING:
                values[field.name] = value

        if errors:
            return ValidationResult.failure(errors)

        try:
            instance = shape.build(values)
        except (ValueError, TypeError, AssertionError) as e:
            return ValidationResult.failure(
                [FieldError((), str(e) or type(e).__name__, ErrorKind.MODEL)]
            )
        model_errors = self._validate_model(shape, instance)
        if model_errors:
            return ValidationResult.failure(model_errors)
        return ValidationResult.success(instance)

    def _validate_field(
        self,
        field: FieldSpec,
        data: Mapping[str, Any],
        parent: ValidationContext,
        errors: ValidationErrors,
    ) -> Any:
        context = parent.with_field(field.alias)
        field_errors: list[FieldError] = []

        if field.alias in data:
            raw = data[field.alias]
            result = self._coercer.coerce(raw, field.type, context)
            if not result.valid:
                errors.merge(result.errors.with_prefix(field.alias))
                return _MISSING
            value = result.value
        elif field.required:
            errors.add(FieldError((field.alias,), "field is required", ErrorKind.REQUIRED))
            return _MISSING
        elif field.omit_empty or not (field.constraints or field.validators):
            value = field.zero_value()
            context.set_validated(value)
            return value
        else:
            value = field.zero_value()

        # null in a nullable field carries no value to constrain
        if not (value is None and field.type.is_nullable):
            field_errors.extend(apply_constraints(field.constraints, value))

        if not field_errors:
            for field_validator in field.validators:
                try:
                    value = field_validator(value, context)
                except (ValueError, AssertionError) as e:
                    field_errors.append(
                        FieldError((), str(e) or type(e).__name__, ErrorKind.CUSTOM, value=value)
                    )
                    break

        if field.type.kind not in (TypeKind.COMPOSITE, TypeKind.UNION):
            self_error = run_self_validation(value)
            if self_error is not None:
                field_errors.append(self_error)

        if field_errors:
            errors.extend(error.with_prefix(field.alias) for error in field_errors)
            return _MISSING

        context.set_validated(value)
        return value

    def _validate_model(self, shape: Shape, instance: Any) -> ValidationErrors:
        errors = ValidationErrors()
        checks = list(shape.model_validators)
        validate_model = getattr(instance, "validate_model", None)
        if callable(validate_model):
            checks.append(lambda _instance: validate_model())

        for check in checks:
            try:
                check(instance)
            except (ValueError, AssertionError) as e:
                errors.add(FieldError((), str(e) or type(e).__name__, ErrorKind.MODEL))
        return errors

    def dump(self, value: Any, target: Any = None) -> Any:
        """Convert a typed value back into its raw form, using external names.

        Args:
            value: A value previously produced by validation
            target: Declared type; inferred from the value's class when omitted

        Returns:
            Raw tree of dicts, lists and scalars
        """
        spec = resolve_type(target if target is not None else type(value))
        return dump_value(value, spec)

    def validate_instance(self, value: Any, target: Any = None) -> ValidationResult:
        """Re-validate an existing typed value in serialization mode."""
        spec = resolve_type(target if target is not None else type(value))
        raw = dump_value(value, spec)
        context = ValidationContext.root(raw, mode=ValidationMode.SERIALIZATION)
        return self.validate_value(raw, spec, context)


def dump_value(value: Any, spec: TypeSpec) -> Any:
    """Raw form of ``value`` for the declared ``spec``."""
    if value is None:
        return None
    kind = spec.kind
    if kind is TypeKind.ANY:
        return value
    if spec.is_scalar:
        assert spec.base_type is not None
        return spec.base_type(value)
    if kind is TypeKind.OPTIONAL:
        assert spec.element is not None
        return dump_value(value, spec.element)
    if kind is TypeKind.LIST:
        assert spec.element is not None
        return [dump_value(item, spec.element) for item in value]
    if kind is TypeKind.DICT:
        assert spec.element is not None
        return {key: dump_value(item, spec.element) for key, item in value.items()}
    if kind is TypeKind.STRUCT:
        return _dump_struct(value, spec.shape)
    if kind is TypeKind.UNION:
        for candidate in spec.candidates:
            if candidate.python_type is not None and isinstance(value, candidate.python_type):
                return dump_value(value, candidate)
        return value
    assert spec.validator is not None
    return spec.validator.dump(value)


def _dump_struct(value: Any, shape: Shape) -> dict[str, Any]:
    raw = {}
    for field in shape.fields:
        item = shape.read(value, field)
        if field.omit_empty and item in (None, "", 0, False, [], {}):
            continue
        raw[field.alias] = dump_value(item, field.type)
    return raw


_lax = Validator(strict=False)
_strict = Validator(strict=True)


def validate(
    target: Any,
    data: Any,
    *,
    strict: bool = False,
    user_context: dict[str, Any] | None = None,
) -> ValidationResult:
    """Validate ``data`` against ``target`` with a shared validator."""
    validator = _strict if strict else _lax
    return validator.validate(target, data, user_context=user_context)


def validate_or_raise(target: Any, data: Any, *, strict: bool = False) -> Any:
    """Validate and return the typed value, raising ``ValidationErrors`` on failure."""
    return validate(target, data, strict=strict).raise_for_errors()


def dump(value: Any, target: Any = None) -> Any:
    return _lax.dump(value, target)


__all__ = [
    "Validator",
    "dump",
    "dump_value",
    "validate",
    "validate_or_raise",
]
