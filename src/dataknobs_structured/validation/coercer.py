"""Type coercion with predictable, consistent behavior.

``Coercer`` converts a raw value into a declared ``TypeSpec``. It always
returns a ``ValidationResult`` and never raises for bad data.

Strict mode requires the raw value to already have the declared type.
Lax mode (the default) passes identical types through and otherwise tries,
in order: numeric widening/narrowing, string/number/bool parsing,
element-wise list and dict coercion, and map to struct population. Null
becomes the declared type's zero value. Float to int narrowing truncates
toward zero.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .context import ValidationContext
from .errors import ErrorKind, FieldError, ValidationErrors
from .result import ValidationResult
from .typespec import RawKind, TypeKind, TypeSpec, format_scalar, raw_kind, raw_type_name, zero_value

if TYPE_CHECKING:
    from .validator import Validator

_INT_TEXT = re.compile(r"^[+-]?\d+$")
_FLOAT_TEXT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_SPECIAL_FLOATS = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity", "nan"}
_TRUE_TEXT = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_TEXT = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class CoercionFailed(ValueError):
    """Internal signal carrying the reason a scalar conversion failed."""


def type_error(value: Any, target: TypeSpec, reason: str | None = None) -> FieldError:
    """Build the TypeCoercionFailed error for ``value`` against ``target``."""
    message = f"cannot coerce {raw_type_name(value)} to {target.name}"
    if reason:
        message = f"{message}: {reason}"
    return FieldError((), message, ErrorKind.TYPE, value=value, constraint=target.name)


def run_self_validation(value: Any) -> FieldError | None:
    """Invoke a value's ``validate()`` capability, if it has one.

    The capability signals failure by raising ``ValueError`` or
    ``AssertionError``; the message becomes a ``custom`` error.
    """
    validate = getattr(value, "validate", None)
    if value is None or not callable(validate) or isinstance(value, type):
        return None
    try:
        validate()
    except (ValueError, AssertionError) as e:
        return FieldError((), str(e) or type(e).__name__, ErrorKind.CUSTOM, value=value)
    return None


class Coercer:
    """Converts raw values into declared types.

    Args:
        strict: Require exact types instead of converting
        validator: Struct validator used for struct, union and composite
            specs; one is created on demand when omitted
    """

    def __init__(self, strict: bool = False, validator: Validator | None = None):
        self.strict = strict
        self._validator = validator

    @property
    def validator(self) -> Validator:
        if self._validator is None:
            from .validator import Validator

            self._validator = Validator(strict=self.strict)
        return self._validator

    def coerce(
        self,
        value: Any,
        spec: TypeSpec,
        context: ValidationContext | None = None,
    ) -> ValidationResult:
        """Coerce a value to the declared type.

        Args:
            value: Raw value to coerce
            spec: Declared type
            context: Context of the value's position in the input

        Returns:
            ValidationResult with the coerced value, or errors whose paths
            are relative to ``value``
        """
        context = context or ValidationContext.root(value)
        kind = spec.kind

        if kind is TypeKind.ANY:
            return ValidationResult.success(value)
        if kind is TypeKind.OPTIONAL:
            if value is None:
                return ValidationResult.success(None)
            assert spec.element is not None
            return self.coerce(value, spec.element, context)
        if kind is TypeKind.COMPOSITE:
            assert spec.validator is not None
            return spec.validator.validate(value, context, strict=self.strict)
        if kind is TypeKind.UNION:
            from .composites import UnionOf

            return UnionOf(*spec.candidates).validate(value, context, strict=self.strict)

        if value is None:
            if self.strict:
                return ValidationResult.failure([type_error(value, spec, "null is not allowed")])
            return ValidationResult.success(zero_value(spec))

        if spec.is_scalar:
            try:
                coerced = self._coerce_scalar(value, spec)
            except CoercionFailed as e:
                return ValidationResult.failure([type_error(value, spec, str(e) or None)])
            return ValidationResult.success(coerced)
        if kind is TypeKind.LIST:
            return self._coerce_list(value, spec, context)
        if kind is TypeKind.DICT:
            return self._coerce_dict(value, spec, context)
        if kind is TypeKind.STRUCT:
            if not isinstance(value, Mapping):
                return ValidationResult.failure(
                    [type_error(value, spec, "expected an object")]
                )
            return self.validator.validate_shape(spec.shape, value, context)

        return ValidationResult.failure([type_error(value, spec, "unsupported type")])

    def _coerce_scalar(self, value: Any, spec: TypeSpec) -> Any:
        base = spec.base_type
        assert base is not None and spec.python_type is not None
        rk = raw_kind(value)

        if self.strict:
            if not _exact_scalar(rk, spec.kind):
                raise CoercionFailed("strict mode requires an exact type match")
            converted = value
        elif _exact_scalar(rk, spec.kind):
            converted = value
        elif spec.kind is TypeKind.STR:
            converted = _to_str(value, rk)
        elif spec.kind is TypeKind.INT:
            converted = _to_int(value, rk)
        elif spec.kind is TypeKind.FLOAT:
            converted = _to_float(value, rk)
        else:
            converted = _to_bool(value, rk)

        if spec.python_type is not base and type(converted) is not spec.python_type:
            return spec.python_type(converted)
        return converted

    def _coerce_list(self, value: Any, spec: TypeSpec, context: ValidationContext) -> ValidationResult:
        if raw_kind(value) is not RawKind.LIST:
            return ValidationResult.failure([type_error(value, spec, "expected a list")])
        assert spec.element is not None

        items = []
        errors = ValidationErrors()
        for index, item in enumerate(value):
            result = self.validator.validate_value(item, spec.element, context.with_field(index))
            if result.valid:
                items.append(result.value)
            else:
                errors.merge(result.errors.with_prefix(index))
        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(items)

    def _coerce_dict(self, value: Any, spec: TypeSpec, context: ValidationContext) -> ValidationResult:
        if raw_kind(value) is not RawKind.MAP:
            return ValidationResult.failure([type_error(value, spec, "expected an object")])
        assert spec.key is not None and spec.element is not None

        items = {}
        errors = ValidationErrors()
        for key, item in value.items():
            segment = str(key)
            if isinstance(key, str) and spec.key.kind in (TypeKind.STR, TypeKind.ANY):
                coerced_key = spec.key.python_type(key) if spec.key.python_type not in (None, str) else key
            else:
                key_result = self.coerce(key, spec.key, context.with_field(segment))
                if not key_result.valid:
                    errors.merge(key_result.errors.with_prefix(segment))
                    continue
                coerced_key = key_result.value

            result = self.validator.validate_value(item, spec.element, context.with_field(segment))
            if result.valid:
                items[coerced_key] = result.value
            else:
                errors.merge(result.errors.with_prefix(segment))
        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(items)


def _exact_scalar(rk: RawKind, kind: TypeKind) -> bool:
    return (
        (kind is TypeKind.STR and rk is RawKind.STRING)
        or (kind is TypeKind.INT and rk is RawKind.INT)
        or (kind is TypeKind.FLOAT and rk is RawKind.FLOAT)
        or (kind is TypeKind.BOOL and rk is RawKind.BOOL)
    )


def _to_str(value: Any, rk: RawKind) -> str:
    if rk in (RawKind.BOOL, RawKind.INT, RawKind.FLOAT):
        return format_scalar(value)
    raise CoercionFailed()


def _to_int(value: Any, rk: RawKind) -> int:
    if rk is RawKind.FLOAT:
        if not math.isfinite(value):
            raise CoercionFailed(f"{value} has no integer value")
        # int() truncates toward zero
        return int(value)
    if rk is RawKind.STRING:
        if not _INT_TEXT.match(value):
            raise CoercionFailed(f"invalid integer literal {value!r}")
        return int(value)
    raise CoercionFailed()


def _to_float(value: Any, rk: RawKind) -> float:
    if rk is RawKind.INT:
        return float(value)
    if rk is RawKind.STRING:
        if not (_FLOAT_TEXT.match(value) or value.lower() in _SPECIAL_FLOATS):
            raise CoercionFailed(f"invalid float literal {value!r}")
        return float(value)
    raise CoercionFailed()


def _to_bool(value: Any, rk: RawKind) -> bool:
    if rk is RawKind.STRING:
        if value in _TRUE_TEXT:
            return True
        if value in _FALSE_TEXT:
            return False
        raise CoercionFailed(f"invalid boolean literal {value!r}")
    if rk in (RawKind.INT, RawKind.FLOAT):
        return value != 0
    raise CoercionFailed()


__all__ = ["Coercer", "run_self_validation", "type_error"]
