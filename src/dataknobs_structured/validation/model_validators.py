"""Reusable cross-field checks for model-level validation.

Each helper returns a callable suitable for a dataclass's
``__model_validators__`` tuple or ``ShapeBuilder.model_validator``. The
callables read fields by attribute name from dataclass instances and by key
from dict-shaped values, and raise ``ValueError`` when the check fails.

Example:
    ```python
    @dataclass
    class Account:
        __model_validators__ = (
            fields_match("password", "confirm_password"),
            at_least_one("email", "phone"),
        )

        password: str = schema_field("required,min=8")
        confirm_password: str = schema_field("required")
        email: str | None = None
        phone: str | None = None
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

_ABSENT = object()


def _read(instance: Any, name: str) -> Any:
    if isinstance(instance, Mapping):
        value = instance.get(name, _ABSENT)
    else:
        value = getattr(instance, name, _ABSENT)
    if value is _ABSENT:
        raise ValueError(f"field {name} not found")
    return value


def _is_set(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def fields_match(first: str, second: str, message: str | None = None) -> Callable[[Any], None]:
    """Two fields must hold equal values (e.g. password confirmation)."""

    def check(instance: Any) -> None:
        if _read(instance, first) != _read(instance, second):
            raise ValueError(message or f"{first} and {second} must match")

    return check


def conditional_required(
    condition_field: str,
    condition_value: Any,
    required_field: str,
) -> Callable[[Any], None]:
    """``required_field`` must be set whenever ``condition_field == condition_value``."""

    def check(instance: Any) -> None:
        if _read(instance, condition_field) == condition_value and not _is_set(
            _read(instance, required_field)
        ):
            raise ValueError(
                f"{required_field} is required when {condition_field} is {condition_value}"
            )

    return check


def at_least_one(*fields: str) -> Callable[[Any], None]:
    """At least one of the fields must be set."""
    if not fields:
        raise ValueError("at_least_one needs at least one field name")

    def check(instance: Any) -> None:
        if not any(_is_set(_read(instance, name)) for name in fields):
            raise ValueError(f"at least one of [{', '.join(fields)}] must be provided")

    return check


def mutually_exclusive(*fields: str) -> Callable[[Any], None]:
    """At most one of the fields may be set."""
    if len(fields) < 2:
        raise ValueError("mutually_exclusive needs at least two field names")

    def check(instance: Any) -> None:
        if sum(1 for name in fields if _is_set(_read(instance, name))) > 1:
            raise ValueError(f"only one of [{', '.join(fields)}] can be set")

    return check


def ordered(start_field: str, end_field: str, message: str | None = None) -> Callable[[Any], None]:
    """``start_field`` must not be greater than ``end_field`` when both are set."""

    def check(instance: Any) -> None:
        start = _read(instance, start_field)
        end = _read(instance, end_field)
        if _is_set(start) and _is_set(end) and start > end:
            raise ValueError(message or f"{start_field} must not be after {end_field}")

    return check


__all__ = [
    "at_least_one",
    "conditional_required",
    "fields_match",
    "mutually_exclusive",
    "ordered",
]
