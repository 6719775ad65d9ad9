"""Validation result types with consistent, predictable behavior.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .errors import FieldError, ValidationErrors


@dataclass
class ValidationResult:
    """Unified result object for all validation operations.

    Exactly one of ``value`` (on success) or a non-empty ``errors``
    collection (on failure) is meaningful. ``raise_for_errors`` converts a
    failure into an exception for callers that prefer raising.
    """

    valid: bool
    value: Any = None
    errors: ValidationErrors = field(default_factory=ValidationErrors)

    def __bool__(self) -> bool:
        """Allow 'if result:' usage to check validity."""
        return self.valid

    def add_error(self, error: FieldError) -> ValidationResult:
        """Add an error and mark as invalid (fluent API).

        Args:
            error: Error to add

        Returns:
            Self for chaining
        """
        self.errors.add(error)
        self.valid = False
        self.value = None
        return self

    def raise_for_errors(self) -> Any:
        """Return the value, or raise the collected ``ValidationErrors``."""
        if not self.valid:
            raise self.errors
        return self.value

    @classmethod
    def success(cls, value: Any) -> ValidationResult:
        """Create a successful validation result.

        Args:
            value: The validated value

        Returns:
            Successful ValidationResult
        """
        return cls(valid=True, value=value)

    @classmethod
    def failure(cls, errors: ValidationErrors | list[FieldError]) -> ValidationResult:
        """Create a failed validation result.

        Args:
            errors: The errors explaining the failure; must not be empty

        Returns:
            Failed ValidationResult
        """
        if not isinstance(errors, ValidationErrors):
            errors = ValidationErrors(errors)
        if not errors.has_errors():
            raise ValueError("A failed ValidationResult needs at least one error")
        return cls(valid=False, value=None, errors=errors)


@dataclass
class OptionalResult(ValidationResult):
    """Result of validating an optional value."""

    @property
    def has_value(self) -> bool:
        return self.valid and self.value is not None

    @property
    def is_none(self) -> bool:
        return self.valid and self.value is None


@dataclass
class UnionResult(ValidationResult):
    """Result of validating a union; records which candidate matched."""

    selected_index: int | None = None
    selected_name: str | None = None


@dataclass
class DiscriminatedResult(ValidationResult):
    """Result of validating a discriminated union.

    Attributes:
        selected_key: The discriminator value that selected the candidate
    """

    selected_key: str | None = None


__all__ = [
    "ValidationResult",
    "OptionalResult",
    "UnionResult",
    "DiscriminatedResult",
]
