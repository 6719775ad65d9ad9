"""Exception hierarchy for dataknobs-structured.

All exceptions raised by this package derive from ``StructuredError``, which
carries an optional context dictionary with details about the failure.

Validation of untrusted data never raises for bad input; it returns a
``ValidationResult`` instead. Exceptions are reserved for:

- Terminal extraction outcomes (exhausted, generator failure, cancelled)
- Configuration and shape-declaration mistakes
- Callers that explicitly opt into raising (``validate_or_raise``)

Example:
    ```python
    from dataknobs_structured.exceptions import (
        ExtractionCancelledError,
        ExtractionExhaustedError,
        GeneratorError,
    )

    try:
        result = await client.extract(Person, "Tell me about Alice")
    except ExtractionExhaustedError as e:
        logger.warning("Gave up after %d attempts: %s", e.attempts, e.last_errors)
    except GeneratorError as e:
        logger.error("Generator failed: %s", e)
    except ExtractionCancelledError:
        logger.info("Extraction cancelled")
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .validation.errors import ValidationErrors


class StructuredError(Exception):
    """Base exception for the structured extraction package.

    Attributes:
        context: Dictionary containing contextual information about the error
        details: Alias for context

    Example:
        ```python
        error = StructuredError(
            "Operation failed",
            context={"operation": "extract", "shape": "Person"}
        )
        str(error)
        # 'Operation failed'
        error.context
        # {'operation': 'extract', 'shape': 'Person'}
        ```
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize the exception with optional context.

        Args:
            message: Error message
            context: Optional context dictionary
            details: Optional details dictionary (takes precedence over context)
        """
        super().__init__(message)
        self.context = details or context or {}
        self.details = self.context


class ConfigurationError(StructuredError):
    """Raised when client configuration or a shape declaration is invalid."""

    pass


class ResponseParseError(StructuredError):
    """Raised when a generator payload cannot be decoded into a raw value tree.

    The extraction client treats this exactly like a validation failure for
    retry purposes; it only escapes to callers of the parsing helpers.

    Attributes:
        raw_output: The text that could not be decoded
    """

    def __init__(self, message: str, raw_output: str = "", context: dict[str, Any] | None = None):
        super().__init__(message, context=context)
        self.raw_output = raw_output


class GeneratorError(StructuredError):
    """Raised when the generator itself fails (transport or provider error).

    Never retried by the extraction client and never reported as a
    validation failure.
    """

    pass


class ExtractionExhaustedError(StructuredError):
    """Raised when every permitted attempt failed parsing or validation.

    Attributes:
        attempts: Number of generator calls made
        last_errors: Validation errors from the final attempt
        last_response: Raw output of the final attempt
    """

    def __init__(
        self,
        attempts: int,
        last_errors: ValidationErrors,
        last_response: str = "",
        context: dict[str, Any] | None = None,
    ):
        noun = "attempt" if attempts == 1 else "attempts"
        super().__init__(
            f"validation failed after {attempts} {noun}: {last_errors}",
            context=context,
        )
        self.attempts = attempts
        self.last_errors = last_errors
        self.last_response = last_response


class ExtractionCancelledError(StructuredError):
    """Raised when an extraction is cancelled or its deadline passes.

    Checked only between attempts, so a generator call that was already in
    flight is allowed to finish first.

    Attributes:
        attempts: Number of generator calls completed before cancellation
        reason: ``"cancelled"`` or ``"timeout"``
    """

    def __init__(self, attempts: int, reason: str = "cancelled", context: dict[str, Any] | None = None):
        super().__init__(
            f"extraction {reason} after {attempts} completed attempts",
            context=context,
        )
        self.attempts = attempts
        self.reason = reason


__all__ = [
    "StructuredError",
    "ConfigurationError",
    "ResponseParseError",
    "GeneratorError",
    "ExtractionExhaustedError",
    "ExtractionCancelledError",
]
