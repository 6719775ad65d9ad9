"""Field-path aware validation errors and their aggregate.

``FieldError`` describes one failure at one location in the input tree.
``ValidationErrors`` collects them in order, supports prefixing paths when a
nested failure is folded into its parent, and renders a stable multi-line
message that is also what the extraction client feeds back to the generator.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from dataknobs_structured.exceptions import StructuredError

PathSegment = str | int


class ErrorKind(str, Enum):
    """Machine-readable category of a validation failure."""

    REQUIRED = "required"
    TYPE = "type"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    MIN = "min"
    MAX = "max"
    PATTERN = "pattern"
    EMAIL = "email"
    URL = "url"
    UUID = "uuid"
    ENUM = "enum"
    CUSTOM = "custom"
    MODEL = "model"
    UNKNOWN_FIELD = "unknown_field"
    MISSING_DISCRIMINATOR = "missing_discriminator"
    DISCRIMINATOR_TYPE = "discriminator_type"
    UNKNOWN_DISCRIMINATOR = "unknown_discriminator"
    UNION = "union"
    PARSE = "parse"

    def __str__(self) -> str:
        return self.value


def render_path(path: Iterable[PathSegment]) -> str:
    """Render path segments as a dotted string with ``[i]`` list indices.

    Example:
        >>> render_path(["items", 1, "id"])
        'items[1].id'
    """
    rendered = ""
    for segment in path:
        if isinstance(segment, int):
            rendered += f"[{segment}]"
        elif rendered:
            rendered += f".{segment}"
        else:
            rendered = str(segment)
    return rendered


@dataclass(frozen=True)
class FieldError:
    """A single validation failure.

    Attributes:
        path: Location of the failure in the input, outermost segment first
        message: Human readable description
        kind: Machine readable category
        value: The offending value, if any
        constraint: The violated constraint descriptor (e.g. ``"gte=18"``)
    """

    path: tuple[PathSegment, ...]
    message: str
    kind: ErrorKind = ErrorKind.CUSTOM
    value: Any = None
    constraint: str | None = None

    @property
    def location(self) -> str:
        return render_path(self.path)

    def with_prefix(self, *segments: PathSegment) -> FieldError:
        return FieldError(
            path=tuple(segments) + self.path,
            message=self.message,
            kind=self.kind,
            value=self.value,
            constraint=self.constraint,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.location,
            "message": self.message,
            "kind": self.kind.value,
            "value": self.value,
            "constraint": self.constraint,
        }

    def __str__(self) -> str:
        text = f"{self.location or 'value'}: {self.message} (type: {self.kind})"
        if self.value is not None:
            text += f", value: {self.value!r}"
        if self.constraint:
            text += f", constraint: {self.constraint}"
        return text


class ValidationErrors(StructuredError):
    """Ordered collection of ``FieldError`` objects.

    Returned inside ``ValidationResult`` by every validator and raised only
    by the explicit ``*_or_raise`` helpers.

    Example:
        ```python
        errors = ValidationErrors()
        errors.add(FieldError(("email",), "field is required", ErrorKind.REQUIRED))
        nested = ValidationErrors([FieldError(("zip",), "too short", ErrorKind.MIN_LENGTH)])
        errors.merge(nested.with_prefix("address"))

        print(errors)
        # ValidationError: 2 errors
        #   1. email: field is required (type: required)
        #   2. address.zip: too short (type: min_length)
        ```
    """

    def __init__(self, errors: Iterable[FieldError] | None = None):
        self.errors: list[FieldError] = list(errors or [])
        super().__init__(self.render())

    def add(self, error: FieldError) -> ValidationErrors:
        self.errors.append(error)
        self._refresh()
        return self

    def extend(self, errors: Iterable[FieldError]) -> ValidationErrors:
        self.errors.extend(errors)
        self._refresh()
        return self

    def merge(self, other: ValidationErrors) -> ValidationErrors:
        """Append all errors of another collection, in order (fluent API)."""
        self.errors.extend(other.errors)
        self._refresh()
        return self

    def has_errors(self) -> bool:
        return bool(self.errors)

    def with_prefix(self, *segments: PathSegment) -> ValidationErrors:
        """Return a new collection with ``segments`` prepended to every path.

        Used when folding the errors of a nested struct, list element or
        dictionary value into the errors of its container.
        """
        return ValidationErrors(error.with_prefix(*segments) for error in self.errors)

    def kinds(self) -> list[ErrorKind]:
        return [error.kind for error in self.errors]

    def for_path(self, path: str) -> list[FieldError]:
        """Get the errors whose rendered path equals ``path``."""
        return [error for error in self.errors if error.location == path]

    def to_list(self) -> list[dict[str, Any]]:
        return [error.to_dict() for error in self.errors]

    def render(self) -> str:
        """Deterministic rendering; numbered when there is more than one error."""
        if not self.errors:
            return "ValidationError: no errors"
        if len(self.errors) == 1:
            return f"ValidationError: {self.errors[0]}"
        lines = [f"ValidationError: {len(self.errors)} errors"]
        lines.extend(f"  {i}. {error}" for i, error in enumerate(self.errors, start=1))
        return "\n".join(lines)

    def _refresh(self) -> None:
        self.args = (self.render(),)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"ValidationErrors({self.errors!r})"

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self) -> Iterator[FieldError]:
        return iter(self.errors)

    def __getitem__(self, index: int) -> FieldError:
        return self.errors[index]

    def __bool__(self) -> bool:
        return bool(self.errors)


__all__ = [
    "ErrorKind",
    "FieldError",
    "PathSegment",
    "ValidationErrors",
    "render_path",
]
