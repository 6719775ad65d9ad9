"""Call-scoped validation context.

One ``ValidationContext.root`` is created per top-level validation call. It
owns a single mutable state object (raw input, already-validated values and
caller supplied data). Every field, list element or dictionary value gets a
derived context that only adds a path segment; all of them share the root's
state by reference and none of them outlive the call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import PathSegment, render_path


class ValidationMode(str, Enum):
    """Whether raw input is being validated or a typed value is being dumped."""

    VALIDATION = "validation"
    SERIALIZATION = "serialization"


@dataclass
class _ValidationState:
    raw: Any = None
    validated: dict[str, Any] = field(default_factory=dict)
    user_context: dict[str, Any] = field(default_factory=dict)


class ValidationContext:
    """Path-tracking handle onto the state of one validation call.

    Example:
        ```python
        ctx = ValidationContext.root({"user": {"name": "Alice"}})
        child = ctx.with_field("user").with_field("name")
        child.path_string()
        # 'user.name'
        child.set_validated("Alice")
        ctx.get_validated("user.name")
        # 'Alice'
        ```
    """

    __slots__ = ("_state", "path", "mode", "parent")

    def __init__(
        self,
        state: _ValidationState,
        path: tuple[PathSegment, ...] = (),
        mode: ValidationMode = ValidationMode.VALIDATION,
        parent: ValidationContext | None = None,
    ):
        self._state = state
        self.path = path
        self.mode = mode
        self.parent = parent

    @classmethod
    def root(
        cls,
        raw: Any = None,
        user_context: dict[str, Any] | None = None,
        mode: ValidationMode = ValidationMode.VALIDATION,
    ) -> ValidationContext:
        """Create the root context for a validation call.

        Args:
            raw: The raw input tree being validated
            user_context: Caller supplied values visible to field validators
            mode: Validation or serialization

        Returns:
            Root context with an empty path
        """
        state = _ValidationState(raw=raw, user_context=dict(user_context or {}))
        return cls(state, (), mode, None)

    def with_field(self, segment: PathSegment) -> ValidationContext:
        """Derive a child context one path segment deeper."""
        return ValidationContext(self._state, self.path + (segment,), self.mode, self)

    def with_mode(self, mode: ValidationMode) -> ValidationContext:
        """Derive a copy of this context with a different mode."""
        return ValidationContext(self._state, self.path, mode, self.parent)

    @property
    def raw(self) -> Any:
        """The root raw input of the call."""
        return self._state.raw

    @property
    def user_context(self) -> dict[str, Any]:
        return self._state.user_context

    @property
    def field_name(self) -> PathSegment | None:
        return self.path[-1] if self.path else None

    @property
    def is_serialization(self) -> bool:
        return self.mode is ValidationMode.SERIALIZATION

    def path_string(self) -> str:
        return render_path(self.path)

    def set_validated(self, value: Any) -> None:
        """Record the validated value for this context's own path."""
        self._state.validated[self.path_string()] = value

    def set_validated_key(self, key: str, value: Any) -> None:
        self._state.validated[key] = value

    def get_validated(self, key: str, default: Any = None) -> Any:
        """Read a previously validated value by its dotted path.

        Args:
            key: Dotted path such as ``"password"`` or ``"address.zip"``
            default: Returned when nothing has been recorded for ``key``
        """
        return self._state.validated.get(key, default)

    def sibling_key(self, name: str) -> str:
        """Dotted key of a field that sits next to this context's field."""
        return render_path(self.path[:-1] + (name,))

    def validated_values(self) -> dict[str, Any]:
        return dict(self._state.validated)

    def __repr__(self) -> str:
        return f"ValidationContext(path={self.path_string()!r}, mode={self.mode.value})"


__all__ = ["ValidationContext", "ValidationMode"]
