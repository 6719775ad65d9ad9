"""Declarative per-field constraint language.

A field declares its rules as a comma separated string of ``name`` or
``name=param`` tokens, for example ``"required,min=2,max=50"`` or
``"gte=0,lte=150"``. Tokens are parsed once into ``Rule`` tuples and turned
into ``Constraint`` objects when the field's shape is built; evaluation then
only calls ``Constraint.check``.

Recognized rules:

============  ===========================================================
``required``  Field must be present (structural, handled by the validator)
``omitempty`` Absent field is skipped (structural)
``min``       Minimum string length, or minimum numeric value (inclusive)
``max``       Maximum string length, or maximum numeric value (inclusive)
``gte``       Numeric value >= param
``gt``        Numeric value > param
``lte``       Numeric value <= param
``lt``        Numeric value < param
``oneof``     String form of the value is in a space separated list
``email``     Valid email address
``url``       Absolute http or https URL
``uuid``      Valid UUID
``alpha``     ASCII letters only
``alphanum``  ASCII letters and digits only
``numeric``   ASCII digits only
``pattern``   Value matches a regular expression (search semantics)
============  ===========================================================

Unknown rule names are accepted and ignored so that descriptors written for
a newer rule set still load.
"""

from __future__ import annotations

import logging
import math
import re
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from email.utils import parseaddr
from functools import lru_cache
from typing import Any
from urllib.parse import urlparse

from .errors import ErrorKind, FieldError
from .typespec import format_scalar

logger = logging.getLogger(__name__)

STRUCTURAL_RULES = frozenset({"required", "omitempty"})


@dataclass(frozen=True)
class Rule:
    """One parsed ``name`` or ``name=param`` token."""

    name: str
    param: str | None = None

    def __str__(self) -> str:
        return self.name if self.param is None else f"{self.name}={self.param}"


@lru_cache(maxsize=512)
def parse_rules(tag: str) -> tuple[Rule, ...]:
    """Parse a rule string into rules, in declaration order.

    Args:
        tag: Comma separated ``name`` / ``name=param`` tokens

    Returns:
        Tuple of parsed rules; empty tokens are dropped

    Example:
        >>> parse_rules("required, min=2 ,oneof=a b")
        (Rule(name='required', param=None), Rule(name='min', param='2'), Rule(name='oneof', param='a b'))
    """
    rules = []
    for token in tag.split(","):
        token = token.strip()
        if not token:
            continue
        name, sep, param = token.partition("=")
        rules.append(Rule(name.strip(), param.strip() if sep else None))
    return tuple(rules)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number_param(rule: Rule) -> int | float:
    if rule.param is None or rule.param == "":
        raise ValueError(f"Rule '{rule.name}' requires a numeric parameter")
    try:
        return int(rule.param)
    except ValueError:
        pass
    try:
        number = float(rule.param)
    except ValueError:
        raise ValueError(
            f"Rule '{rule.name}' requires a numeric parameter, got '{rule.param}'"
        ) from None
    if math.isnan(number):
        raise ValueError(f"Rule '{rule.name}' parameter cannot be NaN")
    return number


class Constraint(ABC):
    """Base class for all field constraints.

    A constraint checks an already coerced value and returns a path-less
    ``FieldError`` describing the violation, or ``None`` when the value
    satisfies it. The validator prefixes the field path.
    """

    def __init__(self, rule: Rule):
        self.rule = rule

    @abstractmethod
    def check(self, value: Any) -> FieldError | None:
        """Validate a value against this constraint.

        Args:
            value: Coerced field value

        Returns:
            The violation, or None if the value is acceptable
        """

    def violation(self, message: str, kind: ErrorKind, value: Any) -> FieldError:
        return FieldError((), message, kind, value=value, constraint=str(self.rule))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.rule})"


class Bound(Constraint):
    """``min``/``max``: character length for strings, value for numbers."""

    def __init__(self, rule: Rule, limit: int | float, upper: bool):
        super().__init__(rule)
        self.limit = limit
        self.upper = upper

    def check(self, value: Any) -> FieldError | None:
        if isinstance(value, str):
            length = len(value)
            if self.upper and length > self.limit:
                return self.violation(
                    f"string length must be at most {format_scalar(self.limit)}",
                    ErrorKind.MAX_LENGTH,
                    value,
                )
            if not self.upper and length < self.limit:
                return self.violation(
                    f"string length must be at least {format_scalar(self.limit)}",
                    ErrorKind.MIN_LENGTH,
                    value,
                )
            return None

        if _is_number(value):
            if self.upper and not value <= self.limit:
                return self.violation(
                    f"value must be at most {format_scalar(self.limit)}", ErrorKind.MAX, value
                )
            if not self.upper and not value >= self.limit:
                return self.violation(
                    f"value must be at least {format_scalar(self.limit)}", ErrorKind.MIN, value
                )
        return None


class Range(Constraint):
    """Numeric comparison against a single limit (``gte``/``gt``/``lte``/``lt``).

    Non-numeric values are ignored. NaN never satisfies a comparison.
    """

    _MESSAGES = {
        "gte": "value must be greater than or equal to",
        "gt": "value must be greater than",
        "lte": "value must be less than or equal to",
        "lt": "value must be less than",
    }

    def __init__(self, rule: Rule, limit: int | float):
        super().__init__(rule)
        self.limit = limit

    def check(self, value: Any) -> FieldError | None:
        if not _is_number(value):
            return None
        name = self.rule.name
        if name == "gte":
            ok = value >= self.limit
        elif name == "gt":
            ok = value > self.limit
        elif name == "lte":
            ok = value <= self.limit
        else:
            ok = value < self.limit
        if ok:
            return None
        kind = ErrorKind.MIN if name in ("gte", "gt") else ErrorKind.MAX
        return self.violation(f"{self._MESSAGES[name]} {format_scalar(self.limit)}", kind, value)


class OneOf(Constraint):
    """String form of the value must appear in an allow-list."""

    def __init__(self, rule: Rule):
        super().__init__(rule)
        self.options = tuple((rule.param or "").split())

    def check(self, value: Any) -> FieldError | None:
        if format_scalar(value) in self.options:
            return None
        return self.violation(
            f"value must be one of: {', '.join(self.options)}", ErrorKind.ENUM, value
        )


class Format(Constraint):
    """String format predicate such as ``email`` or ``alpha``."""

    def __init__(
        self,
        rule: Rule,
        predicate: Callable[[str], bool],
        message: str,
        kind: ErrorKind,
    ):
        super().__init__(rule)
        self.predicate = predicate
        self.message = message
        self.kind = kind

    def check(self, value: Any) -> FieldError | None:
        if not isinstance(value, str):
            return self.violation(
                f"{self.rule.name} requires a string value", self.kind, value
            )
        if self.predicate(value):
            return None
        return self.violation(self.message, self.kind, value)


class Pattern(Constraint):
    """Value must match a regular expression somewhere in the string."""

    def __init__(self, rule: Rule):
        super().__init__(rule)
        if not rule.param:
            raise ValueError("Rule 'pattern' requires a regular expression")
        try:
            self.regex = re.compile(rule.param)
        except re.error as e:
            raise ValueError(f"Invalid regex pattern '{rule.param}': {e}") from e

    def check(self, value: Any) -> FieldError | None:
        if not isinstance(value, str):
            return self.violation("pattern requires a string value", ErrorKind.PATTERN, value)
        if self.regex.search(value):
            return None
        return self.violation(
            f"value does not match pattern {self.rule.param}", ErrorKind.PATTERN, value
        )


_ADDR_SPEC = re.compile(r"^[^@\s<>()\[\],;:\"]+@[^@\s<>()\[\],;:\"]+$")
_ALPHA = re.compile(r"^[a-zA-Z]+$")
_ALPHANUM = re.compile(r"^[a-zA-Z0-9]+$")
_NUMERIC = re.compile(r"^[0-9]+$")


def is_email(value: str) -> bool:
    """Accepts ``user@host`` and ``Name <user@host>`` forms."""
    _, address = parseaddr(value)
    return bool(address) and _ADDR_SPEC.match(address) is not None


def is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def is_alpha(value: str) -> bool:
    return _ALPHA.match(value) is not None


def is_alphanum(value: str) -> bool:
    return _ALPHANUM.match(value) is not None


def is_numeric(value: str) -> bool:
    return _NUMERIC.match(value) is not None


ConstraintBuilder = Callable[[Rule], Constraint]

_BUILDERS: dict[str, ConstraintBuilder] = {
    "min": lambda rule: Bound(rule, _number_param(rule), upper=False),
    "max": lambda rule: Bound(rule, _number_param(rule), upper=True),
    "gte": lambda rule: Range(rule, _number_param(rule)),
    "gt": lambda rule: Range(rule, _number_param(rule)),
    "lte": lambda rule: Range(rule, _number_param(rule)),
    "lt": lambda rule: Range(rule, _number_param(rule)),
    "oneof": OneOf,
    "email": lambda rule: Format(rule, is_email, "invalid email format", ErrorKind.EMAIL),
    "url": lambda rule: Format(rule, is_http_url, "invalid URL format", ErrorKind.URL),
    "uuid": lambda rule: Format(rule, is_uuid, "invalid UUID format", ErrorKind.UUID),
    "alpha": lambda rule: Format(
        rule, is_alpha, "must contain only letters", ErrorKind.PATTERN
    ),
    "alphanum": lambda rule: Format(
        rule, is_alphanum, "must contain only letters and numbers", ErrorKind.PATTERN
    ),
    "numeric": lambda rule: Format(
        rule, is_numeric, "must contain only numbers", ErrorKind.PATTERN
    ),
    "pattern": Pattern,
}


def register_rule(name: str, builder: ConstraintBuilder) -> None:
    """Register a builder for a custom rule name.

    Args:
        name: Rule name as written in descriptors
        builder: Callable that receives the parsed ``Rule`` and returns a
            ``Constraint``; it should raise ``ValueError`` for bad parameters

    Raises:
        ValueError: If the name is structural or already registered
    """
    if name in STRUCTURAL_RULES or name in _BUILDERS:
        raise ValueError(f"Rule '{name}' is already defined")
    _BUILDERS[name] = builder


def build_constraint(rule: Rule) -> Constraint | None:
    """Build the constraint for a rule, or None for structural/unknown rules.

    Raises:
        ValueError: If the rule's parameter is malformed
    """
    if rule.name in STRUCTURAL_RULES:
        return None
    builder = _BUILDERS.get(rule.name)
    if builder is None:
        logger.debug("Ignoring unknown validation rule '%s'", rule.name)
        return None
    return builder(rule)


def build_constraints(rules: tuple[Rule, ...]) -> tuple[Constraint, ...]:
    constraints = []
    for rule in rules:
        constraint = build_constraint(rule)
        if constraint is not None:
            constraints.append(constraint)
    return tuple(constraints)


def apply_constraints(constraints: tuple[Constraint, ...], value: Any) -> list[FieldError]:
    """Check every constraint, collecting each violation independently."""
    errors = []
    for constraint in constraints:
        error = constraint.check(value)
        if error is not None:
            errors.append(error)
    return errors


__all__ = [
    "Bound",
    "Constraint",
    "Format",
    "OneOf",
    "Pattern",
    "Range",
    "Rule",
    "STRUCTURAL_RULES",
    "apply_constraints",
    "build_constraint",
    "build_constraints",
    "is_email",
    "is_http_url",
    "is_uuid",
    "parse_rules",
    "register_rule",
]
