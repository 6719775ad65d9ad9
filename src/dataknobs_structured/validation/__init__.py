"""Schema-driven validation and coercion of untyped data.

Declare a shape with a dataclass (or ``ShapeBuilder``), then validate raw
dict/list/scalar trees against it. Validation never raises for bad data;
every failure is collected into the returned ``ValidationResult``.
"""

from .composites import (
    CompositeValidator,
    DictOf,
    DiscriminatedUnion,
    ListOf,
    OptionalOf,
    UnionOf,
    closed_world_match,
    lattice_allows,
)
from .coercer import Coercer
from .constrained import (
    AlphaNumStr,
    AlphaStr,
    Base64Str,
    EmailStr,
    HexStr,
    HttpUrl,
    LowercaseStr,
    NegativeFloat,
    NegativeInt,
    NonNegativeFloat,
    NonNegativeInt,
    NonPositiveFloat,
    NonPositiveInt,
    NumericStr,
    PositiveFloat,
    PositiveInt,
    UppercaseStr,
    UUIDStr,
)
from .context import ValidationContext, ValidationMode
from .errors import ErrorKind, FieldError, ValidationErrors, render_path
from .json_schema import to_json_schema
from .model_validators import (
    at_least_one,
    conditional_required,
    fields_match,
    mutually_exclusive,
    ordered,
)
from .result import DiscriminatedResult, OptionalResult, UnionResult, ValidationResult
from .rules import Constraint, Rule, build_constraint, parse_rules, register_rule
from .shape import FieldSpec, Shape, ShapeBuilder, schema_field, shape_of
from .typespec import RawKind, TypeKind, TypeSpec, raw_kind, resolve_type, zero_value
from .validator import Validator, dump, validate, validate_or_raise

__all__ = [
    # Errors and results
    "ErrorKind",
    "FieldError",
    "ValidationErrors",
    "render_path",
    "ValidationResult",
    "OptionalResult",
    "UnionResult",
    "DiscriminatedResult",
    # Context
    "ValidationContext",
    "ValidationMode",
    # Shapes and types
    "FieldSpec",
    "Shape",
    "ShapeBuilder",
    "schema_field",
    "shape_of",
    "RawKind",
    "TypeKind",
    "TypeSpec",
    "raw_kind",
    "resolve_type",
    "zero_value",
    # Rules
    "Constraint",
    "Rule",
    "build_constraint",
    "parse_rules",
    "register_rule",
    # Engine
    "Coercer",
    "Validator",
    "dump",
    "validate",
    "validate_or_raise",
    # Composites
    "CompositeValidator",
    "DictOf",
    "DiscriminatedUnion",
    "ListOf",
    "OptionalOf",
    "UnionOf",
    "closed_world_match",
    "lattice_allows",
    # Constrained types
    "AlphaNumStr",
    "AlphaStr",
    "Base64Str",
    "EmailStr",
    "HexStr",
    "HttpUrl",
    "LowercaseStr",
    "NegativeFloat",
    "NegativeInt",
    "NonNegativeFloat",
    "NonNegativeInt",
    "NonPositiveFloat",
    "NonPositiveInt",
    "NumericStr",
    "PositiveFloat",
    "PositiveInt",
    "UUIDStr",
    "UppercaseStr",
    # Model validators
    "at_least_one",
    "conditional_required",
    "fields_match",
    "mutually_exclusive",
    "ordered",
    # Schema hints
    "to_json_schema",
]
