"""Typed extraction and schema validation for DataKnobs.

Declare the shape you expect with a dataclass, validate untyped dict/list
trees against it, or let ``ExtractionClient`` drive a generator until its
output validates.
"""

from dataknobs_structured.exceptions import (
    ConfigurationError,
    ExtractionCancelledError,
    ExtractionExhaustedError,
    GeneratorError,
    ResponseParseError,
    StructuredError,
)
from dataknobs_structured.validation import (
    DictOf,
    DiscriminatedUnion,
    ErrorKind,
    FieldError,
    ListOf,
    OptionalOf,
    Shape,
    ShapeBuilder,
    UnionOf,
    ValidationContext,
    ValidationErrors,
    ValidationResult,
    Validator,
    dump,
    schema_field,
    shape_of,
    to_json_schema,
    validate,
    validate_or_raise,
)
from dataknobs_structured.extraction import (
    ExtractionClient,
    ExtractionConfig,
    ExtractionResult,
    ExtractionTracker,
    GeneratorResponse,
    LLMMessage,
    ResponseGenerator,
)

__version__ = "0.1.0"

__all__ = [
    # Exceptions
    "StructuredError",
    "ConfigurationError",
    "ResponseParseError",
    "GeneratorError",
    "ExtractionExhaustedError",
    "ExtractionCancelledError",
    # Validation
    "DictOf",
    "DiscriminatedUnion",
    "ErrorKind",
    "FieldError",
    "ListOf",
    "OptionalOf",
    "Shape",
    "ShapeBuilder",
    "UnionOf",
    "ValidationContext",
    "ValidationErrors",
    "ValidationResult",
    "Validator",
    "dump",
    "schema_field",
    "shape_of",
    "to_json_schema",
    "validate",
    "validate_or_raise",
    # Extraction
    "ExtractionClient",
    "ExtractionConfig",
    "ExtractionResult",
    "ExtractionTracker",
    "GeneratorResponse",
    "LLMMessage",
    "ResponseGenerator",
]
