"""Typed extraction from generator output with validation-driven retries."""

from .client import AttemptRecord, ExtractionClient, ExtractionResult, ExtractionState
from .config import DEFAULT_MAX_RETRIES, ExtractionConfig
from .generator import CallableGenerator, GeneratorResponse, LLMMessage, ResponseGenerator
from .observability import (
    ExtractionHistoryQuery,
    ExtractionRecord,
    ExtractionStats,
    ExtractionTracker,
)
from .parsing import DecodedPayload, PayloadDecoder
from .prompts import DEFAULT_FEEDBACK_TEMPLATE, render_feedback, render_request

__all__ = [
    # Client
    "AttemptRecord",
    "ExtractionClient",
    "ExtractionResult",
    "ExtractionState",
    # Configuration
    "DEFAULT_MAX_RETRIES",
    "ExtractionConfig",
    # Generator interface
    "CallableGenerator",
    "GeneratorResponse",
    "LLMMessage",
    "ResponseGenerator",
    # Decoding and prompts
    "DecodedPayload",
    "PayloadDecoder",
    "DEFAULT_FEEDBACK_TEMPLATE",
    "render_feedback",
    "render_request",
    # Observability
    "ExtractionHistoryQuery",
    "ExtractionRecord",
    "ExtractionStats",
    "ExtractionTracker",
]
