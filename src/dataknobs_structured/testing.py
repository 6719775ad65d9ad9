"""Testing utilities for dataknobs-structured.

This module provides a scripted generator and convenience builders for
creating generator responses in unit and integration tests.

Example:
    ```python
    from dataknobs_structured.extraction import ExtractionClient
    from dataknobs_structured.testing import ScriptedGenerator, data_response, text_response

    generator = ScriptedGenerator()
    generator.set_responses([
        text_response('{"name": "Alice"}'),
        data_response({"name": "Alice", "email": "alice@example.com"}),
    ])
    client = ExtractionClient(generator)
    result = await client.extract(Contact, "Who is Alice?")
    assert generator.call_count == 2
    ```
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Union

from .extraction.generator import GeneratorResponse, LLMMessage, ResponseGenerator

ScriptedItem = Union[GeneratorResponse, str, dict, list, BaseException]


def text_response(
    content: str,
    *,
    model: str = "test-model",
    finish_reason: str = "stop",
    usage: dict[str, int] | None = None,
    metadata: dict[str, Any] | None = None,
) -> GeneratorResponse:
    """Create a text GeneratorResponse.

    Args:
        content: Response text content
        model: Model identifier (default: "test-model")
        finish_reason: Why generation stopped (default: "stop")
        usage: Optional token usage dict
        metadata: Optional metadata dict

    Returns:
        GeneratorResponse with text content

    Example:
        >>> response = text_response('{"name": "Alice"}')
        >>> response.content
        '{"name": "Alice"}'
    """
    return GeneratorResponse(
        content=content,
        model=model,
        finish_reason=finish_reason,
        usage=usage,
        metadata=metadata or {},
    )


def data_response(
    data: Any,
    *,
    model: str = "test-model",
    metadata: dict[str, Any] | None = None,
) -> GeneratorResponse:
    """Create a GeneratorResponse carrying a pre-structured payload.

    Example:
        >>> response = data_response({"name": "Alice"})
        >>> response.is_structured
        True
    """
    return GeneratorResponse(data=data, model=model, metadata=metadata or {})


def json_response(value: Any, *, model: str = "test-model") -> GeneratorResponse:
    """Create a text GeneratorResponse containing ``value`` serialized as JSON."""
    return text_response(json.dumps(value), model=model)


@dataclass
class GeneratorCall:
    """A recorded call to ``ScriptedGenerator.generate``.

    Attributes:
        messages: Conversation sent with the call
        response_schema: Response-shape hint sent with the call
        options: Generation options
    """

    messages: list[LLMMessage]
    response_schema: dict[str, Any] | None = None
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def last_message(self) -> LLMMessage:
        return self.messages[-1]


class ScriptedGenerator(ResponseGenerator):
    """Generator that replays a script of responses and records every call.

    Script items may be ``GeneratorResponse`` objects, strings (text
    responses), dicts or lists (structured responses) or exceptions, which
    are raised from ``generate``. Running past the end of the script raises
    ``RuntimeError``.
    """

    def __init__(self, responses: Iterable[ScriptedItem] | None = None, model: str = "test-model"):
        self.model = model
        self.calls: list[GeneratorCall] = []
        self.closed = False
        self._responses: list[ScriptedItem] = []
        if responses is not None:
            self.set_responses(responses)

    def set_responses(self, responses: Iterable[ScriptedItem]) -> None:
        """Replace the script and reset the position."""
        self._responses = list(responses)
        self._position = 0

    def add_response(self, response: ScriptedItem) -> None:
        self._responses.append(response)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def remaining(self) -> int:
        return len(self._responses) - self._position

    async def generate(
        self,
        messages: list[LLMMessage],
        response_schema: dict[str, Any] | None = None,
        **options: Any,
    ) -> GeneratorResponse:
        self.calls.append(GeneratorCall(list(messages), response_schema, dict(options)))
        if self._position >= len(self._responses):
            raise RuntimeError(
                f"ScriptedGenerator has no responses left after {len(self._responses)} calls"
            )
        item = self._responses[self._position]
        self._position += 1

        if isinstance(item, BaseException):
            raise item
        if isinstance(item, GeneratorResponse):
            return item
        if isinstance(item, str):
            return text_response(item, model=self.model)
        return data_response(item, model=self.model)

    async def close(self) -> None:
        self.closed = True


__all__ = [
    "GeneratorCall",
    "ScriptedGenerator",
    "data_response",
    "json_response",
    "text_response",
]
