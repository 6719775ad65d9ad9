"""Generator interface consumed by the extraction client.

A generator is anything that can turn a conversation into a candidate
response: an LLM provider adapter, a scripted test double, or a plain async
function wrapped in ``CallableGenerator``. Vendor wire protocols live in the
adapters, not here.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LLMMessage:
    """Represents a message in the extraction conversation.

    Attributes:
        role: Message role - 'system', 'user' or 'assistant'
        content: Message content text
        name: Optional name for multi-user scenarios
        metadata: Additional metadata (attempt numbers, etc.)

    Example:
        ```python
        messages = [
            LLMMessage(role="system", content="You extract contact details."),
            LLMMessage(role="user", content="Alice, alice@example.com, 30"),
        ]
        ```
    """

    role: str
    content: str
    name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            data["name"] = self.name
        return data


@dataclass
class GeneratorResponse:
    """Response from a generator.

    Carries either text (``content``) to be decoded, or an already
    structured payload (``data``) such as a provider's parsed JSON mode
    output. When both are present ``data`` wins.

    Attributes:
        content: Generated text
        data: Pre-structured payload, if the generator produced one
        model: Model identifier that generated the response
        finish_reason: Why generation stopped - 'stop', 'length', ...
        usage: Token usage stats
        metadata: Provider-specific metadata
    """

    content: str = ""
    data: Any = None
    model: str | None = None
    finish_reason: str | None = "stop"
    usage: dict[str, int] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_structured(self) -> bool:
        return self.data is not None

    def text(self) -> str:
        """Textual form of the response, for transcripts and logs."""
        if self.content:
            return self.content
        if self.data is not None:
            return json.dumps(self.data, default=str)
        return ""


class ResponseGenerator(ABC):
    """Async generator of candidate responses.

    Implementations raise any exception to signal a transport or provider
    failure; the extraction client reports it as ``GeneratorError`` and does
    not retry it.
    """

    @abstractmethod
    async def generate(
        self,
        messages: list[LLMMessage],
        response_schema: dict[str, Any] | None = None,
        **options: Any,
    ) -> GeneratorResponse:
        """Generate a response for the conversation.

        Args:
            messages: Full conversation so far, oldest first
            response_schema: JSON Schema of the expected response, if any
            **options: Generation options such as ``model``,
                ``temperature`` and ``max_tokens``

        Returns:
            GeneratorResponse with text and/or structured data
        """

    async def close(self) -> None:
        """Release resources held by the generator."""
        return None


GenerateFn = Callable[..., Awaitable[Any]]


class CallableGenerator(ResponseGenerator):
    """Adapts an async function into a ``ResponseGenerator``.

    The function receives ``(messages, response_schema, **options)`` and may
    return a ``GeneratorResponse``, a string (treated as text) or any other
    value (treated as structured data).

    Example:
        ```python
        async def call_model(messages, response_schema, **options):
            reply = await my_sdk.chat([m.to_dict() for m in messages])
            return reply.text

        client = ExtractionClient(CallableGenerator(call_model))
        ```
    """

    def __init__(self, fn: GenerateFn, model: str | None = None):
        self._fn = fn
        self._model = model

    async def generate(
        self,
        messages: list[LLMMessage],
        response_schema: dict[str, Any] | None = None,
        **options: Any,
    ) -> GeneratorResponse:
        result = await self._fn(messages, response_schema, **options)
        if isinstance(result, GeneratorResponse):
            return result
        if isinstance(result, str):
            return GeneratorResponse(content=result, model=self._model)
        return GeneratorResponse(data=result, model=self._model)


__all__ = [
    "CallableGenerator",
    "GeneratorResponse",
    "LLMMessage",
    "ResponseGenerator",
]
