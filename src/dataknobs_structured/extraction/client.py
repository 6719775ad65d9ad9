"""Typed extraction client with validation-driven retries.

``ExtractionClient`` asks a generator for a response, decodes it, validates
it against a declared type and, when validation fails, sends the violations
back to the generator and asks for a corrected response. Each call walks an
explicit state machine:

    REQUESTING -> PARSING -> VALIDATING -> SUCCEEDED
                                        -> RETRYING -> REQUESTING
                                        -> EXHAUSTED

A decode failure is handled exactly like a validation failure. A generator
failure is terminal and never retried. Cancellation (an ``asyncio.Event`` or
a deadline) is checked before each request, so an in-flight attempt always
finishes but no new one starts.

Example:
    ```python
    from dataclasses import dataclass
    from dataknobs_structured import schema_field
    from dataknobs_structured.extraction import ExtractionClient, ExtractionConfig

    @dataclass
    class Contact:
        name: str = schema_field("required,min=2")
        email: str = schema_field("required,email")

    client = ExtractionClient(generator, ExtractionConfig(max_retries=3))
    result = await client.extract(Contact, "Alice can be reached at alice@example.com")
    result.value
    # Contact(name='Alice', email='alice@example.com')
    result.attempts
    # 1
    ```
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dataknobs_structured.exceptions import (
    ExtractionCancelledError,
    ExtractionExhaustedError,
    GeneratorError,
    ResponseParseError,
)
from dataknobs_structured.validation import (
    ErrorKind,
    FieldError,
    ListOf,
    ValidationErrors,
    Validator,
    resolve_type,
    to_json_schema,
)

from .config import ExtractionConfig, resolve_strict
from .generator import GeneratorResponse, LLMMessage, ResponseGenerator
from .observability import ExtractionTracker
from .parsing import PayloadDecoder
from .prompts import compile_template, render_feedback, render_request

logger = logging.getLogger(__name__)


class ExtractionState(str, Enum):
    """Phases of a single extraction call."""

    REQUESTING = "requesting"
    PARSING = "parsing"
    VALIDATING = "validating"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class AttemptRecord:
    """One request/parse/validate cycle.

    Attributes:
        number: Attempt number, starting at 1
        raw_output: Raw generator output for this attempt
        errors: Violations found, or None if the attempt succeeded
        duration_ms: Time spent on the attempt in milliseconds
    """

    number: int
    raw_output: str
    errors: ValidationErrors | None = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.errors is None


@dataclass
class ExtractionResult:
    """Successful extraction.

    Attributes:
        value: The validated, typed value
        attempts: Number of generator calls made
        raw_response: Raw output of the successful attempt
        history: Record of every attempt, in order
        transcript: Final conversation, ending with the accepted response
        model: Model reported by the generator, if any
    """

    value: Any
    attempts: int
    raw_response: str
    history: list[AttemptRecord] = field(default_factory=list)
    transcript: list[LLMMessage] = field(default_factory=list)
    model: str | None = None

    @property
    def retried(self) -> bool:
        return self.attempts > 1


@dataclass
class _Call:
    """Per-call mutable state; discarded when the call returns."""

    shape_name: str
    messages: list[LLMMessage]
    started: float
    deadline: float | None
    cancel_event: asyncio.Event | None
    attempt: int = 0
    state: ExtractionState = ExtractionState.REQUESTING
    model: str | None = None
    history: list[AttemptRecord] = field(default_factory=list)

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started) * 1000


class ExtractionClient:
    """Drives a generator until its output validates against a type.

    Args:
        generator: Source of candidate responses
        config: Retry, validation and generation settings
        tracker: Optional tracker recording every call's outcome
        decoder: Payload decoder (defaults to ``PayloadDecoder()``)

    Raises:
        ConfigurationError: If ``config.feedback_template`` does not compile
    """

    def __init__(
        self,
        generator: ResponseGenerator,
        config: ExtractionConfig | None = None,
        tracker: ExtractionTracker | None = None,
        decoder: PayloadDecoder | None = None,
    ):
        self.generator = generator
        self.config = config or ExtractionConfig()
        self.tracker = tracker
        self.decoder = decoder or PayloadDecoder()
        self._feedback_template = (
            compile_template(self.config.feedback_template)
            if self.config.feedback_template
            else None
        )

    async def extract(
        self,
        target: Any,
        prompt: str,
        *,
        system_prompt: str | None = None,
        validation_mode: str | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
        user_context: dict[str, Any] | None = None,
    ) -> ExtractionResult:
        """Extract a value of type ``target`` from the generator.

        Args:
            target: Dataclass, annotation, ``Shape`` or composite validator
            prompt: The caller's request
            system_prompt: System instruction (overrides the configured one)
            validation_mode: ``"strict"`` or ``"lax"`` for this call only
            cancel_event: Event that stops further attempts once set
            timeout: Seconds after which no further attempt is started
            user_context: Values exposed to field validators

        Returns:
            ExtractionResult with the typed value and attempt history

        Raises:
            ExtractionExhaustedError: Every permitted attempt failed
            GeneratorError: The generator failed
            ExtractionCancelledError: Cancelled or deadline passed between
                attempts
        """
        return await self._run(
            target,
            prompt,
            is_list=False,
            system_prompt=system_prompt,
            validation_mode=validation_mode,
            cancel_event=cancel_event,
            timeout=timeout,
            user_context=user_context,
        )

    async def extract_list(
        self,
        item: Any,
        prompt: str,
        *,
        system_prompt: str | None = None,
        validation_mode: str | None = None,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
        user_context: dict[str, Any] | None = None,
        min_items: int = 0,
        max_items: int | None = None,
    ) -> ExtractionResult:
        """Extract a list of ``item`` values.

        The whole response is validated as one list; a single bad element
        fails the attempt and the retry regenerates the entire list.

        Example:
            ```python
            result = await client.extract_list(Contact, "List everyone in this email thread")
            [c.name for c in result.value]
            # ['Alice', 'Bob']
            ```
        """
        return await self._run(
            ListOf(item, min_items=min_items, max_items=max_items),
            prompt,
            is_list=True,
            system_prompt=system_prompt,
            validation_mode=validation_mode,
            cancel_event=cancel_event,
            timeout=timeout,
            user_context=user_context,
        )

    async def complete(self, prompt: str, *, system_prompt: str | None = None) -> str:
        """Plain text completion with no decoding or validation.

        Raises:
            GeneratorError: The generator failed
        """
        messages = self._initial_messages(prompt, system_prompt)
        response = await self._generate(messages, None)
        return response.text()

    async def close(self) -> None:
        await self.generator.close()

    async def __aenter__(self) -> ExtractionClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def _run(
        self,
        target: Any,
        prompt: str,
        *,
        is_list: bool,
        system_prompt: str | None,
        validation_mode: str | None,
        cancel_event: asyncio.Event | None,
        timeout: float | None,
        user_context: dict[str, Any] | None,
    ) -> ExtractionResult:
        validator = Validator(strict=resolve_strict(self.config, validation_mode))
        spec = resolve_type(target)
        schema = to_json_schema(spec)
        request = render_request(
            prompt,
            schema if self.config.include_schema_hint else None,
            is_list=is_list,
        )

        started = time.monotonic()
        call = _Call(
            shape_name=spec.name,
            messages=self._initial_messages(request, system_prompt),
            started=started,
            deadline=started + timeout if timeout is not None else None,
            cancel_event=cancel_event,
            model=self.config.model,
        )
        limit = self.config.attempt_limit

        while True:
            self._check_cancelled(call)
            call.attempt += 1
            self._transition(call, ExtractionState.REQUESTING)
            attempt_started = time.monotonic()

            try:
                response = await self._generate(call.messages, schema)
            except GeneratorError:
                self._record(call, "generator_error")
                raise
            raw_output = response.text()
            call.model = response.model or call.model

            self._transition(call, ExtractionState.PARSING)
            try:
                payload = self.decoder.decode_response(response)
            except ResponseParseError as e:
                errors = ValidationErrors([FieldError((), str(e), ErrorKind.PARSE)])
            else:
                self._transition(call, ExtractionState.VALIDATING)
                result = validator.validate(spec, payload.value, user_context=user_context)
                if result.valid:
                    call.history.append(
                        AttemptRecord(
                            call.attempt,
                            raw_output,
                            None,
                            (time.monotonic() - attempt_started) * 1000,
                        )
                    )
                    call.messages.append(LLMMessage(role="assistant", content=raw_output))
                    self._transition(call, ExtractionState.SUCCEEDED)
                    self._record(call, "succeeded", raw_response=raw_output)
                    return ExtractionResult(
                        value=result.value,
                        attempts=call.attempt,
                        raw_response=raw_output,
                        history=call.history,
                        transcript=call.messages,
                        model=call.model,
                    )
                errors = result.errors

            call.history.append(
                AttemptRecord(
                    call.attempt,
                    raw_output,
                    errors,
                    (time.monotonic() - attempt_started) * 1000,
                )
            )

            if call.attempt >= limit:
                self._transition(call, ExtractionState.EXHAUSTED)
                logger.warning(
                    "Extraction of %s exhausted after %d attempts: %s",
                    call.shape_name,
                    call.attempt,
                    errors,
                )
                self._record(call, "exhausted", errors=errors, raw_response=raw_output)
                raise ExtractionExhaustedError(
                    call.attempt,
                    errors,
                    raw_output,
                    context={"shape": call.shape_name},
                )

            self._transition(call, ExtractionState.RETRYING)
            logger.debug(
                "Attempt %d for %s failed with %d errors, retrying",
                call.attempt,
                call.shape_name,
                len(errors),
            )
            call.messages.append(LLMMessage(role="assistant", content=raw_output))
            call.messages.append(
                LLMMessage(
                    role="user",
                    content=render_feedback(errors, raw_output, self._feedback_template),
                    metadata={"feedback_for_attempt": call.attempt},
                )
            )

    def _initial_messages(self, prompt: str, system_prompt: str | None) -> list[LLMMessage]:
        messages = []
        system = system_prompt or self.config.system_prompt
        if system:
            messages.append(LLMMessage(role="system", content=system))
        messages.append(LLMMessage(role="user", content=prompt))
        return messages

    async def _generate(
        self,
        messages: list[LLMMessage],
        schema: dict[str, Any] | None,
    ) -> GeneratorResponse:
        try:
            return await self.generator.generate(
                list(messages),
                response_schema=schema,
                **self.config.generation_options(),
            )
        except GeneratorError:
            raise
        except Exception as e:
            logger.warning("Generator call failed: %s", e)
            raise GeneratorError(
                f"generator failed: {e}",
                context={"generator": type(self.generator).__name__},
            ) from e

    def _check_cancelled(self, call: _Call) -> None:
        reason = None
        if call.cancel_event is not None and call.cancel_event.is_set():
            reason = "cancelled"
        elif call.deadline is not None and time.monotonic() >= call.deadline:
            reason = "timeout"
        if reason is None:
            return
        self._transition(call, ExtractionState.CANCELLED)
        self._record(call, "cancelled")
        raise ExtractionCancelledError(call.attempt, reason, context={"shape": call.shape_name})

    def _transition(self, call: _Call, state: ExtractionState) -> None:
        logger.debug(
            "Extraction %s attempt %d: %s -> %s",
            call.shape_name,
            call.attempt,
            call.state.value,
            state.value,
        )
        call.state = state

    def _record(
        self,
        call: _Call,
        outcome: str,
        errors: ValidationErrors | None = None,
        raw_response: str | None = None,
    ) -> None:
        if self.tracker is None:
            return
        self.tracker.record_outcome(
            shape_name=call.shape_name,
            outcome=outcome,
            attempts=call.attempt,
            duration_ms=call.elapsed_ms(),
            validation_errors=[str(error) for error in errors] if errors else None,
            model_used=call.model,
            raw_response=raw_response,
        )


__all__ = [
    "AttemptRecord",
    "ExtractionClient",
    "ExtractionResult",
    "ExtractionState",
]
