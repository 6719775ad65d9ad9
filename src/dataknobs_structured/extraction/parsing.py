"""Decode generator payloads into raw value trees.

Generators often wrap their JSON in prose or a fenced code block, or cut an
object off mid-way when they hit a token limit. ``PayloadDecoder`` tries, in
order: the whole text as JSON, the contents of a fenced block, the first
balanced ``{...}`` or ``[...]`` region, and finally a repaired version of an
unterminated region (closing strings, brackets and braces and dropping
trailing commas).
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from dataknobs_structured.exceptions import ResponseParseError

from .generator import GeneratorResponse

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class DecodedPayload:
    """A decoded payload and how it was obtained.

    Attributes:
        value: The raw value tree
        repaired: True if the JSON had to be repaired before it parsed
    """

    value: Any
    repaired: bool = False


class PayloadDecoder:
    """Extracts a JSON value from generator text.

    Args:
        allow_repair: Attempt to repair truncated JSON as a last resort
    """

    def __init__(self, allow_repair: bool = True):
        self.allow_repair = allow_repair

    def decode_response(self, response: GeneratorResponse) -> DecodedPayload:
        """Decode a generator response, preferring its structured payload.

        Raises:
            ResponseParseError: If no JSON value can be recovered
        """
        if response.data is not None:
            return DecodedPayload(response.data)
        return self.decode(response.content)

    def decode(self, text: str) -> DecodedPayload:
        """Decode the first JSON value found in ``text``.

        Raises:
            ResponseParseError: If no JSON value can be recovered
        """
        stripped = (text or "").strip()
        if not stripped:
            raise ResponseParseError("response was empty", raw_output=text or "")

        try:
            return DecodedPayload(json.loads(stripped))
        except json.JSONDecodeError:
            pass

        for block in _FENCE.findall(stripped):
            try:
                return DecodedPayload(json.loads(block.strip()))
            except json.JSONDecodeError:
                continue

        region, complete = self._find_region(stripped)
        if region is None:
            raise ResponseParseError("no JSON object or array found in response", raw_output=text)

        if complete:
            try:
                return DecodedPayload(json.loads(region))
            except json.JSONDecodeError:
                pass

        if self.allow_repair:
            fixed = self._fix_json(region)
            try:
                value = json.loads(fixed)
            except json.JSONDecodeError:
                pass
            else:
                logger.debug("Decoded malformed JSON after repair")
                return DecodedPayload(value, repaired=True)

        raise ResponseParseError("could not parse JSON from response", raw_output=text)

    def _find_region(self, text: str) -> tuple[str | None, bool]:
        """Find the first bracket-balanced region, tracking string context.

        Returns:
            (region, is_complete); the region runs to the end of the text
            when its opening bracket is never closed
        """
        start = None
        stack: list[str] = []
        in_string = False
        escape_next = False

        for i, char in enumerate(text):
            if start is None:
                if char in _CLOSERS:
                    start = i
                    stack.append(_CLOSERS[char])
                continue
            if escape_next:
                escape_next = False
            elif char == "\\" and in_string:
                escape_next = True
            elif char == '"':
                in_string = not in_string
            elif in_string:
                continue
            elif char in _CLOSERS:
                stack.append(_CLOSERS[char])
            elif stack and char == stack[-1]:
                stack.pop()
                if not stack:
                    return text[start : i + 1], True

        if start is None:
            return None, False
        return text[start:], False

    def _fix_json(self, json_text: str) -> str:
        """Repair malformed JSON by closing unclosed elements."""
        stack: list[str] = []
        in_string = False
        escape_next = False
        for char in json_text:
            if escape_next:
                escape_next = False
            elif char == "\\" and in_string:
                escape_next = True
            elif char == '"':
                in_string = not in_string
            elif in_string:
                continue
            elif char in _CLOSERS:
                stack.append(_CLOSERS[char])
            elif stack and char == stack[-1]:
                stack.pop()

        fixed = json_text
        if in_string:
            fixed += '"'
        fixed = re.sub(r",\s*$", "", fixed)
        fixed += "".join(reversed(stack))

        # Handle trailing commas before closing braces/brackets
        fixed = re.sub(r",\s*\]", "]", fixed)
        fixed = re.sub(r",\s*}", "}", fixed)
        return fixed


__all__ = ["DecodedPayload", "PayloadDecoder"]
