"""Tests for decoding generator payloads."""

import pytest

from dataknobs_structured.exceptions import ResponseParseError
from dataknobs_structured.extraction import GeneratorResponse, PayloadDecoder


@pytest.fixture
def decoder():
    """Default decoder."""
    return PayloadDecoder()


class TestPayloadDecoder:
    """Test recovering JSON from generator text."""

    def test_plain_json(self, decoder):
        """Test a bare JSON document."""
        decoded = decoder.decode('{"name": "Alice", "age": 30}')
        assert decoded.value == {"name": "Alice", "age": 30}
        assert not decoded.repaired

    def test_array(self, decoder):
        """Test a bare JSON array."""
        assert decoder.decode("[1, 2, 3]").value == [1, 2, 3]

    def test_fenced_block(self, decoder):
        """Test JSON inside a fenced code block."""
        text = 'Here you go:\n```json\n{"name": "Alice"}\n```\nAnything else?'
        assert decoder.decode(text).value == {"name": "Alice"}

    def test_embedded_in_prose(self, decoder):
        """Test the first balanced object in surrounding prose."""
        text = 'Sure! The data is {"name": "Bob", "tags": ["a}b"]} as requested.'
        assert decoder.decode(text).value == {"name": "Bob", "tags": ["a}b"]}

    def test_truncated_is_repaired(self, decoder):
        """Test an object cut off mid-way is closed and decoded."""
        decoded = decoder.decode('{"name": "Alice", "tags": ["x", "y"')
        assert decoded.value == {"name": "Alice", "tags": ["x", "y"]}
        assert decoded.repaired

    def test_trailing_comma_repaired(self, decoder):
        """Test trailing commas are dropped during repair."""
        assert decoder.decode('{"a": 1, "b": [1, 2,],}').value == {"a": 1, "b": [1, 2]}

    def test_repair_disabled(self):
        """Test truncated input fails when repair is off."""
        with pytest.raises(ResponseParseError):
            PayloadDecoder(allow_repair=False).decode('{"name": "Alice"')

    def test_empty(self, decoder):
        """Test empty text fails."""
        with pytest.raises(ResponseParseError, match="response was empty"):
            decoder.decode("   ")

    def test_no_json(self, decoder):
        """Test prose without JSON fails and keeps the text."""
        with pytest.raises(ResponseParseError) as exc_info:
            decoder.decode("I cannot help with that.")
        assert str(exc_info.value) == "no JSON object or array found in response"
        assert exc_info.value.raw_output == "I cannot help with that."

    def test_structured_response_preferred(self, decoder):
        """Test a structured payload is used without parsing text."""
        response = GeneratorResponse(content="ignored", data={"id": 1})
        assert decoder.decode_response(response).value == {"id": 1}

    def test_text_response(self, decoder):
        """Test a text response is decoded from its content."""
        response = GeneratorResponse(content='{"id": 2}')
        assert decoder.decode_response(response).value == {"id": 2}
