"""Tests for extraction configuration and prompt rendering."""

import pytest

from dataknobs_structured.exceptions import ConfigurationError
from dataknobs_structured.extraction import (
    DEFAULT_MAX_RETRIES,
    ExtractionConfig,
    render_feedback,
    render_request,
)
from dataknobs_structured.extraction.config import resolve_strict
from dataknobs_structured.extraction.prompts import compile_template
from dataknobs_structured.validation import ErrorKind, FieldError, ValidationErrors


class TestExtractionConfig:
    """Test configuration values and helpers."""

    def test_defaults(self):
        """Test default settings."""
        config = ExtractionConfig()
        assert config.max_retries == DEFAULT_MAX_RETRIES == 3
        assert config.attempt_limit == 3
        assert not config.strict_validation
        assert config.include_schema_hint

    @pytest.mark.parametrize("value", [0, -1, None])
    def test_non_positive_retries_fall_back(self, value):
        """Test a missing or non-positive retry count uses the default."""
        assert ExtractionConfig(max_retries=value).max_retries == 3

    def test_disable_retry(self):
        """Test disabling retry limits a call to one attempt."""
        assert ExtractionConfig(max_retries=5, disable_retry=True).attempt_limit == 1
        assert ExtractionConfig(max_retries=1).attempt_limit == 1

    def test_from_dict_ignores_unknown_keys(self):
        """Test unknown keys are ignored."""
        config = ExtractionConfig.from_dict({"max_retries": 5, "model": "m", "provider": "x"})
        assert config.max_retries == 5
        assert config.model == "m"

    def test_to_dict_round_trip(self):
        """Test to_dict output recreates the config."""
        config = ExtractionConfig(max_retries=4, strict_validation=True, system_prompt="be terse")
        assert ExtractionConfig.from_dict(config.to_dict()) == config

    def test_clone(self):
        """Test clone overrides values without touching the original."""
        config = ExtractionConfig(model="a")
        clone = config.clone(model="b", max_retries=2)
        assert clone.model == "b"
        assert clone.max_retries == 2
        assert config.model == "a"

    def test_invalid_values(self):
        """Test out-of-range generation settings are rejected."""
        with pytest.raises(ConfigurationError):
            ExtractionConfig(temperature=3.5)
        with pytest.raises(ConfigurationError):
            ExtractionConfig(max_tokens=0)

    def test_generation_options(self):
        """Test only set options are forwarded."""
        assert ExtractionConfig(temperature=None).generation_options() == {}
        options = ExtractionConfig(model="m", max_tokens=100).generation_options()
        assert options == {"model": "m", "temperature": 0.7, "max_tokens": 100}

    def test_resolve_strict(self):
        """Test per-call validation mode overrides."""
        config = ExtractionConfig(strict_validation=True)
        assert resolve_strict(config, None) is True
        assert resolve_strict(config, "lax") is False
        assert resolve_strict(ExtractionConfig(), "strict") is True
        with pytest.raises(ConfigurationError):
            resolve_strict(config, "loose")


class TestPrompts:
    """Test request and feedback rendering."""

    def test_request_without_schema(self):
        """Test the prompt is sent unchanged without a schema hint."""
        assert render_request("Extract the person.", None) == "Extract the person."

    def test_request_with_schema(self):
        """Test the schema hint is appended as JSON."""
        text = render_request("Extract the person.", {"type": "object"})
        assert text.startswith("Extract the person.\n\nRespond with JSON only, matching")
        assert '"type": "object"' in text

    def test_list_request(self):
        """Test list requests ask for a JSON array."""
        assert "JSON array" in render_request("List them.", None, is_list=True)
        assert "JSON array" in render_request("List them.", {"type": "array"}, is_list=True)

    def test_feedback_lists_every_violation(self):
        """Test each error appears with its path and constraint."""
        errors = ValidationErrors([
            FieldError(("email",), "field is required", ErrorKind.REQUIRED),
            FieldError(("age",), "value must be at most 150", ErrorKind.MAX, value=200,
                       constraint="lte=150"),
        ])
        text = render_feedback(errors, '{"age": 200}')
        assert text.startswith("Your previous response did not pass validation.")
        assert "There are 2 problems:" in text
        assert "1. email: field is required" in text
        assert "2. age: value must be at most 150 [lte=150]" in text
        assert text.endswith("respond again with the complete JSON only, no explanations.")

    def test_feedback_root_error(self):
        """Test pathless errors refer to the whole response."""
        errors = ValidationErrors([FieldError((), "no JSON found", ErrorKind.PARSE)])
        text = render_feedback(errors, "hello")
        assert "There is 1 problem:" in text
        assert "1. (response): no JSON found" in text

    def test_custom_feedback_template(self):
        """Test a custom template receives the rendered errors and raw output."""
        template = compile_template("Fix {{ errors | length }} issue(s) in: {{ raw_output }}")
        errors = ValidationErrors([FieldError(("a",), "bad")])
        assert render_feedback(errors, "{}", template) == "Fix 1 issue(s) in: {}"

    def test_invalid_template(self):
        """Test template syntax errors are configuration errors."""
        with pytest.raises(ConfigurationError):
            compile_template("{% for x in %}")
