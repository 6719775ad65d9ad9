"""Configuration for the extraction client."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from dataknobs_structured.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3

VALIDATION_MODES = ("strict", "lax")


@dataclass
class ExtractionConfig:
    """Settings for ``ExtractionClient``.

    Attributes:
        max_retries: Total generator calls allowed per extraction, counting
            the first one. Values below 1 fall back to 3; 1 disables retry.
        disable_retry: Make exactly one generator call regardless of
            ``max_retries``
        strict_validation: Validate in strict mode (no coercion) by default
        model: Model name passed to the generator
        temperature: Sampling temperature passed to the generator
        max_tokens: Output token limit passed to the generator
        system_prompt: Default system instruction for every call
        include_schema_hint: Append the target's JSON Schema to the prompt
        feedback_template: Jinja2 source overriding the corrective message

    Example:
        ```python
        config = ExtractionConfig.from_dict({
            "max_retries": 5,
            "strict_validation": True,
            "model": "gpt-4o-mini",
        })
        fast = config.clone(max_retries=1)
        ```
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    disable_retry: bool = False
    strict_validation: bool = False
    model: str | None = None
    temperature: float | None = 0.7
    max_tokens: int | None = None
    system_prompt: str | None = None
    include_schema_hint: bool = True
    feedback_template: str | None = None

    def __post_init__(self) -> None:
        if self.max_retries is None or self.max_retries < 1:
            self.max_retries = DEFAULT_MAX_RETRIES
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                f"temperature must be between 0.0 and 2.0, got {self.temperature}",
                context={"temperature": self.temperature},
            )
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ConfigurationError(
                f"max_tokens must be positive, got {self.max_tokens}",
                context={"max_tokens": self.max_tokens},
            )

    @property
    def attempt_limit(self) -> int:
        """Number of generator calls one extraction may make."""
        return 1 if self.disable_retry else self.max_retries

    def generation_options(self) -> dict[str, Any]:
        """Options forwarded to ``ResponseGenerator.generate``."""
        options: dict[str, Any] = {}
        if self.model:
            options["model"] = self.model
        if self.temperature is not None:
            options["temperature"] = self.temperature
        if self.max_tokens is not None:
            options["max_tokens"] = self.max_tokens
        return options

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> ExtractionConfig:
        """Create a config from a dictionary, ignoring unknown keys.

        Args:
            config_dict: Configuration values

        Returns:
            ExtractionConfig instance
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_dict) - known)
        if unknown:
            logger.debug("Ignoring unknown extraction config keys: %s", unknown)
        return cls(**{key: value for key, value in config_dict.items() if key in known})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def clone(self, **overrides: Any) -> ExtractionConfig:
        """Copy the config with some values replaced."""
        return replace(self, **overrides)


def resolve_strict(config: ExtractionConfig, validation_mode: str | None) -> bool:
    """Apply a per-call ``"strict"``/``"lax"`` override to the configured mode.

    Raises:
        ConfigurationError: If the mode name is not recognized
    """
    if validation_mode is None:
        return config.strict_validation
    if validation_mode not in VALIDATION_MODES:
        raise ConfigurationError(
            f"validation_mode must be one of {VALIDATION_MODES}, got {validation_mode!r}",
            context={"validation_mode": validation_mode},
        )
    return validation_mode == "strict"


__all__ = ["DEFAULT_MAX_RETRIES", "ExtractionConfig", "resolve_strict"]
