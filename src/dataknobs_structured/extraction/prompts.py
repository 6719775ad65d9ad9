"""Jinja2 templates for the prompts the extraction client adds.

Three templates are used:

- ``SCHEMA_INSTRUCTIONS``: appended to the caller's prompt when schema hints
  are enabled; shows the expected JSON Schema
- ``LIST_INSTRUCTIONS``: appended for list extraction
- ``DEFAULT_FEEDBACK_TEMPLATE``: the corrective user message sent after a
  failed attempt; it enumerates every violation

Templates render with ``StrictUndefined`` so a typo in a custom feedback
template fails loudly instead of silently dropping the error list.
"""

from __future__ import annotations

import json
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, TemplateSyntaxError

from dataknobs_structured.exceptions import ConfigurationError
from dataknobs_structured.validation.errors import ValidationErrors

SCHEMA_INSTRUCTIONS = """\
{{ prompt }}

Respond with JSON only{% if is_list %}: a JSON array whose items match{% else %}, matching{% endif %} this JSON Schema:
```json
{{ schema_json }}
```"""

LIST_INSTRUCTIONS = """\
{{ prompt }}

Return your response as a JSON array of objects."""

DEFAULT_FEEDBACK_TEMPLATE = """\
Your previous response did not pass validation.
{% if errors | length == 1 %}
There is 1 problem:
{% else %}
There are {{ errors | length }} problems:
{% endif %}
{% for error in errors %}
{{ loop.index }}. {{ error.path or "(response)" }}: {{ error.message }}{% if error.constraint %} [{{ error.constraint }}]{% endif %}

{% endfor %}

Please correct these errors and respond again with the complete JSON only, no explanations."""

_env = Environment(
    # Prompt generation, not HTML - no autoescaping
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=False,
    undefined=StrictUndefined,
)


def compile_template(source: str) -> Template:
    """Compile a prompt template.

    Raises:
        ConfigurationError: If the template has a syntax error
    """
    try:
        return _env.from_string(source)
    except TemplateSyntaxError as e:
        raise ConfigurationError(
            f"Invalid prompt template: {e.message}",
            context={"line": e.lineno},
        ) from e


_schema_template = compile_template(SCHEMA_INSTRUCTIONS)
_list_template = compile_template(LIST_INSTRUCTIONS)
_default_feedback = compile_template(DEFAULT_FEEDBACK_TEMPLATE)


def render_request(prompt: str, schema: dict[str, Any] | None, is_list: bool = False) -> str:
    """Build the first user message for an extraction call."""
    if schema is None:
        if is_list:
            return _list_template.render(prompt=prompt)
        return prompt
    return _schema_template.render(
        prompt=prompt,
        schema_json=json.dumps(schema, indent=2),
        is_list=is_list,
    )


def render_feedback(
    errors: ValidationErrors,
    raw_output: str,
    template: Template | None = None,
) -> str:
    """Render the corrective message for a failed attempt.

    Args:
        errors: Violations from the failed attempt
        raw_output: The generator's previous raw output
        template: Custom compiled template; receives ``errors`` (list of
            dicts with ``path``, ``message``, ``kind``, ``value``,
            ``constraint``), ``rendered`` (the multi-line error text) and
            ``raw_output``

    Returns:
        Message text
    """
    template = template or _default_feedback
    return template.render(
        errors=errors.to_list(),
        rendered=errors.render(),
        raw_output=raw_output,
    ).strip()


__all__ = [
    "DEFAULT_FEEDBACK_TEMPLATE",
    "LIST_INSTRUCTIONS",
    "SCHEMA_INSTRUCTIONS",
    "compile_template",
    "render_feedback",
    "render_request",
]
