"""Self-validating scalar types.

These are thin subclasses of ``int``, ``float`` and ``str`` that implement
the ``validate()`` capability. Declaring a field with one of them is an
alternative to writing the equivalent rule string:

```python
@dataclass
class Signup:
    email: EmailStr = schema_field("required")
    age: PositiveInt = schema_field("required")
    homepage: HttpUrl | None = None
```

The coercer converts the raw value to the base type and wraps it; the
validator then calls ``validate()``, which raises ``ValueError`` when the
value is out of bounds.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any, ClassVar

from .rules import is_email, is_http_url, is_uuid


class PositiveInt(int):
    """Integer greater than zero."""

    __json_schema__: ClassVar[dict[str, Any]] = {"exclusiveMinimum": 0}

    def validate(self) -> None:
        if self <= 0:
            raise ValueError(f"must be greater than 0, got {int(self)}")


class NonNegativeInt(int):
    """Integer greater than or equal to zero."""

    __json_schema__: ClassVar[dict[str, Any]] = {"minimum": 0}

    def validate(self) -> None:
        if self < 0:
            raise ValueError(f"must be non-negative, got {int(self)}")


class NegativeInt(int):
    """Integer less than zero."""

    __json_schema__: ClassVar[dict[str, Any]] = {"exclusiveMaximum": 0}

    def validate(self) -> None:
        if self >= 0:
            raise ValueError(f"must be negative, got {int(self)}")


class NonPositiveInt(int):
    """Integer less than or equal to zero."""

    __json_schema__: ClassVar[dict[str, Any]] = {"maximum": 0}

    def validate(self) -> None:
        if self > 0:
            raise ValueError(f"must be non-positive, got {int(self)}")


class PositiveFloat(float):
    __json_schema__: ClassVar[dict[str, Any]] = {"exclusiveMinimum": 0}

    def validate(self) -> None:
        if not self > 0:
            raise ValueError(f"must be greater than 0, got {float(self)}")


class NonNegativeFloat(float):
    __json_schema__: ClassVar[dict[str, Any]] = {"minimum": 0}

    def validate(self) -> None:
        if not self >= 0:
            raise ValueError(f"must be non-negative, got {float(self)}")


class NegativeFloat(float):
    __json_schema__: ClassVar[dict[str, Any]] = {"exclusiveMaximum": 0}

    def validate(self) -> None:
        if not self < 0:
            raise ValueError(f"must be negative, got {float(self)}")


class NonPositiveFloat(float):
    __json_schema__: ClassVar[dict[str, Any]] = {"maximum": 0}

    def validate(self) -> None:
        if not self <= 0:
            raise ValueError(f"must be non-positive, got {float(self)}")


class EmailStr(str):
    """Email address."""

    __json_schema__: ClassVar[dict[str, Any]] = {"format": "email"}

    def validate(self) -> None:
        if not self:
            raise ValueError("email cannot be empty")
        if not is_email(self):
            raise ValueError(f"invalid email format: {str(self)!r}")


class HttpUrl(str):
    """Absolute URL with an http or https scheme."""

    __json_schema__: ClassVar[dict[str, Any]] = {"format": "uri"}

    def validate(self) -> None:
        if not self:
            raise ValueError("URL cannot be empty")
        if not is_http_url(self):
            raise ValueError(f"URL must be absolute and use http or https, got {str(self)!r}")


class UUIDStr(str):
    """UUID in any form accepted by ``uuid.UUID``."""

    __json_schema__: ClassVar[dict[str, Any]] = {"format": "uuid"}

    def validate(self) -> None:
        if not self:
            raise ValueError("UUID cannot be empty")
        if not is_uuid(self):
            raise ValueError(f"invalid UUID format: {str(self)!r}")


class _PatternStr(str):
    _label: ClassVar[str]
    _regex: ClassVar[re.Pattern[str]]
    _message: ClassVar[str]

    def validate(self) -> None:
        if not self:
            raise ValueError(f"{self._label} string cannot be empty")
        if not self._regex.match(self):
            raise ValueError(self._message)


class AlphaStr(_PatternStr):
    _label = "alpha"
    _regex = re.compile(r"^[a-zA-Z]+$")
    _message = "must contain only alphabetic characters"
    __json_schema__: ClassVar[dict[str, Any]] = {"pattern": "^[a-zA-Z]+$"}


class AlphaNumStr(_PatternStr):
    _label = "alphanumeric"
    _regex = re.compile(r"^[a-zA-Z0-9]+$")
    _message = "must contain only alphanumeric characters"
    __json_schema__: ClassVar[dict[str, Any]] = {"pattern": "^[a-zA-Z0-9]+$"}


class NumericStr(_PatternStr):
    _label = "numeric"
    _regex = re.compile(r"^[0-9]+$")
    _message = "must contain only numeric characters"
    __json_schema__: ClassVar[dict[str, Any]] = {"pattern": "^[0-9]+$"}


class HexStr(_PatternStr):
    _label = "hex"
    _regex = re.compile(r"^[0-9a-fA-F]+$")
    _message = "must contain only hexadecimal characters"
    __json_schema__: ClassVar[dict[str, Any]] = {"pattern": "^[0-9a-fA-F]+$"}


class Base64Str(str):
    """Standard, padded base64 text."""

    __json_schema__: ClassVar[dict[str, Any]] = {"contentEncoding": "base64"}

    def validate(self) -> None:
        if not self:
            raise ValueError("base64 string cannot be empty")
        if len(self) % 4 != 0:
            raise ValueError("base64 string length must be multiple of 4")
        try:
            base64.b64decode(str(self), validate=True)
        except binascii.Error:
            raise ValueError("invalid base64 characters") from None


class LowercaseStr(str):
    def validate(self) -> None:
        if self != self.lower():
            raise ValueError("must be lowercase")


class UppercaseStr(str):
    def validate(self) -> None:
        if self != self.upper():
            raise ValueError("must be uppercase")


__all__ = [
    "AlphaNumStr",
    "AlphaStr",
    "Base64Str",
    "EmailStr",
    "HexStr",
    "HttpUrl",
    "LowercaseStr",
    "NegativeFloat",
    "NegativeInt",
    "NonNegativeFloat",
    "NonNegativeInt",
    "NonPositiveFloat",
    "NonPositiveInt",
    "NumericStr",
    "PositiveFloat",
    "PositiveInt",
    "UUIDStr",
    "UppercaseStr",
]
