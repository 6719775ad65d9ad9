"""Tests for self-validating constrained types and model validator helpers."""

from dataclasses import dataclass
from typing import Optional

import pytest

from dataknobs_structured.validation import (
    AlphaNumStr,
    AlphaStr,
    Base64Str,
    EmailStr,
    ErrorKind,
    HexStr,
    HttpUrl,
    LowercaseStr,
    NegativeFloat,
    NegativeInt,
    NonNegativeFloat,
    NonNegativeInt,
    NonPositiveFloat,
    NonPositiveInt,
    NumericStr,
    PositiveFloat,
    PositiveInt,
    ShapeBuilder,
    UppercaseStr,
    UUIDStr,
    Validator,
    at_least_one,
    conditional_required,
    fields_match,
    mutually_exclusive,
    ordered,
    schema_field,
    validate,
)


@dataclass
class Signup:
    email: EmailStr = schema_field("required")
    age: PositiveInt = schema_field("required")
    homepage: Optional[HttpUrl] = None


@dataclass
class Account:
    __model_validators__ = (
        fields_match("password", "confirm_password"),
        at_least_one("email", "phone"),
    )

    password: str = schema_field("required,min=8")
    confirm_password: str = schema_field("required")
    email: Optional[str] = None
    phone: Optional[str] = None


class TestNumericTypes:
    """Test the numeric constrained types."""

    @pytest.mark.parametrize("cls,good,bad,message", [
        (PositiveInt, 1, 0, "must be greater than 0, got 0"),
        (NonNegativeInt, 0, -1, "must be non-negative, got -1"),
        (NegativeInt, -1, 0, "must be negative, got 0"),
        (NonPositiveInt, 0, 1, "must be non-positive, got 1"),
        (PositiveFloat, 0.5, 0.0, "must be greater than 0, got 0.0"),
        (NonNegativeFloat, 0.0, -0.5, "must be non-negative, got -0.5"),
        (NegativeFloat, -0.5, 0.0, "must be negative, got 0.0"),
        (NonPositiveFloat, 0.0, 0.5, "must be non-positive, got 0.5"),
    ])
    def test_bounds(self, cls, good, bad, message):
        """Test each type accepts its range and rejects the boundary outside it."""
        cls(good).validate()
        with pytest.raises(ValueError, match=message):
            cls(bad).validate()


class TestStringTypes:
    """Test the string constrained types."""

    @pytest.mark.parametrize("cls,good,bad", [
        (EmailStr, "a@example.com", "nope"),
        (HttpUrl, "https://example.com", "ftp://example.com"),
        (UUIDStr, "123e4567-e89b-12d3-a456-426614174000", "not-a-uuid"),
        (AlphaStr, "abc", "abc1"),
        (AlphaNumStr, "abc1", "abc-1"),
        (NumericStr, "0123", "12a"),
        (HexStr, "deadBEEF", "xyz"),
        (Base64Str, "aGVsbG8=", "aGVsbG8"),
        (LowercaseStr, "abc", "Abc"),
        (UppercaseStr, "ABC", "AbC"),
    ])
    def test_accept_and_reject(self, cls, good, bad):
        """Test each type accepts a valid value and rejects an invalid one."""
        cls(good).validate()
        with pytest.raises(ValueError):
            cls(bad).validate()

    def test_empty_rejected(self):
        """Test empty strings are rejected by format types."""
        with pytest.raises(ValueError, match="email cannot be empty"):
            EmailStr("").validate()
        with pytest.raises(ValueError, match="alpha string cannot be empty"):
            AlphaStr("").validate()

    def test_base64_length(self):
        """Test base64 text must be padded to a multiple of four."""
        with pytest.raises(ValueError, match="multiple of 4"):
            Base64Str("abc").validate()


class TestConstrainedFields:
    """Test constrained types used as field annotations."""

    def test_valid(self):
        """Test valid values are wrapped in their types."""
        result = validate(Signup, {"email": "a@example.com", "age": "21"})
        assert result.valid
        assert isinstance(result.value.age, PositiveInt)
        assert result.value.age == 21
        assert result.value.homepage is None

    def test_invalid_values_reported_per_field(self):
        """Test self-validation failures carry the field path."""
        result = validate(Signup, {"email": "bad", "age": 0, "homepage": "example.com"})
        assert [e.location for e in result.errors] == ["email", "age", "homepage"]
        assert all(e.kind is ErrorKind.CUSTOM for e in result.errors)
        assert result.errors[1].message == "must be greater than 0, got 0"

    def test_list_elements_self_validate(self):
        """Test elements of constrained types are validated too."""
        result = validate(list[PositiveInt], [1, -2, 3])
        assert [e.location for e in result.errors] == ["[1]"]


class TestModelValidatorHelpers:
    """Test the reusable cross-field checks."""

    def test_fields_match(self):
        """Test mismatched fields are reported as a model error."""
        raw = {"password": "secret123", "confirm_password": "secret124", "email": "a@b.co"}
        result = validate(Account, raw)
        assert result.errors[0].kind is ErrorKind.MODEL
        assert result.errors[0].message == "password and confirm_password must match"

    def test_at_least_one(self):
        """Test at least one contact must be present."""
        raw = {"password": "secret123", "confirm_password": "secret123"}
        result = validate(Account, raw)
        assert result.errors[0].message == "at least one of [email, phone] must be provided"

    def test_all_model_checks_collected(self):
        """Test every failing model check is reported."""
        raw = {"password": "secret123", "confirm_password": "x"}
        assert len(validate(Account, raw).errors) == 2

    def test_valid_account(self):
        """Test a consistent account validates."""
        raw = {"password": "secret123", "confirm_password": "secret123", "phone": "555"}
        assert validate(Account, raw).valid

    def test_conditional_required(self):
        """Test a field becomes required under a condition."""
        shape = (
            ShapeBuilder("Shipping")
            .field("method", str, "required,oneof=pickup delivery")
            .field("address", str)
            .model_validator(conditional_required("method", "delivery", "address"))
            .build()
        )
        validator = Validator()
        assert validator.validate(shape, {"method": "pickup"}).valid
        result = validator.validate(shape, {"method": "delivery"})
        assert result.errors[0].message == "address is required when method is delivery"

    def test_mutually_exclusive(self):
        """Test at most one of the fields may be set."""
        check = mutually_exclusive("card", "iban")
        check({"card": "4111", "iban": None})
        with pytest.raises(ValueError, match=r"only one of \[card, iban\] can be set"):
            check({"card": "4111", "iban": "DE89"})

    def test_ordered(self):
        """Test start must not come after end."""
        check = ordered("start", "end")
        check({"start": 1, "end": 2})
        with pytest.raises(ValueError, match="start must not be after end"):
            check({"start": 3, "end": 2})

    def test_missing_field(self):
        """Test reading an undeclared field fails the check."""
        with pytest.raises(ValueError, match="field other not found"):
            fields_match("a", "other")({"a": 1})

    def test_helper_arguments(self):
        """Test helpers reject too few field names."""
        with pytest.raises(ValueError):
            at_least_one()
        with pytest.raises(ValueError):
            mutually_exclusive("only")
