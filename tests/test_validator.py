"""Tests for struct validation over shapes."""

from dataclasses import dataclass, field
from typing import Optional

import pytest

from dataknobs_structured.validation import (
    ErrorKind,
    ShapeBuilder,
    ValidationErrors,
    Validator,
    dump,
    schema_field,
    shape_of,
    validate,
    validate_or_raise,
)


@dataclass
class Person:
    """A person."""

    name: str = schema_field("required,min=2,max=50")
    email: str = schema_field("required,email")
    age: int = schema_field("gte=0,lte=150", default=0)
    nickname: Optional[str] = schema_field(alias="nick", omitempty=True, default=None)


@dataclass
class Address:
    street: str = schema_field("required")
    zip: str = schema_field("required,numeric,min=5,max=5")


@dataclass
class Customer:
    name: str = schema_field("required")
    address: Address = schema_field("required")
    tags: list[str] = field(default_factory=list)


@dataclass
class Node:
    value: int = schema_field("required")
    children: list["Node"] = field(default_factory=list)


def confirm_password(value, ctx):
    """Field validator comparing against an earlier sibling field."""
    if value != ctx.get_validated(ctx.sibling_key("password")):
        raise ValueError("passwords do not match")
    return value


def strip_name(value, ctx):
    return value.strip()


@dataclass
class Signup:
    username: str = schema_field("required", validators=[strip_name])
    password: str = schema_field("required,min=8")
    confirm: str = schema_field("required", validators=[confirm_password])


@dataclass
class Range:
    start: int = schema_field("required")
    end: int = schema_field("required")

    def validate_model(self):
        if self.start > self.end:
            raise ValueError("start must not be after end")


@dataclass
class Percentage:
    value: float = schema_field("required")

    def validate(self):
        if not 0 <= self.value <= 100:
            raise ValueError("percentage must be between 0 and 100")


@dataclass
class Limits:
    high: int = schema_field("lte=5")
    low: int = schema_field("gte=10", default=20)


@dataclass
class Window:
    start: int = schema_field("required")
    end: int = schema_field("required")

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError("end before start")


def require_us_country(value, ctx):
    if ctx.get_validated(ctx.sibling_key("country")) != "US":
        raise ValueError("city lookup needs a country")
    return value


@dataclass(kw_only=True)
class Shipping:
    country: str = "US"
    zip: str = schema_field("required")
    city: str = schema_field("required", validators=[require_us_country])


class TestStructValidation:
    """Test basic struct population."""

    def test_valid_input(self):
        """Test a valid map produces the dataclass."""
        result = validate(Person, {"name": "Alice", "email": "alice@example.com", "age": 30})
        assert result.valid
        assert result.value == Person(name="Alice", email="alice@example.com", age=30)

    def test_lax_coercion_in_fields(self):
        """Test field values are coerced in lax mode."""
        result = validate(Person, {"name": "Alice", "email": "alice@example.com", "age": "30"})
        assert result.value.age == 30

    def test_strict_mode_rejects_conversion(self):
        """Test strict mode reports the type mismatch on the field."""
        result = validate(
            Person, {"name": "Alice", "email": "alice@example.com", "age": "30"}, strict=True
        )
        assert not result.valid
        assert result.errors[0].location == "age"
        assert result.errors[0].kind is ErrorKind.TYPE

    def test_round_trip(self):
        """Test dump then validate yields an equal value."""
        person = Person(name="Bob", email="bob@example.com", age=41, nickname="bobby")
        raw = dump(person)
        assert raw == {"name": "Bob", "email": "bob@example.com", "age": 41, "nick": "bobby"}
        assert validate(Person, raw).value == person

    def test_dump_omits_empty_omitempty(self):
        """Test empty omitempty fields are left out of the raw form."""
        raw = dump(Person(name="Bob", email="bob@example.com"))
        assert "nick" not in raw

    def test_unknown_keys_ignored(self):
        """Test keys the shape does not declare are ignored."""
        result = validate(Person, {"name": "Al", "email": "al@example.com", "extra": 1})
        assert result.valid

    def test_not_a_map(self):
        """Test non-map input fails with a type error."""
        result = validate(Person, ["Alice"])
        assert result.errors[0].kind is ErrorKind.TYPE
        assert "expected an object" in result.errors[0].message


class TestAbsence:
    """Test required, optional and omitempty fields."""

    def test_single_required_error(self):
        """Test an absent required field yields exactly one required error."""
        result = validate(Person, {"name": "Alice"})
        assert not result.valid
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.location == "email"
        assert error.kind is ErrorKind.REQUIRED
        assert error.message == "field is required"

    def test_all_errors_collected(self):
        """Test every failing field is reported, in declaration order."""
        result = validate(Person, {"name": "A", "email": "nope", "age": 200})
        assert [e.location for e in result.errors] == ["name", "email", "age"]
        assert result.errors.kinds() == [ErrorKind.MIN_LENGTH, ErrorKind.EMAIL, ErrorKind.MAX]

    def test_absent_optional_takes_default(self):
        """Test absent non-required fields take their declared default."""
        result = validate(Person, {"name": "Alice", "email": "alice@example.com"})
        assert result.value.age == 0
        assert result.value.nickname is None

    def test_absent_field_with_constraints_checks_default(self):
        """Test constraints apply to the default of an absent constrained field."""
        result = validate(Limits, {})
        assert result.valid
        assert result.value == Limits(low=20, high=0)

    def test_omitempty_present_null(self):
        """Test a present null in a nullable omitempty field is accepted."""
        result = validate(Person, {"name": "Alice", "email": "a@example.com", "nick": None})
        assert result.valid
        assert result.value.nickname is None

    def test_alias_is_external_name(self):
        """Test aliased fields are read from their external name."""
        result = validate(Person, {"name": "Alice", "email": "a@example.com", "nick": "Al"})
        assert result.value.nickname == "Al"

    def test_absent_default_visible_to_later_fields(self):
        """Test a defaulted absent field is recorded for later cross-field checks."""
        result = validate(Shipping, {"zip": "12345", "city": "Springfield"})
        assert result.valid
        assert result.value.country == "US"


class TestNesting:
    """Test nested structs and lists."""

    def test_nested_error_paths(self):
        """Test nested failures are prefixed with the parent field."""
        result = validate(Customer, {"name": "Acme", "address": {"street": "Main", "zip": "12"}})
        assert [e.location for e in result.errors] == ["address.zip"]
        assert result.errors[0].kind is ErrorKind.MIN_LENGTH

    def test_nested_value(self):
        """Test nested dataclasses are constructed."""
        result = validate(
            Customer,
            {"name": "Acme", "address": {"street": "Main", "zip": "12345"}, "tags": ["a"]},
        )
        assert result.value.address == Address(street="Main", zip="12345")
        assert result.value.tags == ["a"]

    def test_recursive_type(self):
        """Test self-referencing shapes validate to any depth."""
        raw = {"value": 1, "children": [{"value": 2}, {"value": "3", "children": [{"value": 4}]}]}
        result = validate(Node, raw)
        assert result.valid
        assert result.value.children[1].children[0].value == 4

    def test_recursive_error_path(self):
        """Test error paths through lists use bracketed indices."""
        result = validate(Node, {"value": 1, "children": [{"value": 2}, {"children": []}]})
        assert result.errors[0].location == "children[1].value"


class TestFieldValidators:
    """Test per-field validator callables."""

    def test_transforming_validator(self):
        """Test a validator's return value replaces the field value."""
        result = validate(Signup, {"username": "  al  ", "password": "secret123", "confirm": "secret123"})
        assert result.value.username == "al"

    def test_cross_field_validator(self):
        """Test validators can read previously validated siblings."""
        result = validate(Signup, {"username": "al", "password": "secret123", "confirm": "other"})
        assert [e.location for e in result.errors] == ["confirm"]
        assert result.errors[0].message == "passwords do not match"
        assert result.errors[0].kind is ErrorKind.CUSTOM

    def test_user_context_visible(self):
        """Test caller values reach field validators."""
        seen = {}

        def capture(value, ctx):
            seen.update(ctx.user_context)
            return value

        shape = ShapeBuilder("Tenanted").field("name", str, validators=[capture]).build()
        Validator().validate(shape, {"name": "x"}, user_context={"tenant": "acme"})
        assert seen == {"tenant": "acme"}


class TestModelValidation:
    """Test model-level capabilities."""

    def test_validate_model_runs_after_fields(self):
        """Test the model capability rejects an inconsistent value."""
        result = validate(Range, {"start": 5, "end": 1})
        assert len(result.errors) == 1
        assert result.errors[0].kind is ErrorKind.MODEL
        assert result.errors[0].location == ""
        assert result.errors[0].message == "start must not be after end"

    def test_model_skipped_when_fields_fail(self):
        """Test model checks do not run when a field is invalid."""
        result = validate(Range, {"start": 5})
        assert result.errors.kinds() == [ErrorKind.REQUIRED]

    def test_self_validation_capability(self):
        """Test a struct's own validate() is invoked."""
        result = validate(Percentage, {"value": 120})
        assert not result.valid
        assert result.errors[0].message == "percentage must be between 0 and 100"

    def test_nested_model_error_is_prefixed(self):
        """Test a nested model error carries the field path."""

        shape = ShapeBuilder("Booking").field("range", Range, "required").build()
        result = Validator().validate(shape, {"range": {"start": 9, "end": 1}})
        assert result.errors[0].location == "range"
        assert result.errors[0].kind is ErrorKind.MODEL

    def test_construction_failure_is_model_error(self):
        """Test a rejecting __post_init__ is reported instead of raised."""
        result = Validator().validate(Window, {"start": 5, "end": 1})
        assert not result.valid
        assert len(result.errors) == 1
        assert result.errors[0].kind is ErrorKind.MODEL
        assert result.errors[0].location == ""
        assert result.errors[0].message == "end before start"

    def test_construction_success(self):
        """Test a consistent value constructs normally."""
        assert validate(Window, {"start": 1, "end": 5}).value == Window(start=1, end=5)


class TestShapeBuilder:
    """Test shapes without a backing dataclass."""

    def test_builds_dict_values(self):
        """Test builder shapes produce dicts keyed by field name."""
        shape = (
            ShapeBuilder("Product")
            .field("sku", str, "required,alphanum")
            .field("price", float, "required,gt=0")
            .field("stock", int, default=0)
            .build()
        )
        result = Validator().validate(shape, {"sku": "AB12", "price": "9.5"})
        assert result.value == {"sku": "AB12", "price": 9.5, "stock": 0}

    def test_builder_model_validator(self):
        """Test builder model validators run on the built value."""

        def positive_total(value):
            if value["qty"] * value["unit"] <= 0:
                raise ValueError("total must be positive")

        shape = (
            ShapeBuilder("Line")
            .field("qty", int, "required")
            .field("unit", float, "required")
            .model_validator(positive_total)
            .build()
        )
        result = Validator().validate(shape, {"qty": 0, "unit": 2})
        assert result.errors[0].message == "total must be positive"

    def test_duplicate_field(self):
        """Test a field cannot be declared twice."""
        with pytest.raises(ValueError):
            ShapeBuilder("Dup").field("a", int).field("a", str)

    def test_bad_rule_parameter_fails_at_build(self):
        """Test malformed parameters are programmer errors."""
        with pytest.raises(ValueError):
            ShapeBuilder("Bad").field("a", int, "gte=abc")


class TestShapeOf:
    """Test shape derivation from dataclasses."""

    def test_shape_is_cached(self):
        """Test the same shape object is returned each time."""
        assert shape_of(Person) is shape_of(Person)

    def test_field_layout(self):
        """Test fields keep declaration order and flags."""
        shape = shape_of(Person)
        assert [f.alias for f in shape.fields] == ["name", "email", "age", "nick"]
        assert shape.get_field("email").required
        assert shape.get_field("nick").omit_empty
        assert shape.description == "A person."

    def test_not_a_dataclass(self):
        """Test non-dataclasses are rejected."""
        with pytest.raises(TypeError):
            shape_of(dict)

    def test_field_defaults(self):
        """Test declared defaults and factories are carried on the field."""
        email = shape_of(Person).get_field("email")
        assert not email.has_default
        age = shape_of(Person).get_field("age")
        assert age.has_default
        assert age.zero_value() == 0
        tags = shape_of(Customer).get_field("tags")
        assert tags.has_default
        assert tags.zero_value() == []


class TestRaising:
    """Test the raising helpers."""

    def test_validate_or_raise(self):
        """Test the raising helper returns the value or raises errors."""
        person = validate_or_raise(Person, {"name": "Al", "email": "al@example.com"})
        assert person.name == "Al"
        with pytest.raises(ValidationErrors) as exc_info:
            validate_or_raise(Person, {})
        assert len(exc_info.value) == 2
