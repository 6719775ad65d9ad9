"""Tests for JSON Schema generation."""

from dataclasses import dataclass, field
from typing import Optional

from dataknobs_structured.validation import (
    DiscriminatedUnion,
    EmailStr,
    ListOf,
    OptionalOf,
    PositiveInt,
    ShapeBuilder,
    schema_field,
    to_json_schema,
)


@dataclass
class Person:
    """Someone to contact."""

    name: str = schema_field("required,min=2,max=50", description="Full name")
    email: str = schema_field("required,email")
    age: int = schema_field("gte=0,lt=150", default=0)
    role: str = schema_field("oneof=admin user", default="user")
    website: Optional[str] = schema_field("url", default=None)


@dataclass
class Profile:
    backup_email: Optional[str] = schema_field("email", type=OptionalOf(str), default=None)


@dataclass
class Tree:
    label: str = schema_field("required")
    children: list["Tree"] = field(default_factory=list)


@dataclass
class Cat:
    lives: int = 9


@dataclass
class Dog:
    breed: str = ""


class TestScalarsAndStructs:
    """Test schemas for plain declarations."""

    def test_scalars(self):
        """Test scalar annotations map to JSON types."""
        assert to_json_schema(str) == {"type": "string"}
        assert to_json_schema(int) == {"type": "integer"}
        assert to_json_schema(float) == {"type": "number"}
        assert to_json_schema(bool) == {"type": "boolean"}

    def test_struct(self):
        """Test fields, rules and required lists."""
        schema = to_json_schema(Person)
        assert schema["type"] == "object"
        assert schema["title"] == "Person"
        assert schema["description"] == "Someone to contact."
        assert schema["required"] == ["name", "email"]

        props = schema["properties"]
        assert props["name"] == {
            "type": "string",
            "minLength": 2,
            "maxLength": 50,
            "description": "Full name",
        }
        assert props["email"] == {"type": "string", "format": "email"}
        assert props["age"] == {"type": "integer", "minimum": 0, "exclusiveMaximum": 150}
        assert props["role"] == {"type": "string", "enum": ["admin", "user"]}
        assert props["website"] == {
            "anyOf": [{"type": "string", "format": "uri"}, {"type": "null"}]
        }

    def test_constrained_types(self):
        """Test constrained types contribute their own keywords."""
        assert to_json_schema(PositiveInt) == {"type": "integer", "exclusiveMinimum": 0}
        assert to_json_schema(EmailStr) == {"type": "string", "format": "email"}

    def test_optional_composite_field_rules_on_inner_schema(self):
        """Test rules of an OptionalOf field land on the non-null branch."""
        assert to_json_schema(Profile)["properties"]["backup_email"] == {
            "anyOf": [{"type": "string", "format": "email"}, {"type": "null"}]
        }

    def test_builder_shape(self):
        """Test builder shapes generate the same way."""
        shape = ShapeBuilder("Point").field("x", float, "required").field("y", float).build()
        schema = to_json_schema(shape)
        assert schema["properties"] == {"x": {"type": "number"}, "y": {"type": "number"}}
        assert schema["required"] == ["x"]


class TestComposites:
    """Test schemas for composite validators."""

    def test_list_of(self):
        """Test item bounds become minItems/maxItems."""
        schema = to_json_schema(ListOf(int, min_items=1, max_items=5))
        assert schema == {"type": "array", "items": {"type": "integer"}, "minItems": 1, "maxItems": 5}

    def test_containers(self):
        """Test list and dict annotations."""
        assert to_json_schema(list[str]) == {"type": "array", "items": {"type": "string"}}
        assert to_json_schema(dict[str, int]) == {
            "type": "object",
            "additionalProperties": {"type": "integer"},
        }

    def test_union(self):
        """Test unions become anyOf."""
        assert to_json_schema(int | str) == {"anyOf": [{"type": "integer"}, {"type": "string"}]}

    def test_discriminated_union(self):
        """Test each variant pins its discriminator value."""
        schema = to_json_schema(DiscriminatedUnion("kind", {"cat": Cat, "dog": Dog}))
        assert schema["discriminator"] == {"propertyName": "kind"}
        cat, dog = schema["oneOf"]
        assert cat["properties"]["kind"] == {"const": "cat"}
        assert dog["properties"]["kind"] == {"const": "dog"}
        assert cat["required"] == ["kind"]


class TestRecursion:
    """Test recursive declarations."""

    def test_root_recursion_uses_hash_ref(self):
        """Test a self-referencing root refers back to the document."""
        schema = to_json_schema(Tree)
        assert schema["properties"]["children"] == {"type": "array", "items": {"$ref": "#"}}

    def test_nested_recursion_uses_defs(self):
        """Test a recursive type below the root is emitted once under $defs."""
        forest = ShapeBuilder("Forest").field("trees", list[Tree]).build()
        schema = to_json_schema(forest)
        assert schema["properties"]["trees"] == {"type": "array", "items": {"$ref": "#/$defs/Tree"}}
        tree = schema["$defs"]["Tree"]
        assert tree["properties"]["children"]["items"] == {"$ref": "#/$defs/Tree"}
