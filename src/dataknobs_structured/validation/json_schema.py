"""JSON Schema generation from declared types.

The extraction client passes this schema to the generator as the
response-shape hint and includes it in the prompt, so the generator knows
which fields, types and constraints are expected.
"""

from __future__ import annotations

from typing import Any

from .rules import Rule
from .shape import FieldSpec, Shape
from .typespec import TypeKind, TypeSpec, resolve_type

_SCALAR_TYPES = {
    TypeKind.STR: "string",
    TypeKind.INT: "integer",
    TypeKind.FLOAT: "number",
    TypeKind.BOOL: "boolean",
}

_FORMATS = {"email": "email", "url": "uri", "uuid": "uuid"}
_PATTERNS = {"alpha": "^[a-zA-Z]+$", "alphanum": "^[a-zA-Z0-9]+$", "numeric": "^[0-9]+$"}


def to_json_schema(target: Any) -> dict[str, Any]:
    """Build a JSON Schema document for a declared type.

    Recursive struct references are emitted as ``$ref`` into ``$defs``
    (``#`` for the root itself).

    Args:
        target: Dataclass, annotation, ``Shape``, ``TypeSpec`` or composite

    Returns:
        JSON Schema as a dict

    Example:
        ```python
        to_json_schema(Person)
        # {"type": "object", "title": "Person",
        #  "properties": {"name": {"type": "string", "minLength": 2}, ...},
        #  "required": ["name", "email"]}
        ```
    """
    builder = _SchemaBuilder()
    schema = builder.build(resolve_type(target))
    if builder.definitions:
        schema["$defs"] = builder.definitions
    return schema


class _SchemaBuilder:
    def __init__(self) -> None:
        self.definitions: dict[str, dict[str, Any]] = {}
        self._stack: list[str] = []
        self._referenced: set[str] = set()

    def build(self, spec: TypeSpec) -> dict[str, Any]:
        kind = spec.kind
        if kind is TypeKind.ANY:
            return {}
        if spec.is_scalar:
            schema: dict[str, Any] = {"type": _SCALAR_TYPES[kind]}
            schema.update(getattr(spec.python_type, "__json_schema__", {}))
            return schema
        if kind is TypeKind.LIST:
            assert spec.element is not None
            return {"type": "array", "items": self.build(spec.element)}
        if kind is TypeKind.DICT:
            assert spec.element is not None
            return {"type": "object", "additionalProperties": self.build(spec.element)}
        if kind is TypeKind.OPTIONAL:
            assert spec.element is not None
            return {"anyOf": [self.build(spec.element), {"type": "null"}]}
        if kind is TypeKind.UNION:
            return {"anyOf": [self.build(candidate) for candidate in spec.candidates]}
        if kind is TypeKind.STRUCT:
            return self._struct(spec.shape)
        return self._composite(spec)

    def _struct(self, shape: Shape) -> dict[str, Any]:
        name = shape.name
        if name in self._stack:
            if self._stack[0] == name:
                return {"$ref": "#"}
            self._referenced.add(name)
            return {"$ref": f"#/$defs/{name}"}

        self._stack.append(name)
        try:
            properties = {field.alias: self._field(field) for field in shape.fields}
        finally:
            self._stack.pop()

        schema: dict[str, Any] = {"type": "object", "title": name, "properties": properties}
        if shape.description:
            schema["description"] = shape.description
        required = [field.alias for field in shape.fields if field.required]
        if required:
            schema["required"] = required

        if name in self._referenced and self._stack:
            self.definitions[name] = schema
            return {"$ref": f"#/$defs/{name}"}
        return schema

    def _field(self, field: FieldSpec) -> dict[str, Any]:
        schema = self.build(field.type)
        target = schema
        if field.type.is_nullable and "anyOf" in schema:
            target = schema["anyOf"][0]
        for rule in field.rules:
            _apply_rule(target, rule)
        if field.description:
            schema["description"] = field.description
        return schema

    def _composite(self, spec: TypeSpec) -> dict[str, Any]:
        from .composites import DictOf, DiscriminatedUnion, ListOf, OptionalOf, UnionOf

        validator = spec.validator
        if isinstance(validator, ListOf):
            schema = {"type": "array", "items": self.build(validator.item)}
            if validator.min_items:
                schema["minItems"] = validator.min_items
            if validator.max_items is not None:
                schema["maxItems"] = validator.max_items
            return schema
        if isinstance(validator, DictOf):
            schema = {"type": "object", "additionalProperties": self.build(validator.value)}
            if validator.min_items:
                schema["minProperties"] = validator.min_items
            if validator.max_items is not None:
                schema["maxProperties"] = validator.max_items
            return schema
        if isinstance(validator, OptionalOf):
            return {"anyOf": [self.build(validator.inner), {"type": "null"}]}
        if isinstance(validator, UnionOf):
            return {"anyOf": [self.build(candidate) for candidate in validator.candidates]}
        if isinstance(validator, DiscriminatedUnion):
            variants = []
            for key, candidate in validator.mapping.items():
                variant = self.build(candidate)
                if variant.get("type") == "object":
                    variant.setdefault("properties", {})[validator.field] = {"const": key}
                    variant["required"] = sorted(set(variant.get("required", [])) | {validator.field})
                variants.append(variant)
            return {"oneOf": variants, "discriminator": {"propertyName": validator.field}}
        return {}


def _apply_rule(schema: dict[str, Any], rule: Rule) -> None:
    kind = schema.get("type")
    numeric = kind in ("integer", "number")
    param = rule.param
    if rule.name in ("min", "max") and param is not None:
        if kind == "string":
            schema["minLength" if rule.name == "min" else "maxLength"] = int(float(param))
        elif numeric:
            schema["minimum" if rule.name == "min" else "maximum"] = _number(param)
    elif rule.name in ("gte", "gt", "lte", "lt") and param is not None and numeric:
        key = {
            "gte": "minimum",
            "gt": "exclusiveMinimum",
            "lte": "maximum",
            "lt": "exclusiveMaximum",
        }[rule.name]
        schema[key] = _number(param)
    elif rule.name == "oneof" and param:
        schema["enum"] = param.split()
    elif rule.name in _FORMATS:
        schema["format"] = _FORMATS[rule.name]
    elif rule.name in _PATTERNS:
        schema["pattern"] = _PATTERNS[rule.name]
    elif rule.name == "pattern" and param:
        schema["pattern"] = param


def _number(param: str) -> int | float:
    number = float(param)
    return int(number) if number.is_integer() else number


__all__ = ["to_json_schema"]
