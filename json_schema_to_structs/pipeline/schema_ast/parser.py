"""
JSON Schema parser that builds an AST.

Phase 1 of the pipeline: parse one JSON Schema document into an immutable
SchemaDocument without resolving references or doing language-specific
processing. Shape errors are reported as MalformedInput, keywords outside the
draft-04 subset as UnsupportedSchemaConstruct.
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any

from ..errors import MalformedInput, UnsupportedSchemaConstruct
from .nodes import (
    COMPOSITE_KINDS,
    PRIMITIVE_KINDS,
    AnySchema,
    ArraySchema,
    CompositeSchema,
    EnumSchema,
    MapSchema,
    ObjectSchema,
    PrimitiveSchema,
    PropertyDef,
    RefSchema,
    SchemaDocument,
    SchemaNode,
    escape_pointer_token,
)

logger = logging.getLogger(__name__)

# Keywords introduced after draft-04 that change the shape of the data
UNSUPPORTED_KEYWORDS = {
    "const",
    "contains",
    "propertyNames",
    "if",
    "then",
    "else",
    "prefixItems",
    "dependentRequired",
    "dependentSchemas",
    "unevaluatedProperties",
    "unevaluatedItems",
    "contentSchema",
    "$anchor",
    "$dynamicRef",
    "$dynamicAnchor",
    "$recursiveRef",
    "$recursiveAnchor",
}

# Keywords that describe the structure of a schema alongside a composite
STRUCTURAL_KEYWORDS = ("properties", "patternProperties", "items", "enum")

TYPE_NAMES = set(PRIMITIVE_KINDS) | {"array", "object"}

DEFINITION_KEYWORDS = ("definitions", "$defs")


class SchemaParser:
    """Parses JSON Schema documents into SchemaDocument ASTs."""

    def __init__(self):
        self._nodes: dict[str, SchemaNode] = {}
        self._document_id = ""

    def parse_text(self, text: str, document_id: str) -> SchemaDocument:
        """
        Parse schema text into an AST.

        Args:
            text: Raw JSON text
            document_id: Identity of the document (path or URI)

        Returns:
            The parsed SchemaDocument

        Raises:
            MalformedInput: If the text is not valid JSON
        """
        try:
            schema = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedInput(f"Invalid JSON: {e}", f"{document_id}#") from e
        return self.parse(schema, document_id)

    def parse(self, schema: Any, document_id: str) -> SchemaDocument:
        """
        Parse a decoded JSON Schema into an AST.

        Args:
            schema: The decoded JSON value of the document
            document_id: Identity of the document (path or URI)

        Returns:
            SchemaDocument with root, ordered definitions and pointer index
        """
        self._nodes = {}
        self._document_id = document_id

        if not isinstance(schema, dict):
            raise MalformedInput("A schema document must be a JSON object", f"{document_id}#")

        definitions = self._parse_definitions(schema, "#")
        root = self._parse_schema_node(schema, "#")

        logger.debug("Parsed %s: %d definitions, %d nodes", document_id, len(definitions), len(self._nodes))
        return SchemaDocument(
            id=document_id,
            root=root,
            definitions=MappingProxyType(definitions),
            nodes=MappingProxyType(dict(self._nodes)),
        )

    def _parse_definitions(self, schema: dict[str, Any], path: str) -> dict[str, SchemaNode]:
        """Parse "definitions" and "$defs" of a schema, in declaration order."""
        definitions: dict[str, SchemaNode] = {}
        for keyword in DEFINITION_KEYWORDS:
            if keyword not in schema:
                continue
            entries = self._expect(schema, keyword, dict, "an object", path)
            for name, def_schema in entries.items():
                if name in definitions:
                    raise MalformedInput(f"Definition '{name}' is declared twice", self._location(path))
                def_path = f"{path}/{keyword}/{escape_pointer_token(name)}"
                definitions[name] = self._parse_schema_node(def_schema, def_path)
        return definitions

    def _parse_schema_node(
        self,
        schema: Any,
        path: str,
        inherited_required: frozenset[str] = frozenset(),
    ) -> SchemaNode:
        """
        Parse a schema node recursively.

        Args:
            schema: The schema dictionary
            path: Pointer fragment of the node (for the index and error messages)
            inherited_required: "required" of an enclosing composite, applied to object members

        Returns:
            Appropriate SchemaNode subclass
        """
        if isinstance(schema, bool):
            raise UnsupportedSchemaConstruct("Boolean schemas are not part of draft-04", self._location(path))
        if not isinstance(schema, dict):
            raise MalformedInput(f"Expected a schema object, got {type(schema).__name__}", self._location(path))

        unsupported = sorted(UNSUPPORTED_KEYWORDS.intersection(schema))
        if unsupported:
            raise UnsupportedSchemaConstruct(f"Unsupported keyword(s): {', '.join(unsupported)}", self._location(path))

        title = self._expect(schema, "title", str, "a string", path)
        description = self._expect(schema, "description", str, "a string", path)

        # Nested definitions are only reachable through pointers
        if path != "#":
            self._parse_definitions(schema, path)

        if "$ref" in schema:
            pointer = self._expect(schema, "$ref", str, "a string", path)
            node = RefSchema(source_path=path, title=title, description=description, pointer=pointer)
        elif any(kind in schema for kind in COMPOSITE_KINDS):
            node = self._parse_composite_node(schema, path, title, description, inherited_required)
        elif "enum" in schema:
            node = self._parse_enum_node(schema, path, title, description)
        elif "type" in schema:
            node = self._parse_type_node(schema, path, title, description, inherited_required)
        elif any(k in schema for k in ("properties", "patternProperties", "additionalProperties")):
            node = self._parse_object_node(schema, path, title, description, inherited_required)
        elif "items" in schema:
            node = self._parse_array_node(schema, path, title, description)
        else:
            node = AnySchema(source_path=path, title=title, description=description)

        self._nodes[path] = node
        return node

    def _parse_composite_node(
        self,
        schema: dict[str, Any],
        path: str,
        title: str | None,
        description: str | None,
        inherited_required: frozenset[str],
    ) -> CompositeSchema:
        """Parse an anyOf / oneOf / allOf node."""
        kinds = [kind for kind in COMPOSITE_KINDS if kind in schema]
        if len(kinds) > 1:
            raise UnsupportedSchemaConstruct(f"Combining {' and '.join(kinds)} in one schema is not supported", self._location(path))
        siblings = [k for k in STRUCTURAL_KEYWORDS if k in schema]
        if siblings:
            raise UnsupportedSchemaConstruct(
                f"'{kinds[0]}' next to {', '.join(siblings)} is not supported; move them into an allOf member",
                self._location(path),
            )

        kind = kinds[0]
        members_schema = self._expect(schema, kind, list, "an array", path)
        if not members_schema:
            raise MalformedInput(f"'{kind}' must not be empty", self._location(path))

        # Mirrors how "required" next to a composite constrains each object branch
        required = inherited_required | frozenset(self._parse_required(schema, path))
        members = tuple(self._parse_schema_node(member, f"{path}/{kind}/{i}", required) for i, member in enumerate(members_schema))

        return CompositeSchema(source_path=path, title=title, description=description, kind=kind, members=members)

    def _parse_enum_node(self, schema: dict[str, Any], path: str, title: str | None, description: str | None) -> EnumSchema:
        """Parse an enum node."""
        values = self._expect(schema, "enum", list, "an array", path)
        if not values:
            raise MalformedInput("'enum' must not be empty", self._location(path))

        # The literals carry their own types, a declared "type" is only checked
        declared = schema.get("type")
        if isinstance(declared, str) and declared not in TYPE_NAMES:
            raise MalformedInput(f"Unknown type '{declared}'", self._location(path))

        return EnumSchema(source_path=path, title=title, description=description, values=tuple(values))

    def _parse_type_node(
        self,
        schema: dict[str, Any],
        path: str,
        title: str | None,
        description: str | None,
        inherited_required: frozenset[str],
    ) -> SchemaNode:
        """Parse a type-based node."""
        type_value = schema["type"]

        # Handle array of types (union)
        if isinstance(type_value, list):
            if not type_value or not all(isinstance(t, str) for t in type_value):
                raise MalformedInput("'type' must be a string or a non-empty array of strings", self._location(path))
            if len(type_value) == 1:
                type_value = type_value[0]
            else:
                return self._parse_type_union(schema, type_value, path, description, inherited_required)

        if not isinstance(type_value, str):
            raise MalformedInput("'type' must be a string or a non-empty array of strings", self._location(path))
        if type_value not in TYPE_NAMES:
            raise MalformedInput(f"Unknown type '{type_value}'", self._location(path))

        if type_value == "array":
            return self._parse_array_node(schema, path, title, description)

        if type_value == "object":
            return self._parse_object_node(schema, path, title, description, inherited_required)

        return self._parse_primitive_node(schema, type_value, path, title, description)

    def _parse_type_union(
        self,
        schema: dict[str, Any],
        types: list[str],
        path: str,
        description: str | None,
        inherited_required: frozenset[str],
    ) -> CompositeSchema:
        """Parse a union of types (e.g., ["string", "null"]) into an anyOf."""
        members = []
        for i, type_name in enumerate(types):
            member_schema = {**schema, "type": type_name}
            members.append(self._parse_schema_node(member_schema, f"{path}/type/{i}", inherited_required))

        # The title names the members (typically the object branch), not the union
        return CompositeSchema(source_path=path, description=description, kind="anyOf", members=tuple(members))

    def _parse_array_node(self, schema: dict[str, Any], path: str, title: str | None, description: str | None) -> ArraySchema:
        """Parse an array type node."""
        items_schema = schema.get("items")
        if isinstance(items_schema, list):
            raise UnsupportedSchemaConstruct("Tuple validation ('items' as an array) is not supported", self._location(path))

        if items_schema is None:
            items: SchemaNode = AnySchema(source_path=f"{path}/items")
        else:
            items = self._parse_schema_node(items_schema, f"{path}/items")

        return ArraySchema(source_path=path, title=title, description=description, items=items)

    def _parse_object_node(
        self,
        schema: dict[str, Any],
        path: str,
        title: str | None,
        description: str | None,
        inherited_required: frozenset[str],
    ) -> SchemaNode:
        """Parse an object type node, or a map when it declares no properties."""
        properties_schema = self._expect(schema, "properties", dict, "an object", path) or {}
        patterns = self._expect(schema, "patternProperties", dict, "an object", path) or {}
        additional = schema.get("additionalProperties")
        if additional is not None and not isinstance(additional, (bool, dict)):
            raise MalformedInput("'additionalProperties' must be a boolean or a schema", self._location(path))

        if properties_schema:
            if patterns:
                raise UnsupportedSchemaConstruct("'patternProperties' next to 'properties' is not supported", self._location(path))
            if isinstance(additional, dict):
                raise UnsupportedSchemaConstruct("An 'additionalProperties' schema next to 'properties' is not supported", self._location(path))

            required = frozenset(self._parse_required(schema, path)) | inherited_required
            properties = []
            for prop_name, prop_schema in properties_schema.items():
                prop_path = f"{path}/properties/{escape_pointer_token(prop_name)}"
                properties.append(
                    PropertyDef(
                        source_path=prop_path,
                        name=prop_name,
                        type_node=self._parse_schema_node(prop_schema, prop_path),
                        is_required=prop_name in required,
                    )
                )

            return ObjectSchema(
                source_path=path,
                title=title,
                description=description,
                properties=tuple(properties),
                required=required,
                additional_properties=additional,
            )

        if patterns:
            if len(patterns) > 1:
                raise UnsupportedSchemaConstruct("More than one 'patternProperties' pattern is not supported", self._location(path))
            pattern, value_schema = next(iter(patterns.items()))
            values = self._parse_schema_node(value_schema, f"{path}/patternProperties/{escape_pointer_token(pattern)}")
            return MapSchema(source_path=path, title=title, description=description, values=values)

        if isinstance(additional, dict):
            values = self._parse_schema_node(additional, f"{path}/additionalProperties")
            return MapSchema(source_path=path, title=title, description=description, values=values)

        if additional is False:
            # An object that admits no keys at all
            return ObjectSchema(source_path=path, title=title, description=description, additional_properties=False)

        return MapSchema(source_path=path, title=title, description=description, values=AnySchema(source_path=f"{path}/additionalProperties"))

    def _parse_primitive_node(
        self,
        schema: dict[str, Any],
        kind: str,
        path: str,
        title: str | None,
        description: str | None,
    ) -> PrimitiveSchema:
        """Parse a primitive type node."""
        return PrimitiveSchema(
            source_path=path,
            title=title,
            description=description,
            kind=kind,
            format=self._expect(schema, "format", str, "a string", path),
        )

    def _parse_required(self, schema: dict[str, Any], path: str) -> list[str]:
        required = self._expect(schema, "required", list, "an array", path) or []
        if not all(isinstance(name, str) for name in required):
            raise MalformedInput("'required' must only contain strings", self._location(path))
        return required

    def _expect(self, schema: dict[str, Any], keyword: str, expected: type, label: str, path: str) -> Any:
        """Return schema[keyword] (or None when absent), checking its JSON type."""
        value = schema.get(keyword)
        if value is not None and not isinstance(value, expected):
            raise MalformedInput(f"'{keyword}' must be {label}", self._location(path))
        return value

    def _location(self, path: str) -> str:
        return f"{self._document_id}{path}"
