"""
AST (Abstract Syntax Tree) node definitions for JSON Schema.

These nodes represent the parsed structure of one schema document before
any reference resolution or language-specific processing. They are frozen:
a parsed document is never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Any

PRIMITIVE_KINDS = ("string", "integer", "number", "boolean", "null")

COMPOSITE_KINDS = ("anyOf", "oneOf", "allOf")


@dataclass(frozen=True)
class SchemaNode:
    """Base class for all AST nodes."""

    # Location of the node inside its document, as a "#/json/pointer" fragment
    source_path: str = ""

    title: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class AnySchema(SchemaNode):
    """A schema that does not constrain the type (no "type" keyword)."""


@dataclass(frozen=True)
class PrimitiveSchema(SchemaNode):
    """Represents a primitive type (string, integer, number, boolean, null)."""

    kind: str = "string"
    format: str | None = None


@dataclass(frozen=True)
class EnumSchema(SchemaNode):
    """Represents an enum, values kept in declaration order."""

    values: tuple[Any, ...] = ()


@dataclass(frozen=True)
class RefSchema(SchemaNode):
    """Represents a $ref (unresolved reference)."""

    pointer: str = ""  # e.g. "#/definitions/Foo" or "other.json#/definitions/Bar"

    @property
    def document_part(self) -> str:
        """The part before "#", empty for local references."""
        return self.pointer.partition("#")[0]

    @property
    def fragment(self) -> str:
        """The part after "#", empty when the whole document is referenced."""
        return self.pointer.partition("#")[2]


@dataclass(frozen=True)
class ArraySchema(SchemaNode):
    """Represents an array type."""

    items: SchemaNode = field(default_factory=AnySchema)


@dataclass(frozen=True)
class MapSchema(SchemaNode):
    """Represents an object used as a string-keyed map."""

    values: SchemaNode = field(default_factory=AnySchema)


@dataclass(frozen=True)
class PropertyDef(SchemaNode):
    """Represents a property in an object."""

    name: str = ""
    type_node: SchemaNode = field(default_factory=AnySchema)
    is_required: bool = False


@dataclass(frozen=True)
class ObjectSchema(SchemaNode):
    """Represents an object type with properties."""

    properties: tuple[PropertyDef, ...] = ()
    required: frozenset[str] = frozenset()

    # True / False as declared, None when absent
    additional_properties: bool | None = None

    @property
    def is_closed(self) -> bool:
        return self.additional_properties is False


@dataclass(frozen=True)
class CompositeSchema(SchemaNode):
    """Represents anyOf / oneOf / allOf."""

    kind: str = "anyOf"
    members: tuple[SchemaNode, ...] = ()


@dataclass(frozen=True)
class SchemaDocument:
    """One parsed schema document.

    Attributes:
        id: Document identity (absolute path, URI or synthetic name)
        root: The top-level schema
        definitions: Entries of "definitions" / "$defs" in declaration order
        nodes: Every parsed node indexed by its "#/json/pointer" fragment
    """

    id: str
    root: SchemaNode
    definitions: Mapping[str, SchemaNode] = field(default_factory=lambda: MappingProxyType({}))
    nodes: Mapping[str, SchemaNode] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def name(self) -> str:
        """File stem of the document id ("schemas/person.json" -> "person")."""
        stem = PurePosixPath(self.id.partition("#")[0]).name
        return stem.split(".", 1)[0] if stem else self.id

    def definition_path(self, name: str) -> str:
        """Pointer fragment of a definition, whichever keyword declared it."""
        for keyword in ("definitions", "$defs"):
            path = f"#/{keyword}/{escape_pointer_token(name)}"
            if path in self.nodes:
                return path
        raise KeyError(name)

    def refs(self) -> list[RefSchema]:
        """All $ref nodes of the document, in pointer-index order."""
        return [node for node in self.nodes.values() if isinstance(node, RefSchema)]


def escape_pointer_token(token: str) -> str:
    """Escape one JSON pointer reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


def unescape_pointer_token(token: str) -> str:
    """Unescape one JSON pointer reference token (RFC 6901)."""
    return token.replace("~1", "/").replace("~0", "~")
