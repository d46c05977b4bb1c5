"""
Schema AST (Abstract Syntax Tree) module.

Contains the AST node definitions, the parser and the document loading phase.
"""

from __future__ import annotations

from .nodes import (
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
)
from .parser import SchemaParser
from .source import FileSchemaSource, InMemorySchemaSource, SchemaLoader, SchemaSource, join_uri

__all__ = [
    "SchemaNode",
    "AnySchema",
    "ObjectSchema",
    "PropertyDef",
    "ArraySchema",
    "MapSchema",
    "RefSchema",
    "PrimitiveSchema",
    "EnumSchema",
    "CompositeSchema",
    "SchemaDocument",
    "SchemaParser",
    "SchemaSource",
    "FileSchemaSource",
    "InMemorySchemaSource",
    "SchemaLoader",
    "join_uri",
]
