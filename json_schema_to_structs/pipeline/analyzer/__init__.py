"""
Analyzer module.

Resolves references, builds the type graph, allocates names and exposes the
declaration view consumed by the backends.
"""

from __future__ import annotations

from .declarations import Declaration, DeclarationSet, build_declarations
from .graph_builder import TypeGraphBuilder
from .name_allocator import NameAllocator, NameTable
from .reference_resolver import RecursiveRef, ReferenceResolver, ResolvedSchema
from .type_graph import (
    AliasType,
    CollectionType,
    EnumType,
    EnumVariant,
    Field,
    MapType,
    NameHint,
    Obligation,
    PrimitiveType,
    StructType,
    TypeGraph,
    TypeNode,
    TypeNodeRef,
    UnionType,
)

__all__ = [
    "ReferenceResolver",
    "ResolvedSchema",
    "RecursiveRef",
    "TypeGraphBuilder",
    "TypeGraph",
    "TypeNode",
    "TypeNodeRef",
    "PrimitiveType",
    "StructType",
    "Field",
    "EnumType",
    "EnumVariant",
    "CollectionType",
    "MapType",
    "UnionType",
    "AliasType",
    "NameHint",
    "Obligation",
    "NameAllocator",
    "NameTable",
    "Declaration",
    "DeclarationSet",
    "build_declarations",
]
