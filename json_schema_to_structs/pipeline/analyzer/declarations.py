"""
Declaration view of a named TypeGraph.

This is what code emitters consume: one Declaration per allocated name, in
discovery order, with enough lookups to render type references.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import PurePosixPath

from .name_allocator import NameTable
from .type_graph import (
    AliasType,
    EnumType,
    EnumVariant,
    Field,
    Obligation,
    StructType,
    TypeGraph,
    TypeNode,
    TypeNodeRef,
    UnionType,
)


@dataclass(frozen=True)
class Declaration:
    """One type to emit.

    Attributes:
        name: Allocated identifier
        kind: "struct", "enum", "union" or "alias"
        node_id: Id of the node in the TypeGraph
        location: Schema location the node was first built from
        description: Schema description, if any
        fields: Struct fields (JSON name, type, optional flag)
        closed: Struct rejects unknown properties
        variants: Enum variants in declaration order
        members: Union members in declaration order
        union_kind: "anyOf" or "oneOf"
        target: Alias target
        obligations: allOf members that were not merged into this struct
    """

    name: str
    kind: str
    node_id: int
    location: str = ""
    description: str | None = None
    fields: tuple[Field, ...] = ()
    closed: bool = False
    variants: tuple[EnumVariant, ...] = ()
    members: tuple[TypeNodeRef, ...] = ()
    union_kind: str = ""
    target: TypeNodeRef | None = None
    obligations: tuple[Obligation, ...] = ()

    @property
    def source(self) -> str:
        """Location relative to the document's directory ("person.json#/definitions/Address")."""
        document, sep, fragment = self.location.partition("#")
        return f"{PurePosixPath(document).name}{sep}{fragment}"


class DeclarationSet:
    """Ordered declarations plus the lookups needed to render references."""

    def __init__(self, declarations: list[Declaration], graph: TypeGraph, names: NameTable):
        self.declarations = tuple(declarations)
        self.graph = graph
        self.names = names

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self.declarations)

    def __len__(self) -> int:
        return len(self.declarations)

    def node(self, ref: TypeNodeRef) -> TypeNode:
        return self.graph[ref.id]

    def name_of(self, ref: TypeNodeRef) -> str | None:
        """Identifier of the referenced node, None when it is rendered inline."""
        return self.names.get(ref.id)

    def by_name(self, name: str) -> Declaration:
        for declaration in self.declarations:
            if declaration.name == name:
                return declaration
        raise KeyError(name)


def build_declarations(graph: TypeGraph, names: NameTable) -> DeclarationSet:
    """
    Build the ordered declaration view.

    Args:
        graph: Frozen TypeGraph
        names: Names allocated for its nameable nodes

    Returns:
        DeclarationSet in discovery order
    """
    obligations: dict[int, list[Obligation]] = {}
    for obligation in graph.obligations:
        obligations.setdefault(obligation.chosen.id, []).append(obligation)

    declarations = []
    for node_id in graph.nameable_ids():
        node = graph[node_id]
        common = {
            "name": names[node_id],
            "node_id": node_id,
            "location": graph.locations[node_id],
            "description": graph.descriptions[node_id],
        }
        if isinstance(node, StructType):
            declaration = Declaration(
                kind="struct",
                fields=node.fields,
                closed=node.closed,
                obligations=tuple(obligations.get(node_id, ())),
                **common,
            )
        elif isinstance(node, EnumType):
            declaration = Declaration(kind="enum", variants=node.variants, **common)
        elif isinstance(node, UnionType):
            declaration = Declaration(kind="union", members=node.members, union_kind=node.kind, **common)
        elif isinstance(node, AliasType):
            declaration = Declaration(kind="alias", target=node.target, **common)
        else:
            raise ValueError(f"Type node {node_id} ({type(node).__name__}) cannot be declared")
        declarations.append(declaration)

    return DeclarationSet(declarations, graph, names)
