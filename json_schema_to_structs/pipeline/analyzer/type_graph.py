"""
Type graph definitions.

The TypeGraph is an arena of resolved, de-referenced type nodes addressed by
integer id. Edges are TypeNodeRef values (id plus an "indirect" flag for the
edges that close a cycle), so recursive schemas never need cyclic objects.
Each distinct structural signature is stored once.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TypeNodeRef:
    """Edge to a node of the graph."""

    id: int
    indirect: bool = False  # Closes a cycle: render boxed / by reference


@dataclass(frozen=True)
class TypeNode:
    """Base class for all type nodes."""

    def children(self) -> tuple[TypeNodeRef, ...]:
        return ()

    def signature(self) -> tuple:
        """Canonical structural key, built from child ids (children are deduplicated first)."""
        raise NotImplementedError


@dataclass(frozen=True)
class PrimitiveType(TypeNode):
    """A scalar: string, integer, number, boolean, null, or "any" for unconstrained values."""

    kind: str = "any"
    format: str | None = None

    def signature(self) -> tuple:
        return ("primitive", self.kind, self.format)


@dataclass(frozen=True)
class Field:
    """A struct field, keyed by its JSON property name."""

    name: str
    type_ref: TypeNodeRef
    optional: bool = True
    description: str | None = None


@dataclass(frozen=True)
class StructType(TypeNode):
    """An object with known properties."""

    fields: tuple[Field, ...] = ()
    closed: bool = False  # additionalProperties: false

    def children(self) -> tuple[TypeNodeRef, ...]:
        return tuple(f.type_ref for f in self.fields)

    def signature(self) -> tuple:
        return (
            "struct",
            self.closed,
            tuple((f.name, f.type_ref.id, f.type_ref.indirect, f.optional) for f in self.fields),
        )


@dataclass(frozen=True)
class EnumVariant:
    identifier: str
    value: Any


@dataclass(frozen=True)
class EnumType(TypeNode):
    """A closed set of literals, in declaration order."""

    variants: tuple[EnumVariant, ...] = ()

    @property
    def values(self) -> tuple[Any, ...]:
        return tuple(v.value for v in self.variants)

    def signature(self) -> tuple:
        return ("enum", tuple(json.dumps(v, sort_keys=True) for v in self.values))


@dataclass(frozen=True)
class CollectionType(TypeNode):
    """An array of elements."""

    element: TypeNodeRef = field(default_factory=lambda: TypeNodeRef(0))

    def children(self) -> tuple[TypeNodeRef, ...]:
        return (self.element,)

    def signature(self) -> tuple:
        return ("collection", self.element.id, self.element.indirect)


@dataclass(frozen=True)
class MapType(TypeNode):
    """An object used as a string-keyed map."""

    value: TypeNodeRef = field(default_factory=lambda: TypeNodeRef(0))

    def children(self) -> tuple[TypeNodeRef, ...]:
        return (self.value,)

    def signature(self) -> tuple:
        return ("map", self.value.id, self.value.indirect)


@dataclass(frozen=True)
class UnionType(TypeNode):
    """One of several member types (anyOf / oneOf), members in declaration order."""

    kind: str = "anyOf"
    members: tuple[TypeNodeRef, ...] = ()

    def children(self) -> tuple[TypeNodeRef, ...]:
        return self.members

    def signature(self) -> tuple:
        return ("union", self.kind, tuple((m.id, m.indirect) for m in self.members))


@dataclass(frozen=True)
class AliasType(TypeNode):
    """A named stand-in for another node (recursive targets that are not structs)."""

    target: TypeNodeRef = field(default_factory=lambda: TypeNodeRef(0))

    def children(self) -> tuple[TypeNodeRef, ...]:
        return (self.target,)

    def signature(self) -> tuple:
        return ("alias", self.target.id, self.target.indirect)


@dataclass(frozen=True)
class NameHint:
    """A candidate base name for a node.

    Lower priority wins: -1 configured root name, 0 title, 1 definition key,
    2 document stem, 3 property name. Among equal priorities the earliest
    discovery order wins.
    """

    priority: int
    text: str
    order: int


@dataclass(frozen=True)
class Obligation:
    """allOf members that were built but not merged into the chosen struct."""

    source_path: str
    chosen: TypeNodeRef
    unmet: tuple[TypeNodeRef, ...]


class TypeGraph:
    """Arena of TypeNodes; mutated only while building, then frozen."""

    def __init__(self):
        self._nodes: list[TypeNode | None] = []
        self._signatures: dict[tuple, int] = {}
        self._frozen = False

        # Per-node metadata, indexed by id
        self.order: list[int] = []
        self.locations: list[str] = []
        self.descriptions: list[str | None] = []
        self.hints: list[list[NameHint]] = []

        self.nameable: set[int] = set()
        self.obligations: list[Obligation] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[int]:
        return iter(range(len(self._nodes)))

    def __getitem__(self, node_id: int) -> TypeNode:
        node = self._nodes[node_id]
        if node is None:
            raise KeyError(f"Type node {node_id} is reserved but not filled yet")
        return node

    def get(self, node_id: int) -> TypeNode | None:
        """The node of an id, or None while the id is only reserved."""
        return self._nodes[node_id]

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add(self, node: TypeNode, order: int, location: str, description: str | None = None) -> int:
        """
        Add a node, or return the id of the node with the same signature.

        Args:
            node: The node to add
            order: Pre-order discovery ticket of the schema that produced it
            location: Schema location ("document#/pointer") it was built from
            description: Schema description, kept from the first occurrence

        Returns:
            The id of the stored node
        """
        self._check_mutable()
        signature = node.signature()
        existing = self._signatures.get(signature)
        if existing is not None:
            self.order[existing] = min(self.order[existing], order)
            if self.descriptions[existing] is None:
                self.descriptions[existing] = description
            return existing

        node_id = self._new_slot(order, location, description)
        self._nodes[node_id] = node
        self._signatures[signature] = node_id
        return node_id

    def reserve(self, order: int, location: str, description: str | None = None) -> int:
        """Reserve an id for a node whose children need to point back at it."""
        self._check_mutable()
        return self._new_slot(order, location, description)

    def fill(self, node_id: int, node: TypeNode) -> None:
        """Store the node of a reserved id. Recursive nodes are deduplicated by location only."""
        self._check_mutable()
        if self._nodes[node_id] is not None:
            raise ValueError(f"Type node {node_id} is already filled")
        self._nodes[node_id] = node
        self._signatures.setdefault(node.signature(), node_id)

    def add_hint(self, node_id: int, hint: NameHint) -> None:
        self._check_mutable()
        self.hints[node_id].append(hint)

    def mark_nameable(self, node_id: int) -> None:
        self._check_mutable()
        self.nameable.add(node_id)

    def add_obligation(self, obligation: Obligation) -> None:
        self._check_mutable()
        self.obligations.append(obligation)

    def freeze(self) -> None:
        """Forbid further mutation; every reserved slot must be filled."""
        missing = [i for i, node in enumerate(self._nodes) if node is None]
        if missing:
            raise ValueError(f"Reserved type nodes were never filled: {missing}")
        self._frozen = True

    def best_hint(self, node_id: int) -> NameHint | None:
        hints = self.hints[node_id]
        if not hints:
            return None
        return min(hints, key=lambda h: (h.priority, h.order))

    def nameable_ids(self) -> list[int]:
        """Nameable nodes in discovery order (ties broken by id)."""
        return sorted(self.nameable, key=lambda i: (self.order[i], i))

    def _new_slot(self, order: int, location: str, description: str | None) -> int:
        self._nodes.append(None)
        self.order.append(order)
        self.locations.append(location)
        self.descriptions.append(description)
        self.hints.append([])
        return len(self._nodes) - 1

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("TypeGraph is frozen")
