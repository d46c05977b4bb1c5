"""
Name allocator for type declarations.

Assigns every nameable node of a frozen TypeGraph a unique identifier.
Nodes are visited in discovery order, so the first node to claim a base name
keeps it and later ones get "Base2", "Base3", ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from ...utils import make_unique, to_type_name
from ..errors import NameAllocationExhausted
from .type_graph import TypeGraph

logger = logging.getLogger(__name__)


class NameTable(Mapping[int, str]):
    """Type node id -> identifier, injective."""

    def __init__(self, names: Mapping[int, str]):
        self._names = dict(names)

    def __getitem__(self, node_id: int) -> str:
        return self._names[node_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"NameTable({self._names!r})"


class NameAllocator:
    """Allocates identifiers for the nameable nodes of a TypeGraph."""

    def __init__(
        self,
        reserved: Iterable[str] = (),
        fallback: str = "Type",
        max_suffix: int | None = None,
    ):
        """
        Initialize the allocator.

        Args:
            reserved: Identifiers the target language does not allow for types
            fallback: Base name for nodes without any usable hint
            max_suffix: Largest collision suffix allowed (None = unbounded)
        """
        self.reserved = frozenset(reserved)
        self.fallback = fallback
        self.max_suffix = max_suffix

    def allocate(self, graph: TypeGraph) -> NameTable:
        """
        Allocate names.

        Args:
            graph: A frozen TypeGraph

        Returns:
            NameTable covering exactly the nameable nodes

        Raises:
            NameAllocationExhausted: If a collision suffix exceeds max_suffix
        """
        if not graph.frozen:
            raise ValueError("Names can only be allocated on a frozen TypeGraph")

        taken = set(self.reserved)
        names: dict[int, str] = {}
        for node_id in graph.nameable_ids():
            base = self._base_name(graph, node_id)
            name = make_unique(base, taken, start=2)
            if name != base:
                self._check_suffix(base, name, graph.locations[node_id])
                logger.debug("Name collision on %s, using %s for %s", base, name, graph.locations[node_id])
            taken.add(name)
            names[node_id] = name
        return NameTable(names)

    def _base_name(self, graph: TypeGraph, node_id: int) -> str:
        hint = graph.best_hint(node_id)
        base = to_type_name(hint.text) if hint else ""
        if not base:
            base = to_type_name(self.fallback) or "Type"
        return base

    def _check_suffix(self, base: str, name: str, location: str) -> None:
        if self.max_suffix is None:
            return
        suffix = int(name[len(base) :])
        if suffix > self.max_suffix:
            raise NameAllocationExhausted(f"No free name for '{base}' up to suffix {self.max_suffix}", location)
