"""
Reference resolver for $ref resolution.

Resolves $ref pointers, local or into other loaded documents, to the schema
nodes they designate. Targets currently being expanded are tracked so that a
pointer back into one of them yields a RecursiveRef marker instead of an
endless expansion.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from urllib.parse import unquote

from ..errors import UnresolvedReference
from ..schema_ast.nodes import RefSchema, SchemaDocument, SchemaNode, escape_pointer_token, unescape_pointer_token
from ..schema_ast.source import join_uri

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSchema:
    """A resolved $ref."""

    document: SchemaDocument
    path: str  # Canonical "#/json/pointer" fragment of the target
    node: SchemaNode

    @property
    def location(self) -> str:
        """Globally unique key of the target ("document#/pointer")."""
        return f"{self.document.id}{self.path}"


@dataclass(frozen=True)
class RecursiveRef:
    """A $ref to a target that is already being expanded on the current path."""

    target: ResolvedSchema

    @property
    def location(self) -> str:
        return self.target.location


class ReferenceResolver:
    """Resolves $ref to actual schema nodes."""

    def __init__(self, documents: Mapping[str, SchemaDocument]):
        """
        Initialize the resolver.

        Args:
            documents: Every loaded document, keyed by document id
        """
        self.documents = documents
        self._in_progress: list[str] = []
        self._cache: dict[tuple[str, str], ResolvedSchema] = {}

    def resolve(self, ref: RefSchema, document_id: str) -> ResolvedSchema | RecursiveRef:
        """
        Resolve a $ref node to its target.

        Args:
            ref: The RefSchema to resolve
            document_id: Id of the document containing the ref

        Returns:
            ResolvedSchema, or RecursiveRef when the target is in progress

        Raises:
            UnresolvedReference: If the document or fragment is absent
        """
        target = self.locate(ref, document_id)
        if target.location in self._in_progress:
            logger.debug("Recursive reference %s -> %s", ref.pointer, target.location)
            return RecursiveRef(target)
        return target

    def locate(self, ref: RefSchema, document_id: str) -> ResolvedSchema:
        """Find the target of a ref without looking at the in-progress path."""
        key = (document_id, ref.pointer)
        if key not in self._cache:
            self._cache[key] = self._locate(ref, document_id)
        return self._cache[key]

    @contextmanager
    def entering(self, target: ResolvedSchema) -> Iterator[None]:
        """Mark a target as in progress while its schema is being expanded."""
        self._in_progress.append(target.location)
        try:
            yield
        finally:
            self._in_progress.pop()

    def is_in_progress(self, location: str) -> bool:
        return location in self._in_progress

    def _locate(self, ref: RefSchema, document_id: str) -> ResolvedSchema:
        referrer = f"{document_id}{ref.source_path}"

        target_id = join_uri(document_id, ref.document_part) if ref.document_part else document_id
        document = self.documents.get(target_id)
        if document is None:
            raise UnresolvedReference(f"Document '{target_id}' was not loaded", pointer=ref.pointer, schema_path=referrer)

        path = self._canonical_path(ref, referrer)
        node = document.nodes.get(path)
        if node is None:
            raise UnresolvedReference(f"No schema at '{path}' in '{target_id}'", pointer=ref.pointer, schema_path=referrer)

        return ResolvedSchema(document=document, path=path, node=node)

    def _canonical_path(self, ref: RefSchema, referrer: str) -> str:
        """Normalize the fragment to the escaped form used by the pointer index."""
        fragment = unquote(ref.fragment)
        if not fragment:
            return "#"
        if not fragment.startswith("/"):
            raise UnresolvedReference(f"Only JSON pointer fragments are supported, got '#{fragment}'", pointer=ref.pointer, schema_path=referrer)
        tokens = [unescape_pointer_token(token) for token in fragment[1:].split("/")]
        return "#/" + "/".join(escape_pointer_token(token) for token in tokens)
