"""
Schema sources and the loading phase.

A SchemaSource fetches raw documents; the SchemaLoader walks every $ref to
load all reachable documents before any resolution starts, so that the later
stages never perform I/O.
"""

from __future__ import annotations

import json
import logging
import posixpath
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

from ..errors import MalformedInput, UnresolvedReference
from .nodes import SchemaDocument
from .parser import SchemaParser

logger = logging.getLogger(__name__)


def join_uri(base: str, reference: str) -> str:
    """Resolve a document reference relative to the id of the referring document.

    Examples:
        ("/schemas/a.json", "b.json") -> "/schemas/b.json"
        ("schemas/a.json", "../common/c.json") -> "common/c.json"
        ("https://example.com/s/a.json", "b.json") -> "https://example.com/s/b.json"
    """
    if "://" in reference:
        return reference
    if "://" in base:
        return urljoin(base, reference)
    if reference.startswith("/"):
        return posixpath.normpath(reference)
    return posixpath.normpath(posixpath.join(posixpath.dirname(base), reference))


class SchemaSource(ABC):
    """Abstract base class for schema document sources."""

    @abstractmethod
    def fetch(self, uri: str) -> str | dict[str, Any]:
        """
        Fetch one schema document.

        Args:
            uri: Document id, already resolved with join_uri

        Returns:
            Raw JSON text, or an already decoded JSON object

        Raises:
            UnresolvedReference: If the document does not exist
            MalformedInput: If the document is not valid UTF-8 text
        """

    def normalize(self, uri: str) -> str:
        """Canonical id of a top-level document."""
        return uri


class FileSchemaSource(SchemaSource):
    """Loads schema documents from the local filesystem."""

    def normalize(self, uri: str) -> str:
        return Path(uri).resolve().as_posix()

    def fetch(self, uri: str) -> str:
        path = Path(uri)
        # "$ref": "definitions" may omit the extension
        if not path.exists() and not path.suffix:
            path = path.with_suffix(".json")
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise UnresolvedReference(f"Schema document not found: {uri}", pointer=uri) from e
        except UnicodeDecodeError as e:
            raise MalformedInput(f"Schema document is not valid UTF-8: {e}", f"{uri}#") from e
        except OSError as e:
            raise UnresolvedReference(f"Could not read schema document {uri}: {e}", pointer=uri) from e


class InMemorySchemaSource(SchemaSource):
    """Serves schema documents from a mapping of document id to JSON value or text."""

    def __init__(self, documents: Mapping[str, str | dict[str, Any]]):
        self.documents = dict(documents)

    def fetch(self, uri: str) -> str | dict[str, Any]:
        if uri not in self.documents:
            raise UnresolvedReference(f"Schema document not found: {uri}", pointer=uri)
        return self.documents[uri]


class SchemaLoader:
    """Loads a set of root documents and every document they reference."""

    def __init__(self, source: SchemaSource):
        self.source = source

    def load(self, *uris: str) -> dict[str, SchemaDocument]:
        """
        Load the given documents, then everything reachable through $ref.

        Args:
            uris: Primary document ids, in generation order

        Returns:
            Documents keyed by id, primary documents first, then referenced
            documents in discovery order
        """
        documents: dict[str, SchemaDocument] = {}
        queue: deque[str] = deque()

        for uri in uris:
            document_id = self.source.normalize(uri)
            if document_id not in documents:
                documents[document_id] = self._load_document(document_id)
                queue.append(document_id)

        while queue:
            document = documents[queue.popleft()]
            for ref in document.refs():
                if not ref.document_part:
                    continue
                target_id = join_uri(document.id, ref.document_part)
                if target_id in documents:
                    continue
                try:
                    documents[target_id] = self._load_document(target_id)
                except UnresolvedReference as e:
                    raise UnresolvedReference(e.message, pointer=ref.pointer, schema_path=f"{document.id}{ref.source_path}") from e
                queue.append(target_id)

        return documents

    def _load_document(self, document_id: str) -> SchemaDocument:
        raw = self.source.fetch(document_id)
        logger.debug("Loaded schema document %s", document_id)
        parser = SchemaParser()
        if isinstance(raw, str):
            return parser.parse_text(raw, document_id)
        # Round-trip through JSON so in-memory documents get the same checks as files
        return parser.parse(json.loads(json.dumps(raw)), document_id)
