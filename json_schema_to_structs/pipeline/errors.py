"""
Errors raised by the generation pipeline.

Every stage raises a subclass of SchemaGenerationError and lets it propagate:
generation either produces complete output or fails without any.
"""

from __future__ import annotations


class SchemaGenerationError(Exception):
    """Base class for all generation failures.

    Attributes:
        schema_path: Location in the schema set that triggered the error
            (``document#/json/pointer``), empty when not applicable
    """

    def __init__(self, message: str, schema_path: str = ""):
        self.message = message
        self.schema_path = schema_path
        super().__init__(f"{message} (at {schema_path})" if schema_path else message)


class MalformedInput(SchemaGenerationError):
    """Raised when schema text is not JSON or violates the schema document shape.

    This can happen when:
    - The document cannot be decoded as JSON
    - A schema is not a JSON object
    - A keyword has the wrong JSON type (e.g. ``properties`` is a list)
    """


class UnresolvedReference(SchemaGenerationError):
    """Raised when a $ref names a document or fragment that was not loaded."""

    def __init__(self, message: str, pointer: str = "", schema_path: str = ""):
        self.pointer = pointer
        super().__init__(message, schema_path)


class UnsupportedSchemaConstruct(SchemaGenerationError):
    """Raised for keywords or combinations outside the supported draft-04 subset."""


class NameAllocationExhausted(SchemaGenerationError):
    """Raised when no free identifier is found within the configured suffix bound."""


class OutputWriteError(SchemaGenerationError):
    """Raised when generated output cannot be validated or written."""
