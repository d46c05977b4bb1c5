"""JSON Schema to Structs Generator

Generates typed, serialization-annotated data structures from JSON Schema
(draft-04) documents, following $ref across files. Supports Python
dataclasses and Rust serde structs.
"""

__version__ = "1.0.0"

from .pipeline import (
    AtomicWriter,
    CodeGeneratorConfig,
    FormatterConfig,
    MalformedInput,
    NameAllocationExhausted,
    OutputConfig,
    OutputMode,
    OutputWriteError,
    PipelineGenerator,
    SchemaGenerationError,
    UnresolvedReference,
    UnsupportedSchemaConstruct,
    generate,
)

__all__ = [
    "generate",
    "PipelineGenerator",
    "CodeGeneratorConfig",
    "FormatterConfig",
    "OutputConfig",
    "OutputMode",
    "AtomicWriter",
    "SchemaGenerationError",
    "MalformedInput",
    "UnresolvedReference",
    "UnsupportedSchemaConstruct",
    "NameAllocationExhausted",
    "OutputWriteError",
]
