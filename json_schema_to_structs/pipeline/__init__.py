"""
Pipeline - JSON Schema to typed structs generator.

1. Phase 1 (Loader / Parser): load every reachable document into a SchemaDocument
2. Phase 2 (Analyzer): resolve references and build the deduplicated TypeGraph
3. Phase 3 (Naming): allocate one unique identifier per declared type
4. Phase 4 (Backend): render declarations (Python AST or Rust templates)
5. Phase 5 (Formatter): optional post-processing (ruff for Python)
6. Phase 6 (Output): optional atomic write
"""

from __future__ import annotations

from .config import CodeGeneratorConfig, FormatterConfig, OutputConfig, OutputMode
from .errors import (
    MalformedInput,
    NameAllocationExhausted,
    OutputWriteError,
    SchemaGenerationError,
    UnresolvedReference,
    UnsupportedSchemaConstruct,
)
from .generator import LANGUAGES, PipelineGenerator, create_backend, generate
from .output import AtomicWriter

__all__ = [
    "PipelineGenerator",
    "generate",
    "create_backend",
    "LANGUAGES",
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
