"""
Pipeline generator: wires the phases together.

1. Load: fetch the root documents and everything they reference
2. Parse: one immutable SchemaDocument per document
3. Build: resolve references into a deduplicated TypeGraph
4. Name: allocate one unique identifier per nameable type
5. Emit: render the declaration view with a language backend
6. Format / write: optional post-processing and atomic output
"""

from __future__ import annotations

import logging
from pathlib import Path

from .analyzer import DeclarationSet, NameAllocator, TypeGraphBuilder, build_declarations
from .ast_backends import PythonAstBackend
from .backends import CodeEmitter, RustBackend
from .config import CodeGeneratorConfig, OutputMode
from .errors import OutputWriteError
from .formatters import Formatter, RuffFormatter
from .output import AtomicWriter
from .schema_ast import FileSchemaSource, SchemaLoader, SchemaSource

logger = logging.getLogger(__name__)

BACKENDS: dict[str, type[CodeEmitter]] = {
    "python": PythonAstBackend,
    "rust": RustBackend,
}

LANGUAGES = tuple(BACKENDS)


def create_backend(language: str, config: CodeGeneratorConfig, command_line: str = "") -> CodeEmitter:
    """Instantiate the backend for a language ("python" or "rust")."""
    try:
        backend_class = BACKENDS[language]
    except KeyError:
        raise ValueError(f"Unsupported language '{language}', expected one of {', '.join(LANGUAGES)}") from None
    return backend_class(config, command_line)


class PipelineGenerator:
    """Generates typed structs from JSON Schema documents."""

    def __init__(
        self,
        config: CodeGeneratorConfig | None = None,
        language: str = "python",
        source: SchemaSource | None = None,
        command_line: str = "",
    ):
        """
        Initialize the generator.

        Args:
            config: Code generation configuration
            language: Target language ("python" or "rust")
            source: Where documents are fetched from (default: the filesystem)
            command_line: Command echoed in the generated header
        """
        self.config = config or CodeGeneratorConfig()
        self.language = language
        self.source = source or FileSchemaSource()
        self.backend = create_backend(language, self.config, command_line)

        self.formatter: Formatter | None = None
        if self.config.formatter.enabled and RuffFormatter.FILE_EXTENSION == self.backend.FILE_EXTENSION:
            self.formatter = RuffFormatter()

    def build(self, *uris: str) -> DeclarationSet:
        """
        Run every phase up to the declaration view.

        Args:
            uris: Primary schema documents; all their definitions are generated

        Returns:
            The ordered declarations
        """
        if not uris:
            raise ValueError("At least one schema document is required")

        documents = SchemaLoader(self.source).load(*uris)
        primary = [self.source.normalize(uri) for uri in uris]
        logger.debug("Loaded %d document(s) for %s", len(documents), ", ".join(primary))

        graph = TypeGraphBuilder(documents, self.config, primary).build()
        allocator = NameAllocator(
            reserved=self.backend.RESERVED_TYPE_NAMES,
            fallback=self.config.fallback_type_name,
            max_suffix=self.config.max_name_suffix,
        )
        names = allocator.allocate(graph)
        return build_declarations(graph, names)

    def generate(self, *uris: str) -> str:
        """
        Generate code for the given schema documents.

        Returns:
            Generated source text

        Raises:
            SchemaGenerationError: On any failure; nothing is produced in that case
        """
        declarations = self.build(*uris)
        code = self.backend.generate(declarations)
        logger.info("Generated %d declaration(s) in %s", len(declarations), self.language)

        if self.formatter is not None:
            code = self.formatter.format(code, self.config.formatter)
        return code

    def write(self, code: str, output_path: str | Path) -> None:
        """
        Write generated code according to the output configuration.

        Raises:
            OutputWriteError: If the target exists (without force), the code is invalid or writing fails
        """
        path = Path(output_path)
        output = self.config.output
        writer = AtomicWriter()

        if output.atomic_write:
            if output.mode == OutputMode.FORCE:
                writer.write(path, code, self.language, validate=output.validate_before_write)
            else:
                writer.write_if_not_exists(path, code, self.language, validate=output.validate_before_write)
            return

        if output.mode != OutputMode.FORCE and path.exists():
            raise OutputWriteError(f"Output file already exists: {path}. Use force mode to overwrite.", str(path))

        if output.validate_before_write:
            writer.validate(code, self.language)
        try:
            path.write_text(code, encoding="utf-8")
        except OSError as e:
            raise OutputWriteError(f"Could not write {path}: {e}", str(path)) from e


def generate(root_schema_path: str | Path, config: CodeGeneratorConfig | None = None, language: str = "python") -> str:
    """
    Generate type definitions for a schema file.

    Args:
        root_schema_path: Path of the root schema document
        config: Code generation configuration
        language: Target language ("python" or "rust")

    Returns:
        Generated source text
    """
    return PipelineGenerator(config, language).generate(str(root_schema_path))
