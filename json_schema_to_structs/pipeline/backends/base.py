"""
Base classes for code emitters.

CodeEmitter is the interface every language backend implements: it renders a
DeclarationSet to source text. TemplateBackend adds the Jinja2 environment
used by the template-driven backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

import jinja2

from ...utils import make_unique, to_field_name
from ..analyzer.declarations import Declaration, DeclarationSet
from ..analyzer.type_graph import Field, TypeNodeRef
from ..config import CodeGeneratorConfig

GENERATION_COMMENT = "Generated by json_schema_to_structs, do not edit"


class CodeEmitter(ABC):
    """Abstract base class for code generation backends."""

    # Type mapping from schema primitive kinds to language types
    TYPE_MAP: dict[str, str] = {}

    # File extension
    FILE_EXTENSION: str = ""

    # Identifiers generated types may not use
    RESERVED_TYPE_NAMES: frozenset[str] = frozenset()

    # Identifiers generated fields may not use
    RESERVED_FIELD_NAMES: frozenset[str] = frozenset()

    def __init__(self, config: CodeGeneratorConfig | None = None, command_line: str = ""):
        """
        Initialize the backend.

        Args:
            config: Code generation configuration
            command_line: Command that produced the output, echoed in the header
        """
        self.config = config or CodeGeneratorConfig()
        self.command_line = command_line

    @abstractmethod
    def generate(self, declarations: DeclarationSet) -> str:
        """
        Generate code for every declaration.

        Args:
            declarations: The ordered declaration view

        Returns:
            Generated code as a string
        """

    @abstractmethod
    def translate_type(self, ref: TypeNodeRef, declarations: DeclarationSet) -> str:
        """
        Translate a type reference to a language-specific type string.

        Args:
            ref: The type reference
            declarations: Declaration view used to look up names and inline shapes

        Returns:
            Language-specific type string
        """

    def field_names(self, fields: tuple[Field, ...]) -> dict[str, str]:
        """Map the JSON names of a struct's fields to unique field identifiers."""
        names: dict[str, str] = {}
        taken: set[str] = set()
        for f in fields:
            identifier = make_unique(to_field_name(f.name, self.RESERVED_FIELD_NAMES), taken)
            taken.add(identifier)
            names[f.name] = identifier
        return names

    def header_lines(self) -> list[str]:
        """Comment lines at the top of the generated file (without prefix)."""
        if not self.config.add_generation_comment:
            return []
        lines = [GENERATION_COMMENT]
        if self.command_line:
            lines.append(self.command_line)
        return lines

    def doc_lines(self, declaration: Declaration, declarations: DeclarationSet) -> list[str]:
        """Description, source location and unmerged allOf members of a declaration."""
        lines = []
        if declaration.description:
            lines.extend(line.rstrip() for line in declaration.description.strip().splitlines())

        notes = []
        if self.config.add_source_comments and declaration.location:
            notes.append(f"Generated from {declaration.source}")
        for obligation in declaration.obligations:
            unmet = ", ".join(declarations.name_of(ref) or "inline schema" for ref in obligation.unmet)
            notes.append(f"allOf members not merged: {unmet}")

        if lines and notes:
            lines.append("")
        return lines + notes

    def _get_comment_prefix(self) -> str:
        """Get the comment prefix for the language."""
        return "#" if self.FILE_EXTENSION == "py" else "//"


class TemplateBackend(CodeEmitter):
    """Backend rendering declarations through Jinja2 templates."""

    # Template directory name
    TEMPLATE_LANG: str = ""

    def __init__(self, config: CodeGeneratorConfig | None = None, command_line: str = ""):
        super().__init__(config, command_line)
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent.parent / "templates" / self.TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
        )

        self.prefix_template = self.jinja_env.get_template(f"prefix.{self.FILE_EXTENSION}.jinja2")
        self.struct_template = self.jinja_env.get_template(f"struct.{self.FILE_EXTENSION}.jinja2")
        self.enum_template = self.jinja_env.get_template(f"enum.{self.FILE_EXTENSION}.jinja2")
        self.newtype_template = self.jinja_env.get_template(f"newtype.{self.FILE_EXTENSION}.jinja2")
