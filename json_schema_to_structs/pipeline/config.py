"""
Configuration for the struct generator pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class OutputMode(str, Enum):
    """Output mode for file generation.

    Controls behavior when the output file already exists.
    """

    ERROR_IF_EXISTS = "error"  # Default: raise error if file exists
    FORCE = "force"  # Overwrite


@dataclass
class OutputConfig:
    """Configuration for output file handling.

    Attributes:
        mode: How to handle existing output files
        validate_before_write: Whether to validate code before writing
        atomic_write: Whether to use atomic file writes
    """

    mode: OutputMode = OutputMode.ERROR_IF_EXISTS
    validate_before_write: bool = True
    atomic_write: bool = True


@dataclass
class FormatterConfig:
    """Configuration for post-processing formatters."""

    # Whether formatting is enabled
    enabled: bool = False

    # Line length for the formatter
    line_length: int = 100

    # Python version target (e.g., "py312", "py313")
    target_version: str = "py312"


@dataclass
class CodeGeneratorConfig:
    """Configuration options for code generation."""

    # Name of the root type (empty = root title, then document file stem)
    root_name: str = ""

    # Placeholder base name for types with no title, key or property name
    fallback_type_name: str = "Type"

    # Fail on any allOf with more than one object-shaped member
    strict_all_of: bool = False

    # Generate every definition of the primary document, even unreferenced ones
    include_unreferenced_definitions: bool = True

    # Upper bound for collision suffixes (None = unbounded)
    max_name_suffix: int | None = None

    # Add generation comment at top of file
    add_generation_comment: bool = True

    # Document each declaration with the schema location it was generated from
    add_source_comments: bool = True

    # Use from __future__ import annotations (Python)
    use_future_annotations: bool = True

    # Derives applied to every generated Rust type
    rust_derives: list[str] = field(default_factory=lambda: ["Clone", "PartialEq", "Debug", "Deserialize", "Serialize"])

    # Formatter configuration
    formatter: FormatterConfig = field(default_factory=FormatterConfig)

    # Output configuration
    output: OutputConfig = field(default_factory=OutputConfig)

    @staticmethod
    def from_dict(d: dict) -> CodeGeneratorConfig:
        """Create a config from a dictionary."""
        config = CodeGeneratorConfig()
        for k, v in d.items():
            if k == "formatter" and isinstance(v, dict):
                config.formatter = FormatterConfig(**v)
            elif k == "output" and isinstance(v, dict):
                mode = v.get("mode", OutputMode.ERROR_IF_EXISTS)
                if isinstance(mode, str):
                    mode = OutputMode(mode)
                config.output = OutputConfig(
                    mode=mode,
                    validate_before_write=v.get("validate_before_write", True),
                    atomic_write=v.get("atomic_write", True),
                )
            elif hasattr(config, k):
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "root_name": self.root_name,
            "fallback_type_name": self.fallback_type_name,
            "strict_all_of": self.strict_all_of,
            "include_unreferenced_definitions": self.include_unreferenced_definitions,
            "max_name_suffix": self.max_name_suffix,
            "add_generation_comment": self.add_generation_comment,
            "add_source_comments": self.add_source_comments,
            "use_future_annotations": self.use_future_annotations,
            "rust_derives": list(self.rust_derives),
            "formatter": {
                "enabled": self.formatter.enabled,
                "line_length": self.formatter.line_length,
                "target_version": self.formatter.target_version,
            },
            "output": {
                "mode": self.output.mode.value,
                "validate_before_write": self.output.validate_before_write,
                "atomic_write": self.output.atomic_write,
            },
        }
