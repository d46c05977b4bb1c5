"""
Atomic file writer for generated code.

Ensures that file writes are atomic so an interrupted or rejected
generation never leaves a half-written output file.
"""

from __future__ import annotations

import ast
import logging
import re
import tempfile
from collections.abc import Callable
from pathlib import Path

from ..errors import OutputWriteError

logger = logging.getLogger(__name__)

_RUST_STRING = re.compile(r'"(?:\\.|[^"\\])*"')


class AtomicWriter:
    """Handles atomic file writes with validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file
    """

    def __init__(
        self,
        validate_python: Callable[[str], None] | None = None,
        validate_rust: Callable[[str], None] | None = None,
    ):
        """Initialize the atomic writer.

        Args:
            validate_python: Optional validation function for Python code
            validate_rust: Optional validation function for Rust code
        """
        self._validators = {
            "python": validate_python or self._default_validate_python,
            "rust": validate_rust or self._default_validate_rust,
        }

    def write(self, path: Path, content: str, language: str, validate: bool = True) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write
            language: Language for validation ("python" or "rust")
            validate: Whether to validate before finalizing

        Raises:
            OutputWriteError: If validation or a file operation fails
        """
        if validate:
            self.validate(content, language)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Same directory ensures atomic rename on the same filesystem
            temp_fd, temp_path_str = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", text=True)
        except OSError as e:
            raise OutputWriteError(f"Could not create a temporary file next to {path}: {e}", str(path)) from e

        temp_path = Path(temp_path_str)
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            temp_path.replace(path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise OutputWriteError(f"Could not write {path}: {e}", str(path)) from e

        logger.debug("Wrote %d characters to %s", len(content), path)

    def write_if_not_exists(self, path: Path, content: str, language: str, validate: bool = True) -> None:
        """Write content only if the file doesn't exist.

        Raises:
            OutputWriteError: If the file already exists or cannot be written
        """
        if path.exists():
            raise OutputWriteError(f"Output file already exists: {path}. Use force mode to overwrite.", str(path))
        self.write(path, content, language, validate)

    def validate(self, content: str, language: str) -> None:
        """Run the validator of a language, if there is one."""
        validator = self._validators.get(language)
        if validator is not None:
            validator(content)

    def _default_validate_python(self, content: str) -> None:
        try:
            ast.parse(content)
        except SyntaxError as e:
            raise OutputWriteError(f"Generated Python code is not valid: {e}") from e

    def _default_validate_rust(self, content: str) -> None:
        # Structural checks only: comments and string literals are left out of the counts
        code_lines = [line for line in content.splitlines() if not line.lstrip().startswith("//")]
        code = _RUST_STRING.sub('""', "\n".join(code_lines))
        if "use serde::" not in code:
            raise OutputWriteError("Generated Rust code is missing the serde import")
        for open_char, close_char in ("{}", "()", "<>", "[]"):
            opened, closed = code.count(open_char), code.count(close_char)
            if opened != closed:
                raise OutputWriteError(f"Generated Rust code has unbalanced '{open_char}{close_char}': {opened} open, {closed} close")
