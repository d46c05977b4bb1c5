"""
Ruff formatter for generated Python code.
"""

from __future__ import annotations

import logging
import subprocess

from ..config import FormatterConfig
from .base import Formatter

logger = logging.getLogger(__name__)


class RuffFormatter(Formatter):
    """Formats Python code by piping it through ``ruff format``."""

    FILE_EXTENSION = "py"

    def __init__(self, executable: str = "ruff"):
        self.executable = executable
        self._available: bool | None = None

    def is_available(self) -> bool:
        """Check if ruff is installed."""
        if self._available is None:
            try:
                result = subprocess.run(
                    [self.executable, "--version"],
                    capture_output=True,
                    text=True,
                    timeout=5,
                )
                self._available = result.returncode == 0
            except (subprocess.SubprocessError, FileNotFoundError):
                self._available = False
        return self._available

    def build_command(self, config: FormatterConfig) -> list[str]:
        cmd = [self.executable, "format", "--stdin-filename", "generated.py"]
        if config.line_length:
            cmd.extend(["--line-length", str(config.line_length)])
        if config.target_version:
            cmd.extend(["--target-version", config.target_version])
        return cmd

    def format(self, code: str, config: FormatterConfig) -> str:
        """
        Format Python code using ruff.

        Args:
            code: Python source code to format
            config: Formatter configuration

        Returns:
            Formatted code, or the unchanged code if ruff is missing or fails
        """
        if not self.is_available():
            logger.warning("ruff is not installed, leaving generated code unformatted")
            return code

        try:
            result = subprocess.run(
                self.build_command(config),
                input=code,
                capture_output=True,
                text=True,
                timeout=30,
            )
        except subprocess.SubprocessError as e:
            logger.warning("ruff format failed: %s", e)
            return code

        if result.returncode != 0:
            logger.warning("ruff format exited with %d: %s", result.returncode, result.stderr.strip())
            return code
        return result.stdout
