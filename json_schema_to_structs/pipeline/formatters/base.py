"""
Base class for code formatters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..config import FormatterConfig


class Formatter(ABC):
    """Post-processing step applied to generated code."""

    # Backend file extension the formatter understands
    FILE_EXTENSION: str = ""

    @abstractmethod
    def format(self, code: str, config: FormatterConfig) -> str:
        """
        Format the given code.

        Args:
            code: The source code to format
            config: Formatter configuration

        Returns:
            Formatted code, or the input unchanged when formatting is not possible
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the formatter can run here."""
