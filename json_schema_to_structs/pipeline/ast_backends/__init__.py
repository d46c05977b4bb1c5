"""
AST-based code generation backends.
"""

from __future__ import annotations

from .base import AstBackend
from .python_ast_backend import PythonAstBackend

__all__ = [
    "AstBackend",
    "PythonAstBackend",
]
