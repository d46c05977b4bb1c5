"""
Code generation backends.

Contains the emitter interface and the template-driven language backends.
"""

from __future__ import annotations

from .base import CodeEmitter, TemplateBackend
from .rust_backend import RustBackend

__all__ = [
    "CodeEmitter",
    "TemplateBackend",
    "RustBackend",
]
