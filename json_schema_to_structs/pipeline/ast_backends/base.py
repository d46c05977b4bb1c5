"""
Base class for AST-based code generation backends.

These backends build a language-native syntax tree and unparse it instead of
going through text templates.
"""

from __future__ import annotations

import ast
import collections

from ..backends.base import CodeEmitter
from ..config import CodeGeneratorConfig

STDLIB_MODULES = {"abc", "collections", "dataclasses", "enum", "typing", "re"}


class AstBackend(CodeEmitter):
    """Abstract base class for backends built on the ast module."""

    def __init__(self, config: CodeGeneratorConfig | None = None, command_line: str = ""):
        super().__init__(config, command_line)
        self.python_imports: set[tuple[str, str]] = set()

    def _generate_imports(self) -> list[ast.stmt]:
        """Generate import statements as AST nodes, grouped as future / stdlib / third party.

        A bare ``pass`` separates the groups; it is turned into a blank line
        when the code is post-processed.
        """
        import_groups: dict[str, set[str]] = collections.defaultdict(set)
        for module, name in self.python_imports:
            import_groups[module].add(name)

        stdlib_modules = sorted(m for m in import_groups if m in STDLIB_MODULES)
        third_party_modules = sorted(m for m in import_groups if m not in STDLIB_MODULES and m != "__future__")

        groups = []
        if "__future__" in import_groups:
            groups.append(["__future__"])
        groups.extend(group for group in (stdlib_modules, third_party_modules) if group)

        nodes: list[ast.stmt] = []
        for i, modules in enumerate(groups):
            if i:
                nodes.append(ast.Pass())
            for module in modules:
                nodes.append(
                    ast.ImportFrom(
                        module=module,
                        names=[ast.alias(name=n, asname=None) for n in sorted(import_groups[module])],
                        level=0,
                    )
                )
        return nodes

    def _parse_expr(self, expr_str: str) -> ast.expr:
        """Parse an expression string into an AST expression."""
        return ast.parse(expr_str, mode="eval").body
