"""
Python AST-based code generation backend.

Generates dataclasses_json dataclasses from the declaration view using the
built-in ast module.
"""

from __future__ import annotations

import ast

from ..analyzer.declarations import Declaration, DeclarationSet
from ..analyzer.type_graph import (
    CollectionType,
    Field,
    MapType,
    PrimitiveType,
    TypeNodeRef,
    UnionType,
)
from ..config import CodeGeneratorConfig
from .base import AstBackend


class PythonAstBackend(AstBackend):
    """Python code generation backend using AST."""

    FILE_EXTENSION = "py"

    TYPE_MAP = {
        "integer": "int",
        "string": "str",
        "boolean": "bool",
        "number": "float",
        "null": "None",
        "any": "Any",
    }

    # Names the generated module imports or that cannot be rebound
    RESERVED_TYPE_NAMES = frozenset({"Any", "Enum", "Union", "Undefined", "None", "True", "False"})

    # Class attributes shadow the builtins and helpers used in annotations and defaults,
    # and the methods added by dataclass_json
    RESERVED_FIELD_NAMES = frozenset(
        {
            "str",
            "int",
            "float",
            "bool",
            "list",
            "dict",
            "field",
            "config",
            "dataclass",
            "dataclass_json",
            "to_json",
            "from_json",
            "to_dict",
            "from_dict",
            "schema",
            "dataclass_json_config",
        }
    )

    def __init__(self, config: CodeGeneratorConfig | None = None, command_line: str = ""):
        super().__init__(config, command_line)
        # Alias names not bound yet while an alias right-hand side is rendered
        self._forward: set[str] = set()

    def generate(self, declarations: DeclarationSet) -> str:
        """Generate Python code from the declarations using AST."""
        # Reset import tracking
        self.python_imports = set()
        self._forward = set()

        # Always include base imports
        self.python_imports.add(("dataclasses", "dataclass"))
        self.python_imports.add(("dataclasses_json", "dataclass_json"))

        if self.config.use_future_annotations:
            self.python_imports.add(("__future__", "annotations"))

        # Classes first, then aliases: alias values are evaluated at import time
        class_nodes: list[ast.stmt] = []
        aliases: list[Declaration] = []
        for declaration in declarations:
            if declaration.kind == "struct":
                class_nodes.append(self._generate_class(declaration, declarations))
            elif declaration.kind == "enum":
                class_nodes.append(self._generate_enum_class(declaration, declarations))
            else:
                aliases.append(declaration)
        alias_nodes = self._generate_aliases(aliases, declarations)

        body: list[ast.stmt] = self._generate_imports()
        body.extend(class_nodes)
        body.extend(alias_nodes)

        module = ast.Module(body=body, type_ignores=[])
        ast.fix_missing_locations(module)

        code = ast.unparse(module)
        return self._post_process_code(code)

    def _generate_class(self, declaration: Declaration, declarations: DeclarationSet) -> ast.ClassDef:
        """Generate a dataclass for a struct declaration."""
        if declaration.closed:
            self.python_imports.add(("dataclasses_json", "Undefined"))
            dataclass_json_decorator: ast.expr = self._parse_expr("dataclass_json(undefined=Undefined.RAISE)")
        else:
            dataclass_json_decorator = ast.Name(id="dataclass_json", ctx=ast.Load())
        decorators = [
            dataclass_json_decorator,
            ast.Call(
                func=ast.Name(id="dataclass", ctx=ast.Load()),
                args=[],
                keywords=[ast.keyword(arg="kw_only", value=ast.Constant(value=True))],
            ),
        ]

        body: list[ast.stmt] = self._docstring(declaration, declarations)
        identifiers = self.field_names(declaration.fields)
        for f in declaration.fields:
            body.append(self._generate_field(f, identifiers[f.name], declarations))

        # Empty class body
        if not body:
            body.append(ast.Pass())

        return ast.ClassDef(
            name=declaration.name,
            bases=[],
            keywords=[],
            body=body,
            decorator_list=decorators,
        )

    def _generate_enum_class(self, declaration: Declaration, declarations: DeclarationSet) -> ast.ClassDef:
        """Generate an Enum subclass, members in declaration order."""
        self.python_imports.add(("enum", "Enum"))

        values = [variant.value for variant in declaration.variants]
        bases = []
        if all(isinstance(v, str) for v in values):
            bases.append(ast.Name(id="str", ctx=ast.Load()))
        elif all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            bases.append(ast.Name(id="int", ctx=ast.Load()))
        bases.append(ast.Name(id="Enum", ctx=ast.Load()))

        body: list[ast.stmt] = self._docstring(declaration, declarations)
        for variant in declaration.variants:
            body.append(
                ast.Assign(
                    targets=[ast.Name(id=variant.identifier, ctx=ast.Store())],
                    value=ast.Constant(value=variant.value),
                )
            )

        return ast.ClassDef(
            name=declaration.name,
            bases=bases,
            keywords=[],
            body=body,
            decorator_list=[],
        )

    def _generate_field(self, f: Field, identifier: str, declarations: DeclarationSet) -> ast.AnnAssign:
        """Generate a field definition as annotated assignment."""
        type_str = self.translate_type(f.type_ref, declarations)
        if f.optional and not self._admits_none(f.type_ref, declarations):
            type_str = f"{type_str} | None"

        if self.config.use_future_annotations or not self._mentions_declared_type(f.type_ref, declarations):
            annotation = self._parse_expr(type_str)
        else:
            annotation = ast.Constant(value=type_str)

        config_keywords = []
        if identifier != f.name:
            config_keywords.append(ast.keyword(arg="field_name", value=ast.Constant(value=f.name)))
        if f.optional:
            config_keywords.append(ast.keyword(arg="exclude", value=self._parse_expr("lambda x: x is None")))

        field_keywords = []
        if f.optional:
            field_keywords.append(ast.keyword(arg="default", value=ast.Constant(value=None)))
        if config_keywords:
            self.python_imports.add(("dataclasses_json", "config"))
            field_keywords.append(
                ast.keyword(
                    arg="metadata",
                    value=ast.Call(func=ast.Name(id="config", ctx=ast.Load()), args=[], keywords=config_keywords),
                )
            )

        value = None
        if field_keywords:
            self.python_imports.add(("dataclasses", "field"))
            value = ast.Call(func=ast.Name(id="field", ctx=ast.Load()), args=[], keywords=field_keywords)

        return ast.AnnAssign(
            target=ast.Name(id=identifier, ctx=ast.Store()),
            annotation=annotation,
            value=value,
            simple=1,
        )

    def _generate_aliases(self, aliases: list[Declaration], declarations: DeclarationSet) -> list[ast.stmt]:
        """Generate module-level aliases for unions and alias declarations."""
        nodes: list[ast.stmt] = []
        self._forward = {declaration.name for declaration in aliases}
        for declaration in aliases:
            if declaration.kind == "union":
                value = self._union_string(declaration.members, declarations)
            else:
                value = self.translate_type(declaration.target, declarations)
            nodes.append(
                ast.Assign(
                    targets=[ast.Name(id=declaration.name, ctx=ast.Store())],
                    value=self._parse_expr(value),
                )
            )
            self._forward.discard(declaration.name)
        self._forward = set()
        return nodes

    def translate_type(self, ref: TypeNodeRef, declarations: DeclarationSet) -> str:
        """Translate a type reference to a Python type string."""
        name = declarations.name_of(ref)
        if name is not None:
            return f'"{name}"' if name in self._forward else name

        node = declarations.node(ref)
        if isinstance(node, PrimitiveType):
            type_name = self.TYPE_MAP.get(node.kind, "Any")
            if type_name == "Any":
                self.python_imports.add(("typing", "Any"))
            return type_name

        if isinstance(node, CollectionType):
            return f"list[{self.translate_type(node.element, declarations)}]"

        if isinstance(node, MapType):
            return f"dict[str, {self.translate_type(node.value, declarations)}]"

        if isinstance(node, UnionType):
            return self._union_string(node.members, declarations)

        raise ValueError(f"Type node {ref.id} ({type(node).__name__}) has no name")

    def _union_string(self, members: tuple[TypeNodeRef, ...], declarations: DeclarationSet) -> str:
        types: list[str] = []
        for member in members:
            type_str = self.translate_type(member, declarations)
            if type_str not in types:
                types.append(type_str)
        if len(types) == 1:
            return types[0]
        # A quoted operand of | is a plain str at runtime
        if any(t.startswith('"') for t in types):
            self.python_imports.add(("typing", "Union"))
            return f"Union[{', '.join(types)}]"
        return " | ".join(types)

    def _admits_none(self, ref: TypeNodeRef, declarations: DeclarationSet) -> bool:
        """Whether the rendered type already accepts None."""
        if declarations.name_of(ref) is not None:
            return False
        node = declarations.node(ref)
        if isinstance(node, PrimitiveType):
            return node.kind in ("null", "any")
        if isinstance(node, UnionType):
            return any(self._admits_none(member, declarations) for member in node.members)
        return False

    def _mentions_declared_type(self, ref: TypeNodeRef, declarations: DeclarationSet) -> bool:
        if declarations.name_of(ref) is not None:
            return True
        return any(self._mentions_declared_type(child, declarations) for child in declarations.node(ref).children())

    def _docstring(self, declaration: Declaration, declarations: DeclarationSet) -> list[ast.stmt]:
        lines = self.doc_lines(declaration, declarations)
        if not lines:
            return []
        text = lines[0]
        if len(lines) > 1:
            text += "\n" + "\n".join(f"    {line}" if line else "" for line in lines[1:]) + "\n    "
        return [ast.Expr(value=ast.Constant(value=text))]

    def _post_process_code(self, code: str) -> str:
        """Post-process the generated code for formatting."""
        lines = code.split("\n")
        result = [f"{self._get_comment_prefix()} {line}" for line in self.header_lines()]
        if result:
            result.append("")

        for i, line in enumerate(lines):
            # Placeholder pass statements between import groups become blank lines
            if line == "pass":
                result.append("")
                continue

            # Two blank lines before each top-level class and before the aliases
            previous = lines[i - 1] if i else ""
            starts_block = line.startswith(("@", "class ")) and not previous.startswith("@")
            follows_block = (
                line
                and not line[0].isspace()
                and not line.startswith(("from ", "import "))
                and (previous[:1].isspace() or previous.startswith(("from ", "import ")))
            )
            if result and (starts_block or follows_block):
                while result and result[-1] == "":
                    result.pop()
                result.extend(["", ""])

            result.append(line)

        # Ensure file ends with newline
        if result and result[-1] != "":
            result.append("")

        return "\n".join(result)
