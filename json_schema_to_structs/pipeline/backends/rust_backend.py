"""
Rust code generation backend.

Generates serde-annotated structs and enums from the declaration view using
Jinja2 templates.
"""

from __future__ import annotations

import json
from typing import Any

from ...utils import make_unique, to_type_name
from ..analyzer.declarations import Declaration, DeclarationSet
from ..analyzer.type_graph import CollectionType, MapType, PrimitiveType, TypeNodeRef, UnionType
from ..config import CodeGeneratorConfig
from .base import TemplateBackend

RUST_KEYWORDS = frozenset(
    {
        "as",
        "async",
        "await",
        "break",
        "const",
        "continue",
        "crate",
        "dyn",
        "else",
        "enum",
        "extern",
        "false",
        "fn",
        "for",
        "if",
        "impl",
        "in",
        "let",
        "loop",
        "match",
        "mod",
        "move",
        "mut",
        "pub",
        "ref",
        "return",
        "self",
        "static",
        "struct",
        "super",
        "trait",
        "true",
        "type",
        "unsafe",
        "use",
        "where",
        "while",
        "abstract",
        "become",
        "box",
        "do",
        "final",
        "macro",
        "override",
        "priv",
        "try",
        "typeof",
        "unsized",
        "virtual",
        "yield",
    }
)

# Variant names for union members that have no declaration of their own
UNION_VARIANT_NAMES = {
    "string": "String",
    "integer": "Integer",
    "number": "Number",
    "boolean": "Boolean",
    "null": "Null",
    "any": "Value",
}


def rust_string(text: str) -> str:
    """Quote text as a Rust string literal."""
    escaped = []
    for c in text:
        if c in ('"', "\\"):
            escaped.append(f"\\{c}")
        elif c == "\n":
            escaped.append("\\n")
        elif c == "\r":
            escaped.append("\\r")
        elif c == "\t":
            escaped.append("\\t")
        elif ord(c) < 0x20:
            escaped.append(f"\\u{{{ord(c):x}}}")
        else:
            escaped.append(c)
    return '"' + "".join(escaped) + '"'


class RustBackend(TemplateBackend):
    """Rust code generation backend (serde)."""

    TEMPLATE_LANG = "rust"
    FILE_EXTENSION = "rs"

    TYPE_MAP = {
        "string": "String",
        "integer": "i64",
        "number": "f64",
        "boolean": "bool",
        "null": "()",
        "any": "serde_json::Value",
    }

    RESERVED_TYPE_NAMES = frozenset({"Self", "Option", "Box", "Vec", "String", "BTreeMap", "Value", "Result", "Serialize", "Deserialize"})

    RESERVED_FIELD_NAMES = RUST_KEYWORDS

    def __init__(self, config: CodeGeneratorConfig | None = None, command_line: str = ""):
        super().__init__(config, command_line)
        self.uses_map = False

    def generate(self, declarations: DeclarationSet) -> str:
        """Generate Rust code from the declarations."""
        self.uses_map = False

        blocks = []
        for declaration in declarations:
            if declaration.kind == "struct":
                blocks.append(self.struct_template.render(**self._struct_context(declaration, declarations)))
            elif declaration.kind == "enum":
                blocks.append(self._render_enum(declaration, declarations))
            elif declaration.kind == "union":
                blocks.append(self.enum_template.render(**self._union_context(declaration, declarations)))
            else:
                blocks.append(
                    self.newtype_template.render(
                        **self._common_context(declaration, declarations),
                        TYPE=self.translate_type(declaration.target, declarations),
                    )
                )

        # Rendered last: blocks decide which imports are needed
        prefix = self.prefix_template.render(HEADER=self.header_lines(), USES_MAP=self.uses_map)
        return prefix + "".join(blocks)

    def translate_type(self, ref: TypeNodeRef, declarations: DeclarationSet, boxed: bool = True) -> str:
        """
        Translate a type reference to a Rust type string.

        Args:
            ref: The type reference
            declarations: Declaration view
            boxed: Whether an indirect reference must be boxed here (not inside Vec / BTreeMap)

        Returns:
            Rust type string
        """
        name = declarations.name_of(ref)
        if name is not None:
            return f"Box<{name}>" if ref.indirect and boxed else name

        node = declarations.node(ref)
        if isinstance(node, PrimitiveType):
            return self.TYPE_MAP.get(node.kind, "serde_json::Value")

        if isinstance(node, CollectionType):
            return f"Vec<{self.translate_type(node.element, declarations, boxed=False)}>"

        if isinstance(node, MapType):
            self.uses_map = True
            return f"BTreeMap<String, {self.translate_type(node.value, declarations, boxed=False)}>"

        if isinstance(node, UnionType):
            # Only the nullable pattern has a native form, other inline unions stay untyped
            non_null = [m for m in node.members if not self._is_null(m, declarations)]
            if len(non_null) == 1 and len(non_null) < len(node.members):
                return self._option(self.translate_type(non_null[0], declarations))
            return "serde_json::Value"

        raise ValueError(f"Type node {ref.id} ({type(node).__name__}) has no name")

    def _common_context(self, declaration: Declaration, declarations: DeclarationSet) -> dict[str, Any]:
        return {
            "NAME": declaration.name,
            "DOC": self.doc_lines(declaration, declarations),
            "DERIVES": ", ".join(self.config.rust_derives),
        }

    def _struct_context(self, declaration: Declaration, declarations: DeclarationSet) -> dict[str, Any]:
        identifiers = self.field_names(declaration.fields)
        fields = []
        for f in declaration.fields:
            identifier = identifiers[f.name]
            type_str = self.translate_type(f.type_ref, declarations)
            attributes = []
            if identifier != f.name:
                attributes.append(f"rename = {rust_string(f.name)}")
            if f.optional:
                type_str = self._option(type_str)
                attributes.extend(['skip_serializing_if = "Option::is_none"', "default"])
            fields.append(
                {
                    "NAME": identifier,
                    "TYPE": type_str,
                    "ATTRIBUTES": attributes,
                    "DOC": f.description.strip().splitlines() if f.description else [],
                }
            )
        return {**self._common_context(declaration, declarations), "FIELDS": fields, "CLOSED": declaration.closed}

    def _render_enum(self, declaration: Declaration, declarations: DeclarationSet) -> str:
        values = [variant.value for variant in declaration.variants]
        context = self._common_context(declaration, declarations)

        if not all(isinstance(v, str) for v in values):
            # serde renames only apply to strings: other literals keep their JSON type
            context["DOC"] = context["DOC"] + [f"Allowed values: {', '.join(json.dumps(v) for v in values)}"]
            return self.newtype_template.render(**context, TYPE=self._literal_type(values))

        variants = []
        taken = {"Self"}
        for variant in declaration.variants:
            name = make_unique(to_type_name(variant.identifier) or "Value", taken)
            taken.add(name)
            variants.append({"NAME": name, "RENAME": rust_string(variant.value) if name != variant.value else None, "TYPE": None})
        return self.enum_template.render(**context, VARIANTS=variants, UNTAGGED=False)

    def _union_context(self, declaration: Declaration, declarations: DeclarationSet) -> dict[str, Any]:
        variants = []
        taken = {"Self"}
        for member in declaration.members:
            name = make_unique(self._variant_name(member, declarations), taken)
            taken.add(name)
            type_str = None if self._is_null(member, declarations) else self.translate_type(member, declarations)
            variants.append({"NAME": name, "RENAME": None, "TYPE": type_str})
        return {**self._common_context(declaration, declarations), "VARIANTS": variants, "UNTAGGED": True}

    def _variant_name(self, ref: TypeNodeRef, declarations: DeclarationSet) -> str:
        name = declarations.name_of(ref)
        if name is not None:
            return name
        node = declarations.node(ref)
        if isinstance(node, PrimitiveType):
            return UNION_VARIANT_NAMES.get(node.kind, "Value")
        if isinstance(node, CollectionType):
            return "Array"
        if isinstance(node, MapType):
            return "Map"
        return "Value"

    @staticmethod
    def _literal_type(values: list[Any]) -> str:
        if all(isinstance(v, bool) for v in values):
            return "bool"
        if all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            return "i64"
        if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
            return "f64"
        return "serde_json::Value"

    @staticmethod
    def _is_null(ref: TypeNodeRef, declarations: DeclarationSet) -> bool:
        if declarations.name_of(ref) is not None:
            return False
        node = declarations.node(ref)
        return isinstance(node, PrimitiveType) and node.kind == "null"

    @staticmethod
    def _option(type_str: str) -> str:
        return type_str if type_str.startswith("Option<") else f"Option<{type_str}>"
