"""
Type graph builder.

Phase 2 of the pipeline: walk the parsed documents, resolve references and
build the deduplicated TypeGraph ready for naming and emission.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ...utils import make_unique, to_enum_member_name
from ..config import CodeGeneratorConfig
from ..errors import UnsupportedSchemaConstruct
from ..schema_ast.nodes import (
    AnySchema,
    ArraySchema,
    CompositeSchema,
    EnumSchema,
    MapSchema,
    ObjectSchema,
    PrimitiveSchema,
    RefSchema,
    SchemaDocument,
    SchemaNode,
    unescape_pointer_token,
)
from ..schema_ast.parser import DEFINITION_KEYWORDS
from .reference_resolver import RecursiveRef, ReferenceResolver, ResolvedSchema
from .type_graph import (
    AliasType,
    CollectionType,
    EnumType,
    EnumVariant,
    Field,
    MapType,
    NameHint,
    Obligation,
    PrimitiveType,
    StructType,
    TypeGraph,
    TypeNode,
    TypeNodeRef,
    UnionType,
)

logger = logging.getLogger(__name__)

# Hint priorities, lower wins
ROOT_NAME_PRIORITY = -1
TITLE_PRIORITY = 0
DEFINITION_PRIORITY = 1
DOCUMENT_PRIORITY = 2
PROPERTY_PRIORITY = 3


@dataclass
class _Slot:
    """Placeholder for a ref target under construction."""

    order: int
    id: int | None = None  # Reserved on the first recursive ref
    consumed: bool = False


@dataclass(frozen=True)
class _Context:
    """Where a schema node is built from."""

    document: SchemaDocument
    hints: tuple[tuple[int, str], ...] = ()
    slot: _Slot | None = None  # Only set for the outermost node of a ref target
    named: bool = False  # Root or definition: unions become declarations

    def child(self, hints: tuple[tuple[int, str], ...] = ()) -> _Context:
        return _Context(self.document, hints)


class TypeGraphBuilder:
    """Builds a frozen TypeGraph from loaded schema documents."""

    def __init__(
        self,
        documents: Mapping[str, SchemaDocument],
        config: CodeGeneratorConfig | None = None,
        primary: Sequence[str] | None = None,
    ):
        """
        Initialize the builder.

        Args:
            documents: Loaded documents keyed by id, in load order
            config: Code generation configuration
            primary: Ids of the documents to generate fully (default: the first one)
        """
        self.documents = documents
        self.config = config or CodeGeneratorConfig()
        if primary is None:
            primary = list(documents)[:1]
        wanted = set(primary)
        self.primary = [document_id for document_id in documents if document_id in wanted]

        self.resolver = ReferenceResolver(documents)
        self.graph = TypeGraph()

        self._ticket = 0
        self._built: dict[str, TypeNodeRef] = {}
        self._slots: dict[str, _Slot] = {}
        self._orders: dict[str, int] = {}

    def build(self) -> TypeGraph:
        """
        Build the type graph.

        Discovery order is each primary document root, then its definitions
        in declaration order, then whatever their properties reach depth-first.
        Other documents only contribute what is referenced.

        Returns:
            The frozen TypeGraph
        """
        for document in self.documents.values():
            if document.id not in self.primary:
                continue
            root = ResolvedSchema(document=document, path="#", node=document.root)
            definitions = []
            for name in document.definitions:
                path = document.definition_path(name)
                definitions.append(ResolvedSchema(document=document, path=path, node=document.nodes[path]))

            # Root and definitions are numbered before the walk, in declaration order
            for target in (root, *definitions):
                self._orders.setdefault(target.location, self._next_ticket())

            self._build_target(root)
            if self.config.include_unreferenced_definitions:
                for target in definitions:
                    self._build_target(target)

        self.graph.freeze()
        logger.debug("Built type graph: %d nodes, %d nameable", len(self.graph), len(self.graph.nameable))
        return self.graph

    def _next_ticket(self) -> int:
        ticket = self._ticket
        self._ticket += 1
        return ticket

    def _build_target(self, target: ResolvedSchema, hints: tuple[tuple[int, str], ...] = ()) -> TypeNodeRef:
        """Build the schema a ref (or the traversal) points at, once per location."""
        location = target.location
        if location in self._built:
            result = self._built[location]
            self._add_hints(result.id, hints, self.graph.order[result.id])
            return result

        location_hints = self._location_hints(target)
        slot = _Slot(order=self._orders.get(location, self._ticket))
        self._slots[location] = slot
        ctx = _Context(target.document, location_hints + hints, slot=slot, named=bool(location_hints))

        with self.resolver.entering(target):
            result = self._build_node(target.node, ctx)
        del self._slots[location]

        if slot.id is not None and not slot.consumed:
            if result.id == slot.id:
                raise UnsupportedSchemaConstruct("Reference cycle that never reaches a type", location)
            # Recursive target that is not a struct, enum or union: name it through an alias
            self.graph.fill(slot.id, AliasType(target=result))
            self.graph.mark_nameable(slot.id)
            self._add_hints(slot.id, self._title_hints(target.node) + ctx.hints, slot.order)
            result = TypeNodeRef(slot.id)

        self._built[location] = result
        return result

    def _location_hints(self, target: ResolvedSchema) -> tuple[tuple[int, str], ...]:
        """Naming hints derived from where a target sits in its document."""
        if target.path == "#":
            hints = [(DOCUMENT_PRIORITY, target.document.name)]
            if self.config.root_name and self.primary and target.document.id == self.primary[0]:
                hints.insert(0, (ROOT_NAME_PRIORITY, self.config.root_name))
            return tuple(hints)

        tokens = target.path.split("/")
        if len(tokens) >= 3 and tokens[-2] in DEFINITION_KEYWORDS:
            return ((DEFINITION_PRIORITY, unescape_pointer_token(tokens[-1])),)
        return ()

    def _build_node(self, schema: SchemaNode, ctx: _Context) -> TypeNodeRef:
        """Build one schema node (pre-order: the ticket is taken before children)."""
        ticket = self._next_ticket()

        if isinstance(schema, RefSchema):
            return self._build_ref(schema, ctx)

        if isinstance(schema, CompositeSchema):
            if schema.kind == "allOf":
                return self._build_all_of(schema, ctx, ticket)
            return self._build_union(schema, ctx, ticket)

        if isinstance(schema, ObjectSchema):
            return self._build_object(schema, ctx, ticket)

        if isinstance(schema, ArraySchema):
            element = self._build_node(schema.items, ctx.child(ctx.hints))
            return self._add(CollectionType(element=element), schema, ctx, ticket)

        if isinstance(schema, MapSchema):
            value = self._build_node(schema.values, ctx.child(ctx.hints))
            return self._add(MapType(value=value), schema, ctx, ticket)

        if isinstance(schema, EnumSchema):
            return self._add(self._enum_type(schema, ctx), schema, ctx, ticket)

        if isinstance(schema, PrimitiveSchema):
            return self._add(PrimitiveType(kind=schema.kind, format=schema.format), schema, ctx, ticket)

        if isinstance(schema, AnySchema):
            return self._add(PrimitiveType(kind="any"), schema, ctx, ticket)

        raise UnsupportedSchemaConstruct(f"Unknown schema node {type(schema).__name__}", self._location(ctx, schema))

    def _build_ref(self, schema: RefSchema, ctx: _Context) -> TypeNodeRef:
        resolved = self.resolver.resolve(schema, ctx.document.id)
        if isinstance(resolved, RecursiveRef):
            slot = self._slots[resolved.location]
            if slot.id is None:
                slot.id = self.graph.reserve(slot.order, resolved.location, resolved.target.node.description)
            return TypeNodeRef(slot.id, indirect=True)

        # The referrer's context only names the target as a last resort,
        # except a configured root name on a document that is a bare $ref
        passthrough = ctx.slot is not None
        hints = tuple(
            (priority if passthrough and priority == ROOT_NAME_PRIORITY else max(priority, PROPERTY_PRIORITY), text)
            for priority, text in ctx.hints
        )
        return self._build_target(resolved, hints)

    def _build_object(self, schema: ObjectSchema, ctx: _Context, ticket: int) -> TypeNodeRef:
        fields = []
        for prop in schema.properties:
            type_ref = self._build_node(prop.type_node, ctx.child(((PROPERTY_PRIORITY, prop.name),)))
            fields.append(
                Field(
                    name=prop.name,
                    type_ref=type_ref,
                    optional=not prop.is_required,
                    description=prop.type_node.description,
                )
            )
        return self._add(StructType(fields=tuple(fields), closed=schema.is_closed), schema, ctx, ticket)

    def _build_union(self, schema: CompositeSchema, ctx: _Context, ticket: int) -> TypeNodeRef:
        if len(schema.members) == 1:
            return self._build_node(schema.members[0], self._with_title(ctx, schema))

        member_ctx = ctx.child(self._title_hints(schema) + ctx.hints)
        members = tuple(self._build_node(member, member_ctx) for member in schema.members)
        return self._add(UnionType(kind=schema.kind, members=members), schema, ctx, ticket)

    def _build_all_of(self, schema: CompositeSchema, ctx: _Context, ticket: int) -> TypeNodeRef:
        """
        Build an allOf.

        Members are not merged: the first member that builds to a struct is
        the result, the others are kept as obligations on it. Without an object
        member, the one member that constrains the value is the result.
        """
        location = self._location(ctx, schema)
        members = schema.members
        if len(members) == 1:
            return self._build_node(members[0], self._with_title(ctx, schema))

        hints = self._title_hints(schema) + ctx.hints
        refs = []
        for i, member in enumerate(members):
            # An inline object in first position is always the chosen struct
            if i == 0 and isinstance(member, ObjectSchema):
                member_ctx = _Context(ctx.document, hints, slot=ctx.slot, named=ctx.named)
            else:
                member_ctx = ctx.child(hints)
            refs.append(self._build_node(member, member_ctx))

        # Annotation-only members such as {"default": 0} add no constraint
        typed = [ref for ref in refs if not self._is_any(ref)]
        structs = [(ref, node) for ref in typed if isinstance(node := self.graph.get(ref.id), StructType)]
        if not structs:
            distinct = {ref.id: ref for ref in typed}
            if len(distinct) > 1:
                raise UnsupportedSchemaConstruct("allOf of several non-object members cannot be represented", location)
            return typed[0] if typed else refs[0]
        if len(structs) > 1:
            if self.config.strict_all_of:
                raise UnsupportedSchemaConstruct("allOf with several object members is not merged", location)
            self._check_compatible(structs, location)

        chosen = structs[0][0]
        unmet = tuple(ref for ref in typed if ref.id != chosen.id)
        if unmet:
            self.graph.add_obligation(Obligation(source_path=location, chosen=chosen, unmet=unmet))
            logger.warning("allOf at %s: only the first object member is used, %d member(s) not merged", location, len(unmet))
        return chosen

    def _is_any(self, ref: TypeNodeRef) -> bool:
        node = self.graph.get(ref.id)
        return isinstance(node, PrimitiveType) and node.kind == "any"

    @staticmethod
    def _check_compatible(structs: list[tuple[TypeNodeRef, StructType]], location: str) -> None:
        """Two object members may not give one property different types."""
        seen: dict[str, int] = {}
        for _, struct in structs:
            for f in struct.fields:
                if seen.setdefault(f.name, f.type_ref.id) != f.type_ref.id:
                    raise UnsupportedSchemaConstruct(f"allOf members declare property '{f.name}' with different types", location)

    def _enum_type(self, schema: EnumSchema, ctx: _Context) -> EnumType:
        variants = []
        taken: set[str] = set()
        for value in schema.values:
            if isinstance(value, (dict, list)):
                raise UnsupportedSchemaConstruct("Only scalar enum values are supported", self._location(ctx, schema))
            identifier = make_unique(to_enum_member_name(value), taken)
            taken.add(identifier)
            variants.append(EnumVariant(identifier=identifier, value=value))
        return EnumType(variants=tuple(variants))

    def _add(self, type_node: TypeNode, schema: SchemaNode, ctx: _Context, ticket: int) -> TypeNodeRef:
        """Store a node (filling the pending slot if this is a recursive target) and record its hints."""
        slot = ctx.slot
        # The outermost node of a target takes the target's ticket
        order = slot.order if slot is not None else ticket
        fills_slot = (
            slot is not None and slot.id is not None and not slot.consumed and isinstance(type_node, (StructType, EnumType, UnionType))
        )
        if fills_slot:
            self.graph.fill(slot.id, type_node)
            slot.consumed = True
            node_id = slot.id
        else:
            node_id = self.graph.add(type_node, order, self._location(ctx, schema), schema.description)

        self._add_hints(node_id, self._title_hints(schema) + ctx.hints, order)
        if isinstance(type_node, (StructType, EnumType)) or (isinstance(type_node, UnionType) and (ctx.named or fills_slot)):
            self.graph.mark_nameable(node_id)
        return TypeNodeRef(node_id)

    def _add_hints(self, node_id: int, hints: tuple[tuple[int, str], ...], order: int) -> None:
        for priority, text in hints:
            if text:
                self.graph.add_hint(node_id, NameHint(priority=priority, text=text, order=order))

    @staticmethod
    def _title_hints(schema: SchemaNode) -> tuple[tuple[int, str], ...]:
        return ((TITLE_PRIORITY, schema.title),) if schema.title else ()

    def _with_title(self, ctx: _Context, schema: SchemaNode) -> _Context:
        return _Context(ctx.document, self._title_hints(schema) + ctx.hints, slot=ctx.slot, named=ctx.named)

    @staticmethod
    def _location(ctx: _Context, schema: SchemaNode) -> str:
        return f"{ctx.document.id}{schema.source_path}"
