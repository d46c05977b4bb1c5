"""
Tests for the TypeGraphBuilder (reference resolution, dedup, recursion, composites).
"""

from __future__ import annotations

import logging

import pytest

from json_schema_to_structs.pipeline.analyzer import (
    AliasType,
    CollectionType,
    EnumType,
    StructType,
    TypeGraphBuilder,
    TypeNodeRef,
    UnionType,
)
from json_schema_to_structs.pipeline.config import CodeGeneratorConfig
from json_schema_to_structs.pipeline.errors import UnsupportedSchemaConstruct
from json_schema_to_structs.pipeline.schema_ast import InMemorySchemaSource, SchemaLoader


def build(documents, config=None, primary=None):
    loaded = SchemaLoader(InMemorySchemaSource(documents)).load(*(primary or list(documents)[:1]))
    return TypeGraphBuilder(loaded, config, primary).build()


def root_ref(graph):
    """Id of the first nameable node, the root type in these schemas."""
    return graph.nameable_ids()[0]


def field_map(struct):
    return {f.name: f for f in struct.fields}


CIRCLE = {"type": "object", "properties": {"radius": {"type": "number"}}, "required": ["radius"]}
SQUARE = {"type": "object", "properties": {"side": {"type": "number"}}, "required": ["side"]}


class TestStructs:
    def test_simple_object(self):
        graph = build({"root.json": {"title": "Person", "type": "object", "properties": {"name": {"type": "string"}}}})
        assert graph.frozen
        root = graph.nameable_ids()
        assert len(root) == 1
        struct = graph[root[0]]
        assert isinstance(struct, StructType)
        assert [f.name for f in struct.fields] == ["name"]
        assert struct.fields[0].optional
        assert graph.best_hint(root[0]).text == "Person"

    def test_document_stem_names_untitled_root(self):
        graph = build({"schemas/order.json": {"type": "object", "properties": {"id": {"type": "integer"}}}})
        assert graph.best_hint(root_ref(graph)).text == "order"

    def test_configured_root_name_wins(self):
        config = CodeGeneratorConfig(root_name="Document")
        graph = build({"root.json": {"title": "Person", "type": "object", "properties": {"id": {"type": "integer"}}}}, config)
        assert graph.best_hint(root_ref(graph)).text == "Document"

    def test_configured_root_name_through_reference(self):
        config = CodeGeneratorConfig(root_name="Root")
        schema = {"$ref": "#/definitions/W", "definitions": {"W": {"type": "object", "properties": {"id": {"type": "string"}}}}}
        graph = build({"root.json": schema}, config)
        assert [graph.best_hint(i).text for i in graph.nameable_ids()] == ["Root"]

    def test_root_name_does_not_leak_into_union_members(self):
        config = CodeGeneratorConfig(root_name="Root")
        schema = {
            "oneOf": [{"$ref": "#/definitions/Circle"}, {"$ref": "#/definitions/Square"}],
            "definitions": {"Circle": CIRCLE, "Square": SQUARE},
        }
        graph = build({"root.json": schema}, config)
        assert [graph.best_hint(i).text for i in graph.nameable_ids()] == ["Root", "Circle", "Square"]

    def test_identical_shapes_are_emitted_once(self):
        point = {"type": "object", "properties": {"x": {"type": "number"}, "y": {"type": "number"}}}
        graph = build({"root.json": {"type": "object", "properties": {"start": point, "end": point}}})
        root = graph[root_ref(graph)]
        fields = field_map(root)
        assert fields["start"].type_ref == fields["end"].type_ref
        structs = [i for i in graph.nameable_ids() if isinstance(graph[i], StructType)]
        assert len(structs) == 2
        assert graph.best_hint(fields["start"].type_ref.id).text == "start"

    def test_field_description_and_required(self):
        graph = build(
            {
                "root.json": {
                    "type": "object",
                    "properties": {"age": {"type": "integer", "description": "Age in years"}},
                    "required": ["age"],
                }
            }
        )
        age = graph[root_ref(graph)].fields[0]
        assert not age.optional
        assert age.description == "Age in years"

    def test_definition_key_beats_property_name(self):
        graph = build(
            {
                "root.json": {
                    "type": "object",
                    "properties": {"home": {"$ref": "#/definitions/Address"}},
                    "definitions": {"Address": {"type": "object", "properties": {"street": {"type": "string"}}}},
                }
            }
        )
        home = field_map(graph[root_ref(graph)])["home"]
        assert graph.best_hint(home.type_ref.id).text == "Address"


class TestReferences:
    def test_cross_document_reference(self):
        graph = build(
            {
                "root.json": {"type": "object", "properties": {"address": {"$ref": "common.json#/definitions/Address"}}},
                "common.json": {
                    "definitions": {
                        "Address": {"type": "object", "properties": {"street": {"type": "string"}}},
                        "Unused": {"type": "object", "properties": {"nothing": {"type": "string"}}},
                    }
                },
            }
        )
        locations = [graph.locations[i] for i in graph.nameable_ids()]
        assert locations == ["root.json#", "common.json#/definitions/Address"]

    def test_definitions_come_before_root_properties(self):
        schema = {
            "type": "object",
            "properties": {"b": {"$ref": "#/definitions/B"}, "a": {"$ref": "#/definitions/A"}, "c": CIRCLE},
            "definitions": {"A": SQUARE, "B": {"type": "object", "properties": {"n": {"type": "string"}}}},
        }
        graph = build({"root.json": schema})
        locations = [graph.locations[i] for i in graph.nameable_ids()]
        assert locations == ["root.json#", "root.json#/definitions/A", "root.json#/definitions/B", "root.json#/properties/c"]

    def test_unreferenced_definitions_of_primary_document(self):
        schema = {
            "type": "object",
            "properties": {"id": {"type": "integer"}},
            "definitions": {"Extra": {"type": "object", "properties": {"note": {"type": "string"}}}},
        }
        graph = build({"root.json": schema})
        assert len(graph.nameable_ids()) == 2

        graph = build({"root.json": schema}, CodeGeneratorConfig(include_unreferenced_definitions=False))
        assert len(graph.nameable_ids()) == 1

    def test_several_primary_documents(self):
        graph = build(
            {
                "a.json": {"title": "A", "type": "object", "properties": {"a": {"type": "string"}}},
                "b.json": {"title": "B", "type": "object", "properties": {"b": {"type": "string"}}},
            },
            primary=["a.json", "b.json"],
        )
        assert [graph.best_hint(i).text for i in graph.nameable_ids()] == ["A", "B"]


class TestRecursion:
    TREE = {
        "$ref": "#/definitions/Node",
        "definitions": {
            "Node": {
                "type": "object",
                "properties": {
                    "value": {"type": "string"},
                    "next": {"$ref": "#/definitions/Node"},
                    "children": {"type": "array", "items": {"$ref": "#/definitions/Node"}},
                },
                "required": ["value"],
            }
        },
    }

    def test_self_referencing_struct(self):
        graph = build({"tree.json": self.TREE})
        assert len(graph.nameable_ids()) == 1
        node_id = graph.nameable_ids()[0]
        node = graph[node_id]
        assert isinstance(node, StructType)
        assert graph.best_hint(node_id).text == "Node"

        fields = field_map(node)
        assert fields["next"].type_ref.id == node_id
        assert fields["next"].type_ref.indirect
        children = graph[fields["children"].type_ref.id]
        assert isinstance(children, CollectionType)
        assert children.element.id == node_id
        assert children.element.indirect

    def test_recursive_array_becomes_alias(self):
        graph = build(
            {
                "root.json": {
                    "type": "object",
                    "properties": {"items": {"$ref": "#/definitions/List"}},
                    "definitions": {"List": {"type": "array", "items": {"$ref": "#/definitions/List"}}},
                }
            }
        )
        items = field_map(graph[root_ref(graph)])["items"]
        alias = graph[items.type_ref.id]
        assert isinstance(alias, AliasType)
        assert items.type_ref.id in graph.nameable
        assert graph.best_hint(items.type_ref.id).text == "List"
        collection = graph[alias.target.id]
        assert isinstance(collection, CollectionType)
        assert collection.element == TypeNodeRef(items.type_ref.id, indirect=True)

    def test_mutual_recursion(self):
        graph = build(
            {
                "root.json": {
                    "$ref": "#/definitions/A",
                    "definitions": {
                        "A": {"type": "object", "properties": {"b": {"$ref": "#/definitions/B"}}},
                        "B": {"type": "object", "properties": {"a": {"$ref": "#/definitions/A"}}},
                    },
                }
            }
        )
        a_id, b_id = graph.nameable_ids()
        assert field_map(graph[a_id])["b"].type_ref.id == b_id
        back = field_map(graph[b_id])["a"].type_ref
        assert back.id == a_id
        assert back.indirect

    @pytest.mark.parametrize(
        "definitions",
        [
            {"A": {"$ref": "#/definitions/A"}},
            {"A": {"$ref": "#/definitions/B"}, "B": {"$ref": "#/definitions/A"}},
        ],
    )
    def test_cycle_without_type(self, definitions):
        with pytest.raises(UnsupportedSchemaConstruct):
            build({"root.json": {"$ref": "#/definitions/A", "definitions": definitions}})


class TestComposites:
    def test_named_union(self):
        graph = build(
            {
                "root.json": {
                    "title": "Drawing",
                    "type": "object",
                    "properties": {"shape": {"$ref": "#/definitions/Shape"}},
                    "definitions": {
                        "Shape": {"oneOf": [{"$ref": "#/definitions/Circle"}, {"$ref": "#/definitions/Square"}]},
                        "Circle": CIRCLE,
                        "Square": SQUARE,
                    },
                }
            }
        )
        shape = field_map(graph[root_ref(graph)])["shape"]
        union = graph[shape.type_ref.id]
        assert isinstance(union, UnionType)
        assert union.kind == "oneOf"
        assert shape.type_ref.id in graph.nameable
        assert [graph.best_hint(m.id).text for m in union.members] == ["Circle", "Square"]

    def test_inline_union_is_not_named(self):
        graph = build({"root.json": {"type": "object", "properties": {"label": {"type": ["string", "null"]}}}})
        label = graph[root_ref(graph)].fields[0]
        union = graph[label.type_ref.id]
        assert isinstance(union, UnionType)
        assert label.type_ref.id not in graph.nameable
        assert [graph[m.id].kind for m in union.members] == ["string", "null"]

    def test_single_member_composite_unwraps(self):
        graph = build({"root.json": {"type": "object", "properties": {"a": {"anyOf": [{"type": "integer"}]}}}})
        a = graph[root_ref(graph)].fields[0]
        assert graph[a.type_ref.id].kind == "integer"

    def test_all_of_keeps_first_struct(self, caplog):
        schema = {
            "type": "object",
            "properties": {
                "labeled": {"allOf": [{"$ref": "#/definitions/Circle"}, {"type": "object", "properties": {"label": {"type": "string"}}}]}
            },
            "definitions": {"Circle": CIRCLE},
        }
        with caplog.at_level(logging.WARNING):
            graph = build({"root.json": schema})

        labeled = field_map(graph[root_ref(graph)])["labeled"]
        assert graph.best_hint(labeled.type_ref.id).text == "Circle"
        assert len(graph.obligations) == 1
        obligation = graph.obligations[0]
        assert obligation.chosen == labeled.type_ref
        assert obligation.source_path == "root.json#/properties/labeled"
        assert [f.name for f in graph[obligation.unmet[0].id].fields] == ["label"]
        assert "not merged" in caplog.text

    def test_all_of_strict(self):
        schema = {"allOf": [CIRCLE, SQUARE]}
        with pytest.raises(UnsupportedSchemaConstruct):
            build({"root.json": schema}, CodeGeneratorConfig(strict_all_of=True))

    def test_all_of_conflicting_property(self):
        other = {"type": "object", "properties": {"radius": {"type": "string"}}}
        with pytest.raises(UnsupportedSchemaConstruct) as exc_info:
            build({"root.json": {"allOf": [CIRCLE, other]}})
        assert "radius" in str(exc_info.value)

    def test_all_of_without_object(self):
        with pytest.raises(UnsupportedSchemaConstruct) as exc_info:
            build({"root.json": {"allOf": [{"type": "string"}, {"type": "integer"}]}})
        assert exc_info.value.schema_path == "root.json#"

    def test_all_of_same_primitive(self):
        graph = build(
            {"root.json": {"type": "object", "properties": {"code": {"allOf": [{"type": "string"}, {"type": "string", "maxLength": 3}]}}}}
        )
        code = field_map(graph[root_ref(graph)])["code"]
        assert graph[code.type_ref.id].kind == "string"
        assert not graph.obligations

    def test_all_of_ignores_annotation_only_members(self):
        schema = {
            "type": "object",
            "properties": {"count": {"$ref": "#/definitions/countDefault0"}},
            "definitions": {
                "count": {"type": "integer", "minimum": 0},
                "countDefault0": {"allOf": [{"$ref": "#/definitions/count"}, {"default": 0}]},
            },
        }
        graph = build({"root.json": schema})
        count = field_map(graph[root_ref(graph)])["count"]
        assert graph[count.type_ref.id].kind == "integer"
        assert not graph.obligations

    def test_all_of_struct_with_annotation_member(self):
        graph = build({"root.json": {"title": "Circle", "allOf": [CIRCLE, {"description": "A round shape"}]}})
        assert isinstance(graph[root_ref(graph)], StructType)
        assert not graph.obligations

    def test_all_of_inline_first_member_names_root(self):
        graph = build(
            {
                "root.json": {
                    "title": "Labeled",
                    "allOf": [{"type": "object", "properties": {"label": {"type": "string"}}}, {"$ref": "#/definitions/Circle"}],
                    "definitions": {"Circle": CIRCLE},
                }
            }
        )
        first = graph.nameable_ids()[0]
        assert graph.best_hint(first).text == "Labeled"
        assert graph.obligations[0].chosen.id == first


class TestEnums:
    def test_enum_identifiers(self):
        graph = build({"root.json": {"enum": ["in-progress", "in progress", 1, None, True]}})
        enum = graph[root_ref(graph)]
        assert isinstance(enum, EnumType)
        assert [v.identifier for v in enum.variants] == ["IN_PROGRESS", "IN_PROGRESS2", "V_1", "NULL", "TRUE"]
        assert enum.values == ("in-progress", "in progress", 1, None, True)

    def test_non_scalar_enum_value(self):
        with pytest.raises(UnsupportedSchemaConstruct):
            build({"root.json": {"enum": [{"a": 1}]}})
