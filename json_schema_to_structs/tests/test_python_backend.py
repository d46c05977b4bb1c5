"""
Tests for the Python (dataclasses_json) backend.

Generated modules are executed and used to round-trip JSON documents.
"""

from __future__ import annotations

import json
import sys
import types
from pathlib import Path

import pytest

from json_schema_to_structs.pipeline import CodeGeneratorConfig, PipelineGenerator
from json_schema_to_structs.pipeline.schema_ast import InMemorySchemaSource

SCHEMAS_DIR = Path(__file__).parent / "test_data" / "schemas"

EXCLUDE_NONE = "field(default=None, metadata=config(exclude=lambda x: x is None))"

PERSON_CODE = f'''# Generated by json_schema_to_structs, do not edit

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from dataclasses_json import config, dataclass_json


@dataclass_json
@dataclass(kw_only=True)
class Person:
    """Generated from person.json#"""
    first_name: str = field(metadata=config(field_name='firstName'))
    age: int | None = {EXCLUDE_NONE}
    address: Address | None = {EXCLUDE_NONE}
    tags: list[str] | None = {EXCLUDE_NONE}
    status: Status | None = {EXCLUDE_NONE}


class Status(str, Enum):
    """Generated from person.json#/definitions/Status"""
    ACTIVE = 'active'
    IN_PROGRESS = 'in-progress'
    DONE = 'done'


@dataclass_json
@dataclass(kw_only=True)
class Address:
    """Generated from common.json#/definitions/Address"""
    street: str
    zip: str | None = {EXCLUDE_NONE}
    country: Country | None = {EXCLUDE_NONE}


class Country(str, Enum):
    """Generated from common.json#/definitions/Country"""
    FR = 'FR'
    US = 'US'
'''


def generate_file(name, config=None):
    return PipelineGenerator(config).generate(str(SCHEMAS_DIR / name))


def generate_inline(schema, config=None, **documents):
    source = InMemorySchemaSource({"schema.json": schema, **documents})
    return PipelineGenerator(config, source=source).generate("schema.json")


@pytest.fixture
def load_module(monkeypatch):
    """Execute generated code as an importable module (dataclasses_json resolves hints through sys.modules)."""
    pytest.importorskip("dataclasses_json")

    def load(code, name="generated_structs"):
        module = types.ModuleType(name)
        monkeypatch.setitem(sys.modules, name, module)
        exec(compile(code, f"<{name}>", "exec"), module.__dict__)
        return module

    return load


class TestPythonOutput:
    def test_person(self):
        assert generate_file("person.json") == PERSON_CODE

    def test_decorators_stay_together(self):
        code = generate_file("collision.json")
        assert code.count("\n\n\n@dataclass_json\n@dataclass(kw_only=True)\nclass ") == 3
        assert "@dataclass_json\n\n" not in code

    def test_generation_is_deterministic(self):
        assert generate_file("shapes.json") == generate_file("shapes.json")

    def test_recursive_struct(self):
        code = generate_file("tree.json")
        assert "class Node:" in code
        assert f"parent: Node | None = {EXCLUDE_NONE}" in code
        assert f"children: list[Node] | None = {EXCLUDE_NONE}" in code
        assert "    value: str\n" in code

    def test_name_collision(self):
        code = generate_file("collision.json")
        assert "class Catalog:" in code
        assert "class Item:" in code
        assert "class Item2:" in code
        assert f"featured: Item | None = {EXCLUDE_NONE}" in code
        assert f"item: Item2 | None = {EXCLUDE_NONE}" in code
        # The definition is declared before the inline object
        assert code.index("name: str") < code.index("sku: str")

    def test_unions_and_all_of(self):
        code = generate_file("shapes.json")
        assert "Shape = Circle | Square\n" in code
        # Nullable type arrays are not wrapped twice
        assert f"label: str | None = {EXCLUDE_NONE}" in code
        assert f"labeled: Circle | None = {EXCLUDE_NONE}" in code
        assert '"""Generated from shapes.json#/definitions/Circle\n    allOf members not merged: Labeled\n    """' in code
        # Classes come before the union alias that uses them
        assert code.index("class Square:") < code.index("Shape = ")

    def test_closed_object(self):
        code = generate_inline({"type": "object", "properties": {"a": {"type": "string"}}, "additionalProperties": False})
        assert "from dataclasses_json import Undefined, config, dataclass_json" in code
        assert "@dataclass_json(undefined=Undefined.RAISE)\n@dataclass(kw_only=True)\nclass Schema:" in code

    def test_maps_and_any(self):
        code = generate_inline(
            {
                "title": "Settings",
                "type": "object",
                "properties": {
                    "labels": {"type": "object", "additionalProperties": {"type": "string"}},
                    "extra": {},
                },
                "required": ["labels", "extra"],
            }
        )
        assert "from typing import Any" in code
        assert "    labels: dict[str, str]\n" in code
        assert "    extra: Any\n" in code

    def test_optional_any_is_not_wrapped(self):
        code = generate_inline({"type": "object", "properties": {"extra": {}}})
        assert f"extra: Any = {EXCLUDE_NONE}" in code

    def test_field_names(self):
        code = generate_inline(
            {
                "type": "object",
                "properties": {
                    "class": {"type": "string"},
                    "list": {"type": "string"},
                    "fooBar": {"type": "string"},
                    "foo_bar": {"type": "string"},
                    "@id": {"type": "string"},
                },
                "required": ["class", "list", "fooBar", "foo_bar", "@id"],
            }
        )
        assert "class_: str = field(metadata=config(field_name='class'))" in code
        assert "list_: str = field(metadata=config(field_name='list'))" in code
        assert "foo_bar: str = field(metadata=config(field_name='fooBar'))" in code
        assert "foo_bar2: str = field(metadata=config(field_name='foo_bar'))" in code
        assert "at_id: str = field(metadata=config(field_name='@id'))" in code

    def test_enum_bases(self):
        code = generate_inline(
            {
                "type": "object",
                "properties": {
                    "level": {"enum": [1, 2, 3]},
                    "mixed": {"enum": ["a", 1, None]},
                },
            }
        )
        assert "class Level(int, Enum):" in code
        assert "V_1 = 1" in code
        assert "class Mixed(Enum):" in code
        assert "NULL = None" in code

    def test_reserved_type_name(self):
        code = generate_inline({"title": "Any", "type": "object", "properties": {"a": {"type": "string"}}})
        assert "class Any2:" in code

    def test_description_docstring(self):
        code = generate_inline({"title": "Thing", "description": "A thing.\nOn two lines.", "type": "object", "properties": {"a": {"type": "string"}}})
        assert '    """A thing.\n    On two lines.\n\n    Generated from schema.json#\n    """' in code

    def test_without_comments(self):
        config = CodeGeneratorConfig(add_generation_comment=False, add_source_comments=False)
        code = generate_inline({"type": "object", "properties": {"a": {"type": "string"}}}, config)
        assert code.startswith("from __future__ import annotations\n")
        assert "Generated" not in code

    def test_without_future_annotations(self):
        config = CodeGeneratorConfig(use_future_annotations=False)
        code = generate_file("tree.json", config)
        assert "from __future__" not in code
        assert "parent: 'Node | None' = " in code
        assert "value: str\n" in code

    def test_recursive_array_alias(self):
        code = generate_inline(
            {
                "type": "object",
                "properties": {"items": {"$ref": "#/definitions/List"}},
                "definitions": {"List": {"type": "array", "items": {"$ref": "#/definitions/List"}}},
            }
        )
        assert "\n\n\nList = list['List']\n" in code
        assert f"items: List | None = {EXCLUDE_NONE}" in code

    def test_alias_referencing_later_alias(self):
        code = generate_inline(
            {
                "type": "object",
                "properties": {"value": {"$ref": "#/definitions/Value"}},
                "definitions": {
                    "Value": {"anyOf": [{"$ref": "#/definitions/Pair"}, {"type": "string"}]},
                    "Pair": {"anyOf": [{"type": "integer"}, {"type": "boolean"}]},
                },
            }
        )
        assert "from typing import Union" in code
        assert "Value = Union['Pair', str]\nPair = int | bool\n" in code

    def test_generated_code_compiles(self):
        for name in ("person.json", "tree.json", "collision.json", "shapes.json"):
            compile(generate_file(name), name, "exec")


class TestRoundTrip:
    def test_person(self, load_module):
        module = load_module(generate_file("person.json"))
        document = {
            "firstName": "Ada",
            "age": 36,
            "address": {"street": "1 Main St", "country": "FR"},
            "tags": ["math", "engines"],
            "status": "in-progress",
        }
        person = module.Person.from_json(json.dumps(document))
        assert person.first_name == "Ada"
        assert person.status is module.Status.IN_PROGRESS
        assert person.address.country is module.Country.FR
        assert json.loads(person.to_json()) == document

    def test_missing_optional_fields_are_omitted(self, load_module):
        module = load_module(generate_file("person.json"))
        person = module.Person(first_name="Grace")
        assert json.loads(person.to_json()) == {"firstName": "Grace"}

    def test_recursive(self, load_module):
        module = load_module(generate_file("tree.json"))
        document = {"value": "root", "children": [{"value": "a"}, {"value": "b", "children": []}]}
        node = module.Node.from_dict(document)
        assert [child.value for child in node.children] == ["a", "b"]
        assert json.loads(node.to_json()) == document

    def test_closed_object_rejects_unknown_keys(self, load_module):
        undefined = pytest.importorskip("dataclasses_json.undefined")
        module = load_module(generate_inline({"type": "object", "properties": {"a": {"type": "string"}}, "additionalProperties": False}))
        assert module.Schema.from_dict({"a": "x"}).a == "x"
        with pytest.raises(undefined.UndefinedParameterError):
            module.Schema.from_dict({"a": "x", "b": 1})
