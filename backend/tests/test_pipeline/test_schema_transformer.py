"""Tests for the oracle-safe JSON schema transform."""

import json

from services.pipeline.schema_transformer import get_oracle_schema, transform


def _objects(node):
    """Yield every object node in a schema tree."""
    if isinstance(node, dict):
        if node.get("type") == "object":
            yield node
        for value in node.values():
            yield from _objects(value)
    elif isinstance(node, list):
        for item in node:
            yield from _objects(item)


SAMPLE = {
    "title": "Sample",
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1, "pattern": "^[A-Z]", "title": "Name"},
        "age": {"type": "integer", "minimum": 0, "default": 0},
        "tags": {"type": "array", "items": {"type": "string", "format": "uri"}, "minItems": 1},
        "nickname": {"anyOf": [{"type": "string", "maxLength": 20}, {"type": "null"}], "default": None},
        "level": {"enum": ["junior", "senior"], "description": "Seniority"},
        "kind": {"const": "person"},
        "score": {"anyOf": [{"type": "number"}, {"type": "string"}]},
        "address": {"$ref": "#/$defs/Address", "description": "Home address"},
        "active": {"type": "boolean", "default": True},
    },
    "required": ["name"],
    "$defs": {
        "Address": {
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "additionalProperties": True,
        }
    },
}


def test_idempotent():
    once = transform(SAMPLE)
    assert transform(once) == once


def test_idempotent_on_resume_schema():
    schema = get_oracle_schema()
    assert transform(schema) == schema


def test_objects_closed_and_fully_required():
    for schema in (transform(SAMPLE), get_oracle_schema()):
        objects = list(_objects(schema))
        assert objects
        for obj in objects:
            assert obj["additionalProperties"] is False
            assert sorted(obj["required"]) == sorted(obj["properties"])


def test_constraints_dropped_metadata_kept():
    props = transform(SAMPLE)["properties"]
    assert props["name"] == {"type": "string", "title": "Name"}
    assert props["age"] == {"type": "integer"}
    assert props["tags"] == {"type": "array", "items": {"type": "string"}}


def test_nullable_wrapped_in_any_of():
    nickname = transform(SAMPLE)["properties"]["nickname"]
    assert nickname == {"anyOf": [{"type": "string"}, {"type": "null"}]}


def test_nullable_type_list():
    assert transform({"type": ["integer", "null"]}) == {
        "anyOf": [{"type": "integer"}, {"type": "null"}]
    }


def test_enum_and_const_become_string():
    props = transform(SAMPLE)["properties"]
    assert props["level"] == {"type": "string", "description": "Seniority"}
    assert props["kind"] == {"type": "string"}


def test_nullable_enum_keeps_null():
    nullable = {"anyOf": [{"type": "string"}, {"type": "null"}]}
    assert transform({"type": ["string", "null"], "enum": ["a", "b", None]}) == nullable
    assert transform({"enum": ["a", None]}) == nullable
    assert transform({"type": ["string", "null"], "enum": ["a", "b"]}) == nullable
    assert transform(nullable) == nullable


def test_null_only_enum():
    assert transform({"enum": [None], "title": "Nothing"}) == {"type": "null", "title": "Nothing"}


def test_union_takes_first_alternative():
    assert transform(SAMPLE)["properties"]["score"] == {"type": "number"}


def test_ref_inlined_with_referrer_metadata():
    result = transform(SAMPLE)
    address = result["properties"]["address"]
    assert address["description"] == "Home address"
    assert address["properties"] == {"city": {"type": "string"}}
    assert address["additionalProperties"] is False
    assert "$defs" not in result


def test_boolean_default_dropped():
    assert transform(SAMPLE)["properties"]["active"] == {"type": "boolean"}


def test_unknown_nodes_pass_through():
    node = {"not": {"type": "string"}}
    assert transform(node) == node
    assert transform(True) is True


def test_cyclic_ref_left_in_place():
    schema = {
        "$defs": {"Node": {"type": "object", "properties": {"next": {"$ref": "#/$defs/Node"}}}},
        "$ref": "#/$defs/Node",
    }
    result = transform(schema)
    assert result["properties"]["next"] == {"$ref": "#/$defs/Node"}


def test_input_not_mutated():
    before = json.dumps(SAMPLE, sort_keys=True)
    transform(SAMPLE)
    assert json.dumps(SAMPLE, sort_keys=True) == before


def test_resume_schema_fully_inlined():
    schema = get_oracle_schema()
    assert "$ref" not in json.dumps(schema)
    assert set(schema["properties"]) == {
        "personalInfo", "skills", "workExperience", "education", "projects",
        "certifications", "languages", "overallConfidence", "missingFields",
        "detectedSections",
    }
    confidence = schema["properties"]["personalInfo"]["properties"]["name"]["properties"]
    assert confidence["confidence"]["description"] == "Confidence score between 0 and 1"
    assert "minimum" not in confidence["confidence"]


def test_resume_schema_is_a_fresh_copy():
    schema = get_oracle_schema()
    schema["properties"].clear()
    assert get_oracle_schema()["properties"]
