"""Agreement tests between the two evaluators.

For every (schema, value) pair the boolean evaluator must accept exactly
when the diagnostic evaluator reports no errors. The shared draft-07 corpus
is also checked against jsonschema's Draft7Validator as an independent
reference.
"""

import pytest
from jsonschema import Draft7Validator

from schemaform.core import validate_value
from schemaform.diagnostics import get_detailed_errors
from schemaform.keywords import iter_errors
from schemaform.types import UNDEFINED


ADDRESS = {
    "type": "object",
    "properties": {"city": {"type": "string", "minLength": 1}, "zip": {"type": "string", "pattern": "^[0-9]{5}$"}},
    "required": ["city"],
}

TREE = {
    "definitions": {
        "Node": {
            "type": "object",
            "properties": {
                "value": {"type": "integer"},
                "children": {"type": "array", "items": {"$ref": "#/definitions/Node"}},
            },
            "required": ["value"],
        }
    },
    "$ref": "#/definitions/Node",
}

CONDITIONAL = {
    "type": "object",
    "if": {"properties": {"kind": {"const": "company"}}, "required": ["kind"]},
    "then": {"required": ["vat"]},
    "else": {"properties": {"vat": False}},
}

# Cases where draft-07 semantics and schemaform semantics coincide
DRAFT7_CASES = [
    ({"type": "string"}, "a"),
    ({"type": "string"}, 1),
    ({"type": "integer"}, 3.0),
    ({"type": "integer"}, 3.5),
    ({"type": "number"}, True),
    ({"type": ["string", "null"]}, None),
    ({"type": "string"}, None),
    ({"enum": [1, "a", None]}, None),
    ({"enum": [1, "a"]}, True),
    ({"const": {"a": [1, 2]}}, {"a": [1, 2]}),
    ({"const": False}, 0),
    ({"type": "string", "minLength": 2, "maxLength": 3}, "abcd"),
    ({"type": "string", "pattern": "b"}, "abc"),
    ({"type": "number", "minimum": 1, "maximum": 5}, 5),
    ({"type": "number", "exclusiveMinimum": 1}, 1),
    ({"type": "number", "exclusiveMaximum": 5}, 4.99),
    ({"type": "number", "multipleOf": 3}, 12),
    ({"type": "number", "multipleOf": 2.5}, 7),
    ({"type": "array", "minItems": 2, "uniqueItems": True}, [1, 1]),
    ({"type": "array", "uniqueItems": True}, [1, True, "1"]),
    ({"type": "array", "items": {"type": "number"}}, [1, 2, "3"]),
    ({"type": "array", "items": [{"type": "string"}], "additionalItems": False}, ["a", "b"]),
    ({"type": "array", "items": [{"type": "string"}], "additionalItems": {"type": "number"}}, ["a", 1]),
    ({"type": "array", "contains": {"const": 3}}, [1, 2, 3]),
    ({"type": "array", "contains": {"const": 3}}, []),
    (ADDRESS, {"city": "Oslo", "zip": "01234"}),
    (ADDRESS, {"city": "", "zip": "1"}),
    (ADDRESS, {"zip": "01234"}),
    ({"type": "object", "minProperties": 1, "maxProperties": 1}, {"a": 1, "b": 2}),
    ({"type": "object", "patternProperties": {"^n_": {"type": "number"}}, "additionalProperties": False}, {"n_a": 1}),
    ({"type": "object", "patternProperties": {"^n_": {"type": "number"}}, "additionalProperties": False}, {"n_a": 1, "b": 2}),
    ({"type": "object", "additionalProperties": {"type": "boolean"}}, {"flag": "yes"}),
    ({"type": "object", "propertyNames": {"maxLength": 2}}, {"ab": 1, "abc": 2}),
    ({"type": "object", "dependencies": {"a": ["b"]}}, {"a": 1}),
    ({"type": "object", "dependencies": {"a": {"required": ["c"]}}}, {"a": 1, "c": 2}),
    ({"allOf": [{"type": "string"}, {"maxLength": 2}]}, "abc"),
    ({"anyOf": [{"type": "string"}, {"type": "number"}]}, None),
    ({"oneOf": [{"type": "string", "maxLength": 5}, {"type": "string", "minLength": 3}]}, "abcd"),
    ({"oneOf": [{"type": "string", "maxLength": 5}, {"type": "string", "minLength": 3}]}, "abcdefgh"),
    ({"not": {"type": "null"}}, None),
    ({"allOf": [True, {"not": False}]}, "x"),
    ({"anyOf": [False, False]}, "x"),
    (CONDITIONAL, {"kind": "company", "vat": "NO123"}),
    (CONDITIONAL, {"kind": "company"}),
    (CONDITIONAL, {"kind": "person", "vat": "NO123"}),
    (CONDITIONAL, {"kind": "person"}),
    (TREE, {"value": 1, "children": [{"value": 2}, {"value": 3, "children": []}]}),
    (TREE, {"value": 1, "children": [{"value": 2, "children": [{"value": 2.5}]}]}),
    (True, {"anything": [1]}),
    (False, None),
]

# Cases that exercise schemaform-specific semantics
EXTENDED_CASES = DRAFT7_CASES + [
    ({"type": "string"}, UNDEFINED),
    ({}, None),
    ({"minLength": 1}, None),
    ({"const": "ab", "minLength": 5}, "ab"),
    ({"enum": ["ab"], "minLength": 5}, "ab"),
    ({"const": "ab", "enum": ["cd"], "minLength": 5}, "x"),
    ({"type": "string", "format": "email"}, "nope"),
    ({"type": "string", "format": "date"}, "2024-02-29"),
    ({"type": "string", "contentEncoding": "base64"}, "abc"),
    ({"type": "string", "contentMediaType": "application/json"}, "[1, 2]"),
    ({"type": "number", "minimum": 5, "exclusiveMinimum": True}, 5),
    ({"dependentRequired": {"a": ["b"]}}, {"a": 1}),
    ({"$defs": {"S": {"type": "string"}}, "properties": {"s": {"$ref": "#/$defs/S"}}}, {"s": 1}),
]


def _case_id(case):
    schema, value = case
    return f"{schema!r:.40}-{value!r:.20}"


@pytest.mark.parametrize("schema, value", EXTENDED_CASES, ids=[_case_id(c) for c in EXTENDED_CASES])
def test_boolean_and_diagnostic_evaluators_agree(schema, value):
    """The boolean result should equal 'no diagnostic errors'."""
    accepted = validate_value(value, schema)
    assert accepted == (get_detailed_errors(value, schema) == [])
    assert accepted == (list(iter_errors(value, schema)) == [])


@pytest.mark.parametrize("schema, value", DRAFT7_CASES, ids=[_case_id(c) for c in DRAFT7_CASES])
def test_matches_draft7_reference(schema, value):
    """The boolean result should match jsonschema's draft-07 validator."""
    assert validate_value(value, schema) == Draft7Validator(schema).is_valid(value)


class TestAgreementDetails:
    """Test properties of the agreement beyond the boolean result."""

    def test_every_rejection_has_an_error(self):
        """Should never reject a value without explaining why."""
        for schema, value in EXTENDED_CASES:
            if not validate_value(value, schema):
                assert get_detailed_errors(value, schema), (schema, value)

    def test_diagnostics_are_deterministic(self):
        """Should report the same errors on every run."""
        schema, value = ADDRESS, {"city": "", "zip": "1", "extra": True}
        assert get_detailed_errors(value, schema) == get_detailed_errors(value, schema)
