"""Unit tests for local $ref resolution.

Tests cover:
- Pointer resolution into definitions/$defs, properties and list positions
- Unsupported, dangling and root-less references
- Deep resolution: diamonds, cycles, idempotence, no input mutation
"""

import copy

import pytest

from schemaform.errors import (
    CircularReferenceError,
    MissingRootSchemaError,
    SchemaReferenceError,
    UnresolvedReferenceError,
    UnsupportedReferenceError,
)
from schemaform.refs import resolve_all_refs, resolve_ref, resolve_schema_ref


USER_ROOT = {
    "definitions": {
        "User": {
            "type": "object",
            "properties": {"name": {"type": "string"}},
        }
    }
}


class TestResolveRef:
    """Test resolving a single pointer."""

    def test_resolves_nested_definition_property(self):
        """Should walk definitions then property names."""
        assert resolve_ref("#/definitions/User/properties/name", USER_ROOT) == {"type": "string"}

    def test_bare_hash_is_root(self):
        """Should return the root document for '#'."""
        assert resolve_ref("#", USER_ROOT) is USER_ROOT

    def test_defs_alias_falls_back_to_definitions(self):
        """Should treat $defs and definitions as the same table."""
        assert resolve_ref("#/$defs/User", USER_ROOT) is USER_ROOT["definitions"]["User"]

    def test_definitions_alias_falls_back_to_defs(self):
        """Should find #/definitions pointers in a $defs table."""
        root = {"$defs": {"Age": {"type": "integer"}}}
        assert resolve_ref("#/definitions/Age", root) == {"type": "integer"}

    def test_escaped_segments(self):
        """Should unescape ~1 and ~0 in pointer segments."""
        root = {"definitions": {"a/b": {"type": "string"}, "c~d": {"type": "number"}}}
        assert resolve_ref("#/definitions/a~1b", root) == {"type": "string"}
        assert resolve_ref("#/definitions/c~0d", root) == {"type": "number"}

    def test_list_index_segment(self):
        """Should index into tuple-form items by position."""
        root = {"definitions": {"Pair": {"items": [{"type": "string"}, {"type": "number"}]}}}
        assert resolve_ref("#/definitions/Pair/items/1", root) == {"type": "number"}

    def test_external_reference_rejected(self):
        """Should reject pointers into other documents."""
        with pytest.raises(UnsupportedReferenceError) as exc_info:
            resolve_ref("other.json#/definitions/User", USER_ROOT)
        assert exc_info.value.ref == "other.json#/definitions/User"

    def test_missing_segment(self):
        """Should report the segment that does not exist."""
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            resolve_ref("#/definitions/Missing", USER_ROOT)
        assert exc_info.value.segment == "Missing"
        assert "Missing" in str(exc_info.value)

    def test_reference_errors_share_base_class(self):
        """Should let callers catch every reference failure at once."""
        with pytest.raises(SchemaReferenceError):
            resolve_ref("#/definitions/Nope", USER_ROOT)


class TestResolveSchemaRef:
    """Test following a node's $ref."""

    def test_identity_without_ref(self):
        """Should return the node itself when it has no $ref."""
        schema = {"type": "string"}
        assert resolve_schema_ref(schema, USER_ROOT) is schema

    def test_boolean_schema_passes_through(self):
        """Should return boolean schemas unchanged."""
        assert resolve_schema_ref(True) is True

    def test_follows_ref(self):
        """Should return the target of the pointer."""
        assert resolve_schema_ref({"$ref": "#/definitions/User"}, USER_ROOT) is USER_ROOT["definitions"]["User"]

    def test_requires_root(self):
        """Should fail when a pointer has no document to resolve against."""
        with pytest.raises(MissingRootSchemaError):
            resolve_schema_ref({"$ref": "#/definitions/User"})


class TestResolveAllRefs:
    """Test deep resolution of every reachable $ref."""

    def test_inlines_property_refs(self):
        """Should replace property $refs by their targets."""
        root = {
            "definitions": {"Name": {"type": "string", "minLength": 1}},
            "type": "object",
            "properties": {"first": {"$ref": "#/definitions/Name"}},
        }
        resolved = resolve_all_refs(root, root)
        assert resolved["properties"]["first"] == {"type": "string", "minLength": 1}

    def test_inlines_items_composition_and_conditionals(self):
        """Should reach items, composition lists, not and if/then/else."""
        root = {
            "definitions": {"S": {"type": "string"}},
            "items": [{"$ref": "#/definitions/S"}],
            "anyOf": [{"$ref": "#/definitions/S"}, {"type": "number"}],
            "not": {"$ref": "#/definitions/S"},
            "if": {"$ref": "#/definitions/S"},
            "then": {"$ref": "#/definitions/S"},
            "else": {"$ref": "#/definitions/S"},
        }
        resolved = resolve_all_refs(root, root)
        assert resolved["items"] == [{"type": "string"}]
        assert resolved["anyOf"] == [{"type": "string"}, {"type": "number"}]
        for keyword in ("not", "if", "then", "else"):
            assert resolved[keyword] == {"type": "string"}

    def test_diamond_is_not_a_cycle(self):
        """Should allow sibling properties referencing the same definition."""
        root = {
            "definitions": {"Address": {"type": "object", "properties": {"city": {"type": "string"}}}},
            "type": "object",
            "properties": {
                "billing": {"$ref": "#/definitions/Address"},
                "shipping": {"$ref": "#/definitions/Address"},
            },
        }
        resolved = resolve_all_refs(root, root)
        assert resolved["properties"]["billing"] == resolved["properties"]["shipping"]

    def test_self_reference_along_one_path_is_a_cycle(self):
        """Should raise when a definition reaches itself."""
        root = {
            "definitions": {
                "Node": {"type": "object", "properties": {"child": {"$ref": "#/definitions/Node"}}}
            },
            "properties": {"tree": {"$ref": "#/definitions/Node"}},
        }
        with pytest.raises(CircularReferenceError) as exc_info:
            resolve_all_refs(root, root)
        assert exc_info.value.ref == "#/definitions/Node"

    def test_ref_chain_loop_is_a_cycle(self):
        """Should raise for references that only point at each other."""
        root = {
            "definitions": {"A": {"$ref": "#/definitions/B"}, "B": {"$ref": "#/definitions/A"}},
            "$ref": "#/definitions/A",
        }
        with pytest.raises(CircularReferenceError):
            resolve_all_refs(root, root)

    def test_resolution_is_idempotent(self):
        """Should leave an already-resolved schema unchanged."""
        root = {
            "definitions": {"Tag": {"type": "string"}},
            "properties": {"tags": {"type": "array", "items": {"$ref": "#/definitions/Tag"}}},
        }
        once = resolve_all_refs(root, root)
        assert resolve_all_refs(once, once) == once

    def test_input_is_not_mutated(self):
        """Should build a new document instead of editing the input."""
        root = {
            "definitions": {"Tag": {"type": "string"}},
            "properties": {"tag": {"$ref": "#/definitions/Tag"}},
        }
        snapshot = copy.deepcopy(root)
        resolve_all_refs(root, root)
        assert root == snapshot
