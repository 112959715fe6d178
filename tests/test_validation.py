"""Unit tests for the SchemaValidator facade.

Tests cover:
- Missing required fields (root level and nested)
- Invalid fields and ValidationResult structure
- Options, custom formats and schema meta-validation
- Filtering, grouping, ref inlining and field flattening
"""

import pytest
from jsonschema.exceptions import SchemaError

from schemaform.errors import CircularReferenceError
from schemaform.types import ErrorCode, ValidatorOptions
from schemaform.validation import SchemaValidator, ValidationResult


PERSON_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 2},
        "email": {"type": "string", "format": "email"},
        "age": {"type": "integer", "minimum": 0},
        "address": {
            "type": "object",
            "properties": {"street": {"type": "string"}, "city": {"type": "string"}},
            "required": ["city"],
        },
    },
    "required": ["name", "email"],
}


class TestMissingFields:
    """Test validation of missing required fields."""

    def test_multiple_missing_required_fields(self):
        """Should return a REQUIRED error for each missing field."""
        result = SchemaValidator(PERSON_SCHEMA).validate({})

        assert result.is_valid is False
        assert [error.code for error in result.errors] == [ErrorCode.REQUIRED, ErrorCode.REQUIRED]
        assert result.missing_fields == ["name", "email"]
        assert result.invalid_fields == []

    def test_missing_nested_field(self):
        """Should report the full path of a missing nested field."""
        data = {"name": "Alice", "email": "alice@example.com", "address": {"street": "Main St"}}
        result = SchemaValidator(PERSON_SCHEMA).validate(data)

        assert result.is_valid is False
        assert result.missing_fields == ["address.city"]
        assert "city" in result.errors[0].message

    def test_optional_fields_can_be_omitted(self):
        """Should pass validation when optional fields are omitted."""
        result = SchemaValidator(PERSON_SCHEMA).validate({"name": "Alice", "email": "alice@example.com"})

        assert result.is_valid is True
        assert result.errors == []
        assert result.missing_fields == []
        assert result.data == {"name": "Alice", "email": "alice@example.com"}


class TestInvalidFields:
    """Test validation of present but invalid fields."""

    def test_invalid_fields_are_listed_once(self):
        """Should list each failing path once even with several errors."""
        schema = {"properties": {"code": {"type": "string", "minLength": 3, "pattern": "^[A-Z]+$"}}}
        result = SchemaValidator(schema).validate({"code": "a"})

        assert [error.code for error in result.errors] == [ErrorCode.MIN_LENGTH, ErrorCode.PATTERN]
        assert result.invalid_fields == ["code"]

    def test_mixed_missing_and_invalid(self):
        """Should separate missing fields from invalid ones."""
        result = SchemaValidator(PERSON_SCHEMA).validate({"name": "A", "age": -1})

        assert result.missing_fields == ["email"]
        assert result.invalid_fields == ["name", "age"]

    def test_is_valid_shortcut(self):
        """Should answer the boolean check directly."""
        validator = SchemaValidator(PERSON_SCHEMA)
        assert validator.is_valid({"name": "Alice", "email": "alice@example.com", "age": 30}) is True
        assert validator.is_valid({"name": "Alice", "email": "not-an-email"}) is False

    def test_non_object_data(self):
        """Should report a root type mismatch for non-object data."""
        result = SchemaValidator(PERSON_SCHEMA).validate(["not", "an", "object"])
        assert [(error.path, error.code) for error in result.errors] == [("", ErrorCode.TYPE_MISMATCH)]


class TestValidationResult:
    """Test ValidationResult helpers."""

    def test_to_dict(self):
        """Should serialize with camelCase keys."""
        result = SchemaValidator(PERSON_SCHEMA).validate({"name": "Alice"})
        data = result.to_dict()

        assert data["isValid"] is False
        assert data["missingFields"] == ["email"]
        assert data["invalidFields"] == []
        assert data["errors"][0]["code"] == "REQUIRED"
        assert data["errors"][0]["path"] == "email"

    def test_to_dict_omits_unset_members(self):
        """Should omit None members."""
        assert ValidationResult(is_valid=True, errors=[]).to_dict() == {"isValid": True, "errors": []}

    def test_errors_by_path(self):
        """Should group errors per field."""
        result = SchemaValidator(PERSON_SCHEMA).validate({"name": "A", "email": "x"})
        grouped = result.errors_by_path()
        assert list(grouped) == ["name", "email"]
        assert [error.code for error in grouped["email"]] == [ErrorCode.FORMAT]


class TestOptions:
    """Test validator configuration."""

    def test_custom_formats(self):
        """Should consult custom formats before built-ins."""
        schema = {"properties": {"sku": {"type": "string", "format": "sku"}}}
        validator = SchemaValidator(schema, custom_formats={"sku": lambda value: value.startswith("SKU-")})

        assert validator.is_valid({"sku": "SKU-1"}) is True
        assert [error.code for error in validator.validate({"sku": "1"}).errors] == [ErrorCode.FORMAT]

    def test_from_options(self):
        """Should build a validator from ValidatorOptions."""
        options = ValidatorOptions(custom_formats={"email": lambda value: True})
        validator = SchemaValidator.from_options(PERSON_SCHEMA, options)
        assert validator.is_valid({"name": "Alice", "email": "whatever"}) is True

    def test_options_round_trip(self):
        """Should serialize options with camelCase keys."""
        options = ValidatorOptions.from_dict({"checkSchema": True})
        assert options.check_schema is True
        assert options.custom_formats == {}
        assert options.to_dict() == {"checkSchema": True}

    def test_check_schema_rejects_invalid_document(self):
        """Should reject a malformed schema when asked to."""
        with pytest.raises(SchemaError):
            SchemaValidator({"type": 12}, check_schema=True)

    def test_check_schema_accepts_valid_document(self):
        """Should accept a well-formed draft-07 schema."""
        validator = SchemaValidator(PERSON_SCHEMA, check_schema=True)
        assert validator.schema is PERSON_SCHEMA

    def test_check_schema_off_by_default(self):
        """Should not meta-validate unless asked to."""
        validator = SchemaValidator({"type": "text"})
        assert validator.is_valid("anything") is False


class TestSchemaViews:
    """Test the other views of the bound schema."""

    def test_errors_for_path(self):
        """Should filter errors to one field."""
        data = {"name": "A", "email": "x", "address": {"city": 1}}
        validator = SchemaValidator(PERSON_SCHEMA)

        assert [error.path for error in validator.errors_for(data, "address")] == ["address.city"]
        assert [error.path for error in validator.errors_for(data, "/email")] == ["email"]

    def test_resolved_schema(self):
        """Should inline references."""
        schema = {
            "definitions": {"Name": {"type": "string"}},
            "properties": {"name": {"$ref": "#/definitions/Name"}},
        }
        assert SchemaValidator(schema).resolved_schema()["properties"]["name"] == {"type": "string"}

    def test_resolved_schema_rejects_recursion(self):
        """Should raise for recursive schemas."""
        schema = {
            "definitions": {"Node": {"properties": {"next": {"$ref": "#/definitions/Node"}}}},
            "$ref": "#/definitions/Node",
        }
        with pytest.raises(CircularReferenceError):
            SchemaValidator(schema).resolved_schema()

    def test_recursive_schema_still_validates(self):
        """Should validate recursive data even though inlining is impossible."""
        schema = {
            "definitions": {
                "Node": {"type": "object", "properties": {"next": {"$ref": "#/definitions/Node"}, "v": {"type": "number"}}}
            },
            "$ref": "#/definitions/Node",
        }
        validator = SchemaValidator(schema)
        assert validator.is_valid({"v": 1, "next": {"v": 2, "next": {"v": 3}}}) is True
        errors = validator.validate({"v": 1, "next": {"next": {"v": "x"}}}).errors
        assert [(error.path, error.code) for error in errors] == [("next.next.v", ErrorCode.TYPE_MISMATCH)]

    def test_to_field_dsl(self):
        """Should flatten the bound schema."""
        paths = [field.path for field in SchemaValidator(PERSON_SCHEMA).to_field_dsl()]
        assert paths == ["name", "email", "age", "address", "address.street", "address.city"]
