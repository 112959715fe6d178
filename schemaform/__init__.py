"""schemaform: a JSON Schema interpreter for validation and form building.

schemaform reads a draft-07 style schema document (loosely accepting
``$defs`` and ``dependentRequired``) and interprets it three ways:
- A boolean accept/reject check that stops at the first violation
- A diagnostic pass producing path-addressed, coded validation errors
- A flattener that turns the schema into per-field descriptors and compiles
  them against any fluent, path-addressed validation builder

Both evaluators are driven by one rule table, so a value is accepted exactly
when the diagnostic pass reports no errors.

Basic usage:
    >>> from schemaform import SchemaValidator
    >>> schema = {
    ...     "type": "object",
    ...     "properties": {"name": {"type": "string", "minLength": 3}},
    ...     "required": ["name"]
    ... }
    >>> validator = SchemaValidator(schema)
    >>> result = validator.validate({"name": "Jo"})
    >>> [(e.path, e.code.value) for e in result.errors]
    [('name', 'MIN_LENGTH')]
"""

__version__ = "0.1.0"
__author__ = "schemaform contributors"

# Version info
VERSION = (0, 1, 0)

# Core exports
from schemaform.core import validate_value
from schemaform.diagnostics import get_detailed_errors, get_specific_errors, group_errors_by_path
from schemaform.dsl import FieldConstraints, FieldDSL, compile_field, convert_schema_to_dsl, register_schema
from schemaform.errors import (
    CircularReferenceError,
    MissingRootSchemaError,
    SchemaReferenceError,
    UnresolvedReferenceError,
    UnsupportedReferenceError,
    ValidationError,
)
from schemaform.refs import resolve_all_refs, resolve_ref, resolve_schema_ref
from schemaform.types import UNDEFINED, BaseType, ErrorCode, ValidatorOptions
from schemaform.validation import SchemaValidator, ValidationResult

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "SchemaValidator",
    "ValidationResult",
    "ValidatorOptions",
    "validate_value",
    "get_detailed_errors",
    "get_specific_errors",
    "group_errors_by_path",
    "resolve_ref",
    "resolve_schema_ref",
    "resolve_all_refs",
    "FieldDSL",
    "FieldConstraints",
    "convert_schema_to_dsl",
    "compile_field",
    "register_schema",
    "ValidationError",
    "ErrorCode",
    "BaseType",
    "UNDEFINED",
    "SchemaReferenceError",
    "UnsupportedReferenceError",
    "UnresolvedReferenceError",
    "CircularReferenceError",
    "MissingRootSchemaError",
]
