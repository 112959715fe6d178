"""Schema validation facade for schemaform.

This module provides a SchemaValidator that binds one schema document to its
options and exposes the three ways of interpreting it: a boolean check, a
structured diagnostic result, and the flattened field descriptors used to
drive an external builder.

The schema document itself can optionally be checked against the draft-07
meta-schema with jsonschema before any data is validated.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft7Validator

from schemaform.core import validate_value
from schemaform.diagnostics import get_detailed_errors, get_specific_errors, group_errors_by_path
from schemaform.dsl import FieldDSL, convert_schema_to_dsl
from schemaform.errors import ValidationError
from schemaform.refs import resolve_all_refs
from schemaform.types import CustomFormats, ErrorCode, ValidatorOptions


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating data against a schema.

    Attributes:
        is_valid: Whether the data passed all validation checks
        errors: List of path-addressed validation errors (empty if valid)
        data: The validated data, unchanged
        missing_fields: Paths reported as REQUIRED
        invalid_fields: Paths that failed any other check, without duplicates

    Examples:
        >>> schema = {'type': 'object', 'properties': {'name': {'type': 'string'}}, 'required': ['name']}
        >>> validator = SchemaValidator(schema)
        >>> result = validator.validate({'name': 'test'})
        >>> result.is_valid
        True
        >>> result.errors
        []
    """
    is_valid: bool
    errors: List[ValidationError]
    data: Any = None
    missing_fields: Optional[List[str]] = None
    invalid_fields: Optional[List[str]] = None

    def errors_by_path(self) -> Dict[str, List[ValidationError]]:
        """Group the errors per field path for field-level display."""
        return group_errors_by_path(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
        }
        if self.data is not None:
            result["data"] = self.data
        if self.missing_fields is not None:
            result["missingFields"] = self.missing_fields
        if self.invalid_fields is not None:
            result["invalidFields"] = self.invalid_fields
        return result


class SchemaValidator:
    """Validator bound to one schema document.

    The schema is its own root: every ``$ref`` resolves against it.

    Attributes:
        schema: The schema document to validate against
        custom_formats: Format checks consulted before the built-in ones

    Examples:
        >>> schema = {
        ...     'type': 'object',
        ...     'properties': {
        ...         'name': {'type': 'string'},
        ...         'age': {'type': 'number', 'minimum': 0}
        ...     },
        ...     'required': ['name']
        ... }
        >>> validator = SchemaValidator(schema)
        >>> validator.is_valid({'name': 'Alice', 'age': 30})
        True

        >>> result = validator.validate({'age': -5})
        >>> result.is_valid
        False
        >>> len(result.errors)
        2
    """

    def __init__(
        self,
        schema: Mapping[str, Any],
        custom_formats: Optional[CustomFormats] = None,
        check_schema: bool = False,
    ) -> None:
        """Initialize the validator with a schema document.

        Args:
            schema: A schema document (draft-07, loosely accepting ``$defs``)
            custom_formats: Format name to ``str -> bool`` check
            check_schema: Reject the document up front if it is not a valid
                draft-07 schema

        Raises:
            jsonschema.SchemaError: If ``check_schema`` is set and the schema is invalid
        """
        if check_schema:
            Draft7Validator.check_schema(schema)
        self.schema = schema
        self.custom_formats = dict(custom_formats or {})

    @classmethod
    def from_options(cls, schema: Mapping[str, Any], options: ValidatorOptions) -> "SchemaValidator":
        """Create a validator configured by a ValidatorOptions value."""
        return cls(schema, custom_formats=options.custom_formats, check_schema=options.check_schema)

    def is_valid(self, data: Any) -> bool:
        """Boolean check, stopping at the first violated constraint."""
        return validate_value(data, self.schema, root=self.schema, custom_formats=self.custom_formats)

    def validate(self, data: Any) -> ValidationResult:
        """Validate data against the schema.

        Args:
            data: Decoded data to validate

        Returns:
            ValidationResult with is_valid flag, errors list and field summaries

        Raises:
            SchemaReferenceError: If a ``$ref`` met during evaluation cannot be followed

        Examples:
            >>> validator = SchemaValidator({'type': 'object', 'required': ['email']})
            >>> result = validator.validate({})
            >>> result.missing_fields
            ['email']
            >>> result.errors[0].code
            <ErrorCode.REQUIRED: 'REQUIRED'>
        """
        errors = get_detailed_errors(data, self.schema, root=self.schema, custom_formats=self.custom_formats)

        if not errors:
            return ValidationResult(
                is_valid=True,
                errors=[],
                data=data,
                missing_fields=[],
                invalid_fields=[],
            )

        missing_fields: List[str] = []
        invalid_fields: List[str] = []
        for error in errors:
            if error.code == ErrorCode.REQUIRED:
                missing_fields.append(error.path)
            elif error.path not in invalid_fields:
                invalid_fields.append(error.path)

        logger.debug("Validation failed with %d error(s)", len(errors))
        return ValidationResult(
            is_valid=False,
            errors=errors,
            data=data,
            missing_fields=missing_fields,
            invalid_fields=invalid_fields,
        )

    def errors_for(self, data: Any, path: str) -> List[ValidationError]:
        """Errors at, or nested under, one field path (dotted or ``/a/b``)."""
        return get_specific_errors(data, self.schema, path, root=self.schema, custom_formats=self.custom_formats)

    def resolved_schema(self) -> Any:
        """The schema with every reachable ``$ref`` inlined.

        Raises:
            CircularReferenceError: If the schema is recursive
        """
        return resolve_all_refs(self.schema, self.schema)

    def to_field_dsl(self) -> List[FieldDSL]:
        """Flatten the schema into field descriptors."""
        return convert_schema_to_dsl(self.schema)


__all__ = [
    "SchemaValidator",
    "ValidationResult",
]
