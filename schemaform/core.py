"""Boolean schema evaluation.

``validate_value`` answers accept/reject for a value against a schema. It
is the first-error view of the shared rule table in ``schemaform.keywords``
and stops evaluating at the first violated constraint.
"""

from typing import Any, Mapping, Optional

from schemaform._utils import deep_equal, has_duplicates, validate_multiple_types, validate_type
from schemaform.keywords import iter_errors
from schemaform.types import CustomFormats


def validate_value(
    value: Any,
    schema: Any,
    root: Optional[Mapping[str, Any]] = None,
    custom_formats: Optional[CustomFormats] = None,
) -> bool:
    """Check whether a value satisfies a schema.

    Args:
        value: Decoded data to check
        schema: A schema mapping or a boolean schema
        root: Document ``$ref`` pointers resolve against; defaults to ``schema``
        custom_formats: Format checks consulted before the built-in ones

    Returns:
        True if the value is accepted

    Raises:
        SchemaReferenceError: If a ``$ref`` met during evaluation cannot be followed

    Examples:
        >>> validate_value("abc", {"type": "string", "minLength": 2})
        True
        >>> validate_value(None, {"type": ["string", "null"]})
        True
        >>> validate_value(1.5, {"type": "integer"})
        False
    """
    return next(iter_errors(value, schema, root=root, custom_formats=custom_formats), None) is None


__all__ = [
    "validate_value",
    "validate_type",
    "validate_multiple_types",
    "deep_equal",
    "has_duplicates",
]
