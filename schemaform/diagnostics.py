"""Diagnostic schema evaluation.

Produces the full, path-addressed list of ValidationError objects for a
value. Diagnostics are only computed on failure: the boolean evaluator runs
first and an accepted value returns an empty list straight away.

Paths use ``.`` between object keys and ``[n]`` for array positions; the
empty string addresses the document root. Errors can be filtered to one
field (``get_specific_errors``) or grouped per field for display
(``group_errors_by_path``).
"""

from typing import Any, Dict, List, Mapping, Optional

from schemaform.core import validate_value
from schemaform.errors import ValidationError
from schemaform.keywords import iter_errors
from schemaform.types import CustomFormats


def get_detailed_errors(
    value: Any,
    schema: Any,
    root: Optional[Mapping[str, Any]] = None,
    path: str = "",
    custom_formats: Optional[CustomFormats] = None,
) -> List[ValidationError]:
    """Collect every validation error of a value against a schema.

    A type mismatch is reported once and suppresses the checks beneath it;
    every other violated constraint contributes its own entry.

    Args:
        value: Decoded data to check
        schema: A schema mapping or a boolean schema
        root: Document ``$ref`` pointers resolve against; defaults to ``schema``
        path: Prefix for every reported path
        custom_formats: Format checks consulted before the built-in ones

    Returns:
        List of errors in evaluation order; empty if the value is valid

    Examples:
        >>> schema = {
        ...     "type": "object",
        ...     "properties": {"name": {"type": "string", "minLength": 3}},
        ...     "required": ["name"],
        ... }
        >>> [(e.path, e.code.value) for e in get_detailed_errors({"name": "Jo"}, schema)]
        [('name', 'MIN_LENGTH')]
    """
    if validate_value(value, schema, root=root, custom_formats=custom_formats):
        return []
    return list(iter_errors(value, schema, root=root, path=path, custom_formats=custom_formats))


def normalize_path(target_path: str) -> str:
    """Accept a JSON-pointer style path (``/a/b``) as well as a dotted one."""
    if target_path.startswith("/"):
        return target_path[1:].replace("/", ".")
    return target_path


def is_under_path(error_path: str, target_path: str) -> bool:
    """Whether ``error_path`` equals ``target_path`` or is nested beneath it.

    Nesting is by a ``.`` or ``[`` boundary, so the empty root path keeps
    root-level errors and those of root array items only.
    """
    if error_path == target_path:
        return True
    return error_path.startswith(target_path + ".") or error_path.startswith(target_path + "[")


def get_specific_errors(
    value: Any,
    schema: Any,
    target_path: str,
    root: Optional[Mapping[str, Any]] = None,
    custom_formats: Optional[CustomFormats] = None,
) -> List[ValidationError]:
    """Collect only the errors at, or nested under, one field path.

    Examples:
        >>> schema = {"properties": {"a": {"properties": {"b": {"type": "number"}}}}}
        >>> [e.path for e in get_specific_errors({"a": {"b": "x"}}, schema, "/a")]
        ['a.b']
    """
    target = normalize_path(target_path)
    errors = get_detailed_errors(value, schema, root=root, custom_formats=custom_formats)
    return [error for error in errors if is_under_path(error.path, target)]


def group_errors_by_path(errors: List[ValidationError]) -> Dict[str, List[ValidationError]]:
    """Group errors per field path, keeping first-seen order."""
    grouped: Dict[str, List[ValidationError]] = {}
    for error in errors:
        grouped.setdefault(error.path, []).append(error)
    return grouped


__all__ = [
    "get_detailed_errors",
    "get_specific_errors",
    "group_errors_by_path",
    "normalize_path",
]
