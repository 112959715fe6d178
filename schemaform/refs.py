"""Local ``$ref`` resolution for schemaform.

Only pointers into the document being evaluated are supported (they start
with ``#``). Resolution never leaves memory: there is no network or
filesystem access.

The ``definitions`` and ``$defs`` segments always address the root
document's definitions table; every other segment indexes into the node
reached so far (a property name, or a list position).

Cycle tracking in ``resolve_all_refs`` uses an immutable frozenset that is
extended for each subtree only. Two sibling branches reaching the same
definition (a "diamond") therefore never see each other's pointers, while a
pointer revisited along one branch is reported as circular.
"""

import logging
from typing import Any, FrozenSet, Mapping, Optional
from urllib.parse import unquote

from schemaform.errors import (
    CircularReferenceError,
    MissingRootSchemaError,
    UnresolvedReferenceError,
    UnsupportedReferenceError,
)


logger = logging.getLogger(__name__)

DEFINITION_TABLES = ("definitions", "$defs")

# Keywords whose value is a single sub-schema
_SCHEMA_KEYWORDS = (
    "additionalItems",
    "additionalProperties",
    "contains",
    "propertyNames",
    "not",
    "if",
    "then",
    "else",
)
# Keywords whose value is a list of sub-schemas
_SCHEMA_LIST_KEYWORDS = ("allOf", "anyOf", "oneOf")
# Keywords whose value maps names to sub-schemas
_SCHEMA_MAP_KEYWORDS = ("properties", "patternProperties", "dependentSchemas")


def _unescape(segment: str) -> str:
    return unquote(segment).replace("~1", "/").replace("~0", "~")


def _definitions_table(root: Mapping[str, Any], segment: str) -> Any:
    table = root.get(segment)
    if table is None:
        other = "$defs" if segment == "definitions" else "definitions"
        table = root.get(other)
    return table if table is not None else {}


def resolve_ref(ref: str, root: Mapping[str, Any]) -> Any:
    """Resolve a local JSON pointer against the root document.

    Args:
        ref: A pointer such as ``#/definitions/User/properties/name``
        root: The document the pointer addresses

    Returns:
        The node the pointer addresses (a schema mapping or a boolean)

    Raises:
        UnsupportedReferenceError: If the pointer does not start with ``#``
        UnresolvedReferenceError: If a segment does not exist

    Examples:
        >>> root = {"definitions": {"User": {"properties": {"name": {"type": "string"}}}}}
        >>> resolve_ref("#/definitions/User/properties/name", root)
        {'type': 'string'}
        >>> resolve_ref("#", root) is root
        True
    """
    if not isinstance(ref, str) or not ref.startswith("#"):
        raise UnsupportedReferenceError(ref)

    current: Any = root
    for raw_segment in ref[1:].split("/"):
        if not raw_segment:
            continue
        if raw_segment in DEFINITION_TABLES:
            current = _definitions_table(root, raw_segment)
            continue

        segment = _unescape(raw_segment)
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        elif isinstance(current, (list, tuple)) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            raise UnresolvedReferenceError(ref, segment)

    logger.debug("Resolved $ref %s", ref)
    return current


def resolve_schema_ref(schema: Any, root: Optional[Mapping[str, Any]] = None) -> Any:
    """Return the schema a node points to, or the node itself if it has no ``$ref``.

    Raises:
        MissingRootSchemaError: If the node has a ``$ref`` and no root was given
    """
    if not isinstance(schema, Mapping) or "$ref" not in schema:
        return schema
    if root is None:
        raise MissingRootSchemaError(schema["$ref"])
    return resolve_ref(schema["$ref"], root)


def resolve_all_refs(
    schema: Any,
    root: Mapping[str, Any],
    visited: FrozenSet[str] = frozenset(),
) -> Any:
    """Return a copy of ``schema`` with every reachable ``$ref`` inlined.

    Sub-schemas are reached through properties, pattern properties, array
    items (single or tuple), composition lists, ``not``, the conditional
    keywords and the other single-schema applicators. The input is never
    modified, and a schema without references comes back equal to itself.

    Args:
        schema: The node to resolve (a mapping or a boolean)
        root: The document all pointers address
        visited: Pointers already followed on the current branch

    Raises:
        CircularReferenceError: If a pointer is revisited along one branch
        UnsupportedReferenceError: For non-local pointers
        UnresolvedReferenceError: For dangling pointers
    """
    if not isinstance(schema, Mapping):
        return schema

    ref = schema.get("$ref")
    if ref is not None:
        if ref in visited:
            logger.debug("Cycle through %s along %s", ref, sorted(visited))
            raise CircularReferenceError(ref)
        return resolve_all_refs(resolve_ref(ref, root), root, visited | {ref})

    result = dict(schema)

    for keyword in _SCHEMA_MAP_KEYWORDS:
        if isinstance(schema.get(keyword), Mapping):
            result[keyword] = {
                name: resolve_all_refs(sub, root, visited)
                for name, sub in schema[keyword].items()
            }

    items = schema.get("items")
    if isinstance(items, (list, tuple)):
        result["items"] = [resolve_all_refs(item, root, visited) for item in items]
    elif items is not None:
        result["items"] = resolve_all_refs(items, root, visited)

    for keyword in _SCHEMA_LIST_KEYWORDS:
        if isinstance(schema.get(keyword), (list, tuple)):
            result[keyword] = [resolve_all_refs(sub, root, visited) for sub in schema[keyword]]

    for keyword in _SCHEMA_KEYWORDS:
        if keyword in schema:
            result[keyword] = resolve_all_refs(schema[keyword], root, visited)

    return result


__all__ = [
    "resolve_ref",
    "resolve_schema_ref",
    "resolve_all_refs",
]
