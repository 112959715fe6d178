"""The single rule table behind both schema evaluators.

``iter_errors`` walks a value and a schema together and lazily yields one
ValidationError per violated constraint. Both evaluators are derived from it:

- the boolean evaluator (``schemaform.core.validate_value``) asks only for
  the first error, so the generator stops at the first violation and gives
  the short-circuit behaviour of a hand-written predicate;
- the diagnostic evaluator (``schemaform.diagnostics``) drains it.

A value is therefore valid exactly when ``iter_errors`` yields nothing, for
every schema, by construction.

Evaluation order for one structured schema node:

1. ``$ref`` is followed (chains included; a chain that loops without
   consuming any value raises CircularReferenceError). Rules that re-check
   the same value carry the chain along; descending into a child value
   starts a new one.
2. An UNDEFINED value fails. ``null`` passes outright when ``"null"`` is a
   declared type, and fails unless ``enum``/``const`` will decide it.
3. A type mismatch yields one TYPE_MISMATCH and stops: deeper checks on a
   mistyped value are meaningless.
4. ``const`` decides the node: a match accepts it, a mismatch is reported
   (and ``enum`` is reported too if it also mismatches). Without ``const``,
   ``enum`` decides the node the same way.
5. Kind-specific rules for strings, numbers, arrays and objects.
6. Composition (allOf/anyOf/oneOf/not), then if/then/else.
"""

import base64
import json
import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Callable, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple

from schemaform._utils import (
    deep_equal,
    has_duplicates,
    join_index,
    join_property,
    kind_of,
    pattern_matches,
    validate_multiple_types,
)
from schemaform.errors import CircularReferenceError, ValidationError
from schemaform.formats import validate_format
from schemaform.refs import resolve_schema_ref
from schemaform.schema import SchemaNode, parse_schema
from schemaform.types import UNDEFINED, CustomFormats, ErrorCode, JsonKind


BASE64_ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/")


@dataclass(frozen=True)
class Scope:
    """Per-call evaluation context shared by every rule.

    Attributes:
        root: The document ``$ref`` pointers resolve against
        custom_formats: Caller format checks, consulted before built-ins
    """
    root: Optional[Mapping[str, Any]] = None
    custom_formats: Optional[CustomFormats] = None


Rule = Callable[[Scope, Any, SchemaNode, str, FrozenSet[str]], Iterator[ValidationError]]


def _error(path: str, code: ErrorCode, message: str, value: Any = None, constraint: Any = None) -> ValidationError:
    return ValidationError(path=path, code=code, message=message, value=value, constraint=constraint)


def _describe_types(types: Tuple[str, ...]) -> str:
    return " or ".join(types)


def iter_errors(
    value: Any,
    schema: Any,
    root: Optional[Mapping[str, Any]] = None,
    path: str = "",
    custom_formats: Optional[CustomFormats] = None,
) -> Iterator[ValidationError]:
    """Lazily yield every validation error of ``value`` against ``schema``.

    Args:
        value: Decoded data (None, bool, number, str, list, mapping) or UNDEFINED
        schema: A schema mapping or a boolean schema
        root: Document for ``$ref`` resolution; defaults to ``schema``
        path: Path prefix for reported errors
        custom_formats: Caller format checks

    Raises:
        SchemaReferenceError: When a ``$ref`` cannot be followed. Raised on
            iteration, like every generator.
    """
    if root is None and isinstance(schema, Mapping):
        root = schema
    return descend(Scope(root=root, custom_formats=custom_formats), value, schema, path)


def is_valid(scope: Scope, value: Any, schema: Any, ref_chain: FrozenSet[str] = frozenset()) -> bool:
    return next(descend(scope, value, schema, "", ref_chain), None) is None


def descend(
    scope: Scope,
    value: Any,
    schema: Any,
    path: str,
    ref_chain: FrozenSet[str] = frozenset(),
) -> Iterator[ValidationError]:
    if schema is True:
        return
    if schema is False:
        yield _error(path, ErrorCode.FALSE_SCHEMA, "Schema is false - value is always invalid", value, False)
        return
    if not isinstance(schema, Mapping):
        raise TypeError(f"Schema must be a mapping or a boolean, got {type(schema).__name__}")

    ref = schema.get("$ref")
    if ref is not None:
        if ref in ref_chain:
            raise CircularReferenceError(ref)
        target = resolve_schema_ref(schema, scope.root)
        yield from descend(scope, value, target, path, ref_chain | {ref})
        return

    node = parse_schema(schema)

    if value is UNDEFINED:
        yield _error(path, ErrorCode.REQUIRED, "Value is required", constraint=node.types)
        return

    if value is None:
        if node.allows_null:
            return
        if node.enum is None and not node.has_const:
            expected = _describe_types(node.types) if node.types else "a non-null value"
            yield _error(path, ErrorCode.TYPE_MISMATCH, f"Expected {expected}, got null", value, node.types)
            return

    if node.types is not None and not validate_multiple_types(value, node.types):
        yield _error(
            path,
            ErrorCode.TYPE_MISMATCH,
            f"Expected {_describe_types(node.types)}, got {kind_of(value)}",
            value,
            list(node.types) if len(node.types) > 1 else node.types[0],
        )
        return

    if node.has_const:
        if deep_equal(value, node.const):
            return
        yield _error(path, ErrorCode.CONST, f"Must be equal to {json.dumps(node.const, default=str)}", value, node.const)
        if node.enum is not None and not _in_enum(value, node.enum):
            yield _enum_error(path, value, node.enum)
    elif node.enum is not None:
        if _in_enum(value, node.enum):
            return
        yield _enum_error(path, value, node.enum)

    for rule in _rules_for(value):
        yield from rule(scope, value, node, path, ref_chain)

    for rule in APPLICATOR_RULES:
        yield from rule(scope, value, node, path, ref_chain)


def _in_enum(value: Any, allowed: Tuple[Any, ...]) -> bool:
    return any(deep_equal(value, candidate) for candidate in allowed)


def _enum_error(path: str, value: Any, allowed: Tuple[Any, ...]) -> ValidationError:
    choices = ", ".join(json.dumps(candidate, default=str) for candidate in allowed)
    return _error(path, ErrorCode.ENUM, f"Must be one of: {choices}", value, list(allowed))


# String rules

def min_length(
    scope: Scope, value: str, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.string.min_length
    if limit is not None and len(value) < limit:
        yield _error(path, ErrorCode.MIN_LENGTH, f"String length must be at least {limit}", value, limit)


def max_length(
    scope: Scope, value: str, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.string.max_length
    if limit is not None and len(value) > limit:
        yield _error(path, ErrorCode.MAX_LENGTH, f"String length must be at most {limit}", value, limit)


def pattern(
    scope: Scope, value: str, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    regex = node.string.pattern
    if regex and not pattern_matches(regex, value):
        yield _error(path, ErrorCode.PATTERN, f"String must match pattern: {regex}", value, regex)


def format_(
    scope: Scope, value: str, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    name = node.string.format
    if name and not validate_format(value, name, scope.custom_formats):
        yield _error(path, ErrorCode.FORMAT, f"String must be valid {name}", value, name)


def _is_base64(value: str) -> bool:
    body = value.rstrip("=")
    if len(value) - len(body) > 2 or len(value) % 4 != 0:
        return False
    return all(ch in BASE64_ALPHABET for ch in body)


def content_encoding(
    scope: Scope, value: str, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    encoding = node.string.content_encoding
    if encoding == "base64" and not _is_base64(value):
        yield _error(path, ErrorCode.CONTENT_ENCODING, f"String must be valid {encoding} encoding", value, encoding)


def _is_json_document(value: str, encoding: Optional[str]) -> bool:
    try:
        text = base64.b64decode(value).decode("utf-8") if encoding == "base64" else value
        json.loads(text)
    except ValueError:
        return False
    return True


def content_media_type(
    scope: Scope, value: str, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    media_type = node.string.content_media_type
    encoding = node.string.content_encoding
    if media_type != "application/json":
        return
    if encoding == "base64" and not _is_base64(value):
        # already reported as CONTENT_ENCODING
        return
    if not _is_json_document(value, encoding):
        yield _error(
            path, ErrorCode.CONTENT_MEDIA_TYPE, f"String must be valid {media_type} content", value, media_type
        )


# Number rules

def minimum(
    scope: Scope, value: float, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.number.minimum
    if limit is not None and value < limit:
        yield _error(path, ErrorCode.MINIMUM, f"Number must be at least {limit}", value, limit)


def maximum(
    scope: Scope, value: float, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.number.maximum
    if limit is not None and value > limit:
        yield _error(path, ErrorCode.MAXIMUM, f"Number must be at most {limit}", value, limit)


def exclusive_minimum(
    scope: Scope, value: float, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.number.exclusive_lower
    if limit is not None and value <= limit:
        yield _error(path, ErrorCode.EXCLUSIVE_MINIMUM, f"Number must be greater than {limit}", value, limit)


def exclusive_maximum(
    scope: Scope, value: float, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.number.exclusive_upper
    if limit is not None and value >= limit:
        yield _error(path, ErrorCode.EXCLUSIVE_MAXIMUM, f"Number must be less than {limit}", value, limit)


def multiple_of(
    scope: Scope, value: float, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    divisor = node.number.multiple_of
    if divisor is None:
        return
    if isinstance(divisor, float) or isinstance(value, float):
        try:
            quotient = value / divisor
            failed = not math.isfinite(quotient) or int(quotient) != quotient
        except OverflowError:
            # an int beyond float range; compare exactly
            failed = (Fraction(value) / Fraction(divisor)).denominator != 1
    else:
        failed = value % divisor != 0
    if failed:
        yield _error(path, ErrorCode.MULTIPLE_OF, f"Number must be a multiple of {divisor}", value, divisor)


# Array rules

def min_items(
    scope: Scope, value: list, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.array.min_items
    if limit is not None and len(value) < limit:
        yield _error(path, ErrorCode.MIN_ITEMS, f"Array must have at least {limit} items", value, limit)


def max_items(
    scope: Scope, value: list, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.array.max_items
    if limit is not None and len(value) > limit:
        yield _error(path, ErrorCode.MAX_ITEMS, f"Array must have at most {limit} items", value, limit)


def unique_items(
    scope: Scope, value: list, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    if node.array.unique_items and has_duplicates(value):
        yield _error(path, ErrorCode.UNIQUE_ITEMS, "Array must contain unique items", value, True)


def items(
    scope: Scope, value: list, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    item_schema = node.array.items
    if item_schema is None:
        return
    if not node.array.is_tuple:
        for index, item in enumerate(value):
            yield from descend(scope, item, item_schema, join_index(path, index))
        return

    additional = node.array.additional_items
    for index, item in enumerate(value):
        item_path = join_index(path, index)
        if index < len(item_schema):
            yield from descend(scope, item, item_schema[index], item_path)
        elif additional is False:
            yield _error(item_path, ErrorCode.ADDITIONAL_ITEMS, "Additional items are not allowed", item, False)
        elif isinstance(additional, Mapping):
            yield from descend(scope, item, additional, item_path)


def contains(
    scope: Scope, value: list, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    wanted = node.array.contains
    if wanted is None:
        return
    if not any(is_valid(scope, item, wanted) for item in value):
        yield _error(
            path, ErrorCode.CONTAINS, "Array must contain at least one item matching the schema", value, wanted
        )


# Object rules

def min_properties(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.object.min_properties
    if limit is not None and len(value) < limit:
        yield _error(path, ErrorCode.MIN_PROPERTIES, f"Object must have at least {limit} properties", value, limit)


def max_properties(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    limit = node.object.max_properties
    if limit is not None and len(value) > limit:
        yield _error(path, ErrorCode.MAX_PROPERTIES, f"Object must have at most {limit} properties", value, limit)


def required(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    for name in node.object.required:
        if name not in value:
            yield _error(
                join_property(path, name), ErrorCode.REQUIRED, f"Missing required property: {name}", constraint=name
            )


def properties(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    declared = node.object.properties
    for name, child in value.items():
        if name in declared:
            yield from descend(scope, child, declared[name], join_property(path, name))


def pattern_properties(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    for name, child in value.items():
        for regex, sub_schema in node.object.pattern_properties.items():
            if pattern_matches(regex, name):
                yield from descend(scope, child, sub_schema, join_property(path, name))


def _is_additional(name: str, node: SchemaNode) -> bool:
    if name in node.object.properties:
        return False
    return not any(pattern_matches(regex, name) for regex in node.object.pattern_properties)


def additional_properties(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    extra_schema = node.object.additional_properties
    if extra_schema is None or extra_schema is True:
        return
    for name, child in value.items():
        if not _is_additional(name, node):
            continue
        child_path = join_property(path, name)
        if extra_schema is False:
            yield _error(
                child_path, ErrorCode.ADDITIONAL_PROPERTIES, f"Additional property '{name}' is not allowed", child, False
            )
        else:
            yield from descend(scope, child, extra_schema, child_path)


def property_names(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    name_schema = node.object.property_names
    if name_schema is None:
        return
    for name in value:
        if not is_valid(scope, name, name_schema):
            yield _error(
                join_property(path, name),
                ErrorCode.PROPERTY_NAMES,
                f"Property name '{name}' does not match schema",
                name,
                name_schema,
            )


def dependencies(
    scope: Scope, value: Mapping, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    for trigger, needed in node.object.dependent_required.items():
        if trigger not in value:
            continue
        for name in needed:
            if name not in value:
                yield _error(
                    join_property(path, name),
                    ErrorCode.DEPENDENT_REQUIRED,
                    f"Property '{name}' is required when '{trigger}' is present",
                    constraint=trigger,
                )
    for trigger, sub_schema in node.object.dependent_schemas.items():
        if trigger in value:
            yield from descend(scope, value, sub_schema, path, chain)


# Applicators

def all_of(
    scope: Scope, value: Any, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    schemas = node.composition.all_of
    if schemas is None:
        return
    failed = False
    for sub_schema in schemas:
        for error in descend(scope, value, sub_schema, path, chain):
            failed = True
            yield error
    if failed:
        yield _error(path, ErrorCode.ALL_OF, "Value does not satisfy all schemas", value, list(schemas))


def any_of(
    scope: Scope, value: Any, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    schemas = node.composition.any_of
    if schemas is None:
        return
    if not any(is_valid(scope, value, sub_schema, chain) for sub_schema in schemas):
        yield _error(path, ErrorCode.ANY_OF, "Value does not match any of the expected schemas", value, list(schemas))


def one_of(
    scope: Scope, value: Any, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    schemas = node.composition.one_of
    if schemas is None:
        return
    matches = sum(1 for sub_schema in schemas if is_valid(scope, value, sub_schema, chain))
    if matches == 0:
        yield _error(path, ErrorCode.ONE_OF, "Value does not match any of the expected schemas", value, list(schemas))
    elif matches > 1:
        yield _error(path, ErrorCode.ONE_OF, "Value matches more than one schema", value, list(schemas))


def not_(
    scope: Scope, value: Any, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    forbidden = node.composition.not_
    if forbidden is not None and is_valid(scope, value, forbidden, chain):
        yield _error(path, ErrorCode.NOT, "Value must not match the schema", value, forbidden)


def if_then_else(
    scope: Scope, value: Any, node: SchemaNode, path: str, chain: FrozenSet[str]
) -> Iterator[ValidationError]:
    conditional = node.conditional
    if conditional.if_ is None:
        return
    if is_valid(scope, value, conditional.if_, chain):
        if conditional.then is not None:
            yield from descend(scope, value, conditional.then, path, chain)
    elif conditional.else_ is not None:
        yield from descend(scope, value, conditional.else_, path, chain)


STRING_RULES: Tuple[Rule, ...] = (
    min_length,
    max_length,
    pattern,
    format_,
    content_encoding,
    content_media_type,
)
NUMBER_RULES: Tuple[Rule, ...] = (
    minimum,
    maximum,
    exclusive_minimum,
    exclusive_maximum,
    multiple_of,
)
ARRAY_RULES: Tuple[Rule, ...] = (
    min_items,
    max_items,
    unique_items,
    items,
    contains,
)
OBJECT_RULES: Tuple[Rule, ...] = (
    min_properties,
    max_properties,
    required,
    properties,
    pattern_properties,
    additional_properties,
    property_names,
    dependencies,
)
APPLICATOR_RULES: Tuple[Rule, ...] = (
    all_of,
    any_of,
    one_of,
    not_,
    if_then_else,
)

KIND_RULES: Dict[str, Tuple[Rule, ...]] = {
    JsonKind.STRING.value: STRING_RULES,
    JsonKind.NUMBER.value: NUMBER_RULES,
    JsonKind.ARRAY.value: ARRAY_RULES,
    JsonKind.OBJECT.value: OBJECT_RULES,
}


def _rules_for(value: Any) -> Tuple[Rule, ...]:
    # booleans and null carry no kind-specific keywords
    return KIND_RULES.get(kind_of(value), ())


__all__ = [
    "Scope",
    "iter_errors",
    "is_valid",
    "descend",
    "KIND_RULES",
    "APPLICATOR_RULES",
]
