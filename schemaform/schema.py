"""Typed, immutable view over a schema document node.

A schema arrives as plain nested data. ``parse_schema`` groups the dozens of
optional keywords into keyword families (string, number, array, object,
composition, conditional) held on a frozen SchemaNode, so every consumer
reads the same normalized values. Sub-schemas are kept as the caller's raw
values (mappings or booleans) and parsed lazily when they are visited.

Draft forms are normalized here once:
- ``exclusiveMinimum``/``exclusiveMaximum`` may be a number (draft-06+) or
  a boolean modifying ``minimum``/``maximum`` (draft-04);
- ``dependencies`` (draft-07) is split into ``dependentRequired`` and
  ``dependentSchemas`` (2019-09) and merged with those spellings.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from typing_extensions import TypeAlias

from schemaform._utils import is_number
from schemaform.types import UNDEFINED, JsonKind


RawSchema: TypeAlias = Union[bool, Mapping[str, Any]]

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _frozen_mapping(value: Any) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        return _EMPTY
    return MappingProxyType(dict(value))


def _schema_list(value: Any) -> Optional[Tuple[RawSchema, ...]]:
    if value is None:
        return None
    return tuple(value)


@dataclass(frozen=True)
class StringKeywords:
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    format: Optional[str] = None
    content_encoding: Optional[str] = None
    content_media_type: Optional[str] = None


@dataclass(frozen=True)
class NumberKeywords:
    """Numeric bounds with both exclusive-bound draft forms preserved.

    Attributes:
        exclusive_minimum: A number (exclusive bound of its own), a boolean
            (makes ``minimum`` exclusive) or None
        exclusive_maximum: Same as ``exclusive_minimum`` for the upper bound
    """
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: Union[bool, float, None] = None
    exclusive_maximum: Union[bool, float, None] = None
    multiple_of: Optional[float] = None

    def lower_bound(self) -> Tuple[Optional[float], Optional[bool]]:
        """The lower bound as ``(value, exclusive)``.

        ``exclusive`` is None when no exclusive form was declared at all.

        Examples:
            >>> NumberKeywords(exclusive_minimum=3).lower_bound()
            (3, True)
            >>> NumberKeywords(minimum=3, exclusive_minimum=True).lower_bound()
            (3, True)
            >>> NumberKeywords(minimum=3).lower_bound()
            (3, None)
        """
        return _bound(self.minimum, self.exclusive_minimum)

    def upper_bound(self) -> Tuple[Optional[float], Optional[bool]]:
        """The upper bound as ``(value, exclusive)``, like ``lower_bound``."""
        return _bound(self.maximum, self.exclusive_maximum)

    @property
    def exclusive_lower(self) -> Optional[float]:
        """The effective exclusive lower bound, whichever form declared it."""
        bound, exclusive = self.lower_bound()
        return bound if exclusive else None

    @property
    def exclusive_upper(self) -> Optional[float]:
        """The effective exclusive upper bound, whichever form declared it."""
        bound, exclusive = self.upper_bound()
        return bound if exclusive else None


def _bound(
    inclusive: Optional[float], exclusive: Union[bool, float, None]
) -> Tuple[Optional[float], Optional[bool]]:
    if is_number(exclusive):
        return exclusive, True
    if isinstance(exclusive, bool):
        return inclusive, exclusive
    return inclusive, None


@dataclass(frozen=True)
class ArrayKeywords:
    """Array keywords; ``items`` is one schema or a positional tuple."""
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: bool = False
    items: Union[RawSchema, Tuple[RawSchema, ...], None] = None
    additional_items: Optional[RawSchema] = None
    contains: Optional[RawSchema] = None

    @property
    def is_tuple(self) -> bool:
        return isinstance(self.items, tuple)


@dataclass(frozen=True)
class ObjectKeywords:
    min_properties: Optional[int] = None
    max_properties: Optional[int] = None
    required: Tuple[str, ...] = ()
    properties: Mapping[str, RawSchema] = field(default_factory=lambda: _EMPTY)
    pattern_properties: Mapping[str, RawSchema] = field(default_factory=lambda: _EMPTY)
    additional_properties: Optional[RawSchema] = None
    property_names: Optional[RawSchema] = None
    dependent_required: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: _EMPTY)
    dependent_schemas: Mapping[str, RawSchema] = field(default_factory=lambda: _EMPTY)


@dataclass(frozen=True)
class CompositionKeywords:
    all_of: Optional[Tuple[RawSchema, ...]] = None
    any_of: Optional[Tuple[RawSchema, ...]] = None
    one_of: Optional[Tuple[RawSchema, ...]] = None
    not_: Optional[RawSchema] = None

    @property
    def present(self) -> bool:
        return (
            self.all_of is not None
            or self.any_of is not None
            or self.one_of is not None
        )


@dataclass(frozen=True)
class ConditionalKeywords:
    if_: Optional[RawSchema] = None
    then: Optional[RawSchema] = None
    else_: Optional[RawSchema] = None


@dataclass(frozen=True)
class SchemaNode:
    """One structured schema node, keywords grouped by family.

    Attributes:
        types: Declared ``type`` names as a tuple, or None when undeclared
        const: The ``const`` value, or UNDEFINED when absent (``null`` is a
            legitimate constant)
        enum: Allowed values, or None when absent
        raw: The mapping this node was parsed from

    Examples:
        >>> node = parse_schema({"type": ["string", "null"], "minLength": 2})
        >>> node.types
        ('string', 'null')
        >>> node.string.min_length
        2
    """
    ref: Optional[str] = None
    types: Optional[Tuple[str, ...]] = None
    const: Any = UNDEFINED
    enum: Optional[Tuple[Any, ...]] = None
    string: StringKeywords = field(default_factory=StringKeywords)
    number: NumberKeywords = field(default_factory=NumberKeywords)
    array: ArrayKeywords = field(default_factory=ArrayKeywords)
    object: ObjectKeywords = field(default_factory=ObjectKeywords)
    composition: CompositionKeywords = field(default_factory=CompositionKeywords)
    conditional: ConditionalKeywords = field(default_factory=ConditionalKeywords)
    raw: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)

    @property
    def has_const(self) -> bool:
        return self.const is not UNDEFINED

    def declares(self, kind: str) -> bool:
        """Whether ``kind`` appears among the declared types."""
        return self.types is not None and kind in self.types

    @property
    def allows_null(self) -> bool:
        return self.declares(JsonKind.NULL.value)


def _parse_types(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _parse_dependencies(schema: Mapping[str, Any]) -> Tuple[Mapping[str, Tuple[str, ...]], Mapping[str, RawSchema]]:
    required = {}
    schemas = {}
    for name, dependency in (schema.get("dependencies") or {}).items():
        if isinstance(dependency, (list, tuple)):
            required[name] = tuple(dependency)
        else:
            schemas[name] = dependency
    for name, names in (schema.get("dependentRequired") or {}).items():
        required[name] = tuple(names)
    for name, dependency in (schema.get("dependentSchemas") or {}).items():
        schemas[name] = dependency
    return MappingProxyType(required), MappingProxyType(schemas)


def parse_schema(schema: Mapping[str, Any]) -> SchemaNode:
    """Build the typed view of one structured (non-boolean) schema node."""
    items = schema.get("items")
    if isinstance(items, list):
        items = tuple(items)

    dependent_required, dependent_schemas = _parse_dependencies(schema)

    return SchemaNode(
        ref=schema.get("$ref"),
        types=_parse_types(schema.get("type")),
        const=schema["const"] if "const" in schema else UNDEFINED,
        enum=_schema_list(schema.get("enum")),
        string=StringKeywords(
            min_length=schema.get("minLength"),
            max_length=schema.get("maxLength"),
            pattern=schema.get("pattern"),
            format=schema.get("format"),
            content_encoding=schema.get("contentEncoding"),
            content_media_type=schema.get("contentMediaType"),
        ),
        number=NumberKeywords(
            minimum=schema.get("minimum"),
            maximum=schema.get("maximum"),
            exclusive_minimum=schema.get("exclusiveMinimum"),
            exclusive_maximum=schema.get("exclusiveMaximum"),
            multiple_of=schema.get("multipleOf"),
        ),
        array=ArrayKeywords(
            min_items=schema.get("minItems"),
            max_items=schema.get("maxItems"),
            unique_items=bool(schema.get("uniqueItems", False)),
            items=items,
            additional_items=schema.get("additionalItems"),
            contains=schema.get("contains"),
        ),
        object=ObjectKeywords(
            min_properties=schema.get("minProperties"),
            max_properties=schema.get("maxProperties"),
            required=tuple(schema.get("required") or ()),
            properties=_frozen_mapping(schema.get("properties")),
            pattern_properties=_frozen_mapping(schema.get("patternProperties")),
            additional_properties=schema.get("additionalProperties"),
            property_names=schema.get("propertyNames"),
            dependent_required=dependent_required,
            dependent_schemas=dependent_schemas,
        ),
        composition=CompositionKeywords(
            all_of=_schema_list(schema.get("allOf")),
            any_of=_schema_list(schema.get("anyOf")),
            one_of=_schema_list(schema.get("oneOf")),
            not_=schema.get("not"),
        ),
        conditional=ConditionalKeywords(
            if_=schema.get("if"),
            then=schema.get("then"),
            else_=schema.get("else"),
        ),
        raw=MappingProxyType(dict(schema)),
    )


__all__ = [
    "RawSchema",
    "SchemaNode",
    "StringKeywords",
    "NumberKeywords",
    "ArrayKeywords",
    "ObjectKeywords",
    "CompositionKeywords",
    "ConditionalKeywords",
    "parse_schema",
]
