"""Flatten schemas into field descriptors and compile them for a builder.

Phase 1 (``convert_schema_to_dsl``) walks a schema document and emits one
FieldDSL per addressable field:

- ``parent.name`` for each declared property, recursing into nested objects;
- ``parent.name[*]`` for the element schema of an array with a single
  ``items`` schema (tuple-form ``items`` stay opaque on the array field);
- ``parent.*`` for each ``patternProperties`` entry;
- one field at ``""`` for root-level composition (the whole document is
  then opaque) or, failing that, for root object constraints that have no
  per-property home.

Phase 2 (``compile_field``) turns a FieldDSL into a closure over an external
fluent builder. Every builder capability is probed before use: a missing
capability is skipped, never an error. Composition keywords compile into
``custom(predicate)`` calls that re-run ``schemaform.core.validate_value``.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

from typing_extensions import TypeAlias

from schemaform._utils import compile_pattern, is_array, is_number, is_object, join_property
from schemaform.core import validate_value
from schemaform.errors import CircularReferenceError
from schemaform.refs import resolve_schema_ref
from schemaform.schema import RawSchema, SchemaNode, parse_schema
from schemaform.types import UNDEFINED, BaseType, CustomFormats, JsonKind


logger = logging.getLogger(__name__)

FieldDefinition: TypeAlias = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldConstraints:
    """Constraints attached to one flattened field.

    Number bounds are normalized: ``min``/``max`` hold the effective bound and
    ``exclusive_min``/``exclusive_max`` say whether it is exclusive (None when
    the schema declared no exclusive form). ``required`` comes from the
    parent schema's ``required`` list.
    """
    required: bool = False
    # String
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    format: Optional[str] = None
    content_encoding: Optional[str] = None
    content_media_type: Optional[str] = None
    # Number
    min: Optional[float] = None
    max: Optional[float] = None
    exclusive_min: Optional[bool] = None
    exclusive_max: Optional[bool] = None
    multiple_of: Optional[float] = None
    integer: bool = False
    # Array
    items: Any = None
    contains: Any = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: bool = False
    # Object
    min_properties: Optional[int] = None
    max_properties: Optional[int] = None
    additional_properties: Any = None
    property_names: Any = None
    pattern_properties: Optional[Mapping[str, RawSchema]] = None
    dependent_required: Optional[Mapping[str, Tuple[str, ...]]] = None
    # Values
    enum: Optional[Tuple[Any, ...]] = None
    const: Any = UNDEFINED
    # Composition
    all_of: Optional[Tuple[RawSchema, ...]] = None
    any_of: Optional[Tuple[RawSchema, ...]] = None
    one_of: Optional[Tuple[RawSchema, ...]] = None
    not_: Any = None
    # Conditional
    if_: Any = None
    then: Any = None
    else_: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization, omitting unset constraints."""
        result: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is item.default:
                continue
            if isinstance(value, tuple):
                value = list(value)
            elif isinstance(value, Mapping):
                value = dict(value)
            result[_CONSTRAINT_KEYS.get(item.name, item.name)] = value
        return result


_CONSTRAINT_KEYS = {
    "min_length": "minLength",
    "max_length": "maxLength",
    "content_encoding": "contentEncoding",
    "content_media_type": "contentMediaType",
    "exclusive_min": "exclusiveMin",
    "exclusive_max": "exclusiveMax",
    "multiple_of": "multipleOf",
    "min_items": "minItems",
    "max_items": "maxItems",
    "unique_items": "uniqueItems",
    "min_properties": "minProperties",
    "max_properties": "maxProperties",
    "additional_properties": "additionalProperties",
    "property_names": "propertyNames",
    "pattern_properties": "patternProperties",
    "dependent_required": "dependentRequired",
    "all_of": "allOf",
    "any_of": "anyOf",
    "one_of": "oneOf",
    "not_": "not",
    "if_": "if",
    "else_": "else",
}


@dataclass(frozen=True)
class FieldDSL:
    """A flattened, path-addressed field descriptor.

    Attributes:
        path: ``.`` separates object keys, ``[*]`` marks array elements and
            ``*`` pattern-matched keys; ``""`` is the document root
        type: Base type of the field (the first non-null declared type)
        nullable: Whether ``"null"`` was among the declared types
        multiple_types: Every non-null declared type, when more than one

    Examples:
        >>> FieldDSL(path="age", type=BaseType.NUMBER).to_dict()
        {'path': 'age', 'type': 'number', 'nullable': False, 'constraints': {}}
    """
    path: str
    type: BaseType
    nullable: bool = False
    multiple_types: Optional[Tuple[BaseType, ...]] = None
    constraints: FieldConstraints = field(default_factory=FieldConstraints)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "path": self.path,
            "type": self.type.value,
            "nullable": self.nullable,
        }
        if self.multiple_types is not None:
            result["multipleTypes"] = [t.value for t in self.multiple_types]
        result["constraints"] = self.constraints.to_dict()
        return result


# Phase 1: flatten

_KIND_TO_BASE_TYPE = {
    JsonKind.STRING.value: BaseType.STRING,
    JsonKind.NUMBER.value: BaseType.NUMBER,
    JsonKind.INTEGER.value: BaseType.NUMBER,
    JsonKind.BOOLEAN.value: BaseType.BOOLEAN,
    JsonKind.ARRAY.value: BaseType.ARRAY,
    JsonKind.OBJECT.value: BaseType.OBJECT,
    JsonKind.NULL.value: BaseType.NULL,
}


def map_json_type(kind: str) -> BaseType:
    return _KIND_TO_BASE_TYPE.get(kind, BaseType.STRING)


def infer_type(value: Any, null_type: BaseType = BaseType.NULL) -> BaseType:
    """Infer a base type from a literal value (``const`` or an ``enum`` member)."""
    if isinstance(value, bool):
        return BaseType.BOOLEAN
    if is_number(value):
        return BaseType.NUMBER
    if isinstance(value, str):
        return BaseType.STRING
    if is_array(value):
        return BaseType.ARRAY
    if is_object(value):
        return BaseType.OBJECT
    if value is None:
        return null_type
    return BaseType.STRING


def process_schema_types(node: SchemaNode) -> Tuple[BaseType, bool, Optional[Tuple[BaseType, ...]]]:
    """Derive ``(type, nullable, multiple_types)`` for a field."""
    if node.types is not None:
        nullable = JsonKind.NULL.value in node.types
        base_types: List[BaseType] = []
        for kind in node.types:
            if kind == JsonKind.NULL.value:
                continue
            base_type = map_json_type(kind)
            if base_type not in base_types:
                base_types.append(base_type)
        if not base_types:
            return BaseType.NULL, nullable, None
        multiple = tuple(base_types) if len(base_types) > 1 else None
        return base_types[0], nullable, multiple
    if node.enum:
        # a null first member says nothing about the other members
        return infer_type(node.enum[0], null_type=BaseType.STRING), False, None
    if node.has_const:
        return infer_type(node.const), False, None
    return BaseType.STRING, False, None


def extract_constraints(
    node: SchemaNode,
    parent: Optional[SchemaNode] = None,
    property_name: str = "",
) -> FieldConstraints:
    """Collect a field's constraints; ``required`` is read from the parent."""
    lower, exclusive_min = node.number.lower_bound()
    upper, exclusive_max = node.number.upper_bound()
    return FieldConstraints(
        required=parent is not None and property_name in parent.object.required,
        min_length=node.string.min_length,
        max_length=node.string.max_length,
        pattern=node.string.pattern,
        format=node.string.format,
        content_encoding=node.string.content_encoding,
        content_media_type=node.string.content_media_type,
        min=lower,
        max=upper,
        exclusive_min=exclusive_min,
        exclusive_max=exclusive_max,
        multiple_of=node.number.multiple_of,
        integer=node.declares(JsonKind.INTEGER.value),
        items=node.array.items,
        contains=node.array.contains,
        min_items=node.array.min_items,
        max_items=node.array.max_items,
        unique_items=node.array.unique_items,
        min_properties=node.object.min_properties,
        max_properties=node.object.max_properties,
        additional_properties=node.object.additional_properties,
        property_names=node.object.property_names,
        pattern_properties=dict(node.object.pattern_properties) or None,
        enum=node.enum,
        const=node.const,
        all_of=node.composition.all_of,
        any_of=node.composition.any_of,
        one_of=node.composition.one_of,
        not_=node.composition.not_,
        if_=node.conditional.if_,
        then=node.conditional.then,
        else_=node.conditional.else_,
    )


def extract_root_constraints(node: SchemaNode) -> FieldConstraints:
    """Object constraints of the root that no single property can carry."""
    return FieldConstraints(
        additional_properties=node.object.additional_properties,
        property_names=node.object.property_names,
        min_properties=node.object.min_properties,
        max_properties=node.object.max_properties,
        pattern_properties=dict(node.object.pattern_properties) or None,
        dependent_required=dict(node.object.dependent_required) or None,
    )


def convert_schema_to_dsl(
    schema: Any,
    parent_path: str = "",
    root: Optional[Mapping[str, Any]] = None,
) -> List[FieldDSL]:
    """Flatten a schema into an ordered list of field descriptors.

    Args:
        schema: The schema document (or a sub-schema when ``parent_path`` is set)
        parent_path: Path prefix for every emitted field
        root: Document ``$ref`` pointers resolve against; defaults to ``schema``

    Returns:
        Field descriptors in document order, parents before children

    Raises:
        SchemaReferenceError: If a ``$ref`` cannot be followed

    Examples:
        >>> schema = {
        ...     "type": "object",
        ...     "properties": {"tags": {"type": "array", "items": {"type": "string"}}},
        ... }
        >>> [f.path for f in convert_schema_to_dsl(schema)]
        ['tags', 'tags[*]']
    """
    if root is None and isinstance(schema, Mapping):
        root = schema
    resolved, refs, _ = _follow_refs(schema, root, frozenset())
    if not isinstance(resolved, Mapping):
        return []
    node = parse_schema(resolved)

    if not parent_path and node.composition.present:
        base_type, nullable, multiple = process_schema_types(node)
        return [
            FieldDSL(
                path="",
                type=base_type,
                nullable=nullable,
                multiple_types=multiple,
                constraints=extract_constraints(node),
            )
        ]

    result: List[FieldDSL] = []
    if not parent_path:
        root_constraints = extract_root_constraints(node)
        if root_constraints.to_dict():
            result.append(FieldDSL(path="", type=BaseType.OBJECT, constraints=root_constraints))

    result.extend(_walk_object(node, parent_path, root, refs))
    return result


def _follow_refs(
    schema: Any,
    root: Optional[Mapping[str, Any]],
    refs: FrozenSet[str],
) -> Tuple[Any, FrozenSet[str], bool]:
    """Follow a ``$ref`` chain; report whether it re-enters the current branch."""
    chain: FrozenSet[str] = frozenset()
    recursive = False
    while isinstance(schema, Mapping) and "$ref" in schema:
        ref = schema["$ref"]
        if ref in chain:
            raise CircularReferenceError(ref)
        chain = chain | {ref}
        recursive = recursive or ref in refs
        schema = resolve_schema_ref(schema, root)
    return schema, refs | chain, recursive


def _walk_object(
    node: SchemaNode,
    parent_path: str,
    root: Optional[Mapping[str, Any]],
    refs: FrozenSet[str],
) -> Iterator[FieldDSL]:
    for name, sub_schema in node.object.properties.items():
        if isinstance(sub_schema, Mapping):
            yield from _convert_property(name, sub_schema, join_property(parent_path, name), node, root, refs)
    for regex, sub_schema in node.object.pattern_properties.items():
        if isinstance(sub_schema, Mapping):
            yield from _convert_property(regex, sub_schema, join_property(parent_path, "*"), node, root, refs)


def _convert_property(
    name: str,
    schema: Mapping[str, Any],
    path: str,
    parent: SchemaNode,
    root: Optional[Mapping[str, Any]],
    refs: FrozenSet[str],
) -> Iterator[FieldDSL]:
    resolved, refs, recursive = _follow_refs(schema, root, refs)
    if not isinstance(resolved, Mapping):
        return
    node = parse_schema(resolved)
    base_type, nullable, multiple = process_schema_types(node)
    yield FieldDSL(
        path=path,
        type=base_type,
        nullable=nullable,
        multiple_types=multiple,
        constraints=extract_constraints(node, parent, name),
    )

    if recursive:
        logger.debug("Not expanding recursive schema below %s", path)
        return

    if node.declares(JsonKind.OBJECT.value):
        yield from _walk_object(node, path, root, refs)

    item_schema = node.array.items
    if node.declares(JsonKind.ARRAY.value) and isinstance(item_schema, Mapping):
        yield from _convert_property(f"{name}[*]", item_schema, f"{path}[*]", node, root, refs)


# Phase 2: compile

_EXTRA_ALIASES: Dict[str, Tuple[str, ...]] = {
    "datetime": ("date_time",),
    "unique": ("unique_items",),
    "v": ("field",),
}

_FORMAT_METHODS: Dict[str, str] = {
    "email": "email",
    "uri": "url",
    "url": "url",
    "uuid": "uuid",
    "date-time": "datetime",
    "datetime": "datetime",
}

_COMMON_KEYS = frozenset({"enum", "const", "required"})
_TYPE_KEYS: Dict[BaseType, FrozenSet[str]] = {
    BaseType.STRING: frozenset({"min_length", "max_length", "pattern", "format"}),
    BaseType.NUMBER: frozenset({"min", "max", "exclusive_min", "exclusive_max", "multiple_of", "integer"}),
    BaseType.ARRAY: frozenset({"min_items", "max_items", "unique_items", "items"}),
}


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def capability(builder: Any, name: str) -> Optional[Callable[..., Any]]:
    """Return the builder's method for a capability, or None if it has none.

    The camelCase name is tried first, then its snake_case spelling and any
    extra alias.
    """
    candidates = (name, _snake_case(name)) + _EXTRA_ALIASES.get(name, ())
    for candidate in candidates:
        method = getattr(builder, candidate, None)
        if callable(method):
            return method
    return None


def _call(chain: Any, name: str, *args: Any, **kwargs: Any) -> Any:
    method = capability(chain, name)
    if method is None:
        logger.debug("Builder has no %s capability; skipping", name)
        return chain
    return method(*args, **kwargs)


def apply_base_type(chain: Any, base_type: BaseType) -> Any:
    """Select the builder branch for a base type.

    A callable capability is invoked; a non-callable one is used as the
    branch itself. Without the capability the builder is returned unchanged.
    """
    base_type = BaseType(base_type)
    if base_type is BaseType.NULL:
        return _call(chain, "literal", None)
    branch = getattr(chain, base_type.value, None)
    if branch is None:
        return chain
    return branch() if callable(branch) else branch


def _apply_format(chain: Any, format_name: str, custom_formats: Optional[CustomFormats]) -> Any:
    if custom_formats and format_name in custom_formats:
        return _call(chain, "refine", custom_formats[format_name])
    method = _FORMAT_METHODS.get(format_name)
    if method is None:
        return chain
    return _call(chain, method)


def _bound(chain: Any, name: str, limit: float, exclusive: Optional[bool]) -> Any:
    if exclusive is None:
        return _call(chain, name, limit)
    return _call(chain, name, limit, exclusive=exclusive)


def _composition_predicate(
    keyword: str,
    schemas: Tuple[RawSchema, ...],
    root: Optional[Mapping[str, Any]],
    custom_formats: Optional[CustomFormats],
) -> Callable[[Any], bool]:
    def matches(value: Any) -> Iterator[bool]:
        return (validate_value(value, schema, root=root, custom_formats=custom_formats) for schema in schemas)

    if keyword == "allOf":
        return lambda value: all(matches(value))
    if keyword == "anyOf":
        return lambda value: any(matches(value))
    return lambda value: sum(matches(value)) == 1


def apply_constraints(
    chain: Any,
    constraints: FieldConstraints,
    custom_formats: Optional[CustomFormats] = None,
    root: Optional[Mapping[str, Any]] = None,
) -> Any:
    """Apply every constraint the builder has a capability for.

    A ``const`` turns the field into a literal and only ``required`` is
    applied after it.
    """
    if constraints.const is not UNDEFINED:
        chain = _call(chain, "literal", constraints.const)
        return _call(chain, "required") if constraints.required else chain

    if constraints.min_length is not None:
        chain = _call(chain, "min", constraints.min_length)
    if constraints.max_length is not None:
        chain = _call(chain, "max", constraints.max_length)
    if constraints.pattern:
        chain = _call(chain, "pattern", compile_pattern(constraints.pattern))
    if constraints.format:
        chain = _apply_format(chain, constraints.format, custom_formats)

    if constraints.min is not None:
        chain = _bound(chain, "min", constraints.min, constraints.exclusive_min)
    if constraints.max is not None:
        chain = _bound(chain, "max", constraints.max, constraints.exclusive_max)
    if constraints.multiple_of is not None:
        chain = _call(chain, "multipleOf", constraints.multiple_of)
    if constraints.integer:
        chain = _call(chain, "integer")

    if constraints.min_items is not None:
        chain = _call(chain, "minItems", constraints.min_items)
    if constraints.max_items is not None:
        chain = _call(chain, "maxItems", constraints.max_items)
    if constraints.unique_items:
        chain = _call(chain, "unique")

    if constraints.min_properties is not None:
        chain = _call(chain, "minProperties", constraints.min_properties)
    if constraints.max_properties is not None:
        chain = _call(chain, "maxProperties", constraints.max_properties)
    if constraints.additional_properties is not None:
        chain = _call(chain, "additionalProperties", constraints.additional_properties)
    if constraints.property_names is not None:
        chain = _call(chain, "propertyNames", constraints.property_names)

    for keyword, schemas in (
        ("allOf", constraints.all_of),
        ("anyOf", constraints.any_of),
        ("oneOf", constraints.one_of),
    ):
        if schemas is not None:
            chain = _call(chain, "custom", _composition_predicate(keyword, schemas, root, custom_formats))

    if constraints.required:
        chain = _call(chain, "required")
    return chain


def filter_constraints_for_type(constraints: FieldConstraints, base_type: BaseType) -> FieldConstraints:
    """Keep only the constraints meaningful for one branch of a multi-type field."""
    kept = _COMMON_KEYS | _TYPE_KEYS.get(BaseType(base_type), frozenset())
    return FieldConstraints(**{name: getattr(constraints, name) for name in kept})


def _type_branch(
    base_type: BaseType,
    constraints: FieldConstraints,
    custom_formats: Optional[CustomFormats],
    root: Optional[Mapping[str, Any]],
) -> FieldDefinition:
    def branch(builder: Any) -> Any:
        return apply_constraints(apply_base_type(builder, base_type), constraints, custom_formats, root)

    return branch


def compile_field(
    dsl: FieldDSL,
    custom_formats: Optional[CustomFormats] = None,
    root: Optional[Mapping[str, Any]] = None,
) -> FieldDefinition:
    """Compile a field descriptor into a closure that configures a builder.

    Args:
        dsl: The field to compile
        custom_formats: Format checks; a matching entry compiles to ``refine``
        root: Document the composition predicates resolve ``$ref`` against

    Returns:
        A function taking a builder and returning the configured builder

    Examples:
        >>> definition = compile_field(FieldDSL(path="x", type=BaseType.STRING))
        >>> definition("unchanged")
        'unchanged'
    """
    def definition(builder: Any) -> Any:
        if dsl.multiple_types and len(dsl.multiple_types) > 1:
            combine = capability(builder, "oneOf")
            if combine is not None:
                combined = combine([
                    _type_branch(
                        base_type,
                        filter_constraints_for_type(dsl.constraints, base_type),
                        custom_formats,
                        root,
                    )
                    for base_type in dsl.multiple_types
                ])
                return _call(combined, "nullable") if dsl.nullable else combined
            logger.debug("Builder has no oneOf capability; compiling %r as %s", dsl.path, dsl.type.value)

        chain = apply_base_type(builder, dsl.type)
        if dsl.nullable:
            chain = _call(chain, "nullable")
        return apply_constraints(chain, dsl.constraints, custom_formats, root)

    return definition


def _required_if_present(trigger: str) -> FieldDefinition:
    def definition(builder: Any) -> Any:
        return _call(builder, "requiredIf", lambda data: is_object(data) and trigger in data)

    return definition


def register_schema(
    builder: Any,
    schema: Mapping[str, Any],
    custom_formats: Optional[CustomFormats] = None,
) -> Any:
    """Register every field of a schema on a per-path builder.

    Each non-root field is registered through the builder's
    ``v(path, definition)`` method. Root constraints map to ``strict()``
    when additional properties are forbidden and to ``requiredIf`` rules for
    ``dependentRequired`` pairs, when the builder offers those capabilities.

    Raises:
        TypeError: If the builder has no ``v`` registration method
        SchemaReferenceError: If a ``$ref`` cannot be followed
    """
    dsl_fields = convert_schema_to_dsl(schema)

    def register(current: Any, path: str, definition: FieldDefinition) -> Any:
        method = capability(current, "v")
        if method is None:
            raise TypeError("Builder does not expose a v(path, definition) registration method")
        return method(path, definition)

    for dsl in dsl_fields:
        if dsl.path:
            builder = register(builder, dsl.path, compile_field(dsl, custom_formats, root=schema))

    root_field = next((dsl for dsl in dsl_fields if not dsl.path), None)
    if root_field is not None:
        if root_field.constraints.additional_properties is False:
            builder = _call(builder, "strict")
        for trigger, needed in (root_field.constraints.dependent_required or {}).items():
            for name in needed:
                builder = register(builder, name, _required_if_present(trigger))

    return builder


__all__ = [
    "FieldDSL",
    "FieldConstraints",
    "FieldDefinition",
    "convert_schema_to_dsl",
    "compile_field",
    "apply_base_type",
    "apply_constraints",
    "filter_constraints_for_type",
    "process_schema_types",
    "extract_constraints",
    "capability",
    "register_schema",
]
