"""Value helpers shared by the evaluators and the field compiler."""

import math
import re
from functools import lru_cache
from typing import Any, Iterable, Mapping, Pattern, Sequence

from schemaform.types import JsonKind


def is_number(value: Any) -> bool:
    # bool is a subclass of int but is never a JSON number
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_object(value: Any) -> bool:
    return isinstance(value, Mapping)


def kind_of(value: Any) -> str:
    """Return the JSON kind name of a decoded value, for messages."""
    if value is None:
        return JsonKind.NULL.value
    if isinstance(value, bool):
        return JsonKind.BOOLEAN.value
    if is_number(value):
        return JsonKind.NUMBER.value
    if isinstance(value, str):
        return JsonKind.STRING.value
    if is_array(value):
        return JsonKind.ARRAY.value
    if is_object(value):
        return JsonKind.OBJECT.value
    return type(value).__name__


def validate_type(value: Any, type_name: str) -> bool:
    """Check a value against a single JSON Schema type name.

    Unknown type names never match.

    Examples:
        >>> validate_type(3.0, "integer")
        True
        >>> validate_type(True, "number")
        False
    """
    if type_name == JsonKind.NULL:
        return value is None
    if type_name == JsonKind.BOOLEAN:
        return isinstance(value, bool)
    if type_name == JsonKind.STRING:
        return isinstance(value, str)
    if type_name == JsonKind.NUMBER:
        return is_number(value) and not (isinstance(value, float) and math.isnan(value))
    if type_name == JsonKind.INTEGER:
        if not is_number(value):
            return False
        if isinstance(value, int):
            return True
        return value.is_integer()
    if type_name == JsonKind.ARRAY:
        return is_array(value)
    if type_name == JsonKind.OBJECT:
        return is_object(value)
    return False


def validate_multiple_types(value: Any, type_names: Iterable[str]) -> bool:
    """Check a value against a ``type`` list; any match is enough."""
    return any(validate_type(value, type_name) for type_name in type_names)


def deep_equal(a: Any, b: Any) -> bool:
    """JSON equality: structural, with booleans never equal to numbers."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if is_array(a) and is_array(b):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    if is_object(a) and is_object(b):
        if len(a) != len(b):
            return False
        return all(key in b and deep_equal(a[key], b[key]) for key in a)
    if type(a) is not type(b) and not (isinstance(a, str) and isinstance(b, str)):
        return False
    return a == b


def has_duplicates(items: Sequence[Any]) -> bool:
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            if deep_equal(items[i], items[j]):
                return True
    return False


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Pattern[str]:
    return re.compile(pattern)


def pattern_matches(pattern: str, text: str) -> bool:
    # Schema patterns are unanchored
    return compile_pattern(pattern).search(text) is not None


def join_property(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def join_index(path: str, index: int) -> str:
    return f"{path}[{index}]"
