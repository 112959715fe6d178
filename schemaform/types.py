"""Core type definitions for schemaform.

This module defines the fundamental types shared by the evaluators and the
field compiler:
- ErrorCode: Diagnostic codes attached to every ValidationError
- JsonKind: The JSON Schema primitive type names
- BaseType: Base types a flattened field can carry
- UNDEFINED: Sentinel for a value that is absent (never valid)
- ValidatorOptions: Per-validator configuration

These types form the contract between callers and the evaluators, keeping
error codes and field types stable across the boolean and diagnostic passes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from typing_extensions import TypeAlias


FormatCheck: TypeAlias = Callable[[str], bool]
CustomFormats: TypeAlias = Mapping[str, FormatCheck]


class ErrorCode(str, Enum):
    """Diagnostic codes for data-validation failures.

    Each kind-specific keyword contributes at most one error with its own
    code; composition keywords contribute a single summary error.
    """
    FALSE_SCHEMA = "FALSE_SCHEMA"
    REQUIRED = "REQUIRED"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    CONST = "CONST"
    ENUM = "ENUM"
    # String
    MIN_LENGTH = "MIN_LENGTH"
    MAX_LENGTH = "MAX_LENGTH"
    PATTERN = "PATTERN"
    FORMAT = "FORMAT"
    CONTENT_ENCODING = "CONTENT_ENCODING"
    CONTENT_MEDIA_TYPE = "CONTENT_MEDIA_TYPE"
    # Number
    MINIMUM = "MINIMUM"
    MAXIMUM = "MAXIMUM"
    EXCLUSIVE_MINIMUM = "EXCLUSIVE_MINIMUM"
    EXCLUSIVE_MAXIMUM = "EXCLUSIVE_MAXIMUM"
    MULTIPLE_OF = "MULTIPLE_OF"
    # Array
    MIN_ITEMS = "MIN_ITEMS"
    MAX_ITEMS = "MAX_ITEMS"
    UNIQUE_ITEMS = "UNIQUE_ITEMS"
    ADDITIONAL_ITEMS = "ADDITIONAL_ITEMS"
    CONTAINS = "CONTAINS"
    # Object
    MIN_PROPERTIES = "MIN_PROPERTIES"
    MAX_PROPERTIES = "MAX_PROPERTIES"
    ADDITIONAL_PROPERTIES = "ADDITIONAL_PROPERTIES"
    PROPERTY_NAMES = "PROPERTY_NAMES"
    DEPENDENT_REQUIRED = "DEPENDENT_REQUIRED"
    # Composition
    ALL_OF = "ALL_OF"
    ANY_OF = "ANY_OF"
    ONE_OF = "ONE_OF"
    NOT = "NOT"


class JsonKind(str, Enum):
    """Primitive type names accepted by the ``type`` keyword."""
    NULL = "null"
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    ARRAY = "array"
    OBJECT = "object"


class BaseType(str, Enum):
    """Base type of a flattened field.

    ``integer`` has no base type of its own: it maps to NUMBER and sets the
    ``integer`` constraint flag instead.
    """
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"
    NULL = "null"
    TUPLE = "tuple"


class _Undefined:
    """Marker type for an absent value."""

    _instance: Optional["_Undefined"] = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED: Any = _Undefined()


@dataclass(frozen=True)
class ValidatorOptions:
    """Configuration for a SchemaValidator.

    Attributes:
        custom_formats: Format checks consulted before the built-in ones
        check_schema: Whether to reject documents that are not valid draft-07
            before validating any data

    Examples:
        >>> opts = ValidatorOptions.from_dict({"checkSchema": True})
        >>> opts.check_schema
        True
    """
    custom_formats: Dict[str, FormatCheck] = field(default_factory=dict)
    check_schema: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {"checkSchema": self.check_schema}
        if self.custom_formats:
            result["customFormats"] = dict(self.custom_formats)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidatorOptions":
        """Create ValidatorOptions from dict."""
        return cls(
            custom_formats=dict(data.get("customFormats") or {}),
            check_schema=bool(data.get("checkSchema", False)),
        )


__all__ = [
    "ErrorCode",
    "JsonKind",
    "BaseType",
    "UNDEFINED",
    "ValidatorOptions",
    "FormatCheck",
    "CustomFormats",
]
