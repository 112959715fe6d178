"""Structured error types for schemaform.

Two families of failure exist and they are handled differently:

- Data-validation failures are *reported*: each one is a frozen
  ValidationError carrying the path of the offending value, a stable code,
  a human-readable message and optionally the value and the violated
  constraint. Evaluators accumulate them into lists and never raise them.
- Reference failures are *raised*: they mean the schema document itself is
  malformed (an external pointer, a dangling pointer, a cycle, or a pointer
  with no document to resolve against), so the call is aborted.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from schemaform.types import ErrorCode


@dataclass(frozen=True)
class ValidationError:
    """A single path-addressed validation failure.

    Attributes:
        path: Dot/bracket path of the value (e.g. "address.city", "tags[2]");
            the empty string addresses the document root
        code: Specific validation error code
        message: Human-readable error description
        value: Optional - the offending value
        constraint: Optional - the keyword value that was violated

    Examples:
        >>> err = ValidationError(
        ...     path="name",
        ...     code=ErrorCode.MIN_LENGTH,
        ...     message="String length must be at least 3",
        ...     value="Jo",
        ...     constraint=3,
        ... )
        >>> err.to_dict()["code"]
        'MIN_LENGTH'
    """
    path: str
    code: ErrorCode
    message: str
    value: Optional[Any] = None
    constraint: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "path": self.path,
            "code": self.code.value if isinstance(self.code, ErrorCode) else self.code,
            "message": self.message,
        }
        if self.value is not None:
            result["value"] = self.value
        if self.constraint is not None:
            result["constraint"] = self.constraint
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationError":
        """Create ValidationError from dict."""
        code = data["code"]
        if isinstance(code, str):
            code = ErrorCode(code)
        return cls(
            path=data["path"],
            code=code,
            message=data["message"],
            value=data.get("value"),
            constraint=data.get("constraint"),
        )


class SchemaReferenceError(Exception):
    """Base class for failures while resolving a ``$ref`` pointer.

    Attributes:
        ref: The pointer that could not be followed (None when the failure
            is not tied to one pointer)
    """

    def __init__(self, ref: Optional[str], message: str):
        self.ref = ref
        super().__init__(message)


class UnsupportedReferenceError(SchemaReferenceError):
    """Raised for pointers that do not address the current document."""

    def __init__(self, ref: Any):
        super().__init__(ref, f"External $ref not supported: {ref}")


class UnresolvedReferenceError(SchemaReferenceError):
    """Raised when a pointer segment does not exist in the document."""

    def __init__(self, ref: str, segment: Optional[str] = None):
        self.segment = segment
        message = f"Cannot resolve $ref: {ref}"
        if segment is not None:
            message = f"{message} (missing segment '{segment}')"
        super().__init__(ref, message)


class CircularReferenceError(SchemaReferenceError):
    """Raised when a pointer is revisited along a single resolution path."""

    def __init__(self, ref: str):
        super().__init__(ref, f"Circular reference detected: {ref}")


class MissingRootSchemaError(SchemaReferenceError):
    """Raised when a ``$ref`` has to be resolved but no root document was given."""

    def __init__(self, ref: Optional[str] = None):
        super().__init__(ref, "Root schema required for $ref resolution")


__all__ = [
    "ValidationError",
    "SchemaReferenceError",
    "UnsupportedReferenceError",
    "UnresolvedReferenceError",
    "CircularReferenceError",
    "MissingRootSchemaError",
]
