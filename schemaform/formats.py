"""String format checks for the ``format`` keyword.

Every check is a pure ``(str) -> bool`` function. Callers may pass a map of
their own checks; it is consulted before the built-in table, so a custom
check can both add new format names and override built-in ones. Formats
that neither map knows are accepted.

Date and date-time values are parsed with ``dateutil.parser.isoparse`` after
a shape check, so calendar-invalid values such as ``2023-02-30`` fail.
"""

import ipaddress
import re
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

from dateutil.parser import isoparse

from schemaform.types import CustomFormats


EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*):(.+)$")
UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATE_TIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?$"
)
TIME_RE = re.compile(r"^(\d{2}):(\d{2}):(\d{2}(?:\.\d+)?)$")
DURATION_RE = re.compile(
    r"^P(?!$)(\d+Y)?(\d+M)?(\d+W)?(\d+D)?(T(?=\d)(\d+H)?(\d+M)?(\d+(\.\d+)?S)?)?$"
)
HOSTNAME_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
JSON_POINTER_RE = re.compile(r"^(/([^/~]|~[01])*)*$")
RELATIVE_JSON_POINTER_RE = re.compile(r"^(0|[1-9][0-9]*)(#|(/([^/~]|~[01])*)*)$")
IRI_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:\S*$")
IRI_REFERENCE_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.-]*:\S*|/\S*|[^\s:/]+)$")
URI_TEMPLATE_RE = re.compile(r"^[^{}]*(\{[^{}]+\}[^{}]*)*$")


def is_email(value: str) -> bool:
    if ".." in value:
        return False
    return EMAIL_RE.match(value) is not None


def is_url(value: str) -> bool:
    """Absolute hierarchical URL: a scheme followed by ``//`` and a host."""
    if any(ch.isspace() for ch in value):
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def is_uri(value: str) -> bool:
    """Absolute URI; non-hierarchical forms such as ``mailto:`` are allowed."""
    if is_url(value):
        return True
    if any(ch.isspace() for ch in value):
        return False
    match = SCHEME_RE.match(value)
    if match is None:
        return False
    rest = match.group(2)
    if rest.startswith("//"):
        return len(rest) > 2
    return True


def is_uri_reference(value: str) -> bool:
    if is_uri(value):
        return True
    if ":" in value and not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*:", value):
        return False
    return value.startswith("/") or ":" not in value


def is_uuid(value: str) -> bool:
    return UUID_RE.match(value) is not None


def is_date(value: str) -> bool:
    if DATE_RE.match(value) is None:
        return False
    try:
        isoparse(value)
    except (ValueError, OverflowError):
        return False
    return True


def is_date_time(value: str) -> bool:
    if DATE_TIME_RE.match(value) is None:
        return False
    try:
        isoparse(value)
    except (ValueError, OverflowError):
        return False
    return True


def is_time(value: str) -> bool:
    match = TIME_RE.match(value)
    if match is None:
        return False
    hour, minute, second = int(match.group(1)), int(match.group(2)), float(match.group(3))
    return hour <= 23 and minute <= 59 and second < 60


def is_duration(value: str) -> bool:
    return DURATION_RE.match(value) is not None


def is_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def is_ipv6(value: str) -> bool:
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True


def is_hostname(value: str) -> bool:
    if len(value) > 253:
        return False
    return HOSTNAME_RE.match(value) is not None


def is_regex(value: str) -> bool:
    try:
        re.compile(value)
    except re.error:
        return False
    return True


def _matcher(pattern: "re.Pattern[str]") -> Callable[[str], bool]:
    return lambda value: pattern.match(value) is not None


FORMAT_VALIDATORS: Dict[str, Callable[[str], bool]] = {
    "email": is_email,
    "url": is_url,
    "uri": is_uri,
    "uri-reference": is_uri_reference,
    "uuid": is_uuid,
    "date": is_date,
    "date-time": is_date_time,
    "datetime": is_date_time,
    "time": is_time,
    "duration": is_duration,
    "ipv4": is_ipv4,
    "ipv6": is_ipv6,
    "hostname": is_hostname,
    "json-pointer": _matcher(JSON_POINTER_RE),
    "relative-json-pointer": _matcher(RELATIVE_JSON_POINTER_RE),
    "iri": _matcher(IRI_RE),
    "iri-reference": _matcher(IRI_REFERENCE_RE),
    "uri-template": _matcher(URI_TEMPLATE_RE),
    "regex": is_regex,
}


def validate_format(
    value: Any,
    format_name: str,
    custom_formats: Optional[CustomFormats] = None,
) -> bool:
    """Validate a string value against a named format.

    Args:
        value: The value to check; non-strings fail every built-in check
        format_name: The ``format`` keyword value
        custom_formats: Optional caller checks, consulted first

    Returns:
        True if the value conforms, or if the format is unknown

    Examples:
        >>> validate_format("a@example.com", "email")
        True
        >>> validate_format("nope", "email")
        False
        >>> validate_format("anything", "x-unknown")
        True
        >>> validate_format("nope", "email", {"email": lambda v: True})
        True
    """
    if custom_formats:
        custom_check = custom_formats.get(format_name)
        if callable(custom_check):
            return bool(custom_check(value))

    check = FORMAT_VALIDATORS.get(format_name)
    if check is None:
        return True
    if not isinstance(value, str):
        return False
    return check(value)


def get_supported_formats() -> List[str]:
    """Names of all built-in formats."""
    return list(FORMAT_VALIDATORS)


def is_format_supported(format_name: str) -> bool:
    return format_name in FORMAT_VALIDATORS


__all__ = [
    "FORMAT_VALIDATORS",
    "validate_format",
    "get_supported_formats",
    "is_format_supported",
]
