"""
Supported fragment content types and the extension table.

Both tables are immutable and shared by fragment validation and
conversion dispatch.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from fragments.exceptions import ContentTypeError, UnknownExtensionError

SUPPORTED_TYPES: tuple[str, ...] = (
    "text/plain",
    "text/markdown",
    "text/html",
    "text/csv",
    "application/json",
    "application/yaml",
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/gif",
    "image/avif",
)

EXTENSION_TYPES: Mapping[str, str] = MappingProxyType(
    {
        "txt": "text/plain",
        "md": "text/markdown",
        "html": "text/html",
        "csv": "text/csv",
        "json": "application/json",
        "yaml": "application/yaml",
        "yml": "application/yaml",
        "png": "image/png",
        "jpg": "image/jpeg",
        "jpeg": "image/jpeg",
        "webp": "image/webp",
        "gif": "image/gif",
        "avif": "image/avif",
    }
)

# RFC 7231 section 3.1.1.1
_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_TYPE_RE = re.compile(rf"^{_TOKEN}/{_TOKEN}$")
_PARAM_RE = re.compile(
    rf' *; *({_TOKEN}) *= *("(?:[\x0b\x20\x21\x23-\x5b\x5d-\x7e\x80-\xff]|\\[\x0b\x20-\xff])*"|{_TOKEN}) *'
)
_QUOTED_ESCAPE_RE = re.compile(r"\\([\x0b\x20-\xff])")


@dataclass(frozen=True)
class ParsedContentType:
    type: str
    parameters: Mapping[str, str] = field(default_factory=dict)


def parse_content_type(value: str | None) -> ParsedContentType:
    """Parse a raw Content-Type header into its base type and parameters.

    Raises:
        ContentTypeError: If the value is empty or not valid RFC 7231 syntax.
    """
    if not isinstance(value, str) or not value.strip():
        raise ContentTypeError("Content-Type is missing", {"content_type": str(value or "")})

    semicolon = value.find(";")
    raw_type = (value if semicolon == -1 else value[:semicolon]).strip()
    if not _TYPE_RE.match(raw_type):
        raise ContentTypeError(f"Invalid media type: {value}", {"content_type": value})

    parameters: dict[str, str] = {}
    if semicolon != -1:
        position = semicolon
        while position < len(value):
            match = _PARAM_RE.match(value, position)
            if match is None or match.end() == position:
                raise ContentTypeError(f"Invalid parameter format: {value}", {"content_type": value})
            name, raw = match.group(1).lower(), match.group(2)
            if raw.startswith('"'):
                raw = _QUOTED_ESCAPE_RE.sub(r"\1", raw[1:-1])
            parameters[name] = raw
            position = match.end()

    return ParsedContentType(type=raw_type.lower(), parameters=MappingProxyType(parameters))


def base_type(value: str) -> str:
    """Return the MIME type with any parameters stripped."""
    return parse_content_type(value).type


def is_supported_type(value: str | None, supported: Collection[str] = SUPPORTED_TYPES) -> bool:
    """Whether the base type of ``value`` is in ``supported``.

    Well-formed but unsupported types return False; malformed values raise
    ContentTypeError.
    """
    return parse_content_type(value).type in supported


def type_for_extension(extension: str) -> str:
    """Map a file extension (leading dot optional) to its MIME type."""
    key = extension.lower().lstrip(".")
    try:
        return EXTENSION_TYPES[key]
    except KeyError:
        raise UnknownExtensionError(
            f"Unrecognised extension: .{key}", {"extension": key}
        ) from None


def split_extension(reference: str) -> tuple[str, str | None]:
    """Split ``"<id>.<ext>"`` into ``(id, ext)``; ``ext`` is None when absent."""
    stem, dot, extension = reference.rpartition(".")
    if not dot or not stem or not extension:
        return reference, None
    return stem, extension


__all__ = [
    "SUPPORTED_TYPES",
    "EXTENSION_TYPES",
    "ParsedContentType",
    "parse_content_type",
    "base_type",
    "is_supported_type",
    "type_for_extension",
    "split_extension",
]
