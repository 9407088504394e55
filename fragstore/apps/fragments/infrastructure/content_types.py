"""Content-Type parsing and the closed type tables for fragments."""

import re
from types import MappingProxyType
from typing import Final, NamedTuple

from fragstore.apps.fragments.exceptions import (
    InvalidContentType,
    UnsupportedExtension,
)

_TOKEN: Final = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_TYPE_RE: Final = re.compile(rf'^({_TOKEN})/({_TOKEN})$')
_PARAM_RE: Final = re.compile(
    rf'^({_TOKEN})[ \t]*=[ \t]*(?:({_TOKEN})|"((?:[^"\\]|\\.)*)")$',
)
_QUOTED_PAIR_RE: Final = re.compile(r'\\(.)')

TEXT_TYPES: Final = (
    'text/plain',
    'text/markdown',
    'text/html',
    'text/csv',
    'application/json',
    'application/yaml',
)

IMAGE_TYPES: Final = (
    'image/png',
    'image/jpeg',
    'image/webp',
    'image/gif',
)

SUPPORTED_TYPES: Final = frozenset(TEXT_TYPES + IMAGE_TYPES)

# Closed table: anything else is UnsupportedExtension, never guessed
EXTENSION_TYPES: Final = MappingProxyType({
    'txt': 'text/plain',
    'md': 'text/markdown',
    'html': 'text/html',
    'json': 'application/json',
    'csv': 'text/csv',
    'yaml': 'application/yaml',
    'yml': 'application/yaml',
    'png': 'image/png',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'webp': 'image/webp',
    'gif': 'image/gif',
})


class ContentType(NamedTuple):
    """A parsed Content-Type value."""

    base_type: str
    parameters: dict[str, str]

    def __str__(self) -> str:
        """Format back into a header value."""
        params = ''.join(
            f'; {name}={_format_param(value)}'
            for name, value in self.parameters.items()
        )
        return f'{self.base_type}{params}'


def _format_param(value: str) -> str:
    if re.fullmatch(_TOKEN, value):
        return value
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return f'"{escaped}"'


def _split_params(value: str) -> list[str]:
    """Split on semicolons that are not inside a quoted string."""
    parts: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for char in value:
        if escaped:
            escaped = False
        elif char == '\\' and in_quotes:
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
        elif char == ';' and not in_quotes:
            parts.append(''.join(current))
            current = []
            continue
        current.append(char)
    parts.append(''.join(current))
    return parts


def parse_content_type(value: str) -> ContentType:
    """Parse a Content-Type value into its base type and parameters.

    Example: 'text/plain; charset=utf-8' ->
    ContentType('text/plain', {'charset': 'utf-8'})

    Args:
        value: Raw Content-Type value.

    Returns:
        Parsed ContentType with lowercase base type and parameter names.

    Raises:
        InvalidContentType: If the value is not a valid media type.
    """
    if not isinstance(value, str):
        raise InvalidContentType(repr(value))

    head, *raw_params = _split_params(value)
    type_match = _TYPE_RE.match(head.strip())
    if type_match is None:
        raise InvalidContentType(value)

    parameters: dict[str, str] = {}
    for raw_param in raw_params:
        param_match = _PARAM_RE.match(raw_param.strip())
        if param_match is None:
            raise InvalidContentType(value)
        name, token, quoted = param_match.groups()
        if token is None:
            token = _QUOTED_PAIR_RE.sub(r'\1', quoted)
        parameters[name.lower()] = token

    base_type = f'{type_match.group(1)}/{type_match.group(2)}'.lower()
    return ContentType(base_type, parameters)


def get_mime_type(value: str) -> str:
    """Get the base MIME type of a Content-Type value.

    Args:
        value: Raw Content-Type value.

    Returns:
        Base type with parameters removed (e.g., 'text/html').
    """
    return parse_content_type(value).base_type


def type_family(mime_type: str) -> tuple[str, ...] | None:
    """Get the conversion family a MIME type belongs to.

    Args:
        mime_type: Base MIME type.

    Returns:
        TEXT_TYPES, IMAGE_TYPES, or None for unknown types.
    """
    if mime_type in TEXT_TYPES:
        return TEXT_TYPES
    if mime_type in IMAGE_TYPES:
        return IMAGE_TYPES
    return None


def resolve_extension(extension: str) -> str:
    """Map a file extension to its MIME type.

    Args:
        extension: Extension with or without the leading dot, any case.

    Returns:
        MIME type from the extension table.

    Raises:
        UnsupportedExtension: If the extension is not in the table.
    """
    normalized = extension.lstrip('.').lower()
    try:
        return EXTENSION_TYPES[normalized]
    except KeyError as error:
        raise UnsupportedExtension(extension) from error


def split_extension(value: str) -> tuple[str, str | None]:
    """Split '<id>.<ext>' into the fragment ID and its extension.

    A value with no dot, a leading dot, or a trailing dot has
    no extension.

    Args:
        value: Path parameter (e.g., 'abc-123.html').

    Returns:
        Tuple of (fragment ID, extension or None).
    """
    last_dot = value.rfind('.')
    if last_dot <= 0 or last_dot == len(value) - 1:
        return value, None
    return value[:last_dot], value[last_dot + 1:]
