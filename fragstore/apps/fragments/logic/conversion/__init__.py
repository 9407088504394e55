"""Conversion engine for fragment content.

Conversions are only possible inside one of two closed families:

- text: plain, markdown, html, csv, json, yaml
- image: png, jpeg, webp, gif

Converting a type to itself always succeeds and leaves the bytes
untouched. Crossing families is never supported.

The engine is stateless and has no knowledge of storage.
"""

import logging

from fragstore.apps.fragments.exceptions import UnsupportedConversion
from fragstore.apps.fragments.infrastructure.content_types import (
    IMAGE_TYPES,
    TEXT_TYPES,
    resolve_extension,
    type_family,
)
from fragstore.apps.fragments.logic.conversion.image import convert_image
from fragstore.apps.fragments.logic.conversion.text import convert_text

logger = logging.getLogger(__name__)

__all__ = [
    'convert',
    'is_conversion_supported',
    'resolve_target',
]


def is_conversion_supported(source_type: str, target_type: str) -> bool:
    """Check whether content can be converted between two MIME types.

    Args:
        source_type: Base MIME type of the stored content.
        target_type: Requested base MIME type.

    Returns:
        True for identical types or two members of the same family.
    """
    if source_type == target_type:
        return True
    family = type_family(source_type)
    return family is not None and target_type in family


def resolve_target(source_type: str, extension: str) -> str:
    """Resolve an extension into a MIME type reachable from source_type.

    Args:
        source_type: Base MIME type of the stored content.
        extension: Requested file extension (e.g., 'html').

    Returns:
        Target base MIME type.

    Raises:
        UnsupportedExtension: If the extension is not in the table.
        UnsupportedConversion: If the pair crosses families.
    """
    target_type = resolve_extension(extension)
    if not is_conversion_supported(source_type, target_type):
        logger.warning('Unsupported conversion: %s -> %s', source_type, target_type)
        raise UnsupportedConversion(source_type, target_type)
    return target_type


def convert(data: bytes, source_type: str, target_type: str) -> bytes:
    """Convert content from one MIME type to another.

    Args:
        data: Source content.
        source_type: Base MIME type of the source.
        target_type: Base MIME type to convert to.

    Returns:
        Converted content (the same bytes when the types match).

    Raises:
        UnsupportedConversion: If the pair crosses families.
        ConversionFailed: If the source content is malformed.
    """
    if source_type == target_type:
        return data
    if not is_conversion_supported(source_type, target_type):
        raise UnsupportedConversion(source_type, target_type)

    logger.debug('Converting %s -> %s', source_type, target_type)
    if source_type in TEXT_TYPES:
        return convert_text(data, source_type, target_type)
    if source_type in IMAGE_TYPES:
        return convert_image(data, source_type, target_type)
    raise UnsupportedConversion(source_type, target_type)
