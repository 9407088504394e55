"""Conversions within the image family using Pillow."""

import io
import logging
from types import MappingProxyType
from typing import Final

from PIL import Image, UnidentifiedImageError

from fragstore.apps.fragments.exceptions import ConversionFailed

logger = logging.getLogger(__name__)

# MIME type -> Pillow format name
IMAGE_FORMATS: Final = MappingProxyType({
    'image/png': 'PNG',
    'image/jpeg': 'JPEG',
    'image/webp': 'WEBP',
    'image/gif': 'GIF',
})

# JPEG has no alpha channel or palette
_JPEG_MODES: Final = frozenset(('RGB', 'L', 'CMYK'))


def convert_image(data: bytes, source_type: str, target_type: str) -> bytes:
    """Re-encode a raster image in another format at the same size.

    Only the first frame of an animated source is kept.

    Args:
        data: Encoded source image.
        source_type: Base MIME type of the source.
        target_type: Base MIME type to convert to.

    Returns:
        Image encoded in the target format.

    Raises:
        ConversionFailed: If the source cannot be decoded or the
            target cannot be encoded.
    """
    target_format = IMAGE_FORMATS[target_type]
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            image = source
            if target_format == 'JPEG' and image.mode not in _JPEG_MODES:
                image = image.convert('RGB')
            output = io.BytesIO()
            image.save(output, format=target_format)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as error:
        logger.warning(
            'Image conversion failed: %s -> %s: %s',
            source_type,
            target_type,
            error,
        )
        raise ConversionFailed(source_type, target_type, str(error)) from error

    logger.debug(
        'Converted image %s -> %s (%d bytes)',
        source_type,
        target_type,
        output.tell(),
    )
    return output.getvalue()
