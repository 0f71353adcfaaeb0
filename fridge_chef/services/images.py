"""Image payload normalization for the generation service.

The presentation layer may hand over an image as raw bytes, a data URL
(data:image/jpeg;base64,...) or a plain base64 string. This module turns any of
these into the raw encoded bytes plus MIME type that the generation service expects.

Core Functions:
- decode_image_payload(): Strip data URL prefix and base64-decode strings
- detect_mime_type(): Sniff JPEG/PNG/WebP from magic bytes
- validate_image_size(): Check the size limit (MAX_IMAGE_SIZE_MB unless overridden)
- prepare_image(): Full pipeline, raises InvalidInputError on any failure
"""

import base64
import binascii
import re
from typing import Optional

import filetype

from fridge_chef.services.errors import InvalidInputError
from fridge_chef.utils.config import config
from fridge_chef.utils.logger import logger


SUPPORTED_MIME_TYPES = {
    "jpg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}

# data:[<mediatype>][;base64],<data>
DATA_URL_PATTERN = re.compile(r"^data:[\w/+.-]*(?:;[\w=-]+)*?;base64,", re.IGNORECASE)


def decode_image_payload(payload: bytes | str) -> bytes:
    """Return raw image bytes from bytes, a data URL, or a plain base64 string.

    Args:
        payload: Image as bytes or base64 text (with or without data URL header).

    Returns:
        Decoded image bytes.

    Raises:
        InvalidInputError: If the payload is empty, of an unsupported type, or not valid base64.
    """
    if isinstance(payload, (bytes, bytearray)):
        if not payload:
            raise InvalidInputError("Image payload is empty")
        return bytes(payload)

    if not isinstance(payload, str):
        raise InvalidInputError(f"Unsupported image payload type: {type(payload).__name__}")

    text = payload.strip()
    match = DATA_URL_PATTERN.match(text)
    if match:
        text = text[match.end():]
    elif text.startswith("data:"):
        raise InvalidInputError("Data URL is not base64-encoded")
    text = "".join(text.split())

    if not text:
        raise InvalidInputError("Image payload is empty")

    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInputError(f"Image payload is not valid base64: {e}") from e


def detect_mime_type(image_bytes: bytes) -> Optional[str]:
    """Detect MIME type from magic bytes (JPEG, PNG or WebP only).

    Uses filetype library to detect actual file format, not extension.

    Returns:
        MIME type string, or None if the format is not supported.
    """
    kind = filetype.guess(image_bytes)
    if kind is None:
        return None
    return SUPPORTED_MIME_TYPES.get(kind.extension)


def validate_image_size(image_bytes: bytes, max_size_mb: Optional[float] = None) -> bool:
    """Validate image size against max_size_mb (default: MAX_IMAGE_SIZE_MB)."""
    limit = config.MAX_IMAGE_SIZE_MB if max_size_mb is None else max_size_mb
    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > limit:
        logger.warning(f"Image size {size_mb:.2f}MB exceeds limit of {limit}MB")
        return False
    return True


def prepare_image(payload: bytes | str, max_size_mb: Optional[float] = None) -> tuple[bytes, str]:
    """Unified pipeline: decode → detect format → check size.

    Args:
        payload: Image as bytes, data URL, or plain base64 string.
        max_size_mb: Size limit in MB; defaults to MAX_IMAGE_SIZE_MB.

    Returns:
        Tuple of (image_bytes, mime_type) ready for the generation service.

    Raises:
        InvalidInputError: If the payload is not a decodable JPEG, PNG or WebP image,
            or exceeds the size limit.
    """
    limit = config.MAX_IMAGE_SIZE_MB if max_size_mb is None else max_size_mb
    image_bytes = decode_image_payload(payload)

    mime_type = detect_mime_type(image_bytes)
    if mime_type is None:
        raise InvalidInputError("Invalid image format. Only JPEG, PNG and WebP are supported.")

    if not validate_image_size(image_bytes, limit):
        raise InvalidInputError(f"Image too large. Maximum size is {limit}MB")

    logger.debug(f"Image prepared: {mime_type}, {len(image_bytes) / 1024:.1f}KB")
    return image_bytes, mime_type
