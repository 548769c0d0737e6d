"""Decoding of image payloads sent as data URLs or bare base64."""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass

DEFAULT_IMAGE_MIME = "image/jpeg"

_DATA_URL_HEADER = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^,;]*)*),", re.IGNORECASE)


class InvalidImagePayload(ValueError):
    pass


class ImagePayloadTooLarge(ValueError):
    pass


@dataclass(frozen=True)
class DecodedImage:
    data: bytes
    mime_type: str


def decode_image_payload(value: str, *, max_bytes: int) -> DecodedImage:
    """Strip the ``data:<mime>;base64,`` prefix from *value* and decode it.

    A value without a prefix is treated as bare base64 JPEG data.
    """
    if not value or not value.strip():
        raise InvalidImagePayload("No image data provided")

    payload = value.strip()
    mime_type = DEFAULT_IMAGE_MIME

    match = _DATA_URL_HEADER.match(payload)
    if match:
        if match.group("mime"):
            mime_type = match.group("mime").lower()
        payload = payload[match.end():]
    payload = re.sub(r"\s+", "", payload)

    if not mime_type.startswith("image/"):
        raise InvalidImagePayload(f"Unsupported payload type {mime_type!r}")

    # Decoded size is about 3/4 of the encoded length.
    if len(payload) * 3 // 4 > max_bytes + 3:
        raise ImagePayloadTooLarge("Image exceeds the upload limit")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImagePayload("Image data is not valid base64") from exc

    if not data:
        raise InvalidImagePayload("No image data provided")
    if len(data) > max_bytes:
        raise ImagePayloadTooLarge("Image exceeds the upload limit")

    return DecodedImage(data=data, mime_type=mime_type)
