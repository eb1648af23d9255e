"""
Image encoding helpers.

Images are stored as raw bytes plus a MIME type and handed to clients as
``data:<mime>;base64,<...>`` strings.
"""

import base64
import binascii
import re
from typing import Optional

from shuttlecoach.errors import BadRequestError

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)

DEFAULT_MIME = "image/png"


def binary_to_data_url(data: Optional[bytes], mime: Optional[str] = DEFAULT_MIME) -> Optional[str]:
    if not data:
        return None
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime or DEFAULT_MIME};base64,{encoded}"


def decode_image(value: Optional[str], max_bytes: int, field: str = "image") -> tuple[bytes, str]:
    """
    Decode a base64 string or data URL into (bytes, mime).

    Raises BadRequestError for empty input, undecodable input, non-image
    MIME types and payloads above ``max_bytes``.
    """
    if not value or not value.strip():
        raise BadRequestError("No image data provided", field=field)

    payload = value.strip()
    mime = DEFAULT_MIME
    match = DATA_URL_PATTERN.match(payload)
    if match:
        mime = match.group("mime").lower()
        payload = match.group("payload")
    elif payload.startswith("data:"):
        raise BadRequestError("Invalid image data format", field=field)

    if not mime.startswith("image/"):
        raise BadRequestError("Invalid image data format", field=field)

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise BadRequestError("Invalid image data format", field=field)

    if not data:
        raise BadRequestError("No image data provided", field=field)

    if len(data) > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise BadRequestError(f"Image size must be less than {limit_mb}MB", field=field)

    return data, mime
