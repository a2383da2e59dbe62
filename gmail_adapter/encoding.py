"""Transport and header text encoding.

Gmail exchanges complete RFC 822 messages as URL-safe base64 without
padding. Header values that carry non-ASCII text are written using the
RFC 2047 "B" encoding.
"""

import base64
import binascii
from typing import Union

from gmail_adapter.errors import DecodeError


def encode_base64url(data: Union[bytes, str]) -> str:
    """Encode bytes (or UTF-8 text) as unpadded URL-safe base64."""
    if isinstance(data, str):
        data = data.encode("utf-8")

    encoded = base64.b64encode(data).decode("ascii")
    return encoded.replace("+", "-").replace("/", "_").rstrip("=")


def decode_base64url(data: str) -> bytes:
    """Decode an unpadded URL-safe base64 string.

    Args:
        data: Transport string as returned by the Gmail API

    Returns:
        The decoded bytes

    Raises:
        DecodeError: If the input contains characters outside the alphabet
            or has an impossible length
    """
    if not isinstance(data, str):
        raise DecodeError(f"Expected str payload, got {type(data).__name__}")

    pad_length = (4 - len(data) % 4) % 4
    padded = data + "=" * pad_length
    standard = padded.replace("-", "+").replace("_", "/")

    try:
        return base64.b64decode(standard, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64url payload: {e}") from e


def encode_header_text(text: str, force: bool = False) -> str:
    """Encode a header value for emission.

    ASCII text is returned unchanged unless ``force`` is set; anything else
    becomes a single ``=?UTF-8?B?...?=`` encoded word.
    """
    if not force and text.isascii():
        return text

    payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return f"=?UTF-8?B?{payload}?="
