"""Mailbox address extraction from free-form header values."""

import re
from typing import Optional

_ANGLE_ADDRESS = re.compile(r"<([^<>]+@[^<>]+)>")
_BARE_ADDRESS = re.compile(r"([^\s<>]+@[^\s<>]+)")
_SIMPLE_SHAPE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def extract_email_address(value: Optional[str]) -> str:
    """Pull a bare address out of a From/To style header value.

    Tries ``Name <addr>`` first, then any bare ``local@domain`` token, then
    the whole trimmed value. Returns an empty string when nothing matches;
    callers must treat that as a failure rather than send to it.
    """
    if not value:
        return ""

    match = _ANGLE_ADDRESS.search(value)
    if match:
        return match.group(1)

    match = _BARE_ADDRESS.search(value)
    if match:
        return match.group(1)

    candidate = value.strip()
    if _SIMPLE_SHAPE.match(candidate):
        return candidate
    return ""


def validate_email_address(value: Optional[str]) -> bool:
    """Check that a value has the simple ``local@domain.tld`` shape."""
    if not value:
        return False
    return bool(_SIMPLE_SHAPE.match(value))
