"""Gmail adapter: MIME codec, forwarded-content extraction and threaded replies."""

from gmail_adapter.addresses import extract_email_address, validate_email_address
from gmail_adapter.compose import compose_message, compose_reply
from gmail_adapter.encoding import (
    decode_base64url,
    encode_base64url,
    encode_header_text,
)
from gmail_adapter.forwarded import extract_forwarded_content
from gmail_adapter.parser import parse_message_bytes, parse_raw_message

__version__ = "0.1.0"

__all__ = [
    "compose_message",
    "compose_reply",
    "decode_base64url",
    "encode_base64url",
    "encode_header_text",
    "extract_email_address",
    "extract_forwarded_content",
    "parse_message_bytes",
    "parse_raw_message",
    "validate_email_address",
]
