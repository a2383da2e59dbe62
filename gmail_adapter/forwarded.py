"""Forwarded-content extraction.

Two forwarding styles are recognised:

- "forward as attachment": the original is embedded as a ``message/rfc822``
  part, possibly several levels deep
- inline forwards, where the original's headers are pasted into the body
  below a "Forwarded message" separator

The encapsulated walk is bounded by ``max_depth`` so that adversarial
attachment nesting cannot run away.
"""

import logging
import re
from typing import List, Optional

from gmail_adapter.errors import GmailAdapterError
from gmail_adapter.models import (
    ForwardChainEntry,
    ForwardedContentResult,
    ForwardHeaders,
    ParsedMessage,
)
from gmail_adapter.parser import parse_message_bytes, parse_raw_message

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3
MIN_DEPTH = 1
MAX_DEPTH = 10
PREVIEW_LENGTH = 200

SOURCE_ENCAPSULATED = "encapsulated"
SOURCE_INLINE = "inline"
SOURCE_UNKNOWN = "unknown"

UNDETECTED_ERROR = "Could not confidently detect forwarded content"

# Literal Gmail-style layout: From, Date, Subject, To, blank line, body.
INLINE_FORWARD_PATTERN = re.compile(
    r"(?:^-+\s*Forwarded message\s*-+\s*$\n)?\s*"
    r"From:\s*(.+)\nDate:\s*(.+)\nSubject:\s*(.+)\nTo:\s*(.+)\n\n([\s\S]*)",
    re.IGNORECASE | re.MULTILINE,
)


def clamp_depth(max_depth: Optional[int]) -> int:
    """Clamp a requested depth to [1, 10]; ``None`` means the default."""
    if max_depth is None:
        return DEFAULT_MAX_DEPTH
    return max(MIN_DEPTH, min(MAX_DEPTH, int(max_depth)))


def headers_snapshot(message: ParsedMessage) -> ForwardHeaders:
    headers = message.headers
    return ForwardHeaders(
        from_=headers.get("From"),
        to=headers.get("To"),
        subject=headers.get("Subject") or None,
        date=headers.get("Date"),
        message_id=headers.get("Message-ID"),
    )


def find_encapsulated(message: ParsedMessage) -> Optional[bytes]:
    """Return the bytes of the first embedded message, if any."""
    for attachment in message.attachments:
        if attachment.is_encapsulated_message:
            return attachment.content
    return None


def match_inline_forward(text: Optional[str]) -> Optional[ForwardedContentResult]:
    """Match the inline forward layout against a text body."""
    if not text:
        return None

    match = INLINE_FORWARD_PATTERN.search(text)
    if not match:
        return None

    from_, date, subject, to, body = (group.strip() for group in match.groups())
    return ForwardedContentResult(
        success=True,
        source=SOURCE_INLINE,
        depth=1,
        original_headers=ForwardHeaders(
            from_=from_, to=to, subject=subject, date=date
        ),
        original_text=body,
        chain=(),
    )


def extract_forwarded_content(
    raw: str,
    include_html: bool = False,
    max_depth: Optional[int] = DEFAULT_MAX_DEPTH,
) -> ForwardedContentResult:
    """Recover the original message from a forwarded message.

    Args:
        raw: base64url transport string of the outer message
        include_html: Whether to report the HTML body of the resolved level
        max_depth: Maximum number of encapsulated levels to unwind, clamped
            to [1, 10]

    Returns:
        The extraction result. Decode and parse errors are reported as a
        failed result rather than raised.
    """
    depth_limit = clamp_depth(max_depth)

    try:
        outer = parse_raw_message(raw)

        nested_bytes = find_encapsulated(outer)
        if nested_bytes is not None:
            return _unwind_encapsulated(nested_bytes, depth_limit, include_html)

        inline = match_inline_forward(outer.text_body)
        if inline is not None:
            logger.debug("Detected inline forwarded message")
            return inline

        logger.info("No forwarding pattern detected, returning top-level message")
        return ForwardedContentResult(
            success=False,
            source=SOURCE_UNKNOWN,
            depth=0,
            original_headers=headers_snapshot(outer),
            original_text=outer.text_body,
            original_html=outer.html_body if include_html else None,
            chain=(),
            error=UNDETECTED_ERROR,
        )
    except GmailAdapterError as e:
        logger.warning(f"Forwarded content extraction failed: {e}")
        return ForwardedContentResult.failure(str(e))


def _unwind_encapsulated(
    nested_bytes: bytes, depth_limit: int, include_html: bool
) -> ForwardedContentResult:
    current = parse_message_bytes(nested_bytes)
    chain: List[ForwardChainEntry] = [_chain_entry(current)]
    pending = find_encapsulated(current)

    while pending is not None and len(chain) < depth_limit:
        current = parse_message_bytes(pending)
        chain.append(_chain_entry(current))
        pending = find_encapsulated(current)

    if pending is not None:
        logger.info(f"Stopped unwinding forwarded messages at depth {depth_limit}")

    return ForwardedContentResult(
        success=True,
        source=SOURCE_ENCAPSULATED,
        depth=len(chain),
        original_headers=headers_snapshot(current),
        original_text=current.text_body,
        original_html=current.html_body if include_html else None,
        chain=tuple(chain),
    )


def _chain_entry(message: ParsedMessage) -> ForwardChainEntry:
    return ForwardChainEntry(
        headers=headers_snapshot(message),
        preview=(message.text_body or "")[:PREVIEW_LENGTH],
    )
