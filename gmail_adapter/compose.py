"""Outgoing message composition.

Messages are plain UTF-8 text with an 8bit body. Header lines are joined
with CRLF and the Subject always goes through ``encode_header_text``.
"""

import logging
from typing import List, Mapping, Optional, Tuple

from gmail_adapter.encoding import encode_base64url, encode_header_text
from gmail_adapter.errors import AddressResolutionError
from gmail_adapter.models import ComposedMessage, ThreadingContext

logger = logging.getLogger(__name__)

CRLF = "\r\n"
REPLY_PREFIX = "Re: "
NO_SUBJECT = "(No subject)"
REPLY_PLACEHOLDER = "Hi,\n\n[Write your reply here]\n\nBest regards"

_BASE_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("MIME-Version", "1.0"),
    ("Content-Type", "text/plain; charset=UTF-8"),
    ("Content-Transfer-Encoding", "8bit"),
)


def reply_subject(subject: Optional[str]) -> str:
    """Prefix ``Re: `` unless the subject already carries it."""
    subject = subject or NO_SUBJECT
    if subject.startswith(REPLY_PREFIX):
        return subject
    return f"{REPLY_PREFIX}{subject}"


def build_references(
    message_id: Optional[str], existing_references: Optional[str]
) -> Optional[str]:
    """Append ``message_id`` to an existing References chain.

    Returns None when there is nothing to emit.
    """
    message_id = message_id or ""
    if existing_references:
        references = f"{existing_references} {message_id}".strip()
    else:
        references = message_id
    return references or None


def render_message(headers: List[Tuple[str, str]], body: str) -> str:
    """Render header pairs and a body as a base64url transport string."""
    lines = [f"{name}: {_single_line(value)}" for name, value in headers]
    text = CRLF.join(lines) + CRLF + CRLF + body
    return encode_base64url(text.encode("utf-8"))


def compose_message(
    to: str,
    subject: str,
    body: str,
    cc: Optional[str] = None,
    bcc: Optional[str] = None,
    in_reply_to: Optional[str] = None,
    references: Optional[str] = None,
    thread_id: Optional[str] = None,
) -> ComposedMessage:
    """Compose a new plain-text message."""
    headers = list(_BASE_HEADERS)
    headers.append(("To", to))
    if cc:
        headers.append(("Cc", cc))
    if bcc:
        headers.append(("Bcc", bcc))
    headers.append(("Subject", encode_header_text(subject)))
    if in_reply_to:
        headers.append(("In-Reply-To", in_reply_to))
    if references:
        headers.append(("References", references))

    return ComposedMessage(
        raw=render_message(headers, body),
        to=to,
        subject=subject,
        in_reply_to=in_reply_to or None,
        references=references or None,
        thread_id=thread_id,
    )


def compose_reply(
    original_headers: Mapping[str, str],
    reply_to: str,
    body: Optional[str] = None,
    threading: Optional[ThreadingContext] = None,
) -> ComposedMessage:
    """Compose a threaded reply to an existing message.

    Args:
        original_headers: Headers of the message being answered; Subject,
            Message-ID and References are read from here
        reply_to: Bare address of the recipient
        body: Reply text; a placeholder is used when omitted
        threading: Overrides for the message id, references and thread id

    Returns:
        The composed reply

    Raises:
        AddressResolutionError: If ``reply_to`` is empty
    """
    if not reply_to:
        raise AddressResolutionError("Reply recipient address is empty")

    threading = threading or ThreadingContext()
    message_id = threading.existing_message_id
    if message_id is None:
        message_id = original_headers.get("Message-ID", "")
    existing_references = threading.existing_references
    if existing_references is None:
        existing_references = original_headers.get("References", "")

    if not message_id:
        logger.warning("Original message has no Message-ID, threading may be incomplete")

    return compose_message(
        to=reply_to,
        subject=reply_subject(original_headers.get("Subject")),
        body=body if body else REPLY_PLACEHOLDER,
        in_reply_to=message_id or None,
        references=build_references(message_id, existing_references),
        thread_id=threading.thread_id,
    )


def _single_line(value: str) -> str:
    return " ".join(value.splitlines())
