"""Raw RFC 822 message parsing.

Messages are decomposed with the standard library ``email`` package using
``policy.default``, which also takes care of decoding RFC 2047 encoded
header values.
"""

import base64
import logging
import quopri
import re
from email import policy
from email.message import EmailMessage, Message
from email.parser import BytesParser
from email.policy import compat32
from typing import Callable, Dict, Iterator, List, Optional

from gmail_adapter.encoding import decode_base64url
from gmail_adapter.errors import ParseError
from gmail_adapter.models import Attachment, HeaderMap, ParsedMessage

logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[^>]*>")

_TRANSFER_DECODERS: Dict[str, Callable[[bytes], bytes]] = {
    "base64": base64.b64decode,
    "quoted-printable": quopri.decodestring,
}


def strip_html(html: str) -> str:
    """Remove every ``<...>`` tag from an HTML string."""
    return _HTML_TAG.sub("", html)


def parse_raw_message(raw: str) -> ParsedMessage:
    """Decode a base64url transport string and parse the message it holds.

    Raises:
        DecodeError: If the transport string is malformed
        ParseError: If the decoded bytes are not a valid message
    """
    return parse_message_bytes(decode_base64url(raw))


def parse_message_bytes(raw: bytes) -> ParsedMessage:
    """Parse raw message bytes into a ParsedMessage.

    Body selection, in order:

    - a single-part text message is the text body (HTML becomes the HTML
      body plus a tag-stripped text body)
    - otherwise the first inline ``text/plain`` leaf is the text body and the
      first inline ``text/html`` leaf is the HTML body
    - with HTML but no plain text, the text body is the stripped HTML

    Every other leaf part becomes an attachment, in document order.
    Encapsulated ``message/rfc822`` parts are kept whole as attachments.

    Raises:
        ParseError: If the bytes are empty or contain no header block
    """
    if not raw:
        raise ParseError("Message is empty")

    try:
        message = BytesParser(policy=policy.default).parsebytes(raw)
        headers = HeaderMap((name, str(value)) for name, value in message.items())
        if not len(headers):
            raise ParseError("Message has no header block")
        return _build_parsed_message(message, headers)
    except ParseError:
        raise
    except Exception as e:
        raise ParseError(f"Failed to parse message: {e}") from e


def _build_parsed_message(message: EmailMessage, headers: HeaderMap) -> ParsedMessage:
    text_body: Optional[str] = None
    html_body: Optional[str] = None
    attachments: List[Attachment] = []

    for part in _iter_leaf_parts(message):
        content_type = part.get_content_type()
        is_inline = part.get_content_disposition() != "attachment"

        if is_inline and content_type == "text/plain" and text_body is None:
            text_body = _decode_text(part)
        elif is_inline and content_type == "text/html" and html_body is None:
            html_body = _decode_text(part)
        else:
            attachments.append(
                Attachment(
                    content_type=content_type,
                    content=_part_bytes(part),
                    filename=part.get_filename(),
                )
            )

    if text_body is None and html_body is not None:
        text_body = strip_html(html_body)

    logger.debug(
        f"Parsed message: text={text_body is not None}, "
        f"html={html_body is not None}, attachments={len(attachments)}"
    )
    return ParsedMessage(
        headers=headers,
        text_body=text_body,
        html_body=html_body,
        attachments=tuple(attachments),
    )


def _iter_leaf_parts(part: EmailMessage) -> Iterator[EmailMessage]:
    """Yield leaf parts in document order.

    Multipart containers are transparent; ``message/*`` parts are leaves so
    nested messages are never expanded here.
    """
    if part.get_content_maintype() == "multipart" and part.is_multipart():
        for child in part.iter_parts():
            yield from _iter_leaf_parts(child)
    else:
        yield part


def _decode_text(part: EmailMessage) -> str:
    payload = part.get_payload(decode=True) or b""
    charset = part.get_content_charset() or "utf-8"
    try:
        text = payload.decode(charset, errors="replace")
    except LookupError:
        logger.warning(f"Unknown charset {charset!r}, decoding as UTF-8")
        text = payload.decode("utf-8", errors="replace")
    return text.replace("\r\n", "\n")


def _part_bytes(part: EmailMessage) -> bytes:
    if part.is_multipart():
        # message/rfc822 payload is the parsed sub-message
        nested = part.get_payload(0)
        encoding = str(part.get("Content-Transfer-Encoding", "")).strip().lower()
        if encoding in _TRANSFER_DECODERS:
            return _TRANSFER_DECODERS[encoding](_nested_source(nested))
        return nested.as_bytes()
    return part.get_payload(decode=True) or b""


def _nested_source(nested: Message) -> bytes:
    """Recover the still-encoded text of a transfer-encoded sub-message."""
    if not nested.keys():
        # base64 text never looks like a header block, so it is all payload
        payload = nested.get_payload()
        return payload.encode("ascii", "surrogateescape")
    return nested.as_bytes(policy=compat32)

