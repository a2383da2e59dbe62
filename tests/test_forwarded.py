"""Tests for forwarded-content extraction."""

import base64
import json
from email.mime.message import MIMEMessage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import pytest

from conftest import make_text_message, to_blob, wrap_as_forward
from gmail_adapter.encoding import encode_base64url
from gmail_adapter.forwarded import (
    UNDETECTED_ERROR,
    clamp_depth,
    extract_forwarded_content,
    match_inline_forward,
)

INLINE_FORWARD_BODY = (
    "FYI, see below.\n"
    "\n"
    "---------- Forwarded message ---------\n"
    "From: Alice Example <alice@example.com>\n"
    "Date: Mon, Jan 1, 2024 at 10:00 AM\n"
    "Subject: Quarterly numbers\n"
    "To: Bob <bob@example.com>\n"
    "\n"
    "Here are the numbers you asked for.\n"
    "Revenue is up.\n"
)


def encapsulated_with_encoding(encoding: str, encoded_inner: bytes) -> bytes:
    """Build a forward whose message/rfc822 part uses a transfer encoding."""
    return (
        b"From: fwd@example.com\r\n"
        b"Subject: Fwd: Inner\r\n"
        b"MIME-Version: 1.0\r\n"
        b'Content-Type: multipart/mixed; boundary="XYZ"\r\n'
        b"\r\n"
        b"--XYZ\r\n"
        b"Content-Type: text/plain\r\n"
        b"\r\n"
        b"see attached\r\n"
        b"--XYZ\r\n"
        b"Content-Type: message/rfc822\r\n"
        b"Content-Transfer-Encoding: " + encoding.encode("ascii") + b"\r\n"
        b"\r\n" + encoded_inner + b"\r\n"
        b"--XYZ--\r\n"
    )


@pytest.fixture
def three_level_forward():
    """Outer message forwarding level1, which forwards level2, which forwards level3."""
    level3 = make_text_message(
        "Original question",
        "The very first message.",
        sender="Carol <carol@example.com>",
        message_id="<level3@example.com>",
    )
    level2 = wrap_as_forward(level3, "Fwd: Original question", "Bob <bob@example.com>")
    level1 = wrap_as_forward(level2, "Fwd: Fwd: Original question", "Ann <ann@example.com>")
    return wrap_as_forward(level1, "Fwd: Fwd: Fwd: Original question")


class TestEncapsulatedForward:
    """Forward-as-attachment detection."""

    def test_single_level(self):
        original = make_text_message(
            "Budget",
            "Please review the budget.",
            sender="Alice <alice@example.com>",
            message_id="<budget@example.com>",
        )
        outer = wrap_as_forward(original, "Fwd: Budget")

        result = extract_forwarded_content(to_blob(outer))

        assert result.success is True
        assert result.source == "encapsulated"
        assert result.depth == 1
        assert len(result.chain) == 1
        assert result.original_headers.from_ == "Alice <alice@example.com>"
        assert result.original_headers.subject == "Budget"
        assert result.original_headers.message_id == "<budget@example.com>"
        assert result.original_text == "Please review the budget."
        assert result.chain[0].preview == "Please review the budget."
        assert result.error is None

    def test_depth_bound_stops_unwinding(self, three_level_forward):
        """With max_depth=2 only two nested levels are unwound."""
        result = extract_forwarded_content(to_blob(three_level_forward), max_depth=2)

        assert result.success is True
        assert result.depth == 2
        assert len(result.chain) == 2
        assert result.chain[0].headers.from_ == "Ann <ann@example.com>"
        assert result.chain[1].headers.from_ == "Bob <bob@example.com>"
        assert result.original_headers.subject == "Fwd: Original question"

    def test_full_unwind_reaches_innermost(self, three_level_forward):
        result = extract_forwarded_content(to_blob(three_level_forward), max_depth=10)

        assert result.depth == 3
        assert [entry.headers.subject for entry in result.chain] == [
            "Fwd: Fwd: Original question",
            "Fwd: Original question",
            "Original question",
        ]
        assert result.original_headers.message_id == "<level3@example.com>"
        assert result.original_text == "The very first message."

    def test_depth_clamped_to_minimum(self, three_level_forward):
        result = extract_forwarded_content(to_blob(three_level_forward), max_depth=0)

        assert result.depth == 1

    def test_preview_truncated(self):
        original = make_text_message("Long", "x" * 500)
        result = extract_forwarded_content(to_blob(wrap_as_forward(original, "Fwd: Long")))

        assert result.chain[0].preview == "x" * 200
        assert result.original_text == "x" * 500

    def test_html_included_only_when_requested(self):
        original = MIMEMultipart("alternative")
        original["From"] = "alice@example.com"
        original["Subject"] = "Styled"
        original.attach(MIMEText("plain text", "plain"))
        original.attach(MIMEText("<p>rich text</p>", "html"))
        outer = wrap_as_forward(original, "Fwd: Styled")

        without_html = extract_forwarded_content(to_blob(outer))
        with_html = extract_forwarded_content(to_blob(outer), include_html=True)

        assert without_html.original_html is None
        assert "html" not in without_html.to_dict()["original_content"]
        assert with_html.original_html == "<p>rich text</p>"
        assert with_html.original_text == "plain text"

    def test_base64_encoded_attachment(self):
        """message/rfc822 parts sent with a base64 transfer encoding are unwrapped."""
        inner = b"From: a@example.com\r\nSubject: Inner\r\n\r\nhello inner"
        outer = encapsulated_with_encoding("base64", base64.b64encode(inner))

        result = extract_forwarded_content(encode_base64url(outer))

        assert result.success is True
        assert result.source == "encapsulated"
        assert result.depth == 1
        assert result.original_headers.from_ == "a@example.com"
        assert result.original_headers.subject == "Inner"
        assert result.original_text == "hello inner"

    def test_quoted_printable_encoded_attachment(self):
        inner = b"From: a@example.com\r\nSubject: Inner\r\n\r\nhello =\r\ninner"
        outer = encapsulated_with_encoding("quoted-printable", inner)

        result = extract_forwarded_content(encode_base64url(outer))

        assert result.success is True
        assert result.original_headers.subject == "Inner"
        assert result.original_text == "hello inner"


class TestInlineForward:
    """Inline quoted forward detection."""

    def test_inline_forward_detected(self):
        msg = make_text_message("Fwd: Quarterly numbers", INLINE_FORWARD_BODY)

        result = extract_forwarded_content(to_blob(msg), include_html=True)

        assert result.success is True
        assert result.source == "inline"
        assert result.depth == 1
        assert result.chain == ()
        assert result.original_headers.from_ == "Alice Example <alice@example.com>"
        assert result.original_headers.date == "Mon, Jan 1, 2024 at 10:00 AM"
        assert result.original_headers.subject == "Quarterly numbers"
        assert result.original_headers.to == "Bob <bob@example.com>"
        assert result.original_headers.message_id is None
        assert result.original_text == "Here are the numbers you asked for.\nRevenue is up."
        assert result.original_html is None

    def test_inline_requires_literal_order(self):
        """Headers in a different order are not treated as a forward."""
        text = (
            "From: Alice <alice@example.com>\n"
            "Subject: Out of order\n"
            "Date: Mon, Jan 1, 2024\n"
            "To: Bob <bob@example.com>\n"
            "\n"
            "body\n"
        )
        assert match_inline_forward(text) is None

    def test_inline_without_separator(self):
        text = (
            "From: Alice <alice@example.com>\n"
            "Date: today\n"
            "Subject: No separator\n"
            "To: bob@example.com\n"
            "\n"
            "  body text  \n"
        )
        result = match_inline_forward(text)

        assert result is not None
        assert result.original_headers.subject == "No separator"
        assert result.original_text == "body text"

    def test_inline_case_insensitive(self):
        text = "from: a@example.com\ndate: d\nsubject: s\nto: t@example.com\n\nbody"
        result = match_inline_forward(text)

        assert result is not None
        assert result.original_headers.from_ == "a@example.com"

    def test_encapsulated_takes_precedence_over_inline(self):
        inner = make_text_message("Attached", "attached body")
        outer = MIMEMultipart()
        outer["From"] = "fwd@example.com"
        outer["Subject"] = "Fwd: both"
        outer.attach(MIMEText(INLINE_FORWARD_BODY, "plain"))
        outer.attach(MIMEMessage(inner))

        result = extract_forwarded_content(to_blob(outer))

        assert result.source == "encapsulated"
        assert result.original_headers.subject == "Attached"


class TestUnknownAndFailures:
    """Best-effort and failure results."""

    def test_plain_message_is_unknown(self, test_email_message_simple):
        result = extract_forwarded_content(to_blob(test_email_message_simple))

        assert result.success is False
        assert result.source == "unknown"
        assert result.depth == 0
        assert result.chain == ()
        assert result.error == UNDETECTED_ERROR
        assert result.original_headers.subject == "Simple Test Email"
        assert result.original_headers.from_ == "Test Sender <sender@example.com>"
        assert result.original_headers.message_id == "<simple-test-123@example.com>"
        assert result.original_text == "This is a simple test email."

    def test_decode_failure(self):
        result = extract_forwarded_content("@@not-base64@@")

        assert result.success is False
        assert result.source is None
        assert result.chain == ()
        assert result.to_dict() == {"success": False, "error": result.error}
        assert "base64" in result.error

    def test_parse_failure(self):
        result = extract_forwarded_content(encode_base64url(b"no headers here at all"))

        assert result.success is False
        assert result.to_dict()["error"] == "Message has no header block"


class TestResultSerialization:
    """Interchange shape of ForwardedContentResult."""

    def test_encapsulated_to_dict(self):
        original = make_text_message(
            "Budget",
            "Please review.",
            sender="Alice <alice@example.com>",
            recipient="team@example.com",
            message_id="<budget@example.com>",
        )
        result = extract_forwarded_content(to_blob(wrap_as_forward(original, "Fwd: Budget")))

        data = json.loads(json.dumps(result.to_dict()))

        assert data == {
            "success": True,
            "source": "encapsulated",
            "depth": 1,
            "original_headers": {
                "from": "Alice <alice@example.com>",
                "to": "team@example.com",
                "subject": "Budget",
                "date": "Mon, 01 Jan 2024 10:00:00 +0000",
                "messageId": "<budget@example.com>",
            },
            "original_content": {"text": "Please review."},
            "chain": [
                {
                    "headers": {
                        "from": "Alice <alice@example.com>",
                        "to": "team@example.com",
                        "subject": "Budget",
                        "date": "Mon, 01 Jan 2024 10:00:00 +0000",
                        "messageId": "<budget@example.com>",
                    },
                    "preview": "Please review.",
                }
            ],
        }

    def test_unknown_to_dict_has_error(self, test_email_message_simple):
        data = extract_forwarded_content(to_blob(test_email_message_simple)).to_dict()

        assert data["success"] is False
        assert data["source"] == "unknown"
        assert data["depth"] == 0
        assert data["chain"] == []
        assert data["error"] == UNDETECTED_ERROR


@pytest.mark.parametrize(
    "requested,expected", [(None, 3), (0, 1), (-5, 1), (1, 1), (7, 7), (10, 10), (99, 10)]
)
def test_clamp_depth(requested, expected):
    assert clamp_depth(requested) == expected
