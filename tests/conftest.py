"""Pytest fixtures for Gmail adapter tests."""

import base64
import email.utils
import logging
from email.mime.application import MIMEApplication
from email.mime.message import MIMEMessage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from unittest.mock import MagicMock, patch

import pytest

from gmail_adapter.config import ExtractionConfig, OAuth2Config, ServerConfig
from gmail_adapter.encoding import encode_base64url

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def to_blob(message) -> str:
    """Serialize a stdlib message and encode it for transport."""
    return encode_base64url(message.as_bytes())


def make_text_message(
    subject: str,
    body: str,
    sender: str = "Test Sender <sender@example.com>",
    recipient: str = "Test Recipient <recipient@example.com>",
    message_id: Optional[str] = None,
):
    msg = MIMEText(body, "plain", "utf-8")
    msg["From"] = sender
    msg["To"] = recipient
    msg["Subject"] = subject
    msg["Date"] = "Mon, 01 Jan 2024 10:00:00 +0000"
    msg["Message-ID"] = message_id or email.utils.make_msgid(domain="example.com")
    return msg


def wrap_as_forward(inner, subject: str, forwarder: str = "Forwarder <fwd@example.com>"):
    """Forward ``inner`` as a message/rfc822 attachment."""
    outer = MIMEMultipart()
    outer["From"] = forwarder
    outer["To"] = "Me <me@example.com>"
    outer["Subject"] = subject
    outer["Message-ID"] = email.utils.make_msgid(domain="example.com")
    outer.attach(MIMEText("See the attached message.", "plain"))
    outer.attach(MIMEMessage(inner))
    return outer


@pytest.fixture
def mock_oauth2_config():
    """Create a mock OAuth2 configuration."""
    return OAuth2Config(
        client_id="mock_client_id",
        client_secret="mock_client_secret",
        refresh_token="mock_refresh_token",
        access_token="mock_access_token",
    )


@pytest.fixture
def mock_server_config(mock_oauth2_config):
    """Create a mock Server configuration."""
    return ServerConfig(
        oauth2=mock_oauth2_config,
        allow_direct_send=False,
        extraction=ExtractionConfig(max_depth=3, include_html=False),
    )


@pytest.fixture
def mock_gmail_service():
    """Create a mock Gmail API service with common responses."""
    with patch("googleapiclient.discovery.build") as mock_build:
        service = MagicMock()
        mock_build.return_value = service

        messages = service.users().messages()
        drafts = service.users().drafts()

        # Default list response
        messages.list().execute.return_value = {
            "messages": [{"id": "msg123", "threadId": "thread123"}],
            "resultSizeEstimate": 1,
        }

        # Default message get response
        def get_message_mock(userId, id, format=None):
            mock_exe = MagicMock()
            mock_exe.execute.return_value = {
                "id": id,
                "threadId": "thread123",
                "labelIds": ["INBOX", "UNREAD"],
                "snippet": f"Snippet for {id}",
                "payload": {
                    "headers": [
                        {"name": "Subject", "value": f"Subject for {id}"},
                        {"name": "From", "value": "Sender <sender@example.com>"},
                        {"name": "To", "value": "test@gmail.com"},
                        {"name": "Date", "value": "Mon, 1 Jan 2024 12:00:00 +0000"},
                        {"name": "Message-ID", "value": f"<{id}@example.com>"},
                    ],
                    "mimeType": "text/plain",
                    "body": {"data": base64.urlsafe_b64encode(b"Hello world").decode()},
                },
            }
            return mock_exe

        messages.get.side_effect = get_message_mock

        messages.send().execute.return_value = {"id": "sent123", "threadId": "thread123"}
        drafts.create().execute.return_value = {
            "id": "draft123",
            "message": {"id": "msg-draft", "threadId": "thread123"},
        }

        yield service


@pytest.fixture
def test_email_message_simple():
    """Create a simple test email message."""
    return make_text_message(
        "Simple Test Email",
        "This is a simple test email.",
        message_id="<simple-test-123@example.com>",
    )


@pytest.fixture
def test_email_message_with_attachment():
    """Create a test email message with an attachment."""
    msg = MIMEMultipart()
    msg["From"] = "Test Sender <sender@example.com>"
    msg["To"] = "Test Recipient <recipient@example.com>"
    msg["Subject"] = "Email with Attachment"
    msg["Message-ID"] = "<attachment-test-123@example.com>"
    msg["Date"] = email.utils.formatdate()

    # Add text part
    text_part = MIMEText("This email has an attachment.", "plain")
    msg.attach(text_part)

    # Add attachment
    attachment = MIMEApplication(b"This is attachment content")
    attachment.add_header("Content-Disposition", "attachment", filename="test.txt")
    msg.attach(attachment)

    return msg
