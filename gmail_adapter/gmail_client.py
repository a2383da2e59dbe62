"""Gmail REST API client and helpers for structured message resources."""

import logging
from typing import Any, Dict, List, Optional, Protocol, cast

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gmail_adapter.config import ServerConfig
from gmail_adapter.encoding import decode_base64url
from gmail_adapter.errors import DecodeError, MailboxError
from gmail_adapter.models import EmailDetails, HeaderMap
from gmail_adapter.parser import strip_html

logger = logging.getLogger(__name__)

GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.compose",
]


class MailboxAPI(Protocol):
    """Remote mailbox operations the service depends on."""

    def list_messages(
        self, query: str = "", max_results: int = 10, include_spam_trash: bool = False
    ) -> List[Dict[str, Any]]: ...

    def get_message(self, message_id: str, format: str = "full") -> Dict[str, Any]: ...

    def send_message(self, raw: str) -> Dict[str, Any]: ...

    def create_draft(self, raw: str, thread_id: Optional[str] = None) -> Dict[str, Any]: ...


class GmailClient:
    """Client for interacting with Gmail REST API."""

    def __init__(self, config: ServerConfig):
        self.config = config
        self.service = None

    def _get_credentials(self) -> Credentials:
        """Convert our OAuth2Config to Google Credentials."""
        if not self.config.oauth2:
            raise ValueError("OAuth2 configuration missing for Gmail API")

        oauth = self.config.oauth2
        return Credentials(
            token=oauth.access_token,
            refresh_token=oauth.refresh_token,
            token_uri=oauth.token_uri,
            client_id=oauth.client_id,
            client_secret=oauth.client_secret,
            scopes=GMAIL_SCOPES,
        )

    def connect(self):
        """Initialize the Gmail service."""
        try:
            creds = self._get_credentials()
            self.service = build("gmail", "v1", credentials=creds)
            logger.info("Successfully connected to Gmail REST API")
        except Exception as e:
            logger.error(f"Failed to connect to Gmail API: {e}")
            raise

    def _messages(self) -> Any:
        if not self.service:
            self.connect()
        service = cast(Any, self.service)
        return service.users().messages()

    def _execute(self, request: Any, action: str) -> Dict[str, Any]:
        try:
            return request.execute()
        except HttpError as e:
            logger.error(f"Gmail API error while trying to {action}: {e}")
            raise MailboxError(f"Failed to {action}: {e}") from e
        except GoogleAuthError as e:
            # Expired or revoked refresh tokens surface here, not at connect()
            logger.error(f"Gmail authentication failed while trying to {action}: {e}")
            raise MailboxError(f"Failed to {action}: authentication error: {e}") from e

    def list_messages(
        self, query: str = "", max_results: int = 10, include_spam_trash: bool = False
    ) -> List[Dict[str, Any]]:
        """List message references matching a Gmail search query."""
        max_results = min(max(max_results, 1), 100)
        results = self._execute(
            self._messages().list(
                userId=self.config.user_id,
                q=query,
                maxResults=max_results,
                includeSpamTrash=include_spam_trash,
            ),
            "list messages",
        )
        return results.get("messages", [])[:max_results]

    def get_message(self, message_id: str, format: str = "full") -> Dict[str, Any]:
        """Fetch a message resource in the given format."""
        return self._execute(
            self._messages().get(
                userId=self.config.user_id, id=message_id, format=format
            ),
            f"fetch message {message_id}",
        )

    def send_message(self, raw: str) -> Dict[str, Any]:
        """Send a base64url encoded RFC 822 message."""
        return self._execute(
            self._messages().send(userId=self.config.user_id, body={"raw": raw}),
            "send message",
        )

    def create_draft(self, raw: str, thread_id: Optional[str] = None) -> Dict[str, Any]:
        """Create a draft, attached to ``thread_id`` when given."""
        if not self.service:
            self.connect()

        message: Dict[str, Any] = {"raw": raw}
        if thread_id:
            message["threadId"] = thread_id

        service = cast(Any, self.service)
        return self._execute(
            service.users()
            .drafts()
            .create(userId=self.config.user_id, body={"message": message}),
            "create draft",
        )


def extract_headers(message: Dict[str, Any]) -> HeaderMap:
    """Build a HeaderMap from a structured message's ``payload.headers``."""
    headers_list = (message.get("payload") or {}).get("headers") or []
    return HeaderMap(
        (h["name"], h["value"])
        for h in headers_list
        if h.get("name") and h.get("value") is not None
    )


def _decode_part_data(data: str) -> str:
    try:
        return decode_base64url(data).decode("utf-8", errors="replace")
    except DecodeError as e:
        logger.warning(f"Skipping undecodable body data: {e}")
        return ""


def extract_email_body(message: Dict[str, Any]) -> str:
    """Pick a readable body out of a structured message resource.

    Prefers the payload's own body data, then the first ``text/plain`` part,
    then the first ``text/html`` part with tags stripped.
    """
    payload = message.get("payload")
    if not payload:
        return "No content available"

    data = (payload.get("body") or {}).get("data")
    if data:
        return _decode_part_data(data)

    parts = payload.get("parts") or []
    for part in parts:
        data = (part.get("body") or {}).get("data")
        if part.get("mimeType") == "text/plain" and data:
            return _decode_part_data(data)

    for part in parts:
        data = (part.get("body") or {}).get("data")
        if part.get("mimeType") == "text/html" and data:
            return strip_html(_decode_part_data(data))

    return "No readable content found"


def parse_email_details(message: Dict[str, Any]) -> EmailDetails:
    """Summarise a structured Gmail message resource."""
    headers = extract_headers(message)
    return EmailDetails(
        id=message.get("id", ""),
        subject=headers.get("Subject") or "(No subject)",
        from_=headers.get("From") or "Unknown",
        to=headers.get("To"),
        date=headers.get("Date", ""),
        snippet=message.get("snippet", ""),
        labels=list(message.get("labelIds") or []),
        thread_id=message.get("threadId"),
        body=extract_email_body(message) if message.get("payload") else None,
    )
