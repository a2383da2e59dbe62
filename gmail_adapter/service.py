"""Mailbox operations: list, search, fetch, send, draft, reply, extract.

Each operation validates its arguments, talks to the mailbox through the
``MailboxAPI`` interface and returns a JSON-serializable dict.
"""

import logging
from typing import Any, Dict, List, Optional

from gmail_adapter.addresses import extract_email_address
from gmail_adapter.compose import compose_message, compose_reply
from gmail_adapter.config import ServerConfig
from gmail_adapter.errors import (
    AddressResolutionError,
    DirectSendDisabledError,
    MailboxError,
)
from gmail_adapter.forwarded import extract_forwarded_content
from gmail_adapter.gmail_client import (
    MailboxAPI,
    extract_headers,
    parse_email_details,
)
from gmail_adapter.models import ForwardedContentResult, ThreadingContext
from gmail_adapter.schemas import (
    CreateDraftRequest,
    ExtractForwardedContentRequest,
    FindAndDraftReplyRequest,
    GetEmailDetailsRequest,
    ListEmailsRequest,
    SearchEmailsRequest,
    SendEmailRequest,
)

logger = logging.getLogger(__name__)

RAW_UNAVAILABLE_ERROR = "RAW payload not available for this message"


class GmailService:
    """Email operations over a remote mailbox."""

    def __init__(self, mailbox: MailboxAPI, config: Optional[ServerConfig] = None):
        self.mailbox = mailbox
        self.config = config or ServerConfig()

    def _fetch_details(
        self, query: str, max_results: int, include_spam_trash: bool
    ) -> List[Dict[str, Any]]:
        refs = self.mailbox.list_messages(
            query=query,
            max_results=max_results,
            include_spam_trash=include_spam_trash,
        )
        logger.debug(f"Query {query!r} matched {len(refs)} messages")

        details = []
        for ref in refs[:max_results]:
            message = self.mailbox.get_message(ref["id"], format="full")
            details.append(parse_email_details(message).to_dict())
        return details

    def list_emails(
        self,
        max_results: Optional[int] = None,
        query: str = "",
        include_spam_trash: bool = False,
    ) -> List[Dict[str, Any]]:
        """List recent emails, optionally filtered by a Gmail query."""
        request = ListEmailsRequest(
            max_results=(
                self.config.default_max_results if max_results is None else max_results
            ),
            query=query,
            include_spam_trash=include_spam_trash,
        )
        return self._fetch_details(
            request.query, request.max_results, request.include_spam_trash
        )

    def search_emails(
        self,
        query: str,
        max_results: Optional[int] = None,
        include_spam_trash: bool = False,
    ) -> List[Dict[str, Any]]:
        """Search emails using Gmail search syntax."""
        request = SearchEmailsRequest(
            query=query,
            max_results=(
                self.config.default_max_results if max_results is None else max_results
            ),
            include_spam_trash=include_spam_trash,
        )
        return self._fetch_details(
            request.query, request.max_results, request.include_spam_trash
        )

    def get_email_details(self, email_id: str, format: str = "full") -> Dict[str, Any]:
        """Fetch one message and summarise it."""
        request = GetEmailDetailsRequest(email_id=email_id, format=format)
        message = self.mailbox.get_message(request.email_id, format=request.format)
        return parse_email_details(message).to_dict()

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send an email immediately.

        Raises:
            DirectSendDisabledError: Unless ``allow_direct_send`` is configured
        """
        if not self.config.allow_direct_send:
            raise DirectSendDisabledError(
                "Direct email sending is disabled. Use create_draft instead or "
                "set GMAIL_ALLOW_DIRECT_SEND=true"
            )

        request = SendEmailRequest(to=to, subject=subject, body=body, cc=cc, bcc=bcc)
        composed = compose_message(
            to=request.to,
            subject=request.subject,
            body=request.body,
            cc=request.cc,
            bcc=request.bcc,
        )
        result = self.mailbox.send_message(composed.raw)
        logger.info(f"Sent email to {request.to}")

        return {
            "status": "sent",
            "id": result.get("id"),
            "thread_id": result.get("threadId"),
            "to": request.to,
            "cc": request.cc,
            "bcc": request.bcc,
            "subject": request.subject,
        }

    def create_draft(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        thread_id: Optional[str] = None,
        in_reply_to_message_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a draft, optionally threaded onto an existing conversation."""
        request = CreateDraftRequest(
            to=to,
            subject=subject,
            body=body,
            cc=cc,
            bcc=bcc,
            thread_id=thread_id,
            in_reply_to_message_id=in_reply_to_message_id,
        )
        composed = compose_message(
            to=request.to,
            subject=request.subject,
            body=request.body,
            cc=request.cc,
            bcc=request.bcc,
            in_reply_to=request.in_reply_to_message_id,
            references=request.in_reply_to_message_id,
            thread_id=request.thread_id,
        )
        draft = self.mailbox.create_draft(composed.raw, composed.thread_id)

        if request.in_reply_to_message_id:
            threading = "threaded"
        elif request.thread_id:
            threading = "thread_only"
        else:
            threading = "standalone"

        return {
            "status": "draft_created",
            "draft_id": draft.get("id"),
            "to": request.to,
            "cc": request.cc,
            "bcc": request.bcc,
            "subject": request.subject,
            "thread_id": request.thread_id,
            "in_reply_to": request.in_reply_to_message_id,
            "threading": threading,
        }

    def find_and_draft_reply(
        self, sender_name: str, reply_body: Optional[str] = None
    ) -> Dict[str, Any]:
        """Draft a threaded reply to the latest message from a sender.

        Raises:
            AddressResolutionError: If the sender's From header holds no
                usable address
        """
        request = FindAndDraftReplyRequest(
            sender_name=sender_name, reply_body=reply_body
        )
        refs = self.mailbox.list_messages(
            query=f"from:{request.sender_name} -in:sent", max_results=1
        )
        if not refs:
            return {"status": "not_found", "sender": request.sender_name}

        message = self.mailbox.get_message(refs[0]["id"], format="full")
        headers = extract_headers(message)
        thread_id = message.get("threadId")
        from_header = headers.get("From") or ""

        reply_to = extract_email_address(from_header)
        if not reply_to:
            raise AddressResolutionError(
                f"Could not extract valid email address from: {from_header}"
            )

        if not thread_id:
            logger.warning("No threadId found for email, draft may not thread properly")

        composed = compose_reply(
            headers,
            reply_to,
            body=request.reply_body,
            threading=ThreadingContext(thread_id=thread_id),
        )
        draft = self.mailbox.create_draft(composed.raw, composed.thread_id)

        return {
            "status": "draft_created",
            "draft_id": draft.get("id"),
            "to": composed.to,
            "subject": composed.subject,
            "thread_id": thread_id,
            "in_reply_to": composed.in_reply_to,
            "references": composed.references,
            "threaded": composed.is_threaded,
            "used_template": not request.reply_body,
            "original": {
                "id": message.get("id"),
                "from": from_header,
                "subject": headers.get("Subject") or "(No subject)",
                "date": headers.get("Date", ""),
                "snippet": message.get("snippet", ""),
            },
        }

    def extract_forwarded_content(
        self,
        email_id: str,
        include_html: Optional[bool] = None,
        max_depth: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Recover the original content of a forwarded message.

        Remote and decoding failures are reported in the result rather than
        raised.
        """
        defaults = self.config.extraction
        request = ExtractForwardedContentRequest(
            email_id=email_id,
            include_html=defaults.include_html if include_html is None else include_html,
            max_depth=defaults.max_depth if max_depth is None else max_depth,
        )

        try:
            message = self.mailbox.get_message(request.email_id, format="raw")
        except MailboxError as e:
            return ForwardedContentResult.failure(str(e)).to_dict()

        raw = message.get("raw")
        if not raw:
            return ForwardedContentResult.failure(RAW_UNAVAILABLE_ERROR).to_dict()

        result = extract_forwarded_content(
            raw, include_html=request.include_html, max_depth=request.max_depth
        )
        return result.to_dict()
