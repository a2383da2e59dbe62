"""Request models validating operation arguments."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from gmail_adapter.addresses import validate_email_address


class ListEmailsRequest(BaseModel):
    max_results: int = Field(default=10, ge=1, le=100)
    query: str = ""
    include_spam_trash: bool = False


class SearchEmailsRequest(BaseModel):
    query: str = Field(min_length=1)
    max_results: int = Field(default=10, ge=1, le=100)
    include_spam_trash: bool = False


class GetEmailDetailsRequest(BaseModel):
    email_id: str = Field(min_length=1)
    format: Literal["full", "minimal", "metadata"] = "full"


class SendEmailRequest(BaseModel):
    to: str
    subject: str
    body: str
    cc: Optional[str] = None
    bcc: Optional[str] = None

    @field_validator("to")
    @classmethod
    def _check_recipient(cls, value: str) -> str:
        value = value.strip()
        if not validate_email_address(value):
            raise ValueError(f"Invalid email address: {value!r}")
        return value


class CreateDraftRequest(SendEmailRequest):
    thread_id: Optional[str] = None
    in_reply_to_message_id: Optional[str] = None


class FindAndDraftReplyRequest(BaseModel):
    sender_name: str = Field(min_length=1)
    reply_body: Optional[str] = None


class ExtractForwardedContentRequest(BaseModel):
    email_id: str = Field(min_length=1)
    include_html: bool = False
    max_depth: int = Field(default=3, ge=1, le=10)
