"""Data models for parsed messages, forward extraction and composition."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple


class HeaderMap(Mapping[str, str]):
    """Ordered, read-only header mapping.

    Lookups are case-insensitive and return the first occurrence of a
    header. Iteration yields each distinct name once, spelled as it first
    appeared, in message order.
    """

    def __init__(self, items: Iterable[Tuple[str, str]] = ()):
        self._items: Tuple[Tuple[str, str], ...] = tuple(
            (str(name), str(value)) for name, value in items
        )
        index: Dict[str, int] = {}
        for position, (name, _) in enumerate(self._items):
            index.setdefault(name.lower(), position)
        self._index = index

    def __getitem__(self, name: str) -> str:
        position = self._index[name.lower()]
        return self._items[position][1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._index

    def __iter__(self) -> Iterator[str]:
        for position in sorted(self._index.values()):
            yield self._items[position][0]

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"HeaderMap({list(self.items())!r})"

    def get_all(self, name: str) -> List[str]:
        """Return every value for ``name`` in message order."""
        key = name.lower()
        return [value for header, value in self._items if header.lower() == key]

    def raw_items(self) -> List[Tuple[str, str]]:
        """Return all header pairs, duplicates included."""
        return list(self._items)


@dataclass(frozen=True)
class Attachment:
    """A MIME leaf part that was not selected as a message body."""

    content_type: str
    content: bytes
    filename: Optional[str] = None

    @property
    def is_encapsulated_message(self) -> bool:
        return self.content_type.lower() == "message/rfc822"


@dataclass(frozen=True)
class ParsedMessage:
    """Structured view of a raw RFC 822 message."""

    headers: HeaderMap
    text_body: Optional[str] = None
    html_body: Optional[str] = None
    attachments: Tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class ForwardHeaders:
    """Header snapshot reported for one level of a forward chain."""

    from_: Optional[str] = None
    to: Optional[str] = None
    subject: Optional[str] = None
    date: Optional[str] = None
    message_id: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        values = {
            "from": self.from_,
            "to": self.to,
            "subject": self.subject,
            "date": self.date,
            "messageId": self.message_id,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class ForwardChainEntry:
    headers: ForwardHeaders
    preview: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"headers": self.headers.to_dict(), "preview": self.preview}


@dataclass(frozen=True)
class ForwardedContentResult:
    """Outcome of forwarded-content extraction.

    ``to_dict`` produces the interchange shape consumed by callers; fields
    that were never determined are left out rather than emitted as null.
    """

    success: bool
    source: Optional[str] = None
    depth: Optional[int] = None
    original_headers: Optional[ForwardHeaders] = None
    original_text: Optional[str] = None
    original_html: Optional[str] = None
    chain: Tuple[ForwardChainEntry, ...] = ()
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "ForwardedContentResult":
        return cls(success=False, error=error)

    @property
    def is_failure(self) -> bool:
        """True when extraction aborted before any source was determined."""
        return self.source is None

    def to_dict(self) -> Dict[str, Any]:
        if self.is_failure:
            return {"success": self.success, "error": self.error}

        content = {}
        if self.original_text is not None:
            content["text"] = self.original_text
        if self.original_html is not None:
            content["html"] = self.original_html

        result: Dict[str, Any] = {
            "success": self.success,
            "source": self.source,
            "depth": self.depth,
            "original_headers": (
                self.original_headers.to_dict() if self.original_headers else {}
            ),
            "original_content": content,
            "chain": [entry.to_dict() for entry in self.chain],
        }
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class ThreadingContext:
    """Threading data carried from an original message into a reply."""

    existing_message_id: Optional[str] = None
    existing_references: Optional[str] = None
    thread_id: Optional[str] = None


@dataclass(frozen=True)
class ComposedMessage:
    """A composed outgoing message ready for send or draft submission.

    ``raw`` is the base64url transport string; ``thread_id`` is routed to the
    mailbox call as metadata and never appears in the message headers.
    """

    raw: str
    to: str
    subject: str
    in_reply_to: Optional[str] = None
    references: Optional[str] = None
    thread_id: Optional[str] = None

    @property
    def is_threaded(self) -> bool:
        return bool(self.in_reply_to)


@dataclass
class EmailDetails:
    """Summary of a structured Gmail message resource."""

    id: str
    subject: str
    from_: str
    date: str
    snippet: str = ""
    to: Optional[str] = None
    body: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    thread_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "thread_id": self.thread_id,
            "subject": self.subject,
            "from": self.from_,
            "to": self.to,
            "date": self.date,
            "snippet": self.snippet,
            "labels": list(self.labels),
            "body": self.body,
        }
