"""Exception types raised by the Gmail adapter."""


class GmailAdapterError(Exception):
    """Base class for all adapter errors."""


class DecodeError(GmailAdapterError):
    """Transport payload is not valid base64url."""


class ParseError(GmailAdapterError):
    """Decoded bytes do not form a structurally valid message."""


class AddressResolutionError(GmailAdapterError):
    """No usable mailbox address could be extracted from a header value."""


class MailboxError(GmailAdapterError):
    """A call to the remote mailbox API failed."""


class DirectSendDisabledError(GmailAdapterError):
    """Sending was requested while direct send is disabled in configuration."""
