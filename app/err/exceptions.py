"""Simple wrappers for the failure states a scrape can end in.

Everything except RowParseError aborts the scrape; RowParseError only ever drops one channel row.
"""


class ScrapeError(Exception):
    """Base for anything that stops us from producing a snapshot."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class AuthError(ScrapeError):
    """Login did not produce a usable session."""


class InvalidCredentialsError(AuthError):
    """Modem answered the login request with 401."""


class MissingSessionError(AuthError):
    """Modem accepted the request but never handed out a (non-empty) session."""


class TransportError(ScrapeError):
    """TCP/TLS/HTTP level failure talking to the modem."""


class ModemNotOkError(TransportError):
    """Exception for non-200/OK responses from modem."""


class MarkupShapeError(ScrapeError):
    """Page came back but doesn't look the way we expect; nothing on it can be trusted."""


class RowParseError(ScrapeError, ValueError):
    """A single channel row could not be parsed. Never leaves the table parser."""
