"""Failure taxonomy for remote page fetches."""


class FetchError(Exception):
    """Base class for a classified remote fetch failure.

    Every subclass carries a displayable ``reason``; the sync engine treats
    all of them alike and only keeps the reason for presentation.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidRequestError(FetchError):
    """Raised when page parameters cannot form a valid request."""


class NoDataError(FetchError):
    """Raised when the remote answered without a payload."""


class DecodeError(FetchError):
    """Raised when a page payload is malformed."""


class TransportError(FetchError):
    """Raised for network and server failures."""

    def __init__(self, detail: str, cause: BaseException | None = None):
        super().__init__(f"Transport error: {detail}")
        self.detail = detail
        self.cause = cause
