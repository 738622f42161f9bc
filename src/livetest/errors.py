"""Exceptions raised by the harness."""


class HarnessError(Exception):
    """Base class for all harness errors."""
    pass


class ServerBindError(HarnessError, OSError):
    """Raised when the listening socket cannot be bound. Fatal for test setup."""
    pass


class ServerStartupError(HarnessError):
    """Raised when the server stops before it ever answered the startup probe."""
    pass


class TransportError(HarnessError):
    """Connection-level failure while dispatching a request or reading a body."""
    pass


class DecodeError(HarnessError, ValueError):
    """Response body could not be decoded as UTF-8 text or JSON of the requested shape."""
    pass


class HeaderError(HarnessError, ValueError):
    """Header name or value cannot be converted to a valid HTTP header."""
    pass


class RequestAlreadySent(HarnessError, RuntimeError):
    """A RequestBuilder was used after it was dispatched."""
    pass


class ResponseConsumed(HarnessError, RuntimeError):
    """The response body was already consumed."""
    pass
