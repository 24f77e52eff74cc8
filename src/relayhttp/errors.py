"""
=============================================================================
ERROR TYPES
=============================================================================

Every failure the server can raise on purpose derives from RelayError, so
callers can catch the whole family with a single except clause while still
telling the kinds apart:

    ┌──────────────────────────┬──────────────────────────────────────────┐
    │  Exception               │  Raised when                             │
    ├──────────────────────────┼──────────────────────────────────────────┤
    │  ParseError              │  request line, URL, header or method is  │
    │                          │  malformed (answered with 400)           │
    │  ConnectionFailedError   │  accept / read / write / file I/O failed │
    │  SerializationError      │  a structured body cannot be encoded     │
    │  ContextConsumedError    │  a context is finalized a second time    │
    │  FrozenError             │  routes or middleware are registered     │
    │                          │  after the app was frozen                │
    └──────────────────────────┴──────────────────────────────────────────┘

=============================================================================
PROPAGATION POLICY
=============================================================================

Errors are isolated per connection. A ParseError becomes a 400 response,
a handler exception becomes a 500 response, and a ConnectionFailedError
closes that one socket. None of them ever reaches the accept loop.

=============================================================================
"""

from typing import Optional


class RelayError(Exception):
    """Base class for all errors raised by relayhttp."""


class ParseError(RelayError):
    """
    Raised when an incoming request (or a URL) cannot be parsed.

    Carries the HTTP status that should be returned to the client, which
    is 400 Bad Request for every parse failure the server raises.
    """

    def __init__(self, reason: str, status_code: int = 400):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class ConnectionFailedError(RelayError):
    """
    Raised on an I/O failure while talking to the client or reading a file.

    The underlying OSError, when there is one, is chained as __cause__.
    """

    def __init__(self, message: str, address: Optional[tuple] = None):
        super().__init__(message)
        self.address = address


class SerializationError(RelayError):
    """Raised when a structured response body cannot be serialized."""


class ContextConsumedError(RelayError):
    """Raised when a response is written twice through the same context."""


class FrozenError(RelayError):
    """Raised when an app is modified after it has been frozen."""
