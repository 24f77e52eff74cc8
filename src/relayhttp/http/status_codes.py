"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes understood by the server, with the reason phrases written on
the status line.

=============================================================================
STATUS TEXT
=============================================================================

The "status text" is the code followed by its phrase. It appears in two
places:

    1. The status line of every response:

           HTTP/1.1 404 NOT FOUND\r\n
                    ───────┬─────
                           └── str(HTTPStatus.NOT_FOUND)

    2. The body of a status response when no status handler is registered:

           ctx.status(HTTPStatus.NOT_FOUND)  →  body "404 NOT FOUND"

The upper case "NOT FOUND" phrase is intentional: it is the text clients of
this server have always received for unknown paths.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP response status codes.

    IntEnum, so members compare equal to their integer codes:
        >>> HTTPStatus.OK == 200
        True
        >>> str(HTTPStatus.SEE_OTHER)
        '303 See Other'

    Handlers, redirects, routing misses and parse failures produce 200,
    303, 404 and 400; 500 and 503 come from the server itself; the rest
    are offered to handlers. Add a member and a phrase to extend it.
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303             # Redirect after POST, used by ctx.redirect()

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400           # Malformed request (ParseError)
    NOT_FOUND = 404             # No route matched
    METHOD_NOT_ALLOWED = 405

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500  # Handler raised
    SERVICE_UNAVAILABLE = 503    # Worker queue full

    @property
    def phrase(self) -> str:
        """Reason phrase for this status (the text after the code)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400

    def __str__(self) -> str:
        return f"{self.value} {self.phrase}"


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.SEE_OTHER: "See Other",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "NOT FOUND",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
