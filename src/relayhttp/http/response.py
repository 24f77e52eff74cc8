"""
=============================================================================
HTTP RESPONSE
=============================================================================

The response a handler builds up and the context writes to the client.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  STATUS LINE      HTTP/1.1 200 OK\r\n                               │
    │                   ───┬──── ───┬──                                   │
    │                   Version  str(status)                              │
    │                                                                      │
    │  HEADERS          Content-Type: text/plain\r\n                      │
    │                   Location: /login\r\n                              │
    │                                                                      │
    │  BLANK LINE       \r\n                                              │
    │                                                                      │
    │  BODY             Hello, Amelia!                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SERIALIZATION IS LITERAL
=============================================================================

to_bytes() writes exactly the status, the headers the handler set and the
body. It does NOT add Content-Length, Date or Server headers: every
response is followed by closing the connection, which is what tells the
client the body has ended.

=============================================================================
"""

from dataclasses import dataclass, field

from .headers import Headers
from .status_codes import HTTPStatus


@dataclass
class Response:
    """
    A response under construction.

    Built incrementally by handler code (status, headers, body), then
    serialized exactly once by the context that owns it.

    The setters return self for chaining:

        ctx.response.set_status(HTTPStatus.CREATED).set_header("X-Id", "7")
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Headers = field(default_factory=Headers)
    body: str = ""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 NOT FOUND"."""
        return f"{self.version} {str(self.status)}"

    def set_status(self, status: HTTPStatus) -> "Response":
        self.status = status
        return self

    def set_header(self, name: str, value: str) -> "Response":
        """Append a header (duplicates are kept)."""
        self.headers.set(name, value)
        return self

    def set_content_type(self, content_type: str) -> "Response":
        return self.set_header("Content-Type", content_type)

    def set_body(self, body: str) -> "Response":
        self.body = body
        return self

    def redirect(self, location: str) -> "Response":
        """Turn this into a 303 See Other pointing at `location`."""
        self.status = HTTPStatus.SEE_OTHER
        return self.set_header("Location", location)

    def __str__(self) -> str:
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers)
        # Empty entry yields the blank line between headers and body
        lines.append("")
        return "\r\n".join(lines) + "\r\n" + self.body

    def to_bytes(self) -> bytes:
        """Serialize for socket.sendall()."""
        return str(self).encode("utf-8")
