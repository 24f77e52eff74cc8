"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured Request objects, and
serializes them back.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  REQUEST LINE     GET /hello?name=Amelia HTTP/1.1\r\n               │
    │                   ─┬─ ─────────┬──────── ────┬───                   │
    │                  Method      Target       Version                   │
    │                                                                      │
    │  HEADERS          Host: localhost:8080\r\n                          │
    │                   Accept: text/plain\r\n                            │
    │                                                                      │
    │  BLANK LINE       \r\n                                              │
    │                                                                      │
    │  BODY             raw bytes, whatever the socket read captured      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FRAMING
=============================================================================

    request line  = everything before the FIRST \r\n
    headers       = from that \r\n up to the FIRST \r\n\r\n (they may share
                    the \r\n, which leaves the header section empty)
    body          = everything after it

There is no Content-Length based framing. The connection reads one
fixed-size buffer and the body is whatever part of it follows the headers.
A body larger than the buffer is truncated; each connection carries exactly
one request, so there is nothing after the body to confuse it with.

=============================================================================
REJECTED INPUT
=============================================================================

ParseError is raised (and the client gets 400 Bad Request) when:

    - there is no \r\n at all (no request line)
    - the request line or headers are not UTF-8
    - the version token is not exactly "HTTP/1.1"
    - the method is not GET or POST
    - a header line does not contain exactly one ": "
    - the target has a query pair without "="

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
import json

from ..errors import ParseError
from .headers import Headers
from .params import Params
from .url import URL


HTTP_VERSION = "HTTP/1.1"
CRLF = b"\r\n"
HEADER_TERMINATOR = b"\r\n\r\n"

# Marks a JSON body that has not been decoded yet (None is a valid result)
_NOT_LOADED = object()


class Method(Enum):
    """
    Supported request methods.

    Add a member to support another method; parse() picks it up
    automatically since it looks members up by value.
    """

    GET = "GET"
    POST = "POST"

    @classmethod
    def parse(cls, text: str) -> "Method":
        try:
            return cls(text)
        except ValueError:
            raise ParseError(f"invalid HTTP method {text!r}") from None

    def __str__(self) -> str:
        return self.value


@dataclass
class Request:
    """
    A parsed HTTP request.

    Field values are copied out of the read buffer during parsing, so a
    Request stays valid after the buffer is reused or dropped.

    Attributes:
        method:  Method.GET or Method.POST
        url:     The decomposed request target
        headers: Ordered request headers
        body:    Raw body bytes (possibly truncated, see module docs)
    """

    method: Method
    url: URL = field(default_factory=URL)
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""

    # Lazily decoded JSON body
    _body_json: Any = field(default=_NOT_LOADED, repr=False, compare=False)

    @property
    def path(self) -> str:
        return self.url.path

    @path.setter
    def path(self, value: str) -> None:
        self.url.path = value

    @property
    def target(self) -> str:
        """The request target as it would appear on the request line."""
        return str(self.url)

    @property
    def query_params(self) -> Params:
        return self.url.query_params

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or `default`."""
        return self.url.query_params.get(name, default)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a header (case-insensitive), or `default`."""
        return self.headers.get(name, default)

    def set_header(self, name: str, value: str) -> "Request":
        """Append a header. Returns self for chaining."""
        self.headers.set(name, value)
        return self

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON (cached after the first access).
        An empty body gives None.

        Raises:
            ParseError: If the body is not valid UTF-8 JSON.
        """
        if not self.body:
            return None
        if self._body_json is _NOT_LOADED:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ParseError(f"invalid JSON body: {e}") from e
        return self._body_json

    def to_bytes(self) -> bytes:
        """
        Serialize back to wire form.

            GET /path?x=1 HTTP/1.1\r\n
            Name: value\r\n
            \r\n
            body
        """
        head = f"{self.method} {self.url} {HTTP_VERSION}\r\n"
        for name, value in self.headers:
            head += f"{name}: {value}\r\n"
        head += "\r\n"
        return head.encode("utf-8") + self.body


class RequestParser:
    """
    Parses raw request bytes into Request objects.

    ==========================================================================
    PARSER FLOW
    ==========================================================================

        b"GET /hello?name=Amelia HTTP/1.1\r\nHost: x\r\n\r\nbody"
              │
              ├─ split at first \r\n ──► request line
              │                          "GET /hello?name=Amelia HTTP/1.1"
              │                             │
              │                             ├─ Method.parse("GET")
              │                             ├─ URL.parse("/hello?name=Amelia")
              │                             └─ version == "HTTP/1.1" ?
              │
              └─ from that \r\n, split at first \r\n\r\n
                    ├─ header section ──► Headers.from_lines(...)
                    └─ body ────────────► raw bytes

    ==========================================================================
    """

    def parse(self, data: bytes) -> Request:
        """
        Parse raw HTTP request data.

        Args:
            data: Bytes read from the socket.

        Returns:
            The parsed Request.

        Raises:
            ParseError: If the request is malformed (see module docs).
        """
        # =====================================================================
        # STEP 1: Request line
        # =====================================================================
        line_end = data.find(CRLF)
        if line_end == -1:
            raise ParseError("HTTP request is formatted incorrectly")

        first_line = self._decode(data[:line_end], "HTTP request line")
        method, url = self._parse_request_line(first_line)

        # =====================================================================
        # STEP 2: Headers and body
        # =====================================================================
        # The terminator search starts at the request line's own CRLF, so a
        # request with no headers ("...HTTP/1.1\r\n\r\nbody") has an empty
        # header section and keeps its body.
        header_start = line_end + len(CRLF)
        header_end = data.find(HEADER_TERMINATOR, line_end)
        if header_end == -1:
            header_bytes, body = data[header_start:], b""
        else:
            header_bytes = data[header_start:header_end]
            body = data[header_end + len(HEADER_TERMINATOR):]

        header_text = self._decode(header_bytes, "HTTP headers")
        headers = Headers.from_lines(header_text.split("\r\n"))

        return Request(method=method, url=url, headers=headers, body=bytes(body))

    def _parse_request_line(self, line: str) -> tuple[Method, URL]:
        """
        Parse "METHOD SP target SP HTTP/1.1".

        The method check runs before the URL is parsed, so an unsupported
        method is reported even when the target is also bad.
        """
        method_text, sep, remainder = line.partition(" ")
        if not sep:
            raise ParseError(f"invalid request line {line!r}")

        target, _, version = remainder.partition(" ")
        if version != HTTP_VERSION:
            raise ParseError(f"invalid http version {version!r}")

        method = Method.parse(method_text)
        try:
            url = URL.parse(target)
        except ParseError as e:
            raise ParseError(f"failed to parse url {target!r}: {e.reason}") from e
        return method, url

    @staticmethod
    def _decode(raw: bytes, what: str) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise ParseError(f"{what} is not UTF-8") from None


def parse_request(data: bytes) -> Request:
    """
    Convenience function to parse an HTTP request in one call.

    Args:
        data: Raw HTTP request bytes.

    Returns:
        Parsed Request.
    """
    return RequestParser().parse(data)
