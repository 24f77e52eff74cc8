"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

The message model and routing, independent of sockets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   bytes ──► RequestParser ──► Request ──► Router ──► RouteMatch     │
    │                                  │                                   │
    │                                  ├── URL      (url.py)              │
    │                                  │    └── Params (query)            │
    │                                  └── Headers  (headers.py)          │
    │                                                                      │
    │   Response ──► to_bytes() ──► bytes                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Nothing in this package performs I/O, which keeps every piece testable with
plain byte strings.

=============================================================================
"""

from .headers import Headers
from .params import Params
from .url import URL
from .request import Method, Request, RequestParser, parse_request
from .response import Response
from .router import Handler, Route, RouteMatch, Router, match_routes
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Message model
    "Headers",
    "Params",
    "URL",
    "Method",
    "Request",
    "RequestParser",
    "parse_request",
    "Response",

    # Routing
    "Handler",
    "Route",
    "RouteMatch",
    "Router",
    "match_routes",

    # Status codes
    "HTTPStatus",

    # File bodies
    "get_mime_type",
    "get_content_type",
]
