"""
=============================================================================
MIDDLEWARE
=============================================================================

Handler transformers wrapped around the routing step:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Context                                                            │
    │      │                                                               │
    │      ▼                                                               │
    │   LoggingMiddleware     captures method + target, logs status       │
    │      │                                                               │
    │      ▼                                                               │
    │   RemoveTrailingSlash   rewrites /amelia/ → /amelia                 │
    │      │                                                               │
    │      ▼                                                               │
    │   routing step          match route, bind params, run handler       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .base import (
    FunctionMiddleware,
    Middleware,
    MiddlewareChain,
    NextHandler,
    Transform,
    function_middleware,
)
from .logging import LoggingMiddleware, RequestLog
from .normalize import RemoveTrailingSlash, strip_trailing_slash

__all__ = [
    # Chain
    "Middleware",
    "MiddlewareChain",
    "FunctionMiddleware",
    "function_middleware",
    "NextHandler",
    "Transform",

    # Built-in middleware
    "LoggingMiddleware",
    "RequestLog",
    "RemoveTrailingSlash",
    "strip_trailing_slash",
]
