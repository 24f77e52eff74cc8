"""
Path normalization middleware.

The router compares paths segment by segment, so "/amelia" and "/amelia/"
are different routes. RemoveTrailingSlash rewrites the request path before
routing so both reach the same handler:

    /amelia/    →  /amelia
    /amelia///  →  /amelia
    /           →  /          (root stays as is)
"""

from typing import Any

from .base import Middleware, NextHandler


class RemoveTrailingSlash(Middleware):
    """Strip trailing "/" from the request path, keeping the root path."""

    def apply(self, handler: NextHandler) -> NextHandler:
        def normalized(ctx: Any) -> Any:
            ctx.request.path = strip_trailing_slash(ctx.request.path)
            return handler(ctx)

        return normalized


def strip_trailing_slash(path: str) -> str:
    stripped = path.rstrip("/")
    if not stripped and path.startswith("/"):
        return "/"
    return stripped
