"""
=============================================================================
URL ROUTER
=============================================================================

Maps a request (method + path) to the first registered route whose pattern
fits it, capturing named path segments on the way.

=============================================================================
ROUTE PATTERNS
=============================================================================

A pattern is a slash-separated template. A segment wrapped in braces
captures the request segment at the same position:

    /users/{id}/posts/{post_id}
     ──┬── ─┬── ──┬── ────┬────
       │    │     │       └── capture "post_id"
       │    │     └────────── literal "posts"
       │    └──────────────── capture "id"
       └───────────────────── literal "users"

=============================================================================
MATCHING RULES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  1. Method must be equal                GET ≠ POST → no match      │
    │  2. Segment COUNT must be equal         "/a/b".split("/") has 3    │
    │  3. Each segment, position by position:                            │
    │       "{name}"  → captures the raw request segment                 │
    │       literal   → must be byte-for-byte equal (case-sensitive)     │
    │  4. First registered route that passes wins                        │
    └─────────────────────────────────────────────────────────────────────┘

Registration order is the ONLY tie-breaker:

    router.add_route(Method.GET, "/a/{x}", h1)   ← registered first
    router.add_route(Method.GET, "/a/b",   h2)

    GET /a/b  →  h1 with x="b"  (even though /a/b is more specific)

The router does no normalization: "/users" and "/users/" are different
paths (2 vs 3 segments). Trailing slashes, case folding and the like belong
in middleware, which runs before the routing step.

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple
import logging

from .params import Params
from .request import Method, Request


logger = logging.getLogger(__name__)

# A handler takes the request context and returns it (see relayhttp.context)
Handler = Callable[[Any], Any]


@dataclass(frozen=True)
class Route:
    """
    A registered route. Immutable once created.

        Route(method=Method.GET, pattern="/users/{id}", handler=get_user)
    """

    method: Method
    pattern: str
    handler: Handler

    def matches(self, request: Request) -> Optional[Params]:
        """
        Match this route against a request.

        Returns:
            The captured Params (possibly empty) on a match, None otherwise.
        """
        if request.method != self.method:
            return None

        pattern_segments = self.pattern.split("/")
        request_segments = request.path.split("/")
        if len(pattern_segments) != len(request_segments):
            return None

        params = Params()
        for pattern_seg, request_seg in zip(pattern_segments, request_segments):
            if _is_capture(pattern_seg):
                params.push(pattern_seg[1:-1], request_seg)
            elif pattern_seg != request_seg:
                return None
        return params


def _is_capture(segment: str) -> bool:
    """True for "{name}" segments."""
    return len(segment) >= 2 and segment.startswith("{") and segment.endswith("}")


@dataclass(frozen=True)
class RouteMatch:
    """
    Result of a successful match.

        Pattern: /users/{id}
        Path:    /users/123
        Result:  RouteMatch(route=<Route>, params=Params([("id", "123")]))
    """

    route: Route
    params: Params


class Router:
    """
    Ordered route table.

    ==========================================================================
    DECORATOR-BASED API
    ==========================================================================

        router = Router()

        @router.get("/users/{id}")
        def get_user(ctx):
            return ctx.string(f"user {ctx.url_param('id')}")

        @router.post("/users")
        def create_user(ctx):
            return ctx.redirect("/users/1")

    ==========================================================================
    FREEZING
    ==========================================================================

    freeze() returns the routes as a tuple. The app takes that snapshot
    before serving, so later changes to a Router cannot leak into a running
    server.

    ==========================================================================
    """

    def __init__(self) -> None:
        self._routes: List[Route] = []

    def add_route(self, method: Method, pattern: str, handler: Handler) -> Route:
        """
        Register a route. Order of registration is the match priority.

        Returns:
            The created Route.
        """
        route = Route(method=method, pattern=pattern, handler=handler)
        self._routes.append(route)
        logger.debug(f"Registered route {method} {pattern}")
        return route

    def route(self, method: Method, pattern: str) -> Callable[[Handler], Handler]:
        """
        Decorator form of add_route().

        Returns the handler unchanged so decorators can be stacked.
        """
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, pattern, handler)
            return handler
        return decorator

    def get(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.route(Method.GET, pattern)

    def post(self, pattern: str) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.route(Method.POST, pattern)

    def match(self, request: Request) -> Optional[RouteMatch]:
        """First matching route in registration order, or None."""
        return match_routes(self._routes, request)

    def routes(self) -> List[Route]:
        return list(self._routes)

    def freeze(self) -> Tuple[Route, ...]:
        return tuple(self._routes)

    def __len__(self) -> int:
        return len(self._routes)


def match_routes(routes, request: Request) -> Optional[RouteMatch]:
    """
    Scan `routes` in order and return the first match.

    Shared by Router (while building) and the frozen dispatcher.
    """
    for route in routes:
        params = route.matches(request)
        if params is not None:
            return RouteMatch(route=route, params=params)
    return None
