"""
=============================================================================
MIDDLEWARE CHAIN
=============================================================================

A middleware is a handler TRANSFORMER: it takes the next handler and
returns a new handler that wraps it.

    Handler    = Callable[[Context], Context]
    Middleware = Callable[[Handler], Handler]

Anything with that shape works, so a middleware can be a Middleware
subclass, a function_middleware-decorated function, or a plain closure:

    def add_server_header(inner):
        def handler(ctx):
            ctx.response.set_header("Server", "relayhttp")
            return inner(ctx)
        return handler

=============================================================================
ONION ORDER
=============================================================================

    chain.add(LoggingMiddleware())       # first added = outermost
    chain.add(RemoveTrailingSlash())     # closest to routing

        ┌─────────────────────────────────────────────────────────┐
        │  LoggingMiddleware                                      │
        │  ┌───────────────────────────────────────────────────┐  │
        │  │  RemoveTrailingSlash                              │  │
        │  │  ┌─────────────────────────────────────────────┐  │  │
        │  │  │         ROUTING STEP                        │  │  │
        │  │  │   (match route, bind params, run handler)   │  │  │
        │  │  └─────────────────────────────────────────────┘  │  │
        │  └───────────────────────────────────────────────────┘  │
        └─────────────────────────────────────────────────────────┘

The "before" half of each middleware runs outside-in, the "after" half
inside-out. Because the chain wraps the routing step, a path rewrite in
middleware changes which route matches.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterator, List, Optional, Union
import logging


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# A handler takes a Context and returns it
NextHandler = Callable[[Any], Any]

# A transform from handler to handler
Transform = Callable[[NextHandler], NextHandler]


class Middleware(ABC):
    """
    Base class for class-based middleware.

    Subclasses implement apply(), which receives the inner handler and
    returns the wrapped one:

        class RequireJSON(Middleware):
            def apply(self, inner):
                def handler(ctx):
                    if ctx.request.get_header("Content-Type") != "application/json":
                        return ctx.status(HTTPStatus.BAD_REQUEST)
                    return inner(ctx)
                return handler

    Instances are also callable, so they satisfy the plain Transform shape.
    """

    @abstractmethod
    def apply(self, handler: NextHandler) -> NextHandler:
        """Return a handler that wraps `handler`."""

    def __call__(self, handler: NextHandler) -> NextHandler:
        return self.apply(handler)

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Adapts a `(ctx, next_handler)` function into a middleware.

        def stamp(ctx, next_handler):
            ctx.response.set_header("X-Stamp", "1")
            return next_handler(ctx)

        chain.add(FunctionMiddleware(stamp))
    """

    def __init__(
        self,
        func: Callable[[Any, NextHandler], Any],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or getattr(func, "__name__", "FunctionMiddleware")

    def apply(self, handler: NextHandler) -> NextHandler:
        func = self._func

        def wrapped(ctx):
            return func(ctx, handler)

        return wrapped

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Callable[[Any, NextHandler], Any]) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def timing(ctx, next_handler):
            start = time.perf_counter()
            result = next_handler(ctx)
            logger.info(f"took {time.perf_counter() - start:.3f}s")
            return result

        app.use(timing)
    """
    return FunctionMiddleware(func)


class MiddlewareChain:
    """
    Ordered list of middleware, folded around a handler by compose().

    =========================================================================
    HOW COMPOSING WORKS
    =========================================================================

    Given [MW1, MW2, MW3] and a handler:

        current = handler
        current = MW3(current)      # MW3 calls handler
        current = MW2(current)      # MW2 calls MW3
        current = MW1(current)      # MW1 calls MW2

        Final: MW1 → MW2 → MW3 → handler

    Folding in REVERSE is what makes the first-added middleware the
    outermost one.

    =========================================================================
    """

    def __init__(self) -> None:
        self._middleware: List[Transform] = []

    def add(self, middleware: Union[Middleware, Transform]) -> "MiddlewareChain":
        """Append a middleware. Returns self for chaining."""
        if not callable(middleware):
            raise TypeError(f"middleware must be callable, got {type(middleware).__name__}")
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {_name_of(middleware)}")
        return self

    def use(self, *middleware: Union[Middleware, Transform]) -> "MiddlewareChain":
        """Append several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def compose(self, handler: NextHandler) -> NextHandler:
        """Wrap `handler` in every middleware, first added outermost."""
        current = handler
        for middleware in reversed(self._middleware):
            current = middleware(current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Transform]:
        return iter(self._middleware)


def _name_of(middleware: Any) -> str:
    if isinstance(middleware, Middleware):
        return middleware.name
    return getattr(middleware, "__name__", type(middleware).__name__)
