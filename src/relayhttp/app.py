"""
=============================================================================
APPLICATION BUILDER AND DISPATCHER
=============================================================================

Two phases, two objects:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   BUILD (App, mutable)                                              │
    │      app.get("/", index)                                            │
    │      app.status_handler(HTTPStatus.NOT_FOUND)(not_found)            │
    │      app.use(LoggingMiddleware())                                   │
    │            │                                                         │
    │            ▼  app.freeze()                                          │
    │                                                                      │
    │   SERVE (Dispatcher, immutable)                                     │
    │      routes           tuple                                         │
    │      status handlers  MappingProxyType                              │
    │      handler          middleware composed ONCE around routing      │
    │            │                                                         │
    │            ▼  dispatcher.dispatch(request, sink)                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Workers only ever read the Dispatcher, so serving needs no locks. Any
registration on an App after freeze() raises FrozenError.

=============================================================================
THE ROUTING STEP
=============================================================================

The innermost handler of the composed chain:

    match = first route for (method, path)
    ├── found:     ctx.params = captures, state ROUTED → HANDLING,
    │              run route handler
    └── not found: state UNMATCHED → HANDLING,
                   ctx.status(HTTPStatus.NOT_FOUND)

If the whole chain returns without writing anything, dispatch() writes
the current response (200 with an empty body unless a handler changed it).

=============================================================================
"""

from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple
import logging

from .context import Context, RequestState, Sink
from .errors import FrozenError
from .http.request import Method, Request
from .http.router import Handler, Route, Router, match_routes
from .http.status_codes import HTTPStatus
from .middleware.base import MiddlewareChain, Transform


logger = logging.getLogger(__name__)


class App:
    """
    Mutable application builder.

        app = App()

        @app.get("/users/{id}")
        def get_user(ctx):
            return ctx.string(f"user {ctx.url_param('id')}")

        @app.status_handler(HTTPStatus.NOT_FOUND)
        def not_found(ctx):
            return ctx.string("nothing here")

        app.use(LoggingMiddleware())
        dispatcher = app.freeze()
    """

    def __init__(self) -> None:
        self._router = Router()
        self._status_handlers: Dict[HTTPStatus, Handler] = {}
        self._middleware = MiddlewareChain()
        self._dispatcher: Optional["Dispatcher"] = None

    @property
    def frozen(self) -> bool:
        return self._dispatcher is not None

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_route(self, method: Method, pattern: str, handler: Handler) -> Route:
        self._check_not_frozen(f"route {method} {pattern}")
        return self._router.add_route(method, pattern, handler)

    def route(self, method: Method, pattern: str) -> Callable[[Handler], Handler]:
        """Decorator registering a route for any method."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, pattern, handler)
            return handler
        return decorator

    def get(self, pattern: str) -> Callable[[Handler], Handler]:
        return self.route(Method.GET, pattern)

    def post(self, pattern: str) -> Callable[[Handler], Handler]:
        return self.route(Method.POST, pattern)

    def add_status_handler(self, status: HTTPStatus, handler: Handler) -> None:
        """Register the handler ctx.status(status) runs. Re-registering replaces."""
        self._check_not_frozen(f"status handler {str(status)}")
        status = HTTPStatus(status)
        self._status_handlers[status] = handler
        logger.debug(f"Registered status handler for {str(status)}")

    def status_handler(self, status: HTTPStatus) -> Callable[[Handler], Handler]:
        """Decorator form of add_status_handler()."""
        def decorator(handler: Handler) -> Handler:
            self.add_status_handler(status, handler)
            return handler
        return decorator

    def use(self, *middleware: Transform) -> "App":
        """Append middleware. The first one added is the outermost."""
        self._check_not_frozen("middleware")
        self._middleware.use(*middleware)
        return self

    def routes(self) -> List[Route]:
        return self._router.routes()

    # =========================================================================
    # FREEZE
    # =========================================================================

    def freeze(self) -> "Dispatcher":
        """
        Snapshot the registrations into an immutable Dispatcher.

        Idempotent: calling it again returns the same Dispatcher.
        """
        if self._dispatcher is None:
            self._dispatcher = Dispatcher(
                routes=self._router.freeze(),
                status_handlers=dict(self._status_handlers),
                middleware=self._middleware,
            )
            logger.debug(
                f"Froze app: {len(self._router)} routes, "
                f"{len(self._status_handlers)} status handlers, "
                f"{len(self._middleware)} middleware"
            )
        return self._dispatcher

    def _check_not_frozen(self, what: str) -> None:
        if self.frozen:
            raise FrozenError(f"cannot register {what}: app is frozen")


class Dispatcher:
    """
    Immutable request dispatcher produced by App.freeze().

    Safe to share between worker threads: nothing in it changes after
    construction.
    """

    def __init__(
        self,
        routes: Tuple[Route, ...],
        status_handlers: Mapping[HTTPStatus, Handler],
        middleware: MiddlewareChain,
    ):
        self._routes = tuple(routes)
        self._status_handlers = MappingProxyType(dict(status_handlers))
        self._handler = middleware.compose(self._route_request)

    @property
    def routes(self) -> Tuple[Route, ...]:
        return self._routes

    @property
    def status_handlers(self) -> Mapping[HTTPStatus, Handler]:
        return self._status_handlers

    def dispatch(self, request: Request, sink: Sink) -> Context:
        """
        Run one request through middleware and routing.

        Returns:
            The (written) Context.
        """
        ctx = Context(request, self._status_handlers, sink)
        self._handler(ctx)
        if not ctx.written:
            ctx.write()
        return ctx

    def respond(self, status: HTTPStatus, sink: Sink, request: Optional[Request] = None) -> Context:
        """
        Answer with `status` outside routing, through the status table.

        Used for requests that never reach dispatch(), such as ones that
        failed to parse. Without a parsed request the handler sees an
        empty GET placeholder. Middleware does not run.
        """
        if request is None:
            request = Request(method=Method.GET)
        ctx = Context(request, self._status_handlers, sink)
        ctx.state = RequestState.HANDLING
        ctx.status(status)
        if not ctx.written:
            ctx.write()
        return ctx

    def _route_request(self, ctx: Context) -> Context:
        match = match_routes(self._routes, ctx.request)
        if match is None:
            ctx.state = RequestState.UNMATCHED
            logger.debug(f"No route for {ctx.request.method} {ctx.request.path}")
            ctx.state = RequestState.HANDLING
            return ctx.status(HTTPStatus.NOT_FOUND)

        ctx.state = RequestState.ROUTED
        ctx.params = match.params
        ctx.state = RequestState.HANDLING
        result = match.route.handler(ctx)
        return result if result is not None else ctx
