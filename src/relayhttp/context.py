"""
=============================================================================
REQUEST CONTEXT
=============================================================================

The Context is the per-request bundle passed through the handler chain:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            CONTEXT                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   request          parsed Request (middleware may rewrite it)       │
    │   response         Response being built (status 200 by default)     │
    │   params           path captures bound by the router                │
    │   status handlers  read-only view of the app's status table         │
    │   sink             where the serialized response goes               │
    │                    (a Connection, or any object with write(bytes))  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FINALIZERS (SINGLE USE)
=============================================================================

A finalizer serializes the current Response to the sink. Exactly one may
run per context:

    ctx.string("Hello")        text body
    ctx.file("index.html")     UTF-8 file contents, Content-Type from extension
    ctx.json({"id": 1})        JSON body, Content-Type application/json
    ctx.redirect("/login")     303 See Other + Location
    ctx.status(NOT_FOUND)      status handler, or "404 NOT FOUND" as the body
    ctx.write()                whatever the response currently holds

A second finalizer raises ContextConsumedError instead of writing a second
response onto the same socket.

=============================================================================
REQUEST STATES
=============================================================================

    PARSED ──► ROUTED ────┐
          └──► UNMATCHED ─┴──► HANDLING ──► WRITTEN

The connection adds IDLE / READING before and CLOSED after (see
core.connection). There is no way back to an earlier state.

=============================================================================
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Protocol
import json
import logging

from .errors import ConnectionFailedError, ContextConsumedError, SerializationError
from .http.mime_types import get_content_type
from .http.params import Params
from .http.request import Request
from .http.response import Response
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class Sink(Protocol):
    """Anything the response bytes can be written to."""

    def write(self, data: bytes) -> Any: ...


class RequestState(Enum):
    """Lifecycle of one request inside the dispatcher."""

    PARSED = "parsed"
    ROUTED = "routed"
    UNMATCHED = "unmatched"
    HANDLING = "handling"
    WRITTEN = "written"


class Context:
    """
    Per-request context handed to every handler and middleware.

    Handlers take a Context and return it. The finalizers return the
    context too, so the usual handler body is a single expression:

        @app.get("/hello")
        def hello(ctx):
            return ctx.string(f"Hello, {ctx.query('name', 'world')}!")
    """

    def __init__(
        self,
        request: Request,
        status_handlers: Mapping[HTTPStatus, Callable[["Context"], "Context"]],
        sink: Sink,
        params: Optional[Params] = None,
    ):
        self.request = request
        self.response = Response()
        self.params = params if params is not None else Params()
        self.state = RequestState.PARSED
        self._status_handlers = MappingProxyType(dict(status_handlers))
        self._sink = sink

    # =========================================================================
    # REQUEST ACCESSORS
    # =========================================================================

    def url_param(self, key: str) -> Optional[str]:
        """Value captured by a "{key}" pattern segment, or None."""
        return self.params.get(key)

    @property
    def query_params(self) -> Params:
        return self.request.query_params

    def query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter, or `default`."""
        return self.request.get_query(name, default)

    @property
    def status_handlers(self) -> Mapping:
        return self._status_handlers

    @property
    def written(self) -> bool:
        return self.state is RequestState.WRITTEN

    # =========================================================================
    # FINALIZERS
    # =========================================================================

    def string(self, body: str) -> "Context":
        """Write `body` as the response body."""
        self._ensure_writable()
        self.response.body = body
        return self.write()

    def file(self, path: str) -> "Context":
        """
        Write the contents of a UTF-8 text file as the response body.

        Raises:
            ConnectionFailedError: If the file cannot be read.
            SerializationError: If the file is not valid UTF-8.
        """
        self._ensure_writable()
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except OSError as e:
            raise ConnectionFailedError(f"failed to read file {path!r}: {e}") from e

        try:
            body = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SerializationError(f"response file {path!r} is not UTF-8 encoded") from e

        self.response.set_content_type(get_content_type(path))
        self.response.body = body
        return self.write()

    def json(self, value: Any, pretty: bool = False) -> "Context":
        """
        Serialize `value` as JSON and write it.

        ensure_ascii=False keeps non-ASCII text readable in the body; the
        whole response is UTF-8 encoded on the way out anyway.

        Raises:
            SerializationError: If `value` is not JSON-serializable.
        """
        self._ensure_writable()
        try:
            body = json.dumps(value, indent=2 if pretty else None, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"failed to serialize JSON body: {e}") from e

        self.response.set_content_type("application/json; charset=utf-8")
        self.response.body = body
        return self.write()

    def redirect(self, location: str) -> "Context":
        """Write a 303 See Other response pointing at `location`."""
        self._ensure_writable()
        self.response.redirect(location)
        return self.write()

    def status(self, status: HTTPStatus) -> "Context":
        """
        Respond with a status.

        Sets the response status, then runs the handler registered for it.
        Without one, the status text ("404 NOT FOUND") becomes the whole
        body.
        """
        self._ensure_writable()
        self.response.status = status
        handler = self._status_handlers.get(status)
        if handler is None:
            return self.string(str(status))

        result = handler(self)
        return result if result is not None else self

    def write(self) -> "Context":
        """
        Serialize the current response to the sink.

        The context is consumed before the bytes are sent: a failed write
        cannot be retried through it either.

        Raises:
            ContextConsumedError: If a response was already written.
            ConnectionFailedError: If the sink reports a transport failure.
        """
        self._ensure_writable()
        self.state = RequestState.WRITTEN
        data = self.response.to_bytes()
        logger.debug(f"Writing {str(self.response.status)} ({len(data)} bytes)")
        self._sink.write(data)
        return self

    def _ensure_writable(self) -> None:
        if self.state is RequestState.WRITTEN:
            raise ContextConsumedError(
                f"response for {self.request.method} {self.request.target} "
                f"was already written"
            )

    def __repr__(self) -> str:
        return (
            f"Context({self.request.method} {self.request.target}, "
            f"state={self.state.value}, status={self.response.status.value})"
        )
