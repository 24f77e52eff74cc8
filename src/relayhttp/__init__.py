"""
relayhttp: a minimal HTTP/1.1 server core on raw sockets.

    from relayhttp import App, HTTPServer

    app = App()

    @app.get("/hello/{name}")
    def hello(ctx):
        return ctx.string(f"Hello, {ctx.url_param('name')}!")

    HTTPServer(app=app).run()
"""

__version__ = "1.0.0"

from .app import App, Dispatcher
from .config import ServerConfig
from .context import Context, RequestState
from .errors import (
    ConnectionFailedError,
    ContextConsumedError,
    FrozenError,
    ParseError,
    RelayError,
    SerializationError,
)
from .http import HTTPStatus, Method, Request, Response
from .server import HTTPServer

__all__ = [
    "App",
    "Dispatcher",
    "HTTPServer",
    "ServerConfig",
    "Context",
    "RequestState",
    "HTTPStatus",
    "Method",
    "Request",
    "Response",
    "RelayError",
    "ParseError",
    "ConnectionFailedError",
    "SerializationError",
    "ContextConsumedError",
    "FrozenError",
    "__version__",
]
