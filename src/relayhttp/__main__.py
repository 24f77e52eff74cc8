"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m relayhttp                          # 127.0.0.1:8080
    python -m relayhttp --port 3000
    python -m relayhttp --log-format json
    HTTP_PORT=3000 python -m relayhttp           # env vars work too

Serves a small demo app:

    GET /                 →  Hello, world!
    GET /amelia           →  Hello, Amelia!
    GET /hello?name=Ada   →  Hello, Ada!
    GET /users/{id}       →  {"id": "..."}
    POST /echo            →  request body echoed back

Trailing slashes are stripped before routing, so /amelia/ works too.

=============================================================================
"""

from typing import Optional
import argparse
import logging
import sys

from . import __version__
from .app import App
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .middleware import RemoveTrailingSlash
from .server import HTTPServer


def create_app(app: Optional[App] = None) -> App:
    """Register the demo routes on `app` (a new App by default)."""
    app = app if app is not None else App()

    @app.get("/")
    def index(ctx):
        return ctx.string("Hello, world!")

    @app.get("/amelia")
    def amelia(ctx):
        return ctx.string("Hello, Amelia!")

    @app.get("/hello")
    def hello(ctx):
        return ctx.string(f"Hello, {ctx.query('name', 'world')}!")

    @app.get("/users/{id}")
    def get_user(ctx):
        return ctx.json({"id": ctx.url_param("id")})

    @app.post("/echo")
    def echo(ctx):
        ctx.response.set_content_type("text/plain; charset=utf-8")
        return ctx.string(ctx.request.body.decode("utf-8", errors="replace"))

    app.use(RemoveTrailingSlash())
    return app


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relayhttp",
        description="Minimal HTTP/1.1 server on raw sockets",
    )

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.workers,
        help=f"Number of worker threads (default: {defaults.workers})",
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"relayhttp {__version__}",
    )
    return parser


def main(argv=None) -> int:
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 2

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        timeout=defaults.timeout,
        workers=args.workers,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = HTTPServer(config)
        # Logging first so it records the target as the client sent it
        server.access_log()
        create_app(server.app)
        server.run()
    except (ValueError, OSError) as e:
        logging.getLogger(__name__).debug("Start-up failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
