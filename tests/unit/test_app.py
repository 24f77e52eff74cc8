"""
Unit tests for the App builder and the frozen Dispatcher.
"""

import logging

import pytest

from relayhttp.app import App, Dispatcher
from relayhttp.context import RequestState
from relayhttp.errors import ContextConsumedError, FrozenError
from relayhttp.http import HTTPStatus, Method, parse_request
from relayhttp.middleware import LoggingMiddleware, RemoveTrailingSlash


def dispatch(app_or_dispatcher, raw: bytes, sink):
    dispatcher = app_or_dispatcher
    if isinstance(dispatcher, App):
        dispatcher = dispatcher.freeze()
    return dispatcher.dispatch(parse_request(raw), sink)


@pytest.fixture
def greeting_app() -> App:
    app = App()

    @app.get("/")
    def index(ctx):
        return ctx.string("Hello, world!")

    @app.get("/amelia")
    def amelia(ctx):
        return ctx.string("Hello, Amelia!")

    @app.get("/hello")
    def hello(ctx):
        return ctx.string(f"Hello, {ctx.query('name')}!")

    @app.get("/users/{id}")
    def user(ctx):
        return ctx.json({"id": ctx.url_param("id")})

    return app


class TestDispatch:
    """End-to-end dispatch against an in-memory sink."""

    def test_query_greeting(self, greeting_app, sink):
        dispatch(greeting_app, b"GET /hello?name=Amelia HTTP/1.1\r\n\r\n", sink)

        assert sink.getvalue() == b"HTTP/1.1 200 OK\r\n\r\nHello, Amelia!"

    def test_literal_route(self, greeting_app, sink):
        dispatch(greeting_app, b"GET /amelia HTTP/1.1\r\nHost: x\r\n\r\n", sink)

        assert sink.getvalue().endswith(b"\r\n\r\nHello, Amelia!")

    def test_captured_params_bound(self, greeting_app, sink):
        ctx = dispatch(greeting_app, b"GET /users/42 HTTP/1.1\r\n\r\n", sink)

        assert ctx.params.items() == [("id", "42")]
        assert sink.getvalue().endswith(b'{"id": "42"}')

    def test_default_not_found(self, greeting_app, sink):
        ctx = dispatch(greeting_app, b"GET /nowhere HTTP/1.1\r\n\r\n", sink)

        assert sink.getvalue() == b"HTTP/1.1 404 NOT FOUND\r\n\r\n404 NOT FOUND"
        assert ctx.response.status is HTTPStatus.NOT_FOUND

    def test_custom_not_found(self, greeting_app, sink):
        @greeting_app.status_handler(HTTPStatus.NOT_FOUND)
        def not_found(ctx):
            return ctx.string("nothing here")

        dispatch(greeting_app, b"GET /nowhere HTTP/1.1\r\n\r\n", sink)

        assert sink.getvalue() == b"HTTP/1.1 404 NOT FOUND\r\n\r\nnothing here"

    def test_wrong_method_is_not_found(self, greeting_app, sink):
        dispatch(greeting_app, b"POST /amelia HTTP/1.1\r\n\r\n", sink)

        assert sink.getvalue().startswith(b"HTTP/1.1 404 NOT FOUND")

    def test_unwritten_response_is_written(self, sink):
        app = App()

        @app.post("/items")
        def create(ctx):
            ctx.response.set_status(HTTPStatus.CREATED)
            return ctx

        ctx = dispatch(app, b"POST /items HTTP/1.1\r\n\r\n", sink)

        assert ctx.written
        assert sink.getvalue() == b"HTTP/1.1 201 Created\r\n\r\n"

    def test_handler_returning_none(self, sink):
        app = App()
        app.add_route(Method.GET, "/quiet", lambda ctx: None)

        dispatch(app, b"GET /quiet HTTP/1.1\r\n\r\n", sink)

        assert sink.getvalue() == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_second_write_in_handler_raises(self, sink):
        app = App()

        @app.get("/twice")
        def twice(ctx):
            ctx.string("one")
            return ctx.string("two")

        with pytest.raises(ContextConsumedError):
            dispatch(app, b"GET /twice HTTP/1.1\r\n\r\n", sink)
        assert sink.getvalue().endswith(b"one")

    def test_handler_exception_propagates(self, sink):
        app = App()

        @app.get("/boom")
        def boom(ctx):
            raise RuntimeError("kaboom")

        with pytest.raises(RuntimeError):
            dispatch(app, b"GET /boom HTTP/1.1\r\n\r\n", sink)
        assert sink.getvalue() == b""

    def test_state_after_dispatch(self, greeting_app, sink):
        ctx = dispatch(greeting_app, b"GET / HTTP/1.1\r\n\r\n", sink)

        assert ctx.state is RequestState.WRITTEN

    def test_state_while_handling(self, sink):
        app = App()
        states = []

        @app.get("/")
        def index(ctx):
            states.append(ctx.state)
            return ctx.string("ok")

        dispatch(app, b"GET / HTTP/1.1\r\n\r\n", sink)

        assert states == [RequestState.HANDLING]


class TestMiddlewareOrdering:
    """Middleware wraps the routing step."""

    def test_normalization_affects_matching(self, greeting_app, sink):
        greeting_app.use(RemoveTrailingSlash())

        dispatch(greeting_app, b"GET /amelia/ HTTP/1.1\r\n\r\n", sink)

        assert sink.getvalue().endswith(b"Hello, Amelia!")

    def test_without_normalization_trailing_slash_misses(self, greeting_app, sink):
        dispatch(greeting_app, b"GET /amelia/ HTTP/1.1\r\n\r\n", sink)

        assert sink.getvalue().startswith(b"HTTP/1.1 404 NOT FOUND")

    def test_logged_target_is_pre_normalization(self, greeting_app, sink, caplog):
        caplog.set_level(logging.INFO, logger="relayhttp.access")
        greeting_app.use(LoggingMiddleware(), RemoveTrailingSlash())

        ctx = dispatch(greeting_app, b"GET /amelia/ HTTP/1.1\r\n\r\n", sink)

        access = [r.getMessage() for r in caplog.records if r.name == "relayhttp.access"]
        assert len(access) == 1
        assert '"GET /amelia/" 200 OK' in access[0]
        assert ctx.request.path == "/amelia"
        assert sink.getvalue().endswith(b"Hello, Amelia!")

    def test_not_found_is_logged(self, greeting_app, sink, caplog):
        caplog.set_level(logging.INFO, logger="relayhttp.access")
        greeting_app.use(LoggingMiddleware())

        dispatch(greeting_app, b"GET /nowhere HTTP/1.1\r\n\r\n", sink)

        assert "404 NOT FOUND" in caplog.records[-1].getMessage()

    def test_middleware_composed_once(self, greeting_app, sink):
        built = []

        def counting(inner):
            built.append(1)
            return inner

        greeting_app.use(counting)
        dispatcher = greeting_app.freeze()
        for _ in range(3):
            dispatch(dispatcher, b"GET / HTTP/1.1\r\n\r\n", sink)

        assert built == [1]


class TestFreeze:
    """The two-phase lifecycle."""

    def test_freeze_returns_dispatcher(self, greeting_app):
        dispatcher = greeting_app.freeze()

        assert isinstance(dispatcher, Dispatcher)
        assert greeting_app.frozen
        assert greeting_app.freeze() is dispatcher
        assert isinstance(dispatcher.routes, tuple)
        assert [r.pattern for r in dispatcher.routes] == ["/", "/amelia", "/hello", "/users/{id}"]

    def test_registration_after_freeze_raises(self, greeting_app):
        greeting_app.freeze()

        with pytest.raises(FrozenError):
            greeting_app.add_route(Method.GET, "/late", lambda ctx: ctx)
        with pytest.raises(FrozenError):
            greeting_app.get("/late")(lambda ctx: ctx)
        with pytest.raises(FrozenError):
            greeting_app.status_handler(HTTPStatus.NOT_FOUND)(lambda ctx: ctx)
        with pytest.raises(FrozenError):
            greeting_app.use(RemoveTrailingSlash())

    def test_status_table_is_read_only(self, greeting_app):
        dispatcher = greeting_app.freeze()

        with pytest.raises(TypeError):
            dispatcher.status_handlers[HTTPStatus.NOT_FOUND] = lambda ctx: ctx

    def test_status_handler_accepts_int(self, greeting_app):
        greeting_app.add_status_handler(404, lambda ctx: ctx.string("gone"))

        dispatcher = greeting_app.freeze()
        assert HTTPStatus.NOT_FOUND in dispatcher.status_handlers


class TestRespond:
    """Status responses for requests that never reach routing."""

    def test_bare_status_without_handler(self, greeting_app, sink):
        ctx = greeting_app.freeze().respond(HTTPStatus.BAD_REQUEST, sink)

        assert sink.getvalue() == b"HTTP/1.1 400 Bad Request\r\n\r\n400 Bad Request"
        assert ctx.written

    def test_registered_handler_is_used(self, greeting_app, sink):
        @greeting_app.status_handler(HTTPStatus.BAD_REQUEST)
        def bad_request(ctx):
            return ctx.json({"error": "bad request"})

        greeting_app.freeze().respond(HTTPStatus.BAD_REQUEST, sink)

        data = sink.getvalue()
        assert data.startswith(b"HTTP/1.1 400 Bad Request\r\n")
        assert data.endswith(b'{"error": "bad request"}')

    def test_handler_that_does_not_write(self, greeting_app, sink):
        @greeting_app.status_handler(HTTPStatus.BAD_REQUEST)
        def bad_request(ctx):
            ctx.response.set_header("X-Reason", "parse")
            return ctx

        greeting_app.freeze().respond(HTTPStatus.BAD_REQUEST, sink)

        assert sink.getvalue() == b"HTTP/1.1 400 Bad Request\r\nX-Reason: parse\r\n\r\n"

    def test_middleware_is_skipped(self, greeting_app, sink, caplog):
        greeting_app.use(LoggingMiddleware())

        with caplog.at_level(logging.INFO, logger="relayhttp.access"):
            greeting_app.freeze().respond(HTTPStatus.BAD_REQUEST, sink)

        assert [r for r in caplog.records if r.name == "relayhttp.access"] == []
