"""
Unit tests for the request context and its finalizers.
"""

import json

import pytest

from relayhttp.context import Context, RequestState
from relayhttp.errors import ConnectionFailedError, ContextConsumedError, SerializationError
from relayhttp.http import HTTPStatus, Params, parse_request


def make_context(sink, target: str = "/", status_handlers=None) -> Context:
    request = parse_request(f"GET {target} HTTP/1.1\r\n\r\n".encode())
    return Context(request, status_handlers or {}, sink)


class TestAccessors:
    """Reading request data through the context."""

    def test_query(self, sink):
        ctx = make_context(sink, "/hello?name=Amelia&name=Ada")

        assert ctx.query("name") == "Amelia"
        assert ctx.query("missing", "world") == "world"
        assert ctx.query_params.get_all("name") == ["Amelia", "Ada"]

    def test_url_param(self, sink):
        ctx = make_context(sink)
        ctx.params = Params([("id", "42")])

        assert ctx.url_param("id") == "42"
        assert ctx.url_param("other") is None

    def test_initial_state(self, sink):
        ctx = make_context(sink)

        assert ctx.state is RequestState.PARSED
        assert not ctx.written
        assert ctx.response.status is HTTPStatus.OK


class TestFinalizers:
    """Each finalizer writes the response exactly once."""

    def test_string(self, sink):
        ctx = make_context(sink)
        result = ctx.string("Hello, Amelia!")

        assert result is ctx
        assert ctx.written
        assert sink.getvalue() == b"HTTP/1.1 200 OK\r\n\r\nHello, Amelia!"

    def test_write_uses_current_response(self, sink):
        ctx = make_context(sink)
        ctx.response.set_status(HTTPStatus.CREATED).set_header("X-Id", "7")
        ctx.write()

        assert sink.getvalue() == b"HTTP/1.1 201 Created\r\nX-Id: 7\r\n\r\n"

    def test_json(self, sink):
        ctx = make_context(sink)
        ctx.json({"id": 1, "name": "Åsa"})

        head, _, body = sink.getvalue().partition(b"\r\n\r\n")
        assert b"Content-Type: application/json; charset=utf-8" in head
        assert json.loads(body.decode("utf-8")) == {"id": 1, "name": "Åsa"}

    def test_json_not_serializable(self, sink):
        ctx = make_context(sink)

        with pytest.raises(SerializationError):
            ctx.json({"tags": {"a", "b"}})
        assert sink.getvalue() == b""
        assert not ctx.written

    def test_file(self, sink, tmp_path):
        page = tmp_path / "index.html"
        page.write_text("<h1>Hi</h1>", encoding="utf-8")

        ctx = make_context(sink)
        ctx.file(str(page))

        data = sink.getvalue()
        assert b"Content-Type: text/html; charset=utf-8\r\n" in data
        assert data.endswith(b"\r\n\r\n<h1>Hi</h1>")

    def test_file_missing(self, sink, tmp_path):
        ctx = make_context(sink)

        with pytest.raises(ConnectionFailedError):
            ctx.file(str(tmp_path / "missing.txt"))
        assert not ctx.written

    def test_file_not_utf8(self, sink, tmp_path):
        blob = tmp_path / "blob.txt"
        blob.write_bytes(b"\xff\xfe\x00")

        with pytest.raises(SerializationError):
            make_context(sink).file(str(blob))

    def test_redirect(self, sink):
        ctx = make_context(sink)
        ctx.redirect("/login")

        assert sink.getvalue() == b"HTTP/1.1 303 See Other\r\nLocation: /login\r\n\r\n"

    def test_second_finalizer_raises(self, sink):
        ctx = make_context(sink)
        ctx.string("first")

        with pytest.raises(ContextConsumedError):
            ctx.string("second")
        with pytest.raises(ContextConsumedError):
            ctx.write()
        with pytest.raises(ContextConsumedError):
            ctx.status(HTTPStatus.NOT_FOUND)

        assert sink.getvalue() == b"HTTP/1.1 200 OK\r\n\r\nfirst"


class TestStatus:
    """ctx.status() and the status handler table."""

    def test_default_body_is_status_text(self, sink):
        ctx = make_context(sink)
        ctx.status(HTTPStatus.NOT_FOUND)

        assert sink.getvalue() == b"HTTP/1.1 404 NOT FOUND\r\n\r\n404 NOT FOUND"

    def test_registered_handler_runs(self, sink):
        seen = []

        def not_found(ctx):
            seen.append(ctx.response.status)
            return ctx.string("nothing here")

        ctx = make_context(sink, status_handlers={HTTPStatus.NOT_FOUND: not_found})
        ctx.status(HTTPStatus.NOT_FOUND)

        assert seen == [HTTPStatus.NOT_FOUND]
        assert sink.getvalue() == b"HTTP/1.1 404 NOT FOUND\r\n\r\nnothing here"

    def test_status_table_is_read_only(self, sink):
        ctx = make_context(sink, status_handlers={HTTPStatus.NOT_FOUND: lambda c: c})

        with pytest.raises(TypeError):
            ctx.status_handlers[HTTPStatus.OK] = lambda c: c


class TestSinkFailure:
    """Transport failures surface as ConnectionFailedError."""

    def test_failed_write_consumes_context(self):
        class BrokenSink:
            def write(self, data):
                raise ConnectionFailedError("client went away")

        ctx = make_context(BrokenSink())

        with pytest.raises(ConnectionFailedError):
            ctx.string("hello")
        with pytest.raises(ContextConsumedError):
            ctx.string("again")
