"""Tests for BodyCapturingMiddleware."""

from __future__ import annotations

import io
import sys
import threading
from unittest.mock import MagicMock

import pytest

from bodycapture.core.config import BodyCaptureConfig
from bodycapture.core.types import CaptureMode
from bodycapture.instrumentation import BodyCapturingFilter, BodyCapturingMiddleware
from bodycapture.instrumentation.wsgi import REQUEST_ENVIRON_KEY, RESPONSE_ENVIRON_KEY, WsgiRequest
from tests.utils import make_environ


class Server:
    """Minimal WSGI server side: records start_response calls and written data."""

    def __init__(self):
        self.statuses = []
        self.written = []

    def start_response(self, status, headers, exc_info=None):
        self.statuses.append(status)
        return self.written.append

    def run(self, app, environ):
        result = app(environ, self.start_response)
        try:
            for chunk in result:
                if chunk:
                    self.written.append(chunk)
        finally:
            if hasattr(result, "close"):
                result.close()
        return b"".join(self.written)


@pytest.fixture
def hooks():
    return {
        "on_body_read": MagicMock(),
        "on_body_produced": MagicMock(),
        "on_request_limit_reached": MagicMock(),
        "on_response_limit_reached": MagicMock(),
    }


def echo_app(environ, start_response):
    body = environ["wsgi.input"].read()
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [body]


class TestBodyCapturingMiddleware:
    def test_echo_request_and_response_captured(self, hooks):
        app = BodyCapturingMiddleware(echo_app, BodyCapturingFilter(**hooks))

        assert Server().run(app, make_environ(b"hello world")) == b"hello world"

        hooks["on_body_read"].assert_called_once()
        hooks["on_body_produced"].assert_called_once()
        response, _ = hooks["on_body_produced"].call_args[0]
        assert response.captured_binary_body() == b"hello world"
        assert response.capturing_request.captured_binary_body() == b"hello world"

    def test_body_produced_after_iteration_ends(self, hooks):
        app = BodyCapturingMiddleware(echo_app, BodyCapturingFilter(**hooks))

        result = app(make_environ(b"data"), Server().start_response)
        hooks["on_body_produced"].assert_not_called()

        assert list(result) == [b"data"]
        hooks["on_body_produced"].assert_called_once()

        result.close()
        hooks["on_body_produced"].assert_called_once()

    def test_close_without_iteration_completes(self, hooks):
        app = BodyCapturingMiddleware(echo_app, BodyCapturingFilter(**hooks))
        result = app(make_environ(b"data"), Server().start_response)
        result.close()
        hooks["on_body_produced"].assert_called_once()

    def test_closes_application_iterable(self, hooks):
        closed = MagicMock()

        class Body:
            def __iter__(self):
                yield b"x"

            def close(self):
                closed()

        def app(environ, start_response):
            start_response("200 OK", [])
            return Body()

        Server().run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(method="GET"))
        closed.assert_called_once()

    def test_generator_response_captured(self, hooks):
        def app(environ, start_response):
            start_response("200 OK", [])
            yield b"one "
            yield b""
            yield b"two"

        output = Server().run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(method="GET"))

        assert output == b"one two"
        response, _ = hooks["on_body_produced"].call_args[0]
        assert response.captured_binary_body() == b"one two"

    def test_legacy_write_callable_is_captured(self, hooks):
        def app(environ, start_response):
            write = start_response("200 OK", [])
            write(b"written ")
            return [b"yielded"]

        server = Server()
        output = server.run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(method="GET"))

        assert output == b"written yielded"
        response, _ = hooks["on_body_produced"].call_args[0]
        assert response.captured_binary_body() == b"written yielded"

    def test_environ_exposes_capturing_wrappers(self, hooks):
        def app(environ, start_response):
            text = environ[REQUEST_ENVIRON_KEY].reader().read()
            start_response("200 OK", [("Content-Type", "text/plain; charset=utf-8")])
            environ[RESPONSE_ENVIRON_KEY].writer().write(text.upper())
            return []

        output = Server().run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(b"shout"))

        assert output == b"SHOUT"
        request = hooks["on_body_read"].call_args[0][0]
        assert request.capture_mode is CaptureMode.TEXT
        assert request.captured_text_body() == "shout"
        response, _ = hooks["on_body_produced"].call_args[0]
        assert response.captured_text_body() == "SHOUT"

    def test_input_bounded_by_content_length(self, hooks):
        environ = make_environ(b"hello", **{"wsgi.input": io.BytesIO(b"hello trailing")})

        output = Server().run(BodyCapturingMiddleware(echo_app, BodyCapturingFilter(**hooks)), environ)

        assert output == b"hello"

    def test_get_request_reports_read_before_app(self, hooks):
        order = []
        hooks["on_body_read"].side_effect = lambda request: order.append("body_read")

        def app(environ, start_response):
            order.append("app")
            start_response("204 No Content", [])
            return []

        Server().run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(method="GET"))

        assert order == ["body_read", "app"]

    def test_get_request_is_passed_through_uncaptured(self, hooks):
        seen = {}

        def app(environ, start_response):
            seen["request"] = environ[REQUEST_ENVIRON_KEY]
            seen["body"] = environ["wsgi.input"].read()
            start_response("200 OK", [])
            return []

        capture_filter = BodyCapturingFilter(BodyCaptureConfig(request_limit=1), **hooks)
        Server().run(BodyCapturingMiddleware(app, capture_filter), make_environ(b"abc", method="GET"))

        assert isinstance(seen["request"], WsgiRequest)
        assert seen["body"] == b"abc"
        hooks["on_body_read"].assert_called_once()
        hooks["on_request_limit_reached"].assert_not_called()

    def test_application_error_before_return(self, hooks):
        def app(environ, start_response):
            raise ValueError("app failed")

        with pytest.raises(ValueError, match="app failed"):
            BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks))(make_environ(b"x"), Server().start_response)

        hooks["on_body_produced"].assert_called_once()

    def test_application_error_during_iteration(self, hooks):
        def app(environ, start_response):
            start_response("200 OK", [])
            yield b"partial"
            raise RuntimeError("stream broke")

        with pytest.raises(RuntimeError, match="stream broke"):
            Server().run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(method="GET"))

        hooks["on_body_produced"].assert_called_once()
        response, _ = hooks["on_body_produced"].call_args[0]
        assert response.captured_binary_body() == b"partial"

    def test_restart_with_exc_info_resets_capture(self, hooks):
        def app(environ, start_response):
            start_response("200 OK", [])
            environ[RESPONSE_ENVIRON_KEY].output_stream().write(b"discarded")
            try:
                raise ValueError("late failure")
            except ValueError:
                start_response("500 Internal Server Error", [], sys.exc_info())
            return [b"error page"]

        server = Server()
        output = server.run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(method="GET"))

        assert output == b"error page"
        assert server.statuses == ["200 OK", "500 Internal Server Error"]
        response, _ = hooks["on_body_produced"].call_args[0]
        assert response.status_code == 500
        assert response.captured_binary_body() == b"error page"

    def test_restart_after_commit_reraises(self, hooks):
        def app(environ, start_response):
            write = start_response("200 OK", [])
            write(b"already sent")
            try:
                raise ValueError("too late")
            except ValueError:
                start_response("500 Internal Server Error", [], sys.exc_info())
            return []

        with pytest.raises(ValueError, match="too late"):
            Server().run(BodyCapturingMiddleware(app, BodyCapturingFilter(**hooks)), make_environ(method="GET"))
        hooks["on_body_produced"].assert_called_once()

    def test_response_limit(self, hooks):
        capture_filter = BodyCapturingFilter(BodyCaptureConfig(response_limit=4), **hooks)

        output = Server().run(BodyCapturingMiddleware(echo_app, capture_filter), make_environ(b"abcdefgh"))

        assert output == b"abcdefgh"
        hooks["on_response_limit_reached"].assert_called_once()
        response, _ = hooks["on_body_produced"].call_args[0]
        assert response.captured_binary_body() == b"abcd"
        assert response.total_body_size == 8

    def test_async_timeout_completes_abandoned_response(self, hooks):
        produced = threading.Event()
        hooks["on_body_produced"].side_effect = lambda response, request: produced.set()
        capture_filter = BodyCapturingFilter(BodyCaptureConfig(async_timeout=0.05), **hooks)

        result = BodyCapturingMiddleware(echo_app, capture_filter)(make_environ(b"x"), Server().start_response)

        assert produced.wait(2.0)
        result.close()
        hooks["on_body_produced"].assert_called_once()

    def test_config_builds_default_filter(self):
        middleware = BodyCapturingMiddleware(echo_app, config=BodyCaptureConfig(request_limit=7))
        assert isinstance(middleware.capture_filter, BodyCapturingFilter)
        assert middleware.capture_filter.config.request_limit == 7
