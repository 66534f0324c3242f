"""WSGI middleware that captures request and response bodies.

The application sees capturing wrappers in place of its input and output:
``wsgi.input`` reads through the request the filter passes on (a capturing
request unless the filter skips capturing the body), and both the legacy
``write()`` callable and the yielded body go through the capturing response.
Once the application returns its iterable the exchange is asynchronous; it
completes when the server has consumed or closed the iterable.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from ...core.config import BodyCaptureConfig, resolve_config
from ..filter import BodyCapturingFilter, BodyCapturingRequest, BodyCapturingResponse
from .exchange import WsgiRequest, WsgiResponse
from .response_capture import ResponseBodyCapture

if TYPE_CHECKING:
    from _typeshed import OptExcInfo
    from _typeshed.wsgi import StartResponse, WSGIApplication, WSGIEnvironment

logger = logging.getLogger(__name__)

REQUEST_ENVIRON_KEY = "bodycapture.request"
RESPONSE_ENVIRON_KEY = "bodycapture.response"


class _LazyInput:
    """Stands in for ``wsgi.input``.

    The capturing stream is only created when the application first reads, so
    an application that uses ``environ[REQUEST_ENVIRON_KEY].reader()`` instead
    is still free to do so.
    """

    def __init__(self, request: BodyCapturingRequest):
        self._request = request

    def read(self, size: int = -1) -> bytes:
        return self._request.input_stream().read(size)

    def readline(self, size: int = -1) -> bytes:
        return self._request.input_stream().readline(size)

    def readinto(self, buffer: Any) -> int | None:
        return self._request.input_stream().readinto(buffer)

    def readlines(self, hint: int = -1) -> list[bytes]:
        return self._request.input_stream().readlines(hint)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._request.input_stream())

    def close(self) -> None:
        self._request.input_stream().close()


class BodyCapturingMiddleware:
    """WSGI middleware applying a ``BodyCapturingFilter`` to every request.

    Args:
        app: The WSGI application to wrap
        capture_filter: Filter to apply; a plain ``BodyCapturingFilter`` is built from ``config`` when omitted
        config: Capture configuration; resolved from the environment and config file when omitted
    """

    def __init__(
        self,
        app: WSGIApplication,
        capture_filter: BodyCapturingFilter | None = None,
        config: BodyCaptureConfig | None = None,
    ):
        self.app = app
        if capture_filter is None:
            capture_filter = BodyCapturingFilter(config or resolve_config())
        self.capture_filter = capture_filter

    def __call__(self, environ: WSGIEnvironment, start_response: StartResponse) -> Iterable[bytes]:
        return handle_wsgi_request(self.app, environ, start_response, self.capture_filter)


def handle_wsgi_request(
    app: WSGIApplication,
    environ: WSGIEnvironment,
    start_response: StartResponse,
    capture_filter: BodyCapturingFilter,
) -> Iterable[bytes]:
    """Handle a single WSGI request with body capturing.

    Args:
        app: The WSGI application
        environ: WSGI environ dictionary
        start_response: WSGI start_response callable
        capture_filter: Filter receiving the capture hooks

    Returns:
        WSGI response iterable
    """
    host_request = WsgiRequest(environ)
    host_response = WsgiResponse(start_response)
    timeout = capture_filter.config.async_timeout

    def chain(request: BodyCapturingRequest, response: BodyCapturingResponse) -> Iterable[bytes]:
        environ["wsgi.input"] = _LazyInput(request)
        environ[REQUEST_ENVIRON_KEY] = request
        environ[RESPONSE_ENVIRON_KEY] = response

        def write(data: bytes) -> None:
            response.output_stream().write(data)
            host_response.flush_to_server()

        def wrapped_start_response(
            status: str,
            response_headers: list[tuple[str, str]],
            exc_info: OptExcInfo | None = None,
        ) -> Any:
            if exc_info is not None and host_response.status is not None:
                if host_response.committed:
                    # Headers already went out; the server cannot replace them
                    raise exc_info[1].with_traceback(exc_info[2])  # type: ignore
                logger.debug("Response restarted with exc_info, discarding captured response body")
                response.reset()
            host_response.start_response(status, response_headers, exc_info)
            return write

        result = app(environ, wrapped_start_response)
        async_context = host_request.start_async(request, response, timeout)
        return ResponseBodyCapture(result, response, host_response, async_context)

    return capture_filter.do_filter(host_request, host_response, chain)
