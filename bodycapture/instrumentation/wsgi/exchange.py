"""WSGI rendition of the request/response pair expected by the capturing filter."""

from __future__ import annotations

import codecs
import io
import logging
from collections import deque
from typing import TYPE_CHECKING, Any

from ...core.async_context import AsyncContext
from ...core.errors import AsyncStateError, StreamStateError
from .utilities import (
    extract_headers,
    get_cookie,
    get_cookies,
    header_value,
    parse_charset,
    parse_content_length,
    parse_status_line,
)

if TYPE_CHECKING:
    from _typeshed import OptExcInfo
    from _typeshed.wsgi import StartResponse, WSGIEnvironment

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"


class _BoundedInput(io.RawIOBase):
    """Raw view of ``wsgi.input`` that reports end-of-stream after ``limit`` bytes.

    Servers may block when reading past the declared content length, so reads
    are capped. A limit of None reads until the server signals the end.
    """

    def __init__(self, stream: Any, limit: int | None):
        super().__init__()
        self._stream = stream
        self._remaining = limit

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        size = len(buffer)
        if self._remaining is not None:
            size = min(size, self._remaining)
        if size <= 0 or self._stream is None:
            return 0
        data = self._stream.read(size)
        if not data:
            return 0
        n = len(data)
        buffer[:n] = data
        if self._remaining is not None:
            self._remaining -= n
        return n


class WsgiRequest:
    """Request view over a WSGI environ.

    Exactly one of ``input_stream()`` and ``reader()`` may be used per request.
    """

    def __init__(self, environ: WSGIEnvironment):
        self.environ = environ
        self.method: str = environ.get("REQUEST_METHOD", "GET")
        self.content_length = parse_content_length(environ)
        self.character_encoding = parse_charset(environ.get("CONTENT_TYPE"))
        self._raw_input = environ.get("wsgi.input")
        self._input_stream: io.BufferedReader | None = None
        self._reader: io.TextIOWrapper | None = None
        self._async_context: AsyncContext | None = None

    @property
    def headers(self) -> dict[str, str]:
        return extract_headers(self.environ)

    @property
    def cookies(self) -> dict[str, str]:
        return get_cookies(self.environ)

    def get_cookie(self, name: str) -> str | None:
        return get_cookie(self.environ, name)

    def _input_limit(self) -> int | None:
        if self.content_length is not None:
            return self.content_length
        if self.environ.get("wsgi.input_terminated"):
            return None
        return 0

    def input_stream(self) -> io.BufferedReader:
        if self._reader is not None:
            raise StreamStateError("reader() has already been called for this request")
        if self._input_stream is None:
            self._input_stream = io.BufferedReader(_BoundedInput(self._raw_input, self._input_limit()))
        return self._input_stream

    def reader(self) -> io.TextIOWrapper:
        if self._input_stream is not None:
            raise StreamStateError("input_stream() has already been called for this request")
        if self._reader is None:
            raw = io.BufferedReader(_BoundedInput(self._raw_input, self._input_limit()))
            self._reader = io.TextIOWrapper(raw, encoding=self.character_encoding or DEFAULT_ENCODING)
        return self._reader

    def start_async(self, request: Any = None, response: Any = None, timeout: float | None = None) -> AsyncContext:
        """Place the request in asynchronous mode.

        Raises:
            AsyncStateError: If asynchronous mode was already started
        """
        if self._async_context is not None:
            raise AsyncStateError("Asynchronous mode has already been started for this request")
        self._async_context = AsyncContext(request if request is not None else self, response, timeout)
        logger.debug(f"Request entered asynchronous mode (timeout={timeout})")
        return self._async_context

    def is_async_started(self) -> bool:
        return self._async_context is not None

    def get_async_context(self) -> AsyncContext:
        if self._async_context is None:
            raise AsyncStateError("The request is not in asynchronous mode")
        return self._async_context


class _ResponseSink:
    """Collects response body chunks until they are handed to the server."""

    def __init__(self) -> None:
        self._pending: deque[bytes] = deque()
        self.closed = False

    def write(self, data: bytes) -> int:
        if self.closed:
            raise StreamStateError("The response body stream is closed")
        if data:
            self._pending.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    def drain(self) -> list[bytes]:
        chunks = list(self._pending)
        self._pending.clear()
        return chunks

    def discard(self) -> None:
        self._pending.clear()


class _SinkWriter:
    """Text writer that encodes into a response sink."""

    def __init__(self, sink: _ResponseSink, encoding: str):
        self._sink = sink
        self.encoding = encoding
        self._encoder = codecs.getincrementalencoder(encoding)()

    @property
    def closed(self) -> bool:
        return self._sink.closed

    def write(self, text: str) -> int:
        self._sink.write(self._encoder.encode(text))
        return len(text)

    def flush(self) -> None:
        self._sink.flush()

    def close(self) -> None:
        if not self._sink.closed:
            self._sink.write(self._encoder.encode("", final=True))
            self._sink.close()


class WsgiResponse:
    """Response view over a WSGI ``start_response`` callable.

    Body content is written to an in-memory sink and handed to the server
    through ``drain()`` (for the response iterable) or ``flush_to_server()``
    (for the legacy ``write()`` callable).
    """

    def __init__(self, start_response: StartResponse):
        self._start_response = start_response
        self._server_write: Any = None
        self.status: str | None = None
        self.headers: list[tuple[str, str]] = []
        self.committed = False
        self._sink = _ResponseSink()
        self._output_stream_used = False
        self._writer: _SinkWriter | None = None

    @property
    def character_encoding(self) -> str | None:
        return parse_charset(header_value(self.headers, "Content-Type"))

    @property
    def status_code(self) -> int | None:
        """Numeric status of the last ``start_response`` call, if any."""
        if self.status is None:
            return None
        return parse_status_line(self.status)[0]

    def start_response(
        self,
        status: str,
        headers: list[tuple[str, str]],
        exc_info: OptExcInfo | None = None,
    ) -> Any:
        self.status = status
        self.headers = list(headers)
        self._server_write = self._start_response(status, headers, exc_info)
        return self._server_write

    def output_stream(self) -> _ResponseSink:
        if self._writer is not None:
            raise StreamStateError("writer() has already been called for this response")
        self._output_stream_used = True
        return self._sink

    def writer(self) -> _SinkWriter:
        if self._output_stream_used:
            raise StreamStateError("output_stream() has already been called for this response")
        if self._writer is None:
            self._writer = _SinkWriter(self._sink, self.character_encoding or DEFAULT_ENCODING)
        return self._writer

    def drain(self) -> list[bytes]:
        chunks = self._sink.drain()
        if chunks:
            self.committed = True
        return chunks

    def flush_to_server(self) -> None:
        if self._server_write is None:
            raise StreamStateError("write() called before start_response()")
        for chunk in self.drain():
            self._server_write(chunk)

    def reset_buffer(self) -> None:
        """Discard body content not yet handed to the server.

        Raises:
            StreamStateError: If content has already been handed to the server
        """
        if self.committed:
            raise StreamStateError("Cannot reset the buffer of a committed response")
        self._sink.discard()

    def reset(self) -> None:
        """Discard pending body content, status and headers."""
        self.reset_buffer()
        self.status = None
        self.headers = []
        self._output_stream_used = False
        self._writer = None

