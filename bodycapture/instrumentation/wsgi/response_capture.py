"""WSGI response iterable wrapper that routes the body through the capturing response."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...core.async_context import AsyncContext
    from ..filter import BodyCapturingResponse
    from .exchange import WsgiResponse

logger = logging.getLogger(__name__)


class ResponseBodyCapture(Iterable[bytes]):
    """
    Wrapper for a WSGI response iterable that captures the response body.

    Every chunk the application yields is written through the capturing
    response, and whatever reached the host response is yielded to the
    server. The asynchronous context is completed once the iterable is
    exhausted or closed, and receives an error if iteration raises.

    Args:
        response: The original WSGI response iterable
        capturing_response: Capturing wrapper around ``host_response``
        host_response: The WSGI response the body is collected in
        async_context: Context of the exchange, completed when the response is done
    """

    def __init__(
        self,
        response: Iterable[bytes],
        capturing_response: BodyCapturingResponse,
        host_response: WsgiResponse,
        async_context: AsyncContext,
    ):
        self._response = response
        self._capturing_response = capturing_response
        self._host_response = host_response
        self._async_context = async_context
        self._closed = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self._response:
                if chunk:
                    self._capturing_response.output_stream().write(chunk)
                chunks = self._host_response.drain()
                # Yield something for every application chunk so the server is never starved
                if chunks:
                    yield from chunks
                else:
                    yield b""
            # Content written through writer() after the last chunk
            yield from self._host_response.drain()
        except Exception as e:
            self._async_context.dispatch_error(e)
            raise
        finally:
            self._finalize()

    def close(self) -> None:
        """Called by WSGI server when response is done."""
        try:
            if hasattr(self._response, "close"):
                self._response.close()
        finally:
            self._finalize()

    def _finalize(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._async_context.complete()
