"""Request/response body capturing filter.

``BodyCapturingFilter.do_filter`` wraps a request and response so that the
bodies read from and written to them are captured, and reports progress
through hook methods:

- ``body_read(request)``: at most once per request, when the request body has
  been fully read or its stream closed
- ``request_limit_reached(request)``: at most once per request
- ``response_limit_reached(response, request)``: at most once per response
  stream; again after the response buffer is reset
- ``body_produced(response, request)``: exactly once per exchange, after the
  exchange ends (synchronously or asynchronously)

Hooks can be supplied as constructor callbacks or by overriding the methods.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import IO, Any, override

from ..capture import CapturingInputStream, CapturingOutputStream, CapturingReader, CapturingWriter
from ..core.completion import Chain, chain_actions, do_filter
from ..core.config import BodyCaptureConfig
from ..core.errors import CaptureModeError, StreamStateError
from ..core.types import CaptureMode
from .wrappers import InputTransformingRequest, OutputTransformingResponse, RequestWrapper

logger = logging.getLogger(__name__)

METHODS_WITHOUT_BODY = frozenset({"GET", "DELETE", "OPTIONS", "HEAD"})
DEFAULT_ENCODING = "utf-8"
CONSUME_BUFFER_SIZE = 1024


class BodyCapturingFilter:
    """Captures request and response bodies for a hosting pipeline.

    Args:
        config: Capture configuration; defaults apply when omitted
        on_body_read: Called with the ``BodyCapturingRequest`` once its body is read
        on_request_limit_reached: Called with the ``BodyCapturingRequest`` when its capture limit is reached
        on_response_limit_reached: Called with the ``BodyCapturingResponse`` and original request
                                   when the response capture limit is reached
        on_body_produced: Called with the ``BodyCapturingResponse`` and original request
                          once the exchange has ended
    """

    def __init__(
        self,
        config: BodyCaptureConfig | None = None,
        *,
        on_body_read: Callable[[BodyCapturingRequest], None] | None = None,
        on_request_limit_reached: Callable[[BodyCapturingRequest], None] | None = None,
        on_response_limit_reached: Callable[[BodyCapturingResponse, Any], None] | None = None,
        on_body_produced: Callable[[BodyCapturingResponse, Any], None] | None = None,
    ):
        self.config = config or BodyCaptureConfig()
        self._on_body_read = on_body_read
        self._on_request_limit_reached = on_request_limit_reached
        self._on_response_limit_reached = on_response_limit_reached
        self._on_body_produced = on_body_produced

    def do_filter(self, request: Any, response: Any, chain: Chain) -> Any:
        """Run ``chain`` with capturing wrappers around ``request`` and ``response``.

        Returns:
            Whatever the chain returned
        """
        if not self.capture_body(request):
            # The chain gets the request as is; body_read is reported up front
            capturing_request = BodyCapturingRequest(self, request, use_done_callback=False)
            self.body_read(capturing_request)
            capturing_response = BodyCapturingResponse(self, request, response, capturing_request)

            def produced_only(req: Any, resp: Any) -> None:
                self.body_produced(capturing_response, request)

            return do_filter(request, capturing_response, chain, produced_only)

        capturing_request = BodyCapturingRequest(self, request, use_done_callback=True)
        capturing_response = BodyCapturingResponse(self, request, response, capturing_request)

        def ensure_consumed(req: Any, resp: Any) -> None:
            if self.config.ensure_request_body_consumed:
                capturing_request.consume(prefer_reader=True)

        def produced(req: Any, resp: Any) -> None:
            self.body_produced(capturing_response, request)

        return do_filter(capturing_request, capturing_response, chain, chain_actions(ensure_consumed, produced))

    def capture_body(self, request: Any) -> bool:
        """Whether the body of ``request`` should be captured.

        When this returns False, ``body_read`` is reported before the chain runs
        with a request that captured nothing, and the chain receives ``request``
        unwrapped. By default capturing is skipped for methods without a body,
        and for a declared empty body when ``consider_request_read_after_content_length``
        is set.
        """
        if self.config.consider_request_read_after_content_length and request.content_length == 0:
            return False
        return not self.has_no_body(request.method)

    def has_no_body(self, method: str | None) -> bool:
        """Whether requests with the given method have no body, so capturing can be skipped."""
        return method is not None and method.upper() in METHODS_WITHOUT_BODY

    def initial_request_capacity(self, request: Any) -> int:
        if self.config.initial_request_capacity_from_content_length:
            content_length = request.content_length
            if content_length is not None and content_length >= 0:
                return content_length
        return self.config.initial_request_capacity

    def request_limit(self, request: Any) -> int:
        return self.config.request_limit

    def initial_response_capacity(self, request: Any) -> int:
        return self.config.initial_response_capacity

    def response_limit(self, request: Any) -> int:
        return self.config.response_limit

    def body_read(self, request: BodyCapturingRequest) -> None:
        if self._on_body_read:
            self._on_body_read(request)

    def request_limit_reached(self, request: BodyCapturingRequest) -> None:
        logger.debug(f"Request body capture limit of {request.limit} reached")
        if self._on_request_limit_reached:
            self._on_request_limit_reached(request)

    def response_limit_reached(self, response: BodyCapturingResponse, request: Any) -> None:
        logger.debug(f"Response body capture limit of {response.limit} reached")
        if self._on_response_limit_reached:
            self._on_response_limit_reached(response, request)

    def body_produced(self, response: BodyCapturingResponse, request: Any) -> None:
        if self._on_body_produced:
            self._on_body_produced(response, request)


def _resolve_encoding(explicit: str | None, declared: str | None) -> str:
    return explicit or declared or DEFAULT_ENCODING


class BodyCapturingRequest(InputTransformingRequest):
    """Request wrapper that captures the request body as it is read."""

    def __init__(self, capture_filter: BodyCapturingFilter, request: Any, use_done_callback: bool):
        super().__init__(request, self._capture_input_stream, self._capture_reader)
        self._filter = capture_filter
        self._capturing_input_stream: CapturingInputStream | None = None
        self._capturing_reader: CapturingReader | None = None
        self.initial_capacity = capture_filter.initial_request_capacity(request)
        self.limit = capture_filter.request_limit(request)
        self.done_after = self._done_after(request)
        self._done_callback = (lambda stream: capture_filter.body_read(self)) if use_done_callback else None
        self.limit_reached = False

    def _done_after(self, request: Any) -> int | None:
        if self._filter.config.consider_request_read_after_content_length:
            return request.content_length
        return None

    def _limit_reached(self, stream: Any) -> None:
        self.limit_reached = True
        self._filter.request_limit_reached(self)

    def _capture_input_stream(self, stream: IO[bytes]) -> CapturingInputStream:
        self._capturing_input_stream = CapturingInputStream(
            stream, self.initial_capacity, self.limit, self.done_after, self._done_callback, self._limit_reached
        )
        return self._capturing_input_stream

    def _capture_reader(self, reader: IO[str]) -> CapturingReader:
        self._capturing_reader = CapturingReader(
            reader, self.initial_capacity, self.limit, self.done_after, self._done_callback, self._limit_reached
        )
        return self._capturing_reader

    @property
    def capture_mode(self) -> CaptureMode:
        if self._capturing_input_stream is not None:
            return CaptureMode.BYTES
        if self._capturing_reader is not None:
            return CaptureMode.TEXT
        return CaptureMode.NONE

    def captured_binary_body(self) -> bytes:
        """The captured body bytes.

        Raises:
            CaptureModeError: If the body was read as text
        """
        if self._capturing_input_stream is not None:
            return self._capturing_input_stream.captured()
        if self._capturing_reader is not None:
            raise CaptureModeError("The request body was captured as text, not as bytes")
        return b""

    def captured_binary_body_as_string(self) -> str:
        if self._capturing_input_stream is not None:
            encoding = _resolve_encoding(
                self.request.character_encoding, self._filter.config.default_request_encoding
            )
            return self._capturing_input_stream.captured_as_text(encoding)
        if self._capturing_reader is not None:
            raise CaptureModeError("The request body was captured as text, not as bytes")
        return ""

    def captured_text_body(self) -> str:
        """The captured body text.

        Raises:
            CaptureModeError: If the body was read as bytes
        """
        if self._capturing_reader is not None:
            return self._capturing_reader.captured()
        if self._capturing_input_stream is not None:
            raise CaptureModeError("The request body was captured as bytes, not as text")
        return ""

    @property
    def total_body_size(self) -> int:
        if self._capturing_input_stream is not None:
            return self._capturing_input_stream.total_bytes
        if self._capturing_reader is not None:
            return self._capturing_reader.total_chars
        return 0

    @property
    def body_is_consumed(self) -> bool:
        if self._capturing_input_stream is not None:
            return self._capturing_input_stream.is_consumed()
        if self._capturing_reader is not None:
            return self._capturing_reader.is_consumed()
        return False

    def consume(self, prefer_reader: bool = True) -> None:
        """Read the rest of the body so that the done callback fires even if nobody else reads it."""
        if self._capturing_input_stream is not None:
            self._capturing_input_stream.consume()
        elif self._capturing_reader is not None:
            self._capturing_reader.consume()
        elif prefer_reader:
            self.reader().consume()
        else:
            self.input_stream().consume()


class BodyCapturingResponse(OutputTransformingResponse):
    """Response wrapper that captures the response body as it is written."""

    def __init__(
        self,
        capture_filter: BodyCapturingFilter,
        request: Any,
        response: Any,
        capturing_request: BodyCapturingRequest | None = None,
    ):
        super().__init__(response, self._capture_output_stream, self._capture_writer)
        self._filter = capture_filter
        self._original_request = request
        self.capturing_request = capturing_request
        self._capturing_output_stream: CapturingOutputStream | None = None
        self._capturing_writer: CapturingWriter | None = None
        self.initial_capacity = capture_filter.initial_response_capacity(request)
        self.limit = capture_filter.response_limit(request)
        self.limit_reached = False

    def _limit_reached(self, stream: Any) -> None:
        self.limit_reached = True
        self._filter.response_limit_reached(self, self._original_request)

    def _capture_output_stream(self, stream: IO[bytes]) -> CapturingOutputStream:
        self._capturing_output_stream = CapturingOutputStream(
            stream, self.initial_capacity, self.limit, self._limit_reached
        )
        return self._capturing_output_stream

    def _capture_writer(self, writer: IO[str]) -> CapturingWriter:
        self._capturing_writer = CapturingWriter(writer, self.initial_capacity, self.limit, self._limit_reached)
        return self._capturing_writer

    @override
    def reset_buffer(self) -> None:
        super().reset_buffer()
        self._capturing_output_stream = None
        self._capturing_writer = None
        self.limit_reached = False

    @override
    def reset(self) -> None:
        super().reset()
        self._capturing_output_stream = None
        self._capturing_writer = None
        self.limit_reached = False

    @property
    def capture_mode(self) -> CaptureMode:
        if self._capturing_output_stream is not None:
            return CaptureMode.BYTES
        if self._capturing_writer is not None:
            return CaptureMode.TEXT
        return CaptureMode.NONE

    def captured_binary_body(self) -> bytes:
        if self._capturing_output_stream is not None:
            return self._capturing_output_stream.captured()
        if self._capturing_writer is not None:
            raise CaptureModeError("The response body was captured as text, not as bytes")
        return b""

    def captured_binary_body_as_string(self) -> str:
        if self._capturing_output_stream is not None:
            encoding = _resolve_encoding(
                self.response.character_encoding, self._filter.config.default_response_encoding
            )
            return self._capturing_output_stream.captured_as_text(encoding)
        if self._capturing_writer is not None:
            raise CaptureModeError("The response body was captured as text, not as bytes")
        return ""

    def captured_text_body(self) -> str:
        if self._capturing_writer is not None:
            return self._capturing_writer.captured()
        if self._capturing_output_stream is not None:
            raise CaptureModeError("The response body was captured as bytes, not as text")
        return ""

    @property
    def total_body_size(self) -> int:
        if self._capturing_output_stream is not None:
            return self._capturing_output_stream.total_bytes
        if self._capturing_writer is not None:
            return self._capturing_writer.total_chars
        return 0


def ensure_body_consumed(request: Any, prefer_reader: bool = True) -> None:
    """Make sure the body of ``request`` is fully read.

    Downstream code can call this to guarantee that ``body_read`` is reported
    even when it does not need the body itself. If ``request`` is (or wraps) a
    ``BodyCapturingRequest`` the body is consumed through it.

    Args:
        request: The request, possibly wrapped
        prefer_reader: Try ``reader()`` before ``input_stream()``
    """
    current = request
    while isinstance(current, RequestWrapper) and not isinstance(current, BodyCapturingRequest):
        current = current.request
    if isinstance(current, BodyCapturingRequest):
        current.consume(prefer_reader)
        return

    first, second = (request.reader, request.input_stream) if prefer_reader else (request.input_stream, request.reader)
    try:
        stream = first()
    except StreamStateError:
        stream = second()
    while stream.read(CONSUME_BUFFER_SIZE):
        pass
