"""OpenTelemetry integration: records body capture results as span attributes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, override

from opentelemetry import trace
from opentelemetry.trace import Span

from ..core.config import BodyCaptureConfig
from ..core.completion import Chain
from ..core.errors import CaptureModeError
from ..core.types import CaptureMode
from .filter import BodyCapturingFilter, BodyCapturingRequest, BodyCapturingResponse

logger = logging.getLogger(__name__)

class BodyCaptureSpanAttributes:
    """Span attribute names written by ``TracingBodyCapturingFilter``."""

    REQUEST_BODY_SIZE = "http.request.body.size"
    RESPONSE_BODY_SIZE = "http.response.body.size"
    REQUEST_BODY = "http.request.body"
    RESPONSE_BODY = "http.response.body"
    REQUEST_CAPTURE_MODE = "bodycapture.request.capture_mode"
    RESPONSE_CAPTURE_MODE = "bodycapture.response.capture_mode"
    REQUEST_LIMIT_REACHED = "bodycapture.request.limit_reached"
    RESPONSE_LIMIT_REACHED = "bodycapture.response.limit_reached"


class TracingBodyCapturingFilter(BodyCapturingFilter):
    """Body capturing filter that annotates the current span when an exchange ends.

    The span is the one current when ``do_filter`` is called, so asynchronous
    completions on other threads still annotate the right span.

    Args:
        config: Capture configuration
        max_attribute_length: When > 0, captured bodies are also recorded as text,
                              cut to this many characters
        **callbacks: Passed on to ``BodyCapturingFilter``
    """

    def __init__(
        self,
        config: BodyCaptureConfig | None = None,
        *,
        max_attribute_length: int = 0,
        **callbacks: Callable[..., None] | None,
    ):
        super().__init__(config, **callbacks)
        self.max_attribute_length = max_attribute_length

    @override
    def do_filter(self, request: Any, response: Any, chain: Chain) -> Any:
        request._bodycapture_span = trace.get_current_span()  # type: ignore
        return super().do_filter(request, response, chain)

    @override
    def body_produced(self, response: BodyCapturingResponse, request: Any) -> None:
        span: Span | None = getattr(request, "_bodycapture_span", None)
        if span is not None and span.is_recording():
            try:
                self._record(span, response.capturing_request, response)
            except Exception as e:
                logger.error(f"Failed to record body capture attributes: {e}", exc_info=True)
        super().body_produced(response, request)

    def _record(self, span: Span, request: BodyCapturingRequest | None, response: BodyCapturingResponse) -> None:
        attributes = BodyCaptureSpanAttributes
        if request is not None:
            span.set_attribute(attributes.REQUEST_BODY_SIZE, request.total_body_size)
            span.set_attribute(attributes.REQUEST_CAPTURE_MODE, request.capture_mode.value)
            span.set_attribute(attributes.REQUEST_LIMIT_REACHED, request.limit_reached)
            if self.max_attribute_length > 0:
                body = _captured_text(request)
                if body:
                    span.set_attribute(attributes.REQUEST_BODY, body[: self.max_attribute_length])

        span.set_attribute(attributes.RESPONSE_BODY_SIZE, response.total_body_size)
        span.set_attribute(attributes.RESPONSE_CAPTURE_MODE, response.capture_mode.value)
        span.set_attribute(attributes.RESPONSE_LIMIT_REACHED, response.limit_reached)
        if self.max_attribute_length > 0:
            body = _captured_text(response)
            if body:
                span.set_attribute(attributes.RESPONSE_BODY, body[: self.max_attribute_length])


def _captured_text(capturing: BodyCapturingRequest | BodyCapturingResponse) -> str:
    try:
        if capturing.capture_mode == CaptureMode.TEXT:
            return capturing.captured_text_body()
        return capturing.captured_binary_body_as_string()
    except CaptureModeError:
        return ""
