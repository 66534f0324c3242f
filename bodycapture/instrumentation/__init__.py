"""Instrumentation module for bodycapture."""

from .filter import BodyCapturingFilter, BodyCapturingRequest, BodyCapturingResponse, ensure_body_consumed
from .tracing import BodyCaptureSpanAttributes, TracingBodyCapturingFilter
from .wrappers import (
    HostRequest,
    HostResponse,
    InputTransformingRequest,
    OutputTransformingResponse,
    RequestWrapper,
    ResponseWrapper,
)
from .wsgi import BodyCapturingMiddleware

__all__ = [
    "BodyCapturingFilter",
    "BodyCapturingRequest",
    "BodyCapturingResponse",
    "ensure_body_consumed",
    "TracingBodyCapturingFilter",
    "BodyCaptureSpanAttributes",
    "HostRequest",
    "HostResponse",
    "RequestWrapper",
    "ResponseWrapper",
    "InputTransformingRequest",
    "OutputTransformingResponse",
    "BodyCapturingMiddleware",
]
