"""Request and response body capturing for Python web services."""

from .capture import CapturingInputStream, CapturingOutputStream, CapturingReader, CapturingWriter
from .core import (
    UNLIMITED,
    AsyncCompletionBridge,
    AsyncContext,
    AsyncStateError,
    BodyCaptureConfig,
    BodyCaptureError,
    CaptureMode,
    CaptureModeError,
    CompletionCoordinator,
    ConfigurationError,
    StreamStateError,
    do_filter,
    find_project_root,
    resolve_config,
)
from .core.logger import LogLevel, configure_logger, get_log_level, set_log_level
from .instrumentation import (
    BodyCaptureSpanAttributes,
    BodyCapturingFilter,
    BodyCapturingMiddleware,
    BodyCapturingRequest,
    BodyCapturingResponse,
    TracingBodyCapturingFilter,
    ensure_body_consumed,
)

__version__ = "0.1.0"

__all__ = [
    # Capture
    "CapturingInputStream",
    "CapturingReader",
    "CapturingOutputStream",
    "CapturingWriter",
    # Core
    "AsyncCompletionBridge",
    "AsyncContext",
    "CompletionCoordinator",
    "CaptureMode",
    "UNLIMITED",
    "do_filter",
    # Config
    "BodyCaptureConfig",
    "resolve_config",
    "find_project_root",
    # Errors
    "BodyCaptureError",
    "ConfigurationError",
    "CaptureModeError",
    "StreamStateError",
    "AsyncStateError",
    # Logger
    "LogLevel",
    "configure_logger",
    "set_log_level",
    "get_log_level",
    # Instrumentation
    "BodyCapturingFilter",
    "BodyCapturingRequest",
    "BodyCapturingResponse",
    "ensure_body_consumed",
    "TracingBodyCapturingFilter",
    "BodyCaptureSpanAttributes",
    "BodyCapturingMiddleware",
]
