"""Core module for bodycapture."""

from .async_context import AsyncContext, AsyncEvent, AsyncListener
from .completion import AsyncCompletionBridge, CompletionCoordinator, chain_actions, do_filter
from .config import (
    BodyCaptureConfig,
    find_project_root,
    load_capture_file_config,
    resolve_config,
)
from .errors import (
    AsyncStateError,
    BodyCaptureError,
    CaptureModeError,
    ConfigurationError,
    StreamStateError,
)
from .types import DEFAULT_INITIAL_CAPACITY, UNLIMITED, CaptureMode

__all__ = [
    # Completion
    "AsyncCompletionBridge",
    "CompletionCoordinator",
    "chain_actions",
    "do_filter",
    # Async lifecycle
    "AsyncContext",
    "AsyncEvent",
    "AsyncListener",
    # Config
    "BodyCaptureConfig",
    "find_project_root",
    "load_capture_file_config",
    "resolve_config",
    # Errors
    "BodyCaptureError",
    "ConfigurationError",
    "CaptureModeError",
    "StreamStateError",
    "AsyncStateError",
    # Types
    "CaptureMode",
    "DEFAULT_INITIAL_CAPACITY",
    "UNLIMITED",
]
