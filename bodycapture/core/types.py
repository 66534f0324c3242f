"""Core types and constants for the bodycapture package."""

import sys
from enum import Enum

# Value taken from the default capacity of an in-memory byte buffer
DEFAULT_INITIAL_CAPACITY = 32

UNLIMITED = sys.maxsize


class CaptureMode(Enum):
    """How a request or response body has been captured so far."""

    BYTES = "bytes"
    TEXT = "text"
    NONE = "none"


# Recognized configuration parameters
INITIAL_REQUEST_CAPACITY = "initial_request_capacity"
INITIAL_REQUEST_CAPACITY_FROM_CONTENT_LENGTH = "initial_request_capacity_from_content_length"
REQUEST_LIMIT = "request_limit"
CONSIDER_REQUEST_READ_AFTER_CONTENT_LENGTH = "consider_request_read_after_content_length"
ENSURE_REQUEST_BODY_CONSUMED = "ensure_request_body_consumed"
INITIAL_RESPONSE_CAPACITY = "initial_response_capacity"
RESPONSE_LIMIT = "response_limit"
DEFAULT_REQUEST_ENCODING = "default_request_encoding"
DEFAULT_RESPONSE_ENCODING = "default_response_encoding"
ASYNC_TIMEOUT = "async_timeout"

PARAMETER_NAMES = (
    INITIAL_REQUEST_CAPACITY,
    INITIAL_REQUEST_CAPACITY_FROM_CONTENT_LENGTH,
    REQUEST_LIMIT,
    CONSIDER_REQUEST_READ_AFTER_CONTENT_LENGTH,
    ENSURE_REQUEST_BODY_CONSUMED,
    INITIAL_RESPONSE_CAPACITY,
    RESPONSE_LIMIT,
    DEFAULT_REQUEST_ENCODING,
    DEFAULT_RESPONSE_ENCODING,
    ASYNC_TIMEOUT,
)
