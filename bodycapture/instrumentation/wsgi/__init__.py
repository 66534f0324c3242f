"""WSGI body capturing middleware."""

from .exchange import WsgiRequest, WsgiResponse
from .middleware import REQUEST_ENVIRON_KEY, RESPONSE_ENVIRON_KEY, BodyCapturingMiddleware, handle_wsgi_request
from .response_capture import ResponseBodyCapture
from .utilities import (
    extract_headers,
    for_each_header,
    get_cookie,
    get_cookies,
    parse_charset,
    parse_content_length,
    parse_status_line,
)

__all__ = [
    "BodyCapturingMiddleware",
    "handle_wsgi_request",
    "REQUEST_ENVIRON_KEY",
    "RESPONSE_ENVIRON_KEY",
    "ResponseBodyCapture",
    "WsgiRequest",
    "WsgiResponse",
    "extract_headers",
    "for_each_header",
    "get_cookie",
    "get_cookies",
    "parse_charset",
    "parse_content_length",
    "parse_status_line",
]
