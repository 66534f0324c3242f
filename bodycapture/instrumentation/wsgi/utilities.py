"""WSGI environ and header helpers."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from email.message import Message
from http.cookies import CookieError, SimpleCookie
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from _typeshed.wsgi import WSGIEnvironment

# Keys WSGI stores without the HTTP_ prefix
_UNPREFIXED_HEADERS = {"CONTENT_TYPE": "Content-Type", "CONTENT_LENGTH": "Content-Length"}


def extract_headers(environ: WSGIEnvironment) -> dict[str, str]:
    """Extract request headers from a WSGI environ.

    Args:
        environ: WSGI environ dictionary

    Returns:
        Header names in Title-Case mapped to their values
    """
    headers = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            name = key[5:].replace("_", "-").title()
            headers[name] = value
        elif key in _UNPREFIXED_HEADERS and value:
            headers[_UNPREFIXED_HEADERS[key]] = value
    return headers


def for_each_header(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
    action: Callable[[str, str], None],
) -> None:
    """Call ``action(name, value)`` for every header, including repeated ones."""
    if action is None:
        raise TypeError("action must not be None")
    items = headers.items() if isinstance(headers, Mapping) else headers
    for name, value in items:
        action(name, value)


def parse_content_length(environ: WSGIEnvironment) -> int | None:
    """Declared request content length, or None if absent or invalid."""
    raw_value = environ.get("CONTENT_LENGTH")
    if not raw_value:
        return None
    try:
        value = int(raw_value)
    except ValueError:
        return None
    return value if value >= 0 else None


def parse_charset(content_type: str | None) -> str | None:
    """The charset parameter of a Content-Type value, if any."""
    if not content_type:
        return None
    message = Message()
    message["content-type"] = content_type
    return message.get_content_charset()


def parse_status_line(status: str) -> tuple[int, str]:
    """Split a WSGI status line like ``"404 Not Found"`` into code and message."""
    parts = status.split(" ", 1)
    try:
        code = int(parts[0])
    except ValueError:
        code = 500
    message = parts[1] if len(parts) > 1 else ""
    return code, message


def get_cookies(environ: WSGIEnvironment) -> dict[str, str]:
    """All request cookies by name. Malformed cookie headers yield no cookies."""
    raw_value = environ.get("HTTP_COOKIE")
    if not raw_value:
        return {}
    cookie = SimpleCookie()
    try:
        cookie.load(raw_value)
    except CookieError:
        return {}
    return {name: morsel.value for name, morsel in cookie.items()}


def get_cookie(environ: WSGIEnvironment, name: str) -> str | None:
    return get_cookies(environ).get(name)


def header_value(headers: Iterable[tuple[str, str]], name: str) -> str | None:
    """First value of a header in a WSGI response header list (case-insensitive)."""
    name = name.lower()
    for key, value in headers:
        if key.lower() == name:
            return value
    return None
