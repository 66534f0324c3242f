"""Asynchronous request lifecycle for hosting pipelines.

A request that is not finished when its processing step returns is placed in
asynchronous mode by creating an ``AsyncContext`` for it. Listeners registered
on the context are told when the asynchronous operation completes, times out
or fails. Events are delivered on whichever thread triggers them.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

from .errors import AsyncStateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AsyncEvent:
    """Event passed to async listeners."""

    request: Any
    response: Any
    error: BaseException | None = None


class AsyncListener(Protocol):
    def on_complete(self, event: AsyncEvent) -> None: ...

    def on_timeout(self, event: AsyncEvent) -> None: ...

    def on_error(self, event: AsyncEvent) -> None: ...

    def on_start_async(self, event: AsyncEvent) -> None: ...


class AsyncContext:
    """Tracks one asynchronous request/response exchange.

    Args:
        request: The request placed in asynchronous mode
        response: The matching response
        timeout: Seconds after which listeners receive ``on_timeout`` and the
                 context completes; None disables the timeout
    """

    def __init__(self, request: Any, response: Any, timeout: float | None = None):
        self.request = request
        self.response = response
        self.timeout = timeout
        self._listeners: list[AsyncListener] = []
        self._completed = False
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        if timeout is not None:
            self._timer = threading.Timer(timeout, self.dispatch_timeout)
            self._timer.daemon = True
            self._timer.start()

    @property
    def is_completed(self) -> bool:
        return self._completed

    def add_listener(self, listener: AsyncListener) -> None:
        """Register a listener for the remaining lifecycle events.

        Raises:
            AsyncStateError: If the context has already completed
        """
        with self._lock:
            if self._completed:
                raise AsyncStateError("Cannot add a listener to a completed asynchronous context")
            self._listeners.append(listener)

    def complete(self) -> None:
        """Mark the asynchronous operation as finished. Later calls are ignored."""
        with self._lock:
            if self._completed:
                return
            self._completed = True
            listeners = list(self._listeners)
        if self._timer is not None:
            self._timer.cancel()
        self._notify(listeners, "on_complete", AsyncEvent(self.request, self.response))

    def dispatch_error(self, error: BaseException) -> None:
        """Tell listeners the asynchronous operation failed."""
        with self._lock:
            if self._completed:
                return
            listeners = list(self._listeners)
        self._notify(listeners, "on_error", AsyncEvent(self.request, self.response, error))

    def dispatch_timeout(self) -> None:
        """Tell listeners the asynchronous operation timed out, then complete the context."""
        with self._lock:
            if self._completed:
                return
            listeners = list(self._listeners)
        logger.debug(f"Asynchronous operation timed out after {self.timeout}s")
        self._notify(listeners, "on_timeout", AsyncEvent(self.request, self.response))
        self.complete()

    def _notify(self, listeners: list[AsyncListener], method: str, event: AsyncEvent) -> None:
        for listener in listeners:
            try:
                getattr(listener, method)(event)
            except Exception as e:
                logger.error(f"Async listener {method} failed: {e}", exc_info=True)
