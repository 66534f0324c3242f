"""Exactly-once completion of request/response exchanges.

``CompletionCoordinator`` is a single-fire latch around an action.
``AsyncCompletionBridge`` runs a post-processing action exactly once after an
exchange ends, whether the processing step finished synchronously or placed
the request in asynchronous mode.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .async_context import AsyncEvent
from .errors import AsyncStateError

logger = logging.getLogger(__name__)

ExchangeAction = Callable[[Any, Any], None]
Chain = Callable[[Any, Any], Any]


class CompletionCoordinator:
    """Runs an action at most once.

    The action reference is swapped out under a lock, so concurrent trigger
    attempts (for instance a timeout racing a completion) result in a single
    invocation. Once fired the coordinator is inert.
    """

    def __init__(self, action: Callable[..., None] | None):
        self._action = action
        self._lock = threading.Lock()

    @property
    def armed(self) -> bool:
        return self._action is not None

    def take(self) -> Callable[..., None] | None:
        """Remove and return the action, or None if it was already taken."""
        with self._lock:
            action, self._action = self._action, None
        return action

    def fire(self, *args: Any) -> bool:
        """Run the action with the given arguments unless it already ran.

        Returns:
            True if this call ran the action
        """
        action = self.take()
        if action is None:
            return False
        action(*args)
        return True


class _CompletionListener:
    """Async listener that fires the post-action on the first terminal event."""

    def __init__(self, action: ExchangeAction, request: Any, response: Any):
        self._coordinator = CompletionCoordinator(action)
        self._request = request
        self._response = response

    def on_complete(self, event: AsyncEvent) -> None:
        self._run_action()

    def on_timeout(self, event: AsyncEvent) -> None:
        self._run_action()

    def on_error(self, event: AsyncEvent) -> None:
        self._run_action()

    def on_start_async(self, event: AsyncEvent) -> None:
        pass

    def _run_action(self) -> None:
        self._coordinator.fire(self._request, self._response)


class AsyncCompletionBridge:
    """Wraps a processing step so that ``action`` runs exactly once when the exchange truly ends.

    If the step leaves the request in synchronous mode, the action runs as soon
    as the step returns or raises. If the step started asynchronous processing,
    the action runs when the asynchronous context completes, times out or
    fails, whichever comes first. If the listener cannot be registered the
    action runs immediately instead.

    Args:
        action: Called with the request and response passed to the step
    """

    def __init__(self, action: ExchangeAction):
        self.action = action

    def __call__(self, request: Any, response: Any, chain: Chain) -> Any:
        try:
            result = chain(request, response)
        except BaseException:
            try:
                self._after(request, response)
            except Exception as e:
                logger.error(f"Post-processing action failed while handling an error: {e}", exc_info=True)
            raise
        self._after(request, response)
        return result

    def _after(self, request: Any, response: Any) -> None:
        if not request.is_async_started():
            self.action(request, response)
            return
        try:
            request.get_async_context().add_listener(_CompletionListener(self.action, request, response))
        except AsyncStateError as e:
            logger.warning(f"Could not add async listener, running action now: {e}", exc_info=True)
            self.action(request, response)


def do_filter(request: Any, response: Any, chain: Chain, action: ExchangeAction) -> Any:
    """Invoke ``chain(request, response)`` and run ``action`` exactly once after the exchange ends.

    Returns:
        Whatever the chain returned
    """
    if action is None:
        raise TypeError("action must not be None")
    return AsyncCompletionBridge(action)(request, response, chain)


def chain_actions(*actions: ExchangeAction) -> ExchangeAction:
    """Combine actions into one that runs them in order with the same arguments."""

    def combined(request: Any, response: Any) -> None:
        for action in actions:
            action(request, response)

    return combined
