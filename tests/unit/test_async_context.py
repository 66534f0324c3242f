"""Tests for the asynchronous request lifecycle."""

from __future__ import annotations

import pytest

from bodycapture.core.async_context import AsyncContext
from bodycapture.core.errors import AsyncStateError
from tests.utils import RecordingListener, wait_for


class TestAsyncContext:
    def test_complete_notifies_listeners(self):
        context = AsyncContext("req", "resp")
        listener = RecordingListener()
        context.add_listener(listener)

        context.complete()

        assert listener.names == ["complete"]
        event = listener.events[0][1]
        assert event.request == "req"
        assert event.response == "resp"
        assert context.is_completed

    def test_complete_is_idempotent(self):
        context = AsyncContext("req", "resp")
        listener = RecordingListener()
        context.add_listener(listener)
        context.complete()
        context.complete()
        assert listener.names == ["complete"]

    def test_error_carries_exception(self):
        context = AsyncContext("req", "resp")
        listener = RecordingListener()
        context.add_listener(listener)
        error = ValueError("failed")

        context.dispatch_error(error)
        context.complete()

        assert listener.names == ["error", "complete"]
        assert listener.events[0][1].error is error

    def test_error_after_completion_is_ignored(self):
        context = AsyncContext("req", "resp")
        listener = RecordingListener()
        context.add_listener(listener)
        context.complete()
        context.dispatch_error(ValueError("late"))
        assert listener.names == ["complete"]

    def test_add_listener_after_completion_raises(self):
        context = AsyncContext("req", "resp")
        context.complete()
        with pytest.raises(AsyncStateError):
            context.add_listener(RecordingListener())

    def test_failing_listener_does_not_stop_others(self, caplog):
        class FailingListener(RecordingListener):
            def on_complete(self, event):
                raise RuntimeError("listener broke")

        context = AsyncContext("req", "resp")
        second = RecordingListener()
        context.add_listener(FailingListener())
        context.add_listener(second)

        context.complete()

        assert second.names == ["complete"]
        assert "listener broke" in caplog.text

    def test_timeout_dispatches_timeout_then_complete(self):
        context = AsyncContext("req", "resp", timeout=0.05)
        listener = RecordingListener()
        context.add_listener(listener)

        assert wait_for(lambda: context.is_completed)
        assert wait_for(lambda: len(listener.events) == 2)
        assert listener.names == ["timeout", "complete"]

    def test_completion_cancels_timeout(self):
        context = AsyncContext("req", "resp", timeout=0.05)
        listener = RecordingListener()
        context.add_listener(listener)
        context.complete()

        context._timer.join(1.0)
        assert listener.names == ["complete"]
