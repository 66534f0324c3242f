"""Test utilities for bodycapture."""

from .test_helpers import FakeRequest, FakeResponse, RecordingListener, make_environ, wait_for

__all__ = [
    "FakeRequest",
    "FakeResponse",
    "RecordingListener",
    "make_environ",
    "wait_for",
]
