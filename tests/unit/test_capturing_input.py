"""Tests for the inbound capturing wrappers."""

from __future__ import annotations

import io
from unittest.mock import MagicMock

import pytest

from bodycapture.capture import CapturingInputStream, CapturingReader
from bodycapture.core.types import UNLIMITED


class _UnclosableStream(io.BytesIO):
    def close(self):
        raise OSError("close failed")


class _NonSeekableStream(io.BytesIO):
    def seekable(self):
        return False


def _stream(data: bytes = b"hello world", limit: int = UNLIMITED, **kwargs) -> CapturingInputStream:
    return CapturingInputStream(io.BytesIO(data), 32, limit, **kwargs)


class TestCapturingInputStream:
    def test_limit_cuts_capture_but_not_data(self):
        done = MagicMock()
        limit_reached = MagicMock()
        stream = _stream(limit=10, done_callback=done, limit_reached_callback=limit_reached)

        assert stream.read() == b"hello world"

        assert stream.captured() == b"hello worl"
        assert stream.total_bytes == 11
        limit_reached.assert_called_once_with(stream)
        done.assert_called_once_with(stream)
        assert stream.is_consumed()

    def test_chunked_reads_fire_done_at_end_of_stream(self):
        done = MagicMock()
        stream = _stream(done_callback=done)

        while stream.read(4):
            done.assert_not_called()

        done.assert_called_once_with(stream)
        assert stream.captured() == b"hello world"

    def test_zero_size_read_does_not_signal_end(self):
        done = MagicMock()
        stream = _stream(done_callback=done)
        assert stream.read(0) == b""
        done.assert_not_called()
        assert not stream.is_consumed()

    def test_done_after_threshold(self):
        done = MagicMock()
        stream = CapturingInputStream(io.BytesIO(b"hello trailing"), 32, UNLIMITED, 5, done)

        stream.read(3)
        done.assert_not_called()
        stream.read(2)
        done.assert_called_once_with(stream)
        assert stream.is_consumed()

        stream.read()
        done.assert_called_once()

    def test_done_after_zero_fires_immediately(self):
        done = MagicMock()
        stream = CapturingInputStream(io.BytesIO(b""), 32, UNLIMITED, 0, done)
        done.assert_called_once_with(stream)
        assert stream.is_consumed()
        assert stream.captured() == b""

    def test_close_fires_done_once(self):
        done = MagicMock()
        stream = _stream(done_callback=done)
        stream.read(2)
        stream.close()
        stream.close()
        done.assert_called_once_with(stream)

    def test_close_fires_done_even_when_underlying_close_raises(self):
        done = MagicMock()
        stream = CapturingInputStream(_UnclosableStream(b"data"), 32, UNLIMITED, done_callback=done)
        with pytest.raises(OSError):
            stream.close()
        done.assert_called_once_with(stream)

    def test_context_manager_closes(self):
        done = MagicMock()
        with _stream(done_callback=done) as stream:
            stream.read(1)
        done.assert_called_once()
        assert stream.closed

    def test_limit_zero_never_reports_limit(self):
        limit_reached = MagicMock()
        stream = _stream(limit=0, limit_reached_callback=limit_reached)
        stream.read()
        assert stream.captured() == b""
        limit_reached.assert_not_called()

    def test_limit_reported_once(self):
        limit_reached = MagicMock()
        stream = _stream(limit=3, limit_reached_callback=limit_reached)
        stream.read(2)
        limit_reached.assert_not_called()
        stream.read(2)
        stream.read(2)
        limit_reached.assert_called_once_with(stream)

    def test_readinto_is_captured(self):
        stream = _stream()
        buffer = bytearray(5)
        assert stream.readinto(buffer) == 5
        assert bytes(buffer) == b"hello"
        assert stream.captured() == b"hello"
        assert stream.total_bytes == 5

    def test_readinto_end_of_stream_fires_done(self):
        done = MagicMock()
        stream = _stream(b"ab", done_callback=done)
        buffer = bytearray(4)
        stream.readinto(buffer)
        done.assert_not_called()
        assert stream.readinto(buffer) == 0
        done.assert_called_once()

    def test_readline_and_iteration(self):
        done = MagicMock()
        stream = _stream(b"line one\nline two\n", done_callback=done)
        assert stream.readline() == b"line one\n"
        assert list(stream) == [b"line two\n"]
        done.assert_called_once()
        assert stream.captured() == b"line one\nline two\n"

    def test_readlines_with_hint(self):
        stream = _stream(b"a\nb\nc\n")
        assert stream.readlines(2) == [b"a\n"]
        assert stream.readlines() == [b"b\n", b"c\n"]

    def test_skip_captures_skipped_content(self):
        stream = _stream()
        assert stream.skip(6) == 6
        assert stream.read() == b"world"
        assert stream.captured() == b"hello world"

    def test_skip_past_end(self):
        stream = _stream(b"abc")
        assert stream.skip(10) == 3

    def test_consume_reads_remainder(self):
        done = MagicMock()
        stream = _stream(done_callback=done)
        stream.read(2)
        stream.consume()
        assert stream.captured() == b"hello world"
        done.assert_called_once()

        stream.consume()
        done.assert_called_once()

    def test_mark_and_reset_recapture_from_mark(self):
        stream = _stream(b"abcdef")
        assert stream.mark_supported()
        stream.read(2)
        stream.mark(100)
        assert stream.read(2) == b"cd"
        stream.reset()
        assert stream.total_bytes == 2
        assert stream.read(2) == b"cd"
        assert stream.captured() == b"abcd"
        assert stream.total_bytes == 4

    def test_reset_with_mark_beyond_limit(self):
        limit_reached = MagicMock()
        stream = _stream(b"abcdefghij", limit=3, limit_reached_callback=limit_reached)
        stream.read(5)
        stream.mark()
        stream.read(3)

        stream.reset()

        assert stream.captured() == b"abc"
        assert stream.total_bytes == 5
        assert stream.read() == b"fghij"
        assert stream.captured() == b"abc"
        assert stream.total_bytes == 10
        limit_reached.assert_called_once_with(stream)

    def test_reset_after_end_of_stream_clears_consumed(self):
        stream = _stream(b"abc")
        stream.mark()
        stream.read()
        assert stream.is_consumed()
        stream.reset()
        assert not stream.is_consumed()
        assert stream.read() == b"abc"
        assert stream.captured() == b"abc"

    def test_reset_without_mark_is_unsupported(self):
        stream = _stream()
        with pytest.raises(io.UnsupportedOperation):
            stream.reset()

    def test_mark_on_non_seekable_stream(self):
        stream = CapturingInputStream(_NonSeekableStream(b"abc"), 32, UNLIMITED)
        assert not stream.mark_supported()
        stream.mark()
        with pytest.raises(io.UnsupportedOperation):
            stream.reset()

    def test_captured_as_text(self):
        stream = _stream("grüße".encode("latin-1"))
        stream.read()
        assert stream.captured_as_text("latin-1") == "grüße"


class TestCapturingReader:
    def test_hello_world_with_limit_ten(self):
        done = MagicMock()
        limit_reached = MagicMock()
        reader = CapturingReader(io.StringIO("hello world"), 32, 10, None, done, limit_reached)

        while reader.read(3):
            pass

        assert reader.captured() == "hello worl"
        assert reader.total_chars == 11
        done.assert_called_once_with(reader)
        limit_reached.assert_called_once_with(reader)

    def test_counts_and_captures_characters(self):
        done = MagicMock()
        reader = CapturingReader(io.StringIO("héllo wörld"), 32, 5, done_callback=done)
        assert reader.read() == "héllo wörld"
        assert reader.captured() == "héllo"
        assert reader.total_chars == 11
        done.assert_called_once_with(reader)

    def test_done_after_counts_characters(self):
        done = MagicMock()
        reader = CapturingReader(io.StringIO("ééé rest"), 32, UNLIMITED, 3, done)
        reader.read(3)
        done.assert_called_once()

    def test_mark_and_reset(self):
        reader = CapturingReader(io.StringIO("abcdef"), 32, UNLIMITED)
        reader.read(1)
        reader.mark()
        reader.read(3)
        reader.reset()
        assert reader.read() == "bcdef"
        assert reader.captured() == "abcdef"

    def test_iteration(self):
        reader = CapturingReader(io.StringIO("x\ny\n"), 32, UNLIMITED)
        assert [line for line in reader] == ["x\n", "y\n"]
        assert reader.captured() == "x\ny\n"
