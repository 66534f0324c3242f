"""Capturing wrappers for inbound (request body) streams.

Every read is forwarded to the wrapped stream and the returned data is
mirrored into a size-bounded captor. Two callbacks are supported, each called
at most once with the wrapper as argument:

- ``limit_reached_callback`` when the captor becomes full
- ``done_callback`` when the stream reports end-of-stream, when the number of
  units read reaches ``done_after``, or when the wrapper is closed
"""

from __future__ import annotations

import io
from collections.abc import Callable
from typing import IO, Any, Generic, TypeVar

from ..core.completion import CompletionCoordinator
from .captor import ByteCaptor, LimitedCaptor, TextCaptor

AnyStr = TypeVar("AnyStr", bytes, str)

SKIP_BUFFER_SIZE = 2048
CONSUME_BUFFER_SIZE = 1024


class _CapturingInput(Generic[AnyStr]):
    def __init__(
        self,
        stream: IO[Any],
        captor: LimitedCaptor,
        done_after: int | None = None,
        done_callback: Callable[[Any], None] | None = None,
        limit_reached_callback: Callable[[Any], None] | None = None,
    ):
        self._stream = stream
        self._captor = captor
        self.done_after = done_after
        self._total = 0
        self._mark = 0
        self._stream_mark: int | None = None
        self._consumed = False
        self._done = CompletionCoordinator(done_callback)
        self._limit_reached = CompletionCoordinator(limit_reached_callback)
        if done_after is not None and done_after <= 0:
            self._on_consumed()

    @property
    def limit(self) -> int:
        return self._captor.limit

    @property
    def closed(self) -> bool:
        return getattr(self._stream, "closed", False)

    def is_consumed(self) -> bool:
        return self._consumed

    def readable(self) -> bool:
        return True

    def read(self, size: int | None = -1) -> AnyStr | None:
        data = self._stream.read(-1 if size is None else size)
        if data is None:
            return None
        if data:
            self._on_data(data)
        if (not data and size != 0) or size is None or size < 0:
            self._on_consumed()
        return data

    def readline(self, size: int | None = -1) -> AnyStr:
        data = self._stream.readline(-1 if size is None else size)
        if data:
            self._on_data(data)
        elif size != 0:
            self._on_consumed()
        return data

    def readlines(self, hint: int | None = -1) -> list[AnyStr]:
        lines = []
        total = 0
        while True:
            line = self.readline()
            if not line:
                break
            lines.append(line)
            total += len(line)
            if hint is not None and 0 < hint <= total:
                break
        return lines

    def __iter__(self):
        return self

    def __next__(self) -> AnyStr:
        line = self.readline()
        if not line:
            raise StopIteration
        return line

    def skip(self, n: int) -> int:
        """Skip up to ``n`` units by reading them, so skipped content is still captured.

        Returns:
            The number of units actually skipped
        """
        remaining = n
        while remaining > 0:
            data = self.read(min(remaining, SKIP_BUFFER_SIZE))
            if not data:
                break
            remaining -= len(data)
        return n - remaining

    def consume(self) -> None:
        """Read and discard the rest of the stream, unless it was already consumed."""
        if self._consumed:
            return
        while self.read(CONSUME_BUFFER_SIZE):
            pass

    def close(self) -> None:
        try:
            self._stream.close()
        finally:
            self._done.fire(self)

    def mark_supported(self) -> bool:
        seekable = getattr(self._stream, "seekable", None)
        return bool(seekable and seekable())

    def mark(self, readlimit: int = 0) -> None:
        """Remember the current position so that ``reset()`` can return to it.

        ``readlimit`` is accepted for API compatibility; seekable streams have
        no read-ahead limit.
        """
        if self.mark_supported():
            self._stream_mark = self._stream.tell()
        self._mark = self._total

    def reset(self) -> None:
        """Return to the last mark, discarding what was captured since.

        Raises:
            io.UnsupportedOperation: If the stream cannot be repositioned or no mark was set
        """
        if self._stream_mark is None:
            raise io.UnsupportedOperation("reset() requires a prior mark() on a seekable stream")
        self._stream.seek(self._stream_mark)
        self._captor.truncate_to(self._mark)
        self._total = self._mark
        self._consumed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _on_data(self, data: Any) -> None:
        self._total += len(data)
        if self._captor.write(data) and self._captor.is_full():
            self._limit_reached.fire(self)
        if self.done_after is not None and self._total >= self.done_after:
            self._consumed = True
            self._done.fire(self)

    def _on_consumed(self) -> None:
        self._consumed = True
        self._done.fire(self)


class CapturingInputStream(_CapturingInput[bytes]):
    """Binary input stream wrapper that captures the bytes read through it."""

    def __init__(
        self,
        stream: IO[bytes],
        initial_capacity: int,
        limit: int,
        done_after: int | None = None,
        done_callback: Callable[[CapturingInputStream], None] | None = None,
        limit_reached_callback: Callable[[CapturingInputStream], None] | None = None,
    ):
        super().__init__(
            stream,
            ByteCaptor(initial_capacity, limit),
            done_after,
            done_callback,
            limit_reached_callback,
        )

    @property
    def total_bytes(self) -> int:
        return self._total

    def readinto(self, buffer: Any) -> int | None:
        n = self._stream.readinto(buffer)
        if n is None:
            return None
        if n:
            self._on_data(memoryview(buffer).cast("B")[:n])
        elif len(buffer):
            self._on_consumed()
        return n

    def captured(self) -> bytes:
        return self._captor.captured()

    def captured_as_text(self, encoding: str = "utf-8") -> str:
        return self._captor.captured_as_text(encoding)


class CapturingReader(_CapturingInput[str]):
    """Text input stream wrapper that captures the characters read through it."""

    def __init__(
        self,
        stream: IO[str],
        initial_capacity: int,
        limit: int,
        done_after: int | None = None,
        done_callback: Callable[[CapturingReader], None] | None = None,
        limit_reached_callback: Callable[[CapturingReader], None] | None = None,
    ):
        super().__init__(
            stream,
            TextCaptor(initial_capacity, limit),
            done_after,
            done_callback,
            limit_reached_callback,
        )

    @property
    def total_chars(self) -> int:
        return self._total

    def captured(self) -> str:
        return self._captor.captured()
