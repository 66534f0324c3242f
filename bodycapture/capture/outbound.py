"""Capturing wrappers for outbound (response body) streams.

All writes are forwarded unconditionally; a copy of the written data is kept
up to a limit. ``limit_reached_callback`` is called at most once, with the
wrapper as argument, when the captor becomes full.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import IO, Any, Generic, TypeVar

from ..core.completion import CompletionCoordinator
from .captor import ByteCaptor, LimitedCaptor, TextCaptor

AnyStr = TypeVar("AnyStr", bytes, str)


class _CapturingOutput(Generic[AnyStr]):
    def __init__(
        self,
        stream: IO[Any],
        captor: LimitedCaptor,
        limit_reached_callback: Callable[[Any], None] | None = None,
    ):
        self._stream = stream
        self._captor = captor
        self._total = 0
        self._limit_reached = CompletionCoordinator(limit_reached_callback)

    @property
    def limit(self) -> int:
        return self._captor.limit

    @property
    def closed(self) -> bool:
        return getattr(self._stream, "closed", False)

    def writable(self) -> bool:
        return True

    def write(self, data: AnyStr) -> int:
        self._stream.write(data)
        self._total += len(data)
        if self._captor.write(data) and self._captor.is_full():
            self._limit_reached.fire(self)
        return len(data)

    def writelines(self, lines: Iterable[AnyStr]) -> None:
        for line in lines:
            self.write(line)

    def flush(self) -> None:
        self._stream.flush()

    def close(self) -> None:
        self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CapturingOutputStream(_CapturingOutput[bytes]):
    """Binary output stream wrapper that captures the bytes written through it."""

    def __init__(
        self,
        stream: IO[bytes],
        initial_capacity: int,
        limit: int,
        limit_reached_callback: Callable[[CapturingOutputStream], None] | None = None,
    ):
        super().__init__(stream, ByteCaptor(initial_capacity, limit), limit_reached_callback)

    @property
    def total_bytes(self) -> int:
        return self._total

    def captured(self) -> bytes:
        return self._captor.captured()

    def captured_as_text(self, encoding: str = "utf-8") -> str:
        return self._captor.captured_as_text(encoding)


class CapturingWriter(_CapturingOutput[str]):
    """Text output stream wrapper that captures the characters written through it."""

    def __init__(
        self,
        stream: IO[str],
        initial_capacity: int,
        limit: int,
        limit_reached_callback: Callable[[CapturingWriter], None] | None = None,
    ):
        super().__init__(stream, TextCaptor(initial_capacity, limit), limit_reached_callback)

    @property
    def total_chars(self) -> int:
        return self._total

    def captured(self) -> str:
        return self._captor.captured()
