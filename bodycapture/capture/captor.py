"""Size-bounded accumulation buffers."""

from __future__ import annotations

from abc import ABC, abstractmethod

Units = bytes | bytearray | memoryview | str


class LimitedCaptor(ABC):
    """Accumulates units (bytes or characters) up to a fixed limit.

    Writes beyond the limit are cut to exactly fill the remaining capacity;
    the buffer never grows past ``limit``.
    """

    def __init__(self, limit: int):
        self.limit = limit

    @property
    @abstractmethod
    def size(self) -> int: ...

    @property
    def remaining(self) -> int:
        return self.limit - self.size

    def is_full(self) -> bool:
        return self.size >= self.limit

    def write(self, data: Units) -> int:
        """Append as much of ``data`` as fits.

        Returns:
            The number of units actually captured
        """
        allowed = min(self.remaining, len(data))
        if allowed > 0:
            self._append(data[:allowed] if allowed < len(data) else data)
        return max(allowed, 0)

    def truncate_to(self, mark: int) -> None:
        """Discard everything beyond ``min(mark, limit)`` units."""
        size = min(mark, self.limit)
        if size < self.size:
            self._truncate(size)

    @abstractmethod
    def _append(self, data: Units) -> None: ...

    @abstractmethod
    def _truncate(self, size: int) -> None: ...


class ByteCaptor(LimitedCaptor):
    """Byte captor backed by a pre-allocated bytearray that grows on demand."""

    def __init__(self, initial_capacity: int, limit: int):
        super().__init__(limit)
        self._buffer = bytearray(max(min(initial_capacity, limit), 0))
        self._count = 0

    @property
    def size(self) -> int:
        return self._count

    def _append(self, data: bytes) -> None:
        end = self._count + len(data)
        if end > len(self._buffer):
            capacity = min(max(end, 2 * len(self._buffer)), self.limit)
            self._buffer.extend(bytes(capacity - len(self._buffer)))
        self._buffer[self._count : end] = data
        self._count = end

    def _truncate(self, size: int) -> None:
        self._count = size

    def captured(self) -> bytes:
        return bytes(self._buffer[: self._count])

    def captured_as_text(self, encoding: str = "utf-8") -> str:
        return self._buffer[: self._count].decode(encoding, errors="replace")


class TextCaptor(LimitedCaptor):
    """Character captor.

    Python strings have no notion of spare capacity, so the initial capacity
    is accepted for symmetry with ``ByteCaptor`` only.
    """

    def __init__(self, initial_capacity: int, limit: int):
        super().__init__(limit)
        self._parts: list[str] = []
        self._count = 0

    @property
    def size(self) -> int:
        return self._count

    def _append(self, data: str) -> None:
        self._parts.append(data)
        self._count += len(data)

    def _truncate(self, size: int) -> None:
        text = "".join(self._parts)[:size]
        self._parts = [text] if text else []
        self._count = size

    def captured(self) -> str:
        if len(self._parts) > 1:
            self._parts = ["".join(self._parts)]
        return self._parts[0] if self._parts else ""
