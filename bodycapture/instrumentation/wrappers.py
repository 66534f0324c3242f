"""Request and response wrappers for hosting pipelines.

The filter works with any request/response objects that provide the
``HostRequest`` and ``HostResponse`` protocols. Wrappers delegate everything
they do not override to the wrapped object, so they can be stacked.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import IO, Any, Protocol

from ..core.async_context import AsyncContext

InputTransform = Callable[[IO[bytes]], Any]
ReaderTransform = Callable[[IO[str]], Any]
OutputTransform = Callable[[IO[bytes]], Any]
WriterTransform = Callable[[IO[str]], Any]


class HostRequest(Protocol):
    method: str
    content_length: int | None
    character_encoding: str | None

    def input_stream(self) -> IO[bytes]: ...

    def reader(self) -> IO[str]: ...

    def is_async_started(self) -> bool: ...

    def get_async_context(self) -> AsyncContext: ...


class HostResponse(Protocol):
    character_encoding: str | None

    def output_stream(self) -> IO[bytes]: ...

    def writer(self) -> IO[str]: ...

    def reset_buffer(self) -> None: ...

    def reset(self) -> None: ...


class RequestWrapper:
    def __init__(self, request: Any):
        self.request = request

    def __getattr__(self, name: str) -> Any:
        return getattr(self.request, name)


class ResponseWrapper:
    def __init__(self, response: Any):
        self.response = response

    def __getattr__(self, name: str) -> Any:
        return getattr(self.response, name)


class InputTransformingRequest(RequestWrapper):
    """Request wrapper that transforms the request body stream or reader.

    Each transform is applied once per distinct underlying stream object, the
    first time it is requested; later calls return the transformed object.

    Args:
        request: The request to wrap
        input_transform: Applied to the result of ``request.input_stream()``
        reader_transform: Applied to the result of ``request.reader()``
    """

    def __init__(
        self,
        request: Any,
        input_transform: InputTransform | None = None,
        reader_transform: ReaderTransform | None = None,
    ):
        super().__init__(request)
        self._input_transform = input_transform
        self._reader_transform = reader_transform
        self._original_input_stream: IO[bytes] | None = None
        self._transformed_input_stream: Any = None
        self._original_reader: IO[str] | None = None
        self._transformed_reader: Any = None

    def input_stream(self) -> Any:
        stream = self.request.input_stream()
        if stream is not self._original_input_stream:
            self._transformed_input_stream = self._input_transform(stream) if self._input_transform else stream
            self._original_input_stream = stream
        return self._transformed_input_stream

    def reader(self) -> Any:
        reader = self.request.reader()
        if reader is not self._original_reader:
            self._transformed_reader = self._reader_transform(reader) if self._reader_transform else reader
            self._original_reader = reader
        return self._transformed_reader


class OutputTransformingResponse(ResponseWrapper):
    """Response wrapper that transforms the response body stream or writer.

    When the response buffer is reset, the transformed objects are forgotten
    so that content written afterwards goes through freshly transformed ones.

    Args:
        response: The response to wrap
        output_transform: Applied to the result of ``response.output_stream()``
        writer_transform: Applied to the result of ``response.writer()``
    """

    def __init__(
        self,
        response: Any,
        output_transform: OutputTransform | None = None,
        writer_transform: WriterTransform | None = None,
    ):
        super().__init__(response)
        self._output_transform = output_transform
        self._writer_transform = writer_transform
        self._clear()

    def output_stream(self) -> Any:
        stream = self.response.output_stream()
        if stream is not self._original_output_stream:
            self._transformed_output_stream = self._output_transform(stream) if self._output_transform else stream
            self._original_output_stream = stream
        return self._transformed_output_stream

    def writer(self) -> Any:
        writer = self.response.writer()
        if writer is not self._original_writer:
            self._transformed_writer = self._writer_transform(writer) if self._writer_transform else writer
            self._original_writer = writer
        return self._transformed_writer

    def reset_buffer(self) -> None:
        self.response.reset_buffer()
        self._clear()

    def reset(self) -> None:
        self.response.reset()
        self._clear()

    def _clear(self) -> None:
        self._original_output_stream: IO[bytes] | None = None
        self._transformed_output_stream: Any = None
        self._original_writer: IO[str] | None = None
        self._transformed_writer: Any = None
