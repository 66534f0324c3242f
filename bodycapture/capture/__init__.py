"""Size-bounded capturing wrappers for request and response body streams."""

from .captor import ByteCaptor, LimitedCaptor, TextCaptor
from .inbound import CapturingInputStream, CapturingReader
from .outbound import CapturingOutputStream, CapturingWriter

__all__ = [
    "LimitedCaptor",
    "ByteCaptor",
    "TextCaptor",
    "CapturingInputStream",
    "CapturingReader",
    "CapturingOutputStream",
    "CapturingWriter",
]
