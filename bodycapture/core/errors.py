"""Exceptions raised by the bodycapture package."""


class BodyCaptureError(Exception):
    """Base exception for bodycapture errors."""

    pass


class ConfigurationError(BodyCaptureError, ValueError):
    """Raised when a configuration parameter has an invalid value."""

    def __init__(self, name: str, value: object, expected: str):
        super().__init__(f"Invalid value for parameter '{name}': {value!r} (expected {expected})")
        self.name = name
        self.value = value


class CaptureModeError(BodyCaptureError, RuntimeError):
    """Raised when a captured body is requested in a form it was not captured in."""

    pass


class StreamStateError(BodyCaptureError, RuntimeError):
    """Raised when a body stream is requested in a state that does not allow it."""

    pass


class AsyncStateError(BodyCaptureError, RuntimeError):
    """Raised when an asynchronous context is used in an invalid state."""

    pass
