"""Custom exceptions for the posbridge printing service."""


class PrinterConnectionError(RuntimeError):
    """Base class for failures talking to a network printer."""


class NotConnectedError(PrinterConnectionError):
    """Raised when bytes are sent through a session that is not ready."""


class SessionBusyError(PrinterConnectionError):
    """Raised when connect is called while a connection is pending or live."""


class TransportFailureError(PrinterConnectionError):
    """Raised when the underlying socket fails to connect or to send."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class TimedOutError(PrinterConnectionError):
    """Raised when a connect or send does not complete within its timeout."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"Printer {operation} timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class EncodingError(RuntimeError):
    """Base class for failures turning an image into printer commands."""


class UnsupportedPixelFormatError(EncodingError):
    """Raised when a bitmap cannot expose raw RGB samples."""

    def __init__(self, mode: str) -> None:
        super().__init__(f"Unsupported pixel format: {mode}")
        self.mode = mode


class RasterizeFailedError(EncodingError):
    """Raised when content could not be rendered into a bitmap at all."""
