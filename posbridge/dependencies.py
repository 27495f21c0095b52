"""Dependency functions for FastAPI routes."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, WebSocket, status

from posbridge.controllers.printer_session import PrinterSession
from posbridge.exceptions import (
    EncodingError,
    NotConnectedError,
    RasterizeFailedError,
    SessionBusyError,
    TimedOutError,
    TransportFailureError,
    UnsupportedPixelFormatError,
)


_logger = logging.getLogger(__name__)


def get_printer_session(request: Request) -> PrinterSession:
    """Return the printer session shared by the application."""
    return request.app.state.printer_session


def get_ws_printer_session(websocket: WebSocket) -> PrinterSession:
    """Websocket variant of :func:`get_printer_session`."""
    return websocket.app.state.printer_session


def printer_http_error(exc: Exception) -> HTTPException:
    """Translate a posbridge error into the HTTP error returned to clients.

    Args:
        exc: Error raised by a session, print operation or bitmap source

    Returns:
        HTTPException with a status code matching the failure
    """
    if isinstance(exc, (NotConnectedError, SessionBusyError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, TimedOutError):
        code = status.HTTP_504_GATEWAY_TIMEOUT
    elif isinstance(exc, TransportFailureError):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(exc, RasterizeFailedError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, (UnsupportedPixelFormatError, EncodingError, ValueError)):
        code = status.HTTP_400_BAD_REQUEST
    else:
        _logger.exception("Unexpected printing error")
        code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return HTTPException(status_code=code, detail=str(exc))


# Type aliases for cleaner dependency injection
SharedSession = Annotated[PrinterSession, Depends(get_printer_session)]
WsSharedSession = Annotated[PrinterSession, Depends(get_ws_printer_session)]
