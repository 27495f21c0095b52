from __future__ import annotations

from fastapi import APIRouter, status

from posbridge.dependencies import SharedSession, printer_http_error
from posbridge.exceptions import PrinterConnectionError
from posbridge.models.printer import ConnectRequest, SessionStatusResponse


router = APIRouter(prefix="/api/printer", tags=["printer"])


@router.get("/status", status_code=status.HTTP_200_OK)
async def printer_status(session: SharedSession) -> SessionStatusResponse:
    """HTTP endpoint reporting the shared session's state."""
    return session.status()


@router.post("/connect", status_code=status.HTTP_200_OK)
async def connect_printer(payload: ConnectRequest, session: SharedSession) -> SessionStatusResponse:
    """HTTP endpoint to open the shared session to a printer.

    Returns:
    - 200: Session is ready
    - 409: A connection is already pending or open
    - 502: The printer refused or the host could not be reached
    - 504: The printer did not accept the connection in time
    """
    try:
        await session.connect(payload.host, payload.port)
    except PrinterConnectionError as exc:
        raise printer_http_error(exc) from exc
    return session.status()


@router.post("/disconnect", status_code=status.HTTP_200_OK)
async def disconnect_printer(session: SharedSession) -> SessionStatusResponse:
    """HTTP endpoint to close the shared session. Safe to call repeatedly."""
    await session.disconnect()
    return session.status()


@router.post("/cut", status_code=status.HTTP_200_OK)
async def cut_paper(session: SharedSession) -> dict[str, str]:
    """HTTP endpoint to feed and cut the paper."""
    try:
        await session.cut_paper()
    except PrinterConnectionError as exc:
        raise printer_http_error(exc) from exc
    return {"status": "cut"}
