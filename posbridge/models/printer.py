"""Pydantic models for printer session control and print requests."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

from posbridge.utils.bitmap import MAX_PATTERN_SIZE


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ImageMode(str, Enum):
    """ESC/POS command family used to send a bitmap."""

    RASTER = "raster"  # GS v 0, one block
    STRIP = "strip"  # ESC * 33, 24-dot strips


class SessionState(str, Enum):
    """Lifecycle states of a printer session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class ConnectRequest(BaseModel):
    """Request body for opening the shared printer session."""

    host: str = Field(..., min_length=1, description="Printer hostname or IP address")
    port: int = Field(9100, ge=1, le=65535, description="Raw printing TCP port")


class SessionStatusResponse(BaseModel):
    """Snapshot of a printer session, sent over HTTP and the status websocket."""

    state: SessionState
    host: str | None = None
    port: int | None = None
    error: str | None = Field(None, description="Cause of the last failure, if any")
    timestamp: datetime = Field(default_factory=_utcnow)
    kind: str = "session_status"


class PrintJobResult(BaseModel):
    """Outcome of one bitmap delivered to the printer."""

    mode: ImageMode
    width: int = Field(..., description="Bitmap width in dots")
    height: int = Field(..., description="Bitmap height in dots")
    bytes_sent: int = Field(..., description="Length of the ESC/POS command buffer")
    cut: bool = False


class PrintTextRequest(BaseModel):
    """Request body for printing plain text rendered as an image."""

    text: str = Field(..., min_length=1, max_length=4096, description="Text to render")
    font_size: int = Field(24, ge=8, le=128, description="Font size in pixels")
    mode: ImageMode = ImageMode.RASTER
    cut: bool = True


class PrintQrRequest(BaseModel):
    """Request body for printing a QR code."""

    data: str = Field(..., min_length=1, max_length=2048, description="Payload to encode")
    size: int = Field(256, ge=32, le=MAX_PATTERN_SIZE, description="QR code edge length in dots")
    mode: ImageMode = ImageMode.RASTER
    cut: bool = True


class TextJobRequest(PrintTextRequest):
    """Request body for a one-shot job on its own connection."""

    host: str = Field(..., min_length=1, description="Printer hostname or IP address")
    port: int = Field(9100, ge=1, le=65535, description="Raw printing TCP port")
