from __future__ import annotations

import logging

from fastapi import APIRouter, File, Query, UploadFile

from posbridge.controllers.print_operation import PrintOperation, print_bitmap
from posbridge.controllers.printer_session import PrinterSession
from posbridge.dependencies import SharedSession, printer_http_error
from posbridge.exceptions import EncodingError, PrinterConnectionError
from posbridge.models.bitmap import Bitmap
from posbridge.models.printer import (
    ImageMode,
    PrintJobResult,
    PrintQrRequest,
    PrintTextRequest,
    TextJobRequest,
)
from posbridge.models.receipt import PrintReceiptRequest
from posbridge.services.bitmap_service import BitmapService
from posbridge.utils.bitmap import MAX_DOT_WIDTH, MAX_PATTERN_SIZE


router = APIRouter(prefix="/api", tags=["print"])

logger = logging.getLogger(__name__)


async def _print_on_session(
    session: PrinterSession, bitmap: Bitmap, mode: ImageMode, cut: bool
) -> PrintJobResult:
    try:
        return await PrintOperation(session, mode).run(bitmap, cut=cut)
    except (PrinterConnectionError, EncodingError) as exc:
        raise printer_http_error(exc) from exc


@router.post("/print/image")
async def print_image(
    session: SharedSession,
    image: UploadFile = File(...),
    mode: ImageMode = ImageMode.RASTER,
    target_width: int | None = Query(None, ge=1, le=MAX_DOT_WIDTH),
    cut: bool = True,
) -> PrintJobResult:
    """Upload an image and print it on the connected printer.

    Args:
        session: Shared printer session (injected)
        image: Image file (PNG, JPEG, etc.)
        mode: ``raster`` (GS v 0) or ``strip`` (ESC *)
        target_width: Width in dots, defaults to the configured dot width
        cut: Cut the paper after printing

    Raises:
        400: Invalid image or pixel format
        422: target_width outside 1..MAX_DOT_WIDTH
        409: Printer session not connected
        502/504: Transport failure or timeout
    """
    try:
        image_data = await image.read()
        img = BitmapService.load_image(image_data)
        bitmap = BitmapService.prepare_bitmap(img, target_width)
    except (ValueError, EncodingError) as exc:
        raise printer_http_error(exc) from exc

    return await _print_on_session(session, bitmap, mode, cut)


@router.post("/print/text")
async def print_text(payload: PrintTextRequest, session: SharedSession) -> PrintJobResult:
    """Render plain text at the printer's width and print it."""
    try:
        img = BitmapService.rasterize_text(payload.text, font_size=payload.font_size)
        bitmap = BitmapService.to_bitmap(img)
    except EncodingError as exc:
        raise printer_http_error(exc) from exc

    return await _print_on_session(session, bitmap, payload.mode, payload.cut)


@router.post("/print/qr")
async def print_qr_code(payload: PrintQrRequest, session: SharedSession) -> PrintJobResult:
    """Generate a QR code and print it."""
    try:
        img = BitmapService.generate_qr_code(payload.data, payload.size)
        bitmap = BitmapService.to_bitmap(img)
    except (ValueError, EncodingError) as exc:
        raise printer_http_error(exc) from exc

    return await _print_on_session(session, bitmap, payload.mode, payload.cut)


@router.post("/print/receipt")
async def print_receipt(payload: PrintReceiptRequest, session: SharedSession) -> PrintJobResult:
    """Render styled receipt blocks (text, rules, images) and print them."""
    try:
        img = BitmapService.rasterize_receipt(payload.blocks)
        bitmap = BitmapService.to_bitmap(img)
    except (ValueError, EncodingError) as exc:
        raise printer_http_error(exc) from exc

    return await _print_on_session(session, bitmap, payload.mode, payload.cut)


@router.post("/print/test-pattern")
async def print_test_pattern(
    session: SharedSession,
    size: int = Query(128, ge=1, le=MAX_PATTERN_SIZE),
    mode: ImageMode = ImageMode.RASTER,
    cut: bool = True,
) -> PrintJobResult:
    """Print a checkerboard test pattern for checking alignment and density."""
    try:
        img = BitmapService.create_test_pattern(size)
        bitmap = BitmapService.to_bitmap(img)
    except ValueError as exc:
        raise printer_http_error(exc) from exc

    return await _print_on_session(session, bitmap, mode, cut)


@router.post("/jobs/text")
async def run_text_job(payload: TextJobRequest) -> PrintJobResult:
    """Print text on a dedicated connection that is closed when the job ends.

    The shared session is not touched; the printer at ``host:port`` is
    connected, printed to, optionally cut, and disconnected whatever
    the outcome.
    """
    try:
        img = BitmapService.rasterize_text(payload.text, font_size=payload.font_size)
        bitmap = BitmapService.to_bitmap(img)
        return await print_bitmap(
            payload.host, payload.port, bitmap, mode=payload.mode, cut=payload.cut
        )
    except (PrinterConnectionError, EncodingError) as exc:
        logger.warning(f"Text job for {payload.host}:{payload.port} failed: {exc}")
        raise printer_http_error(exc) from exc
