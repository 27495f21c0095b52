"""Orchestration of print jobs on top of a printer session."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from posbridge.controllers.printer_session import PrinterSession
from posbridge.exceptions import NotConnectedError
from posbridge.models.bitmap import Bitmap
from posbridge.models.printer import ImageMode, PrintJobResult
from posbridge.services.encoder_service import encode_bitmap

logger = logging.getLogger(__name__)


class PrintOperation:
    """Encodes one bitmap and sends it through a ready session.

    The operation never connects or disconnects; wrap it in
    :func:`printer_job` when the connection should live only for the job.
    """

    def __init__(self, session: PrinterSession, mode: ImageMode = ImageMode.RASTER) -> None:
        self._session = session
        self._mode = ImageMode(mode)

    @property
    def mode(self) -> ImageMode:
        return self._mode

    async def run(self, bitmap: Bitmap, *, cut: bool = False) -> PrintJobResult:
        """Encode ``bitmap`` and send it, stopping at the first failure.

        Args:
            bitmap: Bitmap already sized to the printer's dot width
            cut: Send the paper cut command after the image

        Returns:
            Summary of what was sent

        Raises:
            NotConnectedError: If the session is not ready; nothing is encoded
            EncodingError: If the bitmap cannot be encoded
            PrinterConnectionError: If the send fails or times out
        """
        if not self._session.is_ready:
            raise NotConnectedError(
                f"Cannot print: printer session is {self._session.state.value}"
            )

        command = await asyncio.to_thread(encode_bitmap, bitmap, self._mode)
        await self._session.send(command)
        if cut:
            await self._session.cut_paper()

        logger.info(
            f"Printed {bitmap.width}x{bitmap.height} bitmap as {self._mode.value} "
            f"({len(command)} bytes) to {self._session.host}:{self._session.port}"
        )
        return PrintJobResult(
            mode=self._mode,
            width=bitmap.width,
            height=bitmap.height,
            bytes_sent=len(command),
            cut=cut,
        )


@asynccontextmanager
async def printer_job(host: str, port: int, **session_options: Any) -> AsyncIterator[PrinterSession]:
    """Connect a fresh session for the duration of a block.

    The session is disconnected on every exit path, including a failed
    connect, an encoding error, a send failure and cancellation.

    Args:
        host: Printer hostname or IP address
        port: Raw printing TCP port
        **session_options: Overrides passed to :meth:`PrinterSession.from_settings`
    """
    session = PrinterSession.from_settings(**session_options)
    try:
        await session.connect(host, port)
        yield session
    finally:
        await session.disconnect()


async def print_bitmap(
    host: str,
    port: int,
    bitmap: Bitmap,
    *,
    mode: ImageMode = ImageMode.RASTER,
    cut: bool = True,
    **session_options: Any,
) -> PrintJobResult:
    """Run one complete job: connect, print, optionally cut, disconnect."""
    async with printer_job(host, port, **session_options) as session:
        return await PrintOperation(session, mode).run(bitmap, cut=cut)
