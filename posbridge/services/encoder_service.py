"""Service layer that turns bitmaps into ESC/POS image commands.

Two encodings are provided:
- RasterEncoder: ``GS v 0``, the whole bitmap in one row-major block
- StripEncoder: ``ESC * 33``, 24-dot column strips for printers that
  lack raster support

Both threshold every pixel independently (no dithering) and pack bits
MSB-first through :class:`BitWriter`.
"""

from __future__ import annotations

import logging

from posbridge.models.bitmap import Bitmap
from posbridge.models.printer import ImageMode
from posbridge.utils.bitmap import bytes_per_row, fits_size_field
from posbridge.utils.bitwriter import BitWriter
from posbridge.utils.escpos import (
    BIT_IMAGE_MODE_24_DOT_DOUBLE,
    BIT_IMAGE_PREFIX,
    LINE_SPACING_DEFAULT,
    LINE_SPACING_ZERO,
    RASTER_IMAGE_HEADER,
    STRIP_HEIGHT,
    STRIP_TERMINATOR,
    join_u16,
    split_u16,
)

logger = logging.getLogger(__name__)

LUMINANCE_THRESHOLD = 128


def _warn_if_truncated(kind: str, *sizes: int) -> None:
    # Header fields keep the low 16 bits only
    if not all(fits_size_field(size) for size in sizes):
        logger.warning(f"{kind} image size {sizes} exceeds the 16-bit header field and will wrap")


class Thresholder:
    """Decides whether a single color sample prints as a dot."""

    @staticmethod
    def luminance(r: int, g: int, b: int) -> float:
        return 0.299 * r + 0.587 * g + 0.114 * b

    @staticmethod
    def is_dark(r: int, g: int, b: int) -> bool:
        """Return True when the sample should be printed (black).

        Luminance exactly at the threshold is white.
        """
        return Thresholder.luminance(r, g, b) < LUMINANCE_THRESHOLD

    @staticmethod
    def is_dark_at(bitmap: Bitmap, x: int, y: int) -> bool:
        """Threshold the pixel at (x, y); coordinates off the bitmap are white."""
        if x >= bitmap.width or y >= bitmap.height:
            return False
        return Thresholder.is_dark(*bitmap.pixel(x, y))


class RasterEncoder:
    """Encoder for the ``GS v 0`` raster bit image command."""

    HEADER_LENGTH = len(RASTER_IMAGE_HEADER) + 4

    @staticmethod
    def encode(bitmap: Bitmap) -> bytes:
        """Encode a bitmap as a single raster image command.

        Layout: ``1D 76 30 00 xL xH yL yH`` followed by ``ceil(width / 8)``
        bytes per row, rows top to bottom. The left-most pixel of each
        8-pixel group is bit 7; bits past the right edge are zero.

        Args:
            bitmap: Bitmap already sized to the printer's dot width

        Returns:
            Raw ESC/POS command bytes
        """
        row_bytes = bytes_per_row(bitmap.width)
        padded_width = row_bytes * 8
        _warn_if_truncated("raster", row_bytes, bitmap.height)

        writer = BitWriter()
        writer.write_bytes(RASTER_IMAGE_HEADER)
        writer.write_bytes(split_u16(row_bytes))
        writer.write_bytes(split_u16(bitmap.height))

        for y in range(bitmap.height):
            for x in range(padded_width):
                writer.write_bit(Thresholder.is_dark_at(bitmap, x, y))

        command = writer.getvalue()
        logger.debug(
            f"Encoded {bitmap.width}x{bitmap.height} raster image into {len(command)} bytes"
        )
        return command

    @staticmethod
    def parse_header(command: bytes) -> tuple[int, int]:
        """Read (bytes_per_row, height) back from a raster image command.

        Raises:
            ValueError: If the buffer is not a GS v 0 command
        """
        if len(command) < RasterEncoder.HEADER_LENGTH:
            raise ValueError(f"Raster command too short: {len(command)} bytes")
        if command[: len(RASTER_IMAGE_HEADER)] != RASTER_IMAGE_HEADER:
            raise ValueError("Buffer does not start with a GS v 0 header")
        x_low, x_high, y_low, y_high = command[4:8]
        return join_u16(x_low, x_high), join_u16(y_low, y_high)


class StripEncoder:
    """Encoder for the ``ESC * 33`` 24-dot double-density bit image command."""

    @staticmethod
    def strip_count(height: int) -> int:
        return (height + STRIP_HEIGHT - 1) // STRIP_HEIGHT

    @staticmethod
    def encode(bitmap: Bitmap) -> bytes:
        """Encode a bitmap as a sequence of 24-dot column strips.

        The output sets line spacing to zero, then for each strip emits
        ``1B 2A 21 nL nH``, three bytes per column (top pixel of each
        8-row group in bit 7) and a line feed, and finally restores the
        default line spacing with ``1B 32``.

        Args:
            bitmap: Bitmap already sized to the printer's dot width

        Returns:
            Raw ESC/POS command bytes
        """
        width = bitmap.width
        _warn_if_truncated("strip", width)
        strip_header = (
            BIT_IMAGE_PREFIX + bytes([BIT_IMAGE_MODE_24_DOT_DOUBLE]) + split_u16(width)
        )

        writer = BitWriter()
        writer.write_bytes(LINE_SPACING_ZERO)

        strips = StripEncoder.strip_count(bitmap.height)
        for strip in range(strips):
            top = strip * STRIP_HEIGHT
            writer.write_bytes(strip_header)
            for x in range(width):
                for offset in range(STRIP_HEIGHT):
                    writer.write_bit(Thresholder.is_dark_at(bitmap, x, top + offset))
            writer.write_bytes(STRIP_TERMINATOR)

        writer.write_bytes(LINE_SPACING_DEFAULT)

        command = writer.getvalue()
        logger.debug(
            f"Encoded {width}x{bitmap.height} bitmap into {strips} strips, {len(command)} bytes"
        )
        return command


def encode_bitmap(bitmap: Bitmap, mode: ImageMode = ImageMode.RASTER) -> bytes:
    """Encode a bitmap with the command family selected by ``mode``."""
    if ImageMode(mode) is ImageMode.STRIP:
        return StripEncoder.encode(bitmap)
    return RasterEncoder.encode(bitmap)
