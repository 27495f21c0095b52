"""ESC/POS command bytes used by the image encoders and printer sessions."""

from __future__ import annotations


ESC = 0x1B
GS = 0x1D
LF = 0x0A

# GS v 0 m: raster bit image, m=0 selects normal density
RASTER_IMAGE_HEADER = bytes([GS, 0x76, 0x30, 0x00])

# ESC 3 n: line spacing n dots; 0 lets 24-dot strips butt together
LINE_SPACING_ZERO = bytes([ESC, 0x33, 0x00])

# ESC * m: column bit image, m=33 is 24-dot double density
BIT_IMAGE_PREFIX = bytes([ESC, 0x2A])
BIT_IMAGE_MODE_24_DOT_DOUBLE = 33
STRIP_HEIGHT = 24

STRIP_TERMINATOR = bytes([LF])

# ESC 2: default line spacing, takes no parameter
LINE_SPACING_DEFAULT = bytes([ESC, 0x32])

# GS V 66 0: feed and full cut
CUT_PAPER = bytes([GS, 0x56, 66, 0])


def split_u16(value: int) -> bytes:
    """Split a value into little-endian (low, high) bytes.

    Values above 65535 are truncated to their low 16 bits.
    """
    return bytes([value % 256, (value // 256) % 256])


def join_u16(low: int, high: int) -> int:
    return low + 256 * high
