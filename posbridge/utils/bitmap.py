"""Print head geometry for thermal receipt printers.

Paper sizes map to a fixed number of dots per line; image commands
describe their size in 16-bit little-endian fields, so anything wider
or taller than 65535 units no longer fits the header.
"""

from __future__ import annotations


# Dots per line for the common paper rolls
STANDARD_WIDTH_58MM = 384
STANDARD_WIDTH_80MM = 576
PAPER_WIDTHS = {58: STANDARD_WIDTH_58MM, 80: STANDARD_WIDTH_80MM}

SIZE_FIELD_MAX = 0xFFFF

# Upper bounds for caller supplied sizes, well past any receipt printer head
MAX_DOT_WIDTH = 2048
MAX_PATTERN_SIZE = 1024


def validate_bitmap_dimensions(width: int, height: int) -> bool:
    """Check that a bitmap has something to print.

    Widths need not be a multiple of 8; the raster encoder pads each row.

    Raises:
        ValueError: If either dimension is zero or negative
    """
    if width <= 0:
        raise ValueError(f"Width must be positive, got {width}")
    if height <= 0:
        raise ValueError(f"Height must be positive, got {height}")
    return True


def bytes_per_row(width: int) -> int:
    """Number of raster bytes needed for one row of ``width`` dots."""
    return (width + 7) // 8


def fits_size_field(value: int) -> bool:
    """Whether ``value`` survives the 16-bit size fields without truncation."""
    return 0 <= value <= SIZE_FIELD_MAX


def get_target_width_for_paper(paper_width_mm: int = 80) -> int:
    """Dots per line for a paper roll width in millimetres.

    Unknown widths fall back to 80mm paper.
    """
    return PAPER_WIDTHS.get(paper_width_mm, STANDARD_WIDTH_80MM)
