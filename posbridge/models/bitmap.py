"""Immutable bitmap value consumed by the ESC/POS encoders."""

from __future__ import annotations

from typing import Iterable, Sequence

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, model_validator

from posbridge.exceptions import UnsupportedPixelFormatError


RGB = tuple[int, int, int]

# Pillow modes that convert losslessly enough to RGB samples
SUPPORTED_MODES = ("1", "L", "LA", "P", "RGB", "RGBA", "RGBX")


class Bitmap(BaseModel):
    """A width x height grid of RGB samples, stored row-major as packed bytes."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")
    pixels: bytes = Field(..., repr=False, description="Packed RGB triples, row-major")

    @model_validator(mode="after")
    def _check_pixel_buffer(self) -> Bitmap:
        expected = self.width * self.height * 3
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer holds {len(self.pixels)} bytes, expected {expected} "
                f"for {self.width}x{self.height} RGB"
            )
        return self

    def pixel(self, x: int, y: int) -> RGB:
        """Return the (r, g, b) sample at column ``x``, row ``y``."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} bitmap")
        offset = (y * self.width + x) * 3
        data = self.pixels
        return data[offset], data[offset + 1], data[offset + 2]

    @classmethod
    def from_image(cls, img: Image.Image) -> Bitmap:
        """Build a bitmap from a Pillow image.

        Raises:
            UnsupportedPixelFormatError: If the image mode has no RGB reading
        """
        if img.mode not in SUPPORTED_MODES:
            raise UnsupportedPixelFormatError(img.mode)
        if img.mode != "RGB":
            img = img.convert("RGB")
        return cls(width=img.width, height=img.height, pixels=img.tobytes())

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[RGB]]) -> Bitmap:
        """Build a bitmap from rows of (r, g, b) tuples, top row first."""
        height = len(rows)
        width = len(rows[0]) if rows else 0
        data = bytearray()
        for y, row in enumerate(rows):
            if len(row) != width:
                raise ValueError(f"Row {y} has {len(row)} pixels, expected {width}")
            for sample in row:
                data.extend(sample)
        return cls(width=width, height=height, pixels=bytes(data))

    @classmethod
    def filled(cls, width: int, height: int, rgb: Iterable[int] = (255, 255, 255)) -> Bitmap:
        """Build a bitmap where every pixel has the same color."""
        return cls(width=width, height=height, pixels=bytes(rgb) * (width * height))
