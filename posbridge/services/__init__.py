"""Service layer for the posbridge printing service."""

from posbridge.services.bitmap_service import BitmapService
from posbridge.services.encoder_service import (
    RasterEncoder,
    StripEncoder,
    Thresholder,
    encode_bitmap,
)

__all__ = ["BitmapService", "RasterEncoder", "StripEncoder", "Thresholder", "encode_bitmap"]
