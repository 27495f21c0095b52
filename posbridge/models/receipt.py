"""Pydantic models describing a styled receipt as a list of blocks."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import Base64Bytes, BaseModel, Field

from posbridge.models.printer import ImageMode


BASE_FONT_SIZE = 24

# Common size multipliers for receipt headings
SCALE_LARGE = 1.3
SCALE_DOUBLE = 2.0
SCALE_HEADLINE = 2.5
SCALE_TABLE_NAME = 3.0


class TextBlock(BaseModel):
    """Text drawn in a single style; newlines start new lines."""

    kind: Literal["text"] = "text"
    text: str = Field("", max_length=4096, description="Text to draw, empty for a blank line")
    bold: bool = False
    center: bool = False
    scale: float = Field(1.0, ge=0.5, le=4.0, description="Multiple of the base font size")
    inverse: bool = Field(False, description="White text on a full-width black band")
    underline: bool = False


class RuleBlock(BaseModel):
    """A horizontal separator across the printable width."""

    kind: Literal["rule"] = "rule"
    thickness: int = Field(2, ge=1, le=16, description="Line thickness in dots")


class ImageBlock(BaseModel):
    """A picture scaled to a fixed height and centered."""

    kind: Literal["image"] = "image"
    data: Base64Bytes = Field(..., description="Base64 of an image file (PNG, JPEG, etc.)")
    height: int = Field(120, ge=8, le=1024, description="Rendered height in dots")


ReceiptBlock = Annotated[Union[TextBlock, RuleBlock, ImageBlock], Field(discriminator="kind")]


class Receipt(BaseModel):
    """Blocks rendered top to bottom at the printer's width."""

    blocks: list[ReceiptBlock] = Field(..., min_length=1, max_length=256)

    @classmethod
    def sample(cls) -> Receipt:
        """A short test receipt exercising the common styles."""
        return cls(
            blocks=[
                TextBlock(text="posbridge", bold=True, center=True, scale=SCALE_HEADLINE),
                TextBlock(text="Test Receipt", center=True),
                RuleBlock(),
                TextBlock(text="Item 1 ........ $10.00\nItem 2 ........ $20.00"),
                RuleBlock(),
                TextBlock(text="Total ......... $30.00", bold=True),
                TextBlock(text="THANK YOU", center=True, inverse=True, scale=SCALE_LARGE),
                TextBlock(
                    text="Table 7", bold=True, center=True, underline=True, scale=SCALE_TABLE_NAME
                ),
            ]
        )


class PrintReceiptRequest(Receipt):
    """Request body for printing a styled receipt."""

    mode: ImageMode = ImageMode.RASTER
    cut: bool = True
