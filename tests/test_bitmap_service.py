"""Tests for the bitmap sources and image preparation service."""

import base64
from io import BytesIO

import pytest
from PIL import Image, ImageOps

from posbridge.config import get_settings
from posbridge.exceptions import RasterizeFailedError, UnsupportedPixelFormatError
from posbridge.models.bitmap import Bitmap
from posbridge.models.receipt import SCALE_DOUBLE, ImageBlock, Receipt, RuleBlock, TextBlock
from posbridge.services.bitmap_service import IMAGE_GAP, RULE_MARGIN, BitmapService


def _png_bytes(img: Image.Image) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class TestImageLoading:
    """Test suite for loading and resizing images."""

    def test_load_image_keeps_original_mode(self) -> None:
        img = BitmapService.load_image(_png_bytes(Image.new("RGB", (10, 4), color=(1, 2, 3))))

        assert img.mode == "RGB"
        assert img.size == (10, 4)

    def test_load_image_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            BitmapService.load_image(b"definitely not an image")

    def test_resize_keeps_aspect_ratio(self) -> None:
        resized = BitmapService.resize_for_printer(Image.new("L", (100, 50)), 384)

        assert resized.size == (384, 192)

    def test_resize_defaults_to_configured_dot_width(self) -> None:
        resized = BitmapService.resize_for_printer(Image.new("L", (100, 100)))

        assert resized.width == get_settings().dot_width

    def test_resize_never_produces_zero_height(self) -> None:
        resized = BitmapService.resize_for_printer(Image.new("L", (1000, 1)), 8)

        assert resized.size == (8, 1)

    def test_resize_rejects_non_positive_width(self) -> None:
        with pytest.raises(ValueError):
            BitmapService.resize_for_printer(Image.new("L", (10, 10)), 0)

    def test_desaturate_returns_grayscale(self) -> None:
        gray = BitmapService.desaturate(Image.new("RGB", (2, 2), color=(255, 0, 0)))

        assert gray.mode == "L"

    def test_prepare_bitmap_resizes_and_converts(self) -> None:
        bitmap = BitmapService.prepare_bitmap(Image.new("L", (20, 10), color=0), 40)

        assert isinstance(bitmap, Bitmap)
        assert (bitmap.width, bitmap.height) == (40, 20)
        assert bitmap.pixel(0, 0) == (0, 0, 0)

    def test_prepare_bitmap_desaturates_color(self) -> None:
        bitmap = BitmapService.prepare_bitmap(Image.new("RGB", (4, 4), color=(255, 0, 0)), 4)

        red, green, blue = bitmap.pixel(0, 0)
        assert red == green == blue == 76

    def test_prepare_bitmap_rejects_unsupported_pixels(self) -> None:
        with pytest.raises(UnsupportedPixelFormatError):
            BitmapService.prepare_bitmap(Image.new("F", (4, 4)), 8)


class TestContentSources:
    """Test suite for text, QR code and test pattern bitmaps."""

    def test_rasterize_text_fills_printer_width(self) -> None:
        img = BitmapService.rasterize_text("Total .... $30.00", width=384)

        assert img.mode == "L"
        assert img.width == 384
        assert img.height > 0
        darkest, lightest = img.getextrema()
        assert darkest < 128
        assert lightest == 255

    def test_rasterize_text_wraps_long_lines(self) -> None:
        short = BitmapService.rasterize_text("word", width=200)
        long = BitmapService.rasterize_text(" ".join(["word"] * 40), width=200)

        assert long.height > short.height

    def test_rasterize_text_breaks_words_wider_than_a_line(self) -> None:
        img = BitmapService.rasterize_text("W" * 60, width=120)

        assert img.width == 120
        assert img.height > BitmapService.rasterize_text("W", width=120).height

    def test_rasterize_text_keeps_blank_lines(self) -> None:
        one = BitmapService.rasterize_text("a\nb", width=200)
        spaced = BitmapService.rasterize_text("a\n\nb", width=200)

        assert spaced.height > one.height

    @pytest.mark.parametrize("text", ["", "   ", "\n\n"])
    def test_rasterize_text_rejects_empty_text(self, text: str) -> None:
        with pytest.raises(RasterizeFailedError):
            BitmapService.rasterize_text(text, width=384)

    def test_rasterize_text_rejects_width_inside_padding(self) -> None:
        with pytest.raises(RasterizeFailedError):
            BitmapService.rasterize_text("hi", width=10, padding=8)

    def test_generate_qr_code(self) -> None:
        img = BitmapService.generate_qr_code("https://example.com", 200)

        assert img.mode == "L"
        assert img.size == (200, 200)
        assert img.getextrema() == (0, 255)

    def test_generate_qr_code_rejects_bad_size(self) -> None:
        with pytest.raises(ValueError):
            BitmapService.generate_qr_code("data", 0)

    def test_create_test_pattern_checkerboard(self) -> None:
        img = BitmapService.create_test_pattern(32)

        assert img.getpixel((0, 0)) == 0
        assert img.getpixel((16, 0)) == 255
        assert img.getpixel((16, 16)) == 0

    def test_to_bitmap(self) -> None:
        bitmap = BitmapService.to_bitmap(BitmapService.create_test_pattern(16))

        assert (bitmap.width, bitmap.height) == (16, 16)
        assert bitmap.pixel(0, 0) == (0, 0, 0)


def _image_block(img: Image.Image, height: int) -> ImageBlock:
    return ImageBlock(data=base64.b64encode(_png_bytes(img)), height=height)


def _dark_pixels(img: Image.Image) -> int:
    return sum(img.histogram()[:128])


def _ink_box(img: Image.Image) -> tuple[int, int, int, int] | None:
    return ImageOps.invert(img).getbbox()


class TestReceiptRendering:
    """Test suite for styled receipt blocks."""

    def test_receipt_fills_printer_width(self) -> None:
        img = BitmapService.rasterize_receipt([TextBlock(text="Cafe")], width=384)

        assert img.mode == "L"
        assert img.width == 384
        darkest, lightest = img.getextrema()
        assert darkest < 128
        assert lightest == 255

    def test_receipt_defaults_to_configured_dot_width(self) -> None:
        img = BitmapService.rasterize_receipt([RuleBlock()])

        assert img.width == get_settings().dot_width

    def test_centered_text_moves_right(self) -> None:
        left = BitmapService.rasterize_receipt([TextBlock(text="hi")], width=576)
        centered = BitmapService.rasterize_receipt([TextBlock(text="hi", center=True)], width=576)

        assert _ink_box(left)[0] < 20
        assert _ink_box(centered)[0] > 250
        assert _ink_box(centered)[2] < 330

    def test_inverse_text_draws_black_band(self) -> None:
        img = BitmapService.rasterize_receipt(
            [TextBlock(text="THANK YOU", inverse=True)], width=384, padding=8
        )

        assert img.getpixel((0, 8)) == 0
        assert img.getpixel((383, 8)) == 0
        assert img.getpixel((0, 0)) == 255

    def test_bold_text_is_darker(self) -> None:
        plain = BitmapService.rasterize_receipt([TextBlock(text="Total")], width=384)
        bold = BitmapService.rasterize_receipt([TextBlock(text="Total", bold=True)], width=384)

        assert _dark_pixels(bold) > _dark_pixels(plain)

    def test_underline_adds_ink(self) -> None:
        plain = BitmapService.rasterize_receipt([TextBlock(text="Table 7")], width=384)
        underlined = BitmapService.rasterize_receipt(
            [TextBlock(text="Table 7", underline=True)], width=384
        )

        assert underlined.height == plain.height
        assert _dark_pixels(underlined) > _dark_pixels(plain)

    def test_scaled_text_is_taller(self) -> None:
        normal = BitmapService.rasterize_receipt([TextBlock(text="Table 7")], width=576)
        doubled = BitmapService.rasterize_receipt(
            [TextBlock(text="Table 7", scale=SCALE_DOUBLE)], width=576
        )

        assert doubled.height > normal.height
        doubled_box, normal_box = _ink_box(doubled), _ink_box(normal)
        assert doubled_box[2] - doubled_box[0] > normal_box[2] - normal_box[0]

    def test_empty_text_block_is_a_blank_line(self) -> None:
        img = BitmapService.rasterize_receipt([TextBlock(text="")], width=200)

        assert img.height > 16
        assert _ink_box(img) is None

    def test_rule_spans_printable_width(self) -> None:
        img = BitmapService.rasterize_receipt([RuleBlock(thickness=2)], width=200, padding=8)

        # padding, then the rule margin, then the line itself
        assert img.height == 2 * 8 + 2 + 2 * RULE_MARGIN
        assert _ink_box(img) == (8, 8 + RULE_MARGIN, 192, 8 + RULE_MARGIN + 2)

    def test_image_block_is_scaled_to_height_and_centered(self) -> None:
        block = _image_block(Image.new("RGB", (40, 20), color=(0, 0, 0)), height=60)

        img = BitmapService.rasterize_receipt([block], width=576, padding=8)

        assert _ink_box(img) == (228, 8, 348, 68)
        assert img.height == 2 * 8 + 60 + IMAGE_GAP

    def test_wide_image_block_shrinks_to_printable_width(self) -> None:
        block = _image_block(Image.new("L", (1000, 100), color=0), height=120)

        img = BitmapService.rasterize_receipt([block], width=576, padding=8)

        assert _ink_box(img) == (8, 8, 568, 64)

    def test_blocks_stack_in_order(self) -> None:
        img = BitmapService.rasterize_receipt(
            [RuleBlock(thickness=4), TextBlock(text="")], width=200, padding=8
        )

        box = _ink_box(img)
        assert box[1] == 8 + RULE_MARGIN
        assert box[3] == 8 + RULE_MARGIN + 4

    def test_receipt_requires_blocks(self) -> None:
        with pytest.raises(RasterizeFailedError):
            BitmapService.rasterize_receipt([], width=384)

    def test_receipt_rejects_width_inside_padding(self) -> None:
        with pytest.raises(RasterizeFailedError):
            BitmapService.rasterize_receipt([RuleBlock()], width=16, padding=8)

    def test_image_block_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            BitmapService.rasterize_receipt(
                [ImageBlock(data=base64.b64encode(b"not an image"))], width=384
            )

    def test_image_block_rejects_unsupported_pixels(self) -> None:
        buffer = BytesIO()
        Image.new("F", (4, 4)).save(buffer, format="TIFF")

        with pytest.raises(UnsupportedPixelFormatError):
            BitmapService.rasterize_receipt(
                [ImageBlock(data=base64.b64encode(buffer.getvalue()))], width=384
            )

    def test_sample_receipt_renders(self) -> None:
        img = BitmapService.rasterize_receipt(Receipt.sample().blocks, width=384)

        assert img.width == 384
        assert _dark_pixels(img) > 0
