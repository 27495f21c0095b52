"""Service layer for producing printer-ready bitmaps.

This service handles everything upstream of the ESC/POS encoders:
- Image loading and resizing to the printer's dot width
- Desaturation
- Text rasterization for plain and styled receipts
- QR code and test pattern generation
- Conversion of Pillow images into immutable Bitmap values
"""

from __future__ import annotations

from io import BytesIO

import qrcode
from PIL import Image, ImageDraw, ImageFont

from posbridge.config import get_settings
from posbridge.exceptions import RasterizeFailedError, UnsupportedPixelFormatError
from posbridge.models.bitmap import SUPPORTED_MODES, Bitmap
from posbridge.models.receipt import BASE_FONT_SIZE, ImageBlock, ReceiptBlock, RuleBlock, TextBlock
from posbridge.utils.bitmap import validate_bitmap_dimensions


LINE_GAP = 4
RULE_MARGIN = 6
IMAGE_GAP = 12


class BitmapService:
    """Service for turning images and content into bitmaps for thermal printing."""

    @staticmethod
    def generate_qr_code(data: str, size: int = 256) -> Image.Image:
        """Generate a QR code as a PIL image.

        Args:
            data: Payload to encode in the QR code
            size: Edge length of the QR code image in pixels

        Returns:
            Grayscale PIL Image

        Raises:
            ValueError: If size is invalid or the QR code cannot be built
        """
        if size <= 0:
            raise ValueError(f"QR code size must be positive, got {size}")

        # Create QR code - ERROR_CORRECT_M = 0 (15% error correction)
        qr = qrcode.QRCode(
            version=None,  # Auto-select version
            error_correction=0,  # ERROR_CORRECT_M
            box_size=max(1, size // 25),
            border=2,
        )
        qr.add_data(data)
        qr.make(fit=True)

        try:
            img = qr.make_image(fill_color="black", back_color="white")
        except Exception as e:
            raise ValueError(f"Failed to generate QR code image: {e}") from e

        # The qrcode library returns a PilImage wrapper
        if hasattr(img, "get_image"):
            img = img.get_image()
        if not isinstance(img, Image.Image):
            raise ValueError(f"QR code generation returned unexpected type: {type(img)}")

        if img.mode != "L":
            img = img.convert("L")

        # Nearest keeps module edges hard before thresholding
        return img.resize((size, size), Image.Resampling.NEAREST)

    @staticmethod
    def load_image(image_data: bytes) -> Image.Image:
        """Load an image from bytes.

        Args:
            image_data: Raw image data (PNG, JPEG, etc.)

        Returns:
            PIL Image in its original mode

        Raises:
            ValueError: If image cannot be loaded
        """
        try:
            img = Image.open(BytesIO(image_data))
            img.load()
            return img
        except Exception as e:
            raise ValueError(f"Failed to load image: {e}") from e

    @staticmethod
    def resize_for_printer(
        img: Image.Image, target_width: int | None = None
    ) -> Image.Image:
        """Resize an image to the printer's dot width, keeping its aspect ratio.

        Args:
            img: PIL Image to resize
            target_width: Target width in dots. If None, uses the configured
                        ``dot_width`` (576 for 80mm paper by default).

        Returns:
            Resized PIL Image

        Raises:
            ValueError: If target_width is invalid
        """
        if target_width is None:
            target_width = get_settings().dot_width

        if target_width <= 0:
            raise ValueError(f"Target width must be positive, got {target_width}")

        if img.width == target_width:
            return img

        aspect_ratio = img.height / img.width
        target_height = max(1, int(target_width * aspect_ratio))

        return img.resize((target_width, target_height), Image.Resampling.LANCZOS)

    @staticmethod
    def desaturate(img: Image.Image) -> Image.Image:
        """Strip color information, returning a grayscale ("L") image."""
        if img.mode == "L":
            return img
        return img.convert("L")

    @staticmethod
    def rasterize_text(
        text: str,
        width: int | None = None,
        font_size: int = 24,
        padding: int = 8,
    ) -> Image.Image:
        """Render plain text as black-on-white lines at the printer's width.

        Lines are word-wrapped to fit; words wider than a line are broken
        between characters.

        Args:
            text: Text to render, newlines start new lines
            width: Image width in dots, defaults to the configured ``dot_width``
            font_size: Font size in pixels
            padding: White margin around the text in pixels

        Returns:
            Grayscale PIL Image of the requested width

        Raises:
            RasterizeFailedError: If there is nothing to draw or no font loads
        """
        if not text or not text.strip():
            raise RasterizeFailedError("Cannot rasterize empty text")

        if width is None:
            width = get_settings().dot_width
        usable_width = width - 2 * padding
        if usable_width <= 0:
            raise RasterizeFailedError(f"Width {width} leaves no room inside padding {padding}")

        font = BitmapService._load_font(font_size)

        # Measure on a scratch canvas, then draw on one of the final height
        measure = ImageDraw.Draw(Image.new("L", (1, 1), color=255))
        lines: list[str] = []
        for paragraph in text.splitlines() or [text]:
            lines.extend(BitmapService._wrap_line(measure, font, paragraph, usable_width))

        bbox = font.getbbox("Ag")
        line_height = max(bbox[3], font_size) + LINE_GAP
        height = 2 * padding + line_height * len(lines)

        img = Image.new("L", (width, height), color=255)
        draw = ImageDraw.Draw(img)
        for index, line in enumerate(lines):
            draw.text((padding, padding + index * line_height), line, fill=0, font=font)

        return img

    @staticmethod
    def _wrap_line(
        draw: ImageDraw.ImageDraw,
        font: ImageFont.ImageFont | ImageFont.FreeTypeFont,
        line: str,
        max_width: int,
    ) -> list[str]:
        """Greedy word wrap of a single line."""
        if not line.strip():
            return [""]

        wrapped: list[str] = []
        current = ""
        for word in line.split():
            candidate = f"{current} {word}" if current else word
            if draw.textlength(candidate, font=font) <= max_width:
                current = candidate
                continue

            if current:
                wrapped.append(current)
                current = ""

            # Word alone is too wide: break it between characters
            while draw.textlength(word, font=font) > max_width and len(word) > 1:
                cut = len(word) - 1
                while cut > 1 and draw.textlength(word[:cut], font=font) > max_width:
                    cut -= 1
                wrapped.append(word[:cut])
                word = word[cut:]
            current = word

        if current:
            wrapped.append(current)
        return wrapped

    @staticmethod
    def _load_font(font_size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        try:
            return ImageFont.load_default(size=font_size)
        except OSError as e:
            raise RasterizeFailedError(f"Failed to load font: {e}") from e

    @staticmethod
    def rasterize_receipt(
        blocks: list[ReceiptBlock],
        width: int | None = None,
        padding: int = 8,
    ) -> Image.Image:
        """Render styled receipt blocks top to bottom at the printer's width.

        Text blocks are word-wrapped and may be bold, centered, scaled,
        underlined or inverted (white on a black band). Rules draw a
        horizontal line; image blocks are scaled to their height, shrunk
        further if wider than the paper, and centered.

        Args:
            blocks: Receipt content, drawn in order
            width: Image width in dots, defaults to the configured ``dot_width``
            padding: White margin around the receipt in pixels

        Returns:
            Grayscale PIL Image of the requested width

        Raises:
            RasterizeFailedError: If there are no blocks, no room or no font
            UnsupportedPixelFormatError: If an embedded image has no RGB reading
            ValueError: If an embedded image cannot be decoded
        """
        if not blocks:
            raise RasterizeFailedError("Cannot rasterize a receipt without blocks")

        if width is None:
            width = get_settings().dot_width
        if width - 2 * padding <= 0:
            raise RasterizeFailedError(f"Width {width} leaves no room inside padding {padding}")

        parts: list[Image.Image] = []
        for block in blocks:
            if isinstance(block, TextBlock):
                parts.append(BitmapService._render_text_block(block, width, padding))
            elif isinstance(block, RuleBlock):
                parts.append(BitmapService._render_rule_block(block, width, padding))
            elif isinstance(block, ImageBlock):
                parts.append(BitmapService._render_image_block(block, width, padding))
            else:
                raise RasterizeFailedError(f"Unknown receipt block: {type(block).__name__}")

        img = Image.new("L", (width, 2 * padding + sum(part.height for part in parts)), color=255)
        top = padding
        for part in parts:
            img.paste(part, (0, top))
            top += part.height

        return img

    @staticmethod
    def _render_text_block(block: TextBlock, width: int, padding: int) -> Image.Image:
        font_size = max(1, round(BASE_FONT_SIZE * block.scale))
        font = BitmapService._load_font(font_size)
        background, ink = (0, 255) if block.inverse else (255, 0)
        stroke = 1 if block.bold else 0
        usable_width = width - 2 * padding - 2 * stroke

        measure = ImageDraw.Draw(Image.new("L", (1, 1), color=255))
        lines: list[str] = []
        for paragraph in block.text.splitlines() or [""]:
            lines.extend(BitmapService._wrap_line(measure, font, paragraph, usable_width))

        baseline = font.getbbox("Ag")[3]
        line_height = max(baseline, font_size) + LINE_GAP
        img = Image.new("L", (width, line_height * len(lines)), color=background)
        draw = ImageDraw.Draw(img)

        for index, line in enumerate(lines):
            length = draw.textlength(line, font=font)
            x = padding + stroke
            if block.center:
                x += (usable_width - length) / 2
            y = index * line_height
            draw.text((x, y), line, fill=ink, font=font, stroke_width=stroke, stroke_fill=ink)
            if block.underline and line:
                under_y = y + baseline + 1
                draw.line(
                    [(x, under_y), (x + length, under_y)], fill=ink, width=max(2, font_size // 12)
                )

        return img

    @staticmethod
    def _render_rule_block(block: RuleBlock, width: int, padding: int) -> Image.Image:
        img = Image.new("L", (width, block.thickness + 2 * RULE_MARGIN), color=255)
        draw = ImageDraw.Draw(img)
        draw.rectangle(
            [padding, RULE_MARGIN, width - padding - 1, RULE_MARGIN + block.thickness - 1], fill=0
        )
        return img

    @staticmethod
    def _render_image_block(block: ImageBlock, width: int, padding: int) -> Image.Image:
        picture = BitmapService.load_image(block.data)
        if picture.mode not in SUPPORTED_MODES:
            raise UnsupportedPixelFormatError(picture.mode)
        picture = BitmapService.desaturate(picture)

        usable_width = width - 2 * padding
        target_height = block.height
        target_width = max(1, round(picture.width * target_height / picture.height))
        if target_width > usable_width:
            target_height = max(1, round(target_height * usable_width / target_width))
            target_width = usable_width
        picture = picture.resize((target_width, target_height), Image.Resampling.LANCZOS)

        img = Image.new("L", (width, target_height + IMAGE_GAP), color=255)
        img.paste(picture, ((width - target_width) // 2, 0))
        return img

    @staticmethod
    def create_test_pattern(size: int = 128) -> Image.Image:
        """Create a checkerboard test pattern image.

        Args:
            size: Edge length of the test pattern in pixels

        Returns:
            PIL Image with test pattern

        Raises:
            ValueError: If size is invalid
        """
        validate_bitmap_dimensions(size, size)

        img = Image.new("L", (size, size), color=255)
        pixels = img.load()

        square_size = 16
        for y in range(size):
            for x in range(size):
                # Alternate between black (0) and white (255)
                if (x // square_size + y // square_size) % 2 == 0:
                    pixels[x, y] = 0

        return img

    @staticmethod
    def to_bitmap(img: Image.Image) -> Bitmap:
        """Wrap a Pillow image as an immutable Bitmap.

        Raises:
            UnsupportedPixelFormatError: If the image mode has no RGB reading
        """
        return Bitmap.from_image(img)

    @staticmethod
    def prepare_bitmap(img: Image.Image, target_width: int | None = None) -> Bitmap:
        """Resize an image for the printer and convert it to a Bitmap.

        This is the full pipeline used before encoding:
        1. Desaturate to grayscale
        2. Resize to the printer's dot width
        3. Convert to RGB samples

        Raises:
            UnsupportedPixelFormatError: If the image mode has no RGB reading
        """
        if img.mode not in SUPPORTED_MODES:
            raise UnsupportedPixelFormatError(img.mode)
        img = BitmapService.desaturate(img)
        img = BitmapService.resize_for_printer(img, target_width)
        return BitmapService.to_bitmap(img)
