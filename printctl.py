#!/usr/bin/env python3
"""Command-line printing utility for posbridge.

Each command opens its own connection to the printer, prints, cuts the
paper and disconnects, whatever the outcome.

Usage:
    python printctl.py [command] [options]

Commands:
    image <path>      Print an image file scaled to the printer width
    text <text>       Render text and print it
    qr <data>         Print a QR code
    test-pattern      Print a checkerboard test pattern
    receipt [path]    Print a styled receipt from a JSON file of blocks
                      (a built-in sample when no path is given)

Examples:
    python printctl.py --host 192.168.1.100 image logo.png
    python printctl.py --host 192.168.1.100 --mode strip text "Hello"
    python printctl.py qr "https://example.com" --size 320 --no-cut
    python printctl.py --paper 58 receipt order.json
"""

import argparse
import asyncio
import sys
from pathlib import Path

from posbridge.config import configure_logging, get_settings
from posbridge.controllers.print_operation import print_bitmap
from posbridge.exceptions import EncodingError, PrinterConnectionError
from posbridge.models.bitmap import Bitmap
from posbridge.models.printer import ImageMode
from posbridge.models.receipt import Receipt
from posbridge.services.bitmap_service import BitmapService
from posbridge.utils.bitmap import get_target_width_for_paper


def build_image(args: argparse.Namespace) -> Bitmap:
    """Load and scale an image file."""
    data = Path(args.path).read_bytes()
    img = BitmapService.load_image(data)
    return BitmapService.prepare_bitmap(img, args.width)


def build_text(args: argparse.Namespace) -> Bitmap:
    """Render text at the printer width."""
    img = BitmapService.rasterize_text(args.text, width=args.width, font_size=args.font_size)
    return BitmapService.to_bitmap(img)


def build_qr(args: argparse.Namespace) -> Bitmap:
    """Generate a QR code."""
    return BitmapService.to_bitmap(BitmapService.generate_qr_code(args.data, args.size))


def build_test_pattern(args: argparse.Namespace) -> Bitmap:
    """Generate a checkerboard."""
    return BitmapService.to_bitmap(BitmapService.create_test_pattern(args.size))


def build_receipt(args: argparse.Namespace) -> Bitmap:
    """Render receipt blocks read from JSON, or the sample receipt."""
    if args.path is None:
        receipt = Receipt.sample()
    else:
        receipt = Receipt.model_validate_json(Path(args.path).read_text())
    img = BitmapService.rasterize_receipt(receipt.blocks, width=args.width)
    return BitmapService.to_bitmap(img)


def run_job(args: argparse.Namespace, bitmap: Bitmap) -> int:
    """Print one bitmap on a dedicated connection and return an exit code."""
    print(f"Printing {bitmap.width}x{bitmap.height} bitmap to {args.host}:{args.port} ({args.mode})")
    result = asyncio.run(
        print_bitmap(
            args.host,
            args.port,
            bitmap,
            mode=ImageMode(args.mode),
            cut=not args.no_cut,
        )
    )
    print(f"Sent {result.bytes_sent} bytes{' and cut paper' if result.cut else ''}.")
    return 0


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Print to an ESC/POS receipt printer over raw TCP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--host", default=settings.printer_host, help="Printer hostname or IP address")
    parser.add_argument("--port", type=int, default=settings.printer_port, help="Raw printing TCP port")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ImageMode],
        default=settings.image_mode,
        help="raster (GS v 0) or strip (ESC *)",
    )
    parser.add_argument("--width", type=int, default=None, help="Width in dots (default: configured dot width)")
    parser.add_argument(
        "--paper",
        type=int,
        choices=[58, 80],
        default=None,
        help="Paper width in mm, used when --width is not given",
    )
    parser.add_argument("--no-cut", action="store_true", help="Do not cut the paper after printing")
    parser.add_argument("--log-level", default=None, help="Logging level (default: configured level)")

    subparsers = parser.add_subparsers(dest="command", help="Print command")

    # Image command
    image_parser = subparsers.add_parser("image", help="Print an image file")
    image_parser.add_argument("path", help="Path to a PNG, JPEG or other image file")

    # Text command
    text_parser = subparsers.add_parser("text", help="Render text and print it")
    text_parser.add_argument("text", help="Text to print; use \\n for new lines")
    text_parser.add_argument("--font-size", type=int, default=24, help="Font size in pixels")

    # QR command
    qr_parser = subparsers.add_parser("qr", help="Print a QR code")
    qr_parser.add_argument("data", help="Payload to encode")
    qr_parser.add_argument("--size", type=int, default=256, help="Edge length in dots")

    # Test pattern command
    pattern_parser = subparsers.add_parser("test-pattern", help="Print a checkerboard test pattern")
    pattern_parser.add_argument("--size", type=int, default=128, help="Edge length in dots")

    # Receipt command
    receipt_parser = subparsers.add_parser("receipt", help="Print a styled receipt")
    receipt_parser.add_argument(
        "path", nargs="?", default=None, help="JSON file with a \"blocks\" list (default: sample receipt)"
    )

    # Parse arguments
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.log_level)

    if args.width is None and args.paper is not None:
        args.width = get_target_width_for_paper(args.paper)

    command_map = {
        "image": build_image,
        "text": build_text,
        "qr": build_qr,
        "test-pattern": build_test_pattern,
        "receipt": build_receipt,
    }

    build = command_map.get(args.command)
    if not build:
        print(f"ERROR: Unknown command: {args.command}")
        return 1

    if args.command == "text":
        args.text = args.text.replace("\\n", "\n")

    try:
        bitmap = build(args)
    except (OSError, ValueError, EncodingError) as e:
        print(f"ERROR: Could not prepare image: {e}")
        return 1

    try:
        return run_job(args, bitmap)
    except EncodingError as e:
        print(f"ERROR: Could not encode image: {e}")
        return 1
    except PrinterConnectionError as e:
        print(f"ERROR: Printing failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
