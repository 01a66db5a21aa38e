"""
ESC/POS-style Commands for T02 Printer.

The T02 (PeriPage family) accepts a short ESC/POS subset plus a vendor
start-print sequence. A print job is:

    START_PRINT, PADDING, BITMAP_MODE header, packed bitmap, FEED_PAPER

The raster header carries the width in bytes and the height in rows
(little-endian 16-bit). Bitmap rows follow without per-row padding.
"""

from .errors import ProtocolError
from .image import packed_size

INIT = bytes([0x1B, 0x40])  # ESC @ - initialize printer
FEED_PAPER = bytes([0x1B, 0x64, 0x01])  # ESC d 1 - feed one line
FEED_AND_CUT = bytes([0x1D, 0x56, 0x42, 0x00])  # GS V B 0 - feed and cut
START_PRINT = bytes([0x10, 0xFF, 0xFE, 0x01])  # Vendor start-print
PADDING = bytes(12)
BITMAP_MODE = bytes([0x1D, 0x76, 0x30, 0x00])  # GS v 0 - raster bit image

MAX_HEIGHT = 0xFFFF
MAX_WIDTH_BYTES = 0xFF


class T02Commands:
    """Command builders for the T02 printer."""

    @staticmethod
    def initialize() -> bytes:
        """
        Initialize the printer.

        Sent once per connection before any other command.
        """
        return INIT

    @staticmethod
    def start_print() -> bytes:
        """Vendor sequence that precedes every raster job."""
        return START_PRINT

    @staticmethod
    def padding() -> bytes:
        """Zero bytes sent between START_PRINT and the bitmap header."""
        return PADDING

    @staticmethod
    def bitmap_header(width: int, height: int) -> bytes:
        """
        Raster bit image header.

        Args:
            width: Image width in pixels
            height: Image height in pixels

        Raises:
            ProtocolError: If either dimension cannot be encoded
        """
        if not 0 <= height <= MAX_HEIGHT:
            raise ProtocolError(f"Height {height} outside 0-{MAX_HEIGHT}")
        width_bytes = (width + 7) // 8
        if not 0 <= width_bytes <= MAX_WIDTH_BYTES:
            raise ProtocolError(
                f"Width {width} px needs {width_bytes} bytes per row "
                f"(max {MAX_WIDTH_BYTES})"
            )
        return BITMAP_MODE + bytes([
            width_bytes,
            0x00,
            height & 0xFF,
            (height >> 8) & 0xFF,
        ])

    @staticmethod
    def feed_paper() -> bytes:
        """Feed the paper one line."""
        return FEED_PAPER

    @staticmethod
    def feed_and_cut() -> bytes:
        """Feed the paper and cut (on models with a cutter)."""
        return FEED_AND_CUT

    @staticmethod
    def print_job(width: int, height: int, bitmap: bytes) -> list[bytes]:
        """
        Build the frames of a raster print job, in send order.

        Args:
            width: Image width in pixels
            height: Image height in pixels
            bitmap: Packed bitmap (see image.pack_bitmap)

        Raises:
            ProtocolError: If dimensions are out of range or the bitmap
                length does not match them
        """
        header = T02Commands.bitmap_header(width, height)
        expected = packed_size(width, height)
        if len(bitmap) != expected:
            raise ProtocolError(
                f"Bitmap is {len(bitmap)} bytes, expected {expected} "
                f"for {width}x{height}"
            )
        return [
            T02Commands.start_print(),
            T02Commands.padding(),
            header,
            bytes(bitmap),
            T02Commands.feed_paper(),
        ]
