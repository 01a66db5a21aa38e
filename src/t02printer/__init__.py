"""T02 Thermal Printer Driver for Linux/macOS."""

__version__ = "0.1.0"

from .connection import BLEConnection, PrinterInfo
from .errors import (
    ConnectionError,
    DeviceNotSelected,
    LayoutError,
    PrinterError,
    ProtocolError,
    RenderError,
    ServiceUnavailable,
    TransportError,
)
from .image import (
    PixelBuffer,
    draw_cut_guides,
    floyd_steinberg_dither,
    pack_bitmap,
    unpack_bitmap,
)
from .layout import LayoutResult, StyleSpec, layout
from .printer import PrinterState, T02Printer, mm_to_px, quick_print
from .protocol import T02Commands
from .render import PRINT_WIDTH, PillowRasterizer, render_text
from .session import Session, chunk

__all__ = [
    "T02Printer",
    "PrinterState",
    "mm_to_px",
    "quick_print",
    "PrinterError",
    "ConnectionError",
    "DeviceNotSelected",
    "ServiceUnavailable",
    "TransportError",
    "RenderError",
    "LayoutError",
    "ProtocolError",
    "BLEConnection",
    "PrinterInfo",
    "Session",
    "chunk",
    "T02Commands",
    "StyleSpec",
    "LayoutResult",
    "layout",
    "PixelBuffer",
    "floyd_steinberg_dither",
    "draw_cut_guides",
    "pack_bitmap",
    "unpack_bitmap",
    "PillowRasterizer",
    "render_text",
    "PRINT_WIDTH",
]
