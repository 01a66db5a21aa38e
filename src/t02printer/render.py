"""
Text Rendering for T02 Printer.

Draws laid-out text onto a Pillow surface sized for the print head and
turns it into print-ready pixels.
"""

import base64
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .errors import RenderError
from .image import (
    CUT_GUIDE_ROWS,
    PixelBuffer,
    draw_cut_guides,
    floyd_steinberg_dither,
)
from .layout import LayoutResult, StyleSpec, layout

# T02 print head width in dots
PRINT_WIDTH = 384

# Gap between a line's baseline and its underline stroke
UNDERLINE_OFFSET = 3

# Tried after the requested family, before Pillow's built-in font
FALLBACK_FAMILIES = ["DejaVuSans", "DejaVu Sans", "LiberationSans", "Helvetica"]


class PillowRasterizer:
    """Measures and draws text using Pillow."""

    def __init__(self):
        self._fonts: dict[tuple, ImageFont.ImageFont] = {}

    @staticmethod
    def _font_candidates(family: str, bold: bool, italic: bool) -> list[str]:
        """File names to try for a family and face."""
        compact = family.replace(" ", "")
        if bold and italic:
            styles = [" Bold Italic", "-BoldItalic", "-BoldOblique", "bi", "z"]
        elif bold:
            styles = [" Bold", "-Bold", "bd", "b"]
        elif italic:
            styles = [" Italic", "-Italic", "-Oblique", "i"]
        else:
            styles = ["", "-Regular"]

        names = []
        for base in (family, compact, compact.lower()):
            for suffix in styles:
                for ext in (".ttf", ".ttc", ".otf"):
                    name = f"{base}{suffix}{ext}"
                    if name not in names:
                        names.append(name)
        return names

    def load_font(self, style: StyleSpec, size: int):
        """
        Load the font for a style at a pixel size.

        Tries the requested family, then common sans-serif families, then
        Pillow's built-in font.
        """
        key = (style.font_family, style.bold, style.italic, size)
        font = self._fonts.get(key)
        if font is not None:
            return font

        for family in [style.font_family] + FALLBACK_FAMILIES:
            for name in self._font_candidates(family, style.bold, style.italic):
                try:
                    font = ImageFont.truetype(name, size)
                    break
                except OSError:
                    continue
            if font is not None:
                break

        if font is None:
            font = ImageFont.load_default(size=size)

        self._fonts[key] = font
        return font

    def measure_width(self, text: str, font) -> float:
        """Advance width of text in pixels."""
        return font.getlength(text)

    def baseline(self, font) -> int:
        """Distance from the top of a line to its baseline."""
        ascent, _ = font.getmetrics()
        return ascent

    def create_surface(self, width: int, height: int) -> Image.Image:
        """
        Create a white drawing surface.

        Raises:
            RenderError: If the surface cannot be allocated
        """
        if width <= 0 or height <= 0:
            raise RenderError(f"Invalid surface size: {width}x{height}")
        try:
            return Image.new("RGB", (width, height), color="white")
        except (ValueError, MemoryError) as e:
            raise RenderError(f"Failed to create {width}x{height} surface: {e}") from e

    def draw_text(self, surface: Image.Image, text: str, x: float, y: float, font):
        """Draw black text with its top-left corner at (x, y)."""
        ImageDraw.Draw(surface).text((x, y), text, fill="black", font=font)

    def draw_line(self, surface: Image.Image, x0: float, y0: float, x1: float, y1: float):
        """Draw a 1 px black line."""
        ImageDraw.Draw(surface).line([(x0, y0), (x1, y1)], fill="black", width=1)

    def read_pixels(self, surface: Image.Image) -> PixelBuffer:
        rgba = surface.convert("RGBA")
        return PixelBuffer(rgba.width, rgba.height, bytearray(rgba.tobytes()))

    def write_pixels(self, surface: Image.Image, pixels: PixelBuffer):
        if (pixels.width, pixels.height) != surface.size:
            raise RenderError(
                f"Pixel buffer {pixels.width}x{pixels.height} does not match "
                f"surface {surface.width}x{surface.height}"
            )
        rgba = Image.frombytes("RGBA", (pixels.width, pixels.height), bytes(pixels.data))
        surface.paste(rgba.convert(surface.mode))

    def encode_png(self, surface: Image.Image) -> str:
        """Encode the surface as a PNG data URI."""
        buffer = BytesIO()
        surface.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"


@dataclass
class RenderResult:
    """Output of a single render call."""
    layout: LayoutResult
    pixels: PixelBuffer
    surface: Image.Image


def render_text(
    rasterizer,
    text: str,
    height: int,
    style: Optional[StyleSpec] = None,
    dither: bool = True,
    width: int = PRINT_WIDTH,
) -> RenderResult:
    """
    Render text into a print-ready image.

    The text is fitted to the area between the cut-guide bars, each line
    centered horizontally and the block centered vertically. Dithering is
    skipped for previews. Cut-guide bars are drawn last.

    Args:
        rasterizer: Rasterizer used to measure and draw (e.g. PillowRasterizer)
        text: Text to render
        height: Image height in pixels
        style: Text style (default StyleSpec())
        dither: Apply Floyd-Steinberg dithering
        width: Image width in pixels

    Returns:
        RenderResult with the layout, final pixels and surface

    Raises:
        RenderError: If the surface cannot be created
        LayoutError: If text cannot be measured
    """
    style = style or StyleSpec()

    interior = height - 2 * CUT_GUIDE_ROWS
    result = layout(text, width, interior, style, rasterizer)
    font = rasterizer.load_font(style, result.font_size)
    surface = rasterizer.create_surface(width, height)

    y = CUT_GUIDE_ROWS + (interior - result.height) // 2
    for line in result.lines:
        line_width = rasterizer.measure_width(line, font)
        x = (width - line_width) / 2
        rasterizer.draw_text(surface, line, x, y, font)

        if style.underline and line:
            underline_y = y + rasterizer.baseline(font) + UNDERLINE_OFFSET
            rasterizer.draw_line(surface, x, underline_y, x + line_width, underline_y)

        y += result.font_size

    pixels = rasterizer.read_pixels(surface)
    if dither:
        pixels = floyd_steinberg_dither(pixels)
    pixels = draw_cut_guides(pixels)
    rasterizer.write_pixels(surface, pixels)

    return RenderResult(result, pixels, surface)
