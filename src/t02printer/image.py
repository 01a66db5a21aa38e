"""
Image Processing for T02 Printer.

Converts rendered RGBA pixels to the printer's 1-bit raster format:
Floyd-Steinberg dithering, cut-guide bars, and MSB-first bit packing.
"""

from dataclasses import dataclass

BLACK = 0
WHITE = 255

# Pixels below this red value become black
THRESHOLD = 128

# Rows forced black at the top and bottom of every print
CUT_GUIDE_ROWS = 2


@dataclass
class PixelBuffer:
    """RGBA pixel grid, 4 bytes per pixel, row-major."""
    width: int
    height: int
    data: bytearray

    def __post_init__(self):
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise ValueError(
                f"Pixel data is {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height}"
            )

    @classmethod
    def blank(cls, width: int, height: int, value: int = WHITE) -> "PixelBuffer":
        """Create an opaque buffer filled with a single gray level."""
        return cls(width, height, bytearray([value, value, value, 255]) * (width * height))

    def red(self, x: int, y: int) -> int:
        """Red sample at (x, y)."""
        return self.data[(y * self.width + x) * 4]

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, bytearray(self.data))


def _saturate(value: float) -> int:
    # Samples live in 8 bits; every update is rounded and clamped
    return min(WHITE, max(BLACK, round(value)))


def floyd_steinberg_dither(pixels: PixelBuffer) -> PixelBuffer:
    """
    Reduce an image to pure black and white with error diffusion.

    Scans row by row, left to right, using the red channel as luminance.
    Each pixel is thresholded at 128 and its quantization error is spread
    to the unvisited neighbours: 7/16 east, 3/16 south-west, 5/16 south
    and 1/16 south-east. Neighbours outside the image are skipped.

    Args:
        pixels: Source RGBA pixels (left unmodified)

    Returns:
        New buffer with every RGB sample 0 or 255; alpha is preserved
    """
    width = pixels.width
    height = pixels.height
    out = bytearray(pixels.data)
    lum = list(out[0::4])

    for y in range(height):
        has_below = y + 1 < height
        for x in range(width):
            i = y * width + x
            old = lum[i]
            new = BLACK if old < THRESHOLD else WHITE
            error = old - new

            o = i * 4
            out[o] = out[o + 1] = out[o + 2] = new

            if error == 0:
                continue

            has_right = x + 1 < width
            if has_right:
                lum[i + 1] = _saturate(lum[i + 1] + error * 7 / 16)
            if has_below:
                below = i + width
                if x > 0:
                    lum[below - 1] = _saturate(lum[below - 1] + error * 3 / 16)
                lum[below] = _saturate(lum[below] + error * 5 / 16)
                if has_right:
                    lum[below + 1] = _saturate(lum[below + 1] + error * 1 / 16)

    return PixelBuffer(width, height, out)


def draw_cut_guides(pixels: PixelBuffer, rows: int = CUT_GUIDE_ROWS) -> PixelBuffer:
    """
    Force the top and bottom rows fully black.

    The bars mark where to tear the paper. They are applied after
    dithering so error diffusion never touches them.

    Returns:
        New buffer with the guide rows set to opaque black
    """
    out = pixels.copy()
    row_bytes = pixels.width * 4
    black_row = bytes([BLACK, BLACK, BLACK, 255]) * pixels.width

    guide_rows = set(range(min(rows, pixels.height)))
    guide_rows.update(range(max(pixels.height - rows, 0), pixels.height))

    for y in guide_rows:
        out.data[y * row_bytes:(y + 1) * row_bytes] = black_row

    return out


def packed_size(width: int, height: int) -> int:
    """Length in bytes of a packed bitmap of the given dimensions."""
    return (width * height + 7) // 8


def pack_bitmap(pixels: PixelBuffer) -> bytes:
    """
    Convert monochrome pixels to packed raster bytes.

    Pixels are packed row-major with no per-row padding. MSB is the
    leftmost pixel. Black pixels (red == 0) are 1, everything else is 0.
    """
    data = pixels.data
    count = pixels.width * pixels.height
    result = bytearray(packed_size(pixels.width, pixels.height))

    for p in range(count):
        if data[p * 4] == BLACK:
            result[p >> 3] |= 0x80 >> (p & 7)

    return bytes(result)


def unpack_bitmap(data: bytes, width: int, height: int) -> PixelBuffer:
    """
    Expand packed raster bytes back to opaque black/white pixels.

    Raises:
        ValueError: If data length does not match the dimensions
    """
    if len(data) != packed_size(width, height):
        raise ValueError(
            f"Bitmap is {len(data)} bytes, expected "
            f"{packed_size(width, height)} for {width}x{height}"
        )

    out = PixelBuffer.blank(width, height)
    for p in range(width * height):
        if data[p >> 3] & (0x80 >> (p & 7)):
            o = p * 4
            out.data[o] = out.data[o + 1] = out.data[o + 2] = BLACK

    return out
