"""
Text Layout for T02 Printer.

Word-wraps text to the print width and picks the largest font size that
lets the wrapped block fit the requested height.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .errors import LayoutError

# Font size bounds in pixels
MIN_FONT_SIZE = 8
MAX_FONT_SIZE = 200

DEFAULT_FONT_FAMILY = "Arial"


@dataclass(frozen=True)
class StyleSpec:
    """Text style for a print request.

    Attributes:
        font_family: Font family name (e.g., "Arial")
        bold: Use the bold face
        italic: Use the italic face
        underline: Draw a stroke under each line
        font_size: Fixed size in pixels, or None to fit the text to the height
    """
    font_family: str = DEFAULT_FONT_FAMILY
    bold: bool = False
    italic: bool = False
    underline: bool = False
    font_size: Optional[int] = None

    def __post_init__(self):
        if self.font_size is not None and not (
            MIN_FONT_SIZE <= self.font_size <= MAX_FONT_SIZE
        ):
            raise ValueError(
                f"Font size {self.font_size} outside "
                f"{MIN_FONT_SIZE}-{MAX_FONT_SIZE}"
            )

    def with_changes(self, **changes) -> "StyleSpec":
        """Return a copy of this style with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class LayoutResult:
    """Resolved font size and wrapped lines."""
    font_size: int
    lines: tuple[str, ...]

    @property
    def height(self) -> int:
        """Height of the line block in pixels."""
        return len(self.lines) * self.font_size


class _WordTooLong(Exception):
    """A single word does not fit the width at the candidate size."""

    pass


def _wrap_paragraph(words, fits, strict: bool) -> list[str]:
    lines = []
    current = ""

    for word in words:
        candidate = f"{current} {word}" if current else word
        if fits(candidate):
            current = candidate
            continue

        if not current:
            # Lone word wider than the line
            if strict:
                raise _WordTooLong(word)
            lines.append(word)
            continue

        lines.append(current)
        if fits(word):
            current = word
        elif strict:
            raise _WordTooLong(word)
        else:
            lines.append(word)
            current = ""

    if current:
        lines.append(current)

    return lines


def wrap_text(
    text: str,
    max_width: float,
    style: StyleSpec,
    size: int,
    rasterizer,
    strict: bool = False,
) -> list[str]:
    """
    Greedily wrap text into lines at a given font size.

    Each newline-separated paragraph is wrapped on its own; a blank
    paragraph between others becomes an empty line. Trailing blank
    lines are dropped.

    Args:
        text: Text to wrap
        max_width: Line width limit in pixels
        style: Text style
        size: Font size in pixels
        rasterizer: Object providing load_font() and measure_width()
        strict: Raise _WordTooLong instead of emitting an overflowing word

    Returns:
        List of line strings
    """
    font = rasterizer.load_font(style, size)

    def fits(line: str) -> bool:
        return rasterizer.measure_width(line, font) <= max_width

    # Trailing newlines end the text; they do not add blank lines
    paragraphs = text.rstrip().split("\n")
    if len(paragraphs) == 1:
        return _wrap_paragraph(text.split(), fits, strict)

    lines = []
    for paragraph in paragraphs:
        words = paragraph.split()
        if words:
            lines.extend(_wrap_paragraph(words, fits, strict))
        else:
            lines.append("")

    return lines


def layout(
    text: str,
    max_width: int,
    max_height: int,
    style: StyleSpec,
    rasterizer,
) -> LayoutResult:
    """
    Lay out text to fit a width × height box.

    With a fixed style.font_size the text is wrapped at that size and may
    overflow the height. Otherwise a binary search finds the largest size
    whose wrapped block fits max_height with no word wider than max_width.
    If no size fits, the minimum size is used and the block may overflow.

    Raises:
        LayoutError: If no rasterizer is available to measure text
    """
    if rasterizer is None:
        raise LayoutError("No text measurement available")

    if style.font_size is not None:
        lines = wrap_text(text, max_width, style, style.font_size, rasterizer)
        return LayoutResult(style.font_size, tuple(lines))

    best: Optional[LayoutResult] = None
    low = MIN_FONT_SIZE
    high = min(MAX_FONT_SIZE, max_height)

    while low <= high:
        size = (low + high) // 2

        try:
            lines = wrap_text(text, max_width, style, size, rasterizer, strict=True)
        except _WordTooLong:
            high = size - 1
            continue

        if len(lines) * size <= max_height:
            best = LayoutResult(size, tuple(lines))
            low = size + 1
        else:
            high = size - 1

    if best is None:
        lines = wrap_text(text, max_width, style, MIN_FONT_SIZE, rasterizer)
        best = LayoutResult(MIN_FONT_SIZE, tuple(lines))

    return best
