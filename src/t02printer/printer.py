"""
High-Level T02 Printer Interface.

Provides a simple API for printing text on T02 thermal receipt printers:
layout, render, dither, pack, then send as ESC/POS-style frames.
"""

from enum import Enum
from typing import Optional

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
from .image import CUT_GUIDE_ROWS, pack_bitmap
from .layout import LayoutResult, StyleSpec, layout
from .protocol import T02Commands
from .render import PRINT_WIDTH, PillowRasterizer, render_text
from .session import Session

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
]

# Paper millimetres to print pixels, as used by the T02 companion app
MM_TO_PX_RATIO = 0.82


def mm_to_px(mm: float, ratio: float = MM_TO_PX_RATIO) -> int:
    """Convert a print height in millimetres to pixels (rounded half up)."""
    return int(mm * ratio + 0.5)


class PrinterState(Enum):
    """Lifecycle of a T02Printer."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    RENDERING = "rendering"
    TRANSMITTING = "transmitting"


class T02Printer:
    """
    High-level interface to a T02 thermal printer.

    Operations are not arbitrated: callers must await one operation
    before starting the next.
    """

    # Print head width in dots
    PRINT_WIDTH = PRINT_WIDTH

    def __init__(
        self,
        rasterizer=None,
        chunk_size: int = Session.CHUNK_SIZE,
        chunk_delay: float = Session.CHUNK_DELAY,
        retry_attempts: int = Session.RETRY_ATTEMPTS,
        retry_delay: float = Session.RETRY_DELAY,
        device_prefix: str = BLEConnection.DEVICE_PREFIX,
    ):
        """
        Initialize printer interface.

        Args:
            rasterizer: Text rasterizer (default PillowRasterizer)
            chunk_size: Maximum bytes per BLE packet (default 512)
            chunk_delay: Pause between packets in seconds (default 0.05)
            retry_attempts: Total attempts per command (default 3)
            retry_delay: Delay between attempts in seconds (default 1.0)
            device_prefix: Advertised name prefix used when scanning
        """
        self.rasterizer = rasterizer if rasterizer is not None else PillowRasterizer()
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.device_prefix = device_prefix

        self.session: Optional[Session] = None
        self.state = PrinterState.DISCONNECTED
        self.pending_text: Optional[str] = None
        self.preview: Optional[str] = None
        self.last_layout: Optional[LayoutResult] = None
        self._debug = False

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled
        if self.session:
            self.session.set_debug(enabled)
            self.session.connection.set_debug(enabled)

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            print(f"[T02] {message}")

    def _new_session(self) -> Session:
        return Session(
            BLEConnection(debug=self._debug),
            chunk_size=self.chunk_size,
            chunk_delay=self.chunk_delay,
            attempts=self.retry_attempts,
            retry_delay=self.retry_delay,
            debug=self._debug,
        )

    @classmethod
    async def scan(
        cls, timeout: float = 10.0, name_prefix: str = BLEConnection.DEVICE_PREFIX
    ) -> list[PrinterInfo]:
        """Scan for available T02 printers."""
        return await BLEConnection.scan(timeout, name_prefix)

    async def connect(self, address: Optional[str] = None, timeout: float = 10.0) -> bool:
        """
        Connect to a printer and initialize it.

        Args:
            address: Bluetooth address; if omitted, scans and picks the
                strongest printer advertising the device prefix
            timeout: Scan timeout in seconds

        Returns:
            True if connection successful

        Raises:
            DeviceNotSelected: If no address was given and no printer was found
            ConnectionError: If the link cannot be established
            ServiceUnavailable: If the printer service is missing
            TransportError: If the printer cannot be initialized
        """
        if address is None:
            self._log(f"Scanning for {self.device_prefix} printers...")
            printers = await self.scan(timeout, self.device_prefix)
            if not printers:
                raise DeviceNotSelected("No device selected")
            address = printers[0].address
            self._log(f"Selected {printers[0]}")

        if self.session is not None:
            await self._teardown()

        session = self._new_session()
        try:
            await session.open(address)
        except PrinterError:
            # The link may be up even though INIT failed
            await session.close()
            raise

        self.session = session
        self.state = PrinterState.CONNECTED
        self._log("Connected to printer")
        return True

    async def disconnect(self):
        """Disconnect from the printer."""
        session, self.session = self.session, None
        self.state = PrinterState.DISCONNECTED
        self.pending_text = None
        self.preview = None
        if session is not None:
            await session.close()
        self._log("Disconnected")

    def _require_session(self) -> Session:
        if self.session is None:
            raise DeviceNotSelected("No device selected")
        return self.session

    def layout(
        self, text: str, height: int, style: Optional[StyleSpec] = None
    ) -> LayoutResult:
        """Lay out text for an image of the given height (cut guides excluded)."""
        return layout(
            text,
            self.PRINT_WIDTH,
            height - 2 * CUT_GUIDE_ROWS,
            style or StyleSpec(),
            self.rasterizer,
        )

    def get_preview(
        self, text: str, height: int, style: Optional[StyleSpec] = None
    ) -> str:
        """
        Render text without dithering and return it as a PNG data URI.

        Never touches the printer connection.
        The resolved layout is kept in last_layout.

        Raises:
            RenderError: If the text cannot be rendered
        """
        result = render_text(self.rasterizer, text, height, style, dither=False)
        self.pending_text = text
        self.last_layout = result.layout
        self.preview = self.rasterizer.encode_png(result.surface)
        return self.preview

    async def _send(self, session: Session, frame: bytes):
        try:
            await session.send(frame)
        except (TransportError, ConnectionError, DeviceNotSelected) as e:
            self._log(f"Send failed, dropping connection: {e}")
            await self._teardown()
            raise

    async def _teardown(self):
        session, self.session = self.session, None
        self.state = PrinterState.DISCONNECTED
        if session is not None:
            await session.close()

    async def print_text(
        self, text: str, height: int, style: Optional[StyleSpec] = None
    ) -> bool:
        """
        Print text as a raster image.

        Args:
            text: Text to print
            height: Image height in pixels (see mm_to_px)
            style: Text style (default StyleSpec(): auto-fit Arial)

        Returns:
            True once all frames have been sent

        Raises:
            DeviceNotSelected: If not connected
            ProtocolError: If the height cannot be encoded
            RenderError: If the text cannot be rendered
            TransportError: If a frame could not be sent; the connection
                is dropped
        """
        session = self._require_session()

        # Validate dimensions before spending time on rendering
        T02Commands.bitmap_header(self.PRINT_WIDTH, height)

        self.state = PrinterState.RENDERING
        try:
            self._log("Rendering text...")
            result = render_text(self.rasterizer, text, height, style, dither=True)
            bitmap = pack_bitmap(result.pixels)
            frames = T02Commands.print_job(self.PRINT_WIDTH, height, bitmap)
        except PrinterError:
            self.state = PrinterState.CONNECTED
            raise

        self._log(
            f"Font size {result.layout.font_size}, {len(result.layout.lines)} line(s), "
            f"bitmap {len(bitmap)} bytes"
        )

        self.state = PrinterState.TRANSMITTING
        for frame in frames:
            await self._send(session, frame)

        self.state = PrinterState.CONNECTED
        self.pending_text = None
        self.preview = None
        self._log("Print job sent successfully")
        return True

    async def feed_paper(self, cut: bool = False) -> bool:
        """
        Feed the paper one line, optionally cutting.

        Raises:
            DeviceNotSelected: If not connected
            TransportError: If the command could not be sent
        """
        session = self._require_session()
        self._log("Feeding paper...")

        self.state = PrinterState.TRANSMITTING
        command = T02Commands.feed_and_cut() if cut else T02Commands.feed_paper()
        await self._send(session, command)

        self.state = PrinterState.CONNECTED
        return True

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to a printer."""
        return self.session is not None and self.session.is_connected


async def quick_print(
    text: str,
    height_mm: float = 90.0,
    address: Optional[str] = None,
    style: Optional[StyleSpec] = None,
) -> bool:
    """
    Convenience function to connect, print text and disconnect.

    Args:
        text: Text to print
        height_mm: Print height in millimetres (default 90)
        address: Printer Bluetooth address (scans if omitted)
        style: Text style

    Returns:
        True if successful
    """
    printer = T02Printer()

    try:
        await printer.connect(address)
        return await printer.print_text(text, mm_to_px(height_mm), style)
    finally:
        await printer.disconnect()
