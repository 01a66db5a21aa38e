"""
Transport Session for T02 Printer.

Delivers command frames over a BLE connection: frames are split into
packets no larger than the link allows, written in order with a short
pause between packets, and a frame whose write fails is resent from the
start a bounded number of times.
"""

import asyncio
from typing import Iterator, Optional

from .errors import TransportError
from .protocol import T02Commands


def chunk(frame: bytes, size: int) -> Iterator[bytes]:
    """Split frame into consecutive pieces of at most size bytes."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for i in range(0, len(frame), size):
        yield frame[i:i + size]


class Session:
    """
    Owns the link to one printer for the lifetime of a connection.

    INIT is written before the first command on every (re)established
    link. Reconnect failures are not retried; only packet writes are.
    """

    # Maximum BLE packet size accepted by the printer
    CHUNK_SIZE = 512

    # Pause after each packet to respect the link's flow control
    CHUNK_DELAY = 0.05

    # Total write attempts per frame (initial + retries)
    RETRY_ATTEMPTS = 3

    # Seconds between attempts
    RETRY_DELAY = 1.0

    def __init__(
        self,
        connection,
        chunk_size: int = CHUNK_SIZE,
        chunk_delay: float = CHUNK_DELAY,
        attempts: int = RETRY_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        debug: bool = False,
    ):
        """
        Initialize a session.

        Args:
            connection: Channel with connect/reconnect/write/disconnect
                and is_connected (e.g. BLEConnection)
            chunk_size: Maximum bytes per packet
            chunk_delay: Pause after each packet in seconds
            attempts: Total attempts per frame
            retry_delay: Delay between attempts in seconds
        """
        self.connection = connection
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.attempts = attempts
        self.retry_delay = retry_delay
        self.attempts_used = 0
        self._initialized = False
        self._debug = debug

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            print(f"[T02] {message}")

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    @property
    def initialized(self) -> bool:
        """Whether INIT has been written on the current link."""
        return self._initialized

    async def open(self, address: str) -> bool:
        """
        Connect to a printer and initialize it.

        Raises:
            ConnectionError: If the link cannot be established
            TransportError: If INIT cannot be written
        """
        self._initialized = False
        await self.connection.connect(address)
        return await self.initialize()

    async def close(self):
        """Disconnect and forget the link state."""
        self._initialized = False
        await self.connection.disconnect()

    async def _write_frame(self, frame: bytes) -> bool:
        """Write all packets of a frame. Returns False on the first failed packet."""
        total = (len(frame) + self.chunk_size - 1) // self.chunk_size

        for number, packet in enumerate(chunk(frame, self.chunk_size), 1):
            if not await self.connection.write(packet):
                self._log(f"Write failed at chunk {number}/{total}")
                return False
            # Small delay between chunks to avoid overwhelming the printer
            if self.chunk_delay > 0:
                await asyncio.sleep(self.chunk_delay)

        return True

    async def _ensure_ready(self) -> bool:
        """Reconnect if the link dropped and write INIT if needed."""
        if not self.connection.is_connected:
            self._log("Connection dropped, reconnecting...")
            self._initialized = False
            await self.connection.reconnect()

        if not self._initialized:
            self._log("Initializing printer...")
            if not await self._write_frame(T02Commands.initialize()):
                return False
            self._initialized = True

        return True

    async def _deliver(self, frame: Optional[bytes]) -> bool:
        self.attempts_used = 0

        for attempt in range(1, self.attempts + 1):
            self.attempts_used = attempt
            if attempt > 1:
                self._log(f"Retrying command... (attempt {attempt}/{self.attempts})")
                await asyncio.sleep(self.retry_delay)

            if not await self._ensure_ready():
                continue

            if frame is None or await self._write_frame(frame):
                return True

        size = len(frame) if frame is not None else len(T02Commands.initialize())
        raise TransportError(
            f"Failed to send {size} byte command after {self.attempts} attempt(s)"
        )

    async def initialize(self) -> bool:
        """
        Write INIT if it has not been written on the current link.

        Raises:
            TransportError: If INIT could not be written within the
                attempt budget
        """
        return await self._deliver(None)

    async def send(self, frame: bytes) -> bool:
        """
        Send one command frame, initializing the printer first if needed.

        Returns:
            True once every packet of the frame has been written

        Raises:
            TransportError: If the frame could not be written within the
                attempt budget
            ConnectionError: If reconnecting fails (not retried)
            DeviceNotSelected: If the link dropped and no printer is known
        """
        return await self._deliver(frame)
