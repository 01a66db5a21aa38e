"""
BLE Connection Handler for T02 Printer.

Handles Bluetooth Low Energy communication using the Bleak library.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from .errors import ConnectionError, DeviceNotSelected, ServiceUnavailable


@dataclass
class PrinterInfo:
    """Information about a discovered printer.

    Attributes:
        name: Device advertised name (e.g., "T02-1234")
        address: Platform-specific identifier for connecting
            (MAC address on Linux/Windows, UUID on macOS)
        rssi: Signal strength in dB
    """
    name: str
    address: str
    rssi: int

    def __str__(self) -> str:
        return f"{self.name} [{self.address}] RSSI: {self.rssi} dB"


def find_write_characteristic(characteristics):
    """
    Pick the write characteristic from a service's characteristics.

    The printer exposes FF01-FF03; commands go to the one whose UUID
    contains "ff02" (case-insensitive).
    """
    for char in characteristics:
        if BLEConnection.WRITE_CHAR_MATCH in char.uuid.lower():
            return char
    return None


class BLEConnection:
    """Manages the BLE link to one T02 printer."""

    # Advertised name prefix of T02 printers
    DEVICE_PREFIX = "T02"

    # 16-bit service 0xFF00 in full UUID form
    SERVICE_UUID = "0000ff00-0000-1000-8000-00805f9b34fb"

    # Substring identifying the write characteristic (0xFF02)
    WRITE_CHAR_MATCH = "ff02"

    def __init__(self, debug: bool = False):
        self.client: Optional[BleakClient] = None
        self.address: Optional[str] = None
        self.write_char = None
        self._debug = debug

    def set_debug(self, enabled: bool):
        """Enable/disable debug output."""
        self._debug = enabled

    def _log(self, message: str):
        """Print debug message if enabled."""
        if self._debug:
            print(f"[T02] {message}")

    @classmethod
    async def scan(
        cls, timeout: float = 10.0, name_prefix: str = DEVICE_PREFIX
    ) -> list[PrinterInfo]:
        """Scan for printers whose advertised name starts with name_prefix."""
        printers = []
        devices = await BleakScanner.discover(timeout=timeout, return_adv=True)

        for device, adv_data in devices.values():
            name = device.name or adv_data.local_name or ""
            if name.upper().startswith(name_prefix.upper()):
                printers.append(PrinterInfo(
                    name=name,
                    address=device.address,
                    rssi=adv_data.rssi if adv_data.rssi is not None else -100,
                ))

        return sorted(printers, key=lambda p: p.rssi, reverse=True)

    async def connect(self, address: str):
        """
        Connect to a printer and locate its write characteristic.

        Raises:
            ConnectionError: If the link cannot be established
            ServiceUnavailable: If service 0xFF00 or the FF02
                characteristic is missing
        """
        self.address = address
        self.client = BleakClient(address, disconnected_callback=self._on_disconnect)

        self._log(f"Connecting to {address}...")
        try:
            await self.client.connect()
        except (BleakError, OSError, asyncio.TimeoutError) as e:
            self.client = None
            raise ConnectionError(f"Failed to connect to {address}: {e}") from e

        try:
            self._discover_characteristic()
        except ServiceUnavailable:
            await self.disconnect()
            raise

    def _discover_characteristic(self):
        """Find the FF02 write characteristic in service 0xFF00."""
        service = self.client.services.get_service(self.SERVICE_UUID)
        if service is None:
            raise ServiceUnavailable(f"Printer service {self.SERVICE_UUID} not found")

        self._log(
            "Available characteristics: "
            + ", ".join(c.uuid for c in service.characteristics)
        )

        char = find_write_characteristic(service.characteristics)
        if char is None:
            raise ServiceUnavailable("No writable characteristic found")

        self.write_char = char
        self._log(f"Found write characteristic: {char.uuid}")

    async def reconnect(self):
        """
        Re-establish the link to the last connected printer.

        Raises:
            DeviceNotSelected: If no printer has been connected before
        """
        if self.address is None:
            raise DeviceNotSelected("No device selected")
        await self.connect(self.address)

    def _on_disconnect(self, client: BleakClient):
        self._log("Printer disconnected")

    async def disconnect(self):
        """Disconnect from the printer."""
        if self.client and self.client.is_connected:
            await self.client.disconnect()
        self.client = None
        self.write_char = None

    async def write(self, data: bytes) -> bool:
        """Write one packet without waiting for a response."""
        if not self.client or not self.write_char:
            return False

        try:
            await self.client.write_gatt_char(self.write_char, data, response=False)
            return True
        except Exception as e:
            self._log(f"Write failed: {e}")
            return False

    @property
    def is_connected(self) -> bool:
        """Check if currently connected."""
        return self.client is not None and self.client.is_connected
