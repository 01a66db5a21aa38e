"""
Pytest configuration for T02 printer tests.

Provides fixtures and command-line options for hardware tests, plus
in-memory stand-ins for the BLE channel and the text rasterizer.
"""

import pytest
import pytest_asyncio

from t02printer import T02Printer


def pytest_addoption(parser):
    """Add command-line options for hardware tests."""
    parser.addoption(
        "--address",
        action="store",
        default=None,
        help="Bluetooth address of the printer for hardware tests",
    )


class FakeChannel:
    """In-memory BLE channel recording every packet written."""

    def __init__(self, results=None, fail_all=False):
        self.is_connected = False
        self.address = None
        self.writes = []
        self.results = list(results or [])
        self.fail_all = fail_all
        self.connect_calls = 0
        self.reconnect_calls = 0
        self.disconnect_calls = 0

    def set_debug(self, enabled):
        pass

    async def connect(self, address):
        self.connect_calls += 1
        self.address = address
        self.is_connected = True

    async def reconnect(self):
        self.reconnect_calls += 1
        self.is_connected = True

    async def disconnect(self):
        self.disconnect_calls += 1
        self.is_connected = False

    async def write(self, data):
        self.writes.append(bytes(data))
        if self.fail_all:
            return False
        if self.results:
            return self.results.pop(0)
        return True


class FakeRasterizer:
    """Rasterizer whose glyphs are all half as wide as the font size."""

    def load_font(self, style, size):
        return size

    def measure_width(self, text, font):
        return len(text) * font * 0.5


@pytest.fixture
def fake_channel():
    """Provide a connected-on-demand fake BLE channel."""
    return FakeChannel()


@pytest.fixture
def fake_rasterizer():
    """Provide a deterministic text measurer."""
    return FakeRasterizer()


@pytest.fixture
def printer_address(request):
    """Get the printer address from command line."""
    address = request.config.getoption("--address")
    if address is None:
        pytest.skip("No printer address provided (use --address=XX:XX:XX:XX:XX:XX)")
    return address


@pytest_asyncio.fixture
async def connected_printer(printer_address):
    """Provide a connected printer instance."""
    printer = T02Printer()
    printer.set_debug(True)

    try:
        await printer.connect(printer_address)
    except Exception as e:
        pytest.skip(f"Could not connect to printer at {printer_address}: {e}")

    yield printer

    await printer.disconnect()


@pytest.fixture
def make_channel():
    """Build fake channels with scripted write results."""
    return FakeChannel
