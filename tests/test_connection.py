"""Tests for BLE connection handling."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bleak.exc import BleakError

from t02printer.connection import BLEConnection, PrinterInfo, find_write_characteristic
from t02printer.errors import ConnectionError, DeviceNotSelected, ServiceUnavailable


def char(uuid):
    return SimpleNamespace(uuid=uuid)


def mock_client(service=None, connect_error=None):
    """Create a mock BleakClient exposing one service."""
    client = MagicMock()
    client.is_connected = True
    client.connect = AsyncMock(side_effect=connect_error)
    client.disconnect = AsyncMock()
    client.write_gatt_char = AsyncMock()
    client.services.get_service = MagicMock(return_value=service)
    return client


T02_SERVICE = SimpleNamespace(characteristics=[
    char("0000ff01-0000-1000-8000-00805f9b34fb"),
    char("0000ff02-0000-1000-8000-00805f9b34fb"),
    char("0000ff03-0000-1000-8000-00805f9b34fb"),
])


class TestFindWriteCharacteristic:
    """Test selection of the FF02 characteristic."""

    def test_picks_ff02(self):
        """The characteristic containing ff02 is chosen."""
        found = find_write_characteristic(T02_SERVICE.characteristics)
        assert found.uuid == "0000ff02-0000-1000-8000-00805f9b34fb"

    def test_case_insensitive(self):
        """Upper-case UUIDs match too."""
        chars = [char("0000FF01-0000-1000-8000-00805F9B34FB"),
                 char("0000FF02-0000-1000-8000-00805F9B34FB")]
        assert find_write_characteristic(chars) is chars[1]

    def test_substring_match(self):
        """Any UUID containing ff02 qualifies; the first one wins."""
        chars = [char("abcdff02"), char("0000ff02-0000-1000-8000-00805f9b34fb")]
        assert find_write_characteristic(chars) is chars[0]

    def test_none_when_missing(self):
        """No match returns None."""
        assert find_write_characteristic([char("0000ff01-0000")]) is None
        assert find_write_characteristic([]) is None


class TestPrinterInfo:
    """Tests for PrinterInfo dataclass."""

    def test_str(self):
        info = PrinterInfo(name="T02-1234", address="AA:BB:CC:DD:EE:FF", rssi=-45)
        assert str(info) == "T02-1234 [AA:BB:CC:DD:EE:FF] RSSI: -45 dB"


class TestConnect:
    """Test connection setup."""

    @pytest.mark.asyncio
    async def test_connect_finds_write_characteristic(self):
        """Connecting locates service 0xFF00 and its FF02 characteristic."""
        client = mock_client(T02_SERVICE)
        with patch("t02printer.connection.BleakClient", return_value=client):
            conn = BLEConnection()
            await conn.connect("AA:BB:CC:DD:EE:FF")

        client.services.get_service.assert_called_once_with(BLEConnection.SERVICE_UUID)
        assert conn.write_char.uuid.startswith("0000ff02")
        assert conn.address == "AA:BB:CC:DD:EE:FF"
        assert conn.is_connected

    def test_service_uuid_is_ff00(self):
        """The service is the 16-bit UUID 0xFF00 in base UUID form."""
        assert BLEConnection.SERVICE_UUID.startswith("0000ff00-")

    @pytest.mark.asyncio
    async def test_missing_service(self):
        """A printer without service 0xFF00 is rejected and disconnected."""
        client = mock_client(None)
        with patch("t02printer.connection.BleakClient", return_value=client):
            conn = BLEConnection()
            with pytest.raises(ServiceUnavailable, match="service"):
                await conn.connect("AA:BB:CC:DD:EE:FF")

        client.disconnect.assert_awaited_once()
        assert conn.client is None

    @pytest.mark.asyncio
    async def test_missing_characteristic(self):
        """A service without FF02 is rejected."""
        service = SimpleNamespace(characteristics=[char("0000ff01-0000")])
        client = mock_client(service)
        with patch("t02printer.connection.BleakClient", return_value=client):
            with pytest.raises(ServiceUnavailable, match="No writable characteristic"):
                await BLEConnection().connect("AA:BB:CC:DD:EE:FF")

    @pytest.mark.asyncio
    async def test_connect_failure_wrapped(self):
        """Bleak errors surface as ConnectionError."""
        client = mock_client(T02_SERVICE, connect_error=BleakError("timeout"))
        with patch("t02printer.connection.BleakClient", return_value=client):
            conn = BLEConnection()
            with pytest.raises(ConnectionError, match="timeout"):
                await conn.connect("AA:BB:CC:DD:EE:FF")
        assert not conn.is_connected

    def test_service_unavailable_is_connection_error(self):
        """ServiceUnavailable can be caught as ConnectionError."""
        assert issubclass(ServiceUnavailable, ConnectionError)

    @pytest.mark.asyncio
    async def test_reconnect_uses_last_address(self):
        """reconnect() connects to the previous address again."""
        client = mock_client(T02_SERVICE)
        with patch("t02printer.connection.BleakClient", return_value=client) as cls:
            conn = BLEConnection()
            await conn.connect("AA:BB:CC:DD:EE:FF")
            await conn.reconnect()

        assert cls.call_count == 2
        assert cls.call_args.args[0] == "AA:BB:CC:DD:EE:FF"

    @pytest.mark.asyncio
    async def test_reconnect_without_device(self):
        """reconnect() needs a previously selected device."""
        with pytest.raises(DeviceNotSelected):
            await BLEConnection().reconnect()

    @pytest.mark.asyncio
    async def test_disconnect_clears_state(self):
        """disconnect() forgets the client and characteristic."""
        client = mock_client(T02_SERVICE)
        with patch("t02printer.connection.BleakClient", return_value=client):
            conn = BLEConnection()
            await conn.connect("AA:BB:CC:DD:EE:FF")
            await conn.disconnect()

        client.disconnect.assert_awaited_once()
        assert conn.client is None
        assert conn.write_char is None
        assert not conn.is_connected


class TestWrite:
    """Test packet writes."""

    @pytest.mark.asyncio
    async def test_write_without_response(self):
        """Packets are written unacknowledged to FF02."""
        client = mock_client(T02_SERVICE)
        with patch("t02printer.connection.BleakClient", return_value=client):
            conn = BLEConnection()
            await conn.connect("AA:BB:CC:DD:EE:FF")

        assert await conn.write(b"\x1b\x40") is True
        client.write_gatt_char.assert_awaited_once_with(
            conn.write_char, b"\x1b\x40", response=False
        )

    @pytest.mark.asyncio
    async def test_write_failure_returns_false(self):
        """Write errors are reported as False."""
        client = mock_client(T02_SERVICE)
        client.write_gatt_char = AsyncMock(side_effect=BleakError("lost"))
        with patch("t02printer.connection.BleakClient", return_value=client):
            conn = BLEConnection()
            await conn.connect("AA:BB:CC:DD:EE:FF")

        assert await conn.write(b"\x00") is False

    @pytest.mark.asyncio
    async def test_write_when_not_connected(self):
        """Writing without a connection fails."""
        assert await BLEConnection().write(b"\x00") is False


class TestScan:
    """Test printer discovery."""

    @pytest.mark.asyncio
    async def test_filters_by_prefix_and_sorts(self):
        """Only T02 devices are returned, strongest first."""
        def entry(name, address, rssi):
            device = SimpleNamespace(name=name, address=address)
            adv = SimpleNamespace(local_name=None, rssi=rssi)
            return address, (device, adv)

        found = dict([
            entry("T02-A", "11:11:11:11:11:11", -80),
            entry("Headphones", "22:22:22:22:22:22", -30),
            entry("t02-B", "33:33:33:33:33:33", -40),
            entry(None, "44:44:44:44:44:44", -20),
        ])
        with patch(
            "t02printer.connection.BleakScanner.discover",
            new=AsyncMock(return_value=found),
        ):
            printers = await BLEConnection.scan(timeout=1.0)

        assert [p.address for p in printers] == [
            "33:33:33:33:33:33",
            "11:11:11:11:11:11",
        ]

    @pytest.mark.asyncio
    async def test_custom_prefix(self):
        """A different name prefix can be requested."""
        device = SimpleNamespace(name="PPG-1", address="55:55:55:55:55:55")
        adv = SimpleNamespace(local_name=None, rssi=None)
        with patch(
            "t02printer.connection.BleakScanner.discover",
            new=AsyncMock(return_value={"x": (device, adv)}),
        ):
            printers = await BLEConnection.scan(timeout=1.0, name_prefix="PPG")

        assert len(printers) == 1
        assert printers[0].rssi == -100
