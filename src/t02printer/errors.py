"""
Exception classes for the T02 printer driver.

All errors raised by the driver derive from PrinterError so callers can
catch the whole family with a single except clause.
"""


class PrinterError(Exception):
    """Base exception for all printer errors."""

    pass


class ConnectionError(PrinterError):
    """Error connecting to the printer."""

    pass


class DeviceNotSelected(PrinterError):
    """No printer was chosen before an operation that needs one."""

    pass


class ServiceUnavailable(ConnectionError):
    """The printer service or its write characteristic is missing."""

    pass


class TransportError(PrinterError):
    """A command could not be written after exhausting all attempts."""

    pass


class RenderError(PrinterError):
    """The drawing surface could not be created or drawn on."""

    pass


class LayoutError(RenderError):
    """Text could not be measured for layout."""

    pass


class ProtocolError(PrinterError):
    """Dimensions outside the range the command format can encode."""

    pass
