"""
Command-Line Interface for T02 Printer.

Usage:
    t02 scan                 - Scan for printers
    t02 print TEXT           - Print text
    t02 feed                 - Feed paper
    t02 preview TEXT -o FILE - Render a preview PNG without printing
"""

import asyncio
import base64
import re
import sys
from typing import Optional

import click

from .layout import StyleSpec
from .printer import (
    T02Printer,
    PrinterError,
    ConnectionError,
    DeviceNotSelected,
    TransportError,
    RenderError,
    ProtocolError,
    mm_to_px,
)


# Bluetooth MAC address format: XX:XX:XX:XX:XX:XX (hex pairs separated by colons)
BLUETOOTH_MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")

# macOS CoreBluetooth UUID format: XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX
MACOS_UUID_PATTERN = re.compile(
    r"^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}$"
)

DEFAULT_HEIGHT_MM = 90.0


def validate_bluetooth_address(ctx, param, value):
    """Validate Bluetooth address format.

    Accepts:
        - MAC address format: XX:XX:XX:XX:XX:XX (Linux/Windows)
        - UUID format: XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX (macOS)

    Returns:
        The validated address (uppercased for consistency)

    Raises:
        click.BadParameter: If the address format is invalid
    """
    if value is None:
        return None
    if BLUETOOTH_MAC_PATTERN.match(value) or MACOS_UUID_PATTERN.match(value):
        return value.upper()
    raise click.BadParameter(
        f"Invalid Bluetooth address format: '{value}'. "
        "Expected MAC format XX:XX:XX:XX:XX:XX or "
        "macOS UUID format XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX"
    )


async def scan_and_select(timeout: float = 10.0) -> Optional[str]:
    """Scan for printers and let user select one interactively.

    Returns:
        Selected printer address, or None if no printer selected
    """
    click.echo(f"Scanning for printers ({timeout}s)...")
    printers = await T02Printer.scan(timeout=timeout)

    if not printers:
        click.echo("No printers found.", err=True)
        return None

    if len(printers) == 1:
        printer = printers[0]
        click.echo(f"Found 1 printer: {printer.name} - using automatically")
        return printer.address

    click.echo(f"\nFound {len(printers)} printer(s):\n")
    for i, p in enumerate(printers, 1):
        click.echo(f"  [{i}] {p}")

    click.echo()
    while True:
        try:
            choice = click.prompt(f"Select printer (1-{len(printers)})", type=int)
            if 1 <= choice <= len(printers):
                selected = printers[choice - 1]
                click.echo(f"Selected: {selected.name}")
                return selected.address
            click.echo(f"Please enter a number between 1 and {len(printers)}", err=True)
        except click.Abort:
            return None


def style_options(f):
    """Attach the text style options to a command."""
    options = [
        click.option("--font", "font_family", default="Arial", help="Font family (default Arial)"),
        click.option(
            "--size",
            "font_size",
            type=click.IntRange(8, 200),
            default=None,
            help="Fixed font size in pixels (default: fit to height)",
        ),
        click.option("--bold", is_flag=True, help="Bold text"),
        click.option("--italic", is_flag=True, help="Italic text"),
        click.option("--underline", is_flag=True, help="Underline each line"),
        click.option(
            "--height-mm",
            type=click.FloatRange(min=5.0, max=5000.0),
            default=DEFAULT_HEIGHT_MM,
            help=f"Print height in mm (default {DEFAULT_HEIGHT_MM:g})",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_style(font_family, font_size, bold, italic, underline) -> StyleSpec:
    return StyleSpec(
        font_family=font_family,
        bold=bold,
        italic=italic,
        underline=underline,
        font_size=font_size,
    )


def report_error(e: PrinterError):
    """Print a printer error in a form suited to its class."""
    if isinstance(e, DeviceNotSelected):
        click.echo("No printer found!", err=True)
    elif isinstance(e, ConnectionError):
        click.echo(f"Connection error: {e}", err=True)
    elif isinstance(e, TransportError):
        click.echo(f"Print error: {e}", err=True)
    elif isinstance(e, (RenderError, ProtocolError)):
        click.echo(f"Render error: {e}", err=True)
    else:
        click.echo(f"Printer error: {e}", err=True)


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug output")
@click.pass_context
def main(ctx, debug):
    """T02 Thermal Printer CLI."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option("--timeout", default=10.0, help="Scan timeout in seconds")
def scan(timeout):
    """Scan for T02 printers."""

    async def _scan():
        click.echo(f"Scanning for printers ({timeout}s)...")
        printers = await T02Printer.scan(timeout=timeout)

        if not printers:
            click.echo("No printers found.")
            return

        click.echo(f"\nFound {len(printers)} printer(s):\n")
        for p in printers:
            click.echo(f"  {p}")

    asyncio.run(_scan())


@main.command("print")
@click.argument("text")
@click.option(
    "--address",
    "-a",
    callback=validate_bluetooth_address,
    help="Printer Bluetooth address (if omitted, scans and prompts)",
)
@style_options
@click.pass_context
def print_text(ctx, text, address, font_family, font_size, bold, italic, underline, height_mm):
    """Print TEXT, fitted to the print height.

    Examples:
        t02 print "Hello World"
        t02 print "Shelf 3" --height-mm 40 --bold
        t02 print "Note" --size 32 -a AA:BB:CC:DD:EE:FF
    """
    if not text.strip():
        click.echo("Nothing to print.", err=True)
        sys.exit(1)

    style = build_style(font_family, font_size, bold, italic, underline)
    height = mm_to_px(height_mm)

    async def _print():
        nonlocal address
        if address is None:
            address = await scan_and_select()
            if address is None:
                sys.exit(1)

        printer = T02Printer()
        printer.set_debug(ctx.obj["debug"])

        click.echo(f"Connecting to {address}...")

        try:
            await printer.connect(address)
            click.echo(f"Printing {height} px tall...")
            await printer.print_text(text, height, style)
            click.echo("Print complete!")
        except PrinterError as e:
            report_error(e)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_print())


@main.command()
@click.option(
    "--address",
    "-a",
    callback=validate_bluetooth_address,
    help="Printer Bluetooth address (if omitted, scans and prompts)",
)
@click.option("--cut", is_flag=True, help="Cut after feeding (printers with a cutter)")
@click.pass_context
def feed(ctx, address, cut):
    """Feed the paper one line."""

    async def _feed():
        nonlocal address
        if address is None:
            address = await scan_and_select()
            if address is None:
                sys.exit(1)

        printer = T02Printer()
        printer.set_debug(ctx.obj["debug"])

        click.echo(f"Connecting to {address}...")

        try:
            await printer.connect(address)
            await printer.feed_paper(cut=cut)
            click.echo("Paper fed.")
        except PrinterError as e:
            report_error(e)
            sys.exit(1)
        finally:
            await printer.disconnect()

    asyncio.run(_feed())


@main.command()
@click.argument("text")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    required=True,
    help="PNG file to write",
)
@style_options
def preview(text, output, font_family, font_size, bold, italic, underline, height_mm):
    """Render TEXT to a PNG file without printing."""
    style = build_style(font_family, font_size, bold, italic, underline)
    height = mm_to_px(height_mm)

    printer = T02Printer()
    try:
        data_uri = printer.get_preview(text, height, style)
    except PrinterError as e:
        report_error(e)
        sys.exit(1)

    _, encoded = data_uri.split(",", 1)
    with open(output, "wb") as f:
        f.write(base64.b64decode(encoded))

    result = printer.last_layout
    click.echo(
        f"Wrote {output} ({T02Printer.PRINT_WIDTH}x{height} px, "
        f"font size {result.font_size}, {len(result.lines)} line(s))"
    )


if __name__ == "__main__":
    main()
