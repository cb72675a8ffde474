"""
Unit tests for telemetry parsing and the telemetry reader.
"""

import asyncio

import pytest

from printer_host.core.bus import ResponseBus
from printer_host.core.errors import PrinterTimeoutError, ProtocolError
from printer_host.core.gcode import GCodeSender
from printer_host.core.telemetry import (
    TelemetryReader,
    is_position_report,
    parse_position_report,
)
from printer_host.core.transport import MockTransport
from printer_host.core.types import Position


class TestParsePositionReport:

    def test_first_triple_is_target_second_is_current(self):
        snap = parse_position_report("X:10.0 Y:0.0 Z:5.0 X:9.5 Y:0.0 Z:5.0")
        assert snap.target_position == Position(10.0, 0.0, 5.0)
        assert snap.current_position == Position(9.5, 0.0, 5.0)

    def test_marlin_style_line(self):
        snap = parse_position_report(
            "X:10.00 Y:20.00 Z:5.00 E:0.00 Count X:10.00 Y:19.50 Z:5.00"
        )
        assert snap.target_position == Position(10, 20, 5)
        assert snap.current_position == Position(10, 19.5, 5)

    def test_internal_whitespace_stripped(self):
        snap = parse_position_report("X: 1.5  Y:\t2 Z: 3   X: 1 Y: 2 Z:3")
        assert snap.target_position == Position(1.5, 2, 3)
        assert snap.current_position == Position(1, 2, 3)

    def test_negative_values(self):
        snap = parse_position_report("X:-1 Y:0 Z:0 X:-0.5 Y:0 Z:0")
        assert snap.target_position.x == -1
        assert snap.current_position.x == -0.5

    def test_extra_occurrences_ignored(self):
        snap = parse_position_report("X:1 Y:1 Z:1 X:2 Y:2 Z:2 X:3 Y:3 Z:3")
        assert snap.target_position == Position(1, 1, 1)
        assert snap.current_position == Position(2, 2, 2)

    def test_single_triple_is_malformed(self):
        with pytest.raises(ProtocolError, match="malformed telemetry line"):
            parse_position_report("X:10.0 Y:0.0 Z:5.0 E:0.00")

    def test_missing_axis_is_malformed(self):
        with pytest.raises(ProtocolError):
            parse_position_report("X:1 Y:1 X:1 Y:1 Z:1")

    def test_garbage_number_is_malformed(self):
        with pytest.raises(ProtocolError):
            parse_position_report("X:1.2.3 Y:1 Z:1 X:1 Y:1 Z:1")

    def test_report_prefix(self):
        assert is_position_report("X:0 Y:0 Z:0")
        assert not is_position_report("ok")
        assert not is_position_report("echo:X:0")


@pytest.fixture
def reader_link():
    transport = MockTransport()
    bus = ResponseBus()
    transport.set_line_handler(bus.publish)
    sender = GCodeSender(transport, bus)
    return transport, bus, sender


class TestTelemetryReader:

    @pytest.mark.asyncio
    async def test_reads_snapshot(self, reader_link):
        transport, bus, sender = reader_link
        await transport.open()
        transport.target = transport.current = Position(12, 34, 5)

        snap = await TelemetryReader(sender, bus).read_snapshot()

        assert transport.sent_commands == ["M114"]
        assert snap.target_position == Position(12, 34, 5)
        assert snap.is_settled
        assert bus.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_ignores_unrelated_lines(self, reader_link):
        transport, bus, sender = reader_link
        await transport.open()
        transport.silent_commands.add("M114")

        task = asyncio.ensure_future(TelemetryReader(sender, bus).read_snapshot())
        await asyncio.sleep(0)
        transport.inject("ok")
        transport.inject("echo:busy: processing")
        transport.inject("X:1 Y:2 Z:3 X:0 Y:2 Z:3")

        snap = await task
        assert snap.target_position == Position(1, 2, 3)
        assert snap.current_position == Position(0, 2, 3)

    @pytest.mark.asyncio
    async def test_malformed_report_raises(self, reader_link):
        transport, bus, sender = reader_link
        await transport.open()
        transport.telemetry_override = "X:1 Y:2 Z:3"

        with pytest.raises(ProtocolError):
            await TelemetryReader(sender, bus).read_snapshot()

    @pytest.mark.asyncio
    async def test_timeout(self, reader_link):
        transport, bus, sender = reader_link
        await transport.open()
        transport.silent_commands.add("M114")

        with pytest.raises(PrinterTimeoutError):
            await TelemetryReader(sender, bus, timeout=0.01).read_snapshot()
        assert bus.subscriber_count == 0
