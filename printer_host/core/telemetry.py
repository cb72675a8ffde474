"""
Telemetry - reading target/current position from M114.

The report line carries two X:/Y:/Z: triples. The first is the target
(last commanded destination), the second the current position:

  X:10.00 Y:0.00 Z:5.00 E:0.00 Count X:9.50 Y:0.00 Z:5.00
"""

from __future__ import annotations

import asyncio
import re
from typing import Optional

from .bus import ResponseBus
from .errors import PrinterTimeoutError, ProtocolError
from .gcode import GCodeSender
from .types import AXES, GetPositionCommand, Position, PositionSnapshot


REPORT_PREFIX = "X:"

_WHITESPACE = re.compile(r"\s+")
_AXIS_PATTERNS = {axis: re.compile(rf"{axis}:(-?[0-9.]+)") for axis in AXES}


def is_position_report(line: str) -> bool:
    return line.startswith(REPORT_PREFIX)


def parse_position_report(line: str) -> PositionSnapshot:
    """
    Parse an M114 report into a PositionSnapshot.

    Raises ProtocolError if any axis has fewer than two values.
    """
    compact = _WHITESPACE.sub("", line)

    targets = {}
    currents = {}
    for axis, pattern in _AXIS_PATTERNS.items():
        values = pattern.findall(compact)
        if len(values) < 2:
            raise ProtocolError(f"malformed telemetry line: {line!r}")
        try:
            targets[axis.lower()] = float(values[0])
            currents[axis.lower()] = float(values[1])
        except ValueError:
            raise ProtocolError(f"malformed telemetry line: {line!r}") from None

    return PositionSnapshot(
        current_position=Position(**currents),
        target_position=Position(**targets),
    )


class TelemetryReader:
    """Requests and parses position telemetry"""

    def __init__(self, sender: GCodeSender, bus: ResponseBus,
                 timeout: Optional[float] = None):
        self.sender = sender
        self.bus = bus
        self.timeout = timeout

    async def read_snapshot(self) -> PositionSnapshot:
        """
        Send M114 and wait for the report line.

        The firmware answers M114 with the report itself, so no separate
        acknowledgement is awaited.
        """
        report = self.bus.wait_for(is_position_report)
        try:
            await self.sender.send(GetPositionCommand().to_gcode(), wait_ok=False)
        except BaseException:
            report.cancel()
            raise

        try:
            line = await asyncio.wait_for(report, self.timeout)
        except asyncio.TimeoutError:
            raise PrinterTimeoutError(
                f"No position report within {self.timeout}s"
            ) from None
        return parse_position_report(line)
