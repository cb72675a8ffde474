"""
Transport layer - carries G-code lines to the firmware and replies back.

Provides:
- Transport protocol (interface)
- MockTransport, an in-memory Marlin-style firmware for testing
- (SerialTransport in separate file for production)
"""

from __future__ import annotations

import asyncio
import re
from typing import Callable, List, Optional, Protocol, Set

from .errors import TransportError
from .types import AXES, CoordinateMode, ORIGIN, Position, format_number


LineHandler = Callable[[str], None]


class Transport(Protocol):
    """Protocol for a line-oriented firmware link."""

    async def open(self) -> bool:
        """Open the link. Returns True once connected, False on failure."""
        ...

    async def write_line(self, text: str) -> None:
        """Write text followed by a newline. Raises TransportError on failure."""
        ...

    async def close(self) -> None:
        ...

    def set_line_handler(self, handler: Optional[LineHandler]) -> None:
        """Register the callable that receives every incoming line."""
        ...

    @property
    def is_connected(self) -> bool:
        ...


class MockTransport:
    """
    Mock transport for testing without hardware.

    Simulates a Marlin-style firmware: tracks coordinate mode and position,
    acknowledges every command with "ok" and answers M114 with a telemetry
    line (no "ok" follows it).

    settle_polls makes the reported current position lag the target for
    that many M114 queries after each move.
    """

    def __init__(self, connect_ok: bool = True, settle_polls: int = 0):
        self.sent_commands: List[str] = []
        self.connect_ok = connect_ok
        self.settle_polls = settle_polls
        self.fail_writes = False
        self.silent_commands: Set[str] = set()
        self.telemetry_override: Optional[str] = None

        self.mode = CoordinateMode.ABSOLUTE  # firmware boot default
        self.target: Position = ORIGIN
        self.current: Position = ORIGIN
        self.homed_axes: Set[str] = set()
        self.feedrate: Optional[float] = None  # mm/min
        self.position_query_count = 0

        self._lag_remaining = 0
        self._connected = False
        self._line_handler: Optional[LineHandler] = None

    @property
    def command_count(self) -> int:
        """Number of commands sent."""
        return len(self.sent_commands)

    @property
    def is_connected(self) -> bool:
        return self._connected

    def set_line_handler(self, handler: Optional[LineHandler]) -> None:
        self._line_handler = handler

    async def open(self) -> bool:
        self._connected = self.connect_ok
        return self._connected

    async def close(self) -> None:
        self._connected = False

    async def write_line(self, text: str) -> None:
        """
        Accept one or more newline separated commands.

        Replies are scheduled on the event loop, so they arrive after the
        writer has yielded, as they would from a real serial port.
        """
        if not self._connected:
            raise TransportError("Not connected")
        if self.fail_writes:
            raise TransportError("Simulated write failure")

        loop = asyncio.get_running_loop()
        for raw in text.split("\n"):
            gcode = raw.strip()
            if not gcode:
                continue
            self.sent_commands.append(gcode)
            for reply in self._respond(gcode):
                loop.call_soon(self.inject, reply)

    def inject(self, line: str) -> None:
        """Deliver an arbitrary firmware line (echo:, busy:, etc.)."""
        if self._line_handler:
            self._line_handler(line)

    def _respond(self, gcode: str) -> List[str]:
        if gcode in self.silent_commands:
            return []

        word = gcode.split()[0].upper()

        if word == "G90":
            self.mode = CoordinateMode.ABSOLUTE
        elif word == "G91":
            self.mode = CoordinateMode.RELATIVE
        elif word == "G28":
            self._simulate_home(gcode)
        elif word in ("G0", "G1"):
            self._simulate_move(gcode)
        elif word == "M114":
            return [self._telemetry_line()]

        return ["ok"]

    def _simulate_home(self, gcode: str) -> None:
        axes = [a for a in gcode.split()[1:] if a in AXES] or list(AXES)
        values = self.target.to_dict()
        for axis in axes:
            values[axis.lower()] = 0.0
            self.homed_axes.add(axis)
        self.target = Position.from_dict(values)
        self.current = self.target
        self._lag_remaining = 0

    def _simulate_move(self, gcode: str) -> None:
        """Parse G0/G1 and update simulated target (and feed rate)."""
        f_match = re.search(r'F([-\d.]+)', gcode)
        if f_match:
            self.feedrate = float(f_match.group(1))

        values = self.target.to_dict()
        moved = False
        for axis in AXES:
            match = re.search(rf'{axis}([-\d.]+)', gcode)
            if not match:
                continue
            moved = True
            value = float(match.group(1))
            if self.mode == CoordinateMode.RELATIVE:
                values[axis.lower()] += value
            else:
                values[axis.lower()] = value

        if not moved:
            return
        if self._lag_remaining == 0:
            self.current = self.target
        self.target = Position.from_dict(values)
        if self.settle_polls > 0:
            self._lag_remaining = self.settle_polls
        else:
            self.current = self.target

    def _telemetry_line(self) -> str:
        self.position_query_count += 1
        if self.telemetry_override is not None:
            return self.telemetry_override

        if self._lag_remaining > 0:
            self._lag_remaining -= 1
        else:
            self.current = self.target

        t, c = self.target, self.current
        return (
            f"X:{format_number(t.x)} Y:{format_number(t.y)} Z:{format_number(t.z)} E:0 "
            f"Count X:{format_number(c.x)} Y:{format_number(c.y)} Z:{format_number(c.z)}"
        )

    def clear_history(self) -> None:
        """Clear sent commands history."""
        self.sent_commands.clear()
