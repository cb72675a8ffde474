"""
Printer - Main facade for the driver.

Provides a safe, stateful movement API over a Marlin-style G-code link.
All motion goes through the MotionPlanner so envelope limits are checked
before anything is written to the transport.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Union

from printer_host.core.bus import LineCallback, LinePredicate, ResponseBus, Subscription
from printer_host.core.errors import InvalidArgumentError, NotReadyError, TransportError
from printer_host.core.gcode import CommandResult, GCodeSender
from printer_host.core.logger import log_critical, log_home, log_mode, log_move, log_ok, log_sync
from printer_host.core.motion import MotionWaiter, SleepFn
from printer_host.core.planner import MotionPlanner, MovePlan, PositionLike
from printer_host.core.serial_transport import SerialConfig, SerialTransport
from printer_host.core.telemetry import TelemetryReader
from printer_host.core.transport import Transport
from printer_host.core.types import (
    AXES,
    Axis,
    ConnectionState,
    CoordinateMode,
    FeedRateCommand,
    HomeCommand,
    MachineEnvelope,
    ORIGIN,
    Position,
    PositionSnapshot,
    SetModeCommand,
)


@dataclass
class PrinterSettings:
    """Driver tuning. Timeouts of None wait forever."""
    default_speed: float = 60.0  # mm/s, sent during init()
    connect_timeout: float = 5.0
    relative_poll_ms: float = 50
    absolute_poll_ms: float = 10
    ack_timeout: Optional[float] = None
    telemetry_timeout: Optional[float] = None
    motion_timeout: Optional[float] = None
    history_size: int = 200


class Printer:
    """
    Driver for one firmware connection.

    Owns the connection state, coordinate mode, cached nozzle position,
    homed axes and feed speed. Nothing outside this object mutates them.

    Usage:
        printer = Printer("/dev/ttyUSB0", 115200, MachineEnvelope(200, 200, 200))
        await printer.init()
        await printer.auto_home_xy()
        await printer.go(10, 5)
    """

    def __init__(
        self,
        port: str,
        baud_rate: int,
        envelope: MachineEnvelope,
        transport: Optional[Transport] = None,
        settings: Optional[PrinterSettings] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.port = port
        self.baud_rate = baud_rate
        self.envelope = envelope
        self.settings = settings or PrinterSettings()

        self._transport: Transport = transport or SerialTransport(
            port, SerialConfig(baud_rate=baud_rate)
        )
        self._bus = ResponseBus()
        self._transport.set_line_handler(self._bus.publish)

        self._gcode = GCodeSender(
            self._transport,
            self._bus,
            ack_timeout=self.settings.ack_timeout,
            history_size=self.settings.history_size,
        )
        self._telemetry = TelemetryReader(
            self._gcode, self._bus, timeout=self.settings.telemetry_timeout
        )
        self._motion = MotionWaiter(
            self._telemetry,
            speed=lambda: self._speed,
            timeout=self.settings.motion_timeout,
            sleep=sleep,
        )
        self._planner = MotionPlanner(envelope)

        self._state = ConnectionState.CONNECTING
        self._mode: Optional[CoordinateMode] = None
        self._position: Position = ORIGIN
        self._homed: Set[Axis] = set()
        self._speed: float = self.settings.default_speed

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def connection_state(self) -> ConnectionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ConnectionState.READY and self._mode is not None

    @property
    def position(self) -> Position:
        """Cached nozzle position (intent of the last committed move)."""
        return self._position

    @property
    def coordinate_mode(self) -> Optional[CoordinateMode]:
        """Last mode sent to the firmware, None before init()."""
        return self._mode

    def get_coordinate_mode(self) -> Optional[CoordinateMode]:
        return self._mode

    @property
    def homed_axes(self) -> FrozenSet[Axis]:
        return frozenset(self._homed)

    @property
    def speed(self) -> float:
        """Feed speed in mm/s."""
        return self._speed

    # =========================================================================
    # Connection
    # =========================================================================

    async def init(self) -> None:
        """
        Open the link and put the firmware in a known state.

        Must be called before any motion. Raises TransportError if the
        transport does not connect within settings.connect_timeout.
        """
        if self._state == ConnectionState.READY:
            return
        if self._state == ConnectionState.DISCONNECTED:
            raise TransportError("Connection closed; create a new Printer")

        try:
            connected = await asyncio.wait_for(
                self._transport.open(), self.settings.connect_timeout
            )
        except asyncio.TimeoutError:
            connected = False

        if not connected:
            self._state = ConnectionState.DISCONNECTED
            await self._transport.close()
            log_critical(f"Unable to connect to {self.port}")
            raise TransportError("Unable to connect")

        self._state = ConnectionState.READY
        log_ok(f"Connected to {self.port}")

        await self.set_coordinate_mode(CoordinateMode.RELATIVE)
        self._position = ORIGIN
        await self.set_speed(self.settings.default_speed)

    async def close(self) -> None:
        """Close the transport. The instance cannot be reused."""
        await self._transport.close()
        self._state = ConnectionState.DISCONNECTED

    # =========================================================================
    # Raw commands
    # =========================================================================

    async def send_command(self, command: str, wait_ok: bool = True) -> None:
        """
        Send a G-code command. With wait_ok=False the call returns as soon
        as the line is written.
        """
        self._require_connected()
        await self._gcode.send(command, wait_ok)

    async def send_gcode(self, gcode: Union[str, Sequence[str]], wait_ok: bool = True) -> None:
        """Send one command or a list of commands in a single transmission."""
        self._require_connected()
        await self._gcode.send_many(gcode, wait_ok)

    def subscribe(self, callback: LineCallback,
                  predicate: Optional[LinePredicate] = None) -> Subscription:
        """Observe every line received from the firmware from now on."""
        return self._bus.subscribe(callback, predicate)

    # =========================================================================
    # Mode / speed / homing
    # =========================================================================

    async def set_coordinate_mode(self, mode: CoordinateMode) -> None:
        """Always sends the mode command, even if the mode is unchanged."""
        if not isinstance(mode, CoordinateMode):
            raise InvalidArgumentError(f"Invalid position mode: {mode!r}")
        self._require_connected()

        self._mode = mode
        log_mode(f"Coordinate mode → {mode.name}")
        await self._gcode.send(SetModeCommand(mode).to_gcode())

    async def set_speed(self, mm_per_second: float) -> None:
        """Set feed speed in mm/s (sent as mm/min)."""
        if mm_per_second <= 0:
            raise InvalidArgumentError(f"Speed must be positive, got {mm_per_second}")
        self._require_connected()

        self._speed = mm_per_second
        await self._gcode.send(FeedRateCommand(mm_per_second).to_gcode())

    async def auto_home(self, axes: Iterable[str]) -> None:
        """
        Home the listed axes.

        Axes are marked homed before the command goes out, so bounds
        checking stays active even if the homing command fails.
        """
        normalized: List[Axis] = []
        for axis in axes:
            letter = str(axis).upper()
            if letter not in AXES:
                raise InvalidArgumentError(f"Unknown axis: {axis!r}")
            if letter not in normalized:
                normalized.append(letter)  # type: ignore[arg-type]
        if not normalized:
            raise InvalidArgumentError("auto_home needs at least one axis")
        self._require_connected()

        log_home(f"Auto home started ({' '.join(normalized)})...")
        self._homed.update(normalized)
        await self._gcode.send(HomeCommand(tuple(normalized)).to_gcode())
        log_home("Auto home finished.")

    async def auto_home_xy(self) -> None:
        """Home X and Y only."""
        await self.auto_home(["X", "Y"])

    # =========================================================================
    # Motion
    # =========================================================================

    async def go(self, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0,
                 wait: bool = True) -> None:
        """
        Relative move by (dx, dy, dz) mm.

        Raises OutOfBoundsError, without sending anything, if a homed axis
        would leave the envelope.
        """
        self._require_ready()
        plan = self._planner.plan_relative(
            self._position, Position(dx, dy, dz), self._homed
        )
        await self._execute(plan, self.settings.relative_poll_ms, wait)

    async def go_to(
        self,
        position_or_x: Union[PositionLike, float, None] = None,
        y: Optional[float] = None,
        z: Optional[float] = None,
        wait: bool = True,
    ) -> None:
        """
        Absolute move. Omitted components keep their cached value.

        Every axis is checked against the envelope, homed or not.
        """
        self._require_ready()
        target = self._planner.resolve_target(self._position, position_or_x, y, z)
        plan = self._planner.plan_absolute(self._position, target)
        await self._execute(plan, self.settings.absolute_poll_ms, wait)

    async def _execute(self, plan: MovePlan, poll_interval_ms: float, wait: bool) -> None:
        await self.set_coordinate_mode(plan.mode)

        gcode = plan.command.to_gcode()
        log_move(gcode, plan.destination.to_dict())
        try:
            await self._gcode.send(gcode)
        except TransportError:
            raise
        except BaseException:
            # written but never acknowledged: the firmware may still run it
            self._position = plan.destination
            raise
        self._position = plan.destination

        if wait:
            d = plan.displacement
            await self._motion.wait(poll_interval_ms, d.x, d.y, d.z)

    async def wait_for_motors(
        self,
        poll_interval_ms: float,
        dx: Optional[float] = None,
        dy: Optional[float] = None,
        dz: Optional[float] = None,
    ) -> None:
        """Wait until the firmware reports it reached its target."""
        self._require_connected()
        await self._motion.wait(poll_interval_ms, dx, dy, dz)

    # =========================================================================
    # Telemetry
    # =========================================================================

    async def get_position_snapshot(self) -> PositionSnapshot:
        """Target and current position as reported by the firmware."""
        self._require_connected()
        return await self._telemetry.read_snapshot()

    async def get_current_position(self) -> Position:
        return (await self.get_position_snapshot()).current_position

    async def get_target_position(self) -> Position:
        return (await self.get_position_snapshot()).target_position

    async def sync_position(self) -> Position:
        """
        Replace the cached position with the firmware's current position.

        Call after anything outside this driver may have moved the head.
        """
        pos = await self.get_current_position()
        self._position = pos
        log_sync(f"Position synced: X={pos.x:.2f} Y={pos.y:.2f} Z={pos.z:.2f}")
        return pos

    # =========================================================================
    # Status & History
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """Get current driver status."""
        return {
            "port": self.port,
            "connection": self._state.value,
            "mode": self._mode.value if self._mode else None,
            "position": self._position.to_dict(),
            "homed_axes": sorted(self._homed),
            "speed": self._speed,
            "envelope": self.envelope.to_dict(),
        }

    def get_command_history(self, limit: Optional[int] = None) -> List[CommandResult]:
        return self._gcode.get_history(limit)

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_connected(self) -> None:
        if self._state != ConnectionState.READY:
            raise NotReadyError(f"Printer is {self._state.value}; call init() first")

    def _require_ready(self) -> None:
        """Motion needs an open link and an established coordinate mode."""
        self._require_connected()
        if self._mode is None:
            raise NotReadyError("Coordinate mode not established; call init() first")
