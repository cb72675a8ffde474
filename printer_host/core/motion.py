"""
Motion Waiter - detects move completion without a hardware signal.

Strategy: sleep for the time the move should take at the configured feed
speed, then poll M114 until the reported current position equals the
reported target.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from .errors import PrinterTimeoutError
from .logger import log_pos
from .telemetry import TelemetryReader
from .types import Position


SleepFn = Callable[[float], Awaitable[None]]


class MotionWaiter:
    """Waits for the motors to finish their current move"""

    def __init__(
        self,
        telemetry: TelemetryReader,
        speed: Callable[[], float],
        timeout: Optional[float] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.telemetry = telemetry
        self._speed = speed
        self.timeout = timeout
        self._sleep = sleep

    def estimate_seconds(self, displacement: Position) -> float:
        """First-order travel time at the current feed speed (a lower bound)."""
        return displacement.length() / self._speed()

    async def wait(
        self,
        poll_interval_ms: float,
        dx: Optional[float] = None,
        dy: Optional[float] = None,
        dz: Optional[float] = None,
    ) -> None:
        """
        Wait until telemetry reports current == target.

        Missing displacement components are taken from a telemetry read
        (target - current). With a timeout configured, raises
        PrinterTimeoutError when it expires.
        """
        try:
            await asyncio.wait_for(self._wait(poll_interval_ms, dx, dy, dz), self.timeout)
        except asyncio.TimeoutError:
            raise PrinterTimeoutError(
                f"Motors did not settle within {self.timeout}s"
            ) from None

    async def _wait(
        self,
        poll_interval_ms: float,
        dx: Optional[float],
        dy: Optional[float],
        dz: Optional[float],
    ) -> None:
        if dx is None or dy is None or dz is None:
            remaining = (await self.telemetry.read_snapshot()).remaining
            dx = remaining.x if dx is None else dx
            dy = remaining.y if dy is None else dy
            dz = remaining.z if dz is None else dz

        await self._sleep(self.estimate_seconds(Position(dx, dy, dz)))

        polls = 0
        while True:
            snapshot = await self.telemetry.read_snapshot()
            polls += 1
            if snapshot.is_settled:
                log_pos(f"Motors settled after {polls} poll(s)", snapshot.current_position.to_dict())
                return
            await self._sleep(poll_interval_ms / 1000)
