"""
G-Code Sender - Single responsibility: dispatching commands and
correlating acknowledgements.

The firmware processes commands strictly in order and answers each one
with a single "ok" line, so the next "ok" on the bus always belongs to the
oldest unacknowledged command. There are no request IDs.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, List, Optional, Sequence, Union

from .bus import ResponseBus
from .errors import PrinterTimeoutError, TransportError
from .transport import Transport


ACK_TOKEN = "ok"


@dataclass
class CommandResult:
    """
    Record of one dispatched command.

    Kept for audit/debugging; see GCodeSender.get_history().
    """
    gcode: str
    acknowledged: bool
    timestamp: datetime
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        suffix = " → ok" if self.acknowledged else ""
        if self.error:
            suffix = f" → {self.error}"
        return f"[{self.timestamp:%H:%M:%S}] {status} {self.gcode}{suffix}"


def count_commands(gcode: str) -> int:
    """Number of non-empty command lines in a (possibly multi-line) string."""
    return sum(1 for line in gcode.split("\n") if line.strip())


class GCodeSender:
    """Sends G-code over a transport and waits for acknowledgements on the bus"""

    def __init__(self, transport: Transport, bus: ResponseBus,
                 ack_timeout: Optional[float] = None, history_size: int = 200):
        self.transport = transport
        self.bus = bus
        self.ack_timeout = ack_timeout
        self._history: Deque[CommandResult] = deque(maxlen=history_size)

    async def wait_for_ok(self, count: int = 1, timeout: Optional[float] = None) -> None:
        """
        Suspend until `count` acknowledgement lines have been observed.

        timeout=None waits forever. A bounded wait raises PrinterTimeoutError.
        """
        await self._await_acks(self._arm_ack_waiter(count), timeout)

    def _arm_ack_waiter(self, count: int) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        remaining = count

        def on_ack(line: str) -> None:
            nonlocal remaining
            remaining -= 1
            if remaining <= 0:
                sub.unsubscribe()
                if not future.done():
                    future.set_result(None)

        sub = self.bus.subscribe(on_ack, lambda line: line == ACK_TOKEN)
        future.add_done_callback(lambda _: sub.unsubscribe())
        if count <= 0:
            future.set_result(None)
        return future

    async def _await_acks(self, future: asyncio.Future, timeout: Optional[float]) -> None:
        try:
            await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise PrinterTimeoutError(
                f"No '{ACK_TOKEN}' from firmware within {timeout}s"
            ) from None

    async def send(self, command: str, wait_ok: bool = True) -> None:
        """
        Write a command (or newline separated block) and optionally wait
        for one acknowledgement per command line.

        The acknowledgement subscription is armed before writing so a fast
        reply cannot slip past.
        """
        timestamp = datetime.now()
        ack = self._arm_ack_waiter(count_commands(command)) if wait_ok else None

        try:
            await self.transport.write_line(command)
        except TransportError as e:
            if ack is not None:
                ack.cancel()
            self._history.append(CommandResult(command, False, timestamp, str(e)))
            raise

        if ack is None:
            self._history.append(CommandResult(command, False, timestamp))
            return

        try:
            await self._await_acks(ack, self.ack_timeout)
        except PrinterTimeoutError as e:
            self._history.append(CommandResult(command, False, timestamp, str(e)))
            raise
        self._history.append(CommandResult(command, True, timestamp))

    async def send_many(self, commands: Union[str, Sequence[str]], wait_ok: bool = True) -> None:
        """Join a sequence of commands into one transmission."""
        if not isinstance(commands, str):
            commands = "\n".join(commands)
        await self.send(commands, wait_ok)

    def get_history(self, limit: Optional[int] = None) -> List[CommandResult]:
        """
        Get dispatch history, oldest first.

        Args:
            limit: Optional max number of recent entries to return.
        """
        history = list(self._history)
        if limit is None:
            return history
        return history[-limit:] if limit > 0 else []

    def clear_history(self) -> None:
        self._history.clear()
