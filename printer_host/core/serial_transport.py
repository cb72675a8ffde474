"""
Serial Transport - Single responsibility: serial communication

Opens the port with pyserial-asyncio and runs a reader task that frames the
incoming byte stream into lines and hands each one to the line handler.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import serial
import serial.tools.list_ports
import serial_asyncio

from .errors import TransportError
from .logger import log_critical, log_info, log_ok, log_serial, log_warn
from .transport import LineHandler


BAUD_RATE = 115200


@dataclass
class SerialConfig:
    baud_rate: int = BAUD_RATE
    encoding: str = "ascii"
    connect_delay: float = 2.0  # Marlin resets on open and needs time to boot


class SerialTransport:
    """
    Handles raw serial communication with the firmware.

    One command per line, newline terminated. Incoming lines are pushed to
    the registered handler from the reader task, in arrival order.
    """

    def __init__(self, port: str, config: Optional[SerialConfig] = None):
        self.port = port
        self.config = config or SerialConfig()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._line_handler: Optional[LineHandler] = None
        self._connected = False

    @staticmethod
    def list_ports() -> list[str]:
        """List available serial ports"""
        ports = serial.tools.list_ports.comports()
        return [port.device for port in ports]

    @property
    def is_connected(self) -> bool:
        return self._connected

    def set_line_handler(self, handler: Optional[LineHandler]) -> None:
        self._line_handler = handler

    async def open(self) -> bool:
        """Connect to serial port. Returns False if the port cannot be opened."""
        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self.port,
                baudrate=self.config.baud_rate,
            )
        except (serial.SerialException, OSError) as e:
            log_critical(f"Failed to open {self.port}: {e}")
            self._connected = False
            return False

        self._reader_task = asyncio.get_running_loop().create_task(self._read_loop())
        try:
            await asyncio.sleep(self.config.connect_delay)
        except asyncio.CancelledError:
            await self.close()
            raise
        self._connected = True
        log_ok(f"Opened {self.port} at {self.config.baud_rate} baud")
        return True

    async def write_line(self, text: str) -> None:
        """Send text followed by newline."""
        if not self._writer or not self._connected:
            raise TransportError("Not connected")

        log_serial(">>>", text)
        try:
            self._writer.write(f"{text}\n".encode(self.config.encoding))
            await self._writer.drain()
        except (serial.SerialException, OSError) as e:
            self._connected = False
            log_critical(f"Write to {self.port} failed: {e}")
            raise TransportError(f"Write failed: {e}") from e

    async def _read_loop(self) -> None:
        assert self._reader is not None
        while True:
            try:
                raw = await self._reader.readline()
            except (serial.SerialException, OSError) as e:
                log_critical(f"Read from {self.port} failed: {e}")
                self._connected = False
                return

            if not raw:
                log_warn(f"{self.port} closed by peer")
                self._connected = False
                return

            line = raw.decode(self.config.encoding, errors="replace").strip()
            if not line:
                continue
            log_serial("<<<", line)
            if self._line_handler:
                self._line_handler(line)

    async def close(self) -> None:
        """Disconnect from serial port"""
        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None
        if self._writer:
            self._writer.close()
            self._writer = None
        self._reader = None
        if self._connected:
            log_info(f"Closed {self.port}")
        self._connected = False
