"""
API Dependencies - Dependency injection for FastAPI

Holds the single Printer the API drives.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import HTTPException

from printer_host.core.transport import MockTransport
from printer_host.core.types import MachineEnvelope
from printer_host.printer import Printer, PrinterSettings


DEFAULT_ENVELOPE = MachineEnvelope(x=200, y=200, z=200)


@dataclass
class AppState:
    """
    Application state container.
    """
    envelope: MachineEnvelope = DEFAULT_ENVELOPE
    settings: PrinterSettings = field(default_factory=PrinterSettings)
    printer: Optional[Printer] = None
    _lock: Optional[asyncio.Lock] = field(default=None, init=False, repr=False)

    @property
    def lock(self) -> asyncio.Lock:
        """
        Serializes requests that talk to the printer.

        Overlapping commands would each take the other's "ok". Created on
        first use so it binds to the server's event loop.
        """
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @property
    def is_connected(self) -> bool:
        return self.printer is not None and self.printer.is_ready

    async def connect(self, port: str, baud_rate: int,
                      envelope: Optional[MachineEnvelope] = None) -> None:
        """
        Connect to the firmware and run init().

        port == "mock" uses the in-memory firmware simulator.
        """
        await self.disconnect()
        if envelope is not None:
            self.envelope = envelope

        transport = MockTransport() if port == "mock" else None
        printer = Printer(
            port,
            baud_rate,
            self.envelope,
            transport=transport,
            settings=self.settings,
        )
        await printer.init()
        self.printer = printer

    async def disconnect(self) -> None:
        if self.printer is not None:
            await self.printer.close()
        self.printer = None

    def get_status(self) -> Dict[str, Any]:
        """Get current status for API."""
        if self.printer:
            return {"connected": self.is_connected, **self.printer.get_status()}
        return {
            "connected": False,
            "connection": "disconnected",
            "mode": None,
            "position": None,
            "homed_axes": [],
            "speed": None,
            "envelope": self.envelope.to_dict(),
        }

    def get_command_history(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Get recent command history."""
        if not self.printer:
            return []

        return [
            {
                "gcode": r.gcode,
                "acknowledged": r.acknowledged,
                "success": r.success,
                "error": r.error,
                "timestamp": r.timestamp.isoformat(),
            }
            for r in self.printer.get_command_history(limit)
        ]


# Global instance
_app_state: Optional[AppState] = None


def get_app_state() -> AppState:
    """Get the global app state instance."""
    global _app_state
    if _app_state is None:
        _app_state = AppState()
    return _app_state


def require_connection() -> Printer:
    """Get printer, raising error if not connected."""
    state = get_app_state()
    if not state.is_connected or state.printer is None:
        raise HTTPException(status_code=400, detail="Not connected to printer")
    return state.printer


@asynccontextmanager
async def printer_session() -> AsyncIterator[Printer]:
    """Exclusive use of the connected printer for the duration of a request."""
    state = get_app_state()
    async with state.lock:
        yield require_connection()
