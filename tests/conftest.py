"""Pytest configuration and shared fixtures."""

import asyncio
import sys
from pathlib import Path
from typing import List

import pytest
import pytest_asyncio

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from printer_host.core.transport import MockTransport
from printer_host.core.types import MachineEnvelope
from printer_host.printer import Printer, PrinterSettings


class FakeSleep:
    """Records requested sleeps instead of waiting them out."""

    def __init__(self, transport: MockTransport = None):
        self.calls: List[float] = []
        # M114 count at the moment of each sleep, to check ordering
        self.queries_at_call: List[int] = []
        self._transport = transport

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._transport is not None:
            self.queries_at_call.append(self._transport.position_query_count)
        await asyncio.sleep(0)


@pytest.fixture
def envelope() -> MachineEnvelope:
    """Standard 200mm cube."""
    return MachineEnvelope(x=200, y=200, z=200)


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def fake_sleep(transport) -> FakeSleep:
    return FakeSleep(transport)


@pytest.fixture
def printer(envelope, transport, fake_sleep) -> Printer:
    """Printer wired to the mock firmware, not yet initialised."""
    return Printer("mock", 115200, envelope, transport=transport, sleep=fake_sleep)


@pytest_asyncio.fixture
async def ready_printer(printer, transport) -> Printer:
    """Initialised printer with the init traffic cleared from the mock."""
    await printer.init()
    transport.clear_history()
    return printer


@pytest.fixture
def default_settings() -> PrinterSettings:
    return PrinterSettings()
