"""Host-side driver for Marlin-style motion firmware over a serial link"""

from .core.errors import (
    PrinterError,
    TransportError,
    ProtocolError,
    OutOfBoundsError,
    InvalidArgumentError,
    NotReadyError,
    PrinterTimeoutError,
)
from .core.types import (
    Axis,
    ConnectionState,
    CoordinateMode,
    MachineEnvelope,
    Position,
    PositionSnapshot,
)
from .printer import Printer, PrinterSettings

__all__ = [
    'Printer', 'PrinterSettings',
    'Axis', 'ConnectionState', 'CoordinateMode', 'MachineEnvelope',
    'Position', 'PositionSnapshot',
    'PrinterError', 'TransportError', 'ProtocolError', 'OutOfBoundsError',
    'InvalidArgumentError', 'NotReadyError', 'PrinterTimeoutError',
]
