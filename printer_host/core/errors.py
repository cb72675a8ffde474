"""
Error taxonomy for the printer host.

Every error raised by the driver derives from PrinterError, and also from
the builtin exception it most resembles so callers can catch either.
"""


class PrinterError(Exception):
    """Base class for all driver errors"""
    pass


class TransportError(PrinterError, ConnectionError):
    """Serial open or write failed; the link is unusable until reopened"""
    pass


class ProtocolError(PrinterError):
    """Firmware sent a line the driver could not interpret"""
    pass


class OutOfBoundsError(PrinterError, ValueError):
    """Requested coordinate lies outside the machine envelope. Nothing was sent."""
    pass


class InvalidArgumentError(PrinterError, ValueError):
    """Unrecognised mode, axis or speed. Nothing was sent."""
    pass


class NotReadyError(PrinterError, RuntimeError):
    """Motion requested before init() established the connection and mode"""
    pass


class PrinterTimeoutError(PrinterError, TimeoutError):
    """A bounded wait for an acknowledgement, telemetry or motion expired"""
    pass
