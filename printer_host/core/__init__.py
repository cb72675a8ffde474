"""Core infrastructure layer - transport, bus, gcode, telemetry, planning"""

from .bus import ResponseBus, Subscription
from .gcode import GCodeSender, CommandResult
from .planner import MotionPlanner, MovePlan
from .serial_transport import SerialTransport, SerialConfig
from .telemetry import TelemetryReader, parse_position_report
from .transport import MockTransport, Transport

__all__ = [
    'ResponseBus', 'Subscription',
    'GCodeSender', 'CommandResult',
    'MotionPlanner', 'MovePlan',
    'SerialTransport', 'SerialConfig',
    'TelemetryReader', 'parse_position_report',
    'MockTransport', 'Transport',
]
