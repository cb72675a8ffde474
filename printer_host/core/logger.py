"""
Structured console logging for the printer host.

Prefixes:
  ⚡ CRITICAL - Errors, failures (stderr)
  ⚠️  WARN     - Unexpected firmware behaviour (stderr)
  ✓  OK       - Connection confirmations
  →  MOVE     - Planned moves as sent
  ⟳  SYNC     - Cached position replaced from telemetry
  ⬡  SERIAL   - Raw line traffic, >>> out / <<< in
  📍 POS      - Telemetry readings
  ⌂  HOME     - Homing cycles
  ⇄  MODE     - Coordinate mode switches

Any level can be muted, e.g. SERIAL on a busy link.
"""

import sys
from datetime import datetime
from enum import Enum
from typing import Optional, Set


class LogLevel(Enum):
    CRITICAL = "⚡ CRITICAL"
    WARN = "⚠️  WARN    "
    OK = "✓  OK      "
    MOVE = "→  MOVE    "
    SYNC = "⟳  SYNC    "
    SERIAL = "⬡  SERIAL  "
    POS = "📍 POS     "
    INFO = "ℹ  INFO    "
    HOME = "⌂  HOME    "
    MODE = "⇄  MODE    "


_STDERR_LEVELS = {LogLevel.CRITICAL, LogLevel.WARN}
_muted: Set[LogLevel] = set()


def mute(*levels: LogLevel) -> None:
    """Suppress output for the given levels. CRITICAL cannot be muted."""
    _muted.update(level for level in levels if level is not LogLevel.CRITICAL)


def unmute(*levels: LogLevel) -> None:
    """Re-enable levels; with no arguments re-enables everything."""
    if levels:
        _muted.difference_update(levels)
    else:
        _muted.clear()


def log(level: LogLevel, message: str, data: Optional[dict] = None):
    """Print one timestamped line: [time] prefix | message | data"""
    if level in _muted:
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] {level.value} | {message}"
    if data:
        line += f" | {data}"

    print(line, file=sys.stderr if level in _STDERR_LEVELS else sys.stdout)


def log_critical(msg: str, data: Optional[dict] = None):
    log(LogLevel.CRITICAL, msg, data)

def log_warn(msg: str, data: Optional[dict] = None):
    log(LogLevel.WARN, msg, data)

def log_ok(msg: str, data: Optional[dict] = None):
    log(LogLevel.OK, msg, data)

def log_move(gcode: str, destination: Optional[dict] = None):
    log(LogLevel.MOVE, gcode, destination)

def log_sync(msg: str, data: Optional[dict] = None):
    log(LogLevel.SYNC, msg, data)

def log_serial(direction: str, line: str):
    """direction is '>>>' (to firmware) or '<<<' (from firmware)"""
    log(LogLevel.SERIAL, f"{direction} {line}")

def log_pos(msg: str, position: Optional[dict] = None):
    log(LogLevel.POS, msg, position)

def log_info(msg: str, data: Optional[dict] = None):
    log(LogLevel.INFO, msg, data)

def log_home(msg: str):
    log(LogLevel.HOME, msg)

def log_mode(msg: str):
    log(LogLevel.MODE, msg)
