"""
Core data types for the printer host.

Positions, envelope and commands are frozen dataclasses so a planned
command sequence cannot be mutated between planning and sending.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Literal, Protocol, Tuple


Axis = Literal["X", "Y", "Z"]
AXES: Tuple[Axis, ...] = ("X", "Y", "Z")


def format_number(value: float) -> str:
    """
    Render a coordinate for the wire at full float precision.

    Shortest round-tripping digits, never exponent notation, integral
    values without a fraction ("10", not "10.0"). Parsing the result gives
    back exactly the same float, so the firmware and the cached position
    agree.
    """
    if value == 0:
        return "0"
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


# =============================================================================
# Position Types
# =============================================================================


@dataclass(frozen=True)
class Position:
    """
    Immutable 3D vector in mm.

    Used both as an absolute nozzle position and as a relative
    displacement; the caller decides which.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Position) -> Position:
        return Position(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Position) -> Position:
        return Position(self.x - other.x, self.y - other.y, self.z - other.z)

    def get(self, axis: Axis) -> float:
        """Component for an axis letter."""
        return getattr(self, axis.lower())

    def length(self) -> float:
        """Euclidean norm (travel distance when used as a displacement)."""
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)

    def distance_to(self, other: Position) -> float:
        """Euclidean distance to another position."""
        return (other - self).length()

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"x": self.x, "y": self.y, "z": self.z}

    @classmethod
    def from_dict(cls, d: dict) -> Position:
        """Deserialize from dictionary."""
        return cls(x=d["x"], y=d["y"], z=d["z"])


ORIGIN = Position(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class MachineEnvelope:
    """
    Physical travel limits. Every axis is valid on [0, max].
    """
    x: float
    y: float
    z: float

    def max_for(self, axis: Axis) -> float:
        return getattr(self, axis.lower())

    def contains(self, axis: Axis, value: float) -> bool:
        """Is value inside [0, max] for this axis?"""
        return 0 <= value <= self.max_for(axis)

    def validate(self, pos: Position, axes: Iterable[Axis] = AXES) -> Tuple[bool, str]:
        """
        Check the given axes of a position against the envelope.

        Returns:
            (valid, message) - message is "OK" if valid, else describes violation
        """
        for axis in axes:
            value = pos.get(axis)
            if not self.contains(axis, value):
                return False, f"{axis}={value:.1f} out of range [0, {self.max_for(axis)}]"
        return True, "OK"

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "z": self.z}


@dataclass(frozen=True)
class PositionSnapshot:
    """
    Telemetry reading.

    target_position is the firmware's last commanded destination,
    current_position where it believes the tool head is now. They differ
    while a move is in flight.
    """
    current_position: Position
    target_position: Position

    @property
    def is_settled(self) -> bool:
        """True once the head has reached its target on every axis."""
        return self.current_position == self.target_position

    @property
    def remaining(self) -> Position:
        """Displacement still to travel."""
        return self.target_position - self.current_position

    def to_dict(self) -> dict:
        return {
            "current_position": self.current_position.to_dict(),
            "target_position": self.target_position.to_dict(),
        }


# =============================================================================
# State Enums
# =============================================================================


class CoordinateMode(Enum):
    """How the firmware interprets coordinates of subsequent moves."""
    ABSOLUTE = "absolute"
    RELATIVE = "relative"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"


# =============================================================================
# Command Protocol & Types
# =============================================================================


class Command(Protocol):
    """Protocol for all G-code commands."""

    def to_gcode(self) -> str:
        """Convert to G-code string."""
        ...


@dataclass(frozen=True)
class SetModeCommand:
    """Coordinate mode switch (G90 absolute / G91 relative)."""
    mode: CoordinateMode

    def to_gcode(self) -> str:
        codes = {
            CoordinateMode.ABSOLUTE: "G90",
            CoordinateMode.RELATIVE: "G91",
        }
        return codes[self.mode]


@dataclass(frozen=True)
class HomeCommand:
    """Homing cycle (G28) for the listed axes."""
    axes: Tuple[Axis, ...]

    def to_gcode(self) -> str:
        return " ".join(("G28",) + tuple(self.axes))


@dataclass(frozen=True)
class LinearMoveCommand:
    """
    Linear move carrying the full X/Y/Z triple.

    rapid selects the fast traverse form (G0); otherwise the controlled
    form (G1) is used. Values are deltas or absolute coordinates depending
    on the active CoordinateMode.
    """
    x: float
    y: float
    z: float
    rapid: bool = True

    def to_gcode(self) -> str:
        code = "G0" if self.rapid else "G1"
        return f"{code} X{format_number(self.x)} Y{format_number(self.y)} Z{format_number(self.z)}"

    def vector(self) -> Position:
        return Position(self.x, self.y, self.z)


@dataclass(frozen=True)
class FeedRateCommand:
    """Set feed rate. Stored in mm/s, sent in mm/min."""
    mm_per_second: float

    def to_gcode(self) -> str:
        return f"G0 F{format_number(self.mm_per_second * 60)}"


@dataclass(frozen=True)
class GetPositionCommand:
    """Query target and current position (M114)."""

    def to_gcode(self) -> str:
        return "M114"
