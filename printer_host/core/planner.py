"""
Motion Planner - Single responsibility: turning movement requests into
validated commands.

Converts relative and absolute move requests into a MovePlan. It does NOT
send anything; the Printer executes plans.

Rules enforced:
- Relative moves are bounds checked only on axes that move and are homed
- Absolute moves are bounds checked on every axis, homed or not
- Moves that change Z use the controlled form (G1), others the fast form (G0)
- An omitted coordinate (None) keeps the current value; 0 is a real target
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable, Mapping, Optional, Union

from .errors import InvalidArgumentError, OutOfBoundsError
from .types import (
    AXES,
    Axis,
    CoordinateMode,
    LinearMoveCommand,
    MachineEnvelope,
    Position,
)


PositionLike = Union[Position, Mapping[str, Optional[float]]]


@dataclass(frozen=True)
class MovePlan:
    """Everything needed to execute one move."""
    mode: CoordinateMode
    command: LinearMoveCommand
    displacement: Position  # expected travel, used for the completion estimate
    destination: Position   # position to commit once the command is sent


class MotionPlanner:
    """
    Plans single moves inside a machine envelope.
    """

    def __init__(self, envelope: MachineEnvelope):
        self.envelope = envelope

    def _validate_position(self, pos: Position, axes: Iterable[Axis] = AXES) -> None:
        """Raise OutOfBoundsError if position is outside the envelope."""
        valid, msg = self.envelope.validate(pos, axes)
        if not valid:
            raise OutOfBoundsError(f"Invalid move to position {pos.to_dict()}: {msg}")

    def plan_relative(
        self,
        current: Position,
        delta: Position,
        homed_axes: AbstractSet[str],
    ) -> MovePlan:
        """
        Plan a relative move by delta from current.

        Each axis is checked against its own limit, and only if it moves
        and has been homed; before homing the firmware origin is undefined.
        """
        destination = current + delta
        checked = [
            axis for axis in AXES
            if delta.get(axis) != 0 and axis in homed_axes
        ]
        self._validate_position(destination, checked)

        return MovePlan(
            mode=CoordinateMode.RELATIVE,
            command=LinearMoveCommand(delta.x, delta.y, delta.z, rapid=delta.z == 0),
            displacement=delta,
            destination=destination,
        )

    def resolve_target(
        self,
        current: Position,
        position_or_x: Union[PositionLike, float, None] = None,
        y: Optional[float] = None,
        z: Optional[float] = None,
    ) -> Position:
        """
        Build an absolute target, filling omitted components from current.

        Accepts a Position, a mapping with optional x/y/z keys, or scalars.
        """
        if isinstance(position_or_x, Position):
            if y is not None or z is not None:
                raise InvalidArgumentError("Pass either a position or scalar components, not both")
            return position_or_x

        if isinstance(position_or_x, Mapping):
            if y is not None or z is not None:
                raise InvalidArgumentError("Pass either a position or scalar components, not both")
            unknown = set(position_or_x) - {"x", "y", "z"}
            if unknown:
                raise InvalidArgumentError(f"Unknown position keys: {sorted(unknown)}")
            x, y, z = (position_or_x.get(k) for k in ("x", "y", "z"))
        else:
            x = position_or_x

        return Position(
            x=current.x if x is None else x,
            y=current.y if y is None else y,
            z=current.z if z is None else z,
        )

    def plan_absolute(self, current: Position, target: Position) -> MovePlan:
        """
        Plan an absolute move to target.

        Validated on all axes regardless of homing state.
        """
        self._validate_position(target)

        return MovePlan(
            mode=CoordinateMode.ABSOLUTE,
            command=LinearMoveCommand(target.x, target.y, target.z, rapid=target.z == current.z),
            displacement=target - current,
            destination=target,
        )
