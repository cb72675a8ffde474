"""
Movement Routes - Home, relative/absolute moves, speed, mode, telemetry
"""

from typing import List, Optional, Union

from fastapi import APIRouter
from pydantic import BaseModel

from printer_host.core.types import CoordinateMode
from ..dependencies import printer_session

router = APIRouter(tags=["movement"])


class HomeRequest(BaseModel):
    axes: List[str] = ["X", "Y"]


class GoRequest(BaseModel):
    dx: float = 0.0
    dy: float = 0.0
    dz: float = 0.0
    wait: bool = True


class GoToRequest(BaseModel):
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    wait: bool = True


class SpeedRequest(BaseModel):
    speed: float  # mm/s


class ModeRequest(BaseModel):
    mode: CoordinateMode


class GCodeRequest(BaseModel):
    gcode: Union[str, List[str]]
    wait_ok: bool = True
@router.post("/home")
async def home(req: Optional[HomeRequest] = None):
    """Home the given axes (G28), X and Y when no body is sent."""
    async with printer_session() as printer:
        await printer.auto_home((req or HomeRequest()).axes)
        return {"success": True, "homed_axes": sorted(printer.homed_axes)}


@router.post("/go")
async def go(req: GoRequest):
    """Relative move."""
    async with printer_session() as printer:
        await printer.go(req.dx, req.dy, req.dz, wait=req.wait)
        return {"success": True, "position": printer.position.to_dict()}


@router.post("/goto")
async def go_to(req: GoToRequest):
    """Absolute move. Omitted axes keep their current value."""
    async with printer_session() as printer:
        await printer.go_to({"x": req.x, "y": req.y, "z": req.z}, wait=req.wait)
        return {"success": True, "position": printer.position.to_dict()}


@router.post("/speed")
async def set_speed(req: SpeedRequest):
    async with printer_session() as printer:
        await printer.set_speed(req.speed)
        return {"success": True, "speed": printer.speed}


@router.post("/mode")
async def set_mode(req: ModeRequest):
    async with printer_session() as printer:
        await printer.set_coordinate_mode(req.mode)
        return {"success": True, "mode": req.mode.value}


@router.get("/position")
async def get_position():
    """Read target and current position from the firmware (M114)."""
    async with printer_session() as printer:
        snapshot = await printer.get_position_snapshot()
        return {
            "success": True,
            "cached_position": printer.position.to_dict(),
            **snapshot.to_dict(),
        }


@router.post("/sync")
async def sync_position():
    """Replace the cached position with the firmware's current position."""
    async with printer_session() as printer:
        position = await printer.sync_position()
        return {"success": True, "position": position.to_dict()}


@router.post("/gcode")
async def send_gcode(req: GCodeRequest):
    """Send raw G-code."""
    async with printer_session() as printer:
        await printer.send_gcode(req.gcode, wait_ok=req.wait_ok)
        return {"success": True}
