"""
Connection Routes - Connect/disconnect and status
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from printer_host.core.serial_transport import BAUD_RATE, SerialTransport
from printer_host.core.types import MachineEnvelope
from ..dependencies import get_app_state, AppState

router = APIRouter(tags=["connection"])


class EnvelopeModel(BaseModel):
    x: float
    y: float
    z: float


class ConnectRequest(BaseModel):
    port: str
    baud_rate: int = BAUD_RATE
    envelope: Optional[EnvelopeModel] = None


@router.get("/ports")
def get_ports():
    """List available serial ports."""
    return {"ports": SerialTransport.list_ports()}


@router.get("/status")
def get_status(state: AppState = Depends(get_app_state)):
    """Get current connection status and printer state."""
    return state.get_status()


@router.get("/history")
def get_history(limit: int = 50, state: AppState = Depends(get_app_state)):
    """Get recent command history."""
    return {"history": state.get_command_history(limit)}


@router.post("/connect")
async def connect(req: ConnectRequest, state: AppState = Depends(get_app_state)):
    """Connect to the printer and initialise it."""
    envelope = None
    if req.envelope is not None:
        envelope = MachineEnvelope(req.envelope.x, req.envelope.y, req.envelope.z)
    async with state.lock:
        await state.connect(req.port, req.baud_rate, envelope)
    return {"success": True, "status": state.get_status()}


@router.post("/disconnect")
async def disconnect(state: AppState = Depends(get_app_state)):
    """Disconnect from the printer."""
    async with state.lock:
        await state.disconnect()
    return {"success": True}
