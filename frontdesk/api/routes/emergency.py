from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from frontdesk.api.deps import client_ip, require_view
from frontdesk.core.roles import View
from frontdesk.db.models import User
from frontdesk.db.session import get_db
from frontdesk.schemas.visitor import EvacuationRequest
from frontdesk.services.emergency_service import (
    end_emergency,
    evacuate,
    get_active_emergency,
    serialize_emergency,
    start_emergency,
)
from frontdesk.socket.events import broadcast_active_visitors, broadcast_emergency_state
from frontdesk.socket.server import sio

router = APIRouter()


class EmergencyStart(BaseModel):
    type: str
    description: str = ""


@router.get("")
def emergency_state(
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    return {"data": serialize_emergency(get_active_emergency(db))}


@router.post("/start")
async def emergency_start(
    payload: EmergencyStart,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_view(View.front_desk)),
):
    row = start_emergency(db, payload.type, payload.description, actor_id=user.id, ip_address=client_ip(request))
    data = serialize_emergency(row)
    await broadcast_emergency_state(sio)
    return {"data": data}


@router.post("/evacuate")
async def emergency_evacuate(
    payload: EvacuationRequest,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_view(View.front_desk)),
):
    result = evacuate(db, payload.visitorIds, actor_id=user.id, ip_address=client_ip(request))
    await broadcast_active_visitors(sio)
    await broadcast_emergency_state(sio)
    return {"data": result}


@router.post("/end")
async def emergency_end(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_view(View.front_desk)),
):
    row = end_emergency(db, actor_id=user.id, ip_address=client_ip(request))
    data = serialize_emergency(row)
    await broadcast_emergency_state(sio)
    return {"data": data}
