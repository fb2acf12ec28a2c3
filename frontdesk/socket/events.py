import logging

from socketio.exceptions import ConnectionRefusedError

from frontdesk.core.config import get_settings
from frontdesk.core.security import ACCESS_TOKEN, decode_token
from frontdesk.db.models import User
from frontdesk.db.session import session_scope
from frontdesk.services.emergency_service import get_active_emergency, serialize_emergency
from frontdesk.services.visitor_service import get_active_visitors, serialize_visitor
from frontdesk.socket.manager import socket_state

settings = get_settings()
logger = logging.getLogger(__name__)

ACTIVE_VISITORS_EVENT = "visitors.active"
EMERGENCY_EVENT = "emergency.state"


def _resolve_user_id(auth: dict | None) -> str | None:
    token = (auth or {}).get("token")
    if not token:
        return None
    try:
        payload = decode_token(token, expected_type=ACCESS_TOKEN)
    except ValueError:
        return None
    return payload.get("sub")


def active_visitors_payload() -> dict:
    with session_scope() as db:
        rows = get_active_visitors(db)
        return {"data": {"count": len(rows), "visitors": [serialize_visitor(row) for row in rows]}}


def emergency_payload() -> dict:
    with session_scope() as db:
        return {"data": serialize_emergency(get_active_emergency(db))}


def register_socket_events(sio):
    @sio.event(namespace=settings.VISITORS_NAMESPACE)
    async def connect(sid, environ, auth):
        user_id = _resolve_user_id(auth)
        if not user_id:
            raise ConnectionRefusedError("authentication required")
        with session_scope() as db:
            user = db.query(User).filter(User.id == user_id).first()
            if not user or not user.is_active:
                raise ConnectionRefusedError("authentication required")
        socket_state.bind(user_id, sid)
        await sio.emit(ACTIVE_VISITORS_EVENT, active_visitors_payload(), to=sid, namespace=settings.VISITORS_NAMESPACE)
        await sio.emit(EMERGENCY_EVENT, emergency_payload(), to=sid, namespace=settings.VISITORS_NAMESPACE)

    @sio.event(namespace=settings.VISITORS_NAMESPACE)
    async def disconnect(sid):
        socket_state.unbind_sid(sid)

    @sio.on("visitors.refresh", namespace=settings.VISITORS_NAMESPACE)
    async def visitors_refresh(sid, payload=None):
        await sio.emit(ACTIVE_VISITORS_EVENT, active_visitors_payload(), to=sid, namespace=settings.VISITORS_NAMESPACE)


async def broadcast_active_visitors(sio) -> None:
    try:
        await sio.emit(ACTIVE_VISITORS_EVENT, active_visitors_payload(), namespace=settings.VISITORS_NAMESPACE)
    except Exception:
        # Subscribers fall back to an empty list; the write itself already succeeded.
        logger.warning("Realtime visitor broadcast failed", exc_info=True)


async def broadcast_emergency_state(sio) -> None:
    try:
        await sio.emit(EMERGENCY_EVENT, emergency_payload(), namespace=settings.VISITORS_NAMESPACE)
    except Exception:
        logger.warning("Realtime emergency broadcast failed", exc_info=True)
