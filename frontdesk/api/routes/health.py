from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from frontdesk.core.config import get_settings
from frontdesk.db.session import get_db
from frontdesk.services.visitor_service import probe_database_connection
from frontdesk.socket.manager import socket_state

router = APIRouter()
settings = get_settings()


@router.get("/health")
def health(db: Session = Depends(get_db)):
    database = probe_database_connection(db)
    return {
        "status": "ok" if database["success"] else "degraded",
        "facility": settings.FACILITY_NAME,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "realtimeConnections": socket_state.connection_count(),
    }
