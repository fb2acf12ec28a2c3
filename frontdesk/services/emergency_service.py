import logging
from datetime import datetime

from sqlalchemy.orm import Session

from frontdesk.core.exceptions import AppException
from frontdesk.db.models import EmergencySession, EmergencyType
from frontdesk.services.audit_service import write_audit_log
from frontdesk.services.visitor_service import emergency_evacuation, get_active_visitors

logger = logging.getLogger(__name__)


def serialize_emergency(row: EmergencySession | None) -> dict | None:
    if not row:
        return None
    return {
        "id": row.id,
        "type": row.type,
        "description": row.description,
        "evacuatedVisitors": row.evacuated_visitors,
        "isActive": bool(row.is_active),
        "startTime": row.start_time.isoformat() if row.start_time else None,
        "endTime": row.end_time.isoformat() if row.end_time else None,
    }


def get_active_emergency(db: Session) -> EmergencySession | None:
    return (
        db.query(EmergencySession)
        .filter(EmergencySession.is_active.is_(True))
        .order_by(EmergencySession.start_time.desc())
        .first()
    )


def start_emergency(
    db: Session,
    emergency_type: str,
    description: str = "",
    actor_id: str | None = None,
    ip_address: str = "",
) -> EmergencySession:
    try:
        kind = EmergencyType(emergency_type)
    except ValueError:
        raise AppException(f"Unknown emergency type: {emergency_type}", status_code=400)

    current = get_active_emergency(db)
    if current:
        return current

    row = EmergencySession(type=kind.value, description=description, started_by=actor_id, is_active=True)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.warning("Emergency mode started type=%s session_id=%s", row.type, row.id)
    write_audit_log(
        db,
        action="emergency_started",
        user_id=actor_id,
        details={"sessionId": row.id, "type": row.type, "description": description},
        ip_address=ip_address,
    )
    return row


def evacuate(
    db: Session,
    visitor_ids: list[str] | None = None,
    actor_id: str | None = None,
    ip_address: str = "",
) -> dict:
    """Evacuate the listed visitors, or everyone currently checked in."""
    if visitor_ids is None:
        visitor_ids = [row.id for row in get_active_visitors(db)]

    evacuated = emergency_evacuation(db, visitor_ids)

    session = get_active_emergency(db)
    if session and evacuated:
        merged = list(dict.fromkeys(session.evacuated_visitors + evacuated))
        session.evacuated_visitors_csv = ",".join(merged)
        db.commit()
        db.refresh(session)

    write_audit_log(
        db,
        action="emergency_evacuation",
        user_id=actor_id,
        details={
            "sessionId": session.id if session else None,
            "requested": len(visitor_ids),
            "evacuated": len(evacuated),
        },
        ip_address=ip_address,
    )
    return {"requested": len(visitor_ids), "evacuated": evacuated, "session": serialize_emergency(session)}


def end_emergency(db: Session, actor_id: str | None = None, ip_address: str = "") -> EmergencySession:
    session = get_active_emergency(db)
    if not session:
        raise AppException("No active emergency", status_code=404)
    session.is_active = False
    session.end_time = datetime.utcnow()
    db.commit()
    db.refresh(session)
    logger.info("Emergency mode ended session_id=%s evacuated=%d", session.id, len(session.evacuated_visitors))
    write_audit_log(
        db,
        action="emergency_ended",
        user_id=actor_id,
        details={"sessionId": session.id, "evacuated": len(session.evacuated_visitors)},
        ip_address=ip_address,
    )
    return session
