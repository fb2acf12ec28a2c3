import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from frontdesk.db.models import AuditLog

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def write_audit_log(
    db: Session,
    action: str,
    user_id: str | None = None,
    visitor_id: str | None = None,
    details: dict[str, Any] | None = None,
    ip_address: str = "",
) -> AuditLog | None:
    """Record an audit entry. A failed write is logged and never propagated."""
    row = AuditLog(
        action=action,
        user_id=user_id or SYSTEM_ACTOR,
        visitor_id=visitor_id,
        details_json=json.dumps(details or {}, ensure_ascii=True, default=str),
        ip_address=ip_address or "",
    )
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Audit log failed action=%s visitor_id=%s", action, visitor_id, exc_info=True)
        return None
    return row


def list_audit_logs(db: Session, limit: int | None = 200) -> list[AuditLog]:
    query = db.query(AuditLog).order_by(AuditLog.timestamp.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_all_audit_logs(db: Session) -> list[AuditLog]:
    return list_audit_logs(db, limit=None)


def audit_details(row: AuditLog) -> dict:
    try:
        return json.loads(row.details_json or "{}")
    except json.JSONDecodeError:
        return {"raw": row.details_json}


def serialize_audit_log(row: AuditLog) -> dict:
    return {
        "id": row.id,
        "timestamp": row.timestamp.isoformat() if row.timestamp else None,
        "action": row.action,
        "userId": row.user_id,
        "visitorId": row.visitor_id,
        "details": audit_details(row),
        "ipAddress": row.ip_address,
    }
