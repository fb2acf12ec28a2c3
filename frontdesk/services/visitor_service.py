import json
import logging
import random
import string
import time
import uuid
from datetime import date, datetime, time as dt_time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from frontdesk.core.exceptions import AppException
from frontdesk.db.models import AppSetting, Visitor, VisitorStatus
from frontdesk.schemas.visitor import VisitorCheckIn
from frontdesk.services.audit_service import write_audit_log

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_uppercase


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def generate_visitor_id_number() -> str:
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"VID-{_epoch_ms()}-{suffix}"


def generate_qr_code(visitor_id_number: str) -> str:
    return json.dumps({"t": "v", "id": visitor_id_number, "ts": _epoch_ms()}, separators=(",", ":"))


def generate_badge_number() -> str:
    return f"B{str(_epoch_ms())[-6:]}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _load_json(raw: str | None, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable JSON column value")
        return default


def serialize_visitor(row: Visitor) -> dict:
    return {
        "id": row.id,
        "visitorIdNumber": row.visitor_id_number,
        "fullName": row.full_name,
        "firstName": row.first_name,
        "lastName": row.last_name,
        "email": row.email,
        "phoneNumber": row.phone_number,
        "relationship": row.relationship,
        "residentName": row.resident_name,
        "roomNumber": row.room_number,
        "visitorMeetingSelection": row.visitor_meeting_selection,
        "visitorCategory": row.visitor_category,
        "visitorCategoryOther": row.visitor_category_other,
        "staffDepartment": row.staff_department,
        "visitPurpose": row.visit_purpose,
        "visitPurposeOther": row.visit_purpose_other,
        "appointmentType": row.appointment_type,
        "appointmentTime": row.appointment_time,
        "accessLevel": row.access_level,
        "emergencyContact": row.emergency_contact,
        "emergencyPhone": row.emergency_phone,
        "photoUrl": row.photo_url,
        "notes": row.notes,
        "isApproved": bool(row.is_approved),
        "isFamilyGroup": bool(row.is_family_group),
        "familyMembers": _load_json(row.family_members_json, []),
        "healthScreening": _load_json(row.health_screening_json, None),
        "status": row.status,
        "checkInTime": _iso(row.check_in_time),
        "checkOutTime": _iso(row.check_out_time),
        "qrCode": row.qr_code,
        "badgeNumber": row.badge_number,
    }


def _family_members_payload(payload: VisitorCheckIn, visitor_id_number: str, checked_in_at: datetime) -> list[dict]:
    return [
        {
            "id": str(uuid.uuid4()),
            "firstName": member.firstName,
            "lastName": member.lastName,
            "relationship": member.relationship,
            "age": member.age,
            "phone": member.phone,
            "email": member.email,
            "badgeNumber": generate_badge_number(),
            "visitorId": visitor_id_number,
            "checkInTime": checked_in_at.isoformat(),
            "checkOutTime": None,
        }
        for member in payload.familyMembers
    ]


def check_in_visitor(
    db: Session,
    payload: VisitorCheckIn,
    is_returning: bool = False,
    actor_id: str | None = None,
    ip_address: str = "",
) -> Visitor:
    full_name = payload.fullName.strip() or f"{payload.firstName} {payload.lastName}".strip()
    logger.info("Check-in started for %s", full_name)

    if is_returning and payload.visitorIdNumber:
        visitor_id_number = payload.visitorIdNumber
    else:
        visitor_id_number = generate_visitor_id_number()
    checked_in_at = datetime.utcnow()

    health_screening_json = None
    if payload.healthScreening:
        screening = payload.healthScreening.model_dump(mode="json")
        screening["screeningDate"] = (payload.healthScreening.screeningDate or checked_in_at).isoformat()
        health_screening_json = json.dumps(screening)

    family_members = _family_members_payload(payload, visitor_id_number, checked_in_at)
    visitor = Visitor(
        visitor_id_number=visitor_id_number,
        full_name=full_name,
        first_name=payload.firstName,
        last_name=payload.lastName,
        email=payload.email,
        phone_number=payload.phoneNumber,
        relationship=payload.relationship,
        resident_name=payload.residentName,
        room_number=payload.roomNumber,
        visitor_meeting_selection=payload.visitorMeetingSelection,
        visitor_category=payload.visitorCategory,
        visitor_category_other=payload.visitorCategoryOther,
        staff_department=payload.staffDepartment,
        visit_purpose=payload.visitPurpose,
        visit_purpose_other=payload.visitPurposeOther,
        appointment_type=payload.appointmentType,
        appointment_time=payload.appointmentTime,
        access_level=payload.accessLevel,
        emergency_contact=payload.emergencyContact,
        emergency_phone=payload.emergencyPhone,
        photo_url=payload.photoUrl,
        notes=payload.notes,
        is_approved=payload.isApproved,
        is_family_group=bool(family_members),
        family_members_json=json.dumps(family_members),
        health_screening_json=health_screening_json,
        status=VisitorStatus.checked_in.value,
        check_in_time=checked_in_at,
        qr_code=generate_qr_code(visitor_id_number),
        badge_number=generate_badge_number(),
    )
    try:
        db.add(visitor)
        db.commit()
        db.refresh(visitor)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Check-in failed for %s", full_name)
        raise

    write_audit_log(
        db,
        action="visitor_check_in",
        user_id=actor_id,
        visitor_id=visitor.id,
        details={"visitorName": full_name, "resident": payload.residentName, "room": payload.roomNumber},
        ip_address=ip_address,
    )
    return visitor


def check_out_visitor(
    db: Session,
    visitor_id: str,
    actor_id: str | None = None,
    ip_address: str = "",
) -> Visitor:
    visitor = db.query(Visitor).filter(Visitor.id == visitor_id).first()
    if not visitor:
        raise AppException("Visitor not found", status_code=404)

    checked_out_at = datetime.utcnow()
    visitor.check_out_time = checked_out_at
    visitor.status = VisitorStatus.checked_out.value
    members = _load_json(visitor.family_members_json, [])
    if members:
        for member in members:
            member["checkOutTime"] = member.get("checkOutTime") or checked_out_at.isoformat()
        visitor.family_members_json = json.dumps(members)
    try:
        db.commit()
        db.refresh(visitor)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Check-out failed visitor_id=%s", visitor_id)
        raise

    write_audit_log(
        db,
        action="visitor_check_out",
        user_id=actor_id,
        visitor_id=visitor.id,
        details={"timestamp": checked_out_at.isoformat()},
        ip_address=ip_address,
    )
    return visitor


def _check_in_sort_key(row: Visitor) -> datetime:
    return row.check_in_time or datetime.min


def _ordered_rows(query: Query) -> list[Visitor]:
    return query.order_by(Visitor.check_in_time.desc()).all()


_SORT_FAILURE_MARKERS = ("sort", "order by", "index")


def _is_sort_failure(exc: OperationalError) -> bool:
    message = str(exc.orig or exc).lower()
    return any(marker in message for marker in _SORT_FAILURE_MARKERS)


def _newest_first(db: Session, query: Query, label: str) -> list[Visitor]:
    try:
        return _ordered_rows(query)
    except OperationalError as exc:
        if not _is_sort_failure(exc):
            raise
        # Sorting without a supporting index can be refused server-side
        # (e.g. sort buffer exhaustion); filter only and sort here instead.
        logger.warning("%s: sorted query rejected (%s), falling back", label, exc.orig)
        db.rollback()
        rows = query.all()
        return sorted(rows, key=_check_in_sort_key, reverse=True)


def _start_of_today() -> datetime:
    return datetime.combine(datetime.utcnow().date(), dt_time.min)


def get_active_visitors(db: Session) -> list[Visitor]:
    query = db.query(Visitor).filter(Visitor.status == VisitorStatus.checked_in.value)
    try:
        return _newest_first(db, query, "get_active_visitors")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("get_active_visitors failed")
        return []


def get_today_visitors(db: Session) -> list[Visitor]:
    query = db.query(Visitor).filter(Visitor.check_in_time >= _start_of_today())
    try:
        return _newest_first(db, query, "get_today_visitors")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("get_today_visitors failed")
        return []


def get_visitors_in_range(db: Session, start_date: date, end_date: date) -> list[Visitor]:
    """Visitors checked in on any day from ``start_date`` to ``end_date``, both inclusive."""
    if start_date > end_date:
        raise AppException("startDate must be on or before endDate", status_code=400)
    lower = datetime.combine(start_date, dt_time.min)
    upper = datetime.combine(end_date, dt_time.max)
    query = db.query(Visitor).filter(Visitor.check_in_time >= lower, Visitor.check_in_time <= upper)
    try:
        return _newest_first(db, query, "get_visitors_in_range")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("get_visitors_in_range failed start=%s end=%s", start_date, end_date)
        return []


def get_all_visitors(db: Session) -> list[Visitor]:
    return _newest_first(db, db.query(Visitor), "get_all_visitors")


def get_visitor(db: Session, visitor_id: str) -> Visitor:
    row = db.query(Visitor).filter(Visitor.id == visitor_id).first()
    if not row:
        raise AppException("Visitor not found", status_code=404)
    return row


def find_visitor_by_id_number(db: Session, visitor_id_number: str) -> Visitor | None:
    try:
        return db.query(Visitor).filter(Visitor.visitor_id_number == visitor_id_number).first()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Find by ID error visitor_id_number=%s", visitor_id_number)
        return None


def find_visitor_by_qr_code(db: Session, qr_code_data: str) -> Visitor | None:
    try:
        parsed = json.loads(qr_code_data)
    except (TypeError, json.JSONDecodeError):
        return None
    if not isinstance(parsed, dict):
        return None
    visitor_id_number = parsed.get("id") or parsed.get("visitorId")
    if not visitor_id_number:
        return None
    return find_visitor_by_id_number(db, str(visitor_id_number))


def _mark_evacuated(db: Session, visitor_id: str, evacuated_at: datetime) -> bool:
    updated = (
        db.query(Visitor)
        .filter(Visitor.id == visitor_id)
        .update(
            {
                Visitor.status: VisitorStatus.emergency_evacuated.value,
                Visitor.check_out_time: evacuated_at,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return bool(updated)


def emergency_evacuation(db: Session, visitor_ids: list[str]) -> list[str]:
    """Mark each visitor evacuated with its own write.

    A failed write is logged and skipped; earlier and later writes stand.
    Returns the ids that were actually updated.
    """
    evacuated_at = datetime.utcnow()
    evacuated: list[str] = []
    for visitor_id in visitor_ids:
        try:
            if _mark_evacuated(db, visitor_id, evacuated_at):
                evacuated.append(visitor_id)
            else:
                logger.warning("Evacuation skipped unknown visitor_id=%s", visitor_id)
        except SQLAlchemyError:
            db.rollback()
            logger.warning("Evacuation write failed visitor_id=%s", visitor_id, exc_info=True)
    db.expire_all()
    return evacuated


def filter_visitors(visitors: list[Visitor], term: str | None) -> list[Visitor]:
    search = (term or "").lower()
    if not search:
        return list(visitors)
    return [
        row
        for row in visitors
        if search in (row.full_name or "").lower()
        or search in (row.phone_number or "")
        or search in (row.resident_name or "").lower()
        or search in (row.room_number or "").lower()
    ]


def front_desk_stats(db: Session) -> dict:
    today = get_today_visitors(db)
    active = get_active_visitors(db)
    return {
        "totalToday": len(today),
        "currentlyInside": len(active),
        "checkedOutToday": len([v for v in today if v.status == VisitorStatus.checked_out.value]),
    }


def probe_database_connection(db: Session) -> dict:
    try:
        probe = db.get(AppSetting, "db_probe")
        if not probe:
            probe = AppSetting(key="db_probe", value="true")
            db.add(probe)
            db.commit()
        probe.value = "false"
        db.commit()
        return {"success": True, "message": "Database OK"}
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Database probe failed: %s", exc)
        return {"success": False, "message": str(exc)}
