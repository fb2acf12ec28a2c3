import logging
from time import perf_counter

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from frontdesk.api.deps import client_ip, require_view
from frontdesk.core.roles import View
from frontdesk.db.models import User
from frontdesk.db.session import get_db
from frontdesk.schemas.visitor import QRLookupRequest, VisitorCheckIn
from frontdesk.services import visitor_service
from frontdesk.services.export_service import CSV_MIME_TYPE, active_visitors_csv, export_filename
from frontdesk.socket.events import broadcast_active_visitors
from frontdesk.socket.server import sio

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/check-in")
async def check_in(
    payload: VisitorCheckIn,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_view(View.front_desk)),
):
    started = perf_counter()
    visitor = visitor_service.check_in_visitor(
        db,
        payload,
        is_returning=payload.isReturningVisitor,
        actor_id=user.id,
        ip_address=client_ip(request),
    )
    logger.info(
        "visitor.check_in completed in %.1fms visitor_id=%s badge=%s",
        (perf_counter() - started) * 1000,
        visitor.id,
        visitor.badge_number,
    )
    data = visitor_service.serialize_visitor(visitor)
    await broadcast_active_visitors(sio)
    return {"data": data}


@router.post("/{visitor_id}/check-out")
async def check_out(
    visitor_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_view(View.front_desk)),
):
    visitor = visitor_service.check_out_visitor(db, visitor_id, actor_id=user.id, ip_address=client_ip(request))
    data = visitor_service.serialize_visitor(visitor)
    await broadcast_active_visitors(sio)
    return {"data": data}


@router.get("/active")
def active_visitors(
    q: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    rows = visitor_service.filter_visitors(visitor_service.get_active_visitors(db), q)
    return {"data": [visitor_service.serialize_visitor(row) for row in rows]}


@router.get("/today")
def today_visitors(
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    rows = visitor_service.get_today_visitors(db)
    return {"data": [visitor_service.serialize_visitor(row) for row in rows]}


@router.get("/stats")
def front_desk_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    return {"data": visitor_service.front_desk_stats(db)}


@router.get("/export/active.csv")
def export_active_visitors(
    q: str | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    rows = visitor_service.filter_visitors(visitor_service.get_active_visitors(db), q)
    content = active_visitors_csv(rows)
    filename = export_filename("Active_Visitors_Filtered" if q else "Active_Visitors_All", "csv")
    return Response(
        content=content.encode("utf-8"),
        media_type=CSV_MIME_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/by-id-number/{visitor_id_number}")
def find_by_id_number(
    visitor_id_number: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    row = visitor_service.find_visitor_by_id_number(db, visitor_id_number)
    return {"data": visitor_service.serialize_visitor(row) if row else None}


@router.post("/lookup-qr")
def find_by_qr_code(
    payload: QRLookupRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    row = visitor_service.find_visitor_by_qr_code(db, payload.qrCode)
    return {"data": visitor_service.serialize_visitor(row) if row else None}


@router.get("/{visitor_id}")
def get_visitor(
    visitor_id: str,
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.front_desk)),
):
    return {"data": visitor_service.serialize_visitor(visitor_service.get_visitor(db, visitor_id))}
