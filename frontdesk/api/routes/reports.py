from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from frontdesk.api.deps import require_view
from frontdesk.core.roles import View
from frontdesk.db.models import User, VisitorStatus
from frontdesk.db.session import get_db
from frontdesk.services.audit_service import get_all_audit_logs, list_audit_logs, serialize_audit_log
from frontdesk.services.export_service import XLSX_MIME_TYPE, build_backup_workbook, export_filename
from frontdesk.services.visitor_service import get_all_visitors, get_visitors_in_range, serialize_visitor

router = APIRouter()


@router.get("/visitors")
def report_visitors(
    startDate: date = Query(...),
    endDate: date = Query(...),
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.reports)),
):
    rows = get_visitors_in_range(db, startDate, endDate)
    return {"data": [serialize_visitor(row) for row in rows]}


@router.get("/stats")
def report_stats(
    startDate: date = Query(...),
    endDate: date = Query(...),
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.reports)),
):
    rows = get_visitors_in_range(db, startDate, endDate)
    by_status = {status.value: 0 for status in VisitorStatus}
    by_purpose: dict[str, int] = {}
    for row in rows:
        by_status[row.status] = by_status.get(row.status, 0) + 1
        purpose = row.visit_purpose or "unspecified"
        by_purpose[purpose] = by_purpose.get(purpose, 0) + 1
    return {
        "data": {
            "total": len(rows),
            "byStatus": by_status,
            "byPurpose": by_purpose,
            "uniqueVisitors": len({row.visitor_id_number for row in rows if row.visitor_id_number}),
        }
    }


@router.get("/audit-logs")
def report_audit_logs(
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.reports)),
):
    return {"data": [serialize_audit_log(row) for row in list_audit_logs(db, limit=limit)]}


@router.get("/export/backup.xlsx")
def report_workbook(
    db: Session = Depends(get_db),
    _: User = Depends(require_view(View.reports)),
):
    content = build_backup_workbook(get_all_visitors(db), get_all_audit_logs(db))
    filename = export_filename("Visitor_Report", "xlsx")
    return Response(
        content=content,
        media_type=XLSX_MIME_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
