import csv
import io
import json
from datetime import datetime

from openpyxl import Workbook
from openpyxl.styles import Font

from frontdesk.db.models import AuditLog, Visitor
from frontdesk.services.audit_service import audit_details

XLSX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIME_TYPE = "text/csv; charset=utf-8"

ACTIVE_VISITOR_HEADERS = ["Full Name", "Phone Number", "Visiting Resident", "Room", "Check-in Time", "Visitor ID"]
VISITOR_SHEET_HEADERS = [
    "Full Name",
    "Phone Number",
    "Visiting Resident",
    "Room",
    "Check-in Time",
    "Check-out Time",
    "Status",
    "Visitor ID",
    "Purpose",
    "Badge Number",
]
AUDIT_SHEET_HEADERS = ["Timestamp", "Action", "User ID", "Visitor ID", "Details"]


def format_date_time(value: datetime | None) -> str:
    """Render like ``Oct 8, 2026, 09:05 AM``."""
    if not value:
        return ""
    return f"{value:%b} {value.day}, {value:%Y}, {value:%I:%M %p}"


def export_filename(prefix: str, extension: str, today: datetime | None = None) -> str:
    today = today or datetime.utcnow()
    return f"{prefix}_{today:%Y-%m-%d}.{extension}"


def active_visitors_csv(visitors: list[Visitor]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    output.write(",".join(ACTIVE_VISITOR_HEADERS) + "\n")
    for row in visitors:
        writer.writerow(
            [
                row.full_name or "",
                row.phone_number or "",
                row.resident_name or "",
                row.room_number or "",
                format_date_time(row.check_in_time),
                row.visitor_id_number or "",
            ]
        )
    # BOM so spreadsheet apps pick up UTF-8.
    return "\ufeff" + output.getvalue().rstrip("\n")


def _append_sheet(workbook: Workbook, title: str, headers: list[str], rows: list[list], first: bool = False):
    sheet = workbook.active if first else workbook.create_sheet()
    sheet.title = title
    sheet.append(headers)
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for values in rows:
        sheet.append(values)
    return sheet


def build_backup_workbook(visitors: list[Visitor], audit_logs: list[AuditLog]) -> bytes:
    workbook = Workbook()
    _append_sheet(
        workbook,
        "Visitors",
        VISITOR_SHEET_HEADERS,
        [
            [
                v.full_name or "",
                v.phone_number or "",
                v.resident_name or "",
                v.room_number or "",
                format_date_time(v.check_in_time),
                format_date_time(v.check_out_time),
                v.status or "",
                v.visitor_id_number or "",
                v.visit_purpose or "",
                v.badge_number or "",
            ]
            for v in visitors
        ],
        first=True,
    )
    _append_sheet(
        workbook,
        "Audit Logs",
        AUDIT_SHEET_HEADERS,
        [
            [
                format_date_time(log.timestamp),
                log.action or "",
                log.user_id or "",
                log.visitor_id or "",
                json.dumps(audit_details(log)),
            ]
            for log in audit_logs
        ],
    )

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()
