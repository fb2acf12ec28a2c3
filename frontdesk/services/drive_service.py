"""Google Drive backups.

Tokens and backup settings live in the ``app_settings`` table. Access tokens
come from the OAuth2 token endpoint (authorisation code or refresh token) or
are handed over directly by a client that ran the Google Identity flow.
"""

import json
import logging
import time
import uuid
from datetime import datetime
from typing import Any
from urllib import error, parse, request

from sqlalchemy.orm import Session

from frontdesk.core.config import get_settings
from frontdesk.core.exceptions import AppException
from frontdesk.services import settings_service
from frontdesk.services.audit_service import get_all_audit_logs, write_audit_log
from frontdesk.services.export_service import XLSX_MIME_TYPE, build_backup_workbook
from frontdesk.services.visitor_service import get_all_visitors

settings = get_settings()
logger = logging.getLogger(__name__)

CLIENT_ID_KEY = "gdrive_client_id"
CLIENT_SECRET_KEY = "gdrive_client_secret"
FOLDER_ID_KEY = "gdrive_folder_id"
ACCESS_TOKEN_KEY = "gdrive_access_token"
TOKEN_EXPIRY_KEY = "gdrive_token_expiry"
REFRESH_TOKEN_KEY = "gdrive_refresh_token"
LAST_BACKUP_KEY = "last_backup_date"

# Tokens are treated as expired one minute early.
EXPIRY_BUFFER_MS = 60_000
DEFAULT_EXPIRES_IN = 3600


def _now_ms() -> int:
    return int(time.time() * 1000)


def get_client_id(db: Session) -> str | None:
    return settings_service.get_setting(db, CLIENT_ID_KEY) or None


def get_folder_id(db: Session) -> str:
    return settings_service.get_setting(db, FOLDER_ID_KEY) or settings.GOOGLE_DRIVE_DEFAULT_FOLDER_ID


def _token_expiry(db: Session) -> int:
    raw = settings_service.get_setting(db, TOKEN_EXPIRY_KEY)
    try:
        return int(raw) if raw else 0
    except ValueError:
        return 0


def is_token_valid(db: Session, now_ms: int | None = None) -> bool:
    token = settings_service.get_setting(db, ACCESS_TOKEN_KEY)
    now_ms = _now_ms() if now_ms is None else now_ms
    return bool(token) and now_ms < _token_expiry(db)


def save_configuration(db: Session, client_id: str, client_secret: str | None = None, folder_id: str | None = None) -> None:
    values: dict[str, str | None] = {CLIENT_ID_KEY: client_id.strip(), FOLDER_ID_KEY: (folder_id or "").strip()}
    if client_secret is not None:
        values[CLIENT_SECRET_KEY] = client_secret.strip()
    settings_service.set_settings(db, values)


def store_access_token(
    db: Session,
    access_token: str,
    expires_in: int | str | None = None,
    refresh_token: str | None = None,
) -> int:
    if not access_token:
        raise AppException("access_token is required", status_code=400)
    try:
        lifetime = int(expires_in or DEFAULT_EXPIRES_IN)
    except (TypeError, ValueError) as exc:
        raise AppException("expires_in must be a number of seconds", status_code=400) from exc
    expiry = _now_ms() + lifetime * 1000 - EXPIRY_BUFFER_MS
    values: dict[str, str | None] = {ACCESS_TOKEN_KEY: access_token, TOKEN_EXPIRY_KEY: str(expiry)}
    if refresh_token:
        values[REFRESH_TOKEN_KEY] = refresh_token
    settings_service.set_settings(db, values)
    return expiry


def clear_tokens(db: Session) -> None:
    settings_service.set_settings(db, {ACCESS_TOKEN_KEY: None, TOKEN_EXPIRY_KEY: None, REFRESH_TOKEN_KEY: None})


def _post_token_request(form: dict[str, str]) -> dict:
    body = parse.urlencode(form).encode("utf-8")
    req = request.Request(
        settings.GOOGLE_OAUTH_TOKEN_URL,
        data=body,
        method="POST",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    try:
        with request.urlopen(req, timeout=settings.GOOGLE_HTTP_TIMEOUT_SECONDS) as resp:
            data = json.loads(resp.read().decode("utf-8"))
    except error.HTTPError as exc:
        detail = _error_message(exc.read())
        logger.warning("Google token request failed status=%s detail=%s", exc.code, detail)
        raise AppException(f"Authorization failed: {detail}", status_code=502) from exc
    except (error.URLError, TimeoutError, ValueError) as exc:
        logger.warning("Google token request failed: %s", exc)
        raise AppException("Authorization failed: token endpoint unreachable", status_code=502) from exc

    if data.get("error"):
        raise AppException(f"Authorization failed: {data.get('error_description') or data['error']}", status_code=401)
    return data


def _client_credentials(db: Session) -> tuple[str, str]:
    client_id = get_client_id(db)
    if not client_id:
        raise AppException("Please enter a valid Google Client ID", status_code=400)
    return client_id, settings_service.get_setting(db, CLIENT_SECRET_KEY) or ""


def exchange_authorization_code(db: Session, code: str, redirect_uri: str) -> int:
    client_id, client_secret = _client_credentials(db)
    data = _post_token_request(
        {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
        }
    )
    return store_access_token(db, data.get("access_token", ""), data.get("expires_in"), data.get("refresh_token"))


def refresh_access_token(db: Session) -> int:
    refresh_token = settings_service.get_setting(db, REFRESH_TOKEN_KEY)
    if not refresh_token:
        raise AppException("No valid access token. Please sign in to Google Drive.", status_code=401)
    client_id, client_secret = _client_credentials(db)
    data = _post_token_request(
        {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
        }
    )
    return store_access_token(db, data.get("access_token", ""), data.get("expires_in"))


def ensure_authorized(db: Session) -> None:
    if is_token_valid(db):
        return
    refresh_access_token(db)


def _error_message(raw: bytes) -> str:
    try:
        payload = json.loads(raw.decode("utf-8", errors="ignore"))
    except ValueError:
        return "Upload failed"
    err = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(err, dict):
        return err.get("message") or "Upload failed"
    if isinstance(err, str):
        return payload.get("error_description") or err
    return "Upload failed"


def _multipart_body(metadata: dict, content: bytes, mime_type: str) -> tuple[bytes, str]:
    boundary = f"frontdesk-{uuid.uuid4().hex}"
    parts = [
        f"--{boundary}\r\n".encode(),
        b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
        json.dumps(metadata).encode("utf-8"),
        f"\r\n--{boundary}\r\n".encode(),
        f"Content-Type: {mime_type}\r\n\r\n".encode(),
        content,
        f"\r\n--{boundary}--\r\n".encode(),
    ]
    return b"".join(parts), f"multipart/related; boundary={boundary}"


def upload_data(db: Session, filename: str, data: Any, mime_type: str = "application/json") -> dict:
    if not is_token_valid(db):
        raise AppException("No valid access token. Please sign in to Google Drive.", status_code=401)

    if mime_type == "application/json":
        content = json.dumps(data, indent=2, default=str).encode("utf-8")
    elif isinstance(data, str):
        content = data.encode("utf-8")
    else:
        content = bytes(data)

    metadata = {"name": filename, "mimeType": mime_type, "parents": [get_folder_id(db)]}
    body, content_type = _multipart_body(metadata, content, mime_type)
    req = request.Request(
        settings.GOOGLE_DRIVE_UPLOAD_URL,
        data=body,
        method="POST",
        headers={
            "Authorization": f"Bearer {settings_service.get_setting(db, ACCESS_TOKEN_KEY)}",
            "Content-Type": content_type,
        },
    )
    try:
        with request.urlopen(req, timeout=settings.GOOGLE_HTTP_TIMEOUT_SECONDS) as resp:
            return json.loads(resp.read().decode("utf-8"))
    except error.HTTPError as exc:
        message = _error_message(exc.read())
        logger.warning("Drive upload failed status=%s file=%s message=%s", exc.code, filename, message)
        raise AppException(message, status_code=502) from exc
    except (error.URLError, TimeoutError) as exc:
        logger.warning("Drive upload failed file=%s: %s", filename, exc)
        raise AppException("Upload failed", status_code=502) from exc


def backup_filename(now: datetime | None = None) -> str:
    now = now or datetime.utcnow()
    stamp = now.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    return f"{settings.BACKUP_FILENAME_PREFIX}_backup_{stamp}Z.xlsx"


def create_backup(db: Session, actor_id: str | None = None) -> dict:
    ensure_authorized(db)
    visitors = get_all_visitors(db)
    audit_logs = get_all_audit_logs(db)
    workbook = build_backup_workbook(visitors, audit_logs)
    filename = backup_filename()

    started = time.perf_counter()
    uploaded = upload_data(db, filename, workbook, XLSX_MIME_TYPE)
    logger.info(
        "Backup uploaded in %.1fms file=%s visitors=%d audit_logs=%d",
        (time.perf_counter() - started) * 1000,
        filename,
        len(visitors),
        len(audit_logs),
    )

    finished_at = datetime.utcnow().isoformat()
    settings_service.set_setting(db, LAST_BACKUP_KEY, finished_at)
    write_audit_log(
        db,
        action="backup_created",
        user_id=actor_id,
        details={"filename": filename, "fileId": uploaded.get("id"), "visitors": len(visitors)},
    )
    return {"filename": filename, "fileId": uploaded.get("id"), "lastBackup": finished_at}


def get_backup_status(db: Session) -> dict:
    return {
        "clientId": get_client_id(db),
        "folderId": get_folder_id(db),
        "isAuthorized": is_token_valid(db) or bool(settings_service.get_setting(db, REFRESH_TOKEN_KEY)),
        "tokenExpiry": _token_expiry(db) or None,
        "lastBackup": settings_service.get_setting(db, LAST_BACKUP_KEY),
        "autoBackupEnabled": settings.BACKUP_AUTO_ENABLED,
        "scopes": settings.GOOGLE_DRIVE_SCOPES,
    }
