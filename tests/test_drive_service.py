import io
import json
from datetime import datetime
from urllib import error

import pytest

from frontdesk.core.exceptions import AppException
from frontdesk.db.models import AuditLog
from frontdesk.services import drive_service, settings_service


class FakeResponse:
    def __init__(self, payload: dict):
        self._body = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def captured_requests(monkeypatch):
    calls = []
    responses = []

    def fake_urlopen(req, timeout=None):
        calls.append(req)
        outcome = responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)

    monkeypatch.setattr(drive_service.request, "urlopen", fake_urlopen)
    return calls, responses


def _http_error(status: int, payload: dict) -> error.HTTPError:
    return error.HTTPError(
        "https://www.googleapis.com",
        status,
        "error",
        {},
        io.BytesIO(json.dumps(payload).encode("utf-8")),
    )


def test_token_expiry_is_shortened_by_one_minute(db, monkeypatch):
    monkeypatch.setattr(drive_service, "_now_ms", lambda: 1_000_000)

    expiry = drive_service.store_access_token(db, "token-1", 3600)

    assert expiry == 1_000_000 + 3_600_000 - 60_000
    assert settings_service.get_setting(db, drive_service.TOKEN_EXPIRY_KEY) == str(expiry)
    assert drive_service.is_token_valid(db, now_ms=expiry - 1)
    assert not drive_service.is_token_valid(db, now_ms=expiry)


def test_token_invalid_when_missing(db):
    assert not drive_service.is_token_valid(db)


def test_folder_id_falls_back_to_default(db):
    assert drive_service.get_folder_id(db) == drive_service.settings.GOOGLE_DRIVE_DEFAULT_FOLDER_ID
    drive_service.save_configuration(db, " client-1 ", folder_id="folder-9")
    assert drive_service.get_client_id(db) == "client-1"
    assert drive_service.get_folder_id(db) == "folder-9"


def test_upload_requires_valid_token(db):
    with pytest.raises(AppException) as exc_info:
        drive_service.upload_data(db, "backup.json", {"a": 1})
    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "No valid access token. Please sign in to Google Drive."


def test_upload_builds_multipart_request(db, captured_requests):
    calls, responses = captured_requests
    responses.append({"id": "file-1", "name": "backup.json"})
    drive_service.store_access_token(db, "token-1", 3600)

    result = drive_service.upload_data(db, "backup.json", {"visitors": [1, 2]})

    assert result["id"] == "file-1"
    req = calls[0]
    assert req.full_url == drive_service.settings.GOOGLE_DRIVE_UPLOAD_URL
    assert req.get_method() == "POST"
    assert req.get_header("Authorization") == "Bearer token-1"
    assert req.get_header("Content-type").startswith("multipart/related; boundary=")
    body = req.data.decode("utf-8")
    metadata = {
        "name": "backup.json",
        "mimeType": "application/json",
        "parents": [drive_service.settings.GOOGLE_DRIVE_DEFAULT_FOLDER_ID],
    }
    assert json.dumps(metadata) in body
    assert json.dumps({"visitors": [1, 2]}, indent=2) in body


def test_upload_surfaces_provider_error(db, captured_requests):
    _, responses = captured_requests
    responses.append(_http_error(403, {"error": {"message": "Insufficient permissions for folder"}}))
    drive_service.store_access_token(db, "token-1", 3600)

    with pytest.raises(AppException) as exc_info:
        drive_service.upload_data(db, "backup.json", {})
    assert exc_info.value.message == "Insufficient permissions for folder"


def test_upload_error_without_message(db, captured_requests):
    _, responses = captured_requests
    responses.append(_http_error(500, {"unexpected": True}))
    drive_service.store_access_token(db, "token-1", 3600)

    with pytest.raises(AppException) as exc_info:
        drive_service.upload_data(db, "backup.json", {})
    assert exc_info.value.message == "Upload failed"


def test_exchange_authorization_code_stores_tokens(db, captured_requests):
    calls, responses = captured_requests
    responses.append({"access_token": "token-2", "expires_in": 1800, "refresh_token": "refresh-2"})
    drive_service.save_configuration(db, "client-1", client_secret="secret-1")

    drive_service.exchange_authorization_code(db, "auth-code", "http://localhost:5173/admin")

    form = dict(pair.split("=", 1) for pair in calls[0].data.decode("utf-8").split("&"))
    assert form["grant_type"] == "authorization_code"
    assert form["code"] == "auth-code"
    assert form["client_id"] == "client-1"
    assert settings_service.get_setting(db, drive_service.ACCESS_TOKEN_KEY) == "token-2"
    assert settings_service.get_setting(db, drive_service.REFRESH_TOKEN_KEY) == "refresh-2"
    assert drive_service.is_token_valid(db)


def test_ensure_authorized_without_refresh_token_fails(db):
    with pytest.raises(AppException) as exc_info:
        drive_service.ensure_authorized(db)
    assert exc_info.value.status_code == 401


def test_ensure_authorized_refreshes_expired_token(db, captured_requests, monkeypatch):
    _, responses = captured_requests
    responses.append({"access_token": "token-3", "expires_in": 3600})
    drive_service.save_configuration(db, "client-1")
    drive_service.store_access_token(db, "stale", 60, refresh_token="refresh-1")

    drive_service.ensure_authorized(db)

    assert settings_service.get_setting(db, drive_service.ACCESS_TOKEN_KEY) == "token-3"
    assert settings_service.get_setting(db, drive_service.REFRESH_TOKEN_KEY) == "refresh-1"


def test_backup_filename():
    name = drive_service.backup_filename(datetime(2026, 10, 18, 20, 41, 0, 123000))
    assert name == "project_nayana_backup_2026-10-18T20-41-00-123Z.xlsx"


def test_create_backup_uploads_workbook_and_records_date(db, captured_requests):
    calls, responses = captured_requests
    responses.append({"id": "file-9"})
    drive_service.store_access_token(db, "token-1", 3600)

    result = drive_service.create_backup(db, actor_id="admin-1")

    assert result["fileId"] == "file-9"
    assert result["filename"].endswith(".xlsx")
    assert drive_service.XLSX_MIME_TYPE in calls[0].data.decode("latin-1")
    assert settings_service.get_setting(db, drive_service.LAST_BACKUP_KEY) == result["lastBackup"]
    log = db.query(AuditLog).filter(AuditLog.action == "backup_created").one()
    assert log.user_id == "admin-1"


def test_clear_tokens(db):
    drive_service.store_access_token(db, "token-1", 3600, refresh_token="refresh-1")
    drive_service.clear_tokens(db)
    status = drive_service.get_backup_status(db)
    assert status["isAuthorized"] is False
    assert status["tokenExpiry"] is None


def test_non_numeric_expiry_is_rejected(db):
    with pytest.raises(AppException) as exc_info:
        drive_service.store_access_token(db, "token-1", "soon")
    assert exc_info.value.status_code == 400
    assert not drive_service.is_token_valid(db)


def test_token_response_with_bad_expiry_is_bad_request(db, captured_requests):
    _, responses = captured_requests
    responses.append({"access_token": "token-2", "expires_in": "an hour"})
    drive_service.save_configuration(db, "client-1")

    with pytest.raises(AppException) as exc_info:
        drive_service.exchange_authorization_code(db, "auth-code", "http://localhost:5173/admin")
    assert exc_info.value.status_code == 400
    assert settings_service.get_setting(db, drive_service.ACCESS_TOKEN_KEY) is None
