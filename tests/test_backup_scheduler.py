from datetime import datetime

from frontdesk.services import backup_scheduler, drive_service


def test_seconds_until_next_hour():
    assert backup_scheduler.seconds_until_next_hour(datetime(2026, 10, 18, 20, 45, 30)) == 870
    assert backup_scheduler.seconds_until_next_hour(datetime(2026, 10, 18, 20, 0, 0)) == 3600


def test_scheduled_backup_skips_when_not_authorized(db, monkeypatch):
    def unexpected_backup(*args, **kwargs):
        raise AssertionError("backup should not run")

    monkeypatch.setattr(drive_service, "create_backup", unexpected_backup)

    assert backup_scheduler.run_scheduled_backup() is None


def test_scheduled_backup_runs_when_authorized(db, monkeypatch):
    drive_service.store_access_token(db, "token-1", 3600)
    monkeypatch.setattr(drive_service, "create_backup", lambda session: {"fileId": "file-1"})

    assert backup_scheduler.run_scheduled_backup() == {"fileId": "file-1"}
