import asyncio
import logging
from datetime import datetime, timedelta

from frontdesk.core.exceptions import AppException
from frontdesk.db.session import session_scope
from frontdesk.services import drive_service

logger = logging.getLogger(__name__)


def seconds_until_next_hour(now: datetime | None = None) -> float:
    now = now or datetime.utcnow()
    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (next_hour - now).total_seconds()


def run_scheduled_backup() -> dict | None:
    with session_scope() as db:
        if not drive_service.get_backup_status(db)["isAuthorized"]:
            logger.info("Skipping scheduled backup: Google Drive is not authorized")
            return None
        try:
            return drive_service.create_backup(db)
        except AppException as exc:
            logger.warning("Scheduled backup failed: %s", exc.message)
            return None


async def hourly_backup_loop() -> None:
    while True:
        await asyncio.sleep(seconds_until_next_hour())
        try:
            await asyncio.to_thread(run_scheduled_backup)
        except Exception:
            logger.exception("Scheduled backup crashed")
