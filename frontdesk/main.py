import asyncio
import logging

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import inspect, text

from frontdesk.api.routes import api_router
from frontdesk.core.config import get_settings
from frontdesk.core.exceptions import register_exception_handlers
from frontdesk.core.logging import setup_logging
from frontdesk.db.base import Base
from frontdesk.db.session import SessionLocal, engine
from frontdesk.middleware.request_context import RequestContextMiddleware
from frontdesk.services.auth_service import seed_default_users
from frontdesk.services.backup_scheduler import hourly_backup_loop
from frontdesk.socket.server import sio

settings = get_settings()
setup_logging(logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger(__name__)

fastapi_app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)
fastapi_app.include_router(api_router, prefix=settings.API_V1_PREFIX)
fastapi_app.add_middleware(RequestContextMiddleware)
fastapi_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.CORS_ALLOW_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Request-ID"],
)
register_exception_handlers(fastapi_app)

_background_tasks: list[asyncio.Task] = []


def _ensure_visitor_indexes() -> None:
    # Databases created before the check-in index existed.
    inspector = inspect(engine)
    if "visitors" not in set(inspector.get_table_names()):
        return
    with engine.begin() as conn:
        conn.execute(text("CREATE INDEX IF NOT EXISTS ix_visitors_check_in_time ON visitors (check_in_time)"))
        conn.execute(text("CREATE INDEX IF NOT EXISTS ix_visitors_status ON visitors (status)"))


@fastapi_app.on_event("startup")
async def on_startup():
    Base.metadata.create_all(bind=engine)
    _ensure_visitor_indexes()
    db = SessionLocal()
    try:
        if settings.ENVIRONMENT.lower() == "development":
            seed_default_users(db)
    finally:
        db.close()

    if settings.BACKUP_AUTO_ENABLED:
        logger.info("Hourly Google Drive backup enabled")
        _background_tasks.append(asyncio.create_task(hourly_backup_loop()))


@fastapi_app.on_event("shutdown")
async def on_shutdown():
    for task in _background_tasks:
        task.cancel()
    _background_tasks.clear()


app = socketio.ASGIApp(
    sio,
    other_asgi_app=fastapi_app,
    socketio_path=settings.SOCKET_PATH.lstrip("/"),
)
