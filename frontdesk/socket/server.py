import socketio

from frontdesk.core.config import get_settings
from frontdesk.socket.events import register_socket_events

settings = get_settings()

# Dashboards only; connections to any other namespace are refused.
sio = socketio.AsyncServer(
    async_mode="asgi",
    namespaces=[settings.VISITORS_NAMESPACE],
    cors_allowed_origins="*" if settings.DEBUG else list(settings.cors_origins),
    logger=False,
    engineio_logger=False,
)

register_socket_events(sio)
