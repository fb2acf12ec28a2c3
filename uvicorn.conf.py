from frontdesk.core.config import get_settings

settings = get_settings()

host = settings.BACKEND_HOST
port = settings.BACKEND_PORT
log_level = "debug" if settings.DEBUG else "info"
# Socket sessions and the backup task live in process memory.
workers = 1
