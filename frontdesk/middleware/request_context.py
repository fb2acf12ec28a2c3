import logging
import uuid
from time import perf_counter

from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        forwarded = request.headers.get("X-Forwarded-For", "")
        request.state.client_ip = (
            forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else "")
        )
        started = perf_counter()
        response = await call_next(request)
        logger.debug(
            "%s %s -> %s in %.1fms request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - started) * 1000,
            request.state.request_id,
        )
        response.headers["X-Request-ID"] = request.state.request_id
        return response
