"""Request timing and tracing middleware for Rateboard."""
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("rateboard-api.middleware")

SKIP_LOG_PATHS = {"/api/health"}


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    - Assigns an X-Request-ID to every request/response (reuses the caller's if sent).
    - Adds X-Process-Time (milliseconds) to every response.
    - Emits one structured log line per request, tagged with the
      authenticated user id when get_current_user ran.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start_time = time.perf_counter()

        request.state.request_id = request_id

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            extra = {
                "http_method": request.method,
                "http_path": request.url.path,
                "http_status": response.status_code,
                "request_id": request_id,
                "duration_ms": duration_ms,
            }
            user_id = getattr(request.state, "user_id", None)
            if user_id:
                extra["user_id"] = user_id
            logger.info("request completed", extra=extra)

        return response
