"""
Rateboard API
FastAPI backend for a field-service business: overhead-driven billable hourly
rate, service pricing matrix and job costing, on async PostgreSQL with JWT auth.
"""
import os
import logging
import time
import collections
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from app.api.responses import error_response, validation_message
from app.db import dispose_db, init_db
from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware

# Load .env file in dev (no-op when the file is missing)
load_dotenv()

_log_level = os.getenv("LOG_LEVEL", "INFO")
_json_logs = os.getenv("LOG_FORMAT", "json").lower() != "text"
setup_logging(level=_log_level, json_output=_json_logs)
logger = logging.getLogger("rateboard-api")

APP_ENV = os.getenv("APP_ENV", "development").lower()
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() not in ("0", "false", "no")

# Startup validation
for var in ["DATABASE_URL", "JWT_SECRET_KEY"]:
    if not os.getenv(var):
        logger.warning(f"MISSING env var: {var} - running in dev mode")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield
    await dispose_db()


app = FastAPI(
    title="Rateboard API",
    version="1.0.0",
    description="Billable hourly rate, pricing matrix and job costing for field-service businesses",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Rate Limiting Middleware
# ---------------------------------------------------------------------------
class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limiter, keyed by client IP.
    Buckets (per 15 minute window by default):
      - /api/auth/*       : 20 requests
      - everything else   : 100 requests
    """
    def __init__(self, app, auth_limit: int = 20, general_limit: int = 100,
                 window_seconds: int = 900, enabled: bool = True):
        super().__init__(app)
        self.auth_limit = auth_limit
        self.general_limit = general_limit
        self.window_seconds = window_seconds
        self.enabled = enabled
        # {bucket_key: deque of timestamps}
        self._windows: dict = collections.defaultdict(collections.deque)

    def _bucket(self, path: str) -> tuple[str, int]:
        if path.startswith("/api/auth/"):
            return "auth", self.auth_limit
        return "general", self.general_limit

    async def dispatch(self, request: Request, call_next):
        if not self.enabled or request.method == "OPTIONS":
            return await call_next(request)
        ip = request.client.host if request.client else "unknown"
        name, limit = self._bucket(request.url.path)
        now = time.monotonic()
        window = self._windows[f"{ip}:{name}"]
        while window and now - window[0] > self.window_seconds:
            window.popleft()
        if len(window) >= limit:
            retry_after = max(1, int(self.window_seconds - (now - window[0])))
            logger.warning(f"Rate limit hit: {ip} ({name})")
            return error_response(
                "Too many requests, please try again later.",
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )
        window.append(now)
        return await call_next(request)


# ---------------------------------------------------------------------------
# Security Headers Middleware
# ---------------------------------------------------------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# ---------------------------------------------------------------------------
# CORS - restricted to allowed origins from env
# ---------------------------------------------------------------------------
_cors_default = "http://localhost:3000,http://localhost:5173"
cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", _cors_default).split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware, enabled=RATE_LIMIT_ENABLED)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(validation_message(exc), 400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path}",
        extra={"request_id": getattr(request.state, "request_id", None)},
    )
    message = "Internal server error" if APP_ENV == "production" else str(exc) or "Internal server error"
    return error_response(message, 500)


# Routers
from app.api.auth_routes import router as auth_router
from app.api.overhead_routes import router as overhead_router
from app.api.pricing_routes import router as pricing_router
from app.api.job_routes import router as job_router

app.include_router(auth_router)
app.include_router(overhead_router)
app.include_router(pricing_router)
app.include_router(job_router)


@app.get("/api/health")
async def health_check():
    return {
        "success": True,
        "message": "Server is running",
        "data": {
            "status": "active",
            "version": app.version,
            "environment": APP_ENV,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
