import logging
import os
import time
from collections import defaultdict
from threading import Lock

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from mindful.database import engine, Base, SessionLocal
from mindful.models import subscription as subscription_models  # noqa: F401 - import for table creation
from mindful.routers.payment import router as payment_router
from mindful.routers.subscription import router as subscription_router

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiter for payment endpoints.

    Limits requests based on client IP using a sliding window algorithm.
    Rate limit settings can be configured via environment variables:
    - RATE_LIMIT_PAYMENTS: Max payment requests per window (default: 20)
    - RATE_LIMIT_WINDOW_SECONDS: Time window in seconds (default: 60)
    - RATE_LIMIT_DISABLED: Set to "1" to disable rate limiting (useful for testing)
    - TRUSTED_PROXIES: Comma-separated proxy addresses whose X-Forwarded-For
      header is honored (default: none, the peer address is used)
    """

    def __init__(
        self,
        app,
        rate_limit: int = 20,
        window_seconds: int = 60,
        disabled: bool | None = None,
        trusted_proxies: set[str] | None = None,
    ):
        super().__init__(app)
        if disabled is None:
            disabled = os.environ.get("RATE_LIMIT_DISABLED", "0") == "1"
        if trusted_proxies is None:
            trusted_proxies = {
                proxy.strip()
                for proxy in os.environ.get("TRUSTED_PROXIES", "").split(",")
                if proxy.strip()
            }
        self.disabled = disabled
        self.trusted_proxies = trusted_proxies
        self.rate_limit = int(os.environ.get("RATE_LIMIT_PAYMENTS", rate_limit))
        self.window_seconds = int(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", window_seconds))
        self.requests: dict[str, list[float]] = defaultdict(list)
        self.lock = Lock()
        self._last_sweep = 0.0
        # Paths to rate limit
        self.rate_limited_paths = {
            ("/api/verify-payment", "POST"),
            ("/api/create-order", "POST"),
        }

    def _get_client_ip(self, request: Request) -> str:
        """Get client IP from request.

        X-Forwarded-For is only read when the peer is a trusted proxy. The
        chain is walked from the right and the first untrusted hop is the
        client; entries to its left are client-supplied.
        """
        peer = request.client.host if request.client else "unknown"
        forwarded = request.headers.get("X-Forwarded-For")
        if not forwarded or peer not in self.trusted_proxies:
            return peer
        for hop in reversed([ip.strip() for ip in forwarded.split(",") if ip.strip()]):
            if hop not in self.trusted_proxies:
                return hop
        return peer

    def _cleanup_old_requests(self, key: str, current_time: float) -> None:
        """Remove requests older than the window, dropping idle keys."""
        cutoff = current_time - self.window_seconds
        recent = [t for t in self.requests.get(key, []) if t > cutoff]
        if recent:
            self.requests[key] = recent
        else:
            self.requests.pop(key, None)

    def _sweep(self, current_time: float) -> None:
        """Drop keys of clients that have been idle for a full window."""
        if current_time - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = current_time
        for key in list(self.requests):
            self._cleanup_old_requests(key, current_time)

    def _is_rate_limited(self, key: str) -> bool:
        """Check if a client is rate limited and record the new request."""
        current_time = time.time()
        with self.lock:
            self._sweep(current_time)
            self._cleanup_old_requests(key, current_time)
            if len(self.requests[key]) >= self.rate_limit:
                return True
            self.requests[key].append(current_time)
            return False

    async def dispatch(self, request: Request, call_next):
        if self.disabled:
            return await call_next(request)

        path = request.url.path
        if (path, request.method) in self.rate_limited_paths:
            client_ip = self._get_client_ip(request)
            if self._is_rate_limited(f"{client_ip}:{path}"):
                logger.warning("Rate limit exceeded for %s on %s", client_ip, path)
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={
                        "error": "Too many requests. Please try again later.",
                    },
                    headers={"Retry-After": str(self.window_seconds)},
                )

        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        # Billing responses must never be cached
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
        response.headers["Pragma"] = "no-cache"

        return response


Base.metadata.create_all(bind=engine)

app = FastAPI(title="Mindful Billing API", version="0.1.0")

# Configure CORS origins from environment variable
# Example: CORS_ORIGINS=https://app.example.com,https://www.example.com
cors_origins_env = os.environ.get("CORS_ORIGINS", "")
if cors_origins_env:
    cors_origins = [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
else:
    # Default to the local web client for development only
    cors_origins = ["http://localhost:5173", "http://localhost:3000", "http://127.0.0.1:5173"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(RateLimitMiddleware)

app.include_router(payment_router)
app.include_router(subscription_router)

@app.get("/")
def read_root():
    return {"message": "Mindful Billing API", "version": "0.1.0"}

@app.get("/healthz")
def healthz():
    """Health check endpoint that verifies database connectivity."""
    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
        finally:
            db.close()
    except Exception:
        logger.exception("Health check failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "unhealthy", "database": "disconnected"},
        )
