"""Per-request plumbing: request id, rate limit, timing headers and access log."""

import hashlib
import logging
import threading
import time
import uuid
from typing import NamedTuple, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.config import settings
from ..core.logging_config import request_id_var
from ..exceptions import ErrorCode

logger = logging.getLogger(__name__)


class Bucket(NamedTuple):
    tokens: float
    refilled_at: float


_rate_buckets: dict[str, Bucket] = {}
_rate_lock = threading.Lock()
_requests_seen = 0

SWEEP_INTERVAL = 200
IDLE_SECONDS = 300.0
EXEMPT_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})


def check_rate_limit(
    bucket: dict[str, Bucket],
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> tuple[bool, float]:
    """Spend one token from *key*'s bucket.

    The bucket holds at most *max_per_minute* tokens and refills at
    ``max_per_minute / 60`` tokens per second. A limit of 0 or less turns
    limiting off.

    Returns:
        ``(allowed, retry_after_seconds)``; the delay is 0.0 when allowed.
    """
    if max_per_minute <= 0:
        return True, 0.0
    now = time.monotonic() if now is None else now
    per_second = max_per_minute / 60.0

    state = bucket.get(key)
    if state is None:
        tokens = float(max_per_minute)
    else:
        tokens = min(float(max_per_minute), state.tokens + (now - state.refilled_at) * per_second)

    if tokens < 1.0:
        bucket[key] = Bucket(tokens, now)
        return False, (1.0 - tokens) / per_second

    bucket[key] = Bucket(tokens - 1.0, now)
    return True, 0.0


def sweep_idle(bucket: dict[str, Bucket], now: float, idle_seconds: float = IDLE_SECONDS) -> int:
    """Drop buckets untouched for *idle_seconds*. Returns how many were dropped."""
    stale = [key for key, state in bucket.items() if now - state.refilled_at > idle_seconds]
    for key in stale:
        del bucket[key]
    return len(stale)


def client_key(request: Request) -> str:
    """Rate-limit per caller identity, falling back to the client address."""
    authorization = request.headers.get("authorization")
    if authorization:
        return "bearer:" + hashlib.sha256(authorization.encode()).hexdigest()[:16]
    user_id = request.headers.get("x-user-id")
    if user_id:
        return "user:" + user_id
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return "ip:" + forwarded.split(",", 1)[0].strip()
    return "ip:" + (request.client.host if request.client else "unknown")


def _spend(key: str) -> tuple[bool, float]:
    global _requests_seen
    now = time.monotonic()
    with _rate_lock:
        _requests_seen += 1
        if _requests_seen % SWEEP_INTERVAL == 0:
            sweep_idle(_rate_buckets, now)
        return check_rate_limit(_rate_buckets, key, settings.rate_limit_per_minute, now)


def _rate_limited_response(request_id: str, retry_after: float) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={
            "error": ErrorCode.RATE_LIMITED.value,
            "message": "Too many requests",
            "details": {"retry_after": round(retry_after, 1)},
        },
        headers={"Retry-After": str(int(retry_after) + 1), "X-Request-ID": request_id},
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id, rate-limits API calls and logs the outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(request_id)
        path = request.url.path

        if path not in EXEMPT_PATHS:
            key = client_key(request)
            allowed, retry_after = _spend(key)
            if not allowed:
                logger.warning("Rate limit exceeded", extra={"client": key, "path": path})
                return _rate_limited_response(request_id, retry_after)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms}ms"
        logger.info(
            "%s %s -> %s", request.method, path, response.status_code,
            extra={"method": request.method, "path": path,
                   "status_code": response.status_code, "duration_ms": elapsed_ms},
        )
        return response
