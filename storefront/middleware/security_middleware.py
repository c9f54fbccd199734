"""Security middleware — auth rate limiting, security headers, cache control."""
import time
from collections import defaultdict, deque

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from storefront.config import get_settings
from storefront.utils.logger import log

# Paths whose failed attempts are rate limited per client IP
RATE_LIMITED_PATHS = ("/auth/login", "/auth/register")

# ip -> timestamps of recent failed attempts
_failed_attempts: dict[str, deque] = defaultdict(deque)


def reset_rate_limits():
    _failed_attempts.clear()


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        settings = get_settings()
        path = request.url.path

        limited = request.method == "POST" and any(
            path == f"{settings.api_prefix}{p}" for p in RATE_LIMITED_PATHS
        )
        client_ip = request.client.host if request.client else "unknown"

        if limited and client_ip in _failed_attempts:
            attempts = _failed_attempts[client_ip]
            cutoff = time.time() - settings.auth_rate_limit_window_seconds
            while attempts and attempts[0] < cutoff:
                attempts.popleft()
            if not attempts:
                del _failed_attempts[client_ip]
            elif len(attempts) >= settings.auth_rate_limit_attempts:
                log.warning(f"Auth rate limit hit for {client_ip} on {path}")
                return JSONResponse(
                    status_code=429,
                    content={
                        "success": False,
                        "error": "Too many authentication attempts, please try again later",
                        "code": "rate_limited",
                    },
                    headers={"Retry-After": str(settings.auth_rate_limit_window_seconds)},
                )

        response: Response = await call_next(request)

        if limited and response.status_code >= 400:
            _failed_attempts[client_ip].append(time.time())

        # --- Security headers on every response ---
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # --- Cache-Control ---
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            # API data: may contain customer details, never store in shared caches
            response.headers["Cache-Control"] = "private, no-cache"

        return response
