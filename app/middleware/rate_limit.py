from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.rate_limiter import RateLimiterService
from app.deps import client_ip_from_request

logger = logging.getLogger(__name__)

AUTH_GROUP = "auth"
API_GROUP = "api"


def route_group(method: str, path: str) -> str | None:
    """Bucket de rate limit para a rota, ou None quando ela não é limitada."""
    if path.startswith("/api/auth/"):
        return AUTH_GROUP
    if path.rstrip("/") == "/api/tenants" and method.upper() == "POST":
        return AUTH_GROUP
    if path.startswith("/api/tenants"):
        return API_GROUP
    return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        rate_limiter: RateLimiterService,
        auth_limit: int | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self._rate_limiter = rate_limiter
        self._auth_limit = auth_limit
        self._enabled = enabled

    async def dispatch(self, request: Request, call_next):
        group = route_group(request.method, request.url.path) if self._enabled else None
        if group is None or request.method == "OPTIONS":
            return await call_next(request)

        client_key = client_ip_from_request(request) or "unknown"
        limit = self._auth_limit if group == AUTH_GROUP else None
        decision = self._rate_limiter.check(client_key=client_key, group=group, limit=limit)
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded group=%s ip=%s endpoint=%s",
                group,
                client_key,
                request.url.path,
                extra={"event": "rate_limited", "client_ip": client_key, "endpoint": request.url.path},
            )
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests"},
                headers={
                    "Retry-After": str(decision.retry_after_seconds),
                    "X-RateLimit-Limit": str(decision.limit),
                    "X-RateLimit-Remaining": str(decision.remaining),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
