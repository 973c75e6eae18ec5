from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.request_context import clear_request_context, set_request_context
from app.deps import client_ip_from_request

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        client_ip = client_ip_from_request(request)
        request.state.request_id = request_id
        set_request_context(request_id=request_id, client_ip=client_ip)

        status_code = 500
        endpoint = request.url.path
        method = request.method
        response = None

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            tenant_id, user_id = _extract_identity(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            logger.info(
                "request completed",
                extra={
                    "request_id": request_id,
                    "tenant_id": tenant_id,
                    "user_id": user_id,
                    "client_ip": client_ip,
                    "endpoint": endpoint,
                    "method": method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if response is not None:
                response.headers["X-Request-ID"] = request_id

            clear_request_context()


def _extract_identity(request: Request) -> tuple[str | None, str | None]:
    # Os handlers síncronos rodam em outra thread, então o contextvar deles
    # não volta para cá; o AuthContext guardado em request.state volta.
    context = getattr(request.state, "auth_context", None)
    if context is None:
        return None, None
    tenant_id = context.tenant.id if context.tenant else None
    user_id = context.principal.user_id if context.principal else None
    if tenant_id is None and context.principal is not None:
        tenant_id = context.principal.tenant_id
    return tenant_id, user_id
