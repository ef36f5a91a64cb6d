"""FastAPI middleware for request context injection."""

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging import client_ip_var, get_logger, request_id_var, user_agent_var

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request_id, user agent and client IP to context vars.

    The audit logger reads user agent and IP from here, so every admin
    action is tagged with the caller's browser without threading the
    request object through the services.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(request_id)

        user_agent_var.set(request.headers.get("user-agent"))

        # First hop of x-forwarded-for wins when behind a proxy
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            client_ip_var.set(forwarded.split(",")[0].strip())
        elif request.client:
            client_ip_var.set(request.client.host)

        logger.debug(
            "request_started",
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)

        response.headers["x-request-id"] = request_id

        logger.debug(
            "request_finished",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )

        return response
