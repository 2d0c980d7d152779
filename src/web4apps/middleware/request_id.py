"""Per-request log context: X-Request-Id and the caller's claimed wallet."""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind ``request_id``, ``method``, ``path`` and ``wallet`` to the structlog context.

    ``X-Request-Id`` is taken from the client when present, else a UUID4, and
    is echoed on the response. ``wallet`` is the lowercased
    ``X-Wallet-Address`` header; it is a claim, not a verified identity.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        wallet = request.headers.get("X-Wallet-Address")
        if wallet:
            structlog.contextvars.bind_contextvars(wallet=wallet.lower())

        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response
