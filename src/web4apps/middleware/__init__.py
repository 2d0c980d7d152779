"""HTTP middleware and global exception handlers."""

from fastapi import FastAPI

from web4apps.config import Settings
from web4apps.middleware.cors import setup_cors
from web4apps.middleware.error_handler import setup_error_handlers
from web4apps.middleware.logging import setup_logging
from web4apps.middleware.rate_limit import RateLimitMiddleware
from web4apps.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack on ``app``.

    Outermost to innermost: CORS, request id, rate limit. Starlette wraps in
    reverse-add order, so CORS goes on last and its headers also reach 429
    responses and errors rendered by the handlers.
    """
    setup_logging(settings)
    setup_error_handlers(app)

    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
