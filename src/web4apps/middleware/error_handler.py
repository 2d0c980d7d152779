"""Global error handlers: every failure becomes ``{"error": ..., "details"?: ...}``."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from web4apps.errors import Web4AppsError
from web4apps.responses import JSONUtf8Response

logger = structlog.get_logger()

MISSING_FIELDS = "Missing required fields"
INVALID_REQUEST = "Invalid request"


def _describe(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg', '')}" if loc else str(err.get("msg", "")))
    return "; ".join(parts)


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(Web4AppsError)
    async def domain_exception_handler(request: Request, exc: Web4AppsError) -> JSONUtf8Response:
        """Render service-layer errors with their own status code."""
        if exc.status_code >= 500:
            logger.warning("request_failed", path=request.url.path, status=exc.status_code, error=exc.message)
        return JSONUtf8Response(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONUtf8Response:
        return JSONUtf8Response(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONUtf8Response:
        """Malformed bodies and query values are 400, never 422."""
        missing = any(err.get("type") == "missing" for err in exc.errors())
        return JSONUtf8Response(
            status_code=400,
            content={"error": MISSING_FIELDS if missing else INVALID_REQUEST, "details": _describe(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONUtf8Response:
        """Catch-all for unhandled exceptions; always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONUtf8Response(
            status_code=500,
            content={"error": "Internal server error"},
        )
