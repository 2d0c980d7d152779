"""CORS for the Web4 Apps front-ends."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from web4apps.config import Settings

# The only custom request header clients send besides the request id
_ALLOWED_HEADERS = ["Content-Type", "X-Wallet-Address", "X-Request-Id"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured origins, plus ``cors_origin_regex`` for preview deployments."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex or None,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=_ALLOWED_HEADERS,
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
        max_age=600,
    )
