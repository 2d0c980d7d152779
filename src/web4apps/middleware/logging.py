"""structlog setup shared by the API process and the Alembic runner."""

import logging

import structlog
from structlog.types import EventDict, WrappedLogger

from web4apps.config import Settings

# Event fields that must never reach the log sink in full
_SECRET_FIELDS = frozenset({"signature", "github_token", "access_token", "api_key"})


def redact_secrets(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Replace wallet signatures and OAuth/API tokens with a short prefix."""
    for key in _SECRET_FIELDS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and value:
            event_dict[key] = f"{value[:6]}..."
    return event_dict


def setup_logging(settings: Settings) -> None:
    """Configure structlog; ``log_format`` picks JSON lines or the dev console renderer."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    # Client libraries log every request at INFO; keep them to warnings
    for name in ("sqlalchemy.engine", "httpx", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)
