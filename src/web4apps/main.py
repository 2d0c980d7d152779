"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from web4apps.ai.completion import CompletionClient
from web4apps.ai.router import router as ai_router
from web4apps.apps.router import router as apps_router
from web4apps.config import Settings, get_settings
from web4apps.context import build_context
from web4apps.database import close_db, init_db
from web4apps.github.client import GitHubClient
from web4apps.github.router import router as github_router
from web4apps.health.router import router as health_router
from web4apps.leaderboard.router import router as leaderboard_router
from web4apps.middleware import setup_middleware
from web4apps.moderation.router import router as moderation_router
from web4apps.moderation.telegram import TelegramNotifier
from web4apps.redis_client import close_redis, init_redis
from web4apps.responses import JSONUtf8Response
from web4apps.system.router import router as system_router
from web4apps.templates.router import router as templates_router
from web4apps.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    context = app.state.context
    settings = context.settings
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info(
        "startup",
        environment=settings.environment,
        ai_enabled=context.completion is not None,
        github_enabled=context.github is not None,
        telegram_enabled=context.notifier is not None,
        redis_enabled=bool(settings.redis_url),
    )

    yield

    await context.aclose()
    await close_db()
    await close_redis()


def create_app(
    settings: Settings | None = None,
    completion: CompletionClient | None = None,
    github: GitHubClient | None = None,
    notifier: TelegramNotifier | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``completion``, ``github`` and ``notifier`` replace the clients built from settings.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Web4 Apps API",
        description="Catalog and authoring service for wallet-signed app templates",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        default_response_class=JSONUtf8Response,
        lifespan=lifespan,
    )
    app.state.context = build_context(settings, completion=completion, github=github, notifier=notifier)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    for router in (
        users_router,
        templates_router,
        apps_router,
        ai_router,
        leaderboard_router,
        github_router,
        moderation_router,
        system_router,
    ):
        app.include_router(router, prefix=settings.api_prefix)

    return app


app = create_app()
