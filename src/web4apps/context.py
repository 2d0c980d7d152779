"""Process-wide collaborators built once at startup."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from web4apps.ai.completion import CompletionClient, OpenAICompletionClient
from web4apps.config import Settings
from web4apps.github.client import GitHubClient
from web4apps.moderation.telegram import TelegramNotifier


@dataclass
class AppContext:
    settings: Settings
    completion: CompletionClient | None
    github: GitHubClient | None
    notifier: TelegramNotifier | None = None

    async def aclose(self) -> None:
        if self.completion is not None:
            await self.completion.aclose()


def build_context(
    settings: Settings,
    completion: CompletionClient | None = None,
    github: GitHubClient | None = None,
    notifier: TelegramNotifier | None = None,
) -> AppContext:
    """Wire the optional AI, GitHub and Telegram clients from settings unless injected."""
    if completion is None and settings.ai_enabled:
        completion = OpenAICompletionClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    if github is None and settings.github_enabled:
        github = GitHubClient(
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            token_url=settings.github_token_url,
            api_url=settings.github_api_url,
        )
    if notifier is None and settings.telegram_enabled:
        notifier = TelegramNotifier(
            bot_token=settings.telegram_bot_token,
            chat_ids=settings.telegram_chat_ids,
            api_url=settings.telegram_api_url,
        )
    return AppContext(settings=settings, completion=completion, github=github, notifier=notifier)


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the ``AppContext`` stored on the app."""
    return request.app.state.context  # type: ignore[no-any-return]
