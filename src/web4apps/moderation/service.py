"""Moderation: chat commands that publish or hide rows, and submission announcements."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from web4apps.db.models import App, Template
from web4apps.db.repository import Repository
from web4apps.leaderboard.service import invalidate_cache
from web4apps.moderation.commands import HELP_TEXT, ModerationCommand, parse_command

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from web4apps.config import Settings
    from web4apps.moderation.telegram import TelegramNotifier

logger = structlog.get_logger()

NO_ACCESS = "You have no access to this bot."


async def apply_command(db: AsyncSession, command: ModerationCommand) -> int:
    """Set ``moderated`` on the command's rows. Returns how many non-deleted rows matched."""
    model = App if command.kind == "apps" else Template
    matched = await Repository(db).set_moderated(model, command.ids, command.moderated)
    if command.kind == "apps":
        await invalidate_cache()
    logger.info(
        "moderation_applied",
        kind=command.kind,
        visibility=command.visibility,
        requested=len(command.ids),
        matched=matched,
    )
    return matched


async def handle_message(db: AsyncSession, settings: Settings, chat_id: int, text: str) -> str:
    """
    Run one moderator chat message and return the reply text.

    Only chats listed in ``telegram_chat_id`` may moderate; anything that is
    not a command gets the help text.
    """
    if chat_id not in settings.telegram_chat_ids:
        logger.warning("moderation_chat_rejected", chat_id=chat_id)
        return NO_ACCESS

    command = parse_command(text)
    if command is None:
        return HELP_TEXT
    if not command.ids:
        return command.usage()

    matched = await apply_command(db, command)
    return f"Successfully made {matched} {command.noun}(s) {command.visibility}"


async def announce_template(db: AsyncSession, notifier: TelegramNotifier | None, template: Template) -> None:
    if notifier is None:
        return
    total = await Repository(db).count_live(Template)
    await notifier.template_created(template.id, template.title, template.description, total)


async def announce_app(db: AsyncSession, notifier: TelegramNotifier | None, app: App) -> None:
    if notifier is None:
        return
    total = await Repository(db).count_live(App)
    await notifier.app_created(app.id, app.name, app.description, total)
