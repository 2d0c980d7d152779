"""Telegram webhook through which moderators publish and hide submissions."""

from __future__ import annotations

import secrets

from fastapi import APIRouter, Depends, Header, Response
from sqlalchemy.ext.asyncio import AsyncSession

from web4apps.context import AppContext, get_context
from web4apps.database import get_session
from web4apps.errors import Forbidden
from web4apps.moderation.schemas import TelegramUpdate, WebhookReply
from web4apps.moderation.service import handle_message

router = APIRouter(prefix="/telegram", tags=["Moderation"])


@router.post("/webhook", response_model=None)
async def webhook(
    update: TelegramUpdate,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> WebhookReply | Response:
    """
    Handle one bot update. Replies go back in the response body, so every
    accepted update is answered with 200.
    """
    expected = ctx.settings.telegram_webhook_secret
    if expected and not secrets.compare_digest(x_telegram_bot_api_secret_token or "", expected):
        raise Forbidden("Invalid webhook secret")

    message = update.message
    if message is None or not message.text:
        return Response(status_code=200)

    reply = await handle_message(db, ctx.settings, message.chat.id, message.text.strip())
    await db.commit()
    return WebhookReply(chat_id=message.chat.id, text=reply)
