"""Telegram webhook payloads. Only the fields moderation reads are modelled."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class TelegramChat(BaseModel):
    id: int


class TelegramMessage(BaseModel):
    message_id: int | None = None
    chat: TelegramChat
    text: str | None = None


class TelegramUpdate(BaseModel):
    update_id: int
    message: TelegramMessage | None = None


class WebhookReply(BaseModel):
    """Answer sent in the webhook response body, which Telegram executes as a Bot API call."""

    method: Literal["sendMessage"] = "sendMessage"
    chat_id: int
    text: str
