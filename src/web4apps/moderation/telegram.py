"""Telegram Bot API client used to announce new submissions to moderators."""

from __future__ import annotations

import httpx
import structlog

logger = structlog.get_logger()

_TIMEOUT = 10.0
DESCRIPTION_PREVIEW = 100


def truncate_text(text: str | None, max_length: int = DESCRIPTION_PREVIEW) -> str:
    """Shorten ``text`` to ``max_length`` characters, ending in ``...`` when cut."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


class TelegramNotifier:
    """Sends Markdown messages to every configured moderator chat.

    Delivery is best-effort: failures are logged and reported as False, never
    raised, so a Telegram outage cannot fail a submission.
    """

    def __init__(
        self,
        bot_token: str,
        chat_ids: list[int],
        api_url: str = "https://api.telegram.org",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.chat_ids = chat_ids
        self.send_url = f"{api_url.rstrip('/')}/bot{bot_token}/sendMessage"
        self._transport = transport

    async def send_message(self, chat_id: int, text: str) -> bool:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=_TIMEOUT) as client:
                response = await client.post(
                    self.send_url,
                    json={"chat_id": chat_id, "text": text, "parse_mode": "Markdown"},
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("telegram_send_failed", chat_id=chat_id)
            return False
        return True

    async def broadcast(self, text: str) -> bool:
        """Send to all chats. True if at least one delivery succeeded."""
        delivered = False
        for chat_id in self.chat_ids:
            delivered = await self.send_message(chat_id, text) or delivered
        return delivered

    async def template_created(self, template_id: int, title: str, description: str | None, total: int) -> bool:
        return await self.broadcast(
            f"🆕 New Template Created!\n\n📋 *{title}* (ID: {template_id})\n\n"
            f"{truncate_text(description)}\n\n📊 Total Templates: *{total}*"
        )

    async def app_created(self, app_id: int, name: str, description: str | None, total: int) -> bool:
        return await self.broadcast(
            f"🆕 New App Created!\n\n📱 *{name}* (ID: {app_id})\n\n"
            f"{truncate_text(description)}\n\n📊 Total Apps: *{total}*"
        )
