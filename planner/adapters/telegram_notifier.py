"""Telegram notification adapter — implements NotificationPort.

Wraps a telegram.Bot instance and sends every household notice to each
configured chat.
"""

from __future__ import annotations

import logging
from typing import Iterable

from telegram import Bot

from planner.ports.notification_port import Notification

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Telegram implementation of NotificationPort."""

    def __init__(self, bot: Bot, chat_ids: Iterable[int]) -> None:
        self._bot = bot
        self._chat_ids = list(chat_ids)

    async def deliver(self, notification: Notification) -> None:
        text = f"{notification.title}\n{notification.body}"
        for chat_id in self._chat_ids:
            await self._bot.send_message(chat_id=chat_id, text=text)
        logger.debug(
            "Sent %s notification to %d chat(s)", notification.category, len(self._chat_ids)
        )
