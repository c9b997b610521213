"""Notifier factory — creates the delivery adapter based on config."""

from __future__ import annotations

from planner.config import settings
from planner.ports.notification_port import NotificationPort


def create_notifier() -> NotificationPort:
    """Telegram when a bot token and chat ids are configured, else the log."""
    if settings.TELEGRAM_BOT_TOKEN and settings.NOTIFY_CHAT_IDS:
        from telegram import Bot

        from planner.adapters.telegram_notifier import TelegramNotifier

        return TelegramNotifier(Bot(settings.TELEGRAM_BOT_TOKEN), settings.NOTIFY_CHAT_IDS)

    from planner.adapters.log_notifier import LogNotifier

    return LogNotifier()
