"""Logging notification adapter — used when no messaging provider is set up."""

from __future__ import annotations

import logging

from planner.ports.notification_port import Notification

logger = logging.getLogger(__name__)


class LogNotifier:
    """NotificationPort that writes each notice to the log."""

    async def deliver(self, notification: Notification) -> None:
        logger.info("[%s] %s: %s", notification.category, notification.title, notification.body)
