"""
Household Planner — Notification Queue.

Serializes delivery of household notices: enqueue never blocks, and a
single worker hands notifications to the NotificationPort one at a time,
first in first out, with a short pause between them.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from planner.ports.notification_port import Notification, NotificationPort

logger = logging.getLogger(__name__)

_DEFAULT_INTERVAL_SECONDS = 0.5


class NotificationQueue:
    """FIFO delivery queue owned by whoever wires up the notifier."""

    def __init__(
        self,
        notifier: NotificationPort,
        interval: float = _DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._notifier = notifier
        self._interval = interval
        self._pending: deque[Notification] = deque()
        self._worker: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(self, notification: Notification) -> None:
        """Queue ``notification`` and make sure the worker is running.

        Must be called from inside a running event loop.
        """
        self._pending.append(notification)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def join(self) -> None:
        """Wait until every queued notification has been handed off."""
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    async def close(self) -> None:
        """Stop the worker, dropping anything still queued."""
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        if self._pending:
            logger.info("Dropping %d undelivered notification(s)", len(self._pending))
        self._pending.clear()
        self._worker = None

    async def _drain(self) -> None:
        while self._pending:
            notification = self._pending.popleft()
            try:
                await self._notifier.deliver(notification)
            except Exception as exc:
                logger.error(
                    "Failed to deliver %s notification '%s': %s",
                    notification.category, notification.title, exc,
                )
            if self._pending:
                await asyncio.sleep(self._interval)
