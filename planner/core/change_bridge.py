"""
Household Planner — Change-Notification Bridge.

Listens for rows inserted by other household members. Each insert into the
shopping list, the wishlist or the calendar queues a notice naming who
added what, and triggers a full refresh so the cache picks the row up.
Every event gets its own refresh; bursts are not coalesced.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from planner.ports.notification_port import Category, Notification

if TYPE_CHECKING:
    from planner.core.notification_queue import NotificationQueue
    from planner.core.sync_coordinator import PlannerSync
    from planner.ports.change_feed_port import ChangeEvent, ChangeFeedPort, Subscription

logger = logging.getLogger(__name__)

NOTIFICATION_URL = "/"


@dataclass(frozen=True)
class _TableRule:
    category: Category
    actor_field: str
    title: str
    body: str  # formatted with {who} and {title}


WATCHED_TABLES: dict[str, _TableRule] = {
    "shopping_items": _TableRule(
        category="shopping",
        actor_field="added_by",
        title="Handleliste oppdatert",
        body='{who} la til "{title}".',
    ),
    "wishlist_items": _TableRule(
        category="wishlist",
        actor_field="proposed_by",
        title="Ønskeliste oppdatert",
        body='{who} foreslo "{title}".',
    ),
    "calendar_events": _TableRule(
        category="calendar",
        actor_field="owner",
        title="Kalender oppdatert",
        body='{who} la til "{title}" i kalenderen.',
    ),
}


def build_notification(
    table: str, record: dict, author_name: str
) -> Notification | None:
    """Notice for a row inserted into ``table``, or None for other tables."""
    rule = WATCHED_TABLES.get(table)
    if rule is None:
        return None
    return Notification(
        category=rule.category,
        title=rule.title,
        body=rule.body.format(who=author_name, title=record.get("title", "")),
        url=NOTIFICATION_URL,
    )


class ChangeNotificationBridge:
    """Connects a change feed to the sync coordinator and notification queue."""

    def __init__(
        self,
        sync: PlannerSync,
        feed: ChangeFeedPort,
        notifications: NotificationQueue,
    ) -> None:
        self._sync = sync
        self._feed = feed
        self._notifications = notifications
        self._subscription: Subscription | None = None
        self._refresh_tasks: set[asyncio.Task[bool]] = set()

    @property
    def active(self) -> bool:
        return self._subscription is not None

    async def start(self) -> bool:
        """Subscribe to inserts. Returns False when the sync layer is unconfigured."""
        if self._subscription is not None:
            raise RuntimeError("Change bridge is already subscribed")
        if not self._sync.is_configured:
            logger.warning("Change bridge not started: %s", self._sync.config_error)
            return False

        self._subscription = await self._feed.subscribe(WATCHED_TABLES, self.handle_event)
        logger.info("Change bridge listening on %s", ", ".join(WATCHED_TABLES))
        return True

    async def stop(self) -> None:
        """Unsubscribe and cancel refreshes that are still running."""
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None
        for task in list(self._refresh_tasks):
            task.cancel()
        if self._refresh_tasks:
            await asyncio.gather(*self._refresh_tasks, return_exceptions=True)
        self._refresh_tasks.clear()

    async def __aenter__(self) -> ChangeNotificationBridge:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def handle_event(self, event: ChangeEvent) -> None:
        if event.event != "INSERT":
            return
        rule = WATCHED_TABLES.get(event.table)
        if rule is None:
            logger.debug("Ignoring change on unwatched table %s", event.table)
            return

        who = self._sync.author_name(event.record.get(rule.actor_field))
        notification = build_notification(event.table, event.record, who)
        self._notifications.enqueue(notification)
        logger.info("Insert on %s: %s", event.table, notification.body)

        task = asyncio.get_running_loop().create_task(self._sync.refresh())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_done)

    def _refresh_done(self, task: asyncio.Task[bool]) -> None:
        self._refresh_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Refresh after insert failed: %s", exc)

    async def wait_idle(self) -> None:
        """Wait for every refresh triggered so far to finish."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)
