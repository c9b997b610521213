"""
Household Planner — Headless watcher.

Loads the planner once, then relays inserts made by other household
members as notifications until interrupted. The sync layer itself has no
process entry point; this module only wires the collaborators together.
"""

from __future__ import annotations

import asyncio
import logging

from planner.adapters.notifier_factory import create_notifier
from planner.adapters.polling_change_feed import PollingChangeFeed
from planner.adapters.supabase_rest import create_resource_client
from planner.config import settings
from planner.core.change_bridge import ChangeNotificationBridge
from planner.core.notification_queue import NotificationQueue
from planner.core.rotation import completion_by_task
from planner.core.sync_coordinator import PlannerSync

logger = logging.getLogger(__name__)


async def run(stop_event: asyncio.Event | None = None) -> int:
    """Run until ``stop_event`` is set. Returns a process exit code."""
    client = create_resource_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    sync = PlannerSync(client)
    if client is None:
        logger.error(sync.config_error)
        return 1

    if not await sync.refresh():
        logger.warning("Initial load failed: %s", sync.error)

    rotation = sync.rotation()
    completion = completion_by_task(sync.chore_statuses)
    for assignment in rotation.current_assignments:
        status = completion.get(assignment.task)
        logger.info(
            "This week: %s -> %s (%s)",
            assignment.task,
            assignment.profile.display_name if assignment.profile else "-",
            "done" if status and status.completed else "open",
        )

    notifications = NotificationQueue(
        create_notifier(), interval=settings.NOTIFICATION_INTERVAL_SECONDS
    )
    feed = PollingChangeFeed(client, interval=settings.CHANGE_POLL_SECONDS)
    stop_event = stop_event or asyncio.Event()

    try:
        async with ChangeNotificationBridge(sync, feed, notifications):
            await stop_event.wait()
    finally:
        await notifications.close()
    return 0


def main() -> None:
    """Entry point: configure logging and watch until Ctrl+C."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting household planner watcher...")
    try:
        code = asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Stopped.")
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
