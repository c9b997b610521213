"""Polling change feed — implements ChangeFeedPort over the resource port.

Emits INSERT events by polling each watched table for rows whose id is
above the highest id seen so far. The first poll only records where each
table currently ends, so rows that existed before subscribing are never
reported.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from planner.ports.change_feed_port import ChangeEvent, ChangeHandler
from planner.ports.query import gt, order_by
from planner.ports.resource_port import ResourceError, ResourcePort

logger = logging.getLogger(__name__)

_DEFAULT_INTERVAL_SECONDS = 15.0


class PollingSubscription:
    """One running poll loop over a fixed set of tables."""

    def __init__(
        self,
        client: ResourcePort,
        tables: Iterable[str],
        handler: ChangeHandler,
        interval: float,
    ) -> None:
        self._client = client
        self._tables = list(tables)
        self._handler = handler
        self._interval = interval
        self._marks: dict[str, int] = {}
        self._task: asyncio.Task[None] | None = None

    @property
    def tables(self) -> list[str]:
        return list(self._tables)

    @property
    def marks(self) -> dict[str, int]:
        return dict(self._marks)

    async def prime(self) -> None:
        """Record the current highest id of every table."""
        for table in self._tables:
            if table in self._marks:
                continue
            try:
                rows = await self._client.list(
                    table, select="id", order=order_by("id", descending=True), limit=1
                )
            except ResourceError as exc:
                logger.warning("Could not read high-water mark for %s: %s", table, exc)
                continue
            self._marks[table] = int(rows[0]["id"]) if rows else 0

    async def poll(self) -> int:
        """Check every table once and dispatch new rows. Returns the count."""
        await self.prime()
        dispatched = 0
        for table in self._tables:
            if table not in self._marks:
                continue
            try:
                rows = await self._client.list(
                    table,
                    select="*",
                    filters={"id": gt(self._marks[table])},
                    order=order_by("id"),
                )
            except ResourceError as exc:
                logger.warning("Polling %s failed, retrying next tick: %s", table, exc)
                continue
            for row in rows:
                self._marks[table] = max(self._marks[table], int(row["id"]))
                try:
                    await self._handler(ChangeEvent(table=table, event="INSERT", record=row))
                except Exception as exc:
                    logger.error(
                        "Change handler failed for %s #%s: %s", table, row.get("id"), exc
                    )
                    continue
                dispatched += 1
        return dispatched

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.poll()
            except Exception as exc:
                logger.error("Poll of %s failed: %s", ", ".join(self._tables), exc)

    async def unsubscribe(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.error("Poll loop for %s had stopped: %s", ", ".join(self._tables), exc)
        logger.info("Stopped polling %s", ", ".join(self._tables))


class PollingChangeFeed:
    """ChangeFeedPort that polls the REST interface every ``interval`` seconds."""

    def __init__(
        self,
        client: ResourcePort,
        interval: float = _DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._client = client
        self._interval = interval

    async def subscribe(
        self, tables: Iterable[str], handler: ChangeHandler
    ) -> PollingSubscription:
        subscription = PollingSubscription(self._client, tables, handler, self._interval)
        await subscription.prime()
        subscription.start()
        logger.info(
            "Polling %s every %.1fs", ", ".join(subscription.tables), self._interval
        )
        return subscription
