"""
Household Planner — Sync Coordinator.

Owns the local cache of the six planner collections. A refresh fetches
everything concurrently and replaces the cache in one step; mutations go to
the remote store first and patch the cache only after it confirms.

Presentation code reads ``state`` (an immutable snapshot) and registers
listeners to be told when it changes. It never writes the cache directly.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from planner.config import settings
from planner.core.errors import (
    CONFIG_ERROR_MESSAGE,
    FETCH_FALLBACK_MESSAGE,
    ConfigurationError,
    MutationError,
    TransientFetchError,
)
from planner.core.iso_week import IsoWeek, iso_week
from planner.core.rotation import Rotation, rotation_for
from planner.core.store import (
    PURCHASE_LOG_LIMIT,
    PlannerState,
    RefreshResult,
    add_purchase_log,
    apply_refresh,
    apply_refresh_error,
    enrich_calendar_event,
    enrich_chore_status,
    enrich_purchase_log,
    enrich_shopping_item,
    enrich_wishlist_item,
    find_profile,
    prepend_record,
    remove_record,
    replace_record,
    upsert_chore_status,
)
from planner.data.models import (
    CalendarAccess,
    CalendarEvent,
    ChoreStatus,
    Profile,
    PurchaseLog,
    ShoppingItem,
    WishlistItem,
)
from planner.ports.query import embed, eq, ilike, order_by, select_fields
from planner.ports.resource_port import ResourceError, ResourcePort

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

StateListener = Callable[[PlannerState], None]
Enricher = Callable[[Any, Sequence[Profile]], Any]

UNKNOWN_AUTHOR = "Noen"

_PROFILE_COLUMNS = ("username", "display_name")


# ---------------------------------------------------------------------------
# Fetchers
# ---------------------------------------------------------------------------


async def fetch_profiles(client: ResourcePort) -> list[Profile]:
    rows = await client.list(
        "profiles",
        select="id,username,display_name",
        order=order_by("username"),
    )
    return [Profile.model_validate(r) for r in rows]


async def fetch_shopping_items(client: ResourcePort) -> list[ShoppingItem]:
    rows = await client.list(
        "shopping_items",
        select=select_fields(
            ("id", "title", "quantity", "priority", "is_done", "added_by", "needed_by", "created_at"),
            embed("profiles", "added_by", _PROFILE_COLUMNS),
        ),
        order=order_by("created_at", descending=True),
    )
    return [ShoppingItem.model_validate(r) for r in rows]


async def fetch_wishlist_items(client: ResourcePort) -> list[WishlistItem]:
    rows = await client.list(
        "wishlist_items",
        select=select_fields(
            ("id", "title", "why", "proposed_by", "price_estimate", "status", "created_at"),
            embed("profiles", "proposed_by", _PROFILE_COLUMNS),
        ),
        order=order_by("created_at", descending=True),
    )
    return [WishlistItem.model_validate(r) for r in rows]


async def fetch_calendar_events(client: ResourcePort) -> list[CalendarEvent]:
    rows = await client.list(
        "calendar_events",
        select=select_fields(
            ("id", "title", "description", "starts_at", "ends_at", "event_type",
             "owner", "location", "created_at"),
            embed("profiles", "owner", _PROFILE_COLUMNS),
        ),
        order=order_by("starts_at"),
    )
    return [CalendarEvent.model_validate(r) for r in rows]


async def fetch_purchase_logs(client: ResourcePort) -> list[PurchaseLog]:
    rows = await client.list(
        "shopping_item_logs",
        select=select_fields(
            ("id", "item_id", "purchased_at", "purchased_by"),
            embed("profiles", "purchased_by", _PROFILE_COLUMNS),
            embed("shopping_items", "item_id", ("title",)),
        ),
        order=order_by("purchased_at", descending=True),
        limit=PURCHASE_LOG_LIMIT,
    )
    return [PurchaseLog.model_validate(r) for r in rows]


async def fetch_chore_statuses(client: ResourcePort, week: IsoWeek) -> list[ChoreStatus]:
    rows = await client.list(
        "chore_statuses",
        select=select_fields(
            ("id", "task", "week_number", "year", "profile_id", "completed", "completed_at"),
            embed("profiles", "profile_id", _PROFILE_COLUMNS),
        ),
        filters={"week_number": eq(week.week_number), "year": eq(week.year)},
        order=order_by("task"),
    )
    return [ChoreStatus.model_validate(r) for r in rows]


async def fetch_last_calendar_fetch(
    client: ResourcePort, signature: str
) -> datetime | None:
    """When the external calendar reader last pulled the published feed."""
    rows = await client.list(
        "calendar_access_log",
        select="accessed_at,user_agent",
        filters={"user_agent": ilike(f"*{signature}*")},
        order=order_by("accessed_at", descending=True),
        limit=1,
    )
    if not rows:
        return None
    access = CalendarAccess.model_validate(rows[0])
    # ilike ignores case; the signature itself must match exactly
    if not access.user_agent or signature not in access.user_agent:
        return None
    return access.accessed_at


async def _last_calendar_fetch_or_none(
    client: ResourcePort, signature: str
) -> datetime | None:
    try:
        return await fetch_last_calendar_fetch(client, signature)
    except (ResourceError, ValueError) as exc:
        logger.warning("Last calendar fetch lookup failed, treating as unknown: %s", exc)
        return None


def _default_clock() -> datetime:
    return datetime.now(ZoneInfo(settings.TIMEZONE))


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class PlannerSync:
    """Cache owner and CRUD surface for the household planner.

    Args:
        client: Resource client, or None when no endpoint is configured.
            Without a client ``config_error`` is set for good, refresh is a
            no-op and every mutation raises ConfigurationError.
        clock: Returns "now"; decides the ISO week and completion times.
        enrich_calendar_events: Attach profile snapshots to calendar events
            returned by add/update, as is always done for shopping and
            wishlist items.
        calendar_agent_signature: User-agent marker of the external
            calendar reader in calendar_access_log.
    """

    def __init__(
        self,
        client: ResourcePort | None,
        *,
        clock: Callable[[], datetime] | None = None,
        enrich_calendar_events: bool | None = None,
        calendar_agent_signature: str | None = None,
    ) -> None:
        self._client = client
        self._clock = clock or _default_clock
        self._enrich_calendar = (
            settings.ENRICH_CALENDAR_EVENTS
            if enrich_calendar_events is None
            else enrich_calendar_events
        )
        self._agent_signature = calendar_agent_signature or settings.CALENDAR_AGENT_SIGNATURE
        self._state = PlannerState()
        self._listeners: list[StateListener] = []
        self._refreshes_in_flight = 0
        self._last_error: TransientFetchError | None = None
        self._config_error: str | None = None

        if client is None:
            self._config_error = CONFIG_ERROR_MESSAGE
            logger.error("No resource client configured: %s", CONFIG_ERROR_MESSAGE)

    # -- read side -----------------------------------------------------------

    @property
    def state(self) -> PlannerState:
        return self._state

    @property
    def profiles(self) -> tuple[Profile, ...]:
        return self._state.profiles

    @property
    def shopping_items(self) -> tuple[ShoppingItem, ...]:
        return self._state.shopping_items

    @property
    def active_shopping_items(self) -> tuple[ShoppingItem, ...]:
        return tuple(item for item in self._state.shopping_items if not item.is_done)

    @property
    def wishlist_items(self) -> tuple[WishlistItem, ...]:
        return self._state.wishlist_items

    @property
    def calendar_events(self) -> tuple[CalendarEvent, ...]:
        return self._state.calendar_events

    @property
    def purchase_logs(self) -> tuple[PurchaseLog, ...]:
        return self._state.purchase_logs

    @property
    def chore_statuses(self) -> tuple[ChoreStatus, ...]:
        return self._state.chore_statuses

    @property
    def last_calendar_fetch(self) -> datetime | None:
        return self._state.last_calendar_fetch

    @property
    def loading(self) -> bool:
        return self._refreshes_in_flight > 0

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def last_error(self) -> TransientFetchError | None:
        return self._last_error

    @property
    def config_error(self) -> str | None:
        return self._config_error

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    def author_name(self, profile_id: str | None) -> str:
        """Display name for ``profile_id``, or a generic placeholder."""
        profile = find_profile(self._state.profiles, profile_id)
        return profile.display_name if profile else UNKNOWN_AUTHOR

    def current_week(self) -> IsoWeek:
        return iso_week(self._clock())

    def rotation(self) -> Rotation:
        """This week's and next week's chore assignments."""
        return rotation_for(self._state.profiles, self._clock())

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with the new state after every change.

        Returns a function that removes the listener again.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _set_state(self, state: PlannerState) -> None:
        self._state = state
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)

    # -- refresh -------------------------------------------------------------

    async def refresh(self) -> bool:
        """Reload every collection from the remote store.

        Returns True on success. On failure the previous cache is kept,
        ``error`` holds the message and False is returned.
        """
        if self._client is None:
            logger.debug("Refresh skipped: %s", self._config_error)
            return False

        client = self._client
        week = self.current_week()

        self._refreshes_in_flight += 1
        self._notify()
        try:
            results = await asyncio.gather(
                fetch_profiles(client),
                fetch_shopping_items(client),
                fetch_wishlist_items(client),
                fetch_calendar_events(client),
                fetch_purchase_logs(client),
                fetch_chore_statuses(client, week),
                _last_calendar_fetch_or_none(client, self._agent_signature),
                return_exceptions=True,
            )
            failure = next((r for r in results if isinstance(r, BaseException)), None)
            if failure is not None:
                if not isinstance(failure, (ResourceError, ValueError)):
                    raise failure
                self._last_error = TransientFetchError(str(failure) or FETCH_FALLBACK_MESSAGE)
                self._last_error.__cause__ = failure
                logger.error("Planner refresh failed: %s", self._last_error)
                self._set_state(apply_refresh_error(self._state, str(self._last_error)))
                return False

            profiles, shopping, wishlist, calendar, logs, chores, last_fetch = results
            self._last_error = None
            self._set_state(
                apply_refresh(
                    self._state,
                    RefreshResult(
                        profiles=profiles,
                        shopping_items=shopping,
                        wishlist_items=wishlist,
                        calendar_events=calendar,
                        purchase_logs=logs,
                        chore_statuses=chores,
                        last_calendar_fetch=last_fetch,
                    ),
                )
            )
            logger.info(
                "Planner data: profiles=%d shopping=%d wishlist=%d calendar=%d "
                "purchase_logs=%d chores=%d (week %d/%d)",
                len(profiles), len(shopping), len(wishlist), len(calendar),
                len(logs), len(chores), week.week_number, week.year,
            )
            return True
        finally:
            self._refreshes_in_flight -= 1
            self._notify()

    # -- mutation plumbing ---------------------------------------------------

    def _require_client(self) -> ResourcePort:
        if self._client is None:
            raise ConfigurationError()
        return self._client

    @staticmethod
    async def _remote(action: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except ResourceError as exc:
            logger.error("%s failed: %s", action, exc)
            raise MutationError(str(exc)) from exc

    @staticmethod
    def _single(rows: list[dict[str, Any]], model: type[M], action: str) -> M:
        if not rows:
            raise MutationError(f"{action}: ingen rader returnert")
        return model.model_validate(rows[0])

    async def _add(
        self,
        table: str,
        model: type[M],
        payload: Mapping[str, Any],
        enricher: Enricher | None,
    ) -> M:
        client = self._require_client()
        action = f"Insert into {table}"
        rows = await self._remote(action, client.insert(table, payload))
        record = self._single(rows, model, action)
        if enricher is not None:
            record = enricher(record, self._state.profiles)
        self._set_state(prepend_record(self._state, table, record))
        logger.info("Added %s #%d", table, record.id)
        return record

    async def _update(
        self,
        table: str,
        model: type[M],
        record_id: int,
        payload: Mapping[str, Any],
        enricher: Enricher | None,
    ) -> M:
        client = self._require_client()
        action = f"Update {table} #{record_id}"
        rows = await self._remote(action, client.update(table, payload, {"id": record_id}))
        record = self._single(rows, model, action)
        if enricher is not None:
            record = enricher(record, self._state.profiles)
        self._set_state(replace_record(self._state, table, record_id, record))
        return record

    async def _delete(self, table: str, record_id: int) -> None:
        client = self._require_client()
        await self._remote(f"Delete {table} #{record_id}", client.remove(table, {"id": record_id}))
        self._set_state(remove_record(self._state, table, record_id))
        logger.info("Deleted %s #%d", table, record_id)

    @property
    def _calendar_enricher(self) -> Enricher | None:
        return enrich_calendar_event if self._enrich_calendar else None

    # -- shopping ------------------------------------------------------------

    async def add_shopping_item(self, payload: Mapping[str, Any]) -> ShoppingItem:
        return await self._add("shopping_items", ShoppingItem, payload, enrich_shopping_item)

    async def update_shopping_item(
        self, item_id: int, payload: Mapping[str, Any]
    ) -> ShoppingItem:
        return await self._update(
            "shopping_items", ShoppingItem, item_id, payload, enrich_shopping_item
        )

    async def delete_shopping_item(self, item_id: int) -> None:
        await self._delete("shopping_items", item_id)

    async def mark_shopping_purchased(
        self, item_id: int, purchased_by: str | None = None
    ) -> PurchaseLog:
        """Mark an item bought and record who bought it.

        The purchaser defaults to whoever added the item.
        """
        client = self._require_client()
        action = f"Mark shopping_items #{item_id} purchased"
        rows = await self._remote(
            action, client.update("shopping_items", {"is_done": True}, {"id": item_id})
        )
        item = self._single(rows, ShoppingItem, action)
        self._set_state(remove_record(self._state, "shopping_items", item_id))

        purchaser_id = purchased_by or item.added_by
        log_rows = await self._remote(
            "Insert into shopping_item_logs",
            client.insert(
                "shopping_item_logs", {"item_id": item_id, "purchased_by": purchaser_id}
            ),
        )
        log = self._single(log_rows, PurchaseLog, "Insert into shopping_item_logs")
        log = enrich_purchase_log(log, self._state.profiles, purchaser_id, item.title)
        self._set_state(add_purchase_log(self._state, log))
        logger.info("Purchased '%s' (#%d) by %s", item.title, item_id, purchaser_id)
        return log

    # -- wishlist ------------------------------------------------------------

    async def add_wishlist_item(self, payload: Mapping[str, Any]) -> WishlistItem:
        return await self._add("wishlist_items", WishlistItem, payload, enrich_wishlist_item)

    async def update_wishlist_item(
        self, item_id: int, payload: Mapping[str, Any]
    ) -> WishlistItem:
        return await self._update(
            "wishlist_items", WishlistItem, item_id, payload, enrich_wishlist_item
        )

    async def delete_wishlist_item(self, item_id: int) -> None:
        await self._delete("wishlist_items", item_id)

    # -- calendar ------------------------------------------------------------

    async def add_calendar_event(self, payload: Mapping[str, Any]) -> CalendarEvent:
        return await self._add(
            "calendar_events", CalendarEvent, payload, self._calendar_enricher
        )

    async def update_calendar_event(
        self, event_id: int, payload: Mapping[str, Any]
    ) -> CalendarEvent:
        return await self._update(
            "calendar_events", CalendarEvent, event_id, payload, self._calendar_enricher
        )

    async def delete_calendar_event(self, event_id: int) -> None:
        await self._delete("calendar_events", event_id)

    # -- chores --------------------------------------------------------------

    async def mark_chore_done(
        self, task: str, profile_id: str, completed: bool = True
    ) -> ChoreStatus:
        """Set this week's completion state for ``task``.

        Updates the row for (task, week, year) and inserts it when none
        exists yet. Two clients doing this at the same moment for a key
        with no row can both insert; the store has no atomic upsert for it.
        """
        client = self._require_client()
        now = self._clock()
        week = iso_week(now)
        payload = {
            "task": task,
            "week_number": week.week_number,
            "year": week.year,
            "profile_id": profile_id,
            "completed": completed,
            "completed_at": now if completed else None,
        }
        match = {"task": task, "week_number": week.week_number, "year": week.year}

        rows = await self._remote(
            f"Update chore_statuses '{task}'",
            client.update("chore_statuses", payload, match),
        )
        if not rows:
            rows = await self._remote(
                f"Insert into chore_statuses '{task}'",
                client.insert("chore_statuses", payload),
            )

        status = self._single(rows, ChoreStatus, f"Upsert chore '{task}'")
        status = enrich_chore_status(status, self._state.profiles)
        self._set_state(upsert_chore_status(self._state, status))
        logger.info(
            "Chore '%s' week %d/%d completed=%s by %s",
            task, week.week_number, week.year, completed, profile_id,
        )
        return status
