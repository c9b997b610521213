"""
Household Planner — Local Store.

The in-memory cache as an immutable state value, plus one pure transition
per kind of change. The sync coordinator owns the current state and swaps
it for the result of a transition; nothing here performs I/O, so every
transition can be tested without a network.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence, TypeVar

from pydantic import BaseModel

from planner.data.models import (
    CalendarEvent,
    ChoreStatus,
    ItemTitle,
    Profile,
    ProfileSnapshot,
    PurchaseLog,
    ShoppingItem,
    WishlistItem,
)

PURCHASE_LOG_LIMIT = 50

R = TypeVar("R", bound=BaseModel)

# Collections patched with prepend / replace-by-id / remove-by-id
LIST_COLLECTIONS = ("shopping_items", "wishlist_items", "calendar_events")


@dataclass(frozen=True)
class PlannerState:
    """Snapshot of everything the planner screens read."""

    profiles: tuple[Profile, ...] = ()
    shopping_items: tuple[ShoppingItem, ...] = ()
    wishlist_items: tuple[WishlistItem, ...] = ()
    calendar_events: tuple[CalendarEvent, ...] = ()
    purchase_logs: tuple[PurchaseLog, ...] = ()
    chore_statuses: tuple[ChoreStatus, ...] = ()
    last_calendar_fetch: datetime | None = None
    error: str | None = None


@dataclass(frozen=True)
class RefreshResult:
    """Everything one successful refresh fetched."""

    profiles: Sequence[Profile]
    shopping_items: Sequence[ShoppingItem]
    wishlist_items: Sequence[WishlistItem]
    calendar_events: Sequence[CalendarEvent]
    purchase_logs: Sequence[PurchaseLog]
    chore_statuses: Sequence[ChoreStatus]
    last_calendar_fetch: datetime | None = None


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


def find_profile(profiles: Sequence[Profile], profile_id: str | None) -> Profile | None:
    if not profile_id:
        return None
    return next((p for p in profiles if p.id == profile_id), None)


def enrich(record: R, profiles: Sequence[Profile], ref_field: str) -> R:
    """Attach the snapshot of the profile ``record.<ref_field>`` points at.

    Null or unknown references leave the record untouched.
    """
    profile = find_profile(profiles, getattr(record, ref_field))
    if profile is None:
        return record
    return record.model_copy(update={"profiles": profile.snapshot()})


def enrich_shopping_item(item: ShoppingItem, profiles: Sequence[Profile]) -> ShoppingItem:
    return enrich(item, profiles, "added_by")


def enrich_wishlist_item(item: WishlistItem, profiles: Sequence[Profile]) -> WishlistItem:
    return enrich(item, profiles, "proposed_by")


def enrich_calendar_event(event: CalendarEvent, profiles: Sequence[Profile]) -> CalendarEvent:
    return enrich(event, profiles, "owner")


def enrich_chore_status(status: ChoreStatus, profiles: Sequence[Profile]) -> ChoreStatus:
    return enrich(status, profiles, "profile_id")


def enrich_purchase_log(
    log: PurchaseLog,
    profiles: Sequence[Profile],
    purchaser_id: str | None,
    item_title: str,
) -> PurchaseLog:
    """Attach the item title and, when known, the purchaser's snapshot."""
    purchaser = find_profile(profiles, purchaser_id)
    snapshot: ProfileSnapshot | None = purchaser.snapshot() if purchaser else None
    return log.model_copy(
        update={"shopping_items": ItemTitle(title=item_title), "profiles": snapshot}
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def apply_refresh(state: PlannerState, result: RefreshResult) -> PlannerState:
    """Replace all six collections at once and clear any previous error."""
    return PlannerState(
        profiles=tuple(result.profiles),
        shopping_items=tuple(result.shopping_items),
        wishlist_items=tuple(result.wishlist_items),
        calendar_events=tuple(result.calendar_events),
        purchase_logs=tuple(result.purchase_logs[:PURCHASE_LOG_LIMIT]),
        chore_statuses=tuple(result.chore_statuses),
        last_calendar_fetch=result.last_calendar_fetch,
        error=None,
    )


def apply_refresh_error(state: PlannerState, message: str) -> PlannerState:
    return dataclasses.replace(state, error=message)


def _check_collection(collection: str) -> None:
    if collection not in LIST_COLLECTIONS:
        raise ValueError(f"Not a list collection: {collection!r}")


def prepend_record(state: PlannerState, collection: str, record: BaseModel) -> PlannerState:
    _check_collection(collection)
    current = getattr(state, collection)
    return dataclasses.replace(state, **{collection: (record, *current)})


def replace_record(
    state: PlannerState, collection: str, record_id: int, record: BaseModel
) -> PlannerState:
    """Swap the record with ``record_id`` in place, keeping list order."""
    _check_collection(collection)
    current = getattr(state, collection)
    updated = tuple(record if r.id == record_id else r for r in current)
    return dataclasses.replace(state, **{collection: updated})


def remove_record(state: PlannerState, collection: str, record_id: int) -> PlannerState:
    _check_collection(collection)
    current = getattr(state, collection)
    remaining = tuple(r for r in current if r.id != record_id)
    return dataclasses.replace(state, **{collection: remaining})


def add_purchase_log(state: PlannerState, log: PurchaseLog) -> PlannerState:
    """Prepend a log and keep only the newest PURCHASE_LOG_LIMIT entries."""
    logs = (log, *state.purchase_logs)[:PURCHASE_LOG_LIMIT]
    return dataclasses.replace(state, purchase_logs=logs)


def upsert_chore_status(state: PlannerState, status: ChoreStatus) -> PlannerState:
    """Put ``status`` first, dropping any entry with the same natural key."""
    others = tuple(
        s for s in state.chore_statuses if s.natural_key != status.natural_key
    )
    return dataclasses.replace(state, chore_statuses=(status, *others))
