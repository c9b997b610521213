"""
Household Planner — Data Models.

Rows as the remote store returns them. Records that reference a profile
by id may carry a denormalized ``profiles`` snapshot, either embedded by
the server (``profiles:added_by(username,display_name)``) or attached by
the client after a mutation.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

DEFAULT_WISHLIST_STATUS = "Foreslått"


class Priority(str, Enum):
    LOW = "Lav"
    MEDIUM = "Middels"
    HIGH = "Høy"


class _Row(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ProfileSnapshot(_Row):
    """Display data copied from a Profile onto a record that references it."""

    username: str
    display_name: str


class ItemTitle(_Row):
    title: str


class Profile(_Row):
    """A household member. The roster is read-mostly."""

    id: str
    username: str
    display_name: str

    def snapshot(self) -> ProfileSnapshot:
        return ProfileSnapshot(username=self.username, display_name=self.display_name)


class ShoppingItem(_Row):
    """An entry on the shared shopping list. Active while is_done is False."""

    id: int
    title: str
    quantity: str | None = None
    priority: Priority = Priority.LOW
    is_done: bool = False
    added_by: str | None = None
    needed_by: date | None = None
    created_at: datetime | None = None
    profiles: ProfileSnapshot | None = None


class WishlistItem(_Row):
    id: int
    title: str
    why: str | None = None
    proposed_by: str | None = None
    price_estimate: int | None = None
    status: str = DEFAULT_WISHLIST_STATUS
    created_at: datetime | None = None
    profiles: ProfileSnapshot | None = None


class CalendarEvent(_Row):
    id: int
    title: str
    description: str | None = None
    starts_at: datetime
    ends_at: datetime | None = None
    event_type: str = ""
    owner: str | None = None
    location: str | None = None
    created_at: datetime | None = None
    profiles: ProfileSnapshot | None = None


class PurchaseLog(_Row):
    """One purchase of a shopping item. Created once per purchase action."""

    id: int
    item_id: int
    purchased_at: datetime | None = None
    purchased_by: str | None = None
    profiles: ProfileSnapshot | None = None
    shopping_items: ItemTitle | None = None


class ChoreStatus(_Row):
    """Completion state of one weekly task.

    At most one row exists per natural key (task, week_number, year).
    """

    id: int
    task: str
    week_number: int
    year: int
    profile_id: str | None = None
    completed: bool = False
    completed_at: datetime | None = None
    profiles: ProfileSnapshot | None = None

    @property
    def natural_key(self) -> tuple[str, int, int]:
        return (self.task, self.week_number, self.year)


class CalendarAccess(_Row):
    """A row of calendar_access_log: one read of the published calendar feed."""

    accessed_at: datetime
    user_agent: str | None = None
