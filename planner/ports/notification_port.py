"""Notification port — abstract interface for delivering household notices.

Core modules depend on this protocol, never on a specific messaging provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

Category = Literal["shopping", "wishlist", "calendar"]


@dataclass(frozen=True)
class Notification:
    category: Category
    title: str
    body: str
    url: str | None = None


class NotificationPort(Protocol):
    """Abstract delivery interface used by the notification queue."""

    async def deliver(self, notification: Notification) -> None: ...
