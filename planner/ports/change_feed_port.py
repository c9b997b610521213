"""Change feed port — abstract interface for remote row-change events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Protocol


@dataclass(frozen=True)
class ChangeEvent:
    """A single row change. ``record`` is the new row's full field set."""

    table: str
    event: str  # "INSERT"
    record: dict[str, Any] = field(default_factory=dict)


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


class ChangeFeedPort(Protocol):
    """Subscribes a handler to insert events on a set of tables."""

    async def subscribe(
        self, tables: Iterable[str], handler: ChangeHandler
    ) -> Subscription: ...
