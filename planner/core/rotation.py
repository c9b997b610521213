"""
Household Planner — Weekly Chore Rotation.

Assigns the fixed task list to the household roster, one roster position
per task, advancing one position per week. The result depends only on the
week number and the roster order, so every device computes the same
assignments without coordinating.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Sequence

from planner.core.iso_week import iso_week
from planner.data.models import ChoreStatus, Profile

CHORES: tuple[str, ...] = (
    "Vaske/rydde stua",
    "Vaske/rydde kjøkkenet",
    "Vaske/rydde badene",
    "Vaske/rydde gangen",
)


@dataclass(frozen=True)
class Assignment:
    task: str
    profile: Profile | None


@dataclass(frozen=True)
class Rotation:
    current_assignments: list[Assignment] = field(default_factory=list)
    next_assignments: list[Assignment] = field(default_factory=list)


def build_rotation(
    profiles: Sequence[Profile],
    week_number: int,
    tasks: Sequence[str] = CHORES,
) -> Rotation:
    """Assign ``tasks`` for this week and next week.

    With fewer profiles than tasks, people get more than one task. An empty
    roster yields an empty rotation.
    """
    if not profiles:
        return Rotation()

    start = week_number % len(profiles)

    def pick(offset: int) -> Profile:
        return profiles[(start + offset) % len(profiles)]

    return Rotation(
        current_assignments=[Assignment(task, pick(i)) for i, task in enumerate(tasks)],
        next_assignments=[Assignment(task, pick(i + 1)) for i, task in enumerate(tasks)],
    )


def rotation_for(
    profiles: Sequence[Profile],
    day: date | datetime,
    tasks: Sequence[str] = CHORES,
) -> Rotation:
    """Rotation for the ISO week containing ``day``."""
    return build_rotation(profiles, iso_week(day).week_number, tasks)


def completion_by_task(statuses: Iterable[ChoreStatus]) -> dict[str, ChoreStatus]:
    """Index this week's chore statuses by task (last one wins)."""
    return {status.task: status for status in statuses}
