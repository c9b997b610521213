"""Shared test fixtures and configuration.

Sets up environment variables before any planner imports so settings are
deterministic, and provides an in-memory stand-in for the remote store.
"""

import os

# Patch env vars BEFORE any planner imports
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "fake-anon-key-for-tests")
os.environ.setdefault("TIMEZONE", "Europe/Oslo")
os.environ.setdefault("ENRICH_CALENDAR_EVENTS", "false")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")

import copy
import fnmatch
from datetime import datetime, timezone

import pytest

from planner.ports.resource_port import ResourceError

# Wednesday of ISO week 10, 2026
FIXED_NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)

PROFILE_ROWS = [
    {"id": "u-anna", "username": "anna", "display_name": "Anna"},
    {"id": "u-bjorn", "username": "bjorn", "display_name": "Bjørn"},
    {"id": "u-cato", "username": "cato", "display_name": "Cato"},
]

_INSERT_DEFAULTS = {
    "shopping_items": {
        "quantity": None, "priority": "Lav", "is_done": False, "added_by": None,
        "needed_by": None, "created_at": "2026-03-04T12:00:00+00:00",
    },
    "wishlist_items": {
        "why": None, "proposed_by": None, "price_estimate": None,
        "status": "Foreslått", "created_at": "2026-03-04T12:00:00+00:00",
    },
    "calendar_events": {
        "description": None, "ends_at": None, "event_type": "annet", "owner": None,
        "location": None, "created_at": "2026-03-04T12:00:00+00:00",
    },
    "shopping_item_logs": {"purchased_at": "2026-03-04T12:00:00+00:00", "purchased_by": None},
    "chore_statuses": {"profile_id": None, "completed": False, "completed_at": None},
}


def _literal(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FakeResourceClient:
    """In-memory ResourcePort with PostgREST-ish filtering.

    ``fail(op, table)`` makes the next calls of that kind raise ResourceError.
    Every call is recorded in ``calls`` as (op, table, details).
    """

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.failures = {}
        self.calls = []
        self._next_id = 1000

    def fail(self, op, table, message="boom"):
        self.failures[(op, table)] = ResourceError(message, 500)

    def heal(self, op, table):
        self.failures.pop((op, table), None)

    def _check(self, op, table):
        if (op, table) in self.failures:
            raise self.failures[(op, table)]

    @staticmethod
    def _matches(row, match):
        return all(_literal(row.get(k)) == _literal(v) for k, v in match.items())

    async def list(self, table, *, select=None, filters=None, order=None, limit=None):
        self.calls.append(("list", table, {"select": select, "filters": filters, "order": order, "limit": limit}))
        self._check("list", table)
        rows = [copy.deepcopy(r) for r in self.tables.get(table, [])]
        for field, expr in (filters or {}).items():
            op, _, value = expr.partition(".")
            if op == "eq":
                rows = [r for r in rows if _literal(r.get(field)) == value]
            elif op == "gt":
                rows = [r for r in rows if r.get(field) is not None and r[field] > int(value)]
            elif op == "ilike":
                rows = [
                    r for r in rows
                    if fnmatch.fnmatch(str(r.get(field) or "").lower(), value.lower())
                ]
        if order:
            field, _, direction = order.rpartition(".")
            rows.sort(key=lambda r: r.get(field), reverse=direction == "desc")
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def insert(self, table, payload):
        self.calls.append(("insert", table, dict(payload)))
        self._check("insert", table)
        self._next_id += 1
        row = {**_INSERT_DEFAULTS.get(table, {}), **payload, "id": self._next_id}
        self.tables.setdefault(table, []).append(row)
        return [copy.deepcopy(row)]

    async def update(self, table, payload, match):
        self.calls.append(("update", table, {"payload": dict(payload), "match": dict(match)}))
        self._check("update", table)
        updated = []
        for row in self.tables.get(table, []):
            if self._matches(row, match):
                row.update(payload)
                updated.append(copy.deepcopy(row))
        return updated

    async def remove(self, table, match):
        self.calls.append(("remove", table, dict(match)))
        self._check("remove", table)
        self.tables[table] = [r for r in self.tables.get(table, []) if not self._matches(r, match)]

    def calls_for(self, op, table):
        return [c for c in self.calls if c[0] == op and c[1] == table]


def seed_tables():
    return {
        "profiles": PROFILE_ROWS,
        "shopping_items": [
            {
                "id": 7, "title": "Melk", "quantity": "2 l", "priority": "Middels",
                "is_done": False, "added_by": "u-anna", "needed_by": None,
                "created_at": "2026-03-03T09:00:00+00:00",
                "profiles": {"username": "anna", "display_name": "Anna"},
            },
            {
                "id": 8, "title": "Brød", "quantity": None, "priority": "Lav",
                "is_done": False, "added_by": None, "needed_by": "2026-03-06",
                "created_at": "2026-03-02T09:00:00+00:00", "profiles": None,
            },
        ],
        "wishlist_items": [
            {
                "id": 3, "title": "Vaffeljern", "why": "Fredagskos", "proposed_by": "u-bjorn",
                "price_estimate": 499, "status": "Foreslått",
                "created_at": "2026-02-20T18:00:00+00:00",
                "profiles": {"username": "bjorn", "display_name": "Bjørn"},
            },
        ],
        "calendar_events": [
            {
                "id": 21, "title": "Husmøte", "description": None,
                "starts_at": "2026-03-05T18:00:00+00:00", "ends_at": None,
                "event_type": "møte", "owner": "u-cato", "location": "Stua",
                "created_at": "2026-03-01T10:00:00+00:00",
                "profiles": {"username": "cato", "display_name": "Cato"},
            },
        ],
        "shopping_item_logs": [
            {
                "id": 1, "item_id": 5, "purchased_at": "2026-03-01T15:00:00+00:00",
                "purchased_by": "u-anna",
                "profiles": {"username": "anna", "display_name": "Anna"},
                "shopping_items": {"title": "Kaffe"},
            },
        ],
        "chore_statuses": [
            {
                "id": 40, "task": "Vaske/rydde stua", "week_number": 10, "year": 2026,
                "profile_id": "u-anna", "completed": True,
                "completed_at": "2026-03-03T20:00:00+00:00",
            },
            {
                "id": 41, "task": "Vaske/rydde stua", "week_number": 9, "year": 2026,
                "profile_id": "u-cato", "completed": True,
                "completed_at": "2026-02-25T20:00:00+00:00",
            },
        ],
        "calendar_access_log": [
            {"accessed_at": "2026-03-04T06:00:00+00:00", "user_agent": "Google-Calendar-Importer"},
            {"accessed_at": "2026-03-04T07:00:00+00:00", "user_agent": "curl/8.0"},
        ],
    }


@pytest.fixture
def fake_client():
    """Return a FakeResourceClient seeded with a small household."""
    return FakeResourceClient(seed_tables())


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def sync(fake_client, clock):
    """Return a PlannerSync wired to the fake client and a fixed clock."""
    from planner.core.sync_coordinator import PlannerSync

    return PlannerSync(fake_client, clock=clock, enrich_calendar_events=False)
