"""Query encoding shared by the resource port and its callers.

PostgREST syntax:
  select  "id,title,profiles:added_by(username,display_name)"
  filter  "week_number=eq.12", "user_agent=ilike.*Google*"
  order   "created_at.desc"
"""

from __future__ import annotations

from typing import Any, Iterable


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def eq(value: Any) -> str:
    return f"eq.{_literal(value)}"


def gt(value: Any) -> str:
    return f"gt.{_literal(value)}"


def ilike(pattern: str) -> str:
    """Case-insensitive pattern filter; ``*`` is the wildcard."""
    return f"ilike.{pattern}"


def order_by(field: str, descending: bool = False) -> str:
    return f"{field}.{'desc' if descending else 'asc'}"


def embed(alias: str, foreign_key: str, columns: Iterable[str]) -> str:
    """Select fragment embedding a related row through a foreign key.

    >>> embed("profiles", "added_by", ["username", "display_name"])
    'profiles:added_by(username,display_name)'
    """
    return f"{alias}:{foreign_key}({','.join(columns)})"


def select_fields(columns: Iterable[str], *embeds: str) -> str:
    return ",".join([*columns, *embeds])
