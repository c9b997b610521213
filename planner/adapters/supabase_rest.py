"""Supabase REST adapter — implements ResourcePort over PostgREST with httpx.

Query encoding follows PostgREST:
  select  "id,title,profiles:added_by(username,display_name)"
  filter  "week_number=eq.12", "user_agent=ilike.*Google*"
  order   "created_at.desc"
  limit   "50"
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from pydantic_core import to_jsonable_python

from planner.ports.query import eq
from planner.ports.resource_port import ResourceError

logger = logging.getLogger(__name__)

_UNKNOWN_ERROR = "Ukjent feil fra Supabase"
_DEFAULT_TIMEOUT_SECONDS = 10.0


class SupabaseRestClient:
    """PostgREST implementation of ResourcePort."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = f"{url.rstrip('/')}/rest/v1"
        self._timeout = timeout
        self._headers = {
            "apikey": anon_key,
            "Authorization": f"Bearer {anon_key}",
        }

    async def list(
        self,
        table: str,
        *,
        select: str | None = None,
        filters: Mapping[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, str] = {}
        if select:
            params["select"] = select
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)

        response = await self._request("GET", table, params=params)
        self._raise_for_error(response, "list", table)
        return _json(response, "list", table)

    async def insert(
        self, table: str, payload: Mapping[str, Any]
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "POST",
            table,
            json=to_jsonable_python(dict(payload)),
            headers={"Prefer": "return=representation"},
        )
        self._raise_for_error(response, "insert", table)
        return _json(response, "insert", table)

    async def update(
        self,
        table: str,
        payload: Mapping[str, Any],
        match: Mapping[str, str | int],
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "PATCH",
            table,
            params=_match_params(match),
            json=to_jsonable_python(dict(payload)),
            headers={"Prefer": "return=representation"},
        )
        self._raise_for_error(response, "update", table)
        return _json(response, "update", table)

    async def remove(self, table: str, match: Mapping[str, str | int]) -> None:
        response = await self._request("DELETE", table, params=_match_params(match))
        self._raise_for_error(response, "delete", table)

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.request(
                    method,
                    f"{self._base_url}/{table}",
                    params=params,
                    json=json,
                    headers={**self._headers, **(headers or {})},
                )
        except httpx.HTTPError as exc:
            logger.error("Supabase %s %s failed: %s", method, table, exc)
            raise ResourceError(str(exc) or _UNKNOWN_ERROR) from exc

    @staticmethod
    def _raise_for_error(response: httpx.Response, action: str, table: str) -> None:
        if response.is_success:
            return
        message = _extract_error(response)
        logger.error(
            "Supabase %s failed: table=%s status=%d error=%s",
            action, table, response.status_code, message,
        )
        raise ResourceError(message, response.status_code)


def _match_params(match: Mapping[str, str | int]) -> dict[str, str]:
    return {key: eq(value) for key, value in match.items()}


def _json(response: httpx.Response, action: str, table: str) -> Any:
    """Decode a successful response body, which must be JSON."""
    try:
        return response.json()
    except ValueError as exc:
        logger.error(
            "Supabase %s returned a non-JSON body: table=%s status=%d",
            action, table, response.status_code,
        )
        raise ResourceError(_UNKNOWN_ERROR, response.status_code) from exc


def _extract_error(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        for key in ("message", "error"):
            if payload.get(key):
                return str(payload[key])

    return response.text or _UNKNOWN_ERROR


def create_resource_client(
    url: str | None,
    anon_key: str | None,
    timeout: float = _DEFAULT_TIMEOUT_SECONDS,
) -> SupabaseRestClient | None:
    """Return a client, or None unless both the address and the key are set."""
    if not url or not anon_key:
        return None
    return SupabaseRestClient(url, anon_key, timeout=timeout)
