"""Resource port — abstract interface over the remote record collections.

Core modules depend on this protocol, never on a specific HTTP client.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol


class ResourceError(Exception):
    """Raised when any remote resource operation fails.

    Covers both non-success responses and network-level failures;
    ``status_code`` is None for the latter.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResourcePort(Protocol):
    """Remote collection accessor used by the sync coordinator."""

    async def list(
        self,
        table: str,
        *,
        select: str | None = None,
        filters: Mapping[str, str] | None = None,
        order: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def insert(
        self, table: str, payload: Mapping[str, Any]
    ) -> list[dict[str, Any]]: ...

    async def update(
        self,
        table: str,
        payload: Mapping[str, Any],
        match: Mapping[str, str | int],
    ) -> list[dict[str, Any]]: ...

    async def remove(self, table: str, match: Mapping[str, str | int]) -> None: ...
