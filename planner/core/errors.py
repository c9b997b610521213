"""Error taxonomy for the sync layer.

Callers catch these at the call site, show the message, and decide whether
to retry. Only a ConfigurationError is permanent for the session.
"""

from __future__ import annotations

CONFIG_ERROR_MESSAGE = (
    "Legg til SUPABASE_URL og SUPABASE_ANON_KEY i .env for å laste inn data."
)
MISSING_CLIENT_MESSAGE = "Supabase mangler konfigurasjon"
FETCH_FALLBACK_MESSAGE = "Klarte ikke å hente data"


class PlannerError(Exception):
    """Base class for sync layer errors."""


class ConfigurationError(PlannerError):
    """No endpoint or credential is configured. Never transient."""

    def __init__(self, message: str = MISSING_CLIENT_MESSAGE) -> None:
        super().__init__(message)


class TransientFetchError(PlannerError):
    """A refresh sub-request failed. The previous cache stays visible."""


class MutationError(PlannerError):
    """An insert, update or delete was rejected or could not be sent."""
