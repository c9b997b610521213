"""
Household Planner — Centralized configuration.

Loads all settings from .env. Unlike a server process, a missing endpoint
or credential is not fatal: the sync layer reports it as a configuration
error instead of exiting, so the caller can show it.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from planner/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Remote store (Supabase / PostgREST)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # "Today" and the ISO week key are computed in this zone
    TIMEZONE: str = "Europe/Oslo"

    # Marker in calendar_access_log.user_agent for the external calendar reader
    CALENDAR_AGENT_SIGNATURE: str = "Google"

    # Attach profile snapshots to calendar events on add/update
    ENRICH_CALENDAR_EVENTS: bool = False

    # Change feed + notification delivery
    CHANGE_POLL_SECONDS: float = 15.0
    NOTIFICATION_INTERVAL_SECONDS: float = 0.5
    TELEGRAM_BOT_TOKEN: str = ""
    NOTIFY_CHAT_IDS: list[int] = []

    LOG_LEVEL: str = "INFO"

    @field_validator("SUPABASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @field_validator("NOTIFY_CHAT_IDS", mode="before")
    @classmethod
    def parse_chat_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(cid.strip()) for cid in v.split(",") if cid.strip()]
        return []

    @property
    def has_endpoint(self) -> bool:
        """True when both the base address and the credential are present."""
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)


def _load_settings() -> Settings:
    """Load settings from the environment."""
    anon_key = os.getenv("SUPABASE_ANON_KEY", "")
    if anon_key.startswith("your-"):
        anon_key = ""

    return Settings(
        SUPABASE_URL=os.getenv("SUPABASE_URL", ""),
        SUPABASE_ANON_KEY=anon_key,
        HTTP_TIMEOUT_SECONDS=os.getenv("HTTP_TIMEOUT_SECONDS", "10"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Oslo"),
        CALENDAR_AGENT_SIGNATURE=os.getenv("CALENDAR_AGENT_SIGNATURE", "Google"),
        ENRICH_CALENDAR_EVENTS=os.getenv("ENRICH_CALENDAR_EVENTS", "false"),
        CHANGE_POLL_SECONDS=os.getenv("CHANGE_POLL_SECONDS", "15"),
        NOTIFICATION_INTERVAL_SECONDS=os.getenv("NOTIFICATION_INTERVAL_SECONDS", "0.5"),
        TELEGRAM_BOT_TOKEN=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        NOTIFY_CHAT_IDS=os.getenv("NOTIFY_CHAT_IDS", ""),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by other modules as:
#   from planner.config import settings
settings = _load_settings()
