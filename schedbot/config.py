"""
Stream Schedule Bot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from schedbot/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Where the shared schedule document lives: "gist" | "file"
    DOCUMENT_PROVIDER: str = "gist"

    # GitHub gist (only needed when DOCUMENT_PROVIDER=gist)
    SCHED_GIST_ID: str = ""
    GIST_USER: str = ""
    GIST_TOKEN: str = ""
    GITHUB_API_URL: str = "https://api.github.com"
    SCHEDULE_FILENAME: str = "schedule.json"

    # Local JSON file (only needed when DOCUMENT_PROVIDER=file)
    SCHEDULE_FILE_PATH: str = "data/schedule.json"

    # Public page rendering every known schedule
    SCHEDULE_URL: str = "https://example.org/schedule"

    # Cross-process writer lock
    LOCK_PATH: str = "data/schedule.lock"
    LOCK_TIMEOUT_SECONDS: float = 10.0

    # Timeout for every remote call
    REMOTE_TIMEOUT_SECONDS: float = 10.0

    # How often the bot checks whether the weekly index expired
    INDEX_TICK_SECONDS: int = 60

    # Security: users allowed to add/edit/delete schedules
    ALLOWED_USER_IDS: list[int] = []

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("LOCK_TIMEOUT_SECONDS", "REMOTE_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def parse_timeout(cls, v: str | float) -> float:
        timeout = float(v)
        if timeout <= 0:
            raise ValueError("timeouts must be positive")
        return timeout


def _require(name: str) -> str:
    value = os.getenv(name, "")
    if not value or value.startswith("your-"):
        print(f"ERROR: {name} is missing or not set in .env", file=sys.stderr)
        sys.exit(1)
    return value


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = _require("TELEGRAM_BOT_TOKEN")
    provider = os.getenv("DOCUMENT_PROVIDER", "gist").lower()

    if provider == "gist":
        gist_id = _require("SCHED_GIST_ID")
        gist_user = _require("GIST_USER")
        gist_token = _require("GIST_TOKEN")
    else:
        gist_id = os.getenv("SCHED_GIST_ID", "")
        gist_user = os.getenv("GIST_USER", "")
        gist_token = os.getenv("GIST_TOKEN", "")

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DOCUMENT_PROVIDER=provider,
        SCHED_GIST_ID=gist_id,
        GIST_USER=gist_user,
        GIST_TOKEN=gist_token,
        GITHUB_API_URL=os.getenv("GITHUB_API_URL", "https://api.github.com"),
        SCHEDULE_FILENAME=os.getenv("SCHEDULE_FILENAME", "schedule.json"),
        SCHEDULE_FILE_PATH=os.getenv("SCHEDULE_FILE_PATH", "data/schedule.json"),
        SCHEDULE_URL=os.getenv("SCHEDULE_URL", "https://example.org/schedule"),
        LOCK_PATH=os.getenv("LOCK_PATH", "data/schedule.lock"),
        LOCK_TIMEOUT_SECONDS=os.getenv("LOCK_TIMEOUT_SECONDS", "10"),
        REMOTE_TIMEOUT_SECONDS=os.getenv("REMOTE_TIMEOUT_SECONDS", "10"),
        INDEX_TICK_SECONDS=os.getenv("INDEX_TICK_SECONDS", "60"),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
    )


# Singleton — imported by all other modules as:
#   from schedbot.config import settings
settings = _load_settings()
