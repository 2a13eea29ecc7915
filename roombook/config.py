"""Application settings read from the environment (and a local .env file)."""

from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    log_level: str = "INFO"
    log_file: str | None = None
    seed_bookings: bool = False
    api_url: str = "http://localhost:8000"
    poll_interval: float = Field(default=30.0, gt=0)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Build Settings from ``ROOMBOOK_*`` environment variables."""
    load_dotenv()
    return Settings(
        log_level=os.getenv("ROOMBOOK_LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("ROOMBOOK_LOG_FILE") or None,
        seed_bookings=_env_flag("ROOMBOOK_SEED_BOOKINGS"),
        api_url=os.getenv("ROOMBOOK_API_URL", "http://localhost:8000"),
        poll_interval=float(os.getenv("ROOMBOOK_POLL_INTERVAL", "30")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
