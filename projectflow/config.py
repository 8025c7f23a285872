"""
ProjectFlow — Centralized configuration.

Loads all settings from .env and validates them once at import time.
Every other module reads configuration through the `settings` singleton.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from projectflow/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

SUPPORTED_LOCALES = ("en", "he")
SUPPORTED_THEMES = ("light", "dark")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # REST API (consumed by the remote client)
    API_URL: str = "http://localhost:3001"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Durable cache (SQLite file standing in for browser-local storage)
    CACHE_PATH: str = "data/projectflow_cache.db"
    CACHE_NAMESPACE: str = "projectflow"

    # UI preferences used until the cache says otherwise
    DEFAULT_LOCALE: str = "en"
    DEFAULT_THEME: str = "light"

    # Running work timer
    TIMER_TICK_SECONDS: float = 1.0

    # Optional static session for the command-line entry point
    SESSION_USER_ID: str = ""
    SESSION_EMAIL: str = ""
    SESSION_NAME: str = ""
    SESSION_ACCESS_TOKEN: str = ""

    # Subscriptions
    TRIAL_DAYS: int = 5

    LOG_LEVEL: str = "INFO"

    @field_validator("API_URL", mode="before")
    @classmethod
    def check_api_url(cls, v: str) -> str:
        v = (v or "").strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"API_URL must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator("DEFAULT_LOCALE", mode="before")
    @classmethod
    def check_locale(cls, v: str) -> str:
        v = (v or "en").strip().lower()
        if v not in SUPPORTED_LOCALES:
            raise ValueError(f"DEFAULT_LOCALE must be one of {SUPPORTED_LOCALES}, got {v!r}")
        return v

    @field_validator("DEFAULT_THEME", mode="before")
    @classmethod
    def check_theme(cls, v: str) -> str:
        v = (v or "light").strip().lower()
        return v if v in SUPPORTED_THEMES else "light"

    @field_validator("REQUEST_TIMEOUT_SECONDS", "TIMER_TICK_SECONDS", mode="before")
    @classmethod
    def parse_seconds(cls, v: str | float) -> float:
        return float(v)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        v = (v or "INFO").strip().upper()
        return v if v in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL") else "INFO"

    @field_validator("TRIAL_DAYS", mode="before")
    @classmethod
    def parse_days(cls, v: str | int) -> int:
        return int(v)


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            API_URL=os.getenv("API_URL", "http://localhost:3001"),
            REQUEST_TIMEOUT_SECONDS=os.getenv("REQUEST_TIMEOUT_SECONDS", "30"),
            CACHE_PATH=os.getenv("CACHE_PATH", "data/projectflow_cache.db"),
            CACHE_NAMESPACE=os.getenv("CACHE_NAMESPACE", "projectflow"),
            DEFAULT_LOCALE=os.getenv("DEFAULT_LOCALE", "en"),
            DEFAULT_THEME=os.getenv("DEFAULT_THEME", "light"),
            TIMER_TICK_SECONDS=os.getenv("TIMER_TICK_SECONDS", "1"),
            SESSION_USER_ID=os.getenv("SESSION_USER_ID", ""),
            SESSION_EMAIL=os.getenv("SESSION_EMAIL", ""),
            SESSION_NAME=os.getenv("SESSION_NAME", ""),
            SESSION_ACCESS_TOKEN=os.getenv("SESSION_ACCESS_TOKEN", ""),
            TRIAL_DAYS=os.getenv("TRIAL_DAYS", "5"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValueError as exc:
        print(f"ERROR: invalid configuration in .env: {exc}", file=sys.stderr)
        sys.exit(1)


# Singleton, imported by all other modules as:
#   from projectflow.config import settings
settings = _load_settings()
