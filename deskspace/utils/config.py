"""Environment-driven process settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional


DEFAULT_HOURLY_SLOTS: tuple[str, ...] = (
    "9:00 AM",
    "10:00 AM",
    "11:00 AM",
    "12:00 PM",
    "1:00 PM",
    "2:00 PM",
    "3:00 PM",
    "4:00 PM",
    "5:00 PM",
)

DEFAULT_BOOKING_DURATIONS: tuple[str, ...] = (
    "1 hour",
    "2 hours",
    "3 hours",
    "4 hours",
    "5 hours",
    "6 hours",
)

DEFAULT_TOTAL_DESKS = 6


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Process-level configuration.

    Site booking rules (slots, desks, durations) are not stored here; they live
    in the settings table and are assembled per request by the settings
    service. The defaults below only seed that table.
    """

    app_name: str = "Deskspace Booking API"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    database_path: Path | str = Path("data") / "deskspace.db"
    database_busy_timeout_seconds: float = 5.0
    admin_token: Optional[str] = None
    staff_token: Optional[str] = None
    default_total_desks: int = DEFAULT_TOTAL_DESKS
    default_hourly_slots: tuple[str, ...] = field(default=DEFAULT_HOURLY_SLOTS)
    default_booking_durations: tuple[str, ...] = field(default=DEFAULT_BOOKING_DURATIONS)
    occupancy_almost_full_ratio: float = 0.8


def load_settings() -> Settings:
    """Build settings from environment variables."""
    return Settings(
        app_name=_env_str("DESKSPACE_APP_NAME", Settings.app_name),
        app_version=_env_str("DESKSPACE_APP_VERSION", Settings.app_version),
        log_level=_env_str("DESKSPACE_LOG_LEVEL", Settings.log_level),
        host=_env_str("DESKSPACE_HOST", Settings.host),
        port=_env_int("DESKSPACE_PORT", Settings.port),
        database_path=Path(
            _env_str("DESKSPACE_DATABASE_PATH", str(Settings.database_path))
        ),
        database_busy_timeout_seconds=_env_float(
            "DESKSPACE_DB_BUSY_TIMEOUT_SECONDS",
            Settings.database_busy_timeout_seconds,
        ),
        admin_token=_env_optional("ADMIN_TOKEN"),
        staff_token=_env_optional("STAFF_TOKEN"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
