"""Site booking configuration and its validation rules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from deskspace.utils.config import (
    DEFAULT_BOOKING_DURATIONS,
    DEFAULT_HOURLY_SLOTS,
    DEFAULT_TOTAL_DESKS,
)
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)

TOTAL_DESKS_KEY = "total_desks"
HOURLY_SLOTS_KEY = "hourly_slots"
BOOKING_DURATIONS_KEY = "booking_durations"


@dataclass(frozen=True)
class BookingConfig:
    """Immutable per-request view of the site booking settings."""

    hourly_slots: tuple[str, ...]
    total_desks: int
    booking_durations: tuple[str, ...]


def validate_booking_config(config: BookingConfig) -> None:
    if config.total_desks <= 0:
        raise ValueError("total_desks must be > 0")
    if not config.hourly_slots:
        raise ValueError("hourly_slots must contain at least one slot")
    if len(set(config.hourly_slots)) != len(config.hourly_slots):
        raise ValueError("hourly_slots must not contain duplicates")
    if any(not slot.strip() for slot in config.hourly_slots):
        raise ValueError("hourly_slots must not contain blank labels")
    if not config.booking_durations:
        raise ValueError("booking_durations must contain at least one duration")


def split_setting_list(raw: Optional[str]) -> list[str]:
    """Split a comma separated setting, trimming items and dropping empties."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique_in_order(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for item in items:
        if item in seen:
            logger.warning("Duplicate hourly slot dropped | slot=%s", item)
            continue
        seen.add(item)
        unique.append(item)
    return unique


def parse_total_desks(raw: Optional[str], default: int = DEFAULT_TOTAL_DESKS) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Invalid total_desks setting; using default | raw=%s | default=%s", raw, default)
        return default
    if value <= 0:
        logger.warning("Non-positive total_desks setting; using default | raw=%s | default=%s", raw, default)
        return default
    return value


def build_booking_config(
    values: Mapping[str, str],
    *,
    default_hourly_slots: Sequence[str] = DEFAULT_HOURLY_SLOTS,
    default_total_desks: int = DEFAULT_TOTAL_DESKS,
    default_booking_durations: Sequence[str] = DEFAULT_BOOKING_DURATIONS,
) -> BookingConfig:
    """Assemble a ``BookingConfig`` from raw key/value settings.

    Empty or missing list settings fall back to the defaults, so the result
    always satisfies ``validate_booking_config``.
    """
    hourly_slots = _unique_in_order(split_setting_list(values.get(HOURLY_SLOTS_KEY)))
    if not hourly_slots:
        hourly_slots = list(default_hourly_slots)

    booking_durations = split_setting_list(values.get(BOOKING_DURATIONS_KEY))
    if not booking_durations:
        booking_durations = list(default_booking_durations)

    config = BookingConfig(
        hourly_slots=tuple(hourly_slots),
        total_desks=parse_total_desks(values.get(TOTAL_DESKS_KEY), default_total_desks),
        booking_durations=tuple(booking_durations),
    )
    validate_booking_config(config)
    return config
