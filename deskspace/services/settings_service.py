"""Site booking settings: loading and admin updates."""

from __future__ import annotations

from typing import Optional

from deskspace.domain.constraints import (
    BOOKING_DURATIONS_KEY,
    HOURLY_SLOTS_KEY,
    TOTAL_DESKS_KEY,
    BookingConfig,
    build_booking_config,
    split_setting_list,
)
from deskspace.repository.data_repository import DataRepository
from deskspace.utils.config import Settings, get_settings
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)


class SettingsValidationError(Exception):
    """Raised when submitted booking settings are invalid."""


class SiteSettingsService:
    """Reads the settings store and assembles ``BookingConfig`` snapshots."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def load_booking_config(self) -> BookingConfig:
        """Build a fresh config from the store; called once per request."""
        return build_booking_config(
            self._repository.get_site_settings(),
            default_hourly_slots=self._settings.default_hourly_slots,
            default_total_desks=self._settings.default_total_desks,
            default_booking_durations=self._settings.default_booking_durations,
        )

    def update_booking_settings(
        self,
        *,
        total_desks: Optional[int] = None,
        hourly_slots: Optional[str] = None,
        booking_durations: Optional[str] = None,
    ) -> BookingConfig:
        updates: dict[str, str] = {}

        if total_desks is not None:
            if total_desks < 1:
                raise SettingsValidationError("Total desks must be a positive number")
            updates[TOTAL_DESKS_KEY] = str(total_desks)

        if hourly_slots is not None:
            slots = split_setting_list(hourly_slots)
            if not slots:
                raise SettingsValidationError("Please provide at least one hourly slot")
            if len(set(slots)) != len(slots):
                raise SettingsValidationError("Hourly slots must be unique")
            updates[HOURLY_SLOTS_KEY] = ",".join(slots)

        if booking_durations is not None:
            durations = split_setting_list(booking_durations)
            if not durations:
                raise SettingsValidationError("Please provide at least one booking duration")
            updates[BOOKING_DURATIONS_KEY] = ",".join(durations)

        if not updates:
            raise SettingsValidationError("No settings provided")

        self._repository.upsert_site_settings(updates)
        logger.info("Site settings updated | keys=%s", sorted(updates))
        return self.load_booking_config()
