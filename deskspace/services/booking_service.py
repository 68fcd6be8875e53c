"""Booking workflows built on the desk allocation engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from deskspace.domain.constraints import BookingConfig
from deskspace.domain.models import (
    CANCELLABLE_STATUSES,
    NO_DESK_AVAILABLE_MESSAGE,
    REJECTABLE_STATUSES,
    Booking,
    BookingStatus,
    ExistingBooking,
    NewBooking,
    SlotOccupancy,
)
from deskspace.repository.data_repository import DataRepository
from deskspace.services.allocation_engine import (
    assign_desk,
    occupied_desks_by_slot,
    unavailable_start_slots,
)
from deskspace.services.settings_service import SiteSettingsService
from deskspace.utils.config import Settings, get_settings
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)


class BookingError(Exception):
    """Base exception for booking workflow failures."""


class BookingValidationError(BookingError):
    """Raised when booking input is invalid."""


class BookingNotFoundError(BookingError):
    """Raised when a booking id does not exist."""


class BookingStateError(BookingError):
    """Raised when a status change is not allowed from the current status."""


class NoDeskAvailableError(BookingError):
    """Raised when no desk is free for the whole requested span."""


@dataclass(frozen=True)
class BookingRequest:
    workspace_type: str
    date: str
    time_slot: str
    duration: str
    customer_name: str
    customer_email: str = ""
    customer_phone: str = ""
    customer_whatsapp: str = ""
    total_price: float = 0.0
    user_id: Optional[str] = None


def _validate_date(date_value: str) -> None:
    try:
        datetime.strptime(date_value, "%Y-%m-%d")
    except ValueError as exc:
        raise BookingValidationError("date must follow YYYY-MM-DD format") from exc


def _require_text(value: str, field_name: str) -> None:
    if not value or not value.strip():
        raise BookingValidationError(f"{field_name} must not be empty")


def _validate_lookup(workspace_type: str, date: str) -> None:
    _require_text(workspace_type, "workspace_type")
    _validate_date(date)


def _validate_request(request: BookingRequest) -> None:
    _validate_lookup(request.workspace_type, request.date)
    _require_text(request.time_slot, "time_slot")
    _require_text(request.duration, "duration")
    _require_text(request.customer_name, "customer_name")
    if request.total_price < 0:
        raise BookingValidationError("total_price must be >= 0")


def _require_configured_duration(duration: str, config: BookingConfig) -> None:
    if duration not in config.booking_durations:
        raise BookingValidationError(
            f"duration must be one of: {', '.join(config.booking_durations)}"
        )


def _occupancy_level(occupied: int, total_desks: int, almost_full_ratio: float) -> str:
    if occupied == 0:
        return "free"
    if occupied >= total_desks:
        return "full"
    if occupied >= total_desks * almost_full_ratio:
        return "almost_full"
    return "busy"


class BookingService:
    """Customer and staff booking flows over a shared desk allocation engine."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings_service: Optional[SiteSettingsService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._settings_service = settings_service or SiteSettingsService(
            repository=self._repository,
            settings=self._settings,
        )

    def get_booking_options(self) -> dict[str, Any]:
        config = self._settings_service.load_booking_config()
        return {
            "hourly_slots": list(config.hourly_slots),
            "booking_durations": list(config.booking_durations),
            "total_desks": config.total_desks,
        }

    def check_availability(
        self,
        *,
        workspace_type: str,
        date: str,
        duration: str,
    ) -> dict[str, Any]:
        """Return which start slots can take a booking of ``duration``."""
        _validate_lookup(workspace_type, date)
        _require_text(duration, "duration")

        config = self._settings_service.load_booking_config()
        _require_configured_duration(duration, config)
        existing = self._repository.list_active_bookings(workspace_type, date)
        unavailable = unavailable_start_slots(
            duration,
            config.hourly_slots,
            config.total_desks,
            existing,
        )
        return {
            "workspace_type": workspace_type,
            "date": date,
            "duration": duration,
            "available_slots": [slot for slot in config.hourly_slots if slot not in unavailable],
            "unavailable_slots": [slot for slot in config.hourly_slots if slot in unavailable],
        }

    def create_customer_booking(self, request: BookingRequest) -> Booking:
        return self._create_booking(request, status=BookingStatus.PENDING)

    def create_admin_booking(self, request: BookingRequest) -> Booking:
        return self._create_booking(request, status=BookingStatus.CONFIRMED)

    def _create_booking(self, request: BookingRequest, *, status: str) -> Booking:
        _validate_request(request)
        config = self._settings_service.load_booking_config()
        _require_configured_duration(request.duration, config)

        new_booking = NewBooking(
            workspace_type=request.workspace_type,
            date=request.date,
            time_slot=request.time_slot,
            duration=request.duration,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            customer_whatsapp=request.customer_whatsapp,
            total_price=request.total_price,
            status=status,
            user_id=request.user_id,
        )

        def choose_desk(existing: list[ExistingBooking]):
            return assign_desk(
                request.time_slot,
                request.duration,
                config.hourly_slots,
                config.total_desks,
                existing,
            )

        assignment, booking_id = self._repository.reserve_desk(new_booking, choose_desk)
        if booking_id is None:
            logger.info(
                "Booking rejected: no desk | workspace_type=%s | date=%s | time_slot=%s | duration=%s",
                request.workspace_type,
                request.date,
                request.time_slot,
                request.duration,
            )
            raise NoDeskAvailableError(assignment.reason or NO_DESK_AVAILABLE_MESSAGE)

        logger.info(
            "Booking created | booking_id=%s | status=%s | desk_number=%s | slots=%s",
            booking_id,
            status,
            assignment.desk_number,
            len(assignment.required_slots),
        )
        return self.get_booking(booking_id)

    def get_booking(self, booking_id: int) -> Booking:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def get_user_booking(self, booking_id: int, user_id: str) -> Booking:
        """Return a booking only to its owner; others see it as missing."""
        booking = self.get_booking(booking_id)
        if booking.user_id is None or booking.user_id != user_id:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def list_bookings(
        self,
        *,
        workspace_type: Optional[str] = None,
        date: Optional[str] = None,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        if date is not None:
            _validate_date(date)
        if status is not None and status not in BookingStatus.ALL:
            raise BookingValidationError(f"Unknown booking status: {status}")
        return self._repository.list_bookings(
            workspace_type=workspace_type,
            date=date,
            status=status,
            user_id=user_id,
        )

    def cancel_booking(self, booking_id: int, user_id: Optional[str]) -> Booking:
        """Cancel a pending booking on behalf of its owner."""
        booking = self.get_booking(booking_id)
        if not user_id or booking.user_id != user_id:
            raise BookingStateError("You can only cancel your own bookings")
        return self._transition(booking, BookingStatus.CANCELLED, CANCELLABLE_STATUSES, "cancel")

    def reject_booking(self, booking_id: int) -> Booking:
        booking = self.get_booking(booking_id)
        return self._transition(booking, BookingStatus.REJECTED, REJECTABLE_STATUSES, "reject")

    def _transition(
        self,
        booking: Booking,
        new_status: str,
        allowed_from: tuple[str, ...],
        action: str,
    ) -> Booking:
        if booking.status not in allowed_from:
            raise BookingStateError(f"Cannot {action} booking with status: {booking.status}")
        updated = self._repository.update_booking_status(
            booking.booking_id,
            new_status,
            expected_statuses=allowed_from,
        )
        if not updated:
            raise BookingStateError(f"Booking {booking.booking_id} changed while updating")
        logger.info(
            "Booking status changed | booking_id=%s | from=%s | to=%s",
            booking.booking_id,
            booking.status,
            new_status,
        )
        return self.get_booking(booking.booking_id)

    def get_day_occupancy(self, *, workspace_type: str, date: str) -> list[SlotOccupancy]:
        """Per-slot desk usage for one workspace type and date."""
        _validate_lookup(workspace_type, date)
        config: BookingConfig = self._settings_service.load_booking_config()
        existing = self._repository.list_active_bookings(workspace_type, date)
        occupied = occupied_desks_by_slot(config.hourly_slots, config.total_desks, existing)
        return [
            SlotOccupancy(
                time_slot=slot,
                occupied_desks=occupied[slot],
                total_desks=config.total_desks,
                level=_occupancy_level(
                    occupied[slot],
                    config.total_desks,
                    self._settings.occupancy_almost_full_ratio,
                ),
            )
            for slot in config.hourly_slots
        ]
