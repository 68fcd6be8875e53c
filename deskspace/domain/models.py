"""Domain models for desk booking and allocation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


NO_DESK_AVAILABLE_MESSAGE = (
    "No available desk found for the selected time slot and duration. "
    "Please choose a different time or duration."
)


class BookingStatus:
    """Booking lifecycle states as stored in the Bookings table."""

    PENDING = "pending"
    CODE_SENT = "code_sent"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    ALL: tuple[str, ...] = (PENDING, CODE_SENT, CONFIRMED, REJECTED, CANCELLED)


# Only these statuses hold desk capacity.
ACTIVE_BOOKING_STATUSES: tuple[str, ...] = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.CODE_SENT,
)

CANCELLABLE_STATUSES: tuple[str, ...] = (BookingStatus.PENDING,)

REJECTABLE_STATUSES: tuple[str, ...] = (
    BookingStatus.PENDING,
    BookingStatus.CODE_SENT,
)


@dataclass(frozen=True)
class ExistingBooking:
    """Booking projection consumed by the allocation engine."""

    time_slot: str
    duration: str
    desk_number: Optional[int] = None


@dataclass(frozen=True)
class DeskAssignment:
    """Outcome of a first-fit desk search.

    ``desk_number`` is ``None`` when no desk is free for the whole span; in
    that case ``reason`` carries the message to show the customer.
    """

    desk_number: Optional[int]
    required_slots: tuple[str, ...]
    reason: Optional[str] = None

    @property
    def is_assigned(self) -> bool:
        return self.desk_number is not None


@dataclass(frozen=True)
class NewBooking:
    workspace_type: str
    date: str
    time_slot: str
    duration: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_whatsapp: str
    total_price: float
    status: str
    user_id: Optional[str] = None


@dataclass(frozen=True)
class Booking:
    booking_id: int
    workspace_type: str
    date: str
    time_slot: str
    duration: str
    desk_number: Optional[int]
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_whatsapp: str
    total_price: float
    status: str
    user_id: Optional[str]
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class SlotOccupancy:
    time_slot: str
    occupied_desks: int
    total_desks: int
    level: str
