"""Desk availability and first-fit desk assignment.

Every booking path (customer, admin, availability display, occupancy view)
goes through these functions. They are pure: inputs are the ordered slot
labels of the day, the desk count and the active bookings already filtered to
one workspace type and date. Nothing here reads settings or touches storage.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from deskspace.domain.models import (
    NO_DESK_AVAILABLE_MESSAGE,
    DeskAssignment,
    ExistingBooking,
)
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)

AvailabilityMatrix = dict[str, list[bool]]

_FIXED_DURATION_HOURS = {
    "1 hour": 1,
    "1-hour": 1,
    "2 hours": 2,
    "2-hours": 2,
    "3 hours": 3,
    "4 hours": 4,
    "4-hours": 4,
    "5 hours": 5,
    "6 hours": 6,
}

# Multipliers of the slot count; a "day" is every configured slot.
_SLOT_MULTIPLE_DURATIONS = {
    "1-day": 1,
    "1-week": 7,
    "1-month": 30,
}

_HOURS_PATTERN = re.compile(r"(\d+)\s*hours?", re.IGNORECASE)


def duration_to_hours(duration: str, total_slots: int) -> int:
    """Map a duration label to the number of consecutive slots it occupies."""
    if duration in _FIXED_DURATION_HOURS:
        return _FIXED_DURATION_HOURS[duration]
    if duration in _SLOT_MULTIPLE_DURATIONS:
        return total_slots * _SLOT_MULTIPLE_DURATIONS[duration]

    match = _HOURS_PATTERN.search(duration)
    if match is not None:
        hours = int(match.group(1))
        if hours >= 1:
            return hours

    logger.warning("Unrecognised duration label; treating as 1 hour | duration=%r", duration)
    return 1


def hourly_slots_for_booking(
    start_slot: str,
    duration_hours: int,
    all_slots: Sequence[str],
) -> list[str]:
    """Return the slots covered by a booking, truncated at closing time.

    An unknown ``start_slot`` yields an empty span.
    """
    try:
        start_index = list(all_slots).index(start_slot)
    except ValueError:
        return []
    return list(all_slots[start_index : start_index + max(duration_hours, 0)])


def build_availability_matrix(
    all_slots: Sequence[str],
    total_desks: int,
    existing_bookings: Iterable[ExistingBooking],
) -> AvailabilityMatrix:
    """Return slot -> per-desk availability after applying active bookings."""
    matrix: AvailabilityMatrix = {slot: [True] * total_desks for slot in all_slots}
    total_slots = len(all_slots)

    for booking in existing_bookings:
        hours = duration_to_hours(booking.duration, total_slots)
        occupied = hourly_slots_for_booking(booking.time_slot, hours, all_slots)
        desk_number = booking.desk_number
        has_desk = desk_number is not None and 1 <= desk_number <= total_desks

        for slot in occupied:
            availability = matrix[slot]
            if has_desk:
                availability[desk_number - 1] = False
            else:
                # Bookings without a usable desk number block the whole slot.
                availability[:] = [False] * total_desks

    return matrix


def _desk_free_for_span(matrix: AvailabilityMatrix, desk_index: int, span: Sequence[str]) -> bool:
    return all(matrix[slot][desk_index] for slot in span)


def _first_free_desk(matrix: AvailabilityMatrix, total_desks: int, span: Sequence[str]) -> int | None:
    for desk_index in range(total_desks):
        if _desk_free_for_span(matrix, desk_index, span):
            return desk_index + 1
    return None


def unavailable_start_slots(
    requested_duration: str,
    all_slots: Sequence[str],
    total_desks: int,
    existing_bookings: Iterable[ExistingBooking],
) -> set[str]:
    """Return start slots from which the requested duration cannot be booked."""
    total_slots = len(all_slots)
    requested_hours = duration_to_hours(requested_duration, total_slots)
    matrix = build_availability_matrix(all_slots, total_desks, existing_bookings)

    unavailable: set[str] = set()
    for start_index, start_slot in enumerate(all_slots):
        span = hourly_slots_for_booking(start_slot, requested_hours, all_slots)
        if len(span) < requested_hours:
            unavailable.add(start_slot)
            continue
        if start_index + requested_hours > total_slots:
            unavailable.add(start_slot)
            continue
        if _first_free_desk(matrix, total_desks, span) is None:
            unavailable.add(start_slot)
    return unavailable


def available_start_slots(
    requested_duration: str,
    all_slots: Sequence[str],
    total_desks: int,
    existing_bookings: Iterable[ExistingBooking],
) -> list[str]:
    """Complement of ``unavailable_start_slots`` in configured slot order."""
    unavailable = unavailable_start_slots(
        requested_duration,
        all_slots,
        total_desks,
        existing_bookings,
    )
    return [slot for slot in all_slots if slot not in unavailable]


def assign_desk(
    start_slot: str,
    duration: str,
    all_slots: Sequence[str],
    total_desks: int,
    existing_bookings: Iterable[ExistingBooking],
) -> DeskAssignment:
    """Pick the lowest-numbered desk free for the whole requested span.

    The result is only authoritative when ``existing_bookings`` was read in the
    same transaction as the insert that follows.
    """
    requested_hours = duration_to_hours(duration, len(all_slots))
    span = tuple(hourly_slots_for_booking(start_slot, requested_hours, all_slots))
    if len(span) < requested_hours:
        logger.info(
            "Desk assignment rejected: span unavailable | start_slot=%s | duration=%s | span=%s",
            start_slot,
            duration,
            len(span),
        )
        return DeskAssignment(desk_number=None, required_slots=span, reason=NO_DESK_AVAILABLE_MESSAGE)

    matrix = build_availability_matrix(all_slots, total_desks, existing_bookings)
    desk_number = _first_free_desk(matrix, total_desks, span)
    if desk_number is None:
        logger.info(
            "Desk assignment rejected: capacity exhausted | start_slot=%s | duration=%s",
            start_slot,
            duration,
        )
        return DeskAssignment(desk_number=None, required_slots=span, reason=NO_DESK_AVAILABLE_MESSAGE)

    logger.debug(
        "Desk assigned | start_slot=%s | duration=%s | desk_number=%s",
        start_slot,
        duration,
        desk_number,
    )
    return DeskAssignment(desk_number=desk_number, required_slots=span)


def occupied_desks_by_slot(
    all_slots: Sequence[str],
    total_desks: int,
    existing_bookings: Iterable[ExistingBooking],
) -> dict[str, int]:
    """Count desks taken at each slot, legacy bookings counting as all desks."""
    matrix = build_availability_matrix(all_slots, total_desks, existing_bookings)
    return {slot: matrix[slot].count(False) for slot in all_slots}
