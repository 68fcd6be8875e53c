from __future__ import annotations

import threading
from dataclasses import replace

import pytest

from deskspace.domain.models import BookingStatus, NewBooking
from deskspace.repository.data_repository import DataRepository, RepositoryError
from deskspace.services.booking_service import (
    BookingNotFoundError,
    BookingRequest,
    BookingService,
    BookingStateError,
    BookingValidationError,
    NoDeskAvailableError,
)
from deskspace.services.settings_service import SettingsValidationError, SiteSettingsService
from deskspace.utils.config import get_settings


TARGET_DATE = "2026-03-02"
WORKSPACE = "hot-desk"


def _build_test_settings(tmp_path, filename: str):
    base = get_settings()
    return replace(base, database_path=tmp_path / filename)


def _build_service(tmp_path, filename: str, **site_settings) -> tuple[BookingService, DataRepository]:
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_default_settings()
    settings_service = SiteSettingsService(repository=repository, settings=settings)
    if site_settings:
        settings_service.update_booking_settings(**site_settings)
    service = BookingService(
        repository=repository,
        settings_service=settings_service,
        settings=settings,
    )
    return service, repository


def _request(time_slot: str = "10:00", duration: str = "2 hours", **overrides) -> BookingRequest:
    fields = {
        "workspace_type": WORKSPACE,
        "date": TARGET_DATE,
        "time_slot": time_slot,
        "duration": duration,
        "customer_name": "Mona Adel",
        "customer_email": "mona@example.com",
        "total_price": 150.0,
    }
    fields.update(overrides)
    return BookingRequest(**fields)


def _four_slot_service(tmp_path, filename: str, total_desks: int = 2):
    return _build_service(
        tmp_path,
        filename,
        total_desks=total_desks,
        hourly_slots="9:00,10:00,11:00,12:00",
    )


def test_default_settings_are_seeded(tmp_path):
    service, _ = _build_service(tmp_path, "defaults.db")
    options = service.get_booking_options()
    assert options["total_desks"] == 6
    assert len(options["hourly_slots"]) == 9
    assert options["hourly_slots"][0] == "9:00 AM"
    assert options["booking_durations"][-1] == "6 hours"


def test_seed_does_not_overwrite_existing_settings(tmp_path):
    service, repository = _build_service(tmp_path, "reseed.db", total_desks=3)
    repository.seed_default_settings()
    assert service.get_booking_options()["total_desks"] == 3


def test_customer_bookings_fill_desks_first_fit(tmp_path):
    service, repository = _four_slot_service(tmp_path, "first_fit.db")

    first = service.create_customer_booking(_request())
    second = service.create_customer_booking(_request())

    assert first.desk_number == 1
    assert second.desk_number == 2
    assert first.status == BookingStatus.PENDING
    assert repository.count_bookings() == 2

    with pytest.raises(NoDeskAvailableError) as excinfo:
        service.create_customer_booking(_request())
    assert "choose a different time" in str(excinfo.value)
    assert repository.count_bookings() == 2


def test_admin_booking_is_confirmed(tmp_path):
    service, _ = _four_slot_service(tmp_path, "admin.db")
    booking = service.create_admin_booking(_request(time_slot="9:00", duration="1 hour"))
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.desk_number == 1


def test_availability_reflects_existing_bookings(tmp_path):
    service, _ = _four_slot_service(tmp_path, "availability.db")

    empty = service.check_availability(workspace_type=WORKSPACE, date=TARGET_DATE, duration="2 hours")
    assert empty["available_slots"] == ["9:00", "10:00", "11:00"]
    assert empty["unavailable_slots"] == ["12:00"]

    service.create_customer_booking(_request())
    service.create_customer_booking(_request())

    booked = service.check_availability(workspace_type=WORKSPACE, date=TARGET_DATE, duration="2 hours")
    assert booked["available_slots"] == []
    assert booked["unavailable_slots"] == ["9:00", "10:00", "11:00", "12:00"]


def test_bookings_are_scoped_to_workspace_and_date(tmp_path):
    service, _ = _four_slot_service(tmp_path, "scope.db", total_desks=1)
    service.create_customer_booking(_request())

    other_workspace = service.create_customer_booking(_request(workspace_type="private-office"))
    other_date = service.create_customer_booking(_request(date="2026-03-03"))

    assert other_workspace.desk_number == 1
    assert other_date.desk_number == 1


def test_legacy_booking_without_desk_blocks_capacity(tmp_path):
    service, repository = _four_slot_service(tmp_path, "legacy.db", total_desks=3)
    repository.insert_booking(
        NewBooking(
            workspace_type=WORKSPACE,
            date=TARGET_DATE,
            time_slot="10:00",
            duration="1 hour",
            customer_name="Imported",
            customer_email="",
            customer_phone="",
            customer_whatsapp="",
            total_price=0.0,
            status=BookingStatus.CONFIRMED,
        )
    )

    with pytest.raises(NoDeskAvailableError):
        service.create_customer_booking(_request(time_slot="10:00", duration="1 hour"))

    occupancy = {row.time_slot: row for row in service.get_day_occupancy(workspace_type=WORKSPACE, date=TARGET_DATE)}
    assert occupancy["10:00"].occupied_desks == 3
    assert occupancy["10:00"].level == "full"
    assert occupancy["9:00"].level == "free"


def test_cancelled_booking_releases_desk(tmp_path):
    service, _ = _four_slot_service(tmp_path, "cancel.db", total_desks=1)
    booking = service.create_customer_booking(_request(user_id="user-1"))

    with pytest.raises(NoDeskAvailableError):
        service.create_customer_booking(_request())

    cancelled = service.cancel_booking(booking.booking_id, user_id="user-1")
    assert cancelled.status == BookingStatus.CANCELLED

    replacement = service.create_customer_booking(_request())
    assert replacement.desk_number == 1


def test_cancel_rules(tmp_path):
    service, _ = _four_slot_service(tmp_path, "cancel_rules.db")
    owned = service.create_customer_booking(_request(user_id="user-1"))
    admin_booking = service.create_admin_booking(_request(time_slot="9:00", duration="1 hour"))

    with pytest.raises(BookingStateError):
        service.cancel_booking(owned.booking_id, user_id="someone-else")
    with pytest.raises(BookingStateError):
        service.cancel_booking(owned.booking_id, user_id=None)
    with pytest.raises(BookingStateError):
        service.cancel_booking(admin_booking.booking_id, user_id="user-1")
    with pytest.raises(BookingNotFoundError):
        service.cancel_booking(9999, user_id="user-1")

    service.cancel_booking(owned.booking_id, user_id="user-1")
    with pytest.raises(BookingStateError):
        service.cancel_booking(owned.booking_id, user_id="user-1")


def test_rejected_booking_releases_desk(tmp_path):
    service, _ = _four_slot_service(tmp_path, "reject.db", total_desks=1)
    booking = service.create_customer_booking(_request())

    rejected = service.reject_booking(booking.booking_id)
    assert rejected.status == BookingStatus.REJECTED
    assert service.create_customer_booking(_request()).desk_number == 1

    with pytest.raises(BookingStateError):
        service.reject_booking(booking.booking_id)


def test_day_occupancy_levels(tmp_path):
    service, _ = _four_slot_service(tmp_path, "occupancy.db", total_desks=5)
    for _ in range(4):
        service.create_customer_booking(_request(time_slot="9:00", duration="1 hour"))
    service.create_customer_booking(_request(time_slot="10:00", duration="1 hour"))
    for _ in range(5):
        service.create_customer_booking(_request(time_slot="11:00", duration="1 hour"))

    levels = {
        row.time_slot: row.level
        for row in service.get_day_occupancy(workspace_type=WORKSPACE, date=TARGET_DATE)
    }
    assert levels == {
        "9:00": "almost_full",
        "10:00": "busy",
        "11:00": "full",
        "12:00": "free",
    }


@pytest.mark.parametrize(
    "overrides",
    [
        {"date": "02-03-2026"},
        {"workspace_type": " "},
        {"customer_name": ""},
        {"duration": ""},
        {"total_price": -1.0},
    ],
)
def test_invalid_requests_rejected(tmp_path, overrides):
    service, repository = _four_slot_service(tmp_path, "validation.db")
    with pytest.raises(BookingValidationError):
        service.create_customer_booking(_request(**overrides))
    assert repository.count_bookings() == 0


def test_unknown_slot_has_no_capacity(tmp_path):
    service, _ = _four_slot_service(tmp_path, "unknown_slot.db")
    with pytest.raises(NoDeskAvailableError):
        service.create_customer_booking(_request(time_slot="7:00 PM", duration="1 hour"))


def test_settings_update_validation(tmp_path):
    settings = _build_test_settings(tmp_path, "settings.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_default_settings()
    settings_service = SiteSettingsService(repository=repository, settings=settings)

    with pytest.raises(SettingsValidationError):
        settings_service.update_booking_settings(total_desks=0)
    with pytest.raises(SettingsValidationError):
        settings_service.update_booking_settings(hourly_slots=" , ")
    with pytest.raises(SettingsValidationError):
        settings_service.update_booking_settings(hourly_slots="9:00,9:00")
    with pytest.raises(SettingsValidationError):
        settings_service.update_booking_settings()

    config = settings_service.update_booking_settings(booking_durations="1-hour, 1-day")
    assert config.booking_durations == ("1-hour", "1-day")
    assert config.total_desks == 6


def test_concurrent_reservations_never_share_a_desk(tmp_path):
    service, repository = _four_slot_service(tmp_path, "concurrency.db", total_desks=1)
    barrier = threading.Barrier(4)
    outcomes: list[str] = []
    lock = threading.Lock()

    def submit() -> None:
        barrier.wait()
        try:
            booking = service.create_customer_booking(_request())
            result = f"desk-{booking.desk_number}"
        except NoDeskAvailableError:
            result = "rejected"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=submit) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["desk-1", "rejected", "rejected", "rejected"]
    assert repository.count_bookings(status=BookingStatus.PENDING) == 1


def test_unconfigured_duration_rejected(tmp_path):
    service, repository = _four_slot_service(tmp_path, "durations.db")

    with pytest.raises(BookingValidationError):
        service.create_customer_booking(_request(duration="3-hours"))
    with pytest.raises(BookingValidationError):
        service.check_availability(workspace_type=WORKSPACE, date=TARGET_DATE, duration="3-hours")
    assert repository.count_bookings() == 0


def test_list_bookings_filters(tmp_path):
    service, _ = _four_slot_service(tmp_path, "listing.db", total_desks=3)
    mine = service.create_customer_booking(_request(user_id="user-1"))
    other = service.create_customer_booking(_request(user_id="user-2"))
    confirmed = service.create_admin_booking(_request(date="2026-03-03", duration="1 hour"))

    assert [b.booking_id for b in service.list_bookings(user_id="user-1")] == [mine.booking_id]
    assert [b.booking_id for b in service.list_bookings()] == [
        confirmed.booking_id,
        other.booking_id,
        mine.booking_id,
    ]
    assert [b.booking_id for b in service.list_bookings(status=BookingStatus.CONFIRMED)] == [confirmed.booking_id]
    assert [b.booking_id for b in service.list_bookings(date=TARGET_DATE, status=BookingStatus.PENDING)] == [
        other.booking_id,
        mine.booking_id,
    ]

    with pytest.raises(BookingValidationError):
        service.list_bookings(status="archived")


def test_user_booking_visible_only_to_owner(tmp_path):
    service, _ = _four_slot_service(tmp_path, "owner_lookup.db")
    booking = service.create_customer_booking(_request(user_id="user-1"))
    anonymous = service.create_customer_booking(_request())

    assert service.get_user_booking(booking.booking_id, "user-1").booking_id == booking.booking_id
    with pytest.raises(BookingNotFoundError):
        service.get_user_booking(booking.booking_id, "user-2")
    with pytest.raises(BookingNotFoundError):
        service.get_user_booking(anonymous.booking_id, "user-1")


def test_repository_reads_without_schema_raise_repository_error(tmp_path):
    repository = DataRepository(_build_test_settings(tmp_path, "no_schema.db"))
    with pytest.raises(RepositoryError):
        repository.count_bookings()
    with pytest.raises(RepositoryError):
        repository.list_bookings(status=BookingStatus.PENDING)
