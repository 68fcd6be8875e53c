"""Controller layer for staff and admin booking operations."""

from __future__ import annotations

import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from deskspace.controllers.booking_controller import (
    BookingOptionsResponse,
    BookingResponse,
    CreateBookingRequest,
    booking_error_to_http,
)
from deskspace.controllers.dependencies import (
    get_auth_service,
    get_booking_service,
    get_settings_service,
    require_admin,
    require_staff,
)
from deskspace.repository.data_repository import RepositoryError
from deskspace.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from deskspace.services.booking_service import (
    BookingNotFoundError,
    BookingService,
    BookingStateError,
    BookingValidationError,
    NoDeskAvailableError,
)
from deskspace.services.settings_service import SettingsValidationError, SiteSettingsService
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["admin"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str


class SlotOccupancyRow(BaseModel):
    time_slot: str
    occupied_desks: int = Field(ge=0)
    total_desks: int = Field(gt=0)
    level: str


class OccupancyResponse(BaseModel):
    workspace_type: str
    date: datetime.date
    slots: list[SlotOccupancyRow]


class UpdateSettingsRequest(BaseModel):
    total_desks: Optional[int] = None
    hourly_slots: Optional[str] = None
    booking_durations: Optional[str] = None


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        bearer, role = auth_service.login(payload.admin_token)
        return LoginResponse(access_token=bearer, role=role)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


@router.post(
    "/admin/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_staff)],
)
async def create_admin_booking(
    payload: CreateBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Create a confirmed booking on behalf of a client."""
    try:
        booking = service.create_admin_booking(payload.to_booking_request())
        return BookingResponse.from_booking(booking)
    except (
        BookingValidationError,
        NoDeskAvailableError,
        BookingStateError,
        RepositoryError,
    ) as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected admin booking failure")
        raise booking_error_to_http(exc) from exc


@router.get(
    "/admin/bookings",
    response_model=list[BookingResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_staff)],
)
async def list_bookings(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    date: Optional[datetime.date] = Query(default=None),
    workspace_type: Optional[str] = Query(default=None, min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    """All bookings, newest first, optionally filtered by status, date and workspace type."""
    try:
        bookings = service.list_bookings(
            workspace_type=workspace_type,
            date=date.isoformat() if date is not None else None,
            status=status_filter,
        )
        return [BookingResponse.from_booking(booking) for booking in bookings]
    except (BookingValidationError, RepositoryError) as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking listing failure")
        raise booking_error_to_http(exc) from exc


@router.get(
    "/admin/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_staff)],
)
async def get_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_booking(service.get_booking(booking_id))
    except (BookingNotFoundError, RepositoryError) as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking lookup failure")
        raise booking_error_to_http(exc) from exc


@router.post(
    "/admin/bookings/{booking_id}/reject",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_staff)],
)
async def reject_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_booking(service.reject_booking(booking_id))
    except (BookingNotFoundError, BookingStateError, RepositoryError) as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking rejection failure")
        raise booking_error_to_http(exc) from exc


@router.get(
    "/admin/occupancy",
    response_model=OccupancyResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_staff)],
)
async def occupancy(
    workspace_type: str = Query(min_length=1),
    date: datetime.date = Query(),
    service: BookingService = Depends(get_booking_service),
) -> OccupancyResponse:
    try:
        rows = service.get_day_occupancy(workspace_type=workspace_type, date=date.isoformat())
        return OccupancyResponse(
            workspace_type=workspace_type,
            date=date,
            slots=[
                SlotOccupancyRow(
                    time_slot=row.time_slot,
                    occupied_desks=row.occupied_desks,
                    total_desks=row.total_desks,
                    level=row.level,
                )
                for row in rows
            ],
        )
    except (BookingValidationError, RepositoryError) as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected occupancy failure")
        raise booking_error_to_http(exc) from exc


@router.put(
    "/admin/settings",
    response_model=BookingOptionsResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def update_settings(
    payload: UpdateSettingsRequest,
    settings_service: SiteSettingsService = Depends(get_settings_service),
) -> BookingOptionsResponse:
    try:
        config = settings_service.update_booking_settings(
            total_desks=payload.total_desks,
            hourly_slots=payload.hourly_slots,
            booking_durations=payload.booking_durations,
        )
        return BookingOptionsResponse(
            hourly_slots=list(config.hourly_slots),
            booking_durations=list(config.booking_durations),
            total_desks=config.total_desks,
        )
    except SettingsValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RepositoryError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected settings update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update settings",
        ) from exc
