"""HTTP controller layer for customer-facing availability and bookings."""

from __future__ import annotations

import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from deskspace.controllers.dependencies import get_booking_service
from deskspace.domain.models import Booking
from deskspace.repository.data_repository import RepositoryError
from deskspace.services.booking_service import (
    BookingNotFoundError,
    BookingRequest,
    BookingService,
    BookingStateError,
    BookingValidationError,
    NoDeskAvailableError,
)
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["bookings"])


class BookingOptionsResponse(BaseModel):
    hourly_slots: list[str]
    booking_durations: list[str]
    total_desks: int = Field(gt=0)


class AvailabilityResponse(BaseModel):
    workspace_type: str
    date: datetime.date
    duration: str
    available_slots: list[str]
    unavailable_slots: list[str]


class CreateBookingRequest(BaseModel):
    """Input DTO validated before entering service layer."""

    workspace_type: str = Field(min_length=1)
    date: datetime.date
    time_slot: str = Field(min_length=1)
    duration: str = Field(min_length=1)
    customer_name: str = Field(min_length=1)
    customer_email: str = ""
    customer_phone: str = ""
    customer_whatsapp: str = ""
    total_price: float = Field(default=0.0, ge=0.0)
    user_id: Optional[str] = None

    def to_booking_request(self) -> BookingRequest:
        return BookingRequest(
            workspace_type=self.workspace_type,
            date=self.date.isoformat(),
            time_slot=self.time_slot,
            duration=self.duration,
            customer_name=self.customer_name,
            customer_email=self.customer_email,
            customer_phone=self.customer_phone,
            customer_whatsapp=self.customer_whatsapp,
            total_price=self.total_price,
            user_id=self.user_id,
        )


class CancelBookingRequest(BaseModel):
    user_id: str = Field(min_length=1)


class BookingResponse(BaseModel):
    id: int = Field(gt=0)
    workspace_type: str
    date: datetime.date
    time_slot: str
    duration: str
    desk_number: Optional[int] = None
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_whatsapp: str
    total_price: float = Field(ge=0.0)
    status: str
    user_id: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.booking_id,
            workspace_type=booking.workspace_type,
            date=booking.date,
            time_slot=booking.time_slot,
            duration=booking.duration,
            desk_number=booking.desk_number,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone,
            customer_whatsapp=booking.customer_whatsapp,
            total_price=booking.total_price,
            status=booking.status,
            user_id=booking.user_id,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


def booking_error_to_http(exc: Exception) -> HTTPException:
    """Map booking workflow failures to HTTP errors shared by all routers."""
    if isinstance(exc, BookingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, BookingNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (NoDeskAvailableError, BookingStateError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, RepositoryError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking storage is unavailable, please retry",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process booking request",
    )


_HANDLED_ERRORS = (
    BookingValidationError,
    BookingNotFoundError,
    NoDeskAvailableError,
    BookingStateError,
    RepositoryError,
)


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/booking_options",
    response_model=BookingOptionsResponse,
    status_code=status.HTTP_200_OK,
)
async def booking_options(
    service: BookingService = Depends(get_booking_service),
) -> BookingOptionsResponse:
    try:
        return BookingOptionsResponse(**service.get_booking_options())
    except RepositoryError as exc:
        raise booking_error_to_http(exc) from exc


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
async def availability(
    workspace_type: str = Query(min_length=1),
    date: datetime.date = Query(),
    duration: str = Query(min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> AvailabilityResponse:
    """Start slots that can or cannot take a booking of the given duration."""
    try:
        result = service.check_availability(
            workspace_type=workspace_type,
            date=date.isoformat(),
            duration=duration,
        )
        return AvailabilityResponse(**result)
    except _HANDLED_ERRORS as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected availability failure")
        raise booking_error_to_http(exc) from exc


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: CreateBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = service.create_customer_booking(payload.to_booking_request())
        return BookingResponse.from_booking(booking)
    except _HANDLED_ERRORS as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking creation failure")
        raise booking_error_to_http(exc) from exc


@router.get(
    "/bookings",
    response_model=list[BookingResponse],
    status_code=status.HTTP_200_OK,
)
async def list_user_bookings(
    user_id: str = Query(min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    """Bookings owned by ``user_id``, newest first."""
    try:
        return [BookingResponse.from_booking(booking) for booking in service.list_bookings(user_id=user_id)]
    except _HANDLED_ERRORS as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking listing failure")
        raise booking_error_to_http(exc) from exc


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def get_user_booking(
    booking_id: int,
    user_id: str = Query(min_length=1),
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_booking(service.get_user_booking(booking_id, user_id))
    except _HANDLED_ERRORS as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking lookup failure")
        raise booking_error_to_http(exc) from exc


@router.post(
    "/bookings/{booking_id}/cancel",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def cancel_booking(
    booking_id: int,
    payload: CancelBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Owner-only cancel of a pending booking."""
    try:
        booking = service.cancel_booking(booking_id, user_id=payload.user_id)
        return BookingResponse.from_booking(booking)
    except _HANDLED_ERRORS as exc:
        raise booking_error_to_http(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking cancellation failure")
        raise booking_error_to_http(exc) from exc
