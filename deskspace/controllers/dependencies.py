"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from deskspace.services.auth_service import (
    ROLE_ADMIN,
    ROLE_STAFF,
    AdminTokenNotConfiguredError,
    AuthService,
    InsufficientRoleError,
    InvalidAdminTokenError,
)
from deskspace.services.booking_service import BookingService
from deskspace.services.settings_service import SiteSettingsService
from deskspace.utils.config import get_settings


bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_booking_service(request: Request) -> BookingService:
    service = getattr(request.app.state, "booking_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking service is not initialized",
        )
    return service


def get_settings_service(request: Request) -> SiteSettingsService:
    service = getattr(request.app.state, "settings_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Settings service is not initialized",
        )
    return service


def _authorize(
    auth_service: AuthService,
    credentials: HTTPAuthorizationCredentials | None,
    required_role: str,
) -> None:
    token = credentials.credentials if credentials is not None else None
    try:
        auth_service.authorize(token, required_role=required_role)
    except InsufficientRoleError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(exc),
        ) from exc
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


async def require_staff(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    _authorize(auth_service, credentials, ROLE_STAFF)


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    _authorize(auth_service, credentials, ROLE_ADMIN)
