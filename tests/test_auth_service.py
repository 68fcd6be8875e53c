from __future__ import annotations

from dataclasses import replace

import pytest

from deskspace.services.auth_service import (
    ROLE_ADMIN,
    ROLE_STAFF,
    AdminTokenNotConfiguredError,
    AuthService,
    InsufficientRoleError,
    InvalidAdminTokenError,
)
from deskspace.utils.config import get_settings


def _auth_service(admin_token=None, staff_token=None) -> AuthService:
    settings = replace(get_settings(), admin_token=admin_token, staff_token=staff_token)
    return AuthService(settings=settings)


def test_login_returns_role_session():
    service = _auth_service(admin_token="admin-secret", staff_token="staff-secret")

    admin_bearer, admin_role = service.login("admin-secret")
    staff_bearer, staff_role = service.login("staff-secret")

    assert (admin_role, staff_role) == (ROLE_ADMIN, ROLE_STAFF)
    service.authorize(admin_bearer, required_role=ROLE_ADMIN)
    service.authorize(staff_bearer, required_role=ROLE_STAFF)
    with pytest.raises(InsufficientRoleError):
        service.authorize(staff_bearer, required_role=ROLE_ADMIN)


@pytest.mark.parametrize("token", ["sécret", "admin-secret ", "", "管理"])
def test_wrong_login_tokens_rejected(token):
    service = _auth_service(admin_token="admin-secret")
    with pytest.raises(InvalidAdminTokenError):
        service.login(token)


def test_non_ascii_bearer_rejected():
    service = _auth_service(admin_token="admin-secret")
    service.login("admin-secret")
    with pytest.raises(InvalidAdminTokenError):
        service.authorize("jeton-érroné")


def test_relogin_invalidates_previous_bearer():
    service = _auth_service(admin_token="admin-secret")
    old_bearer, _ = service.login("admin-secret")
    new_bearer, _ = service.login("admin-secret")

    service.authorize(new_bearer)
    with pytest.raises(InvalidAdminTokenError):
        service.authorize(old_bearer)


def test_login_without_configured_tokens():
    service = _auth_service()
    assert not service.auth_enabled
    service.authorize(None, required_role=ROLE_ADMIN)
    with pytest.raises(AdminTokenNotConfiguredError):
        service.login("anything")
