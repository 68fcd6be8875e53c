"""Token authentication for admin and staff endpoints."""

from __future__ import annotations

import secrets
from typing import Optional

from deskspace.utils.config import Settings, get_settings


ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"

_ROLE_RANK = {ROLE_STAFF: 1, ROLE_ADMIN: 2}


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when neither ADMIN_TOKEN nor STAFF_TOKEN is set."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when a login token or bearer token is invalid."""


class InsufficientRoleError(AuthenticationError):
    """Raised when a valid session lacks the role an endpoint needs."""


def _tokens_match(provided: str, expected: str) -> bool:
    # compare_digest rejects non-ASCII str arguments; bytes accept any input.
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class AuthService:
    """Exchanges configured role tokens for bearer sessions."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        # One live session per role; a new login replaces the previous bearer.
        self._sessions: dict[str, str] = {}

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token or self._settings.staff_token)

    def _configured_tokens(self) -> list[tuple[str, str]]:
        tokens = [
            (role, token)
            for role, token in (
                (ROLE_ADMIN, self._settings.admin_token),
                (ROLE_STAFF, self._settings.staff_token),
            )
            if token
        ]
        if not tokens:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        return tokens

    def login(self, provided_token: str) -> tuple[str, str]:
        """Return ``(bearer_token, role)`` for a valid admin or staff token."""
        for role, expected in self._configured_tokens():
            if _tokens_match(provided_token, expected):
                bearer = secrets.token_urlsafe(32)
                self._sessions[role] = bearer
                return bearer, role
        raise InvalidAdminTokenError("Invalid admin token")

    def authorize(self, bearer_token: Optional[str], required_role: str = ROLE_STAFF) -> None:
        if not self.auth_enabled:
            return
        if not bearer_token:
            raise InvalidAdminTokenError("Authorization header with Bearer token is required")
        role = None
        for session_role, session_token in self._sessions.items():
            if _tokens_match(bearer_token, session_token):
                role = session_role
                break
        if role is None:
            raise InvalidAdminTokenError("Invalid bearer token")
        if _ROLE_RANK[role] < _ROLE_RANK[required_role]:
            raise InsufficientRoleError(f"{required_role} role required")
