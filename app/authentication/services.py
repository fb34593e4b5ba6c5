"""
Authentication services.

This module provides the lookups other apps use to reason about users:
- UserDirectory: existence and active-user lookups by id
- CredentialVerifier: turns a bearer access token into a verified principal

The chat app validates conversation participants with UserDirectory and
authenticates WebSocket handshakes with CredentialVerifier, so neither
needs to know how users or tokens are stored.

Related files:
    - models.py: User
    - serializers.py: RoleTokenObtainPairSerializer adds the role claim

Security:
    - Only access tokens are accepted (refresh tokens are rejected)
    - Inactive users are rejected even when their token is still valid
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from authentication.models import User
from core.exceptions import PermissionDeniedError

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


class InvalidCredentialsError(PermissionDeniedError):
    """Raised when a bearer credential cannot be verified."""

    default_error_code: str = "INVALID_CREDENTIALS"
    status_code: int = 401


@dataclass(frozen=True)
class VerifiedPrincipal:
    """Identity extracted from a verified access token."""

    user_id: int
    role: str
    user: User


class UserDirectory:
    """
    Read-only user lookups.

    Usage:
        if not UserDirectory.exists(other_user_id):
            return ServiceResult.failure("User not found", "USER_NOT_FOUND")
    """

    @staticmethod
    def exists(user_id: Any) -> bool:
        """Return True when an active user with this id exists."""
        return UserDirectory.get_active(user_id) is not None

    @staticmethod
    def get_active(user_id: Any) -> User | None:
        """
        Return the active user with this id, or None.

        Malformed ids are treated as unknown rather than raising.
        """
        try:
            user_pk = int(user_id)
        except (TypeError, ValueError):
            return None
        return User.objects.filter(pk=user_pk, is_active=True).first()


class CredentialVerifier:
    """
    Verify bearer access tokens issued by simplejwt.

    Usage:
        try:
            principal = CredentialVerifier.verify(raw_token)
        except InvalidCredentialsError:
            # reject the connection
            ...
    """

    @staticmethod
    def verify(raw_token: str | None) -> VerifiedPrincipal:
        """
        Validate the token and load its user.

        Args:
            raw_token: Encoded JWT access token

        Returns:
            VerifiedPrincipal with user id, role and user instance

        Raises:
            InvalidCredentialsError: Missing, malformed, expired or
                non-access token, or unknown/inactive user
        """
        if not raw_token:
            raise InvalidCredentialsError("Authentication credentials were not provided")

        try:
            token = AccessToken(raw_token)
        except TokenError as e:
            logger.debug(f"Rejected access token: {e}")
            raise InvalidCredentialsError("Token is invalid or expired") from e

        user_id = token.get(api_settings.USER_ID_CLAIM)
        user = UserDirectory.get_active(user_id)
        if user is None:
            raise InvalidCredentialsError(
                "User not found or inactive",
                details={"user_id": user_id},
            )

        role = token.get("role") or user.role
        return VerifiedPrincipal(user_id=user.pk, role=role, user=user)
