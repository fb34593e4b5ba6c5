"""
Tests for authentication services.

- UserDirectory: id lookups used to validate chat participants
- CredentialVerifier: access-token verification used by the WebSocket handshake
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from authentication.services import (
    CredentialVerifier,
    InvalidCredentialsError,
    UserDirectory,
)
from authentication.tests.factories import EmployerFactory, UserFactory


# =============================================================================
# TestUserDirectory
# =============================================================================


class TestUserDirectory:
    """Tests for UserDirectory.exists() and get_active()."""

    def test_exists_for_active_user(self, db):
        user = UserFactory()

        assert UserDirectory.exists(user.id) is True
        assert UserDirectory.exists(str(user.id)) is True

    def test_missing_user_does_not_exist(self, db):
        assert UserDirectory.exists(999999) is False

    def test_inactive_user_does_not_exist(self, db):
        """
        Deactivated accounts are treated as unknown.

        Why it matters: Nobody should be able to open a new chat with a
        deactivated account.
        """
        user = UserFactory(is_active=False)

        assert UserDirectory.exists(user.id) is False

    @pytest.mark.parametrize("bad_id", [None, "", "abc", "1.5", object()])
    def test_malformed_ids_are_unknown(self, db, bad_id):
        assert UserDirectory.get_active(bad_id) is None


# =============================================================================
# TestCredentialVerifier
# =============================================================================


class TestCredentialVerifier:
    """Tests for CredentialVerifier.verify()."""

    def test_returns_principal_with_role_claim(self, db, access_token_for):
        employer = EmployerFactory()

        principal = CredentialVerifier.verify(access_token_for(employer))

        assert principal.user_id == employer.id
        assert principal.role == "employer"
        assert principal.user == employer

    def test_falls_back_to_stored_role_without_claim(self, db):
        """
        Tokens minted without the role claim still verify.

        Why it matters: Tokens issued by the stock simplejwt views carry
        no role; the handshake should not break for them.
        """
        user = UserFactory()
        token = AccessToken.for_user(user)

        principal = CredentialVerifier.verify(str(token))

        assert principal.role == user.role

    @pytest.mark.parametrize("raw", [None, "", "not-a-jwt"])
    def test_rejects_missing_or_malformed_token(self, db, raw):
        with pytest.raises(InvalidCredentialsError):
            CredentialVerifier.verify(raw)

    def test_rejects_refresh_token(self, db):
        """Only access tokens are valid handshake credentials."""
        user = UserFactory()

        with pytest.raises(InvalidCredentialsError):
            CredentialVerifier.verify(str(RefreshToken.for_user(user)))

    def test_rejects_expired_token(self, db, access_token_for):
        user = UserFactory()
        token = access_token_for(user)

        with freeze_time(timezone.now() + timedelta(days=1)):
            with pytest.raises(InvalidCredentialsError):
                CredentialVerifier.verify(token)

    def test_rejects_token_of_deactivated_user(self, db, access_token_for):
        user = UserFactory()
        token = access_token_for(user)
        user.is_active = False
        user.save(update_fields=["is_active"])

        with pytest.raises(InvalidCredentialsError) as exc_info:
            CredentialVerifier.verify(token)

        assert exc_info.value.error_code == "INVALID_CREDENTIALS"
