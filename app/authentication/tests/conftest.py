"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(user, authenticated_client):
        response = authenticated_client.get('/api/v1/auth/me/')
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient

from authentication.models import User
from authentication.serializers import RoleTokenObtainPairSerializer
from authentication.tests.factories import EmployerFactory, UserFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a basic active candidate."""
    return UserFactory()


@pytest.fixture
def employer(db):
    """Create an employer account."""
    return EmployerFactory()


@pytest.fixture
def deactivated_user(db):
    """Create a deactivated user (is_active=False)."""
    return UserFactory(is_active=False)


@pytest.fixture
def superuser(db):
    """Create a superuser with admin privileges."""
    return User.objects.create_superuser(
        email="admin@example.com", password="AdminPass123!"
    )


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client authenticated as the default user via force_authenticate."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def access_token_for():
    """Return a helper that mints an access token carrying the role claim."""

    def _make(u):
        return str(RoleTokenObtainPairSerializer.get_token(u).access_token)

    return _make
