"""
Test configuration and fixtures for chat tests.

This module provides:
- Participant fixtures (a candidate and an employer) and an outsider
- Conversation and job fixtures
- Realtime test doubles (recording sink, fake clock limiter)
- API client helpers for authenticated requests

Usage:
    def test_example(conversation, candidate_client):
        response = candidate_client.get(f"/api/v1/chat/conversations/{conversation.id}/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import EmployerFactory, UserFactory
from chat.realtime import InMemoryRateLimiter
from chat.tests.factories import ConversationFactory
from chat.tests.fakes import FakeClock, RecordingNotificationSink
from jobs.models import JobStatus
from jobs.tests.factories import CompanyFactory, JobFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def candidate(db):
    return UserFactory(full_name="Casey Candidate")


@pytest.fixture
def employer(db):
    return EmployerFactory(full_name="Erin Employer")


@pytest.fixture
def outsider(db):
    """A user who is not part of the conversation fixtures."""
    return UserFactory()


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def job(employer):
    company = CompanyFactory(owner=employer)
    return JobFactory(company=company, status=JobStatus.APPROVED)


@pytest.fixture
def conversation(candidate, employer):
    """General (no job) conversation between candidate and employer."""
    return ConversationFactory.between(candidate, employer)


# =============================================================================
# Realtime Doubles
# =============================================================================


@pytest.fixture
def recording_sink():
    return RecordingNotificationSink()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    """10 messages per 60 seconds on a manually advanced clock."""
    return InMemoryRateLimiter(max_hits=10, window_seconds=60, clock=clock)


# =============================================================================
# Client Fixtures
# =============================================================================


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def candidate_client(candidate):
    return _client_for(candidate)


@pytest.fixture
def employer_client(employer):
    return _client_for(employer)


@pytest.fixture
def outsider_client(outsider):
    return _client_for(outsider)
