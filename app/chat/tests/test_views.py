"""
Tests for chat REST API endpoints.

Tests the HTTP layer:
- Request/response format
- Status codes (201 vs 200 on get-or-create, 403 vs 404)
- Authentication requirements
- Error bodies {"error", "error_code"}

Service behavior is covered in test_services.py; these tests check the
mapping from service results to HTTP.
"""

import uuid
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from freezegun import freeze_time
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import EmployerFactory
from chat.constants import ErrorCode, ServerEvent
from chat.models import Conversation
from chat.realtime import get_room_registry
from chat.tests.factories import ConversationFactory, MessageFactory

BASE_URL = "/api/v1/chat"


def conversation_url(conversation_id, suffix=""):
    return f"{BASE_URL}/conversations/{conversation_id}/{suffix}"


# =============================================================================
# POST /conversations/
# =============================================================================


class TestResolveConversation:
    url = f"{BASE_URL}/conversations/"

    def test_creates_conversation(self, candidate_client, candidate, employer):
        response = candidate_client.post(self.url, {"user_id": employer.id}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["other_user"]["id"] == employer.id
        assert response.data["job"] is None
        assert response.data["last_message"] is None
        assert response.data["unread_count"] == 0
        assert "email" not in response.data["other_user"]

    def test_existing_conversation_returns_200(self, candidate_client, employer_client, candidate, employer):
        created = candidate_client.post(self.url, {"user_id": employer.id}, format="json")
        existing = employer_client.post(self.url, {"user_id": candidate.id}, format="json")

        assert existing.status_code == status.HTTP_200_OK
        assert existing.data["id"] == created.data["id"]
        assert existing.data["other_user"]["id"] == candidate.id
        assert Conversation.objects.count() == 1

    def test_job_scoped(self, candidate_client, employer, job):
        response = candidate_client.post(
            self.url, {"user_id": employer.id, "job_id": str(job.id)}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["job"]["id"] == str(job.id)
        assert response.data["job"]["title"] == job.title

    def test_self_conversation(self, candidate_client, candidate):
        response = candidate_client.post(self.url, {"user_id": candidate.id}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == ErrorCode.SELF_CONVERSATION

    def test_unknown_user(self, candidate_client):
        response = candidate_client.post(self.url, {"user_id": 987654}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == ErrorCode.USER_NOT_FOUND

    def test_unknown_job(self, candidate_client, employer):
        response = candidate_client.post(
            self.url, {"user_id": employer.id, "job_id": str(uuid.uuid4())}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == ErrorCode.JOB_NOT_FOUND

    @pytest.mark.parametrize(
        "payload",
        [{}, {"user_id": "abc"}, {"user_id": 0}, {"user_id": 5, "job_id": "nope"}],
    )
    def test_malformed_input(self, candidate_client, payload):
        response = candidate_client.post(self.url, payload, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == ErrorCode.INVALID_ID

    def test_requires_authentication(self, db, employer):
        response = APIClient().post(self.url, {"user_id": employer.id}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# GET /conversations/
# =============================================================================


class TestListConversations:
    url = f"{BASE_URL}/conversations/"

    def test_lists_own_conversations_by_activity(self, candidate_client, candidate, outsider):
        older = ConversationFactory.between(candidate, EmployerFactory())
        newer = ConversationFactory.between(candidate, EmployerFactory())
        ConversationFactory.between(outsider, EmployerFactory())
        with freeze_time("2024-01-01 10:00:00"):
            MessageFactory(conversation=older, sender=candidate)
        with freeze_time("2024-01-02 10:00:00"):
            MessageFactory(conversation=newer, sender=candidate, content="latest")

        response = candidate_client.get(self.url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 2
        results = response.data["results"]
        assert [r["id"] for r in results] == [str(newer.id), str(older.id)]
        assert results[0]["last_message"]["content"] == "latest"

    def test_includes_unread_count(self, candidate_client, conversation, employer):
        MessageFactory.create_batch(3, conversation=conversation, sender=employer)

        response = candidate_client.get(self.url)

        assert response.data["results"][0]["unread_count"] == 3

    def test_paginates_with_limit(self, candidate_client, candidate):
        for _ in range(3):
            ConversationFactory.between(candidate, EmployerFactory())

        response = candidate_client.get(self.url, {"limit": 2})

        assert response.data["count"] == 3
        assert len(response.data["results"]) == 2
        assert response.data["next"] is not None


# =============================================================================
# GET /conversations/{id}/
# =============================================================================


class TestRetrieveConversation:
    def test_participant(self, employer_client, conversation, candidate):
        response = employer_client.get(conversation_url(conversation.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == str(conversation.id)
        assert response.data["other_user"]["id"] == candidate.id

    def test_non_participant_forbidden(self, outsider_client, conversation):
        response = outsider_client.get(conversation_url(conversation.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == ErrorCode.NOT_PARTICIPANT

    @pytest.mark.parametrize("conversation_id", [uuid.uuid4(), "not-a-uuid"])
    def test_unknown_conversation(self, candidate_client, conversation_id):
        response = candidate_client.get(conversation_url(conversation_id))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == ErrorCode.CONVERSATION_NOT_FOUND


# =============================================================================
# GET /conversations/{id}/messages/
# =============================================================================


class TestMessageHistory:
    @pytest.fixture
    def history(self, conversation, candidate, employer):
        start = datetime(2024, 1, 1, 9, 0, tzinfo=dt_timezone.utc)
        for i in range(5):
            with freeze_time(start + timedelta(minutes=i)):
                MessageFactory(
                    conversation=conversation,
                    sender=candidate if i % 2 else employer,
                    content=f"m{i}",
                )

    def test_newest_page_oldest_first(self, candidate_client, conversation, history):
        response = candidate_client.get(
            conversation_url(conversation.id, "messages/"), {"limit": 2}
        )

        assert response.status_code == status.HTTP_200_OK
        assert [m["content"] for m in response.data["results"]] == ["m3", "m4"]
        assert response.data["total"] == 5
        assert response.data["page"] == 1
        assert response.data["limit"] == 2
        assert response.data["has_more"] is True

    def test_older_page(self, candidate_client, conversation, history):
        response = candidate_client.get(
            conversation_url(conversation.id, "messages/"), {"limit": 2, "page": 3}
        )

        assert [m["content"] for m in response.data["results"]] == ["m0"]
        assert response.data["has_more"] is False

    def test_message_shape(self, candidate_client, conversation, history):
        response = candidate_client.get(conversation_url(conversation.id, "messages/"))

        message = response.data["results"][0]
        assert set(message) == {
            "id",
            "conversation_id",
            "sender",
            "content",
            "is_read",
            "read_at",
            "created_at",
        }
        assert message["conversation_id"] == str(conversation.id)

    def test_invalid_page(self, candidate_client, conversation):
        response = candidate_client.get(
            conversation_url(conversation.id, "messages/"), {"page": 0}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_non_participant_forbidden(self, outsider_client, conversation):
        response = outsider_client.get(conversation_url(conversation.id, "messages/"))

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# POST/PATCH /conversations/{id}/read/
# =============================================================================


class TestMarkRead:
    @pytest.fixture
    def sink(self, monkeypatch, recording_sink):
        monkeypatch.setattr("chat.views.get_notification_sink", lambda: recording_sink)
        return recording_sink

    def test_marks_and_broadcasts(self, candidate_client, candidate, conversation, employer, sink):
        MessageFactory.create_batch(2, conversation=conversation, sender=employer)

        response = candidate_client.post(conversation_url(conversation.id, "read/"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"updated_count": 2}
        events = sink.of_type(ServerEvent.MESSAGES_READ)
        assert len(events) == 1
        assert events[0].target_id == str(conversation.id)
        assert events[0].payload["reader_id"] == candidate.id

    def test_patch_is_accepted_and_idempotent(self, candidate_client, conversation, employer, sink):
        MessageFactory(conversation=conversation, sender=employer)
        candidate_client.patch(conversation_url(conversation.id, "read/"))

        response = candidate_client.patch(conversation_url(conversation.id, "read/"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"updated_count": 0}

    def test_sink_failure_does_not_fail_request(self, candidate_client, conversation, sink):
        sink.fail = True

        response = candidate_client.post(conversation_url(conversation.id, "read/"))

        assert response.status_code == status.HTTP_200_OK

    def test_non_participant_forbidden(self, outsider_client, conversation, sink):
        response = outsider_client.post(conversation_url(conversation.id, "read/"))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert sink.events == []


# =============================================================================
# Counters and Presence
# =============================================================================


class TestUnreadCount:
    def test_counts_unread_from_others(self, candidate_client, conversation, candidate, employer):
        MessageFactory.create_batch(2, conversation=conversation, sender=employer)
        MessageFactory(conversation=conversation, sender=candidate)

        response = candidate_client.get(f"{BASE_URL}/unread-count/")

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"unread_count": 2}


class TestOnlineStatus:
    def url(self, user_id):
        return f"{BASE_URL}/users/{user_id}/online-status/"

    def test_offline(self, candidate_client, employer):
        response = candidate_client.get(self.url(employer.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_online"] is False
        assert response.data["last_seen"] is None

    def test_online_with_connection(self, candidate_client, employer):
        get_room_registry().add_connection(employer.id, "chan-test")

        response = candidate_client.get(self.url(employer.id))

        assert response.data["is_online"] is True

    def test_unknown_user(self, candidate_client):
        response = candidate_client.get(self.url(123456))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == ErrorCode.USER_NOT_FOUND
