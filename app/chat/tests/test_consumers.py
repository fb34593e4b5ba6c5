"""
Tests for the realtime chat WebSocket consumer.

Connections go through JWTAuthMiddleware with a real access token in the
query string, and events travel over the in-memory channel layer.

Test Organization:
    - TestConnection: Authentication, malformed frames, unknown events
    - TestJoinLeave: Room membership
    - TestSendMessage: Persistence, fan-out, errors, rate limit
    - TestMarkRead: Read receipts
    - TestTyping: Indicator relay
    - TestPresence: last_seen bookkeeping on disconnect
"""

from unittest.mock import patch

import pytest
from channels.db import database_sync_to_async
from channels.layers import channel_layers
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from rest_framework_simplejwt.tokens import AccessToken

from chat.constants import ErrorCode, ServerEvent
from chat.middleware import JWTAuthMiddleware
from chat.models import Message
from chat.routing import websocket_urlpatterns
from chat.services import ConversationResolver, MessageService
from chat.tests.factories import MessageFactory

pytestmark = [pytest.mark.asyncio, pytest.mark.django_db(transaction=True)]

application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))


@pytest.fixture(autouse=True)
def fresh_channel_layer():
    """Each test gets its own in-memory layer (and event loop)."""
    channel_layers.backends.clear()
    yield
    channel_layers.backends.clear()


async def connect(user, token=None):
    """Open an authenticated chat socket for user."""
    token = token or str(AccessToken.for_user(user))
    communicator = WebsocketCommunicator(application, f"/ws/chat/?token={token}")
    connected, _ = await communicator.connect()
    assert connected
    return communicator


async def join(communicator, conversation):
    await communicator.send_json_to(
        {"type": "join_conversation", "conversation_id": str(conversation.id)}
    )
    response = await communicator.receive_json_from()
    assert response == {
        "type": ServerEvent.JOINED_CONVERSATION,
        "conversation_id": str(conversation.id),
    }


count_messages = database_sync_to_async(lambda **kw: Message.objects.filter(**kw).count())


# =============================================================================
# Connection
# =============================================================================


class TestConnection:
    async def test_connects_with_valid_token(self, candidate):
        communicator = await connect(candidate)

        await communicator.disconnect()

    async def test_rejects_missing_token(self, db):
        communicator = WebsocketCommunicator(application, "/ws/chat/")

        connected, code = await communicator.connect()

        assert not connected
        assert code == 4001

    async def test_rejects_invalid_token(self, db):
        communicator = WebsocketCommunicator(application, "/ws/chat/?token=garbage")

        connected, code = await communicator.connect()

        assert not connected
        assert code == 4001

    async def test_accepts_bearer_header(self, candidate):
        token = str(AccessToken.for_user(candidate))
        communicator = WebsocketCommunicator(
            application,
            "/ws/chat/",
            headers=[(b"authorization", f"Bearer {token}".encode())],
        )

        connected, _ = await communicator.connect()

        assert connected
        await communicator.disconnect()

    async def test_unknown_event(self, candidate):
        communicator = await connect(candidate)

        await communicator.send_json_to({"type": "dance"})
        response = await communicator.receive_json_from()

        assert response["type"] == ServerEvent.ERROR
        assert response["code"] == ErrorCode.UNKNOWN_EVENT
        assert response["event"] == "dance"
        await communicator.disconnect()

    async def test_non_string_event_type(self, candidate):
        """
        A frame whose type is not a string gets an error and the socket stays open.

        Why it matters: One bad frame must not drop the connection.
        """
        communicator = await connect(candidate)

        await communicator.send_json_to({"type": ["send_message"], "conversation_id": "x"})
        response = await communicator.receive_json_from()

        assert response["code"] == ErrorCode.UNKNOWN_EVENT
        assert response["event"] is None

        await communicator.send_json_to({"type": "dance"})
        assert (await communicator.receive_json_from())["event"] == "dance"
        await communicator.disconnect()

    async def test_malformed_json(self, candidate):
        communicator = await connect(candidate)

        await communicator.send_to(text_data="{not json")
        response = await communicator.receive_json_from()

        assert response["code"] == ErrorCode.INVALID_PAYLOAD
        await communicator.disconnect()

    async def test_unexpected_failure_reported_to_requester(self, candidate, conversation):
        """
        A crash inside a handler becomes an INTERNAL_ERROR event.

        Why it matters: One bad frame must not drop the user's socket.
        """
        communicator = await connect(candidate)

        with patch.object(MessageService, "send_message", side_effect=RuntimeError("boom")):
            await communicator.send_json_to(
                {
                    "type": "send_message",
                    "conversation_id": str(conversation.id),
                    "content": "Hello",
                }
            )
            response = await communicator.receive_json_from()

        assert response["code"] == ErrorCode.INTERNAL_ERROR
        assert response["event"] == "send_message"

        # Connection stays usable
        await join(communicator, conversation)
        await communicator.disconnect()

    async def test_new_conversation_pushed_to_user_room(self, candidate, employer):
        communicator = await connect(employer)

        result = await database_sync_to_async(ConversationResolver.resolve)(
            candidate, employer.id
        )
        response = await communicator.receive_json_from()

        assert response["type"] == ServerEvent.NEW_CONVERSATION
        assert response["conversation"]["id"] == str(result.data.conversation.pk)
        assert response["conversation"]["other_user"]["id"] == candidate.id
        await communicator.disconnect()


# =============================================================================
# Join / Leave
# =============================================================================


class TestJoinLeave:
    async def test_participant_can_join(self, candidate, conversation):
        communicator = await connect(candidate)

        await join(communicator, conversation)

        await communicator.disconnect()

    async def test_non_participant_cannot_join(self, outsider, conversation):
        communicator = await connect(outsider)

        await communicator.send_json_to(
            {"type": "join_conversation", "conversation_id": str(conversation.id)}
        )
        response = await communicator.receive_json_from()

        assert response["code"] == ErrorCode.NOT_PARTICIPANT
        assert response["event"] == "join_conversation"
        await communicator.disconnect()

    async def test_join_unknown_conversation(self, candidate):
        communicator = await connect(candidate)

        await communicator.send_json_to(
            {"type": "join_conversation", "conversation_id": "not-a-uuid"}
        )
        response = await communicator.receive_json_from()

        assert response["code"] == ErrorCode.CONVERSATION_NOT_FOUND
        await communicator.disconnect()

    async def test_left_room_gets_notification_only(self, candidate, employer, conversation):
        """
        After leaving, room broadcasts stop but user notifications continue.

        Why it matters: Clients show an unread badge for conversations
        that are not open.
        """
        employer_socket = await connect(employer)
        candidate_socket = await connect(candidate)
        await join(employer_socket, conversation)

        await employer_socket.send_json_to(
            {"type": "leave_conversation", "conversation_id": str(conversation.id)}
        )
        assert (await employer_socket.receive_json_from())["type"] == (
            ServerEvent.LEFT_CONVERSATION
        )

        await candidate_socket.send_json_to(
            {"type": "send_message", "conversation_id": str(conversation.id), "content": "Hi"}
        )
        response = await employer_socket.receive_json_from()

        assert response["type"] == ServerEvent.MESSAGE_NOTIFICATION
        assert await employer_socket.receive_nothing()
        await employer_socket.disconnect()
        await candidate_socket.disconnect()


# =============================================================================
# Send Message
# =============================================================================


class TestSendMessage:
    async def test_broadcasts_to_room_and_notifies_recipient(
        self, candidate, employer, conversation
    ):
        candidate_socket = await connect(candidate)
        employer_socket = await connect(employer)
        await join(candidate_socket, conversation)
        await join(employer_socket, conversation)

        await candidate_socket.send_json_to(
            {
                "type": "send_message",
                "conversation_id": str(conversation.id),
                "content": "Hello there",
            }
        )

        own = await candidate_socket.receive_json_from()
        assert own["type"] == ServerEvent.NEW_MESSAGE
        assert own["message"]["content"] == "Hello there"
        assert own["message"]["sender"]["id"] == candidate.id
        assert own["message"]["conversation_id"] == str(conversation.id)

        room_event = await employer_socket.receive_json_from()
        notification = await employer_socket.receive_json_from()
        assert room_event == own
        assert notification["type"] == ServerEvent.MESSAGE_NOTIFICATION
        assert notification["conversation_id"] == str(conversation.id)
        assert notification["message"]["id"] == own["message"]["id"]

        # The sender never gets a notification for their own message
        assert await candidate_socket.receive_nothing()
        assert await count_messages(conversation=conversation) == 1

        await candidate_socket.disconnect()
        await employer_socket.disconnect()

    async def test_messages_arrive_in_send_order(self, candidate, employer, conversation):
        candidate_socket = await connect(candidate)
        employer_socket = await connect(employer)
        await join(employer_socket, conversation)

        for i in range(3):
            await candidate_socket.send_json_to(
                {
                    "type": "send_message",
                    "conversation_id": str(conversation.id),
                    "content": f"part {i}",
                }
            )

        received = []
        for _ in range(6):
            event = await employer_socket.receive_json_from()
            if event["type"] == ServerEvent.NEW_MESSAGE:
                received.append(event["message"]["content"])

        assert received == ["part 0", "part 1", "part 2"]
        await candidate_socket.disconnect()
        await employer_socket.disconnect()

    async def test_error_goes_only_to_requester(self, candidate, employer, outsider, conversation):
        candidate_socket = await connect(candidate)
        employer_socket = await connect(employer)
        outsider_socket = await connect(outsider)
        await join(candidate_socket, conversation)
        await join(employer_socket, conversation)

        await outsider_socket.send_json_to(
            {"type": "send_message", "conversation_id": str(conversation.id), "content": "Hi"}
        )
        response = await outsider_socket.receive_json_from()

        assert response["code"] == ErrorCode.NOT_PARTICIPANT
        assert await candidate_socket.receive_nothing()
        assert await employer_socket.receive_nothing()
        assert await count_messages() == 0

        for socket in (candidate_socket, employer_socket, outsider_socket):
            await socket.disconnect()

    @pytest.mark.parametrize(
        ("content", "code"),
        [
            ("   ", ErrorCode.EMPTY_CONTENT),
            ("see www.example.com", ErrorCode.POLICY_VIOLATION),
            ("x" * 5001, ErrorCode.CONTENT_TOO_LONG),
        ],
    )
    async def test_invalid_content(self, candidate, conversation, content, code):
        communicator = await connect(candidate)

        await communicator.send_json_to(
            {"type": "send_message", "conversation_id": str(conversation.id), "content": content}
        )
        response = await communicator.receive_json_from()

        assert response["code"] == code
        assert response["event"] == "send_message"
        assert await count_messages() == 0
        await communicator.disconnect()

    async def test_rate_limited_after_ten_messages(self, candidate, conversation):
        """
        The eleventh message within a minute is rejected.

        Why it matters: Limits flooding per sender across every
        conversation and connection.
        """
        communicator = await connect(candidate)

        for i in range(11):
            await communicator.send_json_to(
                {
                    "type": "send_message",
                    "conversation_id": str(conversation.id),
                    "content": f"message {i}",
                }
            )
        response = await communicator.receive_json_from()

        assert response["code"] == ErrorCode.RATE_LIMITED
        assert response["details"]["retry_after"] > 0
        assert await count_messages(conversation=conversation) == 10
        await communicator.disconnect()


# =============================================================================
# Mark Read
# =============================================================================


class TestMarkRead:
    async def test_receipt_broadcast_to_room(self, candidate, employer, conversation):
        await database_sync_to_async(MessageFactory.create_batch)(
            2, conversation=conversation, sender=employer
        )
        candidate_socket = await connect(candidate)
        employer_socket = await connect(employer)
        await join(candidate_socket, conversation)
        await join(employer_socket, conversation)

        await candidate_socket.send_json_to(
            {"type": "mark_read", "conversation_id": str(conversation.id)}
        )

        expected = {
            "type": ServerEvent.MESSAGES_READ,
            "conversation_id": str(conversation.id),
            "reader_id": candidate.id,
            "updated_count": 2,
        }
        assert await candidate_socket.receive_json_from() == expected
        assert await employer_socket.receive_json_from() == expected
        assert await candidate_socket.receive_nothing()
        assert await count_messages(is_read=False) == 0

        await candidate_socket.disconnect()
        await employer_socket.disconnect()

    async def test_reader_outside_room_gets_direct_receipt(self, candidate, conversation):
        communicator = await connect(candidate)

        await communicator.send_json_to(
            {"type": "mark_read", "conversation_id": str(conversation.id)}
        )
        response = await communicator.receive_json_from()

        assert response["type"] == ServerEvent.MESSAGES_READ
        assert response["updated_count"] == 0
        assert await communicator.receive_nothing()
        await communicator.disconnect()

    async def test_non_participant(self, outsider, conversation):
        communicator = await connect(outsider)

        await communicator.send_json_to(
            {"type": "mark_read", "conversation_id": str(conversation.id)}
        )
        response = await communicator.receive_json_from()

        assert response["code"] == ErrorCode.NOT_PARTICIPANT
        assert response["event"] == "mark_read"
        await communicator.disconnect()


# =============================================================================
# Typing
# =============================================================================


class TestTyping:
    async def test_relayed_to_others_not_echoed(self, candidate, employer, conversation):
        candidate_socket = await connect(candidate)
        employer_socket = await connect(employer)
        await join(candidate_socket, conversation)
        await join(employer_socket, conversation)

        await candidate_socket.send_json_to(
            {"type": "typing", "conversation_id": str(conversation.id), "is_typing": True}
        )
        response = await employer_socket.receive_json_from()

        assert response == {
            "type": ServerEvent.USER_TYPING,
            "conversation_id": str(conversation.id),
            "user_id": candidate.id,
            "is_typing": True,
        }
        assert await candidate_socket.receive_nothing()

        await candidate_socket.disconnect()
        await employer_socket.disconnect()

    async def test_rejects_non_boolean_flag(self, candidate, employer, conversation):
        candidate_socket = await connect(candidate)
        employer_socket = await connect(employer)
        await join(candidate_socket, conversation)
        await join(employer_socket, conversation)

        await candidate_socket.send_json_to(
            {"type": "typing", "conversation_id": str(conversation.id), "is_typing": "false"}
        )
        response = await candidate_socket.receive_json_from()

        assert response["code"] == ErrorCode.INVALID_PAYLOAD
        assert response["event"] == "typing"
        assert await employer_socket.receive_nothing()

        await candidate_socket.disconnect()
        await employer_socket.disconnect()

    async def test_dropped_when_not_in_room(self, candidate, employer, conversation):
        candidate_socket = await connect(candidate)
        employer_socket = await connect(employer)
        await join(employer_socket, conversation)

        await candidate_socket.send_json_to(
            {"type": "typing", "conversation_id": str(conversation.id), "is_typing": True}
        )

        assert await employer_socket.receive_nothing()
        assert await candidate_socket.receive_nothing()

        await candidate_socket.disconnect()
        await employer_socket.disconnect()


# =============================================================================
# Presence
# =============================================================================


class TestPresence:
    async def test_last_seen_set_when_last_connection_closes(self, employer):
        first = await connect(employer)
        second = await connect(employer)

        await first.disconnect()
        await database_sync_to_async(employer.refresh_from_db)()
        assert employer.last_seen is None

        await second.disconnect()
        await database_sync_to_async(employer.refresh_from_db)()
        assert employer.last_seen is not None
