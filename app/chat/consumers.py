"""
WebSocket consumers for the chat application.

This module implements the realtime message channel: one authenticated,
multiplexed WebSocket connection per user session.

Consumers:
    RealtimeChatConsumer: Handles join/leave, send, mark-read and typing

Authentication:
    JWTAuthMiddleware attaches the user to self.scope["user"].
    Unauthenticated connections are closed with code 4001.

Channel Groups:
    user_{user_id}: Every connection of a user (out-of-band notifications)
    conversation_{conversation_id}: Connections that joined the conversation

Message Types (from client):
    - join_conversation {conversation_id}
    - leave_conversation {conversation_id}
    - send_message {conversation_id, content}
    - mark_read {conversation_id}
    - typing {conversation_id, is_typing}

Message Types (to client):
    - joined_conversation / left_conversation: Acknowledgements
    - new_message: Message broadcast to the conversation room
    - message_notification: New message pushed to the other participant's user room
    - messages_read: Read receipt broadcast to the conversation room
    - user_typing: Typing indicator (never echoed to the typing connection)
    - new_conversation: Someone started a conversation with this user
    - error {code, message, event}: Sent only to the requesting connection

Ordering:
    Channels dispatches one inbound frame at a time per connection, so a
    connection's messages are persisted and broadcast in the order sent.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat.constants import ClientEvent, ErrorCode, ServerEvent, conversation_room, user_room
from chat.realtime import get_notification_sink, get_rate_limiter, get_room_registry
from chat.serializers import MessageSerializer
from chat.services import (
    ConversationQueryService,
    MessageService,
    PresenceService,
)
from core.services import ServiceResult

if TYPE_CHECKING:
    from typing import Any

    from chat.protocols import NotificationSink, RateLimiter, RoomRegistry

logger = logging.getLogger(__name__)


class RealtimeChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat functionality.

    Capabilities can be injected per route:
        RealtimeChatConsumer.as_asgi(notification_sink=RecordingSink())

    Attributes:
        user: Authenticated user (None until connected)
        rate_limiter: Per-sender quota for send_message
        registry: Connection and room membership bookkeeping
        sink: Outbound event delivery
    """

    handlers = {
        ClientEvent.JOIN_CONVERSATION: "handle_join",
        ClientEvent.LEAVE_CONVERSATION: "handle_leave",
        ClientEvent.SEND_MESSAGE: "handle_send_message",
        ClientEvent.MARK_READ: "handle_mark_read",
        ClientEvent.TYPING: "handle_typing",
    }

    def __init__(
        self,
        *args,
        rate_limiter: RateLimiter | None = None,
        room_registry: RoomRegistry | None = None,
        notification_sink: NotificationSink | None = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self.registry = room_registry or get_room_registry()
        self.sink = notification_sink or get_notification_sink()
        self.user = None

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def connect(self):
        """
        Handle WebSocket connection.

        On success, joins the user's personal group, registers the
        connection and accepts it.
        """
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            logger.warning("Rejected unauthenticated chat connection")
            await self.close(code=4001)
            return

        self.user = user
        await self.channel_layer.group_add(user_room(user.pk), self.channel_name)
        self.registry.add_connection(user.pk, self.channel_name)

        await self.accept()
        logger.info(f"User {user.pk} connected to chat ({self.channel_name})")

    async def disconnect(self, close_code):
        """
        Handle WebSocket disconnection.

        Leaves every group, unregisters the connection and stamps
        last_seen when it was the user's last open connection.
        """
        if self.user is None:
            return

        for conversation_id in self.registry.rooms_for(self.channel_name):
            await self.channel_layer.group_discard(
                conversation_room(conversation_id),
                self.channel_name,
            )
        await self.channel_layer.group_discard(user_room(self.user.pk), self.channel_name)

        remaining = self.registry.remove_connection(self.user.pk, self.channel_name)
        if remaining == 0:
            await database_sync_to_async(PresenceService.touch_last_seen)(self.user.pk)

        logger.info(f"User {self.user.pk} disconnected from chat (code={close_code})")

    # =========================================================================
    # Inbound events
    # =========================================================================

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        """Decode the frame, reporting malformed JSON instead of dropping the socket."""
        if text_data is None:
            await self.send_error(ErrorCode.INVALID_PAYLOAD, "Only JSON text frames are supported")
            return
        try:
            content = await self.decode_json(text_data)
        except json.JSONDecodeError:
            await self.send_error(ErrorCode.INVALID_PAYLOAD, "Malformed JSON")
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        """
        Dispatch an inbound event to its handler.

        Expected message format:
            {"type": "send_message", "conversation_id": "...", "content": "Hello!"}
        """
        event = content.get("type") if isinstance(content, dict) else None
        if not isinstance(event, str):
            await self.send_error(ErrorCode.UNKNOWN_EVENT, "Event type must be a string")
            return

        handler_name = self.handlers.get(event)
        if handler_name is None:
            await self.send_error(
                ErrorCode.UNKNOWN_EVENT,
                f"Unknown event type: {event}",
                event=event,
            )
            return

        try:
            await getattr(self, handler_name)(content)
        except Exception:
            logger.exception(f"Unhandled error in {event} for user {self.user.pk}")
            await self.send_error(
                ErrorCode.INTERNAL_ERROR,
                "Something went wrong, please try again",
                event=event,
            )

    async def handle_join(self, content: dict[str, Any]) -> None:
        result = await database_sync_to_async(ConversationQueryService.get_for_member)(
            self.user, content.get("conversation_id")
        )
        if not result.success:
            await self.send_failure(result, ClientEvent.JOIN_CONVERSATION)
            return

        conversation_id = str(result.data.pk)
        await self.channel_layer.group_add(conversation_room(conversation_id), self.channel_name)
        self.registry.join(conversation_id, self.channel_name)

        await self.send_json(
            {"type": ServerEvent.JOINED_CONVERSATION, "conversation_id": conversation_id}
        )

    async def handle_leave(self, content: dict[str, Any]) -> None:
        conversation_id = str(content.get("conversation_id"))
        if self.registry.is_member(conversation_id, self.channel_name):
            await self.channel_layer.group_discard(
                conversation_room(conversation_id), self.channel_name
            )
            self.registry.leave(conversation_id, self.channel_name)

        await self.send_json(
            {"type": ServerEvent.LEFT_CONVERSATION, "conversation_id": conversation_id}
        )

    async def handle_send_message(self, content: dict[str, Any]) -> None:
        result = await self._send_message(content.get("conversation_id"), content.get("content"))
        if not result.success:
            await self.send_failure(result, ClientEvent.SEND_MESSAGE)
            return

        message, payload = result.data
        conversation = message.conversation

        await self._publish(
            self.sink.send_to_conversation,
            conversation.pk,
            ServerEvent.NEW_MESSAGE,
            {"message": payload},
        )
        for participant_id in conversation.participant_ids:
            if participant_id == self.user.pk:
                continue
            await self._publish(
                self.sink.send_to_user,
                participant_id,
                ServerEvent.MESSAGE_NOTIFICATION,
                {"conversation_id": str(conversation.pk), "message": payload},
            )

    async def handle_mark_read(self, content: dict[str, Any]) -> None:
        result = await database_sync_to_async(MessageService.mark_read)(
            self.user, content.get("conversation_id")
        )
        if not result.success:
            await self.send_failure(result, ClientEvent.MARK_READ)
            return

        receipt = result.data
        payload = receipt.as_payload()
        await self._publish(
            self.sink.send_to_conversation,
            receipt.conversation.pk,
            ServerEvent.MESSAGES_READ,
            payload,
        )
        # Outside the room the reader would otherwise get no reply
        if not self.registry.is_member(receipt.conversation.pk, self.channel_name):
            await self.send_json({"type": ServerEvent.MESSAGES_READ, **payload})

    async def handle_typing(self, content: dict[str, Any]) -> None:
        is_typing = content.get("is_typing", True)
        if not isinstance(is_typing, bool):
            await self.send_error(
                ErrorCode.INVALID_PAYLOAD,
                "is_typing must be true or false",
                event=ClientEvent.TYPING,
            )
            return

        conversation_id = str(content.get("conversation_id"))
        if not self.registry.is_member(conversation_id, self.channel_name):
            return

        await self._publish(
            self.sink.send_to_conversation,
            conversation_id,
            ServerEvent.USER_TYPING,
            {
                "conversation_id": conversation_id,
                "user_id": self.user.pk,
                "is_typing": is_typing,
            },
            exclude_channel=self.channel_name,
        )

    # =========================================================================
    # Outbound events
    # =========================================================================

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Forwards the event to the WebSocket client unless this connection
        is the one excluded from it.
        """
        if event.get("exclude_channel") == self.channel_name:
            return
        await self.send_json({"type": event["event"], **event["payload"]})

    async def send_error(
        self,
        code: str,
        message: str,
        event: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        payload = {"type": ServerEvent.ERROR, "code": code, "message": message, "event": event}
        if details:
            payload["details"] = details
        await self.send_json(payload)

    async def send_failure(self, result: ServiceResult, event: str) -> None:
        await self.send_error(result.error_code, result.error, event=event, details=result.details)

    async def _publish(self, send, *args, **kwargs) -> None:
        """Deliver through the sink; delivery failures never undo the change."""
        try:
            await send(*args, **kwargs)
        except Exception:
            logger.warning(f"Realtime delivery failed for user {self.user.pk}", exc_info=True)

    @database_sync_to_async
    def _send_message(self, conversation_id, content) -> ServiceResult:
        """Persist through MessageService and serialize for broadcast."""
        result = MessageService.send_message(
            self.user,
            conversation_id,
            content,
            rate_limiter=self.rate_limiter,
        )
        if not result.success:
            return result

        message = result.data
        return ServiceResult.success((message, MessageSerializer(message).data))
