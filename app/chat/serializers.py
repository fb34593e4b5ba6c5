"""
Serializers for chat API and realtime payloads.

The same serializers shape REST responses and WebSocket event payloads,
so a message looks identical whether it was fetched or pushed.

Serializer Hierarchy:
    MessageSerializer: Full message with sender projection
    MessagePreviewSerializer: Minimal message for conversation lists
    ConversationSerializer: Conversation as seen by one participant
    ConversationCreateSerializer: Input for get-or-create

Design Decisions:
    - Output is JSON-primitive only (UUIDs and datetimes as strings) so
      payloads can cross the channel layer unchanged
    - The "viewer" (the participant the payload is for) comes from
      context["viewer"], falling back to request.user
    - unread_count prefers the queryset annotation and only falls back to
      a query when the object was not annotated
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import serializers

from authentication.serializers import PublicUserSerializer
from chat.models import Conversation, Message
from jobs.serializers import JobSummarySerializer

if TYPE_CHECKING:
    from authentication.models import User


# =============================================================================
# Message Serializers
# =============================================================================


class MessagePreviewSerializer(serializers.ModelSerializer):
    """
    Minimal message serializer for conversation list preview.

    Used to show the last message in conversation lists.
    """

    sender_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Message
        fields = ["id", "sender_id", "content", "is_read", "created_at"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    """Full message serializer for history pages and new_message events."""

    conversation_id = serializers.UUIDField(read_only=True)
    sender = PublicUserSerializer(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "conversation_id",
            "sender",
            "content",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationSerializer(serializers.ModelSerializer):
    """
    Conversation from the point of view of one participant.

    Includes computed fields:
    - other_user: The participant who is not the viewer
    - unread_count: Messages from the other user the viewer has not read
    - last_message: Preview of the most recent message
    """

    other_user = serializers.SerializerMethodField(
        help_text="The other participant"
    )
    job = JobSummarySerializer(read_only=True, allow_null=True)
    last_message = MessagePreviewSerializer(read_only=True, allow_null=True)
    unread_count = serializers.SerializerMethodField(
        help_text="Number of unread messages for the viewer"
    )

    class Meta:
        model = Conversation
        fields = [
            "id",
            "other_user",
            "job",
            "last_message",
            "last_message_at",
            "unread_count",
            "created_at",
        ]
        read_only_fields = fields

    def _viewer(self) -> User | None:
        viewer = self.context.get("viewer")
        if viewer is not None:
            return viewer
        request = self.context.get("request")
        if request is not None and request.user.is_authenticated:
            return request.user
        return None

    def get_other_user(self, obj: Conversation) -> dict | None:
        viewer = self._viewer()
        if viewer is None:
            return None
        return PublicUserSerializer(obj.other_participant(viewer)).data

    def get_unread_count(self, obj: Conversation) -> int:
        annotated = getattr(obj, "unread_count", None)
        if annotated is not None:
            return annotated

        viewer = self._viewer()
        if viewer is None:
            return 0
        return obj.messages.filter(is_read=False).exclude(sender_id=viewer.pk).count()


class ConversationCreateSerializer(serializers.Serializer):
    """
    Input for POST /conversations/.

    Validates shape only; existence and self-conversation checks belong
    to ConversationResolver.
    """

    user_id = serializers.IntegerField(
        min_value=1,
        help_text="The other participant's user ID",
    )
    job_id = serializers.UUIDField(
        required=False,
        allow_null=True,
        default=None,
        help_text="Job posting the conversation is about (omit for general chat)",
    )


class MessageHistoryQuerySerializer(serializers.Serializer):
    """Query parameters for the message history endpoint."""

    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, required=False, default=None, allow_null=True)
