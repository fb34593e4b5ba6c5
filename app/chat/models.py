"""
Chat system models.

This module defines the data models for one-to-one chat between a
candidate and an employer (or any two users), optionally scoped to a job
posting:

Models:
    Conversation: Exactly two participants plus optional job context
    Message: Individual message within a conversation

Design Decisions:
    - The participant pair is stored in canonical order (lower user id
      first) so an unordered pair has exactly one representation
    - Uniqueness of (pair, job) is enforced by the database with two
      partial unique constraints, one for general chats (job IS NULL) and
      one for job-scoped chats; NULL never compares equal in a plain
      unique index, so a single constraint cannot cover both
    - Conversations are never deleted by the chat flow; they only change
      when a message is appended (last_message / last_message_at)
    - Messages are append-only apart from read state
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from chat.constants import MESSAGE_CONFIG
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from typing import Any


def canonical_pair(user_a_id: Any, user_b_id: Any) -> tuple[int, int]:
    """
    Return the two user ids ordered lower first.

    Example:
        canonical_pair(9, 4)  # (4, 9)
    """
    a, b = int(user_a_id), int(user_b_id)
    return (a, b) if a < b else (b, a)


class ConversationQuerySet(models.QuerySet):
    """Query helpers for conversations."""

    def for_user(self, user_id: Any) -> ConversationQuerySet:
        """Conversations in which the user participates."""
        return self.filter(Q(user_lower_id=user_id) | Q(user_higher_id=user_id))

    def for_pair(self, user_a_id: Any, user_b_id: Any, job_id: Any = None) -> ConversationQuerySet:
        """
        The conversation for an unordered pair and job context.

        A None job matches only general (job IS NULL) conversations.
        """
        lower, higher = canonical_pair(user_a_id, user_b_id)
        queryset = self.filter(user_lower_id=lower, user_higher_id=higher)
        if job_id is None:
            return queryset.filter(job__isnull=True)
        return queryset.filter(job_id=job_id)


class Conversation(UUIDPrimaryKeyMixin, BaseModel):
    """
    A conversation between exactly two users.

    Fields:
        user_lower: Participant with the lower user id
        user_higher: Participant with the higher user id
        job: Optional job posting the conversation is about
        last_message: Most recent message (denormalized for list sorting)
        last_message_at: Timestamp of the most recent message

    Constraints:
        - CheckConstraint(user_lower_id < user_higher_id): canonical order,
          also rules out self-conversations
        - UniqueConstraint(user_lower, user_higher) WHERE job IS NULL
        - UniqueConstraint(user_lower, user_higher, job) WHERE job IS NOT NULL

    Usage:
        conversation = Conversation.objects.for_pair(user_a.id, user_b.id).first()
        other = conversation.other_participant(request.user)
    """

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="Participant with the lower user ID",
    )
    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="Participant with the higher user ID",
    )
    job = models.ForeignKey(
        "jobs.Job",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="conversations",
        help_text="Job posting this conversation is about (null for general chat)",
    )
    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message in this conversation",
    )
    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of most recent message (for sorting)",
    )

    objects = ConversationQuerySet.as_manager()

    class Meta:
        db_table = "chat_conversation"
        ordering = ["-last_message_at", "-created_at"]
        indexes = [
            models.Index(
                fields=["user_lower", "-last_message_at"],
                name="chat_conv_lower_recent_idx",
            ),
            models.Index(
                fields=["user_higher", "-last_message_at"],
                name="chat_conv_higher_recent_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="chat_conversation_canonical_pair",
            ),
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                condition=Q(job__isnull=True),
                name="unique_general_conversation_pair",
            ),
            models.UniqueConstraint(
                fields=["user_lower", "user_higher", "job"],
                condition=Q(job__isnull=False),
                name="unique_job_conversation_pair",
            ),
        ]

    def __str__(self) -> str:
        job = f" re {self.job_id}" if self.job_id else ""
        return f"Conversation {self.user_lower_id}<->{self.user_higher_id}{job}"

    @property
    def participant_ids(self) -> tuple[int, int]:
        return (self.user_lower_id, self.user_higher_id)

    def has_participant(self, user_id: Any) -> bool:
        try:
            return int(user_id) in self.participant_ids
        except (TypeError, ValueError):
            return False

    def other_participant_id(self, user_id: Any) -> int:
        """Return the id of the participant who is not user_id."""
        return self.user_higher_id if int(user_id) == self.user_lower_id else self.user_lower_id

    def other_participant(self, user):
        """Return the participant who is not user."""
        return self.user_higher if user.pk == self.user_lower_id else self.user_lower


class Message(UUIDPrimaryKeyMixin, BaseModel):
    """
    A single chat message.

    Fields:
        conversation: Owning conversation
        sender: Author; always one of the conversation's participants
        content: Message text (bounded by CHAT_MAX_MESSAGE_LENGTH)
        is_read: Whether the recipient has read it
        read_at: When it was marked read

    Note:
        Sender membership is validated by MessageService before insert.
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_messages",
        help_text="User who sent this message",
    )
    # CHAT_MAX_MESSAGE_LENGTH may lower this limit, never raise it
    content = models.TextField(
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        help_text="Message text",
    )
    is_read = models.BooleanField(
        default=False,
        help_text="Whether the recipient has read this message",
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the recipient read this message",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["conversation", "created_at"],
                name="chat_msg_conv_created_idx",
            ),
            models.Index(
                fields=["conversation", "is_read"],
                name="chat_msg_conv_unread_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(is_read=False) | Q(read_at__isnull=False),
                name="chat_message_read_at_when_read",
            ),
        ]

    def __str__(self) -> str:
        return f"Message {self.id} from {self.sender_id}"
