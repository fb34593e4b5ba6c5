"""
Chat system service layer.

This module provides the business logic for the chat system. REST views
and the WebSocket consumer are thin transports over these services.

Services:
    ConversationResolver: Get-or-create for a user pair plus optional job
    MessageService: Send messages and mark them read
    ConversationQueryService: Conversation lists, detail, history, unread counts
    PresenceService: Online status and last-seen bookkeeping
    ConversationMaintenanceService: Duplicate detection and merge

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Unexpected failures raise exceptions
    - Realtime capabilities (rate limiter, room registry, notification
      sink) are passed in by the caller, defaulting to the configured ones

Usage:
    from chat.services import ConversationResolver, MessageService

    result = ConversationResolver.resolve(request.user, other_user_id, job_id)
    if result.success:
        conversation = result.data.conversation

    result = MessageService.send_message(user, conversation_id, "Hello!")
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError
from django.db.models import Count, F, Q
from django.utils import timezone

from authentication.models import User
from authentication.services import UserDirectory
from chat.constants import MESSAGE_CONFIG, ErrorCode, ServerEvent, chat_setting
from chat.models import Conversation, Message, canonical_pair
from chat.policy import check_content
from chat.realtime import get_notification_sink, get_rate_limiter, get_room_registry, notify_safely
from chat.serializers import ConversationSerializer
from core.exceptions import (
    BaseApplicationError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
)
from core.helpers import validate_uuid
from core.retry import RetryPolicy
from core.services import BaseService, ServiceResult
from jobs.services import JobDirectory

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from django.db.models import QuerySet

    from chat.protocols import NotificationSink, RateLimiter, RoomRegistry


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True)
class ConversationResolution:
    """Outcome of ConversationResolver.resolve()."""

    conversation: Conversation
    created: bool


@dataclass(frozen=True)
class ReadReceipt:
    """Outcome of MessageService.mark_read()."""

    conversation: Conversation
    reader_id: int
    updated_count: int

    def as_payload(self) -> dict[str, Any]:
        return {
            "conversation_id": str(self.conversation.pk),
            "reader_id": self.reader_id,
            "updated_count": self.updated_count,
        }


@dataclass(frozen=True)
class MessagePage:
    """One page of message history, oldest message first."""

    messages: list[Message]
    page: int
    limit: int
    total: int

    @property
    def has_more(self) -> bool:
        """True when older messages exist beyond this page."""
        return self.page * self.limit < self.total


def _conversation_queryset() -> QuerySet[Conversation]:
    return Conversation.objects.select_related(
        "user_lower",
        "user_higher",
        "job__company",
        "last_message",
    )


def _find_conversation(conversation_id: Any) -> Conversation | None:
    """Load a conversation by id; malformed ids are simply not found."""
    if not validate_uuid(str(conversation_id)):
        return None
    return _conversation_queryset().filter(pk=conversation_id).first()


def _member_conversation(user: User, conversation_id: Any) -> ServiceResult[Conversation]:
    conversation = _find_conversation(conversation_id)
    if conversation is None:
        return ServiceResult.from_error(
            NotFoundError("Conversation not found", error_code=ErrorCode.CONVERSATION_NOT_FOUND)
        )
    if not conversation.has_participant(user.pk):
        return ServiceResult.from_error(
            PermissionDeniedError(
                "You are not a participant in this conversation",
                error_code=ErrorCode.NOT_PARTICIPANT,
            )
        )
    return ServiceResult.success(conversation)


# =============================================================================
# Conversation Resolver
# =============================================================================


class ConversationResolver(BaseService):
    """
    Resolve a (user pair, job) combination to exactly one conversation.

    The database enforces uniqueness with partial unique constraints on the
    canonical pair (see chat.models.Conversation). A concurrent resolver
    that loses the insert race gets an IntegrityError; it then re-queries
    with bounded exponential backoff until the winner's row is visible.

    Error codes:
        INVALID_ID: other_user_id or job_id is malformed
        SELF_CONVERSATION: other_user_id is the caller
        USER_NOT_FOUND: Other user unknown or inactive
        JOB_NOT_FOUND: Job unknown
        CONVERSATION_UNRESOLVED: Insert conflicted and the conflicting row
            never became visible within the retry budget
    """

    @classmethod
    def default_retry_policy(cls) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=chat_setting("CHAT_RESOLVE_MAX_RETRIES"),
            base_delay=chat_setting("CHAT_RESOLVE_RETRY_BASE_DELAY"),
        )

    @classmethod
    def find(cls, user_a_id: Any, user_b_id: Any, job_id: Any = None) -> Conversation | None:
        """Exact lookup by unordered pair and job context."""
        return _conversation_queryset().for_pair(user_a_id, user_b_id, job_id).first()

    @classmethod
    def resolve(
        cls,
        current_user: User,
        other_user_id: Any,
        job_id: Any = None,
        *,
        retry_policy: RetryPolicy | None = None,
        sink: NotificationSink | None = None,
    ) -> ServiceResult[ConversationResolution]:
        """
        Get or create the conversation between current_user and other_user_id.

        Args:
            current_user: Authenticated caller
            other_user_id: The other participant's id
            job_id: Optional job the conversation is about
            retry_policy: Backoff used after a lost insert race
            sink: Receives the new_conversation event on first creation

        Returns:
            ServiceResult with ConversationResolution(conversation, created)
        """
        try:
            other_pk = int(other_user_id)
        except (TypeError, ValueError):
            return ServiceResult.failure("Invalid user ID", error_code=ErrorCode.INVALID_ID)

        if other_pk == current_user.pk:
            return ServiceResult.failure(
                "You cannot start a conversation with yourself",
                error_code=ErrorCode.SELF_CONVERSATION,
            )

        if job_id is not None and not validate_uuid(str(job_id)):
            return ServiceResult.failure("Invalid job ID", error_code=ErrorCode.INVALID_ID)

        other_user = UserDirectory.get_active(other_pk)
        if other_user is None:
            return ServiceResult.failure("User not found", error_code=ErrorCode.USER_NOT_FOUND)

        job = None
        if job_id is not None:
            job = JobDirectory.get(job_id)
            if job is None:
                return ServiceResult.failure("Job not found", error_code=ErrorCode.JOB_NOT_FOUND)
            job_id = job.pk

        existing = cls.find(current_user.pk, other_pk, job_id)
        if existing is not None:
            return ServiceResult.success(ConversationResolution(existing, created=False))

        lower, higher = canonical_pair(current_user.pk, other_pk)
        try:
            with cls.atomic():
                created = Conversation.objects.create(
                    user_lower_id=lower,
                    user_higher_id=higher,
                    job=job,
                )
        except IntegrityError:
            cls.get_logger().info(
                f"Conversation insert for users {lower}/{higher} job={job_id} "
                f"lost a race, re-querying"
            )
            policy = retry_policy or cls.default_retry_policy()
            conversation = policy.run(
                lambda: cls.find(lower, higher, job_id),
                description=f"resolve conversation {lower}/{higher} job={job_id}",
            )
            if conversation is None:
                cls.get_logger().error(
                    f"Conversation for users {lower}/{higher} job={job_id} conflicted "
                    f"on insert but never became visible"
                )
                return ServiceResult.from_error(
                    InternalError(
                        "Could not resolve conversation, please try again",
                        error_code=ErrorCode.CONVERSATION_UNRESOLVED,
                    )
                )
            return ServiceResult.success(ConversationResolution(conversation, created=False))

        conversation = cls.find(lower, higher, job_id) or created
        cls.get_logger().info(
            f"User {current_user.pk} started conversation {conversation.pk} "
            f"with user {other_pk} job={job_id}"
        )

        sink = sink or get_notification_sink()
        payload = ConversationSerializer(conversation, context={"viewer": other_user}).data
        notify_safely(
            sink.send_to_user,
            other_pk,
            ServerEvent.NEW_CONVERSATION,
            {"conversation": payload},
        )

        return ServiceResult.success(ConversationResolution(conversation, created=True))


# =============================================================================
# Message Service
# =============================================================================


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Validate, rate-limit and persist a text message
        mark_read: Mark the other participant's messages as read
    """

    @classmethod
    def rate_limit_key(cls, user_id: Any) -> str:
        return f"chat:send:{user_id}"

    @classmethod
    def send_message(
        cls,
        sender: User,
        conversation_id: Any,
        content: Any,
        rate_limiter: RateLimiter | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a text message to a conversation.

        Checks run in this order and stop at the first failure: content
        (empty, too long, links, phone numbers), conversation exists,
        sender is a participant, rate limit. The rate limiter is consulted
        last and a failed insert gives its slot back, so only accepted
        messages use up the sender's quota. RATE_LIMITED failures carry
        details["retry_after"] in whole seconds.

        Args:
            sender: User sending the message
            conversation_id: Target conversation
            content: Message text as submitted
            rate_limiter: Quota to charge (defaults to the configured one)

        Returns:
            ServiceResult with the new Message (sender loaded)

        Error codes:
            EMPTY_CONTENT, CONTENT_TOO_LONG, POLICY_VIOLATION,
            CONVERSATION_NOT_FOUND, NOT_PARTICIPANT, RATE_LIMITED,
            MESSAGE_PERSIST_FAILED
        """
        try:
            content = check_content(content)
        except BaseApplicationError as e:
            return ServiceResult.from_error(e)

        result = _member_conversation(sender, conversation_id)
        if not result.success:
            return result
        conversation = result.data

        limiter = rate_limiter or get_rate_limiter()
        key = cls.rate_limit_key(sender.pk)
        if not limiter.hit(key):
            retry_after = math.ceil(limiter.retry_after(key))
            cls.get_logger().info(
                f"User {sender.pk} hit the message rate limit, retry in {retry_after}s"
            )
            return ServiceResult.from_error(
                RateLimitError(
                    "You are sending messages too quickly, please wait a moment",
                    error_code=ErrorCode.RATE_LIMITED,
                    details={"retry_after": retry_after},
                )
            )

        try:
            with cls.atomic():
                message = Message.objects.create(
                    conversation=conversation,
                    sender=sender,
                    content=content,
                )
                Conversation.objects.filter(pk=conversation.pk).update(
                    last_message=message,
                    last_message_at=message.created_at,
                    updated_at=message.created_at,
                )
        except DatabaseError:
            cls.get_logger().exception(
                f"Failed to persist message from user {sender.pk} "
                f"to conversation {conversation.pk}"
            )
            limiter.release(key)
            return ServiceResult.from_error(
                InternalError(
                    "Message could not be sent",
                    error_code=ErrorCode.MESSAGE_PERSIST_FAILED,
                )
            )

        message.conversation = conversation
        cls.get_logger().debug(
            f"User {sender.pk} sent message {message.pk} to conversation {conversation.pk}"
        )
        return ServiceResult.success(message)

    @classmethod
    def mark_read(cls, user: User, conversation_id: Any) -> ServiceResult[ReadReceipt]:
        """
        Mark every unread message from the other participant as read.

        Marking a conversation with nothing unread succeeds with
        updated_count=0 and changes nothing.

        Error codes:
            CONVERSATION_NOT_FOUND: Unknown or malformed id
            NOT_PARTICIPANT: User is not in this conversation
        """
        result = _member_conversation(user, conversation_id)
        if not result.success:
            return result
        conversation = result.data

        now = timezone.now()
        updated = (
            Message.objects.filter(conversation=conversation, is_read=False)
            .exclude(sender_id=user.pk)
            .update(is_read=True, read_at=now, updated_at=now)
        )

        if updated:
            cls.get_logger().debug(
                f"User {user.pk} read {updated} message(s) in conversation {conversation.pk}"
            )
        return ServiceResult.success(
            ReadReceipt(conversation=conversation, reader_id=user.pk, updated_count=updated)
        )


# =============================================================================
# Query Service
# =============================================================================


class ConversationQueryService(BaseService):
    """Read-side queries backing the REST surface."""

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet[Conversation]:
        """
        The user's conversations, most recently active first.

        Conversations without messages sort last. Each row is annotated
        with unread_count for the user.
        """
        return (
            _conversation_queryset()
            .for_user(user.pk)
            .annotate(
                unread_count=Count(
                    "messages",
                    filter=Q(messages__is_read=False) & ~Q(messages__sender_id=user.pk),
                )
            )
            .order_by(F("last_message_at").desc(nulls_last=True), "-created_at")
        )

    @classmethod
    def get_for_member(cls, user: User, conversation_id: Any) -> ServiceResult[Conversation]:
        return _member_conversation(user, conversation_id)

    @classmethod
    def history(
        cls,
        user: User,
        conversation_id: Any,
        page: int = 1,
        limit: int | None = None,
    ) -> ServiceResult[MessagePage]:
        """
        One page of a conversation's messages.

        Page 1 holds the newest messages. Within a page messages are
        returned oldest first so clients can append them in order.
        limit is clamped to HISTORY_MAX_PAGE_SIZE.
        """
        result = _member_conversation(user, conversation_id)
        if not result.success:
            return result
        conversation = result.data

        limit = limit or MESSAGE_CONFIG.HISTORY_DEFAULT_PAGE_SIZE
        limit = max(1, min(limit, MESSAGE_CONFIG.HISTORY_MAX_PAGE_SIZE))
        page = max(1, page)
        offset = (page - 1) * limit

        queryset = Message.objects.filter(conversation=conversation).select_related("sender")
        total = queryset.count()
        newest_first = list(queryset.order_by("-created_at", "-id")[offset : offset + limit])
        newest_first.reverse()

        return ServiceResult.success(
            MessagePage(messages=newest_first, page=page, limit=limit, total=total)
        )

    @classmethod
    def unread_count(cls, user: User) -> int:
        """Unread messages addressed to the user across all conversations."""
        return (
            Message.objects.filter(
                conversation__in=Conversation.objects.for_user(user.pk),
                is_read=False,
            )
            .exclude(sender_id=user.pk)
            .count()
        )


# =============================================================================
# Presence Service
# =============================================================================


class PresenceService(BaseService):
    """
    Online status derived from live WebSocket connections.

    A user is online while the room registry holds at least one of their
    connections. last_seen is stamped when the last connection closes.
    """

    @classmethod
    def online_status(
        cls,
        user_id: Any,
        registry: RoomRegistry | None = None,
    ) -> ServiceResult[dict[str, Any]]:
        user = UserDirectory.get_active(user_id)
        if user is None:
            return ServiceResult.failure("User not found", error_code=ErrorCode.USER_NOT_FOUND)

        registry = registry or get_room_registry()
        return ServiceResult.success(
            {
                "user_id": user.pk,
                "is_online": registry.is_user_online(user.pk),
                "last_seen": user.last_seen,
            }
        )

    @classmethod
    def touch_last_seen(cls, user_id: Any, when: datetime | None = None) -> None:
        User.objects.filter(pk=user_id).update(last_seen=when or timezone.now())


# =============================================================================
# Maintenance
# =============================================================================


class ConversationMaintenanceService(BaseService):
    """
    Repair helpers for conversation identity.

    The unique constraints make duplicates impossible in normal operation;
    these helpers exist for data loaded around them (restores, imports run
    with constraints disabled).
    """

    @classmethod
    def find_duplicates(cls) -> list[list[Conversation]]:
        """Groups of conversations sharing one (pair, job) key, oldest first."""
        keys = (
            Conversation.objects.values("user_lower_id", "user_higher_id", "job_id")
            .annotate(rows=Count("id"))
            .filter(rows__gt=1)
        )
        groups = []
        for key in keys:
            groups.append(
                list(
                    Conversation.objects.filter(
                        user_lower_id=key["user_lower_id"],
                        user_higher_id=key["user_higher_id"],
                        job_id=key["job_id"],
                    ).order_by("created_at", "id")
                )
            )
        return groups

    @classmethod
    def merge(cls, keep: Conversation, duplicates: list[Conversation]) -> int:
        """
        Move every message of duplicates into keep and delete them.

        Returns:
            Number of messages moved
        """
        duplicate_ids = [c.pk for c in duplicates if c.pk != keep.pk]
        if not duplicate_ids:
            return 0

        with cls.atomic():
            moved = Message.objects.filter(conversation_id__in=duplicate_ids).update(
                conversation=keep
            )
            Conversation.objects.filter(pk__in=duplicate_ids).delete()

            latest = keep.messages.order_by("-created_at", "-id").first()
            keep.last_message = latest
            keep.last_message_at = latest.created_at if latest else None
            keep.save(update_fields=["last_message", "last_message_at", "updated_at"])

        cls.get_logger().warning(
            f"Merged {len(duplicate_ids)} duplicate conversation(s) into {keep.pk}, "
            f"moved {moved} message(s)"
        )
        return moved
