"""
Constants and configuration for the chat module.

This module centralizes:
- Message limits and rate-limit defaults
- Conversation resolution retry defaults
- WebSocket event names (inbound and outbound)
- Error codes and their HTTP status mapping
- Channel-layer group naming

Defaults can be overridden via Django settings (see chat_setting).
Import example:
    from chat.constants import MESSAGE_CONFIG, ErrorCode, user_room
"""

from typing import Any, Final

from django.conf import settings


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Defaults for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 5000  # Characters

    # Per-sender quota: accepted messages per window
    RATE_LIMIT_MAX_MESSAGES: Final[int] = 10
    RATE_LIMIT_WINDOW_SECONDS: Final[int] = 60

    # Message history pagination
    HISTORY_DEFAULT_PAGE_SIZE: Final[int] = 50
    HISTORY_MAX_PAGE_SIZE: Final[int] = 100


class RESOLVE_CONFIG:
    """Defaults for conversation get-or-create recovery."""

    MAX_RETRIES: Final[int] = 3
    RETRY_BASE_DELAY_SECONDS: Final[float] = 0.5


_SETTING_DEFAULTS: Final[dict[str, Any]] = {
    "CHAT_MAX_MESSAGE_LENGTH": MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
    "CHAT_RATE_LIMIT_MAX_MESSAGES": MESSAGE_CONFIG.RATE_LIMIT_MAX_MESSAGES,
    "CHAT_RATE_LIMIT_WINDOW_SECONDS": MESSAGE_CONFIG.RATE_LIMIT_WINDOW_SECONDS,
    "CHAT_RESOLVE_MAX_RETRIES": RESOLVE_CONFIG.MAX_RETRIES,
    "CHAT_RESOLVE_RETRY_BASE_DELAY": RESOLVE_CONFIG.RETRY_BASE_DELAY_SECONDS,
    "CHAT_RATE_LIMITER": "chat.realtime.InMemoryRateLimiter",
    "CHAT_ROOM_REGISTRY": "chat.realtime.InMemoryRoomRegistry",
    "CHAT_NOTIFICATION_SINK": "chat.realtime.ChannelLayerNotificationSink",
}


def chat_setting(name: str) -> Any:
    """Return a CHAT_* setting, falling back to the module default."""
    return getattr(settings, name, _SETTING_DEFAULTS[name])


# =============================================================================
# WebSocket Events
# =============================================================================


class ClientEvent:
    """Event types sent by clients."""

    JOIN_CONVERSATION: Final[str] = "join_conversation"
    LEAVE_CONVERSATION: Final[str] = "leave_conversation"
    SEND_MESSAGE: Final[str] = "send_message"
    MARK_READ: Final[str] = "mark_read"
    TYPING: Final[str] = "typing"


class ServerEvent:
    """Event types pushed to clients."""

    JOINED_CONVERSATION: Final[str] = "joined_conversation"
    LEFT_CONVERSATION: Final[str] = "left_conversation"
    NEW_MESSAGE: Final[str] = "new_message"
    MESSAGE_NOTIFICATION: Final[str] = "message_notification"
    MESSAGES_READ: Final[str] = "messages_read"
    USER_TYPING: Final[str] = "user_typing"
    NEW_CONVERSATION: Final[str] = "new_conversation"
    ERROR: Final[str] = "error"


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode:
    """Machine-readable error codes shared by REST and WebSocket responses."""

    # Invalid argument
    SELF_CONVERSATION: Final[str] = "SELF_CONVERSATION"
    EMPTY_CONTENT: Final[str] = "EMPTY_CONTENT"
    CONTENT_TOO_LONG: Final[str] = "CONTENT_TOO_LONG"
    INVALID_ID: Final[str] = "INVALID_ID"
    UNKNOWN_EVENT: Final[str] = "UNKNOWN_EVENT"
    INVALID_PAYLOAD: Final[str] = "INVALID_PAYLOAD"

    # Not found
    USER_NOT_FOUND: Final[str] = "USER_NOT_FOUND"
    JOB_NOT_FOUND: Final[str] = "JOB_NOT_FOUND"
    CONVERSATION_NOT_FOUND: Final[str] = "CONVERSATION_NOT_FOUND"

    # Forbidden
    NOT_PARTICIPANT: Final[str] = "NOT_PARTICIPANT"

    # Quota and policy
    RATE_LIMITED: Final[str] = "RATE_LIMITED"
    POLICY_VIOLATION: Final[str] = "POLICY_VIOLATION"

    # Internal
    CONVERSATION_UNRESOLVED: Final[str] = "CONVERSATION_UNRESOLVED"
    MESSAGE_PERSIST_FAILED: Final[str] = "MESSAGE_PERSIST_FAILED"
    INTERNAL_ERROR: Final[str] = "INTERNAL_ERROR"


ERROR_HTTP_STATUS: Final[dict[str, int]] = {
    ErrorCode.SELF_CONVERSATION: 400,
    ErrorCode.EMPTY_CONTENT: 400,
    ErrorCode.CONTENT_TOO_LONG: 400,
    ErrorCode.INVALID_ID: 400,
    ErrorCode.UNKNOWN_EVENT: 400,
    ErrorCode.INVALID_PAYLOAD: 400,
    ErrorCode.POLICY_VIOLATION: 400,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.JOB_NOT_FOUND: 404,
    ErrorCode.CONVERSATION_NOT_FOUND: 404,
    ErrorCode.NOT_PARTICIPANT: 403,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.CONVERSATION_UNRESOLVED: 500,
    ErrorCode.MESSAGE_PERSIST_FAILED: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


# =============================================================================
# Channel Layer Groups
# =============================================================================


def user_room(user_id: Any) -> str:
    """Group name for a user's personal notification room."""
    return f"user_{user_id}"


def conversation_room(conversation_id: Any) -> str:
    """Group name for a conversation room."""
    return f"conversation_{conversation_id}"
