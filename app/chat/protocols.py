"""
Protocol definitions for the realtime chat capabilities.

The WebSocket consumer depends on these interfaces rather than on
concrete classes, so deployments can swap implementations through
settings and tests can pass fakes directly to the consumer.

Available Protocols:
    RateLimiter: Per-key message quota
    RoomRegistry: Which connections are online and in which rooms
    NotificationSink: Outbound event delivery to user and conversation rooms

Usage:
    from chat.protocols import NotificationSink

    async def announce(sink: NotificationSink, conversation, payload):
        await sink.send_to_conversation(conversation.id, "new_message", payload)

Note:
    The default implementations in chat.realtime keep state in process
    memory. A deployment with more than one ASGI process needs shared
    implementations (e.g. CacheRateLimiter over Redis).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from typing import Any


@runtime_checkable
class RateLimiter(Protocol):
    """
    Protocol for per-key rate limiting.

    Example:
        if not limiter.hit(f"chat:{user.id}"):
            raise RateLimitError("Too many messages")
    """

    def hit(self, key: str) -> bool:
        """
        Record one event for key.

        Returns:
            True if the event is within quota, False if it must be rejected
        """
        ...

    def retry_after(self, key: str) -> float:
        """Seconds until the current window for key resets (0 if none)."""
        ...

    def release(self, key: str) -> None:
        """Give back one event recorded by hit(), e.g. when the action failed."""
        ...


@runtime_checkable
class RoomRegistry(Protocol):
    """
    Protocol for tracking live connections and their room memberships.

    Connections are identified by channel name; rooms by conversation id.
    """

    def add_connection(self, user_id: Any, channel_name: str) -> None: ...

    def remove_connection(self, user_id: Any, channel_name: str) -> int:
        """
        Forget a connection and all of its room memberships.

        Returns:
            Number of connections the user still has open
        """
        ...

    def join(self, conversation_id: Any, channel_name: str) -> None: ...

    def leave(self, conversation_id: Any, channel_name: str) -> None: ...

    def is_member(self, conversation_id: Any, channel_name: str) -> bool: ...

    def rooms_for(self, channel_name: str) -> set[str]: ...

    def is_user_online(self, user_id: Any) -> bool: ...

    def connection_count(self, user_id: Any) -> int: ...


@runtime_checkable
class NotificationSink(Protocol):
    """
    Protocol for outbound realtime events.

    Delivery is fire-and-forget; callers must not roll back state when a
    send fails.
    """

    async def send_to_user(self, user_id: Any, event: str, payload: dict[str, Any]) -> None:
        """Deliver an event to every connection of one user."""
        ...

    async def send_to_conversation(
        self,
        conversation_id: Any,
        event: str,
        payload: dict[str, Any],
        exclude_channel: str | None = None,
    ) -> None:
        """Deliver an event to every connection in a conversation room."""
        ...
