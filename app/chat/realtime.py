"""
Realtime capability implementations for chat.

Implementations of the protocols in chat.protocols:
- InMemoryRateLimiter: Fixed-window limiter, process-local
- CacheRateLimiter: Fixed-window limiter over Django's cache (Redis in
  deployment, so shared across processes)
- InMemoryRoomRegistry: Connection and room bookkeeping, process-local
- ChannelLayerNotificationSink: Delivers events through channel-layer groups

Factories (get_rate_limiter, get_room_registry, get_notification_sink)
build one instance per process from the CHAT_* dotted-path settings.

Fixed-window semantics:
    The first hit for a key opens a window of window_seconds and counts 1.
    Further hits inside the window count up to max_hits; beyond that they
    are rejected. The first hit after the deadline opens a new window with
    count 1.

Scaling:
    In-memory state is per process. With several ASGI workers the limiter
    and registry must be replaced by shared implementations; the database
    stays the only authority on conversation uniqueness.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from functools import lru_cache
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import cache
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.module_loading import import_string

from chat.constants import chat_setting, conversation_room, user_room

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

    from chat.protocols import NotificationSink, RateLimiter, RoomRegistry

logger = logging.getLogger(__name__)


# =============================================================================
# Rate Limiters
# =============================================================================


class InMemoryRateLimiter:
    """
    Fixed-window rate limiter kept in process memory.

    Usage:
        limiter = InMemoryRateLimiter(max_hits=10, window_seconds=60)
        if not limiter.hit(f"chat:{user.id}"):
            ...  # reject

    Args:
        max_hits: Accepted events per window (default CHAT_RATE_LIMIT_MAX_MESSAGES)
        window_seconds: Window length (default CHAT_RATE_LIMIT_WINDOW_SECONDS)
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        max_hits: int | None = None,
        window_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_hits = max_hits if max_hits is not None else chat_setting("CHAT_RATE_LIMIT_MAX_MESSAGES")
        self.window_seconds = (
            window_seconds
            if window_seconds is not None
            else chat_setting("CHAT_RATE_LIMIT_WINDOW_SECONDS")
        )
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                self._windows[key] = (1, now + self.window_seconds)
                return True
            if count >= self.max_hits:
                return False
            self._windows[key] = (count + 1, reset_at)
            return True

    def retry_after(self, key: str) -> float:
        with self._lock:
            _, reset_at = self._windows.get(key, (0, 0.0))
        return max(0.0, reset_at - self._clock())

    def release(self, key: str) -> None:
        now = self._clock()
        with self._lock:
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now < reset_at and count > 0:
                self._windows[key] = (count - 1, reset_at)

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when key is None."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)


class CacheRateLimiter:
    """
    Fixed-window rate limiter stored in Django's cache.

    The window starts with cache.add() so the key expires with the window;
    later hits use cache.incr(), which keeps the original expiry. With the
    django-redis backend the counter is shared by every process.
    """

    key_prefix = "chat:ratelimit"

    def __init__(
        self,
        max_hits: int | None = None,
        window_seconds: int | None = None,
        cache_backend: Any = None,
    ):
        self.max_hits = max_hits if max_hits is not None else chat_setting("CHAT_RATE_LIMIT_MAX_MESSAGES")
        self.window_seconds = int(
            window_seconds
            if window_seconds is not None
            else chat_setting("CHAT_RATE_LIMIT_WINDOW_SECONDS")
        )
        self._cache = cache_backend or cache

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}"

    def _deadline_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}:deadline"

    def hit(self, key: str) -> bool:
        cache_key = self._key(key)
        if self._cache.add(cache_key, 1, timeout=self.window_seconds):
            self._cache.set(
                self._deadline_key(key),
                time.time() + self.window_seconds,
                timeout=self.window_seconds,
            )
            return True
        try:
            count = self._cache.incr(cache_key)
        except ValueError:
            # Window expired between add() and incr()
            self._cache.add(cache_key, 1, timeout=self.window_seconds)
            return True
        if count > self.max_hits:
            # Rejected hits leave the counter at the cap
            self._cache.decr(cache_key)
            return False
        return True

    def retry_after(self, key: str) -> float:
        deadline = self._cache.get(self._deadline_key(key))
        if deadline is None:
            return 0.0
        return max(0.0, deadline - time.time())

    def release(self, key: str) -> None:
        try:
            self._cache.decr(self._key(key))
        except ValueError:
            logger.debug(f"Rate limit window for {key} expired before release")


# =============================================================================
# Room Registry
# =============================================================================


class InMemoryRoomRegistry:
    """
    Process-local bookkeeping of live connections and conversation rooms.

    Channel-layer groups do the actual fan-out; this registry answers the
    questions groups cannot: is a user online, and is this connection in
    a given room.
    """

    def __init__(self):
        self._user_channels: dict[str, set[str]] = defaultdict(set)
        self._room_channels: dict[str, set[str]] = defaultdict(set)
        self._channel_rooms: dict[str, set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def add_connection(self, user_id: Any, channel_name: str) -> None:
        with self._lock:
            self._user_channels[str(user_id)].add(channel_name)

    def remove_connection(self, user_id: Any, channel_name: str) -> int:
        with self._lock:
            for room in self._channel_rooms.pop(channel_name, set()):
                members = self._room_channels.get(room)
                if members is not None:
                    members.discard(channel_name)
                    if not members:
                        del self._room_channels[room]

            channels = self._user_channels.get(str(user_id))
            if channels is None:
                return 0
            channels.discard(channel_name)
            if not channels:
                del self._user_channels[str(user_id)]
                return 0
            return len(channels)

    def join(self, conversation_id: Any, channel_name: str) -> None:
        room = str(conversation_id)
        with self._lock:
            self._room_channels[room].add(channel_name)
            self._channel_rooms[channel_name].add(room)

    def leave(self, conversation_id: Any, channel_name: str) -> None:
        room = str(conversation_id)
        with self._lock:
            members = self._room_channels.get(room)
            if members is not None:
                members.discard(channel_name)
                if not members:
                    del self._room_channels[room]
            rooms = self._channel_rooms.get(channel_name)
            if rooms is not None:
                rooms.discard(room)
                if not rooms:
                    del self._channel_rooms[channel_name]

    def is_member(self, conversation_id: Any, channel_name: str) -> bool:
        with self._lock:
            return channel_name in self._room_channels.get(str(conversation_id), ())

    def rooms_for(self, channel_name: str) -> set[str]:
        with self._lock:
            return set(self._channel_rooms.get(channel_name, ()))

    def is_user_online(self, user_id: Any) -> bool:
        return self.connection_count(user_id) > 0

    def connection_count(self, user_id: Any) -> int:
        with self._lock:
            return len(self._user_channels.get(str(user_id), ()))


# =============================================================================
# Notification Sink
# =============================================================================


def _jsonable(payload: dict[str, Any]) -> dict[str, Any]:
    """Reduce a payload to JSON primitives (UUIDs, datetimes to strings)."""
    return json.loads(json.dumps(payload, cls=DjangoJSONEncoder))


class ChannelLayerNotificationSink:
    """
    Deliver events through channel-layer groups.

    Every consumer joined to a group receives a "chat.event" message and
    forwards it to its socket as {"type": <event>, **payload}. Connections
    whose channel name equals exclude_channel skip the event.
    """

    message_type = "chat.event"

    def __init__(self, channel_layer: Any = None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        return self._channel_layer or get_channel_layer()

    async def _group_send(
        self,
        group: str,
        event: str,
        payload: dict[str, Any],
        exclude_channel: str | None = None,
    ) -> None:
        layer = self.channel_layer
        if layer is None:
            logger.warning(f"No channel layer configured; dropped {event} for {group}")
            return
        await layer.group_send(
            group,
            {
                "type": self.message_type,
                "event": event,
                "payload": _jsonable(payload),
                "exclude_channel": exclude_channel,
            },
        )

    async def send_to_user(self, user_id: Any, event: str, payload: dict[str, Any]) -> None:
        await self._group_send(user_room(user_id), event, payload)

    async def send_to_conversation(
        self,
        conversation_id: Any,
        event: str,
        payload: dict[str, Any],
        exclude_channel: str | None = None,
    ) -> None:
        await self._group_send(conversation_room(conversation_id), event, payload, exclude_channel)


def notify_safely(send: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
    """
    Run an async sink method from synchronous code without raising.

    Notifications never fail the operation that produced them; a failed
    delivery is logged and reported as False.

    Usage:
        notify_safely(sink.send_to_user, other_user.id, "new_conversation", payload)
    """
    try:
        async_to_sync(send)(*args, **kwargs)
    except Exception:
        logger.warning(f"Realtime notification failed: {getattr(send, '__name__', send)}", exc_info=True)
        return False
    return True


# =============================================================================
# Factories
# =============================================================================


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    return import_string(chat_setting("CHAT_RATE_LIMITER"))()


@lru_cache(maxsize=1)
def get_room_registry() -> RoomRegistry:
    return import_string(chat_setting("CHAT_ROOM_REGISTRY"))()


@lru_cache(maxsize=1)
def get_notification_sink() -> NotificationSink:
    return import_string(chat_setting("CHAT_NOTIFICATION_SINK"))()


def reset_realtime_state() -> None:
    """Drop the per-process instances so the next call rebuilds them."""
    get_rate_limiter.cache_clear()
    get_room_registry.cache_clear()
    get_notification_sink.cache_clear()
