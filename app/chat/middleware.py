"""
WebSocket authentication middleware.

Provides JWT authentication for WebSocket connections using the
authentication app's CredentialVerifier. Verification happens once per
connection, at handshake time.

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers
    - config/asgi.py: ASGI configuration

Token Passing Methods (in order of precedence):
    1. Query string: ws://host/ws/chat/?token=<jwt_token>
    2. Header: Authorization: Bearer <jwt_token>

Usage in config/asgi.py:
    from chat.middleware import JWTAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": JWTAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        ),
    })
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser

from authentication.services import CredentialVerifier, InvalidCredentialsError

logger = logging.getLogger(__name__)


def get_token_from_query(scope) -> str | None:
    """Extract token from the query string."""
    query_string = scope.get("query_string", b"").decode()
    token_list = parse_qs(query_string).get("token", [])
    return token_list[0] if token_list else None


def get_token_from_headers(scope) -> str | None:
    """Extract a bearer token from the Authorization header."""
    for name, value in scope.get("headers", []):
        if name.lower() != b"authorization":
            continue
        scheme, _, token = value.decode().partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    return None


@database_sync_to_async
def verify_token(token: str):
    """Return (user, role) for a valid token, or (AnonymousUser, None)."""
    try:
        principal = CredentialVerifier.verify(token)
    except InvalidCredentialsError as e:
        logger.warning(f"Rejected WebSocket credential: {e.message}")
        return AnonymousUser(), None
    return principal.user, principal.role


class JWTAuthMiddleware(BaseMiddleware):
    """
    JWT authentication middleware for WebSocket connections.

    Sets scope["user"] (AnonymousUser when the token is missing or
    invalid) and scope["role"]. A user already present in the scope is
    kept, which lets tests hand a user to the consumer directly.
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        existing = scope.get("user")
        if existing is not None and existing.is_authenticated:
            scope.setdefault("role", getattr(existing, "role", None))
            return await super().__call__(scope, receive, send)

        token = get_token_from_query(scope) or get_token_from_headers(scope)
        if token:
            scope["user"], scope["role"] = await verify_token(token)
        else:
            scope["user"], scope["role"] = AnonymousUser(), None

        return await super().__call__(scope, receive, send)
