"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - One multiplexed connection per user session; conversation
               rooms are joined with join_conversation events

Authentication:
    JWT token should be passed as query parameter (?token=<jwt_access_token>)
    or as an Authorization: Bearer header. JWTAuthMiddleware validates it
    and attaches the user to the consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.RealtimeChatConsumer.as_asgi()),
]
