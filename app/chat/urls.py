"""
URL configuration for chat API.

URL Structure:
    Conversations:
        /conversations/                  GET, POST
        /conversations/{id}/             GET
        /conversations/{id}/messages/    GET
        /conversations/{id}/read/        POST, PATCH

    Counters and presence:
        /unread-count/                   GET
        /users/{user_id}/online-status/  GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import ConversationViewSet, UnreadCountView, UserOnlineStatusView

router = DefaultRouter()
router.register(r"conversations", ConversationViewSet, basename="conversation")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    path("unread-count/", UnreadCountView.as_view(), name="unread-count"),
    path(
        "users/<int:user_id>/online-status/",
        UserOnlineStatusView.as_view(),
        name="user-online-status",
    ),
]
