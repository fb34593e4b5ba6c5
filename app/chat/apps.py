"""
Chat application configuration.

This app provides the chat system with:
- One conversation per user pair and optional job
- Realtime delivery over WebSocket (Django Channels)
- Read tracking and unread counts
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
