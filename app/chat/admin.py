"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation inspection
- Message moderation
"""

from django.contrib import admin

from chat.models import Conversation, Message


class MessageInline(admin.TabularInline):
    """Inline display of recent messages in conversation admin."""

    model = Message
    extra = 0
    fields = ["sender", "content", "is_read", "created_at"]
    readonly_fields = ["created_at"]
    raw_id_fields = ["sender"]
    ordering = ["-created_at"]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = [
        "id",
        "user_lower",
        "user_higher",
        "job",
        "last_message_at",
        "created_at",
    ]
    list_filter = ["created_at"]
    search_fields = ["id", "user_lower__email", "user_higher__email", "job__title"]
    readonly_fields = ["created_at", "updated_at", "last_message", "last_message_at"]
    raw_id_fields = ["user_lower", "user_higher", "job"]
    inlines = [MessageInline]
    ordering = ["-created_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "conversation", "sender", "is_read", "created_at"]
    list_filter = ["is_read", "created_at"]
    search_fields = ["content", "sender__email"]
    readonly_fields = ["created_at", "updated_at", "read_at"]
    raw_id_fields = ["conversation", "sender"]
    ordering = ["-created_at"]
