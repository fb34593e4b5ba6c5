"""
Views for chat API.

This module provides REST API endpoints for the chat system:
- ConversationViewSet: Get-or-create, list, detail, history and read receipts
- UnreadCountView: Unread messages across all conversations
- UserOnlineStatusView: Online status of a single user

URL Structure:
    /api/v1/chat/conversations/                  GET, POST
    /api/v1/chat/conversations/{id}/             GET
    /api/v1/chat/conversations/{id}/messages/    GET
    /api/v1/chat/conversations/{id}/read/        POST, PATCH
    /api/v1/chat/unread-count/                   GET
    /api/v1/chat/users/{user_id}/online-status/  GET

Design Decisions:
    - All operations use the service layer for business logic
    - Service failures render as {"error", "error_code"} with the HTTP
      status from ERROR_HTTP_STATUS
    - Unknown conversations are 404 and non-participants 403, for every
      endpoint that takes a conversation id
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
    inline_serializer,
)
from rest_framework import mixins, serializers, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.constants import ERROR_HTTP_STATUS, ErrorCode, ServerEvent
from chat.pagination import ConversationPagination
from chat.realtime import get_notification_sink, notify_safely
from chat.serializers import (
    ConversationCreateSerializer,
    ConversationSerializer,
    MessageHistoryQuerySerializer,
    MessageSerializer,
)
from chat.services import (
    ConversationQueryService,
    ConversationResolver,
    MessageService,
    PresenceService,
)
from core.services import ServiceResult


def failure_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult with the status its error code maps to."""
    return Response(
        result.to_response(),
        status=ERROR_HTTP_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def invalid_input_response(serializer) -> Response:
    return Response(
        {
            "error": "Invalid request",
            "error_code": ErrorCode.INVALID_ID,
            "errors": serializer.errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    ViewSet for conversation operations.

    list:
        Conversations of the current user, most recent activity first.
        Each includes the other participant, job summary, last message
        preview and unread count.

    create:
        Get or create the conversation with another user, optionally
        about a job. 201 when created, 200 when it already existed.

    retrieve:
        Conversation detail (participants only).

    messages:
        Paginated history; page 1 is the newest page.

    read:
        Mark the other participant's messages as read.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = ConversationPagination
    serializer_class = ConversationSerializer

    def get_queryset(self):
        return ConversationQueryService.list_for_user(self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["viewer"] = self.request.user
        return context

    @extend_schema(
        operation_id="resolve_conversation",
        summary="Get or create conversation",
        request=ConversationCreateSerializer,
        responses={
            200: OpenApiResponse(ConversationSerializer, description="Existing conversation"),
            201: OpenApiResponse(ConversationSerializer, description="Conversation created"),
        },
        tags=["Chat - Conversations"],
    )
    def create(self, request):
        """Get or create a conversation with another user."""
        serializer = ConversationCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_input_response(serializer)

        result = ConversationResolver.resolve(
            request.user,
            serializer.validated_data["user_id"],
            serializer.validated_data["job_id"],
        )
        if not result.success:
            return failure_response(result)

        resolution = result.data
        return Response(
            self.get_serializer(resolution.conversation).data,
            status=status.HTTP_201_CREATED if resolution.created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        result = ConversationQueryService.get_for_member(request.user, pk)
        if not result.success:
            return failure_response(result)
        return Response(self.get_serializer(result.data).data)

    @extend_schema(
        operation_id="list_conversation_messages",
        summary="Message history",
        parameters=[
            OpenApiParameter("page", OpenApiTypes.INT, description="1 = newest messages"),
            OpenApiParameter("limit", OpenApiTypes.INT, description="Page size (max 100)"),
        ],
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get"])
    def messages(self, request, pk=None):
        query = MessageHistoryQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return invalid_input_response(query)

        result = ConversationQueryService.history(
            request.user,
            pk,
            page=query.validated_data["page"],
            limit=query.validated_data["limit"],
        )
        if not result.success:
            return failure_response(result)

        history = result.data
        return Response(
            {
                "results": MessageSerializer(history.messages, many=True).data,
                "page": history.page,
                "limit": history.limit,
                "total": history.total,
                "has_more": history.has_more,
            }
        )

    @extend_schema(
        operation_id="mark_conversation_read",
        summary="Mark conversation as read",
        request=None,
        responses={
            200: inline_serializer(
                "MarkReadResponse", {"updated_count": serializers.IntegerField()}
            )
        },
        tags=["Chat - Conversations"],
    )
    @action(detail=True, methods=["post", "patch"])
    def read(self, request, pk=None):
        """Mark conversation as read and broadcast the receipt."""
        result = MessageService.mark_read(request.user, pk)
        if not result.success:
            return failure_response(result)

        receipt = result.data
        notify_safely(
            get_notification_sink().send_to_conversation,
            receipt.conversation.pk,
            ServerEvent.MESSAGES_READ,
            receipt.as_payload(),
        )
        return Response({"updated_count": receipt.updated_count})


class UnreadCountView(APIView):
    """
    GET /api/v1/chat/unread-count/
        Total unread messages addressed to the current user.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_unread_count",
        summary="Unread message count",
        responses={
            200: inline_serializer("UnreadCount", {"unread_count": serializers.IntegerField()})
        },
        tags=["Chat - Messages"],
    )
    def get(self, request):
        return Response({"unread_count": ConversationQueryService.unread_count(request.user)})


class UserOnlineStatusView(APIView):
    """
    Get online status for a specific user.

    GET /api/v1/chat/users/{user_id}/online-status/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_user_online_status",
        summary="User online status",
        description=(
            "Whether the user currently has an open chat connection, and when "
            "their last connection closed."
        ),
        responses={
            200: inline_serializer(
                "OnlineStatus",
                {
                    "user_id": serializers.IntegerField(),
                    "is_online": serializers.BooleanField(),
                    "last_seen": serializers.DateTimeField(allow_null=True),
                },
            )
        },
        tags=["Chat - Presence"],
    )
    def get(self, request, user_id):
        result = PresenceService.online_status(user_id)
        if not result.success:
            return failure_response(result)
        return Response(result.data)
