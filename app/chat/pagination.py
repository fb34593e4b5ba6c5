"""
Pagination classes for chat API.

- ConversationPagination: Page-number pagination for conversation lists

Message history is paged by ConversationQueryService.history() because its
pages run newest-first while each page is returned oldest-first.
"""

from rest_framework.pagination import PageNumberPagination

from chat.constants import MESSAGE_CONFIG


class ConversationPagination(PageNumberPagination):
    """
    Page-number pagination for conversation lists.

    Usage:
        GET /api/v1/chat/conversations/?page=2&limit=20
    """

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = MESSAGE_CONFIG.HISTORY_MAX_PAGE_SIZE
