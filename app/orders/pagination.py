"""
Pagination classes for order API.

- OrderMessageCursorPagination: message thread, oldest first
"""

from rest_framework.pagination import CursorPagination


class OrderMessageCursorPagination(CursorPagination):
    """
    Cursor pagination for an order's message thread.

    Sequence numbers are unique per order, so they give a stable cursor
    while new messages are appended.

    Default: 50 messages per page
    Maximum: 100 messages per page
    """

    page_size = 50
    max_page_size = 100
    page_size_query_param = "page_size"
    ordering = ("sequence",)
    cursor_query_param = "cursor"
