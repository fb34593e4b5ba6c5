"""
Content policy for chat messages.

CareerBridge keeps candidate/employer contact on-platform, so messages
carrying links or phone numbers are rejected before they are stored.
This is a platform rule rather than a security control. The patterns are
broad and also match text such as "node.js".

Usage:
    from chat.policy import check_content

    try:
        content = check_content(raw_content)
    except BaseApplicationError as e:
        return ServiceResult.from_error(e)
"""

from __future__ import annotations

import re

from chat.constants import MESSAGE_CONFIG, ErrorCode, chat_setting
from core.exceptions import PolicyViolationError, ValidationError

URL_PATTERN = re.compile(r"(https?://\S+|www\.\S+|\S+\.[a-z]{2,})", re.IGNORECASE)

# Vietnamese mobile numbers (+84 / 0 prefix) and generic 3-4 digit groups
PHONE_PATTERN = re.compile(
    r"(\+84|0)[0-9]{9,10}|[0-9]{3,4}[-\s]?[0-9]{3,4}[-\s]?[0-9]{3,4}"
)


def contains_url(content: str) -> bool:
    return URL_PATTERN.search(content) is not None


def contains_phone_number(content: str) -> bool:
    return PHONE_PATTERN.search(content) is not None


def check_content(content: object, max_length: int | None = None) -> str:
    """
    Validate message content and return it stripped.

    Checks run in order: type, emptiness, length, links, phone numbers.
    The length limit applies to the content as submitted.

    Args:
        content: Raw content from the client
        max_length: Limit in characters (defaults to CHAT_MAX_MESSAGE_LENGTH,
            capped at the column limit MESSAGE_CONFIG.MAX_CONTENT_LENGTH)

    Returns:
        The content with surrounding whitespace removed

    Raises:
        ValidationError: Empty, whitespace-only, non-string or too long
        PolicyViolationError: Contains a link or a phone number
    """
    if max_length is None:
        max_length = min(
            chat_setting("CHAT_MAX_MESSAGE_LENGTH"), MESSAGE_CONFIG.MAX_CONTENT_LENGTH
        )

    if not isinstance(content, str) or not content.strip():
        raise ValidationError(
            "Message content cannot be empty",
            error_code=ErrorCode.EMPTY_CONTENT,
        )

    if len(content) > max_length:
        raise ValidationError(
            f"Message content cannot exceed {max_length} characters",
            error_code=ErrorCode.CONTENT_TOO_LONG,
            details={"max_length": max_length},
        )

    if contains_url(content):
        raise PolicyViolationError(
            "Links are not allowed in messages",
            error_code=ErrorCode.POLICY_VIOLATION,
            details={"rule": "url"},
        )

    if contains_phone_number(content):
        raise PolicyViolationError(
            "Phone numbers are not allowed in messages",
            error_code=ErrorCode.POLICY_VIOLATION,
            details={"rule": "phone"},
        )

    return content.strip()
