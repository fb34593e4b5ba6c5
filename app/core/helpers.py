"""
Helper functions for common infrastructure operations.

These utilities are pure infrastructure - they have no knowledge
of domain concepts like users, jobs or conversations.

Usage:
    from core.helpers import validate_uuid

    if not validate_uuid(raw_id):
        ...
"""

from __future__ import annotations

import uuid


def validate_uuid(value: str) -> bool:
    """
    Check if string is a valid UUID.

    Args:
        value: String to validate

    Returns:
        True if valid UUID format

    Example:
        is_valid = validate_uuid("550e8400-e29b-41d4-a716-446655440000")  # True
    """
    try:
        uuid.UUID(value)
        return True
    except (ValueError, TypeError, AttributeError):
        return False
