"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error payloads for both REST responses and WebSocket events
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures (InvalidArgument)
    ├── NotFoundError - Referenced user, job or conversation missing
    ├── PermissionDeniedError - Caller is not allowed to act on a resource
    ├── RateLimitError - Quota exceeded
    ├── PolicyViolationError - Content rejected by platform policy
    └── InternalError - Unrecoverable inconsistencies

Usage:
    from core.exceptions import ValidationError, NotFoundError

    # Raise with message only
    raise ValidationError("Message content cannot be empty")

    # Raise with error code for client handling
    raise NotFoundError("Conversation not found", error_code="CONVERSATION_NOT_FOUND")

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        status_code: HTTP status used when the error reaches a REST view
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Conversation not found",
                "error_code": "CONVERSATION_NOT_FOUND",
                "details": {"conversation_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Malformed identifiers
    - Empty or oversized message content
    - Requests that make no sense (starting a chat with yourself)

    Example:
        raise ValidationError(
            "Message exceeds 5000 characters",
            error_code="CONTENT_TOO_LONG",
            details={"max_length": 5000},
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        job = JobDirectory.get(job_id)
        if job is None:
            raise NotFoundError("Job not found", error_code="JOB_NOT_FOUND")
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when user lacks permission for an operation.

    Use for authorization failures such as acting on a conversation the
    caller does not participate in. For a missing or invalid token prefer
    DRF's AuthenticationFailed on HTTP paths.
    """

    default_error_code: str = "PERMISSION_DENIED"
    status_code: int = 403


class RateLimitError(BaseApplicationError):
    """
    Raised when rate limit is exceeded.

    Example:
        if not limiter.hit(f"chat:{user.id}"):
            raise RateLimitError(
                "Too many messages. Please slow down.",
                error_code="RATE_LIMITED",
                details={"retry_after": 42},
            )

    Note:
        Include retry_after in details when possible to help clients.
    """

    default_error_code: str = "RATE_LIMITED"
    status_code: int = 429


class PolicyViolationError(BaseApplicationError):
    """
    Raised when content matches a disallowed pattern.

    This is a platform policy (keep contact details on-platform), not a
    security control, so the message shown to users is explanatory.
    """

    default_error_code: str = "POLICY_VIOLATION"


class InternalError(BaseApplicationError):
    """
    Raised for unexpected faults and exhausted recovery paths.

    The message is generic; diagnostics belong in the logs, not in the
    response body.
    """

    default_error_code: str = "INTERNAL_ERROR"
    status_code: int = 500
