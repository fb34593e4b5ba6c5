"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views, consumers and
    models. Views and consumers handle transport concerns, models handle
    data, services handle logic. The same service call backs both the REST
    endpoint and the WebSocket event for an operation.

Pattern Comparison:
    - ServiceResult: Use for expected failures (validation, business rules)
    - Exceptions: Use for unexpected failures (database errors, bugs)

Usage:
    from core.services import BaseService, ServiceResult

    class ConversationQueryService(BaseService):
        @classmethod
        def get_for_member(cls, user, conversation_id) -> ServiceResult[Conversation]:
            conversation = Conversation.objects.filter(id=conversation_id).first()
            if conversation is None:
                return ServiceResult.failure(
                    "Conversation not found",
                    error_code="CONVERSATION_NOT_FOUND",
                )
            return ServiceResult.success(conversation)

    # In view
    result = ConversationQueryService.get_for_member(request.user, pk)
    if result.success:
        return Response(ConversationSerializer(result.data).data)
    return Response(result.to_response(), status=404)

Related:
    - core.exceptions: Domain exceptions, convertible with ServiceResult.from_error
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from core.exceptions import BaseApplicationError

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Provides consistent success/failure handling without exceptions.
    Use this for expected failures (validation errors, business rule violations).

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures
        details: Extra context carried over from a domain exception

    Usage:
        # Success case
        return ServiceResult.success(conversation)

        # Failure case
        return ServiceResult.failure("You cannot message yourself", "SELF_CONVERSATION")

        # Check result
        result = ConversationResolver.resolve(user, other_user_id)
        if result.success:
            conversation = result.data.conversation
        else:
            print(f"Error: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)
    details: dict[str, Any] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_error(cls, exc: BaseApplicationError) -> ServiceResult[T]:
        """
        Create a failed result from a domain exception.

        Keeps the exception's message, error code and details so callers see the
        same payload whether the failure was raised or returned.

        Example:
            try:
                content = check_content(raw)
            except BaseApplicationError as e:
                return ServiceResult.from_error(e)
        """
        return cls(
            success=False,
            error=exc.message,
            error_code=exc.error_code,
            details=exc.details or None,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Failed results render as {"error": ..., "error_code": ...} to
        match BaseApplicationError.to_dict().
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {"error": self.error}
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        if self.details:
            response["details"] = self.details
        return response

    def __bool__(self) -> bool:
        """
        Allow using result in boolean context.

        Example:
            result = MessageService.mark_read(user, conversation_id)
            if result:  # Same as: if result.success
                ...
        """
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Services should be stateless
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. Nested use creates a savepoint, so an
        IntegrityError inside the block rolls back only the block.

        Example:
            with cls.atomic():
                message = Message.objects.create(...)
                Conversation.objects.filter(id=...).update(last_message=message)
        """
        with transaction.atomic():
            yield
