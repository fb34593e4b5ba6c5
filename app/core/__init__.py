"""
Core Application - Infrastructure & Base Classes

Shared infrastructure for the CareerBridge apps. Nothing here knows about
users, jobs or conversations.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - PermissionDeniedError: Authorization failures
    - RateLimitError: Rate limit exceeded
    - PolicyViolationError: Content rejected by platform policy
    - InternalError: Unexpected failures

Retry (import from core.retry):
    - RetryPolicy: Bounded exponential backoff around a lookup

Helpers (import from core.helpers):
    - validate_uuid: UUID validation

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    PolicyViolationError,
    RateLimitError,
    ValidationError,
)

from .helpers import validate_uuid
from .retry import RetryPolicy

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitError",
    "PolicyViolationError",
    "InternalError",
    # Retry
    "RetryPolicy",
    # Helpers
    "validate_uuid",
]
