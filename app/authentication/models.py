"""
Authentication models.

This module defines the User model for CareerBridge. Users are candidates
looking for work, employers posting jobs, or platform admins. The chat
core only needs a stable identity; role and display fields are used by
the conversation list and the WebSocket handshake.

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: UserDirectory and CredentialVerifier

Security:
    - User passwords hashed with Django's PBKDF2
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Platform roles carried in the access token."""

    CANDIDATE = "candidate", "Candidate"
    EMPLOYER = "employer", "Employer"
    ADMIN = "admin", "Admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        full_name: Display name shown to chat partners
        avatar_url: Optional link to the user's avatar
        role: Candidate, employer or admin
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
        last_seen: When the user's last realtime connection closed

    Usage:
        user = User.objects.create_user(
            email="candidate@example.com",
            password="securepassword",
            full_name="Minh Tran",
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    full_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Name displayed to other users",
    )
    avatar_url = models.URLField(
        blank=True,
        help_text="Avatar image URL",
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CANDIDATE,
        db_index=True,
        help_text="Platform role",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user's last realtime connection closed",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        """Return the user's email as string representation."""
        return self.email

    def get_full_name(self):
        """Return the display name, or the email if none is set."""
        return self.full_name or self.email

    def get_short_name(self):
        """Return the first word of the display name, or the email local part."""
        if self.full_name:
            return self.full_name.split()[0]
        return self.email.split("@")[0]
