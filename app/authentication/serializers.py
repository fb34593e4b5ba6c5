"""
Serializers for authentication models.

This module provides DRF serializers for:
- User model (read operations, public chat-partner projection)
- Registration (create candidate or employer accounts)
- Token issuance with the role claim

Related files:
    - models.py: User
    - views.py: Views that use these serializers

Security:
    - Password fields are write-only
    - Admin accounts cannot be self-registered
"""

from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from authentication.models import User, UserRole


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for the authenticated user's own account.

    Used by /api/v1/auth/me/ and the registration response.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "full_name",
            "avatar_url",
            "role",
            "date_joined",
        ]
        read_only_fields = fields


class PublicUserSerializer(serializers.ModelSerializer):
    """
    Projection of another user as shown in chat.

    Omits email so a chat partner's contact details stay on-platform.
    """

    class Meta:
        model = User
        fields = ["id", "full_name", "avatar_url", "role"]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    """
    Serializer for user registration.

    Handles email/password registration for candidates and employers.
    """

    email = serializers.EmailField(required=True)
    full_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    role = serializers.ChoiceField(
        choices=[UserRole.CANDIDATE, UserRole.EMPLOYER],
        default=UserRole.CANDIDATE,
    )
    password1 = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Password must be at least 8 characters.",
    )
    password2 = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Confirm your password.",
    )

    def validate_email(self, value):
        """Validate that email is not already in use."""
        email = value.lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate(self, attrs):
        """Validate that passwords match."""
        if attrs["password1"] != attrs["password2"]:
            raise serializers.ValidationError({"password2": "Passwords do not match."})
        return attrs

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data["email"],
            password=validated_data["password1"],
            full_name=validated_data.get("full_name", ""),
            role=validated_data["role"],
        )


class RoleTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Issue access/refresh tokens that carry the user's role.

    The claim is copied onto access tokens minted from the refresh token,
    so the WebSocket handshake can read the role without a lookup.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = user.role
        return token
