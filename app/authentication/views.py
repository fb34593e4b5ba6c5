"""
Authentication views.

This module provides API views for:
- Registration
- Token issuance and refresh (simplejwt)
- Current user retrieval

Related files:
    - serializers.py: Request/response serialization
    - urls.py: URL routing

Note:
    The access token returned by /token/ is also the credential for the
    chat WebSocket (passed as ?token=<access> on ws/chat/).
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from authentication.serializers import (
    RegisterSerializer,
    RoleTokenObtainPairSerializer,
    UserSerializer,
)


# =============================================================================
# Registration & Tokens
# =============================================================================


class RegisterView(APIView):
    """
    API view for account registration.

    POST: Create a candidate or employer account and return tokens

    URL: /api/v1/auth/register/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Register new account",
        description="Create a new user account with email and password.",
        tags=["Auth"],
        request=RegisterSerializer,
        responses={201: UserSerializer},
    )
    def post(self, request):
        """
        Register a new user.

        Request body:
            {
                "email": "candidate@example.com",
                "full_name": "Minh Tran",     // Optional
                "role": "candidate",          // "candidate" or "employer"
                "password1": "...",
                "password2": "..."
            }

        Returns:
            The created user plus an access/refresh token pair
        """
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        refresh = RoleTokenObtainPairSerializer.get_token(user)
        return Response(
            {
                "user": UserSerializer(user).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
            status=status.HTTP_201_CREATED,
        )


@extend_schema(
    summary="Obtain token pair",
    description="Authenticate with email and password to receive JWT tokens.",
    tags=["Auth"],
)
class LoginView(TokenObtainPairView):
    serializer_class = RoleTokenObtainPairSerializer


@extend_schema(
    summary="Refresh access token",
    tags=["Auth"],
)
class RefreshView(TokenRefreshView):
    pass


class MeView(APIView):
    """
    API view for the current user.

    GET: Retrieve the authenticated user's account

    URL: /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get current user",
        tags=["Auth"],
        responses={200: UserSerializer},
    )
    def get(self, request):
        return Response(UserSerializer(request.user).data)
