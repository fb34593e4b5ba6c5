"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/register/        - Create a candidate or employer account
    /api/v1/auth/token/           - Obtain access/refresh tokens (email + password)
    /api/v1/auth/token/refresh/   - Exchange a refresh token for a new access token
    /api/v1/auth/me/              - Current user
"""

from django.urls import path

from authentication.views import LoginView, MeView, RefreshView, RegisterView

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("token/", LoginView.as_view(), name="token-obtain"),
    path("token/refresh/", RefreshView.as_view(), name="token-refresh"),
    path("me/", MeView.as_view(), name="me"),
]
