"""
Authentication application.

This app provides the CareerBridge user model, JWT issuance and the
lookups other apps use to validate users and bearer credentials.

Key components:
    - User model: Email-based user with a platform role
    - UserDirectory: Existence checks for chat participants
    - CredentialVerifier: Access-token verification for WebSocket handshakes

Usage:
    from authentication.models import User
    from authentication.services import CredentialVerifier, UserDirectory
"""
