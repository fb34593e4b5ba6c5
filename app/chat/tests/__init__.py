"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Canonical pair, uniqueness constraints, model helpers
- test_policy.py: Content policy (links, phone numbers, length)
- test_realtime.py: Rate limiters, room registry, notification sink
- test_services.py: Resolver, messaging, queries, presence, maintenance
- test_consumers.py: WebSocket consumer tests
- test_views.py: REST API endpoint tests
- test_commands.py: audit_conversations command

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
