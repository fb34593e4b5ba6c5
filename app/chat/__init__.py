"""
Chat app for candidate/employer messaging.

This app handles:
- Conversation get-or-create per user pair (optionally per job)
- Message sending, history and read receipts
- WebSocket real-time delivery and typing indicators
- Content policy and per-sender rate limiting

Related apps:
    - authentication: User model, user directory, token verification
    - jobs: Job context for job-scoped conversations

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for WebSocket handlers.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import ConversationResolver, MessageService

    result = ConversationResolver.resolve(user, other_user.id, job_id=job.id)
    conversation = result.data.conversation

    MessageService.send_message(user, conversation.id, "Hello!")
"""
