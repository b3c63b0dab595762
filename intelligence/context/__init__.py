"""Conversation Context and Session Store"""

from .system import (
    ConversationContext,
    SessionStore,
    InMemorySessionStore,
    apply_patch
)

__all__ = [
    'ConversationContext',
    'SessionStore',
    'InMemorySessionStore',
    'apply_patch',
]
