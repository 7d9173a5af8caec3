# interfaces/__init__.py
"""
Interfaces Package

Contains the per-session state containers:
- session_store: destination context and accumulated hotels
- conversation_store: chat history
"""

from .session_store import SessionStore, SessionState
from .conversation_store import ConversationStore, Message

__all__ = [
    "SessionStore",
    "SessionState",
    "ConversationStore",
    "Message",
]
