# agents/__init__.py
"""
AI Agents Package

Contains the chat-facing agent:
- ConciergeAgent: quick responses, intent detection, retrieval and reply
"""

from .concierge import ConciergeAgent, Intent, detect_intent, QUICK_RESPONSES

__all__ = [
    "ConciergeAgent",
    "Intent",
    "detect_intent",
    "QUICK_RESPONSES",
]
