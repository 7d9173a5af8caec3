# llm/__init__.py
"""
LLM Components Package

Contains LLM-powered components:
- responder: Maya's reply, with token fallback and a plain-text template
"""

from .responder import ResponseGenerator, SYSTEM_PROMPT, template_response

__all__ = [
    "ResponseGenerator",
    "SYSTEM_PROMPT",
    "template_response",
]
