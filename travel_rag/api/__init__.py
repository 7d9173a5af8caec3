# api/__init__.py
"""
API Endpoints Package

Contains the FastAPI routers for the assistant:
- chat: chat, session and health routes under /api/ai
- metrics: Prometheus exposition at /metrics
"""

from .chat import router as chat_router, metrics_router

__all__ = [
    "chat_router",
    "metrics_router",
]
