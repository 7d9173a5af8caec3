# schemas/__init__.py
"""
Pydantic Schemas Package

Contains the Pydantic v2 models for:
- Hotel payloads (cached and returned by retrieval)
- API requests/responses
"""

from .ai_schemas import (
    HotelSource,
    ResponseType,
    Hotel,
    VectorMatch,
    ChatRequest,
    ChatResponse,
    HealthResponse,
)

__all__ = [
    "HotelSource",
    "ResponseType",
    "Hotel",
    "VectorMatch",
    "ChatRequest",
    "ChatResponse",
    "HealthResponse",
]
