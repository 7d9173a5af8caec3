"""
Pydantic v2 schemas for the Travel RAG Assistant
Hotel payloads plus chat/health API models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# ============================================
# Enums
# ============================================

class HotelSource(str, Enum):
    VECTOR = "vector"
    TRIPADVISOR = "tripadvisor"


class ResponseType(str, Enum):
    GREETING = "greeting"
    RECOMMENDATIONS = "recommendations"
    CONVERSATION = "conversation"
    DEGRADED = "degraded"


# ============================================
# Hotels
# ============================================

class Hotel(BaseModel):
    """Display-ready hotel, the item type cached and returned by retrieval"""
    id: str
    score: float = 0.0
    name: str = "Unknown Hotel"
    location: str = ""
    city: str = ""
    state: str = "Mexico"
    description: str = ""
    amenities: List[str] = Field(default_factory=list)
    price_range: str = "$$$"
    rating: float = 0.0
    review_count: int = 0
    type: str = "Hotel"
    image_url: str = ""
    affiliate_link: str = "#"
    nearby_attractions: List[str] = Field(default_factory=list)
    latitude: float = 0.0
    longitude: float = 0.0
    source: HotelSource = HotelSource.VECTOR

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe dict for cache storage"""
        return self.model_dump(mode="json")


class VectorMatch(BaseModel):
    """One vector-index hit, in relevance order"""
    id: str
    score: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ============================================
# Chat API
# ============================================

class ChatRequest(BaseModel):
    """Chat request model"""
    message: str = Field(..., min_length=1, max_length=2000, description="User's message")
    session_id: Optional[str] = Field(None, description="Session ID for context continuity")
    user_id: Optional[str] = Field(None, description="User identifier")


class ChatResponse(BaseModel):
    """Chat response model"""
    response: str = Field(..., description="Assistant's reply")
    session_id: str
    type: ResponseType = ResponseType.CONVERSATION
    hotels: List[Hotel] = Field(default_factory=list)
    location: Optional[str] = Field(None, description="Destination the reply is about")
    session_hotels: int = Field(0, description="Hotels accumulated in this session")
    degraded: bool = False
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str = "travel-rag-assistant"
    version: str
    llm_provider: str
    components: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
