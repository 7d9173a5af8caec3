# travel_rag/__init__.py
"""
Travel RAG Assistant Package

Mexico hotel recommendations over a vector index with:
- Conversational AI (Maya, the Concierge Agent)
- Stale-while-revalidate caching across Redis and process memory
- Single-flight retrieval (in-process and across instances)
- TripAdvisor fallback behind a circuit breaker and rate limiter
"""

__version__ = "1.0.0"

# Package structure:
# travel_rag/
# ├── __init__.py           <- This file
# ├── main.py               <- FastAPI application entry
# ├── config.py             <- Configuration settings
# ├── container.py          <- Per-process service wiring
# ├── errors.py             <- Retrieval error taxonomy
# │
# ├── agents/concierge.py   <- Chat-facing agent
# ├── api/chat.py           <- /api/ai/chat, /api/ai/health, /metrics
# ├── cache/                <- Redis store, LRU, tiered cache, single-flight, embeddings
# ├── interfaces/           <- Session state and conversation history
# ├── llm/responder.py      <- Reply generation with fallbacks
# ├── resilience/           <- Timeouts, circuit breaker, rate limiter, background tasks
# ├── retrieval/            <- Orchestrator, Qdrant index, TripAdvisor, destinations
# ├── schemas/ai_schemas.py <- Pydantic models
# └── utils/                <- Hotel formatting, metrics
