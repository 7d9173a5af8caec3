# retrieval/__init__.py
"""
Retrieval Package

- orchestrator: cached hotel search with fallbacks
- vector_index: Qdrant hotel vectors
- tripadvisor: TripAdvisor Content API fallback source
- locations: destination extraction and locality matching
"""

from .locations import Destination, extract_destination, matches_location
from .vector_index import VectorIndex, VectorRecord
from .tripadvisor import TripAdvisorClient
from .orchestrator import RetrievalOrchestrator, normalize_query, search_cache_key, search_lock_key

__all__ = [
    "Destination",
    "extract_destination",
    "matches_location",
    "VectorIndex",
    "VectorRecord",
    "TripAdvisorClient",
    "RetrievalOrchestrator",
    "normalize_query",
    "search_cache_key",
    "search_lock_key",
]
