"""
Travel RAG Assistant Configuration
Loads settings from environment variables
"""

import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class Settings:
    """Application settings loaded from environment"""

    # OpenAI Configuration (embeddings + chat completions)
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4-turbo-preview")
    OPENAI_EMBEDDING_MODEL: str = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")

    # Ollama Configuration (local fallback when no OpenAI key is set)
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "llama3.2")
    OLLAMA_EMBEDDING_MODEL: str = os.getenv("OLLAMA_EMBEDDING_MODEL", "mxbai-embed-large")

    # Redis Configuration (durable L2 cache tier + distributed locks)
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_ENABLED: bool = os.getenv("REDIS_ENABLED", "true").lower() == "true"

    # Qdrant Configuration (vector index)
    QDRANT_URL: str = os.getenv("QDRANT_URL", "http://localhost:6333")
    QDRANT_API_KEY: Optional[str] = os.getenv("QDRANT_API_KEY") or None
    QDRANT_COLLECTION: str = os.getenv("QDRANT_COLLECTION", "mexico-hotels")

    # TripAdvisor Content API
    TRIP_ADVISOR_API: str = os.getenv("TRIP_ADVISOR_API", "")
    TRIPADVISOR_BASE_URL: str = os.getenv("TRIPADVISOR_BASE_URL", "https://api.content.tripadvisor.com/api/v1")

    # Timeouts (milliseconds)
    EMBEDDING_TIMEOUT_MS: int = _int_env("EMBEDDING_TIMEOUT_MS", 3000)
    VECTOR_QUERY_TIMEOUT_MS: int = _int_env("VECTOR_QUERY_TIMEOUT_MS", 1500)
    TRIPADVISOR_TIMEOUT_MS: int = _int_env("TRIPADVISOR_TIMEOUT_MS", 1500)
    DURABLE_TIMEOUT_MS: int = _int_env("DURABLE_TIMEOUT_MS", 500)

    # Circuit breaker for TripAdvisor
    TRIPADVISOR_FAILURE_THRESHOLD: int = _int_env("TRIPADVISOR_FAILURE_THRESHOLD", 3)
    TRIPADVISOR_RESET_MS: int = _int_env("TRIPADVISOR_RESET_MS", 60 * 1000)

    # Rate limiting for TripAdvisor (requests per window)
    TRIPADVISOR_MAX_REQUESTS: int = _int_env("TRIPADVISOR_MAX_REQUESTS", 3)
    TRIPADVISOR_WINDOW_MS: int = _int_env("TRIPADVISOR_WINDOW_MS", 1000)

    # Retrieval cache (stale-while-revalidate)
    CACHE_FRESH_MS: int = _int_env("CACHE_FRESH_MS", 5 * 60 * 1000)
    CACHE_STALE_MS: int = _int_env("CACHE_STALE_MS", 10 * 60 * 1000)
    CACHE_MAX_SIZE: int = _int_env("CACHE_MAX_SIZE", 1000)

    # Embedding cache
    EMBEDDING_CACHE_FRESH_MS: int = _int_env("EMBEDDING_CACHE_FRESH_MS", 30 * 24 * 3600 * 1000)
    EMBEDDING_CACHE_MAX_SIZE: int = _int_env("EMBEDDING_CACHE_MAX_SIZE", 1000)

    # Distributed single-flight lock
    LOCK_TTL_MS: int = _int_env("LOCK_TTL_MS", 5 * 60 * 1000)
    LOCK_WAIT_TIMEOUT_MS: int = _int_env("LOCK_WAIT_TIMEOUT_MS", 3000)
    LOCK_POLL_INTERVAL_MS: int = _int_env("LOCK_POLL_INTERVAL_MS", 200)

    # Retrieval tuning
    DEFAULT_TOP_K: int = _int_env("DEFAULT_TOP_K", 5)
    VECTOR_OVERFETCH: int = _int_env("VECTOR_OVERFETCH", 3)

    # LLM completion
    LLM_MAX_WAIT_MS: int = _int_env("LLM_MAX_WAIT_MS", 8000)
    LLM_MAX_TOKENS: int = _int_env("LLM_MAX_TOKENS", 800)
    LLM_FALLBACK_TOKENS: int = _int_env("LLM_FALLBACK_TOKENS", 400)

    # Session state
    SESSION_TTL_HOURS: int = _int_env("SESSION_TTL_HOURS", 24)
    MAX_HISTORY_MESSAGES: int = _int_env("MAX_HISTORY_MESSAGES", 20)
    MAX_SESSION_RESULTS: int = _int_env("MAX_SESSION_RESULTS", 20)

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = _int_env("API_PORT", 8000)
    API_ENV: str = os.getenv("API_ENV", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS Configuration
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def use_openai(self) -> bool:
        """OpenAI is used whenever a key is configured, Ollama otherwise"""
        return bool(self.OPENAI_API_KEY)


# Global settings instance
settings = Settings()
