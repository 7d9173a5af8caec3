"""
Travel RAG Assistant - FastAPI Application
Maya, a Mexico hotel concierge backed by cached vector retrieval.

LLM Provider:
- If OPENAI_API_KEY is set: use OpenAI
- If no OPENAI_API_KEY: use Ollama (llama3.2)
"""

import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .api.chat import VERSION, metrics_router, router as chat_router
from .config import settings
from .container import ServiceContainer

# Configure logging
logger.remove()
logger.add(sys.stderr, level=settings.LOG_LEVEL)


# ============================================
# Application Lifespan
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("=" * 50)
    logger.info("Starting Travel RAG Assistant")
    logger.info("=" * 50)
    logger.info(f"Environment: {settings.API_ENV}")
    logger.info(f"LLM Provider: {'OpenAI' if settings.use_openai else 'Ollama'}")
    if settings.use_openai:
        logger.info(f"  Model: {settings.OPENAI_MODEL}")
    else:
        logger.info(f"  Model: {settings.OLLAMA_MODEL}")
        logger.info(f"  URL: {settings.OLLAMA_BASE_URL}")

    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        app.state.container = await ServiceContainer.create(settings)

    yield

    if owns_container:
        await app.state.container.shutdown()
        app.state.container = None
    logger.info("Travel RAG Assistant shutdown complete")


# ============================================
# FastAPI Application
# ============================================

def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the app; a pre-built container (tests) is used as-is and not shut down
    """
    app = FastAPI(
        title="Travel RAG Assistant",
        description="Mexico hotel recommendations with cached vector retrieval. Supports OpenAI and Ollama.",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(metrics_router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": "Travel RAG Assistant",
            "version": VERSION,
            "status": "running",
            "llm_provider": "OpenAI" if settings.use_openai else "Ollama",
            "docs": "/docs",
            "endpoints": [
                "/api/ai/health",
                "/api/ai/chat",
                "/api/ai/sessions/{session_id}",
                "/metrics",
            ],
        }

    return app


app = create_app()


# ============================================
# Main
# ============================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "travel_rag.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_ENV == "development",
    )
