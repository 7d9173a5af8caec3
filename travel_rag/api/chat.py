# api/chat.py
"""
Chat API Endpoint
Conversational interface for Maya, plus session and health routes.

The ServiceContainer built in the app lifespan is read from
`request.app.state.container`.
"""

from datetime import datetime

from fastapi import APIRouter, HTTPException, Request, Response
from loguru import logger

from ..container import ServiceContainer
from ..schemas.ai_schemas import ChatRequest, ChatResponse, HealthResponse

VERSION = "1.0.0"

router = APIRouter(prefix="/api/ai", tags=["chat"])
metrics_router = APIRouter(tags=["metrics"])


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Service is starting up")
    return container


# ============================================
# Chat Endpoints
# ============================================

@router.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, request: Request):
    """
    Main chat endpoint.

    Retrieval failures come back as a degraded reply (`degraded: true`),
    never as an HTTP error.
    """
    container = get_container(request)
    try:
        return await container.concierge.process_message(body.message, body.session_id, body.user_id)
    except Exception as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process message")


@router.delete("/sessions/{session_id}")
async def end_session(session_id: str, request: Request):
    """End a chat session (location context, hotels and history)"""
    container = get_container(request)
    await container.concierge.end_session(session_id)
    return {"success": True, "message": f"Session {session_id} ended"}


# ============================================
# Health & Metrics
# ============================================

@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Detailed health check"""
    container = get_container(request)
    components = await container.health()
    # Redis and TripAdvisor are optional; the vector index is not
    status = "healthy" if components["qdrant"] == "connected" else "degraded"
    return HealthResponse(
        status=status,
        version=VERSION,
        llm_provider=container.responder.provider,
        components=components,
        timestamp=datetime.utcnow().isoformat(),
    )


@metrics_router.get("/metrics")
async def metrics(request: Request):
    """Prometheus exposition of the container's registry"""
    container = get_container(request)
    body, content_type = container.monitor.render()
    return Response(content=body, media_type=content_type)
