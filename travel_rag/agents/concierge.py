# agents/concierge.py
"""
Concierge Agent (chat-facing)
Maya, the Mexico hotel assistant.

Pipeline per message:
1. Quick responses for greetings (no retrieval, no LLM)
2. Intent detection (hotel search vs. general conversation)
3. Session location context: a destination in the message becomes the
   session's location; follow-ups without one reuse it
4. Hotel retrieval through the RetrievalOrchestrator
5. Reply generation grounded in the hotels and recent history

Uses:
- RetrievalOrchestrator for cached, deduplicated hotel search
- SessionStore for location context and accumulated hotels
- ConversationStore for chat history
- ResponseGenerator for the reply text
"""

import re
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger

from ..errors import ExhaustedFallbackError
from ..interfaces.conversation_store import ConversationStore
from ..interfaces.session_store import SessionState, SessionStore
from ..llm.responder import ResponseGenerator, template_response
from ..retrieval.locations import (
    Destination,
    enhance_query_with_location,
    extract_destination,
    needs_location_context,
)
from ..retrieval.orchestrator import RetrievalOrchestrator
from ..schemas.ai_schemas import ChatResponse, Hotel, ResponseType
from ..utils.performance import PerformanceMonitor, maybe_increment


QUICK_RESPONSES: Dict[str, str] = {
    "hello": (
        "Hello! I'm Maya, your personal Mexico travel assistant. I'm here to help you find the perfect "
        "hotel for your Mexican vacation. Where are you thinking of staying? Popular destinations include "
        "Cancun, Playa del Carmen, Tulum, and Puerto Vallarta!"
    ),
    "hi": (
        "Hi there! I'm Maya, and I'd love to help you plan your Mexico trip. What kind of hotel experience "
        "are you looking for? Beach resort, boutique hotel, or something else?"
    ),
    "hey": (
        "Hey! Welcome! I'm Maya, your Mexico hotel expert. Tell me about your dream vacation. Are you "
        "looking for beaches, culture, adventure, or a mix of everything?"
    ),
    "help": (
        "I'm here to help you find amazing hotels in Mexico! Just tell me:\n"
        "- Where you want to go (like Cancun, Tulum, etc.)\n"
        "- Your budget preferences\n"
        "- What amenities matter to you\n"
        "- When you're planning to travel\n\n"
        "I'll find the perfect matches for you!"
    ),
    "hola": (
        "¡Hola! Welcome to your Mexico travel adventure! I'm Maya, and I'm excited to help you discover "
        "amazing hotels. What destination are you dreaming of?"
    ),
    "good morning": (
        "Good morning! Ready to plan an amazing Mexico getaway? I'm Maya, your travel assistant. "
        "Where would you like to explore?"
    ),
    "good afternoon": (
        "Good afternoon! Perfect time to start planning your Mexico vacation. I'm Maya, let's find you "
        "the perfect hotel!"
    ),
    "good evening": (
        "Good evening! Let's make your Mexico travel dreams come true. I'm Maya, ready to help you find "
        "amazing accommodations!"
    ),
}

DEGRADED_MESSAGE = (
    "I'm having trouble looking up hotels right now. Could you try again in a moment? "
    "I'm still here to help with Mexico hotel recommendations and travel advice!"
)

HOTEL_PATTERNS = [
    re.compile(r"hotel|resort|stay|accommodation|lodging|room|booking", re.I),
    re.compile(r"where (to|should|can) (i|we) stay", re.I),
    re.compile(r"recommend|suggestion|best place", re.I),
    re.compile(r"beach|pool|spa|luxury|budget|cheap|affordable", re.I),
]

RESTAURANT_PATTERNS = [
    re.compile(r"restaurant|food|dining|eat|cafe|bar|menu|cuisine", re.I),
    re.compile(r"where.*eat|good food|local food|seafood|mexican food", re.I),
    re.compile(r"breakfast|lunch|dinner|drinks|coffee", re.I),
]

ACTIVITY_PATTERNS = [
    re.compile(r"activity|activities|tour|tours|excursion|excursions", re.I),
    re.compile(r"things to do|what.*do|sightseeing|attraction|attractions", re.I),
    re.compile(r"adventure|snorkel|dive|museum|culture", re.I),
    re.compile(r"visit|see|explore|experience", re.I),
]

# short messages that only name a place are treated as hotel searches
SHORT_QUERY_LENGTH = 50


@dataclass
class Intent:
    """What a message asks for"""
    type: str  # "quick", "hotel_search" or "general"
    needs_hotels: bool = False
    destination: Optional[Destination] = None
    response: Optional[str] = None  # canned reply for "quick"


def detect_intent(message: str) -> Intent:
    """
    Classify a chat message

    Example:
        >>> detect_intent("hello").type
        'quick'
        >>> detect_intent("Cancun").needs_hotels
        True
        >>> detect_intent("what should I eat in tulum").type
        'general'
    """
    text = message.lower().strip()
    quick = QUICK_RESPONSES.get(text.rstrip("!.? "))
    if quick:
        return Intent(type="quick", response=quick)

    destination = extract_destination(text)
    has_hotel = any(p.search(text) for p in HOTEL_PATTERNS)
    # food and activity questions about a place are not hotel searches
    has_restaurant = any(p.search(text) for p in RESTAURANT_PATTERNS)
    has_activity = any(p.search(text) for p in ACTIVITY_PATTERNS)

    needs_hotels = has_hotel or (
        destination is not None
        and len(text) < SHORT_QUERY_LENGTH
        and not has_restaurant
        and not has_activity
    )

    intent_type = "hotel_search" if needs_hotels else "general"
    return Intent(type=intent_type, needs_hotels=needs_hotels, destination=destination)


class ConciergeAgent:
    """
    Chat-facing agent.

    Retrieval failures never surface as errors: when no source can answer,
    the reply is a degraded message listing whatever hotels the session
    already holds.

    Usage:
        agent = ConciergeAgent(orchestrator, responder, session_store, conversation_store)
        response = await agent.process_message("beach resorts in tulum", session_id="abc")
    """

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        responder: ResponseGenerator,
        session_store: SessionStore,
        conversation_store: ConversationStore,
        monitor: Optional[PerformanceMonitor] = None,
        top_k: int = 5,
        history_size: int = 10,
    ):
        self.orchestrator = orchestrator
        self.responder = responder
        self.session_store = session_store
        self.conversation_store = conversation_store
        self.monitor = monitor
        self.top_k = top_k
        self.history_size = history_size

    async def process_message(
        self,
        message: str,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ChatResponse:
        """
        Process a user message and generate the reply.
        Main entry point for chat.
        """
        session_id = session_id or f"session_{uuid.uuid4().hex[:12]}"
        intent = detect_intent(message)
        logger.info(f"Chat [{session_id}] intent={intent.type}")

        if intent.type == "quick":
            maybe_increment(self.monitor, "chat.quick_response")
            await self._remember_turn(session_id, message, intent.response, user_id)
            return ChatResponse(response=intent.response, session_id=session_id, type=ResponseType.GREETING)

        state = await self.session_store.get_session(session_id)
        if intent.destination is not None:
            self.session_store.update_location(state, intent.destination)
        location = state.location_name

        hotels: List[Hotel] = []
        degraded = False
        if intent.needs_hotels or (location and needs_location_context(message)):
            search_query = enhance_query_with_location(message, location)
            try:
                hotels = await self.orchestrator.search_hotels(search_query, self.top_k)
            except ExhaustedFallbackError as e:
                degraded = True
                maybe_increment(self.monitor, "chat.degraded")
                logger.warning(f"Chat [{session_id}] degraded: {e}")

        if hotels:
            self.session_store.add_hotels(state, hotels)
        state.turns += 1
        await self.session_store.save_session(state)

        if degraded:
            reply, hotels = self._degraded_reply(state)
        else:
            history = await self.conversation_store.get_recent_messages(session_id, self.history_size)
            reply = await self.responder.generate(message, hotels, history)

        await self._remember_turn(session_id, message, reply, user_id)

        if degraded:
            response_type = ResponseType.DEGRADED
        elif hotels:
            response_type = ResponseType.RECOMMENDATIONS
        else:
            response_type = ResponseType.CONVERSATION

        return ChatResponse(
            response=reply,
            session_id=session_id,
            type=response_type,
            hotels=hotels,
            location=location,
            session_hotels=len(state.hotels),
            degraded=degraded,
        )

    async def end_session(self, session_id: str):
        """Forget a session's location context, hotels and history"""
        await self.session_store.delete_session(session_id)
        await self.conversation_store.clear_session(session_id)

    def _degraded_reply(self, state: SessionState):
        """Degraded message, plus the hotels already shown in this session if any"""
        previous = [Hotel.model_validate(h) for h in state.hotels[-self.top_k:]]
        if not previous:
            return DEGRADED_MESSAGE, []
        return f"{DEGRADED_MESSAGE}\n\n{template_response(previous, self.top_k)}", previous

    async def _remember_turn(self, session_id: str, message: str, reply: str, user_id: Optional[str]):
        metadata = {"user_id": user_id} if user_id else None
        await self.conversation_store.save_message(session_id, "user", message, metadata)
        await self.conversation_store.save_message(session_id, "assistant", reply)
