# llm/responder.py
"""
Response Generator
Turns retrieved hotels and conversation history into Maya's reply.

LLM Provider:
- If OPENAI_API_KEY is set: use OpenAI chat completions
- If no OPENAI_API_KEY: use Ollama (llama3.2)

Degradation:
1. Primary completion with LLM_MAX_TOKENS, bounded by LLM_MAX_WAIT_MS
2. Second attempt with the smaller LLM_FALLBACK_TOKENS budget
3. A templated plain-text list of the hotels
"""

from typing import Dict, List, Optional

import ollama
from openai import AsyncOpenAI
from loguru import logger

from ..config import Settings, settings as default_settings
from ..errors import DependencyError
from ..resilience.timeout import with_timeout
from ..schemas.ai_schemas import Hotel
from ..utils.performance import PerformanceMonitor, maybe_increment


SYSTEM_PROMPT = """You are Maya AI, a friendly and knowledgeable travel assistant specializing in Mexico hotels and vacations.
Your personality is warm, enthusiastic and helpful, like a knowledgeable friend who loves Mexico.

Key traits:
- You know Mexico's destinations, culture, food and hotels
- You give personalized recommendations based on the user's needs
- You remember context from the conversation and build on previous messages
- You can answer general travel questions, not just about hotels

Formatting rules:
- Write in plain text only, never use markdown, asterisks or backticks
- When listing hotels, use numbers (1. 2. 3.)
- Keep responses concise but informative
- If the user asks a general question, answer it without forcing hotel recommendations"""

TEMPLATE_INTRO = "I found the following hotels that might be a good fit:"
TEMPLATE_OUTRO = "If you'd like more details about any of these, just ask."
TEMPLATE_UNAVAILABLE = (
    "Sorry, I'm having trouble reaching my AI service right now. "
    "I can still look up hotels for you, but it may take a little longer."
)


def format_hotel_context(hotels: List[Hotel]) -> str:
    """Numbered hotel summaries for the completion prompt"""
    lines = []
    for i, hotel in enumerate(hotels, 1):
        lines.append(
            f"{i}. {hotel.name} ({hotel.city}, {hotel.state})\n"
            f"   - Location: {hotel.location}\n"
            f"   - Price Range: {hotel.price_range}\n"
            f"   - Rating: {hotel.rating}/5\n"
            f"   - Type: {hotel.type}\n"
            f"   - Key Amenities: {', '.join(hotel.amenities[:5])}\n"
            f"   - Description: {hotel.description}"
        )
    return "\n".join(lines)


def template_response(hotels: List[Hotel], limit: int = 5) -> str:
    """
    Plain-text reply used when no completion could be produced

    Example:
        >>> print(template_response([Hotel(id="1", name="Casa Azul", city="Tulum", rating=4.5)]))
        I found the following hotels that might be a good fit:
        1. Casa Azul - Tulum - $$$ - 4.5/5
        <BLANKLINE>
        If you'd like more details about any of these, just ask.
    """
    if not hotels:
        return TEMPLATE_UNAVAILABLE
    lines = [
        f"{i}. {h.name} - {h.city} - {h.price_range} - {h.rating}/5"
        for i, h in enumerate(hotels[:limit], 1)
    ]
    return "\n".join([TEMPLATE_INTRO, *lines, "", TEMPLATE_OUTRO])


class ResponseGenerator:
    """
    Chat completion with bounded latency.

    Usage:
        responder = ResponseGenerator()
        reply = await responder.generate("beach hotels in tulum", hotels, history)
    """

    def __init__(
        self,
        config: Settings = default_settings,
        openai_client: Optional[AsyncOpenAI] = None,
        ollama_client: Optional[ollama.AsyncClient] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        self.use_openai = config.use_openai
        self.model = config.OPENAI_MODEL if self.use_openai else config.OLLAMA_MODEL
        self.max_wait_ms = config.LLM_MAX_WAIT_MS
        self.max_tokens = config.LLM_MAX_TOKENS
        self.fallback_tokens = config.LLM_FALLBACK_TOKENS
        self.monitor = monitor

        self.openai_client = openai_client
        self.ollama_client = ollama_client
        if self.use_openai and self.openai_client is None:
            self.openai_client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
        if not self.use_openai and self.ollama_client is None:
            self.ollama_client = ollama.AsyncClient(host=config.OLLAMA_BASE_URL)

    @property
    def provider(self) -> str:
        return "OpenAI" if self.use_openai else "Ollama"

    def build_messages(self, query: str, hotels: List[Hotel], history: Optional[List[Dict]] = None) -> List[Dict]:
        """
        System prompt, recent history, then the user turn

        Args:
            query: The user's message
            hotels: Hotels to ground the answer in (may be empty)
            history: Previous {"role", "content"} pairs, oldest first

        Returns:
            Messages for a chat completion
        """
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        for msg in history or []:
            messages.append({"role": msg["role"], "content": msg["content"]})

        prompt = query
        if hotels:
            prompt = (
                f'User query: "{query}"\n\n'
                f"Here are relevant hotels I found:\n{format_hotel_context(hotels)}\n\n"
                "Provide a helpful response that naturally incorporates these "
                "recommendations if they're relevant to the query."
            )
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, query: str, hotels: List[Hotel], history: Optional[List[Dict]] = None) -> str:
        """
        Reply text for `query`; never raises

        Returns:
            str: Completion text, or the hotel template if both attempts failed
        """
        messages = self.build_messages(query, hotels, history)

        try:
            return await with_timeout(self._complete(messages, self.max_tokens), self.max_wait_ms, "llm.completion")
        except Exception as e:
            maybe_increment(self.monitor, "llm.completion_failed")
            logger.warning(f"{self.provider} completion failed, retrying with {self.fallback_tokens} tokens: {e}")

        try:
            return await with_timeout(
                self._complete(messages, self.fallback_tokens), self.max_wait_ms, "llm.completion.fallback"
            )
        except Exception as e:
            maybe_increment(self.monitor, "llm.fallback_failed")
            logger.warning(f"{self.provider} fallback completion failed, using template: {e}")

        return template_response(hotels)

    async def _complete(self, messages: List[Dict], max_tokens: int) -> str:
        if self.use_openai:
            response = await self.openai_client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=0.8,
            )
            content = response.choices[0].message.content
        else:
            response = await self.ollama_client.chat(
                model=self.model,
                messages=messages,
                options={"temperature": 0.8, "num_predict": max_tokens},
            )
            content = response["message"]["content"]

        if not content or not content.strip():
            raise DependencyError("llm", "empty completion")
        return content.strip()

    async def ping(self) -> bool:
        """Cheap reachability check for /health (Ollama only; OpenAI is assumed)"""
        if self.use_openai:
            return True
        try:
            await with_timeout(self.ollama_client.list(), 2000, "ollama.list")
            return True
        except Exception as e:
            logger.warning(f"Ollama not responding: {e}")
            return False
