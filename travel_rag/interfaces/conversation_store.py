"""
Conversation Store - Persists chat history for sessions
"""

import json
from typing import Dict, List, Optional
from datetime import datetime, timedelta
from dataclasses import dataclass, asdict

import redis.asyncio as redis
from redis.exceptions import RedisError
from loguru import logger

from ..errors import OperationTimeoutError
from ..resilience.timeout import with_timeout

_REDIS_ERRORS = (RedisError, OSError, OperationTimeoutError)


@dataclass
class Message:
    """Represents a conversation message"""
    session_id: str
    role: str  # "user" or "assistant"
    content: str
    timestamp: str
    metadata: Optional[Dict] = None

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "Message":
        return cls(**data)


class ConversationStore:
    """
    Stores and retrieves conversation history

    Uses a Redis list per session (trimmed to `max_messages`, expiring
    after `ttl_hours`). Falls back to in-memory storage if Redis is
    unavailable.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        ttl_hours: int = 24,
        max_messages: int = 20,
        timeout_ms: int = 500,
    ):
        """
        Initialize conversation store

        Args:
            redis_client: Connected async Redis client, or None for memory only
            ttl_hours: Hours to keep conversation history
            max_messages: Messages kept per session
            timeout_ms: Deadline for each Redis call
        """
        self.redis_client = redis_client
        self.ttl = timedelta(hours=ttl_hours)
        self.max_messages = max_messages
        self.timeout_ms = timeout_ms

        # Fallback in-memory storage
        self.memory_store: Dict[str, List[Message]] = {}

    def _get_key(self, session_id: str) -> str:
        """Generate Redis key for a session"""
        return f"conversation:{session_id}"

    def _remember(self, message: Message):
        messages = self.memory_store.setdefault(message.session_id, [])
        messages.append(message)
        del messages[:-self.max_messages]

    async def save_message(
        self,
        session_id: str,
        role: str,
        content: str,
        metadata: Optional[Dict] = None
    ) -> Message:
        """
        Save a message to conversation history

        Args:
            session_id: Session identifier
            role: "user" or "assistant"
            content: Message content
            metadata: Optional metadata

        Returns:
            Saved Message object
        """
        message = Message(
            session_id=session_id,
            role=role,
            content=content,
            timestamp=datetime.now().isoformat(),
            metadata=metadata
        )

        if self.redis_client is None:
            self._remember(message)
            logger.debug(f"Saved message to memory: session={session_id}")
            return message

        try:
            key = self._get_key(session_id)
            await with_timeout(self.redis_client.rpush(key, json.dumps(message.to_dict())), self.timeout_ms, "history.rpush")
            await with_timeout(self.redis_client.ltrim(key, -self.max_messages, -1), self.timeout_ms, "history.ltrim")
            await with_timeout(self.redis_client.expire(key, int(self.ttl.total_seconds())), self.timeout_ms, "history.expire")
            logger.debug(f"Saved message to Redis: session={session_id}")
        except _REDIS_ERRORS as e:
            logger.error(f"Error saving message: {e}")
            # Fallback to memory on error
            self._remember(message)
        return message

    async def get_history(
        self,
        session_id: str,
        limit: int = 20
    ) -> List[Dict]:
        """
        Get conversation history for a session

        Args:
            session_id: Session identifier
            limit: Maximum messages to retrieve

        Returns:
            List of message dicts (oldest first)
        """
        if self.redis_client is not None:
            try:
                key = self._get_key(session_id)
                messages = await with_timeout(self.redis_client.lrange(key, -limit, -1), self.timeout_ms, "history.lrange")
                if messages:
                    return [json.loads(m) for m in messages]
            except _REDIS_ERRORS as e:
                logger.error(f"Error getting history: {e}")

        messages = self.memory_store.get(session_id, [])
        return [m.to_dict() for m in messages[-limit:]]

    async def get_recent_messages(
        self,
        session_id: str,
        count: int = 10
    ) -> List[Dict]:
        """
        Get most recent messages for a session, as {"role", "content"} pairs
        ready for a chat completion
        """
        history = await self.get_history(session_id, limit=count)
        return [{"role": m["role"], "content": m["content"]} for m in history]

    async def clear_session(self, session_id: str):
        """
        Clear all messages for a session

        Args:
            session_id: Session to clear
        """
        if self.redis_client is not None:
            try:
                await with_timeout(self.redis_client.delete(self._get_key(session_id)), self.timeout_ms, "history.delete")
            except _REDIS_ERRORS as e:
                logger.error(f"Error clearing session: {e}")

        self.memory_store.pop(session_id, None)
        logger.info(f"Cleared session: {session_id}")
