# interfaces/session_store.py
"""
Session State Management
Remembers each chat session's destination and the hotels shown so far
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Dict, Any, List

import redis.asyncio as redis
from redis.exceptions import RedisError
from loguru import logger

from ..cache.lru import LRUCache
from ..errors import OperationTimeoutError
from ..resilience.timeout import with_timeout
from ..retrieval.locations import Destination
from ..schemas.ai_schemas import Hotel

_REDIS_ERRORS = (RedisError, OSError, OperationTimeoutError)


@dataclass
class SessionState:
    """Per-session conversational state"""
    session_id: str
    current_location: Optional[Dict[str, Any]] = None
    location_history: List[Dict[str, Any]] = field(default_factory=list)
    hotels: List[Dict[str, Any]] = field(default_factory=list)
    turns: int = 0
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    @property
    def location_name(self) -> Optional[str]:
        return self.current_location.get("normalized") if self.current_location else None

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "SessionState":
        return cls(**data)


class SessionStore:
    """
    Session state container.

    Stored in Redis (one JSON document per session, expiring after
    `ttl_hours`) and mirrored in memory so a Redis outage only loses
    cross-process sharing, not the session.

    Features:
    - Current destination plus the last `location_history_size` previous ones
    - A destination change clears the hotels accumulated for the old one
    - Hotels de-duplicated by id or case-insensitive name, last `max_hotels` kept
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        ttl_hours: int = 24,
        max_hotels: int = 20,
        location_history_size: int = 5,
        timeout_ms: int = 500,
        max_sessions: int = 10000,
    ):
        self.redis_client = redis_client
        self.ttl_seconds = ttl_hours * 3600
        self.max_hotels = max_hotels
        self.location_history_size = location_history_size
        self.timeout_ms = timeout_ms
        self._memory_store: LRUCache[str, SessionState] = LRUCache(max_sessions)

    def _get_key(self, session_id: str) -> str:
        return f"session:{session_id}"

    async def get_session(self, session_id: str) -> SessionState:
        """Existing session state, or a fresh one (not yet saved)"""
        if self.redis_client is not None:
            try:
                data = await with_timeout(
                    self.redis_client.get(self._get_key(session_id)), self.timeout_ms, "session.get"
                )
                if data:
                    return SessionState.from_dict(json.loads(data))
            except _REDIS_ERRORS as e:
                logger.error(f"Redis get error: {e}")
            except (TypeError, ValueError) as e:
                logger.warning(f"Discarding unreadable session {session_id}: {e}")

        state = self._memory_store.get(session_id)
        return state if state is not None else SessionState(session_id=session_id)

    async def save_session(self, state: SessionState):
        state.updated_at = datetime.utcnow().isoformat()
        self._memory_store.set(state.session_id, state)

        if self.redis_client is not None:
            try:
                await with_timeout(
                    self.redis_client.setex(
                        self._get_key(state.session_id), self.ttl_seconds, json.dumps(state.to_dict())
                    ),
                    self.timeout_ms,
                    "session.save",
                )
            except _REDIS_ERRORS as e:
                logger.error(f"Redis save error: {e}")

    def update_location(self, state: SessionState, destination: Destination) -> bool:
        """
        Make `destination` the session's current location.

        Returns:
            bool: True if the location changed (accumulated hotels are cleared)
        """
        if state.current_location and state.current_location.get("normalized") == destination.normalized:
            return False

        if state.current_location:
            previous = dict(state.current_location, used_at=state.updated_at)
            state.location_history = [previous] + state.location_history
            state.location_history = state.location_history[:self.location_history_size]
            state.hotels = []

        state.current_location = destination.to_dict()
        logger.info(f"Location context updated for session {state.session_id}: {destination.normalized}")
        return True

    def add_hotels(self, state: SessionState, hotels: List[Hotel]) -> int:
        """
        Accumulate hotels shown in this session.

        Returns:
            int: Number of hotels that were new to the session
        """
        seen_ids = {h.get("id") for h in state.hotels}
        seen_names = {(h.get("name") or "").lower() for h in state.hotels}
        added = 0
        for hotel in hotels:
            name = hotel.name.lower()
            if hotel.id in seen_ids or (name and name in seen_names):
                continue
            state.hotels.append(hotel.to_payload())
            seen_ids.add(hotel.id)
            seen_names.add(name)
            added += 1

        if len(state.hotels) > self.max_hotels:
            state.hotels = state.hotels[-self.max_hotels:]
        if added:
            logger.debug(f"Added {added} new hotels to session {state.session_id}")
        return added

    async def delete_session(self, session_id: str):
        """Delete a session"""
        if self.redis_client is not None:
            try:
                await with_timeout(
                    self.redis_client.delete(self._get_key(session_id)), self.timeout_ms, "session.delete"
                )
            except _REDIS_ERRORS as e:
                logger.error(f"Redis delete error: {e}")

        self._memory_store.pop(session_id)
        logger.info(f"Deleted session: {session_id}")

    def __len__(self) -> int:
        return len(self._memory_store)
