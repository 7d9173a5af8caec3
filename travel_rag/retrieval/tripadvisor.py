"""
TripAdvisor Content API client
Fallback hotel source when the vector index cannot answer
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from ..errors import DependencyError
from ..resilience.rate_limiter import RateLimiter, retry_with_backoff
from ..schemas.ai_schemas import Hotel
from ..utils.hotel_formatting import format_tripadvisor_hotel


class TripAdvisorClient:
    """
    Async client for the TripAdvisor Content API.

    Features:
    - Every request goes through a shared RateLimiter (3 req/s by default)
    - 429 responses retried with backoff, honouring Retry-After
    - Details fetched together for the first `detail_limit` hits only;
      the remaining hits, and any hit whose detail lookup fails, are built
      from the search data alone

    Usage:
        client = TripAdvisorClient(api_key, rate_limiter=RateLimiter(3, 1000))
        hotels = await client.search_by_destination("Cancun", limit=5)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.content.tripadvisor.com/api/v1",
        rate_limiter: Optional[RateLimiter] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        detail_limit: Optional[int] = None,
        request_timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter or RateLimiter(3, 1000)
        self.http = http_client or httpx.AsyncClient(timeout=request_timeout)
        # the search call plus the detail calls must fit in one limiter window
        self.detail_limit = (
            detail_limit if detail_limit is not None else max(1, self.rate_limiter.max_requests - 1)
        )

        if not api_key:
            logger.warning("TripAdvisor API key not found in environment variables")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        async def call():
            response = await self.http.get(
                f"{self.base_url}{path}",
                params={"key": self.api_key, "language": "en", **params},
                headers={"accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()

        return await retry_with_backoff(lambda: self.rate_limiter.schedule(call))

    async def search_location(self, query: str, category: str = "hotels") -> List[Dict[str, Any]]:
        data = await self._get("/location/search", {"searchQuery": query, "category": category})
        return data.get("data") or []

    async def location_details(self, location_id: str) -> Dict[str, Any]:
        return await self._get(f"/location/{location_id}/details", {"currency": "USD"})

    async def search_by_destination(self, name: str, limit: int = 5) -> List[Hotel]:
        """
        Hotels for a destination

        Args:
            name: Destination name, e.g. "Cancun"
            limit: Maximum hotels to return

        Returns:
            List[Hotel]: Possibly empty

        Raises:
            DependencyError: Key missing, or the search request failed
        """
        if not self.configured:
            raise DependencyError("tripadvisor", "API key not configured")

        try:
            hits = await self.search_location(f"hotels in {name}, Mexico")
        except (httpx.HTTPError, ValueError) as e:
            raise DependencyError("tripadvisor", f"search failed: {e}") from e

        hits = hits[:limit]
        detailed = hits[:self.detail_limit]
        hotels: List[Hotel] = list(
            await asyncio.gather(*(self._hotel_with_details(hit, i) for i, hit in enumerate(detailed)))
        )
        for i, hit in enumerate(hits[len(detailed):], start=len(detailed)):
            hotels.append(format_tripadvisor_hotel(hit, None, i))

        logger.info(f"TripAdvisor returned {len(hotels)} hotels for {name} ({len(detailed)} with details)")
        return hotels

    async def _hotel_with_details(self, hit: Dict[str, Any], index: int) -> Hotel:
        location_id = hit.get("location_id")
        details = None
        if location_id:
            try:
                details = await self.location_details(str(location_id))
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Error fetching details for hotel {hit.get('name')}: {e}")
        return format_tripadvisor_hotel(hit, details, index)

    async def close(self):
        await self.http.aclose()
