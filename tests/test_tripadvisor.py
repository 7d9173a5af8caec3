"""
Tests for the TripAdvisor client against an httpx.MockTransport.
"""

import asyncio

import httpx
import pytest

from travel_rag.errors import DependencyError
from travel_rag.resilience.rate_limiter import RateLimiter
from travel_rag.retrieval.tripadvisor import TripAdvisorClient
from travel_rag.schemas.ai_schemas import HotelSource

SEARCH_HITS = [
    {"location_id": "101", "name": "Hotel Riu Cancun", "address_obj": {"city": "Cancun", "state": "Quintana Roo"}},
    {"location_id": "102", "name": "Hyatt Ziva", "address_obj": {"city": "Cancun", "state": "Quintana Roo"}},
    {"location_id": "103", "name": "Nizuc Resort", "address_obj": {"city": "Cancun", "state": "Quintana Roo"}},
]


def make_client(handler, api_key="ta-key"):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TripAdvisorClient(
        api_key,
        base_url="https://api.tripadvisor.test/api/v1",
        rate_limiter=RateLimiter(10, 1),
        http_client=http,
    )


class TestTripAdvisorClient:
    async def test_search_by_destination(self):
        seen = []

        def handler(request: httpx.Request):
            seen.append(request)
            path = request.url.path
            if path.endswith("/location/search"):
                return httpx.Response(200, json={"data": SEARCH_HITS})
            if path.endswith("/location/101/details"):
                return httpx.Response(200, json={
                    "name": "Hotel Riu Cancun",
                    "rating": "4.5",
                    "num_reviews": "2310",
                    "price_level": "$$$",
                    "web_url": "https://www.tripadvisor.com/riu",
                    "address_obj": {"city": "Cancun", "state": "Quintana Roo", "address_string": "Blvd. Kukulcan"},
                })
            return httpx.Response(500)

        client = make_client(handler)
        hotels = await client.search_by_destination("Cancun", limit=3)
        await client.close()

        assert [h.id for h in hotels] == ["101", "102", "103"]
        assert all(h.source is HotelSource.TRIPADVISOR for h in hotels)
        assert hotels[0].rating == 4.5
        assert hotels[0].review_count == 2310
        assert hotels[0].affiliate_link == "https://www.tripadvisor.com/riu"
        # failed detail lookups still yield the hotel from the search hit
        assert hotels[1].name == "Hyatt Ziva"
        assert 3.5 <= hotels[1].rating <= 4.9

        search = seen[0]
        assert search.url.params["key"] == "ta-key"
        assert search.url.params["searchQuery"] == "hotels in Cancun, Mexico"
        assert search.url.params["category"] == "hotels"

    async def test_limit(self):
        def handler(request):
            if request.url.path.endswith("/location/search"):
                return httpx.Response(200, json={"data": SEARCH_HITS})
            return httpx.Response(404)

        client = make_client(handler)
        assert len(await client.search_by_destination("Cancun", limit=2)) == 2

    async def test_missing_key(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": []}), api_key="")
        assert not client.configured
        with pytest.raises(DependencyError):
            await client.search_by_destination("Cancun")

    async def test_search_failure(self):
        client = make_client(lambda request: httpx.Response(503))
        with pytest.raises(DependencyError) as exc_info:
            await client.search_by_destination("Cancun")
        assert exc_info.value.dependency == "tripadvisor"

    async def test_no_results(self):
        client = make_client(lambda request: httpx.Response(200, json={"data": []}))
        assert await client.search_by_destination("Nowhere") == []

    async def test_details_only_for_first_hits_within_one_window(self):
        five_hits = SEARCH_HITS + [
            {"location_id": "104", "name": "Le Blanc Spa Resort", "address_obj": {"city": "Cancun"}},
            {"location_id": "105", "name": "Breathless Cancun", "address_obj": {"city": "Cancun"}},
        ]
        detail_paths = []

        def handler(request):
            if request.url.path.endswith("/location/search"):
                return httpx.Response(200, json={"data": five_hits})
            detail_paths.append(request.url.path)
            return httpx.Response(200, json={"rating": "4.8", "num_reviews": "900"})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = TripAdvisorClient(
            "ta-key",
            base_url="https://api.tripadvisor.test/api/v1",
            rate_limiter=RateLimiter(3, 1000),
            http_client=http,
        )
        loop = asyncio.get_running_loop()
        started = loop.time()
        hotels = await client.search_by_destination("Cancun", limit=5)
        elapsed = loop.time() - started
        await client.close()

        assert client.detail_limit == 2
        assert sorted(detail_paths) == [
            "/api/v1/location/101/details",
            "/api/v1/location/102/details",
        ]
        assert [h.id for h in hotels] == ["101", "102", "103", "104", "105"]
        assert hotels[0].rating == 4.8
        assert hotels[4].name == "Breathless Cancun"
        # search plus details fit in the limiter's first window
        assert elapsed < 0.5
