from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_prices_use_case
from app.application.use_cases.get_prices import GetPricesUseCase
from app.domain.exceptions import PriceFeedNetworkError, PriceFeedUpstreamError, PricesInputError
from app.infrastructure.clients.pricing import CoingeckoPriceProvider
from app.main import app


API_BASE = "https://api.coingecko.example/api/v3"


class FakePriceFeed:
    def __init__(self, *, payload=None, error: Exception | None = None):
        self.payload = payload or {}
        self.error = error
        self.calls: list[str] = []

    def simple_prices(self, *, ids: str):
        self.calls.append(ids)
        if self.error is not None:
            raise self.error
        return self.payload


def _client(feed: FakePriceFeed) -> TestClient:
    app.dependency_overrides[get_prices_use_case] = lambda: GetPricesUseCase(price_feed_port=feed)
    return TestClient(app)


def test_prices_passes_upstream_body_through():
    feed = FakePriceFeed(payload={"ethereum": {"usd": 3150.12}})

    response = _client(feed).get("/api/prices", params={"ids": " ethereum, ,aerodrome-finance "})

    assert response.status_code == 200
    assert response.json() == {"ethereum": {"usd": 3150.12}}
    assert response.headers["cache-control"] == "public, max-age=60"
    assert feed.calls == ["ethereum,aerodrome-finance"]

    app.dependency_overrides.clear()


def test_prices_requires_ids():
    response = _client(FakePriceFeed()).get("/api/prices", params={"ids": " , "})

    assert response.status_code == 400
    assert response.json() == {"error": "ids required"}

    app.dependency_overrides.clear()


def test_prices_maps_upstream_status_to_502():
    feed = FakePriceFeed(error=PriceFeedUpstreamError("coingecko error", status_code=429))

    response = _client(feed).get("/api/prices", params={"ids": "ethereum"})

    assert response.status_code == 502
    assert response.json() == {"error": "coingecko error", "status": 429}

    app.dependency_overrides.clear()


def test_prices_maps_network_failure_to_500():
    feed = FakePriceFeed(error=PriceFeedNetworkError("network error"))

    response = _client(feed).get("/api/prices", params={"ids": "ethereum"})

    assert response.status_code == 500
    assert response.json() == {"error": "network error"}

    app.dependency_overrides.clear()


def test_get_prices_use_case_rejects_missing_ids():
    with pytest.raises(PricesInputError):
        GetPricesUseCase(price_feed_port=FakePriceFeed()).execute(ids=None)


def test_provider_requests_usd_prices_and_caches():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ethereum": {"usd": 1}})

    provider = CoingeckoPriceProvider(
        api_base=API_BASE + "/",
        timeout_seconds=5,
        api_key="pro-key",
        transport=httpx.MockTransport(handler),
    )

    first = provider.simple_prices(ids="ethereum")
    second = provider.simple_prices(ids="ethereum")

    assert first == second == {"ethereum": {"usd": 1}}
    assert len(requests) == 1
    assert requests[0].url.path == "/api/v3/simple/price"
    assert requests[0].url.params["ids"] == "ethereum"
    assert requests[0].url.params["vs_currencies"] == "usd"
    assert requests[0].headers["x-cg-pro-api-key"] == "pro-key"


def test_provider_raises_upstream_error_with_status():
    provider = CoingeckoPriceProvider(
        api_base=API_BASE,
        timeout_seconds=5,
        transport=httpx.MockTransport(lambda request: httpx.Response(429, json={"status": "rate limited"})),
    )

    with pytest.raises(PriceFeedUpstreamError) as exc_info:
        provider.simple_prices(ids="ethereum")

    assert exc_info.value.status_code == 429


def test_provider_raises_network_error_on_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = CoingeckoPriceProvider(
        api_base=API_BASE,
        timeout_seconds=5,
        cache_ttl_seconds=0,
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(PriceFeedNetworkError):
        provider.simple_prices(ids="ethereum")
