from __future__ import annotations

import logging
from threading import Lock
import time
from typing import Any

import httpx

from app.domain.exceptions import PriceFeedNetworkError, PriceFeedUpstreamError


logger = logging.getLogger(__name__)


class CoingeckoPriceProvider:
    def __init__(
        self,
        api_base: str,
        timeout_seconds: float,
        cache_ttl_seconds: float = 60,
        api_key: str = "",
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout_seconds
        self.cache_ttl_seconds = cache_ttl_seconds
        self.api_key = api_key
        self._transport = transport
        self._cache: dict[str, tuple[float, dict[str, Any]]] = {}
        self._lock = Lock()

    def _cache_get(self, ids: str) -> dict[str, Any] | None:
        if self.cache_ttl_seconds <= 0:
            return None
        now = time.monotonic()
        with self._lock:
            cached = self._cache.get(ids)
            if cached is None:
                return None
            expires_at, value = cached
            if expires_at <= now:
                self._cache.pop(ids, None)
                return None
            return value

    def _cache_set(self, ids: str, value: dict[str, Any]) -> None:
        if self.cache_ttl_seconds <= 0:
            return
        expires_at = time.monotonic() + self.cache_ttl_seconds
        with self._lock:
            self._cache[ids] = (expires_at, value)

    def simple_prices(self, *, ids: str) -> dict[str, Any]:
        cached = self._cache_get(ids)
        if cached is not None:
            return cached

        headers = {"x-cg-pro-api-key": self.api_key} if self.api_key else {}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(
                    f"{self.api_base}/simple/price",
                    params={"ids": ids, "vs_currencies": "usd"},
                    headers=headers,
                )
                if not response.is_success:
                    logger.warning(
                        "coingecko_price_provider: upstream_error status=%s ids=%s",
                        response.status_code,
                        ids,
                    )
                    raise PriceFeedUpstreamError(
                        "coingecko error",
                        status_code=response.status_code,
                    )
                payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning("coingecko_price_provider: network_error ids=%s error=%s", ids, exc)
            raise PriceFeedNetworkError("network error") from exc
        except ValueError as exc:
            raise PriceFeedNetworkError("network error") from exc

        self._cache_set(ids, payload)
        return payload
