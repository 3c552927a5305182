from __future__ import annotations

from typing import Any

from app.application.ports.price_feed_port import PriceFeedPort
from app.domain.exceptions import PricesInputError


class GetPricesUseCase:
    def __init__(self, *, price_feed_port: PriceFeedPort):
        self._price_feed_port = price_feed_port

    def execute(self, *, ids: str | None) -> dict[str, Any]:
        normalized = ",".join(part.strip() for part in (ids or "").split(",") if part.strip())
        if not normalized:
            raise PricesInputError("ids required")
        return self._price_feed_port.simple_prices(ids=normalized)
