from __future__ import annotations

from typing import Any, Protocol


class PriceFeedPort(Protocol):
    def simple_prices(self, *, ids: str) -> dict[str, Any]:
        ...
