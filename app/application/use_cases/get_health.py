from __future__ import annotations

from app.application.dto.health import HealthOutput
from app.shared.config import Settings


class GetHealthUseCase:
    def __init__(self, *, settings: Settings):
        self._settings = settings

    def execute(self) -> HealthOutput:
        rpc_url = self._settings.base_rpc_url
        return HealthOutput(
            has_solidly=bool(self._settings.solidly_subgraph_url),
            has_slipstream=bool(self._settings.slipstream_subgraph_url),
            has_gauges=bool(self._settings.gauges_subgraph_url),
            has_key=bool(self._settings.subgraph_api_key),
            rpc=f"{rpc_url[:30]}..." if rpc_url else None,
        )
