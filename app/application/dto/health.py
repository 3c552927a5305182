from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class HealthOutput:
    has_solidly: bool
    has_slipstream: bool
    has_gauges: bool
    has_key: bool
    rpc: str | None
