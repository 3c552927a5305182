from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_solidly: bool = Field(..., alias="hasSolidly")
    has_slipstream: bool = Field(..., alias="hasSlipstream")
    has_gauges: bool = Field(..., alias="hasGauges")
    has_key: bool = Field(..., alias="hasKey")
    rpc: str | None = Field(None, description="Truncated RPC URL.")
