from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenMetaResponse(BaseModel):
    id: str = Field(..., description="Token contract address (lowercase).")
    symbol: str
    decimals: int | None = None


class AmountPairResponse(BaseModel):
    token0: str
    token1: str


class EmissionsResponse(BaseModel):
    token: str = Field(..., description="Reward token symbol.")
    amount: str


class RangeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tick_lower: int | None = Field(None, alias="tickLower")
    tick_upper: int | None = Field(None, alias="tickUpper")
    current_tick: int | None = Field(None, alias="currentTick")
    status: Literal["IN", "OUT", "-"] = Field(
        "-",
        description="IN when tickLower <= currentTick <= tickUpper, '-' when a tick is unknown.",
    )


class PositionRowResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["SLIPSTREAM", "SOLIDLY"]
    owner: str = Field(..., description="Wallet; for staked rows the depositor, not the gauge.")
    token_id: str = Field(..., alias="tokenId")
    pool_id: str | None = Field(None, alias="poolId")
    token0: TokenMetaResponse
    token1: TokenMetaResponse
    deposited: AmountPairResponse | None = None
    current: AmountPairResponse | None = None
    fees: AmountPairResponse | None = None
    emissions: EmissionsResponse | None = None
    range: RangeResponse
    staked: bool


class PositionsResponse(BaseModel):
    items: list[PositionRowResponse]
    notes: list[str]
