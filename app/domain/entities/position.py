from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal


PositionKind = Literal["SLIPSTREAM", "SOLIDLY"]
RangeStatus = Literal["IN", "OUT", "-"]

# token id -> depositor wallet (lowercase)
DepositorMapping = dict[str, str]


@dataclass(frozen=True)
class TokenMeta:
    address: str
    symbol: str
    decimals: int | None


@dataclass(frozen=True)
class AmountPair:
    token0: str
    token1: str


@dataclass(frozen=True)
class Emissions:
    token: str
    amount: str


@dataclass(frozen=True)
class TickRange:
    tick_lower: int | None
    tick_upper: int | None
    current_tick: int | None
    status: RangeStatus


@dataclass(frozen=True)
class IndexedPosition:
    """Concentrated liquidity position as read from the indexer or the chain."""

    token_id: str
    owner: str
    pool_id: str | None
    token0: TokenMeta
    token1: TokenMeta
    liquidity: int | None
    tick_lower: int | None
    tick_upper: int | None
    current_tick: int | None
    sqrt_price_x96: int | None = None
    deposited: AmountPair | None = None
    collected_fees: AmountPair | None = None


@dataclass(frozen=True)
class ClassicPosition:
    owner: str
    pool_id: str
    token0: TokenMeta
    token1: TokenMeta
    balance: Decimal
    total_supply: Decimal | None
    reserve0: Decimal | None
    reserve1: Decimal | None


@dataclass(frozen=True)
class StakerTransfer:
    token_id: str
    from_address: str
    to_address: str
    block_number: int | None


@dataclass(frozen=True)
class PositionRow:
    kind: PositionKind
    owner: str
    token_id: str
    pool_id: str | None
    token0: TokenMeta
    token1: TokenMeta
    deposited: AmountPair | None
    current: AmountPair | None
    fees: AmountPair | None
    emissions: Emissions | None
    range: TickRange
    staked: bool
