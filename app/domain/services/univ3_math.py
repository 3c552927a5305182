from __future__ import annotations

import math
from decimal import Decimal


LOG_BASE = math.log(1.0001)
Q96 = Decimal(2) ** 96
MAX_UINT128 = 2**128 - 1


def tick_to_sqrt_price(tick: int | float) -> Decimal:
    return Decimal(str(math.exp(float(tick) * LOG_BASE / 2.0)))


def sqrt_price_x96_to_sqrt_price(sqrt_price_x96: int) -> Decimal:
    if sqrt_price_x96 <= 0:
        raise ValueError("Invalid sqrt_price_x96.")
    return Decimal(sqrt_price_x96) / Q96


def current_sqrt_price(*, sqrt_price_x96: int | None, current_tick: int | None) -> Decimal | None:
    """Prefer the exact pool sqrt price; fall back to the tick approximation."""
    if sqrt_price_x96:
        return sqrt_price_x96_to_sqrt_price(int(sqrt_price_x96))
    if current_tick is not None:
        return tick_to_sqrt_price(current_tick)
    return None


def scale_raw_amount(amount_raw: int | Decimal, decimals: int) -> Decimal:
    return Decimal(amount_raw) / (Decimal(10) ** Decimal(decimals))
