from __future__ import annotations

from decimal import Decimal

from app.domain.services.univ3_math import scale_raw_amount


def format_decimal(value: Decimal) -> str:
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def position_amounts_v3(
    *,
    liquidity: int,
    sqrt_price_current: Decimal,
    sqrt_price_lower: Decimal,
    sqrt_price_upper: Decimal,
    token0_decimals: int,
    token1_decimals: int,
) -> tuple[Decimal, Decimal]:
    if liquidity <= 0:
        return Decimal("0"), Decimal("0")
    if sqrt_price_current <= 0 or sqrt_price_lower <= 0 or sqrt_price_upper <= 0:
        return Decimal("0"), Decimal("0")
    if sqrt_price_lower >= sqrt_price_upper:
        return Decimal("0"), Decimal("0")

    liq = Decimal(liquidity)
    sp = sqrt_price_current
    sa = sqrt_price_lower
    sb = sqrt_price_upper

    if sp <= sa:
        amount0_raw = liq * (sb - sa) / (sa * sb)
        amount1_raw = Decimal("0")
    elif sp >= sb:
        amount0_raw = Decimal("0")
        amount1_raw = liq * (sb - sa)
    else:
        amount0_raw = liq * (sb - sp) / (sp * sb)
        amount1_raw = liq * (sp - sa)

    return (
        scale_raw_amount(amount0_raw, token0_decimals),
        scale_raw_amount(amount1_raw, token1_decimals),
    )


def classic_share_amounts(
    *,
    balance: Decimal,
    total_supply: Decimal,
    reserve0: Decimal,
    reserve1: Decimal,
) -> tuple[Decimal, Decimal]:
    if balance <= 0 or total_supply <= 0:
        return Decimal("0"), Decimal("0")
    share = balance / total_supply
    return reserve0 * share, reserve1 * share
