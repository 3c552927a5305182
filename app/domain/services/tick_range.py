from __future__ import annotations

from typing import Any

from app.domain.entities.position import RangeStatus, TickRange


def to_int_or_none(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


def range_status(
    tick_lower: int | None,
    tick_upper: int | None,
    current_tick: int | None,
) -> RangeStatus:
    if tick_lower is None or tick_upper is None or current_tick is None:
        return "-"
    if tick_lower <= current_tick <= tick_upper:
        return "IN"
    return "OUT"


def build_tick_range(tick_lower: Any, tick_upper: Any, current_tick: Any) -> TickRange:
    lower = to_int_or_none(tick_lower)
    upper = to_int_or_none(tick_upper)
    current = to_int_or_none(current_tick)
    return TickRange(
        tick_lower=lower,
        tick_upper=upper,
        current_tick=current,
        status=range_status(lower, upper, current),
    )
