from __future__ import annotations

from dataclasses import dataclass, field

from app.domain.entities.position import PositionRow


@dataclass(frozen=True)
class ListPositionsInput:
    addresses: list[str]
    token_ids: list[str] = field(default_factory=list)
    start_block: int | None = None
    window: int | None = None
    max_lookback: int | None = None
    assume: bool = False
    assume_owner: str | None = None


@dataclass(frozen=True)
class ListPositionsOutput:
    items: list[PositionRow]
    notes: list[str]
