from __future__ import annotations

from typing import Protocol

from app.domain.entities.outcome import Outcome
from app.domain.entities.position import (
    ClassicPosition,
    DepositorMapping,
    IndexedPosition,
    StakerTransfer,
)


class PositionIndexerPort(Protocol):
    @property
    def is_configured(self) -> bool:
        ...

    def positions_by_owner(self, *, owners: list[str]) -> Outcome[list[IndexedPosition]]:
        ...

    def positions_by_ids(self, *, token_ids: list[str]) -> Outcome[list[IndexedPosition]]:
        ...

    def discover_stakers(self) -> Outcome[list[str]]:
        ...

    def stake_records(self, *, owners: list[str]) -> Outcome[DepositorMapping]:
        ...

    def staker_transfers(
        self,
        *,
        froms: list[str],
        tos: list[str],
    ) -> Outcome[list[StakerTransfer]]:
        ...


class ClassicIndexerPort(Protocol):
    @property
    def is_configured(self) -> bool:
        ...

    def positions_by_owner(self, *, owners: list[str]) -> Outcome[list[ClassicPosition]]:
        ...
