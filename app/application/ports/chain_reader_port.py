from __future__ import annotations

from typing import Protocol

from app.domain.entities.position import IndexedPosition, StakerTransfer, TokenMeta


class ChainReaderPort(Protocol):
    @property
    def is_configured(self) -> bool:
        ...

    def latest_block(self) -> int:
        ...

    def transfer_logs(
        self,
        *,
        from_block: int,
        to_block: int,
        froms: list[str],
        tos: list[str],
    ) -> list[StakerTransfer]:
        ...

    def read_position(self, *, token_id: str) -> IndexedPosition:
        ...

    def token_meta(self, *, address: str) -> TokenMeta:
        ...

    def accrued_fees(self, *, token_id: str, owner: str) -> tuple[int, int]:
        ...

    def earned_emissions(self, *, gauge: str, account: str, token_id: str) -> tuple[str, int]:
        ...
