from __future__ import annotations

import logging

from app.application.ports.chain_reader_port import ChainReaderPort
from app.application.ports.position_indexer_port import PositionIndexerPort
from app.domain.entities.outcome import Outcome
from app.domain.entities.position import DepositorMapping, StakerTransfer
from app.domain.exceptions import ChainReadError


logger = logging.getLogger(__name__)


def _newest_first(transfers: list[StakerTransfer]) -> list[StakerTransfer]:
    return sorted(transfers, key=lambda row: row.block_number or 0, reverse=True)


def _first_depositor_per_token(
    transfers: list[StakerTransfer],
    *,
    owners: set[str],
) -> DepositorMapping:
    mapping: DepositorMapping = {}
    for transfer in transfers:
        depositor = transfer.from_address.lower()
        if not transfer.token_id or depositor not in owners:
            continue
        mapping.setdefault(transfer.token_id, depositor)
    return mapping


class StakeRecordStrategy:
    name = "stake records"

    def __init__(self, *, indexer: PositionIndexerPort, owners: list[str]):
        self._indexer = indexer
        self._owners = owners

    def resolve(self, *, pending: frozenset[str]) -> Outcome[DepositorMapping]:
        _ = pending
        outcome = self._indexer.stake_records(owners=self._owners)
        if not outcome.has_value or outcome.value is None:
            return outcome
        owners = set(self._owners)
        mapping = {
            token_id: depositor
            for token_id, depositor in outcome.value.items()
            if depositor in owners
        }
        return Outcome.of(mapping, source=outcome.source)


class TransferHistoryStrategy:
    name = "transfer history"

    def __init__(
        self,
        *,
        indexer: PositionIndexerPort,
        owners: list[str],
        stakers: list[str],
    ):
        self._indexer = indexer
        self._owners = owners
        self._stakers = stakers

    def resolve(self, *, pending: frozenset[str]) -> Outcome[DepositorMapping]:
        _ = pending
        if not self._stakers:
            return Outcome.failed("no stakers known")
        outcome = self._indexer.staker_transfers(froms=self._owners, tos=self._stakers)
        if not outcome.ok or outcome.value is None:
            return Outcome.failed(outcome.reason or "no result", source=outcome.source)
        mapping = _first_depositor_per_token(
            _newest_first(outcome.value),
            owners=set(self._owners),
        )
        return Outcome.of(mapping, source=outcome.source)


class LogScanStrategy:
    """Walk ERC-721 Transfer logs backward from the head in fixed windows."""

    name = "log scan"

    def __init__(
        self,
        *,
        chain: ChainReaderPort,
        owners: list[str],
        stakers: list[str],
        start_block: int | None,
        window: int,
        max_lookback: int,
    ):
        self._chain = chain
        self._owners = owners
        self._stakers = stakers
        self._start_block = start_block
        self._window = max(1, window)
        self._max_lookback = max(0, max_lookback)
        self.scanned_windows = 0
        self.skipped_windows = 0

    def resolve(self, *, pending: frozenset[str]) -> Outcome[DepositorMapping]:
        if not self._stakers:
            return Outcome.failed("no stakers known")
        if not self._chain.is_configured:
            return Outcome.failed("BASE_RPC_URL missing")
        try:
            latest = self._chain.latest_block()
        except ChainReadError as exc:
            return Outcome.failed(f"latest block unavailable: {exc}")

        head = latest if self._start_block is None else min(self._start_block, latest)
        floor = max(0, head - self._max_lookback + 1)
        owners = set(self._owners)
        mapping: DepositorMapping = {}

        to_block = head
        while to_block >= floor and self._max_lookback > 0:
            from_block = max(floor, to_block - self._window + 1)
            self.scanned_windows += 1
            try:
                transfers = self._chain.transfer_logs(
                    from_block=from_block,
                    to_block=to_block,
                    froms=self._owners,
                    tos=self._stakers,
                )
            except ChainReadError as exc:
                self.skipped_windows += 1
                logger.debug(
                    "log_scan_strategy: window_skipped from_block=%s to_block=%s error=%s",
                    from_block,
                    to_block,
                    exc,
                )
            else:
                for token_id, depositor in _first_depositor_per_token(
                    _newest_first(transfers),
                    owners=owners,
                ).items():
                    mapping.setdefault(token_id, depositor)

            if pending and pending <= mapping.keys():
                break
            to_block = from_block - 1

        logger.info(
            "log_scan_strategy: done head=%s floor=%s windows=%s skipped=%s matches=%s",
            head,
            floor,
            self.scanned_windows,
            self.skipped_windows,
            len(mapping),
        )
        return Outcome.of(mapping, source=f"blocks {floor}-{head}")


class AssumeOwnerStrategy:
    name = "assume"

    def __init__(self, *, owner: str):
        self._owner = owner

    def resolve(self, *, pending: frozenset[str]) -> Outcome[DepositorMapping]:
        if not pending:
            return Outcome.of({}, source=self._owner)
        return Outcome.of({token_id: self._owner for token_id in sorted(pending)}, source=self._owner)
