from __future__ import annotations

from dataclasses import replace
import logging

from app.application.dto.positions import ListPositionsInput, ListPositionsOutput
from app.application.ports.chain_reader_port import ChainReaderPort
from app.application.ports.position_indexer_port import ClassicIndexerPort, PositionIndexerPort
from app.application.use_cases.depositor_strategies import (
    AssumeOwnerStrategy,
    LogScanStrategy,
    StakeRecordStrategy,
    TransferHistoryStrategy,
)
from app.domain.entities.position import (
    AmountPair,
    ClassicPosition,
    DepositorMapping,
    Emissions,
    IndexedPosition,
    PositionRow,
    TickRange,
    TokenMeta,
)
from app.domain.exceptions import ChainReadError
from app.domain.services.depositor_resolution import (
    DepositorStrategy,
    ResolutionResult,
    resolve_depositors,
)
from app.domain.services.liquidity import (
    classic_share_amounts,
    format_decimal,
    position_amounts_v3,
)
from app.domain.services.tick_range import build_tick_range
from app.domain.services.univ3_math import current_sqrt_price, scale_raw_amount, tick_to_sqrt_price


logger = logging.getLogger(__name__)

USAGE_NOTE = "Pass addresses[]=0x..."
MISSING_INDEXER_NOTE = "AERO_SLIPSTREAM_SUBGRAPH missing."
NO_STAKERS_NOTE = (
    "No stakers found in subgraph. "
    "(Set SLIPSTREAM_STAKERS=0xGaugeA,0xGaugeB to include gauge-owned NFTs.)"
)


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def normalize_addresses(addresses: list[str]) -> list[str]:
    return _unique([(address or "").strip().lower() for address in addresses])


def normalize_token_ids(token_ids: list[str]) -> tuple[list[str], list[str]]:
    valid: list[str] = []
    invalid: list[str] = []
    for raw in token_ids:
        value = (raw or "").strip()
        if not value:
            continue
        if value.isdigit():
            valid.append(str(int(value)))
        else:
            invalid.append(value)
    return _unique(valid), invalid


def _current_amounts(position: IndexedPosition) -> AmountPair | None:
    decimals0 = position.token0.decimals
    decimals1 = position.token1.decimals
    if (
        position.liquidity is None
        or position.tick_lower is None
        or position.tick_upper is None
        or decimals0 is None
        or decimals1 is None
    ):
        return None
    sqrt_current = current_sqrt_price(
        sqrt_price_x96=position.sqrt_price_x96,
        current_tick=position.current_tick,
    )
    if sqrt_current is None:
        return None
    amount0, amount1 = position_amounts_v3(
        liquidity=position.liquidity,
        sqrt_price_current=sqrt_current,
        sqrt_price_lower=tick_to_sqrt_price(position.tick_lower),
        sqrt_price_upper=tick_to_sqrt_price(position.tick_upper),
        token0_decimals=decimals0,
        token1_decimals=decimals1,
    )
    return AmountPair(token0=format_decimal(amount0), token1=format_decimal(amount1))


def slipstream_row(position: IndexedPosition, *, owner: str, staked: bool) -> PositionRow:
    return PositionRow(
        kind="SLIPSTREAM",
        owner=owner,
        token_id=position.token_id,
        pool_id=position.pool_id,
        token0=position.token0,
        token1=position.token1,
        deposited=position.deposited,
        current=_current_amounts(position),
        fees=position.collected_fees,
        emissions=None,
        range=build_tick_range(position.tick_lower, position.tick_upper, position.current_tick),
        staked=staked,
    )


def classic_row(position: ClassicPosition) -> PositionRow:
    current = None
    if (
        position.total_supply is not None
        and position.reserve0 is not None
        and position.reserve1 is not None
    ):
        amount0, amount1 = classic_share_amounts(
            balance=position.balance,
            total_supply=position.total_supply,
            reserve0=position.reserve0,
            reserve1=position.reserve1,
        )
        current = AmountPair(token0=format_decimal(amount0), token1=format_decimal(amount1))
    return PositionRow(
        kind="SOLIDLY",
        owner=position.owner,
        token_id=position.pool_id,
        pool_id=position.pool_id,
        token0=position.token0,
        token1=position.token1,
        deposited=None,
        current=current,
        fees=None,
        emissions=None,
        range=TickRange(tick_lower=None, tick_upper=None, current_tick=None, status="-"),
        staked=False,
    )


class ListPositionsUseCase:
    def __init__(
        self,
        *,
        indexer: PositionIndexerPort,
        classic_indexer: ClassicIndexerPort,
        chain: ChainReaderPort,
        manual_stakers: tuple[str, ...] = (),
        enrich: bool = True,
        default_window: int = 10000,
        default_max_lookback: int = 500000,
    ):
        self._indexer = indexer
        self._classic_indexer = classic_indexer
        self._chain = chain
        self._manual_stakers = normalize_addresses(list(manual_stakers))
        self._enrich = enrich
        self._default_window = default_window
        self._default_max_lookback = default_max_lookback

    def execute(self, command: ListPositionsInput) -> ListPositionsOutput:
        owners = normalize_addresses(command.addresses)
        assume_owner = (command.assume_owner or "").strip().lower() or None
        if assume_owner and (command.assume or not owners) and assume_owner not in owners:
            owners.append(assume_owner)
        if not owners:
            return ListPositionsOutput(items=[], notes=[USAGE_NOTE])
        if not self._indexer.is_configured:
            return ListPositionsOutput(items=[], notes=[MISSING_INDEXER_NOTE])

        try:
            return self._aggregate(command, owners=owners, assume_owner=assume_owner)
        except Exception as exc:
            logger.exception("list_positions: unexpected_error owners=%s", owners)
            return ListPositionsOutput(items=[], notes=[f"Unexpected error: {exc}"])

    def _aggregate(
        self,
        command: ListPositionsInput,
        *,
        owners: list[str],
        assume_owner: str | None,
    ) -> ListPositionsOutput:
        notes: list[str] = []
        requested_ids, invalid_ids = normalize_token_ids(command.token_ids)
        for value in invalid_ids:
            notes.append(f"Ignored invalid tokenId '{value}'.")

        wallet_outcome = self._indexer.positions_by_owner(owners=owners)
        if not wallet_outcome.ok:
            notes.append(f"Wallet positions query failed: {wallet_outcome.reason}")
        wallet_positions = wallet_outcome.value or []

        stakers = self._discover_stakers(notes)

        resolution = ResolutionResult(mapping={})
        if stakers or requested_ids:
            resolution = self._resolve_depositors(
                command,
                owners=owners,
                stakers=stakers,
                requested_ids=requested_ids,
                assume_owner=assume_owner,
                notes=notes,
            )

        wallet_ids = {position.token_id for position in wallet_positions}
        extra_ids = [
            token_id
            for token_id in _unique(list(resolution.mapping.keys()) + requested_ids)
            if token_id not in wallet_ids
        ]
        rehydrated = self._rehydrate(extra_ids, notes)

        assume_step = resolution.step(AssumeOwnerStrategy.name)
        assumed_ids = set((assume_step.outcome.value or {}).keys()) if assume_step else set()

        rows: list[tuple[PositionRow, str]] = []
        for position in wallet_positions:
            owner = position.owner.lower()
            rows.append((slipstream_row(position, owner=owner, staked=False), owner))

        for token_id in extra_ids:
            position = rehydrated.get(token_id)
            if position is None:
                continue
            holder = position.owner.lower()
            if holder in owners:
                rows.append((slipstream_row(position, owner=holder, staked=False), holder))
                continue
            depositor = resolution.mapping.get(token_id)
            if not depositor or depositor not in owners:
                notes.append(f"tokenId {token_id} is held by {holder or 'unknown'}; no depositor among wallets.")
                continue
            # assumed ids only need a holder outside the wallets
            if token_id not in assumed_ids and holder not in stakers:
                notes.append(f"tokenId {token_id} is no longer held by a known staker; skipped.")
                continue
            rows.append((slipstream_row(position, owner=depositor, staked=True), holder))

        if self._enrich and self._chain.is_configured and rows:
            rows = self._enrich_rows(rows, notes)

        items = [row for row, _holder in rows]
        items.extend(self._classic_rows(owners, notes))

        notes.append(f"Slipstream: positions loaded ({len(items)} rows).")
        logger.info(
            "list_positions: done owners=%s wallet=%s staked=%s total=%s",
            len(owners),
            len(wallet_positions),
            sum(1 for row in items if row.staked),
            len(items),
        )
        return ListPositionsOutput(items=items, notes=notes)

    def _discover_stakers(self, notes: list[str]) -> list[str]:
        outcome = self._indexer.discover_stakers()
        discovered = normalize_addresses(outcome.value or []) if outcome.ok else []
        if not outcome.ok:
            logger.warning("list_positions: staker_discovery_failed reason=%s", outcome.reason)
        stakers = _unique(self._manual_stakers + discovered)
        if self._manual_stakers:
            notes.append(f"Merged {len(self._manual_stakers)} staker(s) from env.")
        if not stakers:
            notes.append(NO_STAKERS_NOTE)
        return stakers

    def _resolve_depositors(
        self,
        command: ListPositionsInput,
        *,
        owners: list[str],
        stakers: list[str],
        requested_ids: list[str],
        assume_owner: str | None,
        notes: list[str],
    ) -> ResolutionResult:
        log_scan = LogScanStrategy(
            chain=self._chain,
            owners=owners,
            stakers=stakers,
            start_block=command.start_block,
            window=command.window or self._default_window,
            max_lookback=(
                command.max_lookback
                if command.max_lookback is not None
                else self._default_max_lookback
            ),
        )
        strategies: list[DepositorStrategy] = [
            StakeRecordStrategy(indexer=self._indexer, owners=owners),
            TransferHistoryStrategy(indexer=self._indexer, owners=owners, stakers=stakers),
            log_scan,
        ]
        if command.assume:
            strategies.append(AssumeOwnerStrategy(owner=assume_owner or owners[0]))

        result = resolve_depositors(strategies, requested_ids=frozenset(requested_ids))
        for step in result.steps:
            outcome = step.outcome
            if outcome.status == "failed":
                notes.append(f"Depositor lookup via {step.strategy} failed: {outcome.reason}")
            elif outcome.status == "empty":
                notes.append(f"No depositors found via {step.strategy}.")
            elif step.strategy == "assume":
                assumed = ", ".join(sorted((outcome.value or {}).keys()))
                notes.append(f"Assumed {outcome.source} deposited tokenId(s): {assumed}.")
            else:
                count = len(outcome.value or {})
                notes.append(f"Resolved {count} staked position(s) via {step.strategy}.")
        if log_scan.skipped_windows:
            notes.append(
                f"Log scan skipped {log_scan.skipped_windows} of "
                f"{log_scan.scanned_windows} block window(s)."
            )
        return result

    def _rehydrate(self, token_ids: list[str], notes: list[str]) -> dict[str, IndexedPosition]:
        if not token_ids:
            return {}
        found: dict[str, IndexedPosition] = {}
        outcome = self._indexer.positions_by_ids(token_ids=token_ids)
        if not outcome.ok:
            notes.append(f"Positions-by-ids failed: {outcome.reason}")
        for position in outcome.value or []:
            found[position.token_id] = position

        missing = [token_id for token_id in token_ids if token_id not in found]
        if not missing:
            return found
        if not self._chain.is_configured:
            notes.append(f"{len(missing)} tokenId(s) not indexed and BASE_RPC_URL missing.")
            return found

        for token_id in missing:
            try:
                found[token_id] = self._chain.read_position(token_id=token_id)
            except ChainReadError as exc:
                notes.append(f"On-chain read of tokenId {token_id} failed: {exc}")
        return found

    def _decimals(self, token: TokenMeta) -> TokenMeta:
        if token.decimals is not None or not token.address:
            return token
        return self._chain.token_meta(address=token.address)

    def _enrich_rows(
        self,
        rows: list[tuple[PositionRow, str]],
        notes: list[str],
    ) -> list[tuple[PositionRow, str]]:
        failures = 0
        enriched: list[tuple[PositionRow, str]] = []
        for row, holder in rows:
            fees = row.fees
            emissions = row.emissions
            try:
                token0 = self._decimals(row.token0)
                token1 = self._decimals(row.token1)
                raw0, raw1 = self._chain.accrued_fees(token_id=row.token_id, owner=holder)
                if token0.decimals is not None and token1.decimals is not None:
                    fees = AmountPair(
                        token0=format_decimal(scale_raw_amount(raw0, token0.decimals)),
                        token1=format_decimal(scale_raw_amount(raw1, token1.decimals)),
                    )
            except ChainReadError as exc:
                failures += 1
                logger.warning(
                    "list_positions: fees_read_failed token_id=%s error=%s",
                    row.token_id,
                    exc,
                )

            if row.staked:
                try:
                    reward_token, raw_amount = self._chain.earned_emissions(
                        gauge=holder,
                        account=row.owner,
                        token_id=row.token_id,
                    )
                    reward = self._chain.token_meta(address=reward_token)
                    amount = scale_raw_amount(raw_amount, reward.decimals or 0)
                    emissions = Emissions(token=reward.symbol, amount=format_decimal(amount))
                except ChainReadError as exc:
                    failures += 1
                    logger.warning(
                        "list_positions: emissions_read_failed token_id=%s gauge=%s error=%s",
                        row.token_id,
                        holder,
                        exc,
                    )
            enriched.append((replace(row, fees=fees, emissions=emissions), holder))

        if failures:
            notes.append(f"On-chain enrichment failed for {failures} call(s).")
        return enriched

    def _classic_rows(self, owners: list[str], notes: list[str]) -> list[PositionRow]:
        if not self._classic_indexer.is_configured:
            return []
        outcome = self._classic_indexer.positions_by_owner(owners=owners)
        if not outcome.ok:
            notes.append(f"Classic positions query failed: {outcome.reason}")
            return []
        return [classic_row(position) for position in outcome.value or []]
