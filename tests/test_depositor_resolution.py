from __future__ import annotations

from app.application.use_cases.depositor_strategies import (
    AssumeOwnerStrategy,
    LogScanStrategy,
    StakeRecordStrategy,
    TransferHistoryStrategy,
)
from app.domain.entities.outcome import Outcome
from app.domain.entities.position import StakerTransfer
from app.domain.exceptions import ChainReadError
from app.domain.services.depositor_resolution import resolve_depositors


WALLET = "0x" + "a" * 40
OTHER = "0x" + "b" * 40
GAUGE = "0x" + "c" * 40


class FakeStrategy:
    def __init__(self, name: str, outcome: Outcome):
        self.name = name
        self.outcome = outcome
        self.calls: list[frozenset[str]] = []

    def resolve(self, *, pending: frozenset[str]) -> Outcome:
        self.calls.append(pending)
        return self.outcome


class FakeIndexer:
    def __init__(self, *, stake_records=None, transfers=None):
        self._stake_records = stake_records if stake_records is not None else Outcome.of({})
        self._transfers = transfers if transfers is not None else Outcome.of([])
        self.transfer_calls: list[tuple[list[str], list[str]]] = []

    def stake_records(self, *, owners):
        _ = (owners,)
        return self._stake_records

    def staker_transfers(self, *, froms, tos):
        self.transfer_calls.append((froms, tos))
        return self._transfers


class FakeChain:
    def __init__(self, *, latest: int = 1000, logs=None, failing_windows=(), configured: bool = True):
        self.is_configured = configured
        self._latest = latest
        self._logs = logs or {}
        self._failing_windows = set(failing_windows)
        self.windows: list[tuple[int, int]] = []

    def latest_block(self) -> int:
        return self._latest

    def transfer_logs(self, *, from_block, to_block, froms, tos):
        _ = (froms, tos)
        self.windows.append((from_block, to_block))
        if (from_block, to_block) in self._failing_windows:
            raise ChainReadError("query returned more than 10000 results")
        return self._logs.get((from_block, to_block), [])


def _transfer(token_id: str, sender: str, block: int) -> StakerTransfer:
    return StakerTransfer(token_id=token_id, from_address=sender, to_address=GAUGE, block_number=block)


def test_chain_stops_at_first_non_empty_mapping():
    first = FakeStrategy("stake records", Outcome.failed("no such entity"))
    second = FakeStrategy("transfer history", Outcome.of({"7": WALLET}))
    third = FakeStrategy("log scan", Outcome.of({"8": WALLET}))

    result = resolve_depositors([first, second, third])

    assert result.mapping == {"7": WALLET}
    assert [step.strategy for step in result.steps] == ["stake records", "transfer history"]
    assert third.calls == []


def test_chain_continues_while_requested_ids_are_unresolved():
    first = FakeStrategy("stake records", Outcome.of({"7": WALLET}))
    second = FakeStrategy("log scan", Outcome.of({"7": OTHER, "9": WALLET}))
    third = FakeStrategy("assume", Outcome.of({"11": WALLET}))

    result = resolve_depositors([first, second, third], requested_ids=frozenset({"7", "9"}))

    assert result.mapping == {"7": WALLET, "9": WALLET}
    assert second.calls == [frozenset({"9"})]
    assert third.calls == []
    assert result.step("assume") is None


def test_chain_with_only_empty_answers_runs_every_strategy():
    strategies = [FakeStrategy(name, Outcome.of({})) for name in ("a", "b", "c")]

    result = resolve_depositors(strategies)

    assert result.mapping == {}
    assert [step.outcome.status for step in result.steps] == ["empty", "empty", "empty"]


def test_stake_records_keep_only_wallet_depositors():
    indexer = FakeIndexer(stake_records=Outcome.of({"1": WALLET, "2": OTHER}, source="clGaugeDeposits"))

    outcome = StakeRecordStrategy(indexer=indexer, owners=[WALLET]).resolve(pending=frozenset())

    assert outcome.value == {"1": WALLET}
    assert outcome.source == "clGaugeDeposits"


def test_transfer_history_takes_newest_transfer_per_token():
    transfers = [
        _transfer("5", WALLET, 10),
        _transfer("5", OTHER, 20),
        _transfer("6", WALLET, 15),
    ]
    indexer = FakeIndexer(transfers=Outcome.of(transfers, source="positionTransfers"))
    strategy = TransferHistoryStrategy(indexer=indexer, owners=[WALLET, OTHER], stakers=[GAUGE])

    outcome = strategy.resolve(pending=frozenset())

    assert outcome.value == {"5": OTHER, "6": WALLET}
    assert indexer.transfer_calls == [([WALLET, OTHER], [GAUGE])]


def test_transfer_history_needs_stakers():
    strategy = TransferHistoryStrategy(indexer=FakeIndexer(), owners=[WALLET], stakers=[])

    outcome = strategy.resolve(pending=frozenset())

    assert outcome.status == "failed"
    assert outcome.reason == "no stakers known"


def test_log_scan_walks_windows_backward_to_lookback_floor():
    chain = FakeChain(latest=1000)
    strategy = LogScanStrategy(
        chain=chain,
        owners=[WALLET],
        stakers=[GAUGE],
        start_block=None,
        window=100,
        max_lookback=350,
    )

    outcome = strategy.resolve(pending=frozenset())

    assert chain.windows == [(901, 1000), (801, 900), (701, 800), (651, 700)]
    assert outcome.status == "empty"
    assert outcome.source == "blocks 651-1000"
    assert strategy.scanned_windows == 4


def test_log_scan_skips_failing_windows_and_keeps_going():
    chain = FakeChain(
        latest=1000,
        failing_windows=[(901, 1000)],
        logs={(801, 900): [_transfer("42", WALLET, 850)]},
    )
    strategy = LogScanStrategy(
        chain=chain,
        owners=[WALLET],
        stakers=[GAUGE],
        start_block=None,
        window=100,
        max_lookback=300,
    )

    outcome = strategy.resolve(pending=frozenset())

    assert outcome.value == {"42": WALLET}
    assert strategy.skipped_windows == 1
    assert strategy.scanned_windows == 3


def test_log_scan_stops_once_pending_ids_are_found():
    chain = FakeChain(latest=1000, logs={(901, 1000): [_transfer("42", WALLET, 950)]})
    strategy = LogScanStrategy(
        chain=chain,
        owners=[WALLET],
        stakers=[GAUGE],
        start_block=None,
        window=100,
        max_lookback=1000,
    )

    outcome = strategy.resolve(pending=frozenset({"42"}))

    assert outcome.value == {"42": WALLET}
    assert chain.windows == [(901, 1000)]


def test_log_scan_prefers_newer_windows_for_the_same_token():
    chain = FakeChain(
        latest=200,
        logs={
            (101, 200): [_transfer("3", OTHER, 150)],
            (1, 100): [_transfer("3", WALLET, 50)],
        },
    )
    strategy = LogScanStrategy(
        chain=chain,
        owners=[WALLET, OTHER],
        stakers=[GAUGE],
        start_block=None,
        window=100,
        max_lookback=1000,
    )

    outcome = strategy.resolve(pending=frozenset())

    assert outcome.value == {"3": OTHER}
    assert outcome.source == "blocks 0-200"


def test_log_scan_start_block_caps_the_head():
    chain = FakeChain(latest=1000)
    strategy = LogScanStrategy(
        chain=chain,
        owners=[WALLET],
        stakers=[GAUGE],
        start_block=500,
        window=1000,
        max_lookback=100,
    )

    strategy.resolve(pending=frozenset())

    assert chain.windows == [(401, 500)]


def test_log_scan_without_rpc_fails():
    strategy = LogScanStrategy(
        chain=FakeChain(configured=False),
        owners=[WALLET],
        stakers=[GAUGE],
        start_block=None,
        window=100,
        max_lookback=100,
    )

    outcome = strategy.resolve(pending=frozenset())

    assert outcome.status == "failed"
    assert outcome.reason == "BASE_RPC_URL missing"


def test_log_scan_without_stakers_fails_without_reading_logs():
    chain = FakeChain(logs={(1, 1000): [_transfer("9", WALLET, 900)]})
    strategy = LogScanStrategy(
        chain=chain,
        owners=[WALLET],
        stakers=[],
        start_block=None,
        window=1000,
        max_lookback=1000,
    )

    outcome = strategy.resolve(pending=frozenset({"9"}))

    assert outcome.status == "failed"
    assert outcome.reason == "no stakers known"
    assert chain.windows == []


def test_assume_maps_pending_ids_to_owner():
    outcome = AssumeOwnerStrategy(owner=WALLET).resolve(pending=frozenset({"9", "10"}))

    assert outcome.value == {"10": WALLET, "9": WALLET}
    assert outcome.source == WALLET
