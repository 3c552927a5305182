from __future__ import annotations

import pytest
from web3.exceptions import ContractLogicError

from app.domain.exceptions import ChainReadError
from app.infrastructure.clients.base_chain_client import (
    BaseChainClient,
    BaseChainClientSettings,
    address_topic,
    decode_transfer_log,
)
from app.infrastructure.clients.slipstream_abi import TRANSFER_TOPIC


WALLET = "0x" + "a" * 40
GAUGE = "0x" + "c" * 40
TOKEN0 = "0x" + "1" * 40
TOKEN1 = "0x" + "2" * 40
POOL = "0x" + "d" * 40
MANAGER = "0x827922686190790b37229fd06084350E74485b72"
FACTORY = "0x5e7BB104d84c7CB9B682AaC2F3d509f5F406809A"


class FakeCall:
    def __init__(self, value):
        self.value = value
        self.tx = None

    def call(self, tx=None):
        self.tx = tx
        if isinstance(self.value, Exception):
            raise self.value
        return self.value


class FakeFunctions:
    def __init__(self, handlers: dict):
        self._handlers = handlers
        self.calls: list[tuple[str, tuple]] = []

    def __getattr__(self, name):
        handler = self._handlers[name]

        def _fn(*args):
            self.calls.append((name, args))
            return FakeCall(handler(*args) if callable(handler) else handler)

        return _fn


class FakeContract:
    def __init__(self, handlers: dict):
        self.functions = FakeFunctions(handlers)


class FakeEth:
    def __init__(self, *, contracts: dict, logs=None, block_number: int = 1000):
        self._contracts = {address.lower(): contract for address, contract in contracts.items()}
        self._logs = logs or []
        self.block_number = block_number
        self.log_filters: list[dict] = []
        self.contract_requests: list[str] = []

    def contract(self, *, address, abi):
        _ = abi
        self.contract_requests.append(address)
        return self._contracts[address.lower()]

    def get_logs(self, params):
        self.log_filters.append(params)
        return self._logs


class FakeWeb3:
    def __init__(self, eth: FakeEth):
        self.eth = eth


def _client(eth: FakeEth) -> BaseChainClient:
    return BaseChainClient(
        BaseChainClientSettings(
            rpc_url="",
            timeout_seconds=5,
            position_manager_address=MANAGER,
            factory_address=FACTORY,
        ),
        web3=FakeWeb3(eth),
    )


def _erc20(symbol, decimals) -> FakeContract:
    return FakeContract({"symbol": symbol, "decimals": decimals})


def _transfer_log(token_id: int, sender: str, receiver: str, block: int) -> dict:
    return {
        "topics": [
            bytes.fromhex(TRANSFER_TOPIC[2:]),
            bytes.fromhex(address_topic(sender)[2:]),
            address_topic(receiver),
            token_id.to_bytes(32, "big"),
        ],
        "blockNumber": block,
    }


def test_decode_transfer_log_reads_indexed_topics():
    transfer = decode_transfer_log(_transfer_log(4242, WALLET, GAUGE, 77))

    assert transfer.token_id == "4242"
    assert transfer.from_address == WALLET
    assert transfer.to_address == GAUGE
    assert transfer.block_number == 77


def test_decode_transfer_log_ignores_erc20_shaped_logs():
    log = _transfer_log(1, WALLET, GAUGE, 1)
    log["topics"] = log["topics"][:3]

    assert decode_transfer_log(log) is None


def test_transfer_logs_filters_by_sender_and_receiver_topics():
    eth = FakeEth(contracts={}, logs=[_transfer_log(5, WALLET, GAUGE, 900)])

    transfers = _client(eth).transfer_logs(from_block=901, to_block=1000, froms=[WALLET], tos=[GAUGE])

    assert [t.token_id for t in transfers] == ["5"]
    params = eth.log_filters[0]
    assert params["fromBlock"] == 901
    assert params["toBlock"] == 1000
    assert params["address"].lower() == MANAGER.lower()
    assert params["topics"] == [TRANSFER_TOPIC, [address_topic(WALLET)], [address_topic(GAUGE)]]


def test_token_meta_is_cached_and_tolerates_missing_symbol():
    token = FakeContract({"symbol": ContractLogicError("execution reverted"), "decimals": 6})
    eth = FakeEth(contracts={TOKEN0: token})
    client = _client(eth)

    first = client.token_meta(address=TOKEN0)
    second = client.token_meta(address="0x" + "1" * 40)

    assert first == second
    assert first.symbol == ""
    assert first.decimals == 6
    assert len(eth.contract_requests) == 1


def test_read_position_combines_manager_factory_and_pool():
    manager = FakeContract(
        {
            "positions": (0, "0x" + "0" * 40, TOKEN0, TOKEN1, 100, -600, 600, 10**15, 0, 0, 0, 0),
            "ownerOf": GAUGE,
        }
    )
    factory = FakeContract({"getPool": POOL})
    pool = FakeContract({"slot0": (2**96, 12, 0, 0, 0, True)})
    eth = FakeEth(
        contracts={
            MANAGER: manager,
            FACTORY: factory,
            POOL: pool,
            TOKEN0: _erc20("WETH", 18),
            TOKEN1: _erc20("USDC", 6),
        }
    )

    position = _client(eth).read_position(token_id="42")

    assert position.token_id == "42"
    assert position.owner == GAUGE
    assert position.pool_id == POOL
    assert (position.tick_lower, position.tick_upper, position.current_tick) == (-600, 600, 12)
    assert position.sqrt_price_x96 == 2**96
    assert position.token1.symbol == "USDC"
    assert factory.functions.calls == [("getPool", (TOKEN0, TOKEN1, 100))]


def test_read_position_wraps_reverts():
    manager = FakeContract({"positions": ContractLogicError("Invalid token ID"), "ownerOf": GAUGE})
    eth = FakeEth(contracts={MANAGER: manager})

    with pytest.raises(ChainReadError, match="positions\\(7\\)"):
        _client(eth).read_position(token_id="7")


def test_accrued_fees_simulates_collect_from_holder():
    manager = FakeContract({"collect": (123, 456)})
    eth = FakeEth(contracts={MANAGER: manager})

    fees = _client(eth).accrued_fees(token_id="9", owner=GAUGE)

    assert fees == (123, 456)
    name, args = manager.functions.calls[0]
    assert name == "collect"
    token_id, recipient, max0, max1 = args[0]
    assert token_id == 9
    assert recipient.lower() == GAUGE
    assert max0 == max1 == 2**128 - 1


def test_earned_emissions_reads_reward_token_and_amount():
    gauge = FakeContract({"rewardToken": "0x" + "3" * 40, "earned": 5 * 10**18})
    eth = FakeEth(contracts={GAUGE: gauge})

    reward_token, amount = _client(eth).earned_emissions(gauge=GAUGE, account=WALLET, token_id="9")

    assert reward_token == "0x" + "3" * 40
    assert amount == 5 * 10**18


def test_unconfigured_client_raises_chain_read_error():
    client = BaseChainClient(
        BaseChainClientSettings(
            rpc_url="",
            timeout_seconds=5,
            position_manager_address=MANAGER,
            factory_address=FACTORY,
        )
    )

    assert not client.is_configured
    with pytest.raises(ChainReadError, match="BASE_RPC_URL missing"):
        client.latest_block()
