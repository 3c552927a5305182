from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from threading import Lock
from typing import Any, TypeVar

from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception

from app.domain.entities.position import IndexedPosition, StakerTransfer, TokenMeta
from app.domain.exceptions import ChainReadError
from app.domain.services.univ3_math import MAX_UINT128
from app.infrastructure.clients.slipstream_abi import (
    CL_FACTORY_ABI,
    CL_GAUGE_ABI,
    CL_POOL_ABI,
    ERC20_ABI,
    POSITION_MANAGER_ABI,
    TRANSFER_TOPIC,
    ZERO_ADDRESS,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def address_topic(address: str) -> str:
    return "0x" + "0" * 24 + address.lower().removeprefix("0x")


def _topic_filter(addresses: list[str]) -> list[str] | None:
    if not addresses:
        return None
    return [address_topic(address) for address in addresses]


def _topic_bytes(topic: Any) -> bytes:
    if isinstance(topic, str):
        return bytes.fromhex(topic.removeprefix("0x"))
    return bytes(topic)


def decode_transfer_log(log: Any) -> StakerTransfer | None:
    topics = log["topics"]
    if len(topics) < 4:
        return None
    from_raw = _topic_bytes(topics[1])[-20:]
    to_raw = _topic_bytes(topics[2])[-20:]
    block_number = log.get("blockNumber")
    return StakerTransfer(
        token_id=str(int.from_bytes(_topic_bytes(topics[3]), "big")),
        from_address="0x" + from_raw.hex(),
        to_address="0x" + to_raw.hex(),
        block_number=int(block_number) if block_number is not None else None,
    )


@dataclass(frozen=True)
class BaseChainClientSettings:
    rpc_url: str
    timeout_seconds: float
    position_manager_address: str
    factory_address: str


class BaseChainClient:
    """Read-only access to the Slipstream contracts on Base through web3."""

    def __init__(self, settings: BaseChainClientSettings, *, web3: Web3 | None = None):
        self._settings = settings
        self._web3 = web3
        self._lock = Lock()
        self._token_cache: dict[str, TokenMeta] = {}

    @property
    def is_configured(self) -> bool:
        return self._web3 is not None or bool(self._settings.rpc_url)

    def _w3(self) -> Web3:
        if self._web3 is None:
            if not self._settings.rpc_url:
                raise ChainReadError("BASE_RPC_URL missing")
            self._web3 = Web3(
                Web3.HTTPProvider(
                    self._settings.rpc_url,
                    request_kwargs={"timeout": self._settings.timeout_seconds},
                )
            )
        return self._web3

    def _call(self, label: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except (Web3Exception, RequestException, ValueError, TypeError) as exc:
            raise ChainReadError(f"{label}: {exc}") from exc

    def _contract(self, address: str, abi: list[dict]) -> Any:
        w3 = self._w3()
        return self._call(
            "contract",
            lambda: w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi),
        )

    def _position_manager(self) -> Any:
        return self._contract(self._settings.position_manager_address, POSITION_MANAGER_ABI)

    def latest_block(self) -> int:
        w3 = self._w3()
        return int(self._call("block_number", lambda: w3.eth.block_number))

    def transfer_logs(
        self,
        *,
        from_block: int,
        to_block: int,
        froms: list[str],
        tos: list[str],
    ) -> list[StakerTransfer]:
        w3 = self._w3()

        def _get_logs() -> list:
            return w3.eth.get_logs(
                {
                    "address": Web3.to_checksum_address(self._settings.position_manager_address),
                    "fromBlock": from_block,
                    "toBlock": to_block,
                    "topics": [TRANSFER_TOPIC, _topic_filter(froms), _topic_filter(tos)],
                }
            )

        logs = self._call(f"get_logs {from_block}-{to_block}", _get_logs)
        transfers = [decode_transfer_log(log) for log in logs]
        return [transfer for transfer in transfers if transfer is not None]

    def read_position(self, *, token_id: str) -> IndexedPosition:
        manager = self._position_manager()
        position = self._call(
            f"positions({token_id})",
            lambda: manager.functions.positions(int(token_id)).call(),
        )
        owner = self._call(
            f"ownerOf({token_id})",
            lambda: manager.functions.ownerOf(int(token_id)).call(),
        )
        (
            _nonce,
            _operator,
            token0,
            token1,
            tick_spacing,
            tick_lower,
            tick_upper,
            liquidity,
            _fg0,
            _fg1,
            _owed0,
            _owed1,
        ) = position

        pool_id: str | None = None
        current_tick: int | None = None
        sqrt_price_x96: int | None = None
        try:
            pool_id, current_tick, sqrt_price_x96 = self._pool_state(token0, token1, int(tick_spacing))
        except ChainReadError as exc:
            logger.warning(
                "base_chain_client: pool_state_unavailable token_id=%s error=%s",
                token_id,
                exc,
            )

        return IndexedPosition(
            token_id=str(token_id),
            owner=str(owner).lower(),
            pool_id=pool_id,
            token0=self.token_meta(address=token0),
            token1=self.token_meta(address=token1),
            liquidity=int(liquidity),
            tick_lower=int(tick_lower),
            tick_upper=int(tick_upper),
            current_tick=current_tick,
            sqrt_price_x96=sqrt_price_x96,
        )

    def _pool_state(
        self,
        token0: str,
        token1: str,
        tick_spacing: int,
    ) -> tuple[str | None, int | None, int | None]:
        factory = self._contract(self._settings.factory_address, CL_FACTORY_ABI)
        pool = self._call(
            "getPool",
            lambda: factory.functions.getPool(token0, token1, tick_spacing).call(),
        )
        if not pool or str(pool).lower() == ZERO_ADDRESS:
            return None, None, None
        pool_contract = self._contract(pool, CL_POOL_ABI)
        slot0 = self._call("slot0", lambda: pool_contract.functions.slot0().call())
        return str(pool).lower(), int(slot0[1]), int(slot0[0])

    def token_meta(self, *, address: str) -> TokenMeta:
        key = address.lower()
        with self._lock:
            cached = self._token_cache.get(key)
        if cached is not None:
            return cached

        token = self._contract(address, ERC20_ABI)
        decimals = int(self._call(f"decimals({key})", lambda: token.functions.decimals().call()))
        try:
            symbol = str(self._call(f"symbol({key})", lambda: token.functions.symbol().call()))
        except ChainReadError:
            symbol = ""
        meta = TokenMeta(address=key, symbol=symbol, decimals=decimals)
        with self._lock:
            self._token_cache[key] = meta
        return meta

    def accrued_fees(self, *, token_id: str, owner: str) -> tuple[int, int]:
        manager = self._position_manager()
        holder = self._call("owner address", lambda: Web3.to_checksum_address(owner))
        params = (int(token_id), holder, MAX_UINT128, MAX_UINT128)
        amount0, amount1 = self._call(
            f"collect({token_id})",
            lambda: manager.functions.collect(params).call({"from": holder}),
        )
        return int(amount0), int(amount1)

    def earned_emissions(self, *, gauge: str, account: str, token_id: str) -> tuple[str, int]:
        contract = self._contract(gauge, CL_GAUGE_ABI)
        reward_token = self._call("rewardToken", lambda: contract.functions.rewardToken().call())
        amount = self._call(
            f"earned({token_id})",
            lambda: contract.functions.earned(
                Web3.to_checksum_address(account),
                int(token_id),
            ).call(),
        )
        return str(reward_token).lower(), int(amount)
