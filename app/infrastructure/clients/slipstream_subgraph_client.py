from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from app.domain.entities.outcome import Outcome
from app.domain.entities.position import (
    AmountPair,
    DepositorMapping,
    IndexedPosition,
    StakerTransfer,
    TokenMeta,
)
from app.domain.services.first_success import Candidate
from app.domain.services.tick_range import to_int_or_none
from app.infrastructure.clients.graphql_client import GraphQLClient


def ref_id(value: Any) -> str:
    if isinstance(value, Mapping):
        return str(value.get("id") or "")
    return str(value or "")


def token_meta(raw: Any) -> TokenMeta:
    row = raw if isinstance(raw, Mapping) else {}
    return TokenMeta(
        address=str(row.get("id") or "").lower(),
        symbol=str(row.get("symbol") or ""),
        decimals=to_int_or_none(row.get("decimals")),
    )


def amount_pair(token0: Any, token1: Any) -> AmountPair | None:
    if token0 is None and token1 is None:
        return None
    return AmountPair(token0=str(token0 or "0"), token1=str(token1 or "0"))


def _first_present(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return None


def map_position(row: Mapping[str, Any]) -> IndexedPosition:
    pool = row.get("pool") or {}
    return IndexedPosition(
        token_id=str(row.get("id") or ""),
        owner=ref_id(row.get("owner")).lower(),
        pool_id=str(pool.get("id")) if pool.get("id") else None,
        token0=token_meta(pool.get("token0")),
        token1=token_meta(pool.get("token1")),
        liquidity=to_int_or_none(row.get("liquidity")),
        tick_lower=to_int_or_none(_first_present(row, "tickLower", "lowerTick")),
        tick_upper=to_int_or_none(_first_present(row, "tickUpper", "upperTick")),
        current_tick=to_int_or_none(_first_present(pool, "tick", "currentTick")),
        sqrt_price_x96=to_int_or_none(pool.get("sqrtPrice")),
        deposited=amount_pair(row.get("depositedToken0"), row.get("depositedToken1")),
        collected_fees=amount_pair(row.get("collectedFeesToken0"), row.get("collectedFeesToken1")),
    )


def _rows(data: Mapping[str, Any], field: str) -> list[Mapping[str, Any]] | None:
    rows = data.get(field)
    if not isinstance(rows, list):
        return None
    return [row for row in rows if isinstance(row, Mapping)]


def _positions_extractor(data: Mapping[str, Any]) -> list[IndexedPosition] | None:
    rows = _rows(data, "positions")
    if rows is None:
        return None
    return [map_position(row) for row in rows if row.get("id") is not None]


_TOKEN_FIELDS = "token0{ id symbol decimals } token1{ id symbol decimals }"

# Ordered shapes; later entries drop or alias fields some deployments lack.
_POSITION_SHAPES: list[tuple[str, str]] = [
    (
        "positions.full",
        f"""id owner liquidity
    tickLower tickUpper
    collectedFeesToken0 collectedFeesToken1
    depositedToken0 depositedToken1
    pool {{ id {_TOKEN_FIELDS} tick sqrtPrice }}""",
    ),
    (
        "positions.no_sqrt_price",
        f"""id owner liquidity
    tickLower tickUpper
    collectedFeesToken0 collectedFeesToken1
    depositedToken0 depositedToken1
    pool {{ id {_TOKEN_FIELDS} tick }}""",
    ),
    (
        "positions.aliased_ticks",
        f"""id owner liquidity
    lowerTick: tickLower
    upperTick: tickUpper
    collectedFeesToken0 collectedFeesToken1
    pool {{ id {_TOKEN_FIELDS} currentTick: tick }}""",
    ),
]


def _position_candidates(
    *,
    name_suffix: str,
    signature: str,
    where: str,
) -> list[Candidate[list[IndexedPosition]]]:
    return [
        Candidate(
            name=f"{name}.{name_suffix}",
            query=f"query({signature}){{\n  positions(where:{{ {where} }}, first:1000) {{\n    {fields}\n  }}\n}}",
            extract=_positions_extractor,
        )
        for name, fields in _POSITION_SHAPES
    ]


POSITIONS_BY_OWNER = _position_candidates(
    name_suffix="by_owner",
    signature="$owners:[String!]!",
    where="owner_in:$owners",
)

POSITIONS_BY_IDS = _position_candidates(
    name_suffix="by_ids",
    signature="$ids:[String!]!",
    where="id_in:$ids",
)


def _id_list_extractor(field: str) -> Callable[[Mapping[str, Any]], list[str] | None]:
    def _extract(data: Mapping[str, Any]) -> list[str] | None:
        rows = _rows(data, field)
        if rows is None:
            return None
        return [ref_id(row).lower() for row in rows if ref_id(row)]

    return _extract


STAKER_CANDIDATES: list[Candidate[list[str]]] = [
    Candidate(name=field, query=f"{{ {field}(first:1000) {{ id }} }}", extract=_id_list_extractor(field))
    for field in ("clGauges", "gauges", "positionStakers", "nonfungiblePositionStakers")
]


def _stake_record_extractor(
    field: str,
    depositor_field: str,
) -> Callable[[Mapping[str, Any]], DepositorMapping | None]:
    def _extract(data: Mapping[str, Any]) -> DepositorMapping | None:
        rows = _rows(data, field)
        if rows is None:
            return None
        mapping: DepositorMapping = {}
        for row in rows:
            token_id = str(row.get("tokenId") or "")
            depositor = ref_id(row.get(depositor_field)).lower()
            if token_id and depositor:
                mapping.setdefault(token_id, depositor)
        return mapping

    return _extract


STAKE_RECORD_CANDIDATES: list[Candidate[DepositorMapping]] = [
    Candidate(
        name=field,
        query=(
            "query($owners:[String!]!){\n"
            f"  {field}(where:{{ {depositor_field}_in:$owners }}, first:1000) {{\n"
            f"    tokenId {depositor_field}{selection}\n"
            "  }\n"
            "}"
        ),
        extract=_stake_record_extractor(field, depositor_field),
    )
    for field, depositor_field, selection in (
        ("clGaugeDeposits", "owner", "{ id }"),
        ("gaugeDeposits", "owner", "{ id }"),
        ("stakedPositions", "depositor", ""),
    )
]


def _transfers_extractor(field: str) -> Callable[[Mapping[str, Any]], list[StakerTransfer] | None]:
    def _extract(data: Mapping[str, Any]) -> list[StakerTransfer] | None:
        rows = _rows(data, field)
        if rows is None:
            return None
        return [
            StakerTransfer(
                token_id=str(row.get("tokenId") or ""),
                from_address=ref_id(row.get("from")).lower(),
                to_address=ref_id(row.get("to")).lower(),
                block_number=to_int_or_none(row.get("blockNumber")),
            )
            for row in rows
        ]

    return _extract


TRANSFER_CANDIDATES: list[Candidate[list[StakerTransfer]]] = [
    Candidate(
        name=field,
        query=(
            "query($froms:[String!]!,$tos:[String!]!){\n"
            f"  {field}(where:{{ from_in:$froms, to_in:$tos }},\n"
            "    orderBy:blockNumber, orderDirection:desc, first:1000){\n"
            "    tokenId from{ id } to{ id } blockNumber\n"
            "  }\n"
            "}"
        ),
        extract=_transfers_extractor(field),
    )
    for field in ("positionTransfers", "nonfungiblePositionTransfers", "transfers", "transferEvents")
]


class SlipstreamSubgraphClient:
    """Position indexer backed by the Slipstream subgraph (and an optional gauges subgraph)."""

    def __init__(self, *, slipstream: GraphQLClient, gauges: GraphQLClient | None = None):
        self._slipstream = slipstream
        self._gauges = gauges

    @property
    def is_configured(self) -> bool:
        return self._slipstream.is_configured

    def _staker_source(self) -> GraphQLClient:
        if self._gauges is not None and self._gauges.is_configured:
            return self._gauges
        return self._slipstream

    def positions_by_owner(self, *, owners: list[str]) -> Outcome[list[IndexedPosition]]:
        return self._slipstream.first_success(POSITIONS_BY_OWNER, {"owners": owners})

    def positions_by_ids(self, *, token_ids: list[str]) -> Outcome[list[IndexedPosition]]:
        return self._slipstream.first_success(POSITIONS_BY_IDS, {"ids": token_ids})

    def discover_stakers(self) -> Outcome[list[str]]:
        return self._staker_source().first_success(STAKER_CANDIDATES)

    def stake_records(self, *, owners: list[str]) -> Outcome[DepositorMapping]:
        return self._staker_source().first_success(STAKE_RECORD_CANDIDATES, {"owners": owners})

    def staker_transfers(
        self,
        *,
        froms: list[str],
        tos: list[str],
    ) -> Outcome[list[StakerTransfer]]:
        return self._slipstream.first_success(TRANSFER_CANDIDATES, {"froms": froms, "tos": tos})
