from __future__ import annotations

from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from app.domain.entities.outcome import Outcome
from app.domain.entities.position import ClassicPosition
from app.domain.services.first_success import Candidate
from app.infrastructure.clients.graphql_client import GraphQLClient
from app.infrastructure.clients.slipstream_subgraph_client import ref_id, token_meta


def _dec_or_none(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _classic_extractor(
    field: str,
    *,
    owner_field: str,
    balance_field: str,
    pool_field: str,
) -> Callable[[Mapping[str, Any]], list[ClassicPosition] | None]:
    def _extract(data: Mapping[str, Any]) -> list[ClassicPosition] | None:
        rows = data.get(field)
        if not isinstance(rows, list):
            return None
        result: list[ClassicPosition] = []
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            pool = row.get(pool_field) or {}
            balance = _dec_or_none(row.get(balance_field))
            if not pool.get("id") or balance is None or balance <= 0:
                continue
            result.append(
                ClassicPosition(
                    owner=ref_id(row.get(owner_field)).lower(),
                    pool_id=str(pool["id"]),
                    token0=token_meta(pool.get("token0")),
                    token1=token_meta(pool.get("token1")),
                    balance=balance,
                    total_supply=_dec_or_none(pool.get("totalSupply")),
                    reserve0=_dec_or_none(pool.get("reserve0")),
                    reserve1=_dec_or_none(pool.get("reserve1")),
                )
            )
        return result

    return _extract


_POOL_FIELDS = "id reserve0 reserve1 totalSupply token0{ id symbol decimals } token1{ id symbol decimals }"

CLASSIC_POSITION_CANDIDATES: list[Candidate[list[ClassicPosition]]] = [
    Candidate(
        name=field,
        query=(
            "query($owners:[String!]!){\n"
            f"  {field}(where:{{ {owner_field}_in:$owners, {balance_field}_gt:\"0\" }}, first:1000) {{\n"
            f"    id {owner_field}{{ id }} {balance_field} {pool_field}{{ {_POOL_FIELDS} }}\n"
            "  }\n"
            "}"
        ),
        extract=_classic_extractor(
            field,
            owner_field=owner_field,
            balance_field=balance_field,
            pool_field=pool_field,
        ),
    )
    for field, owner_field, balance_field, pool_field in (
        ("liquidityPositions", "user", "liquidityTokenBalance", "pair"),
        ("positions", "account", "balance", "pool"),
        ("userPositions", "user", "balance", "pool"),
    )
]


class SolidlySubgraphClient:
    """Classic (fungible LP token) position indexer."""

    def __init__(self, *, client: GraphQLClient):
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client.is_configured

    def positions_by_owner(self, *, owners: list[str]) -> Outcome[list[ClassicPosition]]:
        return self._client.first_success(CLASSIC_POSITION_CANDIDATES, {"owners": owners})
