from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Response

from app.api.deps import get_list_positions_use_case
from app.api.schemas.positions import (
    AmountPairResponse,
    EmissionsResponse,
    PositionRowResponse,
    PositionsResponse,
    RangeResponse,
    TokenMetaResponse,
)
from app.application.dto.positions import ListPositionsInput
from app.application.use_cases.list_positions import ListPositionsUseCase
from app.domain.entities.position import AmountPair, PositionRow, TokenMeta
from app.domain.exceptions import PositionsInputError
from app.shared.config import TRUTHY

router = APIRouter()
logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, s-maxage=30"


def _parse_block_param(name: str, value: str | None) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value.strip())
    except ValueError as exc:
        raise PositionsInputError(f"{name} must be an integer.") from exc
    if parsed < 0:
        raise PositionsInputError(f"{name} must be zero or positive.")
    return parsed


def _token(token: TokenMeta) -> TokenMetaResponse:
    return TokenMetaResponse(id=token.address, symbol=token.symbol, decimals=token.decimals)


def _pair(pair: AmountPair | None) -> AmountPairResponse | None:
    if pair is None:
        return None
    return AmountPairResponse(token0=pair.token0, token1=pair.token1)


def _row(row: PositionRow) -> PositionRowResponse:
    return PositionRowResponse(
        kind=row.kind,
        owner=row.owner,
        token_id=row.token_id,
        pool_id=row.pool_id,
        token0=_token(row.token0),
        token1=_token(row.token1),
        deposited=_pair(row.deposited),
        current=_pair(row.current),
        fees=_pair(row.fees),
        emissions=(
            EmissionsResponse(token=row.emissions.token, amount=row.emissions.amount)
            if row.emissions is not None
            else None
        ),
        range=RangeResponse(
            tick_lower=row.range.tick_lower,
            tick_upper=row.range.tick_upper,
            current_tick=row.range.current_tick,
            status=row.range.status,
        ),
        staked=row.staked,
    )


@router.get("/api/positions", response_model=PositionsResponse)
def list_positions(
    response: Response,
    addresses: list[str] = Query([], alias="addresses[]"),
    token_ids: list[str] = Query([], alias="tokenIds[]"),
    start_block: str | None = Query(None, alias="startBlock"),
    window: str | None = Query(None),
    max_lookback: str | None = Query(None, alias="maxLookback"),
    assume: str | None = Query(None),
    assume_owner: str | None = Query(None, alias="assumeOwner"),
    use_case: ListPositionsUseCase = Depends(get_list_positions_use_case),
):
    response.headers["Cache-Control"] = CACHE_CONTROL
    try:
        command = ListPositionsInput(
            addresses=addresses,
            token_ids=token_ids,
            start_block=_parse_block_param("startBlock", start_block),
            window=_parse_block_param("window", window),
            max_lookback=_parse_block_param("maxLookback", max_lookback),
            assume=(assume or "").strip().lower() in TRUTHY,
            assume_owner=assume_owner,
        )
    except PositionsInputError as exc:
        logger.warning("positions_router: invalid_input detail=%s", exc)
        return PositionsResponse(items=[], notes=[str(exc)])

    result = use_case.execute(command)
    return PositionsResponse(items=[_row(row) for row in result.items], notes=result.notes)
