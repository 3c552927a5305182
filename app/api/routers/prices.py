from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.deps import get_prices_use_case
from app.application.use_cases.get_prices import GetPricesUseCase
from app.domain.exceptions import (
    PriceFeedNetworkError,
    PriceFeedUpstreamError,
    PricesInputError,
)

router = APIRouter()

CACHE_CONTROL = "public, max-age=60"


@router.get("/api/prices")
def get_prices(
    ids: str | None = None,
    use_case: GetPricesUseCase = Depends(get_prices_use_case),
):
    try:
        payload = use_case.execute(ids=ids)
    except PricesInputError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)
    except PriceFeedUpstreamError as exc:
        return JSONResponse({"error": str(exc), "status": exc.status_code}, status_code=502)
    except PriceFeedNetworkError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
    return JSONResponse(payload, headers={"Cache-Control": CACHE_CONTROL})
