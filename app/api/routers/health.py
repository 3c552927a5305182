from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_health_use_case
from app.api.schemas.health import HealthResponse
from app.application.use_cases.get_health import GetHealthUseCase

router = APIRouter()


@router.get("/api/health", response_model=HealthResponse)
def get_health(use_case: GetHealthUseCase = Depends(get_health_use_case)):
    result = use_case.execute()
    return HealthResponse(
        has_solidly=result.has_solidly,
        has_slipstream=result.has_slipstream,
        has_gauges=result.has_gauges,
        has_key=result.has_key,
        rpc=result.rpc,
    )
