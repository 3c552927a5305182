from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.deps import get_app_settings
from app.api.routers.health import router as health_router
from app.api.routers.positions import router as positions_router
from app.api.routers.prices import router as prices_router


logging.basicConfig(
    level=get_app_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title="Aero Positions API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(positions_router)
app.include_router(prices_router)
app.include_router(health_router)
