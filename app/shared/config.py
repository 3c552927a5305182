from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


DEFAULT_POSITION_MANAGER = "0x827922686190790b37229fd06084350E74485b72"
DEFAULT_CL_FACTORY = "0x5e7BB104d84c7CB9B682AaC2F3d509f5F406809A"
TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _csv(name: str) -> tuple[str, ...]:
    value = _env(name) or ""
    items = [item.strip().lower() for item in value.split(",")]
    return tuple(item for item in items if item)


def _flag(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in TRUTHY


@dataclass(frozen=True)
class Settings:
    slipstream_subgraph_url: str
    gauges_subgraph_url: str
    solidly_subgraph_url: str
    subgraph_api_key: str
    subgraph_timeout_seconds: float
    slipstream_stakers: tuple[str, ...]
    base_rpc_url: str
    rpc_timeout_seconds: float
    position_manager_address: str
    cl_factory_address: str
    onchain_enrichment: bool
    log_scan_window: int
    log_scan_max_lookback: int
    coingecko_api_base: str
    coingecko_api_key: str
    coingecko_timeout_seconds: float
    coingecko_cache_ttl_seconds: float
    log_level: str


def get_settings() -> Settings:
    return Settings(
        slipstream_subgraph_url=(_env("AERO_SLIPSTREAM_SUBGRAPH", "") or "").strip(),
        gauges_subgraph_url=(_env("AERO_GAUGES_SUBGRAPH", "") or "").strip(),
        solidly_subgraph_url=(_env("AERO_SOLIDLY_SUBGRAPH", "") or "").strip(),
        subgraph_api_key=(_env("SUBGRAPH_API_KEY", "") or "").strip(),
        subgraph_timeout_seconds=float(_env("SUBGRAPH_TIMEOUT_SECONDS", "15")),
        slipstream_stakers=_csv("SLIPSTREAM_STAKERS"),
        base_rpc_url=(_env("BASE_RPC_URL", "") or "").strip(),
        rpc_timeout_seconds=float(_env("RPC_TIMEOUT_SECONDS", "20")),
        position_manager_address=_env("SLIPSTREAM_POSITION_MANAGER", DEFAULT_POSITION_MANAGER),
        cl_factory_address=_env("SLIPSTREAM_FACTORY", DEFAULT_CL_FACTORY),
        onchain_enrichment=_flag("ONCHAIN_ENRICHMENT", True),
        log_scan_window=int(_env("LOG_SCAN_WINDOW", "10000")),
        log_scan_max_lookback=int(_env("LOG_SCAN_MAX_LOOKBACK", "500000")),
        coingecko_api_base=_env("COINGECKO_API_BASE", "https://api.coingecko.com/api/v3"),
        coingecko_api_key=(_env("COINGECKO_API_KEY", "") or "").strip(),
        coingecko_timeout_seconds=float(_env("COINGECKO_TIMEOUT_SECONDS", "10")),
        coingecko_cache_ttl_seconds=float(_env("COINGECKO_CACHE_TTL_SECONDS", "60")),
        log_level=_env("LOG_LEVEL", "INFO"),
    )
