from __future__ import annotations

from functools import lru_cache

from app.application.use_cases.get_health import GetHealthUseCase
from app.application.use_cases.get_prices import GetPricesUseCase
from app.application.use_cases.list_positions import ListPositionsUseCase
from app.infrastructure.clients.base_chain_client import (
    BaseChainClient,
    BaseChainClientSettings,
)
from app.infrastructure.clients.graphql_client import GraphQLClient, GraphQLClientSettings
from app.infrastructure.clients.pricing import CoingeckoPriceProvider
from app.infrastructure.clients.slipstream_subgraph_client import SlipstreamSubgraphClient
from app.infrastructure.clients.solidly_subgraph_client import SolidlySubgraphClient
from app.shared.config import Settings, get_settings


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def _graphql_client(url: str) -> GraphQLClient:
    settings = get_app_settings()
    return GraphQLClient(
        GraphQLClientSettings(
            url=url,
            api_key=settings.subgraph_api_key,
            timeout_seconds=settings.subgraph_timeout_seconds,
        )
    )


@lru_cache(maxsize=1)
def _get_slipstream_indexer() -> SlipstreamSubgraphClient:
    settings = get_app_settings()
    return SlipstreamSubgraphClient(
        slipstream=_graphql_client(settings.slipstream_subgraph_url),
        gauges=_graphql_client(settings.gauges_subgraph_url),
    )


@lru_cache(maxsize=1)
def _get_solidly_indexer() -> SolidlySubgraphClient:
    settings = get_app_settings()
    return SolidlySubgraphClient(client=_graphql_client(settings.solidly_subgraph_url))


@lru_cache(maxsize=1)
def _get_chain_client() -> BaseChainClient:
    settings = get_app_settings()
    return BaseChainClient(
        BaseChainClientSettings(
            rpc_url=settings.base_rpc_url,
            timeout_seconds=settings.rpc_timeout_seconds,
            position_manager_address=settings.position_manager_address,
            factory_address=settings.cl_factory_address,
        )
    )


@lru_cache(maxsize=1)
def _get_price_provider() -> CoingeckoPriceProvider:
    settings = get_app_settings()
    return CoingeckoPriceProvider(
        api_base=settings.coingecko_api_base,
        timeout_seconds=settings.coingecko_timeout_seconds,
        cache_ttl_seconds=settings.coingecko_cache_ttl_seconds,
        api_key=settings.coingecko_api_key,
    )


def get_list_positions_use_case() -> ListPositionsUseCase:
    settings = get_app_settings()
    return ListPositionsUseCase(
        indexer=_get_slipstream_indexer(),
        classic_indexer=_get_solidly_indexer(),
        chain=_get_chain_client(),
        manual_stakers=settings.slipstream_stakers,
        enrich=settings.onchain_enrichment,
        default_window=settings.log_scan_window,
        default_max_lookback=settings.log_scan_max_lookback,
    )


def get_prices_use_case() -> GetPricesUseCase:
    return GetPricesUseCase(price_feed_port=_get_price_provider())


def get_health_use_case() -> GetHealthUseCase:
    return GetHealthUseCase(settings=get_app_settings())
