from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class PositionsInputError(DomainError):
    """Invalid parameters for the positions lookup."""


class PricesInputError(DomainError):
    """Invalid parameters for the price lookup."""


class ChainReadError(DomainError):
    """A read against the blockchain RPC endpoint failed."""


class PriceFeedUpstreamError(DomainError):
    """The pricing API answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class PriceFeedNetworkError(DomainError):
    """The pricing API could not be reached."""
