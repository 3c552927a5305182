from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging
from typing import Any, TypeVar

import httpx

from app.domain.entities.outcome import Outcome
from app.domain.services.first_success import Candidate, CandidateError, first_success


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubgraphQueryError(CandidateError):
    pass


@dataclass(frozen=True)
class GraphQLClientSettings:
    url: str
    api_key: str
    timeout_seconds: float


class GraphQLClient:
    """Single-shot GraphQL POST client; one failed request is final."""

    def __init__(
        self,
        settings: GraphQLClientSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.url)

    @property
    def url(self) -> str:
        return self._settings.url

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.api_key
        if not api_key:
            return {}
        return {
            "x-api-key": api_key,
            "api-key": api_key,
            "Authorization": f"Bearer {api_key}",
        }

    def post(self, *, query: str, variables: dict | None = None) -> dict[str, Any]:
        if not self.is_configured:
            raise SubgraphQueryError("no client")
        try:
            with httpx.Client(
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.post(
                    self._settings.url,
                    json={"query": query, "variables": variables or {}},
                    headers=self._headers(),
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise SubgraphQueryError(str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            raise SubgraphQueryError(f"invalid JSON response: {exc}") from exc

        if not isinstance(payload, dict):
            raise SubgraphQueryError("invalid GraphQL response")
        errors = payload.get("errors") or []
        if errors:
            message = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            raise SubgraphQueryError(message or "unknown")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise SubgraphQueryError("response has no data")
        return data

    def first_success(
        self,
        candidates: Iterable[Candidate[T]],
        variables: dict | None = None,
    ) -> Outcome[T]:
        if not self.is_configured:
            return Outcome.failed("no client")
        outcome = first_success(
            candidates,
            lambda candidate: self.post(query=candidate.query, variables=variables),
        )
        if outcome.ok:
            logger.info(
                "graphql_client: candidate_accepted url=%s candidate=%s status=%s",
                self._settings.url,
                outcome.source,
                outcome.status,
            )
        else:
            logger.warning(
                "graphql_client: all_candidates_failed url=%s reason=%s",
                self._settings.url,
                outcome.reason,
            )
        return outcome
