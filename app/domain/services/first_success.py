from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from app.domain.entities.outcome import Outcome


T = TypeVar("T")


class CandidateError(RuntimeError):
    """Raised by a candidate runner when the source rejects the query."""


@dataclass(frozen=True)
class Candidate(Generic[T]):
    """One query shape plus the extractor that reads its answer.

    ``extract`` returns ``None`` when the payload does not have the expected
    structure, which counts as a failure of that candidate.
    """

    name: str
    query: str
    extract: Callable[[Mapping[str, Any]], T | None]


def first_success(
    candidates: Iterable[Candidate[T]],
    run: Callable[[Candidate[T]], Mapping[str, Any]],
) -> Outcome[T]:
    """Evaluate candidates in order; the first structurally valid answer wins.

    A candidate that answers with zero rows still wins: later candidates are
    only tried after an error or an unexpected payload shape.
    """
    reasons: list[str] = []
    for candidate in candidates:
        try:
            payload = run(candidate)
        except CandidateError as exc:
            reasons.append(f"{candidate.name}: {exc}")
            continue
        value = candidate.extract(payload)
        if value is None:
            reasons.append(f"{candidate.name}: unexpected response shape")
            continue
        return Outcome.of(value, source=candidate.name)

    if not reasons:
        return Outcome.failed("no candidates")
    return Outcome.failed("; ".join(reasons))
