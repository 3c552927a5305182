from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar


T = TypeVar("T")

OutcomeStatus = Literal["value", "empty", "failed"]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of a best-effort lookup against an external source.

    ``value`` carries data, ``empty`` means the source answered but had
    nothing, ``failed`` means the source could not be used (``reason`` says
    why). ``source`` names the query shape or strategy that produced it.
    """

    status: OutcomeStatus
    value: T | None = None
    reason: str | None = None
    source: str | None = None

    @classmethod
    def of(cls, value: T, *, source: str | None = None) -> "Outcome[T]":
        if value:
            return cls(status="value", value=value, source=source)
        return cls(status="empty", value=value, source=source)

    @classmethod
    def failed(cls, reason: str, *, source: str | None = None) -> "Outcome[T]":
        return cls(status="failed", reason=reason, source=source)

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    @property
    def has_value(self) -> bool:
        return self.status == "value"
