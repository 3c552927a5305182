from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from app.domain.entities.outcome import Outcome
from app.domain.entities.position import DepositorMapping


class DepositorStrategy(Protocol):
    name: str

    def resolve(self, *, pending: frozenset[str]) -> Outcome[DepositorMapping]:
        ...


@dataclass(frozen=True)
class ResolutionStep:
    strategy: str
    outcome: Outcome[DepositorMapping]


@dataclass(frozen=True)
class ResolutionResult:
    mapping: DepositorMapping
    steps: list[ResolutionStep] = field(default_factory=list)

    def step(self, strategy: str) -> ResolutionStep | None:
        for item in self.steps:
            if item.strategy == strategy:
                return item
        return None


def resolve_depositors(
    strategies: list[DepositorStrategy],
    *,
    requested_ids: frozenset[str] = frozenset(),
) -> ResolutionResult:
    """Run strategies in order until the mapping is good enough.

    Without requested ids the first strategy yielding a value ends the chain.
    With requested ids the chain continues while any of them is unresolved;
    earlier strategies win when two attribute the same token id.
    """
    mapping: DepositorMapping = {}
    steps: list[ResolutionStep] = []

    for strategy in strategies:
        pending = frozenset(requested_ids - mapping.keys())
        if mapping and not pending:
            break
        outcome = strategy.resolve(pending=pending)
        steps.append(ResolutionStep(strategy=strategy.name, outcome=outcome))
        if outcome.has_value and outcome.value:
            for token_id, depositor in outcome.value.items():
                mapping.setdefault(token_id, depositor)

    return ResolutionResult(mapping=mapping, steps=steps)
