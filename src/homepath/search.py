"""Searches driven by repeated simulation runs.

Every search here takes its simulation as a callable, so each can be tested
against a stub without running the year simulator:

- earliest_mortgage_year   first year a run records an acquisition
- earliest_year_reaching   first year a per-snapshot figure reaches a target
- find_sustainability_cap  largest price whose payment holds once it is bought
- find_minimum_allocation  lowest allocation that still buys in time

All loops have fixed iteration caps. A search that runs out of iterations
returns the best candidate found so far.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Literal, Optional

from .config import (
    MIN_ALLOCATION_CEILING,
    MIN_ALLOCATION_FLOOR,
    MIN_ALLOCATION_ITERATIONS,
    MIN_ALLOCATION_STEP,
    SUSTAINABILITY_EXPANSIONS,
    SUSTAINABILITY_ITERATIONS,
    SUSTAINABILITY_START_PRICE,
    ZERO,
)
from .simulator import YearSnapshot

logger = logging.getLogger(__name__)

BindingConstraint = Literal["income", "savings"]


@dataclass(frozen=True)
class CapProbe:
    passes: bool                        # bought, and the payment holds from then on
    purchase_year: Optional[int] = None  # year the candidate was bought, if ever


@dataclass(frozen=True)
class SustainabilityCap:
    price: Decimal
    binding: BindingConstraint
    purchase_year: Optional[int]
    iterations: int
    converged: bool


def earliest_mortgage_year(snapshots: Iterable[YearSnapshot]) -> Optional[int]:
    """First year whose snapshot records an acquisition; None means no viable path."""
    for snap in snapshots:
        if snap.mortgage_acquired:
            return snap.year
    return None


def earliest_year_reaching(
    snapshots: Iterable[YearSnapshot],
    target: Decimal,
    value_of: Callable[[YearSnapshot], Decimal],
) -> Optional[YearSnapshot]:
    """First snapshot whose ``value_of`` figure is at least *target*."""
    for snap in snapshots:
        if value_of(snap) >= target:
            return snap
    return None


def find_sustainability_cap(
    probe: Callable[[Decimal], CapProbe],
    *,
    start: Decimal = SUSTAINABILITY_START_PRICE,
    iterations: int = SUSTAINABILITY_ITERATIONS,
    expansions: int = SUSTAINABILITY_EXPANSIONS,
) -> SustainabilityCap:
    """Find the largest price *probe* accepts.

    The upper bound starts at *start* and doubles (at most *expansions* times)
    until a candidate fails; the bracket is then halved *iterations* times.
    *probe* must be monotone in price: once a price fails, every higher price
    fails too.
    """
    lower = ZERO
    lower_probe: Optional[CapProbe] = None
    upper = start
    upper_probe = probe(upper)
    used = 0
    while upper_probe.passes and used < expansions:
        lower, lower_probe = upper, upper_probe
        upper = upper * 2
        upper_probe = probe(upper)
        used += 1

    if upper_probe.passes:
        logger.debug("sustainability cap unbounded after %d expansions; keeping %s", used, upper)
        return SustainabilityCap(
            price=upper,
            binding=_binding(upper_probe),
            purchase_year=upper_probe.purchase_year,
            iterations=used,
            converged=False,
        )

    for _ in range(iterations):
        middle = (lower + upper) / 2
        result = probe(middle)
        if result.passes:
            lower, lower_probe = middle, result
        else:
            upper, upper_probe = middle, result
        used += 1

    logger.debug("sustainability cap %s after %d probes", lower, used)
    return SustainabilityCap(
        price=lower,
        binding=_binding(upper_probe),
        purchase_year=lower_probe.purchase_year if lower_probe else None,
        iterations=used,
        converged=True,
    )


def _binding(result: CapProbe) -> BindingConstraint:
    """Savings bind when the first failing price is one the run never buys."""
    if result.purchase_year is None:
        return "savings"
    return "income"


def find_minimum_allocation(
    reaches_mortgage: Callable[[int], bool],
    *,
    floor: int = MIN_ALLOCATION_FLOOR,
    ceiling: int = MIN_ALLOCATION_CEILING,
    iterations: int = MIN_ALLOCATION_ITERATIONS,
    step: int = MIN_ALLOCATION_STEP,
) -> int:
    """Lowest allocation percentage for which *reaches_mortgage* holds.

    Bisects over whole percentages and rounds the answer up to the next
    multiple of *step*. Returns *ceiling* when even the ceiling fails.
    """
    if not reaches_mortgage(ceiling):
        return ceiling
    if reaches_mortgage(floor):
        best = floor
    else:
        failing, passing = floor, ceiling
        for _ in range(iterations):
            if passing - failing <= 1:
                break
            middle = (failing + passing) // 2
            if reaches_mortgage(middle):
                passing = middle
            else:
                failing = middle
        best = passing
    return min(ceiling, -(-best // step) * step)
