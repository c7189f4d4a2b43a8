"""Child viability search.

For the first, second and third child, find the earliest age at which the
household can add that child and stay solvent for the following years.

A candidate birth year is viable when, for every year of the window that
starts at the birth:
  - disposable income is non-negative;
  - no debt balance is higher than the year before;
  - savings stay at or above the safety floor.

Earlier children sit at their resolved ages in every test run, so a later
child's window may overlap an earlier child's and both sets of costs count.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from .config import (
    CHILD_SAFETY_FLOOR,
    CHILD_SEARCH_SPAN_YEARS,
    CHILD_WINDOW_YEARS,
    MAX_CHILDREN,
)
from .profile import UserProfile
from .simulator import SimulationRun

logger = logging.getLogger(__name__)

ChildStatus = Literal["already-have", "viable", "not-viable", "not-planned"]

ORDINAL_NAMES = {1: "first", 2: "second", 3: "third"}


@dataclass(frozen=True)
class ChildViability:
    ordinal: int
    status: ChildStatus
    minimum_age: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_viable(self) -> bool:
        return self.status in ("already-have", "viable")


def window_failure(
    run: SimulationRun,
    birth_year: int,
    profile: UserProfile,
    *,
    window: int = CHILD_WINDOW_YEARS,
) -> Optional[str]:
    """Return why the window starting at *birth_year* fails, or None if it holds."""
    for year in range(birth_year, birth_year + window):
        snap = run.at(year)
        prior = run.at(year - 1)
        if snap is None or prior is None:
            return f"Simulation ends before age {profile.age_in_year(year)}"
        if snap.disposable_income < 0:
            return f"Negative disposable income at age {snap.age}"
        before = prior.ledger.debts.named(profile)
        for name, balance in snap.ledger.debts.named(profile).items():
            if balance > before[name]:
                return f"{name.replace('_', ' ').capitalize()} debt grows at age {snap.age}"
        if snap.savings < CHILD_SAFETY_FLOOR:
            return f"Savings fall below ${CHILD_SAFETY_FLOOR:,.0f} at age {snap.age}"
    return None


def _hard_rule_failure(run: SimulationRun, birth_year: int, profile: UserProfile) -> Optional[str]:
    if "debt-before-kids" in profile.hard_rules:
        debt_free = run.debt_free_year
        if debt_free is None or birth_year < debt_free:
            return "Debt must be paid off before having children"
    if "mortgage-before-kids" in profile.hard_rules:
        bought = run.mortgage_year
        if bought is None or birth_year < bought:
            return "A home must be bought before having children"
    return None


def find_child_viability(
    profile: UserProfile,
    run_for: Callable[[UserProfile], SimulationRun],
    *,
    span: int = CHILD_SEARCH_SPAN_YEARS,
) -> tuple[ChildViability, ...]:
    """Resolve the viability of up to three children, in order.

    *run_for* simulates a test profile; it must cover at least
    ``span + CHILD_WINDOW_YEARS`` years for the last candidates to be checked.
    """
    if profile.children_status == "none":
        return tuple(
            ChildViability(ordinal=k, status="not-planned", reason="No children planned")
            for k in range(1, MAX_CHILDREN + 1)
        )

    results: list[ChildViability] = []
    resolved_ages: list[int] = []
    for ordinal in range(1, MAX_CHILDREN + 1):
        if ordinal <= profile.existing_children:
            results.append(ChildViability(ordinal=ordinal, status="already-have"))
            continue
        if results and not results[-1].is_viable:
            results.append(ChildViability(
                ordinal=ordinal,
                status="not-viable",
                reason=f"The {ORDINAL_NAMES[ordinal - 1]} child is not viable",
            ))
            continue

        first_age = profile.current_age
        if resolved_ages:
            first_age = max(first_age, resolved_ages[-1] + (profile.child_spacing_years or 0))
        last_age = profile.current_age + span

        found: Optional[int] = None
        last_reason = "No candidate ages in range"
        for age in range(first_age, last_age + 1):
            test_profile = profile.with_planned_child_ages(tuple(resolved_ages) + (age,))
            run = run_for(test_profile)
            birth_year = profile.birth_year(age)
            reason = _hard_rule_failure(run, birth_year, profile) or window_failure(
                run, birth_year, profile
            )
            if reason is None:
                found = age
                break
            last_reason = reason

        if found is None:
            logger.debug("child %d not viable up to age %d: %s", ordinal, last_age, last_reason)
            results.append(ChildViability(
                ordinal=ordinal,
                status="not-viable",
                reason=f"No viable age up to {last_age}: {last_reason}",
            ))
        else:
            resolved_ages.append(found)
            results.append(ChildViability(ordinal=ordinal, status="viable", minimum_age=found))
    return tuple(results)
