"""Result classification, scoring and recommendation text.

Maps the numbers of one calculation onto:
- a viability tier (Viability);
- a house-size class comparing affordable and required square footage;
- a numeric score used to rank locations;
- recommendation and warning lines from fixed rule tables.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from .config import (
    ALLOCATION_SHORTFALL_TOLERANCE,
    HIGH_ALLOCATION_WARNING,
    HOUSE_RATIO_LARGE,
    HOUSE_RATIO_MEDIUM,
    HOUSE_RATIO_SMALL,
    MIN_ALLOCATION_TARGET_YEARS,
    STABLE_MARGIN_RATIO,
    STABLE_MAX_YEARS,
    THIN_MARGIN_RATIO,
    ZERO,
)
from .simulator import SimulationRun


class Viability(str, Enum):
    VERY_VIABLE_STABLE_LARGE = "very-viable-stable-large"
    VIABLE_LARGE = "viable-large"
    VERY_VIABLE_STABLE_MEDIUM = "very-viable-stable-medium"
    VIABLE_MEDIUM = "viable-medium"
    SOMEWHAT_VIABLE_SMALL = "somewhat-viable-small"
    VIABLE_WHEN_RENTING = "viable-when-renting"
    VIABLE_EXTREME_CARE = "viable-extreme-care"
    VIABLE_HIGHER_ALLOCATION = "viable-higher-allocation"
    NO_VIABLE_PATH = "no-viable-path"


class HouseSize(str, Enum):
    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"
    INSUFFICIENT = "insufficient"


VIABILITY_WEIGHTS: dict[Viability, int] = {
    Viability.VERY_VIABLE_STABLE_LARGE: 100,
    Viability.VERY_VIABLE_STABLE_MEDIUM: 90,
    Viability.VIABLE_LARGE: 80,
    Viability.VIABLE_MEDIUM: 70,
    Viability.SOMEWHAT_VIABLE_SMALL: 60,
    Viability.VIABLE_HIGHER_ALLOCATION: 50,
    Viability.VIABLE_EXTREME_CARE: 40,
    Viability.VIABLE_WHEN_RENTING: 30,
    Viability.NO_VIABLE_PATH: 0,
}


def classify_house_size(affordable_sqft: int, required_sqft: int) -> HouseSize:
    if required_sqft <= 0:
        return HouseSize.LARGE
    ratio = Decimal(affordable_sqft) / Decimal(required_sqft)
    if ratio >= HOUSE_RATIO_LARGE:
        return HouseSize.LARGE
    if ratio >= HOUSE_RATIO_MEDIUM:
        return HouseSize.MEDIUM
    if ratio >= HOUSE_RATIO_SMALL:
        return HouseSize.SMALL
    return HouseSize.INSUFFICIENT


def worst_post_mortgage_margin(run: SimulationRun) -> Optional[Decimal]:
    """Lowest disposable income / income over the years paying the mortgage."""
    bought = run.mortgage_year
    if bought is None:
        return None
    ratios = [
        snap.disposable_income / snap.total_income
        for snap in run.snapshots
        if snap.year > bought and snap.total_income > ZERO
    ]
    return min(ratios) if ratios else None


def allocation_short(required: int, chosen: Decimal) -> bool:
    """True when *chosen* is more than the tolerance below the rounded minimum."""
    return chosen < required - ALLOCATION_SHORTFALL_TOLERANCE


def classify_viability(
    *,
    mortgage_year: Optional[int],
    renting_sustainable: bool,
    worst_margin: Optional[Decimal],
    required_allocation: int,
    chosen_allocation: Decimal,
    house_size: HouseSize,
) -> Viability:
    if mortgage_year is None:
        return Viability.VIABLE_WHEN_RENTING if renting_sustainable else Viability.NO_VIABLE_PATH
    if worst_margin is not None and worst_margin < ZERO:
        return Viability.VIABLE_EXTREME_CARE
    if allocation_short(required_allocation, chosen_allocation):
        return Viability.VIABLE_HIGHER_ALLOCATION
    if worst_margin is not None and worst_margin < THIN_MARGIN_RATIO:
        return Viability.VIABLE_EXTREME_CARE
    if house_size in (HouseSize.SMALL, HouseSize.INSUFFICIENT):
        return Viability.SOMEWHAT_VIABLE_SMALL

    stable = (
        worst_margin is not None
        and worst_margin >= STABLE_MARGIN_RATIO
        and mortgage_year <= STABLE_MAX_YEARS
    )
    if house_size is HouseSize.LARGE:
        return Viability.VERY_VIABLE_STABLE_LARGE if stable else Viability.VIABLE_LARGE
    return Viability.VERY_VIABLE_STABLE_MEDIUM if stable else Viability.VIABLE_MEDIUM


def score(viability: Viability, years_to_mortgage: Optional[int], final_savings: Decimal) -> Decimal:
    """Viability weight + speed bonus (up to 50) + savings bonus (up to 30)."""
    speed = max(0, 50 - 3 * years_to_mortgage) if years_to_mortgage is not None else 0
    savings_bonus = min(Decimal(30), max(ZERO, final_savings) / Decimal(10000))
    return (Decimal(VIABILITY_WEIGHTS[viability] + speed) + savings_bonus).quantize(Decimal("0.01"))


# ── Recommendation / warning rules ───────────────────────────────────────────

@dataclass(frozen=True)
class Findings:
    viability: Viability
    years_to_mortgage: Optional[int]
    required_allocation: int
    chosen_allocation: Decimal
    house_size: HouseSize
    binding: Optional[str]
    negative_income_years: int
    student_loan_growth_years: int
    credit_card_carried_years: int
    debt_free_year: Optional[int]
    worst_margin: Optional[Decimal]


Rule = tuple[Callable[[Findings], bool], Callable[[Findings], str]]

_STABLE = (Viability.VERY_VIABLE_STABLE_LARGE, Viability.VERY_VIABLE_STABLE_MEDIUM)

RECOMMENDATION_RULES: tuple[Rule, ...] = (
    (
        lambda f: f.viability in _STABLE,
        lambda f: "Excellent financial position - goals achievable quickly",
    ),
    (
        lambda f: allocation_short(f.required_allocation, f.chosen_allocation),
        lambda f: (
            f"Increase allocation to {f.required_allocation}% to buy a home "
            f"within {MIN_ALLOCATION_TARGET_YEARS} years"
        ),
    ),
    (
        lambda f: f.credit_card_carried_years > 0,
        lambda f: "Pay down credit card debt first - it carries the highest interest rate",
    ),
    (
        lambda f: f.student_loan_growth_years > 0,
        lambda f: "WARNING: Student loan debt is growing - increase allocation or reduce expenses",
    ),
    (
        lambda f: f.viability is Viability.VIABLE_WHEN_RENTING,
        lambda f: "Renting stays affordable here while savings build toward a purchase",
    ),
    (
        lambda f: f.years_to_mortgage is None or f.years_to_mortgage > 12,
        lambda f: "Consider alternative locations for faster homeownership",
    ),
    (
        lambda f: f.binding == "income" and f.house_size in (HouseSize.SMALL, HouseSize.INSUFFICIENT),
        lambda f: "Income limits the home size here - consider a smaller home or a higher-paying market",
    ),
)

WARNING_RULES: tuple[Rule, ...] = (
    (
        lambda f: f.negative_income_years > 0,
        lambda f: f"Negative disposable income for {f.negative_income_years} year(s)",
    ),
    (
        lambda f: f.student_loan_growth_years > 0,
        lambda f: f"Student loan debt growing for {f.student_loan_growth_years} year(s)",
    ),
    (
        lambda f: f.chosen_allocation > HIGH_ALLOCATION_WARNING,
        lambda f: f"Very high allocation (>{HIGH_ALLOCATION_WARNING}%) - limited quality of life",
    ),
    (
        lambda f: f.debt_free_year is None,
        lambda f: "Debt is not paid off within the simulated horizon",
    ),
    (
        lambda f: f.worst_margin is not None and f.worst_margin < ZERO,
        lambda f: "Mortgage payment exceeds disposable income in some years",
    ),
)

DEFAULT_RECOMMENDATION = "Stay the course - the current plan reaches homeownership"


def _apply(rules: tuple[Rule, ...], findings: Findings) -> list[str]:
    return [message(findings) for matches, message in rules if matches(findings)]


def recommendations(findings: Findings) -> list[str]:
    lines = _apply(RECOMMENDATION_RULES, findings)
    return lines or [DEFAULT_RECOMMENDATION]


def warnings(findings: Findings) -> list[str]:
    return _apply(WARNING_RULES, findings)


def count_negative_income_years(run: SimulationRun) -> int:
    return sum(1 for snap in run.snapshots if snap.disposable_income < ZERO)


def count_student_loan_growth_years(run: SimulationRun) -> int:
    years = 0
    previous = run.seed.student_loan_balance
    for snap in run.snapshots:
        if snap.student_loan_balance > previous:
            years += 1
        previous = snap.student_loan_balance
    return years


def count_credit_card_carried_years(run: SimulationRun) -> int:
    return sum(1 for snap in run.snapshots if snap.credit_card_balance > ZERO)
