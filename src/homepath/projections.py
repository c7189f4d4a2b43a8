"""House-price projections assembled from one simulation run.

Every projection reads the no-mortgage savings track, since it answers
"what could the household buy at that point" regardless of whether the main
ledger already bought something. Two ceilings apply at every point:

- the savings ceiling: down payment plus first-year payment must fit in savings;
- the income ceiling: the payment must fit allocation x (income - owning cost
  of living) in that year and every later simulated year.

The binding constraint is whichever ceiling is lower. The max-affordable
projection reports the run-wide sustainability cap as its income ceiling.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Literal, Optional

from .config import (
    FIXED_HORIZONS,
    SQFT_LARGE,
    SQFT_MEDIUM,
    SQFT_SMALL,
    SQFT_VERY_LARGE,
    ZERO,
)
from .locations import HousingMarket, LocationData
from .mortgage import (
    max_price_for_payment,
    max_price_from_savings,
    quote_mortgage,
    round_cents,
    upfront_cost,
)
from .profile import UserProfile
from .search import BindingConstraint, SustainabilityCap, earliest_year_reaching
from .simulator import SimulationRun, YearSnapshot

ProjectionStatus = Literal["available", "beyond-simulation", "not-computed"]

# Required home tier by number of children; three or more use the last entry.
_TIER_BY_CHILDREN: tuple[tuple[str, int], ...] = (
    ("small", SQFT_SMALL),
    ("median", SQFT_MEDIUM),
    ("large", SQFT_LARGE),
    ("very_large", SQFT_VERY_LARGE),
)


@dataclass(frozen=True)
class HouseProjection:
    label: str
    year: Decimal
    age: Decimal
    total_savings: Decimal
    max_price_from_savings: Decimal
    max_sustainable_price: Decimal
    binding: BindingConstraint
    affordable_price: Decimal
    down_payment: Decimal
    annual_payment: Decimal
    post_mortgage_disposable_income: Decimal
    affordable_square_feet: int


@dataclass(frozen=True)
class ProjectionLookup:
    """Outcome of a custom-horizon request.

    ``not-computed`` means nothing was requested (or the run failed);
    ``beyond-simulation`` means the run is shorter than the request.
    """
    status: ProjectionStatus
    requested_years: Optional[Decimal] = None
    projection: Optional[HouseProjection] = None


@dataclass(frozen=True)
class _Point:
    year: Decimal
    age: Decimal
    savings: Decimal
    income: Decimal
    owner_cost_of_living: Decimal


# ── Size tiers ────────────────────────────────────────────────────────────────

def planned_children(profile: UserProfile) -> int:
    return profile.existing_children + len(profile.planned_child_ages)


def required_home_tier(children: int) -> str:
    return _TIER_BY_CHILDREN[min(children, len(_TIER_BY_CHILDREN) - 1)][0]


def required_square_feet(children: int) -> int:
    return _TIER_BY_CHILDREN[min(children, len(_TIER_BY_CHILDREN) - 1)][1]


def target_home_price(profile: UserProfile, location: LocationData) -> Decimal:
    """Price of the home tier the household's planned family size requires."""
    return location.housing.home_value(required_home_tier(planned_children(profile)))


def affordable_square_feet(price: Decimal, housing: HousingMarket) -> int:
    """Square footage a price buys, interpolated over the location's tier prices.

    Below the small tier and above the very-large tier the footage scales
    proportionally with price.
    """
    if price <= ZERO:
        return 0
    points = [(housing.home_value(tier), Decimal(sqft)) for tier, sqft in _TIER_BY_CHILDREN]
    first_price, first_sqft = points[0]
    if price <= first_price:
        sqft = first_sqft * price / first_price if first_price > ZERO else first_sqft
        return int(sqft.to_integral_value(rounding=ROUND_FLOOR))
    for (p0, s0), (p1, s1) in zip(points, points[1:]):
        if p0 < price <= p1:
            sqft = s0 + (s1 - s0) * (price - p0) / (p1 - p0)
            return int(sqft.to_integral_value(rounding=ROUND_FLOOR))
    last_price, last_sqft = points[-1]
    sqft = last_sqft * price / last_price
    return int(sqft.to_integral_value(rounding=ROUND_FLOOR))


# ── Builders ──────────────────────────────────────────────────────────────────

def _point(snap: YearSnapshot) -> _Point:
    return _Point(
        year=Decimal(snap.year),
        age=Decimal(snap.age),
        savings=snap.savings_no_mortgage,
        income=snap.total_income,
        owner_cost_of_living=snap.owner_cost_of_living,
    )


def sustainable_price(run: SimulationRun, from_year: int, housing: HousingMarket) -> Decimal:
    """Largest price whose payment fits every simulated year from *from_year* on."""
    budget = run.sustainable_budget(from_year)
    if budget is None:
        return ZERO
    return max_price_for_payment(budget, housing.mortgage_rate, housing.down_payment_percent)


def _project(label: str, point: _Point, income_max: Decimal, location: LocationData) -> HouseProjection:
    housing = location.housing
    savings_max = max_price_from_savings(point.savings, housing.mortgage_rate, housing.down_payment_percent)
    binding: BindingConstraint = (
        "savings" if round_cents(savings_max) < round_cents(income_max) else "income"
    )
    price = min(savings_max, income_max)
    quote = quote_mortgage(price, housing.mortgage_rate, housing.down_payment_percent)
    return HouseProjection(
        label=label,
        year=point.year,
        age=point.age,
        total_savings=round_cents(point.savings),
        max_price_from_savings=round_cents(savings_max),
        max_sustainable_price=round_cents(income_max),
        binding=binding,
        affordable_price=quote.home_price,
        down_payment=quote.down_payment,
        annual_payment=quote.annual_payment,
        post_mortgage_disposable_income=round_cents(
            point.income - point.owner_cost_of_living - quote.annual_payment
        ),
        affordable_square_feet=affordable_square_feet(price, housing),
    )


def _project_year(label: str, run: SimulationRun, snap: YearSnapshot, location: LocationData) -> HouseProjection:
    income_max = sustainable_price(run, snap.year, location.housing)
    return _project(label, _point(snap), income_max, location)


def fixed_horizon_projections(
    run: SimulationRun,
    location: LocationData,
    horizons: tuple[int, ...] = FIXED_HORIZONS,
) -> dict[int, Optional[HouseProjection]]:
    """Projection at each whole-year horizon; None where the run is too short."""
    projections: dict[int, Optional[HouseProjection]] = {}
    for years in horizons:
        snap = run.at(years)
        projections[years] = (
            None if snap is None or years == 0 else _project_year(f"year_{years}", run, snap, location)
        )
    return projections


def fastest_path_projection(
    run: SimulationRun,
    location: LocationData,
    target_price: Decimal,
) -> Optional[HouseProjection]:
    """Earliest year whose savings ceiling reaches *target_price*."""
    housing = location.housing
    snap = earliest_year_reaching(
        run.snapshots,
        target_price,
        lambda s: max_price_from_savings(
            s.savings_no_mortgage, housing.mortgage_rate, housing.down_payment_percent
        ),
    )
    if snap is None:
        return None
    return _project_year("fastest_path", run, snap, location)


def custom_horizon_projection(
    run: SimulationRun,
    location: LocationData,
    years: Optional[Decimal],
) -> ProjectionLookup:
    """Projection at a fractional horizon, interpolated between whole years.

    Never extrapolates: a horizon past the last simulated year is reported as
    ``beyond-simulation``.
    """
    if years is None:
        return ProjectionLookup(status="not-computed")
    years = Decimal(years)
    if years <= ZERO:
        raise ValueError(f"Custom horizon must be > 0 years, got {years}.")
    if years > run.horizon:
        return ProjectionLookup(status="beyond-simulation", requested_years=years)

    whole = int(years)
    fraction = years - whole
    if fraction == ZERO:
        projection = _project_year("custom", run, run.at(whole), location)
    else:
        a = _point(run.at(whole)) if whole else _seed_point(run)
        b = _point(run.at(whole + 1))
        point = _Point(
            year=years,
            age=a.age + (b.age - a.age) * fraction,
            savings=a.savings + (b.savings - a.savings) * fraction,
            income=a.income + (b.income - a.income) * fraction,
            owner_cost_of_living=(
                a.owner_cost_of_living + (b.owner_cost_of_living - a.owner_cost_of_living) * fraction
            ),
        )
        housing = location.housing
        # the interpolated year itself, then every whole year after it
        budget = min(
            run.allocation * (point.income - point.owner_cost_of_living),
            run.sustainable_budget(whole + 1),
        )
        income_max = max_price_for_payment(budget, housing.mortgage_rate, housing.down_payment_percent)
        projection = _project("custom", point, income_max, location)
    return ProjectionLookup(status="available", requested_years=years, projection=projection)


def _seed_point(run: SimulationRun) -> _Point:
    # year 0 carries no income of its own; the first year's figures stand in
    first = run.snapshots[0]
    return _Point(
        year=ZERO,
        age=Decimal(run.seed.age),
        savings=run.seed.savings_no_mortgage,
        income=first.total_income,
        owner_cost_of_living=first.owner_cost_of_living,
    )


def max_affordable_projection(
    run: SimulationRun,
    cap: SustainabilityCap,
    location: LocationData,
) -> Optional[HouseProjection]:
    """The sustainability cap, dated at the first year savings can buy it.

    Absent only when no positive price is sustainable at all. When savings
    never reach the cap within the run, the final year is reported and the
    savings ceiling binds.
    """
    if cap.price <= ZERO:
        return None
    housing = location.housing
    needed = upfront_cost(cap.price, housing.mortgage_rate, housing.down_payment_percent)
    snap = earliest_year_reaching(run.snapshots, needed, lambda s: s.savings_no_mortgage)
    if snap is None:
        snap = run.snapshots[-1]
    return _project("max_affordable", _point(snap), cap.price, location)
