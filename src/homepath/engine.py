"""Calculation entry points.

calculate() runs everything for one (profile, location, horizon) triple:
simulation, searches, projections, child viability and classification.
calculate_all() fans the same profile out over several locations.

Error policy:
- a malformed profile raises ProfileValidationError before anything runs;
- missing location data (unknown location, occupation or household figure)
  yields a failed CalculationResult instead of raising, so a batch always
  returns one result per location;
- "no viable path" is a classification, not an error.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional

from .children import ChildViability, find_child_viability
from .classifier import (
    Findings,
    HouseSize,
    Viability,
    classify_house_size,
    classify_viability,
    count_credit_card_carried_years,
    count_negative_income_years,
    count_student_loan_growth_years,
    recommendations,
    score,
    warnings,
    worst_post_mortgage_margin,
)
from .config import (
    CHILD_SEARCH_SPAN_YEARS,
    CHILD_WINDOW_YEARS,
    DEFAULT_HORIZON_YEARS,
    MIN_ALLOCATION_CEILING,
    MIN_ALLOCATION_HORIZON,
    MIN_ALLOCATION_TARGET_YEARS,
    ZERO,
)
from .locations import LocationData, LocationDataError, LocationProvider, get_location
from .mortgage import annual_mortgage_payment, round_cents
from .profile import UserProfile, validate_profile
from .projections import (
    HouseProjection,
    ProjectionLookup,
    custom_horizon_projection,
    fastest_path_projection,
    fixed_horizon_projections,
    max_affordable_projection,
    planned_children,
    required_square_feet,
    target_home_price,
)
from .search import (
    CapProbe,
    SustainabilityCap,
    earliest_mortgage_year,
    find_minimum_allocation,
    find_sustainability_cap,
)
from .simulator import SimulationRun, YearSnapshot, simulate

logger = logging.getLogger(__name__)

FAILED_RECOMMENDATION = "Calculation failed - please check input data"


@dataclass(frozen=True)
class CalculationResult:
    location: str
    horizon: int
    calculation_successful: bool
    error_message: Optional[str] = None
    snapshots: tuple[YearSnapshot, ...] = ()
    target_home_price: Optional[Decimal] = None
    projections: Mapping[str, Optional[HouseProjection]] = field(default_factory=dict)
    custom: ProjectionLookup = ProjectionLookup(status="not-computed")
    sustainability_cap: Optional[SustainabilityCap] = None
    years_to_mortgage: Optional[int] = None
    age_at_mortgage: Optional[int] = None
    years_to_debt_free: Optional[int] = None
    age_debt_free: Optional[int] = None
    minimum_allocation_required: int = MIN_ALLOCATION_CEILING
    viability: Viability = Viability.NO_VIABLE_PATH
    house_size: HouseSize = HouseSize.INSUFFICIENT
    score: Decimal = ZERO
    recommendations: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    children: tuple[ChildViability, ...] = ()

    def projection(self, name: str) -> Optional[HouseProjection]:
        return self.projections.get(name)


def failed_result(location: str, message: str, horizon: int = DEFAULT_HORIZON_YEARS) -> CalculationResult:
    return CalculationResult(
        location=location,
        horizon=horizon,
        calculation_successful=False,
        error_message=message,
        recommendations=(FAILED_RECOMMENDATION,),
        warnings=(message,),
    )


# ── Search drivers ────────────────────────────────────────────────────────────

def cap_probe(
    profile: UserProfile,
    location: LocationData,
    horizon: int,
) -> Callable[[Decimal], CapProbe]:
    """Probe for the sustainability search.

    A candidate passes when a run that buys it as soon as savings allow does
    buy it, and its annual payment fits in allocation x (income - owning
    cost of living) in every year from the purchase onward. A candidate the
    run never buys fails: savings, not income, stop it.
    """
    housing = location.housing

    def probe(price: Decimal) -> CapProbe:
        trial = simulate(profile, location, horizon, price)
        bought = trial.mortgage_year
        if bought is None:
            return CapProbe(passes=False)
        payment = annual_mortgage_payment(price, housing.mortgage_rate, housing.down_payment_percent)
        return CapProbe(passes=payment <= trial.sustainable_budget(bought), purchase_year=bought)

    return probe


def buys_in_time(
    profile: UserProfile,
    location: LocationData,
    target_price: Decimal,
) -> Callable[[int], bool]:
    """Predicate for the minimum-allocation search."""
    def reaches(percent: int) -> bool:
        run = simulate(
            profile.with_allocation(Decimal(percent)), location, MIN_ALLOCATION_HORIZON, target_price
        )
        year = earliest_mortgage_year(run.snapshots)
        return year is not None and year <= MIN_ALLOCATION_TARGET_YEARS

    return reaches


# ── Calculation ───────────────────────────────────────────────────────────────

def _findings(
    run: SimulationRun,
    *,
    profile: UserProfile,
    viability: Viability,
    minimum_allocation: int,
    house_size: HouseSize,
    max_affordable: Optional[HouseProjection],
    margin: Optional[Decimal],
) -> Findings:
    return Findings(
        viability=viability,
        years_to_mortgage=run.mortgage_year,
        required_allocation=minimum_allocation,
        chosen_allocation=profile.allocation_percent,
        house_size=house_size,
        binding=max_affordable.binding if max_affordable else None,
        negative_income_years=count_negative_income_years(run),
        student_loan_growth_years=count_student_loan_growth_years(run),
        credit_card_carried_years=count_credit_card_carried_years(run),
        debt_free_year=run.debt_free_year,
        worst_margin=margin,
    )


def _calculate(
    profile: UserProfile,
    location: LocationData,
    horizon: int,
    custom_years: Optional[Decimal],
) -> CalculationResult:
    target = target_home_price(profile, location)
    run = simulate(profile, location, horizon, target)

    cap = find_sustainability_cap(cap_probe(profile, location, horizon))
    projections: dict[str, Optional[HouseProjection]] = {
        f"year_{years}": projection
        for years, projection in fixed_horizon_projections(run, location).items()
    }
    projections["fastest_path"] = fastest_path_projection(run, location, target)
    max_affordable = max_affordable_projection(run, cap, location)
    projections["max_affordable"] = max_affordable
    custom = custom_horizon_projection(run, location, custom_years)

    minimum_allocation = find_minimum_allocation(buys_in_time(profile, location, target))
    child_horizon = CHILD_SEARCH_SPAN_YEARS + CHILD_WINDOW_YEARS
    children = find_child_viability(
        profile, lambda test_profile: simulate(test_profile, location, child_horizon, target)
    )

    house_size = classify_house_size(
        max_affordable.affordable_square_feet if max_affordable else 0,
        required_square_feet(planned_children(profile)),
    )
    margin = worst_post_mortgage_margin(run)
    mortgage_year = run.mortgage_year
    viability = classify_viability(
        mortgage_year=mortgage_year,
        renting_sustainable=all(s.disposable_income >= ZERO for s in run.snapshots),
        worst_margin=margin,
        required_allocation=minimum_allocation,
        chosen_allocation=profile.allocation_percent,
        house_size=house_size,
    )
    findings = _findings(
        run,
        profile=profile,
        viability=viability,
        minimum_allocation=minimum_allocation,
        house_size=house_size,
        max_affordable=max_affordable,
        margin=margin,
    )
    debt_free = run.debt_free_year
    final_savings = run.snapshots[-1].savings

    logger.debug(
        "%s: mortgage year %s, cap %s, viability %s",
        location.name, mortgage_year, round_cents(cap.price), viability.value,
    )
    return CalculationResult(
        location=location.name,
        horizon=horizon,
        calculation_successful=True,
        snapshots=run.snapshots,
        target_home_price=target,
        projections=projections,
        custom=custom,
        sustainability_cap=cap,
        years_to_mortgage=mortgage_year,
        age_at_mortgage=profile.age_in_year(mortgage_year) if mortgage_year else None,
        years_to_debt_free=debt_free,
        age_debt_free=profile.age_in_year(debt_free) if debt_free else None,
        minimum_allocation_required=minimum_allocation,
        viability=viability,
        house_size=house_size,
        score=score(viability, mortgage_year, final_savings),
        recommendations=tuple(recommendations(findings)),
        warnings=tuple(warnings(findings)),
        children=children,
    )


def calculate(
    profile: UserProfile,
    location_name: str,
    provider: Optional[LocationProvider] = None,
    horizon: int = DEFAULT_HORIZON_YEARS,
    custom_horizon_years: Optional[Decimal] = None,
) -> CalculationResult:
    """Calculate one location.

    Raises ProfileValidationError for a malformed profile and ValueError for
    a non-positive horizon. Missing location data produces a failed result.
    """
    validate_profile(profile)
    if horizon < 1:
        raise ValueError("horizon must be >= 1")
    try:
        location = get_location(location_name, provider)
        return _calculate(profile, location, horizon, custom_horizon_years)
    except LocationDataError as exc:
        logger.warning("calculation failed for %s: %s", location_name, exc)
        return failed_result(location_name, str(exc), horizon)


def calculate_all(
    profile: UserProfile,
    location_names: Optional[Iterable[str]] = None,
    provider: Optional[LocationProvider] = None,
    horizon: int = DEFAULT_HORIZON_YEARS,
    custom_horizon_years: Optional[Decimal] = None,
    max_workers: Optional[int] = None,
) -> list[CalculationResult]:
    """Calculate every location independently, results in input order."""
    validate_profile(profile)
    names = list(location_names) if location_names is not None else list(profile.locations)
    if not names:
        return []
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(
            lambda name: calculate(profile, name, provider, horizon, custom_horizon_years),
            names,
        ))


def rank_results(results: Iterable[CalculationResult]) -> list[CalculationResult]:
    """Successful results by descending score; failed ones last, in input order."""
    results = list(results)
    ok = sorted((r for r in results if r.calculation_successful), key=lambda r: r.score, reverse=True)
    return ok + [r for r in results if not r.calculation_successful]


# ── Flat record ───────────────────────────────────────────────────────────────

def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(round_cents(value))
    if hasattr(value, "value") and isinstance(getattr(value, "value"), str):
        return value.value
    return value


def _projection_record(prefix: str, projection: Optional[HouseProjection]) -> dict[str, Any]:
    fields = (
        "year", "age", "total_savings", "max_price_from_savings", "max_sustainable_price",
        "binding", "affordable_price", "down_payment", "annual_payment",
        "post_mortgage_disposable_income", "affordable_square_feet",
    )
    return {
        f"{prefix}_{name}": _plain(getattr(projection, name)) if projection else None
        for name in fields
    }


def _snapshot_record(snap: YearSnapshot) -> dict[str, Any]:
    return {
        "year": snap.year,
        "age": snap.age,
        "household": snap.household.composition_key,
        "total_income": _plain(snap.total_income),
        "cost_of_living": _plain(snap.cost_of_living),
        "housing_cost": _plain(snap.housing_cost),
        "disposable_income": _plain(snap.disposable_income),
        "effective_disposable_income": _plain(snap.effective_disposable_income),
        "credit_card_balance": _plain(snap.credit_card_balance),
        "student_loan_balance": _plain(snap.student_loan_balance),
        "total_debt": _plain(snap.total_debt),
        "savings": _plain(snap.savings),
        "savings_no_mortgage": _plain(snap.savings_no_mortgage),
        "mortgage_acquired": snap.mortgage_acquired,
        "children_born": list(snap.children_born),
        "debts_paid_off": list(snap.debts_paid_off),
        "relationship_started": snap.relationship_started,
    }


def to_record(result: CalculationResult) -> dict[str, Any]:
    """Flatten a result into JSON-ready primitives (money as cent strings)."""
    record: dict[str, Any] = {
        "location": result.location,
        "horizon": result.horizon,
        "calculation_successful": result.calculation_successful,
        "error_message": result.error_message,
        "target_home_price": _plain(result.target_home_price),
        "years_to_mortgage": result.years_to_mortgage,
        "age_at_mortgage": result.age_at_mortgage,
        "years_to_debt_free": result.years_to_debt_free,
        "age_debt_free": result.age_debt_free,
        "minimum_allocation_required": result.minimum_allocation_required,
        "viability": result.viability.value,
        "house_size": result.house_size.value,
        "score": _plain(result.score),
        "recommendations": list(result.recommendations),
        "warnings": list(result.warnings),
        "custom_status": result.custom.status,
    }
    for name, projection in result.projections.items():
        record.update(_projection_record(name, projection))
    record.update(_projection_record("custom", result.custom.projection))
    for child in result.children:
        record[f"child_{child.ordinal}_status"] = child.status
        record[f"child_{child.ordinal}_minimum_age"] = child.minimum_age
        record[f"child_{child.ordinal}_reason"] = child.reason
    record["snapshots"] = [_snapshot_record(s) for s in result.snapshots]
    return record
