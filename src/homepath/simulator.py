"""Year-by-year household simulation.

A run is a fold over the horizon: each YearSnapshot is produced purely from
its predecessor, the profile and the location. Two ledgers advance side by
side inside every snapshot:

- the main ledger, which buys the target home as soon as savings allow and
  then pays the locked mortgage payment and the owning cost of living;
- the shadow ledger, which rents forever and never buys. Its savings are the
  "no-mortgage" track used by projections and searches.

Negative disposable income is a reportable state, never an exception: the
shortfall is drawn from savings (floored at zero) and the debts keep
accruing interest.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from itertools import accumulate
from typing import Optional

from .config import (
    COST_OF_LIVING_INFLATION,
    DEFAULT_HORIZON_YEARS,
    ONE,
    SAVINGS_GROWTH_RATE,
    WAGE_GROWTH_RATE,
    ZERO,
)
from .debts import DebtBalances, PayoffOutcome, apply_payoff_stack
from .locations import LocationData
from .mortgage import annual_mortgage_payment, upfront_cost
from .profile import Household, UserProfile, validate_profile


@dataclass(frozen=True)
class Ledger:
    savings: Decimal
    debts: DebtBalances
    mortgage_payment: Optional[Decimal] = None
    home_price: Optional[Decimal] = None
    acquired_year: Optional[int] = None

    @property
    def owns_home(self) -> bool:
        return self.mortgage_payment is not None


@dataclass(frozen=True)
class YearSnapshot:
    year: int
    age: int
    household: Household
    earner_incomes: tuple[Decimal, ...]
    total_income: Decimal
    cost_of_living: Decimal          # renting or owning variant, whichever applied
    owner_cost_of_living: Decimal    # owning variant, used by the sustainability test
    housing_cost: Decimal
    disposable_income: Decimal
    effective_disposable_income: Decimal
    ledger: Ledger
    shadow: Ledger
    payoff: PayoffOutcome
    debt_free_year: Optional[int] = None
    # Events
    mortgage_acquired: bool = False
    children_born: tuple[int, ...] = ()
    debts_paid_off: tuple[str, ...] = ()
    debt_free_reached: bool = False
    relationship_started: bool = False

    @property
    def savings(self) -> Decimal:
        return self.ledger.savings

    @property
    def savings_no_mortgage(self) -> Decimal:
        return self.shadow.savings

    @property
    def credit_card_balance(self) -> Decimal:
        return self.ledger.debts.credit_card

    @property
    def student_loan_balance(self) -> Decimal:
        return self.ledger.debts.student_loan

    @property
    def total_debt(self) -> Decimal:
        return self.ledger.debts.total

    @property
    def owns_home(self) -> bool:
        return self.ledger.owns_home


@dataclass(frozen=True)
class SimulationRun:
    seed: YearSnapshot
    snapshots: tuple[YearSnapshot, ...]
    target_price: Optional[Decimal]
    allocation: Decimal  # fraction of disposable income sent to the plan

    @property
    def horizon(self) -> int:
        return len(self.snapshots)

    def at(self, year: int) -> Optional[YearSnapshot]:
        """Snapshot for *year* (0 is the seed); None outside the simulated range."""
        if year == 0:
            return self.seed
        if 1 <= year <= len(self.snapshots):
            return self.snapshots[year - 1]
        return None

    @property
    def mortgage_year(self) -> Optional[int]:
        for snap in self.snapshots:
            if snap.mortgage_acquired:
                return snap.year
        return None

    @property
    def debt_free_year(self) -> Optional[int]:
        return self.snapshots[-1].debt_free_year if self.snapshots else self.seed.debt_free_year

    def sustainable_budget(self, from_year: int) -> Optional[Decimal]:
        """Worst allocation x (income - owning cost of living) from *from_year* on.

        None when *from_year* lies past the last simulated year.
        """
        budgets = [
            self.allocation * (snap.total_income - snap.owner_cost_of_living)
            for snap in self.snapshots
            if snap.year >= from_year
        ]
        return min(budgets) if budgets else None


# ── Income ────────────────────────────────────────────────────────────────────

def base_salaries(profile: UserProfile, location: LocationData) -> tuple[Decimal, Decimal]:
    """Return (user, partner) base salaries before any wage growth."""
    user = location.salary_for(profile.occupation, profile.salary_override)
    if profile.partner_income_doubling:
        partner = user
    elif profile.partner_salary_override is not None and profile.partner_salary_override > ZERO:
        partner = profile.partner_salary_override
    elif profile.partner_occupation:
        partner = location.salary_for(profile.partner_occupation)
    else:
        partner = user
    return user, partner


def earner_incomes(profile: UserProfile, location: LocationData, year: int) -> tuple[Decimal, ...]:
    growth = ONE + WAGE_GROWTH_RATE
    user, partner = base_salaries(profile, location)
    incomes = [user * growth ** (year - 1)]
    if profile.partner_present(year) and profile.partner_earns:
        incomes.append(partner * growth ** (year - profile.partner_joined_in(year)))
    return tuple(incomes)


# ── Fold ──────────────────────────────────────────────────────────────────────

def seed_snapshot(profile: UserProfile) -> YearSnapshot:
    """Year 0: the household's opening position, before any simulated year."""
    debts = DebtBalances.opening(profile)
    ledger = Ledger(savings=profile.savings, debts=debts)
    return YearSnapshot(
        year=0,
        age=profile.age_in_year(0),
        household=profile.household_in_year(1),
        earner_incomes=(),
        total_income=ZERO,
        cost_of_living=ZERO,
        owner_cost_of_living=ZERO,
        housing_cost=ZERO,
        disposable_income=ZERO,
        effective_disposable_income=ZERO,
        ledger=ledger,
        shadow=ledger,
        payoff=PayoffOutcome(balances=debts, other_paid=tuple(ZERO for _ in debts.other)),
        debt_free_year=0 if debts.total == ZERO else None,
    )


def _advance(
    ledger: Ledger,
    *,
    profile: UserProfile,
    year: int,
    income: Decimal,
    cost_of_living: Decimal,
    housing: Decimal,
) -> tuple[Ledger, Decimal, Decimal, PayoffOutcome]:
    disposable = income - cost_of_living - housing
    effective = disposable * profile.allocation
    payoff = apply_payoff_stack(ledger.debts, effective, profile, year, income)
    savings = ledger.savings * (ONE + SAVINGS_GROWTH_RATE) + payoff.leftover
    if disposable < ZERO:
        savings = max(ZERO, savings + disposable)
    return replace(ledger, savings=savings, debts=payoff.balances), disposable, effective, payoff


def step_year(
    prior: YearSnapshot,
    profile: UserProfile,
    location: LocationData,
    target_price: Optional[Decimal] = None,
) -> YearSnapshot:
    """Advance one year. Pure: no hidden state, no I/O."""
    year = prior.year + 1
    household = profile.household_in_year(year)
    incomes = earner_incomes(profile, location, year)
    income = sum(incomes, ZERO)

    inflation = (ONE + COST_OF_LIVING_INFLATION) ** (year - 1)
    key = household.composition_key
    renting_col = location.cost_of_living_for(key) * inflation
    owner_col = location.cost_of_living_for(key, owning=True) * inflation
    rent = location.rent_for(household.bedrooms) * inflation

    owns = prior.ledger.owns_home
    col = owner_col if owns else renting_col
    housing = prior.ledger.mortgage_payment if owns else rent
    ledger, disposable, effective, payoff = _advance(
        prior.ledger, profile=profile, year=year, income=income,
        cost_of_living=col, housing=housing,
    )
    shadow, _, _, _ = _advance(
        prior.shadow, profile=profile, year=year, income=income,
        cost_of_living=renting_col, housing=rent,
    )

    acquired = False
    if target_price is not None and not owns:
        housing_market = location.housing
        needed = upfront_cost(target_price, housing_market.mortgage_rate, housing_market.down_payment_percent)
        if ledger.savings >= needed:
            acquired = True
            ledger = replace(
                ledger,
                savings=ledger.savings - needed,
                mortgage_payment=annual_mortgage_payment(
                    target_price, housing_market.mortgage_rate, housing_market.down_payment_percent
                ),
                home_price=target_price,
                acquired_year=year,
            )

    before = prior.ledger.debts.named(profile)
    after = ledger.debts.named(profile)
    paid_off = tuple(name for name, balance in after.items() if before[name] > ZERO and balance == ZERO)

    debt_free_year = prior.debt_free_year
    reached = debt_free_year is None and ledger.debts.total == ZERO
    if reached:
        debt_free_year = year

    return YearSnapshot(
        year=year,
        age=profile.age_in_year(year),
        household=household,
        earner_incomes=incomes,
        total_income=income,
        cost_of_living=col,
        owner_cost_of_living=owner_col,
        housing_cost=housing,
        disposable_income=disposable,
        effective_disposable_income=effective,
        ledger=ledger,
        shadow=shadow,
        payoff=payoff,
        debt_free_year=debt_free_year,
        mortgage_acquired=acquired,
        children_born=profile.children_born_in(year),
        debts_paid_off=paid_off,
        debt_free_reached=reached,
        relationship_started=(
            profile.relationship == "planning" and year == profile.partner_start_year
        ),
    )


def simulate(
    profile: UserProfile,
    location: LocationData,
    horizon: int = DEFAULT_HORIZON_YEARS,
    target_price: Optional[Decimal] = None,
) -> SimulationRun:
    """Run the fold for *horizon* years.

    Raises ProfileValidationError for a malformed profile and ValueError for a
    non-positive horizon. Location lookups that fail (unknown occupation,
    missing cost-of-living figure) propagate as LocationDataError.
    """
    validate_profile(profile)
    if horizon < 1:
        raise ValueError("horizon must be >= 1")
    seed = seed_snapshot(profile)
    states = accumulate(
        range(horizon),
        lambda prev, _: step_year(prev, profile, location, target_price),
        initial=seed,
    )
    return SimulationRun(
        seed=seed,
        snapshots=tuple(states)[1:],
        target_price=target_price,
        allocation=profile.allocation,
    )
