"""Household profile model, per-year household composition and validation.

A UserProfile is immutable for the duration of a calculation. Everything
that changes from year to year (children born, a partner joining) is derived
from it by year index; year 1 is the first simulated year, lived at
``current_age``.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Literal, Optional

from .config import (
    DEFAULT_ALLOCATION_PERCENT,
    DEFAULT_CC_REFRESH_MONTHS,
    DEFAULT_CREDIT_CARD_APR,
    DEFAULT_STUDENT_LOAN_RATE,
    HUNDRED,
    MAX_CHILDREN,
    ONE,
    STUDENT_LOAN_MIN_PRINCIPAL,
    ZERO,
)

# ── Choice types ──────────────────────────────────────────────────────────────

Relationship = Literal["single", "partnered", "planning"]
ChildrenStatus = Literal["none", "planned", "have", "unsure"]
HardRule = Literal["debt-before-kids", "mortgage-before-kids"]
LocationMode = Literal["exact", "exploring", "current"]

VALID_RELATIONSHIPS: frozenset[str] = frozenset({"single", "partnered", "planning"})
VALID_CHILDREN_STATUSES: frozenset[str] = frozenset({"none", "planned", "have", "unsure"})
VALID_HARD_RULES: frozenset[str] = frozenset({"debt-before-kids", "mortgage-before-kids"})
VALID_LOCATION_MODES: frozenset[str] = frozenset({"exact", "exploring", "current"})

MIN_AGE = 18
MAX_AGE = 100


class ProfileValidationError(ValueError):
    """Raised when a profile is malformed; the simulation refuses to start."""


# ── Debts ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StudentLoan:
    balance: Decimal = ZERO
    rate: Decimal = DEFAULT_STUDENT_LOAN_RATE
    min_principal_fraction: Decimal = STUDENT_LOAN_MIN_PRINCIPAL


@dataclass(frozen=True)
class CreditCardDebt:
    balance: Decimal = ZERO
    apr: Decimal = DEFAULT_CREDIT_CARD_APR
    refresh_months: int = DEFAULT_CC_REFRESH_MONTHS
    refresh_amount: Decimal = ZERO  # new balance added at every refresh boundary

    @property
    def refresh_years(self) -> int:
        return max(1, round(self.refresh_months / 12))


@dataclass(frozen=True)
class OtherDebt:
    name: str
    balance: Decimal
    rate: Decimal


# ── Household composition ────────────────────────────────────────────────────

@dataclass(frozen=True)
class Household:
    adults: int
    earners: int
    children: int

    @property
    def size(self) -> int:
        return self.adults + self.children

    @property
    def bedrooms(self) -> int:
        if self.size <= 2:
            return 1
        if self.size == 3:
            return 2
        return 3

    @property
    def composition_key(self) -> str:
        """Cost-of-living table key for this household."""
        if self.adults == 1:
            if self.children == 0:
                return "one_person"
            return f"single_parent_{self.children}"
        if self.children == 0:
            return "two_earners" if self.earners == 2 else "one_worker_one_adult"
        workers = "two_workers" if self.earners == 2 else "one_worker"
        return f"family_{self.size}_{workers}"


# ── Profile ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class UserProfile:
    current_age: int
    occupation: str
    salary_override: Optional[Decimal] = None
    financially_independent: bool = True
    # Household
    relationship: Relationship = "single"
    partner_earns: bool = True
    partner_occupation: Optional[str] = None
    partner_salary_override: Optional[Decimal] = None
    partner_income_doubling: bool = False
    partner_start_year: Optional[int] = None  # year index a planned partner joins
    # Children
    children_status: ChildrenStatus = "none"
    existing_children: int = 0
    planned_child_ages: tuple[int, ...] = ()
    child_spacing_years: Optional[int] = None
    hard_rules: frozenset[str] = frozenset()
    # Money
    student_loan: StudentLoan = StudentLoan()
    credit_card: CreditCardDebt = CreditCardDebt()
    other_debts: tuple[OtherDebt, ...] = ()
    savings: Decimal = ZERO
    allocation_percent: Decimal = DEFAULT_ALLOCATION_PERCENT
    # Locations
    location_mode: LocationMode = "exploring"
    locations: tuple[str, ...] = ()

    @property
    def allocation(self) -> Decimal:
        """Allocation as a fraction in [0, 1]."""
        return self.allocation_percent / HUNDRED

    @property
    def earners(self) -> int:
        return self.household_in_year(1).earners

    @property
    def household_type(self) -> str:
        start = self.household_in_year(1)
        if start.adults == 1:
            base = "single"
        elif start.earners == 2:
            base = "two_earner_couple"
        else:
            base = "one_earner_couple"
        return f"{base}_with_children" if start.children else base

    def age_in_year(self, year: int) -> int:
        return self.current_age + year - 1

    def birth_year(self, age: int) -> int:
        """Simulation year in which a child planned at *age* is born."""
        return age - self.current_age + 1

    def partner_present(self, year: int) -> bool:
        if self.relationship == "partnered":
            return True
        if self.relationship == "planning" and self.partner_start_year is not None:
            return year >= self.partner_start_year
        return False

    def partner_joined_in(self, year: int) -> int:
        """Year index from which the partner's wage growth is counted."""
        if self.relationship == "planning" and self.partner_start_year is not None:
            return self.partner_start_year
        return 1

    def children_born_in(self, year: int) -> tuple[int, ...]:
        """Ordinals of the children born in *year* (more than one for twins)."""
        ordinals = []
        for index, age in enumerate(sorted(self.planned_child_ages)):
            if self.birth_year(age) == year:
                ordinals.append(self.existing_children + index + 1)
        return tuple(ordinals)

    def household_in_year(self, year: int) -> Household:
        partner = self.partner_present(year)
        born = sum(1 for age in self.planned_child_ages if self.birth_year(age) <= year)
        return Household(
            adults=2 if partner else 1,
            earners=2 if partner and self.partner_earns else 1,
            children=self.existing_children + born,
        )

    def with_allocation(self, percent: Decimal) -> UserProfile:
        return replace(self, allocation_percent=Decimal(percent))

    def with_planned_child_ages(self, ages: tuple[int, ...]) -> UserProfile:
        return replace(self, planned_child_ages=tuple(ages))


def validate_profile(profile: UserProfile) -> None:
    """Reject malformed profiles before any simulation starts.

    Raises ProfileValidationError naming the first offending field.
    """
    def fail(message: str) -> None:
        raise ProfileValidationError(message)

    if not MIN_AGE <= profile.current_age <= MAX_AGE:
        fail(f"current_age must be between {MIN_AGE} and {MAX_AGE}, got {profile.current_age}.")
    if not profile.occupation or not profile.occupation.strip():
        fail("occupation is required.")
    if profile.relationship not in VALID_RELATIONSHIPS:
        fail(
            f"Unknown relationship '{profile.relationship}'. "
            f"Valid values: {', '.join(sorted(VALID_RELATIONSHIPS))}"
        )
    if profile.relationship == "planning" and (
        profile.partner_start_year is None or profile.partner_start_year < 1
    ):
        fail("A planned relationship needs partner_start_year >= 1.")
    if profile.children_status not in VALID_CHILDREN_STATUSES:
        fail(f"Unknown children_status '{profile.children_status}'.")
    unknown_rules = set(profile.hard_rules) - VALID_HARD_RULES
    if unknown_rules:
        fail(f"Unknown hard rules: {', '.join(sorted(unknown_rules))}.")
    if profile.location_mode not in VALID_LOCATION_MODES:
        fail(f"Unknown location_mode '{profile.location_mode}'.")

    # Children
    if profile.existing_children < 0:
        fail("existing_children must be >= 0.")
    if len(profile.planned_child_ages) > MAX_CHILDREN:
        fail(f"At most {MAX_CHILDREN} planned child ages are supported.")
    if profile.existing_children + len(profile.planned_child_ages) > MAX_CHILDREN:
        fail(f"At most {MAX_CHILDREN} children (existing + planned) are supported.")
    for age in profile.planned_child_ages:
        if age < profile.current_age:
            fail(f"Planned child age {age} is before the current age {profile.current_age}.")
    if profile.child_spacing_years is not None and profile.child_spacing_years < 0:
        fail("child_spacing_years must be >= 0.")

    # Money
    loan = profile.student_loan
    card = profile.credit_card
    amounts = [
        ("savings", profile.savings),
        ("allocation_percent", profile.allocation_percent),
        ("salary_override", profile.salary_override),
        ("partner_salary_override", profile.partner_salary_override),
        ("student loan balance", loan.balance),
        ("student loan rate", loan.rate),
        ("credit card balance", card.balance),
        ("credit card refresh_amount", card.refresh_amount),
        ("credit card APR", card.apr),
    ]
    for debt in profile.other_debts:
        amounts += [(f"{debt.name} balance", debt.balance), (f"{debt.name} rate", debt.rate)]
    for label, amount in amounts:
        if amount is not None and not amount.is_finite():
            fail(f"{label} must be a finite number, got {amount}.")

    if profile.savings < ZERO:
        fail("savings must be >= 0.")
    if not ZERO <= profile.allocation_percent <= HUNDRED:
        fail(f"allocation_percent must be in [0, 100], got {profile.allocation_percent}.")
    for label, override in (
        ("salary_override", profile.salary_override),
        ("partner_salary_override", profile.partner_salary_override),
    ):
        if override is not None and override < ZERO:
            fail(f"{label} must be >= 0.")

    if loan.balance < ZERO:
        fail("student loan balance must be >= 0.")
    if not ZERO <= loan.rate <= ONE:
        fail(f"student loan rate must be in [0, 1], got {loan.rate}.")
    if not ZERO <= loan.min_principal_fraction <= ONE:
        fail("student loan min_principal_fraction must be in [0, 1].")

    if card.balance < ZERO or card.refresh_amount < ZERO:
        fail("credit card balances must be >= 0.")
    if not ZERO <= card.apr <= ONE:
        fail(f"credit card APR must be in [0, 1], got {card.apr}.")
    if card.refresh_months <= 0:
        fail("credit card refresh_months must be > 0.")

    for debt in profile.other_debts:
        if debt.balance < ZERO:
            fail(f"{debt.name} balance must be >= 0.")
        if not ZERO <= debt.rate <= ONE:
            fail(f"{debt.name} rate must be in [0, 1], got {debt.rate}.")
