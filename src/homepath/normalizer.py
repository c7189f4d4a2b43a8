"""Onboarding answers → UserProfile.

Resolution rules:
1. current_age falls back to the expected independence age, then 22.
2. A linked partner with no occupation and no salary is assumed to earn what
   the user earns (income doubling). So is a partner the user plans to meet;
   the partner joins at the planned partner age (30 when not given).
3. Student loans of both partners are combined; the rate is the
   balance-weighted average.
4. Additional debts are summed per class: credit cards into one card, car
   loans and everything else into two other-debt entries.
5. Locations: the exact location, or the current location followed by the
   potential ones; duplicates are dropped, first occurrence wins.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from .config import (
    DEFAULT_ALLOCATION_PERCENT,
    DEFAULT_CAR_LOAN_RATE,
    DEFAULT_CC_REFRESH_MONTHS,
    DEFAULT_CREDIT_CARD_APR,
    DEFAULT_OTHER_DEBT_RATE,
    DEFAULT_STUDENT_LOAN_RATE,
    ZERO,
)
from .profile import (
    CreditCardDebt,
    OtherDebt,
    ProfileValidationError,
    StudentLoan,
    UserProfile,
    validate_profile,
)

DEFAULT_AGE = 22
AVERAGE_PARTNER_AGE = 30
AVERAGE_FIRST_CHILD_AGE = 32
NEXT_CHILD_GAP_YEARS = 3

INDEPENDENT_SITUATIONS = frozenset(
    {"graduated-independent", "student-independent", "no-college", "other"}
)


@dataclass
class DebtAnswer:
    type: str                       # "cc-debt", "car-debt" or anything else
    total_debt: Decimal
    interest_rate: Optional[Decimal] = None
    cc_refresh_months: Optional[int] = None
    cc_refresh_amount: Optional[Decimal] = None


@dataclass
class ProfileAnswers:
    """Raw onboarding answers.  None means 'not answered, use the default'."""
    occupation: str
    # Demographics
    current_age: Optional[int] = None
    expected_independence_age: Optional[int] = None
    current_situation: str = "graduated-independent"
    salary: Optional[Decimal] = None
    # Relationship
    relationship_status: str = "single"     # "single" or "linked"
    relationship_plans: Optional[str] = None  # "yes" / "no" / "unsure"
    planned_partner_age: Optional[int] = None
    partner_occupation: Optional[str] = None
    partner_salary: Optional[Decimal] = None
    partner_earns: Optional[bool] = None
    # Children
    kids_plan: str = "no"                   # "no", "yes", "unsure", "have-kids"
    number_of_existing_kids: int = 0
    plan_more_kids: Optional[str] = None
    planned_first_kid_age: Optional[int] = None
    planned_next_kid_age: Optional[int] = None
    child_spacing_years: Optional[int] = None
    hard_rules: list[str] = field(default_factory=list)
    # Debt
    user_student_loan_debt: Decimal = ZERO
    user_student_loan_rate: Optional[Decimal] = None
    partner_student_loan_debt: Decimal = ZERO
    partner_student_loan_rate: Optional[Decimal] = None
    additional_debts: list[DebtAnswer] = field(default_factory=list)
    # Savings and preferences
    savings: Decimal = ZERO
    allocation_percent: Optional[Decimal] = None
    # Location
    location_situation: str = "no-idea"
    current_location: Optional[str] = None
    exact_location: Optional[str] = None
    potential_locations: list[str] = field(default_factory=list)


# ── Sections ──────────────────────────────────────────────────────────────────

def _relationship(answers: ProfileAnswers, current_age: int) -> dict[str, Any]:
    if answers.relationship_status == "linked":
        has_partner_income = bool(
            (answers.partner_occupation and answers.partner_occupation.strip())
            or (answers.partner_salary is not None and answers.partner_salary > ZERO)
        )
        earns = answers.partner_earns if answers.partner_earns is not None else True
        return {
            "relationship": "partnered",
            "partner_earns": earns,
            "partner_occupation": answers.partner_occupation or None,
            "partner_salary_override": answers.partner_salary,
            "partner_income_doubling": earns and not has_partner_income,
        }
    if answers.relationship_plans == "yes":
        partner_age = max(current_age, answers.planned_partner_age or AVERAGE_PARTNER_AGE)
        return {
            "relationship": "planning",
            "partner_income_doubling": True,
            "partner_start_year": partner_age - current_age + 1,
        }
    return {"relationship": "single"}


def _children(answers: ProfileAnswers, current_age: int) -> dict[str, Any]:
    planned: list[int] = []
    existing = 0
    if answers.kids_plan == "have-kids":
        status = "have"
        existing = answers.number_of_existing_kids
        if answers.plan_more_kids in ("yes", "unsure"):
            planned.append(answers.planned_next_kid_age or current_age + NEXT_CHILD_GAP_YEARS)
    elif answers.kids_plan in ("yes", "unsure"):
        status = "planned" if answers.kids_plan == "yes" else "unsure"
        planned.append(max(current_age, answers.planned_first_kid_age or AVERAGE_FIRST_CHILD_AGE))
    else:
        status = "none"
    return {
        "children_status": status,
        "existing_children": existing,
        "planned_child_ages": tuple(planned),
        "child_spacing_years": answers.child_spacing_years,
        "hard_rules": frozenset(answers.hard_rules),
    }


def combined_student_loan(answers: ProfileAnswers) -> StudentLoan:
    user_rate = answers.user_student_loan_rate
    if user_rate is None:
        user_rate = DEFAULT_STUDENT_LOAN_RATE
    total = answers.user_student_loan_debt + answers.partner_student_loan_debt
    if answers.partner_student_loan_debt <= ZERO or total <= ZERO:
        return StudentLoan(balance=total, rate=user_rate)
    partner_rate = answers.partner_student_loan_rate
    if partner_rate is None:
        partner_rate = DEFAULT_STUDENT_LOAN_RATE
    rate = (
        answers.user_student_loan_debt * user_rate
        + answers.partner_student_loan_debt * partner_rate
    ) / total
    return StudentLoan(balance=total, rate=rate)


def _debts(answers: ProfileAnswers) -> dict[str, Any]:
    card_total = ZERO
    card_apr = DEFAULT_CREDIT_CARD_APR
    refresh_months = DEFAULT_CC_REFRESH_MONTHS
    refresh_amount = ZERO
    classes = {"car_loan": [ZERO, DEFAULT_CAR_LOAN_RATE], "other": [ZERO, DEFAULT_OTHER_DEBT_RATE]}

    # Rates: the last answer of each class wins
    for debt in answers.additional_debts:
        if debt.type == "cc-debt":
            card_total += debt.total_debt
            if debt.interest_rate is not None:
                card_apr = debt.interest_rate
            if debt.cc_refresh_months:
                refresh_months = debt.cc_refresh_months
            if debt.cc_refresh_amount is not None:
                refresh_amount = debt.cc_refresh_amount
            continue
        entry = classes["car_loan" if debt.type == "car-debt" else "other"]
        entry[0] += debt.total_debt
        if debt.interest_rate is not None:
            entry[1] = debt.interest_rate

    return {
        "student_loan": combined_student_loan(answers),
        "credit_card": CreditCardDebt(
            balance=card_total,
            apr=card_apr,
            refresh_months=refresh_months,
            refresh_amount=refresh_amount,
        ),
        "other_debts": tuple(
            OtherDebt(name=name, balance=balance, rate=rate)
            for name, (balance, rate) in classes.items()
            if balance > ZERO
        ),
    }


_LOCATION_MODES = {
    "know-exactly": "exact",
    "currently-live-may-move": "current",
    "deciding-between": "exploring",
    "no-idea": "exploring",
}


def selected_locations(answers: ProfileAnswers) -> tuple[str, ...]:
    """Candidate locations in answer order; empty means 'all locations'."""
    situation = answers.location_situation
    if situation == "know-exactly":
        names = [answers.exact_location] if answers.exact_location else []
    elif situation == "currently-live-may-move":
        names = ([answers.current_location] if answers.current_location else [])
        names += answers.potential_locations
    elif situation == "deciding-between":
        names = list(answers.potential_locations)
    else:
        names = []
    return tuple(dict.fromkeys(n.strip() for n in names if n and n.strip()))


# ── Entry points ──────────────────────────────────────────────────────────────

def normalize(answers: ProfileAnswers) -> UserProfile:
    """Resolve raw answers into a validated UserProfile.

    Raises ProfileValidationError if the resolved profile is malformed.
    """
    if answers.location_situation not in _LOCATION_MODES:
        raise ProfileValidationError(
            f"Unknown location_situation '{answers.location_situation}'. "
            f"Valid values: {', '.join(sorted(_LOCATION_MODES))}"
        )
    current_age = answers.current_age or answers.expected_independence_age or DEFAULT_AGE
    allocation = answers.allocation_percent
    profile = UserProfile(
        current_age=current_age,
        occupation=answers.occupation,
        salary_override=answers.salary,
        financially_independent=answers.current_situation in INDEPENDENT_SITUATIONS,
        savings=answers.savings,
        allocation_percent=allocation if allocation is not None else DEFAULT_ALLOCATION_PERCENT,
        location_mode=_LOCATION_MODES[answers.location_situation],
        locations=selected_locations(answers),
        **_relationship(answers, current_age),
        **_children(answers, current_age),
        **_debts(answers),
    )
    validate_profile(profile)
    return profile


_DECIMAL_FIELDS = frozenset({
    "salary", "partner_salary", "user_student_loan_debt", "user_student_loan_rate",
    "partner_student_loan_debt", "partner_student_loan_rate", "savings", "allocation_percent",
})


def _decimal(name: str, value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ProfileValidationError(f"{name} must be a number, got {value!r}.") from exc
    # json accepts NaN and Infinity
    if not number.is_finite():
        raise ProfileValidationError(f"{name} must be a finite number, got {value!r}.")
    return number


def answers_from_dict(data: Mapping[str, Any]) -> ProfileAnswers:
    """Build ProfileAnswers from a JSON-style mapping.

    Unknown keys are rejected so that typos do not silently fall back to
    defaults.
    """
    known = {f.name for f in fields(ProfileAnswers)}
    unknown = set(data) - known
    if unknown:
        raise ProfileValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}.")
    if "occupation" not in data:
        raise ProfileValidationError("occupation is required.")

    values: dict[str, Any] = {}
    for name, value in data.items():
        if name in _DECIMAL_FIELDS:
            values[name] = _decimal(name, value)
        elif name == "additional_debts":
            values[name] = [
                DebtAnswer(
                    type=str(d.get("type", "other")),
                    total_debt=_decimal("total_debt", d.get("total_debt", 0)),
                    interest_rate=_decimal("interest_rate", d.get("interest_rate")),
                    cc_refresh_months=d.get("cc_refresh_months"),
                    cc_refresh_amount=_decimal("cc_refresh_amount", d.get("cc_refresh_amount")),
                )
                for d in value
            ]
        else:
            values[name] = value
    for name in ("user_student_loan_debt", "partner_student_loan_debt", "savings"):
        if values.get(name) is None:
            values.pop(name, None)
    return ProfileAnswers(**values)
