"""Debt payoff priority stack.

Each year the household's effective disposable income is applied to its
debts in a fixed order, one payoff strategy per debt class:

    1. credit card   lump-refresh            paid as far as funds allow
    2. student loan  amortized               interest + principal, DTI-targeted
    3. other debts   minimum-interest-only   remaining pool shared pro rata

Whatever is left after the last strategy flows to savings. A class only
receives money once every class above it is fully paid for the year, so a
credit-card balance left at year end means the student loan got nothing.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Callable

from .config import ONE, STUDENT_LOAN_DTI_TARGET, ZERO
from .profile import UserProfile


class PayoffStrategy(str, Enum):
    LUMP_REFRESH = "lump-refresh"
    AMORTIZED = "amortized"
    MINIMUM_INTEREST_ONLY = "minimum-interest-only"


@dataclass(frozen=True)
class DebtBalances:
    credit_card: Decimal = ZERO
    student_loan: Decimal = ZERO
    other: tuple[Decimal, ...] = ()

    @property
    def total(self) -> Decimal:
        return self.credit_card + self.student_loan + sum(self.other, ZERO)

    def named(self, profile: UserProfile) -> dict[str, Decimal]:
        balances = {"credit_card": self.credit_card, "student_loan": self.student_loan}
        for debt, balance in zip(profile.other_debts, self.other):
            balances[debt.name] = balance
        return balances

    @classmethod
    def opening(cls, profile: UserProfile) -> DebtBalances:
        return cls(
            credit_card=profile.credit_card.balance,
            student_loan=profile.student_loan.balance,
            other=tuple(d.balance for d in profile.other_debts),
        )


@dataclass(frozen=True)
class PayoffOutcome:
    balances: DebtBalances
    credit_card_paid: Decimal = ZERO
    student_loan_paid: Decimal = ZERO
    student_loan_interest: Decimal = ZERO
    other_paid: tuple[Decimal, ...] = ()
    leftover: Decimal = ZERO

    @property
    def student_loan_principal(self) -> Decimal:
        return max(ZERO, self.student_loan_paid - self.student_loan_interest)

    @property
    def total_paid(self) -> Decimal:
        return self.credit_card_paid + self.student_loan_paid + sum(self.other_paid, ZERO)


@dataclass(frozen=True)
class PayoffContext:
    profile: UserProfile
    year: int
    income: Decimal


def _pay_lump_refresh(outcome: PayoffOutcome, ctx: PayoffContext) -> PayoffOutcome:
    card = ctx.profile.credit_card
    balance = outcome.balances.credit_card
    if (
        card.refresh_amount > ZERO
        and ctx.year > 1
        and (ctx.year - 1) % card.refresh_years == 0
    ):
        balance += card.refresh_amount
    paid = min(balance, outcome.leftover)
    remaining = (balance - paid) * (ONE + card.apr)
    return replace(
        outcome,
        balances=replace(outcome.balances, credit_card=remaining),
        credit_card_paid=paid,
        leftover=outcome.leftover - paid,
    )


def _pay_amortized(outcome: PayoffOutcome, ctx: PayoffContext) -> PayoffOutcome:
    loan = ctx.profile.student_loan
    balance = outcome.balances.student_loan
    if balance <= ZERO:
        return outcome
    interest = balance * loan.rate
    owed = balance + interest
    required = interest + balance * loan.min_principal_fraction
    target = max(required, ctx.income * STUDENT_LOAN_DTI_TARGET)
    paid = min(outcome.leftover, owed, target)
    return replace(
        outcome,
        balances=replace(outcome.balances, student_loan=owed - paid),
        student_loan_paid=paid,
        student_loan_interest=interest,
        leftover=outcome.leftover - paid,
    )


def _pay_minimum_interest_only(outcome: PayoffOutcome, ctx: PayoffContext) -> PayoffOutcome:
    debts = ctx.profile.other_debts
    if not debts:
        return outcome
    owed = [b * (ONE + d.rate) for b, d in zip(outcome.balances.other, debts)]
    pool = outcome.leftover
    if sum(owed, ZERO) <= pool:
        paid = owed
    else:
        weights = [d.balance if o > ZERO else ZERO for d, o in zip(debts, owed)]
        total_weight = sum(weights, ZERO)
        if total_weight == ZERO:
            paid = [ZERO] * len(owed)
        else:
            paid = [min(o, pool * w / total_weight) for o, w in zip(owed, weights)]
    spent = sum(paid, ZERO)
    return replace(
        outcome,
        balances=replace(outcome.balances, other=tuple(o - p for o, p in zip(owed, paid))),
        other_paid=tuple(paid),
        leftover=pool - spent,
    )


_STRATEGIES: dict[PayoffStrategy, Callable[[PayoffOutcome, PayoffContext], PayoffOutcome]] = {
    PayoffStrategy.LUMP_REFRESH: _pay_lump_refresh,
    PayoffStrategy.AMORTIZED: _pay_amortized,
    PayoffStrategy.MINIMUM_INTEREST_ONLY: _pay_minimum_interest_only,
}

# Fixed priority order: (debt class, strategy)
PAYOFF_ORDER: tuple[tuple[str, PayoffStrategy], ...] = (
    ("credit_card", PayoffStrategy.LUMP_REFRESH),
    ("student_loan", PayoffStrategy.AMORTIZED),
    ("other", PayoffStrategy.MINIMUM_INTEREST_ONLY),
)


def apply_payoff_stack(
    balances: DebtBalances,
    available: Decimal,
    profile: UserProfile,
    year: int,
    income: Decimal,
) -> PayoffOutcome:
    """Apply *available* funds to the debts in priority order.

    Negative availability is treated as zero: interest still accrues, nothing
    is paid. The returned ``leftover`` is what flows on to savings.
    """
    ctx = PayoffContext(profile=profile, year=year, income=income)
    outcome = PayoffOutcome(
        balances=balances,
        other_paid=tuple(ZERO for _ in balances.other),
        leftover=max(available, ZERO),
    )
    for _, strategy in PAYOFF_ORDER:
        outcome = _STRATEGIES[strategy](outcome, ctx)
    return outcome
