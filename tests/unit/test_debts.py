"""Unit tests for debts.py: payoff strategies and their priority order."""
from decimal import Decimal

import pytest

from homepath.debts import (
    PAYOFF_ORDER,
    DebtBalances,
    PayoffStrategy,
    apply_payoff_stack,
)
from homepath.profile import CreditCardDebt, OtherDebt, StudentLoan, UserProfile

ZERO = Decimal("0")
INCOME = Decimal("222900")


def _profile(**overrides) -> UserProfile:
    defaults = dict(
        current_age=25,
        occupation="Software Developer",
        student_loan=StudentLoan(balance=Decimal("80000"), rate=Decimal("0.05")),
        credit_card=CreditCardDebt(balance=Decimal("6550"), apr=Decimal("0.216"), refresh_months=36),
    )
    defaults.update(overrides)
    return UserProfile(**defaults)


class TestPriorityOrder:
    def test_order(self):
        assert [s for _, s in PAYOFF_ORDER] == [
            PayoffStrategy.LUMP_REFRESH,
            PayoffStrategy.AMORTIZED,
            PayoffStrategy.MINIMUM_INTEREST_ONLY,
        ]

    def test_scenario_year_one(self):
        """Card cleared first, then the loan payment targets 36% of income."""
        p = _profile()
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal("109225.9"), p, 1, INCOME)
        assert out.credit_card_paid == Decimal("6550")
        assert out.student_loan_interest == Decimal("4000")
        assert out.student_loan_paid == Decimal("80244")
        assert out.balances.student_loan == Decimal("3756")
        assert out.leftover == Decimal("22431.9")

    def test_card_left_means_no_loan_principal(self):
        p = _profile()
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal("5000"), p, 1, INCOME)
        assert out.balances.credit_card > ZERO
        assert out.student_loan_paid == ZERO
        assert out.student_loan_principal == ZERO
        # interest capitalizes on the untouched loan
        assert out.balances.student_loan == Decimal("84000")
        assert out.leftover == ZERO


class TestLumpRefresh:
    def test_remainder_accrues_apr(self):
        p = _profile(student_loan=StudentLoan())
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal("1550"), p, 1, INCOME)
        assert out.balances.credit_card == Decimal("5000") * Decimal("1.216")

    @pytest.mark.parametrize("year,refreshed", [(2, False), (3, False), (4, True), (7, True)])
    def test_refresh_years(self, year, refreshed):
        card = CreditCardDebt(balance=ZERO, refresh_months=36, refresh_amount=Decimal("2000"))
        p = _profile(credit_card=card, student_loan=StudentLoan())
        out = apply_payoff_stack(DebtBalances(), Decimal("10000"), p, year, INCOME)
        assert out.credit_card_paid == (Decimal("2000") if refreshed else ZERO)

    def test_negative_availability_pays_nothing(self):
        p = _profile()
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal("-500"), p, 1, INCOME)
        assert out.total_paid == ZERO
        assert out.leftover == ZERO
        assert out.balances.credit_card == Decimal("6550") * Decimal("1.216")


class TestAmortized:
    def test_minimum_principal_floor(self):
        # Small income: the 10% principal floor beats the 36% target
        p = _profile(credit_card=CreditCardDebt())
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal("50000"), p, 1, Decimal("20000"))
        assert out.student_loan_paid == Decimal("12000")
        assert out.student_loan_principal == Decimal("8000")
        assert out.leftover == Decimal("38000")

    def test_final_payment_clears_balance(self):
        p = _profile(credit_card=CreditCardDebt())
        balances = DebtBalances(student_loan=Decimal("3756"))
        out = apply_payoff_stack(balances, Decimal("110942.38"), p, 2, INCOME)
        assert out.student_loan_paid == Decimal("3943.8")
        assert out.balances.student_loan == ZERO

    def test_paid_off_loan_untouched(self):
        p = _profile(credit_card=CreditCardDebt(), student_loan=StudentLoan())
        out = apply_payoff_stack(DebtBalances(), Decimal("1000"), p, 1, INCOME)
        assert out.student_loan_paid == ZERO
        assert out.leftover == Decimal("1000")


class TestMinimumInterestOnly:
    def _other(self):
        return (
            OtherDebt("car_loan", Decimal("10000"), Decimal("0.07")),
            OtherDebt("other", Decimal("30000"), Decimal("0.06")),
        )

    def test_paid_in_full_when_affordable(self):
        p = _profile(credit_card=CreditCardDebt(), student_loan=StudentLoan(), other_debts=self._other())
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal("50000"), p, 1, INCOME)
        assert out.balances.other == (ZERO, ZERO)
        assert out.other_paid == (Decimal("10700"), Decimal("31800"))
        assert out.leftover == Decimal("7500")

    def test_pro_rata_by_original_balance(self):
        p = _profile(credit_card=CreditCardDebt(), student_loan=StudentLoan(), other_debts=self._other())
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal("4000"), p, 1, INCOME)
        assert out.other_paid == (Decimal("1000"), Decimal("3000"))
        assert out.leftover == ZERO

    def test_named_balances(self):
        p = _profile(other_debts=self._other())
        named = DebtBalances.opening(p).named(p)
        assert list(named) == ["credit_card", "student_loan", "car_loan", "other"]
        assert DebtBalances.opening(p).total == Decimal("126550")


class TestBalanceBounds:
    @pytest.mark.parametrize("available", ["0", "100", "6550", "20000", "90000", "500000"])
    def test_never_negative(self, available):
        p = _profile(other_debts=(OtherDebt("car_loan", Decimal("9000"), Decimal("0.07")),))
        out = apply_payoff_stack(DebtBalances.opening(p), Decimal(available), p, 1, INCOME)
        assert out.balances.credit_card >= ZERO
        assert out.balances.student_loan >= ZERO
        assert all(b >= ZERO for b in out.balances.other)
        assert out.leftover >= ZERO
        assert out.total_paid + out.leftover == Decimal(available)

    def test_balances_are_immutable(self):
        p = _profile()
        opening = DebtBalances.opening(p)
        apply_payoff_stack(opening, Decimal("1000"), p, 1, INCOME)
        assert opening.credit_card == Decimal("6550")
