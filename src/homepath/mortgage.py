"""Mortgage payment and home-price arithmetic.

All monetary values use decimal.Decimal.
Rounding: ROUND_HALF_UP to 2 decimal places for quotes shown to the user,
full precision everywhere the simulation or a search consumes the value.

The annual payment of a home is the 30-year amortized principal-and-interest
payment on the financed share plus a flat property-tax/insurance factor on
the full price. Both terms are linear in the price, so the payment is
strictly increasing in price.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from .config import CENT, MORTGAGE_TERM_YEARS, ONE, PROPERTY_TAX_INSURANCE_RATE, ZERO


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class MortgageQuote:
    home_price: Decimal
    down_payment: Decimal
    loan_amount: Decimal
    annual_payment: Decimal        # principal + interest + property tax/insurance
    upfront_cost: Decimal          # down payment + first-year payment
    mortgage_rate: Decimal
    down_payment_percent: Decimal


def annual_payment_factor(annual_rate: Decimal, term_years: int = MORTGAGE_TERM_YEARS) -> Decimal:
    """Return the yearly principal-and-interest payment per unit of loan.

    Uses the monthly reducing-balance formula, annualised:
        12 * r * (1 + r)^n / ((1 + r)^n - 1),  r = rate / 12, n = 12 * years

    Special case: if annual_rate == 0, the loan is repaid in equal parts.
    """
    if term_years <= 0:
        raise ValueError("term_years must be > 0")
    if annual_rate < ZERO:
        raise ValueError("annual_rate must be >= 0")
    if annual_rate == ZERO:
        return ONE / Decimal(term_years)

    r = annual_rate / Decimal(12)
    factor = (1 + r) ** (12 * term_years)
    return r * factor / (factor - 1) * Decimal(12)


def payment_per_dollar(annual_rate: Decimal, down_payment_percent: Decimal) -> Decimal:
    """Annual housing payment per dollar of home price."""
    financed = ONE - down_payment_percent
    return financed * annual_payment_factor(annual_rate) + PROPERTY_TAX_INSURANCE_RATE


def down_payment(price: Decimal, down_payment_percent: Decimal) -> Decimal:
    return price * down_payment_percent


def annual_mortgage_payment(
    price: Decimal,
    annual_rate: Decimal,
    down_payment_percent: Decimal,
) -> Decimal:
    if price < ZERO:
        raise ValueError("price must be >= 0")
    return price * payment_per_dollar(annual_rate, down_payment_percent)


def upfront_cost(price: Decimal, annual_rate: Decimal, down_payment_percent: Decimal) -> Decimal:
    """Savings needed to buy: down payment plus the first year's payment."""
    return down_payment(price, down_payment_percent) + annual_mortgage_payment(
        price, annual_rate, down_payment_percent
    )


def max_price_from_savings(
    savings: Decimal,
    annual_rate: Decimal,
    down_payment_percent: Decimal,
) -> Decimal:
    """Largest price whose down payment and first-year payment fit in *savings*.

    Solves savings = P * (dp% + payment_per_dollar) for P.
    """
    if savings <= ZERO:
        return ZERO
    return savings / (down_payment_percent + payment_per_dollar(annual_rate, down_payment_percent))


def max_price_for_payment(
    annual_budget: Decimal,
    annual_rate: Decimal,
    down_payment_percent: Decimal,
) -> Decimal:
    """Largest price whose annual payment fits in *annual_budget*."""
    if annual_budget <= ZERO:
        return ZERO
    return annual_budget / payment_per_dollar(annual_rate, down_payment_percent)


def quote_mortgage(
    price: Decimal,
    annual_rate: Decimal,
    down_payment_percent: Decimal,
) -> MortgageQuote:
    """Compute the rounded purchase figures for one home price."""
    dp = down_payment(price, down_payment_percent)
    payment = annual_mortgage_payment(price, annual_rate, down_payment_percent)
    return MortgageQuote(
        home_price=round_cents(price),
        down_payment=round_cents(dp),
        loan_amount=round_cents(price - dp),
        annual_payment=round_cents(payment),
        upfront_cost=round_cents(dp + payment),
        mortgage_rate=annual_rate,
        down_payment_percent=down_payment_percent,
    )
