"""Application-wide constants and configuration defaults.

All tuneable rates and thresholds of the simulation live here so there is a
single place to adjust them.
"""
from __future__ import annotations

from decimal import Decimal

# ── Growth and inflation ──────────────────────────────────────────────────────

WAGE_GROWTH_RATE = Decimal("0.02")
COST_OF_LIVING_INFLATION = Decimal("0.03")
SAVINGS_GROWTH_RATE = Decimal("0.03")

# ── Mortgage terms ────────────────────────────────────────────────────────────

MORTGAGE_TERM_YEARS: int = 30
PROPERTY_TAX_INSURANCE_RATE = Decimal("0.015")  # of home price, per year

# ── Debt payoff ───────────────────────────────────────────────────────────────

STUDENT_LOAN_DTI_TARGET = Decimal("0.36")        # payment target as share of gross income
STUDENT_LOAN_MIN_PRINCIPAL = Decimal("0.10")     # minimum principal fraction per year
DEFAULT_STUDENT_LOAN_RATE = Decimal("0.05")
DEFAULT_CREDIT_CARD_APR = Decimal("0.216")
DEFAULT_CC_REFRESH_MONTHS: int = 12
DEFAULT_CAR_LOAN_RATE = Decimal("0.07")
DEFAULT_OTHER_DEBT_RATE = Decimal("0.06")

# ── Simulation horizon ────────────────────────────────────────────────────────

DEFAULT_HORIZON_YEARS: int = 30
FIXED_HORIZONS: tuple[int, ...] = (3, 5, 10, 15)
DEFAULT_ALLOCATION_PERCENT = Decimal("75")

# ── Searches ──────────────────────────────────────────────────────────────────

SUSTAINABILITY_ITERATIONS: int = 40
SUSTAINABILITY_EXPANSIONS: int = 24
SUSTAINABILITY_START_PRICE = Decimal("100000")

MIN_ALLOCATION_FLOOR: int = 5
MIN_ALLOCATION_CEILING: int = 100
MIN_ALLOCATION_ITERATIONS: int = 20
MIN_ALLOCATION_STEP: int = 5
MIN_ALLOCATION_TARGET_YEARS: int = 15
MIN_ALLOCATION_HORIZON: int = 20

# ── Child viability ──────────────────────────────────────────────────────────

MAX_CHILDREN: int = 3
CHILD_SAFETY_FLOOR = Decimal("5000")
CHILD_WINDOW_YEARS: int = 3
CHILD_SEARCH_SPAN_YEARS: int = 25

# ── House size tiers (square feet) ───────────────────────────────────────────

SQFT_SMALL: int = 1200
SQFT_MEDIUM: int = 1800
SQFT_LARGE: int = 2400
SQFT_VERY_LARGE: int = 3000

HOUSE_RATIO_LARGE = Decimal("1.25")
HOUSE_RATIO_MEDIUM = Decimal("1.0")
HOUSE_RATIO_SMALL = Decimal("0.8")

# ── Classification thresholds ─────────────────────────────────────────────────

STABLE_MARGIN_RATIO = Decimal("0.20")
THIN_MARGIN_RATIO = Decimal("0.05")
STABLE_MAX_YEARS: int = 5
HIGH_ALLOCATION_WARNING = Decimal("85")
# points a chosen allocation may sit below the rounded minimum
ALLOCATION_SHORTFALL_TOLERANCE = Decimal("3")

# ── Numeric convenience ───────────────────────────────────────────────────────

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")
