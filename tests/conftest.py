"""Shared fixtures: a hand-checked market and household.

Scenario: two earners at 111,450 each, age 25, 80,000 student loan at 5%,
6,550 credit card, no savings, 70% allocation, one child planned at 32.

Year 1 by hand:
  income 222,900 − COL 45,863 − rent 21,000 = DI 156,037
  EDI 0.7 × 156,037 = 109,225.90
  card 6,550 paid; loan payment max(4,000 + 8,000, 0.36 × 222,900) = 80,244
  savings 109,225.90 − 6,550 − 80,244 = 22,431.90
"""
from decimal import Decimal

import pytest

from homepath.locations import HousingMarket, LocationData, StaticLocationProvider
from homepath.profile import CreditCardDebt, StudentLoan, UserProfile


def _money(table: dict) -> dict:
    return {k: Decimal(str(v)) for k, v in table.items()}


MARKET_COST_OF_LIVING = _money({
    "one_person": 30000,
    "single_parent_1": 52000,
    "single_parent_2": 68000,
    "single_parent_3": 83000,
    "one_worker_one_adult": 44000,
    "two_earners": 45863,
    "family_3_one_worker": 70000,
    "family_3_two_workers": 86390,
    "family_4_one_worker": 84000,
    "family_4_two_workers": 99000,
    "family_5_one_worker": 96000,
    "family_5_two_workers": 112000,
})

MARKET_OWNER_COST_OF_LIVING = _money({
    "one_person": 32000,
    "single_parent_1": 54000,
    "single_parent_2": 71000,
    "single_parent_3": 86000,
    "one_worker_one_adult": 46500,
    "two_earners": 48000,
    "family_3_one_worker": 72500,
    "family_3_two_workers": 88762,
    "family_4_one_worker": 87000,
    "family_4_two_workers": 102000,
    "family_5_one_worker": 99000,
    "family_5_two_workers": 115500,
})


def build_market(name: str = "Testville") -> LocationData:
    return LocationData(
        name=name,
        salaries=_money({
            "software_developer": 111450,
            "registered_nurse": 82000,
            "elementary_school_teacher": 58000,
        }),
        overall_average_salary=Decimal("72000"),
        housing=HousingMarket(
            median_home_value=Decimal("450000"),
            small_home_value=Decimal("350000"),
            large_home_value=Decimal("600000"),
            very_large_home_value=Decimal("800000"),
            mortgage_rate=Decimal("0.06"),
            down_payment_percent=Decimal("0.20"),
        ),
        cost_of_living=MARKET_COST_OF_LIVING,
        owner_cost_of_living=MARKET_OWNER_COST_OF_LIVING,
        rent={1: Decimal("21000"), 2: Decimal("30000"), 3: Decimal("36000")},
    )


@pytest.fixture
def market() -> LocationData:
    return build_market()


@pytest.fixture
def provider(market) -> StaticLocationProvider:
    return StaticLocationProvider([market, build_market("Othertown")])


@pytest.fixture
def scenario_profile() -> UserProfile:
    return UserProfile(
        current_age=25,
        occupation="Software Developer",
        salary_override=Decimal("111450"),
        relationship="partnered",
        partner_salary_override=Decimal("111450"),
        children_status="planned",
        planned_child_ages=(32,),
        student_loan=StudentLoan(balance=Decimal("80000"), rate=Decimal("0.05")),
        credit_card=CreditCardDebt(
            balance=Decimal("6550"),
            apr=Decimal("0.216"),
            refresh_months=36,
            refresh_amount=Decimal("0"),
        ),
        savings=Decimal("0"),
        allocation_percent=Decimal("70"),
        locations=("Testville",),
    )


@pytest.fixture
def single_profile() -> UserProfile:
    """Single renter with no debt, no children, salary from the table."""
    return UserProfile(
        current_age=30,
        occupation="Registered Nurse",
        savings=Decimal("20000"),
        allocation_percent=Decimal("50"),
    )
