"""Unit tests for search.py: driven by stub probes, no simulation."""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from homepath.search import (
    CapProbe,
    earliest_mortgage_year,
    earliest_year_reaching,
    find_minimum_allocation,
    find_sustainability_cap,
)


def _threshold_probe(limit: Decimal, purchase_year=3, savings_limit=None):
    """Passes up to *limit*; prices above *savings_limit* are never bought."""
    calls = []

    def probe(price: Decimal) -> CapProbe:
        calls.append(price)
        if savings_limit is not None and price > savings_limit:
            return CapProbe(passes=False)
        return CapProbe(passes=price <= limit, purchase_year=purchase_year)

    probe.calls = calls
    return probe


def _snaps(*values):
    return [
        SimpleNamespace(year=i, value=Decimal("0" if v == "buy" else v), mortgage_acquired=v == "buy")
        for i, v in enumerate(values, start=1)
    ]


class TestEarliestYear:
    def test_mortgage_year(self):
        assert earliest_mortgage_year(_snaps("1", "2", "buy", "4")) == 3

    def test_no_mortgage(self):
        assert earliest_mortgage_year(_snaps("1", "2")) is None

    def test_reaching(self):
        snaps = _snaps("10", "20", "30", "40")
        assert earliest_year_reaching(snaps, Decimal("25"), lambda s: s.value).year == 3
        assert earliest_year_reaching(snaps, Decimal("20"), lambda s: s.value).year == 2
        assert earliest_year_reaching(snaps, Decimal("99"), lambda s: s.value) is None


class TestSustainabilityCap:
    @pytest.mark.parametrize("limit", ["1417002.39", "250000", "99999", "100000", "7000000"])
    def test_converges_to_threshold(self, limit):
        probe = _threshold_probe(Decimal(limit))
        cap = find_sustainability_cap(probe)
        assert cap.converged
        assert cap.price <= Decimal(limit)
        assert Decimal(limit) - cap.price < Decimal("1")
        assert cap.binding == "income"

    def test_found_price_passes_and_one_percent_more_fails(self):
        limit = Decimal("1417002.39")
        probe = _threshold_probe(limit)
        cap = find_sustainability_cap(probe)
        assert probe(cap.price).passes
        assert not probe(cap.price * Decimal("1.01")).passes

    def test_iteration_cap(self):
        probe = _threshold_probe(Decimal("300000"))
        find_sustainability_cap(probe, iterations=40, expansions=24)
        # 1 initial + 2 expansions (200k, 400k) + 40 bisections
        assert len(probe.calls) == 43

    def test_nothing_sustainable(self):
        cap = find_sustainability_cap(_threshold_probe(Decimal("-1")))
        assert cap.price == Decimal("0")
        assert cap.purchase_year is None

    def test_unbounded_returns_best_candidate(self):
        cap = find_sustainability_cap(_threshold_probe(Decimal("1e12")), expansions=3)
        assert not cap.converged
        assert cap.price == Decimal("800000")

    @pytest.mark.parametrize("limit,savings_limit,binding", [
        ("900000", "500000", "savings"),
        ("500000", "900000", "income"),
    ])
    def test_binding_follows_first_failing_price(self, limit, savings_limit, binding):
        probe = _threshold_probe(Decimal(limit), savings_limit=Decimal(savings_limit))
        cap = find_sustainability_cap(probe)
        assert cap.binding == binding
        assert cap.purchase_year == 3
        assert Decimal("500000") - cap.price < Decimal("1")

    def test_nothing_bought(self):
        cap = find_sustainability_cap(_threshold_probe(Decimal("1e9"), savings_limit=Decimal("50000")))
        assert cap.price == Decimal("0")
        assert cap.binding == "savings"
        assert cap.purchase_year is None


class TestMinimumAllocation:
    @pytest.mark.parametrize("threshold,expected", [
        (5, 5), (6, 10), (37, 40), (40, 40), (71, 75), (96, 100), (100, 100),
    ])
    def test_rounds_up_to_step(self, threshold, expected):
        assert find_minimum_allocation(lambda pct: pct >= threshold) == expected

    def test_ceiling_fails(self):
        assert find_minimum_allocation(lambda pct: False) == 100

    def test_result_is_multiple_of_five(self):
        for threshold in range(1, 101):
            result = find_minimum_allocation(lambda pct: pct >= threshold)
            assert result % 5 == 0
            assert 5 <= result <= 100
            assert result >= threshold
