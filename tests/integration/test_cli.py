"""Integration tests for the CLI: full pipeline from onboarding JSON to output."""
import json
from decimal import Decimal

import pytest
from click.testing import CliRunner

from homepath.cli import main
from homepath.engine import calculate
from homepath.locations import load_locations
from homepath.normalizer import answers_from_dict, normalize

RECORD = {
    "name": "Jsonville",
    "salaries": {"Registered Nurse": 82000, "Software Developer": 111450},
    "overall_average_salary": 72000,
    "housing": {
        "median_home_value": 450000,
        "small_home_value": 350000,
        "large_home_value": 600000,
        "very_large_home_value": 800000,
        "mortgage_rate": "0.06",
        "down_payment_percent": "0.20",
    },
    "cost_of_living": {"one_person": 30000, "two_earners": 45863},
    "owner_cost_of_living": {"one_person": 32000, "two_earners": 48000},
    "rent": {"1": 21000, "2": 30000, "3": 36000},
}

ANSWERS = {
    "occupation": "Registered Nurse",
    "current_age": 30,
    "savings": 20000,
    "allocation_percent": 50,
    "location_situation": "know-exactly",
    "exact_location": "Jsonville",
}


@pytest.fixture
def dataset(tmp_path):
    path = tmp_path / "locations.json"
    path.write_text(json.dumps({"locations": [RECORD]}))
    return str(path)


@pytest.fixture
def write_profile(tmp_path):
    def write(**overrides):
        path = tmp_path / "profile.json"
        path.write_text(json.dumps({**ANSWERS, **overrides}))
        return str(path)
    return write


# ──────────────────────────────────────────────────────────────────────────────
# Full pipeline tests (no CLI runner, direct function calls)
# ──────────────────────────────────────────────────────────────────────────────

class TestPipeline:
    def test_single_renter(self, dataset):
        profile = normalize(answers_from_dict(ANSWERS))
        result = calculate(profile, "Jsonville", load_locations(dataset), horizon=15)
        assert result.calculation_successful
        # no children planned: the small tier is the target
        assert result.target_home_price == Decimal("350000")
        assert result.years_to_mortgage is not None
        assert [c.status for c in result.children] == ["not-planned"] * 3

    def test_partner_doubling_buys_sooner(self, dataset):
        provider = load_locations(dataset)
        alone = calculate(normalize(answers_from_dict(ANSWERS)), "Jsonville", provider, horizon=15)
        linked = normalize(answers_from_dict({**ANSWERS, "relationship_status": "linked"}))
        together = calculate(linked, "Jsonville", provider, horizon=15)
        assert together.years_to_mortgage < alone.years_to_mortgage


# ──────────────────────────────────────────────────────────────────────────────
# CLI runner
# ──────────────────────────────────────────────────────────────────────────────

class TestCLIRunner:
    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Home Path" in result.output
        assert "--custom-horizon" in result.output

    def test_tables(self, dataset, write_profile):
        result = CliRunner().invoke(main, [write_profile(), "--data", dataset, "--years", "15"])
        assert result.exit_code == 0, result.output
        assert "Home Path" in result.output
        assert "Jsonville" in result.output
        assert "House Projections" in result.output

    def test_verbose_timeline(self, dataset, write_profile):
        result = CliRunner().invoke(main, [write_profile(), "--data", dataset, "--years", "5", "--verbose"])
        assert result.exit_code == 0, result.output
        assert "Year by Year" in result.output

    def test_json(self, dataset, write_profile):
        result = CliRunner().invoke(
            main, [write_profile(), "--data", dataset, "--years", "10", "--custom-horizon", "18", "--json"]
        )
        assert result.exit_code == 0, result.output
        records = json.loads(result.stdout)
        assert len(records) == 1
        record = records[0]
        assert record["location"] == "Jsonville"
        assert record["calculation_successful"] is True
        assert record["custom_status"] == "available"
        assert len(record["snapshots"]) == 10

    def test_location_option_overrides_profile(self, dataset, write_profile):
        result = CliRunner().invoke(
            main, [write_profile(), "--data", dataset, "--years", "5", "--location", "Atlantis"]
        )
        assert result.exit_code == 0
        assert "calculation failed" in result.output

    def test_bundled_dataset(self, write_profile):
        path = write_profile(exact_location="Ohio", occupation="Management")
        result = CliRunner().invoke(main, [path, "--years", "5", "--json"])
        assert result.exit_code == 0, result.output
        record = json.loads(result.stdout)[0]
        assert record["location"] == "Ohio"
        assert record["calculation_successful"] is True

    def test_live_rate_without_key_keeps_dataset_rates(self, dataset, write_profile, monkeypatch):
        monkeypatch.delenv("FRED_API_KEY", raising=False)
        result = CliRunner().invoke(main, [write_profile(), "--data", dataset, "--years", "5", "--live-rate"])
        assert result.exit_code == 0
        assert "FRED_API_KEY" in result.output

    def test_bad_profile(self, dataset, write_profile):
        result = CliRunner().invoke(main, [write_profile(salry=1), "--data", dataset])
        assert result.exit_code == 1
        assert "Unknown profile fields" in result.output

    @pytest.mark.parametrize("text", ["NaN", "Infinity"])
    def test_non_finite_number_in_profile(self, tmp_path, dataset, text):
        answers = {k: v for k, v in ANSWERS.items() if k != "savings"}
        path = tmp_path / "profile.json"
        path.write_text(json.dumps(answers)[:-1] + f', "savings": {text}}}')
        result = CliRunner().invoke(main, [str(path), "--data", dataset])
        assert result.exit_code == 1
        assert "finite number" in result.output
        assert not isinstance(result.exception, ArithmeticError)

    def test_missing_profile(self, tmp_path, dataset):
        result = CliRunner().invoke(main, [str(tmp_path / "nope.json"), "--data", dataset])
        assert result.exit_code == 1
        assert "Cannot read profile" in result.output

    def test_missing_dataset(self, tmp_path, write_profile):
        result = CliRunner().invoke(main, [write_profile(), "--data", str(tmp_path / "none.json")])
        assert result.exit_code == 1
