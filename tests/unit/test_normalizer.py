"""Unit tests for normalizer.py: onboarding answers into a UserProfile."""
import json
from decimal import Decimal

import pytest

from homepath.normalizer import (
    DebtAnswer,
    ProfileAnswers,
    answers_from_dict,
    combined_student_loan,
    normalize,
    selected_locations,
)
from homepath.profile import ProfileValidationError


def _answers(**overrides) -> ProfileAnswers:
    args = dict(occupation="Registered Nurse", current_age=28)
    args.update(overrides)
    return ProfileAnswers(**args)


class TestDemographics:
    def test_defaults(self):
        profile = normalize(ProfileAnswers(occupation="Registered Nurse"))
        assert profile.current_age == 22
        assert profile.allocation_percent == Decimal("75")
        assert profile.relationship == "single"
        assert profile.children_status == "none"
        assert profile.location_mode == "exploring"
        assert profile.locations == ()

    def test_independence_age_fallback(self):
        profile = normalize(ProfileAnswers(occupation="Registered Nurse", expected_independence_age=24))
        assert profile.current_age == 24

    @pytest.mark.parametrize("situation,independent", [
        ("graduated-independent", True),
        ("no-college", True),
        ("student-dependent", False),
    ])
    def test_independence(self, situation, independent):
        assert normalize(_answers(current_situation=situation)).financially_independent is independent

    def test_invalid_profile_rejected(self):
        with pytest.raises(ProfileValidationError, match="allocation_percent"):
            normalize(_answers(allocation_percent=Decimal("120")))


class TestRelationship:
    def test_linked_without_partner_income_doubles(self):
        profile = normalize(_answers(relationship_status="linked"))
        assert profile.relationship == "partnered"
        assert profile.partner_income_doubling

    def test_linked_with_partner_occupation(self):
        profile = normalize(_answers(relationship_status="linked", partner_occupation="Software Developer"))
        assert not profile.partner_income_doubling
        assert profile.partner_occupation == "Software Developer"

    def test_linked_non_earning_partner(self):
        profile = normalize(_answers(relationship_status="linked", partner_earns=False))
        assert not profile.partner_income_doubling
        assert profile.earners == 1

    def test_planned_partner_joins_at_age(self):
        profile = normalize(_answers(relationship_plans="yes", planned_partner_age=31))
        assert profile.relationship == "planning"
        assert profile.partner_start_year == 4
        assert profile.partner_income_doubling

    def test_planned_partner_average_age(self):
        assert normalize(_answers(relationship_plans="yes")).partner_start_year == 3

    def test_planned_partner_age_in_past(self):
        profile = normalize(_answers(relationship_plans="yes", planned_partner_age=20))
        assert profile.partner_start_year == 1

    def test_unsure_stays_single(self):
        assert normalize(_answers(relationship_plans="unsure")).relationship == "single"


class TestChildren:
    def test_planned_defaults_to_average_age(self):
        profile = normalize(_answers(kids_plan="yes"))
        assert profile.children_status == "planned"
        assert profile.planned_child_ages == (32,)

    def test_unsure(self):
        profile = normalize(_answers(kids_plan="unsure", planned_first_kid_age=30))
        assert profile.children_status == "unsure"
        assert profile.planned_child_ages == (30,)

    def test_have_kids_planning_more(self):
        profile = normalize(_answers(kids_plan="have-kids", number_of_existing_kids=1, plan_more_kids="yes"))
        assert profile.children_status == "have"
        assert profile.existing_children == 1
        assert profile.planned_child_ages == (31,)

    def test_have_kids_no_more(self):
        profile = normalize(_answers(kids_plan="have-kids", number_of_existing_kids=2, plan_more_kids="no"))
        assert profile.planned_child_ages == ()

    def test_hard_rules(self):
        profile = normalize(_answers(kids_plan="yes", hard_rules=["debt-before-kids"]))
        assert profile.hard_rules == frozenset({"debt-before-kids"})

    def test_unknown_hard_rule(self):
        with pytest.raises(ProfileValidationError, match="hard rules"):
            normalize(_answers(hard_rules=["house-before-wedding"]))


class TestDebts:
    def test_weighted_student_loan_rate(self):
        answers = _answers(
            user_student_loan_debt=Decimal("30000"),
            user_student_loan_rate=Decimal("0.04"),
            partner_student_loan_debt=Decimal("10000"),
            partner_student_loan_rate=Decimal("0.08"),
        )
        loan = combined_student_loan(answers)
        assert loan.balance == Decimal("40000")
        assert loan.rate == Decimal("0.05")

    def test_single_loan_keeps_rate(self):
        loan = combined_student_loan(_answers(user_student_loan_debt=Decimal("5000")))
        assert loan.rate == Decimal("0.05")

    def test_additional_debts_summed_by_class(self):
        profile = normalize(_answers(additional_debts=[
            DebtAnswer(type="cc-debt", total_debt=Decimal("2000"), interest_rate=Decimal("0.2")),
            DebtAnswer(type="cc-debt", total_debt=Decimal("1500"), cc_refresh_months=6,
                       cc_refresh_amount=Decimal("500")),
            DebtAnswer(type="car-debt", total_debt=Decimal("12000")),
            DebtAnswer(type="medical", total_debt=Decimal("3000"), interest_rate=Decimal("0.03")),
        ]))
        card = profile.credit_card
        assert card.balance == Decimal("3500")
        assert card.apr == Decimal("0.2")
        assert card.refresh_months == 6
        assert card.refresh_amount == Decimal("500")
        assert [(d.name, d.balance, d.rate) for d in profile.other_debts] == [
            ("car_loan", Decimal("12000"), Decimal("0.07")),
            ("other", Decimal("3000"), Decimal("0.03")),
        ]

    def test_no_debts(self):
        profile = normalize(_answers())
        assert profile.credit_card.balance == 0
        assert profile.other_debts == ()


class TestLocations:
    def test_exact(self):
        answers = _answers(location_situation="know-exactly", exact_location="Austin, TX")
        assert selected_locations(answers) == ("Austin, TX",)
        assert normalize(answers).location_mode == "exact"

    def test_current_first_then_potential_deduplicated(self):
        answers = _answers(
            location_situation="currently-live-may-move",
            current_location="Denver, CO",
            potential_locations=["Boise, ID", " Denver, CO ", "Boise, ID", ""],
        )
        assert selected_locations(answers) == ("Denver, CO", "Boise, ID")
        assert normalize(answers).location_mode == "current"

    def test_no_idea_means_all(self):
        answers = _answers(potential_locations=["Boise, ID"])
        assert selected_locations(answers) == ()

    def test_unknown_situation(self):
        with pytest.raises(ProfileValidationError, match="location_situation"):
            normalize(_answers(location_situation="anywhere"))


class TestAnswersFromDict:
    def test_converts_numbers(self):
        answers = answers_from_dict({
            "occupation": "Registered Nurse",
            "salary": 82000,
            "savings": "15000.50",
            "additional_debts": [{"type": "cc-debt", "total_debt": 1200, "interest_rate": 0.22}],
        })
        assert answers.salary == Decimal("82000")
        assert answers.savings == Decimal("15000.50")
        assert answers.additional_debts[0].interest_rate == Decimal("0.22")
        assert answers.user_student_loan_debt == Decimal("0")

    def test_null_savings_uses_default(self):
        answers = answers_from_dict({"occupation": "Registered Nurse", "savings": None})
        assert answers.savings == Decimal("0")

    def test_unknown_field(self):
        with pytest.raises(ProfileValidationError, match="Unknown profile fields: salry"):
            answers_from_dict({"occupation": "Registered Nurse", "salry": 1})

    def test_missing_occupation(self):
        with pytest.raises(ProfileValidationError, match="occupation is required"):
            answers_from_dict({"current_age": 30})

    def test_bad_number(self):
        with pytest.raises(ProfileValidationError, match="savings must be a number"):
            answers_from_dict({"occupation": "Registered Nurse", "savings": "lots"})

    @pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_json_number(self, text):
        data = json.loads(f'{{"occupation": "Registered Nurse", "savings": {text}}}')
        with pytest.raises(ProfileValidationError, match="savings must be a finite number"):
            answers_from_dict(data)

    def test_non_finite_debt_amount(self):
        data = json.loads(
            '{"occupation": "Registered Nurse",'
            ' "additional_debts": [{"type": "other", "total_debt": NaN, "interest_rate": 0.1}]}'
        )
        with pytest.raises(ProfileValidationError, match="total_debt must be a finite number"):
            answers_from_dict(data)
