"""Tests for the eligibility rule engine."""

import pytest

from scheme_assistant.config import SupportedLanguage
from scheme_assistant.errors import ValidationFailure
from scheme_assistant.memory.memory import UserProfile
from scheme_assistant.tools.catalog import GOVERNMENT_SCHEMES
from scheme_assistant.tools.eligibility import (
    CustomPredicate,
    EligibilityCriteria,
    EligibilityEngine,
    MembershipPredicate,
    PredicateRegistry,
    RangePredicate,
)
from scheme_assistant.tools.repository import to_scheme
from scheme_assistant.tools.schemes import CriterionKind, CriterionSpec

EN = SupportedLanguage.ENGLISH


@pytest.fixture
def engine() -> EligibilityEngine:
    return EligibilityEngine(alternative_limit=3)


@pytest.fixture
def schemes():
    return {record["id"]: to_scheme(record) for record in GOVERNMENT_SCHEMES}


def _criteria(*predicates) -> EligibilityCriteria:
    return EligibilityCriteria(predicates)


# =============================================================================
# Predicates
# =============================================================================


class TestPredicates:
    def test_range_is_inclusive(self):
        predicate = RangePredicate("working_age", "age", minimum=18, maximum=70)

        assert predicate.evaluate(18)
        assert predicate.evaluate(70)
        assert not predicate.evaluate(17)
        assert not predicate.evaluate(71)

    def test_range_rejects_non_numbers(self):
        predicate = RangePredicate("adult", "age", minimum=18)
        assert not predicate.evaluate("old")

    def test_range_accepts_numeric_strings(self):
        predicate = RangePredicate("low_income", "income", maximum=100000)
        assert predicate.evaluate("95000")

    def test_membership_ignores_case(self):
        predicate = MembershipPredicate("resident", "location", ["tamil nadu"])

        assert predicate.evaluate("Tamil Nadu")
        assert not predicate.evaluate("kerala")

    def test_custom_predicate_from_registry(self):
        registry = PredicateRegistry()
        predicate = CustomPredicate("widow", "is_widow", "is_true", registry.get("is_true"))

        assert predicate.evaluate(True)
        assert predicate.evaluate("yes")
        assert not predicate.evaluate(False)

    def test_registry_rejects_unknown_names(self):
        with pytest.raises(ValidationFailure):
            PredicateRegistry().get("is_purple")

    def test_registry_is_pluggable(self, engine):
        engine.registry.register("is_even", lambda v: int(v) % 2 == 0)
        spec = CriterionSpec(name="even", field="land_acres", kind=CriterionKind.CUSTOM, predicate="is_even")
        criteria = EligibilityCriteria.from_specs([spec], engine.registry)

        result = engine.evaluate(criteria, {"land_acres": 4}, EN)

        assert result.eligible


# =============================================================================
# Evaluation
# =============================================================================


class TestEvaluate:
    """Complete, incomplete and empty criteria."""

    def test_eligible_when_all_predicates_hold(self, engine, schemes):
        criteria = engine.compile(schemes["old_age_pension"])
        result = engine.evaluate(criteria, {"age": 65, "income": 50000}, EN)

        assert result.complete
        assert result.eligible
        assert result.matched == ("senior", "low_income")
        assert result.confidence == 1.0
        assert len(result.explanations) == 2

    def test_ineligible_names_unmatched_criteria(self, engine, schemes):
        criteria = engine.compile(schemes["old_age_pension"])
        result = engine.evaluate(criteria, {"age": 40, "income": 50000}, EN)

        assert result.complete
        assert not result.eligible
        assert result.unmatched == ("senior",)
        assert "40" in result.explanation

    def test_missing_fields_do_not_fail(self, engine, schemes):
        criteria = engine.compile(schemes["widow_pension"])
        result = engine.evaluate(criteria, {"age": 45}, EN)

        assert not result.complete
        assert not result.eligible
        assert result.missing == ("low_income", "widow")
        assert result.next_field == "income"
        assert 0.0 < result.confidence < 1.0
        assert result.explanation

    def test_unmatched_with_missing_is_still_incomplete(self, engine, schemes):
        criteria = engine.compile(schemes["old_age_pension"])
        result = engine.evaluate(criteria, {"age": 30}, EN)

        assert not result.complete
        assert result.unmatched == ("senior",)
        assert not result.eligible

    def test_empty_criteria_are_open_to_all(self, engine):
        result = engine.evaluate(_criteria(), {}, EN)

        assert result.eligible
        assert result.complete
        assert result.explanation

    def test_accepts_user_profile(self, engine, schemes):
        profile = UserProfile()
        profile.merge("age", 70, timestamp=1.0)
        profile.merge("income", 20000, timestamp=1.0)

        result = engine.evaluate(engine.compile(schemes["old_age_pension"]), profile, EN)

        assert result.eligible

    def test_explanations_follow_language(self, engine, schemes):
        criteria = engine.compile(schemes["old_age_pension"])
        english = engine.evaluate(criteria, {"age": 65, "income": 50000}, SupportedLanguage.ENGLISH)
        hindi = engine.evaluate(criteria, {"age": 65, "income": 50000}, SupportedLanguage.HINDI)

        assert english.eligible == hindi.eligible
        assert english.explanation != hindi.explanation

    def test_evaluation_is_deterministic(self, engine, schemes):
        criteria = engine.compile(schemes["pmsby"])
        first = engine.evaluate(criteria, {"age": 30}, EN)
        second = engine.evaluate(criteria, {"age": 30}, EN)

        assert first == second


class TestNextQuestion:
    """Questions follow age, income, location, occupation, then declaration order."""

    def test_priority_order(self, engine, schemes):
        criteria = engine.compile(schemes["tn_kalaignar_magalir"])

        assert engine.next_question_field(criteria, {}) == "age"
        assert engine.next_question_field(criteria, {"age": 30}) == "income"
        assert engine.next_question_field(criteria, {"age": 30, "income": 1}) == "location"
        assert engine.next_question_field(
            criteria, {"age": 30, "income": 1, "location": "tamil nadu"}
        ) == "gender"

    def test_custom_fields_in_declaration_order(self, engine):
        criteria = _criteria(
            CustomPredicate("bpl", "is_bpl", "is_true", bool),
            CustomPredicate("widow", "is_widow", "is_true", bool),
            RangePredicate("adult", "age", minimum=18),
        )

        assert engine.next_question_field(criteria, {}) == "age"
        assert engine.next_question_field(criteria, {"age": 20}) == "is_bpl"

    def test_nothing_to_ask_when_complete(self, engine, schemes):
        criteria = engine.compile(schemes["pmjdy"])
        assert engine.next_question_field(criteria, {"age": 25}) is None


# =============================================================================
# Alternatives
# =============================================================================


class TestAlternatives:
    def test_ineligible_result_ranks_alternatives(self, engine, schemes):
        profile = {"age": 65, "income": 50000, "is_widow": False}

        result = engine.check_scheme(schemes["widow_pension"], profile, EN, schemes.values())

        assert not result.eligible
        # same category first, then by version and id
        assert result.alternatives == ("old_age_pension", "pmjdy", "pmsby")

    def test_alternatives_are_capped(self, schemes):
        engine = EligibilityEngine(alternative_limit=1)
        profile = {"age": 65, "income": 50000, "is_widow": False}

        result = engine.check_scheme(schemes["widow_pension"], profile, EN, schemes.values())

        assert result.alternatives == ("old_age_pension",)

    def test_higher_version_wins_within_category(self, engine, schemes):
        newer = to_scheme(schemes["pmsby"], version=3)
        candidates = [schemes["pmjdy"], newer]
        profile = {"age": 65, "income": 50000, "is_widow": False}

        result = engine.check_scheme(schemes["widow_pension"], profile, EN, candidates)

        assert result.alternatives == ("pmsby", "pmjdy")

    def test_no_alternatives_for_eligible_or_incomplete(self, engine, schemes):
        eligible = engine.check_scheme(schemes["pmjdy"], {"age": 30}, EN, schemes.values())
        incomplete = engine.check_scheme(schemes["widow_pension"], {"age": 30}, EN, schemes.values())

        assert eligible.alternatives == ()
        assert incomplete.alternatives == ()

    def test_uncompilable_candidate_is_skipped(self, engine, schemes):
        broken = to_scheme(schemes["pmjdy"], id="broken", criteria=[
            {"name": "odd", "field": "age", "kind": "custom", "predicate": "is_purple"}
        ])
        profile = {"age": 65, "income": 50000, "is_widow": False}

        result = engine.check_scheme(
            schemes["widow_pension"], profile, EN, [broken, schemes["old_age_pension"]]
        )

        assert result.alternatives == ("old_age_pension",)
