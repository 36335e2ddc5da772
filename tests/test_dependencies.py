"""Tests for custom dependency relations."""

import numpy as np
import pytest

from qidash.dependencies import apply_custom_dependencies
from qidash.deep_phenotype import generate_deep_phenotype
from qidash.models import DependencyRelation

from conftest import make_participant


class TestApplyCustomDependencies:
    """Weighted sums of predictors."""

    def test_new_target_goes_to_derived(self):
        p = make_participant(age=50, risk_score=40.0)
        dep = DependencyRelation("burden", ("age", "riskScore"), (1.0, 0.5))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.derived["burden"] == pytest.approx(70.0)
        assert p.derived == {}

    def test_overwrites_numeric_field(self):
        p = make_participant(age=50, readmission_risk=10.0)
        dep = DependencyRelation("readmissionRisk", ("age",), (0.4,))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.readmission_risk == pytest.approx(20.0)
        assert p.readmission_risk == 10.0

    def test_missing_coefficient_defaults_to_one(self):
        p = make_participant(age=30, length_of_stay=4)
        dep = DependencyRelation("x", ("age", "lengthOfStay"), (2.0,))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.derived["x"] == pytest.approx(64.0)

    def test_non_numeric_predictors_skipped(self):
        p = make_participant(age=30)
        dep = DependencyRelation("x", ("gender", "doesNotExist", "age"), (5.0, 5.0, 1.0))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.derived["x"] == pytest.approx(30.0)

    def test_noise_bounded(self):
        p = make_participant(age=100)
        dep = DependencyRelation("x", ("age",), (1.0,), noise_level=0.1)
        for seed in range(20):
            out = apply_custom_dependencies(np.random.default_rng(seed), p, [dep])
            assert 90.0 <= out.derived["x"] <= 110.0

    def test_deep_phenotype_predictor_and_target(self):
        phenotype = generate_deep_phenotype(np.random.default_rng(1), 0.4)
        p = make_participant(deep_phenotype=phenotype)
        dep = DependencyRelation(
            "deepPhenotype.functionalStatus.mobility",
            ("deepPhenotype.functionalStatus.physicalFunction",),
            (0.5,),
        )
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.deep_phenotype.functional_status.mobility == int(round(0.5 * phenotype.functional_status.physical_function))

    def test_no_dependencies_returns_same(self):
        p = make_participant()
        assert apply_custom_dependencies(np.random.default_rng(0), p, []) is p


class TestTargetRanges:
    """Targets on bounded fields are clamped and keep their type."""

    def test_risk_score_capped_at_100(self):
        p = make_participant(age=80, risk_score=60.0)
        dep = DependencyRelation("riskScore", ("age", "riskScore"), (2.0, 1.0))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.risk_score == 100.0

    def test_negative_readmission_floored_at_zero(self):
        p = make_participant(age=50)
        dep = DependencyRelation("readmissionRisk", ("age",), (-1.0,))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.readmission_risk == 0.0

    def test_age_stays_integer_within_bounds(self):
        p = make_participant(age=60)
        dep = DependencyRelation("age", ("age",), (0.55,))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep], bounds={"age": (18, 90)})
        assert out.age == 33
        assert isinstance(out.age, int)

        dep = DependencyRelation("age", ("age",), (3.0,))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep], bounds={"age": (18, 90)})
        assert out.age == 90

    @pytest.mark.parametrize(
        "target", ["deepPhenotype.functionalStatus.frailtyIndex", "deepPhenotype.frailtyIndex"]
    )
    def test_frailty_index_clamped_to_unit_range(self, target):
        phenotype = generate_deep_phenotype(np.random.default_rng(2), 0.5)
        p = make_participant(deep_phenotype=phenotype)
        out = apply_custom_dependencies(np.random.default_rng(0), p, [DependencyRelation(target, ("age",), (0.5,))])
        assert out.deep_phenotype.functional_status.frailty_index == 1.0
        assert target not in out.derived

        out = apply_custom_dependencies(np.random.default_rng(0), p, [DependencyRelation(target, ("age",), (-0.5,))])
        assert out.deep_phenotype.functional_status.frailty_index == 0.0

    def test_unbounded_derived_value_not_clamped(self):
        p = make_participant(age=90, risk_score=90.0)
        dep = DependencyRelation("burden", ("age", "riskScore"), (2.0, 2.0))
        out = apply_custom_dependencies(np.random.default_rng(0), p, [dep])
        assert out.derived["burden"] == pytest.approx(360.0)
