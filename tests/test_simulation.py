"""Tests for the random cohort generator."""

from datetime import date, datetime

import numpy as np
import pytest

from qidash.errors import ConfigurationError
from qidash.models import FREQUENCY_RANGES, OUTCOMES, VITAL_FIELDS, DependencyRelation, SimulationConfig
from qidash.scenario import build_measurement_plan, outcome_patterns
from qidash.simulation import CONDITIONS, UNITS, generate_cohort


class TestCardinalityAndRanges:
    """Size and value bounds of generated cohorts."""

    @pytest.mark.parametrize("n", [1, 7, 40])
    def test_generates_requested_number(self, n):
        cohort = generate_cohort(SimulationConfig(num_participants=n), seed=1)
        assert len(cohort) == n

    def test_ids_follow_index_order(self, small_config):
        cohort = generate_cohort(small_config, seed=3)
        assert [p.id for p in cohort] == [f"P{i:04d}" for i in range(1, 13)]

    def test_scores_and_ages_within_bounds(self):
        cfg = SimulationConfig(num_participants=150, min_age=30, max_age=45)
        for p in generate_cohort(cfg, seed=11):
            assert 0 <= p.risk_score <= 100
            assert 0 <= p.readmission_risk <= 100
            assert p.length_of_stay >= 0
            assert 30 <= p.age <= 45
            assert p.outcome in OUTCOMES
            assert p.unit in UNITS
            assert p.condition in CONDITIONS

    def test_treatments_have_effectiveness_in_range(self, small_config):
        for p in generate_cohort(small_config, seed=5):
            assert 1 <= len(p.treatments) <= 5
            for t in p.treatments:
                assert 0 <= t.effectiveness <= 100
                assert t.end_date is None or t.end_date >= t.start_date

    def test_comorbidities_exclude_primary_condition(self):
        cohort = generate_cohort(SimulationConfig(num_participants=60), seed=8)
        for p in cohort:
            assert p.comorbidities is not None
            assert p.condition not in p.comorbidities
            assert len(set(p.comorbidities)) == len(p.comorbidities)

    def test_comorbidities_omitted_when_disabled(self):
        cohort = generate_cohort(SimulationConfig(num_participants=5, include_comorbidities=False), seed=8)
        assert all(p.comorbidities is None for p in cohort)


class TestMeasurements:
    """Measurement counts, dates and completeness."""

    @pytest.mark.parametrize("tier", ["low", "medium", "high"])
    def test_count_matches_frequency_tier(self, tier):
        lo, hi = FREQUENCY_RANGES[tier]
        cohort = generate_cohort(SimulationConfig(num_participants=25, measurement_frequency=tier), seed=2)
        for p in cohort:
            assert lo <= len(p.measurements) <= hi

    @pytest.mark.parametrize("patterns", ["realistic", "random"])
    def test_dates_are_chronological(self, patterns):
        cohort = generate_cohort(SimulationConfig(num_participants=20, time_patterns=patterns), seed=4)
        for p in cohort:
            dates = [m.date for m in p.measurements]
            assert dates == sorted(dates)

    def test_end_to_end_low_frequency_window(self):
        cfg = SimulationConfig(
            num_participants=20,
            start_date=date(2023, 1, 1),
            end_date=date(2023, 6, 1),
            include_missing_data=False,
            measurement_frequency="low",
        )
        cohort = generate_cohort(cfg, seed=2023)

        assert len(cohort) == 20
        for p in cohort:
            assert 3 <= len(p.measurements) <= 7
            for m in p.measurements:
                assert datetime(2023, 1, 1) <= m.date <= datetime(2023, 6, 1, 23, 59, 59)
                for name in VITAL_FIELDS:
                    assert getattr(m, name) is not None

    def test_single_day_window(self):
        cfg = SimulationConfig(num_participants=5, start_date=date(2023, 5, 5), end_date=date(2023, 5, 5))
        for p in generate_cohort(cfg, seed=9):
            assert all(m.date.date() == date(2023, 5, 5) for m in p.measurements)

    def test_missing_rate_converges(self):
        cfg = SimulationConfig(num_participants=300, include_missing_data=True, missing_data_probability=0.2)
        cohort = generate_cohort(cfg, seed=17)
        cells = [getattr(m, name) for p in cohort for m in p.measurements for name in VITAL_FIELDS]
        rate = sum(1 for v in cells if v is None) / len(cells)
        assert rate == pytest.approx(0.2, abs=0.02)

    def test_dates_never_nulled(self):
        cfg = SimulationConfig(num_participants=30, include_missing_data=True, missing_data_probability=1.0)
        for p in generate_cohort(cfg, seed=6):
            for m in p.measurements:
                assert m.date is not None
                assert all(getattr(m, name) is None for name in VITAL_FIELDS)


class TestMeasurementPlan:
    """Per-participant timelines."""

    def test_admission_not_before_start(self):
        rng = np.random.default_rng(0)
        cfg = SimulationConfig(start_date=date(2023, 1, 1), end_date=date(2023, 1, 10))
        plan = build_measurement_plan(rng, cfg, length_of_stay=30, outcome="Stable")
        assert plan.admission_date == date(2023, 1, 1)
        assert plan.reference_date <= date(2023, 1, 10)

    def test_outcome_patterns(self):
        assert set(outcome_patterns("Improved").values()) == {"improving"}
        assert set(outcome_patterns("Deceased").values()) == {"deteriorating"}
        assert set(outcome_patterns("Transferred").values()) == {"stable"}


class TestDeterminismAndOptions:
    """Seeds, outcome skew, deep phenotyping and dependencies."""

    def test_same_seed_same_cohort(self, small_config):
        first = [p.to_dict() for p in generate_cohort(small_config, seed=99)]
        second = [p.to_dict() for p in generate_cohort(small_config, seed=99)]
        assert first == second

    def test_different_seed_different_cohort(self, small_config):
        first = [p.to_dict() for p in generate_cohort(small_config, seed=1)]
        second = [p.to_dict() for p in generate_cohort(small_config, seed=2)]
        assert first != second

    def test_positive_distribution_skews_to_improved(self):
        cohort = generate_cohort(SimulationConfig(num_participants=400, outcome_distribution="positive"), seed=21)
        improved = sum(1 for p in cohort if p.outcome == "Improved")
        deceased = sum(1 for p in cohort if p.outcome == "Deceased")
        assert improved > deceased

    def test_deep_phenotype_only_when_enabled(self):
        off = generate_cohort(SimulationConfig(num_participants=3), seed=1)
        on = generate_cohort(SimulationConfig(num_participants=3, enable_deep_phenotyping=True), seed=1)
        assert all(p.deep_phenotype is None for p in off)
        assert all(p.deep_phenotype is not None for p in on)

    def test_custom_dependency_adds_derived_value(self):
        dep = DependencyRelation(target_variable="frailtyScore", depends_on=("age", "riskScore"), coefficients=(0.5, 0.3))
        cfg = SimulationConfig(num_participants=6, custom_dependencies=(dep,))
        for p in generate_cohort(cfg, seed=12):
            assert p.derived["frailtyScore"] == pytest.approx(0.5 * p.age + 0.3 * p.risk_score)

    def test_dependency_on_bounded_fields_stays_in_range(self):
        deps = (
            DependencyRelation("riskScore", ("age", "riskScore"), (2.0, 1.0)),
            DependencyRelation("age", ("age",), (1.7,), noise_level=0.1),
        )
        cfg = SimulationConfig(num_participants=20, min_age=30, max_age=80, custom_dependencies=deps)
        for p in generate_cohort(cfg, seed=1):
            assert 0.0 <= p.risk_score <= 100.0
            assert isinstance(p.age, int)
            assert 30 <= p.age <= 80


class TestConfigValidation:
    """Invalid configs are rejected before generation."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"num_participants": 0},
            {"num_participants": -3},
            {"num_participants": 2.5},
            {"start_date": date(2023, 6, 1), "end_date": date(2023, 1, 1)},
            {"missing_data_probability": 1.5},
            {"missing_data_probability": -0.1},
            {"measurement_frequency": "hourly"},
            {"data_variability": "extreme"},
            {"time_patterns": "chaotic"},
            {"outcome_distribution": "grim"},
            {"min_age": 70, "max_age": 20},
            {"min_age": "18"},
            {"max_age": None},
            {"max_age": 85.5},
            {"missing_data_probability": "0.1"},
            {"missing_data_probability": None},
            {"measurement_frequency": None},
        ],
    )
    def test_rejects_invalid_config(self, overrides):
        with pytest.raises(ConfigurationError):
            generate_cohort(SimulationConfig(**overrides), seed=1)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            SimulationConfig(num_participants=0).validate()
