"""
Tests for ensemble statistics, payout shapes and probability estimators.
"""

import math

import pytest

from kalshi_weather_bot.core.types import (
    Above,
    Below,
    Between,
    EnsembleForecast,
    ForecastConfidence,
    market_type_from_market,
    market_type_label,
)
from kalshi_weather_bot.models.ensemble import (
    build_buckets,
    confidence_from_ensemble,
    summarize_members,
)
from kalshi_weather_bot.strategy.probability import (
    estimate_yes_probability,
    member_satisfies,
    yes_from_buckets,
    yes_from_members,
    yes_from_point_estimate,
)


MEMBERS = [66.4, 67.1, 68.2, 68.9, 69.5, 70.3, 70.8, 71.6, 72.2, 73.7]


class TestSummarizeMembers:
    """Tests for ensemble summary statistics."""

    def test_empty_members(self):
        assert summarize_members([]) is None

    def test_basic_statistics(self):
        ens = summarize_members([70.0, 72.0, 74.0, 76.0])
        assert ens.model_count == 4
        assert ens.mean_high == pytest.approx(73.0)
        assert ens.min_high == 70.0
        assert ens.max_high == 76.0
        # population std dev
        assert ens.std_dev == pytest.approx(math.sqrt(5.0))

    def test_percentiles_nearest_rank(self):
        ens = summarize_members(list(range(60, 71)))  # 11 members, 60..70
        assert ens.p10 == 61
        assert ens.p25 == 63  # round(2.5) -> 3
        assert ens.p75 == 68  # round(7.5) -> 8
        assert ens.p90 == 69

    def test_percentiles_monotonic(self):
        ens = summarize_members(MEMBERS)
        assert ens.min_high <= ens.p10 <= ens.p25 <= ens.p75 <= ens.p90 <= ens.max_high
        assert ens.std_dev >= 0

    def test_single_member(self):
        ens = summarize_members([71.3])
        assert ens.std_dev == 0.0
        assert ens.p10 == ens.p90 == 71.3


class TestBuildBuckets:
    """Tests for the 2°F bucket table."""

    def test_probabilities_sum_to_one(self):
        buckets = build_buckets(MEMBERS)
        assert sum(b.probability for b in buckets) == pytest.approx(1.0)

    def test_buckets_are_two_degrees_on_even_edges(self):
        for b in build_buckets(MEMBERS):
            assert b.upper - b.lower == 2.0
            assert b.lower % 2 == 0
            assert b.label == f"{b.lower:.0f}-{b.upper:.0f}°F"

    def test_only_non_empty_buckets(self):
        buckets = build_buckets([60.5, 60.7, 65.0])
        assert [(b.lower, b.probability) for b in buckets] == [
            (60.0, pytest.approx(2 / 3)),
            (64.0, pytest.approx(1 / 3)),
        ]

    def test_empty_members(self):
        assert build_buckets([]) == []


class TestConfidence:
    """Tests for confidence tiers from ensemble spread."""

    def _ens(self, std):
        return EnsembleForecast(
            model_count=10, mean_high=70, min_high=65, max_high=75,
            std_dev=std, p10=66, p25=68, p75=72, p90=74,
        )

    def test_tiers(self):
        assert confidence_from_ensemble(self._ens(1.9)) == ForecastConfidence.HIGH
        assert confidence_from_ensemble(self._ens(2.0)) == ForecastConfidence.MEDIUM
        assert confidence_from_ensemble(self._ens(3.9)) == ForecastConfidence.MEDIUM
        assert confidence_from_ensemble(self._ens(4.0)) == ForecastConfidence.LOW

    def test_no_ensemble_is_medium(self):
        assert confidence_from_ensemble(None) == ForecastConfidence.MEDIUM


class TestMarketType:
    """Tests for deriving payout shape from strike fields."""

    def test_greater(self, make_market):
        m = make_market(floor_strike=70.0, cap_strike=None, strike_type="greater")
        assert market_type_from_market(m) == Above(70.0)

    def test_less(self, make_market):
        m = make_market(floor_strike=None, cap_strike=60.0, strike_type="less")
        assert market_type_from_market(m) == Below(60.0)

    def test_between(self, make_market):
        m = make_market(floor_strike=68.0, cap_strike=70.0, strike_type="between")
        assert market_type_from_market(m) == Between(68.0, 70.0)

    def test_inferred_from_strikes(self, make_market):
        m = make_market(floor_strike=68.0, cap_strike=70.0, strike_type="custom")
        assert market_type_from_market(m) == Between(68.0, 70.0)
        m = make_market(floor_strike=None, cap_strike=55.0, strike_type="")
        assert market_type_from_market(m) == Below(55.0)

    def test_missing_strike(self, make_market):
        m = make_market(floor_strike=None, cap_strike=None, strike_type="greater")
        assert market_type_from_market(m) is None

    def test_labels(self):
        assert market_type_label(Above(70)) == ">70°"
        assert market_type_label(Below(60)) == "<60°"
        assert market_type_label(Between(68, 70)) == "68-70°"
        assert market_type_label(None) == "???"


class TestProbability:
    """Tests for ensemble-implied YES probabilities."""

    def test_member_predicates(self):
        assert member_satisfies(70.1, Above(70))
        assert not member_satisfies(70.0, Above(70))
        assert member_satisfies(69.9, Below(70))
        assert not member_satisfies(70.0, Below(70))
        assert member_satisfies(68.0, Between(68, 70))
        assert not member_satisfies(70.0, Between(68, 70))

    def test_above_monotonic_in_threshold(self):
        probs = [yes_from_members(MEMBERS, Above(t)) for t in range(60, 80)]
        assert all(a >= b for a, b in zip(probs, probs[1:]))

    def test_below_monotonic_in_threshold(self):
        probs = [yes_from_members(MEMBERS, Below(t)) for t in range(60, 80)]
        assert all(a <= b for a, b in zip(probs, probs[1:]))

    def test_complementary_shapes(self):
        t = 69.0
        assert yes_from_members(MEMBERS, Above(t)) + yes_from_members(MEMBERS, Below(t)) == pytest.approx(1.0)

    @pytest.mark.parametrize("shape", [Above(70), Below(68), Between(68, 72), Between(66, 68)])
    def test_buckets_agree_with_members_on_even_edges(self, shape):
        buckets = build_buckets(MEMBERS)
        assert yes_from_buckets(buckets, shape) == pytest.approx(yes_from_members(MEMBERS, shape))

    def test_bucket_interpolation_splits_straddling_bucket(self):
        buckets = build_buckets([70.5, 70.5])  # all mass in [70, 72)
        assert yes_from_buckets(buckets, Above(71)) == pytest.approx(0.5)

    def test_probabilities_in_unit_interval(self):
        buckets = build_buckets(MEMBERS)
        for t in range(55, 90, 3):
            for shape in (Above(t), Below(t), Between(t, t + 2)):
                assert 0.0 <= yes_from_members(MEMBERS, shape) <= 1.0
                assert 0.0 <= yes_from_buckets(buckets, shape) <= 1.0 + 1e-9

    def test_point_estimate_logistic(self):
        assert yes_from_point_estimate(70.0, 70.0) == pytest.approx(0.5)
        assert yes_from_point_estimate(74.0, 70.0, 2.0) == pytest.approx(1 / (1 + math.exp(-2)))
        assert yes_from_point_estimate(60.0, 70.0) < 0.01

    def test_estimator_prefers_members(self, make_weather):
        est = estimate_yes_probability(make_weather(MEMBERS), Above(70))
        assert est.method == "members"
        assert est.probability == pytest.approx(0.5)
        assert est.detail == "5/10 members"

    def test_estimator_falls_back_to_buckets(self, make_weather):
        weather = make_weather(MEMBERS)
        weather.ensemble_member_highs = []
        est = estimate_yes_probability(weather, Between(70, 72))
        assert est.method == "buckets"
        assert est.probability == pytest.approx(0.3)

    def test_estimator_sigmoid_only_for_above(self, make_weather):
        weather = make_weather([], forecast_high=72.0)
        est = estimate_yes_probability(weather, Above(70), logistic_scale=2.0)
        assert est.method == "sigmoid"
        assert est.probability == pytest.approx(1 / (1 + math.exp(-1)))
        assert estimate_yes_probability(weather, Below(70)) is None
        assert estimate_yes_probability(weather, Between(68, 70)) is None
