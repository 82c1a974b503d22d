"""
Unit Tests for Strategy Scoring Engine
"""

import pytest

from market_intel.domain.models import ConfidenceTier, StrategyFamily, Trend, TrendStrength
from market_intel.domain.services.strategy_scoring_engine import (
    BULL_CALL_SPREAD,
    COVERED_CALL,
    IRON_CONDOR,
    LONG_STRADDLE,
    SHORT_STRADDLE,
    SHORT_STRANGLE,
    STRATEGY_REGISTRY,
    confidence_for_score,
    get_optimal_conditions,
    score_strategies,
)
from tests.factories import make_conditions, make_indicators


class TestStrategyScoring:
    """Additive scoring and ranking"""

    def test_very_high_vix_sideways_prefers_premium_collection(self):
        recs = score_strategies(make_conditions(vix=27.0, trend=Trend.SIDEWAYS))

        assert [(r.strategy, r.score) for r in recs] == [
            (SHORT_STRANGLE, 70),
            (IRON_CONDOR, 60),
            (SHORT_STRADDLE, 35),
        ]
        assert [r.priority for r in recs] == [1, 2, 3]
        assert [r.confidence for r in recs] == [
            ConfidenceTier.HIGH, ConfidenceTier.HIGH, ConfidenceTier.MEDIUM,
        ]
        assert recs[0].family == StrategyFamily.PREMIUM_COLLECTION

    def test_reasons_keep_first_reason_per_theme(self):
        top = score_strategies(make_conditions(vix=27.0, trend=Trend.SIDEWAYS))[0]
        assert top.reason == (
            "High VIX (27.0) provides excellent premium collection opportunity. "
            "Sideways market ideal for range-bound premium collection"
        )

    def test_low_vix_strong_bullish_prefers_buying(self):
        recs = score_strategies(
            make_conditions(vix=11.0, trend=Trend.BULLISH, strength=TrendStrength.STRONG)
        )

        assert [(r.strategy, r.score) for r in recs] == [
            (BULL_CALL_SPREAD, 55),
            (LONG_STRADDLE, 25),
            (COVERED_CALL, 20),
        ]
        assert recs[0].family == StrategyFamily.DIRECTIONAL_BUYING
        assert "Strong bullish trend favors directional strategies" in recs[0].reason

    def test_ties_follow_registry_order(self):
        recs = score_strategies(make_conditions(vix=17.0, trend=Trend.SIDEWAYS))
        assert [(r.strategy, r.score) for r in recs] == [
            (SHORT_STRANGLE, 20),
            (IRON_CONDOR, 20),
            (SHORT_STRADDLE, 15),
        ]

    def test_no_rule_fired_returns_empty(self):
        conditions = make_conditions(vix=17.0, trend=Trend.BULLISH, strength=TrendStrength.WEAK)
        assert score_strategies(conditions) == []

    def test_negative_momentum_adds_to_strangle(self):
        indicators = make_indicators(momentum=-1.5, momentum_strength=1.5)
        recs = score_strategies(make_conditions(vix=17.0, indicators=indicators))

        assert recs[0].strategy == SHORT_STRANGLE
        assert recs[0].score == 30
        assert "Strong momentum (-1.50%)" in recs[0].reason

    def test_never_more_than_three(self):
        indicators = make_indicators(momentum=2.0, momentum_strength=2.0, is_near_support=True)
        conditions = make_conditions(
            vix=21.0, trend=Trend.BULLISH, strength=TrendStrength.STRONG, indicators=indicators,
        )
        recs = score_strategies(conditions)
        assert len(recs) == 3
        assert all(r.score > 0 for r in recs)
        assert recs == sorted(recs, key=lambda r: r.score, reverse=True)

    def test_optimal_conditions_attached(self):
        recs = score_strategies(make_conditions(vix=27.0))
        assert recs[0].optimal_conditions == {"vix": ">20", "trend": "sideways", "volatility": "high"}


class TestHelpers:

    @pytest.mark.parametrize(
        "score,tier",
        [(50, ConfidenceTier.HIGH), (49, ConfidenceTier.MEDIUM), (30, ConfidenceTier.MEDIUM), (29, ConfidenceTier.LOW)],
    )
    def test_confidence_for_score(self, score, tier):
        assert confidence_for_score(score) == tier

    def test_registry_is_ordered(self):
        assert [p.name for p in STRATEGY_REGISTRY][:3] == [SHORT_STRANGLE, IRON_CONDOR, SHORT_STRADDLE]

    def test_unknown_strategy_has_no_optimal_conditions(self):
        assert get_optimal_conditions("Butterfly") == {}
        assert get_optimal_conditions(COVERED_CALL)["trend"] == "bullish"
