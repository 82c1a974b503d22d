"""
Unit Tests for Trend Engine
"""

from market_intel.domain.models import ConfidenceTier, Sentiment, Trend, TrendStrength
from market_intel.domain.services.trend_engine import analyze_trend
from tests.factories import make_indicators


class TestTrendEngine:
    """Trend, strength and confidence classification"""

    def test_decisive_bullish_move(self):
        result = analyze_trend(0.81, 0.68, 13.5, make_indicators(momentum=0.81))

        assert result.trend == Trend.BULLISH
        assert result.strength == TrendStrength.STRONG
        assert result.sentiment == Sentiment.POSITIVE
        assert result.bullish_signals == 4
        assert result.bullish_reasons == (
            "nifty_positive", "banknifty_positive", "positive_momentum", "low_vix",
        )
        assert result.confidence == ConfidenceTier.HIGH

    def test_decisive_move_below_strong_threshold_is_moderate(self):
        result = analyze_trend(-0.5, 0.0, 17.0, make_indicators())
        assert result.trend == Trend.BEARISH
        assert result.strength == TrendStrength.MODERATE

    def test_signal_majority_without_decisive_move(self):
        result = analyze_trend(-0.3, -0.3, 22.0, make_indicators(momentum=-0.3))

        assert result.trend == Trend.BEARISH
        assert result.strength == TrendStrength.MODERATE
        assert result.bearish_reasons == ("nifty_negative", "banknifty_negative", "high_vix")
        # 3 signals damped by high VIX
        assert result.confidence == ConfidenceTier.MEDIUM

    def test_single_signal_is_weak(self):
        result = analyze_trend(0.3, 0.0, 17.0, make_indicators())
        assert result.trend == Trend.BULLISH
        assert result.strength == TrendStrength.WEAK
        assert result.confidence == ConfidenceTier.LOW

    def test_no_signals_is_sideways(self):
        result = analyze_trend(0.1, 0.1, 17.0, make_indicators(momentum=0.1))

        assert result.trend == Trend.SIDEWAYS
        assert result.strength == TrendStrength.WEAK
        assert result.sentiment == Sentiment.NEUTRAL
        assert result.bullish_signals == 0
        assert result.bearish_signals == 0
        assert result.confidence == ConfidenceTier.LOW

    def test_balanced_signals_are_sideways(self):
        result = analyze_trend(0.3, -0.3, 17.0, make_indicators())
        assert result.trend == Trend.SIDEWAYS
