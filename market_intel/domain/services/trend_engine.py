"""
TREND ENGINE
Rule-based trend classification from index changes, momentum and VIX
"""

from typing import List

from market_intel.domain.models import (
    ConfidenceTier,
    Sentiment,
    TechnicalIndicators,
    Trend,
    TrendAnalysis,
    TrendStrength,
)

INDEX_SIGNAL_THRESHOLD = 0.2
MOMENTUM_SIGNAL_THRESHOLD = 0.3
LOW_VIX = 15
HIGH_VIX = 20

DECISIVE_MOVE = 0.4
STRONG_MOVE = 0.6

_SENTIMENT = {
    Trend.BULLISH: Sentiment.POSITIVE,
    Trend.BEARISH: Sentiment.NEGATIVE,
    Trend.SIDEWAYS: Sentiment.NEUTRAL,
}


def analyze_trend(
    primary_change_pct: float,
    secondary_change_pct: float,
    vix: float,
    indicators: TechnicalIndicators,
) -> TrendAnalysis:
    """
    Classify trend, strength, sentiment and confidence.

    Args:
        primary_change_pct: NIFTY 50 change %
        secondary_change_pct: BANK NIFTY change %
        vix: India VIX level
        indicators: Technical indicators of the primary index
    """
    bullish: List[str] = []
    bearish: List[str] = []

    if primary_change_pct > INDEX_SIGNAL_THRESHOLD:
        bullish.append("nifty_positive")
    elif primary_change_pct < -INDEX_SIGNAL_THRESHOLD:
        bearish.append("nifty_negative")

    if secondary_change_pct > INDEX_SIGNAL_THRESHOLD:
        bullish.append("banknifty_positive")
    elif secondary_change_pct < -INDEX_SIGNAL_THRESHOLD:
        bearish.append("banknifty_negative")

    if indicators.momentum > MOMENTUM_SIGNAL_THRESHOLD:
        bullish.append("positive_momentum")
    elif indicators.momentum < -MOMENTUM_SIGNAL_THRESHOLD:
        bearish.append("negative_momentum")

    if vix < LOW_VIX:
        bullish.append("low_vix")
    elif vix > HIGH_VIX:
        bearish.append("high_vix")

    bull_count = len(bullish)
    bear_count = len(bearish)

    if abs(primary_change_pct) > DECISIVE_MOVE:
        trend = Trend.BULLISH if primary_change_pct > 0 else Trend.BEARISH
        strength = (
            TrendStrength.STRONG if abs(primary_change_pct) > STRONG_MOVE
            else TrendStrength.MODERATE
        )
    elif bull_count > bear_count and bull_count >= 1:
        trend = Trend.BULLISH
        strength = TrendStrength.MODERATE if bull_count >= 2 else TrendStrength.WEAK
    elif bear_count > bull_count and bear_count >= 1:
        trend = Trend.BEARISH
        strength = TrendStrength.MODERATE if bear_count >= 2 else TrendStrength.WEAK
    else:
        trend = Trend.SIDEWAYS
        strength = TrendStrength.WEAK

    return TrendAnalysis(
        trend=trend,
        strength=strength,
        sentiment=_SENTIMENT[trend],
        bullish_signals=bull_count,
        bearish_signals=bear_count,
        confidence=_confidence(bull_count, bear_count, vix),
        bullish_reasons=tuple(bullish),
        bearish_reasons=tuple(bearish),
    )


def _confidence(bull_count: int, bear_count: int, vix: float) -> ConfidenceTier:
    multiplier = 1.0
    if vix < LOW_VIX:
        multiplier = 1.2
    elif vix > HIGH_VIX:
        multiplier = 0.8

    score = abs(bull_count - bear_count) * multiplier
    if score >= 3:
        return ConfidenceTier.HIGH
    if score >= 2:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW
