"""
STRATEGY SCORING ENGINE
Additive weighted scoring of option strategies

RESPONSIBILITIES:
- Keep the fixed, ordered strategy registry
- Fire every matching condition -> increment rule (rules stack)
- Rank: score > 0, descending, top 3

RULES:
❌ No order placement
❌ No I/O
✅ Ties resolved by registry order (stable sort)
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Tuple

from market_intel.domain.models import (
    ConfidenceTier,
    MarketConditions,
    StrategyFamily,
    StrategyRecommendation,
    Trend,
    TrendStrength,
)

SHORT_STRANGLE = "Short Strangle"
IRON_CONDOR = "Iron Condor"
SHORT_STRADDLE = "Short Straddle"
LONG_STRADDLE = "Long Straddle"
BULL_CALL_SPREAD = "Bull Call Spread"
BULL_PUT_SPREAD = "Bull Put Spread"
COVERED_CALL = "Covered Call"

MAX_RECOMMENDATIONS = 3


@dataclass(frozen=True)
class StrategyProfile:
    name: str
    family: StrategyFamily
    optimal_conditions: Mapping[str, str]


# Registry order is the tie-break order
STRATEGY_REGISTRY: Tuple[StrategyProfile, ...] = (
    StrategyProfile(SHORT_STRANGLE, StrategyFamily.PREMIUM_COLLECTION,
                    {"vix": ">20", "trend": "sideways", "volatility": "high"}),
    StrategyProfile(IRON_CONDOR, StrategyFamily.PREMIUM_COLLECTION,
                    {"vix": ">18", "trend": "sideways", "volatility": "medium-high"}),
    StrategyProfile(SHORT_STRADDLE, StrategyFamily.PREMIUM_COLLECTION,
                    {"vix": ">22", "trend": "sideways", "volatility": "very_high"}),
    StrategyProfile(LONG_STRADDLE, StrategyFamily.DIRECTIONAL_BUYING,
                    {"vix": "<15", "trend": "any", "volatility": "low-medium"}),
    StrategyProfile(BULL_CALL_SPREAD, StrategyFamily.DIRECTIONAL_BUYING,
                    {"vix": "<15", "trend": "bullish", "volatility": "low"}),
    StrategyProfile(BULL_PUT_SPREAD, StrategyFamily.PREMIUM_COLLECTION,
                    {"vix": ">18", "trend": "bullish", "volatility": "high"}),
    StrategyProfile(COVERED_CALL, StrategyFamily.PREMIUM_COLLECTION,
                    {"vix": "any", "trend": "bullish", "volatility": "any"}),
)

_PROFILES: Dict[str, StrategyProfile] = {p.name: p for p in STRATEGY_REGISTRY}


@dataclass(frozen=True)
class ScoringRule:
    """
    One condition -> increments rule.

    ``increments`` is a callable so a rule can depend on more than its
    trigger (momentum direction, bullish kicker inside the low-VIX band).
    """
    theme: str
    applies: Callable[[MarketConditions], bool]
    increments: Callable[[MarketConditions], Mapping[str, int]]
    reason: Callable[[MarketConditions], str]


def _low_vix_increments(c: MarketConditions) -> Dict[str, int]:
    increments = {LONG_STRADDLE: 25, BULL_CALL_SPREAD: 20}
    if c.trend == Trend.BULLISH:
        increments[BULL_CALL_SPREAD] += 15
        increments[COVERED_CALL] = 10
    return increments


def _momentum_increments(c: MarketConditions) -> Dict[str, int]:
    if c.technical_indicators.momentum > 0:
        return {BULL_CALL_SPREAD: 10}
    return {SHORT_STRANGLE: 10}


SCORING_RULES: Tuple[ScoringRule, ...] = (
    ScoringRule(
        theme="volatility",
        applies=lambda c: c.vix >= 20,
        increments=lambda c: {SHORT_STRANGLE: 30, IRON_CONDOR: 25, SHORT_STRADDLE: 20, BULL_PUT_SPREAD: 15},
        reason=lambda c: f"High VIX ({c.vix:.1f}) provides excellent premium collection opportunity",
    ),
    ScoringRule(
        theme="volatility",
        applies=lambda c: c.vix >= 25,
        increments=lambda c: {SHORT_STRANGLE: 20, IRON_CONDOR: 15},
        reason=lambda c: "Very high volatility environment maximizes premium income",
    ),
    ScoringRule(
        theme="volatility",
        applies=lambda c: c.vix < 15,
        increments=_low_vix_increments,
        reason=lambda c: f"Low VIX ({c.vix:.1f}) suggests potential breakout - good for buying strategies",
    ),
    ScoringRule(
        theme="volatility",
        applies=lambda c: c.vix < 10,
        increments=lambda c: {LONG_STRADDLE: 15, BULL_CALL_SPREAD: 10},
        reason=lambda c: "Very low VIX - options are cheap to buy",
    ),
    ScoringRule(
        theme="trend",
        applies=lambda c: c.trend == Trend.BULLISH and c.trend_strength == TrendStrength.STRONG,
        increments=lambda c: {BULL_CALL_SPREAD: 20, BULL_PUT_SPREAD: 15, COVERED_CALL: 10},
        reason=lambda c: "Strong bullish trend favors directional strategies",
    ),
    ScoringRule(
        theme="trend",
        applies=lambda c: c.trend == Trend.BEARISH and c.trend_strength == TrendStrength.STRONG,
        increments=lambda c: {SHORT_STRANGLE: 15, IRON_CONDOR: 15},
        reason=lambda c: "Strong bearish trend - collect premium away from the move",
    ),
    ScoringRule(
        theme="trend",
        applies=lambda c: c.trend == Trend.SIDEWAYS,
        increments=lambda c: {SHORT_STRANGLE: 20, IRON_CONDOR: 20, SHORT_STRADDLE: 15},
        reason=lambda c: "Sideways market ideal for range-bound premium collection",
    ),
    ScoringRule(
        theme="proximity",
        applies=lambda c: c.technical_indicators.is_near_support and c.trend == Trend.BULLISH,
        increments=lambda c: {BULL_CALL_SPREAD: 10, LONG_STRADDLE: 5},
        reason=lambda c: "Price near day's support in a bullish market",
    ),
    ScoringRule(
        theme="proximity",
        applies=lambda c: c.technical_indicators.is_near_resistance and c.trend == Trend.BEARISH,
        increments=lambda c: {SHORT_STRANGLE: 10, IRON_CONDOR: 10},
        reason=lambda c: "Price near day's resistance in a bearish market",
    ),
    ScoringRule(
        theme="momentum",
        applies=lambda c: c.technical_indicators.momentum_strength > 1.0,
        increments=_momentum_increments,
        reason=lambda c: f"Strong momentum ({c.technical_indicators.momentum:+.2f}%)",
    ),
)


def confidence_for_score(score: int) -> ConfidenceTier:
    if score >= 50:
        return ConfidenceTier.HIGH
    if score >= 30:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def get_optimal_conditions(strategy: str) -> Mapping[str, str]:
    profile = _PROFILES.get(strategy)
    return dict(profile.optimal_conditions) if profile else {}


def score_strategies(conditions: MarketConditions) -> List[StrategyRecommendation]:
    """
    Score every registered strategy and return the top 3.

    Returns:
        Recommendations with priority 1..3, highest score first.
    """
    scores: Dict[str, int] = {p.name: 0 for p in STRATEGY_REGISTRY}
    # strategy -> {theme: reason} (first reason per theme wins)
    reasons: Dict[str, Dict[str, str]] = {p.name: {} for p in STRATEGY_REGISTRY}

    for rule in SCORING_RULES:
        if not rule.applies(conditions):
            continue
        text = rule.reason(conditions)
        for strategy, increment in rule.increments(conditions).items():
            scores[strategy] += increment
            reasons[strategy].setdefault(rule.theme, text)

    ranked: List[Tuple[str, int]] = sorted(
        ((name, score) for name, score in scores.items() if score > 0),
        key=lambda item: item[1],
        reverse=True,
    )[:MAX_RECOMMENDATIONS]

    recommendations: List[StrategyRecommendation] = []
    for priority, (name, score) in enumerate(ranked, start=1):
        profile = _PROFILES[name]
        justification = ". ".join(reasons[name].values()) or f"Market conditions favor {name} strategy"
        recommendations.append(StrategyRecommendation(
            strategy=name,
            score=score,
            confidence=confidence_for_score(score),
            priority=priority,
            reason=justification,
            family=profile.family,
            optimal_conditions=dict(profile.optimal_conditions),
        ))
    return recommendations
