"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    ConfidenceTier,
    EventType,
    GapMagnitude,
    GapType,
    ImpactLevel,
    Sentiment,
    StrategyFamily,
    Trend,
    TrendStrength,
    VixTrend,
    VolatilityLevel,

    # Entities
    CrossMarketPrediction,
    ForeignQuote,
    GapAnalysis,
    Headline,
    HistoricalSnapshot,
    MarketConditions,
    MarketEvent,
    MarketIntelligenceResult,
    MarketPrediction,
    MarketSnapshot,
    NewsEvent,
    SchedulerState,
    SessionStatus,
    SkipDecision,
    StrategyRecommendation,
    TechnicalIndicators,
    TrendAnalysis,
    VixInterpretation,

    # Helpers
    to_primitive,
)

__all__ = [
    # Enums
    "ConfidenceTier",
    "EventType",
    "GapMagnitude",
    "GapType",
    "ImpactLevel",
    "Sentiment",
    "StrategyFamily",
    "Trend",
    "TrendStrength",
    "VixTrend",
    "VolatilityLevel",

    # Entities
    "CrossMarketPrediction",
    "ForeignQuote",
    "GapAnalysis",
    "Headline",
    "HistoricalSnapshot",
    "MarketConditions",
    "MarketEvent",
    "MarketIntelligenceResult",
    "MarketPrediction",
    "MarketSnapshot",
    "NewsEvent",
    "SchedulerState",
    "SessionStatus",
    "SkipDecision",
    "StrategyRecommendation",
    "TechnicalIndicators",
    "TrendAnalysis",
    "VixInterpretation",

    # Helpers
    "to_primitive",
]
