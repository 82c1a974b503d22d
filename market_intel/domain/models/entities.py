"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class Trend(str, Enum):
    """Market trend label"""
    BULLISH = "bullish"
    BEARISH = "bearish"
    SIDEWAYS = "sideways"


class TrendStrength(str, Enum):
    """Trend strength label"""
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class Sentiment(str, Enum):
    """Market sentiment (mirrors trend)"""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class ConfidenceTier(str, Enum):
    """Confidence tier shared by trend analysis and recommendations"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ImpactLevel(str, Enum):
    """Expected market impact of an event"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class VolatilityLevel(str, Enum):
    """India VIX regime classification"""
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class VixTrend(str, Enum):
    """Short-term direction of the volatility index"""
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class EventType(str, Enum):
    """Calendar and news-derived event types"""
    BUDGET = "budget"
    EXPIRY = "expiry"
    WEEKLY_EXPIRY = "weekly_expiry"
    RBI_POLICY = "rbi_policy"
    NEWS = "news"


class StrategyFamily(str, Enum):
    """Option strategy family"""
    PREMIUM_COLLECTION = "premium_collection"
    DIRECTIONAL_BUYING = "directional_buying"


class GapType(str, Enum):
    """Opening gap direction"""
    UP = "up"
    DOWN = "down"
    NONE = "none"


class GapMagnitude(str, Enum):
    """Opening gap size"""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


@dataclass(frozen=True)
class MarketSnapshot:
    """Point-in-time quote for one symbol - Immutable"""
    symbol: str
    ltp: float
    open: float
    high: float
    low: float
    close: float
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0.0
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if not self.symbol:
            raise ValueError("Snapshot symbol cannot be empty")


@dataclass(frozen=True)
class TechnicalIndicators:
    """Indicators derived from a single snapshot - Immutable"""
    price_position: float
    momentum: float
    momentum_strength: float
    volatility: float
    rsi_approximation: float
    trend_strength: TrendStrength
    is_near_support: bool
    is_near_resistance: bool
    volume_indicator: str = "low"
    volume_ratio: float = 0.0
    support_level: float = 0.0
    resistance_level: float = 0.0
    mid_level: float = 0.0
    price_action: str = "neutral"
    body_size: float = 0.0
    body_percent: float = 0.0
    is_near_mid: bool = False


@dataclass(frozen=True)
class TrendAnalysis:
    """Trend classifier output - Immutable"""
    trend: Trend
    strength: TrendStrength
    sentiment: Sentiment
    bullish_signals: int
    bearish_signals: int
    confidence: ConfidenceTier
    bullish_reasons: Tuple[str, ...] = ()
    bearish_reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class GapAnalysis:
    """Opening gap vs previous close"""
    gap: float
    gap_percent: float
    type: GapType
    magnitude: GapMagnitude
    interpretation: str


@dataclass(frozen=True)
class VixInterpretation:
    """Qualitative reading of India VIX"""
    level: VolatilityLevel
    trend: VixTrend
    change: float
    meaning: str
    context: str
    caution: bool
    recommendation: str


@dataclass(frozen=True)
class MarketEvent:
    """Scheduled or detected market occurrence"""
    type: EventType
    name: str
    date: datetime
    days_until: int
    impact: ImpactLevel
    description: str
    source: Optional[str] = None

    @property
    def is_high_impact(self) -> bool:
        return self.impact == ImpactLevel.HIGH


@dataclass(frozen=True)
class MarketConditions:
    """Conglomerate assessment for one cycle - Immutable"""
    vix: float
    vix_change: float
    nifty_spot: float
    banknifty_spot: float
    nifty_change: float
    nifty_change_percent: float
    banknifty_change_percent: float
    volume: float
    trend: Trend
    trend_strength: TrendStrength
    market_sentiment: Sentiment
    volatility_level: VolatilityLevel
    technical_indicators: TechnicalIndicators
    timestamp: datetime
    vix_interpretation: Optional[VixInterpretation] = None
    gap_analysis: Optional[GapAnalysis] = None


@dataclass(frozen=True)
class StrategyRecommendation:
    """One ranked strategy candidate"""
    strategy: str
    score: int
    confidence: ConfidenceTier
    priority: int
    reason: str
    family: StrategyFamily
    optimal_conditions: Mapping[str, str] = field(default_factory=dict)


@dataclass
class HistoricalSnapshot:
    """
    One calendar day's distilled conditions.
    Outcome (P&L) is filled in later, after the trading day settles.
    """
    date: date
    timestamp: datetime
    vix: float
    nifty_spot: float
    nifty_change_percent: float
    trend: Trend
    trend_strength: TrendStrength
    volatility_level: VolatilityLevel
    technical_indicators: Optional[TechnicalIndicators] = None
    top_recommendation: Optional[str] = None
    recommendation_score: int = 0
    events: List[MarketEvent] = field(default_factory=list)
    outcome: Optional[float] = None


@dataclass
class SchedulerState:
    """Adaptive scheduler state - mutated only by the scheduler"""
    current_interval: int = 15
    last_assessment: Optional[datetime] = None
    next_scheduled_time: Optional[datetime] = None
    active_positions_count: int = 0
    last_reason: Optional[str] = None
    running: bool = False


@dataclass(frozen=True)
class SessionStatus:
    """Trading session state at a point in time"""
    open: bool
    reason: str
    next_open_time: Optional[datetime] = None
    minutes_until_open: Optional[int] = None


@dataclass(frozen=True)
class SkipDecision:
    skip: bool
    reason: Optional[str] = None
    next_open_time: Optional[datetime] = None


@dataclass(frozen=True)
class ForeignQuote:
    """Foreign index quote (S&P 500, Dow Jones, NASDAQ)"""
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class Headline:
    title: str
    source: str
    link: Optional[str] = None
    pub_date: Optional[str] = None


@dataclass(frozen=True)
class NewsEvent:
    """Headline tagged with a keyword category"""
    type: str
    title: str
    source: str
    date: str


@dataclass(frozen=True)
class MarketPrediction:
    source: str
    impact: Sentiment
    strength: str
    reason: str


@dataclass(frozen=True)
class CrossMarketPrediction:
    """Expected home-market reaction to foreign index moves"""
    predictions: Tuple[MarketPrediction, ...]
    overall_sentiment: Sentiment
    confidence: ConfidenceTier


@dataclass
class MarketIntelligenceResult:
    """Outward result of one analysis"""
    conditions: Optional[MarketConditions]
    recommendations: List[StrategyRecommendation] = field(default_factory=list)
    trend_analysis: Optional[TrendAnalysis] = None
    events: List[MarketEvent] = field(default_factory=list)
    vix_interpretation: Optional[VixInterpretation] = None
    gap_analysis: Optional[GapAnalysis] = None
    foreign_markets: Dict[str, ForeignQuote] = field(default_factory=dict)
    cross_market_prediction: Optional[CrossMarketPrediction] = None
    news: List[Headline] = field(default_factory=list)
    news_events: List[NewsEvent] = field(default_factory=list)
    historical_summary: Optional[Dict[str, Any]] = None
    insights: Optional[Dict[str, Any]] = None
    assessment_interval: str = "adaptive"
    market_closed: bool = False
    next_open_time: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_primitive(self)


def to_primitive(value: Any) -> Any:
    """Recursively convert domain objects into JSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_primitive(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_primitive(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_primitive(v) for v in value]
    return value
