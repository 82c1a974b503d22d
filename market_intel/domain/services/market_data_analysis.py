"""
MARKET DATA ANALYSIS
Pure analysis over aggregated sources: opening gap, US market cues, news keywords

RULES:
❌ No network calls (adapters live in infrastructure)
✅ Deterministic output for a given input
"""

from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from market_intel.domain.models import (
    ConfidenceTier,
    CrossMarketPrediction,
    EventType,
    ForeignQuote,
    GapAnalysis,
    GapMagnitude,
    GapType,
    Headline,
    ImpactLevel,
    MarketConditions,
    MarketEvent,
    MarketPrediction,
    NewsEvent,
    Sentiment,
)
from market_intel.utils.time import now_ist

SP500 = "^GSPC"
DOW_JONES = "^DJI"
NASDAQ = "^IXIC"

FOREIGN_INDEX_NAMES: Dict[str, str] = {
    SP500: "S&P 500",
    DOW_JONES: "Dow Jones",
    NASDAQ: "NASDAQ",
}

NEWS_KEYWORDS: Dict[str, Sequence[str]] = {
    "budget": ("budget", "union budget", "fiscal"),
    "rbi": ("rbi", "reserve bank", "monetary policy", "repo rate"),
    "election": ("election", "poll", "voting", "results"),
    "gdp": ("gdp", "growth", "economy"),
    "inflation": ("inflation", "cpi", "wpi"),
    "fii": ("fii", "foreign investment", "fdi"),
    "earnings": ("earnings", "results", "quarterly"),
}


# ----------------------------------------------------------------------
# GAP
# ----------------------------------------------------------------------

def analyze_gap(current_open: float, previous_close: Optional[float]) -> Optional[GapAnalysis]:
    """Opening gap vs previous close. None when the previous close is unknown."""
    if not previous_close:
        return None

    gap = current_open - previous_close
    gap_percent = gap / previous_close * 100
    abs_gap = abs(gap_percent)

    if gap > 0:
        gap_type = GapType.UP
    elif gap < 0:
        gap_type = GapType.DOWN
    else:
        gap_type = GapType.NONE

    if abs_gap < 0.3:
        magnitude = GapMagnitude.SMALL
        interpretation = "Minimal gap - normal market opening"
    elif abs_gap < 0.8:
        magnitude = GapMagnitude.MEDIUM
        interpretation = (
            "Moderate gap up - positive sentiment, may continue or fill" if gap_percent > 0
            else "Moderate gap down - negative sentiment, may continue or bounce"
        )
    else:
        magnitude = GapMagnitude.LARGE
        interpretation = (
            "Large gap up - strong positive sentiment, watch for gap fill or continuation" if gap_percent > 0
            else "Large gap down - strong negative sentiment, watch for gap fill or further decline"
        )

    return GapAnalysis(
        gap=round(gap, 2),
        gap_percent=round(gap_percent, 2),
        type=gap_type,
        magnitude=magnitude,
        interpretation=interpretation,
    )


# ----------------------------------------------------------------------
# CROSS MARKET
# ----------------------------------------------------------------------

def predict_cross_market_reaction(
    foreign: Mapping[str, ForeignQuote],
    local_conditions: Optional[MarketConditions] = None,
) -> CrossMarketPrediction:
    """
    Expected NIFTY reaction to the last US session.

    S&P 500 is graded (moderate above 0.5%, strong above 1%). Dow Jones
    only counts on a move larger than 1.5%. NASDAQ is tracked for display.
    ``local_conditions`` is accepted for future weighting and unused today.
    """
    predictions: List[MarketPrediction] = []

    sp500 = foreign.get(SP500)
    if sp500 is not None:
        pct = sp500.change_percent
        if pct > 1:
            predictions.append(MarketPrediction(
                source="S&P 500", impact=Sentiment.POSITIVE, strength="strong",
                reason=f"S&P 500 up {pct:.2f}% - Indian markets likely to open positive",
            ))
        elif pct < -1:
            predictions.append(MarketPrediction(
                source="S&P 500", impact=Sentiment.NEGATIVE, strength="strong",
                reason=f"S&P 500 down {abs(pct):.2f}% - Indian markets likely to open negative",
            ))
        elif pct > 0.5:
            predictions.append(MarketPrediction(
                source="S&P 500", impact=Sentiment.POSITIVE, strength="moderate",
                reason=f"S&P 500 up {pct:.2f}% - Mild positive impact expected",
            ))
        elif pct < -0.5:
            predictions.append(MarketPrediction(
                source="S&P 500", impact=Sentiment.NEGATIVE, strength="moderate",
                reason=f"S&P 500 down {abs(pct):.2f}% - Mild negative impact expected",
            ))

    dow = foreign.get(DOW_JONES)
    if dow is not None and abs(dow.change_percent) > 1.5:
        direction = "up" if dow.change_percent > 0 else "down"
        predictions.append(MarketPrediction(
            source="Dow Jones",
            impact=Sentiment.POSITIVE if dow.change_percent > 0 else Sentiment.NEGATIVE,
            strength="moderate",
            reason=f"Dow Jones {direction} {abs(dow.change_percent):.2f}% - May influence Indian market sentiment",
        ))

    if not predictions:
        return CrossMarketPrediction(
            predictions=(),
            overall_sentiment=Sentiment.NEUTRAL,
            confidence=ConfidenceTier.LOW,
        )

    positive = sum(1 for p in predictions if p.impact == Sentiment.POSITIVE)
    negative = len(predictions) - positive
    # A tie reads as negative
    overall = Sentiment.POSITIVE if positive > negative else Sentiment.NEGATIVE

    return CrossMarketPrediction(
        predictions=tuple(predictions),
        overall_sentiment=overall,
        confidence=ConfidenceTier.MEDIUM,
    )


# ----------------------------------------------------------------------
# NEWS
# ----------------------------------------------------------------------

def extract_news_events(headlines: Iterable[Headline], now: Optional[datetime] = None) -> List[NewsEvent]:
    """Tag headlines by keyword category. One headline can match several."""
    fallback_date = (now or now_ist()).isoformat()
    events: List[NewsEvent] = []
    for item in headlines:
        title = item.title.lower()
        for category, keywords in NEWS_KEYWORDS.items():
            if any(keyword in title for keyword in keywords):
                events.append(NewsEvent(
                    type=category,
                    title=item.title,
                    source=item.source,
                    date=item.pub_date or fallback_date,
                ))
    return events


def news_events_as_market_events(
    news_events: Iterable[NewsEvent],
    now: Optional[datetime] = None,
) -> List[MarketEvent]:
    """News-derived events are treated as happening today, medium impact."""
    current = now or now_ist()
    return [
        MarketEvent(
            type=EventType.NEWS,
            name=f"{event.type.upper()} news",
            date=current,
            days_until=0,
            impact=ImpactLevel.MEDIUM,
            description=event.title,
            source=event.source,
        )
        for event in news_events
    ]
