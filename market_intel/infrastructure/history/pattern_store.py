"""
Historical Pattern Store
Bounded rolling window of daily snapshots (1 year) for pattern recognition

RESPONSIBILITIES:
- Keep at most ``max_days`` snapshots, oldest evicted first
- Similarity search against current conditions
- Momentum and recommendation success-rate analytics
"""

import logging
import math
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Deque, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from market_intel.domain.models import (
    HistoricalSnapshot,
    MarketConditions,
    StrategyRecommendation,
    Trend,
)
from market_intel.utils.time import to_ist

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 30
MAX_SIMILAR = 10
MIN_MOMENTUM_ENTRIES = 5

Comparable = Union[MarketConditions, HistoricalSnapshot]


class SnapshotSink(Protocol):
    """Receives every daily snapshot recorded by the store."""

    async def store_snapshot(self, snapshot: HistoricalSnapshot) -> None:
        ...


@dataclass(frozen=True)
class SimilarPattern:
    date: date
    similarity_score: int
    matches: Tuple[str, ...]
    snapshot: HistoricalSnapshot
    outcome: Optional[float]


def snapshot_from_conditions(
    conditions: MarketConditions,
    recommendations: Sequence[StrategyRecommendation] = (),
    events: Sequence = (),
) -> HistoricalSnapshot:
    timestamp = to_ist(conditions.timestamp)
    top = recommendations[0] if recommendations else None
    return HistoricalSnapshot(
        date=timestamp.date(),
        timestamp=timestamp,
        vix=conditions.vix,
        nifty_spot=conditions.nifty_spot,
        nifty_change_percent=conditions.nifty_change_percent,
        trend=conditions.trend,
        trend_strength=conditions.trend_strength,
        volatility_level=conditions.volatility_level,
        technical_indicators=conditions.technical_indicators,
        top_recommendation=top.strategy if top else None,
        recommendation_score=top.score if top else 0,
        events=list(events),
    )


class HistoricalPatternStore:
    """
    In-memory rolling window of daily snapshots.

    ``append`` is a plain bounded FIFO. ``record_daily`` keeps one entry per
    calendar day by replacing the newest entry when it has the same date.
    """

    def __init__(self, max_days: int = 365):
        if max_days <= 0:
            raise ValueError("max_days must be positive")
        self.max_days = max_days
        self._data: Deque[HistoricalSnapshot] = deque(maxlen=max_days)
        self.last_update: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self._data)

    @property
    def entries(self) -> List[HistoricalSnapshot]:
        return list(self._data)

    def append(self, snapshot: HistoricalSnapshot) -> HistoricalSnapshot:
        self._data.append(snapshot)
        self.last_update = snapshot.timestamp
        return snapshot

    async def store_snapshot(self, snapshot: HistoricalSnapshot) -> None:
        self.append(snapshot)

    def load(self, snapshots: Sequence[HistoricalSnapshot]) -> None:
        """Replace the window with ``snapshots`` (oldest first); only the newest ``max_days`` are kept."""
        self._data.clear()
        for snapshot in snapshots:
            self.append(snapshot)

    def record_daily(
        self,
        conditions: MarketConditions,
        recommendations: Sequence[StrategyRecommendation] = (),
        events: Sequence = (),
    ) -> HistoricalSnapshot:
        snapshot = snapshot_from_conditions(conditions, recommendations, events)
        if self._data and self._data[-1].date == snapshot.date:
            snapshot.outcome = self._data[-1].outcome
            self._data[-1] = snapshot
            self.last_update = snapshot.timestamp
            return snapshot
        return self.append(snapshot)

    def record_outcome(self, day: date, pnl: float) -> bool:
        """Attach realised P&L to the snapshot of ``day``. False if not stored."""
        for snapshot in reversed(self._data):
            if snapshot.date == day:
                snapshot.outcome = pnl
                return True
        logger.warning(f"No historical snapshot for {day} - outcome not recorded")
        return False

    def _recent(self, days: int) -> List[HistoricalSnapshot]:
        if days <= 0:
            return []
        data = list(self._data)
        return data[-days:]

    # ------------------------------------------------------------------
    # ANALYTICS
    # ------------------------------------------------------------------

    def find_similar(self, current: Comparable, lookback_days: int = 30) -> List[SimilarPattern]:
        """
        Score each of the last ``lookback_days`` entries against ``current``.

        VIX within 2 points +20, same trend +15, same volatility level +10,
        change within 0.3% +15, price position within 10 +10.
        Entries below 30 are dropped; best 10 returned.
        """
        patterns: List[SimilarPattern] = []
        current_indicators = current.technical_indicators

        for historical in self._recent(lookback_days):
            score = 0
            matches: List[str] = []

            if abs(historical.vix - current.vix) <= 2:
                score += 20
                matches.append("vix")
            if historical.trend == current.trend:
                score += 15
                matches.append("trend")
            if historical.volatility_level == current.volatility_level:
                score += 10
                matches.append("volatility")
            if abs(historical.nifty_change_percent - current.nifty_change_percent) <= 0.3:
                score += 15
                matches.append("change")
            if historical.technical_indicators is not None and current_indicators is not None:
                diff = abs(
                    historical.technical_indicators.price_position - current_indicators.price_position
                )
                if diff <= 10:
                    score += 10
                    matches.append("price_position")

            if score >= SIMILARITY_THRESHOLD:
                patterns.append(SimilarPattern(
                    date=historical.date,
                    similarity_score=score,
                    matches=tuple(matches),
                    snapshot=historical,
                    outcome=historical.outcome,
                ))

        patterns.sort(key=lambda p: p.similarity_score, reverse=True)
        return patterns[:MAX_SIMILAR]

    def momentum_summary(self, lookback_days: int = 30) -> Optional[Dict[str, Any]]:
        recent = self._recent(lookback_days)
        if len(recent) < MIN_MOMENTUM_ENTRIES:
            return None

        changes = [d.nifty_change_percent for d in recent]
        avg_change = sum(changes) / len(changes)
        std_dev = math.sqrt(sum((c - avg_change) ** 2 for c in changes) / len(changes))

        bullish = sum(1 for d in recent if d.trend == Trend.BULLISH)
        bearish = sum(1 for d in recent if d.trend == Trend.BEARISH)
        sideways = sum(1 for d in recent if d.trend == Trend.SIDEWAYS)
        if bullish > bearish:
            dominant = Trend.BULLISH
        elif bearish > bullish:
            dominant = Trend.BEARISH
        else:
            dominant = Trend.SIDEWAYS

        vix_values = [d.vix for d in recent]

        return {
            "period": lookback_days,
            "avg_daily_change": round(avg_change, 2),
            "volatility": round(std_dev, 2),
            "trend_distribution": {
                "bullish": bullish,
                "bearish": bearish,
                "sideways": sideways,
                "dominant": dominant.value,
            },
            "vix_trend": "rising" if vix_values[-1] > vix_values[0] else "falling",
            "vix_range": {
                "min": min(vix_values),
                "max": max(vix_values),
                "current": vix_values[-1],
            },
            "success_rate": self.success_rate(recent),
        }

    @staticmethod
    def success_rate(entries: Sequence[HistoricalSnapshot]) -> Optional[Dict[str, Any]]:
        with_outcomes = [d for d in entries if d.outcome is not None]
        if not with_outcomes:
            return None

        successful = sum(1 for d in with_outcomes if d.outcome > 0)
        return {
            "total": len(with_outcomes),
            "successful": successful,
            "success_rate": round(successful / len(with_outcomes) * 100, 2),
            "avg_outcome": round(sum(d.outcome for d in with_outcomes) / len(with_outcomes), 2),
        }

    def summary(self, days: int = 365, lookback_days: int = 30) -> Dict[str, Any]:
        """Historical digest used by the insight engine and the API."""
        data = self._recent(days)
        if not data:
            return {"available": False, "message": "No historical data available yet"}

        latest = data[-1]
        vix_values = [d.vix for d in data]
        similar = self.find_similar(latest, lookback_days)[:5]

        return {
            "available": True,
            "total_days": len(data),
            "period": f"{data[0].date.isoformat()} to {latest.date.isoformat()}",
            "momentum": self.momentum_summary(lookback_days),
            "similar_patterns": [
                {
                    "date": p.date.isoformat(),
                    "similarity_score": p.similarity_score,
                    "matches": list(p.matches),
                    "top_recommendation": p.snapshot.top_recommendation,
                    "outcome": p.outcome,
                }
                for p in similar
            ],
            "success_rate": self.success_rate(data),
            "vix_history": {
                "avg": round(sum(vix_values) / len(vix_values), 2),
                "min": min(vix_values),
                "max": max(vix_values),
                "current": latest.vix,
            },
            "trend_history": {
                trend.value: sum(1 for d in data if d.trend == trend)
                for trend in (Trend.BULLISH, Trend.BEARISH, Trend.SIDEWAYS)
            },
        }

