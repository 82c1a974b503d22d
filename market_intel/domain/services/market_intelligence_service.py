"""
MARKET INTELLIGENCE SERVICE
One assessment cycle: quotes + aux sources -> indicators -> trend -> scoring

RESPONSIBILITIES:
- Serve cached result within TTL
- Replay last result while the market is closed
- Fan out to quote / foreign / news sources (all-settled)
- Record the day's snapshot and emit it to the sink
- Attach insight enrichment

RULES:
❌ No order placement
✅ At most one analysis in flight (asyncio.Lock)
✅ Source failures degrade to documented defaults
"""

import asyncio
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Awaitable, Dict, List, Optional

from market_intel.domain.models import (
    ForeignQuote,
    Headline,
    MarketConditions,
    MarketIntelligenceResult,
    MarketSnapshot,
)
from market_intel.domain.services.ai_insight_engine import AIInsightEngine
from market_intel.domain.services.market_context_engine import MarketContextEngine
from market_intel.domain.services.market_data_analysis import (
    analyze_gap,
    extract_news_events,
    news_events_as_market_events,
    predict_cross_market_reaction,
)
from market_intel.domain.services.strategy_scoring_engine import score_strategies
from market_intel.domain.services.technical_indicator_engine import calculate_technical_indicators
from market_intel.domain.services.trend_engine import analyze_trend
from market_intel.infrastructure.cache.intelligence_cache import IntelligenceCache
from market_intel.infrastructure.history.pattern_store import HistoricalPatternStore, SnapshotSink
from market_intel.infrastructure.market_data.types import (
    BANKNIFTY,
    INDIA_VIX,
    NIFTY,
    AuthenticationError,
    QuoteSource,
)
from market_intel.utils.time import now_ist, to_ist

logger = logging.getLogger(__name__)

QUOTE_SYMBOLS = [NIFTY, BANKNIFTY, INDIA_VIX]


class MarketIntelligenceService:
    """
    Market Intelligence Service
    Produces MarketIntelligenceResult, does NOT trade
    """

    def __init__(
        self,
        quote_source: QuoteSource,
        foreign_client=None,
        headline_client=None,
        context_engine: Optional[MarketContextEngine] = None,
        pattern_store: Optional[HistoricalPatternStore] = None,
        cache: Optional[IntelligenceCache] = None,
        snapshot_sink: Optional[SnapshotSink] = None,
        insight_engine: Optional[AIInsightEngine] = None,
        default_vix: float = 15.0,
        default_nifty_spot: float = 24750.0,
        default_banknifty_spot: float = 51200.0,
        history_days: int = 365,
    ):
        self.quote_source = quote_source
        self.foreign_client = foreign_client
        self.headline_client = headline_client
        self.context_engine = context_engine or MarketContextEngine()
        self.pattern_store = pattern_store or HistoricalPatternStore()
        self.cache = cache or IntelligenceCache()
        self.snapshot_sink = snapshot_sink
        self.insight_engine = insight_engine
        self.default_vix = default_vix
        self.default_nifty_spot = default_nifty_spot
        self.default_banknifty_spot = default_banknifty_spot
        self.history_days = history_days

        self._lock = asyncio.Lock()
        self._last_conditions: Optional[MarketConditions] = None

    @property
    def last_conditions(self) -> Optional[MarketConditions]:
        return self._last_conditions

    def clear_cache(self) -> None:
        self.cache.clear()

    async def analyze(self, now: Optional[datetime] = None) -> MarketIntelligenceResult:
        async with self._lock:
            current = to_ist(now) if now is not None else now_ist()

            session = self.context_engine.is_session_open(current)
            if not session.open:
                # The cached object is never flagged; callers get an annotated copy
                last = self.cache.last()
                if last is not None:
                    logger.info(f"🌙 Market closed ({session.reason}) - returning last assessment")
                else:
                    last = await self._compute(current)
                return replace(last, market_closed=True, next_open_time=session.next_open_time)

            cached = self.cache.get(current)
            if cached is not None:
                age = (current - self.cache.stored_at).total_seconds()
                logger.info(f"♻️ Using cached market intelligence (age: {round(age)}s)")
                return cached

            return await self._compute(current)

    async def record_outcome(self, day: date, pnl: float) -> bool:
        """Attach realised P&L for ``day`` to history (and the sink, if it supports it)."""
        recorded = self.pattern_store.record_outcome(day, pnl)
        record = getattr(self.snapshot_sink, "record_outcome", None)
        if record is not None:
            try:
                recorded = await record(day, pnl) or recorded
            except Exception as e:
                logger.warning(f"⚠️ Snapshot sink failed to record outcome for {day}: {e}")
        return recorded

    async def restore_history(self) -> int:
        """Seed the pattern store from the sink's persisted snapshots. Returns how many were loaded."""
        load = getattr(self.snapshot_sink, "load_recent", None)
        if load is None:
            return 0
        snapshots = await load(self.pattern_store.max_days)
        self.pattern_store.load(snapshots)
        logger.info(f"📚 Restored {len(snapshots)} historical snapshots")
        return len(snapshots)

    def historical_summary(self, days: Optional[int] = None) -> Dict[str, Any]:
        return self.pattern_store.summary(days or self.history_days)

    # ------------------------------------------------------------------
    # PIPELINE
    # ------------------------------------------------------------------

    async def _compute(self, current: datetime) -> MarketIntelligenceResult:
        quotes_res, foreign_res, news_res = await asyncio.gather(
            self.quote_source.get_snapshot(list(QUOTE_SYMBOLS)),
            self._optional(self.foreign_client, "get_snapshot", {}),
            self._optional(self.headline_client, "get_headlines", []),
            return_exceptions=True,
        )

        if isinstance(quotes_res, AuthenticationError):
            message = str(quotes_res) or "Authentication failed"
            logger.error(f"❌ Quote source authentication failed: {message}")
            return MarketIntelligenceResult(conditions=None, error=message)

        quotes: Dict[str, MarketSnapshot] = self._settled(quotes_res, {}, "quote source")
        foreign: Dict[str, ForeignQuote] = self._settled(foreign_res, {}, "foreign markets")
        news: List[Headline] = self._settled(news_res, [], "news feeds")

        nifty = self._nifty_snapshot(quotes.get(NIFTY))
        bank = quotes.get(BANKNIFTY)
        vix_quote = quotes.get(INDIA_VIX)

        vix = vix_quote.ltp if vix_quote is not None and vix_quote.ltp else self.default_vix
        banknifty_spot = bank.ltp if bank is not None and bank.ltp else self.default_banknifty_spot
        banknifty_change_pct = bank.change_percent if bank is not None else 0.0

        indicators = calculate_technical_indicators(nifty)
        trend = analyze_trend(nifty.change_percent, banknifty_change_pct, vix, indicators)

        previous = self._last_conditions
        vix_change = vix - previous.vix if previous is not None else 0.0
        timestamp = current
        if previous is not None and timestamp <= previous.timestamp:
            timestamp = previous.timestamp + timedelta(microseconds=1)

        news_events = extract_news_events(news, current)
        events = self.context_engine.upcoming_events(
            self.context_engine.detect_events(current)
            + news_events_as_market_events(news_events, current)
        )
        vix_interpretation = self.context_engine.interpret_vix(vix, vix_change, trend.trend, events)
        gap = analyze_gap(nifty.open, nifty.close)

        conditions = MarketConditions(
            vix=vix,
            vix_change=round(vix_change, 2),
            nifty_spot=nifty.ltp,
            banknifty_spot=banknifty_spot,
            nifty_change=nifty.change,
            nifty_change_percent=nifty.change_percent,
            banknifty_change_percent=banknifty_change_pct,
            volume=nifty.volume,
            trend=trend.trend,
            trend_strength=trend.strength,
            market_sentiment=trend.sentiment,
            volatility_level=self.context_engine.classify_volatility(vix),
            technical_indicators=indicators,
            timestamp=timestamp,
            vix_interpretation=vix_interpretation,
            gap_analysis=gap,
        )
        recommendations = score_strategies(conditions)

        snapshot = self.pattern_store.record_daily(conditions, recommendations, events)
        if self.snapshot_sink is not None:
            try:
                await self.snapshot_sink.store_snapshot(snapshot)
            except Exception as e:
                logger.warning(f"⚠️ Snapshot sink failed for {snapshot.date}: {e}")

        result = MarketIntelligenceResult(
            conditions=conditions,
            recommendations=recommendations,
            trend_analysis=trend,
            events=events,
            vix_interpretation=vix_interpretation,
            gap_analysis=gap,
            foreign_markets=foreign,
            cross_market_prediction=predict_cross_market_reaction(foreign, conditions),
            news=news,
            news_events=news_events,
            historical_summary=self.pattern_store.summary(self.history_days),
        )
        if self.insight_engine is not None:
            result.insights = await self.insight_engine.enhance(result)

        self._last_conditions = conditions
        self.cache.set(result, current)

        top = recommendations[0].strategy if recommendations else "none"
        logger.info(
            f"📊 Market intelligence: VIX {vix:.2f} ({conditions.volatility_level.value}), "
            f"trend {trend.trend.value}/{trend.strength.value}, top strategy {top}"
        )
        return result

    def _nifty_snapshot(self, quote: Optional[MarketSnapshot]) -> MarketSnapshot:
        spot = quote.ltp if quote is not None and quote.ltp else self.default_nifty_spot
        if quote is None:
            return MarketSnapshot(symbol=NIFTY, ltp=spot, open=spot, high=spot, low=spot, close=spot)
        return replace(
            quote,
            ltp=spot,
            open=quote.open or spot,
            high=quote.high or spot,
            low=quote.low or spot,
            close=quote.close or spot,
        )

    @staticmethod
    async def _optional(client, method: str, default):
        if client is None:
            return default
        call: Awaitable = getattr(client, method)()
        return await call

    @staticmethod
    def _settled(value, default, label: str):
        if isinstance(value, Exception):
            logger.warning(f"⚠️ {label} unavailable, using defaults: {value}")
            return default
        if isinstance(value, BaseException):
            raise value
        return value
