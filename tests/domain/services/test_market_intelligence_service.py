"""
Tests for MarketIntelligenceService
One assessment cycle over fake sources
"""

from datetime import datetime, timedelta

import pytest

from market_intel.domain.models import EventType, ForeignQuote, Headline, Trend
from market_intel.domain.services.ai_insight_engine import AIInsightEngine
from market_intel.domain.services.market_data_analysis import SP500
from market_intel.domain.services.strategy_scoring_engine import BULL_CALL_SPREAD
from market_intel.infrastructure.market_data.types import INDIA_VIX, AuthenticationError
from market_intel.utils.time import IST
from tests.factories import (
    MID_SESSION,
    FakeForeignClient,
    FakeHeadlineClient,
    FakeQuoteSource,
    RecordingSink,
    build_service,
    default_quotes,
    make_snapshot,
)

SATURDAY = datetime(2024, 3, 16, 11, 0, tzinfo=IST)


class TestAnalyze:

    async def test_full_cycle(self, service):
        result = await service.analyze(MID_SESSION)

        assert result.error is None
        assert result.market_closed is False
        assert result.conditions.vix == 13.5
        assert result.conditions.nifty_spot == 24900.0
        assert result.conditions.trend == Trend.BULLISH
        assert result.recommendations[0].strategy == BULL_CALL_SPREAD
        assert result.gap_analysis.gap == 100.0
        assert result.vix_interpretation is not None
        assert result.historical_summary["available"] is True
        assert len(service.pattern_store) == 1
        assert service.last_conditions is result.conditions

    async def test_cached_within_ttl(self):
        quotes = FakeQuoteSource()
        service = build_service(quote_source=quotes)

        first = await service.analyze(MID_SESSION)
        second = await service.analyze(MID_SESSION + timedelta(minutes=5))
        assert second is first
        assert quotes.calls == 1

        await service.analyze(MID_SESSION + timedelta(minutes=15))
        assert quotes.calls == 2

    async def test_clear_cache_forces_recompute(self):
        quotes = FakeQuoteSource()
        service = build_service(quote_source=quotes)

        await service.analyze(MID_SESSION)
        service.clear_cache()
        await service.analyze(MID_SESSION)
        assert quotes.calls == 2

    async def test_authentication_error_is_reported(self):
        quotes = FakeQuoteSource(error=AuthenticationError("token expired"))
        service = build_service(quote_source=quotes)

        result = await service.analyze(MID_SESSION)
        assert result.conditions is None
        assert result.error == "token expired"

        # Errors are not cached
        await service.analyze(MID_SESSION)
        assert quotes.calls == 2

    async def test_quote_failure_degrades_to_defaults(self):
        service = build_service(quote_source=FakeQuoteSource(error=RuntimeError("timeout")))
        result = await service.analyze(MID_SESSION)

        assert result.error is None
        assert result.conditions.vix == 15.0
        assert result.conditions.nifty_spot == 24750.0
        assert result.conditions.banknifty_spot == 51200.0
        assert result.conditions.trend == Trend.SIDEWAYS

    async def test_vix_change_against_previous_assessment(self):
        quotes = FakeQuoteSource()
        service = build_service(quote_source=quotes)

        first = await service.analyze(MID_SESSION)
        assert first.conditions.vix_change == 0.0

        quotes.snapshots = {**default_quotes(), INDIA_VIX: make_snapshot(INDIA_VIX, 15.0)}
        second = await service.analyze(MID_SESSION + timedelta(minutes=20))
        assert second.conditions.vix_change == 1.5

    async def test_timestamps_strictly_increase(self, service):
        first = await service.analyze(MID_SESSION)
        service.clear_cache()
        second = await service.analyze(MID_SESSION)
        assert second.conditions.timestamp > first.conditions.timestamp

    async def test_auxiliary_sources(self):
        foreign = FakeForeignClient({
            SP500: ForeignQuote(symbol=SP500, name="S&P 500", price=5100.0, change=60.0, change_percent=1.2),
        })
        headlines = FakeHeadlineClient([Headline(title="RBI keeps repo rate unchanged", source="ET")])
        service = build_service(foreign_client=foreign, headline_client=headlines)

        result = await service.analyze(MID_SESSION)
        assert SP500 in result.foreign_markets
        assert result.cross_market_prediction.overall_sentiment.value == "positive"
        assert [e.type for e in result.news_events] == ["rbi"]
        assert any(e.type == EventType.NEWS and e.name == "RBI news" for e in result.events)

    async def test_auxiliary_failures_are_tolerated(self):
        service = build_service(
            foreign_client=FakeForeignClient(error=RuntimeError("down")),
            headline_client=FakeHeadlineClient(error=RuntimeError("down")),
        )
        result = await service.analyze(MID_SESSION)
        assert result.conditions is not None
        assert result.foreign_markets == {}
        assert result.news == []

    async def test_insights_attached(self):
        service = build_service(insight_engine=AIInsightEngine())
        result = await service.analyze(MID_SESSION)
        assert result.insights["source"] == "rules"
        assert result.insights["top_strategy"] == BULL_CALL_SPREAD


class TestClosedMarket:

    async def test_replays_last_result(self):
        quotes = FakeQuoteSource()
        service = build_service(quote_source=quotes)

        live = await service.analyze(MID_SESSION)
        closed = await service.analyze(SATURDAY)

        assert quotes.calls == 1
        assert closed.market_closed is True
        assert closed.next_open_time == datetime(2024, 3, 18, 9, 15, tzinfo=IST)
        assert closed.conditions is live.conditions
        # Cached result stays untouched
        assert live.market_closed is False

    async def test_computes_when_nothing_cached(self, service):
        result = await service.analyze(SATURDAY)
        assert result.market_closed is True
        assert result.conditions is not None

    async def test_session_checked_before_cache(self):
        quotes = FakeQuoteSource()
        service = build_service(quote_source=quotes)

        live = await service.analyze(datetime(2024, 3, 12, 15, 25, tzinfo=IST))
        closed = await service.analyze(datetime(2024, 3, 12, 15, 35, tzinfo=IST))

        assert quotes.calls == 1
        assert closed.market_closed is True
        assert closed.next_open_time == datetime(2024, 3, 13, 9, 15, tzinfo=IST)
        assert live.market_closed is False

    async def test_closed_result_does_not_leak_into_open_session(self):
        quotes = FakeQuoteSource()
        service = build_service(quote_source=quotes)

        pre_open = await service.analyze(datetime(2024, 3, 12, 9, 5, tzinfo=IST))
        assert pre_open.market_closed is True
        assert pre_open.next_open_time == datetime(2024, 3, 12, 9, 15, tzinfo=IST)

        opened = await service.analyze(datetime(2024, 3, 12, 9, 16, tzinfo=IST))
        assert quotes.calls == 1
        assert opened is not pre_open
        assert opened.market_closed is False
        assert opened.next_open_time is None
        assert opened.conditions is pre_open.conditions


class TestHistory:

    async def test_snapshot_reaches_sink(self):
        sink = RecordingSink()
        service = build_service(snapshot_sink=sink)

        await service.analyze(MID_SESSION)
        assert len(sink.snapshots) == 1
        assert sink.snapshots[0].date == MID_SESSION.date()
        assert sink.snapshots[0].top_recommendation == BULL_CALL_SPREAD

    async def test_sink_failure_is_not_fatal(self):
        service = build_service(snapshot_sink=RecordingSink(error=RuntimeError("db down")))
        result = await service.analyze(MID_SESSION)
        assert result.conditions is not None
        assert len(service.pattern_store) == 1

    async def test_one_snapshot_per_day(self, service):
        await service.analyze(MID_SESSION)
        service.clear_cache()
        await service.analyze(MID_SESSION + timedelta(hours=1))
        assert len(service.pattern_store) == 1

    async def test_record_outcome(self, service):
        await service.analyze(MID_SESSION)

        assert await service.record_outcome(MID_SESSION.date(), 1250.0) is True
        assert service.pattern_store.entries[0].outcome == 1250.0
        assert await service.record_outcome(MID_SESSION.date() - timedelta(days=3), 10.0) is False

    @pytest.mark.parametrize("days", [None, 30])
    async def test_historical_summary(self, service, days):
        await service.analyze(MID_SESSION)
        summary = service.historical_summary(days)
        assert summary["available"] is True
        assert summary["total_days"] == 1

    async def test_restore_without_persistent_sink(self):
        service = build_service(snapshot_sink=RecordingSink())
        assert await service.restore_history() == 0
        assert len(service.pattern_store) == 0
