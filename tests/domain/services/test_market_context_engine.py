"""
Unit Tests for Market Context Engine
Session state, calendar events and VIX interpretation
"""

import pytest
from datetime import date, datetime

from market_intel.domain.models import (
    EventType,
    ImpactLevel,
    MarketEvent,
    Trend,
    VixTrend,
    VolatilityLevel,
)
from market_intel.domain.services.market_context_engine import MarketContextEngine
from market_intel.utils.time import IST


@pytest.fixture
def engine():
    """Fixture for MarketContextEngine"""
    return MarketContextEngine()


def ist(*args) -> datetime:
    return datetime(*args, tzinfo=IST)


class TestSession:
    """Session open/closed decisions"""

    def test_open_during_market_hours(self, engine):
        status = engine.is_session_open(ist(2024, 3, 12, 11, 0))
        assert status.open is True
        assert status.reason == "Market hours"
        assert status.next_open_time is None

    def test_open_and_close_boundaries_are_inclusive(self, engine):
        assert engine.is_session_open(ist(2024, 3, 12, 9, 15)).open is True
        assert engine.is_session_open(ist(2024, 3, 12, 15, 30)).open is True
        assert engine.is_session_open(ist(2024, 3, 12, 15, 31)).open is False

    def test_before_open_reports_wait(self, engine):
        status = engine.is_session_open(ist(2024, 3, 12, 8, 0))
        assert status.open is False
        assert status.reason == "Market opens in 1h 15m"
        assert status.next_open_time == ist(2024, 3, 12, 9, 15)
        assert status.minutes_until_open == 75

    def test_after_close_rolls_to_next_day(self, engine):
        status = engine.is_session_open(ist(2024, 3, 12, 16, 0))
        assert status.open is False
        assert status.reason == "Market closed for today"
        assert status.next_open_time == ist(2024, 3, 13, 9, 15)

    def test_weekend_is_closed(self, engine):
        status = engine.is_session_open(ist(2024, 3, 16, 11, 0))
        assert status.open is False
        assert status.reason == "Weekend"
        assert status.next_open_time == ist(2024, 3, 18, 9, 15)

    def test_holiday_is_skipped(self):
        engine = MarketContextEngine(holidays=[date(2024, 3, 25)])

        holiday = engine.is_session_open(ist(2024, 3, 25, 11, 0))
        assert holiday.open is False
        assert holiday.reason == "Market holiday"

        friday = engine.is_session_open(ist(2024, 3, 22, 16, 0))
        assert friday.next_open_time == ist(2024, 3, 26, 9, 15)

    def test_utc_input_is_converted(self, engine):
        # 05:30 UTC is 11:00 IST
        from datetime import timezone
        status = engine.is_session_open(datetime(2024, 3, 12, 5, 30, tzinfo=timezone.utc))
        assert status.open is True

    def test_next_open_gives_up_after_thirty_days(self):
        start = date(2024, 3, 13)
        engine = MarketContextEngine(holidays=[date(2024, 3, d) for d in range(13, 32)] +
                                     [date(2024, 4, d) for d in range(1, 20)])
        assert engine.get_next_market_open(ist(start.year, start.month, start.day, 16, 0)) is None

    def test_should_skip_assessment(self, engine):
        skip = engine.should_skip_assessment(ist(2024, 3, 16, 11, 0))
        assert skip.skip is True
        assert skip.reason == "Weekend"

        run = engine.should_skip_assessment(ist(2024, 3, 12, 11, 0))
        assert run.skip is False


class TestEvents:
    """Calendar event detection"""

    def test_monthly_expiry_is_last_thursday(self, engine):
        assert engine.get_monthly_expiry(date(2024, 3, 5)) == ist(2024, 3, 28, 15, 30)
        assert engine.get_monthly_expiry(date(2024, 1, 10)) == ist(2024, 1, 25, 15, 30)

    def test_weekly_expiry_on_thursday_is_next_week(self, engine):
        assert engine.get_weekly_expiry(ist(2024, 3, 12, 11, 0)) == ist(2024, 3, 14, 15, 30)
        assert engine.get_weekly_expiry(ist(2024, 3, 14, 11, 0)) == ist(2024, 3, 21, 15, 30)

    def test_monthly_expiry_impact(self, engine):
        medium = [e for e in engine.detect_events(ist(2024, 3, 26, 11, 0)) if e.type == EventType.EXPIRY]
        assert medium[0].days_until == 3
        assert medium[0].impact == ImpactLevel.MEDIUM

        high = [e for e in engine.detect_events(ist(2024, 3, 27, 11, 0)) if e.type == EventType.EXPIRY]
        assert high[0].days_until == 2
        assert high[0].impact == ImpactLevel.HIGH

    def test_weekly_expiry_within_two_days(self, engine):
        events = engine.detect_events(ist(2024, 3, 13, 11, 0))
        weekly = [e for e in events if e.type == EventType.WEEKLY_EXPIRY]
        assert len(weekly) == 1
        assert weekly[0].days_until == 2
        assert weekly[0].impact == ImpactLevel.MEDIUM

    @pytest.mark.parametrize(
        "day,impact",
        [
            (10, ImpactLevel.LOW),
            (20, ImpactLevel.MEDIUM),
            (28, ImpactLevel.HIGH),
        ],
    )
    def test_budget_impact_by_distance(self, engine, day, impact):
        events = engine.detect_events(ist(2024, 1, day, 11, 0))
        budget = [e for e in events if e.type == EventType.BUDGET]
        assert len(budget) == 1
        assert budget[0].impact == impact

    def test_budget_not_flagged_after_the_date(self, engine):
        events = engine.detect_events(ist(2024, 3, 12, 11, 0))
        assert not [e for e in events if e.type == EventType.BUDGET]

    def test_policy_meeting_in_policy_month(self, engine):
        events = engine.detect_events(ist(2024, 4, 3, 11, 0))
        rbi = [e for e in events if e.type == EventType.RBI_POLICY]
        assert len(rbi) == 1
        assert rbi[0].days_until == 7
        assert rbi[0].date == ist(2024, 4, 7)
        assert rbi[0].impact == ImpactLevel.HIGH

    def test_policy_months_are_configurable(self):
        engine = MarketContextEngine(policy_meeting_months=[3])
        events = engine.detect_events(ist(2024, 3, 12, 11, 0))
        assert [e for e in events if e.type == EventType.RBI_POLICY]

    def test_upcoming_events_filters_horizon(self):
        def event(days):
            return MarketEvent(
                type=EventType.NEWS, name="x", date=ist(2024, 3, 12), days_until=days,
                impact=ImpactLevel.LOW, description="x",
            )

        kept = MarketContextEngine.upcoming_events([event(-1), event(0), event(7), event(8)])
        assert [e.days_until for e in kept] == [0, 7]


class TestVix:
    """VIX classification and interpretation"""

    @pytest.mark.parametrize(
        "vix,level",
        [
            (9.9, VolatilityLevel.VERY_LOW),
            (10, VolatilityLevel.LOW),
            (15, VolatilityLevel.MEDIUM),
            (20, VolatilityLevel.HIGH),
            (25, VolatilityLevel.VERY_HIGH),
        ],
    )
    def test_classify_volatility(self, vix, level):
        assert MarketContextEngine.classify_volatility(vix) == level

    def test_high_vix_rising_fast(self, engine):
        result = engine.interpret_vix(22, 1.5)
        assert result.trend == VixTrend.RISING
        assert result.context == "VIX rising rapidly - indicates increasing fear"
        assert result.caution is True

    def test_high_vix_bearish(self, engine):
        result = engine.interpret_vix(22, 0.2, Trend.BEARISH)
        assert result.context == "High VIX with declining market - fear-driven selloff"

    def test_low_vix_bullish(self, engine):
        result = engine.interpret_vix(12, -0.8, Trend.BULLISH)
        assert result.trend == VixTrend.FALLING
        assert result.context == "Low VIX with bullish momentum - stable uptrend"
        assert result.recommendation == "Good for directional buying strategies"
        assert result.caution is False

    def test_moderate_vix_stable(self, engine):
        result = engine.interpret_vix(17, 0.0)
        assert result.level == VolatilityLevel.MEDIUM
        assert result.trend == VixTrend.STABLE
        assert result.context == "Stable VIX - normal market conditions"
        assert result.caution is False

    def test_high_impact_event_overrides_recommendation(self, engine):
        event = MarketEvent(
            type=EventType.EXPIRY, name="Monthly Expiry", date=ist(2024, 3, 28, 15, 30),
            days_until=2, impact=ImpactLevel.HIGH, description="expiry",
        )
        result = engine.interpret_vix(17, 0.0, Trend.SIDEWAYS, [event])
        assert result.context.endswith(" | Upcoming: Monthly Expiry in 2 days")
        assert result.caution is True
        assert result.recommendation == "Event risk ahead - reduce position size, use wider strikes"
