"""
MARKET CONTEXT ENGINE
Session state, calendar events and India VIX interpretation

RESPONSIBILITIES:
- Decide whether the NSE cash session is open (IST)
- Compute the next session open
- Detect calendar events (budget, monthly/weekly expiry, RBI policy)
- Interpret VIX level and short-term change in context

RULES:
❌ No strategy scoring
❌ No I/O
✅ Pure calculation on an injected clock value
✅ Deterministic output
"""

import calendar
import math
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Set, Union

from market_intel.domain.models import (
    EventType,
    ImpactLevel,
    MarketEvent,
    SessionStatus,
    SkipDecision,
    Trend,
    VixInterpretation,
    VixTrend,
    VolatilityLevel,
)
from market_intel.utils.time import IST, now_ist, to_ist

THURSDAY = 3

# Union Budget is presented on 1 February
BUDGET_MONTH = 2
BUDGET_DAY = 1

# RBI MPC dates are not published in a machine-readable calendar.
# Meeting day and lead time are fixed approximations.
# Months are calendar months (1 = January), not zero-based month indexes.
DEFAULT_POLICY_MEETING_MONTHS = frozenset({2, 4, 6, 8, 10, 12})
POLICY_MEETING_DAY = 7
POLICY_MEETING_DAYS_UNTIL = 7

EVENT_HORIZON_DAYS = 7
MAX_ROLL_FORWARD_DAYS = 30

ClockValue = Union[datetime, date]


class MarketContextEngine:
    """
    Market Context Engine
    Evaluates session state and event context, does NOT make decisions
    """

    def __init__(
        self,
        market_open: time = time(9, 15),
        market_close: time = time(15, 30),
        holidays: Optional[Iterable[date]] = None,
        policy_meeting_months: Optional[Iterable[int]] = None,
    ):
        self.market_open = market_open
        self.market_close = market_close
        self.holidays: Set[date] = set(holidays or ())
        self.policy_meeting_months = frozenset(
            policy_meeting_months if policy_meeting_months is not None
            else DEFAULT_POLICY_MEETING_MONTHS
        )

    # ------------------------------------------------------------------
    # SESSION
    # ------------------------------------------------------------------

    def is_trading_day(self, check_date: date) -> bool:
        if check_date.weekday() >= 5:
            return False
        return check_date not in self.holidays

    def is_session_open(self, now: Optional[datetime] = None) -> SessionStatus:
        """
        Check whether the market is open at ``now`` (IST).

        Market hours: 9:15 AM - 3:30 PM IST, Monday to Friday.
        """
        local = to_ist(now) if now is not None else now_ist()

        if local.weekday() >= 5:
            return self._closed("Weekend", local, self.get_next_market_open(local))
        if local.date() in self.holidays:
            return self._closed("Market holiday", local, self.get_next_market_open(local))

        minutes = local.hour * 60 + local.minute
        open_minutes = self.market_open.hour * 60 + self.market_open.minute
        close_minutes = self.market_close.hour * 60 + self.market_close.minute

        if open_minutes <= minutes <= close_minutes:
            return SessionStatus(open=True, reason="Market hours")

        if minutes < open_minutes:
            wait = open_minutes - minutes
            next_open = self._at_open(local.date())
            return self._closed(f"Market opens in {wait // 60}h {wait % 60}m", local, next_open)

        return self._closed("Market closed for today", local, self.get_next_market_open(local))

    def get_next_market_open(self, current: datetime) -> Optional[datetime]:
        """
        Next session open strictly after the current trading day.

        Rolls forward one day at a time over weekends and holidays.
        Returns None if no trading day is found within 30 days.
        """
        local = to_ist(current)
        candidate = local.date() + timedelta(days=1)
        while not self.is_trading_day(candidate):
            candidate += timedelta(days=1)
            if (candidate - local.date()).days > MAX_ROLL_FORWARD_DAYS:
                return None
        return self._at_open(candidate)

    def should_skip_assessment(self, now: Optional[datetime] = None) -> SkipDecision:
        """Skip market intelligence assessment outside session hours."""
        status = self.is_session_open(now)
        if not status.open:
            return SkipDecision(skip=True, reason=status.reason, next_open_time=status.next_open_time)
        return SkipDecision(skip=False)

    def _at_open(self, day: date) -> datetime:
        return datetime.combine(day, self.market_open, tzinfo=IST)

    @staticmethod
    def _closed(reason: str, local: datetime, next_open: Optional[datetime]) -> SessionStatus:
        minutes_until = None
        if next_open is not None:
            minutes_until = math.ceil((next_open - local).total_seconds() / 60)
        return SessionStatus(
            open=False,
            reason=reason,
            next_open_time=next_open,
            minutes_until_open=minutes_until,
        )

    # ------------------------------------------------------------------
    # EVENTS
    # ------------------------------------------------------------------

    def detect_events(self, current: Optional[ClockValue] = None) -> List[MarketEvent]:
        """
        Detect upcoming calendar events.

        Every rule is evaluated independently; all matches are returned.
        """
        local = self._as_local_datetime(current)
        events: List[MarketEvent] = []

        budget_date = datetime(local.year, BUDGET_MONTH, BUDGET_DAY, tzinfo=IST)
        days_until_budget = self._days_until(budget_date, local)
        if 0 <= days_until_budget <= 30:
            if days_until_budget <= 7:
                impact = ImpactLevel.HIGH
            elif days_until_budget <= 14:
                impact = ImpactLevel.MEDIUM
            else:
                impact = ImpactLevel.LOW
            events.append(MarketEvent(
                type=EventType.BUDGET,
                name="Union Budget",
                date=budget_date,
                days_until=days_until_budget,
                impact=impact,
                description="Union Budget announcement - expect high volatility",
            ))

        monthly_expiry = self.get_monthly_expiry(local)
        days_until_expiry = self._days_until(monthly_expiry, local)
        if 0 <= days_until_expiry <= 7:
            events.append(MarketEvent(
                type=EventType.EXPIRY,
                name="Monthly Expiry",
                date=monthly_expiry,
                days_until=days_until_expiry,
                impact=ImpactLevel.HIGH if days_until_expiry <= 2 else ImpactLevel.MEDIUM,
                description="Monthly options expiry - increased volatility expected",
            ))

        weekly_expiry = self.get_weekly_expiry(local)
        days_until_weekly = self._days_until(weekly_expiry, local)
        if 0 <= days_until_weekly <= 2:
            events.append(MarketEvent(
                type=EventType.WEEKLY_EXPIRY,
                name="Weekly Expiry",
                date=weekly_expiry,
                days_until=days_until_weekly,
                impact=ImpactLevel.HIGH if days_until_weekly == 0 else ImpactLevel.MEDIUM,
                description="Weekly options expiry - intraday volatility",
            ))

        if local.month in self.policy_meeting_months:
            events.append(MarketEvent(
                type=EventType.RBI_POLICY,
                name="RBI Policy Meeting",
                date=datetime(local.year, local.month, POLICY_MEETING_DAY, tzinfo=IST),
                days_until=POLICY_MEETING_DAYS_UNTIL,
                impact=ImpactLevel.HIGH,
                description="RBI Monetary Policy Committee meeting - expect rate decisions",
            ))

        return events

    def get_monthly_expiry(self, current: ClockValue) -> datetime:
        """Last Thursday of the month, at market close."""
        local = self._as_local_datetime(current)
        last_day = calendar.monthrange(local.year, local.month)[1]
        expiry = date(local.year, local.month, last_day)
        while expiry.weekday() != THURSDAY:
            expiry -= timedelta(days=1)
        return datetime.combine(expiry, self.market_close, tzinfo=IST)

    def get_weekly_expiry(self, current: ClockValue) -> datetime:
        """Next Thursday at market close. On a Thursday this is a week out."""
        local = self._as_local_datetime(current)
        diff = (THURSDAY - local.weekday()) % 7
        expiry = local.date() + timedelta(days=diff or 7)
        return datetime.combine(expiry, self.market_close, tzinfo=IST)

    @staticmethod
    def upcoming_events(
        events: Iterable[MarketEvent],
        horizon_days: int = EVENT_HORIZON_DAYS,
    ) -> List[MarketEvent]:
        """Rolling horizon filter (default 7 days)."""
        return [e for e in events if 0 <= e.days_until <= horizon_days]

    @staticmethod
    def _days_until(target: datetime, current: datetime) -> int:
        return math.ceil((target - current).total_seconds() / 86400)

    @staticmethod
    def _as_local_datetime(current: Optional[ClockValue]) -> datetime:
        if current is None:
            return now_ist()
        if isinstance(current, datetime):
            return to_ist(current)
        return datetime.combine(current, time(0, 0), tzinfo=IST)

    # ------------------------------------------------------------------
    # VIX
    # ------------------------------------------------------------------

    @staticmethod
    def classify_volatility(vix: float) -> VolatilityLevel:
        if vix >= 25:
            return VolatilityLevel.VERY_HIGH
        if vix >= 20:
            return VolatilityLevel.HIGH
        if vix >= 15:
            return VolatilityLevel.MEDIUM
        if vix >= 10:
            return VolatilityLevel.LOW
        return VolatilityLevel.VERY_LOW

    def interpret_vix(
        self,
        vix: float,
        vix_change: float,
        trend: Optional[Trend] = None,
        events: Optional[Iterable[MarketEvent]] = None,
    ) -> VixInterpretation:
        """
        Interpret VIX with market and event context

        Args:
            vix: Current India VIX
            vix_change: Change vs the previous assessment (points)
            trend: Current market trend, if known
            events: Detected market events
        """
        if vix_change > 0.5:
            vix_trend = VixTrend.RISING
        elif vix_change < -0.5:
            vix_trend = VixTrend.FALLING
        else:
            vix_trend = VixTrend.STABLE

        caution = False
        if vix >= 20:
            meaning = "High volatility - market fear/uncertainty"
            caution = True
            if vix_change > 1:
                context = "VIX rising rapidly - indicates increasing fear"
                recommendation = "Wait for stabilization or use defensive strategies"
            elif trend == Trend.BEARISH:
                context = "High VIX with declining market - fear-driven selloff"
                recommendation = "Premium collection attractive but risky - use wider strikes"
            else:
                context = "High VIX without major decline - potential volatility spike ahead"
                recommendation = "Monitor for event risk or news"
        elif vix < 15:
            meaning = "Low volatility - market complacency or stability"
            if trend == Trend.BULLISH:
                context = "Low VIX with bullish momentum - stable uptrend"
                recommendation = "Good for directional buying strategies"
            elif vix_change > 0.5:
                context = "VIX rising from low levels - potential volatility expansion"
                recommendation = "Monitor for breakout or event"
            else:
                context = "Low VIX - market stable, premium collection less attractive"
                recommendation = "Consider buying strategies for breakout"
        else:
            meaning = "Moderate volatility - normal market conditions"
            if vix_change > 1:
                context = "VIX rising - market entering caution mode"
                caution = True
                recommendation = "Monitor for event risk or news"
            else:
                context = "Stable VIX - normal market conditions"
                recommendation = "Standard strategy selection"

        high_impact = [
            e for e in (events or ())
            if e.days_until <= EVENT_HORIZON_DAYS and e.is_high_impact
        ]
        if high_impact:
            event = high_impact[0]
            context += f" | Upcoming: {event.name} in {event.days_until} days"
            caution = True
            recommendation = "Event risk ahead - reduce position size, use wider strikes"

        return VixInterpretation(
            level=self.classify_volatility(vix),
            trend=vix_trend,
            change=round(vix_change, 2),
            meaning=meaning,
            context=context,
            caution=caution,
            recommendation=recommendation,
        )
