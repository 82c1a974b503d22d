"""
Adaptive Market Intelligence Scheduler
Re-arms a one-shot APScheduler job after every cycle with an interval
chosen from live conditions

Base: 15 min | Active positions / opening / closing: 10 min | High volatility: 5 min
"""

import inspect
import logging
from datetime import datetime, time, timedelta
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from market_intel.domain.models import MarketConditions, SchedulerState, TrendStrength
from market_intel.domain.services.market_context_engine import MarketContextEngine
from market_intel.utils.time import now_ist, to_ist, to_ist_iso

logger = logging.getLogger(__name__)

INTERVAL_NORMAL = 15
INTERVAL_ACTIVE = 10
INTERVAL_VOLATILE = 5
INTERVALS = {"normal": INTERVAL_NORMAL, "active": INTERVAL_ACTIVE, "volatile": INTERVAL_VOLATILE}

OPENING_WINDOW = (time(9, 15), time(10, 0))
CLOSING_WINDOW = (time(14, 30), time(15, 30))

# Closed market with no known next open: poll hourly
UNKNOWN_OPEN_RETRY = timedelta(hours=1)

JOB_ID = "adaptive_assessment"
ERROR_REASON = "Assessment error - fallback to normal interval"

MaybeAwaitable = Union[Any, Awaitable[Any]]


def determine_optimal_interval(
    conditions: Optional[MarketConditions],
    has_active_positions: bool,
    now: Optional[datetime] = None,
) -> Tuple[int, str]:
    """
    Pick the next assessment interval (minutes) and the reason.
    First matching rule wins.
    """
    local = to_ist(now) if now is not None else now_ist()
    current = local.time().replace(second=0, microsecond=0)

    if OPENING_WINDOW[0] <= current <= OPENING_WINDOW[1]:
        return INTERVAL_ACTIVE, "Market opening window - increased monitoring"

    if CLOSING_WINDOW[0] <= current <= CLOSING_WINDOW[1]:
        return INTERVAL_ACTIVE, "Market closing window - prepare for exit"

    if has_active_positions:
        return INTERVAL_ACTIVE, "Active positions - closer monitoring"

    if conditions is not None:
        if conditions.vix >= 20 or abs(conditions.vix_change) > 2:
            sign = "+" if conditions.vix_change > 0 else ""
            return (
                INTERVAL_VOLATILE,
                f"High volatility detected (VIX: {conditions.vix:.1f}, change: {sign}{conditions.vix_change:.1f})",
            )

        momentum = conditions.technical_indicators.momentum
        if conditions.trend_strength == TrendStrength.STRONG and abs(momentum) > 1.0:
            return INTERVAL_ACTIVE, "Strong trend with momentum - increased monitoring"

    return INTERVAL_NORMAL, "Normal market conditions"


async def _resolve(value: MaybeAwaitable) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class AdaptiveScheduler:
    """
    Self-rescheduling assessment loop.

    Exactly one pending job exists at a time. A new fire is armed only after
    the previous cycle (including its error handling) has finished.
    """

    def __init__(
        self,
        assessment_callback: Callable[[], MaybeAwaitable],
        get_market_conditions: Callable[[], MaybeAwaitable],
        get_active_positions: Callable[[], MaybeAwaitable],
        context_engine: Optional[MarketContextEngine] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        clock: Callable[[], datetime] = now_ist,
        timezone: str = "Asia/Kolkata",
    ):
        self.assessment_callback = assessment_callback
        self.get_market_conditions = get_market_conditions
        self.get_active_positions = get_active_positions
        self.context_engine = context_engine or MarketContextEngine()
        self.scheduler = scheduler or AsyncIOScheduler(timezone=pytz.timezone(timezone))
        self.clock = clock
        self.state = SchedulerState()
        self.last_conditions: Optional[MarketConditions] = None

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.state.running:
            return
        logger.info("🚀 Starting adaptive market intelligence scheduler")
        logger.info(f"⏱️  Initial interval: {self.state.current_interval} minutes (normal conditions)")
        if not self.scheduler.running:
            self.scheduler.start()
        self.state.running = True
        self._arm(self.clock())

    def stop(self) -> None:
        """Cancel the pending fire. An in-flight cycle finishes but is not re-armed."""
        logger.info("🛑 Stopping adaptive scheduler")
        self.state.running = False
        if self.scheduler.get_job(JOB_ID) is not None:
            self.scheduler.remove_job(JOB_ID)
        self.state.next_scheduled_time = None
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    # ------------------------------------------------------------------
    # CYCLE
    # ------------------------------------------------------------------

    async def run_cycle(self) -> None:
        now = self.clock()

        skip = self.context_engine.should_skip_assessment(now)
        if skip.skip:
            logger.info(f"🌙 Market closed - {skip.reason}")
            if skip.next_open_time is not None:
                logger.info(f"⏭️  Next assessment at market open: {to_ist_iso(skip.next_open_time)}")
                self._arm(skip.next_open_time)
            else:
                self._arm(now + UNKNOWN_OPEN_RETRY)
            return

        try:
            conditions = await _resolve(self.get_market_conditions())
            positions = await _resolve(self.get_active_positions())
            self.update_active_positions(int(positions or 0))

            await _resolve(self.assessment_callback())
            self.state.last_assessment = self.clock()

            interval, reason = determine_optimal_interval(
                conditions, self.state.active_positions_count > 0, self.clock()
            )
            self.last_conditions = conditions
        except Exception:
            logger.exception("❌ Error in assessment cycle")
            interval, reason = INTERVAL_NORMAL, ERROR_REASON
            self.last_conditions = None

        self._transition(interval, reason)
        self._arm(self.clock() + timedelta(minutes=interval))

    def _transition(self, interval: int, reason: str) -> None:
        if interval != self.state.current_interval:
            logger.info(
                f"🔁 Interval changed: {self.state.current_interval}min → {interval}min ({reason})"
            )
        self.state.current_interval = interval
        self.state.last_reason = reason

    def _arm(self, run_at: datetime) -> None:
        if not self.state.running:
            return
        self.scheduler.add_job(
            self.run_cycle,
            trigger=DateTrigger(run_date=run_at),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=60,
        )
        self.state.next_scheduled_time = run_at

    # ------------------------------------------------------------------
    # STATUS
    # ------------------------------------------------------------------

    def update_active_positions(self, count: int) -> None:
        self.state.active_positions_count = max(0, count)

    def status(self) -> dict:
        return {
            "running": self.state.running,
            "current_interval": self.state.current_interval,
            "last_assessment": to_ist_iso(self.state.last_assessment),
            "next_scheduled_time": to_ist_iso(self.state.next_scheduled_time),
            "active_positions_count": self.state.active_positions_count,
            "last_reason": self.state.last_reason,
            "intervals": dict(INTERVALS),
        }
