"""
Single-slot TTL cache for the latest intelligence result.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from market_intel.domain.models import MarketIntelligenceResult
from market_intel.utils.time import now_ist

logger = logging.getLogger(__name__)


class IntelligenceCache:
    """
    Holds one result and the time it was stored.

    ``get`` honours the TTL. ``last`` ignores it (closed-market replay).
    """

    def __init__(self, ttl_minutes: int = 15):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._data: Optional[MarketIntelligenceResult] = None
        self._stored_at: Optional[datetime] = None

    def get(self, now: Optional[datetime] = None) -> Optional[MarketIntelligenceResult]:
        if self._data is None or self._stored_at is None:
            return None
        current = now or now_ist()
        if current - self._stored_at >= self.ttl:
            return None
        return self._data

    def last(self) -> Optional[MarketIntelligenceResult]:
        return self._data

    def set(self, result: MarketIntelligenceResult, now: Optional[datetime] = None) -> None:
        self._data = result
        self._stored_at = now or now_ist()

    def clear(self) -> None:
        self._data = None
        self._stored_at = None
        logger.info("🧹 Market intelligence cache cleared")

    @property
    def stored_at(self) -> Optional[datetime]:
        return self._stored_at
