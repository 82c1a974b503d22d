"""
Quote source protocol for type hints.
"""

from __future__ import annotations

from typing import Dict, List, Protocol

from market_intel.domain.models import MarketSnapshot

NIFTY = "NIFTY"
BANKNIFTY = "BANKNIFTY"
INDIA_VIX = "INDIA_VIX"


class AuthenticationError(Exception):
    """Quote source rejected the session (missing or expired credentials)."""


class QuoteSource(Protocol):
    async def get_snapshot(self, symbols: List[str]) -> Dict[str, MarketSnapshot]:
        ...
