"""
YFinance Quote Source
Async-safe Yahoo Finance snapshots for NIFTY 50, BANK NIFTY and India VIX
"""

import asyncio
import logging
import random
import time
from typing import Dict, List, Optional

import yfinance as yf

from market_intel.domain.models import MarketSnapshot
from market_intel.infrastructure.market_data.types import BANKNIFTY, INDIA_VIX, NIFTY
from market_intel.utils.time import now_ist

logger = logging.getLogger(__name__)


class YFinanceQuoteSource:
    """
    Yahoo Finance quote source for Indian indices
    Async-safe via thread offloading
    """

    def __init__(self, cache_ttl_seconds: int = 30, retries: int = 2):
        self.symbol_mapping = {
            NIFTY: "^NSEI",
            "NIFTY50": "^NSEI",
            "NIFTY 50": "^NSEI",
            BANKNIFTY: "^NSEBANK",
            INDIA_VIX: "^INDIAVIX",
        }
        self.cache_ttl_seconds = cache_ttl_seconds
        self.retries = retries
        self._cache: Dict[str, tuple[float, MarketSnapshot]] = {}

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    async def _history(self, ticker: yf.Ticker, **kwargs):
        """
        Async-safe wrapper around yfinance history()
        """
        return await asyncio.to_thread(ticker.history, **kwargs)

    async def _history_with_retry(self, ticker: yf.Ticker, **kwargs):
        """
        Retry wrapper around history() to handle transient failures.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                return await self._history(ticker, **kwargs)
            except Exception as exc:
                last_exc = exc
                await asyncio.sleep(0.4 * (2 ** attempt) + random.random() * 0.2)
        raise last_exc  # type: ignore[misc]

    def _cache_get(self, key: str) -> Optional[MarketSnapshot]:
        cached = self._cache.get(key)
        if not cached:
            return None
        ts, value = cached
        if time.time() - ts > self.cache_ttl_seconds:
            return None
        return value

    def _cache_set(self, key: str, value: MarketSnapshot) -> None:
        self._cache[key] = (time.time(), value)

    # ------------------------------------------------------------------
    # SNAPSHOTS
    # ------------------------------------------------------------------

    async def get_snapshot(self, symbols: List[str]) -> Dict[str, MarketSnapshot]:
        """
        Latest daily bar per symbol with change vs previous close.
        Symbols with no data are omitted.
        """
        snapshots: Dict[str, MarketSnapshot] = {}
        for symbol in symbols:
            cached = self._cache_get(symbol)
            if cached is not None:
                snapshots[symbol] = cached
                continue

            snapshot = await self._fetch_snapshot(symbol)
            if snapshot is not None:
                self._cache_set(symbol, snapshot)
                snapshots[symbol] = snapshot
        return snapshots

    async def _fetch_snapshot(self, symbol: str) -> Optional[MarketSnapshot]:
        yf_symbol = self.symbol_mapping.get(symbol.upper(), symbol)
        try:
            ticker = yf.Ticker(yf_symbol)
            hist = await self._history_with_retry(
                ticker,
                period="5d",
                interval="1d",
                auto_adjust=False,
            )
        except Exception as e:
            logger.error(f"Error fetching snapshot for {symbol} ({yf_symbol}): {e}")
            return None

        if hist.empty or "Close" not in hist:
            logger.warning(f"No price data for {symbol}")
            return None

        hist = hist.dropna(subset=["Close"])
        if hist.empty:
            return None

        row = hist.iloc[-1]
        ltp = float(row["Close"])
        previous_close = float(hist.iloc[-2]["Close"]) if len(hist) > 1 else float(row["Open"])
        change = ltp - previous_close
        change_percent = change / previous_close * 100 if previous_close else 0.0

        volume = row.get("Volume")
        # Index bars from Yahoo can carry NaN volume
        volume = float(volume) if volume is not None and volume == volume else 0.0

        return MarketSnapshot(
            symbol=symbol,
            ltp=round(ltp, 2),
            open=round(float(row["Open"]), 2),
            high=round(float(row["High"]), 2),
            low=round(float(row["Low"]), 2),
            close=round(previous_close, 2),
            change=round(change, 2),
            change_percent=round(change_percent, 2),
            volume=volume,
            timestamp=now_ist(),
        )
